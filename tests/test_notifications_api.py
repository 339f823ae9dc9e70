from fastapi import FastAPI
from fastapi.testclient import TestClient

from herald.api import configure_notifications_api, notifications_router
from herald.config import DispatcherConfig
from herald.monitoring.metrics import metrics_router
from herald.notifications.service import NotificationDispatcher
from herald.notifications.sinks import InMemorySink


def _app():
    sink = InMemorySink()
    svc = NotificationDispatcher(
        sink=sink, config=DispatcherConfig(batch_size=10, batch_delay_ms=60000)
    )
    app = FastAPI()
    app.include_router(notifications_router)
    app.include_router(metrics_router)
    configure_notifications_api(svc=svc)
    return app, svc, sink


def test_send_flush_and_history():
    app, svc, sink = _app()
    with TestClient(app) as client:
        r = client.post(
            "/notifications/send",
            json={"title": "Hi", "body": "there", "recipient_user_id": "u1"},
        )
        assert r.status_code == 200, r.text
        assert r.json() == {"accepted": True}
        assert svc.pending == 1

        r = client.post("/notifications/flush")
        assert r.json() == {"delivered": 1}
        assert [n.tag for n in sink.shown] == ["message_u1"]

        r = client.post("/notifications/send", json={"title": " ", "body": "x"})
        assert r.json() == {"accepted": False}

        r = client.get("/notifications/history", params={"limit": 10})
        items = r.json()["items"]
        assert [i["status"] for i in items] == ["queued", "rejected"]

        r = client.post("/notifications/clear")
        assert r.json() == {"ok": True}
        assert sink.shown == []
        assert sink.badge == 0


def test_preferences_round_trip_and_errors():
    app, svc, _ = _app()
    with TestClient(app) as client:
        r = client.get("/notifications/preferences/u1")
        assert r.status_code == 404

        r = client.put(
            "/notifications/preferences/u1",
            json={"category_enabled": {"mention": False}, "do_not_disturb": {"enabled": True}},
        )
        assert r.status_code == 200, r.text
        body = r.json()
        assert body["category_enabled"]["mention"] is False
        assert body["do_not_disturb"] == {"enabled": True, "start_hour": 22, "end_hour": 8}

        r = client.get("/notifications/preferences/u1")
        assert r.json()["category_enabled"]["message"] is True

        r = client.put("/notifications/preferences/u1", json={"do_not_disturb": {"start_hour": 24}})
        assert r.status_code == 422

        r = client.put("/notifications/preferences/u1", json={"category_enabled": {"nope": True}})
        assert r.status_code == 422

        r = client.put("/notifications/preferences/u1", json={"doNotDisturb": {"startHour": 1}, "extra": 1})
        assert r.status_code == 422

        r = client.put("/notifications/preferences/u1", json={"doNotDisturb": {"startHour": 1}})
        assert r.json()["do_not_disturb"]["start_hour"] == 1


def test_push_and_interactions():
    app, svc, sink = _app()
    with TestClient(app) as client:
        r = client.post(
            "/notifications/push",
            content=b'{"title": "Alert", "body": "b", "category": "security", "priority": "high"}',
        )
        assert r.json() == {"accepted": True}
        assert sink.shown[0].renotify is True

        r = client.post("/notifications/push", content=b"not json")
        assert r.json() == {"accepted": False}

        r = client.post(
            "/notifications/interactions",
            json={"action": None, "data": {"category": "message", "chatId": "c1"}},
        )
        assert r.json() == {"target": "/chat/c1"}
        assert sink.opened == ["/chat/c1"]

        r = client.post(
            "/notifications/interactions",
            json={"action": "reply", "data": {"chatId": "c1"}},
        )
        assert r.json() == {"target": "/chat/c1?reply=true"}


def test_metrics_exposed():
    app, _, _ = _app()
    with TestClient(app) as client:
        client.post("/notifications/send", json={"title": "t", "body": "b", "priority": "high"})
        r = client.get("/metrics")
        assert r.status_code == 200
        assert "herald_notifications_requests_total" in r.text


def test_unconfigured_api_returns_503():
    app = FastAPI()
    app.include_router(notifications_router)
    configure_notifications_api(svc=None)
    client = TestClient(app)
    r = client.post("/notifications/flush")
    assert r.status_code == 503
