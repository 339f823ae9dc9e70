from __future__ import annotations

from typing import Dict, Any, Optional
from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import ValidationError

from ..notifications.service import NotificationDispatcher


notifications_router = APIRouter(prefix="/notifications", tags=["notifications"])

_svc: Optional[NotificationDispatcher] = None


def configure_notifications_api(*, svc: Optional[NotificationDispatcher]) -> None:
    global _svc
    _svc = svc


def _resolve_svc() -> NotificationDispatcher:
    if _svc is None:
        raise HTTPException(status_code=503, detail="Notification dispatcher unavailable")
    return _svc


@notifications_router.post("/send")
async def send_notification(payload: Dict[str, Any]):
    svc = _resolve_svc()
    return {"accepted": await svc.send_notification(payload)}


@notifications_router.post("/flush")
async def flush_batch():
    svc = _resolve_svc()
    return {"delivered": await svc.flush()}


@notifications_router.post("/clear")
async def clear_notifications():
    svc = _resolve_svc()
    await svc.clear_all()
    return {"ok": True}


@notifications_router.get("/history")
async def list_history(limit: int = Query(50, ge=1, le=1000)):
    svc = _resolve_svc()
    return {"items": [e.model_dump(mode="json") for e in svc.get_history(limit)]}


@notifications_router.get("/preferences/{user_id}")
async def get_preferences(user_id: str):
    svc = _resolve_svc()
    prefs = svc.get_preferences(user_id)
    if prefs is None:
        raise HTTPException(status_code=404, detail="preferences_not_found")
    return prefs.model_dump(mode="json")


@notifications_router.put("/preferences/{user_id}")
async def update_preferences(user_id: str, payload: Dict[str, Any]):
    svc = _resolve_svc()
    try:
        prefs = svc.update_preferences(user_id, payload)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return prefs.model_dump(mode="json")


# Push transport delivers an opaque body; decoding happens in the dispatcher
@notifications_router.post("/push")
async def receive_push(request: Request):
    svc = _resolve_svc()
    body = await request.body()
    return {"accepted": await svc.on_push_received(body)}


@notifications_router.post("/interactions")
async def notification_interaction(payload: Dict[str, Any]):
    svc = _resolve_svc()
    return {"target": await svc.on_notification_clicked(payload)}
