from fastapi import FastAPI
import logging
from datetime import datetime
import os
from typing import Optional

from .api import configure_notifications_api, notifications_router
from .config import DispatcherConfig, SinkBackend, load_dispatcher_config
from .monitoring.metrics import metrics_router
from .notifications.service import NotificationDispatcher
from .notifications.sinks import DeliverySink, InMemorySink, WebhookSink


class AddTraceIdFilter(logging.Filter):
    def filter(self, record):
        if not hasattr(record, "trace_id"):
            record.trace_id = "system"
        return True


logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s - %(name)s - %(levelname)s - trace_id=%(trace_id)s - %(message)s",
)
for _handler in logging.getLogger().handlers:
    _handler.addFilter(AddTraceIdFilter())
logger = logging.getLogger("herald")

app = FastAPI(
    title="Herald Notification Dispatcher",
    version="1.0.0",
)

app.include_router(metrics_router)
app.include_router(notifications_router)

dispatcher: Optional[NotificationDispatcher] = None  # Initialized on startup


def build_sink(config: DispatcherConfig) -> DeliverySink:
    if config.sink == SinkBackend.webhook:
        return WebhookSink(config.webhook_url or "", timeout=config.webhook_timeout)
    return InMemorySink()


def build_dispatcher(config: Optional[DispatcherConfig] = None) -> NotificationDispatcher:
    config = config or load_dispatcher_config()
    return NotificationDispatcher(sink=build_sink(config), config=config)


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": "1.0.0",
        "pending": dispatcher.pending if dispatcher is not None else 0,
    }


@app.on_event("startup")
async def startup_event():
    logger.info("Herald notification dispatcher starting")
    global dispatcher
    if dispatcher is None:
        dispatcher = build_dispatcher()
    await dispatcher.start()
    configure_notifications_api(svc=dispatcher)


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Herald notification dispatcher shutting down")
    try:
        if dispatcher is not None:
            await dispatcher.stop()
    except Exception as e:  # noqa: BLE001
        logger.error("Error stopping dispatcher: %s", e)
