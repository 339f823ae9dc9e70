from prometheus_client import CollectorRegistry, Histogram, Gauge, Counter
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter
from fastapi.responses import Response

registry = CollectorRegistry()

notifications_requests_total = Counter(
    "herald_notifications_requests_total",
    "Total notification requests received",
    ["category"],
    registry=registry,
)

notifications_accepted_total = Counter(
    "herald_notifications_accepted_total",
    "Notifications accepted for delivery",
    ["path"],
    registry=registry,
)

notifications_suppressed_total = Counter(
    "herald_notifications_suppressed_total",
    "Notifications suppressed by user preferences",
    ["reason"],
    registry=registry,
)

notifications_rejected_total = Counter(
    "herald_notifications_rejected_total",
    "Notifications rejected as invalid",
    registry=registry,
)

notifications_delivered_total = Counter(
    "herald_notifications_delivered_total",
    "Notifications handed to the delivery sink",
    ["kind"],
    registry=registry,
)

notifications_display_failures_total = Counter(
    "herald_notifications_display_failures_total",
    "Delivery sink display failures",
    registry=registry,
)

batch_flushes_total = Counter(
    "herald_batch_flushes_total",
    "Batch queue flushes",
    ["trigger"],
    registry=registry,
)

batch_queue_depth = Gauge(
    "herald_batch_queue_depth",
    "Notifications waiting in the batch queue",
    registry=registry,
)

push_decode_failures_total = Counter(
    "herald_push_decode_failures_total",
    "Push payloads dropped because they could not be decoded",
    registry=registry,
)

notifications_send_latency = Histogram(
    "herald_notifications_send_latency_seconds",
    "Latency for handling a notification send request",
    registry=registry,
)

metrics_router = APIRouter()


@metrics_router.get("/metrics")
async def get_metrics():
    return Response(generate_latest(registry), media_type=CONTENT_TYPE_LATEST)
