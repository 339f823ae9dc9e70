"""
Dispatcher configuration.

Values resolve through a :class:`ConfigProvider` chain (explicit values,
then ``HERALD_*`` environment variables) and are validated by pydantic.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, Field, model_validator

from .providers import ConfigProvider, HybridConfigProvider

logger = logging.getLogger(__name__)


class SinkBackend(str, Enum):
    memory = "memory"
    webhook = "webhook"


class DispatcherConfig(BaseModel):
    batch_size: int = Field(10, ge=1, alias="batchSize")
    batch_delay_ms: int = Field(5000, ge=0, alias="batchDelayMs")
    history_limit: int = Field(500, ge=1)
    icon: str = "/icon-192x192.png"
    badge: str = "/badge-72x72.png"
    vibrate: List[int] = Field(default_factory=lambda: [100, 50, 100])
    sink: SinkBackend = SinkBackend.memory
    webhook_url: Optional[str] = None
    webhook_timeout: float = Field(10.0, gt=0)

    class Config:
        populate_by_name = True

    @model_validator(mode="after")
    def _webhook_needs_url(self) -> "DispatcherConfig":
        if self.sink == SinkBackend.webhook and not self.webhook_url:
            raise ValueError("webhook sink requires webhook_url")
        return self


# field -> environment key
ENV_KEYS = {
    "batch_size": "HERALD_BATCH_SIZE",
    "batch_delay_ms": "HERALD_BATCH_DELAY_MS",
    "history_limit": "HERALD_HISTORY_LIMIT",
    "icon": "HERALD_ICON",
    "badge": "HERALD_BADGE",
    "vibrate": "HERALD_VIBRATE",
    "sink": "HERALD_SINK",
    "webhook_url": "HERALD_WEBHOOK_URL",
    "webhook_timeout": "HERALD_WEBHOOK_TIMEOUT",
}


def load_dispatcher_config(
    provider: Optional[ConfigProvider] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> DispatcherConfig:
    """Build a :class:`DispatcherConfig` from ``provider`` and ``overrides``.

    ``overrides`` are keyed by field name and win over the provider.
    """
    provider = provider or HybridConfigProvider()
    values: dict[str, Any] = {}
    for field, key in ENV_KEYS.items():
        v = provider.get(key, None)
        if v is not None:
            values[field] = v
    values.update(overrides or {})
    cfg = DispatcherConfig(**values)
    logger.debug(
        "Dispatcher config: batch_size=%s batch_delay_ms=%s sink=%s",
        cfg.batch_size,
        cfg.batch_delay_ms,
        cfg.sink.value,
    )
    return cfg
