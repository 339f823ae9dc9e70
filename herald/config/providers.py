"""
Configuration providers.

A provider answers ``get(key, default)``. Environment values are strings and
are parsed into bool, int, float or JSON where they look like one, so the
settings model receives typed values.
"""

from __future__ import annotations

import json
import os
from typing import Any, Mapping, Optional, Protocol


class ConfigProvider(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...


def parse_env_value(raw: str) -> Any:
    lowered = raw.strip().lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    for cast in (int, float, json.loads):
        try:
            return cast(raw)
        except ValueError:
            continue
    return raw


class EnvConfigProvider:
    """Reads ``HERALD_*`` keys from the process environment."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None) -> None:
        self.environ = os.environ if environ is None else environ

    def get(self, key: str, default: Any = None) -> Any:
        raw = self.environ.get(key)
        if raw is None or raw == "":
            return default
        return parse_env_value(raw)


class InMemoryConfigProvider:
    def __init__(self, data: Optional[Mapping[str, Any]] = None) -> None:
        self.data = dict(data or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)


class HybridConfigProvider:
    """Explicit values first, environment second."""

    _missing = object()

    def __init__(
        self,
        primary: Optional[ConfigProvider] = None,
        fallback: Optional[ConfigProvider] = None,
    ) -> None:
        self.primary = primary or InMemoryConfigProvider()
        self.fallback = fallback or EnvConfigProvider()

    def get(self, key: str, default: Any = None) -> Any:
        v = self.primary.get(key, self._missing)
        if v is self._missing:
            return self.fallback.get(key, default)
        return v
