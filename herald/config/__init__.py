"""
Configuration for the notification dispatcher.
"""

from .providers import (
    ConfigProvider,
    EnvConfigProvider,
    HybridConfigProvider,
    InMemoryConfigProvider,
)
from .settings import DispatcherConfig, SinkBackend, load_dispatcher_config

__all__ = [
    "ConfigProvider",
    "EnvConfigProvider",
    "HybridConfigProvider",
    "InMemoryConfigProvider",
    "DispatcherConfig",
    "SinkBackend",
    "load_dispatcher_config",
]
