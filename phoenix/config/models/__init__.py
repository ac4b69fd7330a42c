"""Nested configuration sections for phoenix settings."""

from phoenix.config.models.client import ClientConfig
from phoenix.config.models.observability import LoggingConfig, ObservabilityConfig
from phoenix.config.models.scenarios import (
    JobPersistenceConfig,
    PollConfig,
    ScenariosConfig,
    SecurityStoreConfig,
    WatcherConfig,
)

__all__ = [
    "ClientConfig",
    "JobPersistenceConfig",
    "LoggingConfig",
    "ObservabilityConfig",
    "PollConfig",
    "ScenariosConfig",
    "SecurityStoreConfig",
    "WatcherConfig",
]
