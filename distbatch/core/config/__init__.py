"""Configuration loading and management for distbatch."""

from distbatch.core.config.loader import (
    ConfigLoader,
    clear_config_cache,
    get_default_config,
    load_config,
)
from distbatch.core.config.models import (
    DistBatchConfig,
    ExecutorConfig,
    LoggingConfig,
    SchedulerConfig,
)

__all__ = [
    "ConfigLoader",
    "DistBatchConfig",
    "ExecutorConfig",
    "LoggingConfig",
    "SchedulerConfig",
    "clear_config_cache",
    "get_default_config",
    "load_config",
]
