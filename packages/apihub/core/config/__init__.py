"""App configuration models and JSON/YAML loaders."""

from apihub.core.config.loader import (
    configure_logging,
    detect_format,
    load_app_config,
    load_build_config,
    load_config,
)
from apihub.core.config.models import AppConfig, IngestionConfig, LoggingConfig

__all__ = [
    "AppConfig",
    "IngestionConfig",
    "LoggingConfig",
    "configure_logging",
    "detect_format",
    "load_app_config",
    "load_build_config",
    "load_config",
]
