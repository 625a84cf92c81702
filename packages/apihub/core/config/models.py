"""Application configuration models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from apihub.core.manifests.enums import DEFAULT_FORMAT
from apihub.core.utils.logging import DEFAULT_TEXT_FORMAT


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    format: str = DEFAULT_TEXT_FORMAT
    structured: bool = Field(default=False, description="Emit one JSON object per record")
    filename: str | None = Field(default=None, description="Log file path; stdout when unset")


class IngestionConfig(BaseModel):
    """Limits and defaults applied to uploaded archives."""

    max_archive_bytes: int = Field(
        default=100 * 1024 * 1024,
        gt=0,
        description="Largest archive blob accepted for ingestion",
    )
    default_format: str = Field(
        default=DEFAULT_FORMAT,
        description="Format assumed for transformed bundles that declare none",
    )


class AppConfig(BaseModel):
    """Application-level configuration."""

    model_config = ConfigDict(extra="ignore")

    logging: LoggingConfig = LoggingConfig()
    ingestion: IngestionConfig = IngestionConfig()
