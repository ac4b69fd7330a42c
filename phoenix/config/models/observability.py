"""Observability configuration models."""

from typing import Literal

from pydantic import BaseModel, Field

LogFormat = Literal["json", "console"]


class LoggingConfig(BaseModel):
    """Structured logging configuration."""

    level: str = Field(default="INFO", description="Minimum log level")
    format: LogFormat = Field(default="console", description="Output renderer")
    redact_pii: bool = Field(
        default=True,
        description="Mask credentials and e-mail addresses in log events",
    )


class ObservabilityConfig(BaseModel):
    """Top-level observability configuration."""

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration",
    )
