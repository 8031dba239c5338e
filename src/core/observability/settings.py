# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Environment driven settings."""

import logging
import os
from typing import Mapping, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from src.core.observability.context import DEFAULT_APPLICATION_NAME
from src.core.observability.tracer import ExceptionPolicy


class TelemetrySettings(BaseModel):
    """Telemetry and logging configuration, read once at startup."""

    model_config = ConfigDict(frozen=True)

    application_name: str = DEFAULT_APPLICATION_NAME
    connection_string: Optional[str] = None
    log_level: str = "INFO"
    log_format: str = "console"
    batch_size: int = Field(default=100, ge=1)
    flush_interval: float = Field(default=5.0, gt=0)
    exception_policy: ExceptionPolicy = ExceptionPolicy.SWALLOW

    @field_validator("application_name", mode="before")
    @classmethod
    def _default_application_name(cls, value: Optional[str]) -> str:
        return value or DEFAULT_APPLICATION_NAME

    @field_validator("exception_policy", mode="before")
    @classmethod
    def _parse_policy(cls, value: object) -> ExceptionPolicy:
        return ExceptionPolicy.parse(value)  # type: ignore[arg-type]

    @property
    def logging_level(self) -> int:
        """Numeric logging level, INFO when the name is unknown."""
        level = logging.getLevelName(self.log_level.upper())
        return level if isinstance(level, int) else logging.INFO

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "TelemetrySettings":
        """Read settings from environment variables.

        :param environ: Mapping to read, os.environ by default
        :returns: TelemetrySettings
        :rtype: TelemetrySettings
        :raises TelemetryConfigurationError: If the exception policy is unknown
        """
        env = os.environ if environ is None else environ
        return cls(
            application_name=env.get("APPLICATION_LOG_NAME"),
            connection_string=env.get("APPLICATIONINSIGHTS_CONNECTION_STRING") or None,
            log_level=env.get("LOG_LEVEL", "INFO"),
            log_format=env.get("LOG_FORMAT", "console"),
            batch_size=int(env.get("APPINSIGHTS_BATCH_SIZE", "100")),
            flush_interval=float(env.get("APPINSIGHTS_FLUSH_INTERVAL", "5.0")),
            exception_policy=env.get("TRACE_EXCEPTION_POLICY", ExceptionPolicy.SWALLOW.value),
        )
