"""Settings loaded from ``COMMUNITY_*`` environment variables."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from community.errors import ConfigError

ENV_PREFIX = "COMMUNITY_"
VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
_TRUTHY = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    app_title: str = "City Community"
    log_level: str = "INFO"
    structured_logs: bool = True
    handler_timeout_seconds: float = Field(default=5.0, gt=0, le=300)
    seed_cities: bool = True
    super_admin_id: str | None = None

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_log_level(cls, value: Any) -> str:
        normalized = str(value).strip().upper()
        if normalized not in VALID_LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {', '.join(sorted(VALID_LOG_LEVELS))}"
            )
        return normalized

    @field_validator("structured_logs", "seed_cities", mode="before")
    @classmethod
    def _parse_flag(cls, value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in _TRUTHY
        return bool(value)

    @field_validator("super_admin_id", mode="before")
    @classmethod
    def _blank_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from the environment, ignoring unset variables.

        Raises ``ConfigError`` when a variable is present but invalid.
        """
        env = os.environ if environ is None else environ
        raw: dict[str, str] = {}
        for field_name in cls.model_fields:
            key = ENV_PREFIX + field_name.upper()
            if key in env:
                raw[field_name] = env[key]
        try:
            return cls(**raw)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc
