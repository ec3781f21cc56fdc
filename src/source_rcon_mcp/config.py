"""Connection settings with environment overrides."""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "RCON_"
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET")


class RconSettings(BaseModel):
    host: str = "localhost"
    port: int = Field(default=25575, ge=1, le=65535)
    password: str = ""
    timeout: float = Field(default=5.0, gt=0)
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"unknown log level {value!r}, expected one of {LOG_LEVELS}")
        return level

    @property
    def address(self) -> tuple[str, int]:
        return self.host, self.port


_ENV_FIELDS = {
    "HOST": "host",
    "PORT": "port",
    "PASS": "password",
    "TIMEOUT": "timeout",
    "LOG_LEVEL": "log_level",
}


def load_settings(env: dict[str, str] | None = None, **overrides: Any) -> RconSettings:
    """Build settings from ``RCON_*`` environment variables.

    Explicit keyword overrides win over the environment; ``None`` values
    are ignored so callers can pass optional arguments straight through.
    """
    source = os.environ if env is None else env
    data: dict[str, Any] = {}
    for suffix, field in _ENV_FIELDS.items():
        raw = source.get(f"{ENV_PREFIX}{suffix}", "")
        if raw.strip():
            # passwords may legitimately carry surrounding spaces
            data[field] = raw if field == "password" else raw.strip()
    data.update({k: v for k, v in overrides.items() if v is not None})
    return RconSettings(**data)
