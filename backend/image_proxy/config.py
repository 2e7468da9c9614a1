"""
Image Proxy Configuration

Settings come from environment variables:
- P42_PORT           (required) TCP port to listen on
- P42_DATA_DIR       (required) root of the on-disk cache
- P42_ORIGIN_URL     upstream image host
- P42_HOST           bind address
- P42_FETCH_TIMEOUT  origin timeout in seconds
- P42_LOG_LEVEL      logging level name
"""

import os
from pathlib import Path
from typing import Mapping, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, ValidationError, field_validator

from .origin_fetcher import DEFAULT_ORIGIN_URL, DEFAULT_TIMEOUT

ENV_PREFIX = "P42_"


class ConfigError(RuntimeError):
    """Startup configuration is missing or malformed."""


class ProxySettings(BaseModel):
    port: int = Field(..., ge=1, le=65535)
    data_dir: Path
    origin_url: str = DEFAULT_ORIGIN_URL
    host: str = "0.0.0.0"
    fetch_timeout: float = Field(DEFAULT_TIMEOUT, gt=0)
    log_level: str = "DEBUG"

    @field_validator("origin_url")
    @classmethod
    def _check_origin_url(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https"):
            raise ValueError("origin URL must be http or https")
        if not parsed.netloc:
            raise ValueError("origin URL must have a host")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"):
            raise ValueError(f"unknown log level {value!r}")
        return value


def _require(env: Mapping[str, str], name: str) -> str:
    value = env.get(ENV_PREFIX + name)
    if value is None or not value.strip():
        raise ConfigError(f"{ENV_PREFIX}{name} env var is missing")
    return value.strip()


def load_settings(env: Optional[Mapping[str, str]] = None) -> ProxySettings:
    """
    Build settings from the environment, failing fast on bad input.

    Raises:
        ConfigError: a required variable is missing or a value is invalid
    """
    env = os.environ if env is None else env

    data = {
        "port": _require(env, "PORT"),
        "data_dir": Path(_require(env, "DATA_DIR")).expanduser(),
    }
    for name, field in (
        ("ORIGIN_URL", "origin_url"),
        ("HOST", "host"),
        ("FETCH_TIMEOUT", "fetch_timeout"),
        ("LOG_LEVEL", "log_level"),
    ):
        value = env.get(ENV_PREFIX + name)
        if value:
            data[field] = value

    try:
        settings = ProxySettings(**data)
    except ValidationError as exc:
        fields = ", ".join(
            ENV_PREFIX + str(err["loc"][0]).upper() for err in exc.errors() if err["loc"]
        )
        raise ConfigError(f"Invalid configuration ({fields}): {exc}") from exc

    try:
        settings.data_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigError(f"cannot create data dir {settings.data_dir}") from exc

    return settings
