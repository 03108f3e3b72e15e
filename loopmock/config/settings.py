"""Configuration settings and loading."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MockSettings(BaseSettings):
    """Process-wide knobs for loopmock."""

    model_config = SettingsConfigDict(
        env_prefix="LOOPMOCK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # bound on recorded calls per spy and per route table
    record_limit: int = Field(default=100, ge=0)
    allow_real_network: bool = True
    real_request_timeout: float = Field(default=30.0, gt=0)
    log_level: str = "WARNING"
    log_json: bool = False

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = str(v).upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Invalid log level: {v}")
        return level


_settings: MockSettings | None = None


def load_settings(config_path: str | Path | None = None) -> MockSettings:
    """Load settings from a YAML file and the environment.

    The file may hold the keys at top level or under a ``loopmock:``
    section. Priority: env vars > config file > defaults
    """
    config_data: dict[str, Any] = {}

    if config_path is not None:
        config_path = Path(config_path)
        if config_path.exists():
            with open(config_path) as f:
                raw = yaml.safe_load(f) or {}
            config_data = raw.get("loopmock", raw) if isinstance(raw, dict) else {}

    config_data.update(_get_env_overrides())

    return MockSettings(**config_data)


def _get_env_overrides() -> dict[str, Any]:
    """Get configuration overrides from environment variables."""
    overrides: dict[str, Any] = {}

    env_mappings = {
        "LOOPMOCK_RECORD_LIMIT": ("record_limit", int),
        "LOOPMOCK_ALLOW_REAL_NETWORK": (
            "allow_real_network",
            lambda x: x.lower() in ("true", "1", "yes"),
        ),
        "LOOPMOCK_REAL_REQUEST_TIMEOUT": ("real_request_timeout", float),
        "LOOPMOCK_LOG_LEVEL": "log_level",
    }

    for env_key, config_key in env_mappings.items():
        value = os.environ.get(env_key)
        if value is not None:
            if isinstance(config_key, tuple):
                key, converter = config_key
                overrides[key] = converter(value)
            else:
                overrides[config_key] = value

    return overrides


def get_settings() -> MockSettings:
    """Return the cached process settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def configure(**overrides: Any) -> MockSettings:
    """Replace the process settings with the current ones plus overrides."""
    global _settings
    current = get_settings().model_dump()
    current.update(overrides)
    _settings = MockSettings(**current)
    return _settings


def reset_settings() -> None:
    """Forget cached settings so the next get_settings() reloads them."""
    global _settings
    _settings = None
