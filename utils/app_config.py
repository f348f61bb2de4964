"""Environment-driven settings for the slip extraction service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

_TRUTHY = {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name}={raw!r} is not a number") from exc
    if value < 0:
        raise RuntimeError(f"{name} must not be negative")
    return value


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, default))


@dataclass(frozen=True)
class AppConfig:
    """Settings read once at startup and attached to `app.state.config`."""

    openai_model: str = "gpt-5"
    openai_timeout_seconds: float = 60.0
    database_dir: Optional[str] = None
    reset_database_on_startup: bool = False
    app_id: str = "default-app-id"
    viewer_base_url: str = "http://localhost:8000"
    persist_delay_seconds: float = 0.1
    max_image_bytes: int = 1_048_576
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Build settings from environment variables, raising RuntimeError on bad values."""
        return cls(
            openai_model=os.getenv("OPENAI_MODEL", "gpt-5"),
            openai_timeout_seconds=_env_float("OPENAI_TIMEOUT_SECONDS", 60.0),
            database_dir=os.getenv("DATABASE_DIR"),
            reset_database_on_startup=os.getenv("RESET_DATABASE_ON_STARTUP", "").strip().lower() in _TRUTHY,
            app_id=os.getenv("APP_ID", "default-app-id").strip() or "default-app-id",
            viewer_base_url=os.getenv("VIEWER_BASE_URL", "http://localhost:8000"),
            persist_delay_seconds=_env_float("PERSIST_DELAY_SECONDS", 0.1),
            max_image_bytes=_env_int("MAX_IMAGE_BYTES", 1_048_576),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
