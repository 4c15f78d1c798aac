# src/service_workflow/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Backend is optional: without WORKFLOW_API_BASE_URL the app runs against the offline backend.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

ENV_PREFIX = "WORKFLOW"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    data_dir: Path

    # ---- Backend ----
    api_base_url: Optional[str]
    api_token: Optional[str]
    http_timeout_seconds: float

    # ---- Sync cadence (seconds) ----
    poll_visible_seconds: float
    poll_hidden_seconds: float

    # ---- Actions ----
    qr_upload_delay_seconds: float

    # ---- Console ----
    console_enabled: bool
    default_role: Optional[str]

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "service-workflow") or "service-workflow"
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/workflow"))

        # Accept the frontend's API_URL as a fallback so one .env can serve both.
        api_base_url = _first_env(_k("API_BASE_URL"), "API_URL", default=None)
        if api_base_url is not None:
            api_base_url = api_base_url.strip().rstrip("/") or None
        api_token = _first_env(_k("API_TOKEN"), default=None)
        http_timeout_seconds = max(1.0, _env_float(_k("HTTP_TIMEOUT_SECONDS"), 10.0))

        poll_visible_seconds = max(0.5, _env_float(_k("POLL_VISIBLE_SECONDS"), 10.0))
        poll_hidden_seconds = max(0.5, _env_float(_k("POLL_HIDDEN_SECONDS"), 30.0))

        qr_upload_delay_seconds = max(0.0, _env_float(_k("QR_UPLOAD_DELAY_SECONDS"), 1.5))

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)
        default_role = (_first_env(_k("ROLE"), default="") or "").strip().lower() or None

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            api_base_url=api_base_url,
            api_token=api_token,
            http_timeout_seconds=http_timeout_seconds,
            poll_visible_seconds=poll_visible_seconds,
            poll_hidden_seconds=poll_hidden_seconds,
            qr_upload_delay_seconds=qr_upload_delay_seconds,
            console_enabled=console_enabled,
            default_role=default_role,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
