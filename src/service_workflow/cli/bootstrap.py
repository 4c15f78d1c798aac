# src/service_workflow/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks the backend (HTTP if configured, offline demo otherwise),
- wires it into a WorkflowBoard on AppState.
"""

from __future__ import annotations

import logging

from ..clients.http_backend import HttpServiceBackend
from ..clients.offline import OfflineServiceBackend
from ..config import get_settings
from ..core.ports import ServiceBackend
from ..core.state import AppState
from ..workflow.board import WorkflowBoard

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)


def create_backend(settings) -> tuple[ServiceBackend, bool]:
    """Return (backend, offline)."""
    if getattr(settings, "api_base_url", None):
        try:
            return HttpServiceBackend.from_settings(settings), False
        except (RuntimeError, ValueError):
            logger.exception("HTTP backend misconfigured; falling back to offline mode.")
    # Fallback for demos / local runs without a server.
    return OfflineServiceBackend(), True


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    backend, offline = create_backend(settings)
    if offline:
        logger.info("No WORKFLOW_API_BASE_URL configured; using the offline in-memory backend.")

    return AppState(
        settings=settings,
        board=WorkflowBoard.from_settings(backend, settings),
        role=getattr(settings, "default_role", None),
        offline=offline,
    )
