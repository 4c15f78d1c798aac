# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest
import pytest_asyncio

from service_workflow.core.state import AppState
from service_workflow.workflow.board import WorkflowBoard

from .fakes import RecordingBackend

SERVICE_DATE = "2026-10-25"


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the board.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the developer's .env.
    """
    return SimpleNamespace(
        app_name="service-workflow-test",
        log_level="DEBUG",
        data_dir=tmp_path / "data",
        # No server: bootstrap picks the offline backend.
        api_base_url=None,
        api_token=None,
        http_timeout_seconds=1.0,
        # Long intervals so the poller never fires on its own during a test.
        poll_visible_seconds=60.0,
        poll_hidden_seconds=60.0,
        qr_upload_delay_seconds=0.0,
        console_enabled=False,
        default_role=None,
    )


@pytest.fixture()
def backend() -> RecordingBackend:
    return RecordingBackend()


@pytest_asyncio.fixture()
async def board(backend: RecordingBackend, settings: SimpleNamespace):
    b = WorkflowBoard.from_settings(backend, settings)
    yield b
    await b.close()


@pytest.fixture()
def state(settings: SimpleNamespace, board: WorkflowBoard) -> AppState:
    return AppState(settings=settings, board=board)
