# tests/test_board.py

from __future__ import annotations

import pytest

from service_workflow.core.errors import PersistenceUnavailable
from service_workflow.workflow.board import WorkflowBoard
from service_workflow.workflow.models import TaskStatus
from service_workflow.workflow.scheduler import PollState

from .conftest import SERVICE_DATE
from .fakes import RecordingBackend


def _views(board: WorkflowBoard, role=None):
    return {v.task.id: v for v in board.task_views(role)}


@pytest.mark.asyncio
async def test_select_date_loads_and_starts_polling(board: WorkflowBoard, backend: RecordingBackend) -> None:
    backend.put_raw_task(SERVICE_DATE, "concept", {"status": "completed", "updatedBy": "liturgy"})

    assert board.date is None
    with pytest.raises(RuntimeError):
        _ = board.store

    assert await board.select_date(SERVICE_DATE) is True
    assert board.date == SERVICE_DATE
    assert board.scheduler.state == PollState.ACTIVE_POLL
    assert board.get_status("concept") == TaskStatus.COMPLETED


@pytest.mark.asyncio
async def test_next_expected_task_is_shown_active(board: WorkflowBoard, backend: RecordingBackend) -> None:
    await board.select_date(SERVICE_DATE)

    views = _views(board, "liturgy")
    assert views["concept"].status == TaskStatus.PENDING
    assert views["concept"].display_status == TaskStatus.ACTIVE
    assert views["sermon"].display_status == TaskStatus.PENDING
    assert views["translate-liturgy"].display_status == TaskStatus.ACTIVE
    assert views["concept"].can_act
    assert not views["slides"].can_act
    assert not views["qrcode"].can_act

    await board.submit("liturgy", "concept", document_link="https://doc/c")

    views = _views(board, "liturgy")
    assert views["concept"].display_status == TaskStatus.COMPLETED
    assert views["concept"].document_link == "https://doc/c"
    assert views["concept"].updated_by == "liturgy"
    assert views["sermon"].display_status == TaskStatus.ACTIVE


@pytest.mark.asyncio
async def test_pastor_sees_review_actions(board: WorkflowBoard) -> None:
    await board.select_date(SERVICE_DATE)

    views = _views(board, "pastor")
    assert {tid for tid, v in views.items() if v.can_act} == {"concept", "sermon", "qrcode", "final", "slides"}
    assert not views["translate-liturgy"].can_act
    assert not views["translate-sermon"].can_act


@pytest.mark.asyncio
async def test_errors_are_surfaced_and_cleared_by_refresh(board: WorkflowBoard, backend: RecordingBackend) -> None:
    await board.select_date(SERVICE_DATE)
    backend.failures["update_task_status"] = PersistenceUnavailable("offline", status_code=503)

    res = await board.start("beamer", "slides")

    assert not res.ok
    assert board.last_error is res.error
    assert not _views(board)["slides"].reconciled

    del backend.failures["update_task_status"]
    assert await board.refresh_now() is True
    assert board.last_error is None
    assert _views(board)["slides"].reconciled


@pytest.mark.asyncio
async def test_failed_poll_records_error(board: WorkflowBoard, backend: RecordingBackend) -> None:
    backend.failures["get_workflow_tasks"] = PersistenceUnavailable("offline", status_code=503)

    assert await board.select_date(SERVICE_DATE) is False
    assert isinstance(board.last_error, PersistenceUnavailable)


@pytest.mark.asyncio
async def test_switching_date_replaces_store(board: WorkflowBoard, backend: RecordingBackend) -> None:
    backend.put_raw_task(SERVICE_DATE, "slides", {"status": "completed"})
    await board.select_date(SERVICE_DATE)
    first = board.store

    await board.select_date("2026-11-01")

    assert board.store is not first
    assert board.get_status("slides") == TaskStatus.PENDING
