# src/service_workflow/workflow/board.py

from __future__ import annotations

"""
Workflow board: the owner of the selected date's state.

Wires the store, the dispatcher and the scheduler together and exposes what
the dashboard renders (task views + the last surfaced error).
"""

import logging
from dataclasses import dataclass
from typing import Any

from ..core.errors import WorkflowError
from ..core.ports import ServiceBackend
from .catalog import list_categories
from .dispatcher import ActionDispatcher, ActionResult
from .models import ServiceDate, TaskDefinition, TaskStatus
from .roles import can_act
from .scheduler import SyncScheduler
from .store import TaskStatusStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TaskView:
    task: TaskDefinition
    status: TaskStatus  # as stored / derived
    display_status: TaskStatus  # PENDING promoted to ACTIVE for the next expected task
    can_act: bool
    document_link: str | None
    updated_by: str | None
    updated_at: float | None
    reconciled: bool


class WorkflowBoard:
    def __init__(
        self,
        backend: ServiceBackend,
        *,
        visible_interval: float = 10.0,
        hidden_interval: float = 30.0,
        qr_upload_delay_seconds: float = 1.5,
    ) -> None:
        self._backend = backend
        self._store: TaskStatusStore | None = None
        self.last_error: WorkflowError | None = None

        self.dispatcher = ActionDispatcher(
            backend,
            lambda: self._store,
            qr_upload_delay_seconds=qr_upload_delay_seconds,
            on_error=self._record_error,
        )
        self.scheduler = SyncScheduler(
            self._scheduled_refresh,
            visible_interval=visible_interval,
            hidden_interval=hidden_interval,
            on_error=self._record_error,
        )

    @classmethod
    def from_settings(cls, backend: ServiceBackend, settings: Any) -> WorkflowBoard:
        return cls(
            backend,
            visible_interval=float(getattr(settings, "poll_visible_seconds", 10.0)),
            hidden_interval=float(getattr(settings, "poll_hidden_seconds", 30.0)),
            qr_upload_delay_seconds=float(getattr(settings, "qr_upload_delay_seconds", 1.5)),
        )

    # ---- state ----

    @property
    def date(self) -> ServiceDate | None:
        return self._store.date if self._store is not None else None

    @property
    def store(self) -> TaskStatusStore:
        if self._store is None:
            raise RuntimeError("No service date selected")
        return self._store

    def _record_error(self, err: Exception) -> None:
        if isinstance(err, WorkflowError):
            self.last_error = err
        else:
            self.last_error = WorkflowError(str(err) or err.__class__.__name__)

    def clear_error(self) -> None:
        self.last_error = None

    # ---- lifecycle ----

    async def select_date(self, date: ServiceDate, *, visible: bool = True) -> bool:
        """
        Switch to another service date.

        The store is replaced wholesale; responses still in flight for the
        previous date are dropped by the dispatcher's stale guard.
        """
        if self._store is None or self._store.date != date:
            logger.info("Selecting service date %s", date)
            self._store = TaskStatusStore(date)
        self.scheduler.start(visible=visible)
        return await self.refresh_now()

    async def refresh_now(self) -> bool:
        """Manual refresh: clears a stuck unreconciled state on success."""
        ok = await self.scheduler.refresh_now()
        if ok:
            self.clear_error()
        return ok

    async def _scheduled_refresh(self) -> None:
        if self._store is None:
            return
        await self.dispatcher.refresh(self._store.date)

    async def close(self) -> None:
        await self.scheduler.aclose()
        await self._backend.aclose()

    # ---- actions (thin pass-through, kept here so the UI talks to one object) ----

    async def start(self, role: Any, task_id: str) -> ActionResult:
        return await self.dispatcher.start(role, task_id)

    async def submit(self, role: Any, task_id: str, **kwargs: Any) -> ActionResult:
        return await self.dispatcher.submit(role, task_id, **kwargs)

    async def edit_document_link(self, role: Any, task_id: str, document_link: str) -> ActionResult:
        return await self.dispatcher.edit_document_link(role, task_id, document_link)

    async def upload_qr_code(self, role: Any, document_link: str) -> ActionResult:
        return await self.dispatcher.upload_qr_code(role, document_link)

    async def delete(self, role: Any, task_id: str) -> ActionResult:
        return await self.dispatcher.delete(role, task_id)

    # ---- views ----

    def get_status(self, task_id: str) -> TaskStatus:
        return self.store.get_status(task_id)

    def task_views(self, role: Any = None) -> list[TaskView]:
        store = self.store
        unreconciled = store.unreconciled()
        views: list[TaskView] = []

        for cat in list_categories():
            next_expected_seen = False
            for task in cat.subtasks:
                status = store.get_status(task.id)
                display = status
                if status != TaskStatus.COMPLETED and not next_expected_seen:
                    next_expected_seen = True
                    if status == TaskStatus.PENDING:
                        display = TaskStatus.ACTIVE

                inst = store.get_instance(task.id)
                views.append(
                    TaskView(
                        task=task,
                        status=status,
                        display_status=display,
                        can_act=can_act(role, task, review=True),
                        document_link=inst.document_link if inst else None,
                        updated_by=inst.updated_by if inst else None,
                        updated_at=inst.updated_at if inst else None,
                        reconciled=task.id not in unreconciled,
                    )
                )
        return views
