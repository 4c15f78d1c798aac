# src/service_workflow/workflow/dispatcher.py

from __future__ import annotations

"""
Action dispatcher.

Every user-triggered transition goes through the same pipeline:

1. role gate (denied -> AuthorizationDenied, nothing mutated);
2. persistence call to the remote task store;
3. optimistic local mutation (applied while the call is in flight);
4. success -> re-fetch the date's snapshot, reconcile the touched task(s) and
   re-run derived status for the whole date;
5. failure -> keep the optimistic value, mark it unreconciled and surface the
   error. The next scheduled refresh is the recovery path.

Concurrent edits of the same (date, task) by different roles are last-write-wins;
there is no locking.

Responses that arrive after the board switched to another date are discarded.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from ..core.errors import PersistenceUnavailable, WorkflowError
from ..core.ports import ServiceBackend
from .aliases import canonical_id, spellings
from .catalog import QR_CODE_TASK, get_task
from .models import TaskStatus
from .roles import require_role
from .store import SnapshotReport, TaskStatusStore

logger = logging.getLogger(__name__)

StoreProvider = Callable[[], TaskStatusStore | None]
ErrorSink = Callable[[WorkflowError], None]


@dataclass(slots=True)
class ActionResult:
    ok: bool
    action: str
    task_id: str
    status: TaskStatus | None = None
    error: WorkflowError | None = None
    reconciled: bool = False
    stale: bool = False


class ActionDispatcher:
    def __init__(
        self,
        backend: ServiceBackend,
        store_provider: StoreProvider,
        *,
        qr_upload_delay_seconds: float = 1.5,
        on_error: ErrorSink | None = None,
    ) -> None:
        self._backend = backend
        self._store_provider = store_provider
        self._qr_delay = max(0.0, float(qr_upload_delay_seconds))
        self._on_error = on_error

    # ---- snapshot ----

    def _current(self, date: str) -> TaskStatusStore | None:
        store = self._store_provider()
        if store is None or store.date != date:
            return None
        return store

    async def _fetch_optional(self, name: str, call: Callable[[str], Any], date: str) -> Any:
        try:
            return await call(date)
        except WorkflowError:
            logger.warning("%s fetch failed for %s; treating as no evidence", name, date, exc_info=True)
            return None

    async def refresh(self, date: str | None = None, *, only: Iterable[str] | None = None) -> SnapshotReport | None:
        """
        Pull the authoritative snapshot for `date` (default: the current one).

        Returns None when the date is no longer selected by the time the
        responses arrive. Raises PersistenceUnavailable if the task fetch fails;
        collaborator failures only drop their evidence.
        """
        store = self._store_provider()
        if store is None:
            return None
        date = date or store.date

        tasks, lyrics, sermons, music = await asyncio.gather(
            self._backend.get_workflow_tasks(date),
            self._fetch_optional("lyrics", self._backend.get_lyrics_by_date, date),
            self._fetch_optional("sermons", self._backend.get_sermons_by_date, date),
            self._fetch_optional("music links", self._backend.get_music_links, date),
        )

        store = self._current(date)
        if store is None:
            logger.debug("Discarding stale snapshot for %s", date)
            return None

        return store.apply_snapshot(tasks, only=only, lyrics=lyrics, sermons=sermons, music_links=music)

    # ---- actions ----

    async def start(self, role: Any, task_id: str) -> ActionResult:
        """Mark a task as being worked on (e.g. the pastor opened the document for review)."""
        return await self._write("start", role, task_id, TaskStatus.ACTIVE, review=True)

    async def submit(
        self,
        role: Any,
        task_id: str,
        *,
        document_link: str | None = None,
        assigned_to: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> ActionResult:
        return await self._write(
            "submit",
            role,
            task_id,
            TaskStatus.COMPLETED,
            document_link=document_link,
            assigned_to=assigned_to,
            payload=payload,
            review=True,
        )

    async def edit_document_link(self, role: Any, task_id: str, document_link: str) -> ActionResult:
        """Replace the link, keep the current status."""
        store = self._store_provider()
        current = store.get_instance(task_id) if store is not None else None
        return await self._write(
            "edit_link",
            role,
            task_id,
            current.status if current is not None else TaskStatus.PENDING,
            document_link=document_link,
            assigned_to=current.assigned_to if current is not None else None,
        )

    async def upload_qr_code(self, role: Any, document_link: str) -> ActionResult:
        """
        Multi-step QR upload: fast status goes ACTIVE immediately, a short
        processing delay follows, then the COMPLETED write goes out.
        Other actions keep running during the delay.
        """
        action = "upload"
        try:
            task = get_task(QR_CODE_TASK)
            require_role(role, task)
        except WorkflowError as e:
            return self._fail(action, QR_CODE_TASK, e)

        store = self._store_provider()
        if store is None:
            return self._fail(action, QR_CODE_TASK, PersistenceUnavailable("No service date selected"))

        store.qr_upload_in_flight = True
        store.set_qr_fast_status(TaskStatus.ACTIVE)
        try:
            await asyncio.sleep(self._qr_delay)
        finally:
            store.qr_upload_in_flight = False

        if self._current(store.date) is None:
            return ActionResult(ok=False, action=action, task_id=QR_CODE_TASK, stale=True)
        return await self._write(
            action,
            role,
            QR_CODE_TASK,
            TaskStatus.COMPLETED,
            document_link=document_link,
            store=store,
        )

    async def delete(self, role: Any, task_id: str) -> ActionResult:
        """Remove the record entirely (not the same as resetting to pending)."""
        action = "delete"
        try:
            task = get_task(task_id)
            require_role(role, task)
        except WorkflowError as e:
            return self._fail(action, canonical_id(task_id), e)

        store = self._store_provider()
        if store is None:
            return self._fail(action, task.id, PersistenceUnavailable("No service date selected"))
        date = store.date

        calls = [asyncio.ensure_future(self._delete_remote(date, name)) for name in spellings(task.id)]
        store.delete_task(task.id)

        errors: list[WorkflowError] = []
        for r in await asyncio.gather(*calls, return_exceptions=True):
            if isinstance(r, WorkflowError):
                errors.append(r)
            elif isinstance(r, BaseException):
                raise r
        if errors:
            if self._current(date) is not None:
                store.mark_unreconciled(task.id)
            logger.warning("delete %s failed on %s; left unreconciled: %s", task.id, date, errors[0])
            return self._fail(action, task.id, errors[0], status=TaskStatus.PENDING)

        logger.info("Task deleted date=%s task=%s", date, task.id)
        return await self._reconcile(action, date, task.id, TaskStatus.PENDING)

    async def _delete_remote(self, date: str, name: str) -> None:
        try:
            await self._backend.delete_workflow_task(date, name)
        except PersistenceUnavailable as e:
            # Nothing stored under this spelling; the goal state is reached.
            if e.status_code == 404:
                return
            raise

    async def _write(
        self,
        action: str,
        role: Any,
        task_id: str,
        status: TaskStatus,
        *,
        document_link: str | None = None,
        assigned_to: str | None = None,
        payload: dict[str, Any] | None = None,
        store: TaskStatusStore | None = None,
        review: bool = False,
    ) -> ActionResult:
        try:
            task = get_task(task_id)
            rid = require_role(role, task, review=review)
        except WorkflowError as e:
            return self._fail(action, canonical_id(task_id), e)

        store = store or self._store_provider()
        if store is None:
            return self._fail(action, task.id, PersistenceUnavailable("No service date selected"))
        date = store.date
        assigned = assigned_to or rid

        call = asyncio.ensure_future(
            self._backend.update_task_status(
                date,
                task.id,
                status.to_wire(),
                document_link or store.document_link(task.id),
                assigned,
            )
        )
        store.set_status(
            task.id,
            status,
            document_link=document_link,
            assigned_to=assigned,
            updated_by=rid,
            payload=payload,
        )

        try:
            await call
        except WorkflowError as e:
            if self._current(date) is None:
                return ActionResult(ok=False, action=action, task_id=task.id, error=e, stale=True)
            store.mark_unreconciled(task.id)
            logger.warning("%s %s failed on %s; left unreconciled: %s", action, task.id, date, e)
            return self._fail(action, task.id, e, status=status)

        logger.info("Task %s -> %s (date=%s by=%s)", task.id, status.value, date, rid)
        return await self._reconcile(action, date, task.id, status)

    async def _reconcile(self, action: str, date: str, task_id: str, status: TaskStatus) -> ActionResult:
        try:
            report = await self.refresh(date, only=[task_id])
        except WorkflowError as e:
            logger.warning("Reconcile after %s %s failed: %s", action, task_id, e)
            store = self._current(date)
            if store is not None:
                store.mark_unreconciled(task_id)
            self._surface(e)
            return ActionResult(ok=True, action=action, task_id=task_id, status=status, error=e)

        if report is None:
            return ActionResult(ok=True, action=action, task_id=task_id, status=status, stale=True)
        return ActionResult(ok=True, action=action, task_id=task_id, status=status, reconciled=True)

    def _fail(
        self,
        action: str,
        task_id: str,
        err: WorkflowError,
        *,
        status: TaskStatus | None = None,
    ) -> ActionResult:
        self._surface(err)
        return ActionResult(ok=False, action=action, task_id=task_id, status=status, error=err)

    def _surface(self, err: WorkflowError) -> None:
        if self._on_error is not None:
            self._on_error(err)
