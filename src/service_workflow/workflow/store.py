# src/service_workflow/workflow/store.py

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from .aliases import AliasReport, canonical_id, normalize_snapshot, spellings
from .catalog import QR_CODE_TASK
from .derived import apply_derived, merge_music_links
from .models import RoleId, ServiceDate, TaskInstance, TaskMap, TaskStatus, copy_task_map
from .transitions import Transition, apply_delete, apply_reconcile, apply_set

logger = logging.getLogger(__name__)


def parse_task_snapshot(raw: Any) -> TaskMap:
    """
    Parse GET /workflow/<date>: {"dateString": ..., "tasks": {taskId: {...}}}.

    A bare {taskId: {...}} mapping is accepted as well; a "tasks" key that is
    not a mapping (null for a service without rows) means no tasks.
    """
    if isinstance(raw, dict) and "tasks" in raw:
        raw = raw["tasks"]
    if not isinstance(raw, dict):
        return {}
    out: TaskMap = {}
    for tid, entry in raw.items():
        if not isinstance(tid, str) or not tid.strip():
            continue
        out[tid.strip()] = TaskInstance.from_wire(entry)
    return out


@dataclass(slots=True)
class SnapshotReport:
    aliases: AliasReport = field(default_factory=AliasReport)
    derived: list[str] = field(default_factory=list)
    music_links_changed: bool = False


class TaskStatusStore:
    """
    Per-service-date task state.

    Owned by the date view that is currently selected; switching dates builds a
    new store instead of mutating this one.

    QR code:
    - keeps a parallel fast status (optimistic UI during the multi-step upload);
    - get_status("qrcode") answers from it;
    - every snapshot re-syncs it from the map, unless an upload is in flight.
    """

    def __init__(self, date: ServiceDate) -> None:
        self.date = date
        self._tasks: TaskMap = {}
        self._qr_status: TaskStatus = TaskStatus.PENDING
        self._unreconciled: set[str] = set()
        self.qr_upload_in_flight = False
        self.loaded = False

    # ---- reads ----

    def get_status(self, task_id: str) -> TaskStatus:
        canon = canonical_id(task_id)
        if canon == QR_CODE_TASK:
            return self._qr_status

        names = spellings(canon)
        for n in names:
            inst = self._tasks.get(n)
            if inst is not None and inst.status == TaskStatus.COMPLETED:
                return TaskStatus.COMPLETED

        inst = self._tasks.get(canon)
        if inst is not None:
            return inst.status

        return TaskStatus.PENDING

    def map_status(self, task_id: str) -> TaskStatus:
        """Status as recorded in the map, bypassing the QR fast value."""
        canon = canonical_id(task_id)
        inst = self._tasks.get(canon)
        return inst.status if inst is not None else TaskStatus.PENDING

    @property
    def qr_status(self) -> TaskStatus:
        return self._qr_status

    def get_instance(self, task_id: str) -> TaskInstance | None:
        inst = self._tasks.get(canonical_id(task_id))
        return inst.copy() if inst is not None else None

    def document_link(self, task_id: str) -> str | None:
        inst = self._tasks.get(canonical_id(task_id))
        return inst.document_link if inst is not None else None

    def payload(self, task_id: str) -> dict[str, Any]:
        inst = self._tasks.get(canonical_id(task_id))
        return dict(inst.payload) if inst is not None else {}

    def snapshot(self) -> TaskMap:
        return copy_task_map(self._tasks)

    def unreconciled(self) -> set[str]:
        return set(self._unreconciled)

    # ---- writes ----

    def set_status(
        self,
        task_id: str,
        status: TaskStatus,
        *,
        document_link: str | None = None,
        assigned_to: RoleId | None = None,
        updated_by: RoleId | None = None,
        payload: dict[str, Any] | None = None,
    ) -> TaskInstance:
        """Local write. Authorization is the dispatcher's job, not ours."""
        tr = apply_set(
            self._tasks,
            task_id,
            TaskStatus(status),
            document_link=document_link,
            assigned_to=assigned_to,
            updated_by=updated_by,
            payload=payload,
        )
        self._commit(tr)
        if tr.task_id == QR_CODE_TASK:
            self._qr_status = TaskStatus(status)
        logger.debug("set_status date=%s task=%s status=%s", self.date, tr.task_id, status)
        return self._tasks[tr.task_id].copy()

    def set_qr_fast_status(self, status: TaskStatus) -> None:
        self._qr_status = TaskStatus(status)

    def delete_task(self, task_id: str) -> bool:
        canon = canonical_id(task_id)
        existed = any(n in self._tasks for n in spellings(canon))
        tr = apply_delete(self._tasks, canon)
        self._commit(tr)
        if canon == QR_CODE_TASK:
            self._qr_status = TaskStatus.PENDING
        logger.debug("delete_task date=%s task=%s existed=%s", self.date, canon, existed)
        return existed

    def mark_unreconciled(self, task_id: str) -> None:
        self._unreconciled.add(canonical_id(task_id))

    def _commit(self, tr: Transition) -> None:
        self._tasks = tr.tasks
        self._unreconciled.add(tr.task_id)

    # ---- reconciliation ----

    def apply_snapshot(
        self,
        raw_tasks: Any,
        *,
        only: Iterable[str] | None = None,
        lyrics: Any = None,
        sermons: Any = None,
        music_links: Any = None,
    ) -> SnapshotReport:
        """
        Reconcile with an authoritative server read.

        - `only`: reconcile just these task ids (the ones an action touched);
          None replaces the whole map.
        - derived status is always recomputed for the whole date, since one
          task's persisted change can affect another's derived status.
        """
        report = SnapshotReport()
        server = raw_tasks if _is_task_map(raw_tasks) else parse_task_snapshot(raw_tasks)
        server = normalize_snapshot(server, report.aliases)

        only_set = {canonical_id(t) for t in only} if only is not None else None
        tasks = apply_reconcile(self._tasks, server, only_set)

        report.derived = apply_derived(tasks, lyrics=lyrics, sermons=sermons)
        if music_links is not None:
            report.music_links_changed = merge_music_links(tasks, music_links)

        self._tasks = tasks
        if only_set is None:
            self._unreconciled.clear()
        else:
            self._unreconciled -= only_set

        if not self.qr_upload_in_flight:
            self._qr_status = self.map_status(QR_CODE_TASK)

        self.loaded = True
        logger.debug(
            "snapshot applied date=%s tasks=%d only=%s derived=%s",
            self.date,
            len(self._tasks),
            sorted(only_set) if only_set is not None else "*",
            report.derived,
        )
        return report


def _is_task_map(obj: Any) -> bool:
    return isinstance(obj, dict) and bool(obj) and all(isinstance(v, TaskInstance) for v in obj.values())
