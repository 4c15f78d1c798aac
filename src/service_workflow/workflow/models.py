# src/service_workflow/workflow/models.py

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

RoleId = str
ServiceDate = str  # "YYYY-MM-DD"; produced by the calendar, treated as an opaque key here.


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    Notes:
    - The backend speaks "in-progress" for ACTIVE; from_wire/to_wire translate.
    - "skipped" and unknown values collapse to PENDING.
    """

    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"

    @classmethod
    def from_wire(cls, raw: Any) -> TaskStatus:
        if isinstance(raw, TaskStatus):
            return raw
        if not raw or not isinstance(raw, str):
            return cls.PENDING
        s = raw.strip().lower()
        if s in ("completed", "done", "approved"):
            return cls.COMPLETED
        if s in ("active", "in-progress", "in_progress"):
            return cls.ACTIVE
        return cls.PENDING

    def to_wire(self) -> str:
        if self is TaskStatus.ACTIVE:
            return "in-progress"
        return self.value


def parse_timestamp(raw: Any) -> float:
    """Accept epoch seconds, epoch millis or ISO-8601 strings. Unparseable -> 0.0."""
    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float)):
        ts = float(raw)
        # Postgres/JS clients sometimes hand out milliseconds.
        return ts / 1000.0 if ts > 1e11 else ts
    if isinstance(raw, str):
        s = raw.strip()
        if not s:
            return 0.0
        try:
            return float(s)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(s.replace("Z", "+00:00")).timestamp()
        except ValueError:
            return 0.0
    return 0.0


@dataclass(frozen=True, slots=True)
class TaskDefinition:
    id: str
    category_id: str
    display_name: str
    owner_role: RoleId
    action_label: str
    description: str = ""
    restricted_to_role: RoleId | None = None
    # May start/complete the task as a review step, on top of the owner.
    reviewer_role: RoleId | None = None


@dataclass(frozen=True, slots=True)
class Category:
    id: str
    name: str
    role: str  # display name of the owning team, e.g. "Liturgy Maker"
    role_id: RoleId
    subtasks: tuple[TaskDefinition, ...]


_WIRE_KEYS = ("status", "documentLink", "assignedTo", "updatedAt", "updatedBy")


@dataclass(slots=True)
class TaskInstance:
    status: TaskStatus
    document_link: str | None = None
    assigned_to: RoleId | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    updated_at: float = 0.0
    updated_by: RoleId | None = None

    # False while a local (optimistic) write has not been confirmed by a server read.
    reconciled: bool = True

    @classmethod
    def from_wire(cls, raw: Any) -> TaskInstance:
        """
        Parse one entry of GET /workflow/<date> "tasks".

        Older rows store only the bare status string; keys we don't model
        (completedBy, ...) are kept in payload.
        """
        if isinstance(raw, str):
            return cls(status=TaskStatus.from_wire(raw))
        if not isinstance(raw, dict):
            return cls(status=TaskStatus.PENDING)

        payload = {k: copy.deepcopy(v) for k, v in raw.items() if k not in _WIRE_KEYS}
        updated_by = raw.get("updatedBy")
        return cls(
            status=TaskStatus.from_wire(raw.get("status")),
            document_link=raw.get("documentLink") or None,
            assigned_to=raw.get("assignedTo") or None,
            payload=payload,
            updated_at=parse_timestamp(raw.get("updatedAt")),
            updated_by=str(updated_by) if updated_by else None,
        )

    def to_wire(self) -> dict[str, Any]:
        out: dict[str, Any] = copy.deepcopy(self.payload)
        out.update(
            {
                "status": self.status.to_wire(),
                "documentLink": self.document_link,
                "assignedTo": self.assigned_to,
                "updatedAt": self.updated_at,
                "updatedBy": self.updated_by,
            }
        )
        return out

    def copy(self) -> TaskInstance:
        return TaskInstance(
            status=self.status,
            document_link=self.document_link,
            assigned_to=self.assigned_to,
            payload=copy.deepcopy(self.payload),
            updated_at=self.updated_at,
            updated_by=self.updated_by,
            reconciled=self.reconciled,
        )

    def same_data(self, other: TaskInstance) -> bool:
        """Equality on persisted fields (ignores the local reconciled flag)."""
        return (
            self.status == other.status
            and self.document_link == other.document_link
            and self.assigned_to == other.assigned_to
            and self.payload == other.payload
            and self.updated_at == other.updated_at
            and self.updated_by == other.updated_by
        )


TaskMap = dict[str, TaskInstance]


def copy_task_map(tasks: TaskMap) -> TaskMap:
    return {k: v.copy() for k, v in tasks.items()}
