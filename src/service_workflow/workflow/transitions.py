# src/service_workflow/workflow/transitions.py

from __future__ import annotations

"""
Pure state transitions over a TaskMap.

Each function returns a new map plus the ids that now wait for a server read
(the reconciliation marker). No I/O, no clocks except the injected `now`.
"""

import copy
import time
from dataclasses import dataclass, field
from typing import Any

from .aliases import canonical_id, spellings
from .models import RoleId, TaskInstance, TaskMap, TaskStatus, copy_task_map


@dataclass(frozen=True, slots=True)
class Transition:
    tasks: TaskMap
    task_id: str  # canonical
    pending_reconciliation: frozenset[str] = field(default_factory=frozenset)
    instance: TaskInstance | None = None


def apply_set(
    tasks: TaskMap,
    task_id: str,
    status: TaskStatus,
    *,
    document_link: str | None = None,
    assigned_to: RoleId | None = None,
    updated_by: RoleId | None = None,
    payload: dict[str, Any] | None = None,
    now: float | None = None,
) -> Transition:
    """
    Overwrite the record for task_id (every spelling).

    document_link/assigned_to/payload left as None keep the previous values,
    so a status bump does not wipe the link a previous step stored.
    """
    canon = canonical_id(task_id)
    ts = time.time() if now is None else float(now)
    prev = tasks.get(canon)

    merged_payload: dict[str, Any] = copy.deepcopy(prev.payload) if prev is not None else {}
    if payload:
        merged_payload.update(copy.deepcopy(payload))

    inst = TaskInstance(
        status=TaskStatus(status),
        document_link=document_link if document_link is not None else (prev.document_link if prev else None),
        assigned_to=assigned_to if assigned_to is not None else (prev.assigned_to if prev else None),
        payload=merged_payload,
        updated_at=ts,
        updated_by=updated_by,
        reconciled=False,
    )

    out = copy_task_map(tasks)
    names = spellings(canon)
    for name in names:
        out[name] = inst.copy()

    return Transition(
        tasks=out,
        task_id=canon,
        pending_reconciliation=frozenset(names),
        instance=inst,
    )


def apply_delete(tasks: TaskMap, task_id: str) -> Transition:
    canon = canonical_id(task_id)
    names = spellings(canon)
    out = {k: v.copy() for k, v in tasks.items() if k not in names}
    return Transition(tasks=out, task_id=canon, pending_reconciliation=frozenset(names))


def apply_reconcile(current: TaskMap, server: TaskMap, only: set[str] | None = None) -> TaskMap:
    """
    Replace local records with the server's.

    only=None replaces the whole map; otherwise only the listed ids (all their
    spellings) are taken from `server`, deleted locally if the server lacks them.
    """
    if only is None:
        return {k: _confirmed(v) for k, v in server.items()}

    out = copy_task_map(current)
    for tid in only:
        for name in spellings(tid):
            if name in server:
                out[name] = _confirmed(server[name])
            else:
                out.pop(name, None)
    return out


def _confirmed(inst: TaskInstance) -> TaskInstance:
    c = inst.copy()
    c.reconciled = True
    return c
