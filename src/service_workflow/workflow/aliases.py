# src/service_workflow/workflow/aliases.py

from __future__ import annotations

"""
Task id aliasing.

Two tasks were historically persisted under two spellings each (the server
writes "translate_lyrics" and "translate_sermon", the dashboard catalog uses
hyphens). The table below is consulted only at the store's ingestion boundary;
everything downstream works with canonical ids.
"""

import logging
from dataclasses import dataclass, field

from ..core.errors import InconsistentSnapshot
from .models import TaskInstance, TaskMap

logger = logging.getLogger(__name__)

# deprecated spelling -> canonical id
ALIASES: dict[str, str] = {
    "translate_lyrics": "translate-liturgy",
    "translate_sermon": "translate-sermon",
}

_BY_CANONICAL: dict[str, tuple[str, ...]] = {}
for _old, _canon in ALIASES.items():
    _BY_CANONICAL[_canon] = _BY_CANONICAL.get(_canon, ()) + (_old,)


def canonical_id(task_id: str) -> str:
    tid = (task_id or "").strip()
    return ALIASES.get(tid, tid)


def spellings(task_id: str) -> tuple[str, ...]:
    """All spellings of a task id, canonical first."""
    canon = canonical_id(task_id)
    return (canon,) + _BY_CANONICAL.get(canon, ())


@dataclass(slots=True)
class AliasReport:
    synthesized: list[str] = field(default_factory=list)
    conflicts: list[InconsistentSnapshot] = field(default_factory=list)


def _pick_winner(canon_id: str, records: dict[str, TaskInstance]) -> str:
    """
    Deterministic tie-break between conflicting spellings:
    latest updated_at wins, canonical wins ties.
    """
    best_id = canon_id if canon_id in records else next(iter(records))
    for tid, inst in records.items():
        if inst.updated_at > records[best_id].updated_at:
            best_id = tid
    return best_id


def normalize_snapshot(tasks: TaskMap, report: AliasReport | None = None) -> TaskMap:
    """
    Make every spelling of an aliased task carry identical data.

    - only one spelling present -> the others are synthesized as copies;
    - several present and equal -> kept;
    - several present and conflicting -> the most recently updated wins and
      the conflict is logged/recorded.

    Returns a new map; the input is not mutated.
    """
    out: TaskMap = {k: v.copy() for k, v in tasks.items()}

    for canon, olds in _BY_CANONICAL.items():
        names = (canon,) + olds
        present = {n: out[n] for n in names if n in out}
        if not present:
            continue

        winner_id = _pick_winner(canon, present)
        winner = present[winner_id]

        differing = [n for n, inst in present.items() if not inst.same_data(winner)]
        if differing:
            err = InconsistentSnapshot(
                f"Conflicting records for {canon}: {sorted(present)}; keeping {winner_id}",
                task_id=canon,
            )
            logger.warning("%s", err)
            if report is not None:
                report.conflicts.append(err)

        for n in names:
            if n not in present and report is not None:
                report.synthesized.append(n)
            out[n] = winner.copy()

    return out
