# src/service_workflow/workflow/derived.py

from __future__ import annotations

"""
Derived task status.

Translation tasks are completed by other subsystems (the lyrics and sermon
translation pages) which do not always write a workflow status. On every full
refresh we look at their data and mark the task completed when the evidence is
there. Monotonic: nothing here ever moves a task away from COMPLETED.
"""

import logging
from collections.abc import Iterable
from typing import Any

from .aliases import spellings
from .catalog import MUSIC_TASK, TRANSLATE_LYRICS_TASK, TRANSLATE_SERMON_TASK
from .models import TaskInstance, TaskMap, TaskStatus, parse_timestamp

logger = logging.getLogger(__name__)

DERIVED_BY = "translator"

LYRICS_DONE = frozenset({"completed", "approved"})
SERMON_DONE = frozenset({"completed", "approved", "translated"})

# Timestamp keys on a translation row, most specific first.
_EVIDENCE_TS_KEYS = ("translatedAt", "translated_at", "updatedAt", "updated_at")


def _items(response: Any, key: str) -> list[Any]:
    # The services answer {"<key>": [...]}, older endpoints a bare list.
    if isinstance(response, dict):
        items = response.get(key)
        return items if isinstance(items, list) else []
    if isinstance(response, list):
        return response
    return []


def _done_translations(items: Iterable[Any], done: frozenset[str]) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        tr = item.get("translation")
        if not isinstance(tr, dict):
            continue
        st = tr.get("status")
        if isinstance(st, str) and st.strip().lower() in done:
            out.append(tr)
    return out


def _evidence_ts(translations: Iterable[dict[str, Any]]) -> float:
    """Latest timestamp found on the finished translations; 0.0 when none carry one."""
    best = 0.0
    for tr in translations:
        for key in _EVIDENCE_TS_KEYS:
            ts = parse_timestamp(tr.get(key))
            if ts:
                best = max(best, ts)
                break
    return best


def lyrics_translated(response: Any) -> bool:
    return bool(_done_translations(_items(response, "lyrics"), LYRICS_DONE))


def sermon_translated(response: Any) -> bool:
    return bool(_done_translations(_items(response, "sermons"), SERMON_DONE))


def _mark_completed(tasks: TaskMap, task_id: str, evidence_ts: float) -> bool:
    names = spellings(task_id)
    if any(n in tasks and tasks[n].status == TaskStatus.COMPLETED for n in names):
        return False

    prev = next((tasks[n] for n in names if n in tasks), None)
    inst = TaskInstance(
        status=TaskStatus.COMPLETED,
        document_link=prev.document_link if prev else None,
        assigned_to=prev.assigned_to if prev else None,
        payload=dict(prev.payload) if prev else {},
        # Same evidence, same record: never stamp the wall clock here.
        updated_at=evidence_ts or (prev.updated_at if prev else 0.0),
        updated_by=DERIVED_BY,
    )
    for n in names:
        tasks[n] = inst.copy()
    return True


def apply_derived(
    tasks: TaskMap,
    *,
    lyrics: Any = None,
    sermons: Any = None,
) -> list[str]:
    """
    Mutate `tasks` in place with derived completions. Returns the task ids changed.

    Passing None for a collaborator means "no evidence" (e.g. the fetch failed).
    The derived record is stamped with the translation's own timestamp, so
    recomputing from unchanged data yields an identical record.
    """
    changed: list[str] = []

    done_lyrics = _done_translations(_items(lyrics, "lyrics"), LYRICS_DONE)
    if done_lyrics:
        if _mark_completed(tasks, TRANSLATE_LYRICS_TASK, _evidence_ts(done_lyrics)):
            changed.append(TRANSLATE_LYRICS_TASK)

    done_sermons = _done_translations(_items(sermons, "sermons"), SERMON_DONE)
    if done_sermons:
        if _mark_completed(tasks, TRANSLATE_SERMON_TASK, _evidence_ts(done_sermons)):
            changed.append(TRANSLATE_SERMON_TASK)

    if changed:
        logger.info("Derived completion: %s", ", ".join(changed))
    return changed


def merge_music_links(tasks: TaskMap, response: Any) -> bool:
    """
    Copy the music-links collaborator's list into the music task payload.

    A PENDING record is created only when there is something to show.
    """
    links = _items(response, "musicLinks")
    inst = tasks.get(MUSIC_TASK)
    if inst is None:
        if not links:
            return False
        inst = TaskInstance(status=TaskStatus.PENDING)
        tasks[MUSIC_TASK] = inst

    if inst.payload.get("musicLinks") == links:
        return False
    inst.payload["musicLinks"] = list(links)
    return True
