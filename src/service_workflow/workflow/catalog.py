# src/service_workflow/workflow/catalog.py

from __future__ import annotations

from collections.abc import Iterator

from ..core.errors import UnknownTask
from .aliases import canonical_id
from .models import Category, TaskDefinition

QR_CODE_TASK = "qrcode"
MUSIC_TASK = "music"
TRANSLATE_LYRICS_TASK = "translate-liturgy"
TRANSLATE_SERMON_TASK = "translate-sermon"

REVIEWER_ROLE = "pastor"
# Documents the pastor opens for review before they go to the teams.
_REVIEWED = frozenset({"concept", "sermon", QR_CODE_TASK, "final", "slides"})


def _category(
    cat_id: str,
    name: str,
    role: str,
    role_id: str,
    subtasks: list[tuple[str, str, str, str, str | None]],
) -> Category:
    return Category(
        id=cat_id,
        name=name,
        role=role,
        role_id=role_id,
        subtasks=tuple(
            TaskDefinition(
                id=task_id,
                category_id=cat_id,
                display_name=display,
                owner_role=role_id,
                action_label=label,
                description=descr,
                restricted_to_role=restricted,
                reviewer_role=REVIEWER_ROLE if task_id in _REVIEWED else None,
            )
            for task_id, display, descr, label, restricted in subtasks
        ),
    )


_CATEGORIES: tuple[Category, ...] = (
    _category(
        "liturgy",
        "Liturgy Tasks",
        "Liturgy Maker",
        "liturgy",
        [
            ("concept", "Concept Document", "Create initial liturgy concept", "Create Document", None),
            ("sermon", "Sermon Document", "Prepare sermon document", "Create Sermon", None),
            (
                QR_CODE_TASK,
                "QR Code",
                "Generate and upload QR codes for donations",
                "Upload QR Code",
                "treasurer",
            ),
            ("final", "Final Document", "Finalize all liturgy documents", "Finalize", None),
        ],
    ),
    _category(
        "translation",
        "Translation Tasks",
        "Translation Team",
        "translation",
        [
            (TRANSLATE_LYRICS_TASK, "Translate Lyrics", "Translate song lyrics content", "Translate", None),
            (TRANSLATE_SERMON_TASK, "Translate Sermon", "Translate sermon content", "Translate", None),
        ],
    ),
    _category(
        "beamer",
        "Beamer Tasks",
        "Beamer Team",
        "beamer",
        [
            ("slides", "Create Slides", "Create presentation slides", "Create Slides", None),
            (MUSIC_TASK, "Upload Music", "Upload music files for service", "Upload Music", None),
        ],
    ),
)

_BY_ID: dict[str, TaskDefinition] = {t.id: t for c in _CATEGORIES for t in c.subtasks}


def list_categories() -> list[Category]:
    return list(_CATEGORIES)


def iter_tasks() -> Iterator[TaskDefinition]:
    for cat in _CATEGORIES:
        yield from cat.subtasks


def get_task(task_id: str) -> TaskDefinition:
    """Look a task up by canonical id or any legacy spelling."""
    task = _BY_ID.get(canonical_id(task_id))
    if task is None:
        raise UnknownTask(task_id)
    return task


def get_category(category_id: str) -> Category:
    for cat in _CATEGORIES:
        if cat.id == category_id:
            return cat
    raise KeyError(category_id)
