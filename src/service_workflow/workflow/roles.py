# src/service_workflow/workflow/roles.py

from __future__ import annotations

"""
Role gate.

The "current user" reaches us in two historical shapes: a bare role string
("pastor") or a user object carrying the role, either directly ({"id": "pastor"})
or nested ({"role": {"id": "pastor"}}). normalize_role() folds all of them into
one lowercase RoleId before any comparison happens.
"""

from collections.abc import Mapping
from typing import Any

from ..core.errors import AuthorizationDenied
from .catalog import get_category
from .models import Category, RoleId, TaskDefinition


def _get(obj: Any, key: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(key)
    return getattr(obj, key, None)


def normalize_role(role: Any) -> RoleId | None:
    if role is None:
        return None

    if isinstance(role, str):
        s = role.strip().lower()
        return s or None

    # Nested role object (old format) takes precedence over a user id.
    nested = _get(role, "role")
    if nested is not None:
        if isinstance(nested, str):
            return normalize_role(nested)
        nested_id = _get(nested, "id")
        if isinstance(nested_id, str):
            return normalize_role(nested_id)

    direct = _get(role, "id")
    if isinstance(direct, str):
        return normalize_role(direct)

    return None


def can_act(role: Any, task: TaskDefinition, *, review: bool = False) -> bool:
    """
    Owner (or the restricted role) always; with review=True also the task's
    reviewer, which covers starting and completing a review, not deleting or uploading.
    """
    rid = normalize_role(role)
    if rid is None:
        return False

    if review and task.reviewer_role and rid == task.reviewer_role.strip().lower():
        return True

    if task.restricted_to_role:
        return rid == task.restricted_to_role.strip().lower()

    return rid == task.owner_role.strip().lower()


def require_role(role: Any, task: TaskDefinition, *, review: bool = False) -> RoleId:
    """Return the normalized role or raise AuthorizationDenied."""
    if not can_act(role, task, review=review):
        rid = normalize_role(role)
        owner = task.restricted_to_role or task.owner_role
        raise AuthorizationDenied(
            f"Role {rid or '<none>'!r} may not act on {task.id!r} (owned by {owner!r})",
            task_id=task.id,
            role=rid,
        )
    return normalize_role(role) or ""


def is_user_category(role: Any, category: Category | str) -> bool:
    """Highlight check for the dashboard: does this category belong to the role?"""
    cat = get_category(category) if isinstance(category, str) else category
    rid = normalize_role(role)
    if rid is None:
        return False
    if rid == cat.role_id:
        return True
    # Team display names ("Liturgy Maker", "Beamer Team") still contain the role id.
    return rid in cat.role.lower()
