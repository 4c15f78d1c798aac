# src/service_workflow/core/errors.py

from __future__ import annotations

"""
Error taxonomy.

Every failure the engine surfaces to the UI is a WorkflowError. The dispatcher
converts these into ActionResult values; anything else is a bug and propagates.
"""


class WorkflowError(Exception):
    """Base class for errors surfaced to the dashboard."""

    transient: bool = False

    def __init__(self, message: str, *, task_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.task_id = task_id

    def __str__(self) -> str:
        return self.message


class AuthorizationDenied(WorkflowError):
    """The role gate rejected an action. Nothing was mutated."""

    def __init__(self, message: str, *, task_id: str | None = None, role: str | None = None) -> None:
        super().__init__(message, task_id=task_id)
        self.role = role


class PersistenceUnavailable(WorkflowError):
    """Network/API failure during a status write or snapshot fetch."""

    transient = True

    def __init__(
        self,
        message: str,
        *,
        task_id: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, task_id=task_id)
        self.status_code = status_code


class InconsistentSnapshot(WorkflowError):
    """Alias spellings (or collaborator data) disagree inside one snapshot."""


class UnknownTask(WorkflowError, KeyError):
    """Task id is not part of the catalog under any spelling."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Unknown task: {task_id}", task_id=task_id)

    def __str__(self) -> str:
        return self.message
