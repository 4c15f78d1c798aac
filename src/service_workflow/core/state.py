# src/service_workflow/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..workflow.board import WorkflowBoard


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    board: WorkflowBoard

    # Whoever sits at the console; "pastor", "liturgy", "treasurer", ...
    role: str | None = None
    visible: bool = True
    offline: bool = False
