# src/service_workflow/clients/offline.py

from __future__ import annotations

import copy
import time
from datetime import datetime, timezone
from typing import Any

from ..core.errors import PersistenceUnavailable


def _iso_now() -> str:
    return datetime.fromtimestamp(time.time(), tz=timezone.utc).isoformat()


class OfflineServiceBackend:
    """
    In-memory ServiceBackend used for demos when no server is configured.

    Behavior mirrors the real server closely enough for the board:
    - PUT upserts the task row and stamps updatedAt
    - DELETE of a missing row answers 404 "Task not found"
    - collaborator reads of unknown dates answer empty lists
    """

    def __init__(self) -> None:
        self.tasks: dict[str, dict[str, dict[str, Any]]] = {}
        self.lyrics: dict[str, list[dict[str, Any]]] = {}
        self.sermons: dict[str, list[dict[str, Any]]] = {}
        self.music_links: dict[str, list[dict[str, Any]]] = {}

    async def aclose(self) -> None:
        return

    # ---- seeding helpers (demo / tests) ----

    def add_lyric(self, date: str, title: str, translation_status: str | None = None) -> None:
        item: dict[str, Any] = {"title": title, "translation": None}
        if translation_status is not None:
            item["translation"] = {"status": translation_status}
        self.lyrics.setdefault(date, []).append(item)

    def add_sermon(self, date: str, title: str, translation_status: str | None = None) -> None:
        item: dict[str, Any] = {"title": title, "translation": None}
        if translation_status is not None:
            item["translation"] = {"status": translation_status}
        self.sermons.setdefault(date, []).append(item)

    def add_music_link(self, date: str, title: str, url: str) -> None:
        self.music_links.setdefault(date, []).append({"title": title, "url": url})

    def put_raw_task(self, date: str, task_id: str, entry: dict[str, Any]) -> None:
        """Store a row as-is (used to reproduce legacy spellings)."""
        self.tasks.setdefault(date, {})[task_id] = copy.deepcopy(entry)

    # ---- WorkflowApi ----

    async def get_workflow_tasks(self, date: str) -> dict[str, Any]:
        return {"dateString": date, "tasks": copy.deepcopy(self.tasks.get(date, {}))}

    async def update_task_status(
        self,
        date: str,
        task_id: str,
        status: str,
        document_link: str | None = None,
        assigned_to: str | None = None,
    ) -> dict[str, Any]:
        if not status:
            raise PersistenceUnavailable("status is required", task_id=task_id, status_code=400)
        self.tasks.setdefault(date, {})[task_id] = {
            "status": status,
            "documentLink": document_link,
            "assignedTo": assigned_to,
            "updatedAt": _iso_now(),
            "updatedBy": assigned_to,
        }
        return {"message": "Task status updated successfully", "taskId": task_id, "status": status, "dateString": date}

    async def delete_workflow_task(self, date: str, task_id: str) -> dict[str, Any]:
        rows = self.tasks.get(date)
        if rows is None:
            raise PersistenceUnavailable("Service not found", task_id=task_id, status_code=404)
        if rows.pop(task_id, None) is None:
            raise PersistenceUnavailable("Task not found", task_id=task_id, status_code=404)
        return {"message": "Task deleted successfully", "taskId": task_id, "dateString": date}

    # ---- collaborators ----

    async def get_lyrics_by_date(self, date: str) -> dict[str, Any]:
        return {"dateString": date, "lyrics": copy.deepcopy(self.lyrics.get(date, []))}

    async def get_sermons_by_date(self, date: str) -> dict[str, Any]:
        return {"dateString": date, "sermons": copy.deepcopy(self.sermons.get(date, []))}

    async def get_music_links(self, date: str) -> dict[str, Any]:
        return {"dateString": date, "musicLinks": copy.deepcopy(self.music_links.get(date, []))}
