# src/service_workflow/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the workflow engine.

The engine depends on Protocols instead of concrete clients.
This keeps the HTTP backend swappable (offline demo, test fakes) and makes testing easier.

All payloads are the JSON shapes the dashboard server answers with; the engine
parses them itself.
"""

from typing import Any, Protocol


class WorkflowApi(Protocol):
    """Remote task store: GET/PUT/DELETE /workflow/<date>[/<taskId>]."""

    async def get_workflow_tasks(self, date: str) -> dict[str, Any]: ...

    async def update_task_status(
            self,
            date: str,
            task_id: str,
            status: str,
            document_link: str | None = None,
            assigned_to: str | None = None,
    ) -> dict[str, Any]: ...

    async def delete_workflow_task(self, date: str, task_id: str) -> dict[str, Any]: ...


class LyricsApi(Protocol):
    """Read-only: {"lyrics": [{"translation": {"status": ...} | None, ...}]}."""

    async def get_lyrics_by_date(self, date: str) -> dict[str, Any]: ...


class SermonApi(Protocol):
    """Read-only: {"sermons": [{"translation": {"status": ...} | None, ...}]}."""

    async def get_sermons_by_date(self, date: str) -> dict[str, Any]: ...


class MusicLinksApi(Protocol):
    """Read-only: {"musicLinks": [...]}."""

    async def get_music_links(self, date: str) -> dict[str, Any]: ...


class ServiceBackend(WorkflowApi, LyricsApi, SermonApi, MusicLinksApi, Protocol):
    """Everything the board needs from the server, plus a shutdown hook."""

    async def aclose(self) -> None: ...
