# src/service_workflow/clients/http_backend.py

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from ..core.errors import AuthorizationDenied, PersistenceUnavailable

logger = logging.getLogger(__name__)

# Answered by the lyrics/sermon routes when nothing was submitted for the date yet.
_NOT_FOUND_MARKERS = ("service not found", "not found")


def _path(*parts: str) -> str:
    return "/" + "/".join(quote(p, safe="") for p in parts)


def _make_timeout(timeout_s: float) -> httpx.Timeout:
    # Keep connect short so an offline server fails fast; the poller will retry anyway.
    return httpx.Timeout(timeout_s, connect=min(5.0, timeout_s), pool=min(5.0, timeout_s))


class HttpServiceBackend:
    """
    ServiceBackend over the dashboard's REST API.

    Routes:
    - GET    /workflow/<date>
    - PUT    /workflow/<date>/<taskId>   {status, documentLink, assignedTo}
    - DELETE /workflow/<date>/<taskId>
    - GET    /lyrics/<date>
    - GET    /sermon/date/<date>
    - GET    /music-links/<date>

    Error mapping:
    - transport errors, timeouts, 5xx/4xx, bad JSON -> PersistenceUnavailable
    - 401/403                                       -> AuthorizationDenied
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not base_url or not base_url.strip():
            raise ValueError("base_url is required")

        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=_make_timeout(float(timeout_seconds)),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Any) -> HttpServiceBackend:
        base_url = getattr(settings, "api_base_url", None)
        if not base_url:
            raise RuntimeError("Backend URL is not set. Set WORKFLOW_API_BASE_URL in your .env.")
        return cls(
            str(base_url),
            token=getattr(settings, "api_token", None),
            timeout_seconds=float(getattr(settings, "http_timeout_seconds", 10.0)),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ---- low-level ----

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        task_id: str | None = None,
    ) -> Any:
        try:
            resp = await self._client.request(method, path, json=json)
        except httpx.TimeoutException as e:
            raise PersistenceUnavailable(f"{method} {path} timed out", task_id=task_id) from e
        except httpx.HTTPError as e:
            raise PersistenceUnavailable(f"{method} {path} failed: {e}", task_id=task_id) from e

        try:
            data = resp.json() if resp.content else {}
        except ValueError as e:
            if resp.is_success:
                raise PersistenceUnavailable(
                    f"{method} {path}: invalid JSON response",
                    task_id=task_id,
                    status_code=resp.status_code,
                ) from e
            data = {}

        if resp.is_success:
            return data

        message = data.get("message") if isinstance(data, dict) else None
        message = message or f"API request failed: {resp.status_code} {resp.reason_phrase}"

        if resp.status_code in (401, 403):
            raise AuthorizationDenied(message, task_id=task_id)
        raise PersistenceUnavailable(message, task_id=task_id, status_code=resp.status_code)

    async def _get_optional(self, path: str, key: str, date: str) -> dict[str, Any]:
        """GET for collaborator data where "no service yet" is a normal, empty answer."""
        try:
            data = await self._request("GET", path)
        except PersistenceUnavailable as e:
            if e.status_code == 404 and any(m in e.message.lower() for m in _NOT_FOUND_MARKERS):
                logger.debug("%s: nothing for %s yet", path, date)
                return {"dateString": date, key: []}
            raise
        if isinstance(data, list):
            return {"dateString": date, key: data}
        return data if isinstance(data, dict) else {"dateString": date, key: []}

    # ---- WorkflowApi ----

    async def get_workflow_tasks(self, date: str) -> dict[str, Any]:
        data = await self._request("GET", _path("workflow", date))
        if not isinstance(data, dict):
            raise PersistenceUnavailable(f"Unexpected workflow payload for {date}")
        if not isinstance(data.get("tasks"), dict):
            data["tasks"] = {}
        return data

    async def update_task_status(
        self,
        date: str,
        task_id: str,
        status: str,
        document_link: str | None = None,
        assigned_to: str | None = None,
    ) -> dict[str, Any]:
        body = {"status": status, "documentLink": document_link, "assignedTo": assigned_to}
        data = await self._request("PUT", _path("workflow", date, task_id), json=body, task_id=task_id)
        return data if isinstance(data, dict) else {}

    async def delete_workflow_task(self, date: str, task_id: str) -> dict[str, Any]:
        data = await self._request("DELETE", _path("workflow", date, task_id), task_id=task_id)
        return data if isinstance(data, dict) else {}

    # ---- collaborators ----

    async def get_lyrics_by_date(self, date: str) -> dict[str, Any]:
        return await self._get_optional(_path("lyrics", date), "lyrics", date)

    async def get_sermons_by_date(self, date: str) -> dict[str, Any]:
        return await self._get_optional(_path("sermon", "date", date), "sermons", date)

    async def get_music_links(self, date: str) -> dict[str, Any]:
        return await self._get_optional(_path("music-links", date), "musicLinks", date)
