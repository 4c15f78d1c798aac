# tests/test_http_backend.py

from __future__ import annotations

import json
from types import SimpleNamespace

import httpx
import pytest

from service_workflow.clients.http_backend import HttpServiceBackend
from service_workflow.core.errors import AuthorizationDenied, PersistenceUnavailable

DATE = "2026-10-25"


def _backend(handler) -> HttpServiceBackend:
    return HttpServiceBackend(
        "http://api.test/",
        token="secret",
        timeout_seconds=2.0,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_get_workflow_tasks_sends_token_and_parses() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"dateString": DATE, "tasks": {"concept": {"status": "completed"}}})

    backend = _backend(handler)
    data = await backend.get_workflow_tasks(DATE)
    await backend.aclose()

    assert data["tasks"]["concept"]["status"] == "completed"
    assert seen[0].method == "GET"
    assert seen[0].url.path == f"/workflow/{DATE}"
    assert seen[0].headers["Authorization"] == "Bearer secret"


@pytest.mark.asyncio
async def test_get_workflow_tasks_null_tasks_is_empty_map() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"dateString": DATE, "tasks": None})

    backend = _backend(handler)
    data = await backend.get_workflow_tasks(DATE)
    await backend.aclose()

    assert data["tasks"] == {}
    assert data["dateString"] == DATE


@pytest.mark.asyncio
async def test_update_task_status_puts_wire_body() -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "PUT"
        assert request.url.path == f"/workflow/{DATE}/translate-liturgy"
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"message": "Task status updated successfully"})

    backend = _backend(handler)
    await backend.update_task_status(DATE, "translate-liturgy", "in-progress", "https://doc", "translation")
    await backend.aclose()

    assert bodies == [{"status": "in-progress", "documentLink": "https://doc", "assignedTo": "translation"}]


@pytest.mark.asyncio
async def test_server_error_maps_to_persistence_unavailable() -> None:
    backend = _backend(lambda request: httpx.Response(500, json={"message": "Failed to update task status"}))

    with pytest.raises(PersistenceUnavailable) as exc:
        await backend.update_task_status(DATE, "concept", "completed")
    await backend.aclose()

    assert exc.value.status_code == 500
    assert exc.value.message == "Failed to update task status"
    assert exc.value.task_id == "concept"


@pytest.mark.asyncio
async def test_forbidden_maps_to_authorization_denied() -> None:
    backend = _backend(lambda request: httpx.Response(403, json={"message": "Forbidden"}))

    with pytest.raises(AuthorizationDenied):
        await backend.delete_workflow_task(DATE, "concept")
    await backend.aclose()


@pytest.mark.asyncio
async def test_transport_failure_maps_to_persistence_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    backend = _backend(handler)
    with pytest.raises(PersistenceUnavailable) as exc:
        await backend.get_workflow_tasks(DATE)
    await backend.aclose()

    assert exc.value.transient
    assert exc.value.status_code is None


@pytest.mark.asyncio
async def test_invalid_json_is_an_error() -> None:
    backend = _backend(lambda request: httpx.Response(200, content=b"<html>proxy</html>"))

    with pytest.raises(PersistenceUnavailable):
        await backend.get_workflow_tasks(DATE)
    await backend.aclose()


@pytest.mark.asyncio
async def test_collaborator_not_found_is_empty() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == f"/lyrics/{DATE}":
            return httpx.Response(404, json={"message": "Service not found"})
        if request.url.path == f"/sermon/date/{DATE}":
            return httpx.Response(200, json=[{"translation": {"status": "translated"}}])
        return httpx.Response(404, json={"message": "Not Found"})

    backend = _backend(handler)
    lyrics = await backend.get_lyrics_by_date(DATE)
    sermons = await backend.get_sermons_by_date(DATE)
    music = await backend.get_music_links(DATE)
    await backend.aclose()

    assert lyrics["lyrics"] == []
    assert sermons["sermons"][0]["translation"]["status"] == "translated"
    assert music["musicLinks"] == []


@pytest.mark.asyncio
async def test_delete_404_keeps_status_code() -> None:
    backend = _backend(lambda request: httpx.Response(404, json={"message": "Task not found"}))

    with pytest.raises(PersistenceUnavailable) as exc:
        await backend.delete_workflow_task(DATE, "concept")
    await backend.aclose()

    assert exc.value.status_code == 404


def test_from_settings_requires_url() -> None:
    with pytest.raises(RuntimeError):
        HttpServiceBackend.from_settings(SimpleNamespace(api_base_url=None))
