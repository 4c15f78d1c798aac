# tests/test_task_store.py

from __future__ import annotations

from service_workflow.workflow.models import TaskStatus, parse_timestamp
from service_workflow.workflow.store import TaskStatusStore, parse_task_snapshot

DATE = "2026-10-25"


def test_set_status_is_visible_immediately_and_unreconciled() -> None:
    store = TaskStatusStore(DATE)

    inst = store.set_status("concept", TaskStatus.COMPLETED, document_link="https://doc/1", updated_by="liturgy")

    assert store.get_status("concept") == TaskStatus.COMPLETED
    assert inst.reconciled is False
    assert store.document_link("concept") == "https://doc/1"
    assert "concept" in store.unreconciled()


def test_status_bump_keeps_previous_link() -> None:
    store = TaskStatusStore(DATE)
    store.set_status("sermon", TaskStatus.ACTIVE, document_link="https://doc/s")
    store.set_status("sermon", TaskStatus.COMPLETED)
    assert store.document_link("sermon") == "https://doc/s"


def test_delete_then_read_is_pending() -> None:
    store = TaskStatusStore(DATE)
    store.set_status("final", TaskStatus.COMPLETED)

    assert store.delete_task("final") is True
    assert store.get_status("final") == TaskStatus.PENDING
    assert store.get_instance("final") is None
    assert store.delete_task("final") is False


def test_alias_write_reaches_both_spellings() -> None:
    store = TaskStatusStore(DATE)
    store.set_status("translate_lyrics", TaskStatus.ACTIVE)

    snap = store.snapshot()
    assert snap["translate-liturgy"].status == TaskStatus.ACTIVE
    assert snap["translate_lyrics"].status == TaskStatus.ACTIVE
    assert store.get_status("translate-liturgy") == TaskStatus.ACTIVE


def test_parse_task_snapshot_shapes() -> None:
    tasks = parse_task_snapshot({"dateString": DATE, "tasks": {"concept": {"status": "done"}, " ": {}}})
    assert set(tasks) == {"concept"}
    assert tasks["concept"].status == TaskStatus.COMPLETED
    assert parse_task_snapshot(None) == {}
    assert parse_task_snapshot({"dateString": DATE, "tasks": None}) == {}
    assert parse_task_snapshot({"dateString": DATE, "tasks": "oops"}) == {}


def test_snapshot_with_legacy_spelling_only() -> None:
    store = TaskStatusStore(DATE)
    report = store.apply_snapshot({"tasks": {"translate_sermon": {"status": "completed"}}})

    assert store.get_status("translate-sermon") == TaskStatus.COMPLETED
    assert report.aliases.synthesized == ["translate-sermon"]
    assert store.loaded


def test_approved_lyrics_complete_translate_liturgy() -> None:
    store = TaskStatusStore(DATE)
    report = store.apply_snapshot(
        {"dateString": DATE, "tasks": {}},
        lyrics={"lyrics": [{"title": "Psalm 23", "translation": {"status": "approved"}}]},
        sermons={"sermons": []},
    )

    assert report.derived == ["translate-liturgy"]
    assert store.get_status("translate-liturgy") == TaskStatus.COMPLETED
    assert store.get_status("translate_lyrics") == TaskStatus.COMPLETED
    assert store.get_status("translate-sermon") == TaskStatus.PENDING


def test_recomputing_unchanged_evidence_is_idempotent() -> None:
    lyrics = {"lyrics": [{"title": "Psalm 23", "translation": {"status": "approved", "updatedAt": "2026-10-20T10:00:00Z"}}]}
    store = TaskStatusStore(DATE)

    store.apply_snapshot({"tasks": {}}, lyrics=lyrics)
    first = store.get_instance("translate-liturgy")
    store.apply_snapshot({"tasks": {}}, lyrics=lyrics)
    second = store.get_instance("translate-liturgy")

    assert first is not None and second is not None
    assert first.same_data(second)
    assert second.updated_at == parse_timestamp("2026-10-20T10:00:00Z")


def test_full_snapshot_replaces_local_state() -> None:
    store = TaskStatusStore(DATE)
    store.set_status("slides", TaskStatus.ACTIVE)

    store.apply_snapshot({"tasks": {"concept": {"status": "completed"}}})

    assert store.get_status("slides") == TaskStatus.PENDING
    assert store.get_status("concept") == TaskStatus.COMPLETED
    assert store.unreconciled() == set()
    assert store.get_instance("concept").reconciled is True


def test_partial_snapshot_only_touches_listed_tasks() -> None:
    store = TaskStatusStore(DATE)
    store.set_status("concept", TaskStatus.COMPLETED)
    store.set_status("slides", TaskStatus.ACTIVE)

    store.apply_snapshot({"tasks": {"concept": {"status": "completed", "updatedBy": "liturgy"}}}, only=["concept"])

    assert store.get_instance("concept").reconciled is True
    assert store.get_instance("concept").updated_by == "liturgy"
    # Untouched local write survives and still waits for a server read.
    assert store.get_status("slides") == TaskStatus.ACTIVE
    assert store.unreconciled() == {"slides"}


def test_qr_fast_status_resyncs_from_snapshot() -> None:
    store = TaskStatusStore(DATE)
    store.apply_snapshot({"tasks": {"qrcode": {"status": "completed"}}})
    assert store.get_status("qrcode") == TaskStatus.COMPLETED

    store.apply_snapshot({"tasks": {}})
    assert store.get_status("qrcode") == TaskStatus.PENDING


def test_qr_fast_status_survives_snapshot_during_upload() -> None:
    store = TaskStatusStore(DATE)
    store.qr_upload_in_flight = True
    store.set_qr_fast_status(TaskStatus.ACTIVE)

    store.apply_snapshot({"tasks": {"qrcode": {"status": "pending"}}})

    assert store.get_status("qrcode") == TaskStatus.ACTIVE
    assert store.map_status("qrcode") == TaskStatus.PENDING


def test_delete_resets_qr_fast_status() -> None:
    store = TaskStatusStore(DATE)
    store.set_status("qrcode", TaskStatus.COMPLETED)
    assert store.qr_status == TaskStatus.COMPLETED

    store.delete_task("qrcode")
    assert store.get_status("qrcode") == TaskStatus.PENDING
