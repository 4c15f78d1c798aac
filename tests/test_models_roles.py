# tests/test_models_roles.py

from __future__ import annotations

from types import SimpleNamespace

import pytest

from service_workflow.core.errors import AuthorizationDenied, UnknownTask
from service_workflow.workflow.catalog import get_category, get_task, iter_tasks, list_categories
from service_workflow.workflow.models import TaskInstance, TaskStatus, parse_timestamp
from service_workflow.workflow.roles import can_act, is_user_category, normalize_role, require_role


def test_status_wire_mapping() -> None:
    assert TaskStatus.from_wire("in-progress") == TaskStatus.ACTIVE
    assert TaskStatus.from_wire("In_Progress") == TaskStatus.ACTIVE
    assert TaskStatus.from_wire("done") == TaskStatus.COMPLETED
    assert TaskStatus.from_wire("approved") == TaskStatus.COMPLETED
    assert TaskStatus.from_wire("skipped") == TaskStatus.PENDING
    assert TaskStatus.from_wire(None) == TaskStatus.PENDING
    assert TaskStatus.from_wire(3) == TaskStatus.PENDING

    assert TaskStatus.ACTIVE.to_wire() == "in-progress"
    assert TaskStatus.COMPLETED.to_wire() == "completed"


def test_parse_timestamp_accepts_common_shapes() -> None:
    assert parse_timestamp("2024-01-01T00:00:00Z") == 1704067200.0
    assert parse_timestamp(1704067200000) == 1704067200.0
    assert parse_timestamp(1704067200) == 1704067200.0
    assert parse_timestamp("garbage") == 0.0
    assert parse_timestamp(None) == 0.0


def test_task_instance_from_wire_keeps_unknown_keys_in_payload() -> None:
    inst = TaskInstance.from_wire(
        {
            "status": "in-progress",
            "documentLink": "https://docs/x",
            "assignedTo": "liturgy",
            "updatedAt": "2024-01-01T00:00:00Z",
            "updatedBy": "liturgy",
            "completedBy": "someone",
        }
    )
    assert inst.status == TaskStatus.ACTIVE
    assert inst.document_link == "https://docs/x"
    assert inst.updated_at == 1704067200.0
    assert inst.payload == {"completedBy": "someone"}

    # Legacy rows: bare status string.
    assert TaskInstance.from_wire("completed").status == TaskStatus.COMPLETED


def test_catalog_layout_and_alias_lookup() -> None:
    assert [c.id for c in list_categories()] == ["liturgy", "translation", "beamer"]
    assert [t.id for t in get_category("liturgy").subtasks] == ["concept", "sermon", "qrcode", "final"]
    assert get_task("translate_lyrics").id == "translate-liturgy"
    assert get_task("qrcode").restricted_to_role == "treasurer"
    assert len({t.id for t in iter_tasks()}) == 8

    with pytest.raises(UnknownTask):
        get_task("nope")
    # Still usable where a KeyError is expected.
    with pytest.raises(KeyError):
        get_task("nope")


def test_normalize_role_accepts_every_shape() -> None:
    assert normalize_role(" Pastor ") == "pastor"
    assert normalize_role({"id": "Beamer"}) == "beamer"
    assert normalize_role({"role": {"id": "Liturgy"}}) == "liturgy"
    assert normalize_role({"role": "translation"}) == "translation"
    assert normalize_role(SimpleNamespace(role=SimpleNamespace(id="treasurer"))) == "treasurer"
    # Nested role wins over a direct id.
    assert normalize_role({"role": {"id": "liturgy"}, "id": "user-42"}) == "liturgy"
    assert normalize_role(None) is None
    assert normalize_role("") is None
    assert normalize_role(42) is None


def test_can_act_is_exact_owner_match() -> None:
    concept = get_task("concept")
    assert can_act("liturgy", concept)
    assert can_act({"role": {"id": "LITURGY"}}, concept)
    assert not can_act("beamer", concept)
    assert not can_act("pastor", concept)
    assert not can_act(None, concept)


def test_pastor_reviews_documents_but_not_translations() -> None:
    reviewable = {t.id for t in iter_tasks() if can_act("pastor", t, review=True)}
    assert reviewable == {"concept", "sermon", "qrcode", "final", "slides"}

    assert not can_act("pastor", get_task("translate-liturgy"), review=True)
    assert not can_act("pastor", get_task("translate_sermon"), review=True)
    # Review rights never widen to other roles.
    assert not can_act("beamer", get_task("concept"), review=True)
    assert can_act("treasurer", get_task("qrcode"), review=True)
    assert require_role("Pastor", get_task("final"), review=True) == "pastor"
    with pytest.raises(AuthorizationDenied):
        require_role("pastor", get_task("final"))


def test_restricted_task_only_allows_the_restricted_role() -> None:
    qr = get_task("qrcode")
    assert can_act("treasurer", qr)
    assert not can_act("liturgy", qr)


def test_require_role_raises_with_context() -> None:
    with pytest.raises(AuthorizationDenied) as exc:
        require_role("beamer", get_task("concept"))
    assert exc.value.role == "beamer"
    assert exc.value.task_id == "concept"
    assert not exc.value.transient

    assert require_role({"id": "Liturgy"}, get_task("concept")) == "liturgy"


def test_is_user_category() -> None:
    assert is_user_category("liturgy", "liturgy")
    assert is_user_category({"id": "beamer"}, get_category("beamer"))
    assert not is_user_category("beamer", "liturgy")
    assert not is_user_category(None, "liturgy")
