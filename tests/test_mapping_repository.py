import pytest

from signals_dispatch.models.dispatch_mapping import DispatchMapping
from signals_dispatch.repositories.mapping_repository import (
    DuplicateEventKeyError,
    MappingRepository,
    sanitize_event_key,
)
from tests.fixtures_data import build_session_factory


def _mapping(**overrides):
    data = {
        "event_key": "order_status_processing",
        "template_name": "order_processing",
        "language": "pt_BR",
        "variables": ["billing_first_name", "order_number"],
        "enabled": True,
    }
    data.update(overrides)
    return data


def test_find_by_event_returns_enabled_mapping_with_variables():
    repo = MappingRepository(build_session_factory())
    mapping_id = repo.upsert(_mapping())

    mapping = repo.find_by_event("order_status_processing")

    assert mapping.id == mapping_id
    assert mapping.template_name == "order_processing"
    assert mapping.language == "pt_BR"
    assert mapping.resolver_keys == ["billing_first_name", "order_number"]


def test_find_by_event_ignores_disabled_mappings():
    repo = MappingRepository(build_session_factory())
    repo.upsert(_mapping(enabled=False))

    assert repo.find_by_event("order_status_processing") is None
    assert repo.find_by_event("") is None


def test_duplicate_event_keys_pick_most_recent():
    session_factory = build_session_factory()
    repo = MappingRepository(session_factory)
    # linhas legadas gravadas fora do repositório
    db = session_factory()
    for template_name, enabled in [("first", True), ("second", True), ("third_disabled", False)]:
        db.add(
            DispatchMapping(
                event_key="order_status_processing",
                template_name=template_name,
                language="pt_BR",
                variables_json="[]",
                enabled=enabled,
            )
        )
    db.commit()
    db.close()

    assert repo.find_by_event("order_status_processing").template_name == "second"


def test_upsert_updates_existing_and_reports_missing():
    repo = MappingRepository(build_session_factory())
    mapping_id = repo.upsert(_mapping())

    assert repo.upsert(_mapping(template_name="renamed", variables=[]), mapping_id=mapping_id) == mapping_id
    assert repo.upsert(_mapping(event_key="order_status_completed"), mapping_id=9999) == 0

    mapping = repo.get(mapping_id)
    assert mapping.template_name == "renamed"
    assert mapping.resolver_keys == []
    assert len(repo.list_all()) == 1


def test_upsert_defaults_language_and_sanitizes_event_key():
    repo = MappingRepository(build_session_factory())
    mapping_id = repo.upsert(_mapping(event_key=" Order_Status_Completed! ", language=""))

    mapping = repo.get(mapping_id)
    assert mapping.event_key == "order_status_completed"
    assert mapping.language == "en_US"


def test_delete_removes_mapping():
    repo = MappingRepository(build_session_factory())
    mapping_id = repo.upsert(_mapping())

    assert repo.delete(mapping_id) is True
    assert repo.delete(mapping_id) is False
    assert repo.list_all() == []


def test_sanitize_event_key():
    assert sanitize_event_key("Order-Status on_hold") == "order-statuson_hold"
    assert sanitize_event_key(None) == ""


def test_upsert_rejects_second_mapping_for_same_event():
    repo = MappingRepository(build_session_factory())
    first_id = repo.upsert(_mapping())

    with pytest.raises(DuplicateEventKeyError) as exc_info:
        repo.upsert(_mapping(event_key="Order_Status_Processing", template_name="other"))

    assert exc_info.value.existing_id == first_id
    assert [mapping.template_name for mapping in repo.list_all()] == ["order_processing"]


def test_update_cannot_take_event_key_of_another_mapping():
    repo = MappingRepository(build_session_factory())
    repo.upsert(_mapping())
    completed_id = repo.upsert(_mapping(event_key="order_status_completed"))

    with pytest.raises(DuplicateEventKeyError):
        repo.upsert(_mapping(), mapping_id=completed_id)

    assert repo.get(completed_id).event_key == "order_status_completed"
