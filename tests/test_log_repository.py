from datetime import timedelta

import pytest

from signals_dispatch.dispatch.statuses import DispatchStatus
from signals_dispatch.models.dispatch_log import DispatchLog
from signals_dispatch.repositories.base import utcnow
from signals_dispatch.repositories.log_repository import LogRepository
from tests.fixtures_data import build_session_factory


def _row(order_id, phone="+5511987654321", template="order_processing", status=DispatchStatus.QUEUED):
    return {
        "order_id": order_id,
        "event_key": "order_status_processing",
        "attempt": 0,
        "phone_e164": phone,
        "template_name": template,
        "status": status,
    }


def test_create_assigns_id_timestamps_and_defaults():
    repo = LogRepository(build_session_factory())

    log_id = repo.create(_row(10))
    row = repo.get(log_id)

    assert log_id > 0
    assert row.status == "queued"
    assert row.payload_json == "{}"
    assert row.response_json == "{}"
    assert row.created_at is not None
    assert row.updated_at is not None


def test_update_touches_only_given_fields():
    repo = LogRepository(build_session_factory())
    log_id = repo.create(_row(10))

    assert repo.update(log_id, {"status": DispatchStatus.SENT, "provider_message_id": "wamid.1"}) is True
    row = repo.get(log_id)

    assert row.status == "sent"
    assert row.provider_message_id == "wamid.1"
    assert row.template_name == "order_processing"
    assert repo.update(9999, {"status": DispatchStatus.FAILED}) is False


def test_update_rejects_unknown_fields():
    repo = LogRepository(build_session_factory())
    log_id = repo.create(_row(10))

    with pytest.raises(ValueError):
        repo.update(log_id, {"id": 5})


def test_update_by_provider_message_id_changes_status_only():
    repo = LogRepository(build_session_factory())
    log_id = repo.create(_row(10, status=DispatchStatus.SENT))
    repo.update(log_id, {"provider_message_id": "wamid.123", "payload_json": '{"a": 1}'})
    before = repo.get(log_id)

    assert repo.update_by_provider_message_id("wamid.123", {"status": DispatchStatus.DELIVERED}) is True
    after = repo.find_by_provider_message_id("wamid.123")

    assert after.id == log_id
    assert after.status == "delivered"
    assert after.payload_json == before.payload_json
    assert after.phone_e164 == before.phone_e164
    assert repo.update_by_provider_message_id("wamid.missing", {"status": DispatchStatus.READ}) is False
    assert repo.update_by_provider_message_id("", {"status": DispatchStatus.READ}) is False


def test_list_paginated_orders_by_id_desc_and_counts_total():
    repo = LogRepository(build_session_factory())
    ids = [repo.create(_row(order_id)) for order_id in range(1, 6)]

    rows, total = repo.list_paginated(page=1, per_page=2)
    second_page, _ = repo.list_paginated(page=2, per_page=2)

    assert total == 5
    assert [row.id for row in rows] == [ids[4], ids[3]]
    assert [row.id for row in second_page] == [ids[2], ids[1]]


def test_list_paginated_filters_by_status_and_search():
    repo = LogRepository(build_session_factory())
    repo.create(_row(111, phone="+5511900000001", template="order_completed", status=DispatchStatus.SENT))
    repo.create(_row(222, phone="+5511900000002", template="order_processing", status=DispatchStatus.FAILED))
    repo.create(_row(333, phone="+4420000000", template="order_processing", status=DispatchStatus.FAILED))

    failed, failed_total = repo.list_paginated(status="failed")
    by_template, _ = repo.list_paginated(search="completed")
    by_phone, _ = repo.list_paginated(search="+44")
    by_order, _ = repo.list_paginated(search="222")
    nothing, nothing_total = repo.list_paginated(search="100%")

    assert failed_total == 2
    assert {row.order_id for row in failed} == {222, 333}
    assert [row.order_id for row in by_template] == [111]
    assert [row.order_id for row in by_phone] == [333]
    assert [row.order_id for row in by_order] == [222]
    assert nothing == [] and nothing_total == 0


def test_status_counts_only_within_window():
    session_factory = build_session_factory()
    repo = LogRepository(session_factory)
    repo.create(_row(1, status=DispatchStatus.SENT))
    repo.create(_row(2, status=DispatchStatus.SENT))
    old_id = repo.create(_row(3, status=DispatchStatus.FAILED))

    db = session_factory()
    db.query(DispatchLog).filter(DispatchLog.id == old_id).update(
        {"created_at": utcnow() - timedelta(days=3)}, synchronize_session=False
    )
    db.commit()
    db.close()

    assert repo.status_counts() == {"sent": 2}
    assert repo.status_counts(timedelta(days=7)) == {"sent": 2, "failed": 1}
