from fastapi.testclient import TestClient

from signals_dispatch.dispatch.engine import SEND_TEMPLATE_JOB
from signals_dispatch.routers.order_events import router
from tests.fixtures_data import ORDER_EVENTS_TOKEN, FakeScheduler, build_test_app, build_test_services

HEADERS = {"X-Signals-Token": ORDER_EVENTS_TOKEN}


def _client(**overrides):
    services = build_test_services(**overrides)
    services.mapping_repo.upsert(
        {
            "event_key": "order_status_completed",
            "template_name": "order_completed",
            "variables": ["order_number"],
        }
    )
    return TestClient(build_test_app(services, router)), services


def test_status_change_is_accepted_and_scheduled():
    scheduler = FakeScheduler()
    client, _ = _client(scheduler=scheduler)

    response = client.post(
        "/api/orders/status-changed",
        json={"order_id": 1001, "old_status": "processing", "new_status": "wc-completed"},
        headers=HEADERS,
    )

    assert response.status_code == 202
    assert response.json() == {"accepted": True, "event_key": "order_status_completed"}
    assert scheduler.jobs[0]["job_name"] == SEND_TEMPLATE_JOB
    assert scheduler.jobs[0]["args"] == [1001, "order_status_completed", 0]


def test_unchanged_status_is_not_emitted():
    scheduler = FakeScheduler()
    client, _ = _client(scheduler=scheduler)

    response = client.post(
        "/api/orders/status-changed",
        json={"order_id": 1001, "old_status": "completed", "new_status": "completed"},
        headers=HEADERS,
    )

    assert response.status_code == 202
    assert response.json() == {"accepted": False, "event_key": ""}
    assert scheduler.jobs == []


def test_status_without_mapping_is_accepted_but_not_scheduled():
    scheduler = FakeScheduler()
    client, _ = _client(scheduler=scheduler)

    response = client.post(
        "/api/orders/status-changed",
        json={"order_id": 1001, "old_status": "pending", "new_status": "processing"},
        headers=HEADERS,
    )

    assert response.status_code == 202
    assert scheduler.jobs == []


def test_token_is_required():
    client, _ = _client()
    body = {"order_id": 1001, "old_status": "pending", "new_status": "completed"}

    assert client.post("/api/orders/status-changed", json=body).status_code == 401
    assert client.post(
        "/api/orders/status-changed", json=body, headers={"X-Signals-Token": "wrong"}
    ).status_code == 401


def test_unconfigured_token_returns_503():
    client, _ = _client(order_events_token="")

    response = client.post(
        "/api/orders/status-changed",
        json={"order_id": 1001, "old_status": "pending", "new_status": "completed"},
        headers=HEADERS,
    )

    assert response.status_code == 503


def test_invalid_body_returns_422():
    client, _ = _client()

    response = client.post("/api/orders/status-changed", json={"order_id": 0, "new_status": ""}, headers=HEADERS)

    assert response.status_code == 422
