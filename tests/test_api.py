"""HTTP surface: routing and error-to-status mapping."""

import pytest
from fastapi.testclient import TestClient

from orderpay.common.errors import CommunicationError
from orderpay.common.state_machine import PaymentStatus
from orderpay.services.payment.main import app, get_orchestrator


@pytest.fixture
def client(orchestrator):
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_create_payment(client, gateway):
    gateway.add_order(55, "ORDERED")

    resp = client.post("/payments", json={"order_id": 55}, headers={"x-trace-id": "trace-1"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "NOT_STARTED"
    assert body["is_paid"] is False
    assert body["order"]["order_status"] == "ORDERED"


def test_create_payment_for_unpayable_order(client, gateway):
    gateway.add_order(77, "CREATED")

    resp = client.post("/payments", json={"order_id": 77})

    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_ORDER_STATUS"


def test_create_payment_when_order_service_down(client, gateway):
    gateway.fail_lookup(88, CommunicationError(88, "connection refused"))

    resp = client.post("/payments", json={"order_id": 88})

    assert resp.status_code == 502
    assert resp.json()["code"] == "EXTERNAL_SERVICE_ERROR"


def test_get_missing_payment(client):
    resp = client.get("/payments/404")

    assert resp.status_code == 404
    assert resp.json() == {
        "code": "PAYMENT_NOT_FOUND",
        "detail": "payment not found",
        "context": {"payment_id": "404"},
    }


def test_list_payments(client, store, gateway):
    store.add(10, PaymentStatus.NOT_STARTED)
    store.add(20, PaymentStatus.COMPLETED)
    gateway.add_order(10, "IN_PAYMENT")

    resp = client.get("/payments")

    assert resp.status_code == 200
    assert [(p["order_id"], p["order"] is None) for p in resp.json()] == [(10, False), (20, True)]


def test_advance_and_cancel(client, store):
    store.add(30, PaymentStatus.IN_PROGRESS, payment_id=3)

    advanced = client.put("/payments/3/status")
    rejected = client.delete("/payments/3")

    assert advanced.status_code == 200
    assert advanced.json()["status"] == "COMPLETED"
    assert advanced.json()["is_paid"] is True
    assert rejected.status_code == 409
    assert rejected.json()["code"] == "PAYMENT_ALREADY_COMPLETED"


def test_cancel_payment(client, store):
    store.add(31, PaymentStatus.NOT_STARTED, payment_id=4)

    resp = client.delete("/payments/4")

    assert resp.status_code == 200
    assert resp.json()["status"] == "CANCELED"


def test_metrics_and_health(client):
    assert client.get("/health").json() == {"ok": True}
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "http_requests_total" in resp.text


def test_shutdown_closes_order_service_client():
    orchestrator = get_orchestrator()

    with TestClient(app):
        assert not orchestrator.order_gateway.client.is_closed

    assert orchestrator.order_gateway.client.is_closed
