"""Shared fixtures: in-memory collaborators and an isolated metrics registry."""

import pytest
from prometheus_client import CollectorRegistry

from orderpay.common.errors import CommunicationError, OrderNotFound
from orderpay.common.logging import order_id_ctx
from orderpay.common.metrics import PaymentMetrics
from orderpay.common.state_machine import PaymentStatus
from orderpay.services.payment.schemas import OrderSummary, Payment
from orderpay.services.payment.service import PaymentOrchestrator


class FakePaymentStore:
    """Dict-backed store with the same compare-and-swap rule as the SQL store."""

    def __init__(self) -> None:
        self.rows: dict[int, Payment] = {}
        self.saved: list[Payment] = []
        self.updates: list[tuple[int, PaymentStatus]] = []
        self._next_id = 1

    def add(self, order_id: int, status: PaymentStatus, payment_id: int | None = None) -> Payment:
        payment_id = payment_id or self._next_id
        self._next_id = max(self._next_id, payment_id + 1)
        payment = Payment(payment_id=payment_id, order_id=order_id, status=status)
        self.rows[payment_id] = payment
        return payment

    def list_all(self) -> list[Payment]:
        return list(self.rows.values())

    def get_by_id(self, payment_id: int) -> Payment | None:
        return self.rows.get(payment_id)

    def save(self, payment: Payment) -> Payment:
        saved = payment.model_copy(update={"payment_id": self._next_id})
        self._next_id += 1
        self.rows[saved.payment_id] = saved
        self.saved.append(saved)
        return saved

    def update_status(self, payment: Payment, new_status: PaymentStatus) -> Payment | None:
        current = self.rows[payment.payment_id]
        if current.status != payment.status or current.state_version != payment.state_version:
            return None
        updated = current.model_copy(update={"status": new_status, "state_version": current.state_version + 1})
        self.rows[payment.payment_id] = updated
        self.updates.append((payment.payment_id, new_status))
        return updated


class FakeOrderGateway:
    """Order service stand-in; `failures` maps order id to the error to raise."""

    def __init__(self) -> None:
        self.orders: dict[int, OrderSummary] = {}
        self.failures: dict[int, Exception] = {}
        self.advance_failure: Exception | None = None
        self.lookups: list[int] = []
        self.logged_order_ids: list[str] = []
        self.advanced: list[int] = []

    def add_order(self, order_id: int, status: str, fee: float = 100.0) -> OrderSummary:
        order = OrderSummary(order_id=order_id, order_status=status, order_fee=fee)
        self.orders[order_id] = order
        return order

    def fail_lookup(self, order_id: int, error: Exception) -> None:
        self.failures[order_id] = error

    def get_order(self, order_id: int) -> OrderSummary:
        self.lookups.append(order_id)
        self.logged_order_ids.append(order_id_ctx.get())
        if order_id in self.failures:
            raise self.failures[order_id]
        if order_id not in self.orders:
            raise OrderNotFound(order_id, f"order {order_id} not found")
        return self.orders[order_id]

    def advance_order_status(self, order_id: int) -> None:
        self.advanced.append(order_id)
        if self.advance_failure is not None:
            raise self.advance_failure


def sample(metrics: PaymentMetrics, name: str, **labels: str) -> float:
    """Read one sample from the metrics registry, 0.0 when never observed."""

    value = metrics.registry.get_sample_value(name, {"service": metrics.service_name, **labels})
    return value or 0.0


@pytest.fixture
def metrics() -> PaymentMetrics:
    return PaymentMetrics("payment-service-test", registry=CollectorRegistry())


@pytest.fixture
def store() -> FakePaymentStore:
    return FakePaymentStore()


@pytest.fixture
def gateway() -> FakeOrderGateway:
    return FakeOrderGateway()


@pytest.fixture
def orchestrator(store, gateway, metrics) -> PaymentOrchestrator:
    return PaymentOrchestrator(store=store, order_gateway=gateway, metrics=metrics)


@pytest.fixture
def unreachable() -> CommunicationError:
    return CommunicationError(0, "connection refused")
