"""Business metrics bookkeeping, independent of the orchestrator."""

import pytest
from prometheus_client import CollectorRegistry

from conftest import sample
from orderpay.common.metrics import PaymentMetrics
from orderpay.common.state_machine import PaymentStatus


@pytest.mark.parametrize("status", [PaymentStatus.COMPLETED, PaymentStatus.CANCELED])
def test_status_change_into_same_terminal_status_is_not_recounted(metrics, status):
    """Re-entering a terminal status never adds another success or failure."""

    metrics.record_status_change(status, status)

    assert sample(metrics, "payments_successful_total") == 0
    assert sample(metrics, "payments_failed_total") == 0
    assert sample(metrics, "payments_by_status", status=status.value) == 0


def test_first_terminal_entries_are_counted_once(metrics):
    metrics.record_status_change(PaymentStatus.IN_PROGRESS, PaymentStatus.COMPLETED)
    metrics.record_status_change(PaymentStatus.COMPLETED, PaymentStatus.COMPLETED)
    metrics.record_status_change(PaymentStatus.NOT_STARTED, PaymentStatus.CANCELED)
    metrics.record_status_change(PaymentStatus.CANCELED, PaymentStatus.CANCELED)

    assert sample(metrics, "payments_successful_total") == 1
    assert sample(metrics, "payments_failed_total") == 1


def test_attempt_updates_total_and_live_count(metrics):
    metrics.record_attempt(PaymentStatus.NOT_STARTED)
    metrics.record_status_change(PaymentStatus.NOT_STARTED, PaymentStatus.IN_PROGRESS)

    assert sample(metrics, "payments_total") == 1
    assert sample(metrics, "payments_by_status", status="NOT_STARTED") == 0
    assert sample(metrics, "payments_by_status", status="IN_PROGRESS") == 1


def test_initialize_is_idempotent():
    """A second setup call keeps the registered families and does not raise."""

    registry = CollectorRegistry()
    metrics = PaymentMetrics("payment-service-test", registry=registry)
    counter = metrics.payments_total

    metrics.initialize()
    metrics.record_attempt(PaymentStatus.IN_PROGRESS)

    assert metrics.payments_total is counter
    assert registry.get_sample_value("payments_total", {"service": "payment-service-test"}) == 1


def test_timer_records_duration_and_ignores_missing_handle(metrics):
    metrics.stop_timer(None)
    assert sample(metrics, "payment_processing_duration_seconds_count") == 0

    metrics.stop_timer(metrics.start_timer())
    assert sample(metrics, "payment_processing_duration_seconds_count") == 1
