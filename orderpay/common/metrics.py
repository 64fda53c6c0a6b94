"""Prometheus metrics for the payment service.

HTTP surface metrics live on the process registry at import time. Business
metrics are owned by a `PaymentMetrics` instance that the orchestrator
receives at construction.
"""

import time

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram, generate_latest
from starlette.responses import Response

from orderpay.common.logging import logger
from orderpay.common.state_machine import PaymentStatus


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "route", "method", "status_code"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration seconds",
    ["service", "route", "method"],
)


class PaymentMetrics:
    """Business counters kept consistent with the payment lifecycle.

    `payments_by_status` is a live gauge: every status change moves one unit
    from the old status to the new one. Success/failure totals only move when
    a payment enters COMPLETED/CANCELED from a different status.
    """

    def __init__(self, service_name: str, registry: CollectorRegistry = REGISTRY) -> None:
        self.service_name = service_name
        self.registry = registry
        self._initialized = False
        self.initialize()

    def initialize(self) -> None:
        """Register metric families once; later calls are no-ops."""

        if self._initialized:
            return
        self.payments_total = Counter(
            "payments_total",
            "Total number of payment attempts",
            ["service"],
            registry=self.registry,
        )
        self.payments_by_status = Gauge(
            "payments_by_status",
            "Live payment count per status",
            ["service", "status"],
            registry=self.registry,
        )
        self.payments_successful_total = Counter(
            "payments_successful_total",
            "Total number of successful payments",
            ["service"],
            registry=self.registry,
        )
        self.payments_failed_total = Counter(
            "payments_failed_total",
            "Total number of failed payments",
            ["service"],
            registry=self.registry,
        )
        self.payment_processing_duration_seconds = Histogram(
            "payment_processing_duration_seconds",
            "Time taken to process payment creation",
            ["service"],
            registry=self.registry,
        )
        self._initialized = True
        logger.info("payment_metrics_initialized service=%s", self.service_name)

    def record_attempt(self, status: PaymentStatus) -> None:
        self.payments_total.labels(service=self.service_name).inc()
        self.payments_by_status.labels(service=self.service_name, status=status.value).inc()
        logger.info("payment_attempt_recorded status=%s", status.value)

    def record_success(self) -> None:
        self.payments_successful_total.labels(service=self.service_name).inc()
        logger.debug("payment_success_recorded")

    def record_failure(self) -> None:
        self.payments_failed_total.labels(service=self.service_name).inc()
        logger.debug("payment_failure_recorded")

    def record_status_change(self, old: PaymentStatus, new: PaymentStatus) -> None:
        """Move the live count from `old` to `new` and count first terminal entries."""

        self.payments_by_status.labels(service=self.service_name, status=old.value).dec()
        self.payments_by_status.labels(service=self.service_name, status=new.value).inc()
        if new is PaymentStatus.COMPLETED and old is not PaymentStatus.COMPLETED:
            self.record_success()
        if new is PaymentStatus.CANCELED and old is not PaymentStatus.CANCELED:
            self.record_failure()
        logger.debug("payment_status_change_recorded from=%s to=%s", old.value, new.value)

    def start_timer(self) -> float:
        return time.perf_counter()

    def stop_timer(self, handle: float | None) -> None:
        if handle is None:
            return
        elapsed = max(0.0, time.perf_counter() - handle)
        self.payment_processing_duration_seconds.labels(service=self.service_name).observe(elapsed)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
