"""HTTP surface for payment records and their lifecycle."""

from contextlib import asynccontextmanager
from functools import lru_cache
from time import perf_counter
from uuid import uuid4

from fastapi import Depends, FastAPI, Header, Request
from fastapi.responses import JSONResponse

from orderpay.common.config import settings
from orderpay.common.db import SessionLocal
from orderpay.common.errors import (
    ExternalServiceError,
    InvalidInput,
    InvalidPaymentStatus,
    NotFound,
    PaymentServiceError,
    UnknownStatus,
)
from orderpay.common.logging import configure_logging, logger, payment_id_ctx, trace_id_ctx
from orderpay.common.metrics import (
    PaymentMetrics,
    http_request_duration_seconds,
    http_requests_total,
    metrics_response,
)
from orderpay.common.startup import log_startup_config
from orderpay.common.tracing import instrument_app, setup_tracing
from orderpay.services.payment.order_client import HttpOrderGateway
from orderpay.services.payment.schemas import ErrorResponse, PaymentCreateRequest, PaymentResponse
from orderpay.services.payment.service import PaymentOrchestrator
from orderpay.services.payment.store import SqlPaymentStore

configure_logging()
setup_tracing(settings.service_name)
log_startup_config(
    settings.service_name,
    ["SERVICE_NAME", "DATABASE_URL", "ORDER_SERVICE_URL", "ORDER_SERVICE_TIMEOUT_SECONDS"],
)


@lru_cache(maxsize=1)
def get_orchestrator() -> PaymentOrchestrator:
    """Build the process-wide orchestrator on first use."""

    return PaymentOrchestrator(
        store=SqlPaymentStore(SessionLocal),
        order_gateway=HttpOrderGateway(),
        metrics=PaymentMetrics(settings.service_name),
    )


def close_orchestrator() -> None:
    """Release the order service connection pool if the orchestrator was built."""

    if get_orchestrator.cache_info().currsize:
        get_orchestrator().order_gateway.close()


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Close outbound HTTP connections on shutdown."""

    yield
    close_orchestrator()


app = FastAPI(title="Payment Service", lifespan=lifespan)
instrument_app(app)


# Checked in order; subclasses before their bases.
ERROR_STATUS_CODES: list[tuple[type[PaymentServiceError], int]] = [
    (InvalidInput, 400),
    (NotFound, 404),
    (UnknownStatus, 500),
    (InvalidPaymentStatus, 409),
    (ExternalServiceError, 502),
]


def status_code_for(exc: PaymentServiceError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 500


@app.exception_handler(PaymentServiceError)
async def payment_error_handler(_: Request, exc: PaymentServiceError) -> JSONResponse:
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error("request_failed code=%s error=%s", exc.code.value, exc)
    else:
        logger.info("request_rejected code=%s error=%s", exc.code.value, exc)
    body = ErrorResponse(
        code=exc.code.value,
        detail=exc.message,
        context={key: str(value) for key, value in exc.context.items()},
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Record request count and latency for every HTTP call."""

    start = perf_counter()
    route = request.url.path
    method = request.method
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        route_obj = request.scope.get("route")
        if route_obj is not None and getattr(route_obj, "path", None):
            route = route_obj.path
        return response
    finally:
        elapsed = max(0.0, perf_counter() - start)
        http_request_duration_seconds.labels(
            service=settings.service_name,
            route=route,
            method=method,
        ).observe(elapsed)
        http_requests_total.labels(
            service=settings.service_name,
            route=route,
            method=method,
            status_code=str(status_code),
        ).inc()


def bind_trace(x_trace_id: str | None = Header(default=None)) -> str:
    trace_id = x_trace_id or str(uuid4())
    trace_id_ctx.set(trace_id)
    return trace_id


@app.get("/payments", response_model=list[PaymentResponse], dependencies=[Depends(bind_trace)])
def list_payments(service: PaymentOrchestrator = Depends(get_orchestrator)):
    """List every payment, enriched with order data where available."""

    return [PaymentResponse.from_payment(payment) for payment in service.list_payments()]


@app.get("/payments/{payment_id}", response_model=PaymentResponse, dependencies=[Depends(bind_trace)])
def get_payment(payment_id: int, service: PaymentOrchestrator = Depends(get_orchestrator)):
    payment_id_ctx.set(str(payment_id))
    return PaymentResponse.from_payment(service.get_payment(payment_id))


@app.post("/payments", response_model=PaymentResponse, dependencies=[Depends(bind_trace)])
def create_payment(req: PaymentCreateRequest, service: PaymentOrchestrator = Depends(get_orchestrator)):
    """Create a payment for an ORDERED order and advance that order."""

    return PaymentResponse.from_payment(service.create_payment(req))


@app.put("/payments/{payment_id}/status", response_model=PaymentResponse, dependencies=[Depends(bind_trace)])
def advance_payment_status(payment_id: int, service: PaymentOrchestrator = Depends(get_orchestrator)):
    payment_id_ctx.set(str(payment_id))
    return PaymentResponse.from_payment(service.advance_status(payment_id))


@app.delete("/payments/{payment_id}", response_model=PaymentResponse, dependencies=[Depends(bind_trace)])
def cancel_payment(payment_id: int, service: PaymentOrchestrator = Depends(get_orchestrator)):
    """Cancel a payment; the record is kept with status CANCELED."""

    payment_id_ctx.set(str(payment_id))
    return PaymentResponse.from_payment(service.cancel_payment(payment_id))


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@app.get("/health")
def health():
    """Container health probe endpoint."""

    return {"ok": True}
