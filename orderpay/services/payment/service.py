"""Payment lifecycle orchestration.

Coordinates the payment state machine with the payment store, the remote
order service and business metrics. Creating a payment writes to two systems
without a shared transaction: if the order advance fails after the payment
row is saved, the row stays and the caller gets `ExternalServiceError`.
"""

from enum import Enum

from orderpay.common.errors import (
    CommunicationError,
    ErrorCode,
    ExternalServiceError,
    InvalidInput,
    InvalidPaymentStatus,
    InvalidTransition,
    NotFound,
    OrderGatewayError,
    OrderNotFound,
)
from orderpay.common.logging import logger, order_id_ctx
from orderpay.common.metrics import PaymentMetrics
from orderpay.common.state_machine import (
    PaymentStatus,
    cancellation_block_reason,
    next_status,
)
from orderpay.services.payment.schemas import (
    ORDER_STATUS_ORDERED,
    OrderSummary,
    Payment,
    PaymentCreateRequest,
)


class EnrichmentPolicy(str, Enum):
    """How order lookup failures are handled while enriching a payment."""

    BEST_EFFORT = "best_effort"
    STRICT = "strict"


class PaymentOrchestrator:
    """Owns payment state progression against the order service."""

    def __init__(self, store, order_gateway, metrics: PaymentMetrics) -> None:
        self.store = store
        self.order_gateway = order_gateway
        self.metrics = metrics

    def list_payments(self) -> list[Payment]:
        """Return every payment, enriched where the order lookup succeeds."""

        logger.info("payments_list_requested")
        enriched = [self._enrich(payment, EnrichmentPolicy.BEST_EFFORT) for payment in self.store.list_all()]
        unique: list[Payment] = []
        for payment in enriched:
            if payment not in unique:
                unique.append(payment)
        return unique

    def get_payment(self, payment_id: int) -> Payment:
        logger.info("payment_requested payment_id=%s", payment_id)
        return self._enrich(self._load(payment_id), EnrichmentPolicy.STRICT)

    def create_payment(self, req: PaymentCreateRequest) -> Payment:
        """Persist a payment for an ORDERED order and advance the order.

        The processing timer covers every exit path.
        """

        logger.info("payment_create_requested order_id=%s", req.order_id)
        order_token = order_id_ctx.set("" if req.order_id is None else str(req.order_id))
        timer = self.metrics.start_timer()
        try:
            if req.order_id is None:
                raise InvalidInput(ErrorCode.MISSING_REQUIRED_FIELD, "order id required")
            order = self._verify_order_eligibility(req.order_id)

            payment = self.store.save(
                Payment(order_id=req.order_id, status=req.status or PaymentStatus.NOT_STARTED)
            )
            logger.info("payment_saved payment_id=%s order_id=%s", payment.payment_id, payment.order_id)
            self._advance_order(req.order_id, payment.payment_id)
            payment = payment.model_copy(update={"order": order})

            self.metrics.record_attempt(payment.status)
            if payment.status is PaymentStatus.COMPLETED:
                self.metrics.record_success()
            elif payment.status is PaymentStatus.CANCELED:
                self.metrics.record_failure()
            return payment
        finally:
            self.metrics.stop_timer(timer)
            order_id_ctx.reset(order_token)

    def advance_status(self, payment_id: int) -> Payment:
        """Move a payment one step forward along the lifecycle."""

        logger.info("payment_advance_requested payment_id=%s", payment_id)
        payment = self._load(payment_id)
        try:
            new_status = next_status(payment.status)
        except InvalidPaymentStatus as exc:
            exc.context.setdefault("payment_id", payment_id)
            raise
        return self._apply_transition(payment, new_status)

    def cancel_payment(self, payment_id: int) -> Payment:
        """Cancel a non-terminal payment. The order is left untouched."""

        logger.info("payment_cancel_requested payment_id=%s", payment_id)
        payment = self._load(payment_id)
        reason = cancellation_block_reason(payment.status)
        if reason is not None:
            raise InvalidPaymentStatus(reason, payment_id=payment_id, status=payment.status.value)
        canceled = self._apply_transition(payment, PaymentStatus.CANCELED)
        logger.info("payment_canceled payment_id=%s", payment_id)
        return canceled

    def _load(self, payment_id: int) -> Payment:
        payment = self.store.get_by_id(payment_id)
        if payment is None:
            raise NotFound(ErrorCode.PAYMENT_NOT_FOUND, payment_id=payment_id)
        return payment

    def _apply_transition(self, payment: Payment, new_status: PaymentStatus) -> Payment:
        old_status = payment.status
        updated = self.store.update_status(payment, new_status)
        if updated is None:
            logger.warning(
                "payment_transition_conflict payment_id=%s from=%s to=%s",
                payment.payment_id,
                old_status.value,
                new_status.value,
            )
            raise InvalidTransition(
                ErrorCode.CONCURRENT_MODIFICATION,
                payment_id=payment.payment_id,
                from_status=old_status.value,
                to_status=new_status.value,
            )
        self.metrics.record_status_change(old_status, new_status)
        logger.info(
            "payment_transitioned payment_id=%s from=%s to=%s",
            payment.payment_id,
            old_status.value,
            new_status.value,
        )
        return updated

    def _enrich(self, payment: Payment, policy: EnrichmentPolicy) -> Payment:
        """Attach a fresh order snapshot according to `policy`.

        BEST_EFFORT logs and returns the payment unenriched on any lookup
        failure. STRICT translates order service failures for the caller and
        lets anything else propagate unchanged.
        """

        order_token = order_id_ctx.set(str(payment.order_id))
        try:
            order = self.order_gateway.get_order(payment.order_id)
        except Exception as exc:
            if policy is EnrichmentPolicy.BEST_EFFORT:
                logger.warning(
                    "order_enrichment_skipped payment_id=%s order_id=%s error=%s",
                    payment.payment_id,
                    payment.order_id,
                    exc,
                )
                return payment
            if not isinstance(exc, OrderGatewayError):
                raise
            if isinstance(exc, OrderNotFound):
                raise NotFound(
                    ErrorCode.ORDER_NOT_FOUND, order_id=payment.order_id, payment_id=payment.payment_id
                ) from exc
            logger.error(
                "order_fetch_failed payment_id=%s order_id=%s error=%s",
                payment.payment_id,
                payment.order_id,
                exc,
            )
            raise ExternalServiceError(
                "failed to fetch order information for payment",
                exc,
                order_id=payment.order_id,
                payment_id=payment.payment_id,
            ) from exc
        finally:
            order_id_ctx.reset(order_token)
        return payment.model_copy(update={"order": order})

    def _verify_order_eligibility(self, order_id: int) -> OrderSummary:
        try:
            order = self.order_gateway.get_order(order_id)
        except OrderNotFound as exc:
            raise NotFound(ErrorCode.ORDER_NOT_FOUND, order_id=order_id) from exc
        except CommunicationError as exc:
            logger.error("order_service_unreachable order_id=%s error=%s", order_id, exc)
            raise ExternalServiceError("error communicating with order service", exc, order_id=order_id) from exc
        if order.order_status != ORDER_STATUS_ORDERED:
            raise InvalidInput(
                ErrorCode.INVALID_ORDER_STATUS,
                f"cannot process payment for order with status {order.order_status}",
                order_id=order_id,
            )
        return order

    def _advance_order(self, order_id: int, payment_id: int | None) -> None:
        try:
            self.order_gateway.advance_order_status(order_id)
        except OrderGatewayError as exc:
            logger.error(
                "order_status_update_failed order_id=%s payment_id=%s error=%s",
                order_id,
                payment_id,
                exc,
            )
            raise ExternalServiceError(
                "payment saved but failed to update order status",
                exc,
                order_id=order_id,
                payment_id=payment_id,
            ) from exc
