"""Error taxonomy for the payment orchestrator.

Exception hierarchy:
    PaymentServiceError (base, carries an ErrorCode + context)
    ├── InvalidInput
    ├── NotFound
    ├── InvalidPaymentStatus
    │   ├── InvalidTransition
    │   └── UnknownStatus
    └── ExternalServiceError (always wraps the underlying cause)

    OrderGatewayError (raised by order service clients only)
    ├── OrderNotFound
    └── CommunicationError

Gateway errors are translated by the orchestrator and never reach callers.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable machine-readable error codes returned to callers."""

    PAYMENT_NOT_FOUND = "PAYMENT_NOT_FOUND"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    INVALID_ORDER_STATUS = "INVALID_ORDER_STATUS"
    PAYMENT_ALREADY_COMPLETED = "PAYMENT_ALREADY_COMPLETED"
    PAYMENT_ALREADY_CANCELED = "PAYMENT_ALREADY_CANCELED"
    INVALID_PAYMENT_STATUS = "INVALID_PAYMENT_STATUS"
    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"


DEFAULT_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.PAYMENT_NOT_FOUND: "payment not found",
    ErrorCode.ORDER_NOT_FOUND: "order not found",
    ErrorCode.MISSING_REQUIRED_FIELD: "required field missing",
    ErrorCode.INVALID_ORDER_STATUS: "order is not in a payable status",
    ErrorCode.PAYMENT_ALREADY_COMPLETED: "payment already completed",
    ErrorCode.PAYMENT_ALREADY_CANCELED: "payment already canceled",
    ErrorCode.INVALID_PAYMENT_STATUS: "invalid payment status",
    ErrorCode.CONCURRENT_MODIFICATION: "payment was modified concurrently",
    ErrorCode.EXTERNAL_SERVICE_ERROR: "order service unavailable",
}


class PaymentServiceError(Exception):
    """Base class for every error the orchestrator surfaces to callers."""

    def __init__(self, code: ErrorCode, message: str | None = None, **context: Any) -> None:
        self.code = code
        self.message = message or DEFAULT_MESSAGES[code]
        self.context = context
        super().__init__(self.message)

    def __str__(self) -> str:
        if not self.context:
            return f"{self.code.value}: {self.message}"
        details = " ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.code.value}: {self.message} ({details})"


class InvalidInput(PaymentServiceError):
    """Caller-supplied data fails a precondition."""


class NotFound(PaymentServiceError):
    """Referenced payment or order does not exist."""


class InvalidPaymentStatus(PaymentServiceError):
    """Requested lifecycle move is illegal given the current status."""


class InvalidTransition(InvalidPaymentStatus):
    """The state machine (or a concurrent writer) rejected a transition."""


class UnknownStatus(InvalidPaymentStatus):
    """A status value outside the closed enumeration was encountered."""

    def __init__(self, status: Any, **context: Any) -> None:
        super().__init__(
            ErrorCode.INVALID_PAYMENT_STATUS,
            f"unknown payment status: {status}",
            status=status,
            **context,
        )


class ExternalServiceError(PaymentServiceError):
    """The order service could not be reached or failed unexpectedly."""

    def __init__(self, message: str, cause: BaseException, **context: Any) -> None:
        super().__init__(ErrorCode.EXTERNAL_SERVICE_ERROR, message, **context)
        self.cause = cause
        self.__cause__ = cause


class OrderGatewayError(Exception):
    """Base class for order service client failures."""

    def __init__(self, order_id: int, message: str) -> None:
        self.order_id = order_id
        super().__init__(message)


class OrderNotFound(OrderGatewayError):
    """The order service answered that the order does not exist."""


class CommunicationError(OrderGatewayError):
    """Transport failure, timeout or unexpected response from the order service."""
