"""Payment state machine enforced by the orchestrator.

NOT_STARTED -> IN_PROGRESS -> COMPLETED, with a cancellation edge from every
non-terminal status to CANCELED. Every function below matches all four
statuses explicitly; anything else is rejected as an unknown status.
"""

from enum import Enum

from orderpay.common.errors import ErrorCode, InvalidTransition, UnknownStatus


class PaymentStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"


TERMINAL_STATUSES: frozenset[PaymentStatus] = frozenset({PaymentStatus.COMPLETED, PaymentStatus.CANCELED})


def next_status(current: PaymentStatus) -> PaymentStatus:
    """Return the forward successor of `current` or raise when there is none."""

    match current:
        case PaymentStatus.NOT_STARTED:
            return PaymentStatus.IN_PROGRESS
        case PaymentStatus.IN_PROGRESS:
            return PaymentStatus.COMPLETED
        case PaymentStatus.COMPLETED:
            raise InvalidTransition(ErrorCode.PAYMENT_ALREADY_COMPLETED, from_status="COMPLETED")
        case PaymentStatus.CANCELED:
            raise InvalidTransition(ErrorCode.PAYMENT_ALREADY_CANCELED, from_status="CANCELED")
        case _:
            raise UnknownStatus(current)


def cancellation_block_reason(current: PaymentStatus) -> ErrorCode | None:
    """Return why `current` cannot be canceled, or None when it can."""

    match current:
        case PaymentStatus.NOT_STARTED | PaymentStatus.IN_PROGRESS:
            return None
        case PaymentStatus.COMPLETED:
            return ErrorCode.PAYMENT_ALREADY_COMPLETED
        case PaymentStatus.CANCELED:
            return ErrorCode.PAYMENT_ALREADY_CANCELED
        case _:
            raise UnknownStatus(current)


def can_cancel(current: PaymentStatus) -> bool:
    return cancellation_block_reason(current) is None
