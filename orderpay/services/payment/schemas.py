"""Entities and request/response schemas for the payment service."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field

from orderpay.common.state_machine import PaymentStatus


ORDER_STATUS_ORDERED = "ORDERED"


class OrderSummary(BaseModel):
    """Point-in-time snapshot of an order owned by the order service."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    order_id: int = Field(validation_alias=AliasChoices("orderId", "order_id"))
    order_status: str | None = Field(default=None, validation_alias=AliasChoices("orderStatus", "order_status"))
    order_fee: float | None = Field(default=None, validation_alias=AliasChoices("orderFee", "order_fee"))
    order_desc: str | None = Field(default=None, validation_alias=AliasChoices("orderDesc", "order_desc"))
    order_date: str | None = Field(default=None, validation_alias=AliasChoices("orderDate", "order_date"))


class Payment(BaseModel):
    """Payment record as seen by the orchestrator.

    `order` is only set when the payment has been enriched with a fresh order
    snapshot. `is_paid` is derived from status and cannot be set directly.
    """

    payment_id: int | None = None
    order_id: int
    status: PaymentStatus = PaymentStatus.NOT_STARTED
    state_version: int = 0
    order: OrderSummary | None = None

    @computed_field
    @property
    def is_paid(self) -> bool:
        return self.status is PaymentStatus.COMPLETED


class PaymentCreateRequest(BaseModel):
    """Payment creation payload; status defaults to NOT_STARTED."""

    order_id: int | None = None
    status: PaymentStatus | None = None


class PaymentResponse(BaseModel):
    payment_id: int
    order_id: int
    status: PaymentStatus
    is_paid: bool
    order: OrderSummary | None = None

    @classmethod
    def from_payment(cls, payment: Payment) -> "PaymentResponse":
        return cls(
            payment_id=payment.payment_id,
            order_id=payment.order_id,
            status=payment.status,
            is_paid=payment.is_paid,
            order=payment.order,
        )


class ErrorResponse(BaseModel):
    code: str
    detail: str
    context: dict = Field(default_factory=dict)
