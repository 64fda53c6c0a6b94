"""SQLAlchemy-backed payment persistence."""

from datetime import datetime, timezone

from sqlalchemy import select, update

from orderpay.common.errors import UnknownStatus
from orderpay.common.state_machine import PaymentStatus
from orderpay.services.payment.models import PaymentRow
from orderpay.services.payment.schemas import Payment


def _to_payment(row: PaymentRow) -> Payment:
    try:
        status = PaymentStatus(row.status)
    except ValueError as exc:
        raise UnknownStatus(row.status, payment_id=row.payment_id) from exc
    return Payment(
        payment_id=row.payment_id,
        order_id=row.order_id,
        status=status,
        state_version=row.state_version,
    )


class SqlPaymentStore:
    """Durable map from payment id to payment record."""

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    def list_all(self) -> list[Payment]:
        with self.session_factory() as db:
            rows = db.execute(select(PaymentRow).order_by(PaymentRow.payment_id)).scalars().all()
            return [_to_payment(row) for row in rows]

    def get_by_id(self, payment_id: int) -> Payment | None:
        with self.session_factory() as db:
            row = db.get(PaymentRow, payment_id)
            return _to_payment(row) if row else None

    def save(self, payment: Payment) -> Payment:
        """Insert a new payment row and return it with its assigned id."""

        if payment.payment_id is not None:
            raise ValueError(f"payment {payment.payment_id} already persisted; use update_status")
        with self.session_factory() as db:
            row = PaymentRow(
                order_id=payment.order_id,
                status=payment.status.value,
                is_paid=payment.is_paid,
                state_version=0,
            )
            db.add(row)
            db.commit()
            return _to_payment(row)

    def update_status(self, payment: Payment, new_status: PaymentStatus) -> Payment | None:
        """Compare-and-swap the status of an existing payment.

        The write is guarded by `(payment_id, status, state_version)` as read by
        the caller. Returns None when another writer got there first.
        """

        with self.session_factory() as db:
            result = db.execute(
                update(PaymentRow)
                .where(
                    PaymentRow.payment_id == payment.payment_id,
                    PaymentRow.status == payment.status.value,
                    PaymentRow.state_version == payment.state_version,
                )
                .values(
                    status=new_status.value,
                    is_paid=new_status is PaymentStatus.COMPLETED,
                    state_version=payment.state_version + 1,
                    updated_at=datetime.now(timezone.utc),
                )
            )
            if result.rowcount != 1:
                db.rollback()
                return None
            db.commit()
        return payment.model_copy(update={"status": new_status, "state_version": payment.state_version + 1})
