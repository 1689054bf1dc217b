"""Booking payment status reconciliation.

A booking's ``payment_status`` is never incremented or decremented. It is
recomputed from the full payment ledger every time something changes, so
duplicate or out-of-order webhook deliveries converge on the same answer.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable

from sqlalchemy.orm import Session

from headway.models.booking import Booking
from headway.models.booking_payment import BookingPayment

ZERO = Decimal("0")


def counts_toward_total(payment: BookingPayment) -> bool:
    # manual payments have no external status; gateway ones count once completed
    return payment.external_status is None or payment.external_status == "completed"


def paid_total(payments: Iterable[BookingPayment]) -> Decimal:
    return sum((Decimal(p.amount) for p in payments if counts_toward_total(p)), ZERO)


def classify_payment_status(total_paid: Decimal, total_price: Decimal) -> str:
    if total_paid >= Decimal(total_price):
        return "paid"
    if total_paid > ZERO:
        return "partial"
    return "pending"


def remaining_balance(total_price: Decimal, payments: Iterable[BookingPayment]) -> Decimal:
    return max(ZERO, Decimal(total_price) - paid_total(payments))


def ledger_for(db: Session, booking_id: str) -> list[BookingPayment]:
    return db.query(BookingPayment).filter(BookingPayment.booking_id == booking_id).all()


def recompute_payment_status(db: Session, booking_id: str) -> str | None:
    """Re-derive and store the booking's payment_status. Flushes, the caller commits.

    Returns the new status, or None when the booking does not exist.
    """
    booking = db.get(Booking, booking_id)
    if not booking:
        return None
    db.flush()
    status = classify_payment_status(paid_total(ledger_for(db, booking_id)), booking.total_price)
    booking.payment_status = status
    booking.updated_at = datetime.now(timezone.utc)
    db.flush()
    return status
