import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from headway.core.errors import NotFoundError, ValidationError
from headway.models.booking import Booking
from headway.models.booking_payment import BookingPayment, MANUAL_METHODS
from headway.services.audit_service import log_audit
from headway.services.reconciliation import ledger_for, recompute_payment_status, remaining_balance
from headway.services.revolut_client import RevolutClient, RevolutOrder


def get_booking_or_404(db: Session, booking_id: str) -> Booking:
    b = db.get(Booking, booking_id)
    if not b:
        raise NotFoundError("Booking not found")
    return b


def list_payments(db: Session, booking_id: str) -> list[BookingPayment]:
    get_booking_or_404(db, booking_id)
    return (
        db.query(BookingPayment)
        .filter(BookingPayment.booking_id == booking_id)
        .order_by(BookingPayment.payment_date.desc(), BookingPayment.created_at.desc())
        .all()
    )


def booking_balance(db: Session, booking: Booking) -> Decimal:
    return remaining_balance(booking.total_price, ledger_for(db, booking.id))


def payment_currency(booking: Booking, currency: str | None) -> str:
    """The ledger is summed in the booking currency, so payments must use it."""
    expected = (booking.currency or "USD").upper()
    if currency and currency.strip().upper() != expected:
        raise ValidationError(f"Currency must match the booking currency ({expected})")
    return expected


def record_manual_payment(db: Session, booking_id: str, amount: Decimal, actor: str, currency: str | None = None,
                          payment_method: str = "transfer", reference: str | None = None,
                          notes: str | None = None, payment_date: str | None = None) -> BookingPayment:
    booking = get_booking_or_404(db, booking_id)
    if amount is None or Decimal(amount) <= 0:
        raise ValidationError("Amount is required and must be greater than 0")
    if payment_method not in MANUAL_METHODS:
        raise ValidationError(f"payment_method must be one of {', '.join(MANUAL_METHODS)}")
    currency = payment_currency(booking, currency)

    p = BookingPayment(
        id=str(uuid.uuid4()),
        booking_id=booking.id,
        amount=Decimal(amount),
        currency=currency,
        payment_method=payment_method,
        reference=reference,
        notes=notes,
        payment_date=payment_date or date.today().isoformat(),
    )
    db.add(p)
    status = recompute_payment_status(db, booking.id)
    log_audit(db, actor=actor, action="payment_recorded", entity_type="payment", entity_id=p.id,
              details={"booking_id": booking.id, "amount": str(p.amount), "payment_status": status})
    db.commit()
    db.refresh(p)
    return p


def delete_payment(db: Session, booking_id: str, payment_id: str, actor: str) -> str:
    booking = get_booking_or_404(db, booking_id)
    p = db.query(BookingPayment).filter(BookingPayment.id == payment_id, BookingPayment.booking_id == booking.id).first()
    if not p:
        raise NotFoundError("Payment not found")
    db.delete(p)
    status = recompute_payment_status(db, booking.id)
    log_audit(db, actor=actor, action="payment_deleted", entity_type="payment", entity_id=payment_id,
              details={"booking_id": booking.id, "amount": str(p.amount), "payment_status": status})
    db.commit()
    return status


def create_gateway_payment(db: Session, gateway: RevolutClient, booking: Booking, amount: Decimal, currency: str,
                           description: str, redirect_url: str | None = None,
                           reference: str | None = None) -> tuple[BookingPayment, RevolutOrder]:
    """Open a Revolut order and append a pending ledger entry for it.

    The order is created first: if the gateway fails nothing is written.
    """
    order = gateway.create_order(amount, currency, description, redirect_url)
    p = BookingPayment(
        id=str(uuid.uuid4()),
        booking_id=booking.id,
        amount=Decimal(amount),
        currency=currency.upper(),
        payment_method="revolut",
        external_order_id=order.id,
        external_status="pending",
        reference=reference or order.checkout_url,
        payment_date=date.today().isoformat(),
    )
    db.add(p)
    db.commit()
    db.refresh(p)
    return p, order
