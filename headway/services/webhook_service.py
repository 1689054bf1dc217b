import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from headway.core.errors import NotFoundError, ValidationError
from headway.models.booking import Booking
from headway.models.booking_payment import BookingPayment
from headway.models.trip import Trip
from headway.services.audit_service import log_audit
from headway.services.email_service import queue_email
from headway.services.email_templates import booking_completion_email, completion_url
from headway.services.reconciliation import recompute_payment_status

logger = logging.getLogger(__name__)

ORDER_COMPLETED = "ORDER_COMPLETED"
# event -> ledger status; these entries are zeroed so they can never be counted twice
FAILURE_EVENTS = {
    "ORDER_CANCELLED": "cancelled",
    "ORDER_PAYMENT_FAILED": "failed",
    "ORDER_PAYMENT_DECLINED": "failed",
}


@dataclass
class WebhookOutcome:
    event: str
    payment_id: str
    booking_id: str
    payment_status: str | None = None
    handled: bool = False


def handle_revolut_event(db: Session, event: dict) -> WebhookOutcome:
    """Apply one (already authenticated) Revolut order event to the ledger.

    Ledger mutation and reconciliation are committed together; the
    completion email goes out after the commit.
    """
    order_id = event.get("order_id") if isinstance(event, dict) else None
    if not order_id or not isinstance(order_id, str):
        raise ValidationError("Missing order_id")

    payment = db.query(BookingPayment).filter(BookingPayment.external_order_id == order_id).first()
    if not payment:
        logger.warning("Payment not found for Revolut order %s", order_id)
        raise NotFoundError("Payment not found")

    event_type = str(event.get("event") or "")
    outcome = WebhookOutcome(event=event_type, payment_id=payment.id, booking_id=payment.booking_id)

    if event_type == ORDER_COMPLETED:
        payment.external_status = "completed"
    elif event_type in FAILURE_EVENTS:
        payment.external_status = FAILURE_EVENTS[event_type]
        payment.amount = Decimal("0")
    else:
        logger.info("Ignoring Revolut event %s for order %s", event_type or "<none>", order_id)
        return outcome

    payment.updated_at = datetime.now(timezone.utc)
    outcome.handled = True
    outcome.payment_status = recompute_payment_status(db, payment.booking_id)
    log_audit(db, actor="revolut", action="payment_webhook", entity_type="payment", entity_id=payment.id,
              details={"event": event_type, "order_id": order_id, "payment_status": outcome.payment_status})
    db.commit()

    if event_type == ORDER_COMPLETED:
        send_completion_email_if_needed(db, payment.booking_id)
    return outcome


def send_completion_email_if_needed(db: Session, booking_id: str) -> bool:
    """Best effort: failures are logged, never raised."""
    try:
        booking = db.get(Booking, booking_id)
        if not booking or booking.details_completed or not booking.completion_token:
            return False
        trip = db.get(Trip, booking.trip_id)
        if not trip:
            return False
        subject, text, html = booking_completion_email(
            booking.customer_name, trip.title, completion_url(booking.completion_token), booking.token_expires_at,
        )
        queue_email(db, booking.customer_email, subject, text, html, related_booking_id=booking.id)
        return True
    except Exception:
        logger.exception("Error sending completion email for booking %s", booking_id)
        db.rollback()
        return False
