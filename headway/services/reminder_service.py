import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import or_
from sqlalchemy.orm import Session

from headway.core.config import settings
from headway.models.booking import Booking
from headway.models.trip import Trip
from headway.services.booking_tokens import ensure_token_fresh, generate_token, token_expiration
from headway.services.email_service import send_email
from headway.services.email_templates import booking_reminder_email, completion_url

logger = logging.getLogger(__name__)


def bookings_due_for_reminder(db: Session, now: datetime) -> list[Booking]:
    cutoff = now - timedelta(hours=settings.REMINDER_INTERVAL_HOURS)
    return (
        db.query(Booking)
        .filter(
            Booking.details_completed == False,  # noqa: E712
            Booking.status != "cancelled",
            or_(Booking.reminder_sent_at.is_(None), Booking.reminder_sent_at < cutoff),
        )
        .order_by(Booking.created_at.asc())
        .all()
    )


def process_booking_reminders(db: Session, now: datetime | None = None) -> dict:
    """Remind customers with incomplete details. Per-booking failures are counted, not raised.

    A missing token is issued and an expired one slides forward before the
    link goes out.
    """
    now = now or datetime.now(timezone.utc)
    result = {"sent": 0, "errors": 0, "details": []}

    for b in bookings_due_for_reminder(db, now):
        try:
            if not b.completion_token:
                b.completion_token = generate_token()
                b.token_expires_at = token_expiration(now)
            ensure_token_fresh(b, now)
            db.commit()

            trip = db.get(Trip, b.trip_id)
            title = trip.title if trip else b.trip_id
            subject, text, html = booking_reminder_email(b.customer_name, title, completion_url(b.completion_token))
            # send synchronously so a failure is reported for this booking
            send_email(b.customer_email, subject, text, html)

            b.reminder_sent_at = now
            db.commit()
            result["sent"] += 1
            result["details"].append({"booking_id": b.id, "email": b.customer_email, "status": "sent"})
        except Exception as e:
            db.rollback()
            logger.warning("Reminder for booking %s failed: %s", b.id, e)
            result["errors"] += 1
            result["details"].append({"booking_id": b.id, "email": b.customer_email, "status": "error", "error": str(e)})

    return result
