import logging

from sqlalchemy.orm import Session
from sqlalchemy.exc import ProgrammingError

from headway.db.session import SessionLocal
from headway.services.email_service import process_pending_emails
from headway.services.reminder_service import process_booking_reminders

logger = logging.getLogger(__name__)


def process_email_queue(limit: int = 50) -> dict:
    """Retry queued/failed emails. Run periodically via Celery beat."""
    db: Session = SessionLocal()
    try:
        try:
            return process_pending_emails(db, limit=limit)
        except ProgrammingError:
            # DB not migrated yet; don't crash the worker.
            db.rollback()
            return {"skipped": True, "reason": "missing_tables"}
    finally:
        db.close()


def send_booking_reminders() -> dict:
    db: Session = SessionLocal()
    try:
        try:
            result = process_booking_reminders(db)
        except ProgrammingError:
            db.rollback()
            return {"skipped": True, "reason": "missing_tables"}
        logger.info("Booking reminders: %s sent, %s errors", result["sent"], result["errors"])
        return {"sent": result["sent"], "errors": result["errors"]}
    finally:
        db.close()
