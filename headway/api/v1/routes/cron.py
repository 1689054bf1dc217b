import hmac

from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session

from headway.core.config import settings
from headway.core.errors import AuthenticationError
from headway.db.session import get_db
from headway.services.reminder_service import process_booking_reminders

router = APIRouter(tags=["cron"])


@router.get("/cron/booking-reminders")
def booking_reminders(authorization: str | None = Header(default=None), db: Session = Depends(get_db)):
    """Entry point for an external scheduler; Celery beat runs the same job in-cluster."""
    expected = f"Bearer {settings.CRON_SECRET}"
    if not settings.CRON_SECRET or not hmac.compare_digest((authorization or "").encode(), expected.encode()):
        raise AuthenticationError("Unauthorized")
    return process_booking_reminders(db)
