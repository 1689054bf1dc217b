import secrets
from datetime import datetime, timedelta, timezone

from headway.core.config import settings
from headway.models.booking import Booking


def generate_token() -> str:
    """256 random bits, URL safe. No uniqueness check: collisions are not a practical concern."""
    return secrets.token_urlsafe(32)


def token_expiration(now: datetime | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now + timedelta(days=settings.BOOKING_TOKEN_TTL_DAYS)


def _aware(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes for timezone=True columns
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def is_token_expired(booking: Booking, now: datetime | None = None) -> bool:
    if not booking.token_expires_at:
        return False
    now = now or datetime.now(timezone.utc)
    return _aware(booking.token_expires_at) < now


def ensure_token_fresh(booking: Booking, now: datetime | None = None) -> bool:
    """Return True when the completion token may be used.

    Expired tokens of bookings whose details are still missing slide forward
    another full validity window instead of failing. Once details are
    completed an expired token is reported as expired. The caller commits.
    """
    now = now or datetime.now(timezone.utc)
    if not is_token_expired(booking, now):
        return True
    if booking.details_completed:
        return False
    booking.token_expires_at = token_expiration(now)
    return True
