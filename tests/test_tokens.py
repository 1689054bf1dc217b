from datetime import datetime, timedelta, timezone

from headway.core.config import settings
from headway.models.booking import Booking
from headway.services.booking_tokens import ensure_token_fresh, generate_token, is_token_expired, token_expiration

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def test_generated_tokens_are_long_and_distinct():
    tokens = {generate_token() for _ in range(50)}
    assert len(tokens) == 50
    assert all(len(t) >= 43 for t in tokens)


def test_token_expiration_window():
    assert token_expiration(NOW) - NOW == timedelta(days=settings.BOOKING_TOKEN_TTL_DAYS)


def test_unexpired_token_is_usable():
    b = Booking(token_expires_at=NOW + timedelta(hours=1), details_completed=False)
    assert ensure_token_fresh(b, NOW)
    assert b.token_expires_at == NOW + timedelta(hours=1)


def test_expired_token_renews_while_details_missing():
    b = Booking(token_expires_at=NOW - timedelta(days=2), details_completed=False)
    assert is_token_expired(b, NOW)
    assert ensure_token_fresh(b, NOW)
    assert b.token_expires_at == token_expiration(NOW)
    assert not is_token_expired(b, NOW)


def test_expired_token_of_completed_booking_stays_expired():
    expired = NOW - timedelta(days=2)
    b = Booking(token_expires_at=expired, details_completed=True)
    assert not ensure_token_fresh(b, NOW)
    assert b.token_expires_at == expired


def test_naive_timestamps_are_treated_as_utc():
    b = Booking(token_expires_at=(NOW - timedelta(minutes=1)).replace(tzinfo=None), details_completed=True)
    assert is_token_expired(b, NOW)


def test_missing_expiry_never_expires():
    assert not is_token_expired(Booking(token_expires_at=None), NOW)
