import hashlib
import hmac
import os
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REVOLUT_WEBHOOK_SECRET", "wsk_test_secret")
os.environ.setdefault("CRON_SECRET", "cron-test-secret")
os.environ.setdefault("RESEND_API_KEY", "")
os.environ.setdefault("SITE_URL", "https://headwaytrips.test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from headway.core.config import settings
from headway.core.errors import GatewayError
from headway.core.security import create_access_token, hash_password
from headway.db.session import Base, get_db
from headway.main import app
from headway.models.booking import Booking
from headway.models.booking_payment import BookingPayment
from headway.models.trip import Trip
from headway.models.user import User
from headway.services.rate_limit import RateLimiter, get_rate_limiter
from headway.services.revolut_client import RevolutOrder, get_revolut_client
import headway.models.audit_log  # noqa: F401
import headway.models.client  # noqa: F401
import headway.models.email_log  # noqa: F401
import headway.models.passenger  # noqa: F401

WEBHOOK_SECRET = settings.REVOLUT_WEBHOOK_SECRET


class StubGateway:
    """Stands in for RevolutClient; records orders and lets tests flip their state."""

    def __init__(self):
        self.orders = {}
        self.created = []
        self.fail_with = None

    def create_order(self, amount, currency, description, redirect_url=None):
        if self.fail_with:
            raise self.fail_with
        oid = f"order-{len(self.created) + 1}"
        self.created.append({"id": oid, "amount": Decimal(amount), "currency": currency,
                             "description": description, "redirect_url": redirect_url})
        self.orders[oid] = {"id": oid, "state": "PENDING"}
        return RevolutOrder(id=oid, state="PENDING", checkout_url=f"https://checkout.revolut.test/{oid}")

    def get_order(self, order_id):
        if order_id not in self.orders:
            raise GatewayError("Revolut API error: 404 - not found", upstream_status=404)
        return self.orders[order_id]


class MemoryCounter:
    """The subset of the redis client the rate limiter uses."""

    def __init__(self):
        self.counts = {}
        self.ttls = {}

    def incr(self, key):
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    def expire(self, key, seconds):
        self.ttls[key] = seconds
        return True

    def ttl(self, key):
        return self.ttls.get(key, -1)


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    sent = []

    def fake_send(to_email, subject, text, html=None):
        sent.append({"to": to_email, "subject": subject, "text": text, "html": html})

    monkeypatch.setattr("headway.services.email_service.send_email", fake_send)
    monkeypatch.setattr("headway.services.reminder_service.send_email", fake_send)
    return sent


@pytest.fixture
def gateway():
    return StubGateway()


@pytest.fixture
def counter():
    return MemoryCounter()


@pytest.fixture
def client(db, gateway, counter):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_revolut_client] = lambda: gateway
    app.dependency_overrides[get_rate_limiter] = lambda: RateLimiter(counter)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_trip(db):
    def _make(price="1000.00", **kw):
        t = Trip(
            id=kw.pop("id", str(uuid.uuid4())),
            title=kw.pop("title", "Patagonia Trek"),
            price_value=Decimal(price),
            currency=kw.pop("currency", "USD"),
            available=kw.pop("available", True),
            booking_count=kw.pop("booking_count", 0),
            departure_date=kw.pop("departure_date", "2027-03-10"),
            start_dates_csv=kw.pop("start_dates_csv", ""),
            **kw,
        )
        db.add(t)
        db.commit()
        return t
    return _make


@pytest.fixture
def make_booking(db, make_trip):
    def _make(total="1000.00", trip=None, **kw):
        trip = trip or make_trip(price=total)
        now = datetime.now(timezone.utc)
        b = Booking(
            id=kw.pop("id", str(uuid.uuid4())),
            trip_id=trip.id,
            customer_name=kw.pop("customer_name", "Ana Torres"),
            customer_email=kw.pop("customer_email", "ana@example.com"),
            adults=kw.pop("adults", 1),
            children=kw.pop("children", 0),
            subtotal=Decimal(total),
            total_price=Decimal(total),
            currency="USD",
            status=kw.pop("status", "pending"),
            payment_status=kw.pop("payment_status", "pending"),
            completion_token=kw.pop("completion_token", uuid.uuid4().hex),
            token_expires_at=kw.pop("token_expires_at", now + timedelta(days=30)),
            details_completed=kw.pop("details_completed", False),
            created_at=now,
            updated_at=now,
            **kw,
        )
        db.add(b)
        db.commit()
        return b
    return _make


@pytest.fixture
def add_payment(db):
    def _add(booking, amount, external_status=None, order_id=None, method=None):
        p = BookingPayment(
            id=str(uuid.uuid4()),
            booking_id=booking.id,
            amount=Decimal(amount),
            currency="USD",
            payment_method=method or ("revolut" if order_id else "transfer"),
            external_order_id=order_id,
            external_status=external_status,
            payment_date="2026-10-01",
        )
        db.add(p)
        db.commit()
        return p
    return _add


@pytest.fixture
def staff_headers(db):
    def _headers(role="admin"):
        u = User(id=str(uuid.uuid4()), email=f"{role}-{uuid.uuid4().hex[:6]}@headwaytrips.test", full_name=role.title(),
                 role=role, password_hash=hash_password("pw-123456"), is_active=True)
        db.add(u)
        db.commit()
        return {"Authorization": f"Bearer {create_access_token(u.id, role=u.role)}"}
    return _headers


@pytest.fixture
def signed():
    def _sign(body: bytes, timestamp: str = "1730000000000", secret: str = WEBHOOK_SECRET) -> dict:
        digest = hmac.new(secret.encode(), b"v1." + timestamp.encode() + b"." + body, hashlib.sha256).hexdigest()
        return {
            "Revolut-Signature": f"v1={digest}",
            "Revolut-Request-Timestamp": timestamp,
            "Content-Type": "application/json",
        }
    return _sign
