from datetime import datetime, timedelta, timezone
from decimal import Decimal

from headway.core.errors import GatewayError
from headway.models.booking import Booking
from headway.models.booking_payment import BookingPayment
from headway.models.client import Client
from headway.models.passenger import BookingPassenger
from headway.models.trip import Trip


def _reserve_body(trip, **kw):
    body = {"trip_id": trip.id, "adults": 2, "children": 1, "customer_name": "Ana Torres",
            "customer_email": "ana@example.com"}
    body.update(kw)
    return body


def test_reserve_creates_pending_booking(client, db, make_trip, sent_emails):
    trip = make_trip(price="500.00")
    r = client.post("/api/v1/bookings/reserve", json=_reserve_body(trip))

    assert r.status_code == 200
    data = r.json()
    assert data["total_price"] == 1500.0
    b = db.get(Booking, data["booking_id"])
    assert b.completion_token == data["token"]
    assert b.status == "pending"
    assert b.payment_status == "pending"
    assert not b.details_completed
    assert db.get(Trip, trip.id).booking_count == 0
    assert db.query(Client).filter(Client.email == "ana@example.com").count() == 1
    assert [e["subject"] for e in sent_emails if "Nueva reserva" in e["subject"]]


def test_reserve_reuses_client_case_insensitively(client, db, make_trip):
    trip = make_trip(price="100.00")
    client.post("/api/v1/bookings/reserve", json=_reserve_body(trip, adults=1, children=0))
    client.post("/api/v1/bookings/reserve", json=_reserve_body(trip, adults=1, children=0, customer_email="ANA@example.com"))
    assert db.query(Client).count() == 1


def test_reserve_validation(client, make_trip):
    trip = make_trip(group_size_max=4, booking_count=3)
    r = client.post("/api/v1/bookings/reserve", json=_reserve_body(trip, adults=1, children=1))
    assert r.status_code == 400
    assert r.json() == {"error": "Only 1 spots left"}

    r = client.post("/api/v1/bookings/reserve", json=_reserve_body(trip, adults=0))
    assert r.status_code == 400

    r = client.post("/api/v1/bookings/reserve", json=_reserve_body(trip, adults=21))
    assert r.status_code == 400

    r = client.post("/api/v1/bookings/reserve", json={"trip_id": trip.id})
    assert r.status_code == 400
    assert r.json()["error"].startswith("Missing or invalid fields")


def test_reserve_unknown_or_unavailable_trip(client, make_trip):
    r = client.post("/api/v1/bookings/reserve", json={"trip_id": "nope", "adults": 1, "customer_name": "A",
                                                      "customer_email": "a@example.com"})
    assert r.status_code == 404

    trip = make_trip(available=False)
    assert client.post("/api/v1/bookings/reserve", json=_reserve_body(trip)).status_code == 400


def test_reserve_rejects_unknown_departure_date(client, make_trip):
    trip = make_trip(start_dates_csv="2027-01-05,2027-02-05")
    r = client.post("/api/v1/bookings/reserve", json=_reserve_body(trip, selected_date="2027-03-05"))
    assert r.status_code == 400
    r = client.post("/api/v1/bookings/reserve", json=_reserve_body(trip, selected_date="2027-02-05"))
    assert r.status_code == 200


def test_unpaid_intents_do_not_take_seats(client, db, make_trip):
    trip = make_trip(price="100.00", group_size_max=4)
    for ip in ("198.51.100.1", "198.51.100.2"):
        r = client.post("/api/v1/bookings/reserve", json=_reserve_body(trip, adults=2, children=0),
                        headers={"X-Forwarded-For": ip})
        assert r.status_code == 200
    r = client.post("/api/v1/bookings/payment-link", json=_reserve_body(trip, adults=2, children=0))
    assert r.status_code == 200

    r = client.post("/api/v1/bookings/reserve", json=_reserve_body(trip, adults=1, children=0))
    assert r.status_code == 200
    db.expire_all()
    assert db.get(Trip, trip.id).booking_count == 0


def test_payment_link_creates_deposit_order(client, db, make_trip, gateway):
    trip = make_trip(price="1000.00", deposit_percentage=30)
    r = client.post("/api/v1/bookings/payment-link", json=_reserve_body(trip, adults=1, children=0))

    assert r.status_code == 200
    data = r.json()
    assert data["deposit"] == 300.0
    assert data["total_price"] == 1000.0
    assert data["checkout_url"] == "https://checkout.revolut.test/order-1"
    assert gateway.created[0]["amount"] == Decimal("300.00")
    assert data["token"] in gateway.created[0]["redirect_url"]

    p = db.query(BookingPayment).filter(BookingPayment.booking_id == data["booking_id"]).one()
    assert p.external_order_id == "order-1"
    assert p.external_status == "pending"
    assert p.payment_method == "revolut"
    assert db.get(Booking, data["booking_id"]).payment_status == "pending"


def test_payment_link_default_deposit_is_ten_percent(client, make_trip, gateway):
    trip = make_trip(price="450.00")
    r = client.post("/api/v1/bookings/payment-link", json=_reserve_body(trip, adults=1, children=0))
    assert r.json()["deposit"] == 45.0


def test_payment_link_gateway_failure_passes_message_through(client, db, make_trip, gateway):
    gateway.fail_with = GatewayError("Revolut API error: 503 - down", upstream_status=503)
    trip = make_trip(price="1000.00")
    r = client.post("/api/v1/bookings/payment-link", json=_reserve_body(trip))

    assert r.status_code == 500
    assert r.json() == {"error": "Revolut API error: 503 - down"}
    assert db.query(BookingPayment).count() == 0


def test_validate_token(client, make_booking):
    b = make_booking(total="800.00")
    r = client.get("/api/v1/bookings/validate-token", params={"token": b.completion_token})

    assert r.status_code == 200
    data = r.json()
    assert data["booking_id"] == b.id
    assert data["is_expired"] is False
    assert data["payment_status"] == "pending"
    assert data["payment_completed"] is False
    assert data["trip"]["title"] == "Patagonia Trek"


def test_validate_token_renews_expired_incomplete_booking(client, db, make_booking):
    b = make_booking(token_expires_at=datetime.now(timezone.utc) - timedelta(days=3))
    r = client.get("/api/v1/bookings/validate-token", params={"token": b.completion_token})

    assert r.json()["is_expired"] is False
    db.expire_all()
    renewed = db.get(Booking, b.id).token_expires_at.replace(tzinfo=timezone.utc)
    assert renewed > datetime.now(timezone.utc) + timedelta(days=29)


def test_validate_token_expired_after_completion(client, make_booking):
    b = make_booking(details_completed=True, token_expires_at=datetime.now(timezone.utc) - timedelta(days=3))
    r = client.get("/api/v1/bookings/validate-token", params={"token": b.completion_token})
    assert r.json()["is_expired"] is True


def test_validate_token_unknown_and_missing(client):
    assert client.get("/api/v1/bookings/validate-token", params={"token": "nope"}).status_code == 404
    assert client.get("/api/v1/bookings/validate-token").status_code == 400


def test_validate_by_order_syncs_completed_gateway_order(client, db, make_booking, add_payment, gateway):
    b = make_booking(total="1000.00")
    add_payment(b, "100.00", external_status="pending", order_id="order-9")
    gateway.orders["order-9"] = {"id": "order-9", "state": "COMPLETED"}

    r = client.get("/api/v1/bookings/validate-token", params={"order_id": "order-9"})

    data = r.json()
    assert data["payment_status"] == "partial"
    assert data["payment_completed"] is True
    db.expire_all()
    assert db.query(BookingPayment).one().external_status == "completed"


def test_validate_by_order_tolerates_gateway_errors(client, make_booking, add_payment):
    b = make_booking(total="1000.00")
    add_payment(b, "100.00", external_status="pending", order_id="order-missing-upstream")
    r = client.get("/api/v1/bookings/validate-token", params={"order_id": "order-missing-upstream"})
    assert r.status_code == 200
    assert r.json()["payment_status"] == "pending"


def _complete_body(token, **kw):
    body = {"token": token, "full_name": "Ana María Torres", "email": "ana.torres@example.com",
            "phone": "+54 11 5555 0000", "nationality": "AR", "passport_number": "AB123456",
            "dietary_notes": "vegetarian"}
    body.update(kw)
    return body


def test_complete_booking(client, db, make_booking, sent_emails):
    b = make_booking()
    r = client.post("/api/v1/bookings/complete", json=_complete_body(b.completion_token))

    assert r.status_code == 200
    assert r.json() == {"success": True, "booking_id": b.id}
    db.expire_all()
    booking = db.get(Booking, b.id)
    assert booking.details_completed
    assert booking.status == "confirmed"
    assert booking.customer_email == "ana.torres@example.com"
    passenger = db.query(BookingPassenger).filter(BookingPassenger.booking_id == b.id).one()
    assert passenger.document_number == "AB123456"
    client_row = db.get(Client, booking.client_id)
    assert "Dieta: vegetarian" in client_row.notes
    assert sent_emails[-1]["to"] == "ana.torres@example.com"


def test_complete_booking_twice_is_400(client, make_booking):
    b = make_booking(details_completed=True)
    r = client.post("/api/v1/bookings/complete", json=_complete_body(b.completion_token))
    assert r.status_code == 400


def test_complete_booking_errors(client, make_booking):
    assert client.post("/api/v1/bookings/complete", json=_complete_body("nope")).status_code == 404
    b = make_booking()
    r = client.post("/api/v1/bookings/complete", json=_complete_body(b.completion_token, phone=" "))
    assert r.status_code == 400


def test_complete_booking_with_expired_token_renews(client, db, make_booking):
    b = make_booking(token_expires_at=datetime.now(timezone.utc) - timedelta(days=1))
    r = client.post("/api/v1/bookings/complete", json=_complete_body(b.completion_token))
    assert r.status_code == 200


def test_balance_payment_link(client, db, make_booking, add_payment, gateway):
    b = make_booking(total="1000.00")
    add_payment(b, "300.00", external_status="completed", order_id="order-dep")

    r = client.post(f"/api/v1/bookings/{b.id}/pay", json={"customer_email": "ANA@example.com"})

    assert r.status_code == 200
    assert r.json()["remaining"] == 700.0
    assert r.json()["amount"] == 700.0
    assert gateway.created[-1]["amount"] == Decimal("700.00")
    assert db.query(BookingPayment).filter(BookingPayment.external_status == "pending").count() == 1


def test_balance_payment_rules(client, make_booking, add_payment):
    b = make_booking(total="1000.00")
    add_payment(b, "1000.00")
    url = f"/api/v1/bookings/{b.id}/pay"

    assert client.post(url, json={"customer_email": "someone@else.com"}).status_code == 404
    assert client.post(url, json={"customer_email": "ana@example.com"}).status_code == 400

    other = make_booking(total="500.00", status="cancelled")
    assert client.post(f"/api/v1/bookings/{other.id}/pay", json={"customer_email": "ana@example.com"}).status_code == 400

    partial = make_booking(total="500.00")
    r = client.post(f"/api/v1/bookings/{partial.id}/pay", json={"customer_email": "ana@example.com", "amount": "600"})
    assert r.status_code == 400
    assert r.json() == {"error": "Amount cannot exceed the remaining balance"}


def test_booking_initiation_is_rate_limited(client, make_trip, monkeypatch):
    from headway.core.config import settings

    monkeypatch.setattr(settings, "RATE_LIMIT_BOOKING_LIMIT", 2)
    trip = make_trip(price="10.00")
    body = _reserve_body(trip, adults=1, children=0)

    assert client.post("/api/v1/bookings/reserve", json=body).status_code == 200
    assert client.post("/api/v1/bookings/reserve", json=body).status_code == 200
    r = client.post("/api/v1/bookings/reserve", json=body)
    assert r.status_code == 429
    assert r.headers["Retry-After"] == "900"
