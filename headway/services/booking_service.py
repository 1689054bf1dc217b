import logging
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import func
from sqlalchemy.orm import Session

from headway.core.config import settings
from headway.core.errors import GatewayError, GoneError, NotFoundError, ValidationError
from headway.models.booking import Booking
from headway.models.booking_payment import BookingPayment
from headway.models.client import Client
from headway.models.passenger import BookingPassenger
from headway.models.trip import Trip
from headway.schemas.booking import CompleteBookingRequest, ReserveRequest
from headway.services.audit_service import log_audit
from headway.services.booking_tokens import ensure_token_fresh, generate_token, token_expiration
from headway.services.email_service import queue_email
from headway.services.email_templates import (
    booking_confirmation_email,
    completion_url,
    new_booking_notification_email,
)
from headway.services.payment_service import booking_balance, create_gateway_payment, get_booking_or_404
from headway.services.reconciliation import recompute_payment_status
from headway.services.revolut_client import RevolutClient

logger = logging.getLogger(__name__)

MAX_ADULTS = 20
MAX_CHILDREN = 20
DEFAULT_GROUP_SIZE = 20
DEFAULT_DEPOSIT_PERCENTAGE = 10
CENT = Decimal("0.01")


def deposit_amount(total_price: Decimal, percentage: int | None) -> Decimal:
    pct = DEFAULT_DEPOSIT_PERCENTAGE if percentage is None else percentage
    return (Decimal(total_price) * Decimal(pct) / Decimal(100)).quantize(CENT, rounding=ROUND_HALF_UP)


def find_or_create_client(db: Session, name: str, email: str) -> Client:
    c = db.query(Client).filter(func.lower(Client.email) == email.strip().lower()).first()
    if c:
        return c
    c = Client(id=str(uuid.uuid4()), full_name=name.strip(), email=email.strip())
    db.add(c)
    db.flush()
    return c


def create_booking_intent(db: Session, req: ReserveRequest) -> tuple[Booking, Trip]:
    """Validate the request against the trip and persist a pending booking with a completion token."""
    if not req.trip_id or not req.customer_name.strip() or not req.customer_email.strip():
        raise ValidationError("Missing required fields")
    if req.adults < 1 or req.adults > MAX_ADULTS:
        raise ValidationError("Invalid number of adults")
    children = req.children or 0
    if children < 0 or children > MAX_CHILDREN:
        raise ValidationError("Invalid number of children")

    # booking_count only moves when staff book seats; public intents just read it
    trip = db.get(Trip, req.trip_id)
    if not trip:
        raise NotFoundError("Trip not found")
    if not trip.available:
        raise ValidationError("This trip is not available")
    if req.selected_date and trip.start_dates and req.selected_date not in trip.start_dates:
        raise ValidationError("Invalid departure date")

    passengers = req.adults + children
    remaining = (trip.group_size_max or DEFAULT_GROUP_SIZE) - (trip.booking_count or 0)
    if passengers > remaining:
        raise ValidationError(f"Only {max(remaining, 0)} spots left")

    total_price = (Decimal(trip.price_value) * passengers).quantize(CENT)
    client = find_or_create_client(db, req.customer_name, req.customer_email)
    now = datetime.now(timezone.utc)

    booking = Booking(
        id=str(uuid.uuid4()),
        trip_id=trip.id,
        client_id=client.id,
        customer_name=req.customer_name.strip(),
        customer_email=req.customer_email.strip(),
        customer_phone="",
        adults=req.adults,
        children=children,
        travel_date=req.selected_date or trip.departure_date or date.today().isoformat(),
        subtotal=total_price,
        total_price=total_price,
        currency=trip.currency or "USD",
        status="pending",
        payment_status="pending",
        completion_token=generate_token(),
        token_expires_at=token_expiration(now),
        details_completed=False,
        created_at=now,
        updated_at=now,
    )
    db.add(booking)
    log_audit(db, actor="public", action="booking_created", entity_type="booking", entity_id=booking.id,
              details={"trip_id": trip.id, "passengers": passengers, "total_price": str(total_price)})
    db.commit()
    db.refresh(booking)
    return booking, trip


def _notify_new_booking(db: Session, booking: Booking, trip: Trip, with_payment: bool) -> None:
    subject, text, html = new_booking_notification_email(
        booking.customer_name, booking.customer_email, trip.title, booking.passengers,
        booking.total_price, booking.currency, booking.travel_date, booking.id, with_payment,
    )
    queue_email(db, settings.ADMIN_EMAIL, subject, text, html, related_booking_id=booking.id)


def reserve_booking(db: Session, req: ReserveRequest) -> Booking:
    """Booking without online payment; staff follow up with the customer."""
    booking, trip = create_booking_intent(db, req)
    _notify_new_booking(db, booking, trip, with_payment=False)
    return booking


def create_deposit_payment_link(db: Session, gateway: RevolutClient, req: ReserveRequest) -> dict:
    booking, trip = create_booking_intent(db, req)
    deposit = deposit_amount(booking.total_price, trip.deposit_percentage)
    pct = DEFAULT_DEPOSIT_PERCENTAGE if trip.deposit_percentage is None else trip.deposit_percentage
    passengers = booking.passengers
    description = f"Depósito {pct}% - {trip.title} ({passengers} pasajero{'s' if passengers > 1 else ''})"

    _, order = create_gateway_payment(
        db, gateway, booking, deposit, booking.currency, description,
        redirect_url=completion_url(booking.completion_token),
        reference=f"Depósito {pct}%",
    )
    _notify_new_booking(db, booking, trip, with_payment=True)
    return {
        "checkout_url": order.checkout_url,
        "booking_id": booking.id,
        "token": booking.completion_token,
        "deposit": float(deposit),
        "total_price": float(booking.total_price),
    }


def create_balance_payment_link(db: Session, gateway: RevolutClient, booking_id: str, customer_email: str,
                                amount: Decimal | None = None) -> dict:
    """Customer-initiated payment toward the outstanding balance of an existing booking."""
    booking = get_booking_or_404(db, booking_id)
    if (customer_email or "").strip().lower() != (booking.customer_email or "").lower():
        raise NotFoundError("Booking not found")
    if booking.status == "cancelled":
        raise ValidationError("A cancelled booking cannot be paid")

    remaining = booking_balance(db, booking)
    amount = Decimal(amount) if amount is not None else remaining
    if amount <= 0:
        raise ValidationError("Amount must be greater than 0")
    if amount > remaining:
        raise ValidationError("Amount cannot exceed the remaining balance")

    trip = db.get(Trip, booking.trip_id)
    title = trip.title if trip else booking.trip_id
    _, order = create_gateway_payment(
        db, gateway, booking, amount, booking.currency, f"Pago reserva - {title} - {booking.customer_name}",
        redirect_url=completion_url(booking.completion_token),
    )
    return {"checkout_url": order.checkout_url, "remaining": float(remaining), "amount": float(amount)}


def _booking_by_token_or_order(db: Session, token: str | None, order_id: str | None) -> Booking:
    if token:
        booking = db.query(Booking).filter(Booking.completion_token == token).first()
    else:
        payment = db.query(BookingPayment).filter(BookingPayment.external_order_id == order_id).first()
        booking = db.get(Booking, payment.booking_id) if payment else None
    if not booking:
        raise NotFoundError("Booking not found")
    return booking


def _sync_order_state(db: Session, gateway: RevolutClient, booking: Booking, order_id: str) -> None:
    """Catch up with a completed order whose webhook has not arrived yet."""
    payment = (
        db.query(BookingPayment)
        .filter(BookingPayment.external_order_id == order_id, BookingPayment.booking_id == booking.id)
        .first()
    )
    if not payment or payment.external_status == "completed":
        return
    try:
        order = gateway.get_order(order_id)
    except GatewayError as e:
        logger.warning("Could not fetch Revolut order %s, using stored status: %s", order_id, e)
        return
    if str(order.get("state") or "").upper() != "COMPLETED":
        return
    payment.external_status = "completed"
    payment.updated_at = datetime.now(timezone.utc)
    recompute_payment_status(db, booking.id)
    log_audit(db, actor="public", action="payment_synced", entity_type="payment", entity_id=payment.id,
              details={"order_id": order_id, "payment_status": booking.payment_status})


def validate_token(db: Session, gateway: RevolutClient, token: str | None = None, order_id: str | None = None) -> dict:
    if not token and not order_id:
        raise ValidationError("token or order_id is required")
    booking = _booking_by_token_or_order(db, token, order_id)

    usable = ensure_token_fresh(booking)
    if booking.payment_status == "pending" and order_id:
        _sync_order_state(db, gateway, booking, order_id)
    db.commit()

    trip = db.get(Trip, booking.trip_id)
    return {
        "booking_id": booking.id,
        "token": booking.completion_token,
        "customer_email": booking.customer_email,
        "customer_name": booking.customer_name,
        "adults": booking.adults,
        "children": booking.children,
        "total_price": float(booking.total_price),
        "currency": booking.currency,
        "details_completed": booking.details_completed,
        "is_expired": not usable,
        "token_expires_at": booking.token_expires_at.isoformat() if booking.token_expires_at else None,
        "payment_status": booking.payment_status,
        "payment_completed": booking.payment_status != "pending",
        "trip": {
            "title": trip.title,
            "price_value": float(trip.price_value),
            "departure_date": trip.departure_date,
        } if trip else None,
    }


def _client_notes(body: CompleteBookingRequest) -> str | None:
    parts = []
    if body.instagram:
        parts.append(f"Instagram: {body.instagram}")
    if body.dietary_notes:
        parts.append(f"Dieta: {body.dietary_notes}")
    if body.allergies:
        parts.append(f"Alergias: {body.allergies}")
    if body.additional_notes:
        parts.append(f"Notas: {body.additional_notes}")
    return "\n".join(parts) or None


def complete_booking(db: Session, body: CompleteBookingRequest) -> Booking:
    if not body.token or not body.full_name.strip() or not body.email.strip() or not body.phone.strip():
        raise ValidationError("Missing required fields")

    booking = db.query(Booking).filter(Booking.completion_token == body.token).first()
    if not booking:
        raise NotFoundError("Booking not found")
    if booking.details_completed:
        raise ValidationError("This booking has already been completed")
    if not ensure_token_fresh(booking):
        raise GoneError("The link has expired. Contact support for assistance.")

    client = db.get(Client, booking.client_id) if booking.client_id else None
    if not client:
        client = Client(id=str(uuid.uuid4()), full_name=body.full_name, email=body.email)
        db.add(client)
    client.full_name = body.full_name.strip()
    client.email = body.email.strip()
    client.phone = body.phone.strip()
    client.nationality = body.nationality or client.nationality
    client.birth_date = body.birth_date or client.birth_date
    client.passport_number = body.passport_number or client.passport_number
    client.passport_expiry_date = body.passport_expiry_date or client.passport_expiry_date
    client.emergency_contact_name = body.emergency_contact_name or client.emergency_contact_name
    client.emergency_contact_phone = body.emergency_contact_phone or client.emergency_contact_phone
    client.notes = _client_notes(body) or client.notes

    now = datetime.now(timezone.utc)
    booking.client_id = client.id
    booking.customer_name = client.full_name
    booking.customer_email = client.email
    booking.customer_phone = client.phone
    booking.details_completed = True
    booking.status = "confirmed"
    booking.confirmed_at = now
    booking.updated_at = now

    db.add(BookingPassenger(
        id=str(uuid.uuid4()),
        booking_id=booking.id,
        full_name=client.full_name,
        email=client.email,
        phone=client.phone,
        nationality=body.nationality,
        birth_date=body.birth_date,
        document_type="Passport" if body.passport_number else None,
        document_number=body.passport_number,
        dietary_restrictions=body.dietary_notes,
        emergency_contact_name=body.emergency_contact_name,
        emergency_contact_phone=body.emergency_contact_phone,
        is_adult=True,
    ))
    log_audit(db, actor="public", action="booking_completed", entity_type="booking", entity_id=booking.id)
    db.commit()
    db.refresh(booking)

    trip = db.get(Trip, booking.trip_id)
    if trip:
        subject, text, html = booking_confirmation_email(
            booking.customer_name, trip.title, trip.departure_date, booking.total_price,
            booking.currency, booking.passengers,
        )
        queue_email(db, booking.customer_email, subject, text, html, related_booking_id=booking.id)
    return booking
