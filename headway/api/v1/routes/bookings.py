from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from headway.api.deps import booking_rate_limit
from headway.db.session import get_db
from headway.schemas.booking import (
    BalancePaymentRequest,
    CompleteBookingRequest,
    PaymentLinkOut,
    ReserveOut,
    ReserveRequest,
)
from headway.services import booking_service
from headway.services.revolut_client import RevolutClient, get_revolut_client

router = APIRouter(tags=["bookings"])


@router.post("/bookings/reserve", response_model=ReserveOut, dependencies=[Depends(booking_rate_limit("booking"))])
def reserve(body: ReserveRequest, db: Session = Depends(get_db)):
    b = booking_service.reserve_booking(db, body)
    return ReserveOut(booking_id=b.id, token=b.completion_token, total_price=float(b.total_price), currency=b.currency)


@router.post("/bookings/payment-link", response_model=PaymentLinkOut, dependencies=[Depends(booking_rate_limit("booking"))])
def payment_link(body: ReserveRequest, db: Session = Depends(get_db), gateway: RevolutClient = Depends(get_revolut_client)):
    return booking_service.create_deposit_payment_link(db, gateway, body)


@router.get("/bookings/validate-token")
def validate_token(token: str | None = None, order_id: str | None = None,
                   db: Session = Depends(get_db), gateway: RevolutClient = Depends(get_revolut_client)):
    return booking_service.validate_token(db, gateway, token=token, order_id=order_id)


@router.post("/bookings/complete", dependencies=[Depends(booking_rate_limit("booking-complete"))])
def complete(body: CompleteBookingRequest, db: Session = Depends(get_db)):
    b = booking_service.complete_booking(db, body)
    return {"success": True, "booking_id": b.id}


@router.post("/bookings/{booking_id}/pay", dependencies=[Depends(booking_rate_limit("booking-pay"))])
def pay_balance(booking_id: str, body: BalancePaymentRequest, db: Session = Depends(get_db),
                gateway: RevolutClient = Depends(get_revolut_client)):
    return booking_service.create_balance_payment_link(db, gateway, booking_id, body.customer_email, body.amount)
