from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from headway.api.deps import require_roles
from headway.core.errors import ValidationError
from headway.db.session import get_db
from headway.models.trip import Trip
from headway.models.user import User
from headway.schemas.payments import ManualPaymentCreate, PaymentOut, RevolutLinkRequest
from headway.services.audit_service import log_audit
from headway.services.payment_service import (
    booking_balance,
    create_gateway_payment,
    delete_payment,
    get_booking_or_404,
    list_payments,
    payment_currency,
    record_manual_payment,
)
from headway.services.reconciliation import recompute_payment_status
from headway.services.reminder_service import process_booking_reminders
from headway.services.revolut_client import RevolutClient, get_revolut_client
from headway.services.statement_service import booking_statement_pdf

router = APIRouter(tags=["admin"])

staff = require_roles("admin", "finance", "ops")
finance = require_roles("admin", "finance")


@router.get("/admin/bookings/{booking_id}/payments")
def get_payments(booking_id: str, db: Session = Depends(get_db), me: User = Depends(staff)):
    return {"payments": [PaymentOut.from_row(p) for p in list_payments(db, booking_id)]}


@router.post("/admin/bookings/{booking_id}/payments", status_code=201, response_model=PaymentOut)
def create_payment(booking_id: str, body: ManualPaymentCreate, db: Session = Depends(get_db), me: User = Depends(finance)):
    p = record_manual_payment(
        db, booking_id, body.amount, actor=me.email, currency=body.currency,
        payment_method=body.payment_method, reference=body.reference, notes=body.notes,
        payment_date=body.payment_date,
    )
    return PaymentOut.from_row(p)


@router.delete("/admin/bookings/{booking_id}/payments/{payment_id}")
def remove_payment(booking_id: str, payment_id: str, db: Session = Depends(get_db), me: User = Depends(finance)):
    status = delete_payment(db, booking_id, payment_id, actor=me.email)
    return {"success": True, "payment_status": status}


@router.post("/admin/bookings/{booking_id}/revolut-link")
def revolut_link(booking_id: str, body: RevolutLinkRequest | None = None, db: Session = Depends(get_db),
                 me: User = Depends(finance), gateway: RevolutClient = Depends(get_revolut_client)):
    body = body or RevolutLinkRequest()
    b = get_booking_or_404(db, booking_id)
    amount = body.amount if body.amount is not None else booking_balance(db, b)
    if amount <= 0:
        raise ValidationError("Amount must be greater than 0")
    trip = db.get(Trip, b.trip_id)
    title = trip.title if trip else b.trip_id
    p, order = create_gateway_payment(
        db, gateway, b, amount, payment_currency(b, body.currency), f"Pago reserva - {title} - {b.customer_name}",
    )
    return {"checkout_url": order.checkout_url, "order_id": order.id, "payment_id": p.id}


@router.post("/admin/bookings/{booking_id}/reconcile")
def reconcile(booking_id: str, db: Session = Depends(get_db), me: User = Depends(staff)):
    get_booking_or_404(db, booking_id)
    status = recompute_payment_status(db, booking_id)
    log_audit(db, actor=me.email, action="payment_reconciled", entity_type="booking", entity_id=booking_id,
              details={"payment_status": status})
    db.commit()
    return {"booking_id": booking_id, "payment_status": status}


@router.get("/admin/bookings/{booking_id}/statement.pdf")
def statement(booking_id: str, db: Session = Depends(get_db), me: User = Depends(staff)):
    pdf = booking_statement_pdf(db, booking_id)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="statement-{booking_id}.pdf"'},
    )


@router.post("/admin/bookings/send-reminders")
def send_reminders(db: Session = Depends(get_db), me: User = Depends(staff)):
    return process_booking_reminders(db)
