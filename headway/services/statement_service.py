from __future__ import annotations

import io
from datetime import datetime, timezone

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas
from sqlalchemy.orm import Session

from headway.models.booking import Booking
from headway.models.trip import Trip
from headway.services.payment_service import get_booking_or_404, list_payments
from headway.services.reconciliation import paid_total, remaining_balance

FOOTER_Y = 60


def render_statement_pdf_bytes(booking: Booking, trip_title: str, payments: list) -> bytes:
    """A4 payment statement: booking summary plus every ledger entry. Pure function."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    _, h = A4

    c.setFont("Helvetica-Bold", 18)
    c.drawString(40, h - 60, "Headway Trips - Payment statement")
    c.setFont("Helvetica", 11)
    c.drawString(40, h - 80, f"Booking: {booking.id}")
    c.drawString(40, h - 96, f"Trip: {trip_title}")
    c.drawString(40, h - 112, f"Customer: {booking.customer_name} <{booking.customer_email}>")
    c.drawString(40, h - 128, f"Travel date: {booking.travel_date or '-'}   Passengers: {booking.passengers}")

    c.setFont("Helvetica-Bold", 12)
    c.drawString(40, h - 165, "Summary")
    c.setFont("Helvetica", 11)
    c.drawString(40, h - 183, f"Total price: {booking.total_price} {booking.currency}")
    c.drawString(40, h - 199, f"Paid: {paid_total(payments)} {booking.currency}")
    c.drawString(40, h - 215, f"Balance: {remaining_balance(booking.total_price, payments)} {booking.currency}")
    c.drawString(40, h - 231, f"Payment status: {booking.payment_status}")

    c.setFont("Helvetica-Bold", 12)
    c.drawString(40, h - 268, "Payments")
    c.setFont("Helvetica-Bold", 10)
    y = h - 286
    for x, label in ((40, "Date"), (120, "Method"), (210, "Amount"), (310, "Gateway status"), (420, "Reference")):
        c.drawString(x, y, label)
    c.setFont("Helvetica", 10)
    for p in payments:
        y -= 16
        if y < FOOTER_Y + 20:
            c.showPage()
            c.setFont("Helvetica", 10)
            y = h - 60
        c.drawString(40, y, p.payment_date or "")
        c.drawString(120, y, p.payment_method or "")
        c.drawString(210, y, f"{p.amount} {p.currency}")
        c.drawString(310, y, p.external_status or "manual")
        c.drawString(420, y, (p.reference or "")[:28])
    if not payments:
        c.drawString(40, y - 16, "No payments recorded.")

    c.setFont("Helvetica", 9)
    c.drawString(40, 40, "Cancelled or failed gateway attempts do not count toward the amount paid.")
    c.drawString(40, 26, f"Generated: {datetime.now(timezone.utc).isoformat()}")

    c.showPage()
    c.save()
    return buf.getvalue()


def booking_statement_pdf(db: Session, booking_id: str) -> bytes:
    booking = get_booking_or_404(db, booking_id)
    trip = db.get(Trip, booking.trip_id)
    return render_statement_pdf_bytes(booking, trip.title if trip else booking.trip_id, list_payments(db, booking_id))
