from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Optional


class ManualPaymentCreate(BaseModel):
    amount: Decimal = Field(gt=0)
    currency: Optional[str] = None  # defaults to the booking currency
    payment_method: str = "transfer"  # transfer | cash | card | other
    reference: Optional[str] = None
    notes: Optional[str] = None
    payment_date: Optional[str] = None  # YYYY-MM-DD, defaults to today


class RevolutLinkRequest(BaseModel):
    # If omitted, the remaining balance in the booking currency is charged.
    amount: Optional[Decimal] = Field(default=None, gt=0)
    currency: Optional[str] = None


class PaymentOut(BaseModel):
    id: str
    booking_id: str
    amount: float
    currency: str
    payment_method: str
    external_order_id: Optional[str] = None
    external_status: Optional[str] = None
    reference: Optional[str] = None
    notes: Optional[str] = None
    payment_date: str

    @classmethod
    def from_row(cls, p) -> "PaymentOut":
        return cls(
            id=p.id,
            booking_id=p.booking_id,
            amount=float(p.amount),
            currency=p.currency,
            payment_method=p.payment_method,
            external_order_id=p.external_order_id,
            external_status=p.external_status,
            reference=p.reference,
            notes=p.notes,
            payment_date=p.payment_date,
        )
