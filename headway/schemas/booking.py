from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Optional

class ReserveRequest(BaseModel):
    trip_id: str
    adults: int
    children: int = 0
    customer_name: str
    customer_email: str  # plain str to allow .local and other dev domains
    selected_date: Optional[str] = None  # YYYY-MM-DD, must be one of the trip's start dates

class ReserveOut(BaseModel):
    booking_id: str
    token: str
    total_price: float
    currency: str = "USD"

class PaymentLinkOut(BaseModel):
    checkout_url: str
    booking_id: str
    token: str
    deposit: float
    total_price: float

class CompleteBookingRequest(BaseModel):
    token: str
    full_name: str
    email: str
    phone: str
    nationality: Optional[str] = None
    birth_date: Optional[str] = None
    passport_number: Optional[str] = None
    passport_expiry_date: Optional[str] = None
    instagram: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    dietary_notes: Optional[str] = None
    allergies: Optional[str] = None
    additional_notes: Optional[str] = None

class BalancePaymentRequest(BaseModel):
    customer_email: str
    amount: Optional[Decimal] = Field(default=None, gt=0)  # defaults to the remaining balance
