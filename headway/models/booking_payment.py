from decimal import Decimal
from sqlalchemy import String, Numeric, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from headway.db.session import Base

GATEWAY_METHODS = ("revolut",)
MANUAL_METHODS = ("transfer", "cash", "card", "other")

class BookingPayment(Base):
    __tablename__ = "booking_payments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    booking_id: Mapped[str] = mapped_column(String(36), index=True)

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    payment_method: Mapped[str] = mapped_column(String(20), default="transfer")  # revolut | transfer | cash | card | other

    # Gateway-backed entries only; NULL status means a manual payment that always counts.
    external_order_id: Mapped[str | None] = mapped_column(String(120), nullable=True, unique=True, index=True)
    external_status: Mapped[str | None] = mapped_column(String(20), nullable=True)  # pending, completed, cancelled, failed

    reference: Mapped[str | None] = mapped_column(String(500), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    payment_date: Mapped[str] = mapped_column(String(10))  # YYYY-MM-DD

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
