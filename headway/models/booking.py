from decimal import Decimal
from sqlalchemy import String, Integer, Numeric, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from headway.db.session import Base

class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    trip_id: Mapped[str] = mapped_column(String(36), index=True)
    client_id: Mapped[str] = mapped_column(String(36), nullable=True, index=True)

    customer_name: Mapped[str] = mapped_column(String(200))
    customer_email: Mapped[str] = mapped_column(String(320), index=True)
    customer_phone: Mapped[str] = mapped_column(String(40), default="")

    adults: Mapped[int] = mapped_column(Integer, default=1)
    children: Mapped[int] = mapped_column(Integer, default=0)
    travel_date: Mapped[str] = mapped_column(String(10), nullable=True)  # YYYY-MM-DD

    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    currency: Mapped[str] = mapped_column(String(3), default="USD")

    status: Mapped[str] = mapped_column(String(20), default="pending")  # pending, confirmed, cancelled
    # pending, partial, paid; written only by services.reconciliation
    payment_status: Mapped[str] = mapped_column(String(20), default="pending")

    completion_token: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    token_expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)
    details_completed: Mapped[bool] = mapped_column(Boolean, default=False)

    confirmed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)
    reminder_sent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    @property
    def passengers(self) -> int:
        return int(self.adults or 0) + int(self.children or 0)
