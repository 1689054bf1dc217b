from decimal import Decimal
from sqlalchemy import String, Integer, Numeric, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from headway.db.session import Base

class Trip(Base):
    __tablename__ = "trips"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    title: Mapped[str] = mapped_column(String(200))

    price_value: Mapped[Decimal] = mapped_column(Numeric(12, 2))  # per passenger
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    deposit_percentage: Mapped[int] = mapped_column(Integer, nullable=True)  # NULL -> 10%

    group_size_max: Mapped[int] = mapped_column(Integer, nullable=True)  # NULL -> 20
    booking_count: Mapped[int] = mapped_column(Integer, default=0)
    available: Mapped[bool] = mapped_column(Boolean, default=True)

    departure_date: Mapped[str] = mapped_column(String(10), nullable=True)  # YYYY-MM-DD
    start_dates_csv: Mapped[str] = mapped_column(String(600), default="")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    @property
    def start_dates(self):
        return [s.strip() for s in (self.start_dates_csv or "").split(",") if s.strip()]
