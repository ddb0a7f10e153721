from datetime import datetime

from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import JSON, String, Float, DateTime, func
from sqlalchemy.dialects.postgresql import JSONB

# JSONB on Postgres, plain JSON elsewhere (SQLite in dev and tests)
JSONType = JSON().with_variant(JSONB, "postgresql")


class Base(DeclarativeBase):
    pass


class Booking(Base):
    __tablename__ = "bookings"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    status: Mapped[str] = mapped_column(String(16))  # "confirmed" | "partial" | "failed"
    total: Mapped[float] = mapped_column(Float)
    currency: Mapped[str] = mapped_column(String(8), default="INR")
    traveler_name: Mapped[str] = mapped_column(String(200))
    traveler_email: Mapped[str] = mapped_column(String(320), index=True)

    itinerary: Mapped[dict] = mapped_column(JSONType, default=dict)
    legs: Mapped[list] = mapped_column(JSONType, default=list)

    def to_dict(self) -> dict:
        return {
            "booking_id": self.id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "status": self.status,
            "total": self.total,
            "currency": self.currency,
            "traveler": {"name": self.traveler_name, "email": self.traveler_email},
            "itinerary": self.itinerary,
            "legs": self.legs,
        }
