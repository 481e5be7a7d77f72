import uuid
from datetime import datetime
from sqlalchemy import Column, String, Date, Numeric, Text, ForeignKey, DateTime, Integer, Index, CheckConstraint
from sqlalchemy.orm import relationship
from ..database import Base
import enum


class ReservationStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    EXPIRED = "expired"


TERMINAL_STATUSES = {
    ReservationStatus.REJECTED.value,
    ReservationStatus.CANCELLED.value,
    ReservationStatus.COMPLETED.value,
    ReservationStatus.EXPIRED.value,
}

# Allowed transitions out of each non-terminal status
RESERVATION_TRANSITIONS = {
    ReservationStatus.PENDING.value: {
        ReservationStatus.CONFIRMED.value,
        ReservationStatus.REJECTED.value,
        ReservationStatus.CANCELLED.value,
        ReservationStatus.EXPIRED.value,
    },
    ReservationStatus.CONFIRMED.value: {
        ReservationStatus.COMPLETED.value,
    },
}


class Reservation(Base):
    __tablename__ = "reservations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    property_id = Column(String(36), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False)
    guest_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    check_in = Column(Date, nullable=False)
    check_out = Column(Date, nullable=False)
    num_guests = Column(Integer, default=1)
    total_price = Column(Numeric(10, 2), default=0)
    status = Column(String(20), default=ReservationStatus.PENDING.value, nullable=False)
    expires_at = Column(DateTime, nullable=True)
    note = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    listing = relationship("Property", back_populates="reservations")
    guest = relationship("User", foreign_keys=[guest_id])

    __table_args__ = (
        CheckConstraint("check_out > check_in", name="ck_reservation_dates"),
        Index("ix_reservation_property_status", "property_id", "status"),
        Index("ix_reservation_status_expires", "status", "expires_at"),
    )

    def __repr__(self):
        return f"<Reservation {self.id} {self.status}>"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    def is_past_hold(self, now: datetime) -> bool:
        return (
            self.status == ReservationStatus.PENDING.value
            and self.expires_at is not None
            and now > self.expires_at
        )
