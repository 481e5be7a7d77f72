"""
Notification Model
"""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
import enum

from ..database import Base


class NotificationType(str, enum.Enum):
    # Reservations
    RESERVATION_REQUEST = "reservation_request"
    RESERVATION_STATUS = "reservation_status"
    RESERVATION_CANCELLED = "reservation_cancelled"

    # Groups
    GROUP_JOIN_REQUEST = "group_join_request"
    GROUP_JOIN_ACCEPTED = "group_join_accepted"
    GROUP_JOIN_DECLINED = "group_join_declined"

    # Experience bookings
    EXPERIENCE_BOOKING_CONFIRMED = "experience_booking_confirmed"
    EXPERIENCE_BOOKING_RECEIVED = "experience_booking_received"


class Notification(Base):
    """Per-user in-app event. Only the read flag is ever mutated."""
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    type = Column(String(50), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=True)

    # Referenced entity (reservation, experience_booking, group, ...)
    ref_type = Column(String(50), nullable=True)
    ref_id = Column(String(36), nullable=True)

    is_read = Column(Boolean, default=False, index=True)
    read_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    user = relationship("User", foreign_keys=[user_id])

    def __repr__(self):
        return f"<Notification {self.type} - {self.title}>"

    def mark_as_read(self):
        self.is_read = True
        self.read_at = datetime.utcnow()
