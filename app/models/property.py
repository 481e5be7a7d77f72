import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, Numeric, Boolean, DateTime, ForeignKey, JSON, Float, Integer
from sqlalchemy.orm import relationship
from ..database import Base
import enum


class CancellationPolicy(str, enum.Enum):
    FLEXIBLE = "flexible"
    MODERATE = "moderate"
    STRICT = "strict"


class PropertyStatus(str, enum.Enum):
    """Moderation status set by admins"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    LIVE = "live"


BOOKABLE_STATUSES = (PropertyStatus.APPROVED.value, PropertyStatus.LIVE.value)


class Property(Base):
    __tablename__ = "properties"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    host_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    city = Column(String(100), nullable=True, index=True)
    images = Column(JSON, nullable=True)
    max_guests = Column(Integer, default=2)

    nightly_price = Column(Numeric(10, 2), nullable=False, default=0)
    currency = Column(String(3), default="MRO")
    cancellation_policy = Column(String(20), default=CancellationPolicy.FLEXIBLE.value)

    is_active = Column(Boolean, default=True)
    status = Column(String(20), default=PropertyStatus.PENDING.value, index=True)
    rating = Column(Float, default=0)
    review_count = Column(Integer, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Soft Delete
    is_deleted = Column(Boolean, default=False, index=True)
    deleted_at = Column(DateTime, nullable=True)

    host = relationship("User", foreign_keys=[host_id])
    reservations = relationship("Reservation", back_populates="listing", passive_deletes=True)

    def __repr__(self):
        return f"<Property {self.title}>"

    @property
    def is_bookable(self) -> bool:
        return bool(self.is_active) and not self.is_deleted and self.status in BOOKABLE_STATUSES

    @property
    def first_image(self):
        images = self.images or []
        return images[0] if images else None
