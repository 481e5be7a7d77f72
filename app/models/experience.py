import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, Text, Date, DateTime, Boolean, Integer, Numeric,
    ForeignKey, JSON, Index, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import relationship
from ..database import Base
import enum


class ExperienceStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    LIVE = "live"


class ExperienceDayStatus(str, enum.Enum):
    AVAILABLE = "available"
    BLOCKED = "blocked"


class ParticipantStatus(str, enum.Enum):
    JOINED = "joined"
    REMOVED = "removed"


class ExperienceBookingStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Experience(Base):
    __tablename__ = "experiences"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    host_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    city = Column(String(100), nullable=True, index=True)
    # Either ["url", ...] or [{"url": ...}, ...] depending on client version
    photos = Column(JSON, nullable=True)
    group_size = Column(Integer, nullable=False, default=1)
    price_per_person = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(String(20), default=ExperienceStatus.DRAFT.value)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    host = relationship("User", foreign_keys=[host_id])

    def __repr__(self):
        return f"<Experience {self.title}>"


class ExperienceAvailabilityCell(Base):
    __tablename__ = "experience_availability"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    experience_id = Column(String(36), ForeignKey("experiences.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    status = Column(String(20), default=ExperienceDayStatus.AVAILABLE.value, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("experience_id", "date", name="uq_experience_availability_date"),
    )


class ExperienceParticipant(Base):
    __tablename__ = "experience_participants"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    experience_id = Column(String(36), ForeignKey("experiences.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(20), default=ParticipantStatus.JOINED.value, nullable=False)
    joined_at = Column(DateTime, default=datetime.utcnow)
    left_at = Column(DateTime, nullable=True)

    user = relationship("User", foreign_keys=[user_id])

    __table_args__ = (
        UniqueConstraint("experience_id", "user_id", name="uq_experience_participant"),
    )


class ExperienceBooking(Base):
    __tablename__ = "experience_bookings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    experience_id = Column(String(36), ForeignKey("experiences.id", ondelete="CASCADE"), nullable=False)
    group_id = Column(String(36), ForeignKey("experience_groups.id", ondelete="SET NULL"), nullable=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_count = Column(Integer, nullable=False, default=1)
    selected_date = Column(Date, nullable=False)
    selected_time = Column(String(20), nullable=True)
    notes = Column(Text, nullable=True)
    total_price = Column(Numeric(10, 2), default=0)
    status = Column(String(20), default=ExperienceBookingStatus.CONFIRMED.value, nullable=False)
    is_read = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    experience = relationship("Experience")
    user = relationship("User", foreign_keys=[user_id])

    __table_args__ = (
        CheckConstraint("participant_count >= 1", name="ck_experience_booking_count"),
        Index("ix_experience_booking_date", "experience_id", "selected_date", "status"),
    )

    def __repr__(self):
        return f"<ExperienceBooking {self.id} x{self.participant_count} {self.selected_date}>"
