import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from ..database import Base


class Review(Base):
    __tablename__ = "property_reviews"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    property_id = Column(String(36), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    reservation_id = Column(String(36), ForeignKey("reservations.id", ondelete="SET NULL"), nullable=True)
    title = Column(String(200), nullable=True)
    body = Column(Text, nullable=True)
    stars = Column(Integer, nullable=False)
    is_verified = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", foreign_keys=[user_id])

    __table_args__ = (
        UniqueConstraint("user_id", "property_id", name="uq_review_user_property"),
        CheckConstraint("stars >= 1 AND stars <= 5", name="ck_review_stars"),
    )
