"""
Property Availability Models

Per-day availability ledger, pricing rule, discount rules and
host blocks for a property.
"""

import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, Date, DateTime, Boolean, Integer, Numeric, Text,
    ForeignKey, Index, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import relationship
from ..database import Base
import enum


BOOKED_NOTE = "booked"
BLOCKED_NOTE_PREFIX = "Blocked: "
DEFAULT_CHECK_IN_TIME = "15:00"
DEFAULT_CHECK_OUT_TIME = "11:00"


class DiscountType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    EARLY_BIRD = "early_bird"
    LAST_MINUTE = "last_minute"


class AvailabilityCell(Base):
    """
    One night of one property.

    Rows are created lazily: a missing row means the night is
    available at the property's base price.
    """
    __tablename__ = "property_availability"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    property_id = Column(String(36), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)

    is_available = Column(Boolean, default=True, nullable=False)
    price = Column(Numeric(10, 2), default=0)
    min_stay = Column(Integer, default=1, nullable=False)
    max_stay = Column(Integer, default=0, nullable=False)  # 0 = unbounded
    check_in_time = Column(String(5), default=DEFAULT_CHECK_IN_TIME)
    check_out_time = Column(String(5), default=DEFAULT_CHECK_OUT_TIME)
    notes = Column(Text, default="")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("property_id", "date", name="uq_property_availability_date"),
        CheckConstraint("min_stay >= 1", name="ck_availability_min_stay"),
        Index("ix_property_availability_lookup", "property_id", "date", "is_available"),
    )

    def __repr__(self):
        return f"<AvailabilityCell {self.property_id} {self.date} available={self.is_available}>"


class PricingRule(Base):
    """Pricing tiers for a property. At most one per property."""
    __tablename__ = "property_pricing"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    property_id = Column(String(36), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, unique=True)

    base_price = Column(Numeric(10, 2), nullable=False, default=0)
    weekend_price = Column(Numeric(10, 2), nullable=True)
    weekly_price = Column(Numeric(10, 2), nullable=True)
    monthly_price = Column(Numeric(10, 2), nullable=True)
    cleaning_fee = Column(Numeric(10, 2), default=0)
    service_fee = Column(Numeric(10, 2), default=0)
    security_deposit = Column(Numeric(10, 2), default=0)
    currency = Column(String(3), default="MRO")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    listing = relationship("Property", backref="pricing_rules")

    def __repr__(self):
        return f"<PricingRule property={self.property_id} base={self.base_price}>"


class DiscountRule(Base):
    __tablename__ = "property_discounts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    property_id = Column(String(36), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    discount_type = Column(String(20), nullable=False, default=DiscountType.PERCENTAGE.value)
    value = Column(Numeric(10, 2), nullable=False, default=0)
    min_stay = Column(Integer, nullable=True)
    max_stay = Column(Integer, nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("value >= 0", name="ck_discount_value"),
    )

    def __repr__(self):
        return f"<DiscountRule {self.name} {self.discount_type}={self.value}>"


class PropertyBlock(Base):
    __tablename__ = "property_blocks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    property_id = Column(String(36), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    reason = Column(String(255), nullable=True)
    is_maintenance = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
