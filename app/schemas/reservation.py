from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime, date
from decimal import Decimal
import re


def strip_markup(v):
    if isinstance(v, str):
        v = re.sub(r'<script[^>]*>.*?</script>', '', v, flags=re.IGNORECASE | re.DOTALL)
        v = re.sub(r'on\w+\s*=', '', v, flags=re.IGNORECASE)
    return v


class StayDates(BaseModel):
    check_in: date = Field(..., alias="checkIn")
    check_out: date = Field(..., alias="checkOut")

    class Config:
        populate_by_name = True


class ReservationCreate(StayDates):
    num_guests: int = Field(default=1, ge=1, alias="numGuests")
    note: Optional[str] = Field(None, max_length=2000)

    @field_validator('note', mode='before')
    @classmethod
    def sanitize_note(cls, v):
        return strip_markup(v)


class ReservationStatusUpdate(BaseModel):
    status: str = Field(..., min_length=1)


class ReservationResponse(BaseModel):
    id: str
    property_id: str
    guest_id: str
    check_in: date
    check_out: date
    num_guests: int
    total_price: Decimal
    status: str
    note: Optional[str] = None
    expires_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ValidationResult(BaseModel):
    ok: bool


class CancellationResponse(BaseModel):
    message: str
    refund_amount: float
    currency: str
    reason: str


class ExpireResult(BaseModel):
    ok: bool = True
    expired: int

