"""
Experience Schemas

Availability days, invites, participants and bookings.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional
from pydantic import BaseModel, Field

from .user import UserSummary


class ExperienceSummary(BaseModel):
    id: str
    title: str
    city: Optional[str] = None
    photos: Optional[Any] = None
    group_size: int
    price_per_person: Decimal

    class Config:
        from_attributes = True


class ExperienceAvailabilityUpdate(BaseModel):
    dates: List[str] = Field(default_factory=list)
    status: str


class ExperienceDayResponse(BaseModel):
    day: date = Field(..., alias="date")
    status: str

    class Config:
        from_attributes = True
        populate_by_name = True


class InviteCreate(BaseModel):
    invitee_user_ids: List[str] = Field(default_factory=list, alias="inviteeUserIDs")
    create_link: bool = Field(default=False, alias="createLink")
    expires_in_hours: int = Field(default=0, ge=0, alias="expiresInHours")

    class Config:
        populate_by_name = True


class InviteResponse(BaseModel):
    id: str
    experience_id: str
    inviter_id: str
    invitee_user_id: Optional[str] = None
    link_token: Optional[str] = None
    status: str
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    inviter: Optional[UserSummary] = None
    invitee: Optional[UserSummary] = None

    class Config:
        from_attributes = True


class ParticipantResponse(BaseModel):
    id: str
    experience_id: str
    user_id: str
    status: str
    joined_at: Optional[datetime] = None
    user: Optional[UserSummary] = None

    class Config:
        from_attributes = True


class ExperienceBookingCreate(BaseModel):
    experience_id: str = Field(..., alias="experienceId")
    group_id: str = Field(..., alias="groupId")
    participant_count: int = Field(..., ge=1, alias="participantCount")
    selected_date: str = Field(..., min_length=1, alias="selectedDate")
    selected_time: Optional[str] = Field(None, max_length=20, alias="selectedTime")
    notes: Optional[str] = Field(None, max_length=2000)

    class Config:
        populate_by_name = True


class ExperienceBookingResponse(BaseModel):
    id: str
    experience_id: str
    group_id: Optional[str] = None
    user_id: str
    participant_count: int
    selected_date: date
    selected_time: Optional[str] = None
    notes: Optional[str] = None
    total_price: Decimal
    status: str
    is_read: bool = False
    created_at: Optional[datetime] = None
    experience: Optional[ExperienceSummary] = None

    class Config:
        from_attributes = True


class HostBookingResponse(ExperienceBookingResponse):
    user: Optional[UserSummary] = None
