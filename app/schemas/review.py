from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from .user import UserSummary


class ReviewCreate(BaseModel):
    stars: int = Field(..., ge=1, le=5)
    title: Optional[str] = Field(None, max_length=100)
    body: Optional[str] = Field(None, max_length=1000)
    reservation_id: str = Field(..., min_length=1, alias="reservationID")

    class Config:
        populate_by_name = True


class ReviewResponse(BaseModel):
    id: str
    user_id: str
    property_id: str
    stars: int
    title: Optional[str] = None
    body: Optional[str] = None
    is_verified: bool
    created_at: datetime
    user: Optional[UserSummary] = None

    class Config:
        from_attributes = True


class PropertyReviews(BaseModel):
    reviews: List[ReviewResponse]
    canReview: bool
    hasExistingReview: bool
    userReservationID: Optional[str] = None
    averageRating: float
    reviewCount: int
