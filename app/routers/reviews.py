from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import Optional

from ..database import get_db
from ..models.user import User
from ..schemas.review import PropertyReviews, ReviewCreate, ReviewResponse
from ..services.review_service import ReviewService
from ..utils.dependencies import get_current_user, get_optional_user

router = APIRouter(prefix="/api/reviews", tags=["Reviews"])


@router.get("/property/{property_id}", response_model=PropertyReviews)
def list_property_reviews(
    property_id: str,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """Reviews of a property; signed-in viewers also learn whether they may review"""
    return ReviewService(db).list_for_property(property_id, viewer=current_user)


@router.post("/property/{property_id}", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
def create_review(
    property_id: str,
    payload: ReviewCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return ReviewService(db).create(
        current_user,
        property_id,
        reservation_id=payload.reservation_id,
        stars=payload.stars,
        title=payload.title,
        body=payload.body,
    )
