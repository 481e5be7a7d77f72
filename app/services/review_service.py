"""
Review Service

A guest may review a property once, and only with a confirmed
reservation of their own at that property.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..models.property import Property
from ..models.reservation import Reservation, ReservationStatus
from ..models.review import Review
from ..models.user import User
from ..utils.errors import Conflict, Forbidden, NotFound

REVIEWABLE_STATUSES = (ReservationStatus.CONFIRMED.value, ReservationStatus.COMPLETED.value)

logger = logging.getLogger(__name__)


class ReviewService:

    def __init__(self, db: Session):
        self.db = db

    def get_property(self, property_id: str) -> Property:
        listing = self.db.query(Property).filter(
            Property.id == property_id,
            Property.is_deleted == False
        ).first()
        if listing is None:
            raise NotFound("Property not found")
        return listing

    def eligible_reservation(self, user_id: str, property_id: str) -> Optional[Reservation]:
        return self.db.query(Reservation).filter(
            Reservation.property_id == property_id,
            Reservation.guest_id == user_id,
            Reservation.status.in_(REVIEWABLE_STATUSES)
        ).order_by(Reservation.check_out.desc()).first()

    def list_for_property(self, property_id: str, viewer: Optional[User] = None) -> Dict[str, Any]:
        self.get_property(property_id)
        reviews = self.db.query(Review).options(
            joinedload(Review.user)
        ).filter(
            Review.property_id == property_id
        ).order_by(Review.created_at.desc()).all()

        count = len(reviews)
        average = sum(r.stars for r in reviews) / count if count else 0.0

        can_review = False
        has_existing = False
        reservation_id = None
        if viewer is not None:
            has_existing = any(r.user_id == viewer.id for r in reviews)
            reservation = self.eligible_reservation(viewer.id, property_id)
            if reservation is not None:
                reservation_id = reservation.id
                can_review = not has_existing

        return {
            "reviews": reviews,
            "canReview": can_review,
            "hasExistingReview": has_existing,
            "userReservationID": reservation_id,
            "averageRating": round(average, 2),
            "reviewCount": count,
        }

    def create(
        self,
        user: User,
        property_id: str,
        reservation_id: str,
        stars: int,
        title: Optional[str] = None,
        body: Optional[str] = None
    ) -> Review:
        listing = self.get_property(property_id)

        reservation = self.db.query(Reservation).filter(
            Reservation.id == reservation_id,
            Reservation.property_id == property_id,
            Reservation.guest_id == user.id,
            Reservation.status.in_(REVIEWABLE_STATUSES)
        ).first()
        if reservation is None:
            raise Forbidden("You can only review properties you've completed a stay at")

        existing = self.db.query(Review).filter(
            Review.property_id == property_id,
            Review.user_id == user.id
        ).first()
        if existing:
            raise Conflict("You have already reviewed this property")

        review = Review(
            user_id=user.id,
            property_id=property_id,
            reservation_id=reservation.id,
            title=title,
            body=body,
            stars=stars,
            is_verified=True,
        )
        self.db.add(review)
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            raise Conflict("You have already reviewed this property")

        self.recompute_rating(listing)
        self.db.commit()
        self.db.refresh(review)

        logger.info(f"Review {review.id} ({stars} stars) for property {property_id} by {user.id}")
        return review

    def recompute_rating(self, listing: Property) -> None:
        average, count = self.db.query(
            func.avg(Review.stars), func.count(Review.id)
        ).filter(Review.property_id == listing.id).one()
        listing.rating = round(float(average or 0), 2)
        listing.review_count = int(count or 0)
