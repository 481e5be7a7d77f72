"""
Stay reservations: create, validate, confirm/reject/cancel and listings.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from ..database import get_db
from ..models.reservation import ReservationStatus
from ..models.user import User
from ..schemas.reservation import (
    CancellationResponse,
    ExpireResult,
    ReservationCreate,
    ReservationResponse,
    ReservationStatusUpdate,
    StayDates,
    ValidationResult,
)
from ..services import background
from ..services.push_service import reservation_created_message, reservation_decision_message
from ..services.reservation_service import ReservationService
from ..services.reservation_status_updater import ReservationStatusUpdater
from ..utils.dependencies import get_current_user, require_admin
from ..utils.rate_limiter import limiter, get_rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/apartment", tags=["Reservations"])

DECISION_STATUSES = (ReservationStatus.CONFIRMED.value, ReservationStatus.REJECTED.value)


@router.post("/property/{property_id}", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("reservation_create"))
def create_reservation(
    request: Request,
    property_id: str,
    payload: ReservationCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Request a stay; the host has 24 hours to answer"""
    reservation = ReservationService(db).create(
        current_user,
        property_id,
        payload.check_in,
        payload.check_out,
        num_guests=payload.num_guests,
        note=payload.note,
    )

    listing = reservation.listing
    title, body, data = reservation_created_message(
        reservation.id, listing.id, current_user.full_name, listing.title
    )
    background_tasks.add_task(background.push_to_user, listing.host_id, title, body, data)
    return reservation


@router.post("/property/{property_id}/validate", response_model=ValidationResult)
@limiter.limit(get_rate_limit("availability"))
def validate_dates(
    request: Request,
    property_id: str,
    payload: StayDates,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return ReservationService(db).validate_availability(property_id, payload.check_in, payload.check_out)


@router.patch("/{reservation_id}/status", response_model=ReservationResponse)
@limiter.limit(get_rate_limit("reservation_update"))
def update_reservation_status(
    request: Request,
    reservation_id: str,
    payload: ReservationStatusUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Host decision on a pending reservation.

    A reservation whose hold has lapsed is expired instead, whatever
    status was requested.
    """
    change = ReservationService(db).update_status(current_user, reservation_id, payload.status)
    reservation = change.reservation

    if change.changed and reservation.status in DECISION_STATUSES:
        listing = reservation.listing
        title, body, data = reservation_decision_message(
            reservation.id,
            reservation.property_id,
            current_user.full_name,
            listing.title if listing else "",
            accepted=reservation.status == ReservationStatus.CONFIRMED.value,
        )
        background_tasks.add_task(background.push_to_user, reservation.guest_id, title, body, data)
    return reservation


@router.delete("/{reservation_id}", response_model=CancellationResponse)
@limiter.limit(get_rate_limit("reservation_cancel"))
def cancel_reservation(
    request: Request,
    reservation_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    result = ReservationService(db).cancel(current_user, reservation_id)
    return result.to_dict()


@router.post("/expire-pending", response_model=ExpireResult)
def expire_pending(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Expire every lapsed pending hold now"""
    return {"ok": True, "expired": ReservationStatusUpdater(db).expire_pending()}


@router.get("/property/{property_id}", response_model=List[ReservationResponse])
def list_property_reservations(
    property_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return ReservationService(db).list_for_property(current_user, property_id)


@router.get("/host", response_model=List[ReservationResponse])
def list_host_reservations(
    status_filter: Optional[str] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return ReservationService(db).list_for_host(current_user, status=status_filter)
