"""
Experiences API

Lobbies, invites, participants, day availability and bookings.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from sqlalchemy.orm import Session
from typing import List
import logging

from ..database import get_db
from ..models.user import User
from ..schemas.experience import (
    ExperienceAvailabilityUpdate,
    ExperienceBookingCreate,
    ExperienceBookingResponse,
    ExperienceDayResponse,
    HostBookingResponse,
    InviteCreate,
    ParticipantResponse,
)
from ..schemas.group import GroupCreate, GroupResponse
from ..services import background
from ..services.experience_availability import ExperienceAvailabilityService
from ..services.experience_booking_service import ExperienceBookingService
from ..services.group_lobby import GroupLobby
from ..services.invite_service import InviteService
from ..services.push_service import experience_booked_message
from ..utils.dependencies import get_current_user
from ..utils.rate_limiter import limiter, get_rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/experience", tags=["Experiences"])


# ================================
# BOOKINGS
# ================================

@router.post("/book", status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("experience_book"))
def book_experience(
    request: Request,
    payload: ExperienceBookingCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Book an experience for a lobby on a date.

    The ticket in the group chat, the host notification and the host push
    are sent after the response; their failure never affects the booking.
    """
    booking = ExperienceBookingService(db).create(
        current_user,
        experience_id=payload.experience_id,
        group_id=payload.group_id,
        participant_count=payload.participant_count,
        selected_date=payload.selected_date,
        selected_time=payload.selected_time,
        notes=payload.notes,
    )

    experience = booking.experience
    title, body, data = experience_booked_message(experience.id, current_user.full_name, experience.title)
    background_tasks.add_task(background.push_to_user, experience.host_id, title, body, data)
    background_tasks.add_task(background.post_booking_ticket, booking.id)
    background_tasks.add_task(background.notify_host_of_booking, booking.id)

    return {
        "success": True,
        "message": "Booking created successfully",
        "data": ExperienceBookingResponse.model_validate(booking),
    }


@router.get("/bookings")
def list_my_bookings(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    bookings = ExperienceBookingService(db).list_mine(current_user)
    return {"success": True, "data": [ExperienceBookingResponse.model_validate(b) for b in bookings]}


@router.get("/host-bookings")
def list_host_bookings(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    bookings = ExperienceBookingService(db).list_for_host(current_user)
    return {"success": True, "data": [HostBookingResponse.model_validate(b) for b in bookings]}


@router.patch("/bookings/{booking_id}/mark-read")
def mark_booking_read(
    booking_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    ExperienceBookingService(db).mark_read(current_user, booking_id)
    return {"success": True, "message": "Booking marked as read"}


@router.delete("/bookings/{booking_id}")
def cancel_booking(
    booking_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    ExperienceBookingService(db).cancel(current_user, booking_id)
    return {"success": True, "message": "Booking cancelled successfully"}


# ================================
# LOBBIES & INVITES
# ================================

@router.post("/{experience_id}/groups")
def open_group(
    experience_id: str,
    payload: GroupCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Return the caller's pending lobby for this experience, creating one if needed"""
    group = GroupLobby(db).open_or_reuse(
        current_user,
        experience_id,
        name=payload.name,
        privacy=payload.privacy,
        expires_in_hours=payload.expires_in_hr,
    )
    return {"success": True, "group": GroupResponse.model_validate(group)}


@router.post("/{experience_id}/invites")
@limiter.limit(get_rate_limit("invite_create"))
def create_invites(
    request: Request,
    experience_id: str,
    payload: InviteCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return InviteService(db).create_invites(
        current_user,
        experience_id,
        invitee_ids=payload.invitee_user_ids,
        create_link=payload.create_link,
        expires_in_hours=payload.expires_in_hours,
    )


@router.get("/{experience_id}/participants")
def list_participants(experience_id: str, db: Session = Depends(get_db)):
    participants = InviteService(db).participants(experience_id)
    return {"success": True, "participants": [ParticipantResponse.model_validate(p) for p in participants]}


@router.post("/{experience_id}/participants/{user_id}/remove")
def remove_participant(
    experience_id: str,
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    InviteService(db).remove_participant(current_user, experience_id, user_id)
    return {"success": True}


# ================================
# DAY AVAILABILITY
# ================================

@router.get("/{experience_id}/availability", response_model=List[ExperienceDayResponse])
def list_experience_availability(experience_id: str, db: Session = Depends(get_db)):
    service = ExperienceAvailabilityService(db)
    service.get_experience(experience_id)
    return service.list_days(experience_id)


@router.post("/{experience_id}/availability")
def set_experience_availability(
    experience_id: str,
    payload: ExperienceAvailabilityUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    count = ExperienceAvailabilityService(db).bulk_set(
        current_user, experience_id, payload.dates, payload.status
    )
    return {"success": True, "count": count}
