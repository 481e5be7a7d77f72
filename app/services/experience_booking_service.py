"""
Experience Booking Service

Books an experience for a lobby on a given date. The sum of
participants over non-cancelled bookings for (experience, date) never
exceeds the experience's group size; concurrent bookings for the same
pair are serialised with an advisory lock.

The ticket chat message and the host push are not written here; the
router schedules them as background tasks after the commit.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ..models.experience import (
    Experience,
    ExperienceBooking,
    ExperienceBookingStatus,
    ExperienceDayStatus,
)
from ..models.group import GroupPrivacy, GroupStatus, MemberState, GroupMember
from ..models.notification import NotificationType
from ..models.user import User
from ..utils.db_helpers import acquire_advisory_xact_lock
from ..utils.errors import Conflict, NotFound, PolicyViolation, ValidationFailed
from ..utils.logging_config import get_logger
from .experience_availability import ExperienceAvailabilityService, parse_iso_date
from .group_lobby import GroupLobby
from .notification_service import notify

logger = get_logger(__name__)

TICKET_COLOR = "#4CAF50"
LOBBY_BUFFER = 2
CANCEL_NOTICE = timedelta(hours=24)

TICKET_TEMPLATE = (
    "BOOKING CONFIRMED ✅\n"
    "\n"
    "Experience: {title}\n"
    "Date: {date}\n"
    "Time: {time}\n"
    "{participants}\n"
    "Price per person: {price:.0f} MRU\n"
    "Total: {total:.0f} MRU\n"
    "\n"
    "You'll receive confirmation details soon!"
)


def long_date(d: date) -> str:
    """January 2, 2006"""
    return f"{d.strftime('%B')} {d.day}, {d.year}"


def build_ticket_content(db: Session, booking: ExperienceBooking) -> str:
    """Render the confirmation ticket posted into the group chat"""
    experience = booking.experience
    members = db.query(GroupMember).options(
        joinedload(GroupMember.user)
    ).filter(
        GroupMember.group_id == booking.group_id,
        GroupMember.state == MemberState.JOINED.value
    ).order_by(GroupMember.joined_at).all()

    names = [m.user.full_name for m in members[:booking.participant_count] if m.user]
    if names:
        participants = f"Participants: {', '.join(names)}"
    else:
        participants = f"Participants: {booking.participant_count} people"

    return TICKET_TEMPLATE.format(
        title=experience.title if experience else "",
        date=long_date(booking.selected_date),
        time=booking.selected_time or "",
        participants=participants,
        price=float(experience.price_per_person or 0) if experience else 0.0,
        total=float(booking.total_price or 0),
    )


def notify_booking_host(db: Session, booking: ExperienceBooking) -> None:
    """Queue the host's "new booking" notification; the caller commits"""
    experience = booking.experience
    booker = booking.user.full_name if booking.user else "A guest"
    notify(
        db,
        experience.host_id,
        NotificationType.EXPERIENCE_BOOKING_RECEIVED,
        "New Experience Booking",
        f"{booker} booked '{experience.title}' for {booking.participant_count} "
        f"participant(s) on {long_date(booking.selected_date)}",
        ref_type="experience_booking",
        ref_id=booking.id,
    )


class ExperienceBookingService:

    def __init__(self, db: Session):
        self.db = db
        self.lobby = GroupLobby(db)
        self.availability = ExperienceAvailabilityService(db)

    def booked_participants(self, experience_id: str, day: date) -> int:
        total = self.db.query(func.coalesce(func.sum(ExperienceBooking.participant_count), 0)).filter(
            ExperienceBooking.experience_id == experience_id,
            ExperienceBooking.selected_date == day,
            ExperienceBooking.status != ExperienceBookingStatus.CANCELLED.value
        ).scalar()
        return int(total or 0)

    def create(
        self,
        actor: User,
        experience_id: str,
        group_id: str,
        participant_count: int,
        selected_date: str,
        selected_time: Optional[str] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> ExperienceBooking:
        now = now or datetime.utcnow()

        group = self.lobby.get_group(group_id)
        self.lobby.require_member(group.id, actor.id)

        experience = self.db.query(Experience).filter(Experience.id == experience_id).first()
        if experience is None:
            raise NotFound("Experience not found")
        if group.experience_id is not None and group.experience_id != experience.id:
            raise ValidationFailed("Group belongs to a different experience")

        if participant_count < 1:
            raise ValidationFailed("participantCount must be at least 1")
        if participant_count > experience.group_size:
            raise ValidationFailed(
                "Participant count exceeds experience capacity",
                maxParticipants=experience.group_size,
            )

        joined = self.lobby.joined_count(group.id)
        if participant_count > joined + LOBBY_BUFFER:
            raise ValidationFailed(
                "Participant count is too high for this group",
                groupSize=joined,
            )

        day = parse_iso_date(selected_date)
        if day is None:
            raise ValidationFailed("Invalid date format")
        if day < now.date():
            raise ValidationFailed("Cannot book experiences in the past")

        try:
            acquire_advisory_xact_lock(self.db, "experience", experience.id, day.isoformat())

            existing = self.booked_participants(experience.id, day)
            if existing + participant_count > experience.group_size:
                raise Conflict(
                    "Not enough spots available for this date",
                    maxParticipants=experience.group_size,
                    existingParticipants=existing,
                    requestedParticipants=participant_count,
                    availableSpots=experience.group_size - existing,
                )

            total_price = Decimal(str(experience.price_per_person or 0)) * participant_count
            booking = ExperienceBooking(
                experience_id=experience.id,
                group_id=group.id,
                user_id=actor.id,
                participant_count=participant_count,
                selected_date=day,
                selected_time=selected_time,
                notes=notes,
                total_price=total_price,
                status=ExperienceBookingStatus.CONFIRMED.value,
                is_read=False,
            )
            self.db.add(booking)
            self.db.flush()

            if existing + participant_count >= experience.group_size:
                self.availability.set_status(experience.id, day, ExperienceDayStatus.BLOCKED.value)

            if group.privacy != GroupPrivacy.DIRECT.value:
                group.status = GroupStatus.BOOKED.value

            notify(
                self.db,
                actor.id,
                NotificationType.EXPERIENCE_BOOKING_CONFIRMED,
                "Experience Booking Confirmed! \U0001F389",
                f"Your booking for '{experience.title}' on {long_date(day)} has been confirmed. "
                f"Total: {float(total_price):.0f} MRU",
                ref_type="experience_booking",
                ref_id=booking.id,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        logger.experience_booking_created(booking.id, experience.id, participant_count)
        return booking

    def cancel(self, actor: User, booking_id: str, now: Optional[datetime] = None) -> ExperienceBooking:
        now = now or datetime.utcnow()
        booking = self.db.query(ExperienceBooking).filter(
            ExperienceBooking.id == booking_id,
            ExperienceBooking.user_id == actor.id
        ).first()
        if booking is None:
            raise NotFound("Booking not found")
        if booking.status == ExperienceBookingStatus.CANCELLED.value:
            raise PolicyViolation("Booking is already cancelled")

        starts_at = datetime.combine(booking.selected_date, datetime.min.time())
        if starts_at - now < CANCEL_NOTICE:
            raise PolicyViolation("Cannot cancel booking within 24 hours of experience")

        try:
            acquire_advisory_xact_lock(
                self.db, "experience", booking.experience_id, booking.selected_date.isoformat()
            )
            booking.status = ExperienceBookingStatus.CANCELLED.value
            self.db.flush()

            experience = booking.experience
            remaining = self.booked_participants(booking.experience_id, booking.selected_date)
            status = self.availability.status_on(booking.experience_id, booking.selected_date)
            if (
                experience is not None
                and remaining < experience.group_size
                and status == ExperienceDayStatus.BLOCKED.value
            ):
                self.availability.set_status(
                    booking.experience_id, booking.selected_date, ExperienceDayStatus.AVAILABLE.value
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Experience booking {booking.id} cancelled by {actor.id}")
        return booking

    def list_mine(self, user: User) -> List[ExperienceBooking]:
        return self.db.query(ExperienceBooking).options(
            joinedload(ExperienceBooking.experience)
        ).filter(
            ExperienceBooking.user_id == user.id
        ).order_by(ExperienceBooking.created_at.desc()).all()

    def list_for_host(self, host: User) -> List[ExperienceBooking]:
        return self.db.query(ExperienceBooking).join(
            Experience, Experience.id == ExperienceBooking.experience_id
        ).options(
            joinedload(ExperienceBooking.experience),
            joinedload(ExperienceBooking.user)
        ).filter(
            Experience.host_id == host.id
        ).order_by(ExperienceBooking.created_at.desc()).all()

    def mark_read(self, host: User, booking_id: str) -> ExperienceBooking:
        booking = self.db.query(ExperienceBooking).join(
            Experience, Experience.id == ExperienceBooking.experience_id
        ).filter(
            ExperienceBooking.id == booking_id,
            Experience.host_id == host.id
        ).first()
        if booking is None:
            raise NotFound("Booking not found")
        booking.is_read = True
        self.db.commit()
        return booking
