"""
Best-effort background side effects.

Scheduled through FastAPI BackgroundTasks after the response is sent.
Each task opens its own session; failures are logged and swallowed so
they never affect the request that scheduled them.
"""

import logging
from typing import Any, Dict, Optional

from ..database import SessionLocal
from ..models.user import User
from ..models.group import ChatMessage, MessageType
from ..models.experience import ExperienceBooking
from .push_service import get_push_client
from .experience_booking_service import build_ticket_content, notify_booking_host, TICKET_COLOR

logger = logging.getLogger(__name__)


def push_to_user(
    user_id: str,
    title: str,
    body: str,
    data: Optional[Dict[str, Any]] = None
) -> None:
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.id == user_id).first()
        if user is None:
            logger.warning(f"Push skipped, user {user_id} not found")
            return
        result = get_push_client().send_to_user(user, title, body, data)
        if not result.success:
            logger.warning(f"Push to user {user_id} failed: {result.error}")
    except Exception as e:
        logger.error(f"Push task failed for user {user_id}: {e}")
    finally:
        db.close()


def post_booking_ticket(booking_id: str) -> None:
    """Write the confirmation ticket into the booking's group chat"""
    db = SessionLocal()
    try:
        booking = db.query(ExperienceBooking).filter(ExperienceBooking.id == booking_id).first()
        if booking is None or not booking.group_id:
            return

        message = ChatMessage(
            group_id=booking.group_id,
            sender_id=booking.user_id,
            content=build_ticket_content(db, booking),
            color=TICKET_COLOR,
            message_type=MessageType.TICKET.value,
            ref_type="experience_booking",
            ref_id=booking.id,
            preview_title=booking.experience.title if booking.experience else None,
        )
        db.add(message)
        db.commit()
        logger.info(f"Ticket posted to group {booking.group_id} for booking {booking.id}")
    except Exception as e:
        db.rollback()
        logger.error(f"Ticket message failed for booking {booking_id}: {e}")
    finally:
        db.close()


def notify_host_of_booking(booking_id: str) -> None:
    """Record the host's in-app notification for a new experience booking"""
    db = SessionLocal()
    try:
        booking = db.query(ExperienceBooking).filter(ExperienceBooking.id == booking_id).first()
        if booking is None or booking.experience is None:
            return
        notify_booking_host(db, booking)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Host notification failed for booking {booking_id}: {e}")
    finally:
        db.close()
