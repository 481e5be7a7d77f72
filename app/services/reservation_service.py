"""
Reservation Service

Lifecycle of a stay reservation:

    pending --confirm--> confirmed --complete--> completed
       |--reject--> rejected
       |--cancel--> cancelled
       '--expire--> expired (also forced once the 24h hold lapses)

Confirmation is the only place the calendar is closed, and it happens
in the same transaction as the status write under a per-property lock.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from ..config import settings
from ..models.property import Property
from ..models.reservation import (
    Reservation,
    ReservationStatus,
    RESERVATION_TRANSITIONS,
    TERMINAL_STATUSES,
)
from ..models.notification import NotificationType
from ..models.user import User
from ..utils.db_helpers import acquire_row_lock, acquire_advisory_xact_lock
from ..utils.errors import (
    Conflict, Forbidden, InvalidRange, NotFound, PolicyViolation, ValidationFailed
)
from ..utils.logging_config import get_logger
from .calendar_ledger import CalendarLedger
from .notification_service import notify
from .pricing_engine import PricingEngine
from .refund_policy import calculate_reservation_refund

logger = get_logger(__name__)

UNAVAILABLE_MESSAGE = "Selected dates are not available"


def short_date(d: date) -> str:
    """Jan 2, 2006"""
    return f"{d.strftime('%b')} {d.day}, {d.year}"


@dataclass
class StatusChange:
    reservation: Reservation
    previous_status: str
    requested_status: str
    changed: bool

    @property
    def forced_expiry(self) -> bool:
        return (
            self.reservation.status == ReservationStatus.EXPIRED.value
            and self.requested_status != ReservationStatus.EXPIRED.value
        )


@dataclass
class CancellationResult:
    reservation: Reservation
    refund_amount: float
    currency: str
    reason: str

    def to_dict(self) -> dict:
        return {
            "message": "Reservation cancelled successfully",
            "refund_amount": self.refund_amount,
            "currency": self.currency,
            "reason": self.reason,
        }


class ReservationService:

    def __init__(self, db: Session):
        self.db = db
        self.ledger = CalendarLedger(db)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _get_property(self, property_id: str) -> Optional[Property]:
        return self.db.query(Property).filter(
            Property.id == property_id,
            Property.is_deleted == False
        ).first()

    def _get_bookable_property(self, property_id: str) -> Property:
        prop = self._get_property(property_id)
        if prop is None or not prop.is_bookable:
            raise NotFound("Property not found")
        return prop

    def count_confirmed_overlaps(
        self,
        property_id: str,
        check_in: date,
        check_out: date,
        exclude_id: Optional[str] = None
    ) -> int:
        """Confirmed reservations with existing.in < out AND existing.out > in"""
        query = self.db.query(Reservation).filter(
            Reservation.property_id == property_id,
            Reservation.status == ReservationStatus.CONFIRMED.value,
            Reservation.check_in < check_out,
            Reservation.check_out > check_in
        )
        if exclude_id:
            query = query.filter(Reservation.id != exclude_id)
        return query.count()

    # ------------------------------------------------------------------
    # Create / validate
    # ------------------------------------------------------------------

    def create(
        self,
        guest: User,
        property_id: str,
        check_in: date,
        check_out: date,
        num_guests: int = 1,
        note: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Reservation:
        """
        Create a pending reservation held for RESERVATION_HOLD_HOURS.
        The calendar is not touched until the host confirms.
        """
        if check_in >= check_out:
            raise InvalidRange("checkIn must be before checkOut")

        prop = self._get_bookable_property(property_id)
        now = now or datetime.utcnow()

        total = PricingEngine(self.db).quote_total(
            prop.id, prop.nightly_price, check_in, check_out, num_guests
        )

        reservation = Reservation(
            property_id=prop.id,
            guest_id=guest.id,
            check_in=check_in,
            check_out=check_out,
            num_guests=num_guests,
            total_price=total,
            status=ReservationStatus.PENDING.value,
            note=note,
            expires_at=now + timedelta(hours=settings.reservation_hold_hours),
            created_at=now,
        )
        self.db.add(reservation)
        self.db.flush()

        notify(
            self.db,
            user_id=prop.host_id,
            notification_type=NotificationType.RESERVATION_REQUEST,
            title="New Reservation Request",
            message=(
                f"You have a new reservation request for {prop.title} "
                f"from {short_date(check_in)} to {short_date(check_out)}"
            ),
            ref_type="reservation",
            ref_id=reservation.id,
        )

        self.db.commit()
        self.db.refresh(reservation)

        logger.reservation_created(reservation.id, prop.id, float(total))
        return reservation

    def validate_availability(self, property_id: str, check_in: date, check_out: date) -> dict:
        """
        Returns {"ok": True} when no confirmed stay overlaps and no night is closed.

        Raises:
            Conflict: with conflicts / blocked counts
        """
        if check_in >= check_out:
            raise InvalidRange("checkIn must be before checkOut")

        if self._get_property(property_id) is None:
            raise NotFound("Property not found")

        conflicts = self.count_confirmed_overlaps(property_id, check_in, check_out)
        blocked = self.ledger.unavailable_count(property_id, check_in, check_out)

        if conflicts or blocked:
            raise Conflict(UNAVAILABLE_MESSAGE, ok=False, conflicts=conflicts, blocked=blocked)
        return {"ok": True}

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def _check_actor(self, actor: User, reservation: Reservation, prop: Property, new_status: str):
        if actor.is_admin or (prop is not None and prop.host_id == actor.id):
            return
        if reservation.guest_id == actor.id and new_status == ReservationStatus.CANCELLED.value:
            return
        raise Forbidden("You are not allowed to update this reservation")

    def _confirm(self, reservation: Reservation, prop: Property):
        # Serialise confirms on this property until commit
        acquire_advisory_xact_lock(self.db, "property", reservation.property_id)

        conflicts = self.count_confirmed_overlaps(
            reservation.property_id,
            reservation.check_in,
            reservation.check_out,
            exclude_id=reservation.id,
        )
        if conflicts:
            raise Conflict(
                "Property is already booked for the selected dates",
                conflicts=conflicts,
            )

        self.ledger.mark_booked(
            reservation.property_id,
            reservation.check_in,
            reservation.check_out,
            prop.nightly_price if prop is not None else 0,
        )

    def update_status(
        self,
        actor: User,
        reservation_id: str,
        new_status: str,
        now: Optional[datetime] = None
    ) -> StatusChange:
        valid = {s.value for s in ReservationStatus}
        if new_status not in valid:
            raise ValidationFailed(f"Unknown status: {new_status}")

        now = now or datetime.utcnow()
        reservation = acquire_row_lock(self.db, Reservation, Reservation.id == reservation_id)
        if reservation is None:
            raise NotFound("Reservation not found")

        prop = self._get_property(reservation.property_id)
        self._check_actor(actor, reservation, prop, new_status)

        previous = reservation.status
        requested = new_status

        if reservation.is_past_hold(now):
            new_status = ReservationStatus.EXPIRED.value

        if previous in TERMINAL_STATUSES or previous == new_status:
            return StatusChange(reservation, previous, requested, changed=False)

        if new_status not in RESERVATION_TRANSITIONS.get(previous, set()):
            raise Conflict(f"Cannot change reservation from {previous} to {new_status}")

        try:
            if new_status == ReservationStatus.CONFIRMED.value:
                self._confirm(reservation, prop)

            reservation.status = new_status
            reservation.updated_at = now

            title = prop.title if prop is not None else "your stay"
            notify(
                self.db,
                user_id=reservation.guest_id,
                notification_type=NotificationType.RESERVATION_STATUS,
                title="Reservation Status Updated",
                message=f"Your reservation for {title} has been {new_status}",
                ref_type="reservation",
                ref_id=reservation.id,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(reservation)
        logger.reservation_status_changed(reservation.id, previous, new_status)
        return StatusChange(reservation, previous, requested, changed=True)

    # ------------------------------------------------------------------
    # Guest cancellation
    # ------------------------------------------------------------------

    def cancel(self, guest: User, reservation_id: str, now: Optional[datetime] = None) -> CancellationResult:
        now = now or datetime.utcnow()
        reservation = self.db.query(Reservation).filter(
            Reservation.id == reservation_id,
            Reservation.guest_id == guest.id
        ).first()
        if reservation is None:
            raise NotFound("Reservation not found")

        if reservation.status in (ReservationStatus.CONFIRMED.value, ReservationStatus.COMPLETED.value):
            raise PolicyViolation("Cannot cancel confirmed or completed reservations")
        if reservation.status in TERMINAL_STATUSES:
            raise PolicyViolation(f"Reservation is already {reservation.status}")

        prop = self._get_property(reservation.property_id)
        policy = prop.cancellation_policy if prop is not None else None
        currency = (prop.currency if prop is not None else None) or settings.default_currency

        quote = calculate_reservation_refund(reservation, policy, now)
        if not quote.allowed:
            raise PolicyViolation("Cannot cancel reservation", reason=quote.reason)

        try:
            previous = reservation.status
            reservation.status = ReservationStatus.CANCELLED.value
            reservation.updated_at = now
            self.ledger.release(reservation.property_id, reservation.check_in, reservation.check_out)

            title = prop.title if prop is not None else "your stay"
            notify(
                self.db,
                user_id=reservation.guest_id,
                notification_type=NotificationType.RESERVATION_CANCELLED,
                title="Reservation Cancelled",
                message=(
                    f"Your reservation for {title} has been cancelled. "
                    f"Refund: {quote.amount:.2f} {currency}"
                ),
                ref_type="reservation",
                ref_id=reservation.id,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.reservation_status_changed(reservation.id, previous, ReservationStatus.CANCELLED.value)
        return CancellationResult(
            reservation=reservation,
            refund_amount=float(quote.amount),
            currency=currency,
            reason=quote.reason,
        )

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def list_for_property(self, actor: User, property_id: str) -> List[Reservation]:
        prop = self._get_property(property_id)
        if prop is None:
            raise NotFound("Property not found")
        if prop.host_id != actor.id and not actor.is_admin:
            raise Forbidden("Property not found or access denied")
        return self.db.query(Reservation).filter(
            Reservation.property_id == property_id
        ).order_by(Reservation.created_at.desc()).all()

    def list_for_guest(self, actor: User, guest_id: str) -> List[Reservation]:
        if actor.id != guest_id and not actor.is_admin:
            raise Forbidden("You can only view your own reservations")
        return self.db.query(Reservation).filter(
            Reservation.guest_id == guest_id
        ).order_by(Reservation.created_at.desc()).all()

    def list_for_host(self, host: User, status: Optional[str] = None) -> List[Reservation]:
        query = self.db.query(Reservation).join(
            Property, Property.id == Reservation.property_id
        ).filter(Property.host_id == host.id)
        if status:
            query = query.filter(Reservation.status == status)
        return query.order_by(Reservation.created_at.desc()).all()
