"""
Calendar Ledger

Per-property, per-night availability records.

Key responsibilities:
- Read a date range with missing nights filled in as available
- Host edits (single night upsert, atomic bulk replace, blocks)
- Mark nights booked / released as reservations are confirmed / cancelled
"""

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Set

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..models.availability import (
    AvailabilityCell,
    PricingRule,
    PropertyBlock,
    BOOKED_NOTE,
    BLOCKED_NOTE_PREFIX,
    DEFAULT_CHECK_IN_TIME,
    DEFAULT_CHECK_OUT_TIME,
)
from ..models.property import Property
from ..models.reservation import Reservation, ReservationStatus
from ..models.user import User
from ..utils.errors import Forbidden, ValidationFailed

logger = logging.getLogger(__name__)

CELL_FIELDS = (
    "is_available", "price", "min_stay", "max_stay",
    "check_in_time", "check_out_time", "notes",
)


def nights_between(start: date, end: date) -> List[date]:
    """Nights from start (inclusive) to end (exclusive)."""
    days = []
    current = start
    while current < end:
        days.append(current)
        current += timedelta(days=1)
    return days


def days_inclusive(start: date, end: date) -> List[date]:
    """Days from start to end, both inclusive."""
    return nights_between(start, end + timedelta(days=1))


def cell_to_dict(cell: AvailabilityCell) -> Dict[str, Any]:
    return {
        "id": cell.id,
        "property_id": cell.property_id,
        "date": cell.date.isoformat(),
        "is_available": cell.is_available,
        "price": float(cell.price or 0),
        "min_stay": cell.min_stay,
        "max_stay": cell.max_stay,
        "check_in_time": cell.check_in_time,
        "check_out_time": cell.check_out_time,
        "notes": cell.notes or "",
    }


class CalendarLedger:
    """
    Service over the property_availability table.

    A night with no row is available at the property's base price.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_owned_property(self, actor: User, property_id: str) -> Property:
        """Property the actor may edit (host or admin)"""
        prop = self.db.query(Property).filter(
            Property.id == property_id,
            Property.is_deleted == False
        ).first()
        if prop is None or (prop.host_id != actor.id and not actor.is_admin):
            raise Forbidden("Property not found or access denied")
        return prop

    def base_price(self, property_id: str) -> Decimal:
        rule = self.db.query(PricingRule).filter(PricingRule.property_id == property_id).first()
        if rule is not None and rule.base_price is not None:
            return Decimal(str(rule.base_price))
        prop = self.db.query(Property).filter(Property.id == property_id).first()
        return Decimal(str(prop.nightly_price or 0)) if prop else Decimal("0")

    def _get_or_create(self, property_id: str, target_date: date, price=None) -> AvailabilityCell:
        cell = self.db.query(AvailabilityCell).filter(
            AvailabilityCell.property_id == property_id,
            AvailabilityCell.date == target_date
        ).first()

        if not cell:
            cell = AvailabilityCell(
                property_id=property_id,
                date=target_date,
                is_available=True,
                price=price if price is not None else 0,
                min_stay=1,
                max_stay=0,
                check_in_time=DEFAULT_CHECK_IN_TIME,
                check_out_time=DEFAULT_CHECK_OUT_TIME,
                notes="",
            )
            self.db.add(cell)

        return cell

    def get_range(self, property_id: str, start_date: date, end_date: date) -> List[Dict[str, Any]]:
        """
        Availability for every day in [start_date, end_date].
        Missing days are reported as available at the base price.
        """
        if end_date < start_date:
            raise ValidationFailed("endDate must not be before startDate")

        cells = self.db.query(AvailabilityCell).filter(
            AvailabilityCell.property_id == property_id,
            AvailabilityCell.date >= start_date,
            AvailabilityCell.date <= end_date
        ).order_by(AvailabilityCell.date).all()

        cell_map = {c.date: c for c in cells}
        default_price = float(self.base_price(property_id))

        result = []
        for day in days_inclusive(start_date, end_date):
            if day in cell_map:
                result.append(cell_to_dict(cell_map[day]))
            else:
                result.append({
                    "id": None,
                    "property_id": property_id,
                    "date": day.isoformat(),
                    "is_available": True,
                    "price": default_price,
                    "min_stay": 1,
                    "max_stay": 0,
                    "check_in_time": DEFAULT_CHECK_IN_TIME,
                    "check_out_time": DEFAULT_CHECK_OUT_TIME,
                    "notes": "",
                })
        return result

    def held_nights(self, property_id: str, start_date: date, end_date: date) -> Set[date]:
        """Nights in [start_date, end_date) occupied by a confirmed reservation"""
        stays = self.db.query(Reservation.check_in, Reservation.check_out).filter(
            Reservation.property_id == property_id,
            Reservation.status == ReservationStatus.CONFIRMED.value,
            Reservation.check_in < end_date,
            Reservation.check_out > start_date
        ).all()

        held: Set[date] = set()
        for check_in, check_out in stays:
            held.update(nights_between(max(check_in, start_date), min(check_out, end_date)))
        return held

    def upsert(self, property_id: str, target_date: date, **fields) -> AvailabilityCell:
        """
        Create or update one night. Idempotent for identical input.
        A night held by a confirmed stay stays closed; only its other fields change.
        """
        cell = self._get_or_create(property_id, target_date, price=self.base_price(property_id))
        for key, value in fields.items():
            if key in CELL_FIELDS and value is not None:
                setattr(cell, key, value)

        if target_date in self.held_nights(property_id, target_date, target_date + timedelta(days=1)):
            cell.is_available = False
            cell.notes = BOOKED_NOTE
        self.db.flush()
        return cell

    def bulk_set(self, property_id: str, start_date: date, end_date: date, fields: Dict[str, Any]) -> int:
        """
        Replace every night in [start_date, end_date] in one transaction.
        Nights held by a confirmed stay are rewritten closed and noted booked.
        Returns count of nights written.
        """
        if end_date < start_date:
            raise ValidationFailed("endDate must not be before startDate")

        days = days_inclusive(start_date, end_date)
        values = {k: v for k, v in fields.items() if k in CELL_FIELDS and v is not None}
        held = self.held_nights(property_id, start_date, end_date + timedelta(days=1))

        try:
            self.db.query(AvailabilityCell).filter(
                AvailabilityCell.property_id == property_id,
                AvailabilityCell.date >= start_date,
                AvailabilityCell.date <= end_date
            ).delete(synchronize_session=False)

            for day in days:
                cell = AvailabilityCell(
                    property_id=property_id,
                    date=day,
                    is_available=values.get("is_available", True),
                    price=values.get("price", 0),
                    min_stay=values.get("min_stay", 1),
                    max_stay=values.get("max_stay", 0),
                    check_in_time=values.get("check_in_time", DEFAULT_CHECK_IN_TIME),
                    check_out_time=values.get("check_out_time", DEFAULT_CHECK_OUT_TIME),
                    notes=values.get("notes", ""),
                )
                if day in held:
                    cell.is_available = False
                    cell.notes = BOOKED_NOTE
                self.db.add(cell)

            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.error(f"Bulk availability failed for property {property_id}, rolled back")
            raise

        logger.info(f"Bulk availability set for property {property_id}: {len(days)} days")
        return len(days)

    def block(
        self,
        property_id: str,
        start_date: date,
        end_date: date,
        reason: Optional[str] = None,
        is_maintenance: bool = False
    ) -> PropertyBlock:
        """
        Record a host block and close every day in [start_date, end_date].
        """
        if end_date < start_date:
            raise ValidationFailed("endDate must not be before startDate")

        block = PropertyBlock(
            property_id=property_id,
            start_date=start_date,
            end_date=end_date,
            reason=reason,
            is_maintenance=is_maintenance,
        )
        self.db.add(block)

        note = f"{BLOCKED_NOTE_PREFIX}{reason or ''}"
        held = self.held_nights(property_id, start_date, end_date + timedelta(days=1))
        count = 0
        for day in days_inclusive(start_date, end_date):
            if day in held:
                continue
            cell = self._get_or_create(property_id, day, price=0)
            cell.is_available = False
            cell.notes = note
            count += 1

        self.db.flush()
        logger.info(f"Blocked {count} dates for property {property_id}, reason: {reason}")
        return block

    def list_blocks(self, property_id: str) -> List[PropertyBlock]:
        return self.db.query(PropertyBlock).filter(
            PropertyBlock.property_id == property_id
        ).order_by(PropertyBlock.start_date).all()

    def mark_booked(self, property_id: str, check_in: date, check_out: date, nightly_price) -> int:
        """
        Close every night of a confirmed stay.
        New cells take the nightly price; existing prices are kept.
        """
        count = 0
        for day in nights_between(check_in, check_out):
            cell = self._get_or_create(property_id, day, price=nightly_price)
            cell.is_available = False
            cell.notes = BOOKED_NOTE
            count += 1

        self.db.flush()
        logger.info(f"Marked {count} dates booked for property {property_id}")
        return count

    def release(self, property_id: str, check_in: date, check_out: date) -> int:
        """
        Reopen the nights of a cancelled stay. Returns count of dates freed.
        Nights held by a confirmed stay and host-blocked nights stay closed.
        """
        held = self.held_nights(property_id, check_in, check_out)
        days = [d for d in nights_between(check_in, check_out) if d not in held]
        if not days:
            return 0

        count = self.db.query(AvailabilityCell).filter(
            AvailabilityCell.property_id == property_id,
            AvailabilityCell.date.in_(days),
            or_(
                AvailabilityCell.notes.is_(None),
                ~AvailabilityCell.notes.startswith(BLOCKED_NOTE_PREFIX)
            )
        ).update({
            "is_available": True,
            "notes": ""
        }, synchronize_session=False)

        logger.info(f"Freed {count} dates for property {property_id}")
        return count

    def unavailable_count(self, property_id: str, check_in: date, check_out: date) -> int:
        """Closed nights inside [check_in, check_out), not counting nights held by a confirmed stay"""
        return self.db.query(AvailabilityCell).filter(
            AvailabilityCell.property_id == property_id,
            AvailabilityCell.date >= check_in,
            AvailabilityCell.date < check_out,
            AvailabilityCell.is_available == False,
            or_(AvailabilityCell.notes.is_(None), AvailabilityCell.notes != BOOKED_NOTE)
        ).count()
