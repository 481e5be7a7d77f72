"""
Experience Availability Service

Per-day open/closed status for an experience. Rows are upserted one
by one, so repeating a request leaves the table unchanged.
"""

import logging
from datetime import date, datetime
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from ..models.experience import Experience, ExperienceAvailabilityCell, ExperienceDayStatus
from ..models.user import User
from ..utils.errors import Forbidden, NotFound, ValidationFailed

logger = logging.getLogger(__name__)

DAY_STATUSES = {s.value for s in ExperienceDayStatus}


def parse_iso_date(value: str) -> Optional[date]:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        return None


class ExperienceAvailabilityService:

    def __init__(self, db: Session):
        self.db = db

    def get_experience(self, experience_id: str) -> Experience:
        experience = self.db.query(Experience).filter(Experience.id == experience_id).first()
        if experience is None:
            raise NotFound("Experience not found")
        return experience

    def list_days(self, experience_id: str) -> List[ExperienceAvailabilityCell]:
        return self.db.query(ExperienceAvailabilityCell).filter(
            ExperienceAvailabilityCell.experience_id == experience_id
        ).order_by(ExperienceAvailabilityCell.date).all()

    def set_status(self, experience_id: str, day: date, status: str) -> ExperienceAvailabilityCell:
        """Upsert one day without committing"""
        cell = self.db.query(ExperienceAvailabilityCell).filter(
            ExperienceAvailabilityCell.experience_id == experience_id,
            ExperienceAvailabilityCell.date == day
        ).first()
        if cell is None:
            cell = ExperienceAvailabilityCell(experience_id=experience_id, date=day, status=status)
            self.db.add(cell)
        else:
            cell.status = status
        self.db.flush()
        return cell

    def status_on(self, experience_id: str, day: date) -> Optional[str]:
        cell = self.db.query(ExperienceAvailabilityCell).filter(
            ExperienceAvailabilityCell.experience_id == experience_id,
            ExperienceAvailabilityCell.date == day
        ).first()
        return cell.status if cell else None

    def bulk_set(self, actor: User, experience_id: str, dates: Iterable[str], status: str) -> int:
        """
        Host sets the status of a list of YYYY-MM-DD dates.
        Unparseable dates are skipped. Returns count of rows written.
        """
        experience = self.get_experience(experience_id)
        if experience.host_id != actor.id and not actor.is_admin:
            raise Forbidden("Only the host can change availability")
        if status not in DAY_STATUSES:
            raise ValidationFailed("status must be 'available' or 'blocked'")

        count = 0
        for raw in dates or []:
            day = parse_iso_date(raw)
            if day is None:
                logger.debug(f"Skipping unparseable date {raw!r} for experience {experience_id}")
                continue
            self.set_status(experience_id, day, status)
            count += 1

        self.db.commit()
        logger.info(f"Set {count} day(s) {status} for experience {experience_id}")
        return count
