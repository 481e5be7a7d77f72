"""
Reservation Status Auto-Update Service

Runs periodically (see scheduler.py) and on demand:
- pending reservations whose hold lapsed -> expired
- confirmed reservations whose check-out has passed -> completed
"""

from datetime import date, datetime
from typing import Dict, Optional

from sqlalchemy.orm import Session

from ..models.reservation import Reservation, ReservationStatus
from ..utils.logging_config import get_logger

logger = get_logger(__name__)


class ReservationStatusUpdater:

    def __init__(self, db: Session):
        self.db = db

    def expire_pending(self, now: Optional[datetime] = None) -> int:
        """
        Expire every pending reservation with expires_at < now.
        Idempotent; returns count expired.
        """
        now = now or datetime.utcnow()
        count = self.db.query(Reservation).filter(
            Reservation.status == ReservationStatus.PENDING.value,
            Reservation.expires_at.isnot(None),
            Reservation.expires_at < now
        ).update({
            "status": ReservationStatus.EXPIRED.value,
            "updated_at": now
        }, synchronize_session=False)
        self.db.commit()
        return count

    def complete_finished(self, today: Optional[date] = None) -> int:
        """Mark confirmed stays whose check-out has passed as completed"""
        today = today or date.today()
        count = self.db.query(Reservation).filter(
            Reservation.status == ReservationStatus.CONFIRMED.value,
            Reservation.check_out <= today
        ).update({
            "status": ReservationStatus.COMPLETED.value,
            "updated_at": datetime.utcnow()
        }, synchronize_session=False)
        self.db.commit()
        return count

    def run_all_auto_updates(self, now: Optional[datetime] = None) -> Dict:
        now = now or datetime.utcnow()
        expired = self.expire_pending(now)
        completed = self.complete_finished(now.date())
        logger.sweep_finished(expired, completed)
        return {
            "expired_count": expired,
            "completed_count": completed,
            "run_at": now.isoformat(),
        }
