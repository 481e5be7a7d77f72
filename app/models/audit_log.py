"""
Audit Log Model

Append-only record of admin mutations with before/after snapshots.
"""
from sqlalchemy import Column, String, DateTime, JSON, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, date
from decimal import Decimal
import uuid
import enum

from ..database import Base


def _serialize_for_json(obj):
    """Convert non-JSON-serializable types to serializable ones"""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return {k: _serialize_for_json(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_serialize_for_json(i) for i in obj]
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, enum.Enum):
        return obj.value
    return obj


class AuditAction(str, enum.Enum):
    PROPERTY_STATUS_UPDATE = "property.status_update"
    GROUP_UPDATE = "group.update"
    GROUP_LOCK = "group.lock"


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    admin_user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    action = Column(String(50), nullable=False, index=True)

    resource_type = Column(String(50), nullable=False, index=True)
    resource_id = Column(String(36), nullable=True, index=True)

    before_json = Column(JSON, nullable=True)
    after_json = Column(JSON, nullable=True)

    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    admin_user = relationship("User", foreign_keys=[admin_user_id])

    def __repr__(self):
        return f"<AuditLog {self.action} {self.resource_type}:{self.resource_id}>"

    @classmethod
    def log(cls, db, admin_user, action: str, resource_type: str,
            resource_id: str = None, before: dict = None, after: dict = None,
            ip_address: str = None, user_agent: str = None):
        """Add an audit entry to the session. The caller commits."""
        entry = cls(
            admin_user_id=admin_user.id if admin_user else None,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            before_json=_serialize_for_json(before),
            after_json=_serialize_for_json(after),
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
        )
        db.add(entry)
        return entry
