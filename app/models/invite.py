import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship
from ..database import Base
import enum


class InviteStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class Invite(Base):
    """
    Offer to join an experience.

    Targeted invites name an invitee; link invites carry a unique token
    and no invitee. Exactly one of the two is set.
    """
    __tablename__ = "experience_invites"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    experience_id = Column(String(36), ForeignKey("experiences.id", ondelete="CASCADE"), nullable=False)
    inviter_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    invitee_user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    link_token = Column(String(64), unique=True, nullable=True)
    status = Column(String(20), default=InviteStatus.PENDING.value, nullable=False)
    expires_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    experience = relationship("Experience")
    inviter = relationship("User", foreign_keys=[inviter_id])
    invitee = relationship("User", foreign_keys=[invitee_user_id])

    __table_args__ = (
        CheckConstraint(
            "(invitee_user_id IS NULL) <> (link_token IS NULL)",
            name="ck_invite_target",
        ),
        Index("ix_invite_experience_inviter", "experience_id", "inviter_id", "status"),
    )

    @property
    def is_link(self) -> bool:
        return self.link_token is not None
