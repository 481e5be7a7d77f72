"""
Experience Group Models

A group is a lobby coordinating the joint booking of an experience,
or a private two-person room when privacy is "direct".
"""

import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, Text, DateTime, ForeignKey, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship
from ..database import Base
import enum


class GroupStatus(str, enum.Enum):
    PENDING = "pending"
    READY = "ready"
    BOOKED = "booked"
    CANCELLED = "cancelled"
    LOCKED = "locked"
    ACTIVE = "active"


# Statuses in which an inviter's group still accepts new members
OPEN_GROUP_STATUSES = (
    GroupStatus.PENDING.value,
    GroupStatus.ACTIVE.value,
    GroupStatus.READY.value,
)


class GroupPrivacy(str, enum.Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    DIRECT = "direct"


class MemberState(str, enum.Enum):
    PENDING = "pending"
    JOINED = "joined"
    LEFT = "left"
    REMOVED = "removed"


class MemberRole(str, enum.Enum):
    OWNER = "owner"
    COHOST = "cohost"
    MEMBER = "member"


class JoinRequestStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class MessageType(str, enum.Enum):
    MESSAGE = "message"
    SYSTEM = "system"
    WISHLIST = "wishlist"
    TICKET = "ticket"
    PROPERTY = "property"


class Group(Base):
    __tablename__ = "experience_groups"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    experience_id = Column(String(36), ForeignKey("experiences.id", ondelete="CASCADE"), nullable=True)
    owner_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=True)
    photo_url = Column(String(500), nullable=True)
    status = Column(String(20), default=GroupStatus.PENDING.value, nullable=False)
    privacy = Column(String(20), default=GroupPrivacy.PRIVATE.value, nullable=False)
    expires_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    experience = relationship("Experience")
    owner = relationship("User", foreign_keys=[owner_id])
    members = relationship("GroupMember", back_populates="group", passive_deletes=True)

    __table_args__ = (
        Index("ix_group_experience_owner", "experience_id", "owner_id", "status"),
    )

    def __repr__(self):
        return f"<Group {self.id} {self.status}>"


class GroupMember(Base):
    __tablename__ = "experience_group_members"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    group_id = Column(String(36), ForeignKey("experience_groups.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    state = Column(String(20), default=MemberState.JOINED.value, nullable=False)
    role = Column(String(20), default=MemberRole.MEMBER.value, nullable=False)
    joined_at = Column(DateTime, nullable=True)
    left_at = Column(DateTime, nullable=True)

    group = relationship("Group", back_populates="members")
    user = relationship("User", foreign_keys=[user_id])

    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="uq_group_member"),
    )


class JoinRequest(Base):
    __tablename__ = "group_join_requests"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    group_id = Column(String(36), ForeignKey("experience_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    requester_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    message = Column(Text, nullable=True)
    status = Column(String(20), default=JoinRequestStatus.PENDING.value, nullable=False)
    responded_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    group = relationship("Group")
    requester = relationship("User", foreign_keys=[requester_id])


class ChatMessage(Base):
    __tablename__ = "group_chat_messages"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    group_id = Column(String(36), ForeignKey("experience_groups.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False, default="")
    color = Column(String(20), nullable=True)
    message_type = Column(String(20), default=MessageType.MESSAGE.value, nullable=False)

    # Card preview for wishlist / ticket / property messages
    ref_type = Column(String(30), nullable=True)
    ref_id = Column(String(36), nullable=True)
    preview_title = Column(String(200), nullable=True)
    preview_subtitle = Column(String(200), nullable=True)
    preview_description = Column(Text, nullable=True)
    preview_image_url = Column(String(500), nullable=True)

    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    sender = relationship("User", foreign_keys=[sender_id])

    __table_args__ = (
        Index("ix_group_chat_group_created", "group_id", "created_at"),
    )


class GroupWishlistItem(Base):
    __tablename__ = "group_wishlist_items"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    group_id = Column(String(36), ForeignKey("experience_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    added_by_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    experience_id = Column(String(36), ForeignKey("experiences.id", ondelete="CASCADE"), nullable=True)
    property_id = Column(String(36), ForeignKey("properties.id", ondelete="CASCADE"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    likes = relationship("GroupWishlistLike", back_populates="item", passive_deletes=True)


class GroupWishlistLike(Base):
    __tablename__ = "group_wishlist_likes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    item_id = Column(String(36), ForeignKey("group_wishlist_items.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    item = relationship("GroupWishlistItem", back_populates="likes")

    __table_args__ = (
        UniqueConstraint("item_id", "user_id", name="uq_wishlist_like"),
    )
