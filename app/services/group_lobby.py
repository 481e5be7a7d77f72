"""
Group Lobby Service

A group gathers the people who will book an experience together:

    pending --finalize--> ready --booking--> booked
       '------------------ cancelled

"locked" is only set through the admin override. A group with
privacy "direct" is a two-person chat room with no experience attached.

Joined membership never exceeds the experience's group size.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from ..models.experience import Experience
from ..models.group import (
    ChatMessage,
    Group,
    GroupMember,
    GroupPrivacy,
    GroupStatus,
    GroupWishlistItem,
    GroupWishlistLike,
    JoinRequest,
    MemberRole,
    MemberState,
    MessageType,
)
from ..models.property import Property
from ..models.user import User
from ..utils.errors import CapacityFull, Conflict, Forbidden, NotFound, ValidationFailed

logger = logging.getLogger(__name__)

DIRECT_MESSAGE_COLOR = "#222222"
MEMBER_ROLES = {r.value for r in MemberRole}

# Statuses the owner may set directly; ready and booked have their own paths
OWNER_SETTABLE_STATUSES = {
    GroupStatus.PENDING.value,
    GroupStatus.ACTIVE.value,
    GroupStatus.CANCELLED.value,
}

# Statuses only the booking flow or an admin can move a group out of
FROZEN_STATUSES = {
    GroupStatus.BOOKED.value,
    GroupStatus.LOCKED.value,
}


class GroupLobby:

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_group(self, group_id: str) -> Group:
        group = self.db.query(Group).filter(Group.id == group_id).first()
        if group is None:
            raise NotFound("Group not found")
        return group

    def get_owned_group(self, actor: User, group_id: str) -> Group:
        group = self.get_group(group_id)
        if group.owner_id != actor.id and not actor.is_admin:
            raise Forbidden("Only the group owner can do this")
        return group

    def get_membership(self, group_id: str, user_id: str) -> Optional[GroupMember]:
        return self.db.query(GroupMember).filter(
            GroupMember.group_id == group_id,
            GroupMember.user_id == user_id
        ).first()

    def require_member(self, group_id: str, user_id: str) -> GroupMember:
        """Any membership row grants chat access, as long as it is still joined"""
        membership = self.get_membership(group_id, user_id)
        if membership is None or membership.state != MemberState.JOINED.value:
            raise Forbidden("You are not a member of this group")
        return membership

    def joined_count(self, group_id: str) -> int:
        return self.db.query(GroupMember).filter(
            GroupMember.group_id == group_id,
            GroupMember.state == MemberState.JOINED.value
        ).count()

    def capacity(self, group: Group) -> Optional[int]:
        """Group size of the attached experience, None for direct rooms"""
        if group.experience_id is None:
            return None
        experience = group.experience
        return experience.group_size if experience else None

    # ------------------------------------------------------------------
    # Lobby lifecycle
    # ------------------------------------------------------------------

    def open_or_reuse(
        self,
        owner: User,
        experience_id: str,
        name: Optional[str] = None,
        privacy: Optional[str] = None,
        expires_in_hours: int = 0,
        now: Optional[datetime] = None
    ) -> Group:
        """Return the owner's pending group for the experience, creating it if needed"""
        now = now or datetime.utcnow()

        experience = self.db.query(Experience).filter(Experience.id == experience_id).first()
        if experience is None:
            raise NotFound("Experience not found")

        existing = self.db.query(Group).filter(
            Group.experience_id == experience_id,
            Group.owner_id == owner.id,
            Group.status == GroupStatus.PENDING.value
        ).order_by(Group.created_at.desc()).first()
        if existing:
            return existing

        group = Group(
            experience_id=experience_id,
            owner_id=owner.id,
            name=name,
            status=GroupStatus.PENDING.value,
            privacy=GroupPrivacy.PRIVATE.value if privacy == GroupPrivacy.PRIVATE.value else GroupPrivacy.PUBLIC.value,
            expires_at=now + timedelta(hours=expires_in_hours) if expires_in_hours and expires_in_hours > 0 else None,
        )
        self.db.add(group)
        self.db.flush()

        self.db.add(GroupMember(
            group_id=group.id,
            user_id=owner.id,
            role=MemberRole.OWNER.value,
            state=MemberState.JOINED.value,
            joined_at=now,
        ))
        self.db.commit()
        self.db.refresh(group)

        logger.info(f"Group {group.id} opened by {owner.id} for experience {experience_id}")
        return group

    def list_mine(self, user: User) -> List[Group]:
        """Groups the user has joined, most recent first"""
        return self.db.query(Group).join(
            GroupMember, GroupMember.group_id == Group.id
        ).filter(
            GroupMember.user_id == user.id,
            GroupMember.state == MemberState.JOINED.value
        ).options(
            joinedload(Group.experience)
        ).order_by(Group.created_at.desc()).all()

    def members(self, actor: User, group_id: str) -> List[GroupMember]:
        self.get_group(group_id)
        if not actor.is_admin:
            self.require_member(group_id, actor.id)
        return self.db.query(GroupMember).options(
            joinedload(GroupMember.user)
        ).filter(GroupMember.group_id == group_id).all()

    def joined_members(self, group_id: str) -> List[GroupMember]:
        return self.db.query(GroupMember).options(
            joinedload(GroupMember.user)
        ).filter(
            GroupMember.group_id == group_id,
            GroupMember.state == MemberState.JOINED.value
        ).all()

    def join(self, group: Group, user_id: str, now: Optional[datetime] = None) -> GroupMember:
        """
        Upsert a joined membership without committing.

        Reached only through an accepted invite or join request. Raises
        CapacityFull when the experience's group size is already met.
        """
        now = now or datetime.utcnow()
        membership = self.get_membership(group.id, user_id)
        if membership is not None and membership.state == MemberState.JOINED.value:
            return membership

        limit = self.capacity(group)
        if limit is not None and self.joined_count(group.id) >= limit:
            raise CapacityFull("Group is full")

        if membership is None:
            membership = GroupMember(
                group_id=group.id,
                user_id=user_id,
                role=MemberRole.MEMBER.value,
            )
            self.db.add(membership)
        membership.state = MemberState.JOINED.value
        membership.joined_at = now
        membership.left_at = None
        self.db.flush()
        return membership

    def leave(self, user: User, group_id: str, now: Optional[datetime] = None) -> GroupMember:
        self.get_group(group_id)
        membership = self.require_member(group_id, user.id)
        membership.state = MemberState.LEFT.value
        membership.left_at = now or datetime.utcnow()
        self.db.commit()
        logger.info(f"User {user.id} left group {group_id}")
        return membership

    def finalize(self, actor: User, group_id: str) -> Dict[str, Any]:
        group = self.get_owned_group(actor, group_id)
        if group.experience_id is None:
            raise ValidationFailed("Direct conversations cannot be finalized")
        if group.status != GroupStatus.PENDING.value:
            raise Conflict(f"Group is already {group.status}", status=group.status)

        joined = self.joined_count(group.id)
        if joined < (self.capacity(group) or 0):
            return {"success": False, "error": "not_full"}

        group.status = GroupStatus.READY.value
        self.db.commit()
        self.db.refresh(group)
        logger.info(f"Group {group.id} finalized with {joined} members")
        return {"success": True, "group": group}

    def update_group(
        self,
        actor: User,
        group_id: str,
        name: Optional[str] = None,
        status: Optional[str] = None,
        photo_url: Optional[str] = None,
        privacy: Optional[str] = None,
        expires_in_hours: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> Group:
        group = self.get_owned_group(actor, group_id)
        if status is not None and group.status in FROZEN_STATUSES:
            raise Conflict(f"Group is {group.status} and its status cannot be changed", status=group.status)
        self.apply_updates(
            group,
            name=name,
            status=status,
            photo_url=photo_url,
            privacy=privacy,
            expires_in_hours=expires_in_hours,
            allowed_statuses=OWNER_SETTABLE_STATUSES,
            now=now,
        )
        self.db.commit()
        self.db.refresh(group)
        return group

    def apply_updates(
        self,
        group: Group,
        name: Optional[str] = None,
        status: Optional[str] = None,
        photo_url: Optional[str] = None,
        privacy: Optional[str] = None,
        expires_in_hours: Optional[int] = None,
        allowed_statuses=None,
        now: Optional[datetime] = None
    ) -> None:
        """Apply field changes in place; the caller commits"""
        now = now or datetime.utcnow()
        if name is not None:
            group.name = name
        if photo_url is not None:
            group.photo_url = photo_url
        if status is not None:
            if allowed_statuses is not None and status not in allowed_statuses:
                raise ValidationFailed(f"Group status cannot be set to '{status}'")
            group.status = status
        if privacy is not None and group.privacy != GroupPrivacy.DIRECT.value:
            group.privacy = GroupPrivacy.PRIVATE.value if privacy == GroupPrivacy.PRIVATE.value else GroupPrivacy.PUBLIC.value
        if expires_in_hours is not None:
            group.expires_at = now + timedelta(hours=expires_in_hours) if expires_in_hours > 0 else None

    def update_member_role(self, actor: User, group_id: str, member_id: str, role: str) -> GroupMember:
        group = self.get_owned_group(actor, group_id)
        if not role:
            raise ValidationFailed("role is required")
        if role not in MEMBER_ROLES:
            raise ValidationFailed(f"Unknown role '{role}'")

        membership = self.get_membership(group.id, member_id)
        if membership is None:
            raise NotFound("Member not found")
        membership.role = role
        self.db.commit()
        self.db.refresh(membership)
        return membership

    def remove_member(self, actor: User, group_id: str, member_id: str, now: Optional[datetime] = None) -> GroupMember:
        group = self.get_owned_group(actor, group_id)
        if member_id == group.owner_id:
            raise ValidationFailed("The owner cannot be removed from the group")

        membership = self.get_membership(group.id, member_id)
        if membership is None:
            raise NotFound("Member not found")
        membership.state = MemberState.REMOVED.value
        membership.left_at = now or datetime.utcnow()
        self.db.commit()
        logger.info(f"User {member_id} removed from group {group.id}")
        return membership

    def delete(self, actor: User, group_id: str) -> None:
        """Remove the group with its members, wishlist, chat and join requests"""
        group = self.get_owned_group(actor, group_id)

        item_ids = [row.id for row in self.db.query(GroupWishlistItem.id).filter(
            GroupWishlistItem.group_id == group.id
        ).all()]
        try:
            if item_ids:
                self.db.query(GroupWishlistLike).filter(
                    GroupWishlistLike.item_id.in_(item_ids)
                ).delete(synchronize_session=False)
            self.db.query(GroupWishlistItem).filter(
                GroupWishlistItem.group_id == group.id
            ).delete(synchronize_session=False)
            self.db.query(ChatMessage).filter(
                ChatMessage.group_id == group.id
            ).delete(synchronize_session=False)
            self.db.query(JoinRequest).filter(
                JoinRequest.group_id == group.id
            ).delete(synchronize_session=False)
            self.db.query(GroupMember).filter(
                GroupMember.group_id == group.id
            ).delete(synchronize_session=False)
            self.db.delete(group)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Group {group_id} deleted by {actor.id}")

    # ------------------------------------------------------------------
    # Direct conversations
    # ------------------------------------------------------------------

    def find_direct(self, user_id: str, other_id: str) -> Optional[Group]:
        mine = self.db.query(GroupMember.group_id).filter(GroupMember.user_id == user_id)
        theirs = self.db.query(GroupMember.group_id).filter(GroupMember.user_id == other_id)
        return self.db.query(Group).filter(
            Group.privacy == GroupPrivacy.DIRECT.value,
            Group.id.in_(mine),
            Group.id.in_(theirs)
        ).order_by(Group.created_at).first()

    def start_direct(
        self,
        user: User,
        host_id: str,
        property_id: str,
        message: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Open (or reuse) a private room with a host and post a property card"""
        now = now or datetime.utcnow()
        if host_id == user.id:
            raise ValidationFailed("Cannot start a conversation with yourself")
        if self.db.query(User).filter(User.id == host_id).first() is None:
            raise NotFound("Host not found")

        listing = self.db.query(Property).filter(
            Property.id == property_id,
            Property.is_deleted == False
        ).first()
        if listing is None:
            raise NotFound("Property not found")

        group = self.find_direct(user.id, host_id)
        if group is None:
            group = Group(
                name="Conversation",
                owner_id=user.id,
                privacy=GroupPrivacy.DIRECT.value,
                status=GroupStatus.ACTIVE.value,
            )
            self.db.add(group)
            self.db.flush()
            for member_id in (user.id, host_id):
                self.db.add(GroupMember(
                    group_id=group.id,
                    user_id=member_id,
                    role=MemberRole.MEMBER.value,
                    state=MemberState.JOINED.value,
                    joined_at=now,
                ))

        self.db.add(ChatMessage(
            group_id=group.id,
            sender_id=user.id,
            content=message or "",
            color=DIRECT_MESSAGE_COLOR,
            message_type=MessageType.PROPERTY.value,
            ref_type="property",
            ref_id=listing.id,
            preview_title=listing.title,
            preview_subtitle=listing.city,
            preview_image_url=listing.first_image,
        ))
        self.db.commit()

        logger.info(f"Direct conversation {group.id} between {user.id} and {host_id}")
        return {"success": True, "groupID": group.id}
