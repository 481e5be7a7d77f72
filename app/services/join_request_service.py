"""
Join Request Service

Discovery flow: a traveller finds a public lobby, asks to join, and
the owner accepts or declines. Accepting goes through the lobby's
capacity-checked join.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import exists, func
from sqlalchemy.orm import Session, joinedload

from ..models.experience import Experience
from ..models.group import (
    Group,
    GroupMember,
    GroupPrivacy,
    GroupStatus,
    JoinRequest,
    JoinRequestStatus,
    MemberState,
)
from ..models.notification import NotificationType
from ..models.user import User
from ..utils.errors import Conflict, Forbidden, NotFound, ValidationFailed
from .group_lobby import GroupLobby
from .notification_service import notify

logger = logging.getLogger(__name__)

DEFAULT_DISCOVER_LIMIT = 20
MAX_DISCOVER_LIMIT = 100
RESPONSE_ACTIONS = {
    "accept": JoinRequestStatus.ACCEPTED.value,
    "decline": JoinRequestStatus.DECLINED.value,
}


class JoinRequestService:

    def __init__(self, db: Session):
        self.db = db
        self.lobby = GroupLobby(db)

    def discover(
        self,
        user: User,
        privacy: Optional[str] = None,
        location: Optional[str] = None,
        limit: int = DEFAULT_DISCOVER_LIMIT,
        offset: int = 0
    ) -> Dict[str, Any]:
        """
        Lobbies the user could ask to join: not cancelled, not their own,
        not one they already belong to. Direct rooms never show up.
        """
        if not (user.first_name or user.last_name):
            return {
                "success": False,
                "error": "profile_incomplete",
                "message": "Please add your name to your profile before discovering groups",
            }

        limit = limit if limit and limit > 0 else DEFAULT_DISCOVER_LIMIT
        limit = min(limit, MAX_DISCOVER_LIMIT)
        offset = max(offset or 0, 0)

        already_in = exists().where(
            GroupMember.group_id == Group.id,
            GroupMember.user_id == user.id
        )
        query = self.db.query(Group).join(
            Experience, Experience.id == Group.experience_id
        ).options(
            joinedload(Group.experience),
            joinedload(Group.owner)
        ).filter(
            Group.status != GroupStatus.CANCELLED.value,
            Group.privacy != GroupPrivacy.DIRECT.value,
            Group.owner_id != user.id,
            ~already_in
        )

        if privacy in (GroupPrivacy.PUBLIC.value, GroupPrivacy.PRIVATE.value):
            query = query.filter(Group.privacy == privacy)
        if location:
            query = query.filter(func.lower(Experience.city).like(f"%{location.lower()}%"))

        groups = query.order_by(Group.created_at.desc()).offset(offset).limit(limit).all()
        logger.debug(f"Discover for {user.id}: {len(groups)} group(s) privacy={privacy} location={location}")
        return {"success": True, "groups": groups}

    def request(self, user: User, group_id: str, message: Optional[str] = None) -> JoinRequest:
        group = self.lobby.get_group(group_id)
        if group.privacy == GroupPrivacy.DIRECT.value:
            raise NotFound("Group not found")

        pending = self.db.query(JoinRequest).filter(
            JoinRequest.group_id == group.id,
            JoinRequest.requester_id == user.id,
            JoinRequest.status == JoinRequestStatus.PENDING.value
        ).first()
        if pending:
            raise Conflict("You already requested to join this group", reason="already_requested")

        membership = self.lobby.get_membership(group.id, user.id)
        if membership is not None and membership.state == MemberState.JOINED.value:
            raise Conflict("You are already a member of this group", reason="already_member")

        request = JoinRequest(
            group_id=group.id,
            requester_id=user.id,
            message=message,
            status=JoinRequestStatus.PENDING.value,
        )
        self.db.add(request)
        notify(
            self.db,
            group.owner_id,
            NotificationType.GROUP_JOIN_REQUEST,
            "New Group Join Request",
            f"{user.full_name} wants to join your group \"{group.name or ''}\"",
            ref_type="group",
            ref_id=group.id,
        )
        self.db.commit()
        self.db.refresh(request)

        logger.info(f"Join request {request.id} from {user.id} for group {group.id}")
        return request

    def respond(
        self,
        owner: User,
        request_id: str,
        action: str,
        now: Optional[datetime] = None
    ) -> JoinRequest:
        now = now or datetime.utcnow()
        if action not in RESPONSE_ACTIONS:
            raise ValidationFailed("action must be 'accept' or 'decline'")

        request = self.db.query(JoinRequest).filter(JoinRequest.id == request_id).first()
        if request is None:
            raise NotFound("Join request not found")
        group = request.group
        if group.owner_id != owner.id and not owner.is_admin:
            raise Forbidden("Only the group owner can respond to join requests")
        if request.status != JoinRequestStatus.PENDING.value:
            raise Conflict("Join request was already processed", reason="request_already_processed")

        try:
            request.status = RESPONSE_ACTIONS[action]
            request.responded_at = now

            if action == "accept":
                self.lobby.join(group, request.requester_id, now=now)
                notify(
                    self.db,
                    request.requester_id,
                    NotificationType.GROUP_JOIN_ACCEPTED,
                    "Join Request Accepted",
                    f"Your request to join \"{group.name or ''}\" has been accepted!",
                    ref_type="group",
                    ref_id=group.id,
                )
            else:
                notify(
                    self.db,
                    request.requester_id,
                    NotificationType.GROUP_JOIN_DECLINED,
                    "Join Request Declined",
                    f"Your request to join \"{group.name or ''}\" was declined",
                    ref_type="group",
                    ref_id=group.id,
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Join request {request.id} {request.status} by {owner.id}")
        return request

    def mine(self, user: User) -> List[JoinRequest]:
        return self.db.query(JoinRequest).options(
            joinedload(JoinRequest.group).joinedload(Group.experience)
        ).filter(
            JoinRequest.requester_id == user.id
        ).order_by(JoinRequest.created_at.desc()).all()

    def for_group(self, owner: User, group_id: str) -> List[JoinRequest]:
        group = self.lobby.get_owned_group(owner, group_id)
        return self.db.query(JoinRequest).options(
            joinedload(JoinRequest.requester)
        ).filter(
            JoinRequest.group_id == group.id
        ).order_by(JoinRequest.created_at.desc()).all()
