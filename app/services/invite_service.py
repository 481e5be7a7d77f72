"""
Invite Service

Targeted invites name a user; link invites carry a random token that
anyone holding it can accept. Accepting adds the user to the
experience's participants and to the inviter's open lobby.
"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from ..models.experience import Experience, ExperienceParticipant, ParticipantStatus
from ..models.group import Group, OPEN_GROUP_STATUSES
from ..models.invite import Invite, InviteStatus
from ..models.user import User
from ..utils.errors import CapacityFull, Conflict, Forbidden, NotFound
from .group_lobby import GroupLobby

logger = logging.getLogger(__name__)

LINK_TOKEN_BYTES = 24


def generate_link_token() -> str:
    return secrets.token_hex(LINK_TOKEN_BYTES)


class InviteService:

    def __init__(self, db: Session):
        self.db = db

    def get_experience(self, experience_id: str) -> Experience:
        experience = self.db.query(Experience).filter(Experience.id == experience_id).first()
        if experience is None:
            raise NotFound("Experience not found")
        return experience

    def get_invite(self, invite_id: str) -> Invite:
        invite = self.db.query(Invite).filter(Invite.id == invite_id).first()
        if invite is None:
            raise NotFound("Invite not found")
        return invite

    def create_invites(
        self,
        inviter: User,
        experience_id: str,
        invitee_ids: Optional[Iterable[str]] = None,
        create_link: bool = False,
        expires_in_hours: int = 0,
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Create one pending invite per invitee (reusing an existing pending
        one) and optionally a link invite. Returns the link token or "".
        """
        now = now or datetime.utcnow()
        self.get_experience(experience_id)
        expires_at = now + timedelta(hours=expires_in_hours) if expires_in_hours and expires_in_hours > 0 else None

        created = 0
        for invitee_id in invitee_ids or []:
            if invitee_id == inviter.id:
                continue
            existing = self.db.query(Invite).filter(
                Invite.experience_id == experience_id,
                Invite.inviter_id == inviter.id,
                Invite.invitee_user_id == invitee_id,
                Invite.status == InviteStatus.PENDING.value
            ).first()
            if existing:
                continue
            self.db.add(Invite(
                experience_id=experience_id,
                inviter_id=inviter.id,
                invitee_user_id=invitee_id,
                link_token=None,
                status=InviteStatus.PENDING.value,
                expires_at=expires_at,
            ))
            created += 1

        link_token = ""
        if create_link:
            link_token = generate_link_token()
            self.db.add(Invite(
                experience_id=experience_id,
                inviter_id=inviter.id,
                invitee_user_id=None,
                link_token=link_token,
                status=InviteStatus.PENDING.value,
                expires_at=expires_at,
            ))

        self.db.commit()
        logger.info(
            f"User {inviter.id} invited {created} user(s) to experience {experience_id}"
            f"{' with a link' if link_token else ''}"
        )
        return {"success": True, "linkToken": link_token}

    def list_for_user(self, user: User) -> List[Invite]:
        """Invites the user sent or received"""
        return self.db.query(Invite).options(
            joinedload(Invite.inviter),
            joinedload(Invite.invitee)
        ).filter(
            or_(Invite.inviter_id == user.id, Invite.invitee_user_id == user.id)
        ).order_by(Invite.created_at.desc()).all()

    def joined_participants(self, experience_id: str) -> int:
        return self.db.query(ExperienceParticipant).filter(
            ExperienceParticipant.experience_id == experience_id,
            ExperienceParticipant.status == ParticipantStatus.JOINED.value
        ).count()

    def inviter_open_group(self, experience_id: str, inviter_id: str) -> Optional[Group]:
        return self.db.query(Group).filter(
            Group.experience_id == experience_id,
            Group.owner_id == inviter_id,
            Group.status.in_(OPEN_GROUP_STATUSES)
        ).order_by(Group.created_at.desc()).first()

    def accept(self, user: User, invite_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.utcnow()
        invite = self.get_invite(invite_id)

        if invite.invitee_user_id is not None and invite.invitee_user_id != user.id:
            raise Forbidden("This invite is for another user")
        if invite.status != InviteStatus.PENDING.value:
            raise Conflict(f"Invite is already {invite.status}")
        if invite.expires_at is not None and invite.expires_at <= now:
            invite.status = InviteStatus.EXPIRED.value
            self.db.commit()
            raise Conflict("Invite has expired")

        experience = self.get_experience(invite.experience_id)

        participant = self.db.query(ExperienceParticipant).filter(
            ExperienceParticipant.experience_id == experience.id,
            ExperienceParticipant.user_id == user.id
        ).first()
        already_joined = participant is not None and participant.status == ParticipantStatus.JOINED.value
        if not already_joined and self.joined_participants(experience.id) >= experience.group_size:
            raise CapacityFull()

        try:
            invite.status = InviteStatus.ACCEPTED.value

            if participant is None:
                participant = ExperienceParticipant(experience_id=experience.id, user_id=user.id)
                self.db.add(participant)
            participant.status = ParticipantStatus.JOINED.value
            participant.joined_at = now
            participant.left_at = None
            self.db.flush()

            group = self.inviter_open_group(experience.id, invite.inviter_id)
            if group is not None:
                GroupLobby(self.db).join(group, user.id, now=now)

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Invite {invite.id} accepted by {user.id}")
        return {"success": True, "groupID": group.id if group is not None else None}

    def decline(self, user: User, invite_id: str) -> Invite:
        invite = self.get_invite(invite_id)
        if invite.invitee_user_id is not None and invite.invitee_user_id != user.id:
            raise Forbidden("This invite is for another user")
        if invite.status != InviteStatus.PENDING.value:
            raise Conflict(f"Invite is already {invite.status}")
        invite.status = InviteStatus.DECLINED.value
        self.db.commit()
        return invite

    def cancel(self, user: User, invite_id: str) -> Invite:
        invite = self.get_invite(invite_id)
        if invite.inviter_id != user.id:
            raise Forbidden("Only the inviter can cancel this invite")
        if invite.status != InviteStatus.PENDING.value:
            raise Conflict(f"Invite is already {invite.status}")
        invite.status = InviteStatus.CANCELLED.value
        self.db.commit()
        return invite

    def participants(self, experience_id: str) -> List[ExperienceParticipant]:
        self.get_experience(experience_id)
        return self.db.query(ExperienceParticipant).options(
            joinedload(ExperienceParticipant.user)
        ).filter(
            ExperienceParticipant.experience_id == experience_id,
            ExperienceParticipant.status == ParticipantStatus.JOINED.value
        ).all()

    def remove_participant(
        self,
        host: User,
        experience_id: str,
        user_id: str,
        now: Optional[datetime] = None
    ) -> int:
        experience = self.get_experience(experience_id)
        if experience.host_id != host.id and not host.is_admin:
            raise Forbidden("Only the host can remove participants")

        count = self.db.query(ExperienceParticipant).filter(
            ExperienceParticipant.experience_id == experience_id,
            ExperienceParticipant.user_id == user_id,
            ExperienceParticipant.status == ParticipantStatus.JOINED.value
        ).update({
            ExperienceParticipant.status: ParticipantStatus.REMOVED.value,
            ExperienceParticipant.left_at: now or datetime.utcnow(),
        }, synchronize_session=False)
        self.db.commit()
        return count
