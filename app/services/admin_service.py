"""
Admin moderation: property review status and group overrides.
Every mutation is written to the audit log in the same transaction.
"""

import logging
from typing import Optional

from fastapi import Request
from sqlalchemy.orm import Session

from ..models.audit_log import AuditAction
from ..models.group import Group, GroupStatus
from ..models.property import Property, PropertyStatus
from ..models.user import User
from ..utils.errors import NotFound, ValidationFailed
from .audit_service import record_admin_action
from .group_lobby import GroupLobby

logger = logging.getLogger(__name__)

PROPERTY_STATUSES = {s.value for s in PropertyStatus}
GROUP_STATUSES = {s.value for s in GroupStatus}


def property_snapshot(listing: Property) -> dict:
    return {"status": listing.status, "is_active": listing.is_active}


def group_snapshot(group: Group) -> dict:
    return {
        "name": group.name,
        "status": group.status,
        "privacy": group.privacy,
        "photo_url": group.photo_url,
        "expires_at": group.expires_at,
    }


def update_property_status(
    db: Session,
    admin: User,
    property_id: str,
    status: str,
    request: Optional[Request] = None
) -> Property:
    if status not in PROPERTY_STATUSES:
        raise ValidationFailed(f"Unknown property status '{status}'")

    listing = db.query(Property).filter(Property.id == property_id).first()
    if listing is None:
        raise NotFound("Property not found")

    before = property_snapshot(listing)
    listing.status = status
    record_admin_action(
        db,
        admin,
        AuditAction.PROPERTY_STATUS_UPDATE,
        resource_type="property",
        resource_id=listing.id,
        before=before,
        after=property_snapshot(listing),
        request=request,
    )
    db.commit()
    db.refresh(listing)

    logger.info(f"Admin {admin.id} set property {listing.id} status {before['status']} -> {status}")
    return listing


def override_group(
    db: Session,
    admin: User,
    group_id: str,
    name: Optional[str] = None,
    status: Optional[str] = None,
    photo_url: Optional[str] = None,
    privacy: Optional[str] = None,
    expires_in_hours: Optional[int] = None,
    request: Optional[Request] = None
) -> Group:
    """Admin edit of any group; the only path that can set status=locked"""
    if status is not None and status not in GROUP_STATUSES:
        raise ValidationFailed(f"Unknown group status '{status}'")

    lobby = GroupLobby(db)
    group = lobby.get_group(group_id)
    before = group_snapshot(group)
    lobby.apply_updates(
        group,
        name=name,
        status=status,
        photo_url=photo_url,
        privacy=privacy,
        expires_in_hours=expires_in_hours,
    )

    action = AuditAction.GROUP_LOCK if status == GroupStatus.LOCKED.value else AuditAction.GROUP_UPDATE
    record_admin_action(
        db,
        admin,
        action,
        resource_type="group",
        resource_id=group.id,
        before=before,
        after=group_snapshot(group),
        request=request,
    )
    db.commit()
    db.refresh(group)

    logger.info(f"Admin {admin.id} applied {action.value} to group {group.id}")
    return group
