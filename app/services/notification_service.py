"""
Notification Service

Append-only in-app notifications. Rows are added to the caller's
session so they commit together with the state change they describe.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session

from ..models.notification import Notification, NotificationType

logger = logging.getLogger(__name__)


def notify(
    db: Session,
    user_id: str,
    notification_type: NotificationType,
    title: str,
    message: Optional[str] = None,
    ref_type: Optional[str] = None,
    ref_id: Optional[str] = None
) -> Notification:
    """Queue a notification for a user in the current transaction"""
    notification = Notification(
        user_id=user_id,
        type=notification_type.value,
        title=title,
        message=message,
        ref_type=ref_type,
        ref_id=ref_id,
        is_read=False
    )
    db.add(notification)
    logger.debug(f"Notification {notification_type.value} queued for user {user_id}")
    return notification


def list_for_user(
    db: Session,
    user_id: str,
    unread_only: bool = False,
    limit: int = 50,
    offset: int = 0
) -> Tuple[List[Notification], int]:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read == False)
    total = query.count()
    items = query.order_by(Notification.created_at.desc()).offset(offset).limit(limit).all()
    return items, total


def unread_count(db: Session, user_id: str) -> int:
    return db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.is_read == False
    ).count()


def mark_read(db: Session, user_id: str, notification_id: str) -> Optional[Notification]:
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user_id
    ).first()
    if notification is None:
        return None
    if not notification.is_read:
        notification.mark_as_read()
        db.commit()
    return notification


def mark_all_read(db: Session, user_id: str) -> int:
    count = db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.is_read == False
    ).update({
        "is_read": True,
        "read_at": datetime.utcnow()
    }, synchronize_session=False)
    db.commit()
    return count
