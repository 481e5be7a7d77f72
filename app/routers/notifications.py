"""
Notifications Router

In-app notifications of the current user.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.user import User
from ..schemas.notification import NotificationResponse, UnreadCount
from ..schemas.pagination import Page
from ..services import notification_service
from ..utils.dependencies import get_current_user
from ..utils.errors import NotFound


router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


@router.get("", response_model=Page[NotificationResponse])
def list_notifications(
    unread_only: bool = Query(False, alias="unreadOnly"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    items, total = notification_service.list_for_user(
        db, current_user.id, unread_only=unread_only, limit=limit, offset=offset
    )
    return Page.create(
        items=[NotificationResponse.model_validate(n) for n in items],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/unread-count", response_model=UnreadCount)
def get_unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return {"unread": notification_service.unread_count(db, current_user.id)}


@router.patch("/read-all")
def mark_all_as_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    count = notification_service.mark_all_read(db, current_user.id)
    return {"success": True, "count": count}


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
def mark_as_read(
    notification_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    notification = notification_service.mark_read(db, current_user.id, notification_id)
    if notification is None:
        raise NotFound("Notification not found")
    return notification
