"""
Admin Router

Property moderation, group overrides and the audit log.
"""
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from typing import Optional

from ..database import get_db
from ..models.user import User
from ..schemas.admin import (
    AdminGroupUpdate,
    AuditLogResponse,
    PropertyModerationResponse,
    PropertyStatusUpdate,
)
from ..schemas.group import GroupResponse
from ..schemas.pagination import Page
from ..services import admin_service
from ..services.audit_service import list_audit_logs
from ..utils.dependencies import require_admin

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.patch("/properties/{property_id}/status", response_model=PropertyModerationResponse)
def update_property_status(
    request: Request,
    property_id: str,
    payload: PropertyStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    return admin_service.update_property_status(
        db, current_user, property_id, payload.status, request=request
    )


@router.patch("/groups/{group_id}", response_model=GroupResponse)
def update_group(
    request: Request,
    group_id: str,
    payload: AdminGroupUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Edit any group, including locking it"""
    return admin_service.override_group(
        db,
        current_user,
        group_id,
        name=payload.name,
        status=payload.status,
        photo_url=payload.photo_url,
        privacy=payload.privacy,
        expires_in_hours=payload.expires_in_hr,
        request=request,
    )


@router.get("/audit-logs", response_model=Page[AuditLogResponse])
def get_audit_logs(
    resource_type: Optional[str] = Query(None, alias="resourceType"),
    resource_id: Optional[str] = Query(None, alias="resourceId"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    items, total = list_audit_logs(
        db, resource_type=resource_type, resource_id=resource_id, limit=limit, offset=offset
    )
    return Page.create(
        items=[AuditLogResponse.model_validate(entry) for entry in items],
        total=total,
        limit=limit,
        offset=offset,
    )
