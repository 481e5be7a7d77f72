"""
Audit Logging Service

Helpers for recording admin mutations in the audit log.
"""
from sqlalchemy.orm import Session
from fastapi import Request
from typing import Optional, Any, Dict

from ..models.audit_log import AuditLog, AuditAction
from ..models.user import User


def get_client_ip(request: Request) -> Optional[str]:
    """Client IP, honouring proxy headers"""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host
    return None


def get_user_agent(request: Request) -> Optional[str]:
    return request.headers.get("User-Agent")


def record_admin_action(
    db: Session,
    admin: Optional[User],
    action: AuditAction,
    resource_type: str,
    resource_id: Optional[str] = None,
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None
) -> AuditLog:
    """
    Record an admin mutation.

    Args:
        db: Database session (entry commits with the mutation)
        admin: Acting admin user
        action: Action verb, e.g. property.status_update
        resource_type: Kind of resource touched
        resource_id: Its id
        before: Snapshot before the change
        after: Snapshot after the change
        request: Request, for IP and User-Agent
    """
    return AuditLog.log(
        db,
        admin,
        action=action.value,
        resource_type=resource_type,
        resource_id=resource_id,
        before=before,
        after=after,
        ip_address=get_client_ip(request) if request else None,
        user_agent=get_user_agent(request) if request else None,
    )


def list_audit_logs(
    db: Session,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    limit: int = 50,
    offset: int = 0
):
    query = db.query(AuditLog)
    if resource_type:
        query = query.filter(AuditLog.resource_type == resource_type)
    if resource_id:
        query = query.filter(AuditLog.resource_id == resource_id)
    total = query.count()
    items = query.order_by(AuditLog.created_at.desc()).offset(offset).limit(limit).all()
    return items, total
