from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from datetime import datetime


class PropertyStatusUpdate(BaseModel):
    status: str = Field(..., min_length=1)


class PropertyModerationResponse(BaseModel):
    id: str
    title: str
    status: str
    is_active: bool
    host_id: str

    class Config:
        from_attributes = True


class AdminGroupUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    status: Optional[str] = None
    photo_url: Optional[str] = Field(None, max_length=500, alias="photoURL")
    privacy: Optional[str] = None
    expires_in_hr: Optional[int] = Field(None, alias="expiresInHr")

    class Config:
        populate_by_name = True


class AuditLogResponse(BaseModel):
    id: str
    admin_user_id: Optional[str] = None
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    before_json: Optional[Dict[str, Any]] = None
    after_json: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
