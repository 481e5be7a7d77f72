"""
Group Schemas

Lobbies, members, chat, wishlist and join requests. Request keys
follow the clients (photoURL, expiresInHr, groupID, ...).
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field

from .experience import ExperienceSummary
from .user import UserSummary


class GroupCreate(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    privacy: Optional[str] = None
    expires_in_hr: int = Field(default=0, alias="expiresInHr")

    class Config:
        populate_by_name = True


class GroupUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    status: Optional[str] = None
    photo_url: Optional[str] = Field(None, max_length=500, alias="photoURL")
    privacy: Optional[str] = None
    expires_in_hr: Optional[int] = Field(None, alias="expiresInHr")

    class Config:
        populate_by_name = True


class GroupResponse(BaseModel):
    id: str
    experience_id: Optional[str] = None
    owner_id: str
    name: Optional[str] = None
    photo_url: Optional[str] = None
    status: str
    privacy: str
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    experience: Optional[ExperienceSummary] = None

    class Config:
        from_attributes = True


class MemberResponse(BaseModel):
    id: str
    group_id: str
    user_id: str
    state: str
    role: str
    joined_at: Optional[datetime] = None
    left_at: Optional[datetime] = None
    user: Optional[UserSummary] = None

    class Config:
        from_attributes = True


class MemberRoleUpdate(BaseModel):
    role: Optional[str] = None


class MessageCreate(BaseModel):
    content: str = Field(..., max_length=4000)
    color: Optional[str] = Field(None, max_length=20)
    ttl_sec: int = Field(default=0, ge=0, alias="ttlSec")

    class Config:
        populate_by_name = True


class MessageResponse(BaseModel):
    id: str
    group_id: str
    sender_id: str
    content: str
    color: Optional[str] = None
    message_type: str
    ref_type: Optional[str] = None
    ref_id: Optional[str] = None
    preview_title: Optional[str] = None
    preview_subtitle: Optional[str] = None
    preview_description: Optional[str] = None
    preview_image_url: Optional[str] = None
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    sender: Optional[UserSummary] = None

    class Config:
        from_attributes = True


class ShareProperty(BaseModel):
    property_id: str = Field(..., min_length=1, alias="propertyID")

    class Config:
        populate_by_name = True


class StartDirect(BaseModel):
    host_id: str = Field(..., min_length=1, alias="hostID")
    property_id: str = Field(..., min_length=1, alias="propertyID")
    message: Optional[str] = Field(None, max_length=4000)

    class Config:
        populate_by_name = True


class WishlistAdd(BaseModel):
    experience_id: Optional[str] = Field(None, alias="experienceID")
    property_id: Optional[str] = Field(None, alias="propertyID")

    class Config:
        populate_by_name = True


class WishlistItemResponse(BaseModel):
    id: str
    group_id: str
    added_by_id: str
    experience_id: Optional[str] = None
    property_id: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DiscoverRequest(BaseModel):
    privacy: Optional[str] = None
    location: Optional[str] = None
    limit: int = 20
    offset: int = 0


class JoinRequestCreate(BaseModel):
    group_id: str = Field(..., min_length=1, alias="groupID")
    message: Optional[str] = Field(None, max_length=1000)

    class Config:
        populate_by_name = True


class JoinRequestRespond(BaseModel):
    action: str


class JoinRequestResponse(BaseModel):
    id: str
    group_id: str
    requester_id: str
    message: Optional[str] = None
    status: str
    responded_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    requester: Optional[UserSummary] = None
    group: Optional[GroupResponse] = None

    class Config:
        from_attributes = True


class TypingUser(BaseModel):
    userID: str
    name: str


class GroupListResponse(BaseModel):
    success: bool = True
    groups: List[GroupResponse]


class PropertySummary(BaseModel):
    id: str
    title: str
    city: Optional[str] = None
    nightly_price: Decimal
    rating: Optional[float] = None

    class Config:
        from_attributes = True


class WishlistEntry(BaseModel):
    item: WishlistItemResponse
    likes: List[str] = Field(default_factory=list)
    listing: Optional[PropertySummary] = Field(None, alias="property")
    experience: Optional[ExperienceSummary] = None

    class Config:
        populate_by_name = True
