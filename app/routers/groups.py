"""
Groups API

Lobby management, membership, chat, typing, wishlist, discovery and
join requests.
"""

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session
from typing import List
import logging

from ..database import get_db
from ..models.user import User
from ..schemas.group import (
    DiscoverRequest,
    GroupListResponse,
    GroupResponse,
    GroupUpdate,
    JoinRequestCreate,
    JoinRequestRespond,
    JoinRequestResponse,
    MemberResponse,
    MemberRoleUpdate,
    MessageCreate,
    MessageResponse,
    ShareProperty,
    TypingUser,
    WishlistAdd,
    WishlistEntry,
    WishlistItemResponse,
)
from ..services.chat_service import ChatService
from ..services.group_lobby import GroupLobby
from ..services.join_request_service import JoinRequestService
from ..services.typing_indicator import TypingIndicator
from ..utils.dependencies import get_current_user
from ..utils.rate_limiter import limiter, get_rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/groups", tags=["Groups"])


# ================================
# DISCOVERY & JOIN REQUESTS
# ================================

@router.get("/mine", response_model=GroupListResponse)
def list_my_groups(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return {"success": True, "groups": GroupLobby(db).list_mine(current_user)}


@router.post("/discover")
@limiter.limit(get_rate_limit("discover"))
def discover_groups(
    request: Request,
    payload: DiscoverRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Lobbies the caller could ask to join.

    Users without a name get `{success: false, error: "profile_incomplete"}`
    instead of a list.
    """
    result = JoinRequestService(db).discover(
        current_user,
        privacy=payload.privacy,
        location=payload.location,
        limit=payload.limit,
        offset=payload.offset,
    )
    if not result["success"]:
        return result
    return {"success": True, "groups": [GroupResponse.model_validate(g) for g in result["groups"]]}


@router.post("/request-join", response_model=JoinRequestResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("join_request"))
def request_join(
    request: Request,
    payload: JoinRequestCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return JoinRequestService(db).request(current_user, payload.group_id, message=payload.message)


@router.get("/my-requests", response_model=List[JoinRequestResponse])
def list_my_requests(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return JoinRequestService(db).mine(current_user)


@router.post("/requests/{request_id}/respond", response_model=JoinRequestResponse)
def respond_to_request(
    request_id: str,
    payload: JoinRequestRespond,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return JoinRequestService(db).respond(current_user, request_id, payload.action)


@router.get("/{group_id}/requests", response_model=List[JoinRequestResponse])
def list_group_requests(
    group_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return JoinRequestService(db).for_group(current_user, group_id)


# ================================
# MEMBERSHIP
# ================================

@router.get("/{group_id}/members", response_model=List[MemberResponse])
def list_members(
    group_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return GroupLobby(db).members(current_user, group_id)


@router.post("/{group_id}/members/{member_id}/role", response_model=MemberResponse)
def update_member_role(
    group_id: str,
    member_id: str,
    payload: MemberRoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return GroupLobby(db).update_member_role(current_user, group_id, member_id, payload.role)


@router.post("/{group_id}/members/{member_id}/remove")
def remove_member(
    group_id: str,
    member_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    GroupLobby(db).remove_member(current_user, group_id, member_id)
    return {"success": True}


@router.post("/{group_id}/leave")
def leave_group(
    group_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    GroupLobby(db).leave(current_user, group_id)
    return {"success": True}


@router.post("/{group_id}/finalize")
def finalize_group(
    group_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Mark the lobby ready once every seat of the experience is taken"""
    result = GroupLobby(db).finalize(current_user, group_id)
    if not result["success"]:
        return result
    return {"success": True, "group": GroupResponse.model_validate(result["group"])}


@router.put("/{group_id}", response_model=GroupResponse)
def update_group(
    group_id: str,
    payload: GroupUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return GroupLobby(db).update_group(
        current_user,
        group_id,
        name=payload.name,
        status=payload.status,
        photo_url=payload.photo_url,
        privacy=payload.privacy,
        expires_in_hours=payload.expires_in_hr,
    )


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_group(
    group_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    GroupLobby(db).delete(current_user, group_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ================================
# CHAT
# ================================

@router.get("/{group_id}/messages", response_model=List[MessageResponse])
def list_messages(
    group_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return ChatService(db).list_messages(current_user, group_id)


@router.post("/{group_id}/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("chat_send"))
def send_message(
    request: Request,
    group_id: str,
    payload: MessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return ChatService(db).send_message(
        current_user,
        group_id,
        payload.content,
        color=payload.color,
        ttl_seconds=payload.ttl_sec,
    )


@router.post("/{group_id}/share-property", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def share_property(
    group_id: str,
    payload: ShareProperty,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return ChatService(db).share_property(current_user, group_id, payload.property_id)


@router.get("/{group_id}/typing")
def get_typing(
    group_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    lobby = GroupLobby(db)
    lobby.get_group(group_id)
    lobby.require_member(group_id, current_user.id)

    typing = TypingIndicator().who_is_typing(group_id, lobby.joined_members(group_id), current_user.id)
    return {"success": True, "typing": [TypingUser(**t) for t in typing]}


@router.post("/{group_id}/typing")
@limiter.limit(get_rate_limit("typing"))
def post_typing(
    request: Request,
    group_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    lobby = GroupLobby(db)
    lobby.get_group(group_id)
    lobby.require_member(group_id, current_user.id)

    TypingIndicator().mark_typing(group_id, current_user.id)
    return {"success": True}


# ================================
# WISHLIST
# ================================

@router.get("/{group_id}/wishlist", response_model=List[WishlistEntry])
def list_wishlist(
    group_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    entries = ChatService(db).list_wishlist(current_user, group_id)
    return [WishlistEntry.model_validate(entry, from_attributes=True) for entry in entries]


@router.post("/{group_id}/wishlist", response_model=WishlistItemResponse, status_code=status.HTTP_201_CREATED)
def add_to_wishlist(
    group_id: str,
    payload: WishlistAdd,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return ChatService(db).add_to_wishlist(
        current_user,
        group_id,
        experience_id=payload.experience_id,
        property_id=payload.property_id,
    )


@router.post("/{group_id}/wishlist/{item_id}/like")
def like_wishlist_item(
    group_id: str,
    item_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    ChatService(db).like_item(current_user, group_id, item_id)
    return {"success": True}
