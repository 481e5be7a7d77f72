"""
Group Chat Service

Messages, shared property cards and the shared wishlist of a group.
Only joined members can read or write.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from ..models.experience import Experience
from ..models.group import (
    ChatMessage,
    GroupWishlistItem,
    GroupWishlistLike,
    MessageType,
)
from ..models.property import Property
from ..models.user import User
from ..utils.errors import NotFound, ValidationFailed
from .group_lobby import GroupLobby

logger = logging.getLogger(__name__)

MESSAGE_HISTORY_LIMIT = 100


def first_photo_url(photos) -> Optional[str]:
    """
    First URL of a photo list stored either as ["url", ...] or
    [{"url": ...}, ...].
    """
    if not photos or not isinstance(photos, list):
        return None
    first = photos[0]
    if isinstance(first, dict):
        url = first.get("url")
        return url if isinstance(url, str) and url else None
    if isinstance(first, str) and first:
        return first
    return None


class ChatService:

    def __init__(self, db: Session):
        self.db = db
        self.lobby = GroupLobby(db)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def list_messages(self, user: User, group_id: str, now: Optional[datetime] = None) -> List[ChatMessage]:
        """Last 100 live messages in chronological order"""
        now = now or datetime.utcnow()
        self.lobby.get_group(group_id)
        self.lobby.require_member(group_id, user.id)

        latest = self.db.query(ChatMessage).options(
            joinedload(ChatMessage.sender)
        ).filter(
            ChatMessage.group_id == group_id,
            or_(ChatMessage.expires_at.is_(None), ChatMessage.expires_at > now)
        ).order_by(
            ChatMessage.created_at.desc(), ChatMessage.id.desc()
        ).limit(MESSAGE_HISTORY_LIMIT).all()
        latest.reverse()
        return latest

    def send_message(
        self,
        user: User,
        group_id: str,
        content: str,
        color: Optional[str] = None,
        ttl_seconds: int = 0,
        now: Optional[datetime] = None
    ) -> ChatMessage:
        now = now or datetime.utcnow()
        self.lobby.get_group(group_id)
        self.lobby.require_member(group_id, user.id)
        if not content or not content.strip():
            raise ValidationFailed("content is required")

        message = ChatMessage(
            group_id=group_id,
            sender_id=user.id,
            content=content,
            color=color,
            message_type=MessageType.MESSAGE.value,
            expires_at=now + timedelta(seconds=ttl_seconds) if ttl_seconds and ttl_seconds > 0 else None,
            created_at=now,
        )
        self.db.add(message)
        self.db.commit()
        self.db.refresh(message)
        return message

    def share_property(self, user: User, group_id: str, property_id: str) -> ChatMessage:
        self.lobby.get_group(group_id)
        self.lobby.require_member(group_id, user.id)

        listing = self.db.query(Property).filter(
            Property.id == property_id,
            Property.is_deleted == False
        ).first()
        if listing is None:
            raise NotFound("Property not found")

        message = ChatMessage(
            group_id=group_id,
            sender_id=user.id,
            content="shared a property",
            message_type=MessageType.PROPERTY.value,
            ref_type="property",
            ref_id=listing.id,
            preview_title=listing.title,
            preview_subtitle=listing.city,
            preview_description=listing.description,
            preview_image_url=listing.first_image,
        )
        self.db.add(message)
        self.db.commit()
        self.db.refresh(message)
        return message

    # ------------------------------------------------------------------
    # Wishlist
    # ------------------------------------------------------------------

    def list_wishlist(self, user: User, group_id: str) -> List[Dict[str, Any]]:
        self.lobby.get_group(group_id)
        self.lobby.require_member(group_id, user.id)

        items = self.db.query(GroupWishlistItem).options(
            joinedload(GroupWishlistItem.likes)
        ).filter(
            GroupWishlistItem.group_id == group_id
        ).order_by(GroupWishlistItem.created_at.desc()).all()

        result = []
        for item in items:
            listing = None
            experience = None
            if item.property_id:
                listing = self.db.query(Property).filter(Property.id == item.property_id).first()
            if item.experience_id:
                experience = self.db.query(Experience).filter(Experience.id == item.experience_id).first()
            result.append({
                "item": item,
                "likes": [like.user_id for like in item.likes],
                "property": listing,
                "experience": experience,
            })
        return result

    def add_to_wishlist(
        self,
        user: User,
        group_id: str,
        experience_id: Optional[str] = None,
        property_id: Optional[str] = None
    ) -> GroupWishlistItem:
        """
        Add a property or an experience (exactly one) to the wishlist.
        The adder likes it automatically and a wishlist card is posted
        to the chat.
        """
        self.lobby.get_group(group_id)
        self.lobby.require_member(group_id, user.id)
        if bool(experience_id) == bool(property_id):
            raise ValidationFailed("Provide exactly one of experienceID or propertyID")

        query = self.db.query(GroupWishlistItem).filter(GroupWishlistItem.group_id == group_id)
        if experience_id:
            query = query.filter(GroupWishlistItem.experience_id == experience_id)
        else:
            query = query.filter(GroupWishlistItem.property_id == property_id)
        item = query.first()

        if property_id:
            listing = self.db.query(Property).filter(Property.id == property_id).first()
            if listing is None:
                raise NotFound("Property not found")
            preview = {
                "ref_type": "property",
                "ref_id": listing.id,
                "preview_title": listing.title,
                "preview_subtitle": listing.city,
                "preview_description": listing.description,
                "preview_image_url": listing.first_image,
            }
            content = "added a property to wishlist"
        else:
            experience = self.db.query(Experience).filter(Experience.id == experience_id).first()
            if experience is None:
                raise NotFound("Experience not found")
            preview = {
                "ref_type": "experience",
                "ref_id": experience.id,
                "preview_title": experience.title,
                "preview_subtitle": experience.city,
                "preview_description": experience.description,
                "preview_image_url": first_photo_url(experience.photos),
            }
            content = "added an experience to wishlist"

        if item is None:
            item = GroupWishlistItem(
                group_id=group_id,
                added_by_id=user.id,
                experience_id=experience_id,
                property_id=property_id,
            )
            self.db.add(item)
            self.db.flush()

        self._ensure_like(item.id, user.id)
        self.db.add(ChatMessage(
            group_id=group_id,
            sender_id=user.id,
            content=content,
            message_type=MessageType.WISHLIST.value,
            **preview
        ))
        self.db.commit()
        self.db.refresh(item)

        logger.info(f"Wishlist item {item.id} added to group {group_id} by {user.id}")
        return item

    def like_item(self, user: User, group_id: str, item_id: str) -> GroupWishlistLike:
        self.lobby.get_group(group_id)
        self.lobby.require_member(group_id, user.id)

        item = self.db.query(GroupWishlistItem).filter(
            GroupWishlistItem.id == item_id,
            GroupWishlistItem.group_id == group_id
        ).first()
        if item is None:
            raise NotFound("Wishlist item not found")

        like = self._ensure_like(item.id, user.id)
        self.db.commit()
        return like

    def _ensure_like(self, item_id: str, user_id: str) -> GroupWishlistLike:
        like = self.db.query(GroupWishlistLike).filter(
            GroupWishlistLike.item_id == item_id,
            GroupWishlistLike.user_id == user_id
        ).first()
        if like is None:
            like = GroupWishlistLike(item_id=item_id, user_id=user_id)
            self.db.add(like)
            self.db.flush()
        return like
