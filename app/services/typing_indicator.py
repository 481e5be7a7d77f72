"""
Typing indicators

Short-lived Redis keys, one per (group, user). Nothing else in the
application is kept in Redis. Without REDIS_URL the indicator is
disabled: pings are accepted and nobody is reported as typing.
"""

import logging
from typing import Dict, List, Optional

import redis

from ..config import settings

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None


def typing_key(group_id: str, user_id: str) -> str:
    return f"typing:grp:{group_id}:user:{user_id}"


def get_redis_client() -> Optional[redis.Redis]:
    global _redis_client
    if _redis_client is None and settings.redis_url:
        _redis_client = redis.from_url(settings.redis_url, decode_responses=True)
        logger.info("Redis client created for typing indicators")
    return _redis_client


class TypingIndicator:

    def __init__(self, client: Optional[redis.Redis] = None, ttl_seconds: Optional[int] = None):
        self.client = client if client is not None else get_redis_client()
        self.ttl_seconds = ttl_seconds or settings.typing_ttl_seconds

    def mark_typing(self, group_id: str, user_id: str) -> bool:
        if self.client is None:
            return False
        try:
            self.client.set(typing_key(group_id, user_id), "1", ex=self.ttl_seconds)
            return True
        except redis.RedisError as e:
            logger.warning(f"Typing ping failed for group {group_id}: {e}")
            return False

    def who_is_typing(self, group_id: str, members, exclude_user_id: str) -> List[Dict[str, str]]:
        """Members (other than the caller) with a live typing key"""
        if self.client is None:
            return []

        typing = []
        for member in members:
            if member.user_id == exclude_user_id:
                continue
            try:
                value = self.client.get(typing_key(group_id, member.user_id))
            except redis.RedisError as e:
                logger.warning(f"Typing lookup failed for group {group_id}: {e}")
                return typing
            if value == "1":
                typing.append({
                    "userID": member.user_id,
                    "name": member.user.full_name if member.user else "",
                })
        return typing

    def ping(self) -> Dict[str, str]:
        if self.client is None:
            return {"status": "not_configured"}
        try:
            self.client.ping()
            return {"status": "up"}
        except redis.RedisError as e:
            return {"status": "down", "error": str(e)[:50]}
