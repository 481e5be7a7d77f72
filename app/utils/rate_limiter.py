"""
Rate Limiter Configuration

Uses Redis as shared storage when REDIS_URL is configured,
otherwise keeps counters in memory (single instance / development).
"""

import logging
from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request

from ..config import settings

logger = logging.getLogger(__name__)


def get_real_client_ip(request: Request) -> str:
    """Get real client IP behind reverse proxy"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Take the first IP (original client)
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


def create_limiter() -> Limiter:
    """
    Create a rate limiter with appropriate storage backend.
    """
    if settings.redis_url:
        logger.info("Using Redis rate limiter storage")
        storage_uri = settings.redis_url
    else:
        logger.info("Using in-memory rate limiter storage")
        storage_uri = "memory://"

    return Limiter(
        key_func=get_real_client_ip,
        storage_uri=storage_uri,
        default_limits=["200/minute"],
        enabled=settings.rate_limit_enabled,
    )


# Global rate limiter instance
limiter = create_limiter()


# ================================
# RATE LIMIT CONFIGURATIONS
# ================================

RATE_LIMITS = {
    # Writes that fan out to notifications / push
    "reservation_create": "20/minute",
    "reservation_update": "60/minute",
    "reservation_cancel": "20/minute",
    "experience_book": "20/minute",
    "invite_create": "30/minute",
    "join_request": "20/minute",

    # Chat
    "chat_send": "120/minute",
    "typing": "240/minute",

    # Reads
    "availability": "120/minute",
    "calculate_price": "120/minute",
    "discover": "60/minute",
}


def get_rate_limit(operation: str) -> str:
    """Get rate limit for a specific operation."""
    return RATE_LIMITS.get(operation, "200/minute")
