from typing import Optional
from jose import JWTError, jwt
from ..config import settings


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify a JWT signed with the access secret"""
    try:
        return jwt.decode(token, settings.access_token_secret, algorithms=[settings.algorithm])
    except JWTError:
        return None


def verify_access_token(token: str) -> Optional[dict]:
    """Verify an access token issued by the auth service and return payload"""
    payload = decode_token(token)
    if payload and payload.get("type") == "access":
        return payload
    return None
