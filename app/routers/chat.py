from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.user import User
from ..schemas.group import StartDirect
from ..services.group_lobby import GroupLobby
from ..utils.dependencies import get_current_user
from ..utils.rate_limiter import limiter, get_rate_limit

router = APIRouter(prefix="/api/chat", tags=["Chat"])


@router.post("/start-direct")
@limiter.limit(get_rate_limit("chat_send"))
def start_direct_conversation(
    request: Request,
    payload: StartDirect,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Open (or reuse) a one-to-one room with a host about one of their properties"""
    return GroupLobby(db).start_direct(
        current_user,
        payload.host_id,
        payload.property_id,
        message=payload.message,
    )
