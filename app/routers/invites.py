from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.user import User
from ..schemas.experience import InviteResponse
from ..services.invite_service import InviteService
from ..utils.dependencies import get_current_user

router = APIRouter(prefix="/api/invites", tags=["Invites"])


@router.get("")
def list_invites(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Invites the current user sent or received"""
    invites = InviteService(db).list_for_user(current_user)
    return {"success": True, "invites": [InviteResponse.model_validate(i) for i in invites]}


@router.post("/{invite_id}/accept")
def accept_invite(
    invite_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return InviteService(db).accept(current_user, invite_id)


@router.post("/{invite_id}/decline")
def decline_invite(
    invite_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    InviteService(db).decline(current_user, invite_id)
    return {"success": True}


@router.post("/{invite_id}/cancel")
def cancel_invite(
    invite_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    InviteService(db).cancel(current_user, invite_id)
    return {"success": True}
