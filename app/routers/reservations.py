from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from ..database import get_db
from ..models.user import User
from ..schemas.reservation import ReservationResponse
from ..services.reservation_service import ReservationService
from ..utils.dependencies import get_current_user

router = APIRouter(prefix="/api/reservations", tags=["Reservations"])


@router.get("/user/{user_id}", response_model=List[ReservationResponse])
def list_guest_reservations(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """A guest's own reservations, newest first"""
    return ReservationService(db).list_for_guest(current_user, user_id)
