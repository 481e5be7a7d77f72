from pydantic import BaseModel
from typing import Optional


class UserSummary(BaseModel):
    """Public view of a user embedded in other payloads"""
    id: str
    first_name: str = ""
    last_name: str = ""
    profile_picture: Optional[str] = None

    class Config:
        from_attributes = True
