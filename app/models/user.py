import uuid
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, JSON
from ..database import Base
import enum


class UserRole(str, enum.Enum):
    USER = "user"
    HOST = "host"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class User(Base):
    """
    Account projection used by the booking core.

    Credentials and profile editing belong to the auth service; this
    table only carries what reservations, groups and push need.
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    email = Column(String(255), unique=True, nullable=False, index=True)
    role = Column(String(20), default=UserRole.USER.value, nullable=False)
    profile_picture = Column(String(500), nullable=True)

    # Expo push tokens (list of strings)
    push_tokens = Column(JSON, nullable=True)
    allows_notifications = Column(Boolean, default=True)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<User {self.email}>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        return self.role in (UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value)
