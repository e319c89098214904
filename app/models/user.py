"""Users known to the scheduler: admins, teachers and students."""
from datetime import datetime
from enum import Enum

from beanie import Document, Indexed
from pydantic import EmailStr, Field


class UserRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class User(Document):
    """User document backing the user directory and push-token lookup."""

    email: Indexed(EmailStr, unique=True)
    full_name: str
    role: UserRole
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # FCM tokens for realtime notifications
    fcm_tokens: list[str] = Field(default_factory=list)

    class Settings:
        name = "users"
        use_state_management = True
