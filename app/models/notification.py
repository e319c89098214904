"""In-app notifications shown in the notification bell."""
from datetime import datetime
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, Field


class Notification(Document):
    user_id: Indexed(str)
    message: str
    link: Optional[str] = None
    read: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "notifications"
        use_state_management = True


class NotificationOut(BaseModel):
    id: str
    user_id: str
    message: str
    link: Optional[str] = None
    read: bool
    created_at: datetime


class NotificationPage(BaseModel):
    notifications: list[NotificationOut]
    total: int
    page: int
    pages: int
