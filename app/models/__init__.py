"""Beanie document models and Pydantic schemas."""
from app.models.user import User, UserRole
from app.models.demo_class import (
    ACTIVE_STATUSES,
    ClassDocument,
    ClassStatus,
    DemoClass,
    DemoClassCreate,
    DemoClassPatch,
    DemoClassRecord,
    DocumentDescriptor,
    MeetingType,
)
from app.models.notification import Notification, NotificationOut, NotificationPage

__all__ = [
    "User",
    "UserRole",
    "ACTIVE_STATUSES",
    "ClassDocument",
    "ClassStatus",
    "DemoClass",
    "DemoClassCreate",
    "DemoClassPatch",
    "DemoClassRecord",
    "DocumentDescriptor",
    "MeetingType",
    "Notification",
    "NotificationOut",
    "NotificationPage",
]
