"""Shared dependencies: JWT auth and the collaborators behind the scheduling core."""
from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from app.config import settings
from app.services.collaborators import (
    Actor,
    DemoClassStore,
    DocumentStore,
    EmailSender,
    NotificationStore,
    RealtimeBus,
    UserDirectory,
)
from app.services.demo_class_store import MongoDemoClassStore
from app.services.fanout import NotificationFanout
from app.services.fcm import FcmRealtimeBus
from app.services.mailer import SmtpEmailSender
from app.services.notifications import MongoNotificationStore
from app.services.s3 import S3DocumentStore
from app.services.schedule_engine import ScheduleEngine
from app.services.users import MongoUserDirectory

security = HTTPBearer(auto_error=False)


# Collaborators. Overridden in tests via app.dependency_overrides.

@lru_cache
def get_user_directory() -> UserDirectory:
    return MongoUserDirectory()


@lru_cache
def get_demo_class_store() -> DemoClassStore:
    return MongoDemoClassStore()


@lru_cache
def get_document_store() -> DocumentStore:
    return S3DocumentStore()


@lru_cache
def get_email_sender() -> EmailSender:
    return SmtpEmailSender()


@lru_cache
def get_notification_store() -> NotificationStore:
    return MongoNotificationStore()


def get_realtime_bus(users: Annotated[UserDirectory, Depends(get_user_directory)]) -> RealtimeBus:
    return FcmRealtimeBus(users)


def get_schedule_engine(
    store: Annotated[DemoClassStore, Depends(get_demo_class_store)],
    users: Annotated[UserDirectory, Depends(get_user_directory)],
    documents: Annotated[DocumentStore, Depends(get_document_store)],
) -> ScheduleEngine:
    return ScheduleEngine(store, users, documents, default_call_duration=settings.default_call_duration)


def get_fanout(
    notifications: Annotated[NotificationStore, Depends(get_notification_store)],
    emails: Annotated[EmailSender, Depends(get_email_sender)],
    realtime: Annotated[RealtimeBus, Depends(get_realtime_bus)],
    users: Annotated[UserDirectory, Depends(get_user_directory)],
) -> NotificationFanout:
    return NotificationFanout(notifications, emails, realtime, users, base_url=settings.base_url)


async def get_current_actor(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    users: Annotated[UserDirectory, Depends(get_user_directory)],
) -> Actor:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    token = credentials.credentials
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        user_id: str = payload.get("sub")
        if not user_id:
            raise HTTPException(status_code=401, detail="Invalid token")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    actor = await users.get(user_id)
    if not actor:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return actor


# Type aliases for route injection
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
Engine = Annotated[ScheduleEngine, Depends(get_schedule_engine)]
Fanout = Annotated[NotificationFanout, Depends(get_fanout)]
Notifications = Annotated[NotificationStore, Depends(get_notification_store)]
