"""Contracts for the collaborators the scheduling core talks to.

The core only sees these Protocols. Production adapters live next to them
(Mongo, S3, SMTP, FCM) and are wired in ``app.api.deps``; tests swap in
in-memory fakes through FastAPI dependency overrides.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from app.models.demo_class import ClassStatus, DemoClass
from app.models.user import UserRole


@dataclass(frozen=True)
class Actor:
    """A resolved user: the caller of a request or a referenced teacher."""

    id: str
    name: str
    email: str
    role: UserRole


@dataclass(frozen=True)
class StoredFile:
    file_id: str
    url: str
    name: str = ""


@dataclass(frozen=True)
class Upload:
    """A file received with a create request, not yet stored."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


class UserDirectory(Protocol):
    async def get(self, user_id: str) -> Actor | None: ...
    async def get_many(self, user_ids: list[str]) -> dict[str, Actor]: ...


class DocumentStore(Protocol):
    async def upload(self, upload: Upload) -> StoredFile: ...
    async def list_files(self, prefix: str = "") -> list[StoredFile]: ...
    async def copy_file(self, file_id: str) -> StoredFile: ...


class EmailSender(Protocol):
    async def send_template(self, template: str, to: str, context: dict) -> None: ...


class RealtimeBus(Protocol):
    async def publish(self, user_id: str, event: dict) -> None: ...


class NotificationStore(Protocol):
    async def create(self, user_id: str, message: str, link: str | None = None) -> str: ...
    async def list_for_user(self, user_id: str, *, skip: int, limit: int) -> tuple[list[dict], int]: ...
    async def mark_read(self, user_id: str, notification_id: str) -> bool: ...


class DemoClassStore(Protocol):
    async def get(self, class_id: str) -> DemoClass | None: ...
    async def insert(self, demo_class: DemoClass) -> DemoClass: ...
    async def update(self, demo_class: DemoClass, expected_version: int) -> DemoClass: ...
    async def list_all(self) -> list[DemoClass]: ...
    async def list_for_teacher(self, user_id: str) -> list[DemoClass]: ...
    async def list_for_student(self, email: str) -> list[DemoClass]: ...
    async def list_by_status(self, statuses: tuple[ClassStatus, ...]) -> list[DemoClass]: ...
