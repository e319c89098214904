"""Root conftest: settings for tests plus in-memory collaborators and an API client."""

import os
from datetime import datetime, timedelta

# Settings are read at import time; keep tests off real services
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("SMTP_HOST", "")
os.environ.setdefault("FIREBASE_CREDENTIALS_PATH", "")
os.environ.setdefault("REMINDERS_ENABLED", "false")
os.environ.setdefault("BASE_URL", "https://app.test")

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt

from app.api import deps
from app.config import settings
from app.main import app
from app.models.user import UserRole
from app.services.collaborators import Actor
from app.services.fanout import NotificationFanout
from app.services.schedule_engine import ScheduleEngine
from fakes import (
    FakeDocumentStore,
    FakeEmailSender,
    FakeNotificationStore,
    FakeRealtimeBus,
    FakeUserDirectory,
    InMemoryDemoClassStore,
    NOW,
)


def create_access_token(subject: str, role: str) -> str:
    expire = datetime.utcnow() + timedelta(minutes=60)
    to_encode = {"sub": subject, "role": role, "exp": expire, "type": "access"}
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


@pytest.fixture
def admin():
    return Actor(id="admin-1", name="Asha Admin", email="asha@klariti.io", role=UserRole.ADMIN)


@pytest.fixture
def teacher():
    return Actor(id="teacher-1", name="Tara Teacher", email="tara@klariti.io", role=UserRole.TEACHER)


@pytest.fixture
def other_teacher():
    return Actor(id="teacher-2", name="Omar Teacher", email="omar@klariti.io", role=UserRole.TEACHER)


@pytest.fixture
def student():
    return Actor(id="student-1", name="Sam Student", email="sam@learners.io", role=UserRole.STUDENT)


@pytest.fixture
def users(admin, teacher, other_teacher, student):
    return FakeUserDirectory(admin, teacher, other_teacher, student)


@pytest.fixture
def store():
    return InMemoryDemoClassStore()


@pytest.fixture
def documents():
    return FakeDocumentStore()


@pytest.fixture
def emails():
    return FakeEmailSender()


@pytest.fixture
def realtime():
    return FakeRealtimeBus()


@pytest.fixture
def notification_store():
    return FakeNotificationStore()


@pytest.fixture
def engine(store, users, documents):
    return ScheduleEngine(store, users, documents, default_call_duration=40, clock=lambda: NOW)


@pytest.fixture
def fanout(notification_store, emails, realtime, users):
    return NotificationFanout(notification_store, emails, realtime, users, base_url="https://app.test")


@pytest.fixture
def create_payload():
    """A valid create body for a zoom class on 2024-06-10 at 14:00."""
    return {
        "classType": "Intro to Python",
        "meetingType": "zoom",
        "zoomLink": "https://zoom.us/j/123456789?pwd=abc",
        "timezone": "Asia/Kolkata",
        "startTime": "14:00",
        "date": "2024-06-10",
        "studentEmails": ["Sam@Learners.io", "lee@learners.io"],
        "callDuration": 40,
    }


@pytest.fixture
async def client(store, users, documents, emails, realtime, notification_store):
    """API client with every collaborator replaced by an in-memory fake."""
    app.dependency_overrides[deps.get_demo_class_store] = lambda: store
    app.dependency_overrides[deps.get_user_directory] = lambda: users
    app.dependency_overrides[deps.get_document_store] = lambda: documents
    app.dependency_overrides[deps.get_email_sender] = lambda: emails
    app.dependency_overrides[deps.get_realtime_bus] = lambda: realtime
    app.dependency_overrides[deps.get_notification_store] = lambda: notification_store

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build a Bearer header for an actor."""
    def _headers(actor):
        token = create_access_token(actor.id, actor.role.value)
        return {"Authorization": f"Bearer {token}"}
    return _headers
