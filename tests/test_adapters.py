"""Production adapters with their SDKs stubbed: S3, SMTP and FCM.

Invariants:
    - SDK exceptions surface as DependencyError naming the collaborator
    - Disabled integrations (no SMTP host, no Firebase credentials) are silent no-ops
"""

import smtplib
from types import SimpleNamespace

import pytest
from botocore.exceptions import ClientError

from app.errors import DependencyError
from app.services import fcm, mailer, s3
from app.services.collaborators import Upload
from app.services.fcm import FcmRealtimeBus
from app.services.mailer import SmtpEmailSender
from app.services.s3 import S3DocumentStore


class _FakeS3:
    def __init__(self, fail=False):
        self.objects = {}
        self.fail = fail

    def put_object(self, Bucket, Key, Body, ContentType):
        if self.fail:
            raise ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject")
        self.objects[Key] = Body

    def list_objects_v2(self, Bucket, Prefix):
        return {"Contents": [{"Key": k} for k in self.objects if k.startswith(Prefix)]}

    def copy_object(self, Bucket, Key, CopySource):
        self.objects[Key] = self.objects[CopySource["Key"]]


@pytest.fixture
def fake_s3(monkeypatch):
    client = _FakeS3()
    monkeypatch.setattr(s3, "get_s3", lambda: client)
    return client


async def test_s3_upload_list_and_copy(fake_s3):
    store = S3DocumentStore(bucket="docs")

    stored = await store.upload(Upload(filename="slides.pdf", content=b"%PDF"))
    assert stored.file_id.startswith("documents/")
    assert stored.file_id.endswith("/slides.pdf")
    assert stored.url.startswith("https://docs.s3.")

    listed = await store.list_files()
    assert [f.name for f in listed] == ["slides.pdf"]

    copy = await store.copy_file(stored.file_id)
    assert copy.file_id != stored.file_id
    assert fake_s3.objects[copy.file_id] == b"%PDF"


async def test_s3_failure_is_dependency_error(monkeypatch):
    monkeypatch.setattr(s3, "get_s3", lambda: _FakeS3(fail=True))
    with pytest.raises(DependencyError) as exc:
        await S3DocumentStore(bucket="docs").upload(Upload(filename="a.pdf", content=b"x"))
    assert exc.value.dependency == "document_store"


def _context():
    return {
        "class_type": "Intro to Python",
        "date": "10 Jun 2024",
        "start_time": "14:00",
        "end_time": "14:40",
        "timezone": "Asia/Kolkata",
        "call_duration": "40 min",
        "link": "https://zoom.us/j/1",
        "name": "Sam",
    }


async def test_mailer_skips_without_smtp_host(monkeypatch):
    monkeypatch.setattr(mailer.settings, "smtp_host", "")

    def _explode(*args, **kwargs):
        raise AssertionError("SMTP should not be contacted")

    monkeypatch.setattr(smtplib, "SMTP", _explode)
    await SmtpEmailSender().send_template("demo_class_scheduled", "sam@learners.io", _context())


async def test_mailer_failure_is_dependency_error(monkeypatch):
    monkeypatch.setattr(mailer.settings, "smtp_host", "smtp.test")

    def _refuse(*args, **kwargs):
        raise smtplib.SMTPConnectError(421, "try later")

    monkeypatch.setattr(smtplib, "SMTP", _refuse)
    with pytest.raises(DependencyError) as exc:
        await SmtpEmailSender().send_template("demo_class_scheduled", "sam@learners.io", _context())
    assert exc.value.dependency == "email_sender"


class _Tokens:
    def __init__(self, tokens):
        self._tokens = tokens

    async def push_tokens(self, user_id):
        return self._tokens


async def test_fcm_disabled_without_credentials(monkeypatch):
    monkeypatch.setattr(fcm, "_get_firebase_app", lambda: None)
    await FcmRealtimeBus(_Tokens(["t1"])).publish("teacher-1", {"type": "notification", "message": "hi"})


async def test_fcm_sends_in_batches(monkeypatch):
    sent = []

    def _send(message):
        sent.append(message)
        return SimpleNamespace(success_count=len(message.tokens), failure_count=0)

    monkeypatch.setattr(fcm, "_get_firebase_app", lambda: object())
    monkeypatch.setattr(fcm.messaging, "send_each_for_multicast", _send)

    tokens = [f"t{i}" for i in range(fcm.BATCH_SIZE + 1)]
    await FcmRealtimeBus(_Tokens(tokens)).publish("teacher-1", {"type": "notification", "message": "hi", "link": None})

    assert [len(m.tokens) for m in sent] == [fcm.BATCH_SIZE, 1]
    assert sent[0].data == {"type": "notification", "message": "hi"}


async def test_fcm_failure_is_dependency_error(monkeypatch):
    def _send(message):
        raise RuntimeError("quota exceeded")

    monkeypatch.setattr(fcm, "_get_firebase_app", lambda: object())
    monkeypatch.setattr(fcm.messaging, "send_each_for_multicast", _send)

    with pytest.raises(DependencyError) as exc:
        await FcmRealtimeBus(_Tokens(["t1"])).publish("teacher-1", {"message": "hi"})
    assert exc.value.dependency == "realtime_bus"
