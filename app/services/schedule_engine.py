"""Demo class lifecycle: create, reschedule and cancel.

Status moves forward only::

    Scheduled -> Rescheduled -> Rescheduled | Cancelled
    Scheduled | Rescheduled -> Completed   (set outside this module)

Cancelled and Completed are final here. Every check runs before the store
is touched, so a rejected request leaves no partial state behind. Writes
are conditional on the version that was loaded; a concurrent change makes
the store raise ConflictError instead of silently overwriting it.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Callable, Iterable, Optional

from email_validator import EmailNotValidError, validate_email

from app.errors import ConflictError, NotFoundError, ValidationError
from app.models.demo_class import (
    ACTIVE_STATUSES,
    ClassDocument,
    ClassStatus,
    DemoClass,
    DemoClassCreate,
    DemoClassPatch,
    DocumentDescriptor,
    MeetingType,
)
from app.rbac import Scope, scope_for
from app.services import time_calc
from app.services.authorization import authorize, can_view, is_elevated, resolve_teacher
from app.services.collaborators import Actor, DemoClassStore, DocumentStore, Upload, UserDirectory

logger = logging.getLogger(__name__)

ZOOM_MEETING_ID_RE = re.compile(r"/j/([0-9]+)")
MEETING_TYPES = {m.value for m in MeetingType}


class Transition(str, Enum):
    CREATED = "created"
    RESCHEDULED = "rescheduled"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class TransitionResult:
    transition: Transition
    demo_class: DemoClass
    actor: Actor


class _FieldErrors:
    def __init__(self):
        self.items: list[dict[str, str]] = []

    def add(self, field: str, message: str) -> None:
        self.items.append({"field": field, "message": message})

    def raise_if_any(self, context: str) -> None:
        if self.items:
            logger.warning("Validation errors in %s: %s", context, self.items)
            raise ValidationError(self.items)


def extract_meeting_id(link: str | None) -> str | None:
    if not link:
        return None
    match = ZOOM_MEETING_ID_RE.search(link)
    return match.group(1) if match else None


def parse_iso_date(value: str | None) -> date | None:
    """Accept ``YYYY-MM-DD`` or a full ISO 8601 timestamp; None when malformed."""
    if not value:
        return None
    raw = value.strip()
    try:
        return date.fromisoformat(raw)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def is_valid_email(value: str) -> bool:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def normalize_emails(emails: Iterable[str]) -> list[str]:
    """Strip, lowercase and de-duplicate, keeping first-seen order."""
    result: list[str] = []
    seen: set[str] = set()
    for raw in emails:
        email = (raw or "").strip().lower()
        if email and email not in seen:
            seen.add(email)
            result.append(email)
    return result


def _check_student_emails(emails: Optional[list[str]], errors: _FieldErrors) -> None:
    if not emails:
        errors.add("studentEmails", "At least one student email is required")
        return
    invalid = [e for e in emails if not is_valid_email((e or "").strip())]
    if invalid:
        errors.add("studentEmails", f"All student emails must be valid: {', '.join(map(str, invalid))}")


def _check_call_duration(minutes: Optional[int], errors: _FieldErrors) -> None:
    if minutes is None:
        return
    if minutes < 1 or minutes > time_calc.MAX_CALL_DURATION:
        errors.add(
            "callDuration",
            f"Call duration must be between 1 and {time_calc.MAX_CALL_DURATION} minutes",
        )


def _check_documents(documents: Iterable[DocumentDescriptor], errors: _FieldErrors) -> None:
    for doc in documents:
        if not doc.name or not doc.url:
            errors.add("documents", "Every document needs a name and a URL")
        elif doc.name == doc.url:
            logger.warning("Document has identical name and URL: %s", doc.name)
            errors.add("documents", f"Invalid document: name and URL cannot be identical for {doc.name}")


def _link_for(meeting_type: str | None, zoom_link: str | None, meeting_link: str | None) -> str | None:
    if meeting_type == MeetingType.ZOOM.value:
        return (zoom_link or "").strip() or None
    return (meeting_link or "").strip() or None


def validate_create(payload: DemoClassCreate) -> None:
    errors = _FieldErrors()
    if not (payload.class_type or "").strip():
        errors.add("classType", "Class type is required")
    if payload.meeting_type not in MEETING_TYPES:
        errors.add("meetingType", "Meeting type must be 'zoom' or 'external'")
    elif payload.meeting_type == MeetingType.ZOOM.value and not (payload.zoom_link or "").strip():
        errors.add("zoomLink", "Zoom link is required for Zoom meeting type")
    elif payload.meeting_type == MeetingType.EXTERNAL.value and not (payload.meeting_link or "").strip():
        errors.add("meetingLink", "Meeting link is required for external meeting type")
    if not time_calc.is_valid_timezone(payload.timezone):
        errors.add("timezone", "Timezone is required and must be a valid IANA name")
    if not time_calc.is_valid_hhmm(payload.start_time):
        errors.add("startTime", "Start time must be in HH:mm format")
    if parse_iso_date(payload.date) is None:
        errors.add("date", "Date must be a valid ISO 8601 date")
    _check_student_emails(payload.student_emails, errors)
    _check_call_duration(payload.call_duration, errors)
    _check_documents(payload.documents, errors)
    errors.raise_if_any("create demo class")


def validate_patch(patch: DemoClassPatch) -> None:
    """Only supplied fields are checked; omitted ones fall back to the record."""
    errors = _FieldErrors()
    if patch.class_type is not None and not patch.class_type.strip():
        errors.add("classType", "Class type cannot be empty")
    if patch.meeting_type is not None:
        if patch.meeting_type not in MEETING_TYPES:
            errors.add("meetingType", "Meeting type must be 'zoom' or 'external'")
        elif not patch.use_existing_link and not _link_for(patch.meeting_type, patch.zoom_link, patch.meeting_link):
            field = "zoomLink" if patch.meeting_type == MeetingType.ZOOM.value else "meetingLink"
            errors.add(field, f"A {field} is required for {patch.meeting_type} meetings if not reusing the existing link")
    if patch.timezone is not None and not time_calc.is_valid_timezone(patch.timezone):
        errors.add("timezone", "Timezone must be a valid IANA name")
    if patch.start_time is not None and not time_calc.is_valid_hhmm(patch.start_time):
        errors.add("startTime", "Start time must be in HH:mm format")
    if patch.date is not None and parse_iso_date(patch.date) is None:
        errors.add("date", "Date must be a valid ISO 8601 date")
    if patch.student_emails is not None:
        _check_student_emails(patch.student_emails, errors)
    _check_call_duration(patch.call_duration, errors)
    errors.raise_if_any("reschedule demo class")


def apply_patch(
    current: DemoClass,
    patch: DemoClassPatch,
    *,
    actor_id: str,
    teacher_id: str,
    now: datetime,
) -> DemoClass:
    """Merge ``patch`` over ``current``: every omitted field keeps its current value.

    The prior date/start/end are snapshotted before being overwritten and
    ``end_time`` is recomputed from the merged start, duration and timezone.
    ``patch`` must already have passed ``validate_patch``.
    """
    meeting_type = MeetingType(patch.meeting_type) if patch.meeting_type is not None else current.meeting_type
    timezone = patch.timezone if patch.timezone is not None else current.timezone
    start_time = patch.start_time if patch.start_time is not None else current.start_time
    day = parse_iso_date(patch.date) if patch.date is not None else current.date
    call_duration = patch.call_duration if patch.call_duration is not None else current.call_duration
    class_type = patch.class_type.strip() if patch.class_type is not None else current.class_type
    student_emails = (
        normalize_emails(patch.student_emails) if patch.student_emails is not None else list(current.student_emails)
    )

    new_link = _link_for(meeting_type.value, patch.zoom_link, patch.meeting_link)
    if patch.use_existing_link or not new_link:
        link, meeting_id = current.link, current.meeting_id
    elif meeting_type == MeetingType.ZOOM:
        link, meeting_id = new_link, extract_meeting_id(new_link) or current.meeting_id
    else:
        link, meeting_id = new_link, None

    return current.model_copy(
        update={
            "previous_date": current.date,
            "previous_start_time": current.start_time,
            "previous_end_time": current.end_time,
            "class_type": class_type,
            "meeting_type": meeting_type,
            "link": link,
            "meeting_id": meeting_id,
            "date": day,
            "start_time": start_time,
            "end_time": time_calc.compute_end_time(day, start_time, call_duration, timezone),
            "timezone": timezone,
            "call_duration": call_duration,
            "student_emails": student_emails,
            "assigned_teacher_id": teacher_id,
            "scheduled_by_id": actor_id,
            "status": ClassStatus.RESCHEDULED,
            "notifications_sent": [],
            "updated_at": now,
        }
    )


class ScheduleEngine:
    def __init__(
        self,
        store: DemoClassStore,
        users: UserDirectory,
        documents: DocumentStore,
        *,
        default_call_duration: int = 40,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self._store = store
        self._users = users
        self._documents = documents
        self._default_call_duration = default_call_duration
        self._clock = clock

    async def _load(self, class_id: str) -> DemoClass:
        demo_class = await self._store.get(class_id)
        if demo_class is None:
            logger.warning("Demo class not found: %s", class_id)
            raise NotFoundError("Demo class not found")
        return demo_class

    async def _store_uploads(self, uploads: Iterable[Upload]) -> list[ClassDocument]:
        """Upload each file; on failure the keys already written are logged as orphaned."""
        stored: list[ClassDocument] = []
        try:
            for upload in uploads:
                if not upload.filename:
                    raise ValidationError.single("documents", "Every uploaded document needs a file name")
                result = await self._documents.upload(upload)
                stored.append(
                    ClassDocument(
                        name=upload.filename,
                        url=result.url,
                        file_id=result.file_id,
                        uploaded_at=self._clock(),
                    )
                )
                if upload.filename == result.url:
                    logger.warning("Document has identical name and URL: %s", upload.filename)
                    raise ValidationError.single(
                        "documents", f"Invalid document: name and URL cannot be identical for {upload.filename}"
                    )
        except Exception:
            if stored:
                logger.error("Orphaned uploads after failed create: %s", [d.file_id for d in stored])
            raise
        return stored

    async def create(
        self,
        actor: Actor,
        payload: DemoClassCreate,
        uploads: Iterable[Upload] = (),
    ) -> TransitionResult:
        authorize(actor, "create")
        validate_create(payload)
        teacher_id = await resolve_teacher(actor, payload.assigned_teacher_id, self._users)

        now = self._clock()
        day = parse_iso_date(payload.date)
        call_duration = payload.call_duration or self._default_call_duration
        link = _link_for(payload.meeting_type, payload.zoom_link, payload.meeting_link)
        meeting_type = MeetingType(payload.meeting_type)

        documents = [
            ClassDocument(name=d.name, url=d.url, file_id=d.file_id, uploaded_at=now) for d in payload.documents
        ]
        documents.extend(await self._store_uploads(uploads))

        demo_class = DemoClass(
            class_type=payload.class_type.strip(),
            meeting_type=meeting_type,
            link=link,
            meeting_id=extract_meeting_id(link) if meeting_type == MeetingType.ZOOM else None,
            passcode=None,
            date=day,
            start_time=payload.start_time,
            end_time=time_calc.compute_end_time(day, payload.start_time, call_duration, payload.timezone),
            timezone=payload.timezone,
            call_duration=call_duration,
            status=ClassStatus.SCHEDULED,
            scheduled_by_id=actor.id,
            assigned_teacher_id=teacher_id,
            student_emails=normalize_emails(payload.student_emails),
            documents=documents,
            created_at=now,
            updated_at=now,
        )
        saved = await self._store.insert(demo_class)
        logger.info("Demo class %s scheduled by user %s for teacher %s", saved.id, actor.id, teacher_id)
        return TransitionResult(Transition.CREATED, saved, actor)

    async def reschedule(self, actor: Actor, schedule_id: str, patch: DemoClassPatch) -> TransitionResult:
        current = await self._load(schedule_id)
        authorize(actor, "reschedule", current)
        if current.status not in ACTIVE_STATUSES:
            raise ConflictError(f"Cannot reschedule a {current.status.value.lower()} class")
        validate_patch(patch)

        teacher_id = current.assigned_teacher_id
        if patch.assigned_teacher_id and is_elevated(actor):
            teacher_id = await resolve_teacher(actor, patch.assigned_teacher_id, self._users)

        updated = apply_patch(current, patch, actor_id=actor.id, teacher_id=teacher_id, now=self._clock())
        saved = await self._store.update(updated, expected_version=current.version)
        logger.info("Demo class %s rescheduled by user %s", schedule_id, actor.id)
        return TransitionResult(Transition.RESCHEDULED, saved, actor)

    async def cancel(self, actor: Actor, call_id: str) -> TransitionResult:
        current = await self._load(call_id)
        authorize(actor, "cancel", current)
        if current.status == ClassStatus.CANCELLED:
            raise ConflictError("Demo class is already cancelled")
        if current.status == ClassStatus.COMPLETED:
            raise ConflictError("Completed classes cannot be cancelled")

        updated = current.model_copy(
            update={
                "previous_date": current.date,
                "previous_start_time": current.start_time,
                "previous_end_time": current.end_time,
                "status": ClassStatus.CANCELLED,
                "updated_at": self._clock(),
            }
        )
        saved = await self._store.update(updated, expected_version=current.version)
        logger.info("Demo class %s cancelled by user %s", call_id, actor.id)
        return TransitionResult(Transition.CANCELLED, saved, actor)

    async def list_visible(self, actor: Actor) -> list[DemoClass]:
        scope = scope_for(actor.role, "read")
        if scope == Scope.ANY:
            classes = await self._store.list_all()
        elif scope == Scope.OWN:
            classes = await self._store.list_for_teacher(actor.id)
        elif scope == Scope.ENROLLED:
            classes = await self._store.list_for_student(actor.email.lower())
        else:
            authorize(actor, "read")
            classes = []
        return sorted(classes, key=lambda c: (c.date, c.start_time), reverse=True)

    async def get_visible(self, actor: Actor, call_id: str) -> DemoClass:
        demo_class = await self._store.get(call_id)
        if demo_class is None or not can_view(actor, demo_class):
            logger.warning("Demo class not found or not authorized: %s for user: %s", call_id, actor.id)
            raise NotFoundError("Demo class not found or not authorized")
        return demo_class

    async def people_for(self, classes: Iterable[DemoClass]) -> dict[str, Actor]:
        """Users referenced by ``classes`` (scheduler and teacher), keyed by id."""
        ids: list[str] = []
        for c in classes:
            for user_id in (c.scheduled_by_id, c.assigned_teacher_id):
                if user_id and user_id not in ids:
                    ids.append(user_id)
        if not ids:
            return {}
        return await self._users.get_many(ids)
