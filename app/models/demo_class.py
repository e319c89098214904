"""Demo class: the scheduled session, its stored record and request schemas."""
import datetime
from enum import Enum
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class ClassStatus(str, Enum):
    SCHEDULED = "Scheduled"
    RESCHEDULED = "Rescheduled"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"


class MeetingType(str, Enum):
    ZOOM = "zoom"
    EXTERNAL = "external"


ACTIVE_STATUSES = (ClassStatus.SCHEDULED, ClassStatus.RESCHEDULED)


class ClassDocument(BaseModel):
    """Attachment shown with the class (slides, worksheets)."""

    name: str
    url: str
    file_id: Optional[str] = None
    uploaded_at: datetime.datetime = Field(default_factory=datetime.datetime.utcnow)

    @model_validator(mode="after")
    def name_differs_from_url(self):
        if self.name == self.url:
            raise ValueError(f"Invalid document: name and URL cannot be identical for {self.name}")
        return self


class DemoClass(BaseModel):
    """A single planned session. Mutated in place; never hard-deleted."""

    id: Optional[str] = None
    class_type: str
    meeting_type: MeetingType
    link: str
    meeting_id: Optional[str] = None
    passcode: Optional[str] = None

    date: datetime.date
    start_time: str  # HH:mm, wall clock in `timezone`
    end_time: str
    timezone: str
    call_duration: int = 40  # minutes

    status: ClassStatus = ClassStatus.SCHEDULED
    scheduled_by_id: str
    assigned_teacher_id: str
    student_emails: list[str] = Field(default_factory=list)
    documents: list[ClassDocument] = Field(default_factory=list)

    # Snapshot of the schedule before the latest reschedule/cancel
    previous_date: Optional[datetime.date] = None
    previous_start_time: Optional[str] = None
    previous_end_time: Optional[str] = None

    # Reminder windows already delivered ("1day", "1hour", "30min", "10min")
    notifications_sent: list[str] = Field(default_factory=list)

    version: int = 0
    created_at: datetime.datetime = Field(default_factory=datetime.datetime.utcnow)
    updated_at: datetime.datetime = Field(default_factory=datetime.datetime.utcnow)


class DemoClassRecord(Document):
    """MongoDB shape of a DemoClass. Enums as strings, dates as datetimes."""

    class_type: str
    meeting_type: str
    link: str
    meeting_id: Optional[str] = None
    passcode: Optional[str] = None
    date: datetime.datetime
    start_time: str
    end_time: str
    timezone: str
    call_duration: int = 40
    status: Indexed(str)
    scheduled_by_id: Indexed(str)
    assigned_teacher_id: Indexed(str)
    student_emails: list[str] = Field(default_factory=list)
    documents: list[ClassDocument] = Field(default_factory=list)
    previous_date: Optional[datetime.datetime] = None
    previous_start_time: Optional[str] = None
    previous_end_time: Optional[str] = None
    notifications_sent: list[str] = Field(default_factory=list)
    version: int = 0
    created_at: datetime.datetime = Field(default_factory=datetime.datetime.utcnow)
    updated_at: datetime.datetime = Field(default_factory=datetime.datetime.utcnow)

    class Settings:
        name = "demo_classes"
        use_state_management = True


# Request schemas. Every field is optional here so the engine can report
# all missing/invalid fields in one response.

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class DocumentDescriptor(CamelModel):
    name: str
    url: str
    file_id: Optional[str] = None


class DemoClassCreate(CamelModel):
    class_type: Optional[str] = None
    meeting_type: Optional[str] = None
    meeting_link: Optional[str] = None
    zoom_link: Optional[str] = None
    timezone: Optional[str] = None
    start_time: Optional[str] = None
    date: Optional[str] = None
    student_emails: Optional[list[str]] = None
    call_duration: Optional[int] = None
    assigned_teacher_id: Optional[str] = None
    documents: list[DocumentDescriptor] = Field(default_factory=list)


class DemoClassPatch(CamelModel):
    """Partial reschedule input; None means "keep the current value"."""

    class_type: Optional[str] = None
    meeting_type: Optional[str] = None
    meeting_link: Optional[str] = None
    zoom_link: Optional[str] = None
    timezone: Optional[str] = None
    start_time: Optional[str] = None
    date: Optional[str] = None
    student_emails: Optional[list[str]] = None
    call_duration: Optional[int] = None
    assigned_teacher_id: Optional[str] = None
    use_existing_link: bool = False
