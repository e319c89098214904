from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, File, Form, UploadFile, status
from pydantic import ValidationError as PydanticValidationError

from app.api.deps import CurrentActor, Engine, Fanout
from app.config import settings
from app.errors import ValidationError
from app.models.demo_class import DemoClass, DemoClassCreate, DemoClassPatch
from app.services import time_calc
from app.services.collaborators import Actor, Upload

router = APIRouter()


def _person(actor: Optional[Actor]) -> Optional[dict]:
    if actor is None:
        return None
    return {"id": actor.id, "name": actor.name, "email": actor.email, "role": actor.role.value}


def _documents(demo_class: DemoClass) -> list[dict]:
    return [
        {
            "name": d.name,
            "url": d.url,
            "fileId": d.file_id,
            "uploadedAt": d.uploaded_at.isoformat(),
        }
        for d in demo_class.documents
    ]


def serialize_demo_class(demo_class: DemoClass, people: dict[str, Actor], now: datetime) -> dict:
    """camelCase view of a class with scheduler/teacher summaries and the join flag."""
    return {
        "id": demo_class.id,
        "classType": demo_class.class_type,
        "meetingType": demo_class.meeting_type.value,
        "link": demo_class.link,
        "meetingId": demo_class.meeting_id,
        "passcode": demo_class.passcode,
        "date": demo_class.date.isoformat(),
        "startTime": demo_class.start_time,
        "endTime": demo_class.end_time,
        "timezone": demo_class.timezone,
        "callDuration": demo_class.call_duration,
        "status": demo_class.status.value,
        "scheduledBy": _person(people.get(demo_class.scheduled_by_id)),
        "assignedTeacher": _person(people.get(demo_class.assigned_teacher_id)),
        "studentEmails": demo_class.student_emails,
        "documents": _documents(demo_class),
        "previousDate": demo_class.previous_date.isoformat() if demo_class.previous_date else None,
        "previousStartTime": demo_class.previous_start_time,
        "previousEndTime": demo_class.previous_end_time,
        "notificationsSent": demo_class.notifications_sent,
        "joinable": _joinable(demo_class, now),
        "createdAt": demo_class.created_at.isoformat(),
        "updatedAt": demo_class.updated_at.isoformat(),
    }


def _joinable(demo_class: DemoClass, now: datetime) -> bool:
    if not time_calc.is_valid_timezone(demo_class.timezone):
        return False
    return time_calc.is_joinable(
        demo_class.date,
        demo_class.start_time,
        demo_class.call_duration,
        demo_class.timezone,
        now,
        early_minutes=settings.join_window_minutes,
    )


def _created_response(demo_class: DemoClass) -> dict:
    return {
        "message": "Demo class scheduled successfully",
        "scheduleId": demo_class.id,
        "callDuration": f"{demo_class.call_duration} min",
        "documents": _documents(demo_class),
    }


@router.post("/create", status_code=status.HTTP_201_CREATED)
async def create_demo_class(data: DemoClassCreate, actor: CurrentActor, engine: Engine, fanout: Fanout):
    """Schedule a demo class. Admins must name the teacher; teachers schedule for themselves."""
    result = await engine.create(actor, data)
    await fanout.dispatch(result)
    return _created_response(result.demo_class)


@router.post("/create/upload", status_code=status.HTTP_201_CREATED)
async def create_demo_class_with_files(
    actor: CurrentActor,
    engine: Engine,
    fanout: Fanout,
    payload: str = Form(...),
    documents: List[UploadFile] = File(default=[]),
):
    """Same as /create, with attachments sent as multipart files next to a JSON ``payload`` field."""
    try:
        data = DemoClassCreate.model_validate_json(payload)
    except PydanticValidationError as e:
        raise ValidationError(
            [{"field": ".".join(str(p) for p in err["loc"]) or "payload", "message": err["msg"]} for err in e.errors()]
        ) from e
    uploads = [
        Upload(
            filename=f.filename or "document",
            content=await f.read(),
            content_type=f.content_type or "application/octet-stream",
        )
        for f in documents
    ]
    result = await engine.create(actor, data, uploads)
    await fanout.dispatch(result)
    return _created_response(result.demo_class)


@router.put("/reschedule/{schedule_id}")
async def reschedule_demo_class(
    schedule_id: str, data: DemoClassPatch, actor: CurrentActor, engine: Engine, fanout: Fanout
):
    """Move a class; omitted fields keep their current values."""
    result = await engine.reschedule(actor, schedule_id, data)
    await fanout.dispatch(result)
    return {
        "message": "Demo class rescheduled successfully",
        "scheduleId": result.demo_class.id,
        "callDuration": f"{result.demo_class.call_duration} min",
    }


@router.post("/cancel/{call_id}")
async def cancel_demo_class(call_id: str, actor: CurrentActor, engine: Engine, fanout: Fanout):
    result = await engine.cancel(actor, call_id)
    await fanout.dispatch(result)
    return {"message": "Demo class cancelled successfully", "scheduleId": result.demo_class.id}


@router.get("/list")
async def list_demo_classes(actor: CurrentActor, engine: Engine):
    """Classes visible to the caller, latest date first."""
    classes = await engine.list_visible(actor)
    people = await engine.people_for(classes)
    now = datetime.utcnow()
    return {
        "message": "Demo classes retrieved successfully",
        "demoClasses": [serialize_demo_class(c, people, now) for c in classes],
    }


@router.get("/{call_id}")
async def get_demo_class(call_id: str, actor: CurrentActor, engine: Engine):
    demo_class = await engine.get_visible(actor, call_id)
    people = await engine.people_for([demo_class])
    return {
        "message": "Demo class retrieved successfully",
        "demoClass": serialize_demo_class(demo_class, people, datetime.utcnow()),
    }
