"""MongoDB persistence for demo classes with optimistic version checks."""
from __future__ import annotations

import logging
from datetime import date, datetime, time

from beanie import UpdateResponse
from pymongo.errors import PyMongoError

from app.errors import ConflictError, DependencyError
from app.models.demo_class import ClassStatus, DemoClass, DemoClassRecord
from app.services.users import safe_object_id

logger = logging.getLogger(__name__)


def _to_datetime(value: date | None) -> datetime | None:
    if value is None:
        return None
    return datetime.combine(value, time.min)


def _to_date(value: datetime | None) -> date | None:
    return value.date() if value is not None else None


def record_fields(demo_class: DemoClass) -> dict:
    """Mongo-ready field values (no id) for ``demo_class``."""
    data = demo_class.model_dump(exclude={"id"})
    data["meeting_type"] = demo_class.meeting_type.value
    data["status"] = demo_class.status.value
    data["date"] = _to_datetime(demo_class.date)
    data["previous_date"] = _to_datetime(demo_class.previous_date)
    return data


def to_domain(record: DemoClassRecord) -> DemoClass:
    data = record.model_dump(exclude={"id", "revision_id"})
    data["date"] = _to_date(record.date)
    data["previous_date"] = _to_date(record.previous_date)
    return DemoClass(id=str(record.id), **data)


class MongoDemoClassStore:
    async def get(self, class_id: str) -> DemoClass | None:
        oid = safe_object_id(class_id)
        if not oid:
            return None
        try:
            record = await DemoClassRecord.get(oid)
        except PyMongoError as e:
            raise DependencyError("demo_class_store", str(e)) from e
        return to_domain(record) if record else None

    async def insert(self, demo_class: DemoClass) -> DemoClass:
        record = DemoClassRecord(**record_fields(demo_class.model_copy(update={"version": 0})))
        try:
            await record.insert()
        except PyMongoError as e:
            logger.error("Insert demo class failed: %s", e)
            raise DependencyError("demo_class_store", str(e)) from e
        return to_domain(record)

    async def update(self, demo_class: DemoClass, expected_version: int) -> DemoClass:
        """Write ``demo_class`` only if the stored version is still ``expected_version``."""
        saved = demo_class.model_copy(update={"version": expected_version + 1})
        oid = safe_object_id(demo_class.id)
        try:
            result = await DemoClassRecord.find_one(
                {"_id": oid, "version": expected_version}
            ).update({"$set": record_fields(saved)}, response_type=UpdateResponse.UPDATE_RESULT)
        except PyMongoError as e:
            logger.error("Update demo class %s failed: %s", demo_class.id, e)
            raise DependencyError("demo_class_store", str(e)) from e
        if result is None or result.matched_count == 0:
            logger.warning("Version conflict on demo class %s (expected %s)", demo_class.id, expected_version)
            raise ConflictError("Demo class was modified by another request; reload and retry")
        return saved

    async def _find(self, query: dict) -> list[DemoClass]:
        try:
            records = await DemoClassRecord.find(query).sort("-date").to_list()
        except PyMongoError as e:
            raise DependencyError("demo_class_store", str(e)) from e
        return [to_domain(r) for r in records]

    async def list_all(self) -> list[DemoClass]:
        return await self._find({})

    async def list_for_teacher(self, user_id: str) -> list[DemoClass]:
        return await self._find({"$or": [{"assigned_teacher_id": user_id}, {"scheduled_by_id": user_id}]})

    async def list_for_student(self, email: str) -> list[DemoClass]:
        return await self._find({"student_emails": email.lower()})

    async def list_by_status(self, statuses: tuple[ClassStatus, ...]) -> list[DemoClass]:
        return await self._find({"status": {"$in": [s.value for s in statuses]}})
