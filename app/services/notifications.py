"""Notification store backed by the notifications collection."""
from __future__ import annotations

from pymongo.errors import PyMongoError

from app.errors import DependencyError
from app.models.notification import Notification
from app.services.users import safe_object_id


def serialize_notification(n: Notification) -> dict:
    return {
        "id": str(n.id),
        "user_id": n.user_id,
        "message": n.message,
        "link": n.link,
        "read": n.read,
        "created_at": n.created_at.isoformat(),
    }


class MongoNotificationStore:
    async def create(self, user_id: str, message: str, link: str | None = None) -> str:
        notification = Notification(user_id=user_id, message=message, link=link)
        try:
            await notification.insert()
        except PyMongoError as e:
            raise DependencyError("notification_store", str(e)) from e
        return str(notification.id)

    async def list_for_user(self, user_id: str, *, skip: int, limit: int) -> tuple[list[dict], int]:
        query = Notification.find(Notification.user_id == user_id)
        total = await query.count()
        items = await Notification.find(Notification.user_id == user_id).sort("-created_at").skip(skip).limit(limit).to_list()
        return [serialize_notification(n) for n in items], total

    async def mark_read(self, user_id: str, notification_id: str) -> bool:
        oid = safe_object_id(notification_id)
        if not oid:
            return False
        notification = await Notification.find_one({"_id": oid, "user_id": user_id})
        if not notification:
            return False
        notification.read = True
        await notification.save()
        return True
