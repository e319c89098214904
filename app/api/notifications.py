import logging
import math

from fastapi import APIRouter, HTTPException, Query

from app.api.deps import CurrentActor, Notifications
from app.models.notification import NotificationPage

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=NotificationPage)
async def list_notifications(
    actor: CurrentActor,
    notifications: Notifications,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    """The caller's notifications, newest first."""
    items, total = await notifications.list_for_user(actor.id, skip=(page - 1) * limit, limit=limit)
    logger.info("Notifications fetched for user: %s, page: %s", actor.id, page)
    return {
        "notifications": items,
        "total": total,
        "page": page,
        "pages": math.ceil(total / limit),
    }


@router.put("/{notification_id}/read")
async def mark_notification_read(notification_id: str, actor: CurrentActor, notifications: Notifications):
    if not await notifications.mark_read(actor.id, notification_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"message": "Notification marked as read"}
