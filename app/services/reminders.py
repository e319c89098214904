"""Pre-class reminders (1 day, 1 hour, 30 min, 10 min before start).

A window label is appended to ``notifications_sent`` once its reminder has
gone out, so each window fires at most once per schedule. Rescheduling
clears the list and the reminders start over.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable

from app.models.demo_class import ACTIVE_STATUSES, DemoClass
from app.services import time_calc
from app.services.collaborators import DemoClassStore, EmailSender, NotificationStore, RealtimeBus, UserDirectory
from app.services.fanout import attempt_delivery, email_context

logger = logging.getLogger(__name__)

# Minutes before start, inclusive on both ends
REMINDER_WINDOWS: dict[str, tuple[int, int]] = {
    "1day": (1438, 1442),
    "1hour": (58, 62),
    "30min": (28, 32),
    "10min": (7, 13),
}

TIME_UNTIL = {
    "1day": "1 day",
    "1hour": "1 hour",
    "30min": "30 minutes",
    "10min": "10 minutes",
}


def due_windows(demo_class: DemoClass, now: datetime) -> list[str]:
    """Windows ``now`` falls into that have not been delivered yet."""
    if demo_class.status not in ACTIVE_STATUSES:
        return []
    minutes = time_calc.minutes_until_start(demo_class.date, demo_class.start_time, demo_class.timezone, now)
    return [
        label
        for label, (low, high) in REMINDER_WINDOWS.items()
        if low <= minutes <= high and label not in demo_class.notifications_sent
    ]


class ReminderScheduler:
    def __init__(
        self,
        store: DemoClassStore,
        notifications: NotificationStore,
        emails: EmailSender,
        realtime: RealtimeBus,
        users: UserDirectory,
        *,
        base_url: str = "",
        interval_seconds: int = 60,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self._store = store
        self._notifications = notifications
        self._emails = emails
        self._realtime = realtime
        self._users = users
        self._base_url = base_url.rstrip("/")
        self._interval = interval_seconds
        self._clock = clock

    async def run_once(self) -> int:
        """Scan active classes once; returns how many reminder windows were delivered."""
        now = self._clock()
        classes = await self._store.list_by_status(ACTIVE_STATUSES)
        logger.info("Checking %d demo classes for reminders", len(classes))
        sent = 0
        for demo_class in classes:
            if not time_calc.is_valid_timezone(demo_class.timezone):
                logger.warning("Invalid timezone %s for demo class %s", demo_class.timezone, demo_class.id)
                continue
            try:
                for window in due_windows(demo_class, now):
                    demo_class = await self._remind(demo_class, window)
                    sent += 1
            except Exception as e:
                logger.error("Error processing reminders for demo class %s: %s", demo_class.id, e)
        return sent

    async def _remind(self, demo_class: DemoClass, window: str) -> DemoClass:
        teacher = await self._users.get(demo_class.assigned_teacher_id)
        teacher_name = teacher.name if teacher else "Unknown"
        time_until = TIME_UNTIL[window]
        message = f"Reminder: {demo_class.class_type} starts in {time_until} at {demo_class.start_time}"
        link = f"{self._base_url}/teacher/schedule"

        await self._notifications.create(demo_class.assigned_teacher_id, message, link)

        context = {
            **email_context(demo_class, teacher_name=teacher_name, base_url=self._base_url),
            "time_until": time_until,
        }
        branches = [
            attempt_delivery(
                "realtime",
                demo_class.assigned_teacher_id,
                self._realtime.publish(demo_class.assigned_teacher_id, {"type": "reminder", "message": message, "link": link}),
            )
        ]
        if teacher:
            branches.append(
                attempt_delivery(
                    "email",
                    teacher.email,
                    self._emails.send_template("demo_class_reminder", teacher.email, {**context, "name": teacher.name}),
                )
            )
        for email in demo_class.student_emails:
            branches.append(
                attempt_delivery(
                    "email",
                    email,
                    self._emails.send_template("demo_class_reminder", email, {**context, "name": "Student"}),
                )
            )
        await asyncio.gather(*branches)

        updated = demo_class.model_copy(
            update={"notifications_sent": [*demo_class.notifications_sent, window], "updated_at": self._clock()}
        )
        saved = await self._store.update(updated, expected_version=demo_class.version)
        logger.info("%s reminders sent for demo class %s", window, demo_class.id)
        return saved

    async def run_forever(self) -> None:
        logger.info("Starting demo class reminder loop (every %ss)", self._interval)
        while True:
            try:
                await self.run_once()
            except Exception:
                logger.exception("Reminder scan failed")
            await asyncio.sleep(self._interval)
