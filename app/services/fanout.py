"""Notification fanout for demo class transitions.

Phase 1 writes the in-app notification for the assigned teacher and is
fatal on failure: the record is part of the write. Phase 2 sends the
emails and the realtime push concurrently; each branch reports its own
ChannelOutcome and a failing branch never fails the request.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Awaitable, Optional

from app.errors import DependencyError
from app.models.demo_class import DemoClass
from app.services.collaborators import Actor, EmailSender, NotificationStore, RealtimeBus, UserDirectory
from app.services.schedule_engine import Transition, TransitionResult

logger = logging.getLogger(__name__)

EMAIL_TEMPLATES = {
    Transition.CREATED: "demo_class_scheduled",
    Transition.RESCHEDULED: "demo_class_rescheduled",
    Transition.CANCELLED: "demo_class_cancelled",
}


@dataclass(frozen=True)
class ChannelOutcome:
    channel: str  # "email" | "realtime"
    recipient: str
    ok: bool
    error: Optional[str] = None


@dataclass
class FanoutReport:
    notification_id: str
    message: str
    outcomes: list[ChannelOutcome] = field(default_factory=list)

    @property
    def failures(self) -> list[ChannelOutcome]:
        return [o for o in self.outcomes if not o.ok]


def format_day(value: Optional[date]) -> str:
    return value.strftime("%d %b %Y") if value else "N/A"


def build_message(transition: Transition, demo_class: DemoClass) -> str:
    if transition == Transition.CREATED:
        return (
            f'New demo class "{demo_class.class_type}" scheduled for '
            f"{format_day(demo_class.date)} at {demo_class.start_time}"
        )
    if transition == Transition.RESCHEDULED:
        return (
            f'Demo class "{demo_class.class_type}" rescheduled from '
            f"{format_day(demo_class.previous_date)} {demo_class.previous_start_time or 'N/A'} to "
            f"{format_day(demo_class.date)} at {demo_class.start_time}"
        )
    return f'Demo class "{demo_class.class_type}" on {format_day(demo_class.date)} cancelled'


def email_context(demo_class: DemoClass, *, teacher_name: str, base_url: str) -> dict:
    return {
        "class_type": demo_class.class_type,
        "meeting_type": demo_class.meeting_type.value,
        "date": format_day(demo_class.date),
        "start_time": demo_class.start_time,
        "end_time": demo_class.end_time,
        "timezone": demo_class.timezone,
        "call_duration": f"{demo_class.call_duration} min",
        "link": demo_class.link,
        "previous_date": format_day(demo_class.previous_date),
        "previous_start_time": demo_class.previous_start_time or "N/A",
        "previous_end_time": demo_class.previous_end_time or "N/A",
        "teacher": teacher_name,
        "documents": [{"name": d.name, "url": d.url} for d in demo_class.documents],
        "base_url": base_url,
    }


async def attempt_delivery(channel: str, recipient: str, call: Awaitable[None]) -> ChannelOutcome:
    try:
        await call
    except Exception as e:
        logger.error("Failed to deliver %s notification to %s: %s", channel, recipient, e)
        return ChannelOutcome(channel, recipient, ok=False, error=str(e))
    return ChannelOutcome(channel, recipient, ok=True)


class NotificationFanout:
    def __init__(
        self,
        notifications: NotificationStore,
        emails: EmailSender,
        realtime: RealtimeBus,
        users: UserDirectory,
        *,
        base_url: str = "",
    ):
        self._notifications = notifications
        self._emails = emails
        self._realtime = realtime
        self._users = users
        self._base_url = base_url.rstrip("/")

    @property
    def schedule_link(self) -> str:
        return f"{self._base_url}/teacher/schedule"

    async def _teacher_name(self, teacher_id: str) -> str:
        try:
            teacher = await self._users.get(teacher_id)
        except Exception as e:
            logger.warning("Teacher lookup failed for %s: %s", teacher_id, e)
            return "Unknown"
        return teacher.name if teacher else "Unknown"

    async def dispatch(self, result: TransitionResult) -> FanoutReport:
        demo_class = result.demo_class
        teacher_id = demo_class.assigned_teacher_id
        message = build_message(result.transition, demo_class)

        try:
            notification_id = await self._notifications.create(teacher_id, message, self.schedule_link)
        except DependencyError:
            raise
        except Exception as e:
            logger.error("Notification record for %s failed: %s", demo_class.id, e)
            raise DependencyError("notification_store", str(e)) from e

        report = FanoutReport(notification_id=notification_id, message=message)
        report.outcomes = await self._deliver(result, message)
        if report.failures:
            logger.warning(
                "Demo class %s: %d of %d deliveries failed",
                demo_class.id,
                len(report.failures),
                len(report.outcomes),
            )
        return report

    async def _deliver(self, result: TransitionResult, message: str) -> list[ChannelOutcome]:
        demo_class = result.demo_class
        actor: Actor = result.actor
        template = EMAIL_TEMPLATES[result.transition]
        context = email_context(
            demo_class,
            teacher_name=await self._teacher_name(demo_class.assigned_teacher_id),
            base_url=self._base_url,
        )

        branches = [
            attempt_delivery(
                "email",
                actor.email,
                self._emails.send_template(template, actor.email, {**context, "name": actor.name, "is_teacher": True}),
            )
        ]
        for email in demo_class.student_emails:
            branches.append(
                attempt_delivery(
                    "email",
                    email,
                    self._emails.send_template(template, email, {**context, "name": "Student", "is_teacher": False}),
                )
            )
        branches.append(
            attempt_delivery(
                "realtime",
                demo_class.assigned_teacher_id,
                self._realtime.publish(
                    demo_class.assigned_teacher_id,
                    {"type": "notification", "message": message, "link": self.schedule_link},
                ),
            )
        )
        return list(await asyncio.gather(*branches))
