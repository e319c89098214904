"""Authorization gate: role x action checks and effective-teacher resolution."""
from __future__ import annotations

import logging

from app.errors import AuthorizationError, ValidationError
from app.models.demo_class import DemoClass
from app.models.user import UserRole
from app.rbac import ELEVATED_ROLES, ScheduleAction, Scope, scope_for
from app.services.collaborators import Actor, UserDirectory

logger = logging.getLogger(__name__)


def is_elevated(actor: Actor) -> bool:
    return actor.role in ELEVATED_ROLES


def owns(actor: Actor, demo_class: DemoClass) -> bool:
    return actor.id in (demo_class.assigned_teacher_id, demo_class.scheduled_by_id)


def is_enrolled(actor: Actor, demo_class: DemoClass) -> bool:
    email = (actor.email or "").strip().lower()
    return bool(email) and email in {e.lower() for e in demo_class.student_emails}


def in_scope(actor: Actor, scope: Scope, demo_class: DemoClass | None) -> bool:
    if scope == Scope.ANY:
        return True
    if scope == Scope.NONE:
        return False
    if demo_class is None:
        # Record-less check (create, list): the role has some access.
        return True
    if scope == Scope.OWN:
        return owns(actor, demo_class)
    if scope == Scope.ENROLLED:
        return is_enrolled(actor, demo_class)
    return False


def can_view(actor: Actor, demo_class: DemoClass) -> bool:
    return in_scope(actor, scope_for(actor.role, "read"), demo_class)


def authorize(actor: Actor, action: ScheduleAction, demo_class: DemoClass | None = None) -> None:
    """Raise AuthorizationError unless the matrix allows ``action`` for ``actor``."""
    scope = scope_for(actor.role, action)
    if in_scope(actor, scope, demo_class):
        return
    target = f" on {demo_class.id}" if demo_class is not None else ""
    logger.warning("Unauthorized %s attempt by user %s (%s)%s", action, actor.id, actor.role.value, target)
    if demo_class is None or scope == Scope.NONE:
        raise AuthorizationError("Not authorized")
    raise AuthorizationError(f"Not authorized to {action} this class")


async def resolve_teacher(actor: Actor, requested_teacher_id: str | None, users: UserDirectory) -> str:
    """Pick the teacher the class is bound to.

    Admins may assign any user whose role is exactly Teacher. Everyone else
    must be a Teacher and is bound to themselves.
    """
    if is_elevated(actor):
        if not requested_teacher_id:
            raise ValidationError.single("assignedTeacherId", "Teacher ID required for non-teacher users")
        teacher = await users.get(requested_teacher_id)
        if teacher is None or teacher.role != UserRole.TEACHER:
            logger.warning("Invalid or unauthorized teacher ID: %s", requested_teacher_id)
            raise ValidationError.single("assignedTeacherId", "Invalid or unauthorized teacher ID")
        return teacher.id

    if actor.role != UserRole.TEACHER:
        raise AuthorizationError("Not authorized")
    if requested_teacher_id and requested_teacher_id != actor.id:
        logger.warning("Teacher %s tried to assign class to %s", actor.id, requested_teacher_id)
        raise AuthorizationError("Teachers can only schedule classes for themselves")
    return actor.id
