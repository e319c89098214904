"""RBAC action registry: which records each role may act on, per action."""
from __future__ import annotations

from enum import Enum
from typing import Literal

from app.models.user import UserRole

ScheduleAction = Literal["create", "reschedule", "cancel", "read"]


class Scope(str, Enum):
    ANY = "any"            # every record; may assign any teacher
    OWN = "own"            # records the actor is assigned to or scheduled
    ENROLLED = "enrolled"  # records listing the actor's email as a student
    NONE = "none"


ELEVATED_ROLES: frozenset[UserRole] = frozenset({UserRole.ADMIN, UserRole.SUPER_ADMIN})


def _full_access() -> dict[ScheduleAction, Scope]:
    return {"create": Scope.ANY, "reschedule": Scope.ANY, "cancel": Scope.ANY, "read": Scope.ANY}


ACTION_MATRIX: dict[UserRole, dict[ScheduleAction, Scope]] = {
    UserRole.SUPER_ADMIN: _full_access(),
    UserRole.ADMIN: _full_access(),
    UserRole.TEACHER: {
        "create": Scope.OWN,
        "reschedule": Scope.OWN,
        "cancel": Scope.OWN,
        "read": Scope.OWN,
    },
    UserRole.STUDENT: {
        "create": Scope.NONE,
        "reschedule": Scope.NONE,
        "cancel": Scope.NONE,
        "read": Scope.ENROLLED,
    },
}


def scope_for(role: UserRole, action: ScheduleAction) -> Scope:
    return ACTION_MATRIX.get(role, {}).get(action, Scope.NONE)
