"""Authorization gate: role x action matrix and effective-teacher resolution.

Invariants:
    - Admins may act on any class; teachers only on classes they own
    - Students can read classes listing their email and nothing else
    - Admins must name a teacher whose role is exactly Teacher
"""

from datetime import date

import pytest

from app.errors import AuthorizationError, ValidationError
from app.models.demo_class import DemoClass, MeetingType
from app.models.user import UserRole
from app.rbac import Scope, scope_for
from app.services.authorization import authorize, can_view, resolve_teacher
from app.services.collaborators import Actor


def _demo_class(teacher_id="teacher-1", scheduled_by_id="admin-1", emails=("sam@learners.io",)):
    return DemoClass(
        id="c1",
        class_type="Intro",
        meeting_type=MeetingType.EXTERNAL,
        link="https://meet.example.org/abc",
        date=date(2024, 6, 10),
        start_time="14:00",
        end_time="14:40",
        timezone="UTC",
        scheduled_by_id=scheduled_by_id,
        assigned_teacher_id=teacher_id,
        student_emails=list(emails),
    )


def test_matrix_covers_every_role():
    for role in UserRole:
        for action in ("create", "reschedule", "cancel", "read"):
            assert isinstance(scope_for(role, action), Scope)


def test_super_admin_has_full_access():
    assert scope_for(UserRole.SUPER_ADMIN, "cancel") == Scope.ANY


@pytest.mark.parametrize("action", ["reschedule", "cancel", "read"])
def test_admin_allowed_on_any_class(admin, action):
    authorize(admin, action, _demo_class(teacher_id="someone-else"))


@pytest.mark.parametrize("action", ["reschedule", "cancel"])
def test_teacher_allowed_on_assigned_class(teacher, action):
    authorize(teacher, action, _demo_class(teacher_id=teacher.id))


def test_teacher_allowed_when_they_scheduled_it(teacher):
    authorize(teacher, "cancel", _demo_class(teacher_id="teacher-9", scheduled_by_id=teacher.id))


def test_teacher_denied_on_foreign_class(teacher):
    with pytest.raises(AuthorizationError, match="Not authorized to reschedule this class"):
        authorize(teacher, "reschedule", _demo_class(teacher_id="teacher-2"))


@pytest.mark.parametrize("action", ["create", "reschedule", "cancel"])
def test_student_cannot_write(student, action):
    with pytest.raises(AuthorizationError):
        authorize(student, action, _demo_class() if action != "create" else None)


def test_student_sees_enrolled_class_case_insensitively():
    actor = Actor(id="s", name="Sam", email="SAM@learners.io", role=UserRole.STUDENT)
    assert can_view(actor, _demo_class())
    assert not can_view(actor, _demo_class(emails=("other@learners.io",)))


async def test_admin_must_supply_teacher(admin, users):
    with pytest.raises(ValidationError) as exc:
        await resolve_teacher(admin, None, users)
    assert exc.value.errors[0]["field"] == "assignedTeacherId"


async def test_admin_assigns_teacher(admin, teacher, users):
    assert await resolve_teacher(admin, teacher.id, users) == teacher.id


async def test_admin_cannot_assign_non_teacher(admin, student, users):
    with pytest.raises(ValidationError, match="Invalid or unauthorized teacher ID"):
        await resolve_teacher(admin, student.id, users)


async def test_admin_cannot_assign_unknown_user(admin, users):
    with pytest.raises(ValidationError):
        await resolve_teacher(admin, "missing", users)


async def test_teacher_bound_to_self(teacher, users):
    assert await resolve_teacher(teacher, None, users) == teacher.id
    assert await resolve_teacher(teacher, teacher.id, users) == teacher.id


async def test_teacher_cannot_assign_someone_else(teacher, other_teacher, users):
    with pytest.raises(AuthorizationError):
        await resolve_teacher(teacher, other_teacher.id, users)


async def test_student_cannot_be_effective_teacher(student, users):
    with pytest.raises(AuthorizationError):
        await resolve_teacher(student, None, users)
