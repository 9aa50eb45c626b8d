"""
Access rules - which views each role may open, and role selection.

Permissions are a pure function of (view, role); nothing here renders
or reads ambient session state. Users are the sum type from
raport.models.user: AdminUser, Teacher, HomeroomUser.
"""

from enum import Enum
from typing import List

from raport.config import ADMIN_ID, ADMIN_NAME
from raport.errors import EntityNotFound, ValidationConflict
from raport.models.snapshot import DataSnapshot
from raport.models.teacher import Teacher
from raport.models.user import AdminUser, HomeroomUser


class AppView(str, Enum):
    DASHBOARD = "Dashboard"
    GRADE_INPUT = "Grade Input"
    SUMMARY = "Summary"
    REPORT_CARD = "Report Card"
    DATA_MANAGEMENT = "Data Management"
    HISTORY = "History"


VIEW_PERMISSIONS = {
    "admin": (AppView.DASHBOARD, AppView.SUMMARY, AppView.REPORT_CARD,
              AppView.DATA_MANAGEMENT, AppView.HISTORY),
    "teacher": (AppView.DASHBOARD, AppView.GRADE_INPUT, AppView.SUMMARY, AppView.REPORT_CARD),
    "homeroom": (AppView.DASHBOARD, AppView.SUMMARY, AppView.REPORT_CARD),
}

ADMIN_USER = AdminUser(id=ADMIN_ID, name=ADMIN_NAME)


def available_views(user) -> List[AppView]:
    return list(VIEW_PERMISSIONS.get(getattr(user, "role", None), ()))


def is_view_allowed(view: AppView, user) -> bool:
    return view in available_views(user)


def can_grade(user, subject: str) -> bool:
    return isinstance(user, Teacher) and user.teaches(subject)


def visible_classes(user, classes: List[str]) -> List[str]:
    """A homeroom teacher only sees their own class; everyone else sees all."""
    if isinstance(user, HomeroomUser):
        return [c for c in classes if c == user.class_name]
    return list(classes)


def resolve_user(snapshot: DataSnapshot, role: str, selection: str = None):
    """
    Role selection ("login"): build the user variant for ``role``.

    - admin: no selection needed
    - teacher: ``selection`` is the teacher id
    - homeroom: ``selection`` is the class the homeroom teacher looks after
    """
    if role == "admin":
        return ADMIN_USER
    if role == "teacher":
        teacher = snapshot.find_teacher(selection or "")
        if teacher is None:
            raise EntityNotFound(f"Teacher '{selection}' not found")
        return teacher
    if role == "homeroom":
        hr = next((h for h in snapshot.homeroom_teachers if h.class_name == selection), None)
        if hr is None:
            raise EntityNotFound(f"No homeroom teacher for class '{selection}'")
        return HomeroomUser(id=hr.id, name=hr.name, class_name=hr.class_name)
    raise ValidationConflict(f"Unknown role '{role}' (expected admin, teacher or homeroom)")
