from raport.models.student import Student
from raport.models.teacher import Teacher, HomeroomTeacher
from raport.models.grade import Grade
from raport.models.history_log import HistoryLogEntry
from raport.models.snapshot import DataSnapshot
from raport.models.user import AdminUser, HomeroomUser, User
from raport.models.app_state import AppStateRecord

__all__ = [
    "Student", "Teacher", "HomeroomTeacher", "Grade", "HistoryLogEntry",
    "DataSnapshot", "AdminUser", "HomeroomUser", "User", "AppStateRecord",
]
