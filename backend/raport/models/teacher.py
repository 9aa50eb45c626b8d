"""
Teacher and homeroom teacher models.

A subject teacher may grade only the subjects listed on their record; the
record doubles as the teacher variant of the signed-in user. A homeroom
teacher (wali kelas) looks after exactly one class.
"""

from typing import Literal, Tuple
from pydantic import Field
from raport.models.base import DomainModel


class Teacher(DomainModel):
    id: str = Field("", description="System identifier, assigned on add")
    name: str = Field(..., min_length=1)
    subjects: Tuple[str, ...] = Field(default_factory=tuple,
                                      description="Subjects this teacher may grade")
    role: Literal["teacher"] = "teacher"

    def teaches(self, subject: str) -> bool:
        return subject in self.subjects

    def __repr__(self):
        return f"<Teacher(id={self.id}, name='{self.name}', subjects={list(self.subjects)})>"


class HomeroomTeacher(DomainModel):
    id: str = Field("", description="System identifier, assigned on add")
    name: str = Field(..., min_length=1)
    class_name: str = Field(..., alias="class", min_length=1)
    contact: str = ""

    def __repr__(self):
        return f"<HomeroomTeacher(id={self.id}, name='{self.name}', class='{self.class_name}')>"
