"""
DataSnapshot model - all five master collections at one point in time.

This is the unit the undo/redo stack stores. It is frozen; a change to
any collection produces a whole new snapshot via ``replace`` so the stack
only ever addresses complete, self-consistent states.
"""

from typing import Tuple
from pydantic import Field, model_validator
from raport.models.base import DomainModel
from raport.models.student import Student
from raport.models.teacher import Teacher, HomeroomTeacher
from raport.models.grade import Grade


class DataSnapshot(DomainModel):
    students: Tuple[Student, ...] = Field(default_factory=tuple)
    teachers: Tuple[Teacher, ...] = Field(default_factory=tuple)
    homeroom_teachers: Tuple[HomeroomTeacher, ...] = Field(default_factory=tuple)
    subjects: Tuple[str, ...] = Field(default_factory=tuple)
    grades: Tuple[Grade, ...] = Field(default_factory=tuple)

    @model_validator(mode="after")
    def _grade_keys_unique(self):
        seen = set()
        for grade in self.grades:
            if grade.key in seen:
                raise ValueError("Duplicate grade for student {}, subject {}, semester {}".format(*grade.key))
            seen.add(grade.key)
        return self

    def replace(self, **collections) -> "DataSnapshot":
        """Return a new snapshot with the given collections swapped in."""
        unknown = set(collections) - set(type(self).model_fields)
        if unknown:
            raise TypeError(f"Unknown snapshot collections: {sorted(unknown)}")
        frozen = {name: tuple(items) for name, items in collections.items()}
        return self.model_copy(update=frozen)

    def find_student(self, id: str):
        return next((s for s in self.students if s.id == id), None)

    def find_student_by_registration(self, student_id: str):
        return next((s for s in self.students if s.student_id == student_id), None)

    def find_teacher(self, id: str):
        return next((t for t in self.teachers if t.id == id), None)

    def find_homeroom_teacher(self, id: str):
        return next((h for h in self.homeroom_teachers if h.id == id), None)

    def __repr__(self):
        return (f"<DataSnapshot(students={len(self.students)}, teachers={len(self.teachers)}, "
                f"homeroom={len(self.homeroom_teachers)}, subjects={len(self.subjects)}, "
                f"grades={len(self.grades)})>")
