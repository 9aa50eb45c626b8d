"""
Student model - a student enrolled in one class.

``id`` is system-assigned and never shown; ``student_id`` is the
registration number (Nomor Induk) printed on report cards and used as
the foreign key by grades.
"""

from typing import Literal
from pydantic import Field
from raport.models.base import DomainModel

MALE = "Laki-laki"
FEMALE = "Perempuan"

Gender = Literal["Laki-laki", "Perempuan"]


class Student(DomainModel):
    id: str = Field("", description="System identifier, assigned on add")
    student_id: str = Field(..., min_length=1, description="Registration number (unique)")
    name: str = Field(..., min_length=1)
    class_name: str = Field(..., alias="class", min_length=1, description="Free-text class label")
    gender: Gender = MALE

    def __repr__(self):
        return f"<Student(id={self.id}, student_id='{self.student_id}', name='{self.name}', class='{self.class_name}')>"
