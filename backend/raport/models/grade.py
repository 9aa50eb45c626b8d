"""
Grade model - one score for one student in one subject and semester.

(student_id, subject, semester) is the composite key; a snapshot never
holds two grades with the same key. Scores are whole numbers 0-100 and
anything else fails validation before it can reach a snapshot.
"""

from typing import Literal, Tuple
from pydantic import Field
from raport.models.base import DomainModel

MIN_SCORE = 0
MAX_SCORE = 100

Semester = Literal[1, 2]


class Grade(DomainModel):
    student_id: str = Field(..., min_length=1, description="Registration number of the student")
    subject: str = Field(..., min_length=1)
    teacher_id: str = Field(..., description="Teacher who entered the score")
    class_name: str = Field(..., alias="class", min_length=1)
    semester: Semester
    score: int = Field(..., strict=True, ge=MIN_SCORE, le=MAX_SCORE)

    @property
    def key(self) -> Tuple[str, str, int]:
        return (self.student_id, self.subject, self.semester)

    def __repr__(self):
        return f"<Grade(student={self.student_id}, subject='{self.subject}', semester={self.semester}, score={self.score})>"
