import os

# Must be set before raport.database is imported anywhere
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

import pytest

from raport.models import Student, Teacher, HomeroomTeacher, Grade, DataSnapshot


def make_grade(student_id, subject, score, semester=1, class_name="7A", teacher_id="T1"):
    return Grade(student_id=student_id, subject=subject, teacher_id=teacher_id,
                 class_name=class_name, semester=semester, score=score)


@pytest.fixture
def school():
    """A small school: one class, two teachers, a few grades."""
    return DataSnapshot(
        students=(
            Student(id="S1", student_id="S001", name="Ahmad", class_name="7A", gender="Laki-laki"),
            Student(id="S2", student_id="S002", name="Budi", class_name="7A", gender="Laki-laki"),
            Student(id="S3", student_id="S003", name="Citra", class_name="7B", gender="Perempuan"),
        ),
        teachers=(
            Teacher(id="T1", name="Ustadz Hasan", subjects=("Fiqih", "Nahwu")),
            Teacher(id="T2", name="Ustadzah Aisyah", subjects=("Matematika",)),
        ),
        homeroom_teachers=(
            HomeroomTeacher(id="HR1", name="Ustadz Umar", class_name="7A", contact="0812"),
        ),
        subjects=("Fiqih", "Matematika", "Nahwu", "Tafsir"),
        grades=(
            make_grade("S001", "Fiqih", 88),
            make_grade("S002", "Fiqih", 70),
        ),
    )


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from raport.main import app
    from raport.database import SessionLocal
    from raport.models.app_state import AppStateRecord

    db = SessionLocal()
    db.query(AppStateRecord).delete()
    db.commit()
    db.close()

    with TestClient(app) as test_client:
        yield test_client
