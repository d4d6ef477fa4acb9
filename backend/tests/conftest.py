import os

# Settings are cached on first import; point them at an isolated in-memory DB first.
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["AUTO_CREATE_SCHEMA"] = "false"

from datetime import date
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from jose import jwt

import schoolday.models  # noqa: F401
from schoolday.api.deps import get_db
from schoolday.core.config import get_settings
from schoolday.db.base import Base
from schoolday.db.session import SessionLocal, engine
from schoolday.main import app
from schoolday.models.academic_year import AcademicYear
from schoolday.models.branch import Branch
from schoolday.models.enums import AssignmentRole, RecordStatus
from schoolday.models.school_class import SchoolClass
from schoolday.models.subject import Subject
from schoolday.models.teacher import Teacher, TeacherAssignment
from schoolday.services.scope_locks import clear_scope_locks


def make_token(role: str, subject: str = "user-1") -> str:
    settings = get_settings()
    return jwt.encode({"sub": subject, "role": role}, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


@pytest.fixture()
def auth_headers():
    def build(role: str = "admin", subject: str = "user-1") -> dict:
        return {"Authorization": f"Bearer {make_token(role, subject)}"}

    return build


@pytest.fixture()
def db_session():
    clear_scope_locks()
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()
        Base.metadata.drop_all(bind=engine)
        clear_scope_locks()


@pytest.fixture()
def client(db_session):
    def override_get_db():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def school(db_session):
    """Two branches, one academic year, staffed classes and subjects."""
    sci = Branch(name="Science Branch", short_name="SCI")
    lit = Branch(name="Literature Branch", short_name="LIT")
    year = AcademicYear(name="2024-2025", start_date=date(2024, 9, 1), end_date=date(2025, 6, 30))
    db_session.add_all([sci, lit, year])
    db_session.flush()

    grade_10a = SchoolClass(name="Grade 10A", branch_id=sci.id, academic_year_id=year.id)
    grade_9b = SchoolClass(name="Grade 9B", branch_id=lit.id, academic_year_id=year.id)
    physics = Subject(name="Physics")
    chemistry = Subject(name="Chemistry")
    literature = Subject(name="English Literature")
    maths = Subject(name="Mathematics")
    john = Teacher(id="t-john", first_name="John", last_name="Smith", branch_id=sci.id)
    jane = Teacher(id="t-jane", first_name="Jane", last_name="Doe", branch_id=sci.id)
    alice = Teacher(id="t-alice", first_name="Alice", last_name="Johnson", branch_id=lit.id)
    db_session.add_all([grade_10a, grade_9b, physics, chemistry, literature, maths, john, jane, alice])
    db_session.flush()

    db_session.add_all(
        [
            TeacherAssignment(
                teacher_id=john.id, class_id=grade_10a.id, subject_id=physics.id, academic_year_id=year.id
            ),
            TeacherAssignment(
                teacher_id=jane.id,
                class_id=grade_10a.id,
                subject_id=physics.id,
                academic_year_id=year.id,
                role=AssignmentRole.SUPERVISOR,
            ),
            TeacherAssignment(
                teacher_id=jane.id, class_id=grade_10a.id, subject_id=chemistry.id, academic_year_id=year.id
            ),
            TeacherAssignment(
                teacher_id=john.id,
                class_id=grade_10a.id,
                subject_id=chemistry.id,
                academic_year_id=year.id,
                status=RecordStatus.INACTIVE,
            ),
            TeacherAssignment(
                teacher_id=alice.id, class_id=grade_9b.id, subject_id=literature.id, academic_year_id=year.id
            ),
        ]
    )
    db_session.commit()

    return SimpleNamespace(
        sci=sci.id,
        lit=lit.id,
        year=year.id,
        grade_10a=grade_10a.id,
        grade_9b=grade_9b.id,
        physics=physics.id,
        chemistry=chemistry.id,
        literature=literature.id,
        maths=maths.id,
        john=john.id,
        jane=jane.id,
        alice=alice.id,
    )
