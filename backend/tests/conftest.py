import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from timetabler.api.deps import get_candidate_source, get_db
from timetabler.db.base import Base
from timetabler.main import app
from timetabler.models import Faculty, SchoolClass, Subject, Timetable
from timetabler.services.catalog import Assignment, AssignmentCatalog
from timetabler.services.planning import FacultyRecord, SubjectRecord


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_candidate_source] = lambda: None

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def build_catalog(subjects, assignments, faculty=None) -> AssignmentCatalog:
    """Catalog straight from records: subjects is a list of SubjectRecord, assignments of (faculty_id, subject_id)."""
    subject_map = {item.id: item for item in subjects}
    faculty_ids = {faculty_id for faculty_id, _ in assignments}
    faculty_map = {item.id: item for item in (faculty or [])}
    for faculty_id in sorted(faculty_ids - set(faculty_map)):
        faculty_map[faculty_id] = FacultyRecord(id=faculty_id, name=f"Prof {faculty_id}", faculty_code=faculty_id.upper())
    return AssignmentCatalog(
        assignments=[Assignment(faculty_id=f, subject_id=s) for f, s in assignments],
        subjects=subject_map,
        faculty=faculty_map,
    )


def theory(subject_id: str, name: str | None = None) -> SubjectRecord:
    return SubjectRecord(id=subject_id, name=name or subject_id.upper(), code=subject_id.upper())


def lab(subject_id: str, duration: int = 2, name: str | None = None) -> SubjectRecord:
    return SubjectRecord(id=subject_id, name=name or f"{subject_id.upper()} Lab", is_lab=True, duration=duration)


@pytest.fixture()
def seeded(db):
    """Two classes sharing a faculty pool: one lab, four theory subjects, one sports subject."""
    faculty = {
        key: Faculty(id=key, name=name, faculty_code=code)
        for key, name, code in [
            ("f-lab", "Prof Lab", "F001"),
            ("f-math", "Prof Math", "F002"),
            ("f-phy", "Prof Physics", "F003"),
            ("f-chem", "Prof Chemistry", "F004"),
            ("f-eng", "Prof English", "F005"),
            ("f-pe", "Coach Sports", "F006"),
        ]
    }
    subjects = {
        "s-lab": Subject(id="s-lab", name="Computer Lab", code="CL", is_lab=True, default_duration_periods=2),
        "s-math": Subject(id="s-math", name="Mathematics", code="MA", default_duration_periods=1),
        "s-phy": Subject(id="s-phy", name="Physics", code="PH", default_duration_periods=1),
        "s-chem": Subject(id="s-chem", name="Chemistry", code="CH", default_duration_periods=1),
        "s-eng": Subject(id="s-eng", name="English", code="EN", default_duration_periods=1),
        "s-pe": Subject(id="s-pe", name="Sports", code="PE", default_duration_periods=1),
    }
    classes = {
        "c-a": SchoolClass(id="c-a", name="CSE-A", branch="CSE", year=1),
        "c-b": SchoolClass(id="c-b", name="CSE-B", branch="CSE", year=1),
    }
    timetables = {
        "t-a": Timetable(id="t-a", class_id="c-a", academic_year="2026-27", periods_per_day=6),
        "t-b": Timetable(id="t-b", class_id="c-b", academic_year="2026-27", periods_per_day=6),
    }
    db.add_all([*faculty.values(), *subjects.values(), *classes.values()])
    db.flush()
    db.add_all(timetables.values())
    db.commit()
    return {"faculty": faculty, "subjects": subjects, "classes": classes, "timetables": timetables}


def standard_assignments() -> list[dict]:
    return [
        {"faculty_id": "f-lab", "subject_id": "s-lab"},
        {"faculty_id": "f-math", "subject_id": "s-math"},
        {"faculty_id": "f-phy", "subject_id": "s-phy"},
        {"faculty_id": "f-chem", "subject_id": "s-chem"},
        {"faculty_id": "f-eng", "subject_id": "s-eng"},
        {"faculty_id": "f-pe", "subject_id": "s-pe"},
    ]
