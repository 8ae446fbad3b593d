"""Seed a small department and generate its timetables.

Run:
  PYTHONPATH=backend python scripts/seed_demo_data.py
"""

from __future__ import annotations

import os

from sqlalchemy import func, select

from timetabler.core.config import get_settings
from timetabler.db.bootstrap import ensure_runtime_schema
from timetabler.db.session import SessionLocal
from timetabler.models.faculty import Faculty
from timetabler.models.school_class import SchoolClass
from timetabler.models.subject import Subject
from timetabler.models.timetable import Timetable
from timetabler.schemas.generator import AssignmentIn, RegenerationJob
from timetabler.services.generation import regenerate_all
from timetabler.services.schedule_store import SqlScheduleStore

ACADEMIC_YEAR = os.getenv("SEED_ACADEMIC_YEAR", "2026-2027").strip() or "2026-2027"
GENERATE = os.getenv("SEED_GENERATE", "true").strip().lower() in {"1", "true", "yes", "on"}
SEED = int(os.getenv("SEED_RANDOM_SEED", "2026"))
BRANCH = "CSE"

FACULTY = [
    ("F001", "Dr. Meera Nair", "meera.nair@college.edu"),
    ("F002", "Dr. Arjun Rao", "arjun.rao@college.edu"),
    ("F003", "Prof. Kavya Menon", "kavya.menon@college.edu"),
    ("F004", "Prof. Rahul Iyer", "rahul.iyer@college.edu"),
    ("F005", "Prof. Sneha Pillai", "sneha.pillai@college.edu"),
    ("F006", "Mr. Vivek Sharma", "vivek.sharma@college.edu"),
]

# (code, name, is_lab, periods)
SUBJECTS = [
    ("MA101", "Engineering Mathematics", False, 1),
    ("PH101", "Engineering Physics", False, 1),
    ("CS101", "Programming in C", False, 1),
    ("EN101", "Technical English", False, 1),
    ("CS191", "Programming Lab", True, 2),
    ("PE101", "Sports", False, 1),
]

# subject code -> faculty codes allowed to teach it
TEACHING = {
    "MA101": ["F001"],
    "PH101": ["F002"],
    "CS101": ["F003", "F004"],
    "EN101": ["F005"],
    "CS191": ["F003", "F004"],
    "PE101": ["F006"],
}

CLASSES = ["CSE-1A", "CSE-1B", "CSE-1C"]


def upsert_faculty(session, *, code: str, name: str, email: str) -> Faculty:
    existing = session.execute(select(Faculty).where(Faculty.faculty_code == code)).scalar_one_or_none()
    if existing is None:
        existing = Faculty(faculty_code=code, name=name, email=email, department=BRANCH)
        session.add(existing)
    else:
        existing.name = name
        existing.email = email
        existing.department = BRANCH
    session.flush()
    return existing


def upsert_subject(session, *, code: str, name: str, is_lab: bool, periods: int) -> Subject:
    existing = session.execute(select(Subject).where(Subject.name == name)).scalar_one_or_none()
    if existing is None:
        existing = Subject(name=name, code=code, is_lab=is_lab, default_duration_periods=periods)
        session.add(existing)
    else:
        existing.code = code
        existing.is_lab = is_lab
        existing.default_duration_periods = periods
    session.flush()
    return existing


def upsert_class_timetable(session, name: str) -> Timetable:
    school_class = session.execute(select(SchoolClass).where(SchoolClass.name == name)).scalar_one_or_none()
    if school_class is None:
        school_class = SchoolClass(name=name, branch=BRANCH, year=1)
        session.add(school_class)
        session.flush()

    timetable = session.execute(
        select(Timetable).where(Timetable.class_id == school_class.id, Timetable.academic_year == ACADEMIC_YEAR)
    ).scalar_one_or_none()
    if timetable is None:
        timetable = Timetable(
            class_id=school_class.id,
            academic_year=ACADEMIC_YEAR,
            periods_per_day=get_settings().default_periods_per_day,
        )
        session.add(timetable)
        session.flush()
    return timetable


def build_assignments(faculty_by_code: dict[str, Faculty], subject_by_code: dict[str, Subject]) -> list[AssignmentIn]:
    return [
        AssignmentIn(faculty_id=faculty_by_code[faculty_code].id, subject_id=subject_by_code[subject_code].id)
        for subject_code, faculty_codes in TEACHING.items()
        for faculty_code in faculty_codes
    ]


def main() -> None:
    ensure_runtime_schema()
    with SessionLocal() as session:
        faculty_by_code = {code: upsert_faculty(session, code=code, name=name, email=email) for code, name, email in FACULTY}
        subject_by_code = {
            code: upsert_subject(session, code=code, name=name, is_lab=is_lab, periods=periods)
            for code, name, is_lab, periods in SUBJECTS
        }
        timetables = [upsert_class_timetable(session, name) for name in CLASSES]
        session.commit()

        generated = 0
        if GENERATE:
            assignments = build_assignments(faculty_by_code, subject_by_code)
            jobs = [RegenerationJob(timetable_id=item.id, faculty_subject_assignments=assignments) for item in timetables]
            results = regenerate_all(SqlScheduleStore(session), jobs, use_external=False, seed=SEED)
            generated = len(results)

        faculty_count = session.execute(select(func.count(Faculty.id))).scalar_one()
        subject_count = session.execute(select(func.count(Subject.id))).scalar_one()
        timetable_count = session.execute(select(func.count(Timetable.id))).scalar_one()

    print("Demo data seeded successfully.")
    print("")
    print(f"Academic year: {ACADEMIC_YEAR}")
    print(f"Faculty records: {faculty_count}")
    print(f"Subject records: {subject_count}")
    print(f"Timetables: {timetable_count} ({generated} generated)")


if __name__ == "__main__":
    main()
