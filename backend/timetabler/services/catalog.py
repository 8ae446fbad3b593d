from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
import logging

from timetabler.core.exceptions import SchedulerError, UnknownReferenceError
from timetabler.services.planning import FacultyRecord, SubjectRecord

logger = logging.getLogger(__name__)

FacultyResolver = Callable[[str], FacultyRecord | None]
SubjectResolver = Callable[[str], SubjectRecord | None]


@dataclass(frozen=True)
class Assignment:
    faculty_id: str
    subject_id: str


class AssignmentCatalog:
    """Resolved view over the (faculty, subject) pairs supplied for one class."""

    def __init__(
        self,
        *,
        assignments: Iterable[Assignment],
        subjects: dict[str, SubjectRecord],
        faculty: dict[str, FacultyRecord],
    ) -> None:
        self.assignments = tuple(assignments)
        self.subjects = subjects
        self.faculty = faculty
        self.subjects_by_faculty: dict[str, set[str]] = {}
        self.faculty_by_subject: dict[str, set[str]] = {}
        for item in self.assignments:
            self.subjects_by_faculty.setdefault(item.faculty_id, set()).add(item.subject_id)
            self.faculty_by_subject.setdefault(item.subject_id, set()).add(item.faculty_id)
        self._eligible_cache: dict[str, tuple[str, ...]] = {}

    @classmethod
    def build(
        cls,
        assignments: Iterable[Assignment],
        *,
        resolve_faculty: FacultyResolver,
        resolve_subject: SubjectResolver,
    ) -> "AssignmentCatalog":
        items = [Assignment(faculty_id=str(item.faculty_id), subject_id=str(item.subject_id)) for item in assignments]
        if not items:
            raise SchedulerError("At least one faculty-subject assignment is required")

        subjects: dict[str, SubjectRecord] = {}
        faculty: dict[str, FacultyRecord] = {}
        for item in items:
            if item.faculty_id not in faculty:
                record = resolve_faculty(item.faculty_id)
                if record is None:
                    raise UnknownReferenceError("faculty", item.faculty_id)
                faculty[item.faculty_id] = record
            if item.subject_id not in subjects:
                record = resolve_subject(item.subject_id)
                if record is None:
                    raise UnknownReferenceError("subject", item.subject_id)
                subjects[item.subject_id] = record

        logger.info(
            "Resolved %s assignment(s): %s faculty, %s subject(s)",
            len(items),
            len(faculty),
            len(subjects),
        )
        return cls(assignments=items, subjects=subjects, faculty=faculty)

    @property
    def faculty_ids(self) -> list[str]:
        return list(self.faculty)

    @property
    def lab_subject_ids(self) -> list[str]:
        return [subject_id for subject_id, record in self.subjects.items() if record.is_lab]

    @property
    def theory_subject_ids(self) -> list[str]:
        return [subject_id for subject_id, record in self.subjects.items() if not record.is_lab]

    def subject(self, subject_id: str) -> SubjectRecord | None:
        return self.subjects.get(subject_id)

    def faculty_member(self, faculty_id: str) -> FacultyRecord | None:
        return self.faculty.get(faculty_id)

    def subject_label(self, subject_id: str) -> str:
        record = self.subjects.get(subject_id)
        return record.name if record is not None else subject_id

    def is_eligible(self, faculty_id: str, subject_id: str) -> bool:
        return faculty_id in self.faculty_by_subject.get(subject_id, ())

    def eligible_faculty(self, subject_id: str) -> tuple[str, ...]:
        cached = self._eligible_cache.get(subject_id)
        if cached is None:
            cached = tuple(
                sorted(
                    self.faculty_by_subject.get(subject_id, ()),
                    key=lambda faculty_id: self.faculty[faculty_id].sort_key,
                )
            )
            self._eligible_cache[subject_id] = cached
        return cached

    def describe(self) -> list[dict]:
        rows: list[dict] = []
        for item in self.assignments:
            subject = self.subjects[item.subject_id]
            member = self.faculty[item.faculty_id]
            rows.append(
                {
                    "subject": subject.name,
                    "subject_id": subject.id,
                    "faculty": member.name,
                    "faculty_id": member.id,
                    "is_lab": subject.is_lab,
                    "duration": subject.duration,
                }
            )
        return rows
