from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from timetabler.core.exceptions import ResourceNotFoundError
from timetabler.models.faculty import Faculty
from timetabler.models.school_class import SchoolClass
from timetabler.models.subject import Subject
from timetabler.models.timetable import Timetable, empty_schedule
from timetabler.services.commitments import PersistedSchedule
from timetabler.services.planning import FacultyRecord, Schedule, SubjectRecord, schedule_to_dict

logger = logging.getLogger(__name__)


class ScheduleStore(Protocol):
    def get_timetable(self, timetable_id: str) -> Timetable:
        ...

    def load_other_schedules(self, exclude_id: str | None) -> list[PersistedSchedule]:
        ...

    def resolve_faculty(self, faculty_id: str) -> FacultyRecord | None:
        ...

    def resolve_subject(self, subject_id: str) -> SubjectRecord | None:
        ...

    def persist_schedule(self, timetable_id: str, schedule: Schedule, *, commit: bool = True) -> None:
        ...

    def clear_schedule(self, timetable_id: str, *, commit: bool = True) -> None:
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...


class SqlScheduleStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_timetable(self, timetable_id: str) -> Timetable:
        timetable = self.db.get(Timetable, timetable_id)
        if timetable is None:
            raise ResourceNotFoundError("Timetable", timetable_id)
        return timetable

    def load_other_schedules(self, exclude_id: str | None) -> list[PersistedSchedule]:
        stmt = select(Timetable, SchoolClass.name).outerjoin(SchoolClass, SchoolClass.id == Timetable.class_id)
        if exclude_id is not None:
            stmt = stmt.where(Timetable.id != exclude_id)
        rows = self.db.execute(stmt).all()
        return [
            PersistedSchedule(
                timetable_id=timetable.id,
                schedule=timetable.schedule or {},
                class_id=timetable.class_id,
                class_name=class_name,
            )
            for timetable, class_name in rows
        ]

    def resolve_faculty(self, faculty_id: str) -> FacultyRecord | None:
        item = self.db.get(Faculty, faculty_id)
        if item is None:
            return None
        return FacultyRecord(id=item.id, name=item.name, faculty_code=item.faculty_code)

    def resolve_subject(self, subject_id: str) -> SubjectRecord | None:
        item = self.db.get(Subject, subject_id)
        if item is None:
            return None
        duration = item.default_duration_periods or 1
        return SubjectRecord(
            id=item.id,
            name=item.name,
            code=item.code,
            is_lab=item.is_lab,
            duration=duration if item.is_lab else 1,
        )

    def persist_schedule(self, timetable_id: str, schedule: Schedule, *, commit: bool = True) -> None:
        timetable = self.get_timetable(timetable_id)
        payload = empty_schedule()
        payload.update(schedule_to_dict(schedule))
        timetable.schedule = payload
        timetable.last_generated = datetime.now(timezone.utc)
        self._finish(commit)
        self.db.refresh(timetable)
        logger.info("Persisted schedule for timetable %s", timetable_id)

    def clear_schedule(self, timetable_id: str, *, commit: bool = True) -> None:
        timetable = self.get_timetable(timetable_id)
        timetable.schedule = empty_schedule()
        self._finish(commit)

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    def _finish(self, commit: bool) -> None:
        # A flush keeps the change visible to load_other_schedules in this session.
        if commit:
            self.db.commit()
        else:
            self.db.flush()
