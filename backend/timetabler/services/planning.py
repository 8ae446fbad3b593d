from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING

from timetabler.schemas.timetable import ScheduleParameters

if TYPE_CHECKING:
    from timetabler.services.catalog import AssignmentCatalog
    from timetabler.services.commitments import FacultyCommitmentMatrix


@dataclass(frozen=True)
class SubjectRecord:
    id: str
    name: str
    code: str | None = None
    is_lab: bool = False
    duration: int = 1


@dataclass(frozen=True)
class FacultyRecord:
    id: str
    name: str
    faculty_code: str | None = None

    @property
    def sort_key(self) -> tuple[str, str, str]:
        return (self.faculty_code or "", self.name, self.id)


@dataclass(frozen=True)
class Entry:
    period: int
    subject_id: str
    faculty_id: str
    is_lab: bool = False

    def to_dict(self) -> dict:
        return {
            "period": self.period,
            "subject_id": self.subject_id,
            "faculty_id": self.faculty_id,
            "is_lab": self.is_lab,
        }


Schedule = dict[str, list[Entry]]


def afternoon_threshold(periods_per_day: int) -> int:
    if periods_per_day >= 6:
        return periods_per_day // 2 + 1
    return 1


def schedule_to_dict(schedule: Schedule) -> dict[str, list[dict]]:
    return {day: [entry.to_dict() for entry in entries] for day, entries in schedule.items()}


class PlanningState:
    """Grid of the schedule under construction plus the per-slot faculty availability."""

    def __init__(
        self,
        *,
        parameters: ScheduleParameters,
        catalog: AssignmentCatalog,
        commitments: FacultyCommitmentMatrix,
    ) -> None:
        self.parameters = parameters
        self.periods_per_day = parameters.periods_per_day
        self.days = list(parameters.working_days)
        self.catalog = catalog
        self.commitments = commitments
        self.grid: dict[str, dict[int, Entry]] = {day: {} for day in self.days}
        self.subjects_by_day: dict[str, set[str]] = {day: set() for day in self.days}
        self.weekly_counts: Counter[str] = Counter()
        all_faculty = set(catalog.faculty_ids)
        self.availability: dict[tuple[str, int], set[str]] = {
            (day, period): all_faculty - commitments.busy_at(day, period)
            for day in self.days
            for period in self.periods
        }

    @property
    def periods(self) -> range:
        return range(1, self.periods_per_day + 1)

    @property
    def total_slots(self) -> int:
        return len(self.days) * self.periods_per_day

    def is_free(self, day: str, period: int) -> bool:
        return period not in self.grid[day]

    def is_available(self, faculty_id: str, day: str, period: int) -> bool:
        return faculty_id in self.availability[(day, period)]

    def subject_at(self, day: str, period: int) -> str | None:
        entry = self.grid[day].get(period)
        return entry.subject_id if entry is not None else None

    def available_faculty(self, subject_id: str, day: str, periods: range | list[int]) -> list[str]:
        return [
            faculty_id
            for faculty_id in self.catalog.eligible_faculty(subject_id)
            if all(self.is_available(faculty_id, day, period) for period in periods)
        ]

    def place(self, day: str, period: int, subject_id: str, faculty_id: str, *, is_lab: bool) -> Entry:
        if not self.is_free(day, period):
            raise ValueError(f"{day} period {period} is already occupied")
        entry = Entry(period=period, subject_id=subject_id, faculty_id=faculty_id, is_lab=is_lab)
        self.grid[day][period] = entry
        self.availability[(day, period)].discard(faculty_id)
        self.subjects_by_day[day].add(subject_id)
        self.weekly_counts[subject_id] += 1
        return entry

    def occupied_count(self) -> int:
        return sum(len(periods) for periods in self.grid.values())

    def missing_slots(self) -> list[tuple[str, int]]:
        return [(day, period) for day in self.days for period in self.periods if self.is_free(day, period)]

    def to_schedule(self) -> Schedule:
        return {day: [self.grid[day][period] for period in sorted(self.grid[day])] for day in self.days}
