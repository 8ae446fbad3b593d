from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping
from dataclasses import dataclass, field
import logging

from timetabler.schemas.timetable import ScheduleParameters
from timetabler.services.catalog import AssignmentCatalog
from timetabler.services.commitments import FacultyCommitmentMatrix
from timetabler.services.planning import Entry, Schedule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationWarning:
    day: str | None
    period: int | None
    subject_id: str | None
    message: str


@dataclass
class ValidationReport:
    schedule: Schedule
    warnings: list[ValidationWarning] = field(default_factory=list)
    substitutions: int = 0
    dropped: int = 0
    missing_slots: list[tuple[str, int]] = field(default_factory=list)
    lab_violations: list[ValidationWarning] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.substitutions or self.dropped)

    @property
    def complete(self) -> bool:
        return not self.missing_slots


def _coerce_entry(raw: object) -> tuple[int, str, str] | None:
    if isinstance(raw, Entry):
        return raw.period, raw.subject_id, raw.faculty_id
    if not isinstance(raw, Mapping):
        return None
    period = raw.get("period")
    subject_id = raw.get("subject_id")
    faculty_id = raw.get("faculty_id")
    if isinstance(period, bool) or not isinstance(period, int):
        return None
    if not subject_id or not faculty_id:
        return None
    return period, str(subject_id), str(faculty_id)


class ScheduleValidator:
    """Checks a candidate schedule and applies the smallest fixes that make it usable.

    Works the same for locally planned and externally generated candidates.
    """

    def __init__(
        self,
        *,
        parameters: ScheduleParameters,
        catalog: AssignmentCatalog,
        commitments: FacultyCommitmentMatrix,
    ) -> None:
        self.parameters = parameters
        self.catalog = catalog
        self.commitments = commitments
        self.theory_ids = catalog.theory_subject_ids

    def validate(self, candidate: Mapping | None) -> ValidationReport:
        source = candidate if isinstance(candidate, Mapping) else {}
        report = ValidationReport(schedule={})
        for day in self.parameters.working_days:
            raw_entries = source.get(day)
            if not isinstance(raw_entries, list):
                raw_entries = []
            entries = self._clean_day(day, raw_entries, report)
            entries = self._repair_faculty_conflicts(day, entries, report)
            if self.parameters.guidelines.no_same_class_subject_repeat_day:
                entries = self._repair_duplicates(day, entries, report)
            report.schedule[day] = entries
            taken = {entry.period for entry in entries}
            report.missing_slots.extend(
                (day, period) for period in range(1, self.parameters.periods_per_day + 1) if period not in taken
            )
        self._check_labs(report)

        if report.changed or report.warnings:
            logger.info(
                "Validation applied %s substitution(s), dropped %s entr(ies), raised %s warning(s)",
                report.substitutions,
                report.dropped,
                len(report.warnings),
            )
        return report

    def _clean_day(self, day: str, raw_entries: list, report: ValidationReport) -> list[Entry]:
        by_period: dict[int, Entry] = {}
        for raw in raw_entries:
            parsed = _coerce_entry(raw)
            if parsed is None:
                report.dropped += 1
                continue
            period, subject_id, faculty_id = parsed
            if not 1 <= period <= self.parameters.periods_per_day or period in by_period:
                report.dropped += 1
                continue
            subject = self.catalog.subject(subject_id)
            if subject is None or self.catalog.faculty_member(faculty_id) is None:
                logger.info("Removing invalid entry on %s period %s: subject %s, faculty %s", day, period, subject_id, faculty_id)
                report.dropped += 1
                continue
            if not self.catalog.is_eligible(faculty_id, subject_id):
                substitute = self._free_faculty(subject_id, day, period)
                if substitute is None:
                    logger.info("Removing %s on %s period %s: %s is not assigned to it", subject_id, day, period, faculty_id)
                    report.dropped += 1
                    continue
                faculty_id = substitute
                report.substitutions += 1
            by_period[period] = Entry(period=period, subject_id=subject_id, faculty_id=faculty_id, is_lab=subject.is_lab)
        return [by_period[period] for period in sorted(by_period)]

    def _free_faculty(self, subject_id: str, day: str, period: int) -> str | None:
        for faculty_id in self.catalog.eligible_faculty(subject_id):
            if not self.commitments.is_busy(faculty_id, day, period):
                return faculty_id
        return None

    def _repair_faculty_conflicts(self, day: str, entries: list[Entry], report: ValidationReport) -> list[Entry]:
        repaired: list[Entry] = []
        for entry in entries:
            if not self.commitments.is_busy(entry.faculty_id, day, entry.period):
                repaired.append(entry)
                continue
            substitute = self._free_faculty(entry.subject_id, day, entry.period)
            if substitute is None:
                report.dropped += 1
                report.warnings.append(
                    ValidationWarning(
                        day=day,
                        period=entry.period,
                        subject_id=entry.subject_id,
                        message="Faculty is already teaching another class in this slot and no substitute is free",
                    )
                )
                continue
            report.substitutions += 1
            repaired.append(Entry(entry.period, entry.subject_id, substitute, entry.is_lab))
        return repaired

    def _repair_duplicates(self, day: str, entries: list[Entry], report: ValidationReport) -> list[Entry]:
        present = {entry.subject_id for entry in entries}
        seen: set[str] = set()
        repaired: list[Entry] = []
        for entry in entries:
            if entry.is_lab:
                repaired.append(entry)
                continue
            if entry.subject_id in seen:
                replacement = self._replacement_for(day, entry.period, present)
                if replacement is None:
                    logger.warning(
                        "Could not replace repeated %s on %s period %s",
                        self.catalog.subject_label(entry.subject_id),
                        day,
                        entry.period,
                    )
                    report.warnings.append(
                        ValidationWarning(
                            day=day,
                            period=entry.period,
                            subject_id=entry.subject_id,
                            message="Subject repeats on the same day and no unused subject could replace it",
                        )
                    )
                else:
                    subject_id, faculty_id = replacement
                    logger.info("Fixing duplicate on %s: %s at period %s -> %s", day, entry.subject_id, entry.period, subject_id)
                    entry = Entry(entry.period, subject_id, faculty_id, False)
                    present.add(subject_id)
                    report.substitutions += 1
            seen.add(entry.subject_id)
            repaired.append(entry)
        return repaired

    def _replacement_for(self, day: str, period: int, present: set[str]) -> tuple[str, str] | None:
        for subject_id in self.theory_ids:
            if subject_id in present:
                continue
            faculty_id = self._free_faculty(subject_id, day, period)
            if faculty_id is not None:
                return subject_id, faculty_id
        return None

    def _check_labs(self, report: ValidationReport) -> None:
        periods_by_lab: dict[str, dict[str, list[int]]] = defaultdict(dict)
        for day, entries in report.schedule.items():
            for entry in entries:
                if entry.is_lab:
                    periods_by_lab[entry.subject_id].setdefault(day, []).append(entry.period)

        for subject_id in self.catalog.lab_subject_ids:
            days = periods_by_lab.get(subject_id, {})
            problem = self._lab_problem(subject_id, days)
            if problem is None:
                continue
            violation = ValidationWarning(day=next(iter(days), None), period=None, subject_id=subject_id, message=problem)
            report.lab_violations.append(violation)
            report.warnings.append(violation)

    def _lab_problem(self, subject_id: str, days: dict[str, list[int]]) -> str | None:
        if not days:
            return "Lab is missing from the week"
        if len(days) > 1:
            return f"Lab is scheduled on {len(days)} days: {', '.join(days)}"
        periods = sorted(next(iter(days.values())))
        if periods != list(range(periods[0], periods[0] + len(periods))):
            return f"Lab periods {', '.join(str(period) for period in periods)} are not consecutive"
        duration = self.catalog.subjects[subject_id].duration
        if len(periods) != duration:
            return f"Lab block covers {len(periods)} period(s) instead of {duration}"
        return None
