from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
import logging
import random

from timetabler.core.exceptions import InfeasibleLabPlacement
from timetabler.services.planning import PlanningState, SubjectRecord, afternoon_threshold

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LabCandidate:
    day: str
    day_index: int
    start_period: int
    faculty_ids: tuple[str, ...]


@dataclass(frozen=True)
class LabPlacement:
    subject_id: str
    day: str
    start_period: int
    end_period: int
    faculty_id: str


class LabPlacementPlanner:
    """Places every lab subject once a week as one contiguous block of periods."""

    def __init__(self, state: PlanningState, *, rng: random.Random) -> None:
        self.state = state
        self.catalog = state.catalog
        self.random = rng
        self.threshold = afternoon_threshold(state.periods_per_day)

    def plan(self) -> list[LabPlacement]:
        placements: list[LabPlacement] = []
        ordered = self._ordered_lab_subjects()
        logger.info(
            "Scheduling %s lab(s) over %s day(s), afternoon from period %s",
            len(ordered),
            len(self.state.days),
            self.threshold,
        )
        for subject in ordered:
            placements.append(self._place(subject))
        return placements

    def _ordered_lab_subjects(self) -> list[SubjectRecord]:
        labs = [self.catalog.subjects[subject_id] for subject_id in self.catalog.lab_subject_ids]
        # Shuffle first so the stable sort leaves equal durations in random order.
        self.random.shuffle(labs)
        labs.sort(key=lambda subject: subject.duration)
        return labs

    def _candidates(self, subject: SubjectRecord) -> Iterator[LabCandidate]:
        duration = subject.duration
        for day_index, day in enumerate(self.state.days):
            if subject.id in self.state.subjects_by_day[day]:
                continue
            for start in range(1, self.state.periods_per_day - duration + 2):
                block = range(start, start + duration)
                if not all(self.state.is_free(day, period) for period in block):
                    continue
                faculty_ids = self.state.available_faculty(subject.id, day, block)
                if faculty_ids:
                    yield LabCandidate(day=day, day_index=day_index, start_period=start, faculty_ids=tuple(faculty_ids))

    def _rank(self, candidate: LabCandidate) -> tuple[bool, int, int]:
        return (candidate.start_period < self.threshold, candidate.start_period, candidate.day_index)

    def _place(self, subject: SubjectRecord) -> LabPlacement:
        if subject.duration > self.state.periods_per_day:
            raise InfeasibleLabPlacement(
                subject.id,
                subject.name,
                reason=f"Its {subject.duration}-period block exceeds {self.state.periods_per_day} periods per day.",
            )
        if not self.catalog.eligible_faculty(subject.id):
            raise InfeasibleLabPlacement(subject.id, subject.name, reason="No faculty member is assigned to it.")

        candidates = list(self._candidates(subject))
        if not candidates:
            committed = {
                faculty_id: len(self.state.commitments.busy_slots_for(faculty_id))
                for faculty_id in self.catalog.eligible_faculty(subject.id)
            }
            logger.warning(
                "No valid slot found for lab %s (%s periods); slots taken in other classes per faculty: %s",
                subject.name,
                subject.duration,
                committed,
            )
            raise InfeasibleLabPlacement(subject.id, subject.name)

        best = min(candidates, key=self._rank)
        if len(best.faculty_ids) > 1:
            faculty_id = self.random.choice(best.faculty_ids)
        else:
            faculty_id = best.faculty_ids[0]

        end_period = best.start_period + subject.duration - 1
        for period in range(best.start_period, end_period + 1):
            self.state.place(best.day, period, subject.id, faculty_id, is_lab=True)

        logger.info(
            "Assigned lab %s to %s on %s periods %s-%s",
            subject.name,
            self.catalog.faculty[faculty_id].name,
            best.day,
            best.start_period,
            end_period,
        )
        return LabPlacement(
            subject_id=subject.id,
            day=best.day,
            start_period=best.start_period,
            end_period=end_period,
            faculty_id=faculty_id,
        )
