from __future__ import annotations

from dataclasses import dataclass
import logging
import random

from timetabler.core.exceptions import IncompleteCoverage
from timetabler.services.planning import PlanningState

logger = logging.getLogger(__name__)

MIN_WEEKLY_PERIODS = 3


@dataclass(frozen=True)
class RelaxedSlot:
    day: str
    period: int
    subject_id: str


class TheoryDistributionPlanner:
    """Fills every slot left free by the lab planner with single-period theory subjects."""

    def __init__(self, state: PlanningState, *, rng: random.Random) -> None:
        self.state = state
        self.catalog = state.catalog
        self.guidelines = state.parameters.guidelines
        self.random = rng
        self.theory_ids = self.catalog.theory_subject_ids
        self.remaining: dict[str, int] = {}
        self.relaxed: list[RelaxedSlot] = []

    def weekly_targets(self) -> dict[str, int]:
        if not self.theory_ids:
            return {}
        total_theory_slots = self.state.total_slots - self.state.occupied_count()
        target = max(MIN_WEEKLY_PERIODS, total_theory_slots // len(self.theory_ids))
        return {subject_id: target for subject_id in self.theory_ids}

    def plan(self) -> list[RelaxedSlot]:
        self.remaining = self.weekly_targets()
        if self.theory_ids:
            self._apply_pinned_slot()
            days = list(self.state.days)
            self.random.shuffle(days)
            for day in days:
                for period in self.state.periods:
                    if self.state.is_free(day, period):
                        self._fill(day, period)

        missing = self.state.missing_slots()
        if missing:
            logger.warning("Theory distribution left %s slot(s) empty", len(missing))
            raise IncompleteCoverage(missing)
        return self.relaxed

    def _apply_pinned_slot(self) -> None:
        day = self.guidelines.pinned_day
        if day is None or day not in self.state.days:
            return
        keyword = self.guidelines.pinned_subject_keyword.strip().lower()
        subject_id = next(
            (item for item in self.theory_ids if keyword in self.catalog.subjects[item].name.lower()),
            None,
        )
        if subject_id is None:
            return
        last_period = self.state.periods_per_day
        if not self.state.is_free(day, last_period):
            return
        faculty_id = self._choose_faculty(subject_id, day, last_period)
        if faculty_id is None:
            logger.info("No faculty free to take %s in the last period on %s", self.catalog.subject_label(subject_id), day)
            return
        self._assign(day, last_period, subject_id, faculty_id)
        logger.info("Pinned %s to %s period %s", self.catalog.subject_label(subject_id), day, last_period)

    def _fill(self, day: str, period: int) -> None:
        previous = self.state.subject_at(day, period - 1) if period > 1 else None
        # Only labs and the pinned slot can already sit after the current period.
        following = self.state.subject_at(day, period + 1) if period < self.state.periods_per_day else None
        neighbours = {previous, following}
        used_today = self.state.subjects_by_day[day]
        block_repeats = self.guidelines.no_same_class_subject_repeat_day

        def fresh(subject_id: str) -> bool:
            return subject_id not in neighbours and (not block_repeats or subject_id not in used_today)

        preferred = [item for item in self.theory_ids if self.remaining[item] > 0 and fresh(item)]
        preferred.sort(key=lambda item: -self.remaining[item])
        if self._try_assign(day, period, preferred):
            return

        relaxed = [item for item in self.theory_ids if fresh(item)]
        relaxed.sort(key=lambda item: self.state.weekly_counts[item])
        if self._try_assign(day, period, relaxed):
            return

        if not self.guidelines.allow_same_day_repeat_fallback:
            return
        used_before = set(used_today)
        last_resort = sorted(
            self.theory_ids,
            key=lambda item: (item in neighbours, self.state.weekly_counts[item]),
        )
        subject_id = self._try_assign(day, period, last_resort)
        if subject_id is not None and subject_id in used_before:
            logger.warning(
                "Repeated %s on %s period %s to avoid leaving the slot empty",
                self.catalog.subject_label(subject_id),
                day,
                period,
            )
            self.relaxed.append(RelaxedSlot(day=day, period=period, subject_id=subject_id))

    def _try_assign(self, day: str, period: int, ranked: list[str]) -> str | None:
        for subject_id in ranked:
            faculty_id = self._choose_faculty(subject_id, day, period)
            if faculty_id is not None:
                self._assign(day, period, subject_id, faculty_id)
                return subject_id
        return None

    def _assign(self, day: str, period: int, subject_id: str, faculty_id: str) -> None:
        self.state.place(day, period, subject_id, faculty_id, is_lab=False)
        self.remaining[subject_id] = max(0, self.remaining.get(subject_id, 0) - 1)

    def _choose_faculty(self, subject_id: str, day: str, period: int) -> str | None:
        candidates = self.state.available_faculty(subject_id, day, [period])
        if not candidates:
            return None
        if self.guidelines.minimize_consecutive_faculty_periods and period > 1:
            # Busy in the previous period, here or in another class, sorts last.
            candidates.sort(key=lambda item: not self.state.is_available(item, day, period - 1))
        return candidates[0]
