from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PersistedSchedule:
    timetable_id: str
    schedule: Mapping
    class_id: str | None = None
    class_name: str | None = None


@dataclass(frozen=True)
class CommitmentSnapshot:
    """Every other persisted schedule observed at the start of one generation call.

    Generating classes one after another is only safe when each call takes a fresh
    snapshot after the previous class was persisted.
    """

    exclude_id: str | None
    schedules: tuple[PersistedSchedule, ...] = field(default_factory=tuple)

    @classmethod
    def capture(cls, schedules: Iterable[PersistedSchedule], *, exclude_id: str | None) -> "CommitmentSnapshot":
        kept = tuple(item for item in schedules if exclude_id is None or item.timetable_id != exclude_id)
        return cls(exclude_id=exclude_id, schedules=kept)

    @classmethod
    def empty(cls) -> "CommitmentSnapshot":
        return cls(exclude_id=None)


def _entry_periods(entry: Mapping, periods_per_day: int) -> list[int]:
    period = entry.get("period")
    if isinstance(period, bool) or not isinstance(period, int):
        raise ValueError(f"Invalid period {period!r}")
    span = 1
    if entry.get("is_lab"):
        # A lab entry carrying its block length stands for the whole block.
        duration = entry.get("duration")
        if isinstance(duration, int) and not isinstance(duration, bool) and duration > 1:
            span = duration
    return [p for p in range(period, period + span) if 1 <= p <= periods_per_day]


class FacultyCommitmentMatrix:
    def __init__(self, busy: Mapping[tuple[str, int], frozenset[str]] | None = None) -> None:
        self._busy: dict[tuple[str, int], frozenset[str]] = dict(busy or {})

    @classmethod
    def build(
        cls,
        snapshot: CommitmentSnapshot,
        *,
        working_days: Iterable[str],
        periods_per_day: int,
    ) -> "FacultyCommitmentMatrix":
        days = list(working_days)
        busy: dict[tuple[str, int], set[str]] = defaultdict(set)
        for persisted in snapshot.schedules:
            if snapshot.exclude_id is not None and persisted.timetable_id == snapshot.exclude_id:
                continue
            schedule = persisted.schedule if isinstance(persisted.schedule, Mapping) else {}
            for day in days:
                entries = schedule.get(day) or []
                if not isinstance(entries, list):
                    logger.debug("Timetable %s has a malformed %s; treating it as empty", persisted.timetable_id, day)
                    continue
                for entry in entries:
                    if not isinstance(entry, Mapping) or not entry.get("faculty_id"):
                        logger.debug("Skipping malformed entry in timetable %s on %s", persisted.timetable_id, day)
                        continue
                    try:
                        periods = _entry_periods(entry, periods_per_day)
                    except ValueError:
                        logger.debug("Skipping entry with bad period in timetable %s on %s", persisted.timetable_id, day)
                        continue
                    for period in periods:
                        busy[(day, period)].add(str(entry["faculty_id"]))
        return cls({key: frozenset(value) for key, value in busy.items()})

    def busy_at(self, day: str, period: int) -> frozenset[str]:
        return self._busy.get((day, period), frozenset())

    def is_busy(self, faculty_id: str, day: str, period: int) -> bool:
        return faculty_id in self.busy_at(day, period)

    def busy_slots_for(self, faculty_id: str) -> list[tuple[str, int]]:
        return sorted(slot for slot, faculty_ids in self._busy.items() if faculty_id in faculty_ids)

    def __len__(self) -> int:
        return sum(len(value) for value in self._busy.values())
