from __future__ import annotations

from collections.abc import Iterable, Mapping
import logging

from timetabler.core.config import INSTITUTION_DAYS, get_settings
from timetabler.core.exceptions import AppError, ResourceNotFoundError
from timetabler.models.timetable import Timetable
from timetabler.schemas.generator import (
    AssignmentIn,
    FacultyInfo,
    FacultyScheduleEntry,
    FacultyScheduleResponse,
    GenerateTimetableResponse,
    RegenerationJob,
    SlotOut,
    ValidationWarningOut,
)
from timetabler.schemas.timetable import Guidelines, ScheduleParameters
from timetabler.services.catalog import Assignment, AssignmentCatalog
from timetabler.services.commitments import CommitmentSnapshot
from timetabler.services.external_generator import CandidateSource
from timetabler.services.planning import schedule_to_dict
from timetabler.services.schedule_store import ScheduleStore
from timetabler.services.timetable_engine import GenerationResult, TimetableEngine

logger = logging.getLogger(__name__)


def parameters_for(timetable: Timetable) -> ScheduleParameters:
    settings = get_settings()
    return ScheduleParameters(
        periods_per_day=timetable.periods_per_day or settings.default_periods_per_day,
        working_days=list(timetable.working_days or settings.default_working_days),
        guidelines=Guidelines.model_validate(timetable.guidelines or {}),
    )


def build_response(timetable: Timetable, result: GenerationResult) -> GenerateTimetableResponse:
    return GenerateTimetableResponse(
        timetable_id=timetable.id,
        source=result.source,
        schedule=schedule_to_dict(result.schedule),
        warnings=[
            ValidationWarningOut(day=item.day, period=item.period, subject_id=item.subject_id, message=item.message)
            for item in result.warnings
        ],
        relaxed_slots=[SlotOut(day=item.day, period=item.period) for item in result.relaxed_slots],
        last_generated=timetable.last_generated,
    )


def generate_timetable(
    store: ScheduleStore,
    timetable_id: str,
    assignments: Iterable[AssignmentIn | Assignment],
    *,
    candidate_source: CandidateSource | None = None,
    use_external: bool = True,
    seed: int | None = None,
    commit: bool = True,
) -> GenerateTimetableResponse:
    timetable = store.get_timetable(timetable_id)
    parameters = parameters_for(timetable)
    catalog = AssignmentCatalog.build(
        [Assignment(faculty_id=item.faculty_id, subject_id=item.subject_id) for item in assignments],
        resolve_faculty=store.resolve_faculty,
        resolve_subject=store.resolve_subject,
    )
    snapshot = CommitmentSnapshot.capture(store.load_other_schedules(timetable_id), exclude_id=timetable_id)

    engine = TimetableEngine(candidate_source=candidate_source)
    result = engine.generate(parameters, catalog, snapshot, seed=seed, use_external=use_external)

    store.persist_schedule(timetable_id, result.schedule, commit=commit)
    return build_response(timetable, result)


def regenerate_all(
    store: ScheduleStore,
    jobs: list[RegenerationJob],
    *,
    candidate_source: CandidateSource | None = None,
    use_external: bool = False,
    seed: int | None = None,
) -> list[GenerateTimetableResponse]:
    """Clear every listed timetable, then generate and persist them one at a time.

    Each class sees the schedules persisted before it, so a faculty slot handed to one
    class is never offered to the next. The batch commits once at the end; any failing
    job rolls every listed timetable back to its stored schedule.
    """
    for job in jobs:
        store.get_timetable(job.timetable_id)

    results: list[GenerateTimetableResponse] = []
    try:
        for job in jobs:
            store.clear_schedule(job.timetable_id, commit=False)
        for index, job in enumerate(jobs):
            job_seed = None if seed is None else seed + index
            logger.info("Regenerating timetable %s (%s of %s)", job.timetable_id, index + 1, len(jobs))
            results.append(
                generate_timetable(
                    store,
                    job.timetable_id,
                    job.faculty_subject_assignments,
                    candidate_source=candidate_source,
                    use_external=use_external,
                    seed=job_seed,
                    commit=False,
                )
            )
    except AppError as exc:
        logger.warning("Batch regeneration failed after %s of %s timetable(s): %s", len(results), len(jobs), exc.message)
        store.rollback()
        raise
    store.commit()
    return results


def reset_timetable(store: ScheduleStore, timetable_id: str) -> Timetable:
    store.clear_schedule(timetable_id)
    return store.get_timetable(timetable_id)


def faculty_weekly_schedule(store: ScheduleStore, faculty_id: str) -> FacultyScheduleResponse:
    faculty = store.resolve_faculty(faculty_id)
    if faculty is None:
        raise ResourceNotFoundError("Faculty", faculty_id)

    schedule: dict[str, list[FacultyScheduleEntry]] = {day: [] for day in INSTITUTION_DAYS}
    subject_cache: dict = {}
    checked = 0
    for persisted in store.load_other_schedules(None):
        source = persisted.schedule if isinstance(persisted.schedule, Mapping) else {}
        for day in INSTITUTION_DAYS:
            entries = source.get(day)
            if not isinstance(entries, list):
                continue
            for entry in entries:
                checked += 1
                if not isinstance(entry, Mapping) or str(entry.get("faculty_id")) != faculty_id:
                    continue
                period = entry.get("period")
                if isinstance(period, bool) or not isinstance(period, int):
                    continue
                subject_id = str(entry.get("subject_id"))
                if subject_id not in subject_cache:
                    subject_cache[subject_id] = store.resolve_subject(subject_id)
                subject = subject_cache[subject_id]
                schedule[day].append(
                    FacultyScheduleEntry(
                        period=period,
                        subject_id=subject_id,
                        subject_name=subject.name if subject else "Unknown Subject",
                        subject_code=subject.code if subject else "",
                        is_lab=subject.is_lab if subject else False,
                        class_id=persisted.class_id,
                        class_name=persisted.class_name or "Unknown Class",
                        timetable_id=persisted.timetable_id,
                    )
                )

    matched = sum(len(items) for items in schedule.values())
    logger.info("Checked %s entries, found %s for faculty %s", checked, matched, faculty_id)
    for items in schedule.values():
        items.sort(key=lambda item: item.period)
    return FacultyScheduleResponse(
        faculty=FacultyInfo(id=faculty.id, name=faculty.name, faculty_code=faculty.faculty_code),
        schedule=schedule,
    )
