import logging

from fastapi import APIRouter, Depends

from timetabler.api.deps import get_candidate_source, get_store
from timetabler.schemas.generator import (
    GenerateTimetableRequest,
    GenerateTimetableResponse,
    RegenerateAllRequest,
    RegenerateAllResponse,
)
from timetabler.services.external_generator import CandidateSource
from timetabler.services.generation import generate_timetable, regenerate_all
from timetabler.services.schedule_store import SqlScheduleStore

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/timetables/regenerate-all", response_model=RegenerateAllResponse)
def regenerate_all_timetables(
    payload: RegenerateAllRequest,
    store: SqlScheduleStore = Depends(get_store),
    candidate_source: CandidateSource | None = Depends(get_candidate_source),
) -> RegenerateAllResponse:
    results = regenerate_all(
        store,
        payload.jobs,
        candidate_source=candidate_source,
        use_external=payload.use_external,
        seed=payload.random_seed,
    )
    return RegenerateAllResponse(results=results)


@router.post("/timetables/{timetable_id}/generate", response_model=GenerateTimetableResponse)
def generate_timetable_schedule(
    timetable_id: str,
    payload: GenerateTimetableRequest,
    store: SqlScheduleStore = Depends(get_store),
    candidate_source: CandidateSource | None = Depends(get_candidate_source),
) -> GenerateTimetableResponse:
    logger.info(
        "Generate request for timetable %s with %s assignment(s)",
        timetable_id,
        len(payload.faculty_subject_assignments),
    )
    return generate_timetable(
        store,
        timetable_id,
        payload.faculty_subject_assignments,
        candidate_source=candidate_source,
        use_external=payload.use_external,
        seed=payload.random_seed,
    )
