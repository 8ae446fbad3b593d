from fastapi import APIRouter, Depends

from timetabler.api.deps import get_store
from timetabler.schemas.generator import FacultyScheduleResponse
from timetabler.schemas.timetable import TimetableOut
from timetabler.services.generation import faculty_weekly_schedule, reset_timetable
from timetabler.services.schedule_store import SqlScheduleStore

router = APIRouter()


@router.get("/faculty/{faculty_id}", response_model=FacultyScheduleResponse)
def get_faculty_timetable(faculty_id: str, store: SqlScheduleStore = Depends(get_store)) -> FacultyScheduleResponse:
    return faculty_weekly_schedule(store, faculty_id)


@router.get("/{timetable_id}", response_model=TimetableOut)
def get_timetable(timetable_id: str, store: SqlScheduleStore = Depends(get_store)) -> TimetableOut:
    return store.get_timetable(timetable_id)


@router.put("/{timetable_id}/reset", response_model=TimetableOut)
def reset_timetable_schedule(timetable_id: str, store: SqlScheduleStore = Depends(get_store)) -> TimetableOut:
    return reset_timetable(store, timetable_id)
