from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from timetabler.schemas.timetable import TimetableEntryPayload


class AssignmentIn(BaseModel):
    faculty_id: str = Field(min_length=1, max_length=36)
    subject_id: str = Field(min_length=1, max_length=36)


class GenerateTimetableRequest(BaseModel):
    faculty_subject_assignments: list[AssignmentIn] = Field(min_length=1)
    use_external: bool = True
    random_seed: int | None = Field(default=None, ge=0, le=2_000_000_000)


class ValidationWarningOut(BaseModel):
    day: str | None = None
    period: int | None = None
    subject_id: str | None = None
    message: str


class SlotOut(BaseModel):
    day: str
    period: int


class GenerateTimetableResponse(BaseModel):
    timetable_id: str
    source: Literal["local", "external"]
    schedule: dict[str, list[TimetableEntryPayload]]
    warnings: list[ValidationWarningOut] = Field(default_factory=list)
    relaxed_slots: list[SlotOut] = Field(default_factory=list)
    last_generated: datetime | None = None


class RegenerationJob(BaseModel):
    timetable_id: str = Field(min_length=1, max_length=36)
    faculty_subject_assignments: list[AssignmentIn] = Field(min_length=1)


class RegenerateAllRequest(BaseModel):
    jobs: list[RegenerationJob] = Field(min_length=1)
    use_external: bool = False
    random_seed: int | None = Field(default=None, ge=0, le=2_000_000_000)

    @field_validator("jobs")
    @classmethod
    def reject_duplicate_jobs(cls, value: list[RegenerationJob]) -> list[RegenerationJob]:
        seen: set[str] = set()
        for job in value:
            if job.timetable_id in seen:
                raise ValueError(f"Timetable {job.timetable_id} listed more than once")
            seen.add(job.timetable_id)
        return value


class RegenerateAllResponse(BaseModel):
    results: list[GenerateTimetableResponse]


class FacultyScheduleEntry(BaseModel):
    period: int
    subject_id: str
    subject_name: str
    subject_code: str | None = None
    is_lab: bool = False
    class_id: str | None = None
    class_name: str
    timetable_id: str


class FacultyInfo(BaseModel):
    id: str
    name: str
    faculty_code: str | None = None


class FacultyScheduleResponse(BaseModel):
    faculty: FacultyInfo
    schedule: dict[str, list[FacultyScheduleEntry]]
