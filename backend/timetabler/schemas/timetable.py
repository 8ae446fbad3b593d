from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from timetabler.core.config import INSTITUTION_DAYS

DAY_VALUES = set(INSTITUTION_DAYS)

DAY_ALIASES = {
    "mon": "monday",
    "tue": "tuesday",
    "wed": "wednesday",
    "thu": "thursday",
    "fri": "friday",
    "sat": "saturday",
}

MAX_PERIODS_PER_DAY = 12


def normalize_day(value: str) -> str:
    day = value.strip().lower()
    return DAY_ALIASES.get(day, day)


class Guidelines(BaseModel):
    labs_consecutive: bool = True
    labs_once_a_week: bool = True
    sports_last_period_predefined_day: str | None = "friday"
    pinned_subject_keyword: str | None = "sport"
    no_parallel_classes_same_faculty: bool = True
    minimize_consecutive_faculty_periods: bool = True
    no_same_class_subject_repeat_day: bool = True
    allow_same_day_repeat_fallback: bool = True
    custom_constraints: list[str] = Field(default_factory=list)

    model_config = {"extra": "ignore"}

    @field_validator("sports_last_period_predefined_day")
    @classmethod
    def validate_pinned_day(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        day = normalize_day(value)
        if day not in DAY_VALUES:
            raise ValueError(f"Invalid day value: {value}")
        return day

    @property
    def pinned_day(self) -> str | None:
        if not self.sports_last_period_predefined_day:
            return None
        keyword = (self.pinned_subject_keyword or "").strip()
        return self.sports_last_period_predefined_day if keyword else None


class ScheduleParameters(BaseModel):
    periods_per_day: int = Field(ge=1, le=MAX_PERIODS_PER_DAY)
    working_days: list[str] = Field(default_factory=lambda: list(INSTITUTION_DAYS), min_length=1)
    guidelines: Guidelines = Field(default_factory=Guidelines)

    @field_validator("working_days")
    @classmethod
    def validate_working_days(cls, value: list[str]) -> list[str]:
        days = {normalize_day(item) for item in value if item.strip()}
        invalid = sorted(day for day in days if day not in DAY_VALUES)
        if invalid:
            raise ValueError(f"Invalid day specified in working_days: {', '.join(invalid)}")
        if not days:
            raise ValueError("At least one working day is required")
        # Institution order, not caller order.
        return [day for day in INSTITUTION_DAYS if day in days]


class TimetableEntryPayload(BaseModel):
    period: int = Field(ge=1, le=MAX_PERIODS_PER_DAY)
    subject_id: str = Field(min_length=1, max_length=36)
    faculty_id: str = Field(min_length=1, max_length=36)
    is_lab: bool = False


class TimetableOut(BaseModel):
    id: str
    class_id: str
    academic_year: str
    periods_per_day: int
    working_days: list[str]
    guidelines: dict = Field(default_factory=dict)
    schedule: dict[str, list[TimetableEntryPayload]] = Field(default_factory=dict)
    last_generated: datetime | None = None

    model_config = {"from_attributes": True}
