import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from timetabler.core.config import INSTITUTION_DAYS
from timetabler.db.base import Base


def empty_schedule() -> dict[str, list[dict]]:
    return {day: [] for day in INSTITUTION_DAYS}


class Timetable(Base):
    __tablename__ = "timetables"
    __table_args__ = (UniqueConstraint("class_id", "academic_year", name="uq_timetables_class_year"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    class_id: Mapped[str] = mapped_column(String(36), ForeignKey("school_classes.id"), nullable=False, index=True)
    academic_year: Mapped[str] = mapped_column(String(20), nullable=False)
    periods_per_day: Mapped[int] = mapped_column(Integer, nullable=False, default=6)
    working_days: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=lambda: list(INSTITUTION_DAYS))
    guidelines: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    schedule: Mapped[dict[str, list[dict]]] = mapped_column(JSON, nullable=False, default=empty_schedule)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    last_generated: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
