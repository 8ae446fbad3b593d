from collections.abc import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from timetabler.core.config import Settings, get_settings
from timetabler.db.session import SessionLocal
from timetabler.services.external_generator import CandidateSource, OpenAIChatCandidateSource
from timetabler.services.schedule_store import SqlScheduleStore


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_store(db: Session = Depends(get_db)) -> SqlScheduleStore:
    return SqlScheduleStore(db)


def get_candidate_source(settings: Settings = Depends(get_settings)) -> CandidateSource | None:
    return OpenAIChatCandidateSource.from_settings(settings)
