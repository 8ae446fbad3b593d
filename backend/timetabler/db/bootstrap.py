from __future__ import annotations

import logging

from sqlalchemy import inspect

import timetabler.models  # noqa: F401
from timetabler.db.base import Base
from timetabler.db.session import engine

logger = logging.getLogger(__name__)

REQUIRED_TABLES = {"subjects", "faculty", "school_classes", "timetables"}


def ensure_runtime_schema() -> None:
    with engine.begin() as connection:
        existing = set(inspect(connection).get_table_names())
        missing = sorted(REQUIRED_TABLES - existing)
        if not missing:
            return
        logger.info("Creating missing tables: %s", ", ".join(missing))
        Base.metadata.create_all(bind=connection)
