from __future__ import annotations

import logging

from sqlalchemy import inspect, text

import schoolday.models  # noqa: F401
from schoolday.core.config import get_settings
from schoolday.db.base import Base
from schoolday.db.session import engine

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "timetable_slots": {
        "id",
        "branch_id",
        "class_id",
        "academic_year_id",
        "day_of_week",
        "full_date",
        "start_time",
        "end_time",
        "room_number",
        "subject_id",
        "teacher_ids",
        "is_active",
        "source",
        "upload_id",
    },
    "attendance_records": {"id", "student_id", "timetable_slot_id", "date", "status", "teacher_id"},
    "timetable_bulk_uploads": {"id", "status", "validate_only", "errors"},
}

# Columns that arrived after the first release; older databases get them added in place.
LATE_COLUMNS: dict[str, dict[str, str]] = {
    "timetable_slots": {
        "source": "VARCHAR(20) NOT NULL DEFAULT 'manual'",
        "upload_id": "INTEGER",
    },
    "attendance_records": {
        "teacher_id": "VARCHAR(36)",
    },
}


def _ensure_late_columns() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        for table_name, columns in LATE_COLUMNS.items():
            if table_name not in table_names:
                continue
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            for column_name, ddl in columns.items():
                if column_name in existing:
                    continue
                logger.warning("SCHEMA PATCH | table=%s | column=%s", table_name, column_name)
                connection.execute(text(f"ALTER TABLE {table_name} ADD COLUMN {column_name} {ddl}"))


def missing_schema() -> tuple[list[str], dict[str, list[str]]]:
    missing_tables: list[str] = []
    missing_columns: dict[str, list[str]] = {}
    with engine.connect() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        for table_name, columns in REQUIRED_COLUMNS.items():
            if table_name not in table_names:
                missing_tables.append(table_name)
                continue
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            missing = sorted(columns - existing)
            if missing:
                missing_columns[table_name] = missing
    return missing_tables, missing_columns


def ensure_runtime_schema_compatibility() -> None:
    settings = get_settings()
    if settings.auto_create_schema:
        Base.metadata.create_all(bind=engine)
    _ensure_late_columns()
    missing_tables, missing_columns = missing_schema()
    if missing_tables or missing_columns:
        logger.warning(
            "SCHEMA INCOMPLETE | missing_tables=%s | missing_columns=%s | run `alembic upgrade head`",
            missing_tables,
            missing_columns,
        )
