from __future__ import annotations

import logging

from sqlalchemy import inspect, text

import lessonforge.models  # noqa: F401
from lessonforge.db.base import Base
from lessonforge.db.session import engine

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "teachers": {"id", "name", "email", "status", "subject_preferences"},
    "students": {"id", "name", "status", "subject_preferences"},
    "user_availability": {"id", "owner_role", "owner_id", "kind", "day_of_week", "date", "full_day"},
    "class_series": {"id", "start_time", "end_time", "days_of_week", "check_availability", "last_generated_through"},
    "class_sessions": {"id", "series_id", "date", "start_time", "end_time", "status", "conflict_reasons", "is_cancelled"},
}


def _ensure_class_series_generated_through_column() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        if "class_series" not in set(inspector.get_table_names()):
            return
        column_names = {item["name"] for item in inspector.get_columns("class_series")}
        if "last_generated_through" in column_names:
            return
        connection.execute(text("ALTER TABLE class_series ADD COLUMN last_generated_through DATE"))


def _ensure_class_sessions_conflict_reasons_column() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        if "class_sessions" not in set(inspector.get_table_names()):
            return
        column_names = {item["name"] for item in inspector.get_columns("class_sessions")}
        if "conflict_reasons" in column_names:
            return

        if connection.dialect.name == "postgresql":
            connection.execute(
                text(
                    "ALTER TABLE class_sessions "
                    "ADD COLUMN conflict_reasons JSONB NOT NULL DEFAULT '[]'::jsonb"
                )
            )
            return

        connection.execute(
            text(
                "ALTER TABLE class_sessions "
                "ADD COLUMN conflict_reasons JSON NOT NULL DEFAULT '[]'"
            )
        )


def _assert_required_columns() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = [name for name in REQUIRED_COLUMNS if name not in table_names]
        if missing_tables:
            raise RuntimeError(f"Missing required tables: {', '.join(sorted(missing_tables))}")

        missing_columns: list[str] = []
        for table_name, required in REQUIRED_COLUMNS.items():
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            for column_name in sorted(required - existing):
                missing_columns.append(f"{table_name}.{column_name}")
        if missing_columns:
            raise RuntimeError(f"Missing required columns: {', '.join(missing_columns)}")


def ensure_runtime_schema_compatibility() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        _ensure_class_series_generated_through_column()
        _ensure_class_sessions_conflict_reasons_column()
        _assert_required_columns()
    except Exception as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Runtime schema compatibility bootstrap failed")
        raise RuntimeError("Runtime schema compatibility bootstrap failed") from exc
