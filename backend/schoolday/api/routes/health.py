from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import inspect, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from schoolday.db.bootstrap import missing_schema
from schoolday.db.session import engine

router = APIRouter()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _migration_revision(connection: Connection) -> str | None:
    if not inspect(connection).has_table("alembic_version"):
        return None
    return connection.execute(text("SELECT version_num FROM alembic_version")).scalar()


def _database_check() -> dict:
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
            revision = _migration_revision(connection)
        missing_tables, missing_columns = missing_schema()
    except SQLAlchemyError as exc:  # pragma: no cover - environment dependent
        return {
            "ok": False,
            "schema_ok": False,
            "revision": None,
            "missing_tables": [],
            "missing_columns": {},
            "error": str(exc),
        }

    return {
        "ok": True,
        "schema_ok": not missing_tables and not missing_columns,
        "revision": revision,
        "missing_tables": missing_tables,
        "missing_columns": missing_columns,
        "error": None,
    }


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/health/live")
def health_live() -> dict:
    return {"status": "ok", "timestamp": _now()}


@router.get("/health/ready")
def health_ready() -> JSONResponse:
    database = _database_check()
    ready = database["ok"] and database["schema_ok"]
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ok" if ready else "degraded", "timestamp": _now(), "database": database},
    )
