from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from schoolday.api.routes import attendance, health, timetable, timetable_import
from schoolday.core.config import get_settings
from schoolday.core.exceptions import AppError
from schoolday.core.logging import setup_logging
from schoolday.core.middleware import RequestContextMiddleware, RequestSizeLimitMiddleware
from schoolday.db.bootstrap import ensure_runtime_schema_compatibility

settings = get_settings()


@asynccontextmanager
async def lifespan(_: FastAPI):
    ensure_runtime_schema_compatibility()
    yield


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "details": exc.details},
    )


def create_app() -> FastAPI:
    setup_logging(environment=settings.environment, level=settings.log_level)

    app = FastAPI(title=settings.project_name, lifespan=lifespan)
    app.add_exception_handler(AppError, app_error_handler)

    app.add_middleware(
        RequestSizeLimitMiddleware,
        max_bytes=settings.max_request_size_bytes,
        upload_max_bytes=settings.max_upload_size_bytes,
        upload_path_prefix=f"{settings.api_prefix}/timetable-bulk-upload",
    )
    app.add_middleware(RequestContextMiddleware, settings=settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
    app.include_router(timetable.router, prefix=f"{settings.api_prefix}/timetables", tags=["timetables"])
    app.include_router(
        timetable_import.router,
        prefix=f"{settings.api_prefix}/timetable-bulk-upload",
        tags=["timetable-bulk-upload"],
    )
    app.include_router(attendance.router, prefix=f"{settings.api_prefix}/attendance", tags=["attendance"])
    return app


app = create_app()
