from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lessonforge.api.routes import (
    availability,
    booths,
    class_series,
    class_sessions,
    compatibility,
    health,
    people,
    subjects,
    vacations,
)
from lessonforge.core.config import get_settings
from lessonforge.core.exceptions import AppError
from lessonforge.core.logging_config import configure_logging
from lessonforge.core.middleware import RequestLoggingMiddleware, RequestSizeLimitMiddleware
from lessonforge.db.bootstrap import ensure_runtime_schema_compatibility

settings = get_settings()
configure_logging(settings)


@asynccontextmanager
async def lifespan(_: FastAPI):
    ensure_runtime_schema_compatibility()
    yield


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "details": exc.details},
    )


app = FastAPI(title=settings.project_name, lifespan=lifespan)
app.add_exception_handler(AppError, app_error_handler)

app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_size_bytes)
app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
app.include_router(people.router, prefix=settings.api_prefix, tags=["people"])
app.include_router(subjects.router, prefix=settings.api_prefix, tags=["subjects"])
app.include_router(booths.router, prefix=f"{settings.api_prefix}/booths", tags=["booths"])
app.include_router(vacations.router, prefix=f"{settings.api_prefix}/vacations", tags=["vacations"])
app.include_router(availability.router, prefix=f"{settings.api_prefix}/availability", tags=["availability"])
app.include_router(compatibility.router, prefix=f"{settings.api_prefix}/compatibility", tags=["compatibility"])
app.include_router(class_series.router, prefix=f"{settings.api_prefix}/class-series", tags=["class-series"])
app.include_router(class_sessions.router, prefix=f"{settings.api_prefix}/class-sessions", tags=["class-sessions"])
