from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from repro_tracker.core.errors import ServiceError, code_for_status, error_envelope
from repro_tracker.core.logging import configure_logging
from repro_tracker.models import audit_log, department, file, time_entry, user, work_session  # noqa: F401
from repro_tracker.routers.assignments import router as assignments_router
from repro_tracker.routers.auth import router as auth_router
from repro_tracker.routers.files import router as files_router
from repro_tracker.routers.time_entries import router as time_entries_router
from repro_tracker.routers.work_sessions import router as work_sessions_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    yield


app = FastAPI(
    title="Repro Dosya Takip Sistemi",
    lifespan=lifespan,
)


@app.exception_handler(ServiceError)
async def handle_service_error(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error(
            "Service error",
            exc_info=exc,
            extra={"path": request.url.path, "code": exc.code},
        )
    return JSONResponse(status_code=exc.status_code, content=error_envelope(exc.code, exc.message))


@app.exception_handler(StarletteHTTPException)
async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(code_for_status(exc.status_code), str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(p) for p in first.get("loc", ()))
    message = f"{location}: {first.get('msg', 'Invalid data')}" if location else "Invalid data"
    return JSONResponse(status_code=422, content=error_envelope("VALIDATION_ERROR", message))


@app.middleware("http")
async def catch_unhandled_exceptions(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception:
        logger.exception("Unhandled exception", extra={"path": request.url.path})
        return JSONResponse(
            status_code=500,
            content=error_envelope("INTERNAL_ERROR", "Internal Server Error"),
        )


app.include_router(auth_router)
app.include_router(time_entries_router)
app.include_router(work_sessions_router)
app.include_router(assignments_router)
app.include_router(files_router)


@app.get("/")
def root():
    return {"status": "Repro Dosya Takip Sistemi running"}


@app.get("/health")
def health():
    return {
        "status": "ok",
        "version": "1.0.0",
    }
