"""taskflow - Task management with an audited document approval workflow."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.core.config import settings
from src.core.db_client import DatabaseError, close_connection, init_db
from src.core.errors import AppError, classify_error_with_response
from src.core.logging import configure_logfire, instrument_fastapi
from src.interface.auth_router import router as auth_router
from src.interface.document_router import router as document_router
from src.interface.presenters import envelope
from src.interface.task_router import router as task_router


logger = logging.getLogger(__name__)

API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Startup
    configure_logfire()

    settings.require_credential("secret_key", "Bearer token signing")
    if settings.is_production and settings.secret_key == "change-me":
        raise ValueError("SECRET_KEY must be changed from its default in production")

    await init_db()
    logger.info("Database initialized", extra={"db_path": settings.sqlite_db_path})
    yield
    # Shutdown
    await close_connection()


app = FastAPI(
    title="taskflow",
    description="Task management with an audited document approval workflow",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(auth_router, prefix=API_PREFIX)
app.include_router(task_router, prefix=API_PREFIX)
app.include_router(document_router, prefix=API_PREFIX)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(content=envelope(success=False, message=message), status_code=status_code)


def format_validation_errors(exc: RequestValidationError) -> str:
    """Join every field error into one message.

    Messages raised by our own validators are used as-is; pydantic's built-in
    messages are prefixed with the offending field.
    """
    messages = []
    for error in exc.errors():
        message = str(error.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            messages.append(message.removeprefix("Value error, "))
            continue
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "path", "query")]
        messages.append(f"{'.'.join(location)}: {message}" if location else message)
    return ", ".join(messages)


@app.exception_handler(AppError)
async def app_error_handler(_request: Request, exc: AppError) -> JSONResponse:
    return _error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(400, format_validation_errors(exc))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        return _error_response(404, f"Route {request.url.path} not found")
    return _error_response(exc.status_code, str(exc.detail))


async def _internal_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error",
        extra={"path": request.url.path, "method": request.method, "error": str(exc)},
        exc_info=exc,
    )
    response = classify_error_with_response(exc, expose_internal=not settings.is_production)
    return _error_response(response.status_code, response.message)


@app.exception_handler(DatabaseError)
async def database_error_handler(request: Request, exc: DatabaseError) -> JSONResponse:
    return await _internal_error(request, exc)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return await _internal_error(request, exc)


def _status_payload() -> dict[str, object]:
    return envelope(
        message="taskflow API is running",
        timestamp=datetime.now(UTC).isoformat().replace("+00:00", "Z"),
    )


@app.get("/")
async def root() -> dict[str, object]:
    return _status_payload()


@app.get(f"{API_PREFIX}/health")
async def health_check() -> dict[str, object]:
    """Health check endpoint."""
    return _status_payload()


def run() -> None:
    """Serve the API with uvicorn."""
    uvicorn.run("src.main:app", host=settings.host, port=settings.port, reload=settings.reload)


if __name__ == "__main__":
    run()
