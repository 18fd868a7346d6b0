"""Logfire setup for taskflow.

Modules log through ``logging.getLogger(__name__)`` and pass structured
fields in ``extra``; Logfire picks those records up once configured. Service
operations run inside ``span("<module>.<operation>")``.
"""

import logging

import logfire
from fastapi import FastAPI

from src.core.config import settings


logger = logging.getLogger(__name__)


def configure_logfire() -> None:
    """Configure Logfire; records stay local unless LOGFIRE_TOKEN is set."""
    logfire.configure(
        token=settings.logfire_token,
        service_name="taskflow",
        service_version="0.1.0",
        environment=settings.environment,
        send_to_logfire="if-token-present",
    )
    logger.info("Logfire configured", extra={"environment": settings.environment})


def instrument_fastapi(app: FastAPI) -> None:
    """Trace every request handled by ``app``."""
    logfire.instrument_fastapi(app)
    logger.info("FastAPI instrumentation configured")


def span(name: str) -> logfire.LogfireSpan:
    """Open a Logfire span around a service operation."""
    return logfire.span(name)


def log_with_user_context(
    target: logging.Logger,
    level: str,
    message: str,
    user_id: str | None = None,
    **extra: object,
) -> None:
    """Log ``message`` at ``level`` with the acting user and any other fields attached.

    Usage:
        log_with_user_context(logger, "warning", "Access denied", user_id="12", operation="delete_task")
    """
    context = {"user_id": user_id, **extra} if user_id else extra
    getattr(target, level.lower())(message, extra=context)
