"""Liveness and database readiness check."""

from __future__ import annotations

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from showcase_host.data.db import get_session

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    responses={503: {"description": "Database unavailable"}},
)
def health_check() -> JSONResponse:
    """Report whether the API can reach its project database."""
    try:
        with get_session() as session:
            session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Health check could not reach the database")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": "unavailable"},
        )
    return JSONResponse(content={"status": "healthy", "database": "ok"})
