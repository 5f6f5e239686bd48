"""Shared dependencies for API routes."""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, Response, status

from showcase_host.services.ingestion import ProjectIngestionService
from showcase_host.services.project_repository import ProjectRepository
from showcase_host.services.static_host import StaticHost

VISITOR_COOKIE = "visitor_id"
_VISITOR_COOKIE_MAX_AGE = 365 * 24 * 60 * 60
_MAX_VISITOR_ID_LENGTH = 64


def get_optional_username(
    x_username: Annotated[
        str | None,
        Header(
            description=(
                "Username resolved by the identity provider in front of this service. "
                "Omit for anonymous access."
            )
        ),
    ] = None,
) -> str | None:
    """Get the current username if provided, or None for anonymous access."""
    if x_username is None:
        return None
    return x_username.strip() or None


def get_current_username(
    username: Annotated[str | None, Depends(get_optional_username)],
) -> str:
    """Get the current username, rejecting anonymous callers.

    Raises:
        HTTPException: If authentication is missing (401).
    """
    if not username:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication. Please provide X-Username header.",
        )
    return username


def get_visitor_id(
    request: Request,
    response: Response,
    username: Annotated[str | None, Depends(get_optional_username)],
) -> str:
    """Identify the visitor for view and like de-duplication.

    Signed-in users are identified by username; anonymous visitors get a random
    id stored in a long-lived cookie.
    """
    if username:
        return f"user:{username}"

    visitor_id = request.cookies.get(VISITOR_COOKIE, "")
    if not visitor_id or len(visitor_id) > _MAX_VISITOR_ID_LENGTH:
        visitor_id = uuid.uuid4().hex
        response.set_cookie(
            VISITOR_COOKIE,
            visitor_id,
            max_age=_VISITOR_COOKIE_MAX_AGE,
            httponly=True,
            samesite="lax",
        )
    return f"visitor:{visitor_id}"


def get_project_repository() -> ProjectRepository:
    return ProjectRepository()


def get_static_host() -> StaticHost:
    return StaticHost()


def get_ingestion_service(
    repository: Annotated[ProjectRepository, Depends(get_project_repository)],
    host: Annotated[StaticHost, Depends(get_static_host)],
) -> ProjectIngestionService:
    return ProjectIngestionService(host=host, repository=repository)
