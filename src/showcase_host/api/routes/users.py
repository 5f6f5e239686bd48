"""Routes for a user's own projects and their analytics."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from showcase_host.api.dependencies import get_current_username, get_project_repository
from showcase_host.api.routes.projects import project_to_summary
from showcase_host.api.schemas.projects import ProjectAnalytics, UserProjectsResponse
from showcase_host.services.project_repository import ProjectNotFoundError, ProjectRepository

router = APIRouter(prefix="/users", tags=["users"])

Repository = Annotated[ProjectRepository, Depends(get_project_repository)]


def _require_self(username: str, current_username: str) -> None:
    if username != current_username:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied.",
        )


@router.get(
    "/{username}/projects",
    response_model=UserProjectsResponse,
    summary="List a user's projects",
    responses={403: {"description": "Access denied"}},
)
def list_user_projects(
    username: str,
    repository: Repository,
    current_username: Annotated[str, Depends(get_current_username)],
) -> UserProjectsResponse:
    _require_self(username, current_username)
    user_id = repository.find_user_id(username)
    projects = repository.list_for_user(user_id) if user_id is not None else []
    return UserProjectsResponse(
        projects=[project_to_summary(project) for project in projects],
        total_count=len(projects),
    )


@router.get(
    "/{username}/projects/{project_id}/analytics",
    response_model=ProjectAnalytics,
    summary="Get analytics for one of a user's projects",
    responses={403: {"description": "Access denied"}, 404: {"description": "Project not found"}},
)
def get_project_analytics(
    username: str,
    project_id: int,
    repository: Repository,
    current_username: Annotated[str, Depends(get_current_username)],
) -> ProjectAnalytics:
    _require_self(username, current_username)
    try:
        project = repository.get(project_id)
    except ProjectNotFoundError:
        project = None
    if project is None or project.user is None or project.user.username != username:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found.",
        )
    return ProjectAnalytics(**repository.analytics(project_id))
