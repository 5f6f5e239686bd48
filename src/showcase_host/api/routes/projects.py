"""Project routes for the API."""

from __future__ import annotations

import logging
from pathlib import Path
from tempfile import TemporaryDirectory
from typing import Annotated, Literal

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    Response,
    UploadFile,
    status,
)
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse

from showcase_host.api.dependencies import (
    get_current_username,
    get_ingestion_service,
    get_optional_username,
    get_project_repository,
    get_static_host,
    get_visitor_id,
)
from showcase_host.api.schemas.common import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    ErrorDetail,
    PaginationMeta,
)
from showcase_host.api.schemas.projects import (
    LikeResponse,
    ProjectListResponse,
    ProjectSummary,
    ProjectUpdateRequest,
    ViewResponse,
)
from showcase_host.data.models import Project
from showcase_host.models.ingest import IngestionError, UploadMetadata
from showcase_host.services.ingestion import ProjectIngestionService
from showcase_host.services.project_repository import ProjectNotFoundError, ProjectRepository
from showcase_host.services.project_thumbnail import (
    clear_project_thumbnail,
    delete_thumbnail_files,
    get_project_thumbnail_path,
    get_thumbnail_media_type,
    set_project_thumbnail,
)
from showcase_host.services.static_host import StaticHost
from showcase_host.services.upload_storage import get_max_upload_bytes

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])

Repository = Annotated[ProjectRepository, Depends(get_project_repository)]
VisitorId = Annotated[str, Depends(get_visitor_id)]

_UPLOAD_CHUNK_SIZE = 64 * 1024

_STATUS_BY_ERROR_KIND = {
    "extraction": status.HTTP_400_BAD_REQUEST,
    "unsafe_archive": status.HTTP_400_BAD_REQUEST,
    "no_entry_point": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "analysis": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "persistence": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def project_to_summary(project: Project, *, is_liked: bool = False) -> ProjectSummary:
    return ProjectSummary(
        id=project.id,
        project_key=project.project_key,
        title=project.title,
        description=project.description,
        category=project.category,
        user_id=project.user_id,
        username=project.user.username if project.user is not None else "Anonymous",
        entry_path=project.entry_path,
        project_url=project.project_url,
        preview_url=project.preview_url,
        thumbnail_url=project.thumbnail_url,
        file_count=project.file_count,
        views=project.views,
        likes=project.likes,
        featured=project.featured,
        trending=project.trending,
        is_liked=is_liked,
        created_at=project.created_at,
        updated_at=project.updated_at,
    )


def _summaries(
    repository: ProjectRepository, projects: list[Project], visitor_id: str
) -> list[ProjectSummary]:
    liked = repository.liked_project_ids([project.id for project in projects], visitor_id)
    return [project_to_summary(project, is_liked=project.id in liked) for project in projects]


def _get_project_or_404(repository: ProjectRepository, project_id: int) -> Project:
    try:
        return repository.get(project_id)
    except ProjectNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found.",
        ) from exc


def _get_owned_project(repository: ProjectRepository, project_id: int, username: str) -> Project:
    project = _get_project_or_404(repository, project_id)
    if project.user is None or project.user.username != username:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the project owner can change this project.",
        )
    return project


def _ingestion_http_error(exc: IngestionError) -> HTTPException:
    return HTTPException(
        status_code=_STATUS_BY_ERROR_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=ErrorDetail(
            kind=exc.kind,
            message=exc.message,
            state=exc.state.value if exc.state is not None else None,
        ).model_dump(),
    )


@router.get(
    "",
    response_model=ProjectListResponse,
    summary="List projects",
    description="Return a page of projects with optional category, search and popularity filters.",
)
def list_projects(
    repository: Repository,
    visitor_id: VisitorId,
    category: str | None = None,
    search: str | None = None,
    popular: Literal["trending", "popular", "featured"] | None = None,
    sort: Literal["popular", "recent", "views", "trending"] = "popular",
    limit: Annotated[int, Query(ge=1, le=MAX_LIMIT)] = DEFAULT_LIMIT,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> ProjectListResponse:
    projects, total = repository.list_projects(
        category=category,
        search=search,
        popularity=popular,
        sort=sort,
        limit=limit,
        offset=offset,
    )
    return ProjectListResponse(
        items=_summaries(repository, projects, visitor_id),
        pagination=PaginationMeta(
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + len(projects) < total,
        ),
        category_counts=repository.category_counts(),
    )


@router.get(
    "/featured",
    response_model=list[ProjectSummary],
    summary="List featured projects",
)
def list_featured_projects(
    repository: Repository,
    visitor_id: VisitorId,
    limit: Annotated[int, Query(ge=1, le=MAX_LIMIT)] = 10,
) -> list[ProjectSummary]:
    return _summaries(repository, repository.featured(limit), visitor_id)


@router.get(
    "/trending",
    response_model=list[ProjectSummary],
    summary="List trending projects",
)
def list_trending_projects(
    repository: Repository,
    visitor_id: VisitorId,
    limit: Annotated[int, Query(ge=1, le=MAX_LIMIT)] = 10,
) -> list[ProjectSummary]:
    return _summaries(repository, repository.trending(limit), visitor_id)


@router.get(
    "/categories",
    response_model=dict[str, int],
    summary="Count projects per category",
)
def list_categories(repository: Repository) -> dict[str, int]:
    return repository.category_counts()


@router.post(
    "",
    response_model=ProjectSummary,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a project archive",
    description="Upload a ZIP file containing a static site and publish it.",
    responses={
        400: {"description": "Invalid or unsafe ZIP file"},
        413: {"description": "Upload too large"},
        422: {"description": "Archive has no HTML entry point"},
        500: {"description": "Upload could not be processed or persisted"},
    },
)
async def upload_project(
    file: Annotated[UploadFile, File(description="ZIP archive containing the site")],
    title: Annotated[str, Form(max_length=200)],
    category: Annotated[str, Form(max_length=64)],
    service: Annotated[ProjectIngestionService, Depends(get_ingestion_service)],
    repository: Repository,
    username: Annotated[str | None, Depends(get_optional_username)],
    description: Annotated[str, Form(max_length=5000)] = "",
) -> ProjectSummary:
    title, description, category = title.strip(), description.strip(), category.strip()
    if not title or not category:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Title and category are required.",
        )

    filename = Path(file.filename or "upload.zip").name
    if not filename.lower().endswith(".zip"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Expected a .zip file. Received: {filename}",
        )

    max_bytes = get_max_upload_bytes()
    with TemporaryDirectory() as temp_dir:
        temp_path = Path(temp_dir) / filename
        received = 0
        with temp_path.open("wb") as f:
            while True:
                chunk = await file.read(_UPLOAD_CHUNK_SIZE)
                if not chunk:
                    break
                received += len(chunk)
                if received > max_bytes:
                    raise HTTPException(
                        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        detail=f"Upload exceeds the {max_bytes} byte limit.",
                    )
                f.write(chunk)

        user_id = repository.upsert_user(username) if username else None
        metadata = UploadMetadata(
            title=title,
            description=description,
            category=category,
            username=username or "Anonymous",
            user_id=user_id,
            archive_filename=filename,
        )
        try:
            project = await run_in_threadpool(service.ingest, temp_path, metadata)
        except IngestionError as exc:
            raise _ingestion_http_error(exc) from exc

    return project_to_summary(project)


@router.get(
    "/{project_id}",
    response_model=ProjectSummary,
    summary="Get a project",
    responses={404: {"description": "Project not found"}},
)
def get_project(project_id: int, repository: Repository, visitor_id: VisitorId) -> ProjectSummary:
    project = _get_project_or_404(repository, project_id)
    return project_to_summary(project, is_liked=repository.is_liked(project_id, visitor_id))


@router.post(
    "/{project_id}/view",
    response_model=ViewResponse,
    summary="Record a project view",
    description="Count a view; each visitor is counted once per project.",
    responses={404: {"description": "Project not found"}},
)
def record_view(project_id: int, repository: Repository, visitor_id: VisitorId) -> ViewResponse:
    try:
        counted = repository.increment_view(project_id, visitor_id)
        views = repository.get(project_id).views
    except ProjectNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found.",
        ) from exc
    return ViewResponse(counted=counted, views=views)


@router.post(
    "/{project_id}/like",
    response_model=LikeResponse,
    summary="Toggle a like",
    description="Like the project, or remove the like if this visitor already liked it.",
    responses={404: {"description": "Project not found"}},
)
def toggle_like(project_id: int, repository: Repository, visitor_id: VisitorId) -> LikeResponse:
    try:
        liked = repository.toggle_like(project_id, visitor_id)
        likes = repository.get(project_id).likes
    except ProjectNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found.",
        ) from exc
    return LikeResponse(liked=liked, likes=likes)


@router.patch(
    "/{project_id}",
    response_model=ProjectSummary,
    summary="Update a project",
    description="Update editable fields on a project owned by the caller.",
    responses={403: {"description": "Not the owner"}, 404: {"description": "Project not found"}},
)
def update_project(
    project_id: int,
    update: ProjectUpdateRequest,
    repository: Repository,
    username: Annotated[str, Depends(get_current_username)],
) -> ProjectSummary:
    _get_owned_project(repository, project_id, username)
    changes = update.model_dump(exclude_unset=True, exclude_none=True)
    project = repository.update(project_id, **changes)
    return project_to_summary(project)


@router.delete(
    "/{project_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a project",
    description="Delete a project, its files, thumbnail, views and likes.",
    responses={403: {"description": "Not the owner"}, 404: {"description": "Project not found"}},
)
def delete_project(
    project_id: int,
    repository: Repository,
    host: Annotated[StaticHost, Depends(get_static_host)],
    username: Annotated[str, Depends(get_current_username)],
) -> Response:
    _get_owned_project(repository, project_id, username)
    project_key = repository.delete(project_id)
    host.unpublish(project_key)
    delete_thumbnail_files(project_id)
    logger.info("Deleted project %d (%s)", project_id, project_key)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put(
    "/{project_id}/thumbnail",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Upload a project thumbnail",
    responses={
        400: {"description": "Invalid thumbnail upload"},
        403: {"description": "Not the owner"},
        404: {"description": "Project not found"},
    },
)
async def upload_project_thumbnail(
    project_id: int,
    file: Annotated[UploadFile, File(description="Thumbnail image file")],
    repository: Repository,
    username: Annotated[str, Depends(get_current_username)],
) -> Response:
    _get_owned_project(repository, project_id, username)

    data = await file.read()
    saved, error = set_project_thumbnail(project_id, content_type=file.content_type, data=data)
    if not saved:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=error or "Invalid thumbnail upload.",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{project_id}/thumbnail",
    summary="Get a project thumbnail",
    responses={
        200: {"description": "Thumbnail image"},
        404: {"description": "Project or thumbnail not found"},
    },
)
def get_project_thumbnail(project_id: int, repository: Repository) -> Response:
    _get_project_or_404(repository, project_id)

    path = get_project_thumbnail_path(project_id)
    if path is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Thumbnail not found.",
        )
    media_type = get_thumbnail_media_type(path) or "application/octet-stream"
    return FileResponse(path, media_type=media_type)


@router.delete(
    "/{project_id}/thumbnail",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a project thumbnail",
    responses={403: {"description": "Not the owner"}, 404: {"description": "Project not found"}},
)
def delete_project_thumbnail(
    project_id: int,
    repository: Repository,
    username: Annotated[str, Depends(get_current_username)],
) -> Response:
    _get_owned_project(repository, project_id, username)
    clear_project_thumbnail(project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
