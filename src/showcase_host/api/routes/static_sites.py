"""Serve the files of published projects."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse, RedirectResponse

from showcase_host.api.dependencies import get_static_host
from showcase_host.services.static_host import StaticHost
from showcase_host.services.upload_storage import STATIC_URL_PREFIX

router = APIRouter(prefix=STATIC_URL_PREFIX, tags=["static"])

Host = Annotated[StaticHost, Depends(get_static_host)]


@router.get("/{project_key}", include_in_schema=False)
def redirect_to_project_root(project_key: str) -> RedirectResponse:
    """Add the trailing slash so relative asset links resolve inside the project."""
    return RedirectResponse(url=f"{STATIC_URL_PREFIX}/{project_key}/")


@router.get(
    "/{project_key}/{file_path:path}",
    summary="Serve a published project file",
    responses={404: {"description": "File not found"}},
)
def serve_project_file(project_key: str, file_path: str, host: Host) -> FileResponse:
    path = host.resolve(project_key, file_path)
    if path is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found.",
        )
    return FileResponse(path)
