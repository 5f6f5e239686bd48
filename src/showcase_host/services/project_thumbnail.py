"""Service helpers for project thumbnails stored on disk.

Thumbnails live beside published projects as ``thumbnails/<project id><ext>``;
the project row's ``thumbnail_url`` is kept in sync with what is on disk.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from showcase_host.data.db import get_session
from showcase_host.data.models import Project
from showcase_host.services.upload_storage import THUMBNAIL_DIR_NAME, get_storage_root

logger = logging.getLogger(__name__)

MAX_THUMBNAIL_BYTES = 2 * 1024 * 1024
THUMBNAIL_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".webp")

IMAGE_TYPE_TO_MIME = {
    "png": "image/png",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
}
IMAGE_TYPE_TO_EXTENSION = {
    "png": ".png",
    "jpeg": ".jpg",
    "gif": ".gif",
    "webp": ".webp",
}
CONTENT_TYPE_ALIASES = {
    "image/jpg": "image/jpeg",
    "image/pjpeg": "image/jpeg",
}
EXTENSION_TO_MIME = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


@dataclass(frozen=True)
class ThumbnailInfo:
    image_type: str
    mime_type: str
    extension: str


def thumbnail_url_for(project_id: int) -> str:
    return f"/api/projects/{project_id}/thumbnail"


def get_thumbnail_storage_root() -> Path:
    """Return the root directory for stored thumbnails."""
    return get_storage_root() / THUMBNAIL_DIR_NAME


def get_project_thumbnail_path(project_id: int) -> Path | None:
    """Return the stored thumbnail path for a project, if any."""
    root = get_thumbnail_storage_root()
    if not root.exists():
        return None
    for ext in THUMBNAIL_EXTENSIONS:
        candidate = root / f"{project_id}{ext}"
        if candidate.exists():
            return candidate
    return None


def get_thumbnail_media_type(path: Path) -> str | None:
    """Return the MIME type for a thumbnail path."""
    return EXTENSION_TO_MIME.get(path.suffix.lower())


def set_project_thumbnail(
    project_id: int,
    *,
    content_type: str | None,
    data: bytes,
) -> tuple[bool, str | None]:
    """Store a thumbnail for a project and point the project at it.

    Returns:
        Tuple of (saved, error message when not saved).
    """
    if not _project_exists(project_id):
        return False, "Project not found."

    try:
        info = _validate_thumbnail_upload(content_type=content_type, data=data)
    except ValueError as exc:
        return False, str(exc)

    try:
        root = get_thumbnail_storage_root()
        root.mkdir(parents=True, exist_ok=True)
        _delete_existing_thumbnails(project_id)
        target = root / f"{project_id}{info.extension}"
        target.write_bytes(data)
    except OSError:
        logger.exception("Failed to store thumbnail for project %d", project_id)
        return False, "Failed to store thumbnail."

    _set_thumbnail_url(project_id, thumbnail_url_for(project_id))
    return True, None


def clear_project_thumbnail(project_id: int) -> bool:
    """Remove the thumbnail for a project.

    Returns:
        True if a stored thumbnail was deleted.
    """
    if not _project_exists(project_id):
        return False
    removed = _delete_existing_thumbnails(project_id)
    _set_thumbnail_url(project_id, None)
    return removed


def delete_thumbnail_files(project_id: int) -> bool:
    """Remove thumbnail files without touching the project row (used on project deletion)."""
    return _delete_existing_thumbnails(project_id)


def _delete_existing_thumbnails(project_id: int) -> bool:
    root = get_thumbnail_storage_root()
    removed = False
    for ext in THUMBNAIL_EXTENSIONS:
        path = root / f"{project_id}{ext}"
        if path.exists():
            path.unlink(missing_ok=True)
            removed = True
    return removed


def _project_exists(project_id: int) -> bool:
    with get_session() as session:
        return session.query(Project.id).filter(Project.id == project_id).first() is not None


def _set_thumbnail_url(project_id: int, url: str | None) -> None:
    with get_session() as session:
        project = session.get(Project, project_id)
        if project is not None:
            project.thumbnail_url = url


def _normalize_content_type(content_type: str | None) -> str | None:
    if content_type is None:
        return None
    normalized = content_type.strip().lower()
    return CONTENT_TYPE_ALIASES.get(normalized, normalized)


def _detect_image_type(data: bytes) -> str | None:
    if len(data) >= 8 and data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "png"
    if len(data) >= 3 and data[:3] == b"\xff\xd8\xff":
        return "jpeg"
    if len(data) >= 6 and data[:6] in (b"GIF87a", b"GIF89a"):
        return "gif"
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"
    return None


def _validate_thumbnail_upload(*, content_type: str | None, data: bytes) -> ThumbnailInfo:
    if not data:
        raise ValueError("Thumbnail file is empty.")
    if len(data) > MAX_THUMBNAIL_BYTES:
        raise ValueError("Thumbnail exceeds 2 MiB.")

    image_type = _detect_image_type(data)
    if image_type is None:
        raise ValueError("Unsupported thumbnail image type.")

    normalized_type = _normalize_content_type(content_type)
    expected_mime = IMAGE_TYPE_TO_MIME[image_type]
    if normalized_type and normalized_type not in IMAGE_TYPE_TO_MIME.values():
        raise ValueError("Unsupported thumbnail content type.")
    if normalized_type and normalized_type != expected_mime:
        raise ValueError("Thumbnail content type does not match image data.")

    return ThumbnailInfo(
        image_type=image_type,
        mime_type=expected_mime,
        extension=IMAGE_TYPE_TO_EXTENSION[image_type],
    )
