"""Filesystem layout and size limits for uploaded projects.

Every location and limit can be overridden through environment variables so
tests and deployments can point the service at their own directories.
"""

from __future__ import annotations

import logging
import os
import shutil
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)

PROJECTS_DIR_NAME = "projects"
STAGING_DIR_NAME = "staging"
THUMBNAIL_DIR_NAME = "thumbnails"
STATIC_URL_PREFIX = "/static-projects"

DEFAULT_MAX_UPLOAD_BYTES = 50 * 1024 * 1024
DEFAULT_MAX_ARCHIVE_ENTRIES = 5000
DEFAULT_MAX_EXTRACTED_BYTES = 200 * 1024 * 1024


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def get_storage_root() -> Path:
    """Return the root directory for all project files."""
    env_root = os.getenv("SHOWCASE_STORAGE_DIR")
    if env_root:
        return Path(env_root).expanduser().resolve()

    project_root = Path(__file__).resolve().parents[3]
    return project_root / ".showcase_storage"


def get_projects_root() -> Path:
    """Return the directory holding published project trees."""
    return get_storage_root() / PROJECTS_DIR_NAME


def get_staging_root() -> Path:
    """Return the directory holding in-flight extractions."""
    return get_storage_root() / STAGING_DIR_NAME


def get_public_base_url() -> str:
    """Return the scheme/host prefix for generated URLs (empty for relative URLs)."""
    return os.getenv("SHOWCASE_PUBLIC_BASE_URL", "").rstrip("/")


def get_max_upload_bytes() -> int:
    return _int_from_env("SHOWCASE_MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES)


def get_max_archive_entries() -> int:
    return _int_from_env("SHOWCASE_MAX_ARCHIVE_ENTRIES", DEFAULT_MAX_ARCHIVE_ENTRIES)


def get_max_extracted_bytes() -> int:
    return _int_from_env("SHOWCASE_MAX_EXTRACTED_BYTES", DEFAULT_MAX_EXTRACTED_BYTES)


def new_project_key() -> str:
    """Return a fresh opaque identifier for a project directory."""
    return uuid.uuid4().hex[:16]


def remove_tree(path: Path) -> None:
    """Delete a directory tree, tolerating that it is already gone."""
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        return
    except OSError:
        logger.exception("Failed to remove %s", path)
