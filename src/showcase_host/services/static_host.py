"""Publish validated project trees and map them to public URLs."""

from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath
from urllib.parse import quote

from showcase_host.models.ingest import PublishedSite
from showcase_host.services.site_analyzer import INDEX_FILENAME
from showcase_host.services.upload_storage import (
    STATIC_URL_PREFIX,
    get_projects_root,
    get_public_base_url,
    remove_tree,
)

logger = logging.getLogger(__name__)


class StaticHost:
    """Owns published project directories under the projects root.

    Each project lives in ``<projects root>/<project key>`` and is served at
    ``<base url>/static-projects/<project key>/...``.
    """

    def __init__(self, projects_root: Path | None = None, base_url: str | None = None) -> None:
        self._projects_root = projects_root
        self._base_url = base_url

    @property
    def projects_root(self) -> Path:
        return self._projects_root if self._projects_root is not None else get_projects_root()

    @property
    def base_url(self) -> str:
        return self._base_url if self._base_url is not None else get_public_base_url()

    def project_dir(self, project_key: str) -> Path:
        return self.projects_root / project_key

    def publish(self, extracted_dir: Path | str, entry_relative_path: str) -> PublishedSite:
        """Take ownership of an extracted tree and return its URLs.

        The directory name of ``extracted_dir`` becomes the project key.

        Args:
            extracted_dir: Validated tree produced by the extractor.
            entry_relative_path: Entry HTML file relative to ``extracted_dir``.

        Returns:
            PublishedSite with the servable and preview URLs.

        Raises:
            FileExistsError: If a project with the same key is already published.
            OSError: If the tree cannot be moved into place.
        """
        source = Path(extracted_dir)
        project_key = source.name
        destination = self.project_dir(project_key)
        if destination.exists():
            raise FileExistsError(f"Project {project_key} is already published")

        destination.parent.mkdir(parents=True, exist_ok=True)
        os.replace(source, destination)
        logger.info("Published project %s with entry %s", project_key, entry_relative_path)
        return PublishedSite(
            project_key=project_key,
            project_url=self.project_url(project_key, entry_relative_path),
            preview_url=self.file_url(project_key, entry_relative_path),
        )

    def unpublish(self, project_key: str) -> None:
        """Delete a published project tree."""
        remove_tree(self.project_dir(project_key))
        logger.info("Unpublished project %s", project_key)

    def file_url(self, project_key: str, relative_path: str) -> str:
        return f"{self.base_url}{STATIC_URL_PREFIX}/{project_key}/{quote(relative_path)}"

    def project_url(self, project_key: str, entry_relative_path: str) -> str:
        """Return the URL visitors open; index pages are addressed by their folder."""
        entry = PurePosixPath(entry_relative_path)
        if entry.name.lower() != INDEX_FILENAME:
            return self.file_url(project_key, entry_relative_path)
        folder = entry.parent.as_posix()
        suffix = "" if folder == "." else f"{quote(folder)}/"
        return f"{self.base_url}{STATIC_URL_PREFIX}/{project_key}/{suffix}"

    def resolve(self, project_key: str, relative_path: str) -> Path | None:
        """Map a URL path inside a published project to a file on disk.

        Directory paths resolve to their ``index.html``. Anything that is missing
        or would leave the project directory resolves to None.
        """
        if not project_key or "/" in project_key or project_key in {".", ".."}:
            return None
        root = self.project_dir(project_key).resolve()
        if not root.is_dir():
            return None

        candidate = (root / relative_path.lstrip("/")).resolve()
        try:
            candidate.relative_to(root)
        except ValueError:
            return None

        if candidate.is_dir():
            index = _find_index(candidate)
            if index is None:
                return None
            candidate = index
        return candidate if candidate.is_file() else None


def _find_index(directory: Path) -> Path | None:
    exact = directory / INDEX_FILENAME
    if exact.is_file():
        return exact
    for child in sorted(directory.iterdir()):
        if child.is_file() and child.name.lower() == INDEX_FILENAME:
            return child
    return None
