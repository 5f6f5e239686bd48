"""Turn an uploaded ZIP archive into a published, persisted project.

The pipeline runs ``RECEIVED -> EXTRACTING -> ANALYZING -> VALIDATING -> COMMITTED``.
Any failure moves it to ``FAILED`` and removes every file the upload produced;
a project row is only written once the entry point has been confirmed.
"""

from __future__ import annotations

import logging
from pathlib import Path

from showcase_host.data.models import Project
from showcase_host.models.ingest import (
    ExtractionError,
    FileAnalysis,
    IngestionError,
    IngestionState,
    NoEntryPointError,
    PersistenceError,
    ProjectRecord,
    PublishedSite,
    UploadMetadata,
)
from showcase_host.services.archive_extractor import ArchiveExtractor
from showcase_host.services.project_repository import ProjectRepository
from showcase_host.services.site_analyzer import SiteAnalyzer
from showcase_host.services.static_host import StaticHost
from showcase_host.services.upload_storage import get_staging_root, new_project_key, remove_tree

logger = logging.getLogger(__name__)


def build_project_record(
    site: PublishedSite, analysis: FileAnalysis, metadata: UploadMetadata
) -> ProjectRecord:
    """Combine publish output, analysis and user metadata into a new row's fields."""
    return ProjectRecord(
        project_key=site.project_key,
        title=metadata.title,
        description=metadata.description,
        category=metadata.category,
        entry_path=analysis.entry_point or "",
        project_url=site.project_url,
        preview_url=site.preview_url,
        archive_filename=metadata.archive_filename,
        file_count=analysis.file_count,
        user_id=metadata.user_id,
    )


class ProjectIngestionService:
    """Coordinates extraction, analysis, publishing and persistence of one upload.

    Collaborators are injectable so callers can swap the host or repository.
    """

    def __init__(
        self,
        extractor: ArchiveExtractor | None = None,
        analyzer: SiteAnalyzer | None = None,
        host: StaticHost | None = None,
        repository: ProjectRepository | None = None,
        staging_root: Path | None = None,
    ) -> None:
        self.extractor = extractor or ArchiveExtractor()
        self.analyzer = analyzer or SiteAnalyzer()
        self.host = host or StaticHost()
        self.repository = repository or ProjectRepository()
        self._staging_root = staging_root

    @property
    def staging_root(self) -> Path:
        return self._staging_root if self._staging_root is not None else get_staging_root()

    def ingest(self, archive_path: Path | str, metadata: UploadMetadata) -> Project:
        """Extract, validate, publish and persist an uploaded archive.

        Every call allocates its own staging directory, so re-ingesting the same
        archive yields a new, independent project.

        Args:
            archive_path: Uploaded archive on local disk.
            metadata: Title, description, category and owner of the upload.

        Returns:
            The persisted Project.

        Raises:
            ExtractionError: If the archive cannot be read or written out.
            UnsafeArchiveError: If the archive contains a disallowed entry.
            AnalysisError: If the extracted tree cannot be inspected.
            NoEntryPointError: If the archive holds no HTML file.
            PersistenceError: If publishing or saving the project fails.
        """
        project_key = new_project_key()
        staging_dir = self.staging_root / project_key
        state = IngestionState.RECEIVED
        published = False
        logger.info("Received %s as project %s", metadata.archive_filename, project_key)

        try:
            state = self._advance(project_key, IngestionState.EXTRACTING)
            if not self.extractor.extract(archive_path, staging_dir):
                raise ExtractionError(f"Could not extract {metadata.archive_filename}")

            state = self._advance(project_key, IngestionState.ANALYZING)
            analysis = self.analyzer.analyze(staging_dir)

            state = self._advance(project_key, IngestionState.VALIDATING)
            if analysis.entry_point is None:
                raise NoEntryPointError(
                    "The archive must contain at least one HTML file to serve as its entry point"
                )
            if analysis.uses_fallback_entry:
                logger.info(
                    "Project %s has no root index.html; using %s", project_key, analysis.entry_point
                )

            try:
                site = self.host.publish(staging_dir, analysis.entry_point)
            except OSError as exc:
                raise PersistenceError(f"Could not publish project files: {exc}") from exc
            published = True

            project_id = self.repository.create(build_project_record(site, analysis, metadata))
        except IngestionError as exc:
            if exc.state is None:
                exc.state = state
            self._discard(project_key, staging_dir, published)
            logger.warning(
                "Project %s %s while %s: %s",
                project_key,
                IngestionState.FAILED.value,
                state.value,
                exc.message,
            )
            raise
        except BaseException:
            self._discard(project_key, staging_dir, published)
            logger.warning("Project %s aborted while %s", project_key, state.value)
            raise

        self._advance(project_key, IngestionState.COMMITTED)
        return self.repository.get(project_id)

    @staticmethod
    def _advance(project_key: str, state: IngestionState) -> IngestionState:
        logger.info("Project %s -> %s", project_key, state.value)
        return state

    def _discard(self, project_key: str, staging_dir: Path, published: bool) -> None:
        remove_tree(staging_dir)
        if published:
            self.host.unpublish(project_key)
