"""Data models and error types for the archive ingestion pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class IngestionState(str, Enum):
    """Lifecycle of a single upload through the ingestion pipeline."""

    RECEIVED = "received"
    EXTRACTING = "extracting"
    ANALYZING = "analyzing"
    VALIDATING = "validating"
    COMMITTED = "committed"
    FAILED = "failed"


class IngestionError(Exception):
    """Base class for every failure an upload can end in.

    Attributes:
        kind: Stable machine-readable error kind.
        state: Pipeline state the failure happened in, once known.
    """

    kind = "ingestion"

    def __init__(self, message: str, *, state: IngestionState | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.state = state


class ExtractionError(IngestionError):
    """Raised when an archive is unreadable or cannot be written to disk."""

    kind = "extraction"


class UnsafeArchiveError(IngestionError):
    """Raised when an archive contains a path-traversal or otherwise disallowed entry."""

    kind = "unsafe_archive"


class AnalysisError(IngestionError):
    """Raised when an extracted tree cannot be traversed."""

    kind = "analysis"


class NoEntryPointError(IngestionError):
    """Raised when an extracted tree has no HTML file to serve."""

    kind = "no_entry_point"


class PersistenceError(IngestionError):
    """Raised when the project record could not be written."""

    kind = "persistence"


@dataclass(frozen=True, slots=True)
class FileAnalysis:
    """Result of inspecting an extracted tree.

    Attributes:
        root_entries: Sorted names of files and folders directly under the root.
        html_files: Sorted relative POSIX paths of every HTML file in the tree.
        entry_point: Relative path of the HTML file to serve first, if any.
        file_count: Number of regular files in the tree.
    """

    root_entries: tuple[str, ...]
    html_files: tuple[str, ...]
    entry_point: str | None
    file_count: int = 0

    @property
    def has_index_html(self) -> bool:
        return self.entry_point is not None

    @property
    def has_root_index(self) -> bool:
        return self.entry_point is not None and self.entry_point.lower() == "index.html"

    @property
    def uses_fallback_entry(self) -> bool:
        return self.has_index_html and not self.has_root_index


@dataclass(frozen=True, slots=True)
class UploadMetadata:
    """User-supplied metadata accompanying an uploaded archive."""

    title: str
    description: str
    category: str
    username: str = "Anonymous"
    user_id: int | None = None
    archive_filename: str = "upload.zip"


@dataclass(frozen=True, slots=True)
class PublishedSite:
    """URLs under which a published project can be reached."""

    project_key: str
    project_url: str
    preview_url: str


@dataclass(frozen=True, slots=True)
class ProjectRecord:
    """Everything needed to create a Project row after validation succeeded."""

    project_key: str
    title: str
    description: str
    category: str
    entry_path: str
    project_url: str
    preview_url: str
    archive_filename: str
    file_count: int
    user_id: int | None = None
