"""Data models and type definitions"""

from showcase_host.models.ingest import (
    AnalysisError,
    ExtractionError,
    FileAnalysis,
    IngestionError,
    IngestionState,
    NoEntryPointError,
    PersistenceError,
    ProjectRecord,
    PublishedSite,
    UnsafeArchiveError,
    UploadMetadata,
)

__all__ = [
    "AnalysisError",
    "ExtractionError",
    "FileAnalysis",
    "IngestionError",
    "IngestionState",
    "NoEntryPointError",
    "PersistenceError",
    "ProjectRecord",
    "PublishedSite",
    "UnsafeArchiveError",
    "UploadMetadata",
]
