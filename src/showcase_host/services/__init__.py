"""Services"""

from showcase_host.services.archive_extractor import ArchiveExtractor
from showcase_host.services.ingestion import ProjectIngestionService
from showcase_host.services.project_repository import ProjectNotFoundError, ProjectRepository
from showcase_host.services.site_analyzer import SiteAnalyzer
from showcase_host.services.static_host import StaticHost

__all__ = [
    "ArchiveExtractor",
    "ProjectIngestionService",
    "ProjectNotFoundError",
    "ProjectRepository",
    "SiteAnalyzer",
    "StaticHost",
]
