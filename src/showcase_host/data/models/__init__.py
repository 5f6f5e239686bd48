"""ORM models package for database tables.

This package provides SQLAlchemy ORM models representing database tables:
- User: Owner identity for uploaded projects
- Project: Published static sites with counters and flags
- ProjectView: Unique visitor views per project
- ProjectLike: Visitor likes per project

All models inherit from the shared Base declarative class defined in data.db.
"""

from showcase_host.data.db import Base
from showcase_host.data.models.project import Project
from showcase_host.data.models.project_like import ProjectLike
from showcase_host.data.models.project_view import ProjectView
from showcase_host.data.models.user import User

__all__ = ["Base", "Project", "ProjectLike", "ProjectView", "User"]
