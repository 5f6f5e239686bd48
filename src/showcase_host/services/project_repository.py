"""Persistence for projects, views and likes.

Counters are changed with SQL-side updates inside the session transaction so
concurrent requests never overwrite each other's increments.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from sqlalchemy import desc, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from showcase_host.data.db import get_session
from showcase_host.data.models import Project, ProjectLike, ProjectView, User
from showcase_host.models.ingest import PersistenceError, ProjectRecord

logger = logging.getLogger(__name__)

TRENDING_MIN_VIEWS = 100
TRENDING_MIN_LIKES = 10
POPULAR_MIN_VIEWS = 1000

SORT_OPTIONS = ("popular", "recent", "views", "trending")
POPULARITY_FILTERS = ("trending", "popular", "featured")

_UPDATABLE_FIELDS = ("title", "description", "category", "thumbnail_url")


class ProjectNotFoundError(LookupError):
    """Raised when a project id does not exist."""

    def __init__(self, project_id: int) -> None:
        super().__init__(f"Project {project_id} not found")
        self.project_id = project_id


def _require_project(session: Session, project_id: int) -> Project:
    project = session.get(Project, project_id, options=[selectinload(Project.user)])
    if project is None:
        raise ProjectNotFoundError(project_id)
    return project


def _order_by(sort: str) -> tuple[Any, ...]:
    if sort == "recent":
        return (desc(Project.created_at), desc(Project.id))
    if sort == "views":
        return (desc(Project.views), desc(Project.id))
    if sort == "trending":
        return (desc(Project.trending), desc(Project.views), desc(Project.likes), desc(Project.id))
    return (desc(Project.likes), desc(Project.id))


class ProjectRepository:
    """SQLAlchemy-backed store for Project rows and their visitor records."""

    def upsert_user(self, username: str) -> int:
        """Return the id of the user row for ``username``, creating it if needed."""
        with get_session() as session:
            user = session.query(User).filter(User.username == username).first()
            if user is not None:
                return user.id
            user = User(username=username)
            session.add(user)
            try:
                session.flush()
            except IntegrityError:
                # Another request created the same user first.
                session.rollback()
                user = session.query(User).filter(User.username == username).one()
            return user.id

    def create(self, record: ProjectRecord) -> int:
        """Persist a validated project.

        Args:
            record: Metadata produced by a successful ingestion.

        Returns:
            The new project id.

        Raises:
            PersistenceError: If the database write fails.
        """
        try:
            with get_session() as session:
                project = Project(
                    project_key=record.project_key,
                    user_id=record.user_id,
                    title=record.title,
                    description=record.description,
                    category=record.category,
                    entry_path=record.entry_path,
                    project_url=record.project_url,
                    preview_url=record.preview_url,
                    archive_filename=record.archive_filename,
                    file_count=record.file_count,
                )
                session.add(project)
                session.flush()
                return project.id
        except SQLAlchemyError as exc:
            logger.exception("Failed to persist project %s", record.project_key)
            raise PersistenceError(f"Could not save project {record.title!r}") from exc

    def get(self, project_id: int) -> Project:
        with get_session() as session:
            return _require_project(session, project_id)

    def list_projects(
        self,
        *,
        category: str | None = None,
        search: str | None = None,
        popularity: str | None = None,
        sort: str = "popular",
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Project], int]:
        """Return one page of projects and the total number of matches.

        Args:
            category: Only include projects in this category.
            search: Case-insensitive substring matched against title and description.
            popularity: One of ``POPULARITY_FILTERS``.
            sort: One of ``SORT_OPTIONS``; anything else sorts by likes.
            limit: Page size.
            offset: Number of matches to skip.

        Returns:
            Tuple of (projects on the page, total matching projects).
        """
        conditions = []
        if category:
            conditions.append(Project.category == category)
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(Project.title.ilike(pattern), Project.description.ilike(pattern)))
        if popularity == "trending":
            conditions.append(Project.trending.is_(True))
        elif popularity == "popular":
            conditions.append(Project.views >= POPULAR_MIN_VIEWS)
        elif popularity == "featured":
            conditions.append(Project.featured.is_(True))

        with get_session() as session:
            total = session.scalar(select(func.count(Project.id)).where(*conditions)) or 0
            projects = (
                session.execute(
                    select(Project)
                    .options(selectinload(Project.user))
                    .where(*conditions)
                    .order_by(*_order_by(sort))
                    .limit(limit)
                    .offset(offset)
                )
                .scalars()
                .all()
            )
            return list(projects), int(total)

    def featured(self, limit: int = 10) -> list[Project]:
        projects, _ = self.list_projects(popularity="featured", sort="popular", limit=limit)
        return projects

    def trending(self, limit: int = 10) -> list[Project]:
        projects, _ = self.list_projects(popularity="trending", sort="trending", limit=limit)
        return projects

    def category_counts(self) -> dict[str, int]:
        with get_session() as session:
            rows = session.execute(
                select(Project.category, func.count(Project.id))
                .group_by(Project.category)
                .order_by(Project.category)
            ).all()
            return {category: int(count) for category, count in rows}

    def list_for_user(self, user_id: int) -> list[Project]:
        with get_session() as session:
            return list(
                session.execute(
                    select(Project)
                    .options(selectinload(Project.user))
                    .where(Project.user_id == user_id)
                    .order_by(desc(Project.created_at), desc(Project.id))
                )
                .scalars()
                .all()
            )

    def find_user_id(self, username: str) -> int | None:
        with get_session() as session:
            return session.scalar(select(User.id).where(User.username == username))

    def update(self, project_id: int, **fields: Any) -> Project:
        """Apply editable field changes to a project."""
        unknown = set(fields) - set(_UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        with get_session() as session:
            project = _require_project(session, project_id)
            for field, value in fields.items():
                setattr(project, field, value)
            session.flush()
            return project

    def delete(self, project_id: int) -> str:
        """Delete a project with its view and like records.

        Returns:
            The deleted project's key so its files can be removed.
        """
        with get_session() as session:
            project = _require_project(session, project_id)
            project_key = project.project_key
            session.delete(project)
            return project_key

    def increment_view(self, project_id: int, visitor_id: str) -> bool:
        """Record a view; each visitor is counted once per project.

        Returns:
            True if this call counted a new view.
        """
        with get_session() as session:
            _require_project(session, project_id)
            already_viewed = session.scalar(
                select(ProjectView.id).where(
                    ProjectView.project_id == project_id, ProjectView.visitor_id == visitor_id
                )
            )
            if already_viewed is not None:
                return False

            session.add(ProjectView(project_id=project_id, visitor_id=visitor_id))
            try:
                session.flush()
            except IntegrityError:
                session.rollback()
                return False

            session.execute(
                update(Project)
                .where(Project.id == project_id)
                .values(views=Project.views + 1, updated_at=Project.updated_at)
            )
            session.execute(
                update(Project)
                .where(
                    Project.id == project_id,
                    Project.views > TRENDING_MIN_VIEWS,
                    Project.likes > TRENDING_MIN_LIKES,
                )
                .values(trending=True, updated_at=Project.updated_at)
            )
            return True

    def toggle_like(self, project_id: int, visitor_id: str) -> bool:
        """Flip a visitor's like on a project.

        The like counter is re-derived from the like rows, so racing toggles from
        the same visitor can never count twice.

        Returns:
            True if the visitor likes the project after this call.
        """
        with get_session() as session:
            _require_project(session, project_id)
            existing = (
                session.query(ProjectLike)
                .filter(ProjectLike.project_id == project_id, ProjectLike.visitor_id == visitor_id)
                .first()
            )
            if existing is not None:
                session.delete(existing)
                session.flush()
                liked = False
            else:
                session.add(ProjectLike(project_id=project_id, visitor_id=visitor_id))
                try:
                    session.flush()
                except IntegrityError:
                    # A concurrent request already stored this like.
                    session.rollback()
                liked = True

            like_count = (
                select(func.count(ProjectLike.id))
                .where(ProjectLike.project_id == project_id)
                .scalar_subquery()
            )
            session.execute(
                update(Project)
                .where(Project.id == project_id)
                .values(likes=like_count, updated_at=Project.updated_at)
            )
            return liked

    def is_liked(self, project_id: int, visitor_id: str) -> bool:
        return project_id in self.liked_project_ids([project_id], visitor_id)

    def liked_project_ids(self, project_ids: list[int], visitor_id: str) -> set[int]:
        if not project_ids:
            return set()
        with get_session() as session:
            rows = session.scalars(
                select(ProjectLike.project_id).where(
                    ProjectLike.project_id.in_(project_ids), ProjectLike.visitor_id == visitor_id
                )
            ).all()
            return set(rows)

    def analytics(self, project_id: int) -> dict[str, Any]:
        """Summarize views and likes for a project owner."""
        with get_session() as session:
            project = _require_project(session, project_id)
            viewed_at = session.scalars(
                select(ProjectView.viewed_at).where(ProjectView.project_id == project_id)
            ).all()
            liked_at = session.scalars(
                select(ProjectLike.liked_at).where(ProjectLike.project_id == project_id)
            ).all()

        views_by_day = Counter(moment.date().isoformat() for moment in viewed_at)
        likes_by_day = Counter(moment.date().isoformat() for moment in liked_at)
        return {
            "project_id": project.id,
            "views": project.views,
            "likes": project.likes,
            "unique_viewers": len(viewed_at),
            "views_by_day": [
                {"date": day, "count": count} for day, count in sorted(views_by_day.items())
            ],
            "likes_by_day": [
                {"date": day, "count": count} for day, count in sorted(likes_by_day.items())
            ],
        }
