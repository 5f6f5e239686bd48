"""Route handlers for the API."""

from showcase_host.api.routes import health, projects, static_sites, users

__all__ = [
    "health",
    "projects",
    "static_sites",
    "users",
]
