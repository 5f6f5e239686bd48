"""FastAPI application entry point for the Showcase Host API."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from showcase_host.api.routes import health, projects, static_sites, users

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize resources on startup and clean up on shutdown."""
    from showcase_host.data.db import init_db

    init_db()
    yield


app = FastAPI(
    title="Showcase Host API",
    description="Upload zipped web projects and games, then browse, view and like them",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(projects.router, prefix="/api")
app.include_router(users.router, prefix="/api")
app.include_router(static_sites.router)


def main() -> None:
    """Start the development server."""
    import uvicorn

    uvicorn.run(
        "showcase_host.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )


if __name__ == "__main__":
    main()
