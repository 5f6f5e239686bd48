from __future__ import annotations

from pathlib import Path

import pytest

import showcase_host.data.db as app_db
from showcase_host.data.db import init_db


@pytest.fixture
def api_db(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Use a temporary SQLite DB and storage directory."""
    db_path = tmp_path / "api.db"
    monkeypatch.setenv("DB_URL", f"sqlite:///{db_path.as_posix()}")
    storage_root = tmp_path / "storage"
    monkeypatch.setenv("SHOWCASE_STORAGE_DIR", storage_root.as_posix())
    monkeypatch.delenv("SHOWCASE_PUBLIC_BASE_URL", raising=False)
    app_db._engine = None
    app_db._SessionLocal = None
    init_db()
    yield
    # Dispose engine to release connections
    if app_db._engine is not None:
        app_db._engine.dispose()
        app_db._engine = None
        app_db._SessionLocal = None


@pytest.fixture(autouse=True)
def _api_db_for_api_tests(request: pytest.FixtureRequest) -> None:
    """Automatically apply the api_db fixture to tests in API test files."""
    test_file_path = Path(str(request.node.fspath))
    if "api" in test_file_path.stem.lower():
        request.getfixturevalue("api_db")
