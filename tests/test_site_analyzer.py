from __future__ import annotations

import os
from pathlib import Path
from types import SimpleNamespace

import pytest

from showcase_host.models.ingest import AnalysisError
from showcase_host.services import site_analyzer
from showcase_host.services.site_analyzer import SiteAnalyzer, choose_entry_point


def _make_tree(root: Path, files: list[str]) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    for relative in files:
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"<!-- {relative} -->", encoding="utf-8")
    return root


class _TrackedScandir:
    def __init__(self, path) -> None:
        self._iterator = os.scandir(path)
        self.closed = False

    def __enter__(self):
        return self._iterator.__enter__()

    def __exit__(self, *exc_info):
        self.closed = True
        return self._iterator.__exit__(*exc_info)

    def __iter__(self):
        return iter(self._iterator)


def _snapshot(root: Path) -> dict[str, bytes]:
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in root.rglob("*")
        if path.is_file()
    }


def test_root_index_is_entry_point(tmp_path: Path) -> None:
    root = _make_tree(tmp_path / "site", ["index.html", "style.css", "img/logo.png"])

    analysis = SiteAnalyzer().analyze(root)

    assert analysis.has_index_html is True
    assert analysis.has_root_index is True
    assert analysis.uses_fallback_entry is False
    assert analysis.entry_point == "index.html"
    assert analysis.root_entries == ("img", "index.html", "style.css")
    assert analysis.html_files == ("index.html",)
    assert analysis.file_count == 3


def test_root_index_match_is_case_insensitive(tmp_path: Path) -> None:
    root = _make_tree(tmp_path / "site", ["INDEX.HTML", "game.js"])

    analysis = SiteAnalyzer().analyze(root)

    assert analysis.has_root_index is True
    assert analysis.entry_point == "INDEX.HTML"


def test_single_nested_html_becomes_entry_point(tmp_path: Path) -> None:
    root = _make_tree(tmp_path / "site", ["pages/game.html", "pages/game.js"])

    analysis = SiteAnalyzer().analyze(root)

    assert analysis.has_index_html is True
    assert analysis.has_root_index is False
    assert analysis.uses_fallback_entry is True
    assert analysis.entry_point == "pages/game.html"


def test_lexicographically_first_html_wins_without_index(tmp_path: Path) -> None:
    root = _make_tree(tmp_path / "site", ["contact.html", "about.html"])

    analysis = SiteAnalyzer().analyze(root)

    assert analysis.html_files == ("about.html", "contact.html")
    assert analysis.entry_point == "about.html"


def test_nested_index_preferred_over_other_html(tmp_path: Path) -> None:
    root = _make_tree(tmp_path / "site", ["a.html", "mygame/index.html", "mygame/js/game.js"])

    analysis = SiteAnalyzer().analyze(root)

    assert analysis.entry_point == "mygame/index.html"


def test_htm_extension_counts_as_html(tmp_path: Path) -> None:
    root = _make_tree(tmp_path / "site", ["start.HTM", "readme.txt"])

    analysis = SiteAnalyzer().analyze(root)

    assert analysis.html_files == ("start.HTM",)
    assert analysis.entry_point == "start.HTM"


def test_tree_without_html_has_no_entry_point(tmp_path: Path) -> None:
    root = _make_tree(tmp_path / "site", ["main.py", "data/values.json"])

    analysis = SiteAnalyzer().analyze(root)

    assert analysis.has_index_html is False
    assert analysis.entry_point is None
    assert analysis.html_files == ()
    assert analysis.root_entries == ("data", "main.py")


def test_analyze_does_not_modify_tree(tmp_path: Path) -> None:
    root = _make_tree(tmp_path / "site", ["b/page.html", "a/other.html", "x.css"])
    before = _snapshot(root)

    SiteAnalyzer().analyze(root)

    assert _snapshot(root) == before
    assert not (root / "index.html").exists()


def test_missing_directory_raises(tmp_path: Path) -> None:
    with pytest.raises(AnalysisError):
        SiteAnalyzer().analyze(tmp_path / "missing")


def test_unreadable_directory_raises(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    root = _make_tree(tmp_path / "site", ["index.html"])

    def _failing_walk(top, onerror=None, **kwargs):
        onerror(PermissionError(13, "Permission denied", os.fspath(top)))
        yield from ()

    monkeypatch.setattr(site_analyzer.os, "walk", _failing_walk)

    with pytest.raises(AnalysisError):
        SiteAnalyzer().analyze(root)


def test_root_listing_handle_is_closed(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    root = _make_tree(tmp_path / "site", ["index.html", "js/app.js"])
    listings: list[_TrackedScandir] = []

    def _tracking_scandir(path):
        listing = _TrackedScandir(path)
        listings.append(listing)
        return listing

    fake_os = SimpleNamespace(walk=os.walk, scandir=_tracking_scandir)
    monkeypatch.setattr(site_analyzer, "os", fake_os)

    analysis = SiteAnalyzer().analyze(root)

    assert analysis.root_entries == ("index.html", "js")
    assert len(listings) == 1
    assert listings[0].closed is True


@pytest.mark.parametrize(
    ("html_files", "expected"),
    [
        ([], None),
        (["index.html"], "index.html"),
        (["zeta.html", "Index.html"], "Index.html"),
        (["b/index.html", "a/index.html", "a.html"], "a/index.html"),
        (["z.html", "m/page.html"], "m/page.html"),
    ],
)
def test_choose_entry_point(html_files: list[str], expected: str | None) -> None:
    assert choose_entry_point(html_files) == expected
