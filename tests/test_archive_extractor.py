from __future__ import annotations

import io
import stat
from collections.abc import Iterable
from pathlib import Path
from zipfile import ZIP_DEFLATED, ZIP_STORED, ZipFile, ZipInfo

import pytest

from showcase_host.models.ingest import ExtractionError, UnsafeArchiveError
from showcase_host.services.archive_extractor import ArchiveExtractor, normalize_entry_name


def _create_zip(zip_path: Path, entries: Iterable[tuple[str, bytes]]) -> Path:
    with ZipFile(zip_path, mode="w", compression=ZIP_DEFLATED) as archive:
        for relative_path, data in entries:
            archive.writestr(relative_path, data)
    return zip_path


def _files_under(root: Path) -> dict[str, bytes]:
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in root.rglob("*")
        if path.is_file()
    }


def test_extract_writes_entries_byte_identical(tmp_path: Path) -> None:
    entries = [
        ("index.html", b"<html><body>hi</body></html>"),
        ("style.css", b"body { color: red; }"),
        ("img/logo.png", b"\x89PNG\r\n\x1a\n" + bytes(range(256))),
    ]
    zip_path = _create_zip(tmp_path / "site.zip", entries)
    target = tmp_path / "out"

    assert ArchiveExtractor().extract(zip_path, target) is True

    assert _files_under(target) == dict(entries)


def test_extract_keeps_directory_entries(tmp_path: Path) -> None:
    zip_path = _create_zip(tmp_path / "site.zip", [("assets/", b""), ("index.html", b"x")])
    target = tmp_path / "out"

    ArchiveExtractor().extract(zip_path, target)

    assert (target / "assets").is_dir()
    assert (target / "index.html").read_bytes() == b"x"


def test_extract_strips_leading_dot_segments(tmp_path: Path) -> None:
    zip_path = _create_zip(tmp_path / "site.zip", [("./index.html", b"x"), ("./js/./app.js", b"y")])
    target = tmp_path / "out"

    ArchiveExtractor().extract(zip_path, target)

    assert _files_under(target) == {"index.html": b"x", "js/app.js": b"y"}


def test_extract_accepts_empty_existing_target(tmp_path: Path) -> None:
    zip_path = _create_zip(tmp_path / "site.zip", [("index.html", b"x")])
    target = tmp_path / "out"
    target.mkdir()

    assert ArchiveExtractor().extract(zip_path, target) is True


def test_traversal_entry_rejected_and_nothing_written(tmp_path: Path) -> None:
    zip_path = _create_zip(tmp_path / "evil.zip", [("../../etc/passwd", b"root:x:0:0")])
    target = tmp_path / "nested" / "out"

    with pytest.raises(UnsafeArchiveError):
        ArchiveExtractor().extract(zip_path, target)

    assert not target.exists()
    assert not (tmp_path / "etc").exists()


def test_traversal_after_safe_entries_leaves_no_partial_output(tmp_path: Path) -> None:
    zip_path = _create_zip(
        tmp_path / "evil.zip",
        [("index.html", b"ok"), ("js/app.js", b"ok"), ("js/../../escaped.txt", b"bad")],
    )
    target = tmp_path / "out"

    with pytest.raises(UnsafeArchiveError):
        ArchiveExtractor().extract(zip_path, target)

    assert not target.exists()
    assert not (tmp_path / "escaped.txt").exists()


def test_dot_dot_segments_that_stay_inside_target_extract(tmp_path: Path) -> None:
    zip_path = _create_zip(
        tmp_path / "site.zip",
        [("assets/../index.html", b"<p>home</p>"), ("js/lib/../app.js", b"run()")],
    )
    target = tmp_path / "out"

    assert ArchiveExtractor().extract(zip_path, target) is True

    assert _files_under(target) == {"index.html": b"<p>home</p>", "js/app.js": b"run()"}


@pytest.mark.parametrize(
    "name",
    ["/etc/passwd", "..\\..\\evil.txt", "C:/Windows/evil.txt", "C:evil.txt", "a/../../b.txt"],
)
def test_unsafe_names_rejected(tmp_path: Path, name: str) -> None:
    zip_path = _create_zip(tmp_path / "evil.zip", [(name, b"bad")])
    target = tmp_path / "out"

    with pytest.raises(UnsafeArchiveError):
        ArchiveExtractor().extract(zip_path, target)

    assert not target.exists()


def test_symlink_entry_rejected(tmp_path: Path) -> None:
    zip_path = tmp_path / "link.zip"
    with ZipFile(zip_path, "w") as archive:
        archive.writestr("index.html", b"ok")
        link = ZipInfo("shadow")
        link.create_system = 3
        link.external_attr = (stat.S_IFLNK | 0o777) << 16
        archive.writestr(link, "/etc/shadow")
    target = tmp_path / "out"

    with pytest.raises(UnsafeArchiveError):
        ArchiveExtractor().extract(zip_path, target)

    assert not target.exists()


def test_too_many_entries_rejected(tmp_path: Path) -> None:
    zip_path = _create_zip(tmp_path / "many.zip", [(f"f{i}.txt", b"x") for i in range(3)])
    target = tmp_path / "out"

    with pytest.raises(UnsafeArchiveError):
        ArchiveExtractor(max_entries=2).extract(zip_path, target)

    assert not target.exists()


def test_expanded_size_limit_rejected(tmp_path: Path) -> None:
    zip_path = _create_zip(tmp_path / "bomb.zip", [("index.html", b"0" * 4096)])
    target = tmp_path / "out"

    with pytest.raises(UnsafeArchiveError):
        ArchiveExtractor(max_total_bytes=1024).extract(zip_path, target)

    assert not target.exists()


def test_corrupt_archive_raises_extraction_error(tmp_path: Path) -> None:
    corrupt_path = tmp_path / "broken.zip"
    corrupt_path.write_bytes(b"not a real zip")
    target = tmp_path / "out"

    with pytest.raises(ExtractionError):
        ArchiveExtractor().extract(corrupt_path, target)

    assert not target.exists()


def test_missing_archive_raises_extraction_error(tmp_path: Path) -> None:
    with pytest.raises(ExtractionError):
        ArchiveExtractor().extract(tmp_path / "missing.zip", tmp_path / "out")


def test_corrupt_member_removes_partial_output(tmp_path: Path) -> None:
    buffer = io.BytesIO()
    with ZipFile(buffer, "w", compression=ZIP_STORED) as archive:
        archive.writestr("index.html", b"FIRST-CONTENT")
        archive.writestr("game.js", b"SECOND-CONTENT")
    raw = buffer.getvalue().replace(b"SECOND-CONTENT", b"SECOND-CONTENX")
    zip_path = tmp_path / "crc.zip"
    zip_path.write_bytes(raw)
    target = tmp_path / "out"

    with pytest.raises(ExtractionError):
        ArchiveExtractor().extract(zip_path, target)

    assert not target.exists()


def test_non_empty_target_is_left_untouched(tmp_path: Path) -> None:
    zip_path = _create_zip(tmp_path / "site.zip", [("index.html", b"x")])
    target = tmp_path / "out"
    target.mkdir()
    (target / "keep.txt").write_text("keep", encoding="utf-8")

    with pytest.raises(ExtractionError):
        ArchiveExtractor().extract(zip_path, target)

    assert (target / "keep.txt").read_text(encoding="utf-8") == "keep"
    assert not (target / "index.html").exists()


def test_interrupted_extraction_cleans_up(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    zip_path = _create_zip(tmp_path / "site.zip", [("index.html", b"x"), ("app.js", b"y")])
    target = tmp_path / "out"
    original_write = ArchiveExtractor._write_entry
    calls: list[str] = []

    class _Cancelled(BaseException):
        pass

    def _interrupting_write(archive, info, destination):
        if calls:
            raise _Cancelled
        calls.append(info.filename)
        original_write(archive, info, destination)

    monkeypatch.setattr(ArchiveExtractor, "_write_entry", staticmethod(_interrupting_write))

    with pytest.raises(_Cancelled):
        ArchiveExtractor().extract(zip_path, target)

    assert calls == ["index.html"]
    assert not target.exists()


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("index.html", "index.html"),
        ("./index.html", "index.html"),
        ("js//app.js", "js/app.js"),
        ("assets\\img\\a.png", "assets/img/a.png"),
        ("./", None),
        ("assets/../index.html", "index.html"),
        ("js/lib/../app.js", "js/app.js"),
        ("a/..", None),
    ],
)
def test_normalize_entry_name(raw: str, expected: str | None) -> None:
    assert normalize_entry_name(raw) == expected


@pytest.mark.parametrize("raw", ["../x", "/x", "a/../../x", "..", "D:\\x", "a\x00b"])
def test_normalize_entry_name_rejects_unsafe(raw: str) -> None:
    with pytest.raises(UnsafeArchiveError):
        normalize_entry_name(raw)
