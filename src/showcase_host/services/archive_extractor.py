"""Safe extraction of uploaded ZIP archives.

Archives are untrusted input. Every entry is validated before a single byte is
written, and any failure removes the target directory so callers never see a
partially extracted tree.
"""

from __future__ import annotations

import logging
import posixpath
import shutil
import stat
import zlib
from pathlib import Path
from zipfile import BadZipFile, ZipFile, ZipInfo

from showcase_host.models.ingest import ExtractionError, UnsafeArchiveError
from showcase_host.services.upload_storage import (
    get_max_archive_entries,
    get_max_extracted_bytes,
    remove_tree,
)

logger = logging.getLogger(__name__)

_STREAM_CHUNK_SIZE = 1024 * 1024

# Errors zipfile and the filesystem raise for corrupt archives or failed writes.
_EXTRACTION_FAILURES = (
    BadZipFile,
    zlib.error,
    EOFError,
    OSError,
    NotImplementedError,
    RuntimeError,
)


def normalize_entry_name(name: str) -> str | None:
    """Return the relative POSIX path an archive entry should be written to.

    Args:
        name: Raw entry name as stored in the archive.

    Returns:
        Normalized relative path, or None for entries naming the archive root.

    Raises:
        UnsafeArchiveError: If the name is absolute or climbs out of the root.
    """
    normalized = name.replace("\\", "/")
    if "\x00" in normalized:
        raise UnsafeArchiveError(f"Archive entry name contains a NUL byte: {name!r}")
    if normalized.startswith("/") or (len(normalized) >= 2 and normalized[1] == ":"):
        raise UnsafeArchiveError(f"Archive entry uses an absolute path: {name}")

    collapsed = posixpath.normpath(normalized)
    if collapsed == ".." or collapsed.startswith("../"):
        raise UnsafeArchiveError(f"Archive entry escapes the project directory: {name}")
    if collapsed == ".":
        return None
    return collapsed


def _is_symlink(info: ZipInfo) -> bool:
    return stat.S_ISLNK(info.external_attr >> 16)


def _is_within(base: Path, target: Path) -> bool:
    try:
        target.relative_to(base)
        return True
    except ValueError:
        return False


class ArchiveExtractor:
    """Extracts ZIP archives into a sandboxed directory, all or nothing."""

    def __init__(
        self, *, max_entries: int | None = None, max_total_bytes: int | None = None
    ) -> None:
        self.max_entries = max_entries if max_entries is not None else get_max_archive_entries()
        self.max_total_bytes = (
            max_total_bytes if max_total_bytes is not None else get_max_extracted_bytes()
        )

    def extract(self, archive_path: Path | str, target_dir: Path | str) -> bool:
        """Extract ``archive_path`` into ``target_dir``.

        Args:
            archive_path: ZIP archive already persisted to local disk.
            target_dir: Directory to extract into; must be absent or empty.

        Returns:
            True once every entry has been written.

        Raises:
            ExtractionError: If the archive is unreadable or a write fails.
            UnsafeArchiveError: If any entry would land outside ``target_dir``,
                is a symbolic link, or the archive exceeds the size limits.
        """
        source = Path(archive_path)
        target = Path(target_dir)
        if target.exists() and (not target.is_dir() or any(target.iterdir())):
            raise ExtractionError(f"Extraction target {target.name} already has content")

        logger.info("Extracting %s into %s", source.name, target)
        try:
            with ZipFile(source) as archive:
                plan = self._plan(archive, target)
                target.mkdir(parents=True, exist_ok=True)
                for info, destination in plan:
                    self._write_entry(archive, info, destination)
        except _EXTRACTION_FAILURES as exc:
            remove_tree(target)
            raise ExtractionError(f"Could not extract {source.name}: {exc}") from exc
        except BaseException:
            # Covers unsafe entries as well as cancellation mid-write.
            remove_tree(target)
            raise

        logger.info("Extracted %d entries from %s", len(plan), source.name)
        return True

    def _plan(self, archive: ZipFile, target: Path) -> list[tuple[ZipInfo, Path]]:
        """Validate every entry and map it to its output path."""
        infos = archive.infolist()
        if len(infos) > self.max_entries:
            raise UnsafeArchiveError(
                f"Archive has {len(infos)} entries; the limit is {self.max_entries}"
            )

        root = target.resolve()
        plan: list[tuple[ZipInfo, Path]] = []
        total_bytes = 0
        for info in infos:
            relative = normalize_entry_name(info.filename)
            if relative is None:
                continue
            if _is_symlink(info):
                raise UnsafeArchiveError(f"Archive entry is a symbolic link: {info.filename}")

            destination = root.joinpath(*relative.split("/"))
            if not _is_within(root, destination.resolve()):
                raise UnsafeArchiveError(
                    f"Archive entry escapes the project directory: {info.filename}"
                )

            total_bytes += info.file_size
            if total_bytes > self.max_total_bytes:
                raise UnsafeArchiveError(
                    f"Archive expands beyond the {self.max_total_bytes} byte limit"
                )
            plan.append((info, destination))
        return plan

    @staticmethod
    def _write_entry(archive: ZipFile, info: ZipInfo, destination: Path) -> None:
        if info.is_dir():
            destination.mkdir(parents=True, exist_ok=True)
            return
        destination.parent.mkdir(parents=True, exist_ok=True)
        with archive.open(info) as source, destination.open("wb") as out:
            shutil.copyfileobj(source, out, _STREAM_CHUNK_SIZE)
