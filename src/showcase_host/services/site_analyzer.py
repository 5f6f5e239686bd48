"""Classify the contents of an extracted project tree and pick its entry point."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from showcase_host.models.ingest import AnalysisError, FileAnalysis

logger = logging.getLogger(__name__)

HTML_EXTENSIONS = (".html", ".htm")
INDEX_FILENAME = "index.html"


def is_html_file(name: str) -> bool:
    return name.lower().endswith(HTML_EXTENSIONS)


def choose_entry_point(html_files: list[str] | tuple[str, ...]) -> str | None:
    """Pick the HTML file a browser should load first.

    A root-level ``index.html`` (any case) wins. Otherwise the lexicographically
    smallest nested ``index.html`` is used, and failing that the lexicographically
    smallest HTML file of any name.

    Args:
        html_files: Relative POSIX paths of every HTML file in the tree.

    Returns:
        The chosen relative path, or None when there are no HTML files.
    """
    ordered = sorted(html_files)
    for path in ordered:
        if "/" not in path and path.lower() == INDEX_FILENAME:
            return path

    nested_indexes = [
        path for path in ordered if path.rsplit("/", 1)[-1].lower() == INDEX_FILENAME
    ]
    if nested_indexes:
        return nested_indexes[0]
    return ordered[0] if ordered else None


class SiteAnalyzer:
    """Read-only inspector for extracted project trees."""

    def analyze(self, target_dir: Path | str) -> FileAnalysis:
        """Walk ``target_dir`` and classify what it contains.

        Args:
            target_dir: Root of an extracted project.

        Returns:
            FileAnalysis describing root entries, HTML files and the entry point.

        Raises:
            AnalysisError: If the tree or any directory inside it cannot be read.
        """
        root = Path(target_dir)
        if not root.is_dir():
            raise AnalysisError(f"Project directory {root.name} does not exist")

        try:
            with os.scandir(root) as entries:
                root_entries = sorted(entry.name for entry in entries)
        except OSError as exc:
            raise AnalysisError(f"Could not read project directory {root.name}: {exc}") from exc

        html_files: list[str] = []
        file_count = 0
        for dirpath, dirnames, filenames in os.walk(root, onerror=_raise_analysis_error):
            dirnames.sort()
            relative_dir = Path(dirpath).relative_to(root).as_posix()
            for filename in sorted(filenames):
                file_count += 1
                if is_html_file(filename):
                    relative = filename if relative_dir == "." else f"{relative_dir}/{filename}"
                    html_files.append(relative)

        html_files.sort()
        entry_point = choose_entry_point(html_files)
        logger.info(
            "Analyzed %s: %d root entries, %d HTML files, entry point %s",
            root.name,
            len(root_entries),
            len(html_files),
            entry_point,
        )
        return FileAnalysis(
            root_entries=tuple(root_entries),
            html_files=tuple(html_files),
            entry_point=entry_point,
            file_count=file_count,
        )


def _raise_analysis_error(error: OSError) -> None:
    raise AnalysisError(f"Could not read {error.filename}: {error.strerror}") from error
