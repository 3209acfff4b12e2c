"""Discover source files to chunk under a directory."""

import logging
from pathlib import Path
from typing import Iterator, List, Optional

from gitignore_parser import parse_gitignore

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDES = frozenset(
    {
        "node_modules",
        ".git",
        "__pycache__",
        ".pytest_cache",
        "venv",
        ".venv",
        "dist",
        "build",
        ".next",
        ".nuxt",
        "vendor",
    }
)


def iter_source_files(
    directory: Path,
    exclude_patterns: Optional[List[str]] = None,
    follow_gitignore: bool = True,
) -> Iterator[Path]:
    """Recursively yield files under a directory, in sorted order.

    Args:
        directory: Directory to scan
        exclude_patterns: Glob patterns to exclude (e.g., "*.test.js")
        follow_gitignore: Whether to respect the top-level .gitignore

    Yields:
        Paths of files that are not excluded
    """
    dir_path = Path(directory)

    gitignore_matcher = None
    if follow_gitignore:
        gitignore_path = dir_path / ".gitignore"
        if gitignore_path.exists():
            gitignore_matcher = parse_gitignore(gitignore_path)
            logger.info(f"Loaded .gitignore from {gitignore_path}")

    for file_path in sorted(dir_path.rglob("*")):
        if not file_path.is_file():
            continue

        relative_parts = file_path.relative_to(dir_path).parts
        if any(part in DEFAULT_EXCLUDES for part in relative_parts):
            continue

        if gitignore_matcher and gitignore_matcher(str(file_path)):
            continue

        if exclude_patterns and any(file_path.match(pattern) for pattern in exclude_patterns):
            continue

        yield file_path
