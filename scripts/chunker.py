#!/usr/bin/env python3
"""Standalone chunking script - chunks a directory, logs a summary and exits."""

import logging
import os
import sys
from collections import Counter
from pathlib import Path

# Setup logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Chunk every file under WORKSPACE_PATH and report per-level counts."""
    from codechunker.config import get_env_config
    from codechunker.errors import ChunkerError
    from codechunker.models import SourceFile
    from codechunker.registry import ChunkerRegistry
    from codechunker.scanner import iter_source_files
    from codechunker.splitter import Splitter

    config = get_env_config()
    workspace_path = Path(os.getenv("WORKSPACE_PATH", "."))
    exclude_patterns = [
        p.strip() for p in os.getenv("EXCLUDE_PATTERNS", "").split(",") if p.strip()
    ]

    if not workspace_path.exists():
        logger.error(f"Workspace path does not exist: {workspace_path}")
        return 1

    try:
        registry = ChunkerRegistry.from_env()
    except ChunkerError as e:
        logger.error(f"Could not build chunker registry: {e}")
        return 1

    splitter = Splitter(
        max_tokens=config["max_tokens"],
        overlap_tokens=config["overlap_tokens"],
        max_file_size=config["max_file_size"],
    )

    logger.info(f"Chunking {workspace_path} ({len(registry.supported_languages())} languages)")

    levels: Counter = Counter()
    languages: Counter = Counter()
    failed = 0
    for file_path in iter_source_files(workspace_path, exclude_patterns=exclude_patterns):
        if not registry.is_supported_file(str(file_path)):
            continue
        try:
            source_file = SourceFile.from_path(str(file_path))
            result = registry.chunk(source_file)
        except (ChunkerError, OSError) as e:
            logger.error(f"Error chunking {file_path}: {e}")
            failed += 1
            continue

        chunks = splitter.split_chunks(result.chunks, source_file.size)
        languages[result.file.language] += 1
        levels.update(chunk.level.value for chunk in chunks)

    logger.info(f"Files per language: {dict(languages)}")
    logger.info(f"Chunks per level: {dict(levels)}")
    if failed:
        logger.warning(f"{failed} files could not be chunked")
    return 0


if __name__ == "__main__":
    sys.exit(main())
