"""Universal chunker for files without a language-specific configuration."""

import logging
import threading
from typing import Optional

from .ast_chunker import file_end_line
from .errors import ChunkingCancelledError, InvalidInputError
from .models import Chunk, ChunkLevel, ChunkResult, SourceFile

logger = logging.getLogger(__name__)

UNKNOWN_LANGUAGE = "unknown"


class FallbackChunker:
    """Produce exactly one file-level chunk covering the whole input.

    Unlike GenericChunker, an empty file still yields a (blank) file chunk,
    so every file that reaches the fallback is represented in the index.
    """

    @property
    def language(self) -> str:
        return UNKNOWN_LANGUAGE

    def chunk(
        self, source_file: SourceFile, cancel_event: Optional[threading.Event] = None
    ) -> ChunkResult:
        if cancel_event is not None and cancel_event.is_set():
            raise ChunkingCancelledError("cancelled before fallback chunking")
        if source_file is None:
            raise InvalidInputError("source file is required")

        content = source_file.content.decode("utf-8", errors="replace")
        chunk = Chunk(
            file_path=source_file.path,
            start_line=1,
            end_line=file_end_line(content),
            level=ChunkLevel.FILE,
            language=source_file.language or UNKNOWN_LANGUAGE,
            content=content,
            name=source_file.path,
            last_modified=source_file.last_modified,
        )
        logger.debug(f"Fallback chunk for {source_file.path} ({chunk.line_count()} lines)")
        return ChunkResult(file=source_file, chunks=[chunk])
