"""Keep chunks within an embedding model's token budget.

File and class chunks are truncated at a line boundary. Method (and block)
chunks are split into overlapping windows of whole lines so that context
is preserved across window boundaries.
"""

import dataclasses
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from .config import DEFAULT_MAX_FILE_SIZE, DEFAULT_MAX_TOKENS, DEFAULT_OVERLAP_TOKENS
from .models import Chunk, ChunkLevel
from .tokens import estimate_tokens, max_chars_for_tokens

logger = logging.getLogger(__name__)

# Smallest token budget a splitter accepts
MIN_MAX_TOKENS = 100

# Smallest window target, whatever the overlap
MIN_TARGET_TOKENS = 100

TRUNCATION_MARKER = "\n... [truncated]"


@dataclass
class SplitChunk:
    """A chunk that may be part of a split."""

    content: str
    start_line: int
    end_line: int
    index: int = 0
    is_partial: bool = False
    split_parent_id: Optional[str] = None

    def to_chunk(self, original: Chunk) -> Chunk:
        """Derive a new chunk from the original; the original is untouched."""
        return dataclasses.replace(
            original,
            content=self.content,
            start_line=self.start_line,
            end_line=self.end_line,
            split_parent_id=self.split_parent_id,
            split_index=self.index,
            is_partial=self.is_partial,
        )


def _whole(chunk: Chunk) -> SplitChunk:
    return SplitChunk(content=chunk.content, start_line=chunk.start_line, end_line=chunk.end_line)


class Splitter:
    """Split or truncate chunks that exceed a token budget."""

    def __init__(
        self,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        overlap_tokens: int = DEFAULT_OVERLAP_TOKENS,
        estimator: Callable[[str], int] = estimate_tokens,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    ):
        """Initialize the splitter.

        Args:
            max_tokens: Token budget per chunk (floored at MIN_MAX_TOKENS)
            overlap_tokens: Tokens shared between adjacent method windows
            estimator: Function estimating the token count of a text
            max_file_size: Files larger than this (bytes) get no file chunk
        """
        self.max_tokens = max(max_tokens, MIN_MAX_TOKENS)
        self.overlap_tokens = max(overlap_tokens, 0)
        self.estimator = estimator
        self.max_file_size = max_file_size

    def handle_file_chunk(self, chunk: Chunk, file_size: int) -> Optional[SplitChunk]:
        """Process a file-level chunk.

        Returns None if the file is too large to get a file-level chunk,
        otherwise the chunk as-is or truncated to fit the budget.
        """
        if file_size > self.max_file_size:
            logger.debug(f"Skipping file chunk for {chunk.file_path} ({file_size} bytes)")
            return None
        return self._truncate(chunk)

    def handle_class_chunk(self, chunk: Chunk) -> SplitChunk:
        """Process a class-level chunk, truncating it if over budget."""
        return self._truncate(chunk)

    def split_method(self, chunk: Chunk) -> List[SplitChunk]:
        """Split a method-level chunk into overlapping windows.

        Returns a single non-partial split if the chunk fits the budget.
        """
        if self.estimator(chunk.content) <= self.max_tokens:
            return [_whole(chunk)]
        return self._split_at_boundaries(chunk)

    def split_chunks(self, chunks: List[Chunk], file_size: int) -> List[Chunk]:
        """Apply the per-level policy to a whole chunk list.

        Args:
            chunks: Chunks of one file, in extraction order
            file_size: Raw size of the source file in bytes

        Returns:
            New chunk list with oversized chunks truncated or split
        """
        results: List[Chunk] = []
        for chunk in chunks:
            if chunk.level is ChunkLevel.FILE:
                split = self.handle_file_chunk(chunk, file_size)
                if split is not None:
                    results.append(split.to_chunk(chunk))
            elif chunk.level is ChunkLevel.CLASS:
                results.append(self.handle_class_chunk(chunk).to_chunk(chunk))
            else:
                results.extend(split.to_chunk(chunk) for split in self.split_method(chunk))
        return results

    def _truncate(self, chunk: Chunk) -> SplitChunk:
        content = chunk.content
        if self.estimator(content) <= self.max_tokens:
            return _whole(chunk)

        max_chars = max_chars_for_tokens(self.max_tokens)
        if max_chars >= len(content):
            max_chars = len(content) - 1

        truncated = content[:max_chars]

        # Keep complete lines only; a single over-long first line keeps its prefix
        last_newline = truncated.rfind("\n")
        if last_newline > 0:
            truncated = truncated[:last_newline]

        logger.debug(
            f"Truncated {chunk.level.value} chunk '{chunk.name}' from "
            f"{len(content)} to {len(truncated)} chars"
        )
        return SplitChunk(
            content=truncated + TRUNCATION_MARKER,
            start_line=chunk.start_line,
            end_line=chunk.end_line,
            is_partial=True,
        )

    def _split_at_boundaries(self, chunk: Chunk) -> List[SplitChunk]:
        lines = chunk.content.split("\n")
        target_tokens = max(self.max_tokens - self.overlap_tokens, MIN_TARGET_TOKENS)

        splits: List[SplitChunk] = []
        current_start = 0

        while current_start < len(lines):
            current_end = self._find_split_end(lines, current_start, target_tokens)

            splits.append(
                SplitChunk(
                    content="\n".join(lines[current_start:current_end]),
                    start_line=chunk.start_line + current_start,
                    end_line=chunk.start_line + current_end - 1,
                    index=len(splits),
                    is_partial=True,
                    split_parent_id=chunk.id,
                )
            )

            if current_end >= len(lines):
                break

            next_start = current_end - self._overlap_lines(lines, current_start, current_end)
            if next_start <= current_start:
                next_start = current_end
            current_start = next_start

        logger.debug(f"Split method '{chunk.name}' into {len(splits)} windows")
        return splits

    def _find_split_end(self, lines: List[str], start: int, target_tokens: int) -> int:
        """Exclusive end index of the window starting at ``start``.

        Always includes at least one line, even if it alone exceeds the target.
        """
        current_tokens = 0
        end = start + 1

        for i in range(start, len(lines)):
            line_tokens = self.estimator(lines[i])
            if current_tokens + line_tokens > target_tokens and i > start:
                break
            current_tokens += line_tokens
            end = i + 1

        return end

    def _overlap_lines(self, lines: List[str], window_start: int, window_end: int) -> int:
        """Number of trailing window lines covering ``overlap_tokens``."""
        tokens = 0
        count = 0
        i = window_end - 1
        while i > window_start and tokens < self.overlap_tokens:
            tokens += self.estimator(lines[i])
            count += 1
            i -= 1
        return count
