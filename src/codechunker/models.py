"""Data models for extracted code chunks."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

import blake3

# Hex characters kept from each blake3 digest
HASH_LENGTH = 32


class ChunkLevel(str, Enum):
    """Granularity of a code chunk."""

    FILE = "file"
    CLASS = "class"
    METHOD = "method"
    BLOCK = "block"


def _digest(data: str) -> str:
    return blake3.blake3(data.encode("utf-8")).hexdigest()[:HASH_LENGTH]


def generate_chunk_id(
    file_path: str, level: ChunkLevel, start_line: int, end_line: int, name: str
) -> str:
    """Deterministic chunk identifier derived from its location and name."""
    return _digest(f"{file_path}:{level.value}:{start_line}:{end_line}:{name}")


def generate_content_hash(content: str) -> str:
    """Location independent hash of chunk content."""
    return _digest(content)


@dataclass
class SourceFile:
    """A file to be chunked, already loaded into memory."""

    path: str
    content: bytes
    language: str = ""
    last_modified: Optional[datetime] = None

    @classmethod
    def from_path(cls, path: str) -> "SourceFile":
        """Read a file from disk along with its modification time."""
        file_path = Path(path)
        stat = file_path.stat()
        return cls(
            path=str(path),
            content=file_path.read_bytes(),
            last_modified=datetime.fromtimestamp(stat.st_mtime),
        )

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class Chunk:
    """Represents a semantic chunk of code.

    ``id`` and ``content_hash`` are computed on construction and never
    passed in, so a chunk is hashed before it can be appended to a result.
    Derived chunks (see ``dataclasses.replace``) get fresh hashes.
    """

    file_path: str
    start_line: int  # 1-indexed, inclusive
    end_line: int  # 1-indexed, inclusive
    level: ChunkLevel
    language: str
    content: str
    name: str
    signature: str = ""
    parent_id: Optional[str] = None  # None only for the file-level chunk
    doc_comment: Optional[str] = None
    last_modified: Optional[datetime] = None

    # Populated only for chunks produced by the splitter
    split_parent_id: Optional[str] = None
    split_index: int = 0
    is_partial: bool = False

    id: str = field(init=False, compare=False)
    content_hash: str = field(init=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "id",
            generate_chunk_id(
                self.file_path, self.level, self.start_line, self.end_line, self.name
            ),
        )
        object.__setattr__(self, "content_hash", generate_content_hash(self.content))

    def line_count(self) -> int:
        return self.end_line - self.start_line + 1

    def validate(self) -> None:
        """Raise ValueError if the chunk violates its line or path constraints."""
        if not self.file_path:
            raise ValueError("file path is required")
        if self.start_line < 1:
            raise ValueError("start line must be >= 1")
        if self.end_line < self.start_line:
            raise ValueError("end line must be >= start line")


@dataclass
class ChunkResult:
    """Chunks extracted from a single file, in pre-order."""

    file: SourceFile
    chunks: List[Chunk] = field(default_factory=list)
    errors: List[Exception] = field(default_factory=list)  # non-fatal only
    truncated: bool = False  # walk stopped early by cancellation

    def file_chunk(self) -> Optional[Chunk]:
        for chunk in self.chunks:
            if chunk.level is ChunkLevel.FILE:
                return chunk
        return None

    def by_id(self) -> Dict[str, Chunk]:
        return {chunk.id: chunk for chunk in self.chunks}
