import textwrap
import threading

import pytest

from codechunker.grammars import default_languages_dir
from codechunker.models import ChunkLevel, SourceFile
from codechunker.registry import ChunkerRegistry


@pytest.fixture(scope="session")
def registry():
    return ChunkerRegistry.from_directory(default_languages_dir())


@pytest.fixture
def chunk_source(registry):
    """Chunk dedented source text through the shipped registry."""

    def _chunk(path, text, cancel_event=None):
        source = SourceFile(path=path, content=textwrap.dedent(text).lstrip("\n").encode())
        return registry.chunk(source, cancel_event)

    return _chunk


def summarize(result):
    """(level, name, parent name) triples, in emission order."""
    names = {chunk.id: chunk.name for chunk in result.chunks}
    return [
        (chunk.level, chunk.name, names.get(chunk.parent_id) if chunk.parent_id else None)
        for chunk in result.chunks
    ]


def assert_well_formed(result):
    """Single parentless file chunk, resolvable parents, pre-order, valid lines."""
    file_chunks = [c for c in result.chunks if c.level is ChunkLevel.FILE]
    assert len(file_chunks) == 1
    assert result.chunks[0] is file_chunks[0]
    assert file_chunks[0].parent_id is None

    seen = set()
    for chunk in result.chunks:
        chunk.validate()
        if chunk.level is not ChunkLevel.FILE:
            assert chunk.parent_id in seen
        seen.add(chunk.id)


class CancelAfter(threading.Event):
    """Event reporting cancellation once it has been polled ``checks`` times."""

    def __init__(self, checks):
        super().__init__()
        self.remaining = checks

    def is_set(self):
        self.remaining -= 1
        return self.remaining < 0
