import pytest

from codechunker.models import Chunk, ChunkLevel
from codechunker.splitter import MIN_MAX_TOKENS, TRUNCATION_MARKER, Splitter
from codechunker.tokens import max_chars_for_tokens


def word_tokens(text):
    return len(text.split())


def make_chunk(level, lines, start_line=10, name="run"):
    content = "\n".join(lines)
    return Chunk(
        file_path="src/big.py",
        start_line=start_line,
        end_line=start_line + len(lines) - 1,
        level=level,
        language="python",
        content=content,
        name=name,
    )


def assert_windows_cover(chunk, windows):
    assert windows[0].start_line == chunk.start_line
    assert windows[-1].end_line == chunk.end_line
    for previous, current in zip(windows, windows[1:]):
        assert current.start_line > previous.start_line
        assert current.start_line <= previous.end_line + 1
    assert [w.index for w in windows] == list(range(len(windows)))
    for window in windows:
        assert window.content
        assert window.is_partial
        assert window.split_parent_id == chunk.id


def test_budget_is_floored():
    assert Splitter(max_tokens=10).max_tokens == MIN_MAX_TOKENS


def test_small_chunks_pass_through():
    splitter = Splitter(max_tokens=500)
    method = make_chunk(ChunkLevel.METHOD, ["def run():", "    return 1"])
    splits = splitter.split_method(method)
    assert len(splits) == 1
    assert splits[0].content == method.content
    assert not splits[0].is_partial
    assert splits[0].split_parent_id is None


def test_method_split_into_overlapping_windows():
    splitter = Splitter(max_tokens=500, overlap_tokens=100, estimator=word_tokens)
    method = make_chunk(ChunkLevel.METHOD, ["a b c d e"] * 1000)

    windows = splitter.split_method(method)

    assert len(windows) > 1
    assert_windows_cover(method, windows)
    for window in windows:
        assert word_tokens(window.content) <= 500
    for previous, current in zip(windows, windows[1:]):
        assert previous.end_line - current.start_line + 1 == 20


def test_window_content_matches_line_span():
    splitter = Splitter(max_tokens=100, overlap_tokens=10, estimator=word_tokens)
    lines = [f"line {i} x x x x x x x x" for i in range(60)]
    method = make_chunk(ChunkLevel.METHOD, lines, start_line=1)

    windows = splitter.split_method(method)

    assert_windows_cover(method, windows)
    for window in windows:
        assert window.content.split("\n") == lines[window.start_line - 1 : window.end_line]


def test_overlap_larger_than_window_still_advances():
    splitter = Splitter(max_tokens=200, overlap_tokens=500, estimator=word_tokens)
    method = make_chunk(ChunkLevel.METHOD, ["a b c d e"] * 50)
    windows = splitter.split_method(method)
    assert_windows_cover(method, windows)


def test_single_overlong_line_terminates():
    splitter = Splitter(max_tokens=200, estimator=word_tokens)
    method = make_chunk(ChunkLevel.METHOD, ["x " * 10000])
    windows = splitter.split_method(method)
    assert len(windows) == 1
    assert windows[0].is_partial
    assert windows[0].end_line == method.end_line


def test_class_chunks_are_truncated_at_a_line_boundary():
    splitter = Splitter(max_tokens=MIN_MAX_TOKENS)
    lines = [f"    field_{i} = {i}" for i in range(200)]
    cls = make_chunk(ChunkLevel.CLASS, ["class Big:"] + lines, name="Big")

    split = splitter.handle_class_chunk(cls)

    assert split.is_partial
    assert split.content.endswith(TRUNCATION_MARKER)
    kept = split.content[: -len(TRUNCATION_MARKER)]
    assert len(kept) <= max_chars_for_tokens(MIN_MAX_TOKENS)
    assert cls.content.startswith(kept)
    assert cls.content[len(kept)] == "\n"
    assert (split.start_line, split.end_line) == (cls.start_line, cls.end_line)


def test_truncated_single_line_keeps_prefix():
    splitter = Splitter(max_tokens=MIN_MAX_TOKENS)
    cls = make_chunk(ChunkLevel.CLASS, ["x" * 5000])
    split = splitter.handle_class_chunk(cls)
    assert split.content == "x" * max_chars_for_tokens(MIN_MAX_TOKENS) + TRUNCATION_MARKER


def test_file_chunk_size_ceiling():
    splitter = Splitter(max_file_size=1000)
    file_chunk = make_chunk(ChunkLevel.FILE, ["print(1)"], start_line=1, name="src/big.py")
    assert splitter.handle_file_chunk(file_chunk, file_size=1001) is None
    kept = splitter.handle_file_chunk(file_chunk, file_size=1000)
    assert kept.content == file_chunk.content
    assert not kept.is_partial


@pytest.mark.parametrize("file_size, expected_file_chunks", [(50, 1), (10**9, 0)])
def test_split_chunks_applies_level_policies(file_size, expected_file_chunks):
    splitter = Splitter(max_tokens=MIN_MAX_TOKENS, overlap_tokens=20, estimator=word_tokens)
    file_chunk = make_chunk(ChunkLevel.FILE, ["import os"], start_line=1, name="src/big.py")
    cls = make_chunk(ChunkLevel.CLASS, ["w " * 30] * 10, start_line=2, name="Big")
    method = make_chunk(ChunkLevel.METHOD, ["w " * 30] * 10, start_line=3, name="run")

    results = splitter.split_chunks([file_chunk, cls, method], file_size)

    levels = [c.level for c in results]
    assert levels.count(ChunkLevel.FILE) == expected_file_chunks
    assert levels.count(ChunkLevel.CLASS) == 1
    assert levels.count(ChunkLevel.METHOD) > 1

    truncated = next(c for c in results if c.level is ChunkLevel.CLASS)
    assert truncated.id == cls.id
    assert truncated.is_partial

    windows = [c for c in results if c.level is ChunkLevel.METHOD]
    assert [w.split_index for w in windows] == list(range(len(windows)))
    assert all(w.split_parent_id == method.id for w in windows)
    assert len({w.id for w in windows}) == len(windows)
    # Originals are untouched
    assert not method.is_partial and method.split_parent_id is None
