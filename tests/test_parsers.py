import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from codechunker.errors import ChunkingCancelledError, UnsupportedGrammarError
from codechunker.parsers import ParserPool, is_grammar_supported, load_language, supported_grammars


def test_supported_grammars():
    assert "python" in supported_grammars()
    assert "c_sharp" in supported_grammars()
    assert is_grammar_supported("tsx")
    assert not is_grammar_supported("cobol")


def test_load_language_is_cached():
    assert load_language("go") is load_language("go")


def test_unsupported_grammar():
    with pytest.raises(UnsupportedGrammarError):
        load_language("cobol")
    with pytest.raises(UnsupportedGrammarError):
        ParserPool().parse("cobol", b"x")


@pytest.mark.parametrize("grammar", supported_grammars())
def test_every_grammar_parses(grammar):
    tree = ParserPool().parse(grammar, b"\n")
    assert tree.root_node is not None


def test_cancelled_before_parse():
    event = threading.Event()
    event.set()
    with pytest.raises(ChunkingCancelledError):
        ParserPool().parse("python", b"x = 1", event)


def test_pool_never_exceeds_its_size():
    pool = ParserPool(size_per_grammar=2)
    source = b"def f():\n    return 1\n" * 200

    with ThreadPoolExecutor(max_workers=8) as executor:
        trees = list(executor.map(lambda _: pool.parse("python", source), range(32)))

    assert all(not tree.root_node.has_error for tree in trees)
    assert pool._created["python"] <= 2
