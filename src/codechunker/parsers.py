"""Tree-sitter grammar bindings and a pooled, thread-safe parser front end."""

import logging
import queue
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

import tree_sitter_c as tsc
import tree_sitter_c_sharp as tscsharp
import tree_sitter_cpp as tscpp
import tree_sitter_go as tsgo
import tree_sitter_java as tsjava
import tree_sitter_javascript as tsjavascript
import tree_sitter_php as tsphp
import tree_sitter_python as tspython
import tree_sitter_rust as tsrust
import tree_sitter_typescript as tstypescript
from tree_sitter import Language, Parser, Tree

from .errors import ChunkingCancelledError, ParseError, UnsupportedGrammarError

logger = logging.getLogger(__name__)

# Grammar id -> binding module
GRAMMAR_MODULES = {
    "python": tspython,
    "javascript": tsjavascript,
    "typescript": tstypescript,
    "tsx": tstypescript,
    "php": tsphp,
    "go": tsgo,
    "rust": tsrust,
    "java": tsjava,
    "cpp": tscpp,
    "c": tsc,
    "c_sharp": tscsharp,
}

# Modules that use non-standard language function names
LANGUAGE_FUNCTION_OVERRIDES = {
    "typescript": "language_typescript",
    "tsx": "language_tsx",
    "php": "language_php",
}

_LANGUAGE_CACHE: Dict[str, Language] = {}
_LANGUAGE_LOCK = threading.Lock()


def is_grammar_supported(grammar: str) -> bool:
    return grammar in GRAMMAR_MODULES


def supported_grammars() -> List[str]:
    return sorted(GRAMMAR_MODULES)


def load_language(grammar: str) -> Language:
    """Load (and cache) the tree-sitter Language for a grammar id.

    Raises:
        UnsupportedGrammarError: If no binding exists for the grammar
    """
    with _LANGUAGE_LOCK:
        if grammar in _LANGUAGE_CACHE:
            return _LANGUAGE_CACHE[grammar]

        module = GRAMMAR_MODULES.get(grammar)
        if module is None:
            raise UnsupportedGrammarError(grammar)

        func_name = LANGUAGE_FUNCTION_OVERRIDES.get(grammar, "language")
        lang_func = getattr(module, func_name, None)
        if lang_func is None:
            logger.warning(f"Module for {grammar} has no function '{func_name}'")
            raise UnsupportedGrammarError(grammar)

        language = Language(lang_func())
        _LANGUAGE_CACHE[grammar] = language
        logger.debug(f"Loaded tree-sitter grammar: {grammar}")
        return language


class ParserPool:
    """Pool of tree-sitter parsers keyed by grammar id.

    Parsers are not reentrant, so every parse borrows one instance
    exclusively. Parsing the same grammar from several threads serialises
    once all ``size_per_grammar`` instances are in use; tree walking after
    the parse needs no parser and runs unguarded.
    """

    def __init__(self, size_per_grammar: int = 1):
        self.size_per_grammar = max(1, size_per_grammar)
        self._pools: Dict[str, "queue.Queue[Parser]"] = {}
        self._created: Dict[str, int] = {}
        self._lock = threading.Lock()

    def _new_parser(self, grammar: str) -> Parser:
        parser = Parser()
        parser.language = load_language(grammar)
        return parser

    @contextmanager
    def acquire(self, grammar: str) -> Iterator[Parser]:
        """Borrow a parser for ``grammar`` for the duration of the block."""
        with self._lock:
            pool = self._pools.get(grammar)
            if pool is None:
                # Fail before registering a pool for an unknown grammar
                load_language(grammar)
                pool = queue.Queue()
                self._pools[grammar] = pool
                self._created[grammar] = 0
            if pool.empty() and self._created[grammar] < self.size_per_grammar:
                pool.put(self._new_parser(grammar))
                self._created[grammar] += 1

        parser = pool.get()
        try:
            yield parser
        finally:
            pool.put(parser)

    def parse(
        self,
        grammar: str,
        source: bytes,
        cancel_event: Optional[threading.Event] = None,
    ) -> Tree:
        """Parse source bytes with the named grammar.

        Args:
            grammar: Tree-sitter grammar id
            source: Source code bytes
            cancel_event: Optional cancellation signal checked before parsing

        Returns:
            Parsed syntax tree (possibly containing error nodes)

        Raises:
            ChunkingCancelledError: If cancellation was requested before parsing
            UnsupportedGrammarError: If the grammar has no binding
            ParseError: If tree-sitter fails to produce a tree
        """
        if cancel_event is not None and cancel_event.is_set():
            raise ChunkingCancelledError(f"cancelled before parsing {grammar} source")

        with self.acquire(grammar) as parser:
            try:
                tree = parser.parse(source)
            except Exception as e:
                raise ParseError(f"failed to parse {grammar}: {e}") from e

        if tree is None:
            raise ParseError(f"failed to parse {grammar}: no tree produced")
        return tree
