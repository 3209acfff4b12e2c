"""Exception hierarchy for configuration, parsing and chunking failures."""


class ChunkerError(Exception):
    """Base class for every error raised by the chunker."""


class ConfigValidationError(ChunkerError):
    """A language configuration is missing fields or holds invalid values."""


class ConfigSourceError(ChunkerError):
    """The language configuration source could not be read at all."""


class UnsupportedGrammarError(ChunkerError):
    """A configuration declares a grammar with no backing tree-sitter binding."""

    def __init__(self, grammar: str):
        super().__init__(f"unsupported grammar: {grammar}")
        self.grammar = grammar


class ParseError(ChunkerError):
    """Source could not be parsed; no chunks are produced for the call."""


class ChunkingCancelledError(ChunkerError):
    """Cancellation was requested before parsing started."""


class InvalidInputError(ChunkerError):
    """The source file reference is missing."""


class RegistryError(ChunkerError):
    """The chunker registry could not be built from any configuration."""
