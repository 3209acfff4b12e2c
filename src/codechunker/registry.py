"""Route source files to the chunker configured for their language."""

import dataclasses
import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

from .ast_chunker import GenericChunker
from .config import get_env_config
from .errors import ChunkerError, InvalidInputError, RegistryError, UnsupportedGrammarError
from .fallback import UNKNOWN_LANGUAGE, FallbackChunker
from .grammars import LanguageConfig, default_languages_dir, load_language_configs
from .minified import is_minified, is_minified_extension
from .models import ChunkResult, SourceFile
from .parsers import ParserPool, is_grammar_supported

logger = logging.getLogger(__name__)

Chunker = Union[GenericChunker, FallbackChunker]

# Extension table consulted when no configuration claims an extension
LEGACY_EXTENSIONS = {
    ".py": "python",
    ".pyi": "python",
    ".pyw": "python",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".go": "go",
    ".java": "java",
    ".cs": "csharp",
    ".rs": "rust",
    ".c": "c",
    ".h": "c",
    ".cc": "cpp",
    ".cpp": "cpp",
    ".cxx": "cpp",
    ".hpp": "cpp",
    ".hh": "cpp",
    ".php": "php",
}


def detect_language(file_path: str) -> str:
    """Detect the language id from a file extension, or 'unknown'."""
    extension = Path(file_path).suffix.lower()
    return LEGACY_EXTENSIONS.get(extension, UNKNOWN_LANGUAGE)


class ChunkerRegistry:
    """Registry of configured chunkers keyed by language id.

    Built once, then read-only: concurrent ``chunk`` calls are safe. The
    shared parser pool serialises only the parse step per grammar.
    """

    def __init__(
        self,
        configs: Iterable[LanguageConfig],
        parser_pool: Optional[ParserPool] = None,
        skip_minified: bool = True,
        config_errors: Optional[Iterable[ChunkerError]] = None,
    ):
        """Register a chunker for every usable configuration.

        Args:
            configs: Language configurations, registered in order
            parser_pool: Parser pool shared by all chunkers
            skip_minified: Send minified files to the fallback chunker
            config_errors: Errors from loading configs, kept as warnings

        Raises:
            RegistryError: If no configuration could be registered
        """
        self.parser_pool = parser_pool or ParserPool()
        self.skip_minified = skip_minified
        self.fallback = FallbackChunker()
        self.chunkers: Dict[str, GenericChunker] = {}
        self.extension_map: Dict[str, str] = {}
        self.warnings: List[ChunkerError] = []

        for error in config_errors or []:
            self._warn(error)

        for config in configs:
            self._register(config)

        if not self.chunkers:
            if self.warnings:
                raise RegistryError(f"failed to load any language configs: {self.warnings[0]}")
            raise RegistryError("no language configs found")

        logger.info(
            f"Registered {len(self.chunkers)} languages covering "
            f"{len(self.extension_map)} extensions"
        )

    @classmethod
    def from_directory(
        cls, directory: Optional[Path] = None, **kwargs
    ) -> "ChunkerRegistry":
        """Build a registry from the YAML configs in a directory.

        Raises:
            ConfigSourceError: If the directory cannot be read
            RegistryError: If no configuration could be registered
        """
        directory = Path(directory) if directory else default_languages_dir()
        configs, errors = load_language_configs(directory)
        return cls(configs, config_errors=errors, **kwargs)

    @classmethod
    def from_env(cls) -> "ChunkerRegistry":
        """Build a registry from the environment configuration."""
        env = get_env_config()
        return cls.from_directory(
            env["languages_dir"],
            parser_pool=ParserPool(env["parser_pool_size"]),
            skip_minified=env["skip_minified"],
        )

    def _warn(self, error: ChunkerError) -> None:
        logger.warning(f"Language config warning: {error}")
        self.warnings.append(error)

    def _register(self, config: LanguageConfig) -> None:
        if not is_grammar_supported(config.grammar):
            self._warn(UnsupportedGrammarError(config.grammar))
            return

        if config.language in self.chunkers:
            self._warn(ChunkerError(f"duplicate language {config.language}, keeping first"))
            return

        self.chunkers[config.language] = GenericChunker(config, self.parser_pool)

        # First registered config wins an extension
        for ext in config.extensions:
            owner = self.extension_map.get(ext)
            if owner is not None and owner != config.language:
                self._warn(
                    ChunkerError(
                        f"extension {ext} of {config.language} already registered "
                        f"by {owner}, keeping {owner}"
                    )
                )
                continue
            self.extension_map[ext] = config.language

        logger.debug(f"Registered chunker for {config.language} ({config.grammar})")

    def get_language_for_extension(self, ext: str) -> Optional[str]:
        """Language id for an extension (leading dot, case-insensitive)."""
        return self.extension_map.get(ext.lower())

    def get_chunker_for_extension(self, ext: str) -> Tuple[Chunker, bool]:
        """Chunker for an extension, and whether a configured one was found."""
        language = self.get_language_for_extension(ext)
        chunker = self.chunkers.get(language) if language else None
        if chunker is None:
            return self.fallback, False
        return chunker, True

    def supported_languages(self) -> List[str]:
        return sorted(self.chunkers)

    def supported_extensions(self) -> List[str]:
        return sorted(self.extension_map)

    def is_supported(self, language: str) -> bool:
        return language in self.chunkers

    def is_supported_file(self, file_path: str) -> bool:
        return self._resolve(file_path)[0] is not None

    def _resolve(self, file_path: str) -> Tuple[Optional[GenericChunker], str]:
        extension = Path(file_path).suffix.lower()
        language = self.extension_map.get(extension)
        if language is not None:
            return self.chunkers[language], language

        language = detect_language(file_path)
        return self.chunkers.get(language), language

    def chunk(
        self, source_file: SourceFile, cancel_event: Optional[threading.Event] = None
    ) -> ChunkResult:
        """Chunk a file with its language's chunker, or the fallback.

        Args:
            source_file: File to chunk
            cancel_event: Optional cooperative cancellation signal

        Returns:
            The chunk result; ``result.file.language`` holds the routed language

        Raises:
            InvalidInputError: If no source file is given
            ChunkingCancelledError: If cancelled before parsing
            ParseError: If the source cannot be parsed
        """
        if source_file is None:
            raise InvalidInputError("file is required")

        chunker, language = self._resolve(source_file.path)
        routed = dataclasses.replace(source_file, language=language)

        if chunker is not None and self.skip_minified and (
            is_minified_extension(source_file.path)
            or is_minified(source_file.content, source_file.path)
        ):
            logger.info(f"Minified file {source_file.path}, using fallback chunker")
            chunker = None

        if chunker is None:
            return self.fallback.chunk(routed, cancel_event)
        return chunker.chunk(routed, cancel_event)


_registry: Optional[ChunkerRegistry] = None
_registry_lock = threading.Lock()


def get_chunker_registry() -> ChunkerRegistry:
    """Get the process-wide registry, built from the environment on first use."""
    global _registry
    with _registry_lock:
        if _registry is None:
            _registry = ChunkerRegistry.from_env()
        return _registry
