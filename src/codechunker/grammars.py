"""Declarative language configuration for tree-sitter chunk extraction.

Each supported language is described by a YAML document mapping grammar
node types to chunk levels, for example::

    language: go
    display_name: Go
    extensions: [.go]
    tree_sitter:
      grammar: go
    chunk_mappings:
      class: [struct_type, interface_type]
      method: [function_declaration, method_declaration]
    extraction:
      name_field: name
      doc_comments: [comment]
      doc_comment_position: preceding_siblings
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, FrozenSet, List, Mapping, Optional, Tuple

import yaml

from .errors import ConfigSourceError, ConfigValidationError
from .models import ChunkLevel

logger = logging.getLogger(__name__)

DEFAULT_NAME_FIELD = "name"

DOC_COMMENT_POSITIONS = (
    "preceding_siblings",
    "first_child",
    "parent_first_child",
    "following_siblings",
)

CONFIG_FILE_SUFFIXES = (".yaml", ".yml")


def _string_set(values: Any, key: str) -> FrozenSet[str]:
    if values is None:
        return frozenset()
    if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
        raise ConfigValidationError(f"{key} must be a list of strings")
    return frozenset(values)


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigValidationError(f"{key} must be a mapping")
    return value


@dataclass(frozen=True)
class LanguageConfig:
    """Configuration for a programming language."""

    language: str
    extensions: Tuple[str, ...]
    grammar: str
    display_name: str = ""
    class_node_types: FrozenSet[str] = frozenset()
    method_node_types: FrozenSet[str] = frozenset()
    block_node_types: FrozenSet[str] = frozenset()
    name_field: str = DEFAULT_NAME_FIELD
    name_fields: Mapping[str, str] = field(default_factory=dict)
    doc_comment_node_types: FrozenSet[str] = frozenset()
    doc_comment_position: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "LanguageConfig":
        """Build and validate a configuration from deserialized YAML.

        Args:
            data: Mapping produced by the YAML loader

        Returns:
            Validated language configuration

        Raises:
            ConfigValidationError: If required fields are missing or invalid
        """
        if not isinstance(data, dict):
            raise ConfigValidationError("language config must be a mapping")

        tree_sitter = _section(data, "tree_sitter")
        mappings = _section(data, "chunk_mappings")
        extraction = _section(data, "extraction")

        language = data.get("language") or ""
        grammar = tree_sitter.get("grammar") or ""
        raw_extensions = data.get("extensions") or []
        if not isinstance(raw_extensions, list):
            raise ConfigValidationError("extensions must be a list of strings")

        missing = []
        if not language:
            missing.append("language")
        if not raw_extensions:
            missing.append("extensions")
        if not grammar:
            missing.append("tree_sitter.grammar")
        if missing:
            raise ConfigValidationError(f"missing required fields: {', '.join(missing)}")

        extensions = tuple(str(ext).lower() for ext in raw_extensions)
        for ext in extensions:
            if not ext.startswith("."):
                raise ConfigValidationError(f"extension {ext!r} must start with '.'")

        position = extraction.get("doc_comment_position") or None
        if position is not None and position not in DOC_COMMENT_POSITIONS:
            raise ConfigValidationError(
                f"invalid doc_comment_position: {position} "
                f"(valid values: {', '.join(DOC_COMMENT_POSITIONS)})"
            )

        name_fields = extraction.get("name_fields") or {}
        if not isinstance(name_fields, dict):
            raise ConfigValidationError("extraction.name_fields must be a mapping")

        return cls(
            language=str(language),
            display_name=str(data.get("display_name") or ""),
            extensions=extensions,
            grammar=str(grammar),
            class_node_types=_string_set(mappings.get("class"), "chunk_mappings.class"),
            method_node_types=_string_set(mappings.get("method"), "chunk_mappings.method"),
            block_node_types=_string_set(mappings.get("block"), "chunk_mappings.block"),
            name_field=str(extraction.get("name_field") or DEFAULT_NAME_FIELD),
            name_fields={str(k): str(v) for k, v in name_fields.items()},
            doc_comment_node_types=_string_set(
                extraction.get("doc_comments"), "extraction.doc_comments"
            ),
            doc_comment_position=position,
        )

    def is_class_node_type(self, node_type: str) -> bool:
        return node_type in self.class_node_types

    def is_method_node_type(self, node_type: str) -> bool:
        return node_type in self.method_node_types

    def is_block_node_type(self, node_type: str) -> bool:
        return node_type in self.block_node_types

    def classify(self, node_type: str) -> Optional[ChunkLevel]:
        """Map an AST node type to the chunk level it produces, if any."""
        if self.is_class_node_type(node_type):
            return ChunkLevel.CLASS
        if self.is_method_node_type(node_type):
            return ChunkLevel.METHOD
        if self.is_block_node_type(node_type):
            return ChunkLevel.BLOCK
        return None

    def name_field_for(self, node_type: str) -> str:
        """Get the field path that holds the identifier for this node type."""
        return self.name_fields.get(node_type, self.name_field)

    def matches_extension(self, ext: str) -> bool:
        return ext.lower() in self.extensions


def parse_language_config(text: str) -> LanguageConfig:
    """Parse YAML text into a validated LanguageConfig."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"failed to parse YAML: {e}") from e
    return LanguageConfig.from_dict(data)


def load_language_config(path: Path) -> LanguageConfig:
    """Read and parse a language configuration file."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigValidationError(f"failed to read config file {path}: {e}") from e

    try:
        return parse_language_config(text)
    except ConfigValidationError as e:
        raise ConfigValidationError(f"failed to parse config file {path}: {e}") from e


def load_language_configs(
    directory: Path,
) -> Tuple[List[LanguageConfig], List[ConfigValidationError]]:
    """Load every language configuration in a directory.

    Files are read in sorted name order so registration is deterministic.
    Invalid files are reported in the returned error list rather than raised.

    Args:
        directory: Directory holding ``*.yaml``/``*.yml`` files

    Returns:
        Tuple of successfully loaded configs and per-file errors

    Raises:
        ConfigSourceError: If the directory cannot be listed
    """
    directory = Path(directory)
    try:
        entries = sorted(directory.iterdir())
    except OSError as e:
        raise ConfigSourceError(f"failed to read config directory {directory}: {e}") from e

    configs: List[LanguageConfig] = []
    errors: List[ConfigValidationError] = []

    for entry in entries:
        if not entry.is_file() or entry.suffix.lower() not in CONFIG_FILE_SUFFIXES:
            continue
        try:
            configs.append(load_language_config(entry))
        except ConfigValidationError as e:
            errors.append(ConfigValidationError(f"skipping {entry.name}: {e}"))

    logger.info(f"Loaded {len(configs)} language configurations from {directory}")
    return configs, errors


def default_languages_dir() -> Path:
    """Directory of language configs, overridable via CODECHUNKER_LANGUAGES_DIR."""
    override = os.getenv("CODECHUNKER_LANGUAGES_DIR")
    if override:
        return Path(override)
    return Path(__file__).parent / "languages"
