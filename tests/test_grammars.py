import pytest

from codechunker.errors import ConfigSourceError, ConfigValidationError
from codechunker.grammars import (
    LanguageConfig,
    default_languages_dir,
    load_language_configs,
    parse_language_config,
)
from codechunker.models import ChunkLevel

GO_CONFIG = """
language: go
display_name: Go
extensions: [.go, .GOX]
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


def test_parse_language_config():
    config = parse_language_config(GO_CONFIG)
    assert config.language == "go"
    assert config.display_name == "Go"
    assert config.grammar == "go"
    assert config.extensions == (".go", ".gox")
    assert config.class_node_types == frozenset({"struct_type", "interface_type"})
    assert config.block_node_types == frozenset()
    assert config.doc_comment_position == "preceding_siblings"
    assert config.matches_extension(".GO")


def test_minimal_config_uses_defaults():
    config = parse_language_config(
        "language: x\nextensions: [.x]\ntree_sitter:\n  grammar: python\n"
    )
    assert config.name_field == "name"
    assert config.doc_comment_position is None
    assert config.classify("function_definition") is None


def test_missing_fields_are_reported_together():
    with pytest.raises(ConfigValidationError) as excinfo:
        parse_language_config("display_name: Nothing\n")
    message = str(excinfo.value)
    for required in ("language", "extensions", "tree_sitter.grammar"):
        assert required in message


@pytest.mark.parametrize(
    "text, message",
    [
        ("language: x\nextensions: [x]\ntree_sitter: {grammar: c}\n", "must start with"),
        ("language: x\nextensions: .x\ntree_sitter: {grammar: c}\n", "extensions"),
        (
            "language: x\nextensions: [.x]\ntree_sitter: {grammar: c}\n"
            "extraction: {doc_comment_position: above}\n",
            "doc_comment_position",
        ),
        (
            "language: x\nextensions: [.x]\ntree_sitter: {grammar: c}\n"
            "chunk_mappings: {class: struct_specifier}\n",
            "chunk_mappings.class",
        ),
        (
            "language: x\nextensions: [.x]\ntree_sitter: {grammar: c}\n"
            "extraction: {name_fields: [declarator]}\n",
            "name_fields",
        ),
        ("- just\n- a list\n", "mapping"),
        ("language: [unclosed\n", "YAML"),
    ],
)
def test_invalid_configs(text, message):
    with pytest.raises(ConfigValidationError, match=message):
        parse_language_config(text)


def test_classify_precedence():
    config = LanguageConfig(
        language="x",
        extensions=(".x",),
        grammar="c",
        class_node_types=frozenset({"a"}),
        method_node_types=frozenset({"a", "b"}),
        block_node_types=frozenset({"b", "c"}),
    )
    assert config.classify("a") is ChunkLevel.CLASS
    assert config.classify("b") is ChunkLevel.METHOD
    assert config.classify("c") is ChunkLevel.BLOCK
    assert config.classify("d") is None
    assert config.is_block_node_type("b")
    assert not config.is_block_node_type("a")


def test_name_field_overrides():
    config = parse_language_config(
        "language: c\nextensions: [.c]\ntree_sitter: {grammar: c}\n"
        "extraction:\n  name_fields:\n    function_definition: declarator.declarator\n"
    )
    assert config.name_field_for("function_definition") == "declarator.declarator"
    assert config.name_field_for("struct_specifier") == "name"


def test_load_language_configs_collects_errors(tmp_path):
    (tmp_path / "b_go.yaml").write_text(GO_CONFIG)
    (tmp_path / "a_broken.yml").write_text("language: broken\n")
    (tmp_path / "README.md").write_text("not a config")
    (tmp_path / "nested.yaml").mkdir()

    configs, errors = load_language_configs(tmp_path)

    assert [c.language for c in configs] == ["go"]
    assert len(errors) == 1
    assert "a_broken.yml" in str(errors[0])


def test_load_language_configs_in_sorted_order(tmp_path):
    for name in ("zeta", "alpha", "mid"):
        (tmp_path / f"{name}.yaml").write_text(
            f"language: {name}\nextensions: [.{name}]\ntree_sitter: {{grammar: c}}\n"
        )
    configs, errors = load_language_configs(tmp_path)
    assert [c.language for c in configs] == ["alpha", "mid", "zeta"]
    assert errors == []


def test_missing_directory_is_a_source_error(tmp_path):
    with pytest.raises(ConfigSourceError):
        load_language_configs(tmp_path / "missing")


def test_shipped_configs_are_valid():
    configs, errors = load_language_configs(default_languages_dir())
    assert errors == []
    assert {c.language for c in configs} == {
        "c",
        "cpp",
        "csharp",
        "go",
        "java",
        "javascript",
        "php",
        "python",
        "rust",
        "tsx",
        "typescript",
    }


def test_languages_dir_override(monkeypatch, tmp_path):
    monkeypatch.setenv("CODECHUNKER_LANGUAGES_DIR", str(tmp_path))
    assert default_languages_dir() == tmp_path
