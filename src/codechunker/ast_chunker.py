"""Config-driven AST chunk extraction using tree-sitter."""

import logging
import threading
from typing import List, Optional

from tree_sitter import Node, Tree

from .errors import ChunkingCancelledError, InvalidInputError, UnsupportedGrammarError
from .grammars import LanguageConfig
from .models import Chunk, ChunkLevel, ChunkResult, SourceFile
from .parsers import ParserPool, is_grammar_supported
from .special_forms import GrammarForms, WorkItem, forms_for

logger = logging.getLogger(__name__)


def extract_signature(content: str) -> str:
    """Declaration header: text up to the first '{' or newline, trimmed."""
    end = len(content)
    for stop in ("{", "\n"):
        index = content.find(stop)
        if index != -1:
            end = min(end, index)
    return content[:end].strip()


def file_end_line(content: str) -> int:
    return content.count("\n") + 1


def innermost_declarator(node: Node) -> Node:
    """Descend through C-family declarators to the declared identifier.

    ``char *f(void)`` nests the name as pointer_declarator > function_declarator
    > identifier; reference declarators carry their inner declarator without
    a field name.
    """
    while node.type.endswith("declarator"):
        inner = node.child_by_field_name("declarator")
        if inner is None:
            inner = next((c for c in node.named_children if c.type.endswith("declarator")), None)
        if inner is None:
            break
        node = inner
    return node


class ExtractionContext:
    """Per-call state shared by the walker and special-form handlers."""

    def __init__(
        self,
        config: LanguageConfig,
        forms: GrammarForms,
        source_file: SourceFile,
        result: ChunkResult,
    ):
        self.config = config
        self.forms = forms
        self.source_file = source_file
        self.source = source_file.content
        self.result = result

    def text(self, node: Node) -> str:
        return self.source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    def children(self, node: Node, scope_id: str) -> List[WorkItem]:
        return [WorkItem(child, scope_id) for child in node.named_children]

    def _field_text(self, node: Node, field_path: str) -> Optional[str]:
        # Dotted paths like "declarator.declarator" walk nested fields
        current: Optional[Node] = node
        field_name = ""
        for field_name in field_path.split("."):
            current = current.child_by_field_name(field_name)
            if current is None:
                return None
        if field_name == "declarator":
            current = innermost_declarator(current)
        return self.text(current) or None

    def resolve_name(self, node: Node) -> Optional[str]:
        """Extract the identifier for a node, or None if it is anonymous."""
        field_path = self.config.name_field_for(node.type)
        name = self._field_text(node, field_path)
        if name:
            return name

        for child in node.named_children:
            if child.type in self.forms.name_wrappers:
                name = self._field_text(child, self.config.name_field_for(child.type))
                if name:
                    return name
        return None

    def doc_comment(self, node: Node) -> Optional[str]:
        """Collect the documentation comment attached to a node, if configured."""
        doc_types = self.config.doc_comment_node_types
        position = self.config.doc_comment_position
        if not doc_types or not position:
            return None

        nodes: List[Node] = []
        if position == "preceding_siblings":
            row = node.start_point[0]
            sibling = node.prev_named_sibling
            while sibling is not None and sibling.type in doc_types and sibling.end_point[0] >= row - 1:
                nodes.append(sibling)
                row = sibling.start_point[0]
                sibling = sibling.prev_named_sibling
            nodes.reverse()
        elif position == "following_siblings":
            row = node.end_point[0]
            sibling = node.next_named_sibling
            while sibling is not None and sibling.type in doc_types and sibling.start_point[0] <= row + 1:
                nodes.append(sibling)
                row = sibling.end_point[0]
                sibling = sibling.next_named_sibling
        elif position == "first_child":
            nodes = self._first_doc_child(node)
        elif position == "parent_first_child" and node.parent is not None:
            nodes = self._first_doc_child(node.parent)

        text = "\n".join(self.text(n) for n in nodes)
        return text or None

    def _first_doc_child(self, node: Node) -> List[Node]:
        container = node.child_by_field_name("body") or node
        if not container.named_children:
            return []
        first = container.named_children[0]
        if first.type in self.config.doc_comment_node_types:
            return [first]
        # Docstrings are wrapped in an expression statement
        if first.named_child_count == 1 and first.named_children[0].type in self.config.doc_comment_node_types:
            return [first.named_children[0]]
        return []

    def emit(
        self, node: Node, level: ChunkLevel, parent_id: str, name: Optional[str] = None
    ) -> Optional[Chunk]:
        """Create a chunk for a node and append it to the result.

        Returns None, without error, when the node has no resolvable name.
        """
        if name is None:
            name = self.resolve_name(node)
        if not name:
            return None

        content = self.text(node)
        chunk = Chunk(
            file_path=self.source_file.path,
            start_line=node.start_point[0] + 1,  # Tree-sitter uses 0-based indexing
            end_line=node.end_point[0] + 1,
            level=level,
            language=self.config.language,
            content=content,
            name=name,
            signature=extract_signature(content),
            parent_id=parent_id,
            doc_comment=self.doc_comment(node),
            last_modified=self.source_file.last_modified,
        )
        self.result.chunks.append(chunk)
        logger.debug(
            f"Extracted {level.value} {node.type} '{name}' from "
            f"{self.source_file.path}:{chunk.start_line}"
        )
        return chunk


class GenericChunker:
    """Chunk source files using the node-type mappings of a LanguageConfig."""

    def __init__(self, config: LanguageConfig, parser_pool: Optional[ParserPool] = None):
        """Initialize the chunker.

        Args:
            config: Language configuration driving node classification
            parser_pool: Shared parser pool (a private one is created if omitted)

        Raises:
            UnsupportedGrammarError: If the configured grammar has no binding
        """
        if not is_grammar_supported(config.grammar):
            raise UnsupportedGrammarError(config.grammar)
        self.config = config
        self.parser_pool = parser_pool or ParserPool()
        self.forms = forms_for(config.grammar)

    @property
    def language(self) -> str:
        return self.config.language

    def chunk(
        self, source_file: SourceFile, cancel_event: Optional[threading.Event] = None
    ) -> ChunkResult:
        """Parse a file and extract its chunk hierarchy.

        Args:
            source_file: File to chunk
            cancel_event: Optional cooperative cancellation signal

        Returns:
            Chunks in pre-order: the file chunk first, containers before members

        Raises:
            InvalidInputError: If no source file is given
            ChunkingCancelledError: If cancelled before parsing
            ParseError: If the source cannot be parsed
        """
        if source_file is None:
            raise InvalidInputError("source file is required")
        if cancel_event is not None and cancel_event.is_set():
            raise ChunkingCancelledError(f"cancelled before chunking {source_file.path}")

        # Empty files produce no chunks at all, not even a file chunk
        if not source_file.content:
            return ChunkResult(file=source_file)

        tree = self.parser_pool.parse(self.config.grammar, source_file.content, cancel_event)
        if tree.root_node.has_error:
            logger.warning(f"Parse errors in {source_file.path}")

        result = self.extract(tree, source_file, cancel_event)
        logger.info(f"Extracted {len(result.chunks)} chunks from {source_file.path}")
        return result

    def extract(
        self,
        tree: Tree,
        source_file: SourceFile,
        cancel_event: Optional[threading.Event] = None,
    ) -> ChunkResult:
        """Walk an already parsed tree and build the chunk result.

        Cancellation observed mid-walk stops the walk and returns the chunks
        gathered so far with ``truncated`` set.
        """
        result = ChunkResult(file=source_file)
        if not source_file.content:
            return result

        ctx = ExtractionContext(self.config, self.forms, source_file, result)
        content = source_file.content.decode("utf-8", errors="replace")
        file_chunk = Chunk(
            file_path=source_file.path,
            start_line=1,
            end_line=file_end_line(content),
            level=ChunkLevel.FILE,
            language=self.config.language,
            content=content,
            name=source_file.path,
            last_modified=source_file.last_modified,
        )
        result.chunks.append(file_chunk)

        stack = [WorkItem(tree.root_node, file_chunk.id)]
        while stack:
            if cancel_event is not None and cancel_event.is_set():
                result.truncated = True
                logger.warning(
                    f"Chunking of {source_file.path} cancelled after "
                    f"{len(result.chunks)} chunks"
                )
                break
            item = stack.pop()
            # Reversed so that siblings are visited in source order
            stack.extend(reversed(self._visit(ctx, item)))

        return result

    def _visit(self, ctx: ExtractionContext, item: WorkItem) -> List[WorkItem]:
        node = item.node
        level = item.level
        if level is None:
            level = self.config.classify(node.type)
            # Forward declarations and type references name a type without declaring it
            if (
                level is not None
                and node.type in self.forms.body_required
                and node.child_by_field_name("body") is None
            ):
                level = None

        if level is None:
            handler = self.forms.handlers.get(node.type)
            if handler is not None:
                return handler(ctx, node, item.scope_id)
            return ctx.children(node, item.scope_id)

        chunk = ctx.emit(node, level, item.scope_id, name=item.name)

        # Method bodies are never walked: nested functions stay in their method
        if level is ChunkLevel.METHOD or not item.recurse:
            return []
        if level is ChunkLevel.CLASS and chunk is not None:
            return ctx.children(node, chunk.id)
        # Blocks and anonymous classes keep the enclosing scope
        return ctx.children(node, item.scope_id)
