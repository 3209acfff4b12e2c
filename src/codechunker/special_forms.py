"""Grammar-specific special forms for the generic AST walker.

Most languages are fully described by their node-type mappings. A few
grammars wrap declarations in constructs that need unwrapping before the
mappings apply (Go grouped type declarations, Python decorators, JavaScript
exports and ``const f = () => ...`` assignments), and C-family specifiers
only declare a type when they have a body. Each such construct is a
small handler registered against a grammar id and a node type.

A handler receives the extraction context, the wrapper node and the
current scope id, and returns the work items to visit next, in source order.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, FrozenSet, List, Mapping, Optional

from tree_sitter import Node

from .models import ChunkLevel

if TYPE_CHECKING:
    from .ast_chunker import ExtractionContext


@dataclass
class WorkItem:
    """A node waiting to be visited by the walker."""

    node: Node
    scope_id: str  # id of the enclosing file or class chunk
    level: Optional[ChunkLevel] = None  # forced level, bypasses classification
    name: Optional[str] = None  # forced name, bypasses name resolution
    recurse: bool = True


SpecialForm = Callable[["ExtractionContext", Node, str], List[WorkItem]]


@dataclass(frozen=True)
class GrammarForms:
    """Special-form handlers and naming hints for one grammar."""

    handlers: Mapping[str, SpecialForm] = field(default_factory=dict)
    # Child node types searched for a name when the node itself has none
    name_wrappers: FrozenSet[str] = frozenset()
    # Node types that form a chunk only when they have a body field
    body_required: FrozenSet[str] = frozenset()


def multi_spec(spec_types: FrozenSet[str], type_field: str = "type") -> SpecialForm:
    """Unwrap a statement grouping several named declarations.

    Every spec whose ``type_field`` child is a configured class node type
    (or every spec, when the spec type itself is configured) becomes a Class
    chunk spanning the spec only. Spec bodies are not walked.
    """

    def handler(ctx: "ExtractionContext", node: Node, scope_id: str) -> List[WorkItem]:
        items = []
        for child in node.named_children:
            if child.type not in spec_types:
                continue
            type_node = child.child_by_field_name(type_field)
            if type_node is None:
                continue
            if ctx.config.is_class_node_type(type_node.type) or ctx.config.is_class_node_type(
                child.type
            ):
                items.append(WorkItem(child, scope_id, level=ChunkLevel.CLASS, recurse=False))
        return items

    return handler


def unwrap_field(field_name: str) -> SpecialForm:
    """Visit the wrapped declaration in place of its wrapper.

    Used for decorators and export statements: the wrapper contributes no
    chunk and the declaration keeps the current scope. Wrappers without the
    field are walked like any other node.
    """

    def handler(ctx: "ExtractionContext", node: Node, scope_id: str) -> List[WorkItem]:
        inner = node.child_by_field_name(field_name)
        if inner is None:
            return ctx.children(node, scope_id)
        return [WorkItem(inner, scope_id)]

    return handler


def assignment_declaration(
    declarator_type: str = "variable_declarator", identifier_type: str = "identifier"
) -> SpecialForm:
    """Treat ``const name = <function>`` as a method declaration.

    A declarator whose value is a configured method node type yields a
    Method chunk named after the variable. With a single declarator the
    chunk spans the whole statement, otherwise only the declarator.
    """

    def handler(ctx: "ExtractionContext", node: Node, scope_id: str) -> List[WorkItem]:
        declarators = [c for c in node.named_children if c.type == declarator_type]
        items = []
        for declarator in declarators:
            value = declarator.child_by_field_name("value")
            name_node = declarator.child_by_field_name("name")
            if (
                value is not None
                and name_node is not None
                and name_node.type == identifier_type
                and ctx.config.is_method_node_type(value.type)
            ):
                span = node if len(declarators) == 1 else declarator
                items.append(
                    WorkItem(
                        span,
                        scope_id,
                        level=ChunkLevel.METHOD,
                        name=ctx.text(name_node),
                        recurse=False,
                    )
                )
            else:
                items.append(WorkItem(declarator, scope_id))
        return items

    return handler


_C_FAMILY_FORMS = GrammarForms(
    body_required=frozenset({"struct_specifier", "union_specifier", "class_specifier"}),
)

_ECMASCRIPT_FORMS = GrammarForms(
    handlers={
        "export_statement": unwrap_field("declaration"),
        "lexical_declaration": assignment_declaration(),
        "variable_declaration": assignment_declaration(),
    }
)

_FORMS: Dict[str, GrammarForms] = {
    "go": GrammarForms(
        handlers={"type_declaration": multi_spec(frozenset({"type_spec"}))},
        name_wrappers=frozenset({"type_spec"}),
    ),
    "python": GrammarForms(handlers={"decorated_definition": unwrap_field("definition")}),
    "javascript": _ECMASCRIPT_FORMS,
    "typescript": _ECMASCRIPT_FORMS,
    "tsx": _ECMASCRIPT_FORMS,
    "c": _C_FAMILY_FORMS,
    "cpp": _C_FAMILY_FORMS,
}

_NO_FORMS = GrammarForms()


def register_forms(grammar: str, forms: GrammarForms) -> None:
    """Register (or replace) the special forms for a grammar."""
    _FORMS[grammar] = forms


def forms_for(grammar: str) -> GrammarForms:
    return _FORMS.get(grammar, _NO_FORMS)
