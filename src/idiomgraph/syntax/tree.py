"""Syntax tree contract: a closed set of node kinds plus an explicit child accessor.

Trees come from the parsing collaborator (``syntax.parser``) or from a
Babel/ESTree-shaped JSON document via ``from_dict``. The engine only relies on
``kind``, the child fields listed in ``CHILD_FIELDS``, and the optional
offsets/location, all of which default sensibly when missing.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class NodeKind(str, Enum):
    FILE = "File"
    PROGRAM = "Program"

    # Statements
    EXPRESSION_STATEMENT = "ExpressionStatement"
    BLOCK_STATEMENT = "BlockStatement"
    EMPTY_STATEMENT = "EmptyStatement"
    RETURN_STATEMENT = "ReturnStatement"
    THROW_STATEMENT = "ThrowStatement"
    IF_STATEMENT = "IfStatement"
    FOR_STATEMENT = "ForStatement"
    FOR_IN_STATEMENT = "ForInStatement"
    FOR_OF_STATEMENT = "ForOfStatement"
    WHILE_STATEMENT = "WhileStatement"
    DO_WHILE_STATEMENT = "DoWhileStatement"
    SWITCH_STATEMENT = "SwitchStatement"
    SWITCH_CASE = "SwitchCase"
    BREAK_STATEMENT = "BreakStatement"
    CONTINUE_STATEMENT = "ContinueStatement"
    TRY_STATEMENT = "TryStatement"
    CATCH_CLAUSE = "CatchClause"

    # Declarations
    VARIABLE_DECLARATION = "VariableDeclaration"
    VARIABLE_DECLARATOR = "VariableDeclarator"
    FUNCTION_DECLARATION = "FunctionDeclaration"
    CLASS_DECLARATION = "ClassDeclaration"
    CLASS_BODY = "ClassBody"
    CLASS_METHOD = "ClassMethod"
    CLASS_PROPERTY = "ClassProperty"
    METHOD_DEFINITION = "MethodDefinition"
    PROPERTY_DEFINITION = "PropertyDefinition"
    IMPORT_DECLARATION = "ImportDeclaration"
    IMPORT_SPECIFIER = "ImportSpecifier"
    IMPORT_DEFAULT_SPECIFIER = "ImportDefaultSpecifier"
    IMPORT_NAMESPACE_SPECIFIER = "ImportNamespaceSpecifier"
    EXPORT_NAMED_DECLARATION = "ExportNamedDeclaration"
    EXPORT_DEFAULT_DECLARATION = "ExportDefaultDeclaration"
    EXPORT_SPECIFIER = "ExportSpecifier"

    # Expressions
    IDENTIFIER = "Identifier"
    THIS_EXPRESSION = "ThisExpression"
    SUPER = "Super"
    FUNCTION_EXPRESSION = "FunctionExpression"
    ARROW_FUNCTION_EXPRESSION = "ArrowFunctionExpression"
    CLASS_EXPRESSION = "ClassExpression"
    CALL_EXPRESSION = "CallExpression"
    OPTIONAL_CALL_EXPRESSION = "OptionalCallExpression"
    NEW_EXPRESSION = "NewExpression"
    MEMBER_EXPRESSION = "MemberExpression"
    OPTIONAL_MEMBER_EXPRESSION = "OptionalMemberExpression"
    AWAIT_EXPRESSION = "AwaitExpression"
    UNARY_EXPRESSION = "UnaryExpression"
    UPDATE_EXPRESSION = "UpdateExpression"
    BINARY_EXPRESSION = "BinaryExpression"
    LOGICAL_EXPRESSION = "LogicalExpression"
    ASSIGNMENT_EXPRESSION = "AssignmentExpression"
    CONDITIONAL_EXPRESSION = "ConditionalExpression"
    SEQUENCE_EXPRESSION = "SequenceExpression"
    ARRAY_EXPRESSION = "ArrayExpression"
    OBJECT_EXPRESSION = "ObjectExpression"
    OBJECT_PROPERTY = "ObjectProperty"
    OBJECT_METHOD = "ObjectMethod"
    PROPERTY = "Property"
    SPREAD_ELEMENT = "SpreadElement"
    TEMPLATE_LITERAL = "TemplateLiteral"
    TEMPLATE_ELEMENT = "TemplateElement"
    TAGGED_TEMPLATE_EXPRESSION = "TaggedTemplateExpression"

    # Literals
    STRING_LITERAL = "StringLiteral"
    NUMERIC_LITERAL = "NumericLiteral"
    BOOLEAN_LITERAL = "BooleanLiteral"
    NULL_LITERAL = "NullLiteral"
    LITERAL = "Literal"

    # Patterns
    ARRAY_PATTERN = "ArrayPattern"
    OBJECT_PATTERN = "ObjectPattern"
    REST_ELEMENT = "RestElement"
    ASSIGNMENT_PATTERN = "AssignmentPattern"

    # JSX
    JSX_ELEMENT = "JSXElement"
    JSX_FRAGMENT = "JSXFragment"
    JSX_OPENING_ELEMENT = "JSXOpeningElement"
    JSX_CLOSING_ELEMENT = "JSXClosingElement"
    JSX_OPENING_FRAGMENT = "JSXOpeningFragment"
    JSX_CLOSING_FRAGMENT = "JSXClosingFragment"
    JSX_ATTRIBUTE = "JSXAttribute"
    JSX_SPREAD_ATTRIBUTE = "JSXSpreadAttribute"
    JSX_EXPRESSION_CONTAINER = "JSXExpressionContainer"
    JSX_EMPTY_EXPRESSION = "JSXEmptyExpression"
    JSX_IDENTIFIER = "JSXIdentifier"
    JSX_MEMBER_EXPRESSION = "JSXMemberExpression"
    JSX_TEXT = "JSXText"

    UNKNOWN = "Unknown"


_KIND_BY_NAME: dict[str, NodeKind] = {k.value: k for k in NodeKind}


def kind_for(type_name: str) -> NodeKind:
    """Map a Babel/ESTree type name to a NodeKind (UNKNOWN when not modelled)."""
    return _KIND_BY_NAME.get(type_name, NodeKind.UNKNOWN)


# Child fields per kind, in declaration order. Kinds not listed are leaves;
# node-valued fields that are not listed are still visited, after these.
CHILD_FIELDS: dict[NodeKind, tuple[str, ...]] = {
    NodeKind.FILE: ("program",),
    NodeKind.PROGRAM: ("directives", "body"),
    NodeKind.EXPRESSION_STATEMENT: ("expression",),
    NodeKind.BLOCK_STATEMENT: ("directives", "body"),
    NodeKind.RETURN_STATEMENT: ("argument",),
    NodeKind.THROW_STATEMENT: ("argument",),
    NodeKind.IF_STATEMENT: ("test", "consequent", "alternate"),
    NodeKind.FOR_STATEMENT: ("init", "test", "update", "body"),
    NodeKind.FOR_IN_STATEMENT: ("left", "right", "body"),
    NodeKind.FOR_OF_STATEMENT: ("left", "right", "body"),
    NodeKind.WHILE_STATEMENT: ("test", "body"),
    NodeKind.DO_WHILE_STATEMENT: ("body", "test"),
    NodeKind.SWITCH_STATEMENT: ("discriminant", "cases"),
    NodeKind.SWITCH_CASE: ("test", "consequent"),
    NodeKind.TRY_STATEMENT: ("block", "handler", "finalizer"),
    NodeKind.CATCH_CLAUSE: ("param", "body"),
    NodeKind.VARIABLE_DECLARATION: ("declarations",),
    NodeKind.VARIABLE_DECLARATOR: ("id", "init"),
    NodeKind.FUNCTION_DECLARATION: ("id", "params", "body"),
    NodeKind.FUNCTION_EXPRESSION: ("id", "params", "body"),
    NodeKind.ARROW_FUNCTION_EXPRESSION: ("params", "body"),
    NodeKind.CLASS_DECLARATION: ("decorators", "id", "superClass", "body"),
    NodeKind.CLASS_EXPRESSION: ("decorators", "id", "superClass", "body"),
    NodeKind.CLASS_BODY: ("body",),
    NodeKind.CLASS_METHOD: ("decorators", "key", "params", "body"),
    NodeKind.CLASS_PROPERTY: ("decorators", "key", "value"),
    NodeKind.METHOD_DEFINITION: ("decorators", "key", "value"),
    NodeKind.PROPERTY_DEFINITION: ("decorators", "key", "value"),
    NodeKind.IMPORT_DECLARATION: ("specifiers", "source"),
    NodeKind.IMPORT_SPECIFIER: ("imported", "local"),
    NodeKind.IMPORT_DEFAULT_SPECIFIER: ("local",),
    NodeKind.IMPORT_NAMESPACE_SPECIFIER: ("local",),
    NodeKind.EXPORT_NAMED_DECLARATION: ("declaration", "specifiers", "source"),
    NodeKind.EXPORT_DEFAULT_DECLARATION: ("declaration",),
    NodeKind.EXPORT_SPECIFIER: ("local", "exported"),
    NodeKind.CALL_EXPRESSION: ("callee", "arguments"),
    NodeKind.OPTIONAL_CALL_EXPRESSION: ("callee", "arguments"),
    NodeKind.NEW_EXPRESSION: ("callee", "arguments"),
    NodeKind.MEMBER_EXPRESSION: ("object", "property"),
    NodeKind.OPTIONAL_MEMBER_EXPRESSION: ("object", "property"),
    NodeKind.AWAIT_EXPRESSION: ("argument",),
    NodeKind.UNARY_EXPRESSION: ("argument",),
    NodeKind.UPDATE_EXPRESSION: ("argument",),
    NodeKind.BINARY_EXPRESSION: ("left", "right"),
    NodeKind.LOGICAL_EXPRESSION: ("left", "right"),
    NodeKind.ASSIGNMENT_EXPRESSION: ("left", "right"),
    NodeKind.CONDITIONAL_EXPRESSION: ("test", "consequent", "alternate"),
    NodeKind.SEQUENCE_EXPRESSION: ("expressions",),
    NodeKind.ARRAY_EXPRESSION: ("elements",),
    NodeKind.OBJECT_EXPRESSION: ("properties",),
    NodeKind.OBJECT_PROPERTY: ("key", "value"),
    NodeKind.OBJECT_METHOD: ("key", "params", "body"),
    NodeKind.PROPERTY: ("key", "value"),
    NodeKind.SPREAD_ELEMENT: ("argument",),
    NodeKind.TEMPLATE_LITERAL: ("quasis", "expressions"),
    NodeKind.TAGGED_TEMPLATE_EXPRESSION: ("tag", "quasi"),
    NodeKind.ARRAY_PATTERN: ("elements",),
    NodeKind.OBJECT_PATTERN: ("properties",),
    NodeKind.REST_ELEMENT: ("argument",),
    NodeKind.ASSIGNMENT_PATTERN: ("left", "right"),
    NodeKind.JSX_ELEMENT: ("openingElement", "children", "closingElement"),
    NodeKind.JSX_FRAGMENT: ("openingFragment", "children", "closingFragment"),
    NodeKind.JSX_OPENING_ELEMENT: ("name", "attributes"),
    NodeKind.JSX_CLOSING_ELEMENT: ("name",),
    NodeKind.JSX_ATTRIBUTE: ("name", "value"),
    NodeKind.JSX_SPREAD_ATTRIBUTE: ("argument",),
    NodeKind.JSX_EXPRESSION_CONTAINER: ("expression",),
    NodeKind.JSX_MEMBER_EXPRESSION: ("object", "property"),
}

FUNCTION_LITERALS = frozenset({
    NodeKind.FUNCTION_EXPRESSION,
    NodeKind.ARROW_FUNCTION_EXPRESSION,
})

FUNCTION_KINDS = frozenset({
    NodeKind.FUNCTION_DECLARATION,
    NodeKind.FUNCTION_EXPRESSION,
    NodeKind.ARROW_FUNCTION_EXPRESSION,
    NodeKind.CLASS_METHOD,
    NodeKind.OBJECT_METHOD,
})

CLASS_KINDS = frozenset({NodeKind.CLASS_DECLARATION, NodeKind.CLASS_EXPRESSION})

CALL_KINDS = frozenset({NodeKind.CALL_EXPRESSION, NodeKind.OPTIONAL_CALL_EXPRESSION})

MEMBER_KINDS = frozenset({NodeKind.MEMBER_EXPRESSION, NodeKind.OPTIONAL_MEMBER_EXPRESSION})

MARKUP_KINDS = frozenset({NodeKind.JSX_ELEMENT, NodeKind.JSX_FRAGMENT})

LITERAL_KINDS = frozenset({
    NodeKind.STRING_LITERAL,
    NodeKind.NUMERIC_LITERAL,
    NodeKind.BOOLEAN_LITERAL,
    NodeKind.NULL_LITERAL,
    NodeKind.LITERAL,
    NodeKind.TEMPLATE_LITERAL,
})


@dataclass(frozen=True)
class SourcePoint:
    line: int = 1
    column: int = 0


@dataclass(frozen=True)
class SourceLocation:
    start: SourcePoint = field(default_factory=SourcePoint)
    end: SourcePoint = field(default_factory=SourcePoint)


@dataclass(eq=False)
class SyntaxNode:
    """One tree node. Equality is identity; fields hold nodes, node lists or scalars."""

    kind: NodeKind
    fields: dict[str, Any] = field(default_factory=dict)
    start: int = 0
    end: int = 0
    loc: SourceLocation | None = None
    raw_kind: str = ""

    def __post_init__(self) -> None:
        if not self.raw_kind:
            self.raw_kind = self.kind.value

    def __repr__(self) -> str:
        return f"SyntaxNode({self.raw_kind} @{self.start}-{self.end})"

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)

    def child(self, name: str) -> SyntaxNode | None:
        value = self.fields.get(name)
        return value if isinstance(value, SyntaxNode) else None

    def child_list(self, name: str) -> list[SyntaxNode]:
        """Child nodes of a list field, holes dropped."""
        value = self.fields.get(name)
        if not isinstance(value, list):
            return []
        return [v for v in value if isinstance(v, SyntaxNode)]

    @property
    def location(self) -> SourceLocation:
        return self.loc or SourceLocation()


ChildValue = Union[SyntaxNode, list[SyntaxNode]]


def _structural(value: Any) -> ChildValue | None:
    if isinstance(value, SyntaxNode):
        return value
    if isinstance(value, list):
        nodes = [v for v in value if isinstance(v, SyntaxNode)]
        return nodes or None
    return None


def children(node: SyntaxNode) -> list[tuple[str, ChildValue]]:
    """Structural child fields of ``node`` as ``(field_name, node_or_list)`` pairs."""
    declared = CHILD_FIELDS.get(node.kind, ())
    result: list[tuple[str, ChildValue]] = []
    for name in declared:
        value = _structural(node.fields.get(name))
        if value is not None:
            result.append((name, value))
    for name, raw in node.fields.items():
        if name in declared:
            continue
        value = _structural(raw)
        if value is not None:
            result.append((name, value))
    return result


def child_nodes(node: SyntaxNode) -> list[SyntaxNode]:
    """Children flattened in traversal order."""
    out: list[SyntaxNode] = []
    for _name, value in children(node):
        if isinstance(value, list):
            out.extend(value)
        else:
            out.append(value)
    return out


def iter_nodes(root: SyntaxNode) -> Iterator[SyntaxNode]:
    """Pre-order iteration over ``root`` and all its descendants."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(child_nodes(node)))


def find_all(root: SyntaxNode | None, *kinds: NodeKind) -> list[SyntaxNode]:
    if root is None:
        return []
    wanted = set(kinds)
    return [n for n in iter_nodes(root) if n.kind in wanted]


def contains_kind(root: SyntaxNode | None, *kinds: NodeKind) -> bool:
    if root is None:
        return False
    wanted = set(kinds)
    return any(n.kind in wanted for n in iter_nodes(root))


def contains(root: SyntaxNode | None, target: SyntaxNode) -> bool:
    if root is None:
        return False
    return any(n is target for n in iter_nodes(root))


# ── Shape helpers ──


def identifier_name(node: SyntaxNode | None) -> str | None:
    if node is None:
        return None
    if node.kind in (NodeKind.IDENTIFIER, NodeKind.JSX_IDENTIFIER):
        name = node.get("name")
        return name if isinstance(name, str) else None
    return None


def string_value(node: SyntaxNode | None) -> str | None:
    """Value of a string literal (Babel ``StringLiteral`` or ESTree ``Literal``)."""
    if node is None:
        return None
    if node.kind in (NodeKind.STRING_LITERAL, NodeKind.LITERAL):
        value = node.get("value")
        return value if isinstance(value, str) else None
    return None


def is_numeric_literal(node: SyntaxNode | None) -> bool:
    if node is None:
        return False
    if node.kind is NodeKind.NUMERIC_LITERAL:
        return True
    if node.kind is NodeKind.LITERAL:
        value = node.get("value")
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    return False


def is_literal(node: SyntaxNode | None) -> bool:
    return node is not None and node.kind in LITERAL_KINDS


def member_name(node: SyntaxNode | None) -> str | None:
    """Property name of a member expression (``a.b`` or ``a['b']``)."""
    if node is None or node.kind not in MEMBER_KINDS:
        return None
    prop = node.child("property")
    if node.get("computed"):
        return string_value(prop)
    return identifier_name(prop) or (prop.get("name") if prop is not None else None)


def dotted_name(node: SyntaxNode | None) -> str | None:
    """``a.b.c`` for simple identifier/member chains, else None."""
    if node is None:
        return None
    if node.kind is NodeKind.THIS_EXPRESSION:
        return "this"
    name = identifier_name(node)
    if name is not None:
        return name
    if node.kind in MEMBER_KINDS or node.kind is NodeKind.JSX_MEMBER_EXPRESSION:
        obj = dotted_name(node.child("object"))
        if node.kind is NodeKind.JSX_MEMBER_EXPRESSION:
            prop = identifier_name(node.child("property"))
        else:
            prop = member_name(node)
        if obj and prop:
            return f"{obj}.{prop}"
    return None


def callee_of(call: SyntaxNode) -> SyntaxNode | None:
    return call.child("callee")


def call_name(call: SyntaxNode | None) -> str | None:
    """Readable name of a call's callee: ``fetch``, ``axios.get``, or the bare method."""
    if call is None or call.kind not in (*CALL_KINDS, NodeKind.NEW_EXPRESSION):
        return None
    callee = callee_of(call)
    return dotted_name(callee) or member_name(callee)


def root_identifier(node: SyntaxNode | None) -> str | None:
    """Leftmost identifier of a member chain (``prisma`` for ``prisma.user.find``)."""
    current = node
    while current is not None and current.kind in MEMBER_KINDS:
        current = current.child("object")
    return identifier_name(current)


def declared_name(node: SyntaxNode | None) -> str | None:
    """Name bound by a declaration-like node, when it has one."""
    if node is None:
        return None
    if node.kind in (NodeKind.FUNCTION_DECLARATION, NodeKind.FUNCTION_EXPRESSION, *CLASS_KINDS):
        return identifier_name(node.child("id"))
    if node.kind is NodeKind.VARIABLE_DECLARATOR:
        return identifier_name(node.child("id"))
    if node.kind in (
        NodeKind.CLASS_METHOD,
        NodeKind.CLASS_PROPERTY,
        NodeKind.METHOD_DEFINITION,
        NodeKind.PROPERTY_DEFINITION,
        NodeKind.OBJECT_METHOD,
    ):
        return identifier_name(node.child("key")) or string_value(node.child("key"))
    return None


def function_body(node: SyntaxNode | None) -> SyntaxNode | None:
    """Body of a function node, or of the function bound by a declarator."""
    if node is None:
        return None
    if node.kind is NodeKind.VARIABLE_DECLARATOR:
        return function_body(node.child("init"))
    if node.kind in (NodeKind.METHOD_DEFINITION,):
        return function_body(node.child("value"))
    if node.kind in FUNCTION_KINDS:
        return node.child("body")
    return None


def function_params(node: SyntaxNode | None) -> list[SyntaxNode]:
    if node is None:
        return []
    if node.kind is NodeKind.VARIABLE_DECLARATOR:
        return function_params(node.child("init"))
    if node.kind is NodeKind.METHOD_DEFINITION:
        return function_params(node.child("value"))
    if node.kind in FUNCTION_KINDS:
        return node.child_list("params")
    return []


def property_key(prop: SyntaxNode) -> str | None:
    key = prop.child("key")
    return identifier_name(key) or string_value(key)


def object_property(obj: SyntaxNode | None, name: str) -> SyntaxNode | None:
    """Value of property ``name`` in an object literal."""
    if obj is None or obj.kind is not NodeKind.OBJECT_EXPRESSION:
        return None
    for prop in obj.child_list("properties"):
        if prop.kind in (NodeKind.OBJECT_PROPERTY, NodeKind.PROPERTY) and property_key(prop) == name:
            return prop.child("value")
    return None


def object_keys(obj: SyntaxNode | None) -> list[str]:
    if obj is None or obj.kind not in (NodeKind.OBJECT_EXPRESSION, NodeKind.OBJECT_PATTERN):
        return []
    keys = []
    for prop in obj.child_list("properties"):
        if prop.kind is NodeKind.REST_ELEMENT:
            name = identifier_name(prop.child("argument"))
        else:
            name = property_key(prop)
        if name:
            keys.append(name)
    return keys


# ── Loading from Babel/ESTree JSON ──

_IGNORED_KEYS = frozenset({
    "type", "start", "end", "loc", "range", "extra", "tokens", "comments",
    "leadingComments", "trailingComments", "innerComments",
})


def _offset(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return 0


def _point(value: Any) -> SourcePoint:
    if not isinstance(value, Mapping):
        return SourcePoint()
    line = value.get("line")
    column = value.get("column")
    return SourcePoint(
        line=line if isinstance(line, int) else 1,
        column=column if isinstance(column, int) else 0,
    )


def _load_value(value: Any) -> Any:
    if isinstance(value, Mapping) and isinstance(value.get("type"), str):
        return from_dict(value)
    if isinstance(value, list):
        return [_load_value(v) for v in value]
    return value


def from_dict(data: Mapping[str, Any]) -> SyntaxNode:
    """Build a tree from a Babel/ESTree-style mapping (``{"type": ..., ...}``)."""
    type_name = data.get("type")
    if not isinstance(type_name, str):
        raise ValueError("syntax tree mapping has no 'type' tag")

    fields = {key: _load_value(value) for key, value in data.items() if key not in _IGNORED_KEYS}
    loc = data.get("loc")
    location = None
    if isinstance(loc, Mapping):
        location = SourceLocation(start=_point(loc.get("start")), end=_point(loc.get("end")))

    return SyntaxNode(
        kind=kind_for(type_name),
        fields=fields,
        start=_offset(data.get("start")),
        end=_offset(data.get("end")),
        loc=location,
        raw_kind=type_name,
    )
