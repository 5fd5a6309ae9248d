"""Tree-sitter TypeScript/TSX parser — build engine syntax trees from source text."""

from __future__ import annotations

import logging
import time
from pathlib import Path

import tree_sitter_typescript as ts_typescript
from tree_sitter import Language, Node, Parser

from idiomgraph.syntax.tree import NodeKind, SourceLocation, SourcePoint, SyntaxNode

logger = logging.getLogger(__name__)

TS_LANGUAGE = Language(ts_typescript.language_typescript())
TSX_LANGUAGE = Language(ts_typescript.language_tsx())

# .ts cannot use the TSX grammar (``<T>x`` casts); everything else can.
TS_SUFFIXES = frozenset({".ts", ".mts", ".cts"})
TSX_SUFFIXES = frozenset({".tsx", ".js", ".jsx", ".mjs", ".cjs"})

_SKIPPED = frozenset({"comment", "html_comment"})

# Expression wrappers that carry only type information.
_TRANSPARENT = frozenset({
    "parenthesized_expression",
    "as_expression",
    "satisfies_expression",
    "non_null_expression",
    "else_clause",
})

_IDENTIFIER_TYPES = frozenset({
    "identifier",
    "property_identifier",
    "shorthand_property_identifier",
    "shorthand_property_identifier_pattern",
    "type_identifier",
    "private_property_identifier",
    "statement_identifier",
    "undefined",
})

_LOGICAL_OPERATORS = frozenset({"&&", "||", "??"})


def _parse_number(text: str) -> int | float:
    cleaned = text.replace("_", "").rstrip("n")
    try:
        return int(cleaned, 0)
    except ValueError:
        pass
    try:
        return float(cleaned)
    except ValueError:
        return 0


def _char_offsets(source: bytes) -> list[int]:
    """Byte offset -> character offset table for UTF-8 source."""
    table: list[int] = []
    count = 0
    for byte in source:
        table.append(count)
        if byte & 0xC0 != 0x80:
            count += 1
    table.append(count)
    return table


class _TreeBuilder:
    """Converts one tree-sitter tree into SyntaxNode form."""

    def __init__(self, source: bytes) -> None:
        self._source = source
        text = source.decode("utf-8", errors="replace")
        self._offsets = None if len(text) == len(source) else _char_offsets(source)

    # ── Plumbing ──

    def _offset(self, byte: int) -> int:
        if self._offsets is None:
            return byte
        return self._offsets[min(byte, len(self._offsets) - 1)]

    def _text(self, node: Node) -> str:
        return self._source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    def _make(self, kind: NodeKind, ts_node: Node, fields: dict | None = None) -> SyntaxNode:
        return SyntaxNode(
            kind=kind,
            fields=fields or {},
            start=self._offset(ts_node.start_byte),
            end=self._offset(ts_node.end_byte),
            loc=SourceLocation(
                start=SourcePoint(ts_node.start_point[0] + 1, ts_node.start_point[1]),
                end=SourcePoint(ts_node.end_point[0] + 1, ts_node.end_point[1]),
            ),
        )

    def _named(self, node: Node | None) -> list[Node]:
        if node is None:
            return []
        return [c for c in node.named_children if c.type not in _SKIPPED]

    def _first(self, node: Node | None) -> Node | None:
        named = self._named(node)
        return named[0] if named else None

    def _field(self, node: Node, name: str) -> SyntaxNode | None:
        return self.build(node.child_by_field_name(name))

    def _all(self, nodes: list[Node]) -> list[SyntaxNode]:
        built = (self.build(n) for n in nodes)
        return [b for b in built if b is not None]

    def build(self, node: Node | None) -> SyntaxNode | None:
        if node is None or node.type in _SKIPPED:
            return None
        if node.type in _TRANSPARENT:
            return self.build(self._first(node))
        if node.type in _IDENTIFIER_TYPES:
            return self._make(NodeKind.IDENTIFIER, node, {"name": self._text(node)})
        visit = getattr(self, f"_visit_{node.type}", None)
        if visit is None:
            return self._generic(node)
        return visit(node)

    def _generic(self, node: Node) -> SyntaxNode:
        result = self._make(NodeKind.UNKNOWN, node, {"children": self._all(self._named(node))})
        result.raw_kind = node.type
        return result

    # ── Program and statements ──

    def _visit_program(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.PROGRAM, node, {"body": self._all(self._named(node))})

    def _visit_expression_statement(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.EXPRESSION_STATEMENT, node, {"expression": self.build(self._first(node))})

    def _visit_statement_block(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.BLOCK_STATEMENT, node, {"body": self._all(self._named(node))})

    def _visit_return_statement(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.RETURN_STATEMENT, node, {"argument": self.build(self._first(node))})

    def _visit_throw_statement(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.THROW_STATEMENT, node, {"argument": self.build(self._first(node))})

    def _visit_if_statement(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.IF_STATEMENT, node, {
            "test": self._field(node, "condition"),
            "consequent": self._field(node, "consequence"),
            "alternate": self._field(node, "alternative"),
        })

    def _visit_try_statement(self, node: Node) -> SyntaxNode:
        finalizer = node.child_by_field_name("finalizer")
        return self._make(NodeKind.TRY_STATEMENT, node, {
            "block": self._field(node, "body"),
            "handler": self._field(node, "handler"),
            "finalizer": self._field(finalizer, "body") if finalizer is not None else None,
        })

    def _visit_catch_clause(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.CATCH_CLAUSE, node, {
            "param": self._field(node, "parameter"),
            "body": self._field(node, "body"),
        })

    def _visit_finally_clause(self, node: Node) -> SyntaxNode | None:
        return self._field(node, "body")

    # ── Declarations ──

    def _visit_lexical_declaration(self, node: Node) -> SyntaxNode:
        declarators = [c for c in self._named(node) if c.type == "variable_declarator"]
        keyword = node.children[0].type if node.children else "var"
        return self._make(NodeKind.VARIABLE_DECLARATION, node, {
            "declarations": self._all(declarators),
            "kind": keyword,
        })

    _visit_variable_declaration = _visit_lexical_declaration

    def _visit_variable_declarator(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.VARIABLE_DECLARATOR, node, {
            "id": self._field(node, "name"),
            "init": self._field(node, "value"),
        })

    def _params(self, node: Node | None) -> list[SyntaxNode]:
        params: list[SyntaxNode] = []
        for child in self._named(node):
            if child.type in ("required_parameter", "optional_parameter"):
                pattern = self.build(child.child_by_field_name("pattern"))
                value = child.child_by_field_name("value")
                if pattern is not None and value is not None:
                    pattern = self._make(NodeKind.ASSIGNMENT_PATTERN, child, {
                        "left": pattern,
                        "right": self.build(value),
                    })
                if pattern is not None:
                    params.append(pattern)
            else:
                built = self.build(child)
                if built is not None:
                    params.append(built)
        return params

    def _is_async(self, node: Node) -> bool:
        return any(c.type == "async" for c in node.children)

    def _function(self, kind: NodeKind, node: Node) -> SyntaxNode:
        return self._make(kind, node, {
            "id": self._field(node, "name"),
            "params": self._params(node.child_by_field_name("parameters")),
            "body": self._field(node, "body"),
            "async": self._is_async(node),
        })

    def _visit_function_declaration(self, node: Node) -> SyntaxNode:
        return self._function(NodeKind.FUNCTION_DECLARATION, node)

    _visit_generator_function_declaration = _visit_function_declaration

    def _visit_function_expression(self, node: Node) -> SyntaxNode:
        return self._function(NodeKind.FUNCTION_EXPRESSION, node)

    _visit_function = _visit_function_expression
    _visit_generator_function = _visit_function_expression

    def _visit_arrow_function(self, node: Node) -> SyntaxNode:
        single = node.child_by_field_name("parameter")
        if single is not None:
            params = self._all([single])
        else:
            params = self._params(node.child_by_field_name("parameters"))
        return self._make(NodeKind.ARROW_FUNCTION_EXPRESSION, node, {
            "params": params,
            "body": self._field(node, "body"),
            "async": self._is_async(node),
        })

    def _heritage(self, node: Node) -> SyntaxNode | None:
        heritage = next((c for c in node.named_children if c.type == "class_heritage"), None)
        for child in self._named(heritage):
            if child.type == "extends_clause":
                value = child.child_by_field_name("value") or self._first(child)
                return self.build(value)
            if child.type != "implements_clause":
                return self.build(child)
        return None

    def _class(self, kind: NodeKind, node: Node) -> SyntaxNode:
        return self._make(kind, node, {
            "id": self._field(node, "name"),
            "superClass": self._heritage(node),
            "body": self._field(node, "body"),
        })

    def _visit_class_declaration(self, node: Node) -> SyntaxNode:
        return self._class(NodeKind.CLASS_DECLARATION, node)

    _visit_abstract_class_declaration = _visit_class_declaration

    def _visit_class(self, node: Node) -> SyntaxNode:
        return self._class(NodeKind.CLASS_EXPRESSION, node)

    def _visit_class_body(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.CLASS_BODY, node, {"body": self._all(self._named(node))})

    def _visit_method_definition(self, node: Node) -> SyntaxNode:
        name = node.child_by_field_name("name")
        return self._make(NodeKind.CLASS_METHOD, node, {
            "key": self.build(name),
            "params": self._params(node.child_by_field_name("parameters")),
            "body": self._field(node, "body"),
            "kind": "constructor" if name is not None and self._text(name) == "constructor" else "method",
            "async": self._is_async(node),
        })

    def _visit_public_field_definition(self, node: Node) -> SyntaxNode:
        key = node.child_by_field_name("name") or node.child_by_field_name("property")
        return self._make(NodeKind.CLASS_PROPERTY, node, {
            "key": self.build(key),
            "value": self._field(node, "value"),
        })

    _visit_field_definition = _visit_public_field_definition

    def _visit_export_statement(self, node: Node) -> SyntaxNode:
        is_default = any(c.type == "default" for c in node.children)
        declaration = self._field(node, "declaration")
        if is_default:
            return self._make(NodeKind.EXPORT_DEFAULT_DECLARATION, node, {
                "declaration": declaration or self._field(node, "value"),
            })
        return self._make(NodeKind.EXPORT_NAMED_DECLARATION, node, {
            "declaration": declaration,
            "source": self._field(node, "source"),
        })

    def _visit_import_statement(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.IMPORT_DECLARATION, node, {"source": self._field(node, "source")})

    # ── Expressions ──

    def _visit_call_expression(self, node: Node) -> SyntaxNode:
        args = node.child_by_field_name("arguments")
        if args is not None and args.type == "template_string":
            return self._make(NodeKind.TAGGED_TEMPLATE_EXPRESSION, node, {
                "tag": self._field(node, "function"),
                "quasi": self.build(args),
            })
        return self._make(NodeKind.CALL_EXPRESSION, node, {
            "callee": self._field(node, "function"),
            "arguments": self._all(self._named(args)),
            "optional": any(c.type == "optional_chain" for c in node.children),
        })

    def _visit_new_expression(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.NEW_EXPRESSION, node, {
            "callee": self._field(node, "constructor"),
            "arguments": self._all(self._named(node.child_by_field_name("arguments"))),
        })

    def _visit_member_expression(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.MEMBER_EXPRESSION, node, {
            "object": self._field(node, "object"),
            "property": self._field(node, "property"),
            "computed": False,
        })

    def _visit_subscript_expression(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.MEMBER_EXPRESSION, node, {
            "object": self._field(node, "object"),
            "property": self._field(node, "index"),
            "computed": True,
        })

    def _visit_this(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.THIS_EXPRESSION, node)

    def _visit_super(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.SUPER, node)

    def _visit_await_expression(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.AWAIT_EXPRESSION, node, {"argument": self.build(self._first(node))})

    def _visit_unary_expression(self, node: Node) -> SyntaxNode:
        operator = node.child_by_field_name("operator")
        return self._make(NodeKind.UNARY_EXPRESSION, node, {
            "operator": operator.type if operator is not None else "",
            "argument": self._field(node, "argument"),
            "prefix": True,
        })

    def _visit_update_expression(self, node: Node) -> SyntaxNode:
        operator = node.child_by_field_name("operator")
        return self._make(NodeKind.UPDATE_EXPRESSION, node, {
            "operator": operator.type if operator is not None else "",
            "argument": self._field(node, "argument"),
            "prefix": bool(node.children) and node.children[0].type in ("++", "--"),
        })

    def _visit_binary_expression(self, node: Node) -> SyntaxNode:
        operator = node.child_by_field_name("operator")
        op = operator.type if operator is not None else ""
        kind = NodeKind.LOGICAL_EXPRESSION if op in _LOGICAL_OPERATORS else NodeKind.BINARY_EXPRESSION
        return self._make(kind, node, {
            "operator": op,
            "left": self._field(node, "left"),
            "right": self._field(node, "right"),
        })

    def _visit_assignment_expression(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.ASSIGNMENT_EXPRESSION, node, {
            "operator": "=",
            "left": self._field(node, "left"),
            "right": self._field(node, "right"),
        })

    def _visit_augmented_assignment_expression(self, node: Node) -> SyntaxNode:
        operator = node.child_by_field_name("operator")
        return self._make(NodeKind.ASSIGNMENT_EXPRESSION, node, {
            "operator": operator.type if operator is not None else "",
            "left": self._field(node, "left"),
            "right": self._field(node, "right"),
        })

    def _visit_ternary_expression(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.CONDITIONAL_EXPRESSION, node, {
            "test": self._field(node, "condition"),
            "consequent": self._field(node, "consequence"),
            "alternate": self._field(node, "alternative"),
        })

    def _visit_sequence_expression(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.SEQUENCE_EXPRESSION, node, {"expressions": self._all(self._named(node))})

    def _visit_spread_element(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.SPREAD_ELEMENT, node, {"argument": self.build(self._first(node))})

    # ── Literals ──

    def _visit_string(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.STRING_LITERAL, node, {"value": self._text(node)[1:-1]})

    def _visit_number(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.NUMERIC_LITERAL, node, {"value": _parse_number(self._text(node))})

    def _visit_true(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.BOOLEAN_LITERAL, node, {"value": True})

    def _visit_false(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.BOOLEAN_LITERAL, node, {"value": False})

    def _visit_null(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.NULL_LITERAL, node)

    def _template_element(self, start: int, end: int) -> SyntaxNode:
        raw = self._source[start:end].decode("utf-8", errors="replace")
        return SyntaxNode(
            kind=NodeKind.TEMPLATE_ELEMENT,
            fields={"value": {"raw": raw, "cooked": raw}},
            start=self._offset(start),
            end=self._offset(end),
        )

    def _visit_template_string(self, node: Node) -> SyntaxNode:
        quasis: list[SyntaxNode] = []
        expressions: list[SyntaxNode] = []
        cursor = node.start_byte + 1
        for child in node.named_children:
            if child.type != "template_substitution":
                continue
            quasis.append(self._template_element(cursor, child.start_byte))
            inner = self.build(self._first(child))
            if inner is not None:
                expressions.append(inner)
            cursor = child.end_byte
        quasis.append(self._template_element(cursor, max(cursor, node.end_byte - 1)))
        return self._make(NodeKind.TEMPLATE_LITERAL, node, {"quasis": quasis, "expressions": expressions})

    # ── Arrays, objects, patterns ──

    def _visit_array(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.ARRAY_EXPRESSION, node, {"elements": self._all(self._named(node))})

    def _visit_array_pattern(self, node: Node) -> SyntaxNode:
        # Commas mark positions so that holes (``[, setX]``) survive as None.
        elements: list[SyntaxNode | None] = []
        pending: SyntaxNode | None = None
        for child in node.children:
            if child.type == ",":
                elements.append(pending)
                pending = None
            elif child.type == "]":
                if pending is not None:
                    elements.append(pending)
            elif child.is_named and child.type not in _SKIPPED:
                pending = self.build(child)
        return self._make(NodeKind.ARRAY_PATTERN, node, {"elements": elements})

    def _property_key(self, node: Node | None) -> SyntaxNode | None:
        if node is not None and node.type == "computed_property_name":
            return self.build(self._first(node))
        return self.build(node)

    def _shorthand(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.OBJECT_PROPERTY, node, {
            "key": self.build(node),
            "value": self.build(node),
            "shorthand": True,
        })

    def _visit_object(self, node: Node) -> SyntaxNode:
        properties: list[SyntaxNode] = []
        for child in self._named(node):
            if child.type == "pair":
                properties.append(self._make(NodeKind.OBJECT_PROPERTY, child, {
                    "key": self._property_key(child.child_by_field_name("key")),
                    "value": self._field(child, "value"),
                }))
            elif child.type == "shorthand_property_identifier":
                properties.append(self._shorthand(child))
            elif child.type == "method_definition":
                method = self._visit_method_definition(child)
                method.kind = NodeKind.OBJECT_METHOD
                method.raw_kind = NodeKind.OBJECT_METHOD.value
                properties.append(method)
            else:
                built = self.build(child)
                if built is not None:
                    properties.append(built)
        return self._make(NodeKind.OBJECT_EXPRESSION, node, {"properties": properties})

    def _visit_object_pattern(self, node: Node) -> SyntaxNode:
        properties: list[SyntaxNode] = []
        for child in self._named(node):
            if child.type == "pair_pattern":
                properties.append(self._make(NodeKind.OBJECT_PROPERTY, child, {
                    "key": self._property_key(child.child_by_field_name("key")),
                    "value": self._field(child, "value"),
                }))
            elif child.type == "shorthand_property_identifier_pattern":
                properties.append(self._shorthand(child))
            elif child.type == "object_assignment_pattern":
                left = child.child_by_field_name("left")
                properties.append(self._make(NodeKind.OBJECT_PROPERTY, child, {
                    "key": self.build(left),
                    "value": self._make(NodeKind.ASSIGNMENT_PATTERN, child, {
                        "left": self.build(left),
                        "right": self._field(child, "right"),
                    }),
                    "shorthand": True,
                }))
            else:
                built = self.build(child)
                if built is not None:
                    properties.append(built)
        return self._make(NodeKind.OBJECT_PATTERN, node, {"properties": properties})

    def _visit_rest_pattern(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.REST_ELEMENT, node, {"argument": self.build(self._first(node))})

    def _visit_assignment_pattern(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.ASSIGNMENT_PATTERN, node, {
            "left": self._field(node, "left"),
            "right": self._field(node, "right"),
        })

    # ── JSX ──

    def _jsx_name(self, node: Node | None) -> SyntaxNode | None:
        if node is None:
            return None
        if node.type in ("member_expression", "nested_identifier"):
            parts = self._named(node)
            if len(parts) >= 2:
                return self._make(NodeKind.JSX_MEMBER_EXPRESSION, node, {
                    "object": self._jsx_name(parts[0]),
                    "property": self._jsx_name(parts[-1]),
                })
        return self._make(NodeKind.JSX_IDENTIFIER, node, {"name": self._text(node)})

    def _jsx_children(self, node: Node) -> list[SyntaxNode]:
        return self._all([
            c for c in self._named(node)
            if c.type not in ("jsx_opening_element", "jsx_closing_element")
        ])

    def _visit_jsx_element(self, node: Node) -> SyntaxNode:
        opening = node.child_by_field_name("open_tag")
        closing = node.child_by_field_name("close_tag")
        if opening is not None and opening.child_by_field_name("name") is None:
            return self._make(NodeKind.JSX_FRAGMENT, node, {
                "openingFragment": self._make(NodeKind.JSX_OPENING_FRAGMENT, opening),
                "children": self._jsx_children(node),
                "closingFragment": self._make(NodeKind.JSX_CLOSING_FRAGMENT, closing) if closing else None,
            })
        return self._make(NodeKind.JSX_ELEMENT, node, {
            "openingElement": self.build(opening),
            "children": self._jsx_children(node),
            "closingElement": self.build(closing),
        })

    def _opening(self, node: Node, self_closing: bool) -> SyntaxNode:
        return self._make(NodeKind.JSX_OPENING_ELEMENT, node, {
            "name": self._jsx_name(node.child_by_field_name("name")),
            "attributes": self._all(node.children_by_field_name("attribute")),
            "selfClosing": self_closing,
        })

    def _visit_jsx_opening_element(self, node: Node) -> SyntaxNode:
        return self._opening(node, self_closing=False)

    def _visit_jsx_closing_element(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.JSX_CLOSING_ELEMENT, node, {
            "name": self._jsx_name(node.child_by_field_name("name")),
        })

    def _visit_jsx_self_closing_element(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.JSX_ELEMENT, node, {
            "openingElement": self._opening(node, self_closing=True),
            "children": [],
            "closingElement": None,
        })

    def _visit_jsx_attribute(self, node: Node) -> SyntaxNode:
        parts = self._named(node)
        name = self._jsx_name(parts[0]) if parts else None
        value = self.build(parts[1]) if len(parts) > 1 else None
        return self._make(NodeKind.JSX_ATTRIBUTE, node, {"name": name, "value": value})

    def _visit_jsx_expression(self, node: Node) -> SyntaxNode:
        inner = self._first(node)
        if inner is None:
            return self._make(NodeKind.JSX_EXPRESSION_CONTAINER, node, {
                "expression": self._make(NodeKind.JSX_EMPTY_EXPRESSION, node),
            })
        if inner.type == "spread_element":
            return self._make(NodeKind.JSX_SPREAD_ATTRIBUTE, node, {"argument": self.build(self._first(inner))})
        return self._make(NodeKind.JSX_EXPRESSION_CONTAINER, node, {"expression": self.build(inner)})

    def _visit_jsx_text(self, node: Node) -> SyntaxNode:
        return self._make(NodeKind.JSX_TEXT, node, {"value": self._text(node)})


class TypeScriptParser:
    def __init__(self) -> None:
        self._ts_parser = Parser(TS_LANGUAGE)
        self._tsx_parser = Parser(TSX_LANGUAGE)

    def _get_parser(self, suffix: str) -> Parser:
        suffix = suffix.lower()
        if suffix in TS_SUFFIXES:
            return self._ts_parser
        if suffix in TSX_SUFFIXES:
            return self._tsx_parser
        raise ValueError(f"Unsupported source file suffix: {suffix!r}")

    def parse(self, source: str, suffix: str = ".tsx") -> SyntaxNode:
        """Parse source text into an engine syntax tree rooted at a Program node."""
        parser = self._get_parser(suffix)
        data = source.encode("utf-8")
        t0 = time.perf_counter()
        tree = parser.parse(data)
        if tree.root_node.has_error:
            logger.debug("source has syntax errors; unparsed regions become Unknown nodes")
        root = _TreeBuilder(data).build(tree.root_node)
        logger.debug("parse: %d bytes (%.3fs)", len(data), time.perf_counter() - t0)
        return root

    def parse_file(self, path: Path) -> tuple[SyntaxNode, str]:
        """Parse a file; returns the tree and the decoded source text."""
        parser = self._get_parser(path.suffix)
        source = path.read_bytes()
        tree = parser.parse(source)
        text = source.decode("utf-8", errors="replace")
        return _TreeBuilder(source).build(tree.root_node), text
