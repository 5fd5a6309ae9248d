"""Counter idiom: a component holding numeric state that a click handler updates."""

from __future__ import annotations

from typing import Any

from idiomgraph.engine.registry import MatcherBase
from idiomgraph.engine.walker import TraversalContext
from idiomgraph.matchers.common import contains_words
from idiomgraph.models import (
    ConnectionKind,
    CounterDetails,
    IdiomKind,
    IdiomNode,
    IdiomNodeKind,
    Link,
    RawMatch,
    linear_chain,
    unique,
)
from idiomgraph.syntax.tree import (
    CALL_KINDS,
    FUNCTION_LITERALS,
    MARKUP_KINDS,
    NodeKind,
    SyntaxNode,
    contains_kind,
    declared_name,
    dotted_name,
    find_all,
    function_body,
    identifier_name,
    is_numeric_literal,
    iter_nodes,
)

STATE_HOOKS = ("useState", "React.useState")

HANDLER_WORDS = (
    "click", "handle", "on", "increment", "decrement", "add", "subtract",
    "increase", "decrease", "plus", "minus", "up", "down", "next", "prev", "step",
)

COUNTER_WORDS = (
    "count", "counter", "num", "number", "value", "val", "index", "idx",
    "i", "j", "k", "step", "clicks", "total", "sum", "score", "points", "level",
)

BASE_CONFIDENCE = 0.5
STATE_INIT_WEIGHT = 0.2
EVENT_HANDLER_WEIGHT = 0.2
NUMERIC_INITIAL_WEIGHT = 0.1
INCREMENT_WEIGHT = 0.15
COUNTER_NAMES_WEIGHT = 0.05


def score_counter(details: CounterDetails) -> float:
    score = BASE_CONFIDENCE
    if details.has_state_init:
        score += STATE_INIT_WEIGHT
    if details.has_event_handler:
        score += EVENT_HANDLER_WEIGHT
    if details.is_numeric_initial:
        score += NUMERIC_INITIAL_WEIGHT
    if details.has_increment_operation:
        score += INCREMENT_WEIGHT
    if details.has_counter_like_names:
        score += COUNTER_NAMES_WEIGHT
    return min(score, 1.0)


def is_counter_like(name: str) -> bool:
    """Bidirectional, case-insensitive substring test against COUNTER_WORDS."""
    lowered = name.lower()
    if not lowered:
        return False
    return any(word in lowered or lowered in word for word in COUNTER_WORDS)


def _numeric_value(node: SyntaxNode | None) -> float | None:
    if node is None:
        return None
    if is_numeric_literal(node):
        value = node.get("value")
        return float(value) if isinstance(value, (int, float)) else 0.0
    if node.kind is NodeKind.UNARY_EXPRESSION and node.get("operator") == "-":
        inner = _numeric_value(node.child("argument"))
        return -inner if inner is not None else None
    return None


def _is_plus_minus(node: SyntaxNode | None) -> bool:
    return (
        node is not None
        and node.kind is NodeKind.BINARY_EXPRESSION
        and node.get("operator") in ("+", "-")
    )


def _is_step_from_identifier(node: SyntaxNode | None) -> bool:
    if not _is_plus_minus(node):
        return False
    left = node.child("left")
    return left is not None and left.kind is NodeKind.IDENTIFIER


def _returned_expression(fn: SyntaxNode) -> SyntaxNode | None:
    body = fn.child("body")
    if body is None or body.kind is not NodeKind.BLOCK_STATEMENT:
        return body
    for stmt in body.child_list("body"):
        if stmt.kind is NodeKind.RETURN_STATEMENT:
            return stmt.child("argument")
    return None


def is_increment_argument(arg: SyntaxNode | None) -> bool:
    """``prev => prev ± n``, ``<expr> ± n`` or ``++x`` / ``x--`` passed to a setter."""
    if arg is None:
        return False
    if arg.kind in FUNCTION_LITERALS:
        return _is_step_from_identifier(_returned_expression(arg))
    if arg.kind is NodeKind.UPDATE_EXPRESSION:
        return True
    return _is_plus_minus(arg)


def _state_pair(declarator: SyntaxNode) -> tuple[str, str, SyntaxNode | None] | None:
    """``(state, setter, initial)`` for ``const [state, setState] = useState(initial)``."""
    if declarator.kind is not NodeKind.VARIABLE_DECLARATOR:
        return None
    pattern = declarator.child("id")
    init = declarator.child("init")
    if pattern is None or pattern.kind is not NodeKind.ARRAY_PATTERN:
        return None
    if init is None or init.kind not in CALL_KINDS or dotted_name(init.child("callee")) not in STATE_HOOKS:
        return None
    elements = pattern.get("elements") or []
    if len(elements) != 2:
        return None
    state = identifier_name(elements[0]) if isinstance(elements[0], SyntaxNode) else None
    setter = identifier_name(elements[1]) if isinstance(elements[1], SyntaxNode) else None
    if not state or not setter:
        return None
    args = init.child_list("arguments")
    return state, setter, args[0] if args else None


def is_component_shaped(node: SyntaxNode) -> bool:
    """A named function, or a name bound to a function literal, that renders markup."""
    if node.kind is NodeKind.FUNCTION_DECLARATION:
        if node.child("id") is None:
            return False
    elif node.kind is NodeKind.VARIABLE_DECLARATOR:
        init = node.child("init")
        if identifier_name(node.child("id")) is None or init is None or init.kind not in FUNCTION_LITERALS:
            return False
    else:
        return False
    return contains_kind(function_body(node), *MARKUP_KINDS)


class CounterMatcher(MatcherBase):
    kind = IdiomKind.COUNTER

    def match(self, node: SyntaxNode, context: TraversalContext) -> list[RawMatch]:
        if not is_component_shaped(node):
            return []

        body = function_body(node)
        state_nodes: list[SyntaxNode] = []
        state_vars: list[str] = []
        setters: list[str] = []
        initial: float | None = None
        numeric_initial = False
        for declarator in find_all(body, NodeKind.VARIABLE_DECLARATOR):
            pair = _state_pair(declarator)
            if pair is None:
                continue
            state, setter, init_arg = pair
            state_nodes.append(declarator)
            state_vars.append(state)
            setters.append(setter)
            value = _numeric_value(init_arg)
            if value is not None and not numeric_initial:
                numeric_initial = True
                initial = value

        handler_nodes, handler_names = self._event_handlers(body)
        if not state_nodes or not handler_nodes:
            return []

        increment = any(
            dotted_name(call.child("callee")) in setters
            and is_increment_argument(next(iter(call.child_list("arguments")), None))
            for call in find_all(body, *CALL_KINDS)
        )
        component = declared_name(node)

        details = CounterDetails(
            has_state_init=True,
            has_event_handler=True,
            is_numeric_initial=numeric_initial,
            has_increment_operation=increment,
            has_counter_like_names=any(is_counter_like(n) for n in state_vars),
            state_variables=unique(state_vars),
            setter_functions=unique(setters),
            event_handlers=unique(handler_names),
            initial_value=initial,
        )
        return [RawMatch(
            kind=self.kind,
            root=node,
            involved=[node, *state_nodes, *handler_nodes],
            details=details,
            variables=unique(state_vars + setters),
            functions=unique([component, *handler_names]),
        )]

    @staticmethod
    def _event_handlers(body: SyntaxNode | None) -> tuple[list[SyntaxNode], list[str]]:
        nodes: list[SyntaxNode] = []
        names: list[str] = []
        if body is None:
            return nodes, names
        for node in iter_nodes(body):
            if node.kind is NodeKind.JSX_ATTRIBUTE and identifier_name(node.child("name")) == "onClick":
                container = node.child("value")
                expr = container.child("expression") if container is not None else None
                if expr is None:
                    continue
                if expr.kind is NodeKind.IDENTIFIER:
                    nodes.append(node)
                    names.append(expr.get("name"))
                elif expr.kind in FUNCTION_LITERALS:
                    nodes.append(node)
            elif node.kind is NodeKind.FUNCTION_DECLARATION or (
                node.kind is NodeKind.VARIABLE_DECLARATOR
                and node.child("init") is not None
                and node.child("init").kind in FUNCTION_LITERALS
            ):
                name = declared_name(node)
                if name and contains_words(name, HANDLER_WORDS):
                    nodes.append(node)
                    names.append(name)
        return nodes, unique(names)

    def confidence(self, match: RawMatch) -> float:
        return score_counter(match.details)

    # ── Graph shaping ──

    def node_properties(self, node: SyntaxNode, match: RawMatch) -> dict[str, Any]:
        if node is match.root:
            return {"role": "component"}
        if _state_pair(node) is not None:
            return {"role": "state"}
        return {"role": "handler"}

    def classify_node(self, node: SyntaxNode, label: str, match: RawMatch) -> IdiomNodeKind | None:
        if node is not match.root:
            return IdiomNodeKind.COUNTER if _state_pair(node) is not None else IdiomNodeKind.TRIGGER
        if contains_words(label, ("click", "button", "handle")):
            return IdiomNodeKind.TRIGGER
        if contains_words(label, ("count", "num", "value")):
            return IdiomNodeKind.COUNTER
        return IdiomNodeKind.BUILDING_BLOCK

    def connect(self, match: RawMatch, nodes: list[IdiomNode]) -> list[Link] | None:
        triggers = [n for n in nodes if n.kind is IdiomNodeKind.TRIGGER]
        counters = [n for n in nodes if n.properties.get("role") == "state"]
        if not triggers or not counters:
            return linear_chain(nodes, ConnectionKind.CONTROL_FLOW, "updates")
        operation = "increment" if match.details.has_increment_operation else "update"
        return [
            Link(trigger, counter, ConnectionKind.EVENT, "click updates", {"operation": operation})
            for trigger in triggers
            for counter in counters
        ]
