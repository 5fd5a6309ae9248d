"""Error-handling idiom: try/catch blocks, error boundaries and rejection listeners."""

from __future__ import annotations

from typing import Any

from idiomgraph.engine.registry import MatcherBase
from idiomgraph.engine.walker import TraversalContext
from idiomgraph.matchers.common import call_labels, instanceof_types
from idiomgraph.models import (
    ConnectionKind,
    ErrorHandlingDetails,
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
    CLASS_KINDS,
    FUNCTION_LITERALS,
    NodeKind,
    SyntaxNode,
    declared_name,
    dotted_name,
    find_all,
    function_body,
    identifier_name,
    member_name,
    string_value,
)

RISKY_FUNCTIONS = ("fetch", "axios", "JSON.parse", "parseInt", "parseFloat")
RISKY_METHODS = ("json", "text", "parse", "querySelector", "getElementById")

BOUNDARY_METHODS = ("componentDidCatch", "getDerivedStateFromError")
REJECTION_LISTENERS = {
    ("process", "on"): "unhandledRejection",
    ("window", "addEventListener"): "unhandledrejection",
}

TRY_CATCH = "try-catch"
ERROR_BOUNDARY = "error-boundary"
UNHANDLED_REJECTION = "unhandled-rejection"

BASE_CONFIDENCE = 0.5
CONFIRMED_WEIGHT = 0.4
HANDLER_BODY_WEIGHT = 0.1


def score_error_handling(details: ErrorHandlingDetails) -> float:
    score = BASE_CONFIDENCE
    if details.confirmed:
        score += CONFIRMED_WEIGHT
    if details.has_handler_body:
        score += HANDLER_BODY_WEIGHT
    return min(score, 1.0)


def risky_calls(root: SyntaxNode | None) -> list[SyntaxNode]:
    """Calls that commonly throw or reject."""
    found = []
    for call in find_all(root, *CALL_KINDS):
        callee = call.child("callee")
        name = dotted_name(callee)
        if name in RISKY_FUNCTIONS or member_name(callee) in RISKY_METHODS:
            found.append(call)
    return found


def _call_label(call: SyntaxNode) -> str:
    callee = call.child("callee")
    return dotted_name(callee) or member_name(callee) or call.raw_kind


def _has_statements(block: SyntaxNode | None) -> bool:
    if block is None:
        return False
    if block.kind is NodeKind.BLOCK_STATEMENT:
        return bool(block.child_list("body"))
    return True


def recovery_actions(handler_body: SyntaxNode | None) -> list[str]:
    actions = call_labels(handler_body)
    if find_all(handler_body, NodeKind.THROW_STATEMENT):
        actions.append("rethrow")
    return unique(actions)


class ErrorHandlingMatcher(MatcherBase):
    kind = IdiomKind.ERROR_HANDLING

    def match(self, node: SyntaxNode, context: TraversalContext) -> list[RawMatch]:
        if node.kind is NodeKind.TRY_STATEMENT:
            return self._match_try(node)
        if node.kind in CLASS_KINDS:
            return self._match_boundary(node)
        if node.kind in CALL_KINDS:
            return self._match_listener(node)
        return []

    def _match_try(self, node: SyntaxNode) -> list[RawMatch]:
        handler = node.child("handler")
        if handler is None:
            return []
        block = node.child("block")
        handler_body = handler.child("body")
        finalizer = node.child("finalizer")
        risky = risky_calls(block)

        details = ErrorHandlingDetails(
            variant=TRY_CATCH,
            confirmed=True,
            has_handler_body=_has_statements(handler_body),
            error_binding=identifier_name(handler.child("param")),
            has_finally=finalizer is not None,
            risky_operations=unique(_call_label(c) for c in risky),
            recovery_actions=recovery_actions(handler_body),
            cleanup_actions=unique(call_labels(finalizer)),
            error_types=unique(instanceof_types(handler_body)),
        )
        involved = [node, *risky, handler]
        if finalizer is not None:
            involved.append(finalizer)
        return [RawMatch(
            kind=self.kind,
            root=node,
            involved=involved,
            details=details,
            variables=unique([details.error_binding]),
            functions=[],
        )]

    def _match_boundary(self, node: SyntaxNode) -> list[RawMatch]:
        body = node.child("body")
        methods = [
            m for m in (body.child_list("body") if body is not None else [])
            if declared_name(m) in BOUNDARY_METHODS
        ]
        if not methods:
            return []
        bodies = [function_body(m) for m in methods]
        details = ErrorHandlingDetails(
            variant=ERROR_BOUNDARY,
            confirmed=True,
            has_handler_body=any(_has_statements(b) for b in bodies),
            recovery_actions=unique(a for b in bodies for a in recovery_actions(b)),
        )
        names = [declared_name(m) for m in methods]
        return [RawMatch(
            kind=self.kind,
            root=node,
            involved=[node, *methods],
            details=details,
            variables=[],
            functions=unique([declared_name(node), *names]),
        )]

    def _match_listener(self, node: SyntaxNode) -> list[RawMatch]:
        callee = node.child("callee")
        target = dotted_name(callee.child("object")) if callee is not None else None
        event = REJECTION_LISTENERS.get((target or "", member_name(callee) or ""))
        args = node.child_list("arguments")
        if event is None or len(args) < 2 or string_value(args[0]) != event:
            return []
        listener = args[1]
        involved = [node]
        if listener.kind in FUNCTION_LITERALS:
            involved.append(listener)
            listener_body = function_body(listener)
            has_body = _has_statements(listener_body)
            params = listener.child_list("params")
            binding = identifier_name(params[0]) if params else None
        else:
            listener_body = None
            has_body = identifier_name(listener) is not None
            binding = None
        details = ErrorHandlingDetails(
            variant=UNHANDLED_REJECTION,
            confirmed=True,
            has_handler_body=has_body,
            error_binding=binding,
            recovery_actions=recovery_actions(listener_body),
        )
        return [RawMatch(
            kind=self.kind,
            root=node,
            involved=involved,
            details=details,
            variables=unique([binding]),
            functions=unique([identifier_name(listener)]),
        )]

    def confidence(self, match: RawMatch) -> float:
        return score_error_handling(match.details)

    # ── Graph shaping ──

    def node_properties(self, node: SyntaxNode, match: RawMatch) -> dict[str, Any]:
        if node is match.root:
            return {"role": "try" if node.kind is NodeKind.TRY_STATEMENT else "guard"}
        if node.kind is NodeKind.CATCH_CLAUSE or declared_name(node) in BOUNDARY_METHODS \
                or node.kind in FUNCTION_LITERALS:
            return {"role": "catch"}
        if match.root.kind is NodeKind.TRY_STATEMENT and node is match.root.child("finalizer"):
            return {"role": "finally"}
        return {"role": "operation"}

    def classify_node(self, node: SyntaxNode, label: str, match: RawMatch) -> IdiomNodeKind | None:
        role = self.node_properties(node, match)["role"]
        if role == "catch":
            return IdiomNodeKind.FAULT
        return IdiomNodeKind.BUILDING_BLOCK

    def connect(self, match: RawMatch, nodes: list[IdiomNode]) -> list[Link] | None:
        roles: dict[str, list[IdiomNode]] = {}
        for node in nodes:
            roles.setdefault(node.properties.get("role", ""), []).append(node)
        guards = roles.get("try", []) + roles.get("guard", [])
        if not guards:
            return linear_chain(nodes, ConnectionKind.CONTROL_FLOW, "then")
        guard = guards[0]
        catches = roles.get("catch", [])
        finals = roles.get("finally", [])

        links = [Link(op, guard, ConnectionKind.CONTROL_FLOW, "executes in") for op in roles.get("operation", [])]
        links += [Link(guard, c, ConnectionKind.ERROR_PATH, "on error") for c in catches]
        links += [Link(guard, f, ConnectionKind.CONTROL_FLOW, "always executes") for f in finals]
        links += [Link(c, f, ConnectionKind.CONTROL_FLOW, "then cleanup") for c in catches for f in finals]
        return links
