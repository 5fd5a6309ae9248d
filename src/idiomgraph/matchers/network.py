"""Network-call idiom: ``fetch`` and axios requests with their promise handling."""

from __future__ import annotations

from typing import Any

from idiomgraph.engine.registry import MatcherBase
from idiomgraph.engine.walker import TraversalContext
from idiomgraph.matchers.common import (
    contains_words,
    enclosing_await,
    enclosing_try,
    handler_name,
    instanceof_types,
    literal_text,
    promise_chain,
)
from idiomgraph.models import (
    ConnectionKind,
    IdiomKind,
    IdiomNode,
    IdiomNodeKind,
    Link,
    NetworkDetails,
    RawMatch,
    SourceSpan,
    linear_chain,
    unique,
)
from idiomgraph.syntax.tree import (
    CALL_KINDS,
    FUNCTION_LITERALS,
    MEMBER_KINDS,
    NodeKind,
    SyntaxNode,
    dotted_name,
    function_body,
    identifier_name,
    member_name,
    object_property,
    string_value,
)

FETCH_NAMES = ("fetch",)
AXIOS_NAMES = ("axios",)
AXIOS_METHODS = ("get", "post", "put", "patch", "delete", "head", "options", "request")
PAYLOAD_METHODS = ("post", "put", "patch")
DEFAULT_METHOD = "GET"

BASE_CONFIDENCE = 0.4
CALL_WEIGHT = 0.3
ENDPOINT_WEIGHT = 0.1
METHOD_WEIGHT = 0.1
ERROR_HANDLING_WEIGHT = 0.1
SUCCESS_HANDLING_WEIGHT = 0.1
BOTH_HANDLED_BONUS = 0.05


def score_network_call(details: NetworkDetails) -> float:
    score = BASE_CONFIDENCE
    if details.is_call:
        score += CALL_WEIGHT
    if details.endpoint:
        score += ENDPOINT_WEIGHT
    if details.http_method:
        score += METHOD_WEIGHT
    if details.has_error_handling:
        score += ERROR_HANDLING_WEIGHT
    if details.has_success_handling:
        score += SUCCESS_HANDLING_WEIGHT
    if details.has_error_handling and details.has_success_handling:
        score += BOTH_HANDLED_BONUS
    return min(score, 1.0)


def describe_endpoint(node: SyntaxNode | None) -> tuple[str | None, list[str]]:
    """Endpoint text plus the variables it interpolates."""
    if node is None:
        return None, []
    text, variables = literal_text(node)
    if text is not None:
        return text, variables
    name = dotted_name(node)
    if name:
        return "{%s}" % name, [name]
    return None, []


def describe_payload(node: SyntaxNode | None) -> str | None:
    if node is None:
        return None
    if node.kind in CALL_KINDS and dotted_name(node.child("callee")) == "JSON.stringify":
        return "JSON"
    name = dotted_name(node)
    if name:
        return name
    if node.kind is NodeKind.OBJECT_EXPRESSION:
        return "object"
    if string_value(node) is not None or node.kind is NodeKind.TEMPLATE_LITERAL:
        return "string"
    return node.raw_kind


def _method_text(node: SyntaxNode | None) -> str | None:
    text = string_value(node)
    return text.upper() if text else None


def client_call(node: SyntaxNode) -> tuple[str, str | None] | None:
    """``(client, axios_method)`` when ``node`` is a fetch or axios call."""
    if node.kind not in CALL_KINDS:
        return None
    callee = node.child("callee")
    name = identifier_name(callee)
    if name in FETCH_NAMES:
        return "fetch", None
    if name in AXIOS_NAMES:
        return "axios", None
    if callee is not None and callee.kind in MEMBER_KINDS and identifier_name(callee.child("object")) in AXIOS_NAMES:
        method = member_name(callee)
        if method in AXIOS_METHODS:
            return "axios", method
    return None


class NetworkCallMatcher(MatcherBase):
    kind = IdiomKind.NETWORK_CALL

    def match(self, node: SyntaxNode, context: TraversalContext) -> list[RawMatch]:
        shape = client_call(node)
        if shape is None:
            return []
        client, axios_method = shape
        details = NetworkDetails(client=client, is_call=True)
        args = node.child_list("arguments")

        if client == "fetch":
            variables = self._fetch_request(details, args)
        else:
            variables = self._axios_request(details, axios_method, args)

        involved = [node]
        for method, call in promise_chain(context.ancestors):
            involved.append(call)
            self._chain_handler(details, method, call)

        if not details.has_success_handling and enclosing_await(context.ancestors) is not None:
            details.has_success_handling = True
            details.success_handlers.append("await-success")
            try_node = enclosing_try(context.ancestors)
            handler = try_node.child("handler") if try_node is not None else None
            if handler is not None:
                details.has_error_handling = True
                details.error_handlers.append("try-catch-error")
                details.error_types.extend(instanceof_types(handler.child("body")))

        details.success_handlers = unique(details.success_handlers)
        details.error_handlers = unique(details.error_handlers)
        details.error_types = unique(details.error_types)
        named_handlers = [
            h for h in details.success_handlers + details.error_handlers
            if not h.startswith(("inline-", "await-", "try-catch-"))
        ]
        return [RawMatch(
            kind=self.kind,
            root=node,
            involved=involved,
            details=details,
            variables=unique(variables),
            functions=unique(named_handlers),
        )]

    @staticmethod
    def _fetch_request(details: NetworkDetails, args: list[SyntaxNode]) -> list[str]:
        endpoint, variables = describe_endpoint(args[0] if args else None)
        details.endpoint = endpoint
        options = args[1] if len(args) > 1 else None
        details.http_method = _method_text(object_property(options, "method")) or DEFAULT_METHOD
        body = object_property(options, "body")
        if body is not None:
            details.has_payload = True
            details.payload = describe_payload(body)
        return variables

    @staticmethod
    def _axios_request(details: NetworkDetails, method: str | None, args: list[SyntaxNode]) -> list[str]:
        first = args[0] if args else None
        if method is None or method == "request":
            # axios(config), axios(url, config), axios.request(config)
            if first is not None and first.kind is NodeKind.OBJECT_EXPRESSION:
                config, url = first, object_property(first, "url")
            else:
                config, url = (args[1] if len(args) > 1 else None), first
            endpoint, variables = describe_endpoint(url)
            details.endpoint = endpoint
            details.http_method = _method_text(object_property(config, "method")) or DEFAULT_METHOD
            data = object_property(config, "data")
            if data is not None:
                details.has_payload = True
                details.payload = describe_payload(data)
            return variables

        endpoint, variables = describe_endpoint(first)
        details.endpoint = endpoint
        details.http_method = method.upper()
        if method in PAYLOAD_METHODS and len(args) > 1:
            details.has_payload = True
            details.payload = describe_payload(args[1])
        return variables

    @staticmethod
    def _chain_handler(details: NetworkDetails, method: str, call: SyntaxNode) -> None:
        args = call.child_list("arguments")
        first = args[0] if args else None
        if method == "then":
            details.has_success_handling = True
            details.success_handlers.append(handler_name(first) or "inline-success")
            if len(args) > 1:
                details.has_error_handling = True
                details.error_handlers.append(handler_name(args[1]) or "inline-error")
        elif method == "catch":
            details.has_error_handling = True
            details.error_handlers.append(handler_name(first) or "inline-error")
            if first is not None and first.kind in FUNCTION_LITERALS:
                details.error_types.extend(instanceof_types(function_body(first)))
        else:
            details.has_finally = True

    def confidence(self, match: RawMatch) -> float:
        return score_network_call(match.details)

    # ── Graph shaping ──

    def node_properties(self, node: SyntaxNode, match: RawMatch) -> dict[str, Any]:
        if node is match.root:
            return {"role": "request", "endpoint": match.details.endpoint, "method": match.details.http_method}
        method = member_name(node.child("callee"))
        return {"role": {"then": "success", "catch": "error"}.get(method, "cleanup")}

    def classify_node(self, node: SyntaxNode, label: str, match: RawMatch) -> IdiomNodeKind | None:
        if node.kind is NodeKind.TRY_STATEMENT or contains_words(label, ("catch", "error")):
            return IdiomNodeKind.FAULT
        if node is match.root or contains_words(label, ("fetch", "axios", "api")):
            return IdiomNodeKind.NETWORK
        if contains_words(label, ("then", "success", "finally")):
            return IdiomNodeKind.BUILDING_BLOCK
        return IdiomNodeKind.NETWORK

    def implicit_nodes(self, match: RawMatch, nodes: list[IdiomNode], id_prefix: str) -> list[IdiomNode]:
        details = match.details
        span = SourceSpan.of(match.root)
        result = list(nodes)
        has_network = any(n.kind is IdiomNodeKind.NETWORK for n in nodes)
        if has_network and not any(n.kind is IdiomNodeKind.PERSON for n in nodes):
            result.insert(0, IdiomNode(
                id=f"{id_prefix}-user",
                kind=IdiomNodeKind.PERSON,
                label="User",
                span=span,
                properties={"role": "user", "implicit": True},
            ))
        if details.has_success_handling and not any(n.properties.get("role") == "success" for n in nodes):
            result.append(IdiomNode(
                id=f"{id_prefix}-success",
                kind=IdiomNodeKind.BUILDING_BLOCK,
                label="Success Handler",
                span=span,
                properties={"role": "success", "implicit": True, "handlers": list(details.success_handlers)},
            ))
        if details.has_error_handling and not any(n.properties.get("role") == "error" for n in nodes):
            result.append(IdiomNode(
                id=f"{id_prefix}-error",
                kind=IdiomNodeKind.FAULT,
                label="Error Handler",
                span=span,
                properties={"role": "error", "implicit": True, "handlers": list(details.error_handlers)},
            ))
        return result

    def connect(self, match: RawMatch, nodes: list[IdiomNode]) -> list[Link] | None:
        by_role: dict[str, list[IdiomNode]] = {}
        for node in nodes:
            by_role.setdefault(node.properties.get("role", ""), []).append(node)
        requests = by_role.get("request", [])
        if not requests:
            return linear_chain(nodes, ConnectionKind.DATA_FLOW, "processes")

        method = match.details.http_method or DEFAULT_METHOD
        links: list[Link] = []
        for request in requests:
            for user in by_role.get("user", []):
                links.append(Link(user, request, ConnectionKind.EVENT, f"{method} request"))
            for success in by_role.get("success", []):
                links.append(Link(request, success, ConnectionKind.SUCCESS_PATH, "success response"))
            for error in by_role.get("error", []):
                links.append(Link(request, error, ConnectionKind.ERROR_PATH, "error response"))
            for cleanup in by_role.get("cleanup", []):
                links.append(Link(request, cleanup, ConnectionKind.CONTROL_FLOW, "always runs"))
        return links or linear_chain(nodes, ConnectionKind.DATA_FLOW, "processes")
