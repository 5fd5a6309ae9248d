"""Turn accepted raw matches into idiom records."""

from __future__ import annotations

import logging
from typing import Any

from idiomgraph import config
from idiomgraph.models import (
    Complexity,
    IdiomConnection,
    IdiomKind,
    IdiomMetadata,
    IdiomNode,
    IdiomNodeKind,
    IdiomRecord,
    Link,
    RawMatch,
    SourceSpan,
    linear_chain,
)
from idiomgraph.syntax.tree import (
    CALL_KINDS,
    FUNCTION_KINDS,
    NodeKind,
    SyntaxNode,
    call_name,
    declared_name,
    identifier_name,
    is_literal,
    object_keys,
)

logger = logging.getLogger(__name__)

SIMPLE_MAX = 5
MEDIUM_MAX = 15


def complexity_score(node_count: int, variable_count: int, function_count: int) -> int:
    return node_count + 2 * variable_count + 3 * function_count


def classify_complexity(score: int) -> Complexity:
    if score <= SIMPLE_MAX:
        return Complexity.SIMPLE
    if score <= MEDIUM_MAX:
        return Complexity.MEDIUM
    return Complexity.COMPLEX


def context_snippet(source_text: str, span: SourceSpan, radius: int = 50) -> str:
    """Source around ``span``, ``radius`` characters each side, clipped to the text."""
    if not source_text:
        return ""
    lo = max(0, span.start - radius)
    hi = min(len(source_text), span.end + radius)
    return source_text[lo:hi].strip()


def node_label(node: SyntaxNode) -> str:
    """Declared or identifier name, callee name for calls, otherwise the raw kind string."""
    name = declared_name(node) or identifier_name(node)
    if name:
        return name
    if node.kind is NodeKind.VARIABLE_DECLARATOR:
        pattern = node.child("id")
        if pattern is not None and pattern.kind is NodeKind.ARRAY_PATTERN:
            return "[%s]" % ", ".join(n for n in map(identifier_name, pattern.child_list("elements")) if n)
        if pattern is not None and pattern.kind is NodeKind.OBJECT_PATTERN:
            return "{%s}" % ", ".join(object_keys(pattern))
    if node.kind in CALL_KINDS or node.kind is NodeKind.NEW_EXPRESSION:
        name = call_name(node)
        if name:
            return name
    return node.raw_kind


def default_node_kind(node: SyntaxNode) -> IdiomNodeKind:
    if node.kind in FUNCTION_KINDS:
        return IdiomNodeKind.BEHAVIOR
    if node.kind is NodeKind.VARIABLE_DECLARATOR:
        init = node.child("init")
        if init is not None and init.kind in FUNCTION_KINDS:
            return IdiomNodeKind.BEHAVIOR
        return IdiomNodeKind.VALUE
    if is_literal(node):
        return IdiomNodeKind.VALUE
    return IdiomNodeKind.BUILDING_BLOCK


def _kind_value(kind: Any) -> str:
    return kind.value if isinstance(kind, IdiomKind) else str(kind)


class IdiomConverter:
    """Builds the idiom graph, complexity and snippet for one accepted match."""

    def __init__(self, context_radius: int = config.CONTEXT_RADIUS) -> None:
        self._context_radius = context_radius

    def convert(
        self,
        match: RawMatch,
        index: int,
        matcher: object,
        confidence: float,
        source_text: str = "",
    ) -> IdiomRecord | None:
        """Return the record, or None (logged) when the match cannot be converted."""
        try:
            return self._build(match, index, matcher, confidence, source_text)
        except Exception as e:
            logger.warning("dropping %s match #%d: conversion failed: %s", _kind_value(match.kind), index, e)
            return None

    def _build(
        self,
        match: RawMatch,
        index: int,
        matcher: object,
        confidence: float,
        source_text: str,
    ) -> IdiomRecord:
        kind = _kind_value(match.kind)
        node_prefix = f"node-{kind}-{index}"

        classify = getattr(matcher, "classify_node", None)
        extra_properties = getattr(matcher, "node_properties", None)

        nodes: list[IdiomNode] = []
        for i, tree_node in enumerate(match.involved):
            label = node_label(tree_node)
            node_kind = classify(tree_node, label, match) if classify else None
            properties: dict[str, Any] = {"syntax_kind": tree_node.raw_kind}
            if extra_properties:
                properties.update(extra_properties(tree_node, match))
            nodes.append(IdiomNode(
                id=f"{node_prefix}-{i}",
                kind=node_kind or default_node_kind(tree_node),
                label=label,
                span=SourceSpan.of(tree_node),
                properties=properties,
            ))

        add_implicit = getattr(matcher, "implicit_nodes", None)
        if add_implicit:
            nodes = list(add_implicit(match, nodes, node_prefix))

        connect = getattr(matcher, "connect", None)
        links: list[Link] | None = connect(match, nodes) if connect else None
        if links is None:
            links = linear_chain(nodes)
        connections = self._connections(kind, index, nodes, links)

        span = SourceSpan.of(match.root)
        score = complexity_score(len(match.involved), len(match.variables), len(match.functions))
        metadata = IdiomMetadata(
            confidence=confidence,
            span=span,
            variables=list(match.variables),
            functions=list(match.functions),
            complexity=classify_complexity(score),
            context_snippet=context_snippet(source_text, span, self._context_radius),
            details=match.details,
        )
        return IdiomRecord(
            id=f"idiom-{kind}-{index}",
            kind=match.kind,
            nodes=nodes,
            connections=connections,
            metadata=metadata,
        )

    @staticmethod
    def _connections(kind: str, index: int, nodes: list[IdiomNode], links: list[Link]) -> list[IdiomConnection]:
        known = {n.id for n in nodes}
        connections: list[IdiomConnection] = []
        for link in links:
            if link.source.id not in known or link.target.id not in known:
                logger.debug("skipping link %s -> %s: endpoint not in idiom", link.source.id, link.target.id)
                continue
            connections.append(IdiomConnection(
                id=f"connection-{kind}-{index}-{len(connections)}",
                source_id=link.source.id,
                target_id=link.target.id,
                kind=link.kind,
                label=link.label,
                properties=dict(link.properties),
            ))
        return connections
