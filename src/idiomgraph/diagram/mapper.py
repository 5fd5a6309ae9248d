"""Map idiom records to presentation nodes and edges."""

from __future__ import annotations

import logging
from collections.abc import Callable

from idiomgraph.diagram.models import (
    EdgeKind,
    EdgeStyle,
    NodeStyle,
    Position,
    VisualEdge,
    VisualNode,
    VisualNodeMetadata,
)
from idiomgraph.matchers.common import contains_words
from idiomgraph.models import (
    ConnectionKind,
    IdiomConnection,
    IdiomKind,
    IdiomNode,
    IdiomNodeKind,
    IdiomRecord,
)

logger = logging.getLogger(__name__)

# Node kinds that already name a presentation role; kept as-is.
PRESENTATION_KINDS = frozenset({
    IdiomNodeKind.TRIGGER,
    IdiomNodeKind.COUNTER,
    IdiomNodeKind.NETWORK,
    IdiomNodeKind.STORE,
    IdiomNodeKind.PERSON,
    IdiomNodeKind.FAULT,
})

EDGE_KINDS: dict[ConnectionKind, EdgeKind] = {
    ConnectionKind.SUCCESS_PATH: EdgeKind.SUCCESS,
    ConnectionKind.ERROR_PATH: EdgeKind.ERROR,
    ConnectionKind.EVENT: EdgeKind.ACTION,
    ConnectionKind.DATA_FLOW: EdgeKind.DATA_FLOW,
    ConnectionKind.CONTROL_FLOW: EdgeKind.DATA_FLOW,
}

EDGE_COLORS: dict[EdgeKind, str] = {
    EdgeKind.SUCCESS: "#10b981",
    EdgeKind.ERROR: "#ef4444",
    EdgeKind.ACTION: "#3b82f6",
    EdgeKind.DATA_FLOW: "#8b5cf6",
}

ANIMATED_EDGES = frozenset({EdgeKind.ACTION, EdgeKind.DATA_FLOW})

NODE_STYLES: dict[IdiomNodeKind, NodeStyle] = {
    IdiomNodeKind.TRIGGER: NodeStyle("#dbeafe", "#3b82f6", "#1e40af"),
    IdiomNodeKind.COUNTER: NodeStyle("#dcfce7", "#10b981", "#065f46"),
    IdiomNodeKind.NETWORK: NodeStyle("#fef3c7", "#f59e0b", "#92400e"),
    IdiomNodeKind.STORE: NodeStyle("#e0e7ff", "#6366f1", "#3730a3"),
    IdiomNodeKind.FAULT: NodeStyle("#fee2e2", "#ef4444", "#991b1b"),
}
DEFAULT_NODE_STYLE = NodeStyle("#f3f4f6", "#6b7280", "#374151")

EDGE_STYLES: dict[EdgeKind, EdgeStyle] = {
    EdgeKind.ERROR: EdgeStyle(stroke_width=3, stroke_dasharray="5,5"),
    EdgeKind.SUCCESS: EdgeStyle(stroke_width=3),
}
DEFAULT_EDGE_STYLE = EdgeStyle()


# ── Per-idiom node heuristics ──


def _counter_kind(node: IdiomNode) -> IdiomNodeKind:
    label = node.label
    role = node.properties.get("role")
    if contains_words(label, ("click", "handle", "button")) or role == "handler":
        return IdiomNodeKind.TRIGGER
    if contains_words(label, ("count", "num", "value")) or role == "state":
        return IdiomNodeKind.COUNTER
    if node.kind is IdiomNodeKind.BEHAVIOR and contains_words(label, ("increment", "decrement", "add", "subtract")):
        return IdiomNodeKind.TRIGGER
    if node.kind is IdiomNodeKind.VALUE:
        return IdiomNodeKind.COUNTER
    return IdiomNodeKind.BUILDING_BLOCK


def _network_kind(node: IdiomNode) -> IdiomNodeKind:
    label = node.label
    if contains_words(label, ("user",)):
        return IdiomNodeKind.PERSON
    if contains_words(label, ("error", "catch", "fail")):
        return IdiomNodeKind.FAULT
    if contains_words(label, ("success", "then", "finally")):
        return IdiomNodeKind.BUILDING_BLOCK
    return IdiomNodeKind.NETWORK


def _persistence_kind(node: IdiomNode) -> IdiomNodeKind:
    return IdiomNodeKind.STORE


def _error_handling_kind(node: IdiomNode) -> IdiomNodeKind:
    if contains_words(node.label, ("error", "catch", "throw", "fault")):
        return IdiomNodeKind.FAULT
    return IdiomNodeKind.BUILDING_BLOCK


def _component_kind(node: IdiomNode) -> IdiomNodeKind:
    return IdiomNodeKind.BUILDING_BLOCK


NODE_HEURISTICS: dict[IdiomKind, Callable[[IdiomNode], IdiomNodeKind]] = {
    IdiomKind.COUNTER: _counter_kind,
    IdiomKind.NETWORK_CALL: _network_kind,
    IdiomKind.PERSISTENCE: _persistence_kind,
    IdiomKind.ERROR_HANDLING: _error_handling_kind,
    IdiomKind.COMPONENT: _component_kind,
}


def visual_kind(idiom_kind: IdiomKind, node: IdiomNode) -> IdiomNodeKind:
    if node.kind in PRESENTATION_KINDS:
        return node.kind
    heuristic = NODE_HEURISTICS.get(idiom_kind)
    if heuristic is None:
        return IdiomNodeKind.BUILDING_BLOCK
    return heuristic(node)


def edge_kind(kind: ConnectionKind) -> EdgeKind:
    return EDGE_KINDS.get(kind, EdgeKind.DATA_FLOW)


def _idiom_kind_value(kind: object) -> str:
    return getattr(kind, "value", None) or str(kind)


class VisualMapper:
    """One record -> positioned-at-origin visual nodes and edges."""

    def map_record(self, record: IdiomRecord, record_index: int) -> tuple[list[VisualNode], list[VisualEdge]]:
        context_extra = {
            "confidence": record.metadata.confidence,
            "complexity": record.metadata.complexity.value,
        }
        ids: dict[str, str] = {}
        nodes: list[VisualNode] = []
        for i, node in enumerate(record.nodes):
            kind = visual_kind(record.kind, node)
            visual_id = f"visual-{record_index}-{i}"
            ids[node.id] = visual_id
            nodes.append(VisualNode(
                id=visual_id,
                kind=kind,
                position=Position(),
                label=node.label,
                metadata=VisualNodeMetadata(
                    idiom_node_id=node.id,
                    idiom_kind=_idiom_kind_value(record.kind),
                    span=node.span,
                    context={**node.properties, **context_extra},
                ),
                style=NODE_STYLES.get(kind, DEFAULT_NODE_STYLE),
            ))

        edges: list[VisualEdge] = []
        for i, connection in enumerate(record.connections):
            edge = self._edge(connection, record_index, i, ids)
            if edge is not None:
                edges.append(edge)
        return nodes, edges

    @staticmethod
    def _edge(
        connection: IdiomConnection,
        record_index: int,
        index: int,
        ids: dict[str, str],
    ) -> VisualEdge | None:
        source = ids.get(connection.source_id)
        target = ids.get(connection.target_id)
        if source is None or target is None:
            logger.debug("dropping connection %s: unmapped endpoint", connection.id)
            return None
        kind = edge_kind(connection.kind)
        return VisualEdge(
            id=f"edge-{record_index}-{index}",
            source_id=source,
            target_id=target,
            label=connection.label,
            kind=kind,
            color=EDGE_COLORS[kind],
            animated=kind in ANIMATED_EDGES,
            style=EDGE_STYLES.get(kind, DEFAULT_EDGE_STYLE),
        )
