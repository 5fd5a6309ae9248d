"""Visual graph handed to the rendering collaborator."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from idiomgraph.models import IdiomNodeKind, SourceSpan, plain


class EdgeKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    ACTION = "action"
    DATA_FLOW = "data-flow"


@dataclass(frozen=True)
class Position:
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class NodeStyle:
    background_color: str
    border_color: str
    text_color: str
    width: int = 120
    height: int = 80
    border_radius: int = 8
    border_width: int = 2


@dataclass(frozen=True)
class EdgeStyle:
    stroke_width: int = 2
    stroke_dasharray: str | None = None
    marker_end: str = "url(#arrowhead)"


@dataclass(frozen=True)
class VisualNodeMetadata:
    idiom_node_id: str
    idiom_kind: str
    span: SourceSpan
    context: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class VisualNode:
    id: str
    kind: IdiomNodeKind
    position: Position
    label: str
    metadata: VisualNodeMetadata
    style: NodeStyle


@dataclass(frozen=True)
class VisualEdge:
    id: str
    source_id: str
    target_id: str
    label: str
    kind: EdgeKind
    color: str
    animated: bool
    style: EdgeStyle


@dataclass(frozen=True)
class Padding:
    top: int = 50
    right: int = 50
    bottom: int = 50
    left: int = 50


@dataclass(frozen=True)
class LayoutConfig:
    direction: str = "vertical"
    node_spacing: float = 150.0
    level_spacing: float = 200.0
    auto_fit: bool = True
    padding: Padding = field(default_factory=Padding)


@dataclass(frozen=True)
class DiagramGraph:
    nodes: list[VisualNode] = field(default_factory=list)
    edges: list[VisualEdge] = field(default_factory=list)
    layout: LayoutConfig = field(default_factory=LayoutConfig)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready mapping with enum values flattened to strings."""
        return plain(asdict(self))
