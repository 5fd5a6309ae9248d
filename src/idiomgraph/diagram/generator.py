"""Idiom records -> positioned diagram."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from idiomgraph import config
from idiomgraph.diagram.layout import LayoutEngine
from idiomgraph.diagram.mapper import VisualMapper
from idiomgraph.diagram.models import DiagramGraph, LayoutConfig, Padding, VisualEdge, VisualNode
from idiomgraph.models import IdiomRecord

logger = logging.getLogger(__name__)


class DiagramGenerator:
    def __init__(self, mapper: VisualMapper | None = None, layout: LayoutEngine | None = None) -> None:
        self._mapper = mapper or VisualMapper()
        self._layout = layout or LayoutEngine()

    def layout_config(self) -> LayoutConfig:
        pad = config.LAYOUT_PADDING
        return LayoutConfig(
            direction="vertical",
            node_spacing=self._layout.node_spacing,
            level_spacing=self._layout.level_spacing,
            auto_fit=True,
            padding=Padding(top=pad, right=pad, bottom=pad, left=pad),
        )

    def generate(self, records: Sequence[IdiomRecord]) -> DiagramGraph:
        """Map every record and lay the combined graph out. Empty in, empty out."""
        if not records:
            return DiagramGraph(nodes=[], edges=[], layout=self.layout_config())

        nodes: list[VisualNode] = []
        edges: list[VisualEdge] = []
        for index, record in enumerate(records):
            record_nodes, record_edges = self._mapper.map_record(record, index)
            nodes.extend(record_nodes)
            edges.extend(record_edges)

        positioned = self._layout.position(nodes, edges)
        logger.debug("diagram: %d records -> %d nodes, %d edges", len(records), len(positioned), len(edges))
        return DiagramGraph(nodes=positioned, edges=edges, layout=self.layout_config())
