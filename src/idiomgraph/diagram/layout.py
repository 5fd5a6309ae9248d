"""Layered layout: BFS depth from root nodes becomes the vertical rank."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Sequence
from dataclasses import replace

from idiomgraph import config
from idiomgraph.diagram.models import Position, VisualEdge, VisualNode

logger = logging.getLogger(__name__)


class LayoutEngine:
    def __init__(
        self,
        node_spacing: float = config.NODE_SPACING,
        level_spacing: float = config.LEVEL_SPACING,
    ) -> None:
        self.node_spacing = node_spacing
        self.level_spacing = level_spacing

    def assign_layers(self, nodes: Sequence[VisualNode], edges: Sequence[VisualEdge]) -> dict[str, int]:
        """Node id -> layer. Nodes without incoming edges are roots at layer 0.

        With no root at all (every node has an incoming edge) the first node
        is used. Nodes the BFS never reaches also land on layer 0.
        """
        ids = [n.id for n in nodes]
        adjacency: dict[str, list[str]] = {node_id: [] for node_id in ids}
        incoming: set[str] = set()
        for edge in edges:
            if edge.source_id in adjacency and edge.target_id in adjacency:
                adjacency[edge.source_id].append(edge.target_id)
                incoming.add(edge.target_id)

        roots = [node_id for node_id in ids if node_id not in incoming]
        if not roots and ids:
            logger.debug("no root nodes among %d, falling back to %s", len(ids), ids[0])
            roots = [ids[0]]

        layers: dict[str, int] = {}
        queue: deque[str] = deque()
        for root in roots:
            if root not in layers:
                layers[root] = 0
                queue.append(root)
        while queue:
            current = queue.popleft()
            for target in adjacency[current]:
                if target not in layers:
                    layers[target] = layers[current] + 1
                    queue.append(target)

        for node_id in ids:
            layers.setdefault(node_id, 0)
        return layers

    def position(self, nodes: Sequence[VisualNode], edges: Sequence[VisualEdge]) -> list[VisualNode]:
        """Return the nodes, in input order, with layered positions."""
        if not nodes:
            return list(nodes)
        if len(nodes) == 1:
            return [replace(nodes[0], position=Position(0.0, 0.0))]

        layers = self.assign_layers(nodes, edges)
        members: dict[int, list[str]] = {}
        for node in nodes:
            members.setdefault(layers[node.id], []).append(node.id)

        coords: dict[str, Position] = {}
        for layer, layer_ids in members.items():
            k = len(layer_ids)
            offset = -(k - 1) * self.node_spacing / 2
            for i, node_id in enumerate(layer_ids):
                coords[node_id] = Position(offset + i * self.node_spacing, layer * self.level_spacing)

        return [replace(node, position=coords[node.id]) for node in nodes]
