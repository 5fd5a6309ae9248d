"""Tests for the diagram generator."""

from __future__ import annotations

import json

from idiomgraph.diagram.generator import DiagramGenerator
from idiomgraph.diagram.layout import LayoutEngine
from idiomgraph.diagram.models import DiagramGraph, EdgeKind, Padding
from idiomgraph.models import IdiomKind, IdiomNodeKind
from tests.helpers import counter_component


class TestGenerate:
    def test_empty(self, generator) -> None:
        graph = generator.generate([])
        assert isinstance(graph, DiagramGraph)
        assert graph.nodes == []
        assert graph.edges == []
        assert graph.layout.padding == Padding(50, 50, 50, 50)
        assert graph.layout.direction == "vertical"
        assert graph.layout.auto_fit

    def test_layout_config_reflects_engine(self) -> None:
        graph = DiagramGenerator(layout=LayoutEngine(90.0, 120.0)).generate([])
        assert graph.layout.node_spacing == 90.0
        assert graph.layout.level_spacing == 120.0

    def test_counter_diagram(self, registry, generator) -> None:
        records = registry.recognize(counter_component())
        assert [r.kind for r in records] == [IdiomKind.COUNTER, IdiomKind.COMPONENT]

        graph = generator.generate(records)
        counter_nodes = [n for n in graph.nodes if n.id.startswith("visual-0-")]
        component_nodes = [n for n in graph.nodes if n.id.startswith("visual-1-")]
        assert len(counter_nodes) == len(records[0].nodes)
        assert len(component_nodes) == len(records[1].nodes)

        # Both the increment handler and the onClick attribute update the state.
        actions = [e for e in graph.edges if e.kind is EdgeKind.ACTION]
        assert len(actions) == 2
        assert all(e.label == "click updates" and e.animated for e in actions)
        assert {e.target_id for e in actions} == {"visual-0-1"}

        kinds = {n.kind for n in counter_nodes}
        assert IdiomNodeKind.COUNTER in kinds
        assert IdiomNodeKind.TRIGGER in kinds

        # Every edge target sits one layer below some source.
        positions = {n.id: n.position for n in graph.nodes}
        for edge in graph.edges:
            assert positions[edge.target_id].y > 0

    def test_to_dict_is_json_ready(self, registry, generator) -> None:
        graph = generator.generate(registry.recognize(counter_component()))
        data = graph.to_dict()
        json.dumps(data)
        assert data["layout"]["padding"] == {"top": 50, "right": 50, "bottom": 50, "left": 50}
        assert data["nodes"][0]["kind"] in {k.value for k in IdiomNodeKind}
        assert {e["kind"] for e in data["edges"]} <= {k.value for k in EdgeKind}
        assert set(data["nodes"][0]["position"]) == {"x", "y"}
