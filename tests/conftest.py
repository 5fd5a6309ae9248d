"""Shared fixtures — default registry, layout engine and generator."""

import pytest

from idiomgraph.diagram.generator import DiagramGenerator
from idiomgraph.diagram.layout import LayoutEngine
from idiomgraph.matchers import build_registry


@pytest.fixture
def registry():
    """Registry with every built-in matcher at the default threshold."""
    return build_registry(0.6)


@pytest.fixture
def layout():
    return LayoutEngine(node_spacing=150.0, level_spacing=200.0)


@pytest.fixture
def generator(layout):
    return DiagramGenerator(layout=layout)
