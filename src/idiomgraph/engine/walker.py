"""Depth-first tree walker that offers every node to the registered matchers."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from idiomgraph.models import RawMatch
from idiomgraph.syntax.tree import (
    FUNCTION_LITERALS,
    NodeKind,
    SyntaxNode,
    child_nodes,
    identifier_name,
)

if TYPE_CHECKING:
    from idiomgraph.engine.registry import IdiomMatcher

logger = logging.getLogger(__name__)


@dataclass
class TraversalTables:
    """Name tables filled in as declarations are seen during one walk."""

    scope: dict[str, SyntaxNode] = field(default_factory=dict)
    functions: dict[str, SyntaxNode] = field(default_factory=dict)

    def observe(self, node: SyntaxNode) -> None:
        if node.kind is NodeKind.FUNCTION_DECLARATION:
            name = identifier_name(node.child("id"))
            if name:
                self.functions[name] = node
        elif node.kind is NodeKind.VARIABLE_DECLARATOR:
            name = identifier_name(node.child("id"))
            if not name:
                return
            self.scope[name] = node
            init = node.child("init")
            if init is not None and init.kind in FUNCTION_LITERALS:
                self.functions[name] = init


@dataclass(frozen=True)
class TraversalContext:
    """Per-node walk state. ``ancestors[-1]`` is the node being visited."""

    depth: int
    ancestors: tuple[SyntaxNode, ...]
    tables: TraversalTables
    source_text: str = ""

    @classmethod
    def start(cls, source_text: str = "") -> TraversalContext:
        return cls(depth=0, ancestors=(), tables=TraversalTables(), source_text=source_text)

    @property
    def scope(self) -> dict[str, SyntaxNode]:
        return self.tables.scope

    @property
    def functions(self) -> dict[str, SyntaxNode]:
        return self.tables.functions

    @property
    def parent(self) -> SyntaxNode | None:
        return self.ancestors[-2] if len(self.ancestors) >= 2 else None

    def descend(self, node: SyntaxNode) -> TraversalContext:
        return TraversalContext(
            depth=self.depth + 1,
            ancestors=self.ancestors + (node,),
            tables=self.tables,
            source_text=self.source_text,
        )


def _matcher_label(matcher: object) -> str:
    kind = getattr(matcher, "kind", None)
    return getattr(kind, "value", None) or str(kind or type(matcher).__name__)


class TreeWalker:
    """Pre-order walk; every node is offered to every matcher in order."""

    def __init__(self, matchers: Iterable[IdiomMatcher]) -> None:
        self._matchers = list(matchers)

    def walk(self, root: SyntaxNode, source_text: str = "") -> list[RawMatch]:
        t0 = time.perf_counter()
        matches: list[RawMatch] = []
        visited = 0

        stack: list[tuple[SyntaxNode, TraversalContext]] = [(root, TraversalContext.start(source_text))]
        while stack:
            node, outer = stack.pop()
            context = outer.descend(node)
            context.tables.observe(node)
            matches.extend(self._offer(node, context))
            visited += 1
            for child in reversed(child_nodes(node)):
                stack.append((child, context))

        logger.debug(
            "walk: %d nodes, %d raw matches (%.3fs)",
            visited, len(matches), time.perf_counter() - t0,
        )
        return matches

    def _offer(self, node: SyntaxNode, context: TraversalContext) -> list[RawMatch]:
        found: list[RawMatch] = []
        for matcher in self._matchers:
            try:
                found.extend(matcher.match(node, context))
            except Exception as e:
                logger.warning(
                    "matcher %s failed on %s at offset %d: %s",
                    _matcher_label(matcher), node.raw_kind, node.start, e,
                )
        return found
