"""Matcher plugin interface and the registry that runs recognition."""

from __future__ import annotations

import logging
import math
import time
from typing import Any, Protocol, runtime_checkable

from idiomgraph.engine.converter import IdiomConverter
from idiomgraph.engine.walker import TraversalContext, TreeWalker
from idiomgraph.models import (
    IdiomKind,
    IdiomNode,
    IdiomNodeKind,
    IdiomRecord,
    Link,
    RawMatch,
)
from idiomgraph.syntax.tree import SyntaxNode

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.6


class OutOfRangeError(ValueError):
    """A confidence threshold outside [0, 1]."""


# ---------------------------------------------------------------------------
# Matcher protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class IdiomMatcher(Protocol):
    kind: IdiomKind

    def match(self, node: SyntaxNode, context: TraversalContext) -> list[RawMatch]: ...

    def confidence(self, match: RawMatch) -> float: ...


class MatcherBase:
    """Defaults for the optional graph-shaping hooks the converter looks for.

    A matcher only has to provide ``kind``, ``match`` and ``confidence``.
    The hooks let it pick idiom node kinds, add nodes that have no tree
    counterpart, and wire idiom-specific connections. Returning ``None``
    from a hook means "use the converter's default".
    """

    kind: IdiomKind

    def match(self, node: SyntaxNode, context: TraversalContext) -> list[RawMatch]:
        raise NotImplementedError

    def confidence(self, match: RawMatch) -> float:
        raise NotImplementedError

    def classify_node(self, node: SyntaxNode, label: str, match: RawMatch) -> IdiomNodeKind | None:
        return None

    def node_properties(self, node: SyntaxNode, match: RawMatch) -> dict[str, Any]:
        return {}

    def implicit_nodes(self, match: RawMatch, nodes: list[IdiomNode], id_prefix: str) -> list[IdiomNode]:
        return nodes

    def connect(self, match: RawMatch, nodes: list[IdiomNode]) -> list[Link] | None:
        return None


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class MatcherRegistry:
    """Idiom kind -> matcher, plus the confidence threshold for accepting matches."""

    def __init__(self, threshold: float = DEFAULT_THRESHOLD, converter: IdiomConverter | None = None) -> None:
        self._matchers: dict[IdiomKind, IdiomMatcher] = {}
        self._threshold = DEFAULT_THRESHOLD
        self._converter = converter or IdiomConverter()
        self.set_threshold(threshold)

    def register(self, matcher: IdiomMatcher) -> None:
        if matcher.kind in self._matchers:
            logger.debug("replacing matcher for %s", matcher.kind)
        self._matchers[matcher.kind] = matcher

    def get(self, kind: IdiomKind) -> IdiomMatcher | None:
        return self._matchers.get(kind)

    @property
    def kinds(self) -> list[IdiomKind]:
        return list(self._matchers.keys())

    @property
    def threshold(self) -> float:
        return self._threshold

    def set_threshold(self, threshold: float) -> None:
        if not 0.0 <= threshold <= 1.0:
            raise OutOfRangeError(f"confidence threshold must be within [0, 1], got {threshold!r}")
        self._threshold = float(threshold)

    def recognize(self, tree: SyntaxNode, source_text: str = "") -> list[IdiomRecord]:
        """Walk ``tree`` and return an idiom record for every accepted match."""
        t0 = time.perf_counter()
        matchers = dict(self._matchers)
        raw = TreeWalker(matchers.values()).walk(tree, source_text)

        accepted: list[tuple[RawMatch, IdiomMatcher, float]] = []
        for match in raw:
            matcher = matchers.get(match.kind)
            if matcher is None:
                logger.warning("no matcher registered for %s, dropping match", match.kind)
                continue
            score = self._score(matcher, match)
            if score is not None and score >= self._threshold:
                accepted.append((match, matcher, score))

        records: list[IdiomRecord] = []
        for index, (match, matcher, score) in enumerate(accepted):
            record = self._converter.convert(match, index, matcher, score, source_text)
            if record is not None:
                records.append(record)

        logger.debug(
            "recognize: %d raw, %d accepted, %d records (%.3fs)",
            len(raw), len(accepted), len(records), time.perf_counter() - t0,
        )
        return records

    @staticmethod
    def _score(matcher: IdiomMatcher, match: RawMatch) -> float | None:
        try:
            score = float(matcher.confidence(match))
        except Exception as e:
            logger.warning("confidence failed for %s match: %s", match.kind, e)
            return None
        if math.isnan(score):
            logger.warning("confidence for %s match is NaN, dropping", match.kind)
            return None
        return min(max(score, 0.0), 1.0)
