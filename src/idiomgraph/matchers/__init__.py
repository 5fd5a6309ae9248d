"""Built-in idiom matchers and the default registry."""

from __future__ import annotations

from idiomgraph import config
from idiomgraph.engine.registry import MatcherRegistry
from idiomgraph.matchers.component import ComponentMatcher
from idiomgraph.matchers.counter import CounterMatcher
from idiomgraph.matchers.error_handling import ErrorHandlingMatcher
from idiomgraph.matchers.network import NetworkCallMatcher
from idiomgraph.matchers.persistence import PersistenceMatcher

BUILTIN_MATCHERS = (
    CounterMatcher,
    NetworkCallMatcher,
    PersistenceMatcher,
    ErrorHandlingMatcher,
    ComponentMatcher,
)


def build_registry(threshold: float | None = None) -> MatcherRegistry:
    """Registry with every built-in matcher, in a fixed order."""
    registry = MatcherRegistry(threshold=config.CONFIDENCE_THRESHOLD if threshold is None else threshold)
    for matcher_cls in BUILTIN_MATCHERS:
        registry.register(matcher_cls())
    return registry
