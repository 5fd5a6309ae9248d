"""Tests for the matcher registry: threshold, registration and fault isolation."""

from __future__ import annotations

import json
import logging

import pytest

from idiomgraph.engine.converter import IdiomConverter
from idiomgraph.engine.registry import DEFAULT_THRESHOLD, IdiomMatcher, MatcherBase, MatcherRegistry, OutOfRangeError
from idiomgraph.matchers import BUILTIN_MATCHERS, build_registry
from idiomgraph.matchers.counter import CounterMatcher
from idiomgraph.models import ErrorHandlingDetails, IdiomKind, RawMatch
from idiomgraph.syntax.tree import NodeKind
from tests.helpers import call, counter_component, ident, program, stmt, string


class FixedMatcher(MatcherBase):
    """Matches every identifier with a fixed confidence."""

    def __init__(self, score, kind: IdiomKind = IdiomKind.ERROR_HANDLING) -> None:
        self.score = score
        self.kind = kind

    def match(self, node, context):
        if node.kind is not NodeKind.IDENTIFIER:
            return []
        return [RawMatch(self.kind, node, [node], ErrorHandlingDetails())]

    def confidence(self, match):
        if isinstance(self.score, Exception):
            raise self.score
        return self.score


class TestThreshold:
    def test_default(self) -> None:
        assert MatcherRegistry().threshold == DEFAULT_THRESHOLD == 0.6

    @pytest.mark.parametrize("value", [0.0, 0.35, 1.0])
    def test_accepts_bounds(self, value: float) -> None:
        registry = MatcherRegistry()
        registry.set_threshold(value)
        assert registry.threshold == value

    @pytest.mark.parametrize("value", [-0.01, 1.5])
    def test_rejects_out_of_range(self, value: float) -> None:
        registry = MatcherRegistry()
        with pytest.raises(OutOfRangeError, match="within"):
            registry.set_threshold(value)
        assert registry.threshold == 0.6

    def test_out_of_range_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            MatcherRegistry(threshold=2.0)

    def test_threshold_filters_matches(self) -> None:
        registry = MatcherRegistry(threshold=0.5)
        registry.register(FixedMatcher(0.4))
        tree = program(stmt(ident("x")))
        assert registry.recognize(tree) == []

        registry.set_threshold(0.4)
        assert len(registry.recognize(tree)) == 1


class TestRegistration:
    def test_register_replaces_by_kind(self) -> None:
        registry = MatcherRegistry()
        first, second = FixedMatcher(0.9), FixedMatcher(0.95)
        registry.register(first)
        registry.register(second)
        assert registry.kinds == [IdiomKind.ERROR_HANDLING]
        assert registry.get(IdiomKind.ERROR_HANDLING) is second

    def test_get_unknown_kind(self) -> None:
        assert MatcherRegistry().get(IdiomKind.COUNTER) is None

    def test_builtin_matchers_satisfy_protocol(self) -> None:
        for matcher_cls in BUILTIN_MATCHERS:
            assert isinstance(matcher_cls(), IdiomMatcher)

    def test_build_registry_registers_all_kinds(self) -> None:
        registry = build_registry()
        assert set(registry.kinds) == set(IdiomKind)

    def test_build_registry_threshold(self) -> None:
        assert build_registry(0.9).threshold == 0.9


class TestRecognize:
    def test_empty_registry_yields_nothing(self) -> None:
        assert MatcherRegistry().recognize(counter_component()) == []

    def test_empty_tree_yields_nothing(self, registry: MatcherRegistry) -> None:
        assert registry.recognize(program()) == []

    def test_records_meet_threshold(self, registry: MatcherRegistry) -> None:
        tree = program(
            counter_component(),
            stmt(call("fetch", string("/api/users"))),
            stmt(string("SELECT * FROM orders")),
        )
        records = registry.recognize(tree)
        assert records
        assert all(r.metadata.confidence >= registry.threshold for r in records)
        assert all(0.0 <= r.metadata.confidence <= 1.0 for r in records)

    def test_idempotent(self, registry: MatcherRegistry) -> None:
        tree = program(counter_component(), stmt(call("fetch", string("/api/users"))))
        first = registry.recognize(tree, "source")
        second = registry.recognize(tree, "source")
        assert [r.id for r in first] == [r.id for r in second]
        assert first == second

    def test_record_ids_use_accepted_index(self) -> None:
        registry = MatcherRegistry()
        registry.register(FixedMatcher(0.9))
        records = registry.recognize(program(stmt(ident("a")), stmt(ident("b"))))
        assert [r.id for r in records] == ["idiom-error-handling-0", "idiom-error-handling-1"]

    def test_confidence_is_clamped(self) -> None:
        registry = MatcherRegistry()
        registry.register(FixedMatcher(3.0))
        records = registry.recognize(program(stmt(ident("a"))))
        assert records[0].metadata.confidence == 1.0

    def test_raising_confidence_drops_match(self, caplog) -> None:
        registry = MatcherRegistry(threshold=0.0)
        registry.register(FixedMatcher(RuntimeError("bad score")))
        registry.register(FixedMatcher(0.7, kind=IdiomKind.COUNTER))
        with caplog.at_level(logging.WARNING, logger="idiomgraph.engine.registry"):
            records = registry.recognize(program(stmt(ident("a"))))
        assert [r.kind for r in records] == [IdiomKind.COUNTER]
        assert "bad score" in caplog.text

    def test_nan_confidence_drops_match(self) -> None:
        registry = MatcherRegistry(threshold=0.0)
        registry.register(FixedMatcher(float("nan")))
        assert registry.recognize(program(stmt(ident("a")))) == []

    def test_converter_swallows_build_errors(self, caplog) -> None:
        converter = IdiomConverter()
        bad = RawMatch(IdiomKind.ERROR_HANDLING, None, [], ErrorHandlingDetails())
        with caplog.at_level(logging.WARNING, logger="idiomgraph.engine.converter"):
            assert converter.convert(bad, 0, FixedMatcher(0.9), 0.9) is None
        assert "conversion failed" in caplog.text

    def test_malformed_match_dropped_during_recognize(self) -> None:
        class BrokenRoot(FixedMatcher):
            def match(self, node, context):
                found = super().match(node, context)
                if node.get("name") == "a":
                    found = [RawMatch(self.kind, None, [], ErrorHandlingDetails())]
                return found

        registry = MatcherRegistry()
        registry.register(BrokenRoot(0.9))
        records = registry.recognize(program(stmt(ident("a")), stmt(ident("b"))))
        # Match #0 fails to convert; #1 keeps its index.
        assert [r.id for r in records] == ["idiom-error-handling-1"]

    def test_registration_during_recognition_not_observed(self) -> None:
        registry = MatcherRegistry()

        class Registering(FixedMatcher):
            def match(self, node, context):
                registry.register(CounterMatcher())
                return super().match(node, context)

        registry.register(Registering(0.9))
        records = registry.recognize(counter_component())
        assert all(r.kind is IdiomKind.ERROR_HANDLING for r in records)
        assert registry.get(IdiomKind.COUNTER) is not None


class TestRecordSerialization:
    def test_to_dict(self, registry: MatcherRegistry) -> None:
        [record] = registry.recognize(program(stmt(call("fetch", string("/api/users")))))
        data = record.to_dict()
        assert json.loads(json.dumps(data)) == data
        assert data["kind"] == "network-call"
        assert data["metadata"]["complexity"] == "simple"
        assert data["metadata"]["details"]["kind"] == "network-call"
        assert data["metadata"]["details"]["endpoint"] == "/api/users"
        assert data["nodes"][0]["kind"] == "person"
