"""Tests for the counter idiom matcher."""

from __future__ import annotations

import pytest

from idiomgraph.engine.walker import TreeWalker
from idiomgraph.matchers.counter import (
    CounterMatcher,
    is_counter_like,
    is_increment_argument,
    score_counter,
)
from idiomgraph.models import ConnectionKind, CounterDetails, IdiomKind, IdiomNodeKind
from idiomgraph.syntax.tree import NodeKind
from tests.helpers import (
    array_pattern,
    arrow,
    binary,
    block,
    call,
    counter_component,
    func_decl,
    ident,
    jsx,
    jsx_attr,
    member,
    node,
    num,
    program,
    ret,
    string,
    var,
)


def _component(*statements, name: str = "Widget"):
    return program(func_decl(name, [], block(*statements)))


def _walk(tree):
    return TreeWalker([CounterMatcher()]).walk(tree)


class TestCounterRecognition:
    def test_state_pair_with_increment_handler(self, registry) -> None:
        records = [r for r in registry.recognize(counter_component()) if r.kind is IdiomKind.COUNTER]
        assert len(records) == 1
        details = records[0].metadata.details
        assert details.has_state_init
        assert details.has_event_handler
        assert details.is_numeric_initial
        assert details.has_increment_operation
        assert records[0].metadata.confidence > 0.8

    def test_details(self) -> None:
        [match] = _walk(counter_component())
        details = match.details
        assert details.state_variables == ["count"]
        assert details.setter_functions == ["setCount"]
        assert details.event_handlers == ["increment"]
        assert details.initial_value == 0.0
        assert details.has_counter_like_names
        assert match.variables == ["count", "setCount"]
        assert match.functions == ["Counter", "increment"]

    def test_graph_wires_triggers_to_state(self, registry) -> None:
        [record] = [r for r in registry.recognize(counter_component()) if r.kind is IdiomKind.COUNTER]
        by_id = {n.id: n for n in record.nodes}
        state = [n for n in record.nodes if n.properties["role"] == "state"]
        assert len(state) == 1
        assert state[0].kind is IdiomNodeKind.COUNTER
        assert state[0].label == "[count, setCount]"

        assert record.connections
        for connection in record.connections:
            assert connection.kind is ConnectionKind.EVENT
            assert connection.label == "click updates"
            assert connection.properties == {"operation": "increment"}
            assert by_id[connection.source_id].kind is IdiomNodeKind.TRIGGER
            assert connection.target_id == state[0].id

    def test_inline_click_handler(self) -> None:
        handler = arrow([], call("setClicks", binary(ident("clicks"), "+", num(1))))
        tree = _component(
            var(array_pattern("clicks", "setClicks"), call("useState", num(0))),
            ret(jsx("button", [jsx_attr("onClick", handler)])),
        )
        [match] = _walk(tree)
        assert match.details.has_increment_operation
        assert match.details.event_handlers == []
        assert match.involved[-1].kind is NodeKind.JSX_ATTRIBUTE

    def test_react_namespace_hook(self) -> None:
        handler = arrow([], call("setTotal", node(NodeKind.UPDATE_EXPRESSION, operator="++", argument=ident("total"))))
        tree = _component(
            var(array_pattern("total", "setTotal"), call(node(
                NodeKind.MEMBER_EXPRESSION, object=ident("React"), property=ident("useState"), computed=False,
            ), num(10))),
            ret(jsx("button", [jsx_attr("onClick", handler)])),
        )
        [match] = _walk(tree)
        assert match.details.initial_value == 10.0

    def test_non_numeric_initial(self) -> None:
        tree = _component(
            var(array_pattern("label", "setLabel"), call("useState", string(""))),
            var("handleClick", arrow([], call("setLabel", string("x")))),
            ret(jsx("button", [jsx_attr("onClick", ident("handleClick"))])),
        )
        [match] = _walk(tree)
        assert not match.details.is_numeric_initial
        assert not match.details.has_increment_operation
        assert match.details.initial_value is None

    def test_increment_from_member_expression(self) -> None:
        step = call("setCount", binary(member("state", "count"), "+", num(1)))
        tree = _component(
            var(array_pattern("count", "setCount"), call("useState", num(0))),
            var("increment", arrow([], step)),
            ret(jsx("button", [jsx_attr("onClick", ident("increment"))])),
        )
        [match] = _walk(tree)
        assert match.details.has_increment_operation

    def test_counter_names_come_from_state_only(self) -> None:
        tree = _component(
            var(array_pattern("open", "setOpen"), call("useState", ident("false"))),
            var("handleClick", arrow([], call("setOpen", ident("true")))),
            ret(jsx("button", [jsx_attr("onClick", ident("handleClick"))])),
            name="Toggle",
        )
        [match] = _walk(tree)
        assert match.details.event_handlers == ["handleClick"]
        assert not match.details.has_counter_like_names

    def test_state_without_handler_is_not_a_counter(self) -> None:
        tree = _component(
            var(array_pattern("count", "setCount"), call("useState", num(0))),
            ret(jsx("div", children=[ident("count")])),
        )
        assert _walk(tree) == []

    def test_function_without_markup_is_not_a_counter(self) -> None:
        tree = _component(
            var(array_pattern("count", "setCount"), call("useState", num(0))),
            var("increment", arrow([], call("setCount", binary(ident("count"), "+", num(1))))),
            ret(ident("count")),
            name="useCounter",
        )
        assert _walk(tree) == []

    def test_holey_state_pattern_ignored(self) -> None:
        tree = _component(
            var(array_pattern(None, "setCount"), call("useState", num(0))),
            var("increment", arrow([], call("setCount", num(1)))),
            ret(jsx("button", [jsx_attr("onClick", ident("increment"))])),
        )
        assert _walk(tree) == []


class TestCounterScoring:
    def test_base_score(self) -> None:
        assert score_counter(CounterDetails()) == pytest.approx(0.5)

    def test_capped_at_one(self) -> None:
        details = CounterDetails(
            has_state_init=True,
            has_event_handler=True,
            is_numeric_initial=True,
            has_increment_operation=True,
            has_counter_like_names=True,
        )
        assert score_counter(details) == 1.0

    def test_state_and_handler_only(self) -> None:
        details = CounterDetails(has_state_init=True, has_event_handler=True)
        assert score_counter(details) == pytest.approx(0.9)

    @pytest.mark.parametrize("name, expected", [
        ("count", True),
        ("setCount", True),
        ("clickTotal", True),
        ("foo", False),
        ("", False),
    ])
    def test_counter_like_names(self, name: str, expected: bool) -> None:
        assert is_counter_like(name) is expected

    def test_increment_arguments(self) -> None:
        functional = arrow([ident("prev")], block(ret(binary(ident("prev"), "-", num(1)))))
        assert is_increment_argument(functional)
        assert is_increment_argument(node(NodeKind.UPDATE_EXPRESSION, operator="--", argument=ident("n")))
        assert is_increment_argument(binary(ident("n"), "+", num(5)))
        assert not is_increment_argument(num(5))
        assert not is_increment_argument(binary(num(2), "*", ident("n")))
        assert not is_increment_argument(None)

    def test_functional_update_needs_identifier_operand(self) -> None:
        assert is_increment_argument(binary(member("state", "count"), "+", num(1)))
        assert not is_increment_argument(arrow([ident("x")], binary(member("other", "y"), "+", num(1))))
