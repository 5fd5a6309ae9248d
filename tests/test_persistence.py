"""Tests for the persistence idiom matcher."""

from __future__ import annotations

import pytest

from idiomgraph.engine.walker import TreeWalker
from idiomgraph.matchers.persistence import (
    PersistenceMatcher,
    extract_tables,
    operation_for_method,
    score_persistence,
    sql_operation,
)
from idiomgraph.models import ConnectionKind, IdiomKind, IdiomNodeKind, PersistenceDetails
from idiomgraph.syntax.tree import NodeKind
from tests.helpers import (
    arrow,
    await_,
    block,
    call,
    func_decl,
    ident,
    member,
    method_call,
    new,
    node,
    num,
    obj,
    program,
    ret,
    stmt,
    string,
    template,
    try_stmt,
    var,
)


def _walk(tree):
    return TreeWalker([PersistenceMatcher()]).walk(tree)


def _records(registry, tree):
    return [r for r in registry.recognize(tree) if r.kind is IdiomKind.PERSISTENCE]


class TestSqlText:
    def test_select_literal(self, registry) -> None:
        [record] = _records(registry, program(stmt(string("SELECT id FROM users WHERE id = 1"))))
        details = record.metadata.details
        assert details.operation_type == "select"
        assert details.tables == ["users"]
        assert details.sql_query == "SELECT id FROM users WHERE id = 1"
        assert record.metadata.confidence == pytest.approx(0.75)

    def test_plain_text_is_not_sql(self, registry) -> None:
        assert _records(registry, program(stmt(string("Hello world")))) == []

    def test_keyword_must_lead(self) -> None:
        assert _walk(program(stmt(string("please SELECT a FROM b")))) == []

    def test_query_execution(self) -> None:
        sql = string("INSERT INTO orders (id) VALUES (?)")
        exec_call = method_call("db", "query", sql, node(NodeKind.ARRAY_EXPRESSION, elements=[ident("orderId")]))
        [match] = _walk(program(var("result", await_(exec_call))))
        details = match.details
        assert details.operation_type == "insert"
        assert details.tables == ["orders"]
        assert details.has_query_execution
        assert details.library == "generic"
        assert details.method_name == "query"
        assert details.parameters == ["orderId"]
        assert details.has_data_flow
        assert match.involved == [sql, exec_call]
        assert match.functions == ["query"]

    def test_query_error_handling_via_catch(self) -> None:
        exec_call = method_call("pool", "query", string("DELETE FROM sessions"))
        chained = method_call(exec_call, "catch", ident("report"))
        [match] = _walk(program(stmt(chained)))
        assert match.details.has_error_handling
        assert match.details.library == "generic"

    def test_query_inside_try(self) -> None:
        body = block(stmt(await_(method_call("client", "query", string("UPDATE users SET name = 'x'")))))
        [match] = _walk(program(func_decl("save", [], block(try_stmt(body)))))
        assert match.details.operation_type == "update"
        assert match.details.has_error_handling

    def test_template_sql(self) -> None:
        sql = template(["SELECT * FROM accounts WHERE id = ", ""], [ident("accountId")])
        [match] = _walk(program(stmt(sql)))
        assert match.details.tables == ["accounts"]
        assert match.variables == ["accountId"]

    def test_query_in_enclosing_function_not_attributed(self) -> None:
        sql_fn = arrow([], string("SELECT 1 FROM dual"))
        [match] = _walk(program(stmt(method_call("db", "query", call(sql_fn)))))
        assert not match.details.has_query_execution


class TestConnections:
    def test_client_constructor(self) -> None:
        config = obj(host=string("localhost"), port=num(5432))
        [match] = _walk(program(var("client", new(member("pg", "Client"), config))))
        details = match.details
        assert details.has_connection
        assert details.operation_type == "connect"
        assert details.library == "pg"
        assert details.connection_type == "Client"
        assert details.connection_config == ["host", "port"]
        assert details.has_data_flow

    def test_create_connection(self) -> None:
        [match] = _walk(program(var("conn", method_call("mysql", "createConnection", obj(user=string("root"))))))
        assert match.details.library == "mysql"
        assert match.details.connection_type == "createConnection"

    def test_unbound_connection_scores_low(self) -> None:
        [match] = _walk(program(stmt(method_call("mongoose", "connect", string("mongodb://x")))))
        assert PersistenceMatcher().confidence(match) < 0.6

    def test_guarded_connection_accepted(self, registry) -> None:
        body = block(stmt(await_(method_call("client", "connect"))))
        handler = block(stmt(method_call("console", "error", ident("e"))))
        tree = program(func_decl("init", [], block(try_stmt(body, param="e", handler_body=handler))))
        [record] = _records(registry, tree)
        details = record.metadata.details
        assert details.library == "pg"
        assert details.has_error_handling
        assert not details.has_data_flow
        assert record.metadata.confidence >= 0.6

    def test_unknown_constructor_ignored(self) -> None:
        assert _walk(program(stmt(new("Map")))) == []


class TestOrmCalls:
    def test_model_method(self) -> None:
        [match] = _walk(program(ret(await_(method_call("User", "findAll")))))
        details = match.details
        assert details.model_name == "User"
        assert details.library == "sequelize"
        assert details.operation_type == "select"
        assert details.has_data_flow
        assert match.variables == ["User"]

    def test_prisma_model(self) -> None:
        call_node = call(member(member("prisma", "user"), "findMany"))
        [match] = _walk(program(var("users", await_(call_node))))
        assert match.details.library == "prisma"
        assert match.details.model_name == "user"

    def test_builtins_are_not_models(self) -> None:
        assert _walk(program(stmt(method_call("Object", "create", ident("proto"))))) == []
        assert _walk(program(stmt(method_call("Array", "find")))) == []

    def test_plain_array_find_ignored(self) -> None:
        assert _walk(program(stmt(method_call("items", "find", ident("pred"))))) == []

    def test_orm_graph(self, registry) -> None:
        query = method_call("User", "findAll", obj(where=obj(active=ident("yes"))))
        [record] = _records(registry, program(ret(await_(query))))
        assert [n.kind for n in record.nodes] == [IdiomNodeKind.STORE]
        assert record.nodes[0].properties["operation"] == "select"
        assert record.connections == []

    def test_query_graph(self, registry) -> None:
        sql = string("SELECT * FROM users")
        tree = program(var("rows", await_(method_call("db", "query", sql))))
        [record] = _records(registry, tree)
        assert [n.properties["role"] for n in record.nodes] == ["store", "query"]
        [connection] = record.connections
        assert connection.kind is ConnectionKind.DATA_FLOW
        assert connection.label == "select"
        assert connection.target_id == record.nodes[0].id


class TestPersistenceHelpers:
    @pytest.mark.parametrize("text, expected", [
        ("SELECT * FROM t", "select"),
        ("  insert into t values (1)", "insert"),
        ("DROP TABLE t", "drop"),
        ("selection of items", None),
        ("", None),
    ])
    def test_sql_operation(self, text: str, expected: str | None) -> None:
        assert sql_operation(text) == expected

    def test_extract_tables(self) -> None:
        sql = "SELECT * FROM Orders o JOIN customers c ON c.id = o.cid"
        assert extract_tables(sql) == ["orders", "customers"]

    @pytest.mark.parametrize("method, expected", [
        ("findUnique", "select"),
        ("insertOne", "insert"),
        ("updateMany", "update"),
        ("destroy", "delete"),
        ("populate", "select"),
        ("aggregateFoo", "select"),
        ("flush", "unknown"),
    ])
    def test_operation_for_method(self, method: str, expected: str) -> None:
        assert operation_for_method(method) == expected

    def test_score_floor(self) -> None:
        details = PersistenceDetails(has_connection=True)
        assert score_persistence(details) == pytest.approx(0.3)
        assert score_persistence(PersistenceDetails()) >= 0.1

    def test_bare_connection_penalty_needs_no_library(self) -> None:
        with_library = PersistenceDetails(has_connection=True, library="pg")
        assert score_persistence(with_library) == pytest.approx(0.55)
        flowing = PersistenceDetails(has_connection=True, has_data_flow=True)
        assert score_persistence(flowing) == pytest.approx(0.35)

    def test_full_query_capped(self) -> None:
        details = PersistenceDetails(
            has_sql_operation=True, tables=["t"], has_query_execution=True, library="pg",
            has_data_flow=True, has_error_handling=True,
        )
        assert score_persistence(details) == 1.0
