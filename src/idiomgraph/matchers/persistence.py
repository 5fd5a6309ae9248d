"""Persistence idiom: SQL text, database connections and ORM calls."""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

from idiomgraph.engine.registry import MatcherBase
from idiomgraph.engine.walker import TraversalContext
from idiomgraph.matchers.common import (
    enclosing_try,
    flows_into_binding,
    literal_text,
    promise_chain,
)
from idiomgraph.models import (
    ConnectionKind,
    IdiomKind,
    IdiomNode,
    IdiomNodeKind,
    Link,
    PersistenceDetails,
    RawMatch,
    unique,
)
from idiomgraph.syntax.tree import (
    CALL_KINDS,
    FUNCTION_KINDS,
    MEMBER_KINDS,
    NodeKind,
    SyntaxNode,
    dotted_name,
    identifier_name,
    member_name,
    object_keys,
    root_identifier,
)

SQL_OPERATIONS = ("SELECT", "INSERT", "UPDATE", "DELETE", "CREATE", "DROP", "ALTER")
_SQL_RE = re.compile(r"^\s*(%s)\s+" % "|".join(SQL_OPERATIONS), re.IGNORECASE)
_TABLE_RE = re.compile(r"\b(?:FROM|INTO|UPDATE|JOIN)\s+(\w+)", re.IGNORECASE)

# Library -> identifiers and methods that belong to its API.
LIBRARY_VOCABULARY: dict[str, tuple[str, ...]] = {
    "mysql": ("createConnection", "createPool", "query", "execute"),
    "mysql2": ("createConnection", "createPool", "query", "execute"),
    "pg": ("Client", "Pool", "connect", "query"),
    "sqlite3": ("Database", "run", "get", "all"),
    "mongodb": ("MongoClient", "connect", "collection", "find", "insertOne", "updateOne", "deleteOne", "deleteMany"),
    "mongoose": ("connect", "model", "find", "save", "remove", "update"),
    "sequelize": ("Sequelize", "define", "findAll", "create", "update", "destroy"),
    "typeorm": ("createConnection", "getRepository", "find", "save", "remove"),
    "prisma": ("PrismaClient", "findMany", "findUnique", "create", "update", "delete"),
}
KNOWN_LIBRARIES = frozenset(LIBRARY_VOCABULARY)
INFERRED_LIBRARIES = frozenset({"orm", "generic"})

CONNECTION_NAMES = (
    "connect", "connection", "createConnection", "getConnection",
    "pool", "createPool", "client", "db", "database",
)
CONNECTION_METHODS = (
    "connect", "createconnection", "createpool", "getconnection", "client", "pool", "database",
)
CONNECTION_CONSTRUCTORS = ("Client", "Pool", "Database", "MongoClient", "Sequelize", "PrismaClient")
QUERY_METHODS = ("query", "execute", "run", "get", "all")

ORM_METHODS = (
    "findall", "findbypk", "findone", "findorcreate", "create", "update", "destroy",
    "save", "remove", "find", "findmany", "findunique", "findbyid", "insertone",
    "updateone", "deleteone", "deletemany", "replaceone", "aggregate", "count",
    "distinct", "populate",
)
CLIENT_OBJECTS = ("db", "database", "connection", "client", "pool", "repository", "prisma")
BUILTIN_GLOBALS = frozenset({
    "Object", "Array", "Promise", "JSON", "Math", "Date", "Reflect", "Map", "Set",
    "Number", "String", "Boolean", "Symbol", "React", "Intl", "Error",
})

_ORM_LIBRARY_BY_METHOD = {
    "findall": "sequelize", "findbypk": "sequelize", "findorcreate": "sequelize", "destroy": "sequelize",
    "findbyid": "mongoose", "populate": "mongoose",
    "insertone": "mongodb", "updateone": "mongodb", "deleteone": "mongodb",
    "deletemany": "mongodb", "replaceone": "mongodb", "aggregate": "mongodb",
    "findmany": "prisma", "findunique": "prisma",
}

BASE_CONFIDENCE = 0.3
SQL_WEIGHT = 0.35
TABLES_WEIGHT = 0.1
CONNECTION_WEIGHT = 0.1
KNOWN_LIBRARY_WEIGHT = 0.15
INFERRED_LIBRARY_WEIGHT = 0.1
EXECUTION_WEIGHT = 0.15
DATA_FLOW_WEIGHT = 0.05
ERROR_HANDLING_WEIGHT = 0.05
FULL_QUERY_BONUS = 0.15
BARE_CONNECTION_PENALTY = 0.1
MIN_CONFIDENCE = 0.1


def score_persistence(details: PersistenceDetails) -> float:
    score = BASE_CONFIDENCE
    if details.has_sql_operation:
        score += SQL_WEIGHT
        if details.tables:
            score += TABLES_WEIGHT
    if details.has_connection:
        score += CONNECTION_WEIGHT
    if details.library in KNOWN_LIBRARIES:
        score += KNOWN_LIBRARY_WEIGHT
    elif details.library:
        score += INFERRED_LIBRARY_WEIGHT
    if details.has_query_execution:
        score += EXECUTION_WEIGHT
    if details.has_data_flow:
        score += DATA_FLOW_WEIGHT
    if details.has_error_handling:
        score += ERROR_HANDLING_WEIGHT
    if details.has_sql_operation and details.has_query_execution and details.library:
        score += FULL_QUERY_BONUS
    if details.has_connection and not (
        details.has_sql_operation or details.has_query_execution or details.library
    ):
        score -= BARE_CONNECTION_PENALTY
    return min(max(score, MIN_CONFIDENCE), 1.0)


def sql_operation(text: str) -> str | None:
    """Leading SQL keyword of ``text``, lowercased, or None."""
    m = _SQL_RE.match(text)
    return m.group(1).lower() if m else None


def extract_tables(sql: str) -> list[str]:
    return unique(name.lower() for name in _TABLE_RE.findall(sql))


def library_for(name: str | None) -> str | None:
    """Library owning an identifier or method name, by vocabulary order."""
    if not name:
        return None
    if name.lower() in KNOWN_LIBRARIES:
        return name.lower()
    for library, vocabulary in LIBRARY_VOCABULARY.items():
        if name in vocabulary:
            return library
    return None


def orm_library_for_method(method: str) -> str:
    return _ORM_LIBRARY_BY_METHOD.get(method.lower(), "orm")


def operation_for_method(method: str) -> str:
    lowered = method.lower()
    if lowered.startswith(("find", "get", "select", "count", "aggregate", "distinct", "populate")):
        return "select"
    if lowered.startswith(("create", "insert", "add", "save")):
        return "insert"
    if lowered.startswith(("update", "modify", "set", "replace")):
        return "update"
    if lowered.startswith(("delete", "remove", "destroy")):
        return "delete"
    return "unknown"


def _query_call(ancestors: Sequence[SyntaxNode]) -> SyntaxNode | None:
    """Nearest enclosing ``x.query(...)``-style call in the same function."""
    for parent in reversed(ancestors[:-1]):
        if parent.kind in FUNCTION_KINDS:
            return None
        if parent.kind in CALL_KINDS and member_name(parent.child("callee")) in QUERY_METHODS:
            return parent
    return None


def _has_error_handling(ancestors: Sequence[SyntaxNode]) -> bool:
    if any(method == "catch" for method, _call in promise_chain(ancestors)):
        return True
    return enclosing_try(ancestors) is not None


class PersistenceMatcher(MatcherBase):
    kind = IdiomKind.PERSISTENCE

    def match(self, node: SyntaxNode, context: TraversalContext) -> list[RawMatch]:
        if node.kind in (NodeKind.STRING_LITERAL, NodeKind.LITERAL, NodeKind.TEMPLATE_LITERAL):
            return self._match_sql(node, context)
        if node.kind is NodeKind.NEW_EXPRESSION:
            return self._match_constructor(node, context)
        if node.kind in CALL_KINDS:
            return self._match_call(node, context)
        return []

    # ── Gates ──

    def _match_sql(self, node: SyntaxNode, context: TraversalContext) -> list[RawMatch]:
        text, variables = literal_text(node)
        operation = sql_operation(text) if text else None
        if operation is None:
            return []

        details = PersistenceDetails(
            has_sql_operation=True,
            operation_type=operation,
            tables=extract_tables(text),
            sql_query=" ".join(text.split()),
        )
        involved = [node]
        exec_call = _query_call(context.ancestors)
        chain = context.ancestors
        if exec_call is not None:
            involved.append(exec_call)
            details.has_query_execution = True
            details.method_name = member_name(exec_call.child("callee"))
            receiver = root_identifier(exec_call.child("callee"))
            details.library = library_for(receiver) or ("generic" if receiver in CLIENT_OBJECTS else None)
            args = exec_call.child_list("arguments")
            details.parameters = unique(self._parameter_names(args[1:]))
            chain = context.ancestors[:context.ancestors.index(exec_call) + 1]
        details.has_data_flow = flows_into_binding(chain)
        details.has_error_handling = _has_error_handling(chain)
        return [self._raw(node, involved, details, variables + details.parameters)]

    def _match_constructor(self, node: SyntaxNode, context: TraversalContext) -> list[RawMatch]:
        callee = node.child("callee")
        name = identifier_name(callee) or member_name(callee)
        if name not in CONNECTION_CONSTRUCTORS:
            return []
        qualifier = root_identifier(callee) if callee is not None and callee.kind in MEMBER_KINDS else None
        details = PersistenceDetails(
            has_connection=True,
            library=library_for(qualifier) or library_for(name),
            operation_type="connect",
            connection_type=name,
            connection_config=self._config_keys(node),
            has_data_flow=flows_into_binding(context.ancestors),
            has_error_handling=_has_error_handling(context.ancestors),
        )
        return [self._raw(node, [node], details, [])]

    def _match_call(self, node: SyntaxNode, context: TraversalContext) -> list[RawMatch]:
        callee = node.child("callee")
        if callee is None:
            return []
        if callee.kind is NodeKind.IDENTIFIER:
            name = callee.get("name")
            if name in CONNECTION_NAMES:
                return self._connection(node, context, name, None)
            return []
        if callee.kind not in MEMBER_KINDS:
            return []

        method = member_name(callee) or ""
        receiver = callee.child("object")
        receiver_name = identifier_name(receiver)
        if method.lower() in CONNECTION_METHODS:
            return self._connection(node, context, method, root_identifier(callee))
        if method.lower() not in ORM_METHODS:
            return []

        model: str | None = None
        library: str | None = None
        if receiver_name and receiver_name[:1].isupper() and receiver_name not in BUILTIN_GLOBALS:
            model = receiver_name
            library = orm_library_for_method(method)
        elif receiver_name in CLIENT_OBJECTS:
            library = "prisma" if receiver_name == "prisma" else "generic"
        elif receiver is not None and receiver.kind in MEMBER_KINDS and root_identifier(receiver) in CLIENT_OBJECTS:
            # prisma.user.findMany(), db.users.find()
            model = member_name(receiver)
            library = "prisma" if root_identifier(receiver) == "prisma" else "generic"
        else:
            return []

        details = PersistenceDetails(
            has_query_execution=True,
            library=library,
            operation_type=operation_for_method(method),
            model_name=model,
            method_name=method,
            has_data_flow=flows_into_binding(context.ancestors),
            has_error_handling=_has_error_handling(context.ancestors),
        )
        return [self._raw(node, [node], details, [model] if model else [])]

    def _connection(
        self,
        node: SyntaxNode,
        context: TraversalContext,
        name: str,
        qualifier: str | None,
    ) -> list[RawMatch]:
        details = PersistenceDetails(
            has_connection=True,
            library=library_for(qualifier) or library_for(name),
            operation_type="connect",
            connection_type=name,
            connection_config=self._config_keys(node),
            has_data_flow=flows_into_binding(context.ancestors),
            has_error_handling=_has_error_handling(context.ancestors),
        )
        return [self._raw(node, [node], details, [])]

    # ── Helpers ──

    def _raw(
        self,
        node: SyntaxNode,
        involved: list[SyntaxNode],
        details: PersistenceDetails,
        variables: list[str],
    ) -> RawMatch:
        functions = [details.method_name] if details.method_name else []
        return RawMatch(
            kind=self.kind,
            root=node,
            involved=involved,
            details=details,
            variables=unique(variables),
            functions=unique(functions),
        )

    @staticmethod
    def _config_keys(node: SyntaxNode) -> list[str]:
        args = node.child_list("arguments")
        return object_keys(args[0]) if args else []

    @staticmethod
    def _parameter_names(args: list[SyntaxNode]) -> list[str]:
        names: list[str] = []
        for arg in args:
            if arg.kind is NodeKind.ARRAY_EXPRESSION:
                names.extend(filter(None, (dotted_name(el) for el in arg.child_list("elements"))))
            else:
                name = dotted_name(arg)
                if name:
                    names.append(name)
        return names

    def confidence(self, match: RawMatch) -> float:
        return score_persistence(match.details)

    # ── Graph shaping ──

    def node_properties(self, node: SyntaxNode, match: RawMatch) -> dict[str, Any]:
        details = match.details
        if node is match.root:
            return {"role": "store", "operation": details.operation_type, "library": details.library}
        return {"role": "query"}

    def classify_node(self, node: SyntaxNode, label: str, match: RawMatch) -> IdiomNodeKind | None:
        return IdiomNodeKind.STORE

    def connect(self, match: RawMatch, nodes: list[IdiomNode]) -> list[Link] | None:
        stores = [n for n in nodes if n.properties.get("role") == "store"]
        if not stores:
            return None
        label = match.details.operation_type
        if label == "unknown":
            label = "query"
        return [
            Link(node, stores[0], ConnectionKind.DATA_FLOW, label)
            for node in nodes
            if node is not stores[0]
        ]
