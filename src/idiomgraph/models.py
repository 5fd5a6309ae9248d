"""Idiom data model: raw matches, idiom records and per-idiom details."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, ClassVar, NamedTuple, Union

from idiomgraph.syntax.tree import SyntaxNode


class IdiomKind(str, Enum):
    COUNTER = "counter"
    NETWORK_CALL = "network-call"
    PERSISTENCE = "persistence-operation"
    ERROR_HANDLING = "error-handling"
    COMPONENT = "component-definition"


class IdiomNodeKind(str, Enum):
    TRIGGER = "trigger"
    COUNTER = "counter"
    NETWORK = "network"
    STORE = "store"
    PERSON = "person"
    BUILDING_BLOCK = "building-block"
    FAULT = "fault"
    BEHAVIOR = "behavior"
    VALUE = "value"


class ConnectionKind(str, Enum):
    DATA_FLOW = "data-flow"
    CONTROL_FLOW = "control-flow"
    EVENT = "event"
    ERROR_PATH = "error-path"
    SUCCESS_PATH = "success-path"


class Complexity(str, Enum):
    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"


@dataclass(frozen=True)
class SourceSpan:
    start: int = 0
    end: int = 0
    start_line: int = 1
    start_column: int = 0
    end_line: int = 1
    end_column: int = 0

    @classmethod
    def of(cls, node: SyntaxNode) -> SourceSpan:
        loc = node.location
        return cls(
            start=node.start,
            end=node.end or node.start,
            start_line=loc.start.line,
            start_column=loc.start.column,
            end_line=loc.end.line,
            end_column=loc.end.column,
        )


def unique(names: Any) -> list[str]:
    """Ordered, de-duplicated non-empty names."""
    return list(dict.fromkeys(n for n in names if n))


# ---------------------------------------------------------------------------
# Per-idiom details
# ---------------------------------------------------------------------------


@dataclass
class CounterDetails:
    kind: ClassVar[IdiomKind] = IdiomKind.COUNTER

    has_state_init: bool = False
    has_event_handler: bool = False
    is_numeric_initial: bool = False
    has_increment_operation: bool = False
    has_counter_like_names: bool = False
    state_variables: list[str] = field(default_factory=list)
    setter_functions: list[str] = field(default_factory=list)
    event_handlers: list[str] = field(default_factory=list)
    initial_value: float | None = None


@dataclass
class NetworkDetails:
    kind: ClassVar[IdiomKind] = IdiomKind.NETWORK_CALL

    client: str = "fetch"
    is_call: bool = True
    endpoint: str | None = None
    http_method: str | None = None
    has_payload: bool = False
    payload: str | None = None
    has_success_handling: bool = False
    has_error_handling: bool = False
    has_finally: bool = False
    success_handlers: list[str] = field(default_factory=list)
    error_handlers: list[str] = field(default_factory=list)
    error_types: list[str] = field(default_factory=list)


@dataclass
class PersistenceDetails:
    kind: ClassVar[IdiomKind] = IdiomKind.PERSISTENCE

    has_sql_operation: bool = False
    has_connection: bool = False
    has_query_execution: bool = False
    has_data_flow: bool = False
    has_error_handling: bool = False
    library: str | None = None
    operation_type: str = "unknown"
    tables: list[str] = field(default_factory=list)
    sql_query: str | None = None
    model_name: str | None = None
    method_name: str | None = None
    connection_type: str | None = None
    connection_config: list[str] = field(default_factory=list)
    parameters: list[str] = field(default_factory=list)


@dataclass
class ErrorHandlingDetails:
    kind: ClassVar[IdiomKind] = IdiomKind.ERROR_HANDLING

    variant: str = "try-catch"
    confirmed: bool = False
    has_handler_body: bool = False
    error_binding: str | None = None
    has_finally: bool = False
    risky_operations: list[str] = field(default_factory=list)
    recovery_actions: list[str] = field(default_factory=list)
    cleanup_actions: list[str] = field(default_factory=list)
    error_types: list[str] = field(default_factory=list)


@dataclass
class ComponentDetails:
    kind: ClassVar[IdiomKind] = IdiomKind.COMPONENT

    component_name: str | None = None
    form: str = "function"
    state_variables: list[str] = field(default_factory=list)
    effects: list[str] = field(default_factory=list)
    inputs: list[str] = field(default_factory=list)
    child_components: list[str] = field(default_factory=list)
    lifecycle_methods: list[str] = field(default_factory=list)
    handles_rerendering: bool = False

    @property
    def uses_hooks(self) -> bool:
        return self.form == "function" and bool(self.effects or self.state_variables)


IdiomDetails = Union[
    CounterDetails,
    NetworkDetails,
    PersistenceDetails,
    ErrorHandlingDetails,
    ComponentDetails,
]


# ---------------------------------------------------------------------------
# Raw matches and idiom records
# ---------------------------------------------------------------------------


@dataclass
class RawMatch:
    """Unfiltered candidate idiom occurrence produced by a matcher."""

    kind: IdiomKind
    root: SyntaxNode
    involved: list[SyntaxNode]
    details: IdiomDetails
    variables: list[str] = field(default_factory=list)
    functions: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class IdiomNode:
    id: str
    kind: IdiomNodeKind
    label: str
    span: SourceSpan
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class IdiomConnection:
    id: str
    source_id: str
    target_id: str
    kind: ConnectionKind
    label: str
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class IdiomMetadata:
    confidence: float
    span: SourceSpan
    variables: list[str]
    functions: list[str]
    complexity: Complexity
    context_snippet: str
    details: IdiomDetails


@dataclass(frozen=True)
class IdiomRecord:
    id: str
    kind: IdiomKind
    nodes: list[IdiomNode]
    connections: list[IdiomConnection]
    metadata: IdiomMetadata

    def to_dict(self) -> dict[str, Any]:
        data = plain(asdict(self))
        data["metadata"]["details"]["kind"] = self.metadata.details.kind.value
        return data


class Link(NamedTuple):
    """A connection between two idiom nodes before ids are assigned."""

    source: IdiomNode
    target: IdiomNode
    kind: ConnectionKind
    label: str
    properties: dict[str, Any] = {}


def linear_chain(
    nodes: list[IdiomNode],
    kind: ConnectionKind = ConnectionKind.CONTROL_FLOW,
    label: str = "flows to",
) -> list[Link]:
    """node[i] -> node[i+1] for every adjacent pair."""
    return [Link(a, b, kind, label) for a, b in zip(nodes, nodes[1:])]


def plain(value: Any) -> Any:
    """Flatten enums (and tuples) inside an ``asdict`` result for JSON output."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [plain(v) for v in value]
    return value
