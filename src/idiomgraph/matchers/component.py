"""Component-definition idiom: function components that render markup, and class components."""

from __future__ import annotations

import re
from typing import Any

from idiomgraph.engine.registry import MatcherBase
from idiomgraph.engine.walker import TraversalContext
from idiomgraph.models import (
    ComponentDetails,
    IdiomKind,
    IdiomNodeKind,
    RawMatch,
    unique,
)
from idiomgraph.syntax.tree import (
    CALL_KINDS,
    CLASS_KINDS,
    FUNCTION_LITERALS,
    MARKUP_KINDS,
    MEMBER_KINDS,
    NodeKind,
    SyntaxNode,
    contains_kind,
    declared_name,
    dotted_name,
    find_all,
    function_body,
    function_params,
    identifier_name,
    member_name,
    object_keys,
)

_HOOK_RE = re.compile(r"^use[A-Z]")

COMPONENT_BASES = ("Component", "PureComponent", "React.Component", "React.PureComponent")
STATE_HOOKS = ("useState", "useReducer")
MEMO_HOOKS = ("useMemo", "useCallback")
LIFECYCLE_METHODS = (
    "componentDidMount",
    "componentDidUpdate",
    "componentWillUnmount",
    "shouldComponentUpdate",
    "getSnapshotBeforeUpdate",
    "componentDidCatch",
    "getDerivedStateFromError",
)

BASE_CONFIDENCE = 0.4
HOOKS_WEIGHT = 0.2
STATE_WEIGHT = 0.15
EFFECTS_WEIGHT = 0.15
INPUTS_WEIGHT = 0.1


def score_component(details: ComponentDetails) -> float:
    score = BASE_CONFIDENCE
    if details.uses_hooks:
        score += HOOKS_WEIGHT
    if details.state_variables:
        score += STATE_WEIGHT
    if details.effects:
        score += EFFECTS_WEIGHT
    if details.inputs:
        score += INPUTS_WEIGHT
    return min(score, 1.0)


def hook_name(call: SyntaxNode) -> str | None:
    """``useX`` for ``useX(...)`` or ``React.useX(...)`` calls."""
    callee = call.child("callee")
    name = identifier_name(callee)
    if name is None and callee is not None and callee.kind in MEMBER_KINDS \
            and identifier_name(callee.child("object")) == "React":
        name = member_name(callee)
    if name and _HOOK_RE.match(name):
        return name
    return None


def child_components(root: SyntaxNode | None) -> list[str]:
    """Capitalized JSX tag names under ``root``, Fragment excluded."""
    names = []
    for opening in find_all(root, NodeKind.JSX_OPENING_ELEMENT):
        name = dotted_name(opening.child("name"))
        if not name or not name[:1].isupper():
            continue
        if name.split(".")[-1] == "Fragment":
            continue
        names.append(name)
    return unique(names)


def param_inputs(params: list[SyntaxNode]) -> list[str]:
    """Prop names from the first parameter: destructured keys or the parameter name."""
    if not params:
        return []
    first = params[0]
    if first.kind is NodeKind.ASSIGNMENT_PATTERN:
        first = first.child("left") or first
    if first.kind is NodeKind.OBJECT_PATTERN:
        return object_keys(first)
    name = identifier_name(first)
    return [name] if name else []


def _is_component_base(node: SyntaxNode | None) -> bool:
    return dotted_name(node) in COMPONENT_BASES


def _is_this_member(node: SyntaxNode | None, name: str) -> bool:
    return (
        node is not None
        and node.kind in MEMBER_KINDS
        and node.child("object") is not None
        and node.child("object").kind is NodeKind.THIS_EXPRESSION
        and member_name(node) == name
    )


class ComponentMatcher(MatcherBase):
    kind = IdiomKind.COMPONENT

    def match(self, node: SyntaxNode, context: TraversalContext) -> list[RawMatch]:
        if node.kind in CLASS_KINDS:
            return self._match_class(node)
        if node.kind is NodeKind.FUNCTION_DECLARATION or (
            node.kind is NodeKind.VARIABLE_DECLARATOR
            and identifier_name(node.child("id")) is not None
            and node.child("init") is not None
            and node.child("init").kind in FUNCTION_LITERALS
        ):
            return self._match_function(node)
        return []

    def _match_function(self, node: SyntaxNode) -> list[RawMatch]:
        body = function_body(node)
        if not contains_kind(body, *MARKUP_KINDS):
            return []

        hook_calls: list[SyntaxNode] = []
        effects: list[str] = []
        rerendering = False
        for call in find_all(body, *CALL_KINDS):
            name = hook_name(call)
            if name is None:
                continue
            hook_calls.append(call)
            effects.append(name)
            if name in MEMO_HOOKS or (name == "useEffect" and len(call.child_list("arguments")) > 1):
                rerendering = True

        state_nodes: list[SyntaxNode] = []
        state_vars: list[str] = []
        for declarator in find_all(body, NodeKind.VARIABLE_DECLARATOR):
            init = declarator.child("init")
            pattern = declarator.child("id")
            if init is None or init.kind not in CALL_KINDS or hook_name(init) not in STATE_HOOKS:
                continue
            if pattern is not None and pattern.kind is NodeKind.ARRAY_PATTERN:
                first = next(iter(pattern.child_list("elements")), None)
                name = identifier_name(first)
                if name:
                    state_nodes.append(declarator)
                    state_vars.append(name)

        name = declared_name(node)
        details = ComponentDetails(
            component_name=name,
            form="function",
            state_variables=unique(state_vars),
            effects=unique(effects),
            inputs=param_inputs(function_params(node)),
            child_components=child_components(body),
            handles_rerendering=rerendering,
        )
        involved = [node, *state_nodes, *(c for c in hook_calls if not self._inside_any(c, state_nodes))]
        return [RawMatch(
            kind=self.kind,
            root=node,
            involved=involved,
            details=details,
            variables=unique(details.state_variables + details.inputs),
            functions=unique([name]),
        )]

    def _match_class(self, node: SyntaxNode) -> list[RawMatch]:
        if not _is_component_base(node.child("superClass")):
            return []
        body = node.child("body")
        members = body.child_list("body") if body is not None else []

        methods: dict[str, SyntaxNode] = {}
        state_fields: list[str] = []
        for member in members:
            member_key = declared_name(member)
            if not member_key:
                continue
            if member.kind in (NodeKind.CLASS_PROPERTY, NodeKind.PROPERTY_DEFINITION):
                if member_key == "state":
                    state_fields.extend(object_keys(member.child("value")))
            else:
                methods[member_key] = member

        constructor = methods.get("constructor")
        for assignment in find_all(function_body(constructor), NodeKind.ASSIGNMENT_EXPRESSION):
            if _is_this_member(assignment.child("left"), "state"):
                state_fields.extend(object_keys(assignment.child("right")))

        inputs = []
        for member in find_all(body, *MEMBER_KINDS):
            if _is_this_member(member.child("object"), "props"):
                inputs.append(member_name(member))

        lifecycle = [m for m in LIFECYCLE_METHODS if m in methods]
        name = declared_name(node)
        details = ComponentDetails(
            component_name=name,
            form="class",
            state_variables=unique(state_fields),
            effects=list(lifecycle),
            inputs=unique(inputs),
            child_components=child_components(body),
            lifecycle_methods=lifecycle,
            handles_rerendering="shouldComponentUpdate" in methods
            or dotted_name(node.child("superClass")) in ("PureComponent", "React.PureComponent"),
        )
        involved = [node, *(methods[m] for m in lifecycle)]
        if "render" in methods:
            involved.append(methods["render"])
        return [RawMatch(
            kind=self.kind,
            root=node,
            involved=involved,
            details=details,
            variables=list(details.state_variables),
            functions=unique([name, *methods]),
        )]

    @staticmethod
    def _inside_any(node: SyntaxNode, roots: list[SyntaxNode]) -> bool:
        return any(root.child("init") is node for root in roots)

    def confidence(self, match: RawMatch) -> float:
        return score_component(match.details)

    # ── Graph shaping ──

    def node_properties(self, node: SyntaxNode, match: RawMatch) -> dict[str, Any]:
        if node is match.root:
            return {"role": "component", "form": match.details.form}
        if node.kind is NodeKind.VARIABLE_DECLARATOR:
            return {"role": "state"}
        return {"role": "hook" if node.kind in CALL_KINDS else "method"}

    def classify_node(self, node: SyntaxNode, label: str, match: RawMatch) -> IdiomNodeKind | None:
        if node is match.root:
            return IdiomNodeKind.BUILDING_BLOCK
        if node.kind is NodeKind.VARIABLE_DECLARATOR:
            return IdiomNodeKind.VALUE
        return IdiomNodeKind.BEHAVIOR
