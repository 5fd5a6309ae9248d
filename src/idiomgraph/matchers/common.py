"""Shape helpers shared by the built-in matchers."""

from __future__ import annotations

from collections.abc import Sequence

from idiomgraph.syntax.tree import (
    CALL_KINDS,
    FUNCTION_KINDS,
    FUNCTION_LITERALS,
    MEMBER_KINDS,
    NodeKind,
    SyntaxNode,
    dotted_name,
    find_all,
    identifier_name,
    member_name,
    string_value,
)

CHAIN_METHODS = ("then", "catch", "finally")


def promise_chain(ancestors: Sequence[SyntaxNode]) -> list[tuple[str, SyntaxNode]]:
    """``.then``/``.catch``/``.finally`` calls chained onto ``ancestors[-1]``.

    Climbs only through callee/object links, so a call nested inside a
    callback argument does not inherit the outer chain.
    """
    chain: list[tuple[str, SyntaxNode]] = []
    if not ancestors:
        return chain
    current = ancestors[-1]
    for parent in reversed(ancestors[:-1]):
        if parent.kind in MEMBER_KINDS and parent.child("object") is current:
            current = parent
            continue
        if parent.kind in CALL_KINDS and parent.child("callee") is current:
            method = member_name(current) if current.kind in MEMBER_KINDS else None
            if method in CHAIN_METHODS:
                chain.append((method, parent))
            current = parent
            continue
        break
    return chain


def enclosing_await(ancestors: Sequence[SyntaxNode]) -> SyntaxNode | None:
    """Nearest ``await`` above ``ancestors[-1]`` within the same function."""
    for parent in reversed(ancestors[:-1]):
        if parent.kind in FUNCTION_KINDS:
            return None
        if parent.kind is NodeKind.AWAIT_EXPRESSION:
            return parent
    return None


def enclosing_try(ancestors: Sequence[SyntaxNode]) -> SyntaxNode | None:
    """Nearest try statement whose protected block holds ``ancestors[-1]``."""
    for i in range(len(ancestors) - 2, -1, -1):
        parent = ancestors[i]
        if parent.kind in FUNCTION_KINDS:
            return None
        if parent.kind is NodeKind.TRY_STATEMENT and ancestors[i + 1] is parent.child("block"):
            return parent
    return None


def flows_into_binding(ancestors: Sequence[SyntaxNode]) -> bool:
    """Whether the value of ``ancestors[-1]`` is bound to a name or returned."""
    if not ancestors:
        return False
    current = ancestors[-1]
    for parent in reversed(ancestors[:-1]):
        if parent.kind is NodeKind.AWAIT_EXPRESSION or (
            parent.kind in MEMBER_KINDS and parent.child("object") is current
        ) or (
            parent.kind in CALL_KINDS and parent.child("callee") is current
        ):
            current = parent
            continue
        if parent.kind is NodeKind.VARIABLE_DECLARATOR:
            return parent.child("init") is current
        if parent.kind is NodeKind.ASSIGNMENT_EXPRESSION:
            return parent.child("right") is current
        return parent.kind in (NodeKind.RETURN_STATEMENT, NodeKind.ARROW_FUNCTION_EXPRESSION)
    return False


def handler_name(node: SyntaxNode | None) -> str | None:
    """Name of a callback argument, or None for inline functions."""
    if node is None or node.kind in FUNCTION_LITERALS:
        return None
    return dotted_name(node)


def instanceof_types(root: SyntaxNode | None) -> list[str]:
    """Right-hand names of ``x instanceof T`` checks under ``root``."""
    names = []
    for node in find_all(root, NodeKind.BINARY_EXPRESSION):
        if node.get("operator") == "instanceof":
            name = dotted_name(node.child("right"))
            if name:
                names.append(name)
    return names


def call_labels(root: SyntaxNode | None) -> list[str]:
    """Readable names of every call under ``root``, in source order."""
    labels = []
    for call in find_all(root, *CALL_KINDS):
        callee = call.child("callee")
        name = dotted_name(callee) or member_name(callee)
        if name:
            labels.append(name)
    return labels


def template_text(template: SyntaxNode) -> tuple[str, list[str]]:
    """Render a template literal, ``${x}`` as ``{x}``; returns (text, variables)."""
    quasis = template.child_list("quasis")
    expressions = template.child_list("expressions")
    parts: list[str] = []
    variables: list[str] = []
    for i, quasi in enumerate(quasis):
        value = quasi.get("value")
        if isinstance(value, dict):
            cooked = value.get("cooked")
            parts.append(cooked if isinstance(cooked, str) else str(value.get("raw", "")))
        elif isinstance(value, str):
            parts.append(value)
        if i < len(expressions):
            name = identifier_name(expressions[i])
            if name:
                parts.append("{%s}" % name)
                variables.append(name)
            else:
                parts.append("{expression}")
    return "".join(parts), variables


def literal_text(node: SyntaxNode | None) -> tuple[str | None, list[str]]:
    """Text of a string or template literal, with interpolated variable names."""
    if node is None:
        return None, []
    text = string_value(node)
    if text is not None:
        return text, []
    if node.kind is NodeKind.TEMPLATE_LITERAL:
        return template_text(node)
    return None, []


def contains_words(text: str, words: Sequence[str]) -> bool:
    lowered = text.lower()
    return any(w in lowered for w in words)
