"""Shared test helpers — small builders for hand-made syntax trees."""

from __future__ import annotations

from idiomgraph.syntax.tree import NodeKind, SyntaxNode


def node(node_kind: NodeKind, /, **fields) -> SyntaxNode:
    return SyntaxNode(kind=node_kind, fields=fields)


def ident(name: str) -> SyntaxNode:
    return node(NodeKind.IDENTIFIER, name=name)


def string(value: str) -> SyntaxNode:
    return node(NodeKind.STRING_LITERAL, value=value)


def num(value: int | float) -> SyntaxNode:
    return node(NodeKind.NUMERIC_LITERAL, value=value)


def template(quasis: list[str], expressions: list[SyntaxNode]) -> SyntaxNode:
    return node(
        NodeKind.TEMPLATE_LITERAL,
        quasis=[node(NodeKind.TEMPLATE_ELEMENT, value={"raw": q, "cooked": q}) for q in quasis],
        expressions=expressions,
    )


def member(obj: SyntaxNode | str, prop: str) -> SyntaxNode:
    if isinstance(obj, str):
        obj = ident(obj)
    return node(NodeKind.MEMBER_EXPRESSION, object=obj, property=ident(prop), computed=False)


def this_member(*names: str) -> SyntaxNode:
    current = node(NodeKind.THIS_EXPRESSION)
    for name in names:
        current = member(current, name)
    return current


def call(callee: SyntaxNode | str, *args: SyntaxNode) -> SyntaxNode:
    if isinstance(callee, str):
        callee = ident(callee)
    return node(NodeKind.CALL_EXPRESSION, callee=callee, arguments=list(args))


def new(callee: SyntaxNode | str, *args: SyntaxNode) -> SyntaxNode:
    if isinstance(callee, str):
        callee = ident(callee)
    return node(NodeKind.NEW_EXPRESSION, callee=callee, arguments=list(args))


def method_call(receiver: SyntaxNode | str, method: str, *args: SyntaxNode) -> SyntaxNode:
    return call(member(receiver, method), *args)


def block(*statements: SyntaxNode) -> SyntaxNode:
    return node(NodeKind.BLOCK_STATEMENT, body=list(statements))


def stmt(expression: SyntaxNode) -> SyntaxNode:
    return node(NodeKind.EXPRESSION_STATEMENT, expression=expression)


def ret(argument: SyntaxNode | None) -> SyntaxNode:
    return node(NodeKind.RETURN_STATEMENT, argument=argument)


def arrow(params: list[SyntaxNode], body: SyntaxNode) -> SyntaxNode:
    return node(NodeKind.ARROW_FUNCTION_EXPRESSION, params=params, body=body)


def func_decl(name: str, params: list[SyntaxNode], body: SyntaxNode) -> SyntaxNode:
    return node(NodeKind.FUNCTION_DECLARATION, id=ident(name), params=params, body=body)


def declarator(target: SyntaxNode | str, init: SyntaxNode | None) -> SyntaxNode:
    if isinstance(target, str):
        target = ident(target)
    return node(NodeKind.VARIABLE_DECLARATOR, id=target, init=init)


def var(target: SyntaxNode | str, init: SyntaxNode | None, kind: str = "const") -> SyntaxNode:
    return node(NodeKind.VARIABLE_DECLARATION, declarations=[declarator(target, init)], kind=kind)


def array_pattern(*names: str | None) -> SyntaxNode:
    return node(NodeKind.ARRAY_PATTERN, elements=[ident(n) if n else None for n in names])


def obj(**props: SyntaxNode) -> SyntaxNode:
    return node(NodeKind.OBJECT_EXPRESSION, properties=[
        node(NodeKind.OBJECT_PROPERTY, key=ident(key), value=value) for key, value in props.items()
    ])


def object_pattern(*names: str) -> SyntaxNode:
    return node(NodeKind.OBJECT_PATTERN, properties=[
        node(NodeKind.OBJECT_PROPERTY, key=ident(n), value=ident(n), shorthand=True) for n in names
    ])


def binary(left: SyntaxNode, operator: str, right: SyntaxNode) -> SyntaxNode:
    return node(NodeKind.BINARY_EXPRESSION, left=left, operator=operator, right=right)


def await_(argument: SyntaxNode) -> SyntaxNode:
    return node(NodeKind.AWAIT_EXPRESSION, argument=argument)


def try_stmt(
    body: SyntaxNode,
    param: str | None = "error",
    handler_body: SyntaxNode | None = None,
    finalizer: SyntaxNode | None = None,
    with_handler: bool = True,
) -> SyntaxNode:
    handler = None
    if with_handler:
        handler = node(
            NodeKind.CATCH_CLAUSE,
            param=ident(param) if param else None,
            body=handler_body if handler_body is not None else block(),
        )
    return node(NodeKind.TRY_STATEMENT, block=body, handler=handler, finalizer=finalizer)


def jsx_attr(name: str, value: SyntaxNode) -> SyntaxNode:
    return node(
        NodeKind.JSX_ATTRIBUTE,
        name=node(NodeKind.JSX_IDENTIFIER, name=name),
        value=node(NodeKind.JSX_EXPRESSION_CONTAINER, expression=value),
    )


def jsx(tag: str, attributes: list[SyntaxNode] | None = None, children: list[SyntaxNode] | None = None) -> SyntaxNode:
    return node(
        NodeKind.JSX_ELEMENT,
        openingElement=node(
            NodeKind.JSX_OPENING_ELEMENT,
            name=node(NodeKind.JSX_IDENTIFIER, name=tag),
            attributes=attributes or [],
        ),
        children=children or [],
        closingElement=None,
    )


def program(*statements: SyntaxNode) -> SyntaxNode:
    return node(NodeKind.PROGRAM, body=list(statements))


def counter_component() -> SyntaxNode:
    """``function Counter() { const [count, setCount] = useState(0); ... }``"""
    increment = arrow([], call("setCount", arrow([ident("prev")], binary(ident("prev"), "+", num(1)))))
    body = block(
        var(array_pattern("count", "setCount"), call("useState", num(0))),
        var("increment", increment),
        ret(jsx("button", [jsx_attr("onClick", ident("increment"))], [ident("count")])),
    )
    return program(func_decl("Counter", [], body))
