"""Syntax tree node types for mission programs.

Nodes are small frozen dataclasses; every node records the line of the token
that started it so runtime errors can point at the source.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class Node:
    line: int = field(default=0, kw_only=True)


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Literal(Node):
    value: object


@dataclass(frozen=True, slots=True)
class Identifier(Node):
    name: str


@dataclass(frozen=True, slots=True)
class ArrayLiteral(Node):
    elements: tuple[Node, ...]


@dataclass(frozen=True, slots=True)
class ObjectLiteral(Node):
    properties: tuple[tuple[str, Node], ...]


@dataclass(frozen=True, slots=True)
class FunctionExpr(Node):
    """Arrow function or ``function`` expression/declaration.

    ``body`` is a ``Block`` for statement bodies, otherwise the single
    expression an arrow function returns.
    """

    name: str | None
    params: tuple[str, ...]
    body: Node
    is_arrow: bool = False


@dataclass(frozen=True, slots=True)
class Member(Node):
    """``obj.name`` (``computed=False``) or ``obj[expr]``."""

    obj: Node
    prop: Node
    computed: bool


@dataclass(frozen=True, slots=True)
class Call(Node):
    callee: Node
    args: tuple[Node, ...]


@dataclass(frozen=True, slots=True)
class New(Node):
    callee: Node
    args: tuple[Node, ...]


@dataclass(frozen=True, slots=True)
class Unary(Node):
    op: str
    operand: Node


@dataclass(frozen=True, slots=True)
class Update(Node):
    """``++``/``--`` in prefix or postfix position."""

    op: str
    target: Node
    prefix: bool


@dataclass(frozen=True, slots=True)
class Binary(Node):
    op: str
    left: Node
    right: Node


@dataclass(frozen=True, slots=True)
class Logical(Node):
    op: str
    left: Node
    right: Node


@dataclass(frozen=True, slots=True)
class Conditional(Node):
    test: Node
    consequent: Node
    alternate: Node


@dataclass(frozen=True, slots=True)
class Assign(Node):
    op: str
    target: Node
    value: Node


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Program(Node):
    body: tuple[Node, ...]


@dataclass(frozen=True, slots=True)
class Block(Node):
    body: tuple[Node, ...]


@dataclass(frozen=True, slots=True)
class ExpressionStatement(Node):
    expression: Node


@dataclass(frozen=True, slots=True)
class VarDeclaration(Node):
    kind: str
    declarations: tuple[tuple[str, Node | None], ...]


@dataclass(frozen=True, slots=True)
class FunctionDeclaration(Node):
    function: FunctionExpr


@dataclass(frozen=True, slots=True)
class Import(Node):
    """``import { imported as local, ... } from 'module'``."""

    names: tuple[tuple[str, str], ...]
    module: str


@dataclass(frozen=True, slots=True)
class Return(Node):
    value: Node | None


@dataclass(frozen=True, slots=True)
class If(Node):
    test: Node
    consequent: Node
    alternate: Node | None


@dataclass(frozen=True, slots=True)
class While(Node):
    test: Node
    body: Node


@dataclass(frozen=True, slots=True)
class For(Node):
    init: Node | None
    test: Node | None
    update: Node | None
    body: Node


@dataclass(frozen=True, slots=True)
class ForOf(Node):
    kind: str
    name: str
    iterable: Node
    body: Node


@dataclass(frozen=True, slots=True)
class Break(Node):
    pass


@dataclass(frozen=True, slots=True)
class Continue(Node):
    pass


@dataclass(frozen=True, slots=True)
class Throw(Node):
    value: Node


@dataclass(frozen=True, slots=True)
class Empty(Node):
    pass
