"""AST node definitions for the FoxDream language.

Every node keeps the token it was built from so the interpreter can
report errors at a source position.  Nodes are frozen dataclasses; the
parser builds them once and the interpreter only reads them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from .scanner import Token


class Node:
    """Base class for all AST nodes."""
    token: Token


class Expr(Node):
    pass


class Stmt(Node):
    pass


# Expressions

@dataclass(frozen=True)
class Literal(Expr):
    token: Token
    value: Any


@dataclass(frozen=True)
class Identifier(Expr):
    token: Token

    @property
    def name(self) -> str:
        return str(self.token)


@dataclass(frozen=True)
class Unary(Expr):
    token: Token
    operand: Expr


@dataclass(frozen=True)
class Binary(Expr):
    token: Token
    left: Expr
    right: Expr


@dataclass(frozen=True)
class Logical(Expr):
    token: Token
    left: Expr
    right: Expr


@dataclass(frozen=True)
class Member(Expr):
    """``obj.name`` (``computed`` false, ``prop`` an Identifier) or ``obj[expr]``."""
    token: Token
    obj: Expr
    prop: Expr
    computed: bool = False


@dataclass(frozen=True)
class NamedArgument(Expr):
    """A call argument; ``alias`` is None for positional arguments."""
    token: Token
    alias: Optional[str]
    value: Expr


@dataclass(frozen=True)
class Call(Expr):
    token: Token
    callee: Expr
    arguments: List[NamedArgument] = field(default_factory=list)


@dataclass(frozen=True)
class CreateObject(Expr):
    token: Token
    name: Token
    arguments: List[Expr] = field(default_factory=list)


@dataclass(frozen=True)
class Conditional(Expr):
    token: Token
    condition: Expr
    consequence: Expr
    alternative: Optional[Expr] = None


@dataclass(frozen=True)
class This(Expr):
    token: Token


@dataclass(frozen=True)
class Macro(Expr):
    token: Token
    parts: List[Expr] = field(default_factory=list)


# Statements

@dataclass(frozen=True)
class ExpressionStmt(Stmt):
    token: Token
    expression: Expr


@dataclass(frozen=True)
class Print(Stmt):
    token: Token
    expressions: List[Expr]


@dataclass(frozen=True)
class Return(Stmt):
    token: Token
    values: List[Expr] = field(default_factory=list)


@dataclass(frozen=True)
class Declarator:
    name: Token
    type_name: Optional[Token] = None
    initializer: Optional[Expr] = None


@dataclass(frozen=True)
class VarDeclaration(Stmt):
    """``local``/``public`` declarations; ``values`` is set for the destructuring form."""
    token: Token
    scope: str
    declarators: List[Declarator]
    values: Optional[List[Expr]] = None


@dataclass(frozen=True)
class Block(Stmt):
    token: Token
    statements: List[Stmt]


@dataclass(frozen=True)
class If(Stmt):
    token: Token
    condition: Expr
    then_branch: Block
    else_branch: Optional[Block] = None


@dataclass(frozen=True)
class CaseBranch:
    conditions: List[Expr]
    body: Block


@dataclass(frozen=True)
class DoCase(Stmt):
    token: Token
    branches: List[CaseBranch]
    otherwise: Optional[Block] = None


@dataclass(frozen=True)
class DoWhile(Stmt):
    token: Token
    condition: Expr
    body: Block


@dataclass(frozen=True)
class Do(Stmt):
    token: Token
    body: Block
    condition: Expr


@dataclass(frozen=True)
class Exit(Stmt):
    token: Token


@dataclass(frozen=True)
class Loop(Stmt):
    token: Token


@dataclass(frozen=True)
class For(Stmt):
    token: Token
    variable: Identifier
    start: Expr
    end: Expr
    step: Optional[Expr]
    body: Block


@dataclass(frozen=True)
class Parameter:
    name: Token
    alias: Optional[str] = None
    default: Optional[Expr] = None


@dataclass(frozen=True)
class Defer(Stmt):
    token: Token
    body: Block


@dataclass(frozen=True)
class Function(Stmt):
    token: Token
    name: Token
    params: List[Parameter]
    body: List[Stmt]
    defers: List[Defer] = field(default_factory=list)


@dataclass(frozen=True)
class Class(Stmt):
    token: Token
    name: Token
    superclass: Optional[Identifier]
    properties: List[Stmt]
    methods: List[Function]


@dataclass(frozen=True)
class Const(Stmt):
    token: Token
    name: Token
    value: Expr


@dataclass(frozen=True)
class Module(Stmt):
    token: Token
    name: Token
    body: List[Stmt]


@dataclass(frozen=True)
class Release(Stmt):
    token: Token
    targets: List[Identifier]


@dataclass(frozen=True)
class SimpleAssignment(Stmt):
    token: Token
    target: Expr
    value: Expr


@dataclass(frozen=True)
class ComplexAssignment(Stmt):
    """``target op= value``; ``token`` is the compound operator."""
    token: Token
    target: Expr
    value: Expr


@dataclass(frozen=True)
class MultipleAssignment(Stmt):
    token: Token
    targets: List[Expr]
    values: List[Expr]


@dataclass
class Program(Node):
    body: List[Stmt]
