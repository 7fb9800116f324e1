"""Abstract syntax tree nodes for ToyC programs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union


@dataclass
class NumberExpr:
    """An integer literal."""

    value: int


@dataclass
class IdentifierExpr:
    """A reference to a variable."""

    name: str


@dataclass
class BinaryExpr:
    """A binary operation such as ``+`` or ``==``."""

    op: str
    lhs: _Node
    rhs: _Node


@dataclass
class UnaryExpr:
    """A unary operation: ``+``, ``-`` or ``!``."""

    op: str
    expr: _Node


@dataclass
class CallExpr:
    """A call of a named function."""

    callee: str
    args: List[_Node] = field(default_factory=list)


@dataclass
class AssignStmt:
    """Assignment to an existing variable."""

    name: str
    expr: _Node


@dataclass
class DeclStmt:
    """Declaration of a variable with its initialiser."""

    name: str
    expr: _Node


@dataclass
class IfStmt:
    """A conditional statement with an optional else branch."""

    cond: _Node
    then_stmt: Optional[_Node]
    else_stmt: Optional[_Node] = None


@dataclass
class WhileStmt:
    """A while loop."""

    cond: _Node
    body: Optional[_Node]


@dataclass
class BreakStmt:
    """Leaves the innermost loop."""


@dataclass
class ContinueStmt:
    """Jumps to the condition of the innermost loop."""


@dataclass
class ReturnStmt:
    """Returns from the function, with a value or without one."""

    expr: Optional[_Node] = None


@dataclass
class BlockStmt:
    """A braced list of statements; empty statements appear as ``None``."""

    stmts: List[Optional[_Node]] = field(default_factory=list)


@dataclass
class Param:
    """A function parameter; all parameters are of type int."""

    name: str


@dataclass
class FuncDef:
    """A function definition."""

    ret_type: str
    name: str
    params: List[Param] = field(default_factory=list)
    body: BlockStmt = field(default_factory=BlockStmt)


_Node = Union[
    NumberExpr,
    IdentifierExpr,
    BinaryExpr,
    UnaryExpr,
    CallExpr,
    AssignStmt,
    DeclStmt,
    IfStmt,
    WhileStmt,
    BreakStmt,
    ContinueStmt,
    ReturnStmt,
    BlockStmt,
]