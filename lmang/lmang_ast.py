"""
Expression-tree nodes consumed by the evaluator.

A front end's parser builds these; the evaluator never sees source text.
Construction validates what a parser would reject (misplaced variadics,
unknown except kinds) by raising ParseError.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple

from lmang.lmang_datatypes import Single, Variadic
from lmang.lmang_errors import RUNTIME_ERROR_KINDS, ParseError


class Op(Enum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    GT = ">"
    GE = ">="
    EQ = "=="
    LE = "<="
    LT = "<"
    FUZZY_EQ = "~="


class Mode(Enum):
    CREATE_LOCAL = "let"
    SET = "set"
    CREATE_GLOBAL = "global"


@dataclass
class Operation:
    lhs: Any
    rhs: Any
    op: Op


@dataclass
class Literal:
    value: Any


@dataclass
class BindingUpdate:
    name: str
    value: Any
    mode: Mode = Mode.CREATE_LOCAL


@dataclass
class BindingUsage:
    name: str


@dataclass
class Block:
    exprs: List[Any] = field(default_factory=list)


@dataclass
class Class:
    body: Block


@dataclass
class If:
    cond: Any
    body: Block
    elifs: List[Tuple[Any, Block]] = field(default_factory=list)
    else_body: Optional[Block] = None


@dataclass
class Index:
    root: Any
    names: List[str]


@dataclass
class Break:
    body: Block


@dataclass
class Loop:
    body: Block


@dataclass
class Func:
    params: List[Any]
    body: Block

    def __post_init__(self):
        for pos, param in enumerate(self.params):
            if not isinstance(param, (Single, Variadic)):
                raise ParseError("ExpectedParam", repr(param))
            if isinstance(param, Variadic) and pos != len(self.params) - 1:
                raise ParseError("PrematureVariadic", param.name)


@dataclass
class Call:
    callee: Any
    args: List[Any] = field(default_factory=list)


@dataclass
class RefExpr:
    name: str


@dataclass
class Try:
    body: Block
    excepts: List[Tuple[str, Block]] = field(default_factory=list)
    catch_all: Optional[Block] = None

    def __post_init__(self):
        for kind, _ in self.excepts:
            if kind not in RUNTIME_ERROR_KINDS:
                raise ParseError("UnknownExceptKind", kind)


@dataclass
class Named:
    name: str
    expr: Any
