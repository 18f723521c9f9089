"""
Abstract Syntax Tree (AST) node definitions for the covariant language.

The AST is the parser's structural output. Every node carries the span of
source text it was parsed from and owns its children; no cycles exist by
construction. Parenthesized expressions are kept as ``Grouped`` markers
here and eliminated during IR lowering.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional
from abc import ABC

from .span import Span


# =============================================================================
# Base Classes
# =============================================================================

@dataclass
class AstNode(ABC):
    """Base class for all AST nodes."""
    span: Span  # Source range for error reporting

    def accept(self, visitor: "AstVisitor") -> Any:
        """Accept a visitor for traversal."""
        method_name = f"visit_{self.__class__.__name__}"
        method = getattr(visitor, method_name, visitor.generic_visit)
        return method(self)


class AstVisitor(ABC):
    """Base class for AST visitors."""

    def generic_visit(self, node: AstNode) -> Any:
        """Default visit method."""
        raise NotImplementedError(f"No visitor for {node.__class__.__name__}")


# =============================================================================
# Operators and Units
# =============================================================================

class BinOpKind(Enum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    EQ = "=="
    NEQ = "!="
    LT = "<"
    LEQ = "<="
    GT = ">"
    GEQ = ">="
    AND = "&&"
    OR = "||"
    PIPE = "|>"

    @property
    def is_arithmetic(self) -> bool:
        return self in (BinOpKind.ADD, BinOpKind.SUB, BinOpKind.MUL, BinOpKind.DIV)

    @property
    def is_comparison(self) -> bool:
        return self in (BinOpKind.LT, BinOpKind.LEQ, BinOpKind.GT, BinOpKind.GEQ)


class UnaryOpKind(Enum):
    NEG = "-"
    NOT = "!"


class LengthUnit(Enum):
    MM = "mm"
    CM = "cm"
    M = "m"
    IN = "in"


class AngleUnit(Enum):
    DEG = "deg"
    RAD = "rad"


# =============================================================================
# Type Annotations
# =============================================================================

@dataclass
class TypeExpr(AstNode):
    """Base class for type annotations."""
    pass


@dataclass
class NamedType(TypeExpr):
    """A named type such as ``Int``, ``Length`` or a data/enum name."""
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass
class ListTypeExpr(TypeExpr):
    """``List[T]``."""
    element: TypeExpr

    def __str__(self) -> str:
        return f"List[{self.element}]"


@dataclass
class FnTypeExpr(TypeExpr):
    """``Fn(A, B) -> C``."""
    params: List[TypeExpr]
    ret: TypeExpr

    def __str__(self) -> str:
        params = ", ".join(str(p) for p in self.params)
        return f"Fn({params}) -> {self.ret}"


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass
class Expression(AstNode):
    """Base class for all expressions."""
    pass


@dataclass
class IntLit(Expression):
    value: int


@dataclass
class FloatLit(Expression):
    value: float


@dataclass
class LengthLit(Expression):
    """A length literal such as ``10mm``; the value is in ``unit``."""
    value: float
    unit: LengthUnit


@dataclass
class AngleLit(Expression):
    """An angle literal such as ``90deg``; the value is in ``unit``."""
    value: float
    unit: AngleUnit


@dataclass
class BoolLit(Expression):
    value: bool


@dataclass
class StringLit(Expression):
    """A string literal, already unescaped."""
    value: str


@dataclass
class Ident(Expression):
    """A variable or function name reference."""
    name: str


@dataclass
class BinOp(Expression):
    lhs: Expression
    op: BinOpKind
    rhs: Expression


@dataclass
class UnaryOp(Expression):
    op: UnaryOpKind
    operand: Expression


@dataclass
class Arg(AstNode):
    """A call argument; ``name`` is set for ``name = value`` arguments."""
    name: Optional[str]
    value: Expression


@dataclass
class FnCall(Expression):
    func: Expression
    args: List[Arg] = field(default_factory=list)


@dataclass
class FieldAccess(Expression):
    obj: Expression
    field: str


@dataclass
class Param(AstNode):
    """A function or lambda parameter."""
    name: str
    ty: Optional[TypeExpr] = None
    default: Optional[Expression] = None


@dataclass
class Lambda(Expression):
    """``|x, y| body``."""
    params: List[Param]
    body: Expression


@dataclass
class ListExpr(Expression):
    items: List[Expression]


@dataclass
class IfExpr(Expression):
    cond: Expression
    then_branch: "Block"
    else_branch: Optional[Expression] = None  # Block or a nested IfExpr


@dataclass
class Pattern(AstNode):
    """Base class for match patterns."""
    pass


@dataclass
class IdentPattern(Pattern):
    """A name: compares against a bound enum variant, otherwise binds."""
    name: str


@dataclass
class WildcardPattern(Pattern):
    """``_``; always matches."""
    pass


@dataclass
class LiteralPattern(Pattern):
    value: Expression


@dataclass
class MatchArm(AstNode):
    pattern: Pattern
    body: Expression


@dataclass
class MatchExpr(Expression):
    subject: Expression
    arms: List[MatchArm]


@dataclass
class FieldInit(AstNode):
    """``name = value`` inside a data constructor or with-update."""
    name: str
    value: Expression


@dataclass
class DataConstructor(Expression):
    """``Rect { width = 1mm, height = 2mm }``."""
    name: str
    fields: List[FieldInit]


@dataclass
class WithUpdate(Expression):
    """``base with { field = value }``."""
    base: Expression
    updates: List[FieldInit]


@dataclass
class Block(Expression):
    """``{ stmts; tail }``; the tail expression is the block's value."""
    stmts: List["Statement"]
    tail: Optional[Expression] = None


@dataclass
class Grouped(Expression):
    """Parenthesized expression marker, eliminated during lowering."""
    inner: Expression


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass
class Statement(AstNode):
    """Base class for all statements."""
    pass


@dataclass
class LetStmt(Statement):
    """``let name: Type = value``."""
    name: str
    ty: Optional[TypeExpr]
    value: Expression


@dataclass
class FnDef(Statement):
    """``fn name(params) -> Type { body }``."""
    name: str
    params: List[Param]
    return_ty: Optional[TypeExpr]
    body: Block


@dataclass
class DataField(AstNode):
    name: str
    ty: TypeExpr
    default: Optional[Expression] = None


@dataclass
class DataDef(Statement):
    """``data Name { field: Type = default, ... }``."""
    name: str
    fields: List[DataField]


@dataclass
class EnumDef(Statement):
    """``enum Name { A, B, C }``."""
    name: str
    variants: List[str]


@dataclass
class ExprStmt(Statement):
    expr: Expression


# =============================================================================
# Top Level
# =============================================================================

@dataclass
class SourceFile(AstNode):
    """A parsed source file: top-level statements in order."""
    stmts: List[Statement] = field(default_factory=list)
