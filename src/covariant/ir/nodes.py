"""
IR node definitions.

IR nodes mirror the AST one-to-one with two exceptions: ``Grouped`` has no
IR counterpart (its child is inlined) and the pipe operator never appears
(it is desugared into ``IrFnCall``). Children are referenced by ``NodeId``
handles into the owning ``Dag`` rather than by object reference, and spans
live beside the node in ``IrNodeData`` rather than on the node itself.
"""

from dataclasses import dataclass, fields, is_dataclass
from typing import Iterator, Optional, Tuple

from ..syntax.span import Span
from ..syntax.ast import AngleUnit, BinOpKind, LengthUnit, TypeExpr, UnaryOpKind


@dataclass(frozen=True, order=True)
class NodeId:
    """Dense integer handle into a ``Dag`` arena."""
    index: int

    def __str__(self) -> str:
        return f"n{self.index}"


@dataclass(frozen=True)
class IrNode:
    """Base class for all IR node payloads."""

    def children(self) -> Iterator[NodeId]:
        """Yield every ``NodeId`` this node references, in field order."""
        yield from _node_ids(self)


def _node_ids(obj) -> Iterator[NodeId]:
    if isinstance(obj, NodeId):
        yield obj
    elif isinstance(obj, (list, tuple)):
        for item in obj:
            yield from _node_ids(item)
    elif is_dataclass(obj) and not isinstance(obj, (TypeExpr, Span)):
        for f in fields(obj):
            yield from _node_ids(getattr(obj, f.name))


@dataclass(frozen=True)
class IrNodeData:
    """An IR node together with its source span."""
    node: IrNode
    span: Span


# =============================================================================
# Helper Records
# =============================================================================

@dataclass(frozen=True)
class IrArg:
    """A call argument; ``name`` is set for named arguments."""
    name: Optional[str]
    value: NodeId
    span: Span


@dataclass(frozen=True)
class IrParam:
    name: str
    ty: Optional[TypeExpr] = None
    default: Optional[NodeId] = None


@dataclass(frozen=True)
class IrFieldInit:
    name: str
    value: NodeId


@dataclass(frozen=True)
class IrDataField:
    name: str
    ty: TypeExpr
    default: Optional[NodeId] = None


@dataclass(frozen=True)
class IrPattern:
    """Base class for match patterns."""
    pass


@dataclass(frozen=True)
class IrWildcardPattern(IrPattern):
    pass


@dataclass(frozen=True)
class IrIdentPattern(IrPattern):
    name: str


@dataclass(frozen=True)
class IrLiteralPattern(IrPattern):
    value: NodeId


@dataclass(frozen=True)
class IrMatchArm:
    pattern: IrPattern
    body: NodeId


# =============================================================================
# Expressions
# =============================================================================

@dataclass(frozen=True)
class IrIntLit(IrNode):
    value: int


@dataclass(frozen=True)
class IrFloatLit(IrNode):
    value: float


@dataclass(frozen=True)
class IrLengthLit(IrNode):
    value: float
    unit: LengthUnit


@dataclass(frozen=True)
class IrAngleLit(IrNode):
    value: float
    unit: AngleUnit


@dataclass(frozen=True)
class IrBoolLit(IrNode):
    value: bool


@dataclass(frozen=True)
class IrStringLit(IrNode):
    value: str


@dataclass(frozen=True)
class IrIdent(IrNode):
    name: str


@dataclass(frozen=True)
class IrBinOp(IrNode):
    """Binary operator. ``op`` is never ``BinOpKind.PIPE``."""
    lhs: NodeId
    op: BinOpKind
    rhs: NodeId


@dataclass(frozen=True)
class IrUnaryOp(IrNode):
    op: UnaryOpKind
    operand: NodeId


@dataclass(frozen=True)
class IrFnCall(IrNode):
    func: NodeId
    args: Tuple[IrArg, ...] = ()


@dataclass(frozen=True)
class IrFieldAccess(IrNode):
    obj: NodeId
    field: str


@dataclass(frozen=True)
class IrLambda(IrNode):
    params: Tuple[IrParam, ...]
    body: NodeId


@dataclass(frozen=True)
class IrList(IrNode):
    items: Tuple[NodeId, ...]


@dataclass(frozen=True)
class IrIf(IrNode):
    cond: NodeId
    then_branch: NodeId
    else_branch: Optional[NodeId] = None


@dataclass(frozen=True)
class IrMatch(IrNode):
    subject: NodeId
    arms: Tuple[IrMatchArm, ...]


@dataclass(frozen=True)
class IrDataConstructor(IrNode):
    name: str
    fields: Tuple[IrFieldInit, ...]


@dataclass(frozen=True)
class IrWithUpdate(IrNode):
    base: NodeId
    updates: Tuple[IrFieldInit, ...]


@dataclass(frozen=True)
class IrBlock(IrNode):
    stmts: Tuple[NodeId, ...]
    tail: Optional[NodeId] = None


# =============================================================================
# Statements
# =============================================================================

@dataclass(frozen=True)
class IrLet(IrNode):
    name: str
    ty: Optional[TypeExpr]
    value: NodeId


@dataclass(frozen=True)
class IrFnDef(IrNode):
    name: str
    params: Tuple[IrParam, ...]
    return_ty: Optional[TypeExpr]
    body: NodeId


@dataclass(frozen=True)
class IrDataDef(IrNode):
    name: str
    fields: Tuple[IrDataField, ...] = ()


@dataclass(frozen=True)
class IrEnumDef(IrNode):
    name: str
    variants: Tuple[str, ...] = ()

