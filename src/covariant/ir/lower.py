"""
AST to IR lowering.

A one-pass structural translation driven by the AST visitor protocol.
Every visit method inserts the lowered node into the ``Dag`` after its
children, which is what keeps the arena acyclic. Two constructs do not
survive lowering:

- ``Grouped(e)`` lowers to the node of ``e``; nothing is allocated for the
  parentheses.
- ``a |> f`` becomes ``f(a)`` and ``a |> f(b, c)`` becomes ``f(a, b, c)``.
  Pipes are left-associative, so ``a |> f |> g`` is ``g(f(a))``.
"""

from typing import List, Tuple

from ..syntax import ast
from ..syntax.ast import AstVisitor, BinOpKind
from .dag import Dag
from .errors import IrError, IrErrorKind
from .nodes import (
    NodeId, IrArg, IrParam, IrFieldInit, IrDataField, IrMatchArm,
    IrPattern, IrWildcardPattern, IrIdentPattern, IrLiteralPattern,
    IrIntLit, IrFloatLit, IrLengthLit, IrAngleLit, IrBoolLit, IrStringLit,
    IrIdent, IrBinOp, IrUnaryOp, IrFnCall, IrFieldAccess, IrLambda, IrList,
    IrIf, IrMatch, IrDataConstructor, IrWithUpdate, IrBlock,
    IrLet, IrFnDef, IrDataDef, IrEnumDef,
)


class Lowerer(AstVisitor):
    """Lowers one ``SourceFile`` into a fresh ``Dag``."""

    def __init__(self):
        self.dag = Dag()

    def lower_file(self, source_file: ast.SourceFile) -> Dag:
        roots = [stmt.accept(self) for stmt in source_file.stmts]
        self.dag.set_roots(roots)
        return self.dag

    def generic_visit(self, node: ast.AstNode):
        raise IrError(
            f"cannot lower {node.__class__.__name__}",
            node.span,
            IrErrorKind.UNSUPPORTED,
        )

    def _lower(self, node: ast.AstNode) -> NodeId:
        return node.accept(self)

    def _params(self, params: List[ast.Param]) -> Tuple[IrParam, ...]:
        return tuple(
            IrParam(
                p.name,
                p.ty,
                self._lower(p.default) if p.default is not None else None,
            )
            for p in params
        )

    def _field_inits(self, inits: List[ast.FieldInit]) -> Tuple[IrFieldInit, ...]:
        return tuple(IrFieldInit(f.name, self._lower(f.value)) for f in inits)

    def _args(self, args: List[ast.Arg]) -> List[IrArg]:
        return [IrArg(a.name, self._lower(a.value), a.span) for a in args]

    # --- Literals ---

    def visit_IntLit(self, node: ast.IntLit) -> NodeId:
        return self.dag.insert(IrIntLit(node.value), node.span)

    def visit_FloatLit(self, node: ast.FloatLit) -> NodeId:
        return self.dag.insert(IrFloatLit(node.value), node.span)

    def visit_LengthLit(self, node: ast.LengthLit) -> NodeId:
        return self.dag.insert(IrLengthLit(node.value, node.unit), node.span)

    def visit_AngleLit(self, node: ast.AngleLit) -> NodeId:
        return self.dag.insert(IrAngleLit(node.value, node.unit), node.span)

    def visit_BoolLit(self, node: ast.BoolLit) -> NodeId:
        return self.dag.insert(IrBoolLit(node.value), node.span)

    def visit_StringLit(self, node: ast.StringLit) -> NodeId:
        return self.dag.insert(IrStringLit(node.value), node.span)

    def visit_Ident(self, node: ast.Ident) -> NodeId:
        return self.dag.insert(IrIdent(node.name), node.span)

    # --- Operators ---

    def visit_BinOp(self, node: ast.BinOp) -> NodeId:
        if node.op is BinOpKind.PIPE:
            return self._lower_pipe(node)
        lhs = self._lower(node.lhs)
        rhs = self._lower(node.rhs)
        return self.dag.insert(IrBinOp(lhs, node.op, rhs), node.span)

    def _lower_pipe(self, node: ast.BinOp) -> NodeId:
        """``a |> f(b)`` -> ``f(a, b)``; ``a |> f`` -> ``f(a)``."""
        piped = IrArg(None, self._lower(node.lhs), node.lhs.span)

        if isinstance(node.rhs, ast.FnCall):
            func = self._lower(node.rhs.func)
            args = [piped] + self._args(node.rhs.args)
        else:
            func = self._lower(node.rhs)
            args = [piped]

        return self.dag.insert(IrFnCall(func, tuple(args)), node.span)

    def visit_UnaryOp(self, node: ast.UnaryOp) -> NodeId:
        operand = self._lower(node.operand)
        return self.dag.insert(IrUnaryOp(node.op, operand), node.span)

    def visit_Grouped(self, node: ast.Grouped) -> NodeId:
        return self._lower(node.inner)

    # --- Calls and records ---

    def visit_FnCall(self, node: ast.FnCall) -> NodeId:
        func = self._lower(node.func)
        args = self._args(node.args)
        return self.dag.insert(IrFnCall(func, tuple(args)), node.span)

    def visit_FieldAccess(self, node: ast.FieldAccess) -> NodeId:
        obj = self._lower(node.obj)
        return self.dag.insert(IrFieldAccess(obj, node.field), node.span)

    def visit_DataConstructor(self, node: ast.DataConstructor) -> NodeId:
        fields = self._field_inits(node.fields)
        return self.dag.insert(IrDataConstructor(node.name, fields), node.span)

    def visit_WithUpdate(self, node: ast.WithUpdate) -> NodeId:
        base = self._lower(node.base)
        updates = self._field_inits(node.updates)
        return self.dag.insert(IrWithUpdate(base, updates), node.span)

    # --- Compound expressions ---

    def visit_Lambda(self, node: ast.Lambda) -> NodeId:
        params = self._params(node.params)
        body = self._lower(node.body)
        return self.dag.insert(IrLambda(params, body), node.span)

    def visit_ListExpr(self, node: ast.ListExpr) -> NodeId:
        items = tuple(self._lower(item) for item in node.items)
        return self.dag.insert(IrList(items), node.span)

    def visit_IfExpr(self, node: ast.IfExpr) -> NodeId:
        cond = self._lower(node.cond)
        then_branch = self._lower(node.then_branch)
        else_branch = None
        if node.else_branch is not None:
            else_branch = self._lower(node.else_branch)
        return self.dag.insert(IrIf(cond, then_branch, else_branch), node.span)

    def visit_MatchExpr(self, node: ast.MatchExpr) -> NodeId:
        subject = self._lower(node.subject)
        arms = tuple(
            IrMatchArm(arm.pattern.accept(self), self._lower(arm.body))
            for arm in node.arms
        )
        return self.dag.insert(IrMatch(subject, arms), node.span)

    def visit_WildcardPattern(self, node: ast.WildcardPattern) -> IrPattern:
        return IrWildcardPattern()

    def visit_IdentPattern(self, node: ast.IdentPattern) -> IrPattern:
        return IrIdentPattern(node.name)

    def visit_LiteralPattern(self, node: ast.LiteralPattern) -> IrPattern:
        return IrLiteralPattern(self._lower(node.value))

    def visit_Block(self, node: ast.Block) -> NodeId:
        stmts = tuple(self._lower(stmt) for stmt in node.stmts)
        tail = self._lower(node.tail) if node.tail is not None else None
        return self.dag.insert(IrBlock(stmts, tail), node.span)

    # --- Statements ---

    def visit_LetStmt(self, node: ast.LetStmt) -> NodeId:
        value = self._lower(node.value)
        return self.dag.insert(IrLet(node.name, node.ty, value), node.span)

    def visit_FnDef(self, node: ast.FnDef) -> NodeId:
        params = self._params(node.params)
        body = self._lower(node.body)
        return self.dag.insert(
            IrFnDef(node.name, params, node.return_ty, body), node.span
        )

    def visit_DataDef(self, node: ast.DataDef) -> NodeId:
        fields = tuple(
            IrDataField(
                f.name,
                f.ty,
                self._lower(f.default) if f.default is not None else None,
            )
            for f in node.fields
        )
        return self.dag.insert(IrDataDef(node.name, fields), node.span)

    def visit_EnumDef(self, node: ast.EnumDef) -> NodeId:
        return self.dag.insert(IrEnumDef(node.name, tuple(node.variants)), node.span)

    def visit_ExprStmt(self, node: ast.ExprStmt) -> NodeId:
        # Expression statements are represented by the expression itself.
        return self._lower(node.expr)


def lower(source_file: ast.SourceFile) -> Tuple[Dag, List[IrError]]:
    """
    Lower a parsed source file into an IR DAG.

    Lowering is fail-fast: on the first error the partially built DAG is
    returned with that single error.

    Returns:
        ``(dag, errors)``
    """
    lowerer = Lowerer()
    try:
        dag = lowerer.lower_file(source_file)
    except IrError as e:
        return lowerer.dag, [e]
    return dag, []
