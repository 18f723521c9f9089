"""
Tree-walking evaluator over the IR DAG.

Evaluates IR nodes to produce runtime values. Geometry is delegated to the
``GeometryBackend`` handed in by the caller; the evaluator only sees
opaque solid handles.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, TextIO, Tuple

from ..geometry.backend import GeometryBackend
from ..geometry.errors import GeomError
from ..geometry.export import ExportOptions
from ..ir.dag import Dag
from ..ir.nodes import (
    NodeId, IrArg, IrDataField, IrPattern,
    IrWildcardPattern, IrIdentPattern, IrLiteralPattern,
    IrIntLit, IrFloatLit, IrLengthLit, IrAngleLit, IrBoolLit, IrStringLit,
    IrIdent, IrBinOp, IrUnaryOp, IrFnCall, IrFieldAccess, IrLambda, IrList,
    IrIf, IrMatch, IrDataConstructor, IrWithUpdate, IrBlock,
    IrLet, IrFnDef, IrDataDef, IrEnumDef,
)
from ..syntax.ast import BinOpKind, UnaryOpKind
from ..syntax.span import Span
from .builtins import BuiltinFunction, BuiltinRegistry
from .env import Env
from .errors import (
    EvalError, EvalErrorKind,
    error_type, error_undefined_name, error_arity, error_field_not_found,
    error_division_by_zero, error_not_callable, error_integer_overflow,
)
from .units import angle_to_rad, length_to_mm
from .values import (
    Value, ValueKind, Closure, FnParam, NUMERIC_KINDS, int_in_range,
    int_val, float_val, length_val, angle_val, bool_val, string_val,
    list_val, function_val, data_val, enum_val, values_equal, UNIT_VALUE,
)

logger = logging.getLogger(__name__)

_ORDERING_KINDS = NUMERIC_KINDS
_SCALED_KINDS = (ValueKind.LENGTH, ValueKind.ANGLE)
_SCALARS = (ValueKind.INT, ValueKind.FLOAT)


@dataclass(frozen=True)
class DataTypeInfo:
    """A registered ``data`` definition: ordered fields with defaults."""
    name: str
    fields: Tuple[IrDataField, ...]

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields)


class Evaluator:
    """
    Tree-walking evaluator for one session.

    Each evaluator owns a fresh global environment with the builtins
    installed. ``data`` types are registered in that environment and follow
    the same scoping as values.
    """

    def __init__(self, dag: Dag, backend: GeometryBackend,
                 options: Optional[ExportOptions] = None,
                 output: Optional[TextIO] = None,
                 base_dir: Optional[Path] = None):
        self.dag = dag
        self.backend = backend
        self.env = Env()
        self.registry = BuiltinRegistry(backend, options, output, base_dir)
        self.registry.install(self.env)

    def run(self) -> Value:
        """Evaluate every root in order and return the last value."""
        result = UNIT_VALUE
        for root in self.dag.roots:
            logger.debug("evaluating root %s (%s)", root, type(self.dag.node(root)).__name__)
            result = self.eval_node(root)
        return result

    def eval_node(self, node_id: NodeId) -> Value:
        """Evaluate a node to produce a Value."""
        data = self.dag.get(node_id)
        node, span = data.node, data.span
        if isinstance(node, IrIntLit):
            return int_val(node.value)
        elif isinstance(node, IrFloatLit):
            return float_val(node.value)
        elif isinstance(node, IrLengthLit):
            return length_val(length_to_mm(node.value, node.unit))
        elif isinstance(node, IrAngleLit):
            return angle_val(angle_to_rad(node.value, node.unit))
        elif isinstance(node, IrBoolLit):
            return bool_val(node.value)
        elif isinstance(node, IrStringLit):
            return string_val(node.value)
        elif isinstance(node, IrIdent):
            return self._eval_ident(node, span)
        elif isinstance(node, IrBinOp):
            return self._eval_binary_op(node, span)
        elif isinstance(node, IrUnaryOp):
            return self._eval_unary_op(node, span)
        elif isinstance(node, IrFnCall):
            return self._eval_call(node_id, node, span)
        elif isinstance(node, IrFieldAccess):
            return self._eval_field_access(node, span)
        elif isinstance(node, IrLambda):
            return self._eval_lambda(node)
        elif isinstance(node, IrList):
            return list_val([self.eval_node(item) for item in node.items])
        elif isinstance(node, IrIf):
            return self._eval_if(node, span)
        elif isinstance(node, IrMatch):
            return self._eval_match(node, span)
        elif isinstance(node, IrDataConstructor):
            return self._eval_data_constructor(node, span)
        elif isinstance(node, IrWithUpdate):
            return self._eval_with_update(node, span)
        elif isinstance(node, IrBlock):
            return self._eval_block(node)
        elif isinstance(node, IrLet):
            return self._eval_let(node, span)
        elif isinstance(node, IrFnDef):
            return self._eval_fn_def(node)
        elif isinstance(node, IrDataDef):
            self.env.define_type(node.name, DataTypeInfo(node.name, node.fields))
            return UNIT_VALUE
        elif isinstance(node, IrEnumDef):
            for variant in node.variants:
                self.env.define(variant, enum_val(node.name, variant))
            return UNIT_VALUE
        else:
            raise EvalError(EvalErrorKind.CUSTOM,
                            f"unknown IR node type: {type(node).__name__}", span)

    # =========================================================================
    # Names and operators
    # =========================================================================

    def _eval_ident(self, node: IrIdent, span: Span) -> Value:
        value = self.env.lookup(node.name)
        if value is None:
            raise error_undefined_name(node.name, span)
        return value

    def _eval_binary_op(self, node: IrBinOp, span: Span) -> Value:
        lhs = self.eval_node(node.lhs)
        rhs = self.eval_node(node.rhs)
        op = node.op

        if op in (BinOpKind.AND, BinOpKind.OR):
            if lhs.kind != ValueKind.BOOL or rhs.kind != ValueKind.BOOL:
                raise error_type(
                    f"'{op.value}' requires Bool operands, got "
                    f"{lhs.type_name()} and {rhs.type_name()}", span)
            if op == BinOpKind.AND:
                return bool_val(lhs.data and rhs.data)
            return bool_val(lhs.data or rhs.data)

        if op == BinOpKind.EQ:
            return bool_val(values_equal(lhs, rhs))
        if op == BinOpKind.NEQ:
            return bool_val(not values_equal(lhs, rhs))

        if op in (BinOpKind.LT, BinOpKind.LEQ, BinOpKind.GT, BinOpKind.GEQ):
            order = _compare(op, lhs, rhs, span)
            if op == BinOpKind.LT:
                return bool_val(order < 0)
            if op == BinOpKind.LEQ:
                return bool_val(order <= 0)
            if op == BinOpKind.GT:
                return bool_val(order > 0)
            return bool_val(order >= 0)

        return _arithmetic(op, lhs, rhs, span)

    def _eval_unary_op(self, node: IrUnaryOp, span: Span) -> Value:
        operand = self.eval_node(node.operand)
        if node.op == UnaryOpKind.NEG:
            if operand.kind not in NUMERIC_KINDS:
                raise error_type(f"cannot negate {operand.type_name()}", span)
            if operand.kind == ValueKind.INT:
                return _checked_int(-operand.data, span)
            return Value(operand.kind, -operand.data)
        if operand.kind != ValueKind.BOOL:
            raise error_type(f"'!' requires Bool, got {operand.type_name()}", span)
        return bool_val(not operand.data)

    # =========================================================================
    # Calls
    # =========================================================================

    def _eval_call(self, node_id: NodeId, node: IrFnCall, span: Span) -> Value:
        callee = self.eval_node(node.func)
        if callee.kind == ValueKind.BUILTIN:
            func = callee.data
            for arg in node.args:
                if arg.name is not None:
                    raise error_arity(
                        f"{func.name}: builtin functions do not accept named "
                        f"arguments (got '{arg.name}')", arg.span)
            args = [self.eval_node(arg.value) for arg in node.args]
            return self._call_builtin(func, args, span)
        if callee.kind == ValueKind.FUNCTION:
            return self._call_closure(callee.data, node.args, span)
        raise error_not_callable(callee.type_name(), span)

    def _call_builtin(self, func: BuiltinFunction, args: List[Value], span: Span) -> Value:
        logger.debug("builtin %s(%s)", func.name, ", ".join(a.type_name() for a in args))
        try:
            return func.call(args)
        except EvalError as e:
            e.message = f"{func.name}: {e.message}"
            raise e.with_span(span)
        except GeomError as e:
            raise EvalError(EvalErrorKind.GEOM_ERROR, f"{func.name}: {e}", span) from e

    def _call_closure(self, closure: Closure, args: Sequence[IrArg], span: Span) -> Value:
        """
        Bind arguments to parameters and run the body.

        Named arguments are placed first, then positional arguments fill
        the remaining slots left to right, then defaults are evaluated in
        the caller's environment.
        """
        label = closure.name or "lambda"
        names = [p.name for p in closure.params]
        slots: List[Optional[Value]] = [None] * len(names)

        for arg in args:
            if arg.name is None:
                continue
            if arg.name not in names:
                raise error_arity(f"{label}: unknown argument '{arg.name}'", arg.span)
            index = names.index(arg.name)
            if slots[index] is not None:
                raise error_arity(
                    f"{label}: argument '{arg.name}' given more than once", arg.span)
            slots[index] = self.eval_node(arg.value)

        for arg in args:
            if arg.name is not None:
                continue
            try:
                index = slots.index(None)
            except ValueError:
                raise error_arity(
                    f"{label}: expected {len(names)} argument(s), got {len(args)}",
                    span) from None
            slots[index] = self.eval_node(arg.value)

        for index, param in enumerate(closure.params):
            if slots[index] is not None:
                continue
            if param.default is None:
                raise error_arity(f"{label}: missing argument '{param.name}'", span)
            slots[index] = self.eval_node(param.default)

        call_env = closure.env.child()
        for name, value in zip(names, slots):
            call_env.define(name, value)

        saved = self.env
        self.env = call_env
        try:
            return self.eval_node(closure.body)
        finally:
            self.env = saved

    def _eval_lambda(self, node: IrLambda) -> Value:
        params = tuple(FnParam(p.name, p.default) for p in node.params)
        return function_val(Closure(params, node.body, self.env.snapshot()))

    def _eval_fn_def(self, node: IrFnDef) -> Value:
        params = tuple(FnParam(p.name, p.default) for p in node.params)
        closure = Closure(params, node.body, self.env.snapshot(), node.name)
        value = function_val(closure)
        # visible inside its own body for recursion
        closure.env.define(node.name, value)
        self.env.define(node.name, value)
        return UNIT_VALUE

    # =========================================================================
    # Records
    # =========================================================================

    def _eval_field_access(self, node: IrFieldAccess, span: Span) -> Value:
        obj = self.eval_node(node.obj)
        if obj.kind != ValueKind.DATA:
            raise error_type(
                f"cannot access field '{node.field}' on {obj.type_name()}", span)
        value = obj.data.get(node.field)
        if value is None:
            raise error_field_not_found(obj.data.type_name, node.field, span)
        return value

    def _eval_data_constructor(self, node: IrDataConstructor, span: Span) -> Value:
        info = self.env.lookup_type(node.name)
        if info is None:
            raise EvalError(EvalErrorKind.UNDEFINED_NAME,
                            f"undefined data type '{node.name}'", span)
        given: Dict[str, Value] = {}
        for init in node.fields:
            if init.name not in info.field_names:
                raise error_field_not_found(node.name, init.name, self.dag.span(init.value))
            given[init.name] = self.eval_node(init.value)

        fields = []
        for field in info.fields:
            if field.name in given:
                fields.append((field.name, given[field.name]))
            elif field.default is not None:
                fields.append((field.name, self.eval_node(field.default)))
            else:
                raise EvalError(EvalErrorKind.FIELD_NOT_FOUND,
                                f"missing field '{field.name}' for '{node.name}'", span)
        return data_val(node.name, fields)

    def _eval_with_update(self, node: IrWithUpdate, span: Span) -> Value:
        base = self.eval_node(node.base)
        if base.kind != ValueKind.DATA:
            raise error_type(f"'with' requires a data value, got {base.type_name()}", span)
        record = base.data
        fields = dict(record.fields)
        for update in node.updates:
            if update.name not in fields:
                raise error_field_not_found(record.type_name, update.name,
                                            self.dag.span(update.value))
            fields[update.name] = self.eval_node(update.value)
        return data_val(record.type_name, [(name, fields[name]) for name in record.field_names])

    # =========================================================================
    # Control flow and scoping
    # =========================================================================

    def _eval_if(self, node: IrIf, span: Span) -> Value:
        cond = self.eval_node(node.cond)
        if cond.kind != ValueKind.BOOL:
            raise error_type(f"if condition must be Bool, got {cond.type_name()}", span)
        if cond.data:
            return self.eval_node(node.then_branch)
        if node.else_branch is not None:
            return self.eval_node(node.else_branch)
        return UNIT_VALUE

    def _eval_match(self, node: IrMatch, span: Span) -> Value:
        subject = self.eval_node(node.subject)
        for arm in node.arms:
            with self.env.scope():
                if self._pattern_matches(arm.pattern, subject):
                    return self.eval_node(arm.body)
        raise EvalError(EvalErrorKind.PATTERN_MISMATCH,
                        f"no match arm matched {subject!r}", span)

    def _pattern_matches(self, pattern: IrPattern, value: Value) -> bool:
        """Check a pattern against ``value``, binding names in the current scope."""
        if isinstance(pattern, IrWildcardPattern):
            return True
        if isinstance(pattern, IrIdentPattern):
            bound = self.env.lookup(pattern.name)
            if bound is not None and bound.kind == ValueKind.ENUM_VARIANT:
                return values_equal(bound, value)
            self.env.define(pattern.name, value)
            return True
        if isinstance(pattern, IrLiteralPattern):
            return values_equal(self.eval_node(pattern.value), value)
        raise EvalError(EvalErrorKind.CUSTOM,
                        f"unknown pattern type: {type(pattern).__name__}")

    def _eval_block(self, node: IrBlock) -> Value:
        with self.env.scope():
            for stmt in node.stmts:
                self.eval_node(stmt)
            if node.tail is not None:
                return self.eval_node(node.tail)
            return UNIT_VALUE

    def _eval_let(self, node: IrLet, span: Span) -> Value:
        self.env.define(node.name, self.eval_node(node.value))
        return UNIT_VALUE


# =============================================================================
# Operator helpers
# =============================================================================

def _operand_error(op: BinOpKind, lhs: Value, rhs: Value, span: Span) -> EvalError:
    return error_type(
        f"cannot apply '{op.value}' to {lhs.type_name()} and {rhs.type_name()}", span)


def _compare(op: BinOpKind, lhs: Value, rhs: Value, span: Span) -> int:
    """-1, 0 or 1; NaN compares as equal."""
    same = lhs.kind == rhs.kind and lhs.kind in _ORDERING_KINDS
    mixed = lhs.kind in _SCALARS and rhs.kind in _SCALARS
    if not (same or mixed):
        raise _operand_error(op, lhs, rhs, span)
    a, b = lhs.data, rhs.data
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def _is_zero(value: Value) -> bool:
    return value.kind in NUMERIC_KINDS and value.data == 0


def _int_div(a: int, b: int) -> int:
    """Integer division truncating toward zero."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q


def _checked_int(n: int, span: Span) -> Value:
    if not int_in_range(n):
        raise error_integer_overflow(span)
    return int_val(n)


def _apply(op: BinOpKind, a, b):
    if op == BinOpKind.ADD:
        return a + b
    if op == BinOpKind.SUB:
        return a - b
    if op == BinOpKind.MUL:
        return a * b
    return a / b


def _arithmetic(op: BinOpKind, lhs: Value, rhs: Value, span: Span) -> Value:
    if op not in (BinOpKind.ADD, BinOpKind.SUB, BinOpKind.MUL, BinOpKind.DIV):
        raise EvalError(EvalErrorKind.CUSTOM, f"unsupported operator '{op.value}'", span)
    if op == BinOpKind.DIV and _is_zero(rhs):
        raise error_division_by_zero(span)

    lk, rk = lhs.kind, rhs.kind

    if lk == ValueKind.STRING and rk == ValueKind.STRING and op == BinOpKind.ADD:
        return string_val(lhs.data + rhs.data)

    if lk == rk == ValueKind.INT:
        if op == BinOpKind.DIV:
            return _checked_int(_int_div(lhs.data, rhs.data), span)
        return _checked_int(_apply(op, lhs.data, rhs.data), span)

    if lk in _SCALARS and rk in _SCALARS:
        return float_val(_apply(op, float(lhs.data), float(rhs.data)))

    if lk == rk and lk in _SCALED_KINDS:
        # Length/Length and Angle/Angle are plain ratios
        if op == BinOpKind.DIV:
            return float_val(lhs.data / rhs.data)
        return Value(lk, float(_apply(op, lhs.data, rhs.data)))

    # Length or Angle scaled by a plain number
    if lk in _SCALED_KINDS and rk in _SCALARS and op in (BinOpKind.MUL, BinOpKind.DIV):
        return Value(lk, float(_apply(op, lhs.data, rhs.data)))
    if lk in _SCALARS and rk in _SCALED_KINDS and op == BinOpKind.MUL:
        return Value(rk, float(lhs.data * rhs.data))

    raise _operand_error(op, lhs, rhs, span)


# =============================================================================
# Entry points
# =============================================================================

def evaluate(dag: Dag, backend: GeometryBackend,
             options: Optional[ExportOptions] = None, *,
             output: Optional[TextIO] = None,
             base_dir: Optional[Path] = None) -> Value:
    """
    Evaluate a lowered program with a fresh environment.

    Returns the value of the last root, or Unit for an empty program.
    Raises EvalError on the first failure.
    """
    return Evaluator(dag, backend, options, output, base_dir).run()
