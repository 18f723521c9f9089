"""
Runtime for the covariant language: values, environment and evaluator.

Usage:
    from covariant.runtime import evaluate

    value = evaluate(dag, backend)
"""

from .values import (
    Value, ValueKind, Closure, FnParam, DataRecord, EnumVariant,
    values_equal, format_value,
    int_val, float_val, length_val, angle_val, bool_val, string_val,
    vec3_val, solid_val, mesh_val, list_val, function_val, builtin_val,
    data_val, enum_val, UNIT_VALUE,
)
from .env import Env
from .errors import EvalError, EvalErrorKind
from .builtins import BuiltinFunction, BuiltinRegistry
from .evaluator import Evaluator, evaluate
from .trace import DebugSession, DebugStep, TracingEvaluator, eval_debug

__all__ = [
    # Values
    "Value",
    "ValueKind",
    "Closure",
    "FnParam",
    "DataRecord",
    "EnumVariant",
    "values_equal",
    "format_value",
    "int_val",
    "float_val",
    "length_val",
    "angle_val",
    "bool_val",
    "string_val",
    "vec3_val",
    "solid_val",
    "mesh_val",
    "list_val",
    "function_val",
    "builtin_val",
    "data_val",
    "enum_val",
    "UNIT_VALUE",
    # Environment and errors
    "Env",
    "EvalError",
    "EvalErrorKind",
    # Evaluation
    "BuiltinFunction",
    "BuiltinRegistry",
    "Evaluator",
    "evaluate",
    # Debugging
    "DebugSession",
    "DebugStep",
    "TracingEvaluator",
    "eval_debug",
]
