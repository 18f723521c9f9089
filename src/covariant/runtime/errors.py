"""
Evaluation errors.

Evaluation is fail-fast: the first ``EvalError`` raised aborts the
remaining roots. Each error carries a kind, a message and, where known,
the span of the node that failed.
"""

from enum import Enum
from typing import Optional

from ..syntax.span import Span


class EvalErrorKind(Enum):
    """Categories of evaluation errors, valued by their display name."""
    TYPE_ERROR = "TypeError"
    UNDEFINED_NAME = "UndefinedName"
    ARITY_MISMATCH = "ArityMismatch"
    FIELD_NOT_FOUND = "FieldNotFound"
    DIVISION_BY_ZERO = "DivisionByZero"
    GEOM_ERROR = "GeomError"          # wrapped geometry backend failure
    NOT_CALLABLE = "NotCallable"
    PATTERN_MISMATCH = "PatternMismatch"
    CUSTOM = "Error"

    def __str__(self) -> str:
        return self.value


class EvalError(Exception):
    """An evaluation error with an optional source span."""

    def __init__(self, kind: EvalErrorKind, message: str, span: Optional[Span] = None):
        self.kind = kind
        self.message = message
        self.span = span
        super().__init__(message)

    def with_span(self, span: Span) -> "EvalError":
        """Attach ``span`` if the error does not have one yet."""
        if self.span is None:
            self.span = span
        return self

    def __str__(self) -> str:
        if self.span is not None:
            return f"[{self.span}] {self.kind}: {self.message}"
        return f"{self.kind}: {self.message}"


# --- Error factories ---

def error_type(message: str, span: Optional[Span] = None) -> EvalError:
    return EvalError(EvalErrorKind.TYPE_ERROR, message, span)


def error_undefined_name(name: str, span: Optional[Span] = None) -> EvalError:
    return EvalError(EvalErrorKind.UNDEFINED_NAME, f"undefined name '{name}'", span)


def error_arity(message: str, span: Optional[Span] = None) -> EvalError:
    return EvalError(EvalErrorKind.ARITY_MISMATCH, message, span)


def error_field_not_found(type_name: str, field_name: str,
                          span: Optional[Span] = None) -> EvalError:
    return EvalError(
        EvalErrorKind.FIELD_NOT_FOUND,
        f"'{type_name}' has no field '{field_name}'",
        span,
    )


def error_division_by_zero(span: Optional[Span] = None) -> EvalError:
    return EvalError(EvalErrorKind.DIVISION_BY_ZERO, "division by zero", span)


def error_not_callable(type_name: str, span: Optional[Span] = None) -> EvalError:
    return EvalError(
        EvalErrorKind.NOT_CALLABLE, f"value of type {type_name} is not callable", span
    )


def error_integer_overflow(span: Optional[Span] = None) -> EvalError:
    return EvalError(EvalErrorKind.CUSTOM, "integer overflow", span)
