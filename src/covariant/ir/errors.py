"""
Errors raised while lowering the AST to IR.
"""

from enum import Enum

from ..syntax.span import Span


class IrErrorKind(Enum):
    UNSUPPORTED = "Unsupported"  # AST construct with no IR lowering


class IrError(Exception):
    """An error encountered during AST to IR lowering."""

    def __init__(self, message: str, span: Span,
                 kind: IrErrorKind = IrErrorKind.UNSUPPORTED):
        self.message = message
        self.span = span
        self.kind = kind
        super().__init__(str(self))

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message} ({self.span})"
