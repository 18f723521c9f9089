"""
User-facing diagnostics for every error family.

Syntax diagnostics, IR errors, evaluation errors and geometry errors are
all turned into a ``Diagnostic`` carrying a category, a message and an
optional span; the CLI renders them with a file location and a caret
under the offending source.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .geometry.errors import ExportError, GeomError
from .ir.errors import IrError
from .runtime.errors import EvalError
from .syntax.errors import SyntaxDiagnostic
from .syntax.span import Span


def offset_to_line_col(source: str, offset: int) -> Tuple[int, int]:
    """1-based (line, column) of ``offset``, counting newlines before it."""
    offset = max(0, min(offset, len(source)))
    line = source.count("\n", 0, offset) + 1
    line_start = source.rfind("\n", 0, offset) + 1
    return line, offset - line_start + 1


def source_line(source: str, line: int) -> str:
    lines = source.split("\n")
    if 1 <= line <= len(lines):
        return lines[line - 1].rstrip("\r")
    return ""


@dataclass
class Diagnostic:
    """
    A rendered-ready error.

    ``category`` is ``Syntax``, ``IR``, an evaluation error kind name
    (``TypeError``, ``UndefinedName``, ...) or ``Export``.
    """
    category: str
    message: str
    span: Optional[Span] = None
    code: Optional[str] = None
    hints: List[str] = field(default_factory=list)

    # --- Constructors ---

    @classmethod
    def from_syntax(cls, error: SyntaxDiagnostic) -> "Diagnostic":
        return cls("Syntax", error.message, error.span, error.code)

    @classmethod
    def from_ir(cls, error: IrError) -> "Diagnostic":
        return cls("IR", str(error), error.span, error.kind.value)

    @classmethod
    def from_eval(cls, error: EvalError) -> "Diagnostic":
        return cls(str(error.kind), error.message, error.span)

    @classmethod
    def from_geom(cls, error: GeomError) -> "Diagnostic":
        return cls("GeomError", str(error))

    @classmethod
    def from_export(cls, error: ExportError) -> "Diagnostic":
        return cls("Export", str(error))

    @classmethod
    def fatal(cls, message: str, hint: Optional[str] = None) -> "Diagnostic":
        return cls("Error", message, hints=[hint] if hint else [])

    # --- Rendering ---

    def location(self, source: str) -> Optional[Tuple[int, int]]:
        if self.span is None:
            return None
        return offset_to_line_col(source, self.span.start)

    def format(self, source: str = "", file_path: str = "<input>",
               show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        header = f"error[{self.category}]: {self.message}"
        loc = self.location(source)
        if loc is None:
            parts = [header]
        else:
            line, col = loc
            parts = [f"{header} (at {file_path}:{line}:{col})"]
            text = source_line(source, line)
            if show_source and text:
                end_line, end_col = offset_to_line_col(source, self.span.end)
                if end_line != line:
                    end_col = len(text) + 1
                width = max(1, end_col - col)
                parts.append("    |")
                parts.append(f"{line:>3} | {text}")
                parts.append(f"    | {' ' * (col - 1)}{'^' * width}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")
        return "\n".join(parts)

    def to_json(self, source: str = "", file_path: str = "<input>") -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        data = {
            "category": self.category,
            "code": self.code,
            "message": self.message,
            "file": file_path,
            "hints": list(self.hints),
            "range": None,
        }
        if self.span is not None:
            start_line, start_col = offset_to_line_col(source, self.span.start)
            end_line, end_col = offset_to_line_col(source, self.span.end)
            data["range"] = {
                "start": {"line": start_line, "column": start_col, "offset": self.span.start},
                "end": {"line": end_line, "column": end_col, "offset": self.span.end},
            }
        return data
