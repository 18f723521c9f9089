"""
Tests for diagnostic conversion and rendering.
"""

import pytest

from covariant.diagnostics import Diagnostic, offset_to_line_col, source_line
from covariant.geometry import ExportError, ExportErrorKind, GeomError, GeomErrorKind
from covariant.ir import IrError
from covariant.runtime import EvalError, EvalErrorKind
from covariant.syntax import Span, parse


@pytest.mark.parametrize("offset,expected", [
    (0, (1, 1)),
    (2, (1, 3)),
    (3, (2, 1)),
    (5, (2, 3)),
    (99, (2, 3)),
    (-4, (1, 1)),
])
def test_offset_to_line_col(offset, expected):
    assert offset_to_line_col("ab\ncd", offset) == expected


def test_source_line():
    assert source_line("one\r\ntwo", 1) == "one"
    assert source_line("one\ntwo", 2) == "two"
    assert source_line("one", 5) == ""


class TestConversion:

    def test_from_syntax(self):
        _, errors = parse("let x = ")
        diag = Diagnostic.from_syntax(errors[0])
        assert diag.category == "Syntax"
        assert diag.code == "E102"
        assert diag.span == errors[0].span

    def test_from_ir(self):
        diag = Diagnostic.from_ir(IrError("no lowering for Mystery", Span(0, 3)))
        assert diag.category == "IR"
        assert diag.code == "Unsupported"
        assert "no lowering for Mystery" in diag.message

    def test_from_eval(self):
        diag = Diagnostic.from_eval(
            EvalError(EvalErrorKind.DIVISION_BY_ZERO, "division by zero", Span(4, 9)))
        assert diag.category == "DivisionByZero"
        assert diag.message == "division by zero"
        assert diag.span == Span(4, 9)

    def test_from_geom_and_export(self):
        geom = Diagnostic.from_geom(GeomError(GeomErrorKind.BOOLEAN_FAILED, "engine crashed"))
        assert geom.message == "boolean operation failed: engine crashed"
        export = Diagnostic.from_export(
            ExportError(ExportErrorKind.VALIDATION_FAILED, "empty"))
        assert export.category == "Export"
        assert export.span is None

    def test_fatal_with_hint(self):
        diag = Diagnostic.fatal("recursion too deep", "check for a missing base case")
        assert diag.category == "Error"
        assert diag.hints == ["check for a missing base case"]
        assert Diagnostic.fatal("plain").hints == []


# --- Rendering ---

class TestFormat:

    SOURCE = "let a = 1\nlet x = a + true\n"

    def diag(self):
        start = self.SOURCE.index("a + true")
        return Diagnostic("TypeError", "cannot apply '+' to Int and Bool",
                          Span(start, start + len("a + true")))

    def test_with_source_excerpt(self):
        text = self.diag().format(self.SOURCE, "main.cov")
        assert text.splitlines() == [
            "error[TypeError]: cannot apply '+' to Int and Bool (at main.cov:2:9)",
            "    |",
            "  2 | let x = a + true",
            "    |         ^^^^^^^^",
        ]

    def test_without_source_excerpt(self):
        text = self.diag().format(self.SOURCE, "main.cov", show_source=False)
        assert text == "error[TypeError]: cannot apply '+' to Int and Bool (at main.cov:2:9)"

    def test_without_span(self):
        diag = Diagnostic.fatal("cannot read 'x.cov'", "check the path")
        assert diag.format("", "x.cov") == (
            "error[Error]: cannot read 'x.cov'\n"
            "    = hint: check the path"
        )

    def test_multiline_span_underlines_to_end_of_line(self):
        source = "let bb = 12 +\n  1"
        diag = Diagnostic("TypeError", "bad sum", Span(9, len(source)))
        lines = diag.format(source).splitlines()
        assert lines[2] == "  1 | let bb = 12 +"
        assert lines[3] == "    |          ^^^^"

    def test_non_ascii_source_stays_aligned(self):
        source = 'let s = "éé" + 1'
        start = source.index('"')
        diag = Diagnostic("TypeError", "bad sum", Span(start, len(source)))
        lines = diag.format(source).splitlines()
        assert lines[0].endswith("(at <input>:1:9)")
        assert lines[3] == "    |         ^^^^^^^^"

    def test_empty_span_gets_one_caret(self):
        diag = Diagnostic("Syntax", "expected expression", Span.point(8))
        lines = diag.format("let x = ").splitlines()
        assert lines[-1] == "    |         ^"
        assert lines[0].endswith("(at <input>:1:9)")


class TestJson:

    def test_range(self):
        diag = Diagnostic("UndefinedName", "undefined name 'y'", Span(10, 11))
        data = diag.to_json("let x = 1\ny", "main.cov")
        assert data["category"] == "UndefinedName"
        assert data["file"] == "main.cov"
        assert data["range"] == {
            "start": {"line": 2, "column": 1, "offset": 10},
            "end": {"line": 2, "column": 2, "offset": 11},
        }

    def test_no_range_without_span(self):
        data = Diagnostic.fatal("boom").to_json()
        assert data["range"] is None
        assert data["code"] is None
        assert data["file"] == "<input>"
