"""
Syntax errors produced by the lexer and parser.

Both stages accumulate errors instead of failing fast, so a single pass
reports as many problems as it can. Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
"""

from dataclasses import dataclass
from enum import Enum
from typing import List

from .span import Span


class SyntaxErrorKind(Enum):
    """Classification of syntax errors, valued by diagnostic code."""
    UNEXPECTED_CHAR = "E001"
    UNTERMINATED_STRING = "E002"
    UNTERMINATED_BLOCK_COMMENT = "E003"
    INVALID_NUMBER = "E004"
    UNKNOWN_UNIT = "E005"
    EXPECTED_TOKEN = "E101"
    EXPECTED_EXPR = "E102"
    EXPECTED_STMT = "E103"
    UNEXPECTED_EOF = "E104"

    @property
    def code(self) -> str:
        return self.value


@dataclass(frozen=True)
class SyntaxDiagnostic:
    """A single lexer or parser error."""
    message: str
    span: Span
    kind: SyntaxErrorKind

    @property
    def code(self) -> str:
        return self.kind.code

    def __str__(self) -> str:
        return self.message


class SourceSyntaxError(Exception):
    """Raised by the one-shot APIs when a source file has syntax errors."""

    def __init__(self, errors: List[SyntaxDiagnostic]):
        self.errors = list(errors)
        first = self.errors[0].message if self.errors else "syntax error"
        extra = len(self.errors) - 1
        if extra > 0:
            first = f"{first} (and {extra} more)"
        super().__init__(first)


# --- Lexer errors ---

def error_unexpected_character(char: str, span: Span) -> SyntaxDiagnostic:
    """E001: Unexpected character."""
    return SyntaxDiagnostic(
        f"unexpected character '{char}'", span, SyntaxErrorKind.UNEXPECTED_CHAR
    )


def error_lone_ampersand(span: Span) -> SyntaxDiagnostic:
    """E001: A single '&' where '&&' was meant."""
    return SyntaxDiagnostic("expected '&&'", span, SyntaxErrorKind.UNEXPECTED_CHAR)


def error_unterminated_string(span: Span) -> SyntaxDiagnostic:
    """E002: Unterminated string literal."""
    return SyntaxDiagnostic(
        "unterminated string literal", span, SyntaxErrorKind.UNTERMINATED_STRING
    )


def error_unterminated_comment(span: Span) -> SyntaxDiagnostic:
    """E003: Unterminated block comment."""
    return SyntaxDiagnostic(
        "unterminated block comment", span, SyntaxErrorKind.UNTERMINATED_BLOCK_COMMENT
    )


def error_invalid_number(text: str, span: Span) -> SyntaxDiagnostic:
    """E004: Numeric literal that cannot be converted."""
    return SyntaxDiagnostic(
        f"invalid number literal '{text}'", span, SyntaxErrorKind.INVALID_NUMBER
    )


# --- Parser errors ---

def error_expected_token(expected: str, found: str, span: Span) -> SyntaxDiagnostic:
    """E101: A specific token was required."""
    return SyntaxDiagnostic(
        f"expected {expected}, found {found}", span, SyntaxErrorKind.EXPECTED_TOKEN
    )


def error_expected_expression(found: str, span: Span) -> SyntaxDiagnostic:
    """E102: An expression was required."""
    return SyntaxDiagnostic(
        f"expected expression, found {found}", span, SyntaxErrorKind.EXPECTED_EXPR
    )


def error_expected_pattern(found: str, span: Span) -> SyntaxDiagnostic:
    """E102: A match pattern was required."""
    return SyntaxDiagnostic(
        f"expected pattern, found {found}", span, SyntaxErrorKind.EXPECTED_EXPR
    )
