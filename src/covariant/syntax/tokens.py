"""
Token types for the covariant lexer.

Tokens never copy source text: a token is a ``(type, span)`` pair and the
literal text is recovered lazily by slicing the source with the span.
"""

from enum import Enum
from dataclasses import dataclass
from typing import Optional

from .span import Span


class TokenType(Enum):
    """All token types recognized by the lexer.

    Each member's value is the human-readable name used in diagnostics.
    """

    # --- Literals ---
    INT_LIT = "integer literal"         # 42
    FLOAT_LIT = "float literal"         # 3.14
    LENGTH_LIT = "length literal"       # 10mm, 2.5cm, 1in
    ANGLE_LIT = "angle literal"         # 90deg, 1.57rad
    STRING_LIT = "string literal"       # "hello"
    TRUE = "'true'"
    FALSE = "'false'"

    # --- Identifiers ---
    IDENT = "identifier"

    # --- Keywords ---
    LET = "'let'"
    DATA = "'data'"
    FN = "'fn'"
    ENUM = "'enum'"
    IF = "'if'"
    ELSE = "'else'"
    MATCH = "'match'"
    WITH = "'with'"

    # --- Operators ---
    PLUS = "'+'"
    MINUS = "'-'"
    STAR = "'*'"
    SLASH = "'/'"
    EQ = "'='"
    EQ_EQ = "'=='"
    BANG_EQ = "'!='"
    LT = "'<'"
    LT_EQ = "'<='"
    GT = "'>'"
    GT_EQ = "'>='"
    AMP_AMP = "'&&'"
    PIPE_PIPE = "'||'"
    BANG = "'!'"
    PIPE_GT = "'|>'"
    PIPE = "'|'"                        # lambda parameter delimiter

    # --- Delimiters ---
    DOT = "'.'"
    ARROW = "'->'"
    COLON = "':'"
    COMMA = "','"
    FAT_ARROW = "'=>'"
    SEMICOLON = "';'"
    LPAREN = "'('"
    RPAREN = "')'"
    LBRACE = "'{'"
    RBRACE = "'}'"
    LBRACKET = "'['"
    RBRACKET = "']'"

    # --- Special ---
    NEWLINE = "newline"                 # statement separator
    EOF = "end of file"
    ERROR = "error"                     # placeholder emitted after a lexer error

    def describe(self) -> str:
        """Human-readable name for diagnostics."""
        return self.value

    @property
    def is_trivia(self) -> bool:
        """Newlines and error placeholders carry no syntactic content."""
        return self in (TokenType.NEWLINE, TokenType.ERROR)


@dataclass(frozen=True)
class Token:
    """A single token from the lexer."""
    type: TokenType
    span: Span

    def text(self, source: str) -> str:
        """Recover the token's source text."""
        return self.span.slice(source)

    def __str__(self) -> str:
        return f"{self.type.name}@{self.span}"


KEYWORDS: dict[str, TokenType] = {
    "let": TokenType.LET,
    "data": TokenType.DATA,
    "fn": TokenType.FN,
    "enum": TokenType.ENUM,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "match": TokenType.MATCH,
    "with": TokenType.WITH,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
}

# Numeric literal suffixes.
LENGTH_UNITS = frozenset({"mm", "cm", "m", "in"})
ANGLE_UNITS = frozenset({"deg", "rad"})


def keyword_type(word: str) -> Optional[TokenType]:
    """Return the keyword token type for ``word``, or None for identifiers."""
    return KEYWORDS.get(word)
