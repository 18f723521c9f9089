"""
Lexer for the covariant language.

Converts source text into a flat stream of tokens with offset spans.
Supports:
- Significant newlines (NEWLINE tokens separate statements)
- Line comments (//) and nested block comments (/* /* */ */)
- Integer and float literals with optional unit suffixes
  (mm, cm, m, in for lengths; deg, rad for angles)
- String literals with backslash escapes (unescaped by the parser)
- Keywords and identifiers

Errors are collected rather than raised. After an error the lexer emits an
ERROR token and keeps scanning from the next character.
"""

from typing import List, Tuple

from .span import Span
from .tokens import Token, TokenType, ANGLE_UNITS, LENGTH_UNITS, keyword_type
from .errors import (
    SyntaxDiagnostic,
    error_lone_ampersand,
    error_unexpected_character,
    error_unterminated_comment,
    error_unterminated_string,
)


# Single-character tokens that never start a longer operator.
_SINGLE_CHAR_TOKENS = {
    '(': TokenType.LPAREN,
    ')': TokenType.RPAREN,
    '{': TokenType.LBRACE,
    '}': TokenType.RBRACE,
    '[': TokenType.LBRACKET,
    ']': TokenType.RBRACKET,
    '+': TokenType.PLUS,
    '*': TokenType.STAR,
    '.': TokenType.DOT,
    ':': TokenType.COLON,
    ',': TokenType.COMMA,
    ';': TokenType.SEMICOLON,
    '\n': TokenType.NEWLINE,
}

# First character -> ((second character, token type), ...), fallback type.
_TWO_CHAR_TOKENS = {
    '-': ((('>', TokenType.ARROW),), TokenType.MINUS),
    '=': ((('=', TokenType.EQ_EQ), ('>', TokenType.FAT_ARROW)), TokenType.EQ),
    '!': ((('=', TokenType.BANG_EQ),), TokenType.BANG),
    '<': ((('=', TokenType.LT_EQ),), TokenType.LT),
    '>': ((('=', TokenType.GT_EQ),), TokenType.GT),
    '|': ((('>', TokenType.PIPE_GT), ('|', TokenType.PIPE_PIPE)), TokenType.PIPE),
}


def _is_digit(ch: str) -> bool:
    return '0' <= ch <= '9'


def _is_alpha(ch: str) -> bool:
    return ('a' <= ch <= 'z') or ('A' <= ch <= 'Z')


def _is_ident_start(ch: str) -> bool:
    return _is_alpha(ch) or ch == '_'


def _is_ident_char(ch: str) -> bool:
    return _is_alpha(ch) or _is_digit(ch) or ch == '_'


class Lexer:
    """
    Tokenizer for covariant source text.

    Usage:
        lexer = Lexer(source_code)
        tokens, errors = lexer.tokenize()
    """

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.tokens: List[Token] = []
        self.errors: List[SyntaxDiagnostic] = []

    def _peek(self, offset: int = 0) -> str:
        """Look at character at current position + offset without consuming."""
        idx = self.pos + offset
        if idx >= len(self.source):
            return '\0'
        return self.source[idx]

    def _advance(self) -> str:
        """Consume and return current character."""
        if self.pos >= len(self.source):
            return '\0'
        ch = self.source[self.pos]
        self.pos += 1
        return ch

    def _match(self, expected: str) -> bool:
        """Consume character if it matches expected."""
        if not self._is_at_end() and self._peek() == expected:
            self.pos += 1
            return True
        return False

    def _is_at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _emit(self, token_type: TokenType, start: int) -> None:
        self.tokens.append(Token(token_type, Span(start, self.pos)))

    def _error(self, diagnostic: SyntaxDiagnostic) -> None:
        """Record an error and leave an ERROR token in its place."""
        self.errors.append(diagnostic)
        self.tokens.append(Token(TokenType.ERROR, diagnostic.span))

    def _skip_whitespace(self) -> None:
        """Skip spaces, tabs and carriage returns. Newlines are significant."""
        while not self._is_at_end() and self._peek() in ' \t\r':
            self.pos += 1

    def _skip_line_comment(self) -> None:
        """Skip a // comment up to (not including) the newline."""
        while not self._is_at_end() and self._peek() != '\n':
            self.pos += 1

    def _skip_block_comment(self, start: int) -> None:
        """Skip a /* ... */ comment. The opening '/*' is already consumed."""
        depth = 1
        while not self._is_at_end() and depth > 0:
            if self._peek() == '/' and self._peek(1) == '*':
                self.pos += 2
                depth += 1
            elif self._peek() == '*' and self._peek(1) == '/':
                self.pos += 2
                depth -= 1
            else:
                self.pos += 1

        if depth > 0:
            self._error(error_unterminated_comment(Span(start, self.pos)))

    def _scan_number(self, start: int) -> None:
        """Scan a numeric literal with an optional unit suffix."""
        while _is_digit(self._peek()):
            self.pos += 1

        is_float = self._peek() == '.' and _is_digit(self._peek(1))
        if is_float:
            self.pos += 1
            while _is_digit(self._peek()):
                self.pos += 1

        number_type = TokenType.FLOAT_LIT if is_float else TokenType.INT_LIT
        if not _is_alpha(self._peek()):
            self._emit(number_type, start)
            return

        suffix_start = self.pos
        while _is_alpha(self._peek()):
            self.pos += 1
        suffix = self.source[suffix_start:self.pos]

        if suffix in LENGTH_UNITS:
            self._emit(TokenType.LENGTH_LIT, start)
        elif suffix in ANGLE_UNITS:
            self._emit(TokenType.ANGLE_LIT, start)
        else:
            # Not a unit: the suffix is re-scanned as an identifier.
            self.pos = suffix_start
            self._emit(number_type, start)

    def _scan_string(self, start: int) -> None:
        """Scan a string literal. The opening quote is already consumed."""
        while not self._is_at_end():
            ch = self._advance()
            if ch == '"':
                self._emit(TokenType.STRING_LIT, start)
                return
            if ch == '\\' and not self._is_at_end():
                self.pos += 1

        self._error(error_unterminated_string(Span(start, self.pos)))

    def _scan_identifier_or_keyword(self, start: int) -> None:
        while _is_ident_char(self._peek()):
            self.pos += 1
        text = self.source[start:self.pos]
        self._emit(keyword_type(text) or TokenType.IDENT, start)

    def _scan_token(self) -> None:
        """Scan the next token (or skip the next comment)."""
        self._skip_whitespace()
        if self._is_at_end():
            return

        start = self.pos
        ch = self._advance()

        if ch in _SINGLE_CHAR_TOKENS:
            self._emit(_SINGLE_CHAR_TOKENS[ch], start)
            return

        if ch in _TWO_CHAR_TOKENS:
            pairs, fallback = _TWO_CHAR_TOKENS[ch]
            for second, token_type in pairs:
                if self._match(second):
                    self._emit(token_type, start)
                    return
            self._emit(fallback, start)
            return

        if ch == '&':
            if self._match('&'):
                self._emit(TokenType.AMP_AMP, start)
            else:
                self._error(error_lone_ampersand(Span(start, self.pos)))
        elif ch == '/':
            if self._match('/'):
                self._skip_line_comment()
            elif self._match('*'):
                self._skip_block_comment(start)
            else:
                self._emit(TokenType.SLASH, start)
        elif ch == '"':
            self._scan_string(start)
        elif _is_digit(ch):
            self._scan_number(start)
        elif _is_ident_start(ch):
            self._scan_identifier_or_keyword(start)
        else:
            self._error(error_unexpected_character(ch, Span(start, self.pos)))

    def tokenize(self) -> Tuple[List[Token], List[SyntaxDiagnostic]]:
        """Tokenize the entire source.

        The token list always ends with exactly one EOF token.
        """
        while not self._is_at_end():
            self._scan_token()
        self.tokens.append(Token(TokenType.EOF, Span.point(len(self.source))))
        return self.tokens, self.errors


def lex(source: str) -> Tuple[List[Token], List[SyntaxDiagnostic]]:
    """
    Convenience function to tokenize source code.

    Args:
        source: The source code to tokenize

    Returns:
        ``(tokens, errors)``; the token list ends with a single EOF token
    """
    return Lexer(source).tokenize()
