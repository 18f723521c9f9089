"""
Unit tests for the covariant lexer.
"""

import pytest

from covariant.syntax import Lexer, Span, SyntaxErrorKind, TokenType, lex


def types_of(source):
    tokens, errors = lex(source)
    assert errors == []
    return [t.type for t in tokens]


class TestLexerBasics:
    """Test basic lexer functionality."""

    def test_empty_source(self):
        """Empty source produces only EOF."""
        tokens, errors = lex("")
        assert errors == []
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF
        assert tokens[0].span == Span(0, 0)

    def test_simple_let_statement(self):
        """Basic let statement tokenization."""
        assert types_of("let x: Int = 42") == [
            TokenType.LET,
            TokenType.IDENT,
            TokenType.COLON,
            TokenType.IDENT,
            TokenType.EQ,
            TokenType.INT_LIT,
            TokenType.EOF,
        ]

    def test_spans_are_offsets(self):
        """Token spans are half-open offsets into the source."""
        source = "let width = 10mm"
        tokens, _ = lex(source)
        assert tokens[1].span == Span(4, 9)
        assert tokens[1].text(source) == "width"
        assert tokens[3].text(source) == "10mm"

    def test_spans_count_code_points(self):
        """Non-ASCII text before a token shifts its span by characters."""
        source = '// µm\nlet s = "héllo"\nx'
        tokens, errors = lex(source)
        assert errors == []
        ident = [t for t in tokens if t.type == TokenType.IDENT][-1]
        assert ident.span == Span(len(source) - 1, len(source))
        assert ident.text(source) == "x"

    def test_newlines_are_tokens(self):
        """Newlines separate statements and are kept."""
        assert types_of("a\nb") == [
            TokenType.IDENT, TokenType.NEWLINE, TokenType.IDENT, TokenType.EOF,
        ]

    def test_keywords(self):
        """Reserved words lex to keyword tokens."""
        assert types_of("let data fn enum if else match with true false") == [
            TokenType.LET, TokenType.DATA, TokenType.FN, TokenType.ENUM,
            TokenType.IF, TokenType.ELSE, TokenType.MATCH, TokenType.WITH,
            TokenType.TRUE, TokenType.FALSE, TokenType.EOF,
        ]

    def test_keyword_prefix_is_identifier(self):
        """Words that merely start with a keyword are identifiers."""
        assert types_of("letter iffy") == [TokenType.IDENT, TokenType.IDENT, TokenType.EOF]

    def test_single_eof(self):
        """The token list ends with exactly one EOF."""
        tokens, _ = Lexer("x + 1 // done").tokenize()
        assert [t.type for t in tokens].count(TokenType.EOF) == 1
        assert tokens[-1].type == TokenType.EOF


# --- Numbers and units ---

class TestNumbers:
    """Numeric literals and unit suffixes."""

    @pytest.mark.parametrize("source,expected", [
        ("42", TokenType.INT_LIT),
        ("3.14", TokenType.FLOAT_LIT),
        ("10mm", TokenType.LENGTH_LIT),
        ("2.5cm", TokenType.LENGTH_LIT),
        ("1m", TokenType.LENGTH_LIT),
        ("1in", TokenType.LENGTH_LIT),
        ("90deg", TokenType.ANGLE_LIT),
        ("1.57rad", TokenType.ANGLE_LIT),
    ])
    def test_literal_kinds(self, source, expected):
        assert types_of(source) == [expected, TokenType.EOF]

    def test_unknown_suffix_becomes_identifier(self):
        """A suffix that is not a unit is lexed as a separate identifier."""
        source = "5px"
        tokens, errors = lex(source)
        assert errors == []
        assert [t.type for t in tokens] == [TokenType.INT_LIT, TokenType.IDENT, TokenType.EOF]
        assert tokens[0].text(source) == "5"
        assert tokens[1].text(source) == "px"

    def test_trailing_dot_is_not_float(self):
        """``1.`` without a following digit is an Int then a dot."""
        assert types_of("1.x") == [
            TokenType.INT_LIT, TokenType.DOT, TokenType.IDENT, TokenType.EOF,
        ]


# --- Operators ---

class TestOperators:
    """Test multi-character operator recognition."""

    def test_two_char_operators(self):
        assert types_of("-> == != <= >= && || |> =>") == [
            TokenType.ARROW, TokenType.EQ_EQ, TokenType.BANG_EQ,
            TokenType.LT_EQ, TokenType.GT_EQ, TokenType.AMP_AMP,
            TokenType.PIPE_PIPE, TokenType.PIPE_GT, TokenType.FAT_ARROW,
            TokenType.EOF,
        ]

    def test_single_char_fallbacks(self):
        assert types_of("- = ! < > | /") == [
            TokenType.MINUS, TokenType.EQ, TokenType.BANG, TokenType.LT,
            TokenType.GT, TokenType.PIPE, TokenType.SLASH, TokenType.EOF,
        ]

    def test_lone_ampersand_is_error(self):
        tokens, errors = lex("a & b")
        assert len(errors) == 1
        assert errors[0].message == "expected '&&'"
        assert TokenType.ERROR in [t.type for t in tokens]


# --- Comments and strings ---

class TestComments:
    """Test comment handling."""

    def test_line_comment_skipped(self):
        assert types_of("x // the rest\ny") == [
            TokenType.IDENT, TokenType.NEWLINE, TokenType.IDENT, TokenType.EOF,
        ]

    def test_nested_block_comment(self):
        """Block comments nest."""
        assert types_of("a /* outer /* inner */ still comment */ b") == [
            TokenType.IDENT, TokenType.IDENT, TokenType.EOF,
        ]

    def test_unterminated_block_comment(self):
        tokens, errors = lex("a /* never closed")
        assert len(errors) == 1
        assert errors[0].kind == SyntaxErrorKind.UNTERMINATED_BLOCK_COMMENT
        assert errors[0].code == "E003"
        assert tokens[-1].type == TokenType.EOF


class TestStrings:

    def test_string_literal_span_includes_quotes(self):
        source = 'print("hi")'
        tokens, errors = lex(source)
        assert errors == []
        assert tokens[2].type == TokenType.STRING_LIT
        assert tokens[2].text(source) == '"hi"'

    def test_escaped_quote_does_not_terminate(self):
        assert types_of(r'"say \"hi\""') == [TokenType.STRING_LIT, TokenType.EOF]

    def test_unterminated_string(self):
        tokens, errors = lex('"open')
        assert [e.kind for e in errors] == [SyntaxErrorKind.UNTERMINATED_STRING]

    def test_unexpected_character_recovers(self):
        """Lexing continues after an unexpected character."""
        tokens, errors = lex("a @ b")
        assert len(errors) == 1
        assert errors[0].message == "unexpected character '@'"
        assert [t.type for t in tokens] == [
            TokenType.IDENT, TokenType.ERROR, TokenType.IDENT, TokenType.EOF,
        ]
