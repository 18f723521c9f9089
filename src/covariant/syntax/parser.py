"""
Recursive descent parser for the covariant language.

Converts a token stream into an Abstract Syntax Tree (AST).

Statements are recognized by their leading keyword (``let``, ``fn``,
``data``, ``enum``); anything else is an expression statement. Expressions
use a small Pratt parser with this binding-power ladder (low to high):

    |>
    ||
    &&
    == !=
    < <= > >=
    + -
    * /
    prefix - !

All binary operators are left-associative. Errors are collected, not
raised: on failure the parser records one diagnostic, synthesizes a
placeholder node and carries on. Callers must check the error list before
trusting the shape of the tree.
"""

from typing import List, Optional, Tuple

from .span import Span
from .tokens import Token, TokenType
from .lexer import lex
from .ast import (
    # Types
    TypeExpr, NamedType, ListTypeExpr, FnTypeExpr,
    # Expressions
    Expression, IntLit, FloatLit, LengthLit, AngleLit, BoolLit, StringLit,
    Ident, BinOp, UnaryOp, Arg, FnCall, FieldAccess, Param, Lambda,
    ListExpr, IfExpr, MatchExpr, MatchArm, DataConstructor, WithUpdate,
    FieldInit, Block, Grouped,
    # Patterns
    Pattern, IdentPattern, WildcardPattern, LiteralPattern,
    # Statements
    Statement, LetStmt, FnDef, DataField, DataDef, EnumDef, ExprStmt,
    SourceFile,
    # Operators and units
    BinOpKind, UnaryOpKind, LengthUnit, AngleUnit,
)
from .errors import (
    SyntaxDiagnostic,
    error_expected_expression,
    error_expected_pattern,
    error_expected_token,
    error_invalid_number,
)


# Infix operators: token -> (operator, left binding power, right binding power)
INFIX_OPERATORS = {
    TokenType.PIPE_GT: (BinOpKind.PIPE, 1, 2),
    TokenType.PIPE_PIPE: (BinOpKind.OR, 3, 4),
    TokenType.AMP_AMP: (BinOpKind.AND, 5, 6),
    TokenType.EQ_EQ: (BinOpKind.EQ, 7, 8),
    TokenType.BANG_EQ: (BinOpKind.NEQ, 7, 8),
    TokenType.LT: (BinOpKind.LT, 9, 10),
    TokenType.LT_EQ: (BinOpKind.LEQ, 9, 10),
    TokenType.GT: (BinOpKind.GT, 9, 10),
    TokenType.GT_EQ: (BinOpKind.GEQ, 9, 10),
    TokenType.PLUS: (BinOpKind.ADD, 11, 12),
    TokenType.MINUS: (BinOpKind.SUB, 11, 12),
    TokenType.STAR: (BinOpKind.MUL, 13, 14),
    TokenType.SLASH: (BinOpKind.DIV, 13, 14),
}

PREFIX_OPERATORS = {
    TokenType.MINUS: UnaryOpKind.NEG,
    TokenType.BANG: UnaryOpKind.NOT,
}

# Prefix operators bind tighter than any infix operator.
PREFIX_BINDING_POWER = 15

LITERAL_TOKENS = frozenset({
    TokenType.INT_LIT,
    TokenType.FLOAT_LIT,
    TokenType.LENGTH_LIT,
    TokenType.ANGLE_LIT,
    TokenType.STRING_LIT,
    TokenType.TRUE,
    TokenType.FALSE,
})

# Placeholder for a missing or malformed name
INVALID_NAME = "<error>"

# Integer literals must fit a signed 64-bit value.
MAX_INT_LITERAL = 2 ** 63 - 1

_ESCAPES = {'n': '\n', 't': '\t', '\\': '\\', '"': '"'}


def split_number_unit(text: str) -> Tuple[str, str]:
    """Split ``"10mm"`` into ``("10", "mm")``."""
    for i, ch in enumerate(text):
        if ch.isascii() and ch.isalpha():
            return text[:i], text[i:]
    return text, ""


def unescape(text: str) -> str:
    """Resolve backslash escapes. Unknown escapes keep their backslash."""
    out = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch != '\\':
            out.append(ch)
            i += 1
            continue
        if i + 1 >= len(text):
            out.append('\\')
            break
        nxt = text[i + 1]
        if nxt in _ESCAPES:
            out.append(_ESCAPES[nxt])
        else:
            out.append('\\')
            out.append(nxt)
        i += 2
    return ''.join(out)


class Parser:
    """
    Recursive descent parser for covariant source.

    Usage:
        parser = Parser(source, tokens)
        source_file = parser.parse_file()
        if parser.errors:
            ...
    """

    def __init__(self, source: str, tokens: List[Token]):
        self.source = source
        self.tokens = tokens
        self.pos = 0
        self.errors: List[SyntaxDiagnostic] = []

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        """Get current token."""
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[self.pos]

    def _peek(self, offset: int = 0) -> Token:
        """Peek at token at current position + offset."""
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[idx]

    def _is_at_end(self) -> bool:
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        """Check if current token is of given type."""
        return self._current().type == token_type

    def _advance(self) -> Token:
        """Consume and return current token. EOF is never consumed."""
        token = self._current()
        if not self._is_at_end():
            self.pos += 1
        return token

    def _expect(self, token_type: TokenType) -> Optional[Token]:
        """Consume a token of the given type, or record an error.

        On failure nothing is consumed and None is returned.
        """
        if self._check(token_type):
            return self._advance()
        current = self._current()
        self.errors.append(error_expected_token(
            token_type.describe(), current.type.describe(), current.span
        ))
        return None

    def _expect_name(self, *follow: TokenType) -> Tuple[str, Span]:
        """
        Consume an identifier and return its text and span.

        Anything else records an error and yields a placeholder name that no
        expression can refer to. The offending token is skipped unless it is
        one of ``follow``, so the caller can continue from there.
        """
        current = self._current()
        if current.type == TokenType.IDENT:
            self._advance()
            return self._text(current), current.span
        self.errors.append(error_expected_token(
            TokenType.IDENT.describe(), current.type.describe(), current.span
        ))
        if current.type not in follow and not self._is_at_end():
            self._advance()
        return INVALID_NAME, current.span

    def _text(self, token: Token) -> str:
        return token.text(self.source)

    def _skip_newlines(self) -> None:
        while self._check(TokenType.NEWLINE):
            self.pos += 1

    def _skip_trivia(self) -> None:
        while self._current().type.is_trivia:
            self.pos += 1

    def _skip_separators(self) -> None:
        """Skip statement separators: trivia and semicolons."""
        while self._current().type.is_trivia or self._check(TokenType.SEMICOLON):
            self.pos += 1

    # =========================================================================
    # File and Statements
    # =========================================================================

    def parse_file(self) -> SourceFile:
        """Parse a complete source file."""
        first = self._current().span
        stmts: List[Statement] = []

        self._skip_trivia()
        while not self._is_at_end():
            stmt = self.parse_statement()
            if stmt is not None:
                stmts.append(stmt)
            self._skip_separators()

        span = first.merge(self._current().span)
        return SourceFile(span, stmts)

    def parse_statement(self) -> Optional[Statement]:
        """Parse one statement, or return None at end of input."""
        self._skip_newlines()
        if self._is_at_end():
            return None

        if self._check(TokenType.LET):
            return self._parse_let()
        if self._check(TokenType.FN):
            return self._parse_fn_def()
        if self._check(TokenType.DATA):
            return self._parse_data_def()
        if self._check(TokenType.ENUM):
            return self._parse_enum_def()

        expr = self.parse_expression()
        return ExprStmt(expr.span, expr)

    def _parse_let(self) -> LetStmt:
        """let name (: Type)? = expr"""
        let_tok = self._advance()
        self._skip_newlines()
        name, _ = self._expect_name(TokenType.COLON, TokenType.EQ)
        self._skip_newlines()

        ty = None
        if self._check(TokenType.COLON):
            self._advance()
            self._skip_newlines()
            ty = self.parse_type()
            self._skip_newlines()

        self._expect(TokenType.EQ)
        value = self.parse_expression()
        return LetStmt(let_tok.span.merge(value.span), name, ty, value)

    def _parse_fn_def(self) -> FnDef:
        """fn name(params) (-> Type)? { body }"""
        fn_tok = self._advance()
        self._skip_newlines()
        name, _ = self._expect_name(TokenType.LPAREN)
        self._skip_newlines()

        self._expect(TokenType.LPAREN)
        params = self._parse_param_list(TokenType.RPAREN)
        self._expect(TokenType.RPAREN)
        self._skip_newlines()

        return_ty = None
        if self._check(TokenType.ARROW):
            self._advance()
            self._skip_newlines()
            return_ty = self.parse_type()

        self._skip_newlines()
        body = self._parse_block()
        return FnDef(fn_tok.span.merge(body.span), name, params, return_ty, body)

    def _parse_param_list(self, closer: TokenType) -> List[Param]:
        """Comma-separated ``name (: Type)? (= default)?`` up to ``closer``."""
        params: List[Param] = []
        self._skip_newlines()
        while not self._check(closer) and not self._is_at_end():
            name, span = self._expect_name(
                TokenType.COLON, TokenType.EQ, TokenType.COMMA, closer)
            self._skip_newlines()

            ty = None
            if self._check(TokenType.COLON):
                self._advance()
                self._skip_newlines()
                ty = self.parse_type()
                span = span.merge(ty.span)
                self._skip_newlines()

            default = None
            if self._check(TokenType.EQ):
                self._advance()
                default = self.parse_expression()
                span = span.merge(default.span)

            params.append(Param(span, name, ty, default))

            self._skip_newlines()
            if self._check(TokenType.COMMA):
                self._advance()
            self._skip_newlines()
        return params

    def _parse_data_def(self) -> DataDef:
        """data Name { field: Type (= default)?, ... }"""
        data_tok = self._advance()
        self._skip_newlines()
        name, name_span = self._expect_name(TokenType.LBRACE)
        self._skip_newlines()

        self._expect(TokenType.LBRACE)
        fields: List[DataField] = []
        self._skip_newlines()
        while not self._check(TokenType.RBRACE) and not self._is_at_end():
            field_name, field_span = self._expect_name(TokenType.COLON)
            self._skip_newlines()
            self._expect(TokenType.COLON)
            self._skip_newlines()
            ty = self.parse_type()
            span = field_span.merge(ty.span)

            default = None
            self._skip_newlines()
            if self._check(TokenType.EQ):
                self._advance()
                default = self.parse_expression()
                span = span.merge(default.span)

            fields.append(DataField(span, field_name, ty, default))

            self._skip_newlines()
            if self._check(TokenType.COMMA):
                self._advance()
            self._skip_newlines()

        rbrace = self._expect(TokenType.RBRACE)
        end = rbrace.span if rbrace else name_span
        return DataDef(data_tok.span.merge(end), name, fields)

    def _parse_enum_def(self) -> EnumDef:
        """enum Name { A, B, C }"""
        enum_tok = self._advance()
        self._skip_newlines()
        name, name_span = self._expect_name(TokenType.LBRACE)
        self._skip_newlines()

        self._expect(TokenType.LBRACE)
        variants: List[str] = []
        self._skip_newlines()
        while not self._check(TokenType.RBRACE) and not self._is_at_end():
            variant, _ = self._expect_name(TokenType.COMMA, TokenType.RBRACE)
            variants.append(variant)
            self._skip_newlines()
            if self._check(TokenType.COMMA):
                self._advance()
            self._skip_newlines()

        rbrace = self._expect(TokenType.RBRACE)
        end = rbrace.span if rbrace else name_span
        return EnumDef(enum_tok.span.merge(end), name, variants)

    # =========================================================================
    # Type Annotations
    # =========================================================================

    def parse_type(self) -> TypeExpr:
        """Parse ``List[T]``, ``Fn(A, B) -> R`` or a named type."""
        name_tok = self._advance()
        name = self._text(name_tok)

        if name == "List" and self._check(TokenType.LBRACKET):
            self._advance()
            element = self.parse_type()
            close = self._expect(TokenType.RBRACKET)
            end = close.span if close else element.span
            return ListTypeExpr(name_tok.span.merge(end), element)

        if name == "Fn" and self._check(TokenType.LPAREN):
            self._advance()
            params: List[TypeExpr] = []
            while not self._check(TokenType.RPAREN) and not self._is_at_end():
                params.append(self.parse_type())
                if self._check(TokenType.COMMA):
                    self._advance()
            self._expect(TokenType.RPAREN)
            self._expect(TokenType.ARROW)
            ret = self.parse_type()
            return FnTypeExpr(name_tok.span.merge(ret.span), params, ret)

        return NamedType(name_tok.span, name)

    # =========================================================================
    # Expressions
    # =========================================================================

    def parse_expression(self) -> Expression:
        return self._parse_expr_bp(0)

    def _parse_expr_bp(self, min_bp: int) -> Expression:
        self._skip_newlines()

        current = self._current()
        if current.type in PREFIX_OPERATORS:
            op_tok = self._advance()
            operand = self._parse_expr_bp(PREFIX_BINDING_POWER)
            lhs: Expression = UnaryOp(
                op_tok.span.merge(operand.span), PREFIX_OPERATORS[op_tok.type], operand
            )
        else:
            lhs = self._parse_primary()

        while True:
            self._skip_newlines()
            lhs = self._parse_postfix(lhs)
            self._skip_newlines()

            if self._check(TokenType.WITH):
                self._advance()
                self._skip_newlines()
                self._expect(TokenType.LBRACE)
                updates = self._parse_field_init_list()
                rbrace = self._expect(TokenType.RBRACE)
                end = rbrace.span if rbrace else lhs.span
                lhs = WithUpdate(lhs.span.merge(end), lhs, updates)
                continue

            infix = INFIX_OPERATORS.get(self._current().type)
            if infix is None:
                break
            op, l_bp, r_bp = infix
            if l_bp < min_bp:
                break

            self._advance()
            self._skip_newlines()
            rhs = self._parse_expr_bp(r_bp)
            lhs = BinOp(lhs.span.merge(rhs.span), lhs, op, rhs)

        return lhs

    def _parse_postfix(self, lhs: Expression) -> Expression:
        """Apply call ``(...)`` and field access ``.name`` greedily."""
        while True:
            if self._check(TokenType.LPAREN):
                self._advance()
                args = self._parse_arg_list()
                rparen = self._expect(TokenType.RPAREN)
                end = rparen.span if rparen else lhs.span
                lhs = FnCall(lhs.span.merge(end), lhs, args)
            elif self._check(TokenType.DOT):
                self._advance()
                field_tok = self._advance()
                lhs = FieldAccess(lhs.span.merge(field_tok.span), lhs, self._text(field_tok))
            else:
                return lhs

    def _parse_arg_list(self) -> List[Arg]:
        """Call arguments; ``ident = expr`` is a named argument."""
        args: List[Arg] = []
        self._skip_newlines()
        while not self._check(TokenType.RPAREN) and not self._is_at_end():
            if self._check(TokenType.IDENT) and self._peek(1).type == TokenType.EQ:
                name_tok = self._advance()
                self._advance()  # '='
                value = self.parse_expression()
                args.append(Arg(name_tok.span.merge(value.span), self._text(name_tok), value))
            else:
                value = self.parse_expression()
                args.append(Arg(value.span, None, value))

            self._skip_newlines()
            if self._check(TokenType.COMMA):
                self._advance()
            self._skip_newlines()
        return args

    def _parse_field_init_list(self) -> List[FieldInit]:
        """``name = expr, ...`` inside constructor or with-update braces."""
        inits: List[FieldInit] = []
        self._skip_newlines()
        while not self._check(TokenType.RBRACE) and not self._is_at_end():
            name_tok = self._advance()
            self._skip_newlines()
            self._expect(TokenType.EQ)
            value = self.parse_expression()
            inits.append(FieldInit(name_tok.span.merge(value.span), self._text(name_tok), value))

            self._skip_newlines()
            if self._check(TokenType.COMMA):
                self._advance()
            self._skip_newlines()
        return inits

    def _parse_primary(self) -> Expression:
        token = self._current()
        tt = token.type

        if tt in (TokenType.INT_LIT, TokenType.FLOAT_LIT,
                  TokenType.LENGTH_LIT, TokenType.ANGLE_LIT):
            self._advance()
            return self._number_literal(token)

        if tt == TokenType.STRING_LIT:
            self._advance()
            return StringLit(token.span, unescape(self._text(token)[1:-1]))

        if tt in (TokenType.TRUE, TokenType.FALSE):
            self._advance()
            return BoolLit(token.span, tt == TokenType.TRUE)

        if tt == TokenType.IDENT:
            self._advance()
            name = self._text(token)
            if name[:1].isupper() and self._check(TokenType.LBRACE):
                return self._parse_data_constructor(token, name)
            return Ident(token.span, name)

        if tt == TokenType.LPAREN:
            return self._parse_grouped()
        if tt == TokenType.LBRACKET:
            return self._parse_list()
        if tt == TokenType.LBRACE:
            return self._parse_block()
        if tt == TokenType.IF:
            return self._parse_if()
        if tt == TokenType.MATCH:
            return self._parse_match()
        if tt == TokenType.PIPE:
            return self._parse_lambda()
        if tt == TokenType.PIPE_PIPE:
            # `|| body` is a lambda with no parameters
            self._advance()
            body = self.parse_expression()
            return Lambda(token.span.merge(body.span), [], body)

        self._advance()
        self.errors.append(error_expected_expression(tt.describe(), token.span))
        return IntLit(token.span, 0)

    def _number_literal(self, token: Token) -> Expression:
        text = self._text(token)

        if token.type == TokenType.INT_LIT:
            value = int(text)
            if value > MAX_INT_LITERAL:
                self.errors.append(error_invalid_number(text, token.span))
                return IntLit(token.span, 0)
            return IntLit(token.span, value)

        if token.type == TokenType.FLOAT_LIT:
            return FloatLit(token.span, float(text))

        number, unit = split_number_unit(text)
        if token.type == TokenType.LENGTH_LIT:
            return LengthLit(token.span, float(number), LengthUnit(unit))
        return AngleLit(token.span, float(number), AngleUnit(unit))

    def _parse_data_constructor(self, name_tok: Token, name: str) -> DataConstructor:
        self._advance()  # '{'
        fields = self._parse_field_init_list()
        rbrace = self._expect(TokenType.RBRACE)
        end = rbrace.span if rbrace else name_tok.span
        return DataConstructor(name_tok.span.merge(end), name, fields)

    def _parse_grouped(self) -> Grouped:
        lparen = self._advance()
        self._skip_newlines()
        inner = self.parse_expression()
        self._skip_newlines()
        rparen = self._expect(TokenType.RPAREN)
        end = rparen.span if rparen else inner.span
        return Grouped(lparen.span.merge(end), inner)

    def _parse_list(self) -> ListExpr:
        lbracket = self._advance()
        items: List[Expression] = []
        self._skip_newlines()
        while not self._check(TokenType.RBRACKET) and not self._is_at_end():
            items.append(self.parse_expression())
            self._skip_newlines()
            if self._check(TokenType.COMMA):
                self._advance()
            self._skip_newlines()
        rbracket = self._expect(TokenType.RBRACKET)
        end = rbracket.span if rbracket else lbracket.span
        return ListExpr(lbracket.span.merge(end), items)

    def _parse_block(self) -> Block:
        """{ stmts; tail }"""
        start = self._current().span
        self._expect(TokenType.LBRACE)

        stmts: List[Statement] = []
        while True:
            self._skip_newlines()
            if self._check(TokenType.RBRACE) or self._is_at_end():
                break
            stmt = self.parse_statement()
            if stmt is not None:
                stmts.append(stmt)
            while self._check(TokenType.SEMICOLON) or self._check(TokenType.NEWLINE):
                self._advance()

        tail = None
        if stmts and isinstance(stmts[-1], ExprStmt):
            tail = stmts.pop().expr

        rbrace = self._expect(TokenType.RBRACE)
        end = rbrace.span if rbrace else self._current().span
        return Block(start.merge(end), stmts, tail)

    def _parse_if(self) -> IfExpr:
        if_tok = self._advance()
        cond = self.parse_expression()
        self._skip_newlines()
        then_branch = self._parse_block()
        span = if_tok.span.merge(then_branch.span)

        else_branch: Optional[Expression] = None
        if self._check(TokenType.ELSE):
            self._advance()
            self._skip_newlines()
            if self._check(TokenType.IF):
                else_branch = self._parse_if()
            else:
                else_branch = self._parse_block()
            span = span.merge(else_branch.span)

        return IfExpr(span, cond, then_branch, else_branch)

    def _parse_match(self) -> MatchExpr:
        match_tok = self._advance()
        subject = self.parse_expression()
        self._skip_newlines()
        self._expect(TokenType.LBRACE)

        arms: List[MatchArm] = []
        self._skip_newlines()
        while not self._check(TokenType.RBRACE) and not self._is_at_end():
            pattern = self._parse_pattern()
            self._skip_newlines()
            self._expect(TokenType.FAT_ARROW)
            body = self.parse_expression()
            arms.append(MatchArm(pattern.span.merge(body.span), pattern, body))

            self._skip_newlines()
            if self._check(TokenType.COMMA):
                self._advance()
            self._skip_newlines()

        rbrace = self._expect(TokenType.RBRACE)
        end = rbrace.span if rbrace else subject.span
        return MatchExpr(match_tok.span.merge(end), subject, arms)

    def _parse_pattern(self) -> Pattern:
        token = self._current()

        if token.type == TokenType.IDENT:
            self._advance()
            name = self._text(token)
            if name == "_":
                return WildcardPattern(token.span)
            return IdentPattern(token.span, name)

        if token.type in LITERAL_TOKENS:
            literal = self._parse_primary()
            return LiteralPattern(literal.span, literal)

        self._advance()
        self.errors.append(error_expected_pattern(token.type.describe(), token.span))
        return WildcardPattern(token.span)

    def _parse_lambda(self) -> Lambda:
        """|x, y: Int| body"""
        open_pipe = self._advance()
        params: List[Param] = []
        while not self._check(TokenType.PIPE) and not self._is_at_end():
            name, span = self._expect_name(TokenType.COLON, TokenType.COMMA, TokenType.PIPE)
            ty = None
            if self._check(TokenType.COLON):
                self._advance()
                ty = self.parse_type()
                span = span.merge(ty.span)
            params.append(Param(span, name, ty))
            if self._check(TokenType.COMMA):
                self._advance()
        self._expect(TokenType.PIPE)

        body = self.parse_expression()
        return Lambda(open_pipe.span.merge(body.span), params, body)


def parse_tokens(
    source: str, tokens: List[Token]
) -> Tuple[SourceFile, List[SyntaxDiagnostic]]:
    """
    Parse an already lexed token stream.

    Args:
        source: The source text the tokens were produced from
        tokens: Token list ending with EOF

    Returns:
        ``(source_file, errors)``
    """
    parser = Parser(source, tokens)
    source_file = parser.parse_file()
    return source_file, parser.errors


def parse(source: str) -> Tuple[SourceFile, List[SyntaxDiagnostic]]:
    """
    Lex and parse source code.

    Returns:
        ``(source_file, errors)`` with lexer errors first
    """
    tokens, lex_errors = lex(source)
    source_file, parse_errors = parse_tokens(source, tokens)
    return source_file, lex_errors + parse_errors
