"""
Front end of the covariant language: spans, tokens, lexer, AST and parser.
"""

from .span import Span
from .tokens import Token, TokenType, KEYWORDS
from .errors import SyntaxDiagnostic, SyntaxErrorKind, SourceSyntaxError
from .lexer import Lexer, lex
from .parser import Parser, parse, parse_tokens
from . import ast

__all__ = [
    "Span",
    "Token",
    "TokenType",
    "KEYWORDS",
    "SyntaxDiagnostic",
    "SyntaxErrorKind",
    "SourceSyntaxError",
    "Lexer",
    "lex",
    "Parser",
    "parse",
    "parse_tokens",
    "ast",
]
