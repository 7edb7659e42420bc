"""
Token types for the xmas lexer.

Token categories follow the error code ranges used by the diagnostics:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Runtime errors
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenType(Enum):
    """All token types recognized by the xmas lexer."""

    # --- Literals ---
    INT_LITERAL = auto()        # 42
    STRING_LITERAL = auto()     # "hello"
    BOOL_LITERAL = auto()       # true, false

    # --- Identifiers ---
    IDENTIFIER = auto()         # user-defined names
    UNDERSCORE = auto()         # _ (accumulator)

    # --- Keywords ---
    IF = auto()                 # if
    FOR = auto()                # for
    OF = auto()                 # of
    INPUT = auto()              # input
    LEN = auto()                # len

    # --- Arithmetic operators ---
    PLUS = auto()               # +
    MINUS = auto()              # -
    STAR = auto()               # *
    SLASH = auto()              # /
    PERCENT = auto()            # %

    # --- Comparison operators ---
    LT = auto()                 # <
    GT = auto()                 # >
    LE = auto()                 # <=
    GE = auto()                 # >=
    EQ = auto()                 # ==

    # --- Logical operators ---
    AND = auto()                # &&
    OR = auto()                 # ||
    BANG = auto()               # !

    # --- Conversion and composition ---
    TILDE = auto()              # ~
    PIPE = auto()               # |>

    # --- Assignment ---
    ASSIGN = auto()             # =
    PLUS_ASSIGN = auto()        # +=
    MINUS_ASSIGN = auto()       # -=
    STAR_ASSIGN = auto()        # *=
    SLASH_ASSIGN = auto()       # /=
    PERCENT_ASSIGN = auto()     # %=

    # --- Delimiters ---
    LBRACE = auto()             # {
    RBRACE = auto()             # }
    LPAREN = auto()             # (
    RPAREN = auto()             # )
    LBRACKET = auto()           # [
    RBRACKET = auto()           # ]
    COMMA = auto()              # ,
    DOT = auto()                # .
    RANGE = auto()              # ..
    SEMICOLON = auto()          # ; (same as a newline)

    # --- Layout ---
    NEWLINE = auto()            # Significant newline (end of statement)

    # --- Special ---
    EOF = auto()                # end of file


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


@dataclass(frozen=True)
class Token:
    """A single token from the lexer."""
    type: TokenType
    value: Any              # int, decoded str, name or bool
    lexeme: str             # The original source text
    span: SourceSpan        # Location in source

    def __str__(self) -> str:
        if self.type in (TokenType.INT_LITERAL, TokenType.STRING_LITERAL,
                         TokenType.BOOL_LITERAL, TokenType.IDENTIFIER):
            return f"{self.type.name}({self.value!r})"
        return self.type.name


# Reserved words - maps source text to token type
KEYWORDS: dict[str, TokenType] = {
    "if": TokenType.IF,
    "for": TokenType.FOR,
    "of": TokenType.OF,
    "input": TokenType.INPUT,
    "len": TokenType.LEN,
    "true": TokenType.BOOL_LITERAL,
    "false": TokenType.BOOL_LITERAL,
}


# Compound assignment token -> the binary operator it applies
COMPOUND_ASSIGNMENTS: dict[TokenType, TokenType] = {
    TokenType.PLUS_ASSIGN: TokenType.PLUS,
    TokenType.MINUS_ASSIGN: TokenType.MINUS,
    TokenType.STAR_ASSIGN: TokenType.STAR,
    TokenType.SLASH_ASSIGN: TokenType.SLASH,
    TokenType.PERCENT_ASSIGN: TokenType.PERCENT,
}


# Source spelling of operators, for diagnostics and trace output
OPERATOR_SYMBOLS: dict[TokenType, str] = {
    TokenType.PLUS: "+",
    TokenType.MINUS: "-",
    TokenType.STAR: "*",
    TokenType.SLASH: "/",
    TokenType.PERCENT: "%",
    TokenType.LT: "<",
    TokenType.GT: ">",
    TokenType.LE: "<=",
    TokenType.GE: ">=",
    TokenType.EQ: "==",
    TokenType.AND: "&&",
    TokenType.OR: "||",
    TokenType.BANG: "!",
    TokenType.TILDE: "~",
    TokenType.PIPE: "|>",
}


def is_statement_separator(token_type: TokenType) -> bool:
    """Check if a token type ends a statement."""
    return token_type in (TokenType.NEWLINE, TokenType.SEMICOLON)
