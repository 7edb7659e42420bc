"""
Lexer for the xmas language.

Converts source text into a stream of tokens for the parser.
Supports:
- Significant newlines (NEWLINE tokens) and ';' separators
- Implicit line continuation inside ( ) and [ ]
- Single-line comments (//)
- String literals with escape sequences
- Decimal integer literals
- All keywords and operators
"""

import logging
from typing import List, Optional, Iterator
from .tokens import Token, TokenType, SourceLocation, SourceSpan, KEYWORDS
from .errors import (
    error_unexpected_character,
    error_unterminated_string,
    error_invalid_escape_sequence,
)

logger = logging.getLogger(__name__)


# Two-character operators, matched before their one-character prefixes
TWO_CHAR_TOKENS = {
    "==": TokenType.EQ,
    "<=": TokenType.LE,
    ">=": TokenType.GE,
    "|>": TokenType.PIPE,
    "..": TokenType.RANGE,
    "&&": TokenType.AND,
    "||": TokenType.OR,
    "+=": TokenType.PLUS_ASSIGN,
    "-=": TokenType.MINUS_ASSIGN,
    "*=": TokenType.STAR_ASSIGN,
    "/=": TokenType.SLASH_ASSIGN,
    "%=": TokenType.PERCENT_ASSIGN,
}

SINGLE_CHAR_TOKENS = {
    '+': TokenType.PLUS,
    '-': TokenType.MINUS,
    '*': TokenType.STAR,
    '/': TokenType.SLASH,
    '%': TokenType.PERCENT,
    '<': TokenType.LT,
    '>': TokenType.GT,
    '=': TokenType.ASSIGN,
    '!': TokenType.BANG,
    '~': TokenType.TILDE,
    ',': TokenType.COMMA,
    '.': TokenType.DOT,
    ';': TokenType.SEMICOLON,
}

OPENING_BRACKETS = {
    '(': TokenType.LPAREN,
    '[': TokenType.LBRACKET,
    '{': TokenType.LBRACE,
}

CLOSING_BRACKETS = {
    ')': TokenType.RPAREN,
    ']': TokenType.RBRACKET,
    '}': TokenType.RBRACE,
}

ESCAPE_CHARS = {
    'n': '\n',
    't': '\t',
    '\\': '\\',
    '"': '"',
}


class Lexer:
    """
    Tokenizer for xmas source text.

    Newlines end statements, except inside parentheses and square brackets
    where they are treated as whitespace. Braces delimit blocks, so inside
    a brace block newlines keep separating statements.

    Usage:
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()

    Or for streaming:
        lexer = Lexer(source_code)
        for token in lexer:
            process(token)
    """

    def __init__(self, source: str, filename: Optional[str] = None):
        self.source = source
        self.filename = filename
        self.pos = 0            # Current position in source
        self.line = 1           # Current line (1-indexed)
        self.column = 1         # Current column (1-indexed)
        self._lines: Optional[List[str]] = None  # Cached line list

        # Open bracket characters, innermost last
        self.bracket_stack: List[str] = []

    @property
    def lines(self) -> List[str]:
        """Source split into lines, computed on first use."""
        if self._lines is None:
            self._lines = self.source.splitlines()
        return self._lines

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Line `line_num` (1-based) of the source, or None."""
        if 1 <= line_num <= len(self.lines):
            return self.lines[line_num - 1]
        return None

    def _location(self) -> SourceLocation:
        """Get current source location."""
        return SourceLocation(self.line, self.column, self.pos, self.filename)

    def _span(self, start: SourceLocation) -> SourceSpan:
        """Span from `start` up to the cursor."""
        return SourceSpan(start, self._location())

    def _peek(self, offset: int = 0) -> str:
        """Character `offset` places ahead, or NUL past the end."""
        idx = self.pos + offset
        if idx >= len(self.source):
            return '\0'
        return self.source[idx]

    def _advance(self) -> str:
        """Consume one character, updating line and column."""
        if self.pos >= len(self.source):
            return '\0'
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _is_at_end(self) -> bool:
        """True once every character has been consumed."""
        return self.pos >= len(self.source)

    def _newline_is_significant(self) -> bool:
        """Newlines separate statements at top level and directly inside braces."""
        return not self.bracket_stack or self.bracket_stack[-1] == '{'

    def _skip_comment(self) -> None:
        """Skip a single-line comment (// to end of line)."""
        while self._peek() != '\n' and not self._is_at_end():
            self._advance()

    def _skip_whitespace_and_comments(self) -> None:
        """Skip horizontal whitespace and comments, not significant newlines."""
        while not self._is_at_end():
            ch = self._peek()
            if ch in ' \t\r':
                self._advance()
            elif ch == '/' and self._peek(1) == '/':
                self._skip_comment()
            elif ch == '\n' and not self._newline_is_significant():
                self._advance()
            else:
                break

    def _make_token(self, token_type: TokenType, value, start: SourceLocation,
                    lexeme: Optional[str] = None) -> Token:
        """Create a token."""
        span = self._span(start)
        if lexeme is None:
            lexeme = self.source[start.offset:self.pos]
        return Token(token_type, value, lexeme, span)

    def _scan_string(self) -> Token:
        """Scan a double-quoted string literal."""
        start = self._location()
        self._advance()  # consume opening quote

        chars = []
        while not self._is_at_end() and self._peek() != '"':
            ch = self._peek()
            if ch == '\n':
                raise error_unterminated_string(
                    self._span(start),
                    self.get_source_line(start.line)
                )
            if ch == '\\':
                self._advance()  # consume backslash
                chars.append(self._scan_escape_sequence())
            else:
                chars.append(self._advance())

        if self._is_at_end():
            raise error_unterminated_string(
                self._span(start),
                self.get_source_line(start.line)
            )

        self._advance()  # consume closing quote
        return self._make_token(TokenType.STRING_LITERAL, ''.join(chars), start)

    def _scan_escape_sequence(self) -> str:
        """Decode the character after a backslash."""
        esc_start = self._location()
        if self._is_at_end() or self._peek() == '\n':
            raise error_invalid_escape_sequence(
                "", self._span(esc_start), self.get_source_line(esc_start.line)
            )

        ch = self._advance()
        if ch in ESCAPE_CHARS:
            return ESCAPE_CHARS[ch]
        raise error_invalid_escape_sequence(
            ch, self._span(esc_start), self.get_source_line(esc_start.line)
        )

    def _scan_number(self) -> Token:
        """Scan a decimal integer literal."""
        start = self._location()
        while self._peek().isascii() and self._peek().isdigit():
            self._advance()
        lexeme = self.source[start.offset:self.pos]
        return self._make_token(TokenType.INT_LITERAL, int(lexeme), start, lexeme)

    def _scan_identifier_or_keyword(self) -> Token:
        """Scan an identifier, keyword or the accumulator '_'."""
        start = self._location()

        while self._peek().isascii() and (self._peek().isalnum() or self._peek() == '_'):
            self._advance()

        lexeme = self.source[start.offset:self.pos]

        if lexeme == "_":
            return self._make_token(TokenType.UNDERSCORE, lexeme, start, lexeme)

        if lexeme in KEYWORDS:
            token_type = KEYWORDS[lexeme]
            if token_type == TokenType.BOOL_LITERAL:
                value = lexeme == "true"
            else:
                value = lexeme
            return self._make_token(token_type, value, start, lexeme)

        return self._make_token(TokenType.IDENTIFIER, lexeme, start, lexeme)

    def _scan_token(self) -> Token:
        """Scan the next token."""
        self._skip_whitespace_and_comments()

        if self._is_at_end():
            return self._make_token(TokenType.EOF, None, self._location(), "")

        start = self._location()
        ch = self._peek()

        if ch == '\n':
            self._advance()
            return self._make_token(TokenType.NEWLINE, None, start, "\\n")

        if ch == '"':
            return self._scan_string()

        # isdigit() would accept non-ASCII digits that int() then rejects
        if ch in '0123456789':
            return self._scan_number()

        if (ch.isascii() and ch.isalpha()) or ch == '_':
            return self._scan_identifier_or_keyword()

        pair = ch + self._peek(1)
        if pair in TWO_CHAR_TOKENS:
            self._advance()
            self._advance()
            return self._make_token(TWO_CHAR_TOKENS[pair], pair, start)

        self._advance()

        if ch in OPENING_BRACKETS:
            self.bracket_stack.append(ch)
            return self._make_token(OPENING_BRACKETS[ch], ch, start)
        if ch in CLOSING_BRACKETS:
            if self.bracket_stack:
                self.bracket_stack.pop()
            return self._make_token(CLOSING_BRACKETS[ch], ch, start)

        if ch in SINGLE_CHAR_TOKENS:
            return self._make_token(SINGLE_CHAR_TOKENS[ch], ch, start)

        raise error_unexpected_character(
            ch, self._span(start), self.get_source_line(start.line)
        )

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source, returning a list of tokens."""
        tokens = list(self)
        logger.debug("tokenized %s: %d tokens", self.filename or "<source>", len(tokens))
        return tokens

    def __iter__(self) -> Iterator[Token]:
        """Iterate over tokens, ending with EOF."""
        while True:
            token = self._scan_token()
            yield token
            if token.type == TokenType.EOF:
                break


def tokenize(source: str, filename: Optional[str] = None) -> List[Token]:
    """
    Convenience function to tokenize source code.

    Args:
        source: The source code to tokenize
        filename: Optional filename for error messages

    Returns:
        List of tokens, ending with EOF

    Raises:
        LexerError: If a character matches no token rule
    """
    lexer = Lexer(source, filename)
    return lexer.tokenize()
