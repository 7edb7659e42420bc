"""
Exceptions and diagnostics for the xmas language.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Runtime errors
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List
from .tokens import SourceSpan


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"


@dataclass
class Diagnostic:
    """A single diagnostic message."""
    code: str                       # E001, E101, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity
    span: Optional[SourceSpan] = None
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)

    def format(self) -> str:
        """Format the diagnostic for display."""
        parts = []

        # Header: location: severity[code]: message
        if self.span is not None:
            parts.append(f"{self.span.start}: {self.severity.value}[{self.code}]: {self.message}")
        else:
            parts.append(f"{self.severity.value}[{self.code}]: {self.message}")

        # Source line with caret
        if self.span is not None and self.source_line is not None:
            parts.append("  |")
            line_num = str(self.span.start.line)
            parts.append(f"{line_num:>3} | {self.source_line}")

            col = self.span.start.column
            if self.span.start.line == self.span.end.line:
                end_col = self.span.end.column
            else:
                end_col = len(self.source_line) + 1
            underline_len = max(1, end_col - col)
            parts.append(f"    | {' ' * (col - 1)}{'^' * underline_len}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        data = {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "hints": self.hints,
        }
        if self.span is not None:
            data["range"] = {
                "start": {
                    "line": self.span.start.line,
                    "column": self.span.start.column,
                    "offset": self.span.start.offset,
                },
                "end": {
                    "line": self.span.end.line,
                    "column": self.span.end.column,
                    "offset": self.span.end.offset,
                },
            }
        return data


class XmasError(Exception):
    """Base exception for xmas errors."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    @property
    def code(self) -> str:
        return self.diagnostic.code

    @property
    def span(self) -> Optional[SourceSpan]:
        return self.diagnostic.span

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexerError(XmasError):
    """Error during lexical analysis (E0xx)."""
    pass


class ParserError(XmasError):
    """Error during parsing (E1xx)."""
    pass


class InterpreterError(XmasError):
    """Error during program execution (E4xx)."""
    pass


class UndefinedNameError(InterpreterError):
    """A variable, function or method that was never bound."""
    pass


class TypeMismatchError(InterpreterError):
    """An operator or special form applied to the wrong kind of value."""
    pass


class IndexOutOfRangeError(InterpreterError):
    pass


class DivisionByZeroError(InterpreterError):
    pass


class ConversionError(InterpreterError):
    """`~` applied to text that is not a decimal integer."""
    pass


class ArityMismatchError(InterpreterError):
    """Wrong number of arguments for a call, special form or method."""
    pass


class RecursionDepthError(InterpreterError):
    """Calls nested deeper than the interpreter can follow."""
    pass


# --- Lexer error codes ---

def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E001: Unexpected character."""
    diag = Diagnostic(
        code="E001",
        message=f"unexpected character '{char}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    if char in "|&":
        diag.hints.append(f"did you mean '{char}{char}'?")
    return LexerError(diag)


def error_unterminated_string(span: SourceSpan, source_line: str = None) -> LexerError:
    """E002: Unterminated string literal."""
    diag = Diagnostic(
        code="E002",
        message="unterminated string literal",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["string literals must be closed with '\"' on the same line"],
    )
    return LexerError(diag)


def error_invalid_escape_sequence(seq: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E003: Invalid escape sequence in string."""
    diag = Diagnostic(
        code="E003",
        message=f"invalid escape sequence '\\{seq}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["valid escape sequences: \\n, \\t, \\\", \\\\"],
    )
    return LexerError(diag)


# --- Parser error codes ---

def error_unexpected_token(expected: str, found: str, span: SourceSpan,
                           source_line: str = None) -> ParserError:
    """E101: Unexpected token."""
    diag = Diagnostic(
        code="E101",
        message=f"expected {expected}, found {found}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_unexpected_eof(expected: str, span: SourceSpan) -> ParserError:
    """E102: Unexpected end of file."""
    diag = Diagnostic(
        code="E102",
        message=f"unexpected end of file, expected {expected}",
        severity=ErrorSeverity.ERROR,
        span=span,
    )
    return ParserError(diag)


def error_malformed_bracket(message: str, span: SourceSpan,
                            source_line: str = None) -> ParserError:
    """E103: Malformed bracket expression."""
    diag = Diagnostic(
        code="E103",
        message=f"malformed bracket expression: {message}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["use [a, b, c] for lists, [a..b] for ranges and x[a..b] for slices"],
    )
    return ParserError(diag)


def error_invalid_statement(message: str, span: SourceSpan,
                            source_line: str = None) -> ParserError:
    """E104: Invalid statement."""
    diag = Diagnostic(
        code="E104",
        message=message,
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


# --- Runtime error codes ---

def error_undefined_name(name: str, span: SourceSpan = None,
                         source_line: str = None, kind: str = "name") -> UndefinedNameError:
    """E401: Undefined variable, function or method."""
    diag = Diagnostic(
        code="E401",
        message=f"undefined {kind} '{name}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return UndefinedNameError(diag)


def error_type_mismatch(message: str, span: SourceSpan = None,
                        source_line: str = None) -> TypeMismatchError:
    """E402: Operand or argument of the wrong kind."""
    diag = Diagnostic(
        code="E402",
        message=f"type mismatch: {message}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return TypeMismatchError(diag)


def error_index_out_of_range(index: int, length: int, span: SourceSpan = None,
                             source_line: str = None) -> IndexOutOfRangeError:
    """E403: Index outside of [0, length)."""
    diag = Diagnostic(
        code="E403",
        message=f"index {index} out of range for length {length}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return IndexOutOfRangeError(diag)


def error_division_by_zero(operator: str, span: SourceSpan = None,
                           source_line: str = None) -> DivisionByZeroError:
    """E404: Division or remainder by zero."""
    diag = Diagnostic(
        code="E404",
        message=f"division by zero in '{operator}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return DivisionByZeroError(diag)


def error_conversion_failed(text: str, span: SourceSpan = None,
                            source_line: str = None) -> ConversionError:
    """E405: Text is not a decimal integer."""
    diag = Diagnostic(
        code="E405",
        message=f"cannot convert {text!r} to an integer",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ConversionError(diag)


def error_arity_mismatch(name: str, expected: str, found: int, span: SourceSpan = None,
                         source_line: str = None) -> ArityMismatchError:
    """E406: Wrong number of arguments."""
    diag = Diagnostic(
        code="E406",
        message=f"'{name}' expects {expected} argument(s), got {found}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ArityMismatchError(diag)


def error_recursion_too_deep(span: SourceSpan = None, source_line: str = None) -> RecursionDepthError:
    """E407: Call nesting exhausted the Python stack."""
    diag = Diagnostic(
        code="E407",
        message="recursion too deep: maximum recursion depth exceeded",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["use a for loop over a range instead of deep recursion"],
    )
    return RecursionDepthError(diag)
