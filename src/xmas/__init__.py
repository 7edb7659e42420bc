"""
xmas: a small integer-only scripting language.

This package provides:
- Lexer: Tokenizes xmas source code
- Parser: Builds an AST from tokens
- Interpreter: Runs the AST against optional input text

Usage:
    from xmas import tokenize, parse, Interpreter, compile_and_run

    # One call
    result = compile_and_run('addOne(x) = x + 1; addOne(41)')
    print(result.output)   # 42

    # Step by step
    source = '''
    total = for(n of [1..10], { _ = _ + n }, 0)
    total
    '''
    program = parse(tokenize(source), source=source)
    value = Interpreter().run(program)
"""

import logging

from .tokens import (
    Token,
    TokenType,
    SourceLocation,
    SourceSpan,
    KEYWORDS,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .parser import (
    Parser,
    parse,
)

from .ast import (
    AstNode,
    AstVisitor,
    Program,
    format_expr,
)

from .errors import (
    ErrorSeverity,
    Diagnostic,
    XmasError,
    LexerError,
    ParserError,
    InterpreterError,
    UndefinedNameError,
    TypeMismatchError,
    IndexOutOfRangeError,
    DivisionByZeroError,
    ConversionError,
    ArityMismatchError,
    RecursionDepthError,
)

from .runtime import (
    Value,
    ValueKind,
    NO_VALUE,
    Interpreter,
    ExecutionResult,
    TraceEvent,
    TraceKind,
    TraceCollector,
    StreamTraceSink,
    format_value,
    run,
    compile_and_run,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    # Tokens
    "Token",
    "TokenType",
    "SourceLocation",
    "SourceSpan",
    "KEYWORDS",
    # Lexer / parser
    "Lexer",
    "tokenize",
    "Parser",
    "parse",
    # AST
    "AstNode",
    "AstVisitor",
    "Program",
    "format_expr",
    # Errors
    "ErrorSeverity",
    "Diagnostic",
    "XmasError",
    "LexerError",
    "ParserError",
    "InterpreterError",
    "UndefinedNameError",
    "TypeMismatchError",
    "IndexOutOfRangeError",
    "DivisionByZeroError",
    "ConversionError",
    "ArityMismatchError",
    "RecursionDepthError",
    # Runtime
    "Value",
    "ValueKind",
    "NO_VALUE",
    "Interpreter",
    "ExecutionResult",
    "TraceEvent",
    "TraceKind",
    "TraceCollector",
    "StreamTraceSink",
    "format_value",
    "run",
    "compile_and_run",
]
