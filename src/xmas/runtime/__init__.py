"""
Runtime for the xmas language.

This module provides:
- Value: tagged runtime values and their constructors
- ExecutionContext: global tables, accumulator stack and shadowing
- Built-in functions and methods
- Trace events and sinks
- Interpreter: evaluates a parsed program
"""

from .values import (
    Value,
    ValueKind,
    NO_VALUE,
    UserFunction,
    ComposedFunction,
    int_val,
    bool_val,
    text_val,
    list_val,
    function_val,
    grid_val,
    chars_val,
    grid_from_text,
    format_value,
    format_debug_value,
)

from .context import (
    ExecutionContext,
    AccumulatorSlot,
    create_context,
)

from .builtins import (
    BuiltinFunction,
    BuiltinRegistry,
    get_builtin_registry,
    call_method,
)

from .trace import (
    TraceEvent,
    TraceKind,
    TraceSink,
    TraceCollector,
    StreamTraceSink,
)

from .interpreter import (
    Interpreter,
    ExecutionResult,
    run,
    compile_and_run,
    truncating_divmod,
)

__all__ = [
    # Values
    "Value",
    "ValueKind",
    "NO_VALUE",
    "UserFunction",
    "ComposedFunction",
    "int_val",
    "bool_val",
    "text_val",
    "list_val",
    "function_val",
    "grid_val",
    "chars_val",
    "grid_from_text",
    "format_value",
    "format_debug_value",
    # Context
    "ExecutionContext",
    "AccumulatorSlot",
    "create_context",
    # Builtins
    "BuiltinFunction",
    "BuiltinRegistry",
    "get_builtin_registry",
    "call_method",
    # Trace
    "TraceEvent",
    "TraceKind",
    "TraceSink",
    "TraceCollector",
    "StreamTraceSink",
    # Interpreter
    "Interpreter",
    "ExecutionResult",
    "run",
    "compile_and_run",
    "truncating_divmod",
]
