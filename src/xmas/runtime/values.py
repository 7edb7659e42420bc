"""
Runtime values for the xmas interpreter.

Every runtime value is a `Value` whose `kind` is drawn from a closed set:
integers, booleans, text, lists, functions, the 2-D input grid and the
NO_VALUE sentinel. Values are immutable; lists hold tuples of Values and
the grid holds a tuple of row strings.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional, Tuple

from ..ast import Expression


class ValueKind(Enum):
    """The closed set of runtime value kinds."""
    INTEGER = "Integer"
    BOOLEAN = "Boolean"
    TEXT = "Text"
    LIST = "List"
    FUNCTION = "Function"
    GRID = "Grid"
    NOTHING = "no value"


@dataclass(frozen=True)
class Value:
    """
    A runtime value tagged with its kind.

    Equality is structural: kinds must match and lists compare element by
    element. Functions compare by identity.
    """
    data: Any
    kind: ValueKind

    def __repr__(self) -> str:
        return f"Value({self.data!r}, {self.kind.name})"

    @property
    def type_name(self) -> str:
        return self.kind.value

    @property
    def is_nothing(self) -> bool:
        return self.kind == ValueKind.NOTHING


NO_VALUE = Value(None, ValueKind.NOTHING)


# Callables held by FUNCTION values

@dataclass(eq=False)
class UserFunction:
    """A function defined in the program: name(params) = body."""
    name: str
    parameters: Tuple[str, ...]
    body: Expression

    @property
    def arity(self) -> int:
        return len(self.parameters)


@dataclass(eq=False)
class ComposedFunction:
    """The callable built by `first |> second`: x -> second(first(x))."""
    first: Value
    second: Value

    @property
    def name(self) -> str:
        return f"{self.first.data.name} |> {self.second.data.name}"

    @property
    def arity(self) -> int:
        return 1


# Convenience constructors

def int_val(n: int) -> Value:
    """Create an integer value."""
    return Value(int(n), ValueKind.INTEGER)


def bool_val(b: bool) -> Value:
    """Create a boolean value."""
    return Value(bool(b), ValueKind.BOOLEAN)


def text_val(s: str) -> Value:
    """Create a text value."""
    return Value(str(s), ValueKind.TEXT)


def list_val(items: Iterable[Value]) -> Value:
    """Create a list value from Values."""
    return Value(tuple(items), ValueKind.LIST)


def function_val(func: Any) -> Value:
    """Wrap a UserFunction, ComposedFunction or BuiltinFunction."""
    return Value(func, ValueKind.FUNCTION)


def grid_val(rows: Iterable[str]) -> Value:
    """Create a grid value from row strings."""
    return Value(tuple(rows), ValueKind.GRID)


def chars_val(text: str) -> Value:
    """A list of one-character texts."""
    return list_val(text_val(ch) for ch in text)


def grid_from_text(text: Optional[str]) -> Value:
    """
    Build the input grid from raw input text.

    Rows are separated by newlines; a trailing newline does not start a
    new row and a carriage return before a newline is dropped. Missing
    input gives an empty grid.
    """
    if not text:
        return grid_val(())
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return grid_val(line.rstrip("\r") for line in lines)


def grid_columns(grid: Value) -> int:
    """Width of a grid, taken from its first row."""
    return len(grid.data[0]) if grid.data else 0


# Rendering

def format_value(value: Value) -> str:
    """Render a value for final program output."""
    kind = value.kind
    if kind == ValueKind.INTEGER:
        return str(value.data)
    if kind == ValueKind.BOOLEAN:
        return "true" if value.data else "false"
    if kind == ValueKind.TEXT:
        return value.data
    if kind == ValueKind.LIST:
        return "[" + ", ".join(format_value(v) for v in value.data) + "]"
    if kind == ValueKind.GRID:
        rows = ("[" + ", ".join(row) + "]" for row in value.data)
        return "[" + ", ".join(rows) + "]"
    if kind == ValueKind.FUNCTION:
        return f"<function {value.data.name}/{value.data.arity}>"
    return ""


def format_debug_value(value: Value) -> str:
    """
    Render a value for trace output.

    Text is quoted, and a non-empty list made only of one-character texts
    is shown as the quoted string it spells.
    """
    kind = value.kind
    if kind == ValueKind.TEXT:
        return f'"{value.data}"'
    if kind == ValueKind.LIST:
        items = value.data
        if items and all(v.kind == ValueKind.TEXT and len(v.data) == 1 for v in items):
            return '"' + "".join(v.data for v in items) + '"'
        return "[" + ", ".join(format_debug_value(v) for v in items) + "]"
    if kind == ValueKind.GRID:
        return "[" + ", ".join(f'"{row}"' for row in value.data) + "]"
    if kind == ValueKind.NOTHING:
        return "<no value>"
    return format_value(value)
