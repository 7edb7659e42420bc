"""
Built-in function registry for the xmas interpreter.

Builtins here are ordinary functions: their arguments are evaluated
eagerly and a user function or variable of the same name shadows them.
`if`, `for` and `len` are special forms handled by the interpreter and
never appear in this registry.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .values import Value, ValueKind, int_val, list_val, chars_val
from ..errors import (
    error_type_mismatch,
    error_undefined_name,
    error_arity_mismatch,
)


@dataclass(eq=False)
class BuiltinFunction:
    """A built-in function or method with its implementation."""
    name: str
    arity: int
    implementation: Callable[..., Value]


def _require_integers(name: str, *args: Value) -> None:
    for arg in args:
        if arg.kind != ValueKind.INTEGER:
            raise error_type_mismatch(
                f"'{name}' expects Integer arguments, found {arg.type_name}"
            )


class BuiltinRegistry:
    """
    Registry of all built-in functions and methods.

    Functions are registered by name; methods by (receiver kind, name).
    """

    def __init__(self):
        self._functions: Dict[str, BuiltinFunction] = {}
        self._methods: Dict[Tuple[ValueKind, str], BuiltinFunction] = {}
        self._register_all()

    def get_function(self, name: str) -> Optional[BuiltinFunction]:
        """Look up a function by name."""
        return self._functions.get(name)

    def get_method(self, kind: ValueKind, method_name: str) -> Optional[BuiltinFunction]:
        """Look up a method by receiver kind and method name."""
        return self._methods.get((kind, method_name))

    def has_method_named(self, method_name: str) -> bool:
        """Check if any kind has a method with this name."""
        return any(name == method_name for _, name in self._methods)

    def register(self, func: BuiltinFunction) -> None:
        """Register a function."""
        self._functions[func.name] = func

    def register_method(self, kind: ValueKind, func: BuiltinFunction) -> None:
        """Register a method for a specific value kind."""
        self._methods[(kind, func.name)] = func

    @property
    def function_names(self) -> List[str]:
        return sorted(self._functions)

    def _register_all(self) -> None:
        """Register all built-in functions."""
        self._register_math_functions()
        self._register_grid_methods()

    # --- Math Functions ---

    def _register_math_functions(self) -> None:
        """Register integer helpers."""

        def _max(a: Value, b: Value) -> Value:
            _require_integers("max", a, b)
            return int_val(max(a.data, b.data))

        def _min(a: Value, b: Value) -> Value:
            _require_integers("min", a, b)
            return int_val(min(a.data, b.data))

        # Every value is an integer, so rounding leaves it unchanged
        def _floor(n: Value) -> Value:
            _require_integers("floor", n)
            return n

        def _ceil(n: Value) -> Value:
            _require_integers("ceil", n)
            return n

        self.register(BuiltinFunction("max", 2, _max))
        self.register(BuiltinFunction("min", 2, _min))
        self.register(BuiltinFunction("floor", 1, _floor))
        self.register(BuiltinFunction("ceil", 1, _ceil))

    # --- Grid Methods ---

    def _register_grid_methods(self) -> None:
        """Register methods on the input grid."""

        def _rows(grid: Value) -> Value:
            return list_val(chars_val(row) for row in grid.data)

        self.register_method(
            ValueKind.GRID,
            BuiltinFunction("rows", 0, _rows),
        )


# Global registry instance
_registry: Optional[BuiltinRegistry] = None


def get_builtin_registry() -> BuiltinRegistry:
    """Get the global built-in function registry."""
    global _registry
    if _registry is None:
        _registry = BuiltinRegistry()
    return _registry


def call_method(receiver: Value, method_name: str, args: List[Value]) -> Value:
    """
    Call a method on a value.

    A method that exists for other kinds is a type mismatch on this one;
    a method no kind defines is undefined.
    """
    registry = get_builtin_registry()
    method = registry.get_method(receiver.kind, method_name)
    if method is None:
        if registry.has_method_named(method_name):
            raise error_type_mismatch(
                f"method '{method_name}' is not defined on {receiver.type_name}"
            )
        raise error_undefined_name(method_name, kind="method")
    if len(args) != method.arity:
        raise error_arity_mismatch(method_name, str(method.arity), len(args))
    return method.implementation(receiver, *args)
