"""
Execution context for the xmas interpreter.

There is one global variable table and one function table per run.
Function parameters and loop variables are bound directly in the global
table; `shadow` snapshots the names about to be overwritten and restores
them afterwards, which gives calls and loops local-looking bindings
without per-scope environments.

The accumulator `_` is a stack of slots. Every block, call body and loop
pushes a slot; reads and writes of `_` address the innermost one.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional
from contextlib import contextmanager

from .values import Value, UserFunction, NO_VALUE, grid_from_text
from .trace import TraceEvent, TraceSink, emit, is_enabled
from ..tokens import SourceSpan


@dataclass
class AccumulatorSlot:
    """One level of the `_` stack."""
    value: Value = NO_VALUE


_UNBOUND = object()


@dataclass
class ExecutionContext:
    """
    The full state of one program run.

    Tracks:
    - Global variables and user functions
    - The accumulator stack
    - The input grid
    - The trace sink and current trace depth
    - Source lines for error messages
    """
    variables: Dict[str, Value] = field(default_factory=dict)
    functions: Dict[str, UserFunction] = field(default_factory=dict)
    accumulators: List[AccumulatorSlot] = field(default_factory=list)
    input_grid: Value = field(default_factory=lambda: grid_from_text(None))

    trace: Optional[TraceSink] = None
    depth: int = 0

    source_lines: List[str] = field(default_factory=list)

    # --- Variables ---

    def get_variable(self, name: str) -> Optional[Value]:
        """Look up a global variable."""
        return self.variables.get(name)

    def set_variable(self, name: str, value: Value) -> None:
        """Bind (or rebind) a global variable."""
        self.variables[name] = value

    @contextmanager
    def preserve(self, names: Iterable[str]) -> Iterator[None]:
        """
        Snapshot global names and restore them on exit.

        A name that was unbound before is removed again. Restoration also
        runs when the body raises.
        """
        saved = {name: self.variables.get(name, _UNBOUND) for name in names}
        try:
            yield
        finally:
            for name, previous in saved.items():
                if previous is _UNBOUND:
                    self.variables.pop(name, None)
                else:
                    self.variables[name] = previous

    @contextmanager
    def shadow(self, bindings: Dict[str, Value]) -> Iterator[None]:
        """Temporarily bind names in the global table (see `preserve`)."""
        with self.preserve(bindings):
            self.variables.update(bindings)
            yield

    # --- Functions ---

    def define_function(self, function: UserFunction) -> None:
        self.functions[function.name] = function

    def get_function(self, name: str) -> Optional[UserFunction]:
        return self.functions.get(name)

    # --- Accumulator ---

    @contextmanager
    def accumulator(self, initial: Value = NO_VALUE) -> Iterator[AccumulatorSlot]:
        """
        Push a fresh accumulator slot for the duration of a block.

        Usage:
            with ctx.accumulator(int_val(0)) as slot:
                ...
            result = slot.value
        """
        slot = AccumulatorSlot(initial)
        self.accumulators.append(slot)
        try:
            yield slot
        finally:
            self.accumulators.pop()

    @property
    def current_accumulator(self) -> AccumulatorSlot:
        return self.accumulators[-1]

    # --- Tracing ---

    @contextmanager
    def nested(self) -> Iterator[None]:
        """Increase the trace depth inside an if/for body."""
        self.depth += 1
        try:
            yield
        finally:
            self.depth -= 1

    @property
    def tracing(self) -> bool:
        return is_enabled(self.trace)

    def emit(self, event: TraceEvent) -> None:
        emit(self.trace, event)

    # --- Error context ---

    def get_source_line(self, span: Optional[SourceSpan]) -> Optional[str]:
        """Get the source line a span starts on."""
        if span is None:
            return None
        line_num = span.start.line
        if 1 <= line_num <= len(self.source_lines):
            return self.source_lines[line_num - 1]
        return None


def create_context(
    input_text: Optional[str] = None,
    source: str = "",
    trace: Optional[TraceSink] = None,
) -> ExecutionContext:
    """Create a context for one run, holding a root accumulator slot."""
    ctx = ExecutionContext(
        input_grid=grid_from_text(input_text),
        trace=trace,
        source_lines=source.splitlines() if source else [],
    )
    ctx.accumulators.append(AccumulatorSlot())
    return ctx
