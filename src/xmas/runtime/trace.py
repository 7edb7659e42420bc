"""
Debug trace events.

The interpreter reports assignments, operator evaluations, conditional
decisions and loop iterations to an optional sink. A sink is any callable
taking a TraceEvent; tracing never changes how a program runs.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, TextIO

from .values import Value, format_debug_value

logger = logging.getLogger("xmas.runtime")


class TraceKind(Enum):
    ASSIGN = "assign"
    OPERATION = "operation"
    CONDITION = "condition"
    ITERATION = "iteration"


@dataclass(frozen=True)
class TraceEvent:
    """
    One trace record.

    detail keys by kind:
        ASSIGN:     old (Value or None), new (Value)
        OPERATION:  left, right, result (Values); right is None when
                    && or || short-circuits
        CONDITION:  condition (source text), outcome (bool)
        ITERATION:  element (Value)
    """
    kind: TraceKind
    name: str                   # variable, operator symbol, 'if' or loop variable
    detail: Dict[str, Any] = field(default_factory=dict)
    depth: int = 0              # nesting of if/for bodies

    def format(self) -> str:
        """Render as a single line, without indentation."""
        if self.kind == TraceKind.ASSIGN:
            old = self.detail.get("old")
            old_text = format_debug_value(old) if old is not None else "undefined"
            return f"{self.name}: {old_text} → {format_debug_value(self.detail['new'])}"
        if self.kind == TraceKind.OPERATION:
            left = format_debug_value(self.detail["left"])
            right = self.detail["right"]
            right = format_debug_value(right) if right is not None else "(skipped)"
            result = format_debug_value(self.detail["result"])
            return f"{left} {self.name} {right} = {result}"
        if self.kind == TraceKind.CONDITION:
            outcome = "true" if self.detail["outcome"] else "false"
            return f"if {self.detail['condition']}: {outcome}"
        return f"for {self.name}: {format_debug_value(self.detail['element'])}"


TraceSink = Callable[[TraceEvent], None]


class TraceCollector:
    """Sink that keeps every event in order."""

    def __init__(self):
        self.events: List[TraceEvent] = []

    def __call__(self, event: TraceEvent) -> None:
        self.events.append(event)

    def of_kind(self, kind: TraceKind) -> List[TraceEvent]:
        return [e for e in self.events if e.kind == kind]

    def lines(self) -> List[str]:
        return [e.format() for e in self.events]


class StreamTraceSink:
    """Sink that writes `DEBUG: ` lines to a text stream, indented by depth."""

    def __init__(self, stream: TextIO, indent: int = 2):
        self.stream = stream
        self.indent = indent

    def __call__(self, event: TraceEvent) -> None:
        padding = " " * (event.depth * self.indent)
        self.stream.write(f"DEBUG: {padding}{event.format()}\n")


def is_enabled(sink: Optional[TraceSink]) -> bool:
    """Events are worth building when there is a sink or debug logging."""
    return sink is not None or logger.isEnabledFor(logging.DEBUG)


def emit(sink: Optional[TraceSink], event: TraceEvent) -> None:
    """Deliver an event to the sink (if any) and the runtime logger."""
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("trace %s", event.format())
    if sink is not None:
        sink(event)


def assign_event(name: str, old: Optional[Value], new: Value, depth: int) -> TraceEvent:
    return TraceEvent(TraceKind.ASSIGN, name, {"old": old, "new": new}, depth)


def operation_event(symbol: str, left: Value, right: Optional[Value], result: Value,
                    depth: int) -> TraceEvent:
    return TraceEvent(TraceKind.OPERATION, symbol,
                      {"left": left, "right": right, "result": result}, depth)


def condition_event(condition: str, outcome: bool, depth: int) -> TraceEvent:
    return TraceEvent(TraceKind.CONDITION, "if",
                      {"condition": condition, "outcome": outcome}, depth)


def iteration_event(variable: str, element: Value, depth: int) -> TraceEvent:
    return TraceEvent(TraceKind.ITERATION, variable, {"element": element}, depth)
