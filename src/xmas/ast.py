"""
Abstract Syntax Tree (AST) node definitions for the xmas language.

A program is a flat list of statements. Expressions cover literals,
operators, calls, indexing and brace blocks; the three special forms
(`if`, `for`, `len`) get their own node so the interpreter can evaluate
their arguments lazily.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Any
from abc import ABC
from .tokens import SourceSpan, TokenType, OPERATOR_SYMBOLS


# =============================================================================
# Base Classes
# =============================================================================

@dataclass
class AstNode(ABC):
    """Base class for all AST nodes."""
    span: SourceSpan  # Source location for error reporting

    def accept(self, visitor: "AstVisitor") -> Any:
        """Accept a visitor for traversal."""
        method_name = f"visit_{self.__class__.__name__}"
        method = getattr(visitor, method_name, visitor.generic_visit)
        return method(self)


class AstVisitor(ABC):
    """Base class for AST visitors."""

    def generic_visit(self, node: AstNode) -> Any:
        """Default visit method."""
        raise NotImplementedError(f"No visitor for {node.__class__.__name__}")


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass
class Expression(AstNode):
    """Base class for all expressions."""
    pass


@dataclass
class IntegerLiteral(Expression):
    value: int


@dataclass
class BooleanLiteral(Expression):
    value: bool


@dataclass
class TextLiteral(Expression):
    value: str


@dataclass
class Identifier(Expression):
    """A variable or function name reference."""
    name: str


@dataclass
class AccumulatorRef(Expression):
    """A read of the innermost accumulator slot (`_`)."""
    pass


@dataclass
class InputRef(Expression):
    """The implicit `input` grid."""
    pass


@dataclass
class ListLiteral(Expression):
    """A list literal: [a, b, c]."""
    elements: List[Expression]


@dataclass
class RangeLiteral(Expression):
    """An inclusive integer range: [start..end]."""
    start: Expression
    end: Expression


@dataclass
class UnaryOp(Expression):
    """A unary operation (~x, !x, -x)."""
    operator: TokenType
    operand: Expression


@dataclass
class BinaryOp(Expression):
    """A binary operation, including `&&`, `||` and the pipe `|>`."""
    left: Expression
    operator: TokenType
    right: Expression


@dataclass
class Call(Expression):
    """An ordinary call with eagerly evaluated arguments."""
    callee: Expression  # Identifier for named calls
    arguments: List[Expression]


class SpecialForm(Enum):
    """Call-shaped forms evaluated with custom argument semantics."""
    IF = "if"
    FOR = "for"
    LEN = "len"


@dataclass
class LoopBinding(Expression):
    """The `var of seq` header of a for loop."""
    variable: str
    sequence: Expression


@dataclass
class SpecialCall(Expression):
    """A call to `if`, `for` or `len`. Arity is checked at run time."""
    form: SpecialForm
    arguments: List[Expression]


@dataclass
class Slice(Expression):
    """A half-open slice inside an index: a..b, a.., ..b or .."""
    start: Optional[Expression] = None
    end: Optional[Expression] = None


@dataclass
class IndexAccess(Expression):
    """Indexing or slicing: target[i], target[a..b], grid[row, col]."""
    target: Expression
    indices: List[Expression]  # Expression or Slice, applied left to right


@dataclass
class MethodCall(Expression):
    """A method call such as input.rows()."""
    target: Expression
    method: str
    arguments: List[Expression] = field(default_factory=list)


@dataclass
class Block(Expression):
    """A brace block. Its value is the final accumulator."""
    statements: List["Statement"]


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass
class Statement(AstNode):
    """Base class for all statements."""
    pass


@dataclass
class Assignment(Statement):
    """name = value, or _ = value for the accumulator."""
    target: str
    value: Expression

    @property
    def is_accumulator(self) -> bool:
        return self.target == "_"


@dataclass
class FunctionDef(Statement):
    """name(params) = body"""
    name: str
    parameters: List[str]
    body: Expression  # Block or single expression


@dataclass
class ExpressionStatement(Statement):
    """An expression evaluated for its value or side effects."""
    expression: Expression


@dataclass
class Program(AstNode):
    """Root node: the top-level statements in source order."""
    statements: List[Statement]


# =============================================================================
# Source rendering
# =============================================================================

class ExpressionFormatter(AstVisitor):
    """Renders expressions back to compact source text."""

    def format(self, node: AstNode) -> str:
        return node.accept(self)

    def visit_IntegerLiteral(self, node: IntegerLiteral) -> str:
        return str(node.value)

    def visit_BooleanLiteral(self, node: BooleanLiteral) -> str:
        return "true" if node.value else "false"

    def visit_TextLiteral(self, node: TextLiteral) -> str:
        escaped = node.value.replace("\\", "\\\\").replace('"', '\\"')
        escaped = escaped.replace("\n", "\\n").replace("\t", "\\t")
        return f'"{escaped}"'

    def visit_Identifier(self, node: Identifier) -> str:
        return node.name

    def visit_AccumulatorRef(self, node: AccumulatorRef) -> str:
        return "_"

    def visit_InputRef(self, node: InputRef) -> str:
        return "input"

    def visit_ListLiteral(self, node: ListLiteral) -> str:
        return "[" + ", ".join(self.format(e) for e in node.elements) + "]"

    def visit_RangeLiteral(self, node: RangeLiteral) -> str:
        return f"[{self.format(node.start)}..{self.format(node.end)}]"

    def _operand(self, node: AstNode) -> str:
        if isinstance(node, BinaryOp):
            return f"({self.format(node)})"
        return self.format(node)

    def visit_UnaryOp(self, node: UnaryOp) -> str:
        return f"{OPERATOR_SYMBOLS[node.operator]}{self._operand(node.operand)}"

    def visit_BinaryOp(self, node: BinaryOp) -> str:
        symbol = OPERATOR_SYMBOLS[node.operator]
        return f"{self._operand(node.left)} {symbol} {self._operand(node.right)}"

    def visit_Call(self, node: Call) -> str:
        args = ", ".join(self.format(a) for a in node.arguments)
        return f"{self.format(node.callee)}({args})"

    def visit_LoopBinding(self, node: LoopBinding) -> str:
        return f"{node.variable} of {self.format(node.sequence)}"

    def visit_SpecialCall(self, node: SpecialCall) -> str:
        args = ", ".join(self.format(a) for a in node.arguments)
        return f"{node.form.value}({args})"

    def visit_Slice(self, node: Slice) -> str:
        start = self.format(node.start) if node.start is not None else ""
        end = self.format(node.end) if node.end is not None else ""
        return f"{start}..{end}"

    def visit_IndexAccess(self, node: IndexAccess) -> str:
        items = ", ".join(self.format(i) for i in node.indices)
        return f"{self.format(node.target)}[{items}]"

    def visit_MethodCall(self, node: MethodCall) -> str:
        args = ", ".join(self.format(a) for a in node.arguments)
        return f"{self.format(node.target)}.{node.method}({args})"

    def visit_Block(self, node: Block) -> str:
        return "{ ... }"


def format_expr(node: AstNode) -> str:
    """Render an expression as compact source text."""
    return ExpressionFormatter().format(node)
