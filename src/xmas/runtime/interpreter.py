"""
Tree-walking interpreter for xmas programs.

Statements run in order against the single global table held by the
ExecutionContext. Blocks, call bodies and loops hand their result back
through the accumulator `_`.
"""

import logging
import re
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .values import (
    Value, ValueKind, NO_VALUE, UserFunction, ComposedFunction,
    int_val, bool_val, text_val, list_val, function_val, chars_val,
    grid_columns, format_value,
)
from .context import ExecutionContext, create_context
from .builtins import BuiltinFunction, call_method, get_builtin_registry
from .trace import (
    TraceSink, assign_event, operation_event, condition_event, iteration_event,
)

from ..ast import (
    Program, Statement, Assignment, FunctionDef, ExpressionStatement,
    Expression, IntegerLiteral, BooleanLiteral, TextLiteral, Identifier,
    AccumulatorRef, InputRef, ListLiteral, RangeLiteral, UnaryOp, BinaryOp,
    Call, SpecialCall, SpecialForm, LoopBinding, Slice, IndexAccess,
    MethodCall, Block, format_expr,
)
from ..errors import (
    Diagnostic, XmasError, InterpreterError,
    error_undefined_name,
    error_type_mismatch,
    error_index_out_of_range,
    error_division_by_zero,
    error_conversion_failed,
    error_arity_mismatch,
    error_recursion_too_deep,
)
from ..tokens import TokenType, OPERATOR_SYMBOLS

logger = logging.getLogger(__name__)

INTEGER_TEXT = re.compile(r"\s*[+-]?[0-9]+\s*")

ARITHMETIC_OPERATORS = (TokenType.MINUS, TokenType.STAR, TokenType.SLASH, TokenType.PERCENT)
ORDERING_OPERATORS = (TokenType.LT, TokenType.GT, TokenType.LE, TokenType.GE)

# Each xmas call level takes several Python frames
RECURSION_LIMIT = 5000


@contextmanager
def recursion_limit(limit: int = RECURSION_LIMIT):
    """Raise the Python recursion limit to at least `limit` for the duration."""
    previous = sys.getrecursionlimit()
    sys.setrecursionlimit(max(previous, limit))
    try:
        yield
    finally:
        sys.setrecursionlimit(previous)


def truncating_divmod(a: int, b: int) -> Tuple[int, int]:
    """Quotient rounded toward zero, remainder with the dividend's sign."""
    quotient = abs(a) // abs(b)
    if (a < 0) != (b < 0):
        quotient = -quotient
    return quotient, a - b * quotient


@dataclass
class ExecutionResult:
    """Result of running a program."""
    success: bool
    value: Value = NO_VALUE
    error_message: Optional[str] = None
    diagnostic: Optional[Diagnostic] = None

    @property
    def output(self) -> str:
        """The final value rendered for display."""
        return format_value(self.value)


class Interpreter:
    """
    Tree-walking interpreter for xmas programs.

    Evaluates AST nodes by dispatching to kind-specific methods.
    """

    def __init__(self, trace: Optional[TraceSink] = None):
        """
        Initialize the interpreter.

        Args:
            trace: Optional callable receiving TraceEvents
        """
        self.trace = trace
        self.context: Optional[ExecutionContext] = None  # Context of the latest run

    def run(self, program: Program, input_text: Optional[str] = None, source: str = "") -> Value:
        """
        Run a program.

        Args:
            program: The parsed program
            input_text: Raw text exposed as the `input` grid
            source: Original source code for error messages

        Returns:
            The value of the last value-producing top-level statement,
            or NO_VALUE

        Raises:
            InterpreterError: On the first runtime error; calls nested too
                deeply raise RecursionDepthError (E407)
        """
        ctx = create_context(input_text=input_text, source=source, trace=self.trace)
        self.context = ctx

        result = NO_VALUE
        with recursion_limit():
            for stmt in program.statements:
                try:
                    value = self._execute_statement(stmt, ctx)
                except RecursionError:
                    logger.debug("recursion limit hit at %s", stmt.span.start)
                    raise error_recursion_too_deep(*self._where(stmt, ctx)) from None
                if value is not None:
                    result = value
        return result

    # =========================================================================
    # Statements
    # =========================================================================

    def _execute_statement(self, stmt: Statement, ctx: ExecutionContext) -> Optional[Value]:
        """Execute a statement, returning its value if it produces one."""
        if isinstance(stmt, Assignment):
            return self._execute_assignment(stmt, ctx)
        elif isinstance(stmt, FunctionDef):
            self._execute_function_def(stmt, ctx)
            return None
        elif isinstance(stmt, ExpressionStatement):
            return self._evaluate(stmt.expression, ctx)
        else:
            raise TypeError(f"Unknown statement type: {type(stmt).__name__}")

    def _execute_statements(self, statements: List[Statement], ctx: ExecutionContext) -> None:
        for stmt in statements:
            self._execute_statement(stmt, ctx)

    def _execute_assignment(self, stmt: Assignment, ctx: ExecutionContext) -> Value:
        """Bind a global, or write the innermost accumulator slot for `_`."""
        value = self._evaluate(stmt.value, ctx)

        if stmt.is_accumulator:
            slot = ctx.current_accumulator
            old = slot.value
            slot.value = value
        else:
            old = ctx.get_variable(stmt.target)
            ctx.set_variable(stmt.target, value)

        if ctx.tracing:
            ctx.emit(assign_event(stmt.target, old, value, ctx.depth))
        return value

    def _execute_function_def(self, stmt: FunctionDef, ctx: ExecutionContext) -> None:
        ctx.define_function(UserFunction(stmt.name, tuple(stmt.parameters), stmt.body))
        logger.debug("defined function %s/%d", stmt.name, len(stmt.parameters))

    # =========================================================================
    # Expressions
    # =========================================================================

    def _evaluate(self, expr: Expression, ctx: ExecutionContext) -> Value:
        """Evaluate an expression to produce a Value."""
        if isinstance(expr, IntegerLiteral):
            return int_val(expr.value)
        elif isinstance(expr, BooleanLiteral):
            return bool_val(expr.value)
        elif isinstance(expr, TextLiteral):
            return text_val(expr.value)
        elif isinstance(expr, Identifier):
            return self._eval_identifier(expr, ctx)
        elif isinstance(expr, AccumulatorRef):
            return ctx.current_accumulator.value
        elif isinstance(expr, InputRef):
            return ctx.input_grid
        elif isinstance(expr, BinaryOp):
            return self._eval_binary_op(expr, ctx)
        elif isinstance(expr, UnaryOp):
            return self._eval_unary_op(expr, ctx)
        elif isinstance(expr, Call):
            return self._eval_call(expr, ctx)
        elif isinstance(expr, SpecialCall):
            return self._eval_special_call(expr, ctx)
        elif isinstance(expr, IndexAccess):
            return self._eval_index_access(expr, ctx)
        elif isinstance(expr, MethodCall):
            return self._eval_method_call(expr, ctx)
        elif isinstance(expr, ListLiteral):
            return self._eval_list_literal(expr, ctx)
        elif isinstance(expr, RangeLiteral):
            return self._eval_range(expr, ctx)
        elif isinstance(expr, Block):
            return self._eval_block(expr, ctx)
        elif isinstance(expr, (LoopBinding, Slice)):
            raise error_type_mismatch(
                f"'{format_expr(expr)}' is not a value", *self._where(expr, ctx)
            )
        else:
            raise TypeError(f"Unknown expression type: {type(expr).__name__}")

    def _where(self, node: Expression, ctx: ExecutionContext) -> tuple:
        """Span and source line arguments for error factories."""
        return node.span, ctx.get_source_line(node.span)

    def _locate(self, error: InterpreterError, node: Expression, ctx: ExecutionContext) -> None:
        """Attach a position to errors raised by builtins."""
        if error.diagnostic.span is None:
            error.diagnostic.span = node.span
            error.diagnostic.source_line = ctx.get_source_line(node.span)

    def _require_value(self, value: Value, what: str, node: Expression,
                       ctx: ExecutionContext) -> Value:
        if value.is_nothing:
            raise error_type_mismatch(f"{what} has no value", *self._where(node, ctx))
        return value

    def _eval_identifier(self, ident: Identifier, ctx: ExecutionContext) -> Value:
        """Variables first; a bare function name evaluates to the function."""
        value = ctx.get_variable(ident.name)
        if value is not None:
            return value
        func = ctx.get_function(ident.name)
        if func is not None:
            return function_val(func)
        builtin = get_builtin_registry().get_function(ident.name)
        if builtin is not None:
            return function_val(builtin)
        raise error_undefined_name(ident.name, *self._where(ident, ctx), kind="variable")

    def _eval_block(self, block: Block, ctx: ExecutionContext, initial: Value = NO_VALUE) -> Value:
        """Run a block in a fresh accumulator slot and return the slot's value."""
        with ctx.accumulator(initial) as slot:
            self._execute_statements(block.statements, ctx)
        return slot.value

    def _eval_list_literal(self, lst: ListLiteral, ctx: ExecutionContext) -> Value:
        items = []
        for element in lst.elements:
            value = self._evaluate(element, ctx)
            items.append(self._require_value(value, "list element", element, ctx))
        return list_val(items)

    def _eval_range(self, range_expr: RangeLiteral, ctx: ExecutionContext) -> Value:
        """Inclusive range, descending when start > end."""
        start = self._expect_integer(range_expr.start, "range start", ctx)
        end = self._expect_integer(range_expr.end, "range end", ctx)
        step = 1 if start <= end else -1
        return list_val(int_val(n) for n in range(start, end + step, step))

    def _expect_integer(self, expr: Expression, what: str, ctx: ExecutionContext) -> int:
        value = self._evaluate(expr, ctx)
        self._require_value(value, what, expr, ctx)
        if value.kind != ValueKind.INTEGER:
            raise error_type_mismatch(
                f"{what} must be Integer, found {value.type_name}", *self._where(expr, ctx)
            )
        return value.data

    # --- Operators ---

    def _eval_unary_op(self, op: UnaryOp, ctx: ExecutionContext) -> Value:
        """Evaluate ~, ! or unary -."""
        operand = self._evaluate(op.operand, ctx)
        symbol = OPERATOR_SYMBOLS[op.operator]
        self._require_value(operand, f"operand of '{symbol}'", op, ctx)

        if op.operator == TokenType.MINUS and operand.kind == ValueKind.INTEGER:
            return int_val(-operand.data)
        if op.operator == TokenType.BANG and operand.kind == ValueKind.BOOLEAN:
            return bool_val(not operand.data)
        if op.operator == TokenType.TILDE:
            return self._convert_to_integer(operand, op, ctx)

        raise error_type_mismatch(
            f"cannot apply '{symbol}' to {operand.type_name}", *self._where(op, ctx)
        )

    def _convert_to_integer(self, operand: Value, op: UnaryOp, ctx: ExecutionContext) -> Value:
        """~ on Text, Boolean or Integer."""
        if operand.kind == ValueKind.INTEGER:
            return operand
        if operand.kind == ValueKind.BOOLEAN:
            return int_val(1 if operand.data else 0)
        if operand.kind == ValueKind.TEXT:
            if not INTEGER_TEXT.fullmatch(operand.data):
                raise error_conversion_failed(operand.data, *self._where(op, ctx))
            return int_val(int(operand.data))
        raise error_type_mismatch(
            f"cannot convert {operand.type_name} to Integer with '~'", *self._where(op, ctx)
        )

    def _eval_binary_op(self, op: BinaryOp, ctx: ExecutionContext) -> Value:
        """Evaluate a binary operation."""
        if op.operator in (TokenType.AND, TokenType.OR):
            return self._eval_logical(op, ctx)

        left = self._evaluate(op.left, ctx)
        right = self._evaluate(op.right, ctx)

        if op.operator == TokenType.PIPE:
            result = self._compose(left, right, op, ctx)
        else:
            result = self._apply_operator(op, left, right, ctx)

        if ctx.tracing:
            ctx.emit(operation_event(OPERATOR_SYMBOLS[op.operator], left, right, result, ctx.depth))
        return result

    def _eval_logical(self, op: BinaryOp, ctx: ExecutionContext) -> Value:
        """Short-circuit && and || on Boolean operands."""
        symbol = OPERATOR_SYMBOLS[op.operator]
        left = self._expect_boolean(op.left, f"left operand of '{symbol}'", ctx)

        decided = left.data if op.operator == TokenType.OR else not left.data
        if decided:
            if ctx.tracing:
                ctx.emit(operation_event(symbol, left, None, left, ctx.depth))
            return left

        right = self._expect_boolean(op.right, f"right operand of '{symbol}'", ctx)
        if ctx.tracing:
            ctx.emit(operation_event(symbol, left, right, right, ctx.depth))
        return right

    def _expect_boolean(self, expr: Expression, what: str, ctx: ExecutionContext) -> Value:
        value = self._evaluate(expr, ctx)
        self._require_value(value, what, expr, ctx)
        if value.kind != ValueKind.BOOLEAN:
            raise error_type_mismatch(
                f"{what} must be Boolean, found {value.type_name}", *self._where(expr, ctx)
            )
        return value

    def _apply_operator(self, op: BinaryOp, left: Value, right: Value,
                        ctx: ExecutionContext) -> Value:
        """Arithmetic, concatenation and comparison."""
        symbol = OPERATOR_SYMBOLS[op.operator]
        self._require_value(left, f"left operand of '{symbol}'", op.left, ctx)
        self._require_value(right, f"right operand of '{symbol}'", op.right, ctx)

        if op.operator == TokenType.EQ:
            return bool_val(left == right)

        if op.operator == TokenType.PLUS:
            if left.kind == right.kind and left.kind in (ValueKind.INTEGER, ValueKind.TEXT):
                return Value(left.data + right.data, left.kind)
            if left.kind == right.kind == ValueKind.LIST:
                return list_val(left.data + right.data)
            raise self._operand_mismatch(symbol, left, right, op, ctx)

        if left.kind != ValueKind.INTEGER or right.kind != ValueKind.INTEGER:
            raise self._operand_mismatch(symbol, left, right, op, ctx)
        a, b = left.data, right.data

        if op.operator == TokenType.MINUS:
            return int_val(a - b)
        if op.operator == TokenType.STAR:
            return int_val(a * b)
        if op.operator in (TokenType.SLASH, TokenType.PERCENT):
            if b == 0:
                raise error_division_by_zero(symbol, *self._where(op, ctx))
            quotient, remainder = truncating_divmod(a, b)
            return int_val(quotient if op.operator == TokenType.SLASH else remainder)
        if op.operator == TokenType.LT:
            return bool_val(a < b)
        if op.operator == TokenType.GT:
            return bool_val(a > b)
        if op.operator == TokenType.LE:
            return bool_val(a <= b)
        if op.operator == TokenType.GE:
            return bool_val(a >= b)

        raise TypeError(f"Unknown binary operator: {op.operator}")

    def _operand_mismatch(self, symbol: str, left: Value, right: Value,
                          op: BinaryOp, ctx: ExecutionContext) -> InterpreterError:
        return error_type_mismatch(
            f"cannot apply '{symbol}' to {left.type_name} and {right.type_name}",
            *self._where(op, ctx)
        )

    def _compose(self, left: Value, right: Value, op: BinaryOp, ctx: ExecutionContext) -> Value:
        """f |> g builds x -> g(f(x))."""
        for side, value in (("left", left), ("right", right)):
            if value.kind != ValueKind.FUNCTION:
                raise error_type_mismatch(
                    f"{side} side of '|>' must be a Function, found {value.type_name}",
                    *self._where(op, ctx)
                )
        return function_val(ComposedFunction(left, right))

    # --- Calls ---

    def _eval_call(self, call: Call, ctx: ExecutionContext) -> Value:
        """Evaluate an ordinary call; arguments are evaluated eagerly."""
        callee = self._resolve_callee(call, ctx)
        args = [self._evaluate(arg, ctx) for arg in call.arguments]
        return self._call_function(callee, args, call, ctx)

    def _resolve_callee(self, call: Call, ctx: ExecutionContext) -> Value:
        """
        Find what a call invokes.

        Named calls look in the function table, then at a variable holding
        a function, then at the builtins.
        """
        if isinstance(call.callee, Identifier):
            name = call.callee.name
            func = ctx.get_function(name)
            if func is not None:
                return function_val(func)
            value = ctx.get_variable(name)
            if value is not None:
                if value.kind != ValueKind.FUNCTION:
                    raise error_type_mismatch(
                        f"'{name}' is {value.type_name}, not a Function",
                        *self._where(call.callee, ctx)
                    )
                return value
            builtin = get_builtin_registry().get_function(name)
            if builtin is not None:
                return function_val(builtin)
            raise error_undefined_name(name, *self._where(call.callee, ctx), kind="function")

        value = self._evaluate(call.callee, ctx)
        if value.kind != ValueKind.FUNCTION:
            raise error_type_mismatch(
                f"cannot call {value.type_name}", *self._where(call.callee, ctx)
            )
        return value

    def _call_function(self, callee: Value, args: List[Value], call: Expression,
                       ctx: ExecutionContext) -> Value:
        """Invoke a FUNCTION value with already evaluated arguments."""
        func = callee.data
        if len(args) != func.arity:
            raise error_arity_mismatch(func.name, str(func.arity), len(args), *self._where(call, ctx))

        if isinstance(func, UserFunction):
            return self._call_user_function(func, args, ctx)
        if isinstance(func, ComposedFunction):
            intermediate = self._call_function(func.first, args, call, ctx)
            return self._call_function(func.second, [intermediate], call, ctx)
        if isinstance(func, BuiltinFunction):
            try:
                return func.implementation(*args)
            except InterpreterError as e:
                self._locate(e, call, ctx)
                raise
        raise TypeError(f"Unknown callable: {type(func).__name__}")

    def _call_user_function(self, func: UserFunction, args: List[Value],
                            ctx: ExecutionContext) -> Value:
        """Bind parameters over the globals, run the body, restore the globals."""
        with ctx.shadow(dict(zip(func.parameters, args))):
            if isinstance(func.body, Block):
                return self._eval_block(func.body, ctx)
            with ctx.accumulator():
                return self._evaluate(func.body, ctx)

    def _eval_method_call(self, call: MethodCall, ctx: ExecutionContext) -> Value:
        receiver = self._evaluate(call.target, ctx)
        args = [self._evaluate(arg, ctx) for arg in call.arguments]
        try:
            return call_method(receiver, call.method, args)
        except InterpreterError as e:
            self._locate(e, call, ctx)
            raise

    # --- Special forms ---

    def _eval_special_call(self, call: SpecialCall, ctx: ExecutionContext) -> Value:
        """Dispatch if/for/len; each decides which arguments to evaluate."""
        if call.form == SpecialForm.IF:
            return self._eval_if(call, ctx)
        if call.form == SpecialForm.FOR:
            return self._eval_for(call, ctx)
        return self._eval_len(call, ctx)

    def _check_arity(self, call: SpecialCall, allowed: Tuple[int, ...], ctx: ExecutionContext) -> None:
        if len(call.arguments) not in allowed:
            expected = " or ".join(str(n) for n in allowed)
            raise error_arity_mismatch(
                call.form.value, expected, len(call.arguments), *self._where(call, ctx)
            )

    def _eval_if(self, call: SpecialCall, ctx: ExecutionContext) -> Value:
        """if(cond, then, else?) evaluates only the chosen branch."""
        self._check_arity(call, (2, 3), ctx)
        condition = call.arguments[0]
        outcome = self._expect_boolean(condition, "if condition", ctx).data

        if ctx.tracing:
            ctx.emit(condition_event(format_expr(condition), outcome, ctx.depth))

        with ctx.nested():
            if outcome:
                return self._evaluate(call.arguments[1], ctx)
            if len(call.arguments) == 3:
                return self._evaluate(call.arguments[2], ctx)
        return NO_VALUE

    def _eval_for(self, call: SpecialCall, ctx: ExecutionContext) -> Value:
        """
        for(var of seq, body, init?)

        The loop owns one accumulator slot, seeded by init, shared by all
        iterations. A block body runs its statements directly in that slot;
        any other body replaces the slot value with its own value. Without
        init the loop runs for side effects only and yields NO_VALUE.
        """
        self._check_arity(call, (2, 3), ctx)
        binding = call.arguments[0]
        body = call.arguments[1]

        sequence = self._evaluate(binding.sequence, ctx)
        self._require_value(sequence, "for sequence", binding.sequence, ctx)
        if sequence.kind == ValueKind.LIST:
            elements = sequence.data
        elif sequence.kind == ValueKind.TEXT:
            elements = tuple(text_val(ch) for ch in sequence.data)
        else:
            hint = "; use input.rows() to iterate over the grid" if sequence.kind == ValueKind.GRID else ""
            raise error_type_mismatch(
                f"for expects a List or Text, found {sequence.type_name}{hint}",
                *self._where(binding.sequence, ctx)
            )

        has_init = len(call.arguments) == 3
        initial = self._evaluate(call.arguments[2], ctx) if has_init else NO_VALUE

        with ctx.accumulator(initial) as slot, ctx.preserve([binding.variable]):
            for element in elements:
                ctx.set_variable(binding.variable, element)
                if ctx.tracing:
                    ctx.emit(iteration_event(binding.variable, element, ctx.depth))
                with ctx.nested():
                    if isinstance(body, Block):
                        self._execute_statements(body.statements, ctx)
                    else:
                        slot.value = self._evaluate(body, ctx)

        return slot.value if has_init else NO_VALUE

    def _eval_len(self, call: SpecialCall, ctx: ExecutionContext) -> Value:
        """len of a List or Text; [rows, columns] of a grid."""
        self._check_arity(call, (1,), ctx)
        arg = call.arguments[0]
        value = self._evaluate(arg, ctx)
        self._require_value(value, "len argument", arg, ctx)

        if value.kind in (ValueKind.LIST, ValueKind.TEXT):
            return int_val(len(value.data))
        if value.kind == ValueKind.GRID:
            return list_val([int_val(len(value.data)), int_val(grid_columns(value))])
        raise error_type_mismatch(f"len of {value.type_name}", *self._where(arg, ctx))

    # --- Indexing ---

    def _eval_index_access(self, access: IndexAccess, ctx: ExecutionContext) -> Value:
        """Apply index items left to right; grid[rows, col] selects a column."""
        value = self._evaluate(access.target, ctx)
        indices = access.indices

        i = 0
        while i < len(indices):
            item = indices[i]
            if (value.kind == ValueKind.GRID and isinstance(item, Slice)
                    and i + 1 < len(indices) and not isinstance(indices[i + 1], Slice)):
                rows = self._slice(value, item, ctx)
                column = self._expect_integer(indices[i + 1], "column index", ctx)
                value = self._grid_column(rows, column, indices[i + 1], ctx)
                i += 2
                continue

            if isinstance(item, Slice):
                value = self._slice(value, item, ctx)
            else:
                value = self._index(value, item, ctx)
            i += 1

        return value

    def _index(self, value: Value, item: Expression, ctx: ExecutionContext) -> Value:
        if value.kind not in (ValueKind.LIST, ValueKind.TEXT, ValueKind.GRID):
            raise error_type_mismatch(f"cannot index {value.type_name}", *self._where(item, ctx))

        index = self._expect_integer(item, "index", ctx)
        if not 0 <= index < len(value.data):
            raise error_index_out_of_range(index, len(value.data), *self._where(item, ctx))

        element = value.data[index]
        if value.kind == ValueKind.LIST:
            return element
        return text_val(element)

    def _slice(self, value: Value, item: Slice, ctx: ExecutionContext) -> Value:
        """Half-open slice; missing bounds default to 0 and the length."""
        if value.kind not in (ValueKind.LIST, ValueKind.TEXT, ValueKind.GRID):
            raise error_type_mismatch(f"cannot slice {value.type_name}", *self._where(item, ctx))

        length = len(value.data)
        start = 0
        end = length
        if item.start is not None:
            start = self._expect_integer(item.start, "slice start", ctx)
        if item.end is not None:
            end = self._expect_integer(item.end, "slice end", ctx)
        for bound in (start, end):
            if bound < 0:
                raise error_index_out_of_range(bound, length, *self._where(item, ctx))

        return Value(value.data[start:min(end, length)], value.kind)

    def _grid_column(self, rows: Value, column: int, item: Expression,
                     ctx: ExecutionContext) -> Value:
        for row in rows.data:
            if not 0 <= column < len(row):
                raise error_index_out_of_range(column, len(row), *self._where(item, ctx))
        return chars_val("".join(row[column] for row in rows.data))


# Convenience functions for simple execution

def run(
    source: str,
    input_text: Optional[str] = None,
    trace: Optional[TraceSink] = None,
    filename: Optional[str] = None,
) -> Value:
    """
    Tokenize, parse and run source code.

    Raises:
        LexerError, ParserError or InterpreterError on failure
    """
    from ..lexer import tokenize
    from ..parser import parse

    tokens = tokenize(source, filename)
    program = parse(tokens, filename=filename, source=source)
    return Interpreter(trace).run(program, input_text, source)


def compile_and_run(
    source: str,
    input_text: Optional[str] = None,
    trace: Optional[TraceSink] = None,
    filename: Optional[str] = None,
) -> ExecutionResult:
    """
    High-level API to compile and run xmas source code in one call.

        from xmas import compile_and_run

        result = compile_and_run('''
            total = 0
            for(line of input.rows(), { total += len(line) })
            total
        ''', input_text="ab\\ncd\\n")

        if result.success:
            print(result.output)
        else:
            print(result.error_message)

    Args:
        source: xmas source code
        input_text: Optional raw input exposed as the `input` grid
        trace: Optional callable receiving TraceEvents
        filename: Optional filename for error messages

    Returns:
        ExecutionResult with the final value, or the error
    """
    try:
        value = run(source, input_text, trace, filename)
    except XmasError as e:
        return ExecutionResult(
            success=False,
            error_message=str(e),
            diagnostic=e.diagnostic,
        )
    return ExecutionResult(success=True, value=value)
