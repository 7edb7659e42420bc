"""
Tests for the xmas interpreter: end-to-end language semantics.
"""

import io
import sys
import textwrap

import pytest
from xmas import (
    run, compile_and_run, tokenize, parse, Interpreter, NO_VALUE,
    TraceCollector, TraceKind, StreamTraceSink, format_value,
    UndefinedNameError, TypeMismatchError, IndexOutOfRangeError,
    DivisionByZeroError, ConversionError, ArityMismatchError,
)
from xmas.runtime import (
    int_val, bool_val, text_val, list_val, chars_val, get_builtin_registry,
)


def evaluate(source, input_text=None, trace=None):
    """Run dedented source and return its final value."""
    return run(textwrap.dedent(source).strip(), input_text, trace)


def ints(*numbers):
    return list_val(int_val(n) for n in numbers)


GRID = "abc\ndef\nghi\n"


class TestScenarios:
    """Small programs covering the main language features."""

    def test_comparison_chain(self):
        """5 < 10 == true"""
        assert evaluate("5 < 10 == true") == bool_val(True)

    def test_integer_division(self):
        """Division truncates and % gives the remainder."""
        assert evaluate("10 / 3") == int_val(3)
        assert evaluate("10 % 3") == int_val(1)

    def test_text_conversion(self):
        """~ binds tighter than *."""
        assert evaluate('~"123" * 2') == int_val(246)

    def test_list_concatenation(self):
        """+ joins lists."""
        result = evaluate("[1, 2] + [3, 4]")
        assert result == ints(1, 2, 3, 4)
        assert format_value(result) == "[1, 2, 3, 4]"

    def test_pipe_composition(self):
        """A composed function applies left then right."""
        source = "addOne(x) = x + 1; addTwo = addOne |> addOne; addTwo(5)"
        assert evaluate(source) == int_val(7)

    def test_grid_access(self):
        """len of a grid is [rows, cols]; two indices pick a character."""
        assert evaluate("len(input)", "abc\ndef") == ints(2, 3)
        assert evaluate("input[1, 1]", "abc\ndef") == text_val("e")


class TestArithmetic:
    """Test integer arithmetic."""

    @pytest.mark.parametrize("source,expected", [
        ("-7 / 2", -3),
        ("-7 % 2", -1),
        ("7 % -2", 1),
        ("-7 % -2", -1),
        ("2 + 3 * 4", 14),
        ("(2 + 3) * 4", 20),
        ("10 - 3 - 2", 5),
        ("-5 + 2", -3),
        ("--5", 5),
    ])
    def test_expressions(self, source, expected):
        """Integer expressions evaluate with the usual precedence."""
        assert evaluate(source) == int_val(expected)

    @pytest.mark.parametrize("a", [-7, 7, 13, -13, 0])
    @pytest.mark.parametrize("b", [-3, -2, 2, 3])
    def test_division_identity(self, a, b):
        """(a / b) * b + a % b == a, and |a % b| < |b|."""
        assert evaluate(f"({a} / {b}) * {b} + {a} % {b}") == int_val(a)
        remainder = evaluate(f"{a} % {b}").data
        assert abs(remainder) < abs(b)
        assert remainder == 0 or (remainder < 0) == (a < 0)

    def test_division_by_zero(self):
        """/ and % by zero fail."""
        with pytest.raises(DivisionByZeroError):
            evaluate("1 / 0")
        with pytest.raises(DivisionByZeroError):
            evaluate("5 % 0")

    def test_text_concatenation(self):
        """+ joins text."""
        assert evaluate('"ab" + "cd"') == text_val("abcd")

    @pytest.mark.parametrize("source", [
        '1 + "a"',
        '[1] + "a"',
        '"a" * 2',
        '"a" < "b"',
        "true + 1",
        '-"a"',
    ])
    def test_mismatched_operands(self, source):
        """Operators reject operand kinds they do not support."""
        with pytest.raises(TypeMismatchError):
            evaluate(source)


class TestEqualityAndLogic:
    """Test ==, &&, || and !."""

    @pytest.mark.parametrize("source,expected", [
        ("[1, [2, 3]] == [1, [2, 3]]", True),
        ("[1, 2] == [2, 1]", False),
        ("1 == true", False),
        ('"1" == 1', False),
        ('"ab" == "a" + "b"', True),
        ("true && false", False),
        ("false || true", True),
        ("!true", False),
        ("!(1 > 2)", True),
    ])
    def test_boolean_results(self, source, expected):
        """Equality is structural and logic works on Booleans."""
        assert evaluate(source) == bool_val(expected)

    def test_logical_operands_must_be_boolean(self):
        """&&, || and ! need Boolean operands."""
        for source in ("1 && true", "true && 1", "0 || false", "!1"):
            with pytest.raises(TypeMismatchError):
                evaluate(source)

    def test_short_circuit(self):
        """The right side is skipped when the left decides the result."""
        assert evaluate("false && (1 / 0 == 1)") == bool_val(False)
        assert evaluate("true || undefinedName") == bool_val(True)
        assert evaluate("false && 1") == bool_val(False)


class TestConversion:
    """Test the ~ operator."""

    @pytest.mark.parametrize("source,expected", [
        ("~true", 1),
        ("~false", 0),
        ('~"-42"', -42),
        ('~"+8"', 8),
        ('~" 7 "', 7),
        ("~5", 5),
    ])
    def test_conversions(self, source, expected):
        """Text, Boolean and Integer convert to Integer."""
        assert evaluate(source) == int_val(expected)

    @pytest.mark.parametrize("source", ['~"12a"', '~""', '~"1 2"'])
    def test_bad_text(self, source):
        """Text that is not an integer fails to convert."""
        with pytest.raises(ConversionError):
            evaluate(source)

    def test_list_does_not_convert(self):
        """~ on a list is a type mismatch."""
        with pytest.raises(TypeMismatchError):
            evaluate("~[1]")


class TestRangesAndIndexing:
    """Test ranges, indexing and slicing."""

    @pytest.mark.parametrize("source,expected", [
        ("[1..5]", (1, 2, 3, 4, 5)),
        ("[5..1]", (5, 4, 3, 2, 1)),
        ("[3..3]", (3,)),
        ("[-2..2]", (-2, -1, 0, 1, 2)),
    ])
    def test_ranges(self, source, expected):
        """Ranges are inclusive and may descend."""
        assert evaluate(source) == ints(*expected)

    def test_range_needs_integers(self):
        """Range bounds must be integers."""
        with pytest.raises(TypeMismatchError):
            evaluate('["a"..3]')

    @pytest.mark.parametrize("source,expected", [
        ("[10, 20, 30][1]", int_val(20)),
        ("[1, 2, 3, 4][..2]", ints(1, 2)),
        ("[1, 2, 3, 4][2..]", ints(3, 4)),
        ("[1, 2, 3][..]", ints(1, 2, 3)),
        ("[1, 2, 3][1..10]", ints(2, 3)),
        ("[1, 2, 3][2..1]", ints()),
        ('"hello"[1]', text_val("e")),
        ('"hello"[1..3]', text_val("el")),
        ("[[1, 2], [3, 4]][1][0]", int_val(3)),
        ("[[1, 2], [3, 4]][1, 0]", int_val(3)),
    ])
    def test_index_and_slice(self, source, expected):
        """Indices are zero based; slices are half open and clamped."""
        assert evaluate(source) == expected

    @pytest.mark.parametrize("source", ["[10][1]", "[10][-1]", '""[0]', "[1, 2][-1..]"])
    def test_out_of_range(self, source):
        """Out-of-range and negative indices fail."""
        with pytest.raises(IndexOutOfRangeError):
            evaluate(source)

    def test_index_must_be_integer(self):
        """Index values must be integers."""
        with pytest.raises(TypeMismatchError):
            evaluate("[1, 2][true]")

    def test_cannot_index_integer(self):
        """Integers are not indexable."""
        with pytest.raises(TypeMismatchError):
            evaluate("5[0]")

    @pytest.mark.parametrize("i,j,k", [(0, 1, 4), (0, 0, 4), (1, 3, 3), (2, 2, 2)])
    def test_slices_concatenate(self, i, j, k):
        """L[i..j] + L[j..k] == L[i..k]."""
        source = f"L = [10, 20, 30, 40]\nL[{i}..{j}] + L[{j}..{k}] == L[{i}..{k}]"
        assert evaluate(source) == bool_val(True)

    def test_full_slice_is_identity(self):
        """L[0..len(L)] == L"""
        assert evaluate("L = [4, 5, 6]\nL[0..len(L)] == L") == bool_val(True)


class TestInputGrid:
    """Test the input grid."""

    def test_row_is_text(self):
        """A single index gives the row as text."""
        assert evaluate("input[0]", GRID) == text_val("abc")

    def test_column(self):
        """input[.., c] is a column of characters."""
        assert evaluate("input[.., 1]", GRID) == chars_val("beh")

    def test_partial_column(self):
        """A row slice before the column restricts the rows."""
        assert evaluate("input[1.., 0]", GRID) == chars_val("dg")

    def test_character(self):
        """input[r, c] is one character."""
        assert evaluate("input[2, 2]", GRID) == text_val("i")

    def test_row_slice_is_grid(self):
        """Slicing rows keeps a grid."""
        assert evaluate("len(input[0..2])", GRID) == ints(2, 3)

    def test_rows_method(self):
        """input.rows() is a list of character lists."""
        assert evaluate("input.rows()[1][2]", GRID) == text_val("f")
        assert evaluate("len(input.rows())", GRID) == int_val(3)

    def test_row_converts_to_integer(self):
        """A sliced row can be converted with ~."""
        assert evaluate("~input[0][1..]", "x12\n") == int_val(12)

    def test_empty_input(self):
        """Without input the grid is empty."""
        assert evaluate("len(input)") == ints(0, 0)

    @pytest.mark.parametrize("source", ["input[3]", "input[0, 5]", "input[.., 3]"])
    def test_out_of_range(self, source):
        """Rows and columns are bounds checked."""
        with pytest.raises(IndexOutOfRangeError):
            evaluate(source, GRID)

    def test_short_row_in_column(self):
        """A column past the end of a short row fails."""
        with pytest.raises(IndexOutOfRangeError):
            evaluate("input[.., 2]", "abc\nd\n")

    def test_method_errors(self):
        """Bad method calls report the right error kind."""
        with pytest.raises(TypeMismatchError):
            evaluate("[1].rows()")
        with pytest.raises(UndefinedNameError):
            evaluate("input.cols()", GRID)
        with pytest.raises(ArityMismatchError):
            evaluate("input.rows(1)", GRID)

    def test_for_over_grid_needs_rows(self):
        """Iterating the grid directly is rejected."""
        with pytest.raises(TypeMismatchError) as exc:
            evaluate("for(r of input, 1)", GRID)
        assert "input.rows()" in str(exc.value)


class TestBlocksAndAccumulator:
    """Test blocks, `_` and program values."""

    def test_block_value(self):
        """A block's value is its final accumulator."""
        assert evaluate("x = { _ = 5 }\nx") == int_val(5)

    def test_multiline_block(self):
        """Blocks can use globals and write `_` several times."""
        source = """
            x = {
                y = 2
                _ = y * 3
                _ = _ + 1
            }
            x
        """
        assert evaluate(source) == int_val(7)

    def test_block_without_accumulator(self):
        """A block that never writes `_` has no value."""
        assert evaluate("{ y = 1 }") is NO_VALUE

    def test_block_assignments_are_global(self):
        """Variables assigned in a block are globals."""
        assert evaluate("{ y = 1 }\ny") == int_val(1)

    def test_top_level_accumulator(self):
        """`_` can be used at top level."""
        assert evaluate("_ = 42\n_") == int_val(42)

    def test_unset_accumulator_has_no_value(self):
        """Reading an unwritten `_` in an operator fails."""
        with pytest.raises(TypeMismatchError):
            evaluate("_ + 1")

    def test_program_value_is_last_value(self):
        """Assignments count as values; definitions do not."""
        assert evaluate("x = 5") == int_val(5)
        assert evaluate("1\nf(x) = x") == int_val(1)
        assert evaluate("f(x) = x") is NO_VALUE
        assert evaluate("") is NO_VALUE

    def test_compound_assignments(self):
        """+=, -=, *=, /= and %= update in place."""
        source = """
            x = 10
            x += 5
            x -= 3
            x *= 2
            x /= 4
            x %= 4
            x
        """
        assert evaluate(source) == int_val(2)

    def test_no_value_in_list(self):
        """NO_VALUE cannot be stored in a list."""
        with pytest.raises(TypeMismatchError):
            evaluate("[if(false, 1)]")

    def test_no_value_comparison(self):
        """Comparing NO_VALUE fails."""
        with pytest.raises(TypeMismatchError) as exc:
            evaluate("x = if(false, 1)\nx == 1")
        assert "has no value" in str(exc.value)


class TestIf:
    """Test the if special form."""

    @pytest.mark.parametrize("source,expected", [
        ("if(1 < 2, 10, 20)", int_val(10)),
        ("if(false, 10, 20)", int_val(20)),
        ("if(true, { _ = 7 })", int_val(7)),
        ('if(true, "yes", 0)', text_val("yes")),
    ])
    def test_branches(self, source, expected):
        """The chosen branch's value is returned."""
        assert evaluate(source) == expected

    def test_missing_else(self):
        """A false condition without else has no value."""
        assert evaluate("if(false, 10)") is NO_VALUE

    def test_only_chosen_branch_runs(self):
        """The other branch is never evaluated."""
        assert evaluate("if(true, 1, undefinedThing)") == int_val(1)
        assert evaluate("if(false, 1 / 0, 2)") == int_val(2)

    def test_condition_must_be_boolean(self):
        """Integers are not conditions."""
        with pytest.raises(TypeMismatchError):
            evaluate("if(1, 2, 3)")

    @pytest.mark.parametrize("source", ["if(true)", "if(true, 1, 2, 3)"])
    def test_arity(self, source):
        """if takes two or three arguments."""
        with pytest.raises(ArityMismatchError):
            evaluate(source)


class TestFor:
    """Test the for special form."""

    def test_sum(self):
        """The accumulator carries across iterations."""
        assert evaluate("for(n of [1, 2, 3], { _ = _ + n }, 0)") == int_val(6)

    def test_empty_sequence_returns_init(self):
        """With nothing to iterate the result is init."""
        assert evaluate("for(n of [], { _ = _ + n }, 42)") == int_val(42)

    def test_text_sequence(self):
        """Text iterates by character."""
        assert evaluate('for(c of "abc", { _ = c + _ }, "")') == text_val("cba")

    def test_expression_body(self):
        """A bare expression body sets the accumulator."""
        assert evaluate("for(n of [1, 2, 3], _ + n, 0)") == int_val(6)

    def test_compound_accumulator(self):
        """_ += works inside loop bodies."""
        assert evaluate("for(n of [1, 2, 3], { _ += n }, 0)") == int_val(6)

    def test_without_init(self):
        """Without init the loop has no value."""
        assert evaluate("for(n of [1, 2], { _ = n })") is NO_VALUE

    def test_side_effects_without_init(self):
        """Globals written in the body persist."""
        assert evaluate("for(n of [1, 2, 3], { total = n })\ntotal") == int_val(3)

    def test_loop_variable_restored(self):
        """The loop variable gets its previous value back."""
        source = "n = 100\nfor(n of [1, 2, 3], { _ = _ + n }, 0)\nn"
        assert evaluate(source) == int_val(100)

    def test_loop_variable_unbound_after(self):
        """A new loop variable does not outlive the loop."""
        with pytest.raises(UndefinedNameError):
            evaluate("for(k of [1], { _ = k }, 0)\nk")

    def test_nested_loops(self):
        """Inner loops have their own accumulator."""
        source = "for(i of [1..3], { _ = _ + for(j of [1..i], { _ = _ + 1 }, 0) }, 0)"
        assert evaluate(source) == int_val(6)

    def test_build_list(self):
        """Loops can build lists."""
        assert evaluate("for(n of [1..4], { _ = _ + [n * n] }, [])") == ints(1, 4, 9, 16)

    def test_rows_of_input(self):
        """input.rows() can be iterated."""
        source = "for(r of input.rows(), { _ = _ + len(r) }, 0)"
        assert evaluate(source, "ab\ncde\n") == int_val(5)

    def test_sequence_must_be_iterable(self):
        """Integers are not sequences."""
        with pytest.raises(TypeMismatchError):
            evaluate("for(n of 5, 1)")

    def test_arity(self):
        """for takes two or three arguments."""
        with pytest.raises(ArityMismatchError):
            evaluate("for(n of [1])")


class TestFunctions:
    """Test user functions, builtins and calls."""

    def test_simple_function(self):
        """square(7)"""
        assert evaluate("square(n) = n * n\nsquare(7)") == int_val(49)

    def test_block_body(self):
        """A block body returns its accumulator."""
        source = "sum(xs) = { _ = for(x of xs, { _ = _ + x }, 0) }\nsum([4, 5, 6])"
        assert evaluate(source) == int_val(15)

    def test_parameters_restore_globals(self):
        """A parameter hides a global only during the call."""
        assert evaluate("x = 1\nf(x) = x * 10\nf(5) + x") == int_val(51)

    def test_parameters_do_not_leak(self):
        """Parameters are unbound after the call."""
        with pytest.raises(UndefinedNameError):
            evaluate("f(p) = p\nf(3)\np")

    def test_globals_visible(self):
        """Bodies read globals."""
        assert evaluate("base = 10\naddBase(n) = n + base\naddBase(5)") == int_val(15)

    def test_globals_writable(self):
        """Bodies can assign globals."""
        assert evaluate("setG() = { g = 5 }\nsetG()\ng") == int_val(5)

    def test_call_accumulator_is_isolated(self):
        """A call's `_` does not touch the caller's."""
        assert evaluate("f() = { _ = 1 }\n_ = 10\nf()\n_") == int_val(10)

    def test_recursion(self):
        """Functions can call themselves."""
        fact = "fact(n) = if(n <= 1, 1, n * fact(n - 1))\nfact(10)"
        assert evaluate(fact) == int_val(3628800)
        fib = "fib(n) = if(n < 2, n, fib(n - 1) + fib(n - 2))\nfib(15)"
        assert evaluate(fib) == int_val(610)

    def test_deep_recursion(self):
        """A few hundred nested calls still evaluate."""
        source = "f(n) = if(n == 0, 0, f(n - 1) + 1)\nf(200)"
        assert evaluate(source) == int_val(200)

    def test_runaway_recursion(self):
        """Unbounded recursion fails with E407 at the calling statement."""
        result = compile_and_run("f(n) = f(n + 1)\nx = 1\nf(0)")
        assert result.success is False
        assert result.diagnostic.code == "E407"
        assert result.diagnostic.span.start.line == 3
        assert "recursion too deep" in result.error_message

    def test_recursion_limit_restored(self):
        """The Python recursion limit is put back after a run."""
        before = sys.getrecursionlimit()
        compile_and_run("f(n) = f(n + 1)\nf(0)")
        assert sys.getrecursionlimit() == before

    def test_redefinition(self):
        """The latest definition wins."""
        assert evaluate("f() = 1\nf() = 2\nf()") == int_val(2)

    def test_arity_mismatch(self):
        """Calls must pass the right number of arguments."""
        with pytest.raises(ArityMismatchError) as exc:
            evaluate("f(a, b) = a + b\nf(1)")
        assert "'f' expects 2 argument(s), got 1" in str(exc.value)

    def test_undefined_function(self):
        """Calling an unknown name fails."""
        with pytest.raises(UndefinedNameError):
            evaluate("nope(1)")

    def test_calling_non_function(self):
        """A variable holding an integer cannot be called."""
        with pytest.raises(TypeMismatchError):
            evaluate("x = 5\nx(1)")

    def test_function_as_value(self):
        """A function name evaluates to a function value."""
        assert format_value(evaluate("f(x) = x\nf")) == "<function f/1>"

    @pytest.mark.parametrize("source,expected", [
        ("max(3, 9)", 9),
        ("min(3, 9)", 3),
        ("floor(7) + ceil(3)", 10),
        ("floor(-7)", -7),
        ("ceil(-7)", -7),
    ])
    def test_builtins(self, source, expected):
        """Builtins are ordinary calls."""
        assert evaluate(source) == int_val(expected)

    def test_user_function_shadows_builtin(self):
        """A definition named like a builtin wins."""
        assert evaluate("max(a, b) = 0\nmax(3, 9)") == int_val(0)

    def test_builtin_as_value(self):
        """Builtins can be stored and called through a variable."""
        assert evaluate("m = max\nm(2, 8)") == int_val(8)

    def test_builtin_errors_have_position(self):
        """Errors inside builtins point at the call."""
        with pytest.raises(TypeMismatchError) as exc:
            evaluate('x = 1\ny = max("a", x)')
        assert exc.value.span is not None
        assert exc.value.span.start.line == 2

    def test_builtin_arity(self):
        """Builtins check their argument count."""
        with pytest.raises(ArityMismatchError):
            evaluate("max(1)")

    def test_pipe_law(self):
        """(f |> g)(x) == g(f(x))"""
        source = "f(x) = x * 2\ng(x) = x + 3\n(f |> g)(5) == g(f(5))"
        assert evaluate(source) == bool_val(True)

    def test_pipe_chain(self):
        """Longer chains apply left to right."""
        source = "f(x) = x * 2\ng(x) = x + 3\nh = f |> g |> f\nh(1)"
        assert evaluate(source) == int_val(10)

    def test_pipe_needs_functions(self):
        """Both sides of |> must be functions."""
        with pytest.raises(TypeMismatchError):
            evaluate("1 |> 2")

    def test_len_arguments(self):
        """len works on lists and text only, with one argument."""
        assert evaluate("len([1, 2, 3])") == int_val(3)
        assert evaluate('len("hello")') == int_val(5)
        with pytest.raises(TypeMismatchError):
            evaluate("len(5)")
        with pytest.raises(ArityMismatchError):
            evaluate("len()")


class TestErrors:
    """Test runtime error reporting."""

    def test_undefined_variable_position(self):
        """Errors carry the line and column of the failing name."""
        with pytest.raises(UndefinedNameError) as exc:
            evaluate("x = 1\ny = x + z")
        assert exc.value.code == "E401"
        assert exc.value.span.start.line == 2
        assert exc.value.span.start.column == 9
        assert "undefined variable 'z'" in str(exc.value)

    @pytest.mark.parametrize("source,code", [
        ("z", "E401"),
        ('1 + "a"', "E402"),
        ("[1][5]", "E403"),
        ("1 / 0", "E404"),
        ('~"x"', "E405"),
        ("if(true)", "E406"),
        ("f(n) = f(n + 1); f(0)", "E407"),
    ])
    def test_error_codes(self, source, code):
        """Each runtime error kind has its code."""
        result = compile_and_run(source)
        assert not result.success
        assert result.diagnostic.code == code
        assert code in result.error_message

    def test_diagnostic_to_json(self):
        """Diagnostics convert to plain dicts for tooling."""
        data = compile_and_run("x = 1\ny = z").diagnostic.to_json()
        assert data["code"] == "E401"
        assert data["severity"] == "error"
        assert data["message"] == "undefined variable 'z'"
        assert data["hints"] == []
        assert data["range"]["start"] == {"line": 2, "column": 5, "offset": 10}
        assert data["range"]["end"]["column"] == 6

    def test_diagnostic_json_without_span(self):
        """Diagnostics without a position have no range."""
        func = get_builtin_registry().get_function("max")
        with pytest.raises(TypeMismatchError) as exc:
            func.implementation(text_val("a"), int_val(1))
        assert "range" not in exc.value.diagnostic.to_json()

    def test_compile_and_run_success(self):
        """Successful runs expose the value and its rendering."""
        result = compile_and_run("addOne(x) = x + 1; addOne(41)")
        assert result.success
        assert result.value == int_val(42)
        assert result.output == "42"

    def test_syntax_errors_are_reported(self):
        """Lexer and parser errors come back as failed results."""
        assert compile_and_run("x = @").diagnostic.code == "E001"
        assert compile_and_run("x = (1").diagnostic.code == "E102"

    def test_interpreter_keeps_context(self):
        """The interpreter exposes the globals of its latest run."""
        source = "a = 1\nb = a + 1"
        interpreter = Interpreter()
        interpreter.run(parse(tokenize(source), source=source), source=source)
        assert interpreter.context.get_variable("b") == int_val(2)


class TestTrace:
    """Test execution tracing."""

    def test_assignment_and_operation(self):
        """Operations are reported before the assignment they feed."""
        collector = TraceCollector()
        evaluate("x = 1 + 2", trace=collector)
        assert collector.lines() == ["1 + 2 = 3", "x: undefined → 3"]

    def test_condition(self):
        """if reports its condition and outcome."""
        collector = TraceCollector()
        evaluate("if(1 < 2, 1, 2)", trace=collector)
        conditions = collector.of_kind(TraceKind.CONDITION)
        assert [e.format() for e in conditions] == ["if 1 < 2: true"]

    def test_loop_depth(self):
        """Loop bodies are one level deeper than the loop."""
        collector = TraceCollector()
        evaluate("for(n of [1, 2], { _ = _ + n }, 0)", trace=collector)
        assert [(e.kind, e.depth) for e in collector.events] == [
            (TraceKind.ITERATION, 0),
            (TraceKind.OPERATION, 1),
            (TraceKind.ASSIGN, 1),
            (TraceKind.ITERATION, 0),
            (TraceKind.OPERATION, 1),
            (TraceKind.ASSIGN, 1),
        ]
        assert collector.lines()[2] == "_: 0 → 1"

    def test_stream_sink(self):
        """StreamTraceSink writes DEBUG lines."""
        stream = io.StringIO()
        evaluate('for(c of "ab", 1)', trace=StreamTraceSink(stream))
        assert stream.getvalue().splitlines() == ['DEBUG: for c: "a"', 'DEBUG: for c: "b"']

    def test_trace_does_not_change_result(self):
        """The same program gives the same value with and without tracing."""
        source = "fib(n) = if(n < 2, n, fib(n - 1) + fib(n - 2))\nfib(8)"
        assert evaluate(source, trace=TraceCollector()) == evaluate(source)

    def test_short_circuit_is_traced(self):
        """A decided && or || still reports its operation."""
        collector = TraceCollector()
        evaluate("false && undefinedName", trace=collector)
        assert collector.lines() == ["false && (skipped) = false"]
        collector = TraceCollector()
        evaluate("true || false", trace=collector)
        assert collector.lines() == ["true || (skipped) = true"]
        collector = TraceCollector()
        evaluate("true && false", trace=collector)
        assert collector.lines() == ["true && false = false"]
