"""
Recursive descent parser for the xmas language.

Converts a token stream into an Abstract Syntax Tree (AST).
"""

import logging
from typing import List, Optional
from .tokens import (
    Token, TokenType, SourceSpan, COMPOUND_ASSIGNMENTS, is_statement_separator,
)
from .ast import (
    # Expressions
    Expression, IntegerLiteral, BooleanLiteral, TextLiteral, Identifier,
    AccumulatorRef, InputRef, ListLiteral, RangeLiteral, UnaryOp, BinaryOp,
    Call, SpecialForm, SpecialCall, LoopBinding, Slice, IndexAccess,
    MethodCall, Block,
    # Statements
    Statement, Assignment, FunctionDef, ExpressionStatement, Program,
)
from .errors import (
    error_unexpected_token,
    error_unexpected_eof,
    error_malformed_bracket,
    error_invalid_statement,
)

logger = logging.getLogger(__name__)


SPECIAL_FORMS = {
    TokenType.IF: SpecialForm.IF,
    TokenType.FOR: SpecialForm.FOR,
    TokenType.LEN: SpecialForm.LEN,
}


class Parser:
    """
    Recursive descent parser for xmas programs.

    Usage:
        parser = Parser(tokens)
        program = parser.parse_program()

    The parser implements precedence climbing for binary expressions,
    all levels left-associative:
        Lowest:  |>
                 ||
                 &&
                 < > <= >= ==
                 + -
                 * / %
        Highest: unary (~ ! -), then postfix ([...] (...) .method())
    """

    # Operator precedence levels (higher = tighter binding)
    PRECEDENCE = {
        TokenType.PIPE: 1,
        TokenType.OR: 2,
        TokenType.AND: 3,
        TokenType.LT: 4,
        TokenType.GT: 4,
        TokenType.LE: 4,
        TokenType.GE: 4,
        TokenType.EQ: 4,
        TokenType.PLUS: 5,
        TokenType.MINUS: 5,
        TokenType.STAR: 6,
        TokenType.SLASH: 6,
        TokenType.PERCENT: 6,
    }

    UNARY_OPERATORS = (TokenType.TILDE, TokenType.BANG, TokenType.MINUS)

    def __init__(self, tokens: List[Token], filename: Optional[str] = None, source: Optional[str] = None):
        self.tokens = tokens
        self.filename = filename
        self.source = source  # Original source code for error context
        self.pos = 0
        self._lines = source.splitlines() if source is not None else []

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        """Get current token."""
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[self.pos]

    def _peek(self, offset: int = 0) -> Token:
        """Peek at token at current position + offset."""
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[idx]

    def _is_at_end(self) -> bool:
        """Check if at end of tokens."""
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        """Check if current token is of given type."""
        return self._current().type == token_type

    def _check_any(self, *token_types: TokenType) -> bool:
        """Check if current token is any of given types."""
        return self._current().type in token_types

    def _advance(self) -> Token:
        """Consume and return current token."""
        token = self._current()
        if not self._is_at_end():
            self.pos += 1
        return token

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        self._error(expected)

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        """Consume token if it matches any of the given types."""
        if self._current().type in token_types:
            return self._advance()
        return None

    def _skip_separators(self) -> None:
        """Skip NEWLINE and ';' tokens (blank statements)."""
        while is_statement_separator(self._current().type):
            self._advance()

    def _expect_statement_end(self) -> None:
        """A statement ends at a separator, a closing brace or end of file."""
        if self._check_any(TokenType.EOF, TokenType.RBRACE):
            return
        if is_statement_separator(self._current().type):
            self._advance()
            return
        self._error("newline or ';' after statement")

    def _source_line(self, line: int) -> Optional[str]:
        if 1 <= line <= len(self._lines):
            return self._lines[line - 1]
        return None

    def _describe(self, token: Token) -> str:
        if token.type == TokenType.NEWLINE:
            return "newline"
        return f"'{token.lexeme}'"

    def _error(self, expected: str) -> None:
        """Raise a parser error."""
        token = self._current()
        if token.type == TokenType.EOF:
            raise error_unexpected_eof(expected, token.span)
        raise error_unexpected_token(
            expected, self._describe(token), token.span,
            self._source_line(token.span.start.line)
        )

    def _bracket_error(self, message: str, token: Token) -> None:
        raise error_malformed_bracket(
            message, token.span, self._source_line(token.span.start.line)
        )

    def _span_from(self, start: Token) -> SourceSpan:
        """Create a span from start token to current position."""
        prev_pos = max(0, self.pos - 1)
        end_token = self.tokens[prev_pos]
        return SourceSpan(start.span.start, end_token.span.end)

    # =========================================================================
    # Expression Parsing
    # =========================================================================

    def _parse_expression(self) -> Expression:
        """Parse an expression (entry point)."""
        return self._parse_binary_expr(1)

    def _parse_binary_expr(self, min_precedence: int) -> Expression:
        """Parse binary expressions with precedence climbing."""
        left = self._parse_unary_expr()

        while True:
            op_token = self._current()
            precedence = self.PRECEDENCE.get(op_token.type)

            if precedence is None or precedence < min_precedence:
                break

            self._advance()  # consume operator
            right = self._parse_binary_expr(precedence + 1)

            left = BinaryOp(
                span=SourceSpan(left.span.start, right.span.end),
                left=left,
                operator=op_token.type,
                right=right
            )

        return left

    def _parse_unary_expr(self) -> Expression:
        """Parse unary expressions (~, !, -)."""
        if self._check_any(*self.UNARY_OPERATORS):
            op = self._advance()
            operand = self._parse_unary_expr()
            return UnaryOp(
                span=SourceSpan(op.span.start, operand.span.end),
                operator=op.type,
                operand=operand
            )

        return self._parse_postfix_expr()

    def _parse_postfix_expr(self) -> Expression:
        """Parse postfix expressions (calls, method calls, indexing)."""
        expr = self._parse_primary_expr()

        while True:
            if self._check(TokenType.LPAREN):
                args = self._parse_arguments()
                expr = Call(
                    span=SourceSpan(expr.span.start, self.tokens[self.pos - 1].span.end),
                    callee=expr,
                    arguments=args
                )
            elif self._check(TokenType.DOT):
                self._advance()  # consume '.'
                method = self._consume(TokenType.IDENTIFIER, "method name").value
                args = self._parse_arguments()
                expr = MethodCall(
                    span=SourceSpan(expr.span.start, self.tokens[self.pos - 1].span.end),
                    target=expr,
                    method=method,
                    arguments=args
                )
            elif self._check(TokenType.LBRACKET):
                indices = self._parse_index_items()
                expr = IndexAccess(
                    span=SourceSpan(expr.span.start, self.tokens[self.pos - 1].span.end),
                    target=expr,
                    indices=indices
                )
            else:
                break

        return expr

    def _parse_arguments(self) -> List[Expression]:
        """Parse a parenthesized, comma separated argument list."""
        self._consume(TokenType.LPAREN, "'('")

        args = []
        if not self._check(TokenType.RPAREN):
            args.append(self._parse_expression())
            while self._match(TokenType.COMMA):
                if self._check(TokenType.RPAREN):
                    break  # Allow trailing comma
                args.append(self._parse_expression())

        self._consume(TokenType.RPAREN, "')'")
        return args

    def _parse_index_items(self) -> List[Expression]:
        """Parse the bracket of an index or slice: [i], [a..b], [.., col]."""
        start = self._advance()  # consume '['
        if self._check(TokenType.RBRACKET):
            self._bracket_error("index is empty", start)

        items = [self._parse_index_item()]
        while self._match(TokenType.COMMA):
            items.append(self._parse_index_item())

        self._consume(TokenType.RBRACKET, "']'")
        return items

    def _parse_index_item(self) -> Expression:
        """Parse one index item: an expression or a slice."""
        first = self._current()

        if self._match(TokenType.RANGE):
            end = None
            if not self._check_any(TokenType.COMMA, TokenType.RBRACKET):
                end = self._parse_expression()
            return Slice(span=self._span_from(first), start=None, end=end)

        index = self._parse_expression()
        if self._match(TokenType.RANGE):
            end = None
            if not self._check_any(TokenType.COMMA, TokenType.RBRACKET):
                end = self._parse_expression()
            return Slice(span=self._span_from(first), start=index, end=end)

        return index

    def _parse_primary_expr(self) -> Expression:
        """Parse primary expressions (literals, names, grouped, blocks, lists)."""
        token = self._current()

        if token.type == TokenType.INT_LITERAL:
            self._advance()
            return IntegerLiteral(span=token.span, value=token.value)

        if token.type == TokenType.STRING_LITERAL:
            self._advance()
            return TextLiteral(span=token.span, value=token.value)

        if token.type == TokenType.BOOL_LITERAL:
            self._advance()
            return BooleanLiteral(span=token.span, value=token.value)

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            return Identifier(span=token.span, name=token.value)

        if token.type == TokenType.UNDERSCORE:
            self._advance()
            return AccumulatorRef(span=token.span)

        if token.type == TokenType.INPUT:
            self._advance()
            return InputRef(span=token.span)

        if token.type in SPECIAL_FORMS:
            return self._parse_special_call()

        if token.type == TokenType.LPAREN:
            self._advance()
            expr = self._parse_expression()
            self._consume(TokenType.RPAREN, "')'")
            return expr

        if token.type == TokenType.LBRACE:
            return self._parse_block()

        if token.type == TokenType.LBRACKET:
            return self._parse_list_literal()

        if token.type == TokenType.RANGE:
            self._bracket_error("'..' needs a value before it", token)

        self._error("expression")

    def _parse_list_literal(self) -> Expression:
        """Parse a list literal [a, b, c] or an inclusive range [a..b]."""
        start = self._advance()  # consume '['

        if self._check(TokenType.RBRACKET):
            self._advance()
            return ListLiteral(span=self._span_from(start), elements=[])

        if self._check(TokenType.RANGE):
            self._bracket_error("range literal needs a start value", self._current())

        first = self._parse_expression()

        # Range: [start..end]
        if self._check(TokenType.RANGE):
            range_token = self._advance()
            if self._check(TokenType.RBRACKET):
                self._bracket_error("range literal needs an end value", range_token)
            end = self._parse_expression()
            if self._check(TokenType.COMMA):
                self._bracket_error("a range cannot be mixed with list elements", self._current())
            self._consume(TokenType.RBRACKET, "']' to close range")
            return RangeLiteral(span=self._span_from(start), start=first, end=end)

        # Regular list literal
        elements = [first]
        while self._match(TokenType.COMMA):
            if self._check(TokenType.RBRACKET):
                break  # Allow trailing comma
            elements.append(self._parse_expression())
            if self._check(TokenType.RANGE):
                self._bracket_error("a range cannot be mixed with list elements", self._current())

        self._consume(TokenType.RBRACKET, "',' or ']'")
        return ListLiteral(span=self._span_from(start), elements=elements)

    def _parse_special_call(self) -> SpecialCall:
        """Parse if(...), for(var of seq, ...) or len(...)."""
        start = self._advance()
        form = SPECIAL_FORMS[start.type]
        self._consume(TokenType.LPAREN, f"'(' after '{form.value}'")

        args: List[Expression] = []
        if not self._check(TokenType.RPAREN):
            if form == SpecialForm.FOR:
                args.append(self._parse_loop_binding())
            else:
                args.append(self._parse_expression())
            while self._match(TokenType.COMMA):
                if self._check(TokenType.RPAREN):
                    break
                args.append(self._parse_expression())

        self._consume(TokenType.RPAREN, "')'")
        return SpecialCall(span=self._span_from(start), form=form, arguments=args)

    def _parse_loop_binding(self) -> LoopBinding:
        """Parse the `var of sequence` header of a for loop."""
        start = self._current()
        variable = self._consume(TokenType.IDENTIFIER, "loop variable name").value
        self._consume(TokenType.OF, "'of'")
        sequence = self._parse_expression()
        return LoopBinding(span=self._span_from(start), variable=variable, sequence=sequence)

    def _parse_block(self) -> Block:
        """Parse a brace-delimited block of statements."""
        start = self._consume(TokenType.LBRACE, "'{'")
        statements = []

        while True:
            self._skip_separators()
            if self._check(TokenType.RBRACE) or self._is_at_end():
                break
            statements.append(self._parse_statement())
            self._expect_statement_end()

        self._consume(TokenType.RBRACE, "'}'")
        return Block(span=self._span_from(start), statements=statements)

    # =========================================================================
    # Statement Parsing
    # =========================================================================

    def _parse_statement(self) -> Statement:
        """Parse a function definition, an assignment or a bare expression."""
        if self._looks_like_function_def():
            return self._parse_function_def()

        if self._check_any(TokenType.IDENTIFIER, TokenType.UNDERSCORE):
            next_type = self._peek(1).type
            if next_type == TokenType.ASSIGN or next_type in COMPOUND_ASSIGNMENTS:
                return self._parse_assignment()

        expr = self._parse_expression()
        if self._check(TokenType.ASSIGN):
            token = self._current()
            raise error_invalid_statement(
                "invalid assignment target", token.span,
                self._source_line(token.span.start.line)
            )
        return ExpressionStatement(span=expr.span, expression=expr)

    def _looks_like_function_def(self) -> bool:
        """Check for `name(...) =` by scanning to the matching ')'."""
        if not (self._check(TokenType.IDENTIFIER) and self._peek(1).type == TokenType.LPAREN):
            return False

        depth = 0
        offset = 1
        while True:
            token = self._peek(offset)
            if token.type == TokenType.EOF:
                return False
            if token.type == TokenType.LPAREN:
                depth += 1
            elif token.type == TokenType.RPAREN:
                depth -= 1
                if depth == 0:
                    return self._peek(offset + 1).type == TokenType.ASSIGN
            offset += 1

    def _parse_function_def(self) -> FunctionDef:
        """Parse name(a, b) = body."""
        start = self._current()
        name = self._advance().value
        self._consume(TokenType.LPAREN, "'('")

        params: List[str] = []
        if not self._check(TokenType.RPAREN):
            params.append(self._consume(TokenType.IDENTIFIER, "parameter name").value)
            while self._match(TokenType.COMMA):
                params.append(self._consume(TokenType.IDENTIFIER, "parameter name").value)

        self._consume(TokenType.RPAREN, "')'")
        self._consume(TokenType.ASSIGN, "'='")

        if len(set(params)) != len(params):
            raise error_invalid_statement(
                f"duplicate parameter name in definition of '{name}'",
                start.span, self._source_line(start.span.start.line)
            )

        body = self._parse_expression()
        return FunctionDef(span=self._span_from(start), name=name, parameters=params, body=body)

    def _parse_assignment(self) -> Assignment:
        """Parse name = value, _ = value and the compound forms (+= etc.)."""
        target_token = self._advance()
        op_token = self._advance()
        value = self._parse_expression()

        if op_token.type in COMPOUND_ASSIGNMENTS:
            if target_token.type == TokenType.UNDERSCORE:
                current: Expression = AccumulatorRef(span=target_token.span)
            else:
                current = Identifier(span=target_token.span, name=target_token.value)
            value = BinaryOp(
                span=SourceSpan(target_token.span.start, value.span.end),
                left=current,
                operator=COMPOUND_ASSIGNMENTS[op_token.type],
                right=value
            )

        return Assignment(span=self._span_from(target_token), target=target_token.lexeme, value=value)

    def parse_program(self) -> Program:
        """Parse a complete program."""
        start = self._current()
        statements = []

        while True:
            self._skip_separators()
            if self._is_at_end():
                break
            if self._check(TokenType.RBRACE):
                self._error("statement")
            statements.append(self._parse_statement())
            self._expect_statement_end()

        logger.debug("parsed %s: %d statements", self.filename or "<source>", len(statements))
        return Program(span=self._span_from(start), statements=statements)


def parse(tokens: List[Token], filename: Optional[str] = None, source: Optional[str] = None) -> Program:
    """
    Convenience function to parse tokens into a program.

    Args:
        tokens: List of tokens from the lexer
        filename: Optional filename for error messages
        source: Optional original source code for error context

    Returns:
        Parsed Program AST

    Raises:
        ParserError: If parsing fails
    """
    parser = Parser(tokens, filename, source)
    return parser.parse_program()
