"""Recursive-descent parser for mission programs.

Turns program text into a ``syntax.Program``. The accepted language is the
JavaScript subset mission code is written in; anything outside it is reported
as a ``ProgramSyntaxError`` with the position of the offending token.
"""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import TypeVar

from rx_galaxy import syntax as ast
from rx_galaxy.errors import ProgramSyntaxError
from rx_galaxy.lexer import Token, TokenKind, tokenize

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

_ASSIGNMENT_OPS: frozenset[str] = frozenset({"=", "+=", "-=", "*=", "/=", "%=", "**="})

# Binary operator precedence, loosest first. ``**`` is handled separately
# because it is right-associative.
_BINARY_LEVELS: tuple[frozenset[str], ...] = (
    frozenset({"??"}),
    frozenset({"||"}),
    frozenset({"&&"}),
    frozenset({"===", "!==", "==", "!="}),
    frozenset({"<", ">", "<=", ">="}),
    frozenset({"+", "-"}),
    frozenset({"*", "/", "%"}),
)
_LOGICAL_OPS: frozenset[str] = frozenset({"&&", "||", "??"})


class Parser:
    """Parser over a token list.

    ``_loop_depth`` and ``_function_depth`` track context so that ``break``,
    ``continue`` and ``return`` are only accepted where they are legal.
    """

    def __init__(self, tokens: list[Token], *, allow_return: bool = True) -> None:
        self._tokens = tokens
        self._pos = 0
        self._loop_depth = 0
        self._function_depth = 1 if allow_return else 0

    # -- token helpers ------------------------------------------------------

    @property
    def _current(self) -> Token:
        return self._tokens[self._pos]

    def _peek(self, offset: int = 1) -> Token:
        index = min(self._pos + offset, len(self._tokens) - 1)
        return self._tokens[index]

    def _advance(self) -> Token:
        token = self._current
        if token.kind is not TokenKind.EOF:
            self._pos += 1
        return token

    def _is(self, value: str, kind: TokenKind | None = None) -> bool:
        token = self._current
        if token.value != value:
            return False
        if kind is not None:
            return token.kind is kind
        return token.kind in (TokenKind.PUNCTUATOR, TokenKind.KEYWORD)

    def _match(self, value: str) -> bool:
        if self._is(value):
            self._advance()
            return True
        return False

    def _expect(self, value: str) -> Token:
        if not self._is(value):
            raise self._unexpected()
        return self._advance()

    def _unexpected(self, token: Token | None = None) -> ProgramSyntaxError:
        token = token or self._current
        if token.kind is TokenKind.EOF:
            return ProgramSyntaxError("Unexpected end of input", token.line, token.column)
        return ProgramSyntaxError(f"Unexpected token '{token.value}'", token.line, token.column)

    def _expect_identifier(self) -> str:
        token = self._current
        if token.kind is TokenKind.IDENTIFIER or (token.kind is TokenKind.KEYWORD and token.value == "of"):
            self._advance()
            return token.value
        raise self._unexpected()

    def _consume_semicolon(self) -> None:
        """Consume ``;`` or accept an inserted one before a line break, ``}`` or EOF."""
        if self._match(";"):
            return
        token = self._current
        if token.newline_before or token.kind is TokenKind.EOF or self._is("}"):
            return
        raise self._unexpected()

    # -- statements ---------------------------------------------------------

    def parse_program(self) -> ast.Program:
        body: list[ast.Node] = []
        while self._current.kind is not TokenKind.EOF:
            body.append(self._statement())
        return ast.Program(tuple(body), line=1)

    def _statement(self) -> ast.Node:
        token = self._current
        if token.kind is TokenKind.KEYWORD:
            handler = {
                "const": self._var_declaration,
                "let": self._var_declaration,
                "var": self._var_declaration,
                "function": self._function_declaration,
                "import": self._import,
                "return": self._return,
                "if": self._if,
                "while": self._while,
                "for": self._for,
                "break": self._break,
                "continue": self._continue,
                "throw": self._throw,
            }.get(token.value)
            if handler is not None:
                return handler()
        if self._is("{"):
            return self._block()
        if self._match(";"):
            return ast.Empty(line=token.line)
        expression = self._expression()
        self._consume_semicolon()
        return ast.ExpressionStatement(expression, line=token.line)

    def _block(self) -> ast.Block:
        start = self._expect("{")
        body: list[ast.Node] = []
        while not self._is("}"):
            if self._current.kind is TokenKind.EOF:
                raise self._unexpected()
            body.append(self._statement())
        self._advance()
        return ast.Block(tuple(body), line=start.line)

    def _var_declaration(self, *, consume_semicolon: bool = True) -> ast.VarDeclaration:
        keyword = self._advance()
        declarations: list[tuple[str, ast.Node | None]] = []
        while True:
            name_token = self._current
            name = self._expect_identifier()
            init: ast.Node | None = None
            if self._match("="):
                init = self._assignment()
            elif keyword.value == "const" and not self._is("of", TokenKind.KEYWORD):
                raise ProgramSyntaxError(
                    "Missing initializer in const declaration", name_token.line, name_token.column
                )
            declarations.append((name, init))
            if not self._match(","):
                break
        if consume_semicolon:
            self._consume_semicolon()
        return ast.VarDeclaration(keyword.value, tuple(declarations), line=keyword.line)

    def _function_declaration(self) -> ast.FunctionDeclaration:
        line = self._current.line
        function = self._function_expression(require_name=True)
        return ast.FunctionDeclaration(function, line=line)

    def _import(self) -> ast.Import:
        keyword = self._advance()
        self._expect("{")
        names: list[tuple[str, str]] = []
        while not self._is("}"):
            imported = self._expect_identifier()
            local = imported
            if self._current.kind is TokenKind.IDENTIFIER and self._current.value == "as":
                self._advance()
                local = self._expect_identifier()
            names.append((imported, local))
            if not self._match(","):
                break
        self._expect("}")
        source = self._current
        if not (source.kind is TokenKind.IDENTIFIER and source.value == "from"):
            raise self._unexpected()
        self._advance()
        module = self._current
        if module.kind is not TokenKind.STRING:
            raise self._unexpected()
        self._advance()
        self._consume_semicolon()
        return ast.Import(tuple(names), module.value, line=keyword.line)

    def _return(self) -> ast.Return:
        keyword = self._advance()
        if self._function_depth == 0:
            raise ProgramSyntaxError("Illegal return statement", keyword.line, keyword.column)
        value: ast.Node | None = None
        token = self._current
        if not (self._is(";") or self._is("}") or token.newline_before or token.kind is TokenKind.EOF):
            value = self._expression()
        self._consume_semicolon()
        return ast.Return(value, line=keyword.line)

    def _if(self) -> ast.If:
        keyword = self._advance()
        self._expect("(")
        test = self._expression()
        self._expect(")")
        consequent = self._statement()
        alternate = self._statement() if self._match("else") else None
        return ast.If(test, consequent, alternate, line=keyword.line)

    def _loop_body(self) -> ast.Node:
        self._loop_depth += 1
        try:
            return self._statement()
        finally:
            self._loop_depth -= 1

    def _while(self) -> ast.While:
        keyword = self._advance()
        self._expect("(")
        test = self._expression()
        self._expect(")")
        return ast.While(test, self._loop_body(), line=keyword.line)

    def _for(self) -> ast.Node:
        keyword = self._advance()
        self._expect("(")
        if self._current.value in ("const", "let", "var") and self._current.kind is TokenKind.KEYWORD:
            if self._peek(2).value == "of" and self._peek(2).kind is TokenKind.KEYWORD:
                kind = self._advance().value
                name = self._expect_identifier()
                self._expect("of")
                iterable = self._assignment()
                self._expect(")")
                return ast.ForOf(kind, name, iterable, self._loop_body(), line=keyword.line)
            init: ast.Node | None = self._var_declaration(consume_semicolon=False)
        elif self._is(";"):
            init = None
        else:
            init = ast.ExpressionStatement(self._expression(), line=self._current.line)
        self._expect(";")
        test = None if self._is(";") else self._expression()
        self._expect(";")
        update = None if self._is(")") else self._expression()
        self._expect(")")
        return ast.For(init, test, update, self._loop_body(), line=keyword.line)

    def _break(self) -> ast.Break:
        keyword = self._advance()
        if self._loop_depth == 0:
            raise ProgramSyntaxError("Illegal break statement", keyword.line, keyword.column)
        self._consume_semicolon()
        return ast.Break(line=keyword.line)

    def _continue(self) -> ast.Continue:
        keyword = self._advance()
        if self._loop_depth == 0:
            raise ProgramSyntaxError("Illegal continue statement", keyword.line, keyword.column)
        self._consume_semicolon()
        return ast.Continue(line=keyword.line)

    def _throw(self) -> ast.Throw:
        keyword = self._advance()
        if self._current.newline_before:
            raise ProgramSyntaxError("Illegal newline after throw", keyword.line, keyword.column)
        value = self._expression()
        self._consume_semicolon()
        return ast.Throw(value, line=keyword.line)

    # -- expressions --------------------------------------------------------

    def _expression(self) -> ast.Node:
        return self._assignment()

    def _assignment(self) -> ast.Node:
        if self._starts_arrow():
            return self._arrow()
        start = self._current
        target = self._binary(0)
        if self._is("?"):
            self._advance()
            consequent = self._assignment()
            self._expect(":")
            alternate = self._assignment()
            target = ast.Conditional(target, consequent, alternate, line=start.line)
        if self._current.kind is TokenKind.PUNCTUATOR and self._current.value in _ASSIGNMENT_OPS:
            op_token = self._advance()
            if not isinstance(target, ast.Identifier | ast.Member):
                raise ProgramSyntaxError(
                    "Invalid left-hand side in assignment", op_token.line, op_token.column
                )
            value = self._assignment()
            return ast.Assign(op_token.value, target, value, line=start.line)
        return target

    def _starts_arrow(self) -> bool:
        """Look ahead for ``x =>`` or ``( ... ) =>``."""
        token = self._current
        if token.kind is TokenKind.IDENTIFIER:
            return self._peek().value == "=>" and self._peek().kind is TokenKind.PUNCTUATOR
        if not self._is("("):
            return False
        depth = 0
        offset = 0
        while True:
            tok = self._peek(offset)
            if tok.kind is TokenKind.EOF:
                return False
            if tok.kind is TokenKind.PUNCTUATOR and tok.value in ("(", "[", "{"):
                depth += 1
            elif tok.kind is TokenKind.PUNCTUATOR and tok.value in (")", "]", "}"):
                depth -= 1
                if depth == 0:
                    after = self._peek(offset + 1)
                    return after.kind is TokenKind.PUNCTUATOR and after.value == "=>"
            offset += 1

    def _arrow(self) -> ast.FunctionExpr:
        start = self._current
        params: list[str] = []
        if self._match("("):
            while not self._is(")"):
                params.append(self._expect_identifier())
                if not self._match(","):
                    break
            self._expect(")")
        else:
            params.append(self._expect_identifier())
        arrow = self._expect("=>")
        if arrow.newline_before:
            raise self._unexpected(arrow)
        body = self._function_body() if self._is("{") else self._with_function_scope(self._assignment)
        return ast.FunctionExpr(None, tuple(params), body, is_arrow=True, line=start.line)

    def _with_function_scope(self, parse: Callable[[], _T]) -> _T:
        saved = self._loop_depth, self._function_depth
        self._loop_depth, self._function_depth = 0, self._function_depth + 1
        try:
            return parse()
        finally:
            self._loop_depth, self._function_depth = saved

    def _function_body(self) -> ast.Block:
        return self._with_function_scope(self._block)

    def _function_expression(self, *, require_name: bool = False) -> ast.FunctionExpr:
        keyword = self._expect("function")
        name: str | None = None
        if require_name or self._current.kind is TokenKind.IDENTIFIER:
            name = self._expect_identifier()
        params = self._parameter_list()
        body = self._function_body()
        return ast.FunctionExpr(name, params, body, line=keyword.line)

    def _parameter_list(self) -> tuple[str, ...]:
        self._expect("(")
        params: list[str] = []
        while not self._is(")"):
            params.append(self._expect_identifier())
            if not self._match(","):
                break
        self._expect(")")
        return tuple(params)

    def _binary(self, level: int) -> ast.Node:
        if level == len(_BINARY_LEVELS):
            return self._exponent()
        start = self._current
        left = self._binary(level + 1)
        ops = _BINARY_LEVELS[level]
        while self._current.kind is TokenKind.PUNCTUATOR and self._current.value in ops:
            op = self._advance().value
            right = self._binary(level + 1)
            node_type = ast.Logical if op in _LOGICAL_OPS else ast.Binary
            left = node_type(op, left, right, line=start.line)
        return left

    def _exponent(self) -> ast.Node:
        start = self._current
        base = self._unary()
        if self._is("**"):
            self._advance()
            return ast.Binary("**", base, self._exponent(), line=start.line)
        return base

    def _unary(self) -> ast.Node:
        token = self._current
        if token.kind is TokenKind.PUNCTUATOR and token.value in ("!", "-", "+"):
            self._advance()
            return ast.Unary(token.value, self._unary(), line=token.line)
        if self._is("typeof", TokenKind.KEYWORD):
            self._advance()
            return ast.Unary("typeof", self._unary(), line=token.line)
        if token.kind is TokenKind.PUNCTUATOR and token.value in ("++", "--"):
            self._advance()
            target = self._unary()
            self._check_update_target(target, token)
            return ast.Update(token.value, target, prefix=True, line=token.line)
        return self._postfix()

    def _postfix(self) -> ast.Node:
        expr = self._call_member()
        token = self._current
        if token.kind is TokenKind.PUNCTUATOR and token.value in ("++", "--") and not token.newline_before:
            self._advance()
            self._check_update_target(expr, token)
            return ast.Update(token.value, expr, prefix=False, line=token.line)
        return expr

    @staticmethod
    def _check_update_target(target: ast.Node, token: Token) -> None:
        if not isinstance(target, ast.Identifier | ast.Member):
            raise ProgramSyntaxError(
                "Invalid left-hand side expression in update operation", token.line, token.column
            )

    def _call_member(self) -> ast.Node:
        start = self._current
        if self._is("new", TokenKind.KEYWORD):
            self._advance()
            callee = self._member_only(self._primary())
            args = self._arguments() if self._is("(") else ()
            expr: ast.Node = ast.New(callee, args, line=start.line)
        else:
            expr = self._primary()
        while True:
            if self._is("."):
                self._advance()
                name = self._current
                if name.kind not in (TokenKind.IDENTIFIER, TokenKind.KEYWORD):
                    raise self._unexpected()
                self._advance()
                expr = ast.Member(expr, ast.Literal(name.value, line=name.line), computed=False, line=start.line)
            elif self._is("["):
                self._advance()
                prop = self._expression()
                self._expect("]")
                expr = ast.Member(expr, prop, computed=True, line=start.line)
            elif self._is("("):
                expr = ast.Call(expr, self._arguments(), line=start.line)
            else:
                return expr

    def _member_only(self, expr: ast.Node) -> ast.Node:
        """Parse the member chain of a ``new`` callee (no calls)."""
        while self._is("."):
            self._advance()
            name = self._current
            self._advance()
            expr = ast.Member(expr, ast.Literal(name.value, line=name.line), computed=False, line=name.line)
        return expr

    def _arguments(self) -> tuple[ast.Node, ...]:
        self._expect("(")
        args: list[ast.Node] = []
        while not self._is(")"):
            args.append(self._assignment())
            if not self._match(","):
                break
        self._expect(")")
        return tuple(args)

    def _primary(self) -> ast.Node:
        token = self._current
        line = token.line
        if token.kind is TokenKind.NUMBER:
            self._advance()
            return ast.Literal(_parse_number(token.value), line=line)
        if token.kind is TokenKind.STRING:
            self._advance()
            return ast.Literal(token.value, line=line)
        if token.kind is TokenKind.IDENTIFIER:
            self._advance()
            return ast.Identifier(token.value, line=line)
        if token.kind is TokenKind.KEYWORD:
            literals: dict[str, object] = {"true": True, "false": False, "null": None}
            if token.value in literals:
                self._advance()
                return ast.Literal(literals[token.value], line=line)
            if token.value == "undefined":
                self._advance()
                return ast.Identifier("undefined", line=line)
            if token.value == "of":
                self._advance()
                return ast.Identifier("of", line=line)
            if token.value == "function":
                return self._function_expression()
        if self._is("("):
            self._advance()
            expr = self._expression()
            self._expect(")")
            return expr
        if self._is("["):
            return self._array_literal()
        if self._is("{"):
            return self._object_literal()
        raise self._unexpected()

    def _array_literal(self) -> ast.ArrayLiteral:
        start = self._expect("[")
        elements: list[ast.Node] = []
        while not self._is("]"):
            elements.append(self._assignment())
            if not self._match(","):
                break
        self._expect("]")
        return ast.ArrayLiteral(tuple(elements), line=start.line)

    def _object_literal(self) -> ast.ObjectLiteral:
        start = self._expect("{")
        properties: list[tuple[str, ast.Node]] = []
        while not self._is("}"):
            key_token = self._current
            if key_token.kind in (TokenKind.IDENTIFIER, TokenKind.KEYWORD, TokenKind.STRING):
                key = key_token.value
            elif key_token.kind is TokenKind.NUMBER:
                key = str(_parse_number(key_token.value))
            else:
                raise self._unexpected()
            self._advance()
            if self._match(":"):
                value: ast.Node = self._assignment()
            elif self._is("("):
                params = self._parameter_list()
                body = self._function_body()
                value = ast.FunctionExpr(key, params, body, line=key_token.line)
            elif key_token.kind is TokenKind.IDENTIFIER:
                value = ast.Identifier(key, line=key_token.line)
            else:
                raise self._unexpected()
            properties.append((key, value))
            if not self._match(","):
                break
        self._expect("}")
        return ast.ObjectLiteral(tuple(properties), line=start.line)


def _parse_number(text: str) -> int | float:
    if text[:2] in ("0x", "0X"):
        return int(text, 16)
    if any(c in text for c in ".eE"):
        value = float(text)
        return int(value) if value.is_integer() and abs(value) <= 2**53 else value
    return int(text)


def parse(source: str, *, allow_return: bool = True) -> ast.Program:
    """Parse mission program text.

    Args:
        source: The program text.
        allow_return: Accept top-level ``return`` (the program is treated as a
            function body). Editable mission programs are parsed without it.

    Returns:
        The program's syntax tree.

    Raises:
        ProgramSyntaxError: If the text is not a valid program.
    """
    program = Parser(tokenize(source), allow_return=allow_return).parse_program()
    logger.debug("Parsed program with %d top-level statements", len(program.body))
    return program
