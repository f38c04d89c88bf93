"""Tokenizer for mission program text.

Produces a flat list of ``Token`` objects ending with an ``EOF`` token. Each
token records whether a line break preceded it, which the parser uses for
automatic semicolon insertion.
"""

from __future__ import annotations

from enum import StrEnum
import re

from pydantic import BaseModel, ConfigDict

from rx_galaxy.errors import ProgramSyntaxError


class TokenKind(StrEnum):
    """Lexical category of a token."""

    NUMBER = "number"
    STRING = "string"
    IDENTIFIER = "identifier"
    KEYWORD = "keyword"
    PUNCTUATOR = "punctuator"
    EOF = "eof"


class Token(BaseModel):
    """A single lexical token.

    Attributes:
        kind: Lexical category.
        value: Source text (decoded contents for strings).
        line: 1-based line of the first character.
        column: 1-based column of the first character.
        newline_before: Whether a line break separates it from the previous token.
    """

    model_config = ConfigDict(frozen=True)

    kind: TokenKind
    value: str
    line: int
    column: int
    newline_before: bool = False


KEYWORDS: frozenset[str] = frozenset(
    {
        "break",
        "const",
        "continue",
        "else",
        "false",
        "for",
        "function",
        "if",
        "import",
        "let",
        "new",
        "null",
        "of",
        "return",
        "throw",
        "true",
        "typeof",
        "undefined",
        "var",
        "while",
    }
)
"""Reserved words. ``of`` is contextual and also allowed as an identifier."""

# Longest first so that ``===`` wins over ``==`` and ``=``.
_PUNCTUATORS: tuple[str, ...] = (
    "===", "!==", "**=", "...",
    "=>", "==", "!=", "<=", ">=", "&&", "||", "??", "++", "--",
    "+=", "-=", "*=", "/=", "%=", "**",
    "{", "}", "(", ")", "[", "]", ";", ",", ".", "<", ">",
    "+", "-", "*", "/", "%", "!", "=", "?", ":",
)  # fmt: skip

_NUMBER = re.compile(r"0[xX][0-9a-fA-F]+|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_IDENTIFIER = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")
_ESCAPES: dict[str, str] = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}


class _Scanner:
    """Cursor over the source text that tracks line and column."""

    def __init__(self, source: str) -> None:
        self.source = source
        self.pos = 0
        self.line = 1
        self.line_start = 0

    @property
    def column(self) -> int:
        return self.pos - self.line_start + 1

    def error(self, message: str) -> ProgramSyntaxError:
        return ProgramSyntaxError(message, self.line, self.column)

    def advance(self, count: int = 1) -> None:
        for _ in range(count):
            if self.source[self.pos] == "\n":
                self.line += 1
                self.line_start = self.pos + 1
            self.pos += 1

    def skip_trivia(self) -> bool:
        """Skip whitespace and comments; return True if a line break was crossed."""
        crossed = False
        src = self.source
        while self.pos < len(src):
            ch = src[self.pos]
            if ch == "\n":
                crossed = True
                self.advance()
            elif ch.isspace():
                self.advance()
            elif src.startswith("//", self.pos):
                while self.pos < len(src) and src[self.pos] != "\n":
                    self.advance()
            elif src.startswith("/*", self.pos):
                end = src.find("*/", self.pos + 2)
                if end == -1:
                    raise self.error("Unterminated comment")
                if "\n" in src[self.pos : end]:
                    crossed = True
                self.advance(end + 2 - self.pos)
            else:
                break
        return crossed

    def read_string(self) -> str:
        quote = self.source[self.pos]
        self.advance()
        chars: list[str] = []
        while True:
            if self.pos >= len(self.source) or self.source[self.pos] == "\n":
                raise self.error("Unterminated string literal")
            ch = self.source[self.pos]
            if ch == quote:
                self.advance()
                return "".join(chars)
            if ch == "\\":
                self.advance()
                if self.pos >= len(self.source):
                    raise self.error("Unterminated string literal")
                escaped = self.source[self.pos]
                chars.append(_ESCAPES.get(escaped, escaped))
                self.advance()
                continue
            chars.append(ch)
            self.advance()


def tokenize(source: str) -> list[Token]:
    """Split *source* into tokens.

    Args:
        source: Mission program text.

    Returns:
        The tokens in source order, terminated by an ``EOF`` token.

    Raises:
        ProgramSyntaxError: On an unexpected character, an unterminated
            string or comment, or a template literal.
    """
    scanner = _Scanner(source)
    tokens: list[Token] = []
    while True:
        newline = scanner.skip_trivia()
        line, column = scanner.line, scanner.column
        if scanner.pos >= len(source):
            tokens.append(Token(kind=TokenKind.EOF, value="", line=line, column=column, newline_before=True))
            return tokens

        ch = source[scanner.pos]
        kind: TokenKind
        if ch in "'\"":
            kind, value = TokenKind.STRING, scanner.read_string()
        elif ch == "`":
            raise scanner.error("Template literals are not supported")
        elif (ch.isdigit() or ch == ".") and (match := _NUMBER.match(source, scanner.pos)):
            kind, value = TokenKind.NUMBER, match.group()
            scanner.advance(len(value))
        elif match := _IDENTIFIER.match(source, scanner.pos):
            value = match.group()
            kind = TokenKind.KEYWORD if value in KEYWORDS else TokenKind.IDENTIFIER
            scanner.advance(len(value))
        else:
            value = next((p for p in _PUNCTUATORS if source.startswith(p, scanner.pos)), "")
            if not value:
                raise scanner.error(f"Invalid or unexpected token {ch!r}")
            kind = TokenKind.PUNCTUATOR
            scanner.advance(len(value))

        tokens.append(Token(kind=kind, value=value, line=line, column=column, newline_before=newline))
