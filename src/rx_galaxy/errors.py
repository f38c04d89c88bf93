"""Exceptions raised while parsing or running mission programs.

Everything a mission program can do wrong is a ``ProgramError``. The
evaluator catches this hierarchy at its boundary and turns it into a failed
``EvaluationOutcome``; nothing below is meant to reach the harness caller.
"""

from __future__ import annotations

from typing import Any


class ProgramError(Exception):
    """Base class for failures of a mission program.

    Attributes:
        js_name: Error name as a mission program sees it (``err.name``).
    """

    js_name = "Error"

    def describe(self) -> str:
        """Return the message shown to the player."""
        return f"{self.js_name}: {self}"


class ProgramSyntaxError(ProgramError):
    """The program text could not be tokenized or parsed.

    Attributes:
        line: 1-based line of the offending token.
        column: 1-based column of the offending token.
    """

    js_name = "SyntaxError"

    def __init__(self, message: str, line: int, column: int) -> None:
        """Initialize with a message and source position.

        Args:
            message: What was wrong.
            line: 1-based line number.
            column: 1-based column number.
        """
        super().__init__(message)
        self.line = line
        self.column = column

    def describe(self) -> str:
        """Return the message with its source position."""
        return f"{self.js_name}: {self} (line {self.line}, column {self.column})"


class ProgramRuntimeError(ProgramError):
    """A language-level error raised by the interpreter (``TypeError`` etc.)."""

    def __init__(self, message: str, js_name: str = "TypeError") -> None:
        """Initialize with a message and the language error name.

        Args:
            message: What went wrong.
            js_name: ``ReferenceError``, ``TypeError`` or ``RangeError``.
        """
        super().__init__(message)
        self.js_name = js_name


class ThrownValue(ProgramError):
    """A value thrown by a ``throw`` statement.

    Attributes:
        value: The thrown language value.
    """

    js_name = "Uncaught"

    def __init__(self, value: Any, text: str) -> None:
        """Initialize with the thrown value and its display text.

        Args:
            value: The thrown value.
            text: Display form of the value, used as the message.
        """
        super().__init__(text)
        self.value = value

    def describe(self) -> str:
        """Return the message shown to the player."""
        return f"Uncaught {self}"


class ExecutionLimitExceeded(ProgramError):
    """The program used up its execution step budget."""

    js_name = "RangeError"
