"""Sandboxed evaluation of mission program text.

``evaluate`` runs a test program as a function body whose only free names are
the mission primitives (``Observable``, ``of``, ``filter``, ``map``,
``take``) and captures the list it returns. ``run_program`` runs an editable
mission program and captures what it prints with ``console.log``.

Neither function raises for a broken program: every parse error, uncaught
throw or exhausted budget comes back as a failed ``EvaluationOutcome``.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
import logging
import math
from types import MappingProxyType
from typing import Any, ClassVar

from rx_galaxy import operators as ops
from rx_galaxy.errors import ExecutionLimitExceeded, ProgramError
from rx_galaxy.interpreter import DEFAULT_MAX_CALL_DEPTH, DEFAULT_MAX_STEPS, Interpreter
from rx_galaxy.models import EvaluationOutcome
from rx_galaxy.parser import parse
from rx_galaxy.streams import Observable, Operator, of
from rx_galaxy.values import inspect, to_boolean, to_number, to_plain

logger = logging.getLogger(__name__)

MAX_PROGRAM_LENGTH = 20_000
"""Longest accepted program text, in characters."""


def _filter(predicate: Callable[[Any], Any]) -> Operator:
    """``filter`` with the mission language's truthiness."""
    return ops.filter(lambda value: to_boolean(predicate(value)))


def _take(count: Any) -> Operator:
    """``take`` accepting any numeric-like count (``NaN`` counts as zero)."""
    number = to_number(count)
    return ops.take(0 if math.isnan(number) else number)


MISSION_PRIMITIVES: Mapping[str, Any] = MappingProxyType(
    {
        "Observable": Observable,
        "of": of,
        "filter": _filter,
        "map": ops.map,
        "take": _take,
    }
)
"""The immutable primitive set bound into every evaluation."""


class Console:
    """Captures ``console.log`` output of one program run."""

    exposed_members: ClassVar[frozenset[str]] = frozenset({"log", "info", "warn", "error"})

    def __init__(self) -> None:
        self.lines: list[str] = []
        self.values: list[Any] = []

    def log(self, *args: Any) -> None:
        self.lines.append(" ".join(inspect(arg) for arg in args))
        self.values.append(args[0] if len(args) == 1 else list(args))

    info = log
    warn = log
    error = log


def _capture_returned(result: Any) -> list[Any]:
    return to_plain(result) if isinstance(result, list) else []


def _failure(message: str, logs: list[str] | None = None) -> EvaluationOutcome:
    logger.debug("Evaluation failed: %s", message)
    return EvaluationOutcome(ok=False, message=message, logs=logs or [])


def _execute(
    program_text: str,
    bindings: Mapping[str, Any],
    capture: Callable[[Any], Any],
    *,
    allow_return: bool,
    max_steps: int,
    max_call_depth: int,
) -> tuple[Any, str | None]:
    """Parse and run *program_text*; return ``(captured, error_message)``.

    *capture* turns the program's return value into plain data. It runs
    inside the same guard as the program, so a value too deep to convert is
    reported like any other program failure.
    """
    if len(program_text) > MAX_PROGRAM_LENGTH:
        return None, f"Program text exceeds {MAX_PROGRAM_LENGTH} characters"
    interpreter = Interpreter(bindings, max_steps=max_steps, max_call_depth=max_call_depth)
    try:
        program = parse(program_text, allow_return=allow_return)
        result = interpreter.run(program)
        if interpreter.exhausted:
            # The budget error may have been routed to a no-op error observer.
            limit = ExecutionLimitExceeded(f"Execution step limit of {max_steps} exceeded")
            return None, limit.describe()
        return capture(result), None
    except ProgramError as exc:
        return None, exc.describe()
    except RecursionError:
        return None, "RangeError: Maximum call stack size exceeded"
    except MemoryError:
        return None, "RangeError: Out of memory"
    except Exception as exc:
        logger.warning(
            "Unexpected %s while evaluating a program", type(exc).__name__, exc_info=True
        )
        return None, f"InternalError: {str(exc) or type(exc).__name__}"


def evaluate(
    program_text: str,
    bindings: Mapping[str, Any] | None = None,
    *,
    max_steps: int = DEFAULT_MAX_STEPS,
    max_call_depth: int = DEFAULT_MAX_CALL_DEPTH,
) -> EvaluationOutcome:
    """Evaluate a test program and capture the sequence it returns.

    The program is run as a function body in a fresh scope where only
    *bindings* are defined. A returned list is converted to plain data; any
    other return value yields an empty sequence.

    Args:
        program_text: Program source.
        bindings: Names visible to the program; defaults to
            ``MISSION_PRIMITIVES``.
        max_steps: Execution step budget.
        max_call_depth: Maximum nesting of function calls.

    Returns:
        ``ok=True`` with the captured values, or ``ok=False`` with a message.
    """
    scope = MISSION_PRIMITIVES if bindings is None else bindings
    values, error = _execute(
        program_text,
        scope,
        _capture_returned,
        allow_return=True,
        max_steps=max_steps,
        max_call_depth=max_call_depth,
    )
    if error is not None:
        return _failure(error)
    return EvaluationOutcome(ok=True, values=values)


def run_program(
    program_text: str,
    *,
    max_steps: int = DEFAULT_MAX_STEPS,
    max_call_depth: int = DEFAULT_MAX_CALL_DEPTH,
) -> EvaluationOutcome:
    """Run an editable mission program and capture its console output.

    The program may ``import`` the mission primitives and print with
    ``console.log``; top-level ``return`` is not allowed.

    Args:
        program_text: Program source, as shown in the mission editor.
        max_steps: Execution step budget.
        max_call_depth: Maximum nesting of function calls.

    Returns:
        An outcome whose ``values`` are the logged values (one per call) and
        whose ``logs`` are the printed lines. Lines logged before a failure
        are kept on the failed outcome.
    """
    console = Console()
    scope = {**MISSION_PRIMITIVES, "console": console}
    values, error = _execute(
        program_text,
        scope,
        lambda _: to_plain(console.values),
        allow_return=False,
        max_steps=max_steps,
        max_call_depth=max_call_depth,
    )
    if error is not None:
        return _failure(error, console.lines)
    return EvaluationOutcome(ok=True, values=values, logs=console.lines)
