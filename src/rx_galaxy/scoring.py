"""Trace comparison and result aggregation for mission tests.

Provides the ``TraceComparator`` protocol, the structural ``traces_equal``
comparison the harness uses by default, and pure functions deciding whether
a list of ``TestResult`` completes a mission.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import math
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from rx_galaxy.models import TestResult


@runtime_checkable
class TraceComparator(Protocol):
    """Protocol for deciding whether an actual trace matches the expected one.

    Any callable with the signature
    ``(actual: Sequence[Any], expected: Sequence[Any]) -> bool`` satisfies it.
    """

    def __call__(  # noqa: D102
        self, actual: Sequence[Any], expected: Sequence[Any]
    ) -> bool: ...


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def values_equal(left: Any, right: Any) -> bool:
    """Structural equality of two plain values.

    Numbers compare numerically (``2 == 2.0``) and ``NaN`` equals ``NaN``;
    booleans never equal numbers; mappings compare key by key and sequences
    element by element, in order.
    """
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if _is_number(left) and _is_number(right):
        if isinstance(left, float) and isinstance(right, float) and math.isnan(left) and math.isnan(right):
            return True
        return bool(left == right)
    if left is None or right is None:
        return left is None and right is None
    if isinstance(left, str) or isinstance(right, str):
        return isinstance(left, str) and isinstance(right, str) and left == right
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        if set(left) != set(right):
            return False
        return all(values_equal(left[key], right[key]) for key in left)
    if isinstance(left, Sequence) and isinstance(right, Sequence):
        return traces_equal(left, right)
    return bool(left == right)


def traces_equal(actual: Sequence[Any], expected: Sequence[Any]) -> bool:
    """Check two emission traces for deep equality.

    Order matters, lengths must match and elements are compared with
    ``values_equal``.

    Args:
        actual: Trace produced by the program.
        expected: Trace the test case expects.

    Returns:
        True if the traces are structurally equal.
    """
    if len(actual) != len(expected):
        return False
    return all(values_equal(a, e) for a, e in zip(actual, expected, strict=True))


class ResultSummary(BaseModel):
    """Counts shown under the test list.

    Attributes:
        total: Number of test results.
        passed: Number of passing results.
        failed: Number of results that ran but produced the wrong trace.
        errored: Number of results whose program failed to run.
    """

    model_config = ConfigDict(frozen=True)

    total: int
    passed: int
    failed: int
    errored: int


def summarize(results: Sequence[TestResult]) -> ResultSummary:
    """Count passing, mismatching and crashing results."""
    passed = sum(1 for r in results if r.passed)
    errored = sum(1 for r in results if r.error is not None)
    return ResultSummary(
        total=len(results),
        passed=passed,
        failed=len(results) - passed - errored,
        errored=errored,
    )


def is_mission_complete(results: Sequence[TestResult]) -> bool:
    """Return True when there is at least one result and every result passed."""
    return bool(results) and all(r.passed for r in results)
