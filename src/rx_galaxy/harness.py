"""Test harness: run a mission's test cases in order and collect results.

Each test case is evaluated in isolation with ``evaluator.evaluate``; the
produced trace is compared with the expected one and turned into an immutable
``TestResult``. Nothing a program does escapes this module as an exception.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
import logging
import time

from rx_galaxy.evaluator import evaluate
from rx_galaxy.interpreter import DEFAULT_MAX_CALL_DEPTH, DEFAULT_MAX_STEPS
from rx_galaxy.models import TestCase, TestResult
from rx_galaxy.scoring import TraceComparator, traces_equal

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, TestResult], object]
"""Called as ``(index, total, result)`` after each test case finishes."""


def _errored(test_case: TestCase, message: str, elapsed_ms: float | None) -> TestResult:
    return TestResult(
        name=test_case.name,
        passed=False,
        actual_output=[],
        expected_output=list(test_case.expected_output),
        error=message,
        execution_time_ms=elapsed_ms,
    )


def run_test(
    program_text: str,
    test_case: TestCase,
    *,
    compare: TraceComparator = traces_equal,
    measure_time: bool = False,
    max_steps: int = DEFAULT_MAX_STEPS,
    max_call_depth: int = DEFAULT_MAX_CALL_DEPTH,
) -> TestResult:
    """Evaluate a single test case.

    The test case's own ``test_code`` is evaluated; when it is blank the
    submitted *program_text* is evaluated instead.

    Args:
        program_text: The player's current program.
        test_case: The test to run.
        compare: Trace comparison; structural equality by default.
        measure_time: Record wall-clock evaluation time in milliseconds.
        max_steps: Execution step budget per evaluation.
        max_call_depth: Maximum nesting of function calls.

    Returns:
        The test result. A program failure gives ``passed=False`` with the
        error message and no actual output; a wrong trace gives
        ``passed=False`` with the actual output and no error.
    """
    source = test_case.test_code if test_case.test_code.strip() else program_text
    start = time.perf_counter()
    outcome = evaluate(source, max_steps=max_steps, max_call_depth=max_call_depth)
    elapsed_ms = (time.perf_counter() - start) * 1000 if measure_time else None

    if not outcome.ok:
        logger.info("Test %r errored: %s", test_case.name, outcome.message)
        return _errored(test_case, outcome.message or "", elapsed_ms)

    try:
        passed = compare(outcome.values, test_case.expected_output)
    except Exception as exc:
        logger.warning("Comparing the trace of test %r failed", test_case.name, exc_info=True)
        message = f"Comparison failed: {str(exc) or type(exc).__name__}"
        return _errored(test_case, message, elapsed_ms)
    logger.info(
        "Test %r %s (actual=%s, expected=%s)",
        test_case.name,
        "passed" if passed else "failed",
        outcome.values,
        test_case.expected_output,
    )
    return TestResult(
        name=test_case.name,
        passed=passed,
        actual_output=outcome.values,
        expected_output=list(test_case.expected_output),
        execution_time_ms=elapsed_ms,
    )


def _report(on_progress: ProgressCallback | None, index: int, total: int, result: TestResult) -> None:
    """Invoke the progress callback; its failures never affect the results."""
    if on_progress is None:
        return
    try:
        on_progress(index, total, result)
    except Exception:
        logger.warning("Progress callback failed for test %r", result.name, exc_info=True)


def run_tests(
    program_text: str,
    test_cases: Sequence[TestCase],
    *,
    on_progress: ProgressCallback | None = None,
    compare: TraceComparator = traces_equal,
    measure_time: bool = False,
    max_steps: int = DEFAULT_MAX_STEPS,
    max_call_depth: int = DEFAULT_MAX_CALL_DEPTH,
) -> list[TestResult]:
    """Run *test_cases* in their declared order.

    Args:
        program_text: The player's current program.
        test_cases: Tests to run, in order.
        on_progress: Optional ``(index, total, result)`` callback.
        compare: Trace comparison; structural equality by default.
        measure_time: Record per-test evaluation time.
        max_steps: Execution step budget per evaluation.
        max_call_depth: Maximum nesting of function calls.

    Returns:
        One fresh ``TestResult`` per test case, in input order.
    """
    total = len(test_cases)
    results: list[TestResult] = []
    for index, test_case in enumerate(test_cases):
        result = run_test(
            program_text,
            test_case,
            compare=compare,
            measure_time=measure_time,
            max_steps=max_steps,
            max_call_depth=max_call_depth,
        )
        results.append(result)
        _report(on_progress, index, total, result)
    return results


async def run_tests_async(
    program_text: str,
    test_cases: Sequence[TestCase],
    *,
    on_progress: ProgressCallback | None = None,
    pacing_seconds: float = 0.0,
    compare: TraceComparator = traces_equal,
    measure_time: bool = False,
    max_steps: int = DEFAULT_MAX_STEPS,
    max_call_depth: int = DEFAULT_MAX_CALL_DEPTH,
) -> list[TestResult]:
    """Async variant of ``run_tests`` for interactive front ends.

    Sleeps *pacing_seconds* before each test so a UI can animate progress.
    The delay is presentation only: results and their order are identical
    to ``run_tests``.

    Returns:
        One fresh ``TestResult`` per test case, in input order.
    """
    total = len(test_cases)
    results: list[TestResult] = []
    for index, test_case in enumerate(test_cases):
        if pacing_seconds > 0:
            await asyncio.sleep(pacing_seconds)
        result = run_test(
            program_text,
            test_case,
            compare=compare,
            measure_time=measure_time,
            max_steps=max_steps,
            max_call_depth=max_call_depth,
        )
        results.append(result)
        _report(on_progress, index, total, result)
    return results
