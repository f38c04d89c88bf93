"""Micro reactive runtime: observables, subscribers and subscriptions.

A deliberately small push-based stream implementation. Everything runs
synchronously: ``next``, ``error`` and ``complete`` execute in the same
control flow as the ``subscribe`` call that triggered them. The runtime holds
no module-level mutable state, so one instance of these primitives is shared
by every evaluation.

Objects handed to mission programs declare the members a program may touch
in ``exposed_members``; the interpreter refuses access to anything else.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
import functools
import logging
from typing import Any, ClassVar, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

Teardown = Callable[[], Any]
Operator = Callable[["Observable"], "Observable"]


@runtime_checkable
class Observer(Protocol):
    """Anything with the ``next``/``error``/``complete`` capability set."""

    def next(self, value: Any) -> None: ...  # noqa: D102

    def error(self, err: Any) -> None: ...  # noqa: D102

    def complete(self) -> None: ...  # noqa: D102


def _noop(*_args: Any) -> None:
    return None


class Subscription:
    """Handle returned by ``subscribe``.

    Collects teardown callables (or child subscriptions) and runs each of
    them exactly once when the subscription is closed. Adding a teardown to
    an already closed subscription runs it immediately.
    """

    exposed_members: ClassVar[frozenset[str]] = frozenset({"unsubscribe", "closed"})

    def __init__(self) -> None:
        self._closed = False
        self._teardowns: list[Subscription | Teardown] = []

    @property
    def closed(self) -> bool:
        """Whether the subscription has been unsubscribed."""
        return self._closed

    def add(self, teardown: Subscription | Teardown | None) -> None:
        """Register *teardown* to run when this subscription closes."""
        if teardown is None or teardown is self:
            return
        if self._closed:
            self._run_teardown(teardown)
            return
        self._teardowns.append(teardown)

    def unsubscribe(self) -> None:
        """Close the subscription and run registered teardowns in order."""
        if self._closed:
            return
        self._closed = True
        teardowns, self._teardowns = self._teardowns, []
        for teardown in teardowns:
            self._run_teardown(teardown)

    @staticmethod
    def _run_teardown(teardown: Subscription | Teardown) -> None:
        if isinstance(teardown, Subscription):
            teardown.unsubscribe()
        else:
            teardown()


class Subscriber(Subscription):
    """Observer wrapper that enforces the observer grammar.

    ``next`` may be called any number of times, followed by at most one
    ``error`` or ``complete``. Signals arriving after termination (or after
    ``unsubscribe``) are dropped.
    """

    exposed_members: ClassVar[frozenset[str]] = frozenset(
        {"next", "error", "complete", "unsubscribe", "closed"}
    )

    def __init__(
        self,
        next: Callable[[Any], Any] | None = None,  # noqa: A002
        error: Callable[[Any], Any] | None = None,
        complete: Callable[[], Any] | None = None,
    ) -> None:
        super().__init__()
        self._on_next = next or _noop
        self._on_error = error or _noop
        self._on_complete = complete or _noop
        self._stopped = False

    @property
    def closed(self) -> bool:
        """Whether the subscriber has stopped accepting signals."""
        return self._stopped or self._closed

    def next(self, value: Any) -> None:
        """Deliver *value* unless the subscriber has stopped."""
        if self.closed:
            return
        self._on_next(value)

    def error(self, err: Any) -> None:
        """Deliver a terminal error, then release resources."""
        if self.closed:
            logger.debug("Dropping error after termination: %r", err)
            return
        self._stopped = True
        try:
            self._on_error(err)
        finally:
            self.unsubscribe()

    def complete(self) -> None:
        """Deliver completion, then release resources."""
        if self.closed:
            return
        self._stopped = True
        try:
            self._on_complete()
        finally:
            self.unsubscribe()


def to_subscriber(
    observer: Observer | Mapping[str, Any] | Callable[[Any], Any] | None = None,
    error: Callable[[Any], Any] | None = None,
    complete: Callable[[], Any] | None = None,
) -> Subscriber:
    """Normalize the accepted observer shapes into a ``Subscriber``.

    Args:
        observer: A ``Subscriber`` (used as is), an object with
            ``next``/``error``/``complete``, a mapping with any of those
            keys, or a bare next callable.
        error: Error callback, used with a bare next callable.
        complete: Completion callback, used with a bare next callable.

    Returns:
        A subscriber delivering to the given callbacks.

    Raises:
        TypeError: If *observer* has none of the accepted shapes.
    """
    if isinstance(observer, Subscriber):
        return observer
    if observer is None or callable(observer):
        return Subscriber(observer, error, complete)
    if isinstance(observer, Mapping):
        return Subscriber(
            _callable_or_none(observer.get("next")),
            _callable_or_none(observer.get("error")),
            _callable_or_none(observer.get("complete")),
        )
    if isinstance(observer, Observer):
        return Subscriber(observer.next, observer.error, observer.complete)
    msg = f"Cannot subscribe with {type(observer).__name__}"
    raise TypeError(msg)


def _callable_or_none(value: Any) -> Callable[..., Any] | None:
    return value if callable(value) else None


class Observable:
    """A push-based stream built from a producer function.

    The producer receives a ``Subscriber`` and calls ``next``/``error``/
    ``complete`` on it synchronously. It may return a teardown callable or a
    ``Subscription`` that runs when the subscription ends.
    """

    exposed_members: ClassVar[frozenset[str]] = frozenset({"subscribe", "pipe"})

    def __init__(self, producer: Callable[[Subscriber], Any] | None = None) -> None:
        self._producer = producer or _noop

    def subscribe(
        self,
        observer: Observer | Mapping[str, Any] | Callable[[Any], Any] | None = None,
        error: Callable[[Any], Any] | None = None,
        complete: Callable[[], Any] | None = None,
    ) -> Subscription:
        """Run the producer against *observer* and return the subscription.

        An exception raised by the producer is delivered to the observer's
        ``error`` callback instead of propagating to the caller.
        """
        subscriber = to_subscriber(observer, error, complete)
        try:
            teardown = self._producer(subscriber)
        except Exception as exc:
            logger.debug("Producer raised %s; forwarding to error", type(exc).__name__)
            subscriber.error(exc)
        else:
            if isinstance(teardown, Subscription) or callable(teardown):
                subscriber.add(teardown)
        return subscriber

    def pipe(self, *operators: Operator) -> Observable:
        """Apply *operators* left to right: ``pipe(a, b)`` is ``b(a(self))``."""
        return functools.reduce(lambda source, op: op(source), operators, self)

    def __repr__(self) -> str:
        return "Observable()"


def of(*values: Any) -> Observable:
    """Create a stream emitting *values* in order, then completing."""

    def _produce(subscriber: Subscriber) -> None:
        for value in values:
            if subscriber.closed:
                return
            subscriber.next(value)
        subscriber.complete()

    return Observable(_produce)


def empty() -> Observable:
    """Create a stream that completes immediately without emitting."""
    return Observable(lambda subscriber: subscriber.complete())


def collect(source: Observable) -> tuple[list[Any], Any, bool]:
    """Subscribe to *source* and gather its emission trace.

    Args:
        source: The stream to drain.

    Returns:
        A ``(values, error, completed)`` tuple; *error* is ``None`` unless
        the stream terminated with an error.
    """
    values: list[Any] = []
    state: dict[str, Any] = {"error": None, "completed": False}

    def _on_error(err: Any) -> None:
        state["error"] = err

    def _on_complete() -> None:
        state["completed"] = True

    source.subscribe(values.append, _on_error, _on_complete)
    return values, state["error"], state["completed"]
