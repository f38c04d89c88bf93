"""Pipeable stream operators: ``map``, ``filter`` and ``take``.

Each operator factory returns a function ``Observable -> Observable``
suitable for ``Observable.pipe``. Errors and completion from the source are
forwarded unchanged. The downstream subscriber owns the upstream
subscription, so unsubscribing downstream stops the source.

The names mirror the mission vocabulary and intentionally shadow builtins;
import the module (``from rx_galaxy import operators as ops``) rather than
the names.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from rx_galaxy.streams import Observable, Operator, Subscriber, empty


def _relay(
    source: Observable,
    subscriber: Subscriber,
    on_next: Callable[[Any], None],
) -> None:
    """Subscribe to *source* with *on_next*, forwarding terminal signals."""
    upstream = Subscriber(on_next, subscriber.error, subscriber.complete)
    subscriber.add(upstream)
    source.subscribe(upstream)


def map(project: Callable[[Any], Any]) -> Operator:  # noqa: A001
    """Emit ``project(value)`` for every source value."""

    def _operator(source: Observable) -> Observable:
        def _subscribe(subscriber: Subscriber) -> None:
            _relay(source, subscriber, lambda value: subscriber.next(project(value)))

        return Observable(_subscribe)

    return _operator


def filter(predicate: Callable[[Any], Any]) -> Operator:  # noqa: A001
    """Emit only the source values for which *predicate* is truthy."""

    def _operator(source: Observable) -> Observable:
        def _subscribe(subscriber: Subscriber) -> None:
            def _on_next(value: Any) -> None:
                if predicate(value):
                    subscriber.next(value)

            _relay(source, subscriber, _on_next)

        return Observable(_subscribe)

    return _operator


def take(count: int) -> Operator:
    """Emit the first *count* source values, then complete.

    Reaching *count* completes the downstream and unsubscribes the source,
    whether or not the source has more values. ``take(0)`` completes
    without subscribing to the source at all.
    """

    def _operator(source: Observable) -> Observable:
        if count <= 0:
            return empty()

        def _subscribe(subscriber: Subscriber) -> None:
            seen = 0

            def _on_next(value: Any) -> None:
                nonlocal seen
                seen += 1
                subscriber.next(value)
                if seen >= count:
                    subscriber.complete()

            _relay(source, subscriber, _on_next)

        return Observable(_subscribe)

    return _operator
