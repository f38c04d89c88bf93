"""Value semantics of the mission language.

Mission programs use JavaScript-like values, represented with plain Python
objects: ``int``/``float`` for numbers, ``str``, ``bool``, ``None`` for
``null``, ``UNDEFINED`` for ``undefined``, ``list`` for arrays and ``dict``
for object literals. This module holds the coercions and comparisons the
interpreter applies to them, plus the conversion of results to plain data.
"""

from __future__ import annotations

import math
from typing import Any, ClassVar

from rx_galaxy.errors import ProgramError, ThrownValue

_MAX_SAFE_INTEGER = 2**53


class _Undefined:
    """The ``undefined`` singleton."""

    _instance: ClassVar[_Undefined | None] = None

    def __new__(cls) -> _Undefined:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "undefined"


UNDEFINED = _Undefined()


class ErrorValue:
    """An error object as seen by mission code (``err.name``, ``err.message``)."""

    exposed_members: ClassVar[frozenset[str]] = frozenset({"name", "message"})

    def __init__(self, name: str, message: str) -> None:
        self.name = name
        self.message = message

    def __repr__(self) -> str:
        return f"{self.name}: {self.message}"


def is_nullish(value: Any) -> bool:
    """Return True for ``null`` and ``undefined``."""
    return value is None or value is UNDEFINED


def is_number(value: Any) -> bool:
    """Return True for numbers (booleans excluded)."""
    return isinstance(value, int | float) and not isinstance(value, bool)


def normalize_number(value: float) -> int | float:
    """Collapse integral floats to ``int`` so ``4 / 2`` prints as ``2``."""
    if isinstance(value, float) and value.is_integer() and abs(value) <= _MAX_SAFE_INTEGER:
        return int(value)
    return value


def to_boolean(value: Any) -> bool:
    """Language truthiness: ``0``, ``NaN``, ``""``, ``null`` and ``undefined`` are false."""
    if value is None or value is UNDEFINED:
        return False
    if isinstance(value, bool):
        return value
    if is_number(value):
        return not (value == 0 or math.isnan(value))
    if isinstance(value, str):
        return value != ""
    return True


def to_number(value: Any) -> int | float:
    """Numeric conversion used by arithmetic and relational operators."""
    if isinstance(value, bool):
        return int(value)
    if is_number(value):
        return value
    if value is None:
        return 0
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            return normalize_number(float(text))
        except ValueError:
            return math.nan
    if isinstance(value, list):
        if not value:
            return 0
        if len(value) == 1:
            return to_number(value[0])
    return math.nan


def format_number(value: int | float) -> str:
    """Render a number the way the language prints it."""
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        value = normalize_number(value)
    return str(value)


def to_display_string(value: Any) -> str:
    """String conversion used by ``+`` concatenation and ``join``."""
    if value is None:
        return "null"
    if value is UNDEFINED:
        return "undefined"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return format_number(value)
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return ",".join("" if v is None or v is UNDEFINED else to_display_string(v) for v in value)
    if isinstance(value, ErrorValue):
        return repr(value)
    if callable(value) and not isinstance(value, type):
        return "function"
    return "[object Object]"


def type_of(value: Any) -> str:
    """Result of the ``typeof`` operator."""
    if value is UNDEFINED:
        return "undefined"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if value is not None and callable(value):
        return "function"
    return "object"


def strict_equals(left: Any, right: Any) -> bool:
    """The ``===`` operator."""
    if is_number(left) and is_number(right):
        return bool(left == right)
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    return left is right


def loose_equals(left: Any, right: Any) -> bool:
    """The ``==`` operator, with the primitive coercions only."""
    if is_nullish(left) or is_nullish(right):
        return is_nullish(left) and is_nullish(right)
    if isinstance(left, bool):
        return loose_equals(int(left), right)
    if isinstance(right, bool):
        return loose_equals(left, int(right))
    if is_number(left) and isinstance(right, str):
        return bool(left == to_number(right))
    if isinstance(left, str) and is_number(right):
        return bool(to_number(left) == right)
    return strict_equals(left, right)


def inspect(value: Any, *, top_level: bool = True) -> str:
    """Render a value the way ``console.log`` prints it."""
    if isinstance(value, str):
        return value if top_level else repr(value)
    if isinstance(value, list):
        if not value:
            return "[]"
        return "[ " + ", ".join(inspect(v, top_level=False) for v in value) + " ]"
    if isinstance(value, dict):
        if not value:
            return "{}"
        items = ", ".join(f"{k}: {inspect(v, top_level=False)}" for k, v in value.items())
        return "{ " + items + " }"
    if isinstance(value, BaseException):
        return repr(error_value(value))
    if callable(value) and not isinstance(value, type):
        return "[Function]"
    if isinstance(value, type):
        return f"[class {value.__name__}]"
    if value is None or value is UNDEFINED or isinstance(value, bool | int | float | ErrorValue):
        return to_display_string(value)
    return repr(value)


def error_value(exc: BaseException) -> Any:
    """Translate a Python exception into the value mission code observes.

    A thrown language value is returned as is; any other failure becomes an
    ``ErrorValue`` carrying its language error name.
    """
    if isinstance(exc, ThrownValue):
        return exc.value
    name = exc.js_name if isinstance(exc, ProgramError) else type(exc).__name__
    return ErrorValue(name, str(exc))


def to_plain(value: Any, _seen: frozenset[int] = frozenset()) -> Any:
    """Convert a language value into plain, serializable data.

    ``undefined`` and non-finite numbers become ``None``; errors become
    ``{"name", "message"}`` mappings; functions and runtime objects become
    descriptive strings; cyclic containers are cut with ``"[Circular]"``.
    """
    if value is None or value is UNDEFINED:
        return None
    if isinstance(value, bool | str):
        return value
    if is_number(value):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return normalize_number(value)
    if isinstance(value, list | dict):
        if id(value) in _seen:
            return "[Circular]"
        seen = _seen | {id(value)}
        if isinstance(value, list):
            return [to_plain(v, seen) for v in value]
        return {str(k): to_plain(v, seen) for k, v in value.items() if v is not UNDEFINED}
    if isinstance(value, BaseException):
        value = error_value(value)
        if not isinstance(value, ErrorValue):
            return to_plain(value, _seen)
    if isinstance(value, ErrorValue):
        return {"name": value.name, "message": value.message}
    if isinstance(value, type):
        return f"[class {value.__name__}]"
    if callable(value):
        return "[Function]"
    return f"[{type(value).__name__}]"
