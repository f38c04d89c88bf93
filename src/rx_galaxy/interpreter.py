"""Tree-walking interpreter for mission programs.

Executes a ``syntax.Program`` against a fixed set of host bindings. Programs
never see Python objects beyond those bindings: member access on host
objects is limited to their ``exposed_members``, and values created by the
program are plain lists, dicts, strings and numbers.

Statement execution returns a ``Completion`` (or ``None`` for normal
completion) instead of raising, so ``return``/``break``/``continue`` never
travel through host code as exceptions. Program errors do: they are
``ProgramError`` subclasses, which the stream runtime routes to ``error``
observers like any other exception raised by a producer.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import contextmanager
import logging
import math
from typing import Any, NamedTuple

from rx_galaxy import syntax as ast
from rx_galaxy.errors import (
    ExecutionLimitExceeded,
    ProgramError,
    ProgramRuntimeError,
    ThrownValue,
)
from rx_galaxy.values import (
    UNDEFINED,
    error_value,
    inspect,
    is_nullish,
    is_number,
    loose_equals,
    normalize_number,
    strict_equals,
    to_boolean,
    to_display_string,
    to_number,
    type_of,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 100_000
DEFAULT_MAX_CALL_DEPTH = 50

_MAX_SAFE_INTEGER = 2**53
_MAX_ARRAY_LENGTH = 2**32 - 1
_MAX_ARRAY_GROWTH = 1_000_000
"""Most holes a single index assignment may open at the end of an array."""


class Completion(NamedTuple):
    """Abrupt completion of a statement: ``return``, ``break`` or ``continue``."""

    kind: str
    value: Any = UNDEFINED


# ---------------------------------------------------------------------------
# Scopes
# ---------------------------------------------------------------------------


class _Binding:
    __slots__ = ("kind", "value")

    def __init__(self, value: Any, kind: str) -> None:
        self.value = value
        self.kind = kind


class Environment:
    """A lexical scope.

    ``var`` declarations go to the nearest function scope; ``let``,
    ``const``, parameters and imports to the scope they appear in.
    """

    def __init__(self, parent: Environment | None = None, *, function_scope: bool = False) -> None:
        self.parent = parent
        self.function_scope = function_scope or parent is None
        self._bindings: dict[str, _Binding] = {}

    def has_own(self, name: str) -> bool:
        return name in self._bindings

    def declare(self, name: str, value: Any, kind: str = "let") -> None:
        existing = self._bindings.get(name)
        if existing is not None and not (kind in ("var", "function") and existing.kind in ("var", "function", "param")):
            msg = f"Identifier '{name}' has already been declared"
            raise ProgramRuntimeError(msg, "SyntaxError")
        self._bindings[name] = _Binding(value, kind)

    def _resolve(self, name: str) -> _Binding | None:
        env: Environment | None = self
        while env is not None:
            binding = env._bindings.get(name)
            if binding is not None:
                return binding
            env = env.parent
        return None

    def is_declared(self, name: str) -> bool:
        return self._resolve(name) is not None

    def lookup(self, name: str) -> Any:
        binding = self._resolve(name)
        if binding is None:
            if name == "undefined":
                return UNDEFINED
            msg = f"{name} is not defined"
            raise ProgramRuntimeError(msg, "ReferenceError")
        return binding.value

    def assign(self, name: str, value: Any) -> None:
        binding = self._resolve(name)
        if binding is None:
            msg = f"{name} is not defined"
            raise ProgramRuntimeError(msg, "ReferenceError")
        if binding.kind in ("const", "import"):
            msg = "Assignment to constant variable."
            raise ProgramRuntimeError(msg, "TypeError")
        binding.value = value

    def function_env(self) -> Environment:
        env = self
        while not env.function_scope and env.parent is not None:
            env = env.parent
        return env

    def clone(self) -> Environment:
        """Copy this scope's bindings into a sibling scope (per-iteration ``let``)."""
        copy = Environment(self.parent, function_scope=self.function_scope)
        copy._bindings = {name: _Binding(b.value, b.kind) for name, b in self._bindings.items()}
        return copy


# ---------------------------------------------------------------------------
# Callable values
# ---------------------------------------------------------------------------


class Function:
    """A function defined by the program (arrow, expression or declaration).

    Instances are plain Python callables, so the stream runtime can invoke
    producers, projections and observers written in the mission language.
    """

    def __init__(self, node: ast.FunctionExpr, closure: Environment, interpreter: Interpreter) -> None:
        self._node = node
        self._closure = closure
        self._interpreter = interpreter

    @property
    def name(self) -> str:
        return self._node.name or "anonymous"

    def __call__(self, *args: Any) -> Any:
        interpreter = self._interpreter
        node = self._node
        with interpreter.call_frame(node):
            env = Environment(self._closure, function_scope=True)
            for index, param in enumerate(node.params):
                arg = args[index] if index < len(args) else UNDEFINED
                if isinstance(arg, BaseException):
                    arg = error_value(arg)
                env.declare(param, arg, kind="param")
            if not isinstance(node.body, ast.Block):
                return interpreter.evaluate(node.body, env)
            completion = interpreter.execute_body(node.body.body, env)
            if completion is not None and completion.kind == "return":
                return completion.value
            return UNDEFINED

    def __repr__(self) -> str:
        return f"[Function: {self.name}]"


class NativeFunction:
    """A built-in method bound to a program value (``arr.push`` and friends)."""

    def __init__(self, name: str, impl: Callable[..., Any]) -> None:
        self.name = name
        self._impl = impl

    def __call__(self, *args: Any) -> Any:
        return self._impl(*args)

    def __repr__(self) -> str:
        return f"[Function: {self.name}]"


# ---------------------------------------------------------------------------
# Interpreter
# ---------------------------------------------------------------------------


class Interpreter:
    """Executes one program against a set of host bindings.

    Create a new interpreter per evaluation; it holds the step counter and
    call depth of that single run.

    Attributes:
        steps: Statements, loop iterations and calls executed so far.
        exhausted: Whether the step budget ran out at any point. The stream
            runtime may swallow the resulting error inside a producer, so
            callers check this flag after ``run``.
    """

    def __init__(
        self,
        bindings: Mapping[str, Any],
        *,
        max_steps: int = DEFAULT_MAX_STEPS,
        max_call_depth: int = DEFAULT_MAX_CALL_DEPTH,
    ) -> None:
        self._bindings = dict(bindings)
        self._max_steps = max_steps
        self._max_call_depth = max_call_depth
        self._depth = 0
        self.steps = 0
        self.exhausted = False

    # -- entry points -------------------------------------------------------

    def run(self, program: ast.Program) -> Any:
        """Run *program* as a function body and return its return value."""
        env = Environment(function_scope=True)
        for name, value in self._bindings.items():
            env.declare(name, value, kind="param")
        completion = self.execute_body(program.body, env)
        if completion is not None and completion.kind == "return":
            return completion.value
        return UNDEFINED

    @contextmanager
    def call_frame(self, node: ast.Node) -> Iterator[None]:
        """Account for one function call, enforcing the depth limit."""
        self._tick(node)
        if self._depth >= self._max_call_depth:
            msg = "Maximum call stack size exceeded"
            raise ProgramRuntimeError(msg, "RangeError")
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1

    def _tick(self, node: ast.Node) -> None:
        self.steps += 1
        if self.steps > self._max_steps:
            self.exhausted = True
            msg = f"Execution step limit of {self._max_steps} exceeded (line {node.line})"
            raise ExecutionLimitExceeded(msg)

    # -- statements ---------------------------------------------------------

    def execute_body(self, body: Sequence[ast.Node], env: Environment) -> Completion | None:
        """Execute statements in *env* after hoisting function declarations."""
        for statement in body:
            if isinstance(statement, ast.FunctionDeclaration):
                function = statement.function
                env.declare(function.name or "", Function(function, env, self), kind="function")
        for statement in body:
            completion = self.execute(statement, env)
            if completion is not None:
                return completion
        return None

    def execute(self, node: ast.Node, env: Environment) -> Completion | None:
        self._tick(node)
        handler = getattr(self, f"_exec_{type(node).__name__}", None)
        if handler is None:
            self.evaluate(node, env)
            return None
        return handler(node, env)

    def _exec_Block(self, node: ast.Block, env: Environment) -> Completion | None:
        return self.execute_body(node.body, Environment(env))

    def _exec_Empty(self, node: ast.Empty, env: Environment) -> None:
        return None

    def _exec_ExpressionStatement(self, node: ast.ExpressionStatement, env: Environment) -> None:
        self.evaluate(node.expression, env)

    def _exec_VarDeclaration(self, node: ast.VarDeclaration, env: Environment) -> None:
        target = env.function_env() if node.kind == "var" else env
        for name, init in node.declarations:
            value = UNDEFINED if init is None else self.evaluate(init, env)
            if node.kind == "var" and init is None and target.has_own(name):
                continue
            target.declare(name, value, kind=node.kind)

    def _exec_FunctionDeclaration(self, node: ast.FunctionDeclaration, env: Environment) -> None:
        function = node.function
        if not env.has_own(function.name or ""):
            env.declare(function.name or "", Function(function, env, self), kind="function")

    def _exec_Import(self, node: ast.Import, env: Environment) -> None:
        for imported, local in node.names:
            if imported not in self._bindings:
                msg = f"Module '{node.module}' has no exported member '{imported}'"
                raise ProgramRuntimeError(msg, "SyntaxError")
            value = self._bindings[imported]
            if env.has_own(local) and env.lookup(local) is value:
                continue
            env.declare(local, value, kind="import")

    def _exec_Return(self, node: ast.Return, env: Environment) -> Completion:
        value = UNDEFINED if node.value is None else self.evaluate(node.value, env)
        return Completion("return", value)

    def _exec_If(self, node: ast.If, env: Environment) -> Completion | None:
        if to_boolean(self.evaluate(node.test, env)):
            return self.execute(node.consequent, env)
        if node.alternate is not None:
            return self.execute(node.alternate, env)
        return None

    def _run_loop_body(self, body: ast.Node, env: Environment) -> Completion | None:
        """Run one iteration; returns a completion only when the loop must stop."""
        completion = self.execute(body, env)
        if completion is None or completion.kind == "continue":
            return None
        return completion

    def _exec_While(self, node: ast.While, env: Environment) -> Completion | None:
        while to_boolean(self.evaluate(node.test, env)):
            self._tick(node)
            completion = self._run_loop_body(node.body, env)
            if completion is not None:
                return None if completion.kind == "break" else completion
        return None

    def _exec_For(self, node: ast.For, env: Environment) -> Completion | None:
        loop_env = Environment(env)
        if node.init is not None:
            self.execute(node.init, loop_env)
        while node.test is None or to_boolean(self.evaluate(node.test, loop_env)):
            self._tick(node)
            completion = self._run_loop_body(node.body, loop_env)
            if completion is not None:
                return None if completion.kind == "break" else completion
            loop_env = loop_env.clone()
            if node.update is not None:
                self.evaluate(node.update, loop_env)
        return None

    def _exec_ForOf(self, node: ast.ForOf, env: Environment) -> Completion | None:
        iterable = self.evaluate(node.iterable, env)
        if not isinstance(iterable, list | str):
            msg = f"{inspect(iterable)} is not iterable"
            raise ProgramRuntimeError(msg)
        index = 0
        while index < len(iterable):
            self._tick(node)
            iteration_env = Environment(env)
            target = iteration_env.function_env() if node.kind == "var" else iteration_env
            target.declare(node.name, iterable[index], kind=node.kind)
            completion = self._run_loop_body(node.body, iteration_env)
            if completion is not None:
                return None if completion.kind == "break" else completion
            index += 1
        return None

    def _exec_Break(self, node: ast.Break, env: Environment) -> Completion:
        return Completion("break")

    def _exec_Continue(self, node: ast.Continue, env: Environment) -> Completion:
        return Completion("continue")

    def _exec_Throw(self, node: ast.Throw, env: Environment) -> None:
        value = self.evaluate(node.value, env)
        raise ThrownValue(value, inspect(value))

    # -- expressions --------------------------------------------------------

    def evaluate(self, node: ast.Node, env: Environment) -> Any:
        handler = getattr(self, f"_eval_{type(node).__name__}", None)
        if handler is None:
            msg = f"Unsupported syntax: {type(node).__name__}"
            raise ProgramRuntimeError(msg, "SyntaxError")
        return handler(node, env)

    def _eval_Literal(self, node: ast.Literal, env: Environment) -> Any:
        return node.value

    def _eval_Identifier(self, node: ast.Identifier, env: Environment) -> Any:
        return env.lookup(node.name)

    def _eval_ArrayLiteral(self, node: ast.ArrayLiteral, env: Environment) -> list[Any]:
        return [self.evaluate(element, env) for element in node.elements]

    def _eval_ObjectLiteral(self, node: ast.ObjectLiteral, env: Environment) -> dict[str, Any]:
        return {key: self.evaluate(value, env) for key, value in node.properties}

    def _eval_FunctionExpr(self, node: ast.FunctionExpr, env: Environment) -> Function:
        if node.name and not node.is_arrow:
            # Named function expressions can refer to themselves.
            scope = Environment(env)
            function = Function(node, scope, self)
            scope.declare(node.name, function, kind="function")
            return function
        return Function(node, env, self)

    def _eval_Member(self, node: ast.Member, env: Environment) -> Any:
        obj = self.evaluate(node.obj, env)
        return self.get_member(obj, self._property_key(node, env))

    def _property_key(self, node: ast.Member, env: Environment) -> Any:
        if node.computed:
            return self.evaluate(node.prop, env)
        return node.prop.value  # type: ignore[attr-defined]

    def _eval_Call(self, node: ast.Call, env: Environment) -> Any:
        function = self.evaluate(node.callee, env)
        args = [self.evaluate(arg, env) for arg in node.args]
        if isinstance(function, Function):
            return function(*args)
        if isinstance(function, type):
            msg = f"Class constructor {function.__name__} cannot be invoked without 'new'"
            raise ProgramRuntimeError(msg)
        if not callable(function):
            msg = f"{_describe(node.callee)} is not a function"
            raise ProgramRuntimeError(msg)
        return self._call_host(function, args, node)

    def _eval_New(self, node: ast.New, env: Environment) -> Any:
        constructor = self.evaluate(node.callee, env)
        args = [self.evaluate(arg, env) for arg in node.args]
        if not isinstance(constructor, type):
            msg = f"{_describe(node.callee)} is not a constructor"
            raise ProgramRuntimeError(msg)
        return self._call_host(constructor, args, node)

    def _call_host(self, function: Callable[..., Any], args: list[Any], node: ast.Node) -> Any:
        """Invoke a host callable, translating Python failures into program errors."""
        with self.call_frame(node):
            try:
                result = function(*args)
            except ProgramError:
                raise
            except RecursionError as exc:
                msg = "Maximum call stack size exceeded"
                raise ProgramRuntimeError(msg, "RangeError") from exc
            except Exception as exc:
                logger.debug("Host call on line %d raised %r", node.line, exc)
                raise ProgramRuntimeError(str(exc) or type(exc).__name__) from exc
        return UNDEFINED if result is None else result

    def _eval_Unary(self, node: ast.Unary, env: Environment) -> Any:
        if node.op == "typeof":
            if isinstance(node.operand, ast.Identifier) and not env.is_declared(node.operand.name):
                return "undefined"
            return type_of(self.evaluate(node.operand, env))
        value = self.evaluate(node.operand, env)
        if node.op == "!":
            return not to_boolean(value)
        if node.op == "-":
            return _number(-to_number(value))
        return to_number(value)

    def _eval_Update(self, node: ast.Update, env: Environment) -> Any:
        old = to_number(self._read_target(node.target, env))
        new = _number(old + 1 if node.op == "++" else old - 1)
        self._write_target(node.target, new, env)
        return new if node.prefix else old

    def _eval_Binary(self, node: ast.Binary, env: Environment) -> Any:
        left = self.evaluate(node.left, env)
        right = self.evaluate(node.right, env)
        return binary_operation(node.op, left, right)

    def _eval_Logical(self, node: ast.Logical, env: Environment) -> Any:
        left = self.evaluate(node.left, env)
        if node.op == "&&":
            return self.evaluate(node.right, env) if to_boolean(left) else left
        if node.op == "||":
            return left if to_boolean(left) else self.evaluate(node.right, env)
        return self.evaluate(node.right, env) if is_nullish(left) else left

    def _eval_Conditional(self, node: ast.Conditional, env: Environment) -> Any:
        if to_boolean(self.evaluate(node.test, env)):
            return self.evaluate(node.consequent, env)
        return self.evaluate(node.alternate, env)

    def _eval_Assign(self, node: ast.Assign, env: Environment) -> Any:
        if node.op == "=":
            value = self.evaluate(node.value, env)
        else:
            current = self._read_target(node.target, env)
            value = binary_operation(node.op[:-1], current, self.evaluate(node.value, env))
        self._write_target(node.target, value, env)
        return value

    def _read_target(self, target: ast.Node, env: Environment) -> Any:
        return self.evaluate(target, env)

    def _write_target(self, target: ast.Node, value: Any, env: Environment) -> None:
        if isinstance(target, ast.Identifier):
            env.assign(target.name, value)
            return
        if isinstance(target, ast.Member):
            obj = self.evaluate(target.obj, env)
            self.set_member(obj, self._property_key(target, env), value)
            return
        msg = "Invalid assignment target"
        raise ProgramRuntimeError(msg, "SyntaxError")

    # -- members ------------------------------------------------------------

    def get_member(self, obj: Any, key: Any) -> Any:
        """Read ``obj[key]`` with the language's property semantics."""
        if is_nullish(obj):
            msg = f"Cannot read properties of {to_display_string(obj)} (reading '{to_display_string(key)}')"
            raise ProgramRuntimeError(msg)
        if isinstance(obj, list | str):
            index = _array_index(key)
            if index is not None:
                return obj[index] if index < len(obj) else UNDEFINED
            name = to_display_string(key)
            if name == "length":
                return len(obj)
            methods = _ARRAY_METHODS if isinstance(obj, list) else _STRING_METHODS
            method = methods.get(name)
            if method is None:
                return UNDEFINED
            return NativeFunction(name, lambda *args: method(self, obj, *args))
        if isinstance(obj, dict):
            return obj.get(to_display_string(key), UNDEFINED)
        name = to_display_string(key)
        if name in getattr(type(obj), "exposed_members", ()):
            return getattr(obj, name)
        return UNDEFINED

    def set_member(self, obj: Any, key: Any, value: Any) -> None:
        """Write ``obj[key] = value``; only arrays and objects are writable."""
        if isinstance(obj, list):
            index = _array_index(key)
            if index is None:
                msg = f"Cannot assign to property '{to_display_string(key)}' of an array"
                raise ProgramRuntimeError(msg)
            if index < len(obj):
                obj[index] = value
                return
            if index >= _MAX_ARRAY_LENGTH:
                msg = "Invalid array length"
                raise ProgramRuntimeError(msg, "RangeError")
            if index - len(obj) > _MAX_ARRAY_GROWTH:
                msg = f"Cannot grow an array by more than {_MAX_ARRAY_GROWTH} elements"
                raise ProgramRuntimeError(msg, "RangeError")
            obj.extend([UNDEFINED] * (index - len(obj)))
            obj.append(value)
            return
        if isinstance(obj, dict):
            obj[to_display_string(key)] = value
            return
        if is_nullish(obj):
            msg = f"Cannot set properties of {to_display_string(obj)} (setting '{to_display_string(key)}')"
            raise ProgramRuntimeError(msg)
        msg = f"Cannot assign to read only property '{to_display_string(key)}'"
        raise ProgramRuntimeError(msg)

    def call_value(self, function: Any, *args: Any) -> Any:
        """Call a program-supplied callback from a built-in method."""
        if isinstance(function, Function):
            return function(*args)
        if callable(function) and not isinstance(function, type):
            result = function(*args)
            return UNDEFINED if result is None else result
        msg = f"{inspect(function)} is not a function"
        raise ProgramRuntimeError(msg)


# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------


def _number(value: float) -> int | float:
    """Clamp Python numbers to the language's double range and int/float form."""
    if isinstance(value, int) and not isinstance(value, bool) and abs(value) > _MAX_SAFE_INTEGER:
        try:
            return float(value)
        except OverflowError:
            return math.inf if value > 0 else -math.inf
    return normalize_number(value)


def _is_primitive(value: Any) -> bool:
    return value is None or value is UNDEFINED or isinstance(value, bool | int | float | str)


def _divide(left: float, right: float) -> float:
    if right == 0:
        if left == 0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left)
    return left / right


def _remainder(left: float, right: float) -> float:
    if right == 0 or math.isnan(left) or math.isnan(right) or math.isinf(left):
        return math.nan
    if math.isinf(right):
        return left
    return math.fmod(left, right)


def _power(left: float, right: float) -> float:
    try:
        result = float(left) ** float(right)
    except OverflowError:
        return math.inf
    except ZeroDivisionError:
        return math.inf
    if isinstance(result, complex):
        return math.nan
    return result


def _compare(op: str, left: Any, right: Any) -> bool:
    if isinstance(left, str) and isinstance(right, str):
        a: Any = left
        b: Any = right
    else:
        a, b = to_number(left), to_number(right)
        if math.isnan(a) or math.isnan(b):
            return False
    if op == "<":
        return a < b
    if op == ">":
        return a > b
    if op == "<=":
        return a <= b
    return a >= b


def binary_operation(op: str, left: Any, right: Any) -> Any:
    """Apply a non-logical binary operator with the language's coercions."""
    if op == "+":
        if isinstance(left, str) or isinstance(right, str) or not (_is_primitive(left) and _is_primitive(right)):
            return to_display_string(left) + to_display_string(right)
        return _number(to_number(left) + to_number(right))
    if op in ("-", "*", "/", "%", "**"):
        a, b = to_number(left), to_number(right)
        if op == "-":
            return _number(a - b)
        if op == "*":
            return _number(a * b)
        if op == "/":
            return _number(_divide(a, b))
        if op == "%":
            if isinstance(a, int) and isinstance(b, int) and b != 0:
                return _number(int(math.fmod(a, b)) if abs(a) < _MAX_SAFE_INTEGER else math.fmod(a, b))
            return _number(_remainder(a, b))
        return _number(_power(a, b))
    if op == "===":
        return strict_equals(left, right)
    if op == "!==":
        return not strict_equals(left, right)
    if op == "==":
        return loose_equals(left, right)
    if op == "!=":
        return not loose_equals(left, right)
    if op in ("<", ">", "<=", ">="):
        return _compare(op, left, right)
    msg = f"Unsupported operator '{op}'"
    raise ProgramRuntimeError(msg, "SyntaxError")


# ---------------------------------------------------------------------------
# Built-in methods
# ---------------------------------------------------------------------------


def _array_index(key: Any) -> int | None:
    if is_number(key) and float(key).is_integer() and key >= 0:
        return int(key)
    if isinstance(key, str) and key.isascii() and key.isdecimal():
        return int(key)
    return None


def _integer_arg(value: Any, default: int) -> int:
    if value is UNDEFINED:
        return default
    number = to_number(value)
    if math.isnan(number):
        return 0
    if math.isinf(number):
        return _MAX_SAFE_INTEGER if number > 0 else -_MAX_SAFE_INTEGER
    return int(number)


def _slice_bounds(length: int, start: Any, end: Any) -> tuple[int, int]:
    def _clamp(index: int) -> int:
        return max(length + index, 0) if index < 0 else min(index, length)

    return _clamp(_integer_arg(start, 0)), _clamp(_integer_arg(end, length))


def _same_value_zero(left: Any, right: Any) -> bool:
    if is_number(left) and is_number(right) and math.isnan(left) and math.isnan(right):
        return True
    return strict_equals(left, right)


def _array_push(interp: Interpreter, arr: list[Any], *items: Any) -> int:
    arr.extend(items)
    return len(arr)


def _array_pop(interp: Interpreter, arr: list[Any]) -> Any:
    return arr.pop() if arr else UNDEFINED


def _array_map(interp: Interpreter, arr: list[Any], fn: Any = UNDEFINED) -> list[Any]:
    return [interp.call_value(fn, value, index, arr) for index, value in enumerate(list(arr))]


def _array_filter(interp: Interpreter, arr: list[Any], fn: Any = UNDEFINED) -> list[Any]:
    return [value for index, value in enumerate(list(arr)) if to_boolean(interp.call_value(fn, value, index, arr))]


def _array_for_each(interp: Interpreter, arr: list[Any], fn: Any = UNDEFINED) -> Any:
    for index, value in enumerate(list(arr)):
        interp.call_value(fn, value, index, arr)
    return UNDEFINED


def _array_reduce(interp: Interpreter, arr: list[Any], fn: Any = UNDEFINED, *initial: Any) -> Any:
    items = list(arr)
    if initial:
        accumulator, start = initial[0], 0
    elif items:
        accumulator, start = items[0], 1
    else:
        msg = "Reduce of empty array with no initial value"
        raise ProgramRuntimeError(msg)
    for index in range(start, len(items)):
        accumulator = interp.call_value(fn, accumulator, items[index], index, arr)
    return accumulator


def _array_join(interp: Interpreter, arr: list[Any], separator: Any = UNDEFINED) -> str:
    sep = "," if separator is UNDEFINED else to_display_string(separator)
    return sep.join("" if is_nullish(v) else to_display_string(v) for v in arr)


def _array_includes(interp: Interpreter, arr: list[Any], value: Any = UNDEFINED) -> bool:
    return any(_same_value_zero(item, value) for item in arr)


def _array_index_of(interp: Interpreter, arr: list[Any], value: Any = UNDEFINED) -> int:
    return next((index for index, item in enumerate(arr) if strict_equals(item, value)), -1)


def _array_slice(interp: Interpreter, arr: list[Any], start: Any = UNDEFINED, end: Any = UNDEFINED) -> list[Any]:
    lo, hi = _slice_bounds(len(arr), start, end)
    return arr[lo:hi]


def _array_concat(interp: Interpreter, arr: list[Any], *others: Any) -> list[Any]:
    result = list(arr)
    for other in others:
        if isinstance(other, list):
            result.extend(other)
        else:
            result.append(other)
    return result


_ARRAY_METHODS: dict[str, Callable[..., Any]] = {
    "push": _array_push,
    "pop": _array_pop,
    "map": _array_map,
    "filter": _array_filter,
    "forEach": _array_for_each,
    "reduce": _array_reduce,
    "join": _array_join,
    "includes": _array_includes,
    "indexOf": _array_index_of,
    "slice": _array_slice,
    "concat": _array_concat,
}


def _string_split(interp: Interpreter, text: str, separator: Any = UNDEFINED) -> list[str]:
    if separator is UNDEFINED:
        return [text]
    sep = to_display_string(separator)
    return list(text) if sep == "" else text.split(sep)


_STRING_METHODS: dict[str, Callable[..., Any]] = {
    "toUpperCase": lambda interp, text: text.upper(),
    "toLowerCase": lambda interp, text: text.lower(),
    "trim": lambda interp, text: text.strip(),
    "includes": lambda interp, text, sub=UNDEFINED: to_display_string(sub) in text,
    "split": _string_split,
    "slice": lambda interp, text, start=UNDEFINED, end=UNDEFINED: text[slice(*_slice_bounds(len(text), start, end))],
}


def _describe(node: ast.Node) -> str:
    """Source-like name of a callee for error messages."""
    if isinstance(node, ast.Identifier):
        return node.name
    if isinstance(node, ast.Member) and not node.computed:
        return f"{_describe(node.obj)}.{node.prop.value}"  # type: ignore[attr-defined]
    if isinstance(node, ast.Member):
        return f"{_describe(node.obj)}[...]"
    return "expression"
