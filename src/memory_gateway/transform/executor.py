"""Transform executor for user-supplied filter code.

Runs small Python snippets against a fixed calling convention:

- before save:    ``filter_before_save(input, output) -> {"input", "output"}``
- after retrieve: ``filter_after_retrieve(messages) -> messages``

A snippet is either a module defining the canonical function (named-function
form) or a function body that is wrapped and invoked immediately
(bare-expression form). Snippets run in a namespace with a reduced builtins
table, a guarded ``import`` and a wall-clock budget. Every failure is logged
and turned into a pass-through of the original data.
"""

from __future__ import annotations

import ast
import builtins
import json
import re
import sys
import textwrap
import time
from collections.abc import Mapping
from contextlib import contextmanager
from typing import Any, Iterable, Iterator

from loguru import logger

from ..core.exceptions import (
    TransformExecutionError,
    TransformShapeError,
    TransformTimeoutError,
)
from ..core.models import ConversationTurn, TransformHook, TransformMode, TransformSpec

DEFAULT_TIMEOUT_SECONDS = 1.0
DEFAULT_ALLOWED_MODULES = ("re", "json", "math", "string", "textwrap", "unicodedata")

SAFE_BUILTIN_NAMES = (
    "abs", "all", "any", "bool", "callable", "chr", "dict", "divmod",
    "enumerate", "filter", "float", "format", "frozenset", "getattr",
    "hasattr", "int", "isinstance", "issubclass", "iter", "len", "list",
    "map", "max", "min", "next", "ord", "range", "repr", "reversed", "round",
    "set", "slice", "sorted", "str", "sum", "tuple", "zip", "__build_class__",
    "Exception", "ValueError", "TypeError", "KeyError", "IndexError",
    "AttributeError", "StopIteration",
)

_WRAPPER_NAME = "__gateway_transform__"
_MISSING = object()


class _BudgetExceeded(BaseException):
    """Raised inside transform frames; outside ``except Exception`` reach."""


def _identity(hook: TransformHook, args: tuple[Any, ...]) -> Any:
    if hook is TransformHook.BEFORE_SAVE:
        return {"input": args[0], "output": args[1]}
    return args[0]


def _wrap_body(hook: TransformHook, source: str) -> str:
    """Turn a bare snippet into an immediately callable function definition.

    A snippet that is a single expression becomes the return value; anything
    else is used verbatim as the function body.
    """
    body = textwrap.dedent(source).strip("\n").rstrip()
    try:
        ast.parse(body, mode="eval")
    except SyntaxError:
        pass
    else:
        body = f"return (\n{body}\n)"
    params = ", ".join(hook.parameters)
    return f"def {_WRAPPER_NAME}({params}):\n" + textwrap.indent(body, "    ")


def _history_shaped(original: Any, result: Any) -> bool:
    if result is None:
        return False
    if isinstance(original, str):
        return isinstance(result, str)
    if isinstance(original, (list, tuple)):
        return isinstance(result, (list, tuple))
    return True


class TransformExecutor:
    """Compiles and runs transform snippets, failing open.

    Attributes:
        timeout_seconds: Wall-clock budget for one transform call
        allowed_modules: Top-level modules a transform may import
    """

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        allowed_modules: Iterable[str] | None = None,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self.timeout_seconds = timeout_seconds
        self.allowed_modules = frozenset(
            DEFAULT_ALLOWED_MODULES if allowed_modules is None else allowed_modules
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def execute(self, spec: TransformSpec, *args: Any) -> Any:
        """Run ``spec`` with the hook's canonical arguments.

        Args:
            spec: Transform source and hook
            *args: ``(input, output)`` for before-save, ``(messages,)`` for
                after-retrieve

        Returns:
            The transform's result, or the identity result when the source
            is empty or the transform fails
        """
        ok, result = self._try_execute(spec, args)
        return result if ok else _identity(spec.hook, args)

    def filter_turn(
        self, spec: TransformSpec, turn: ConversationTurn
    ) -> ConversationTurn:
        """Apply a before-save transform with per-field fallback."""
        ok, result = self._try_execute(spec, (turn.input, turn.output))
        if not ok:
            return turn
        if isinstance(result, ConversationTurn):
            return result

        if isinstance(result, Mapping):
            def lookup(name: str) -> Any:
                return result.get(name, _MISSING)
        elif hasattr(result, "input") or hasattr(result, "output"):
            def lookup(name: str) -> Any:
                return getattr(result, name, _MISSING)
        else:
            self._note_shape(
                TransformShapeError(
                    "result", f"expected a mapping, got {type(result).__name__}"
                )
            )
            return turn

        return ConversationTurn(
            input=self._pick(lookup, "input", turn.input),
            output=self._pick(lookup, "output", turn.output),
        )

    def filter_messages(self, spec: TransformSpec, messages: Any) -> Any:
        """Apply an after-retrieve transform, keeping the history's kind."""
        candidate = list(messages) if isinstance(messages, list) else messages
        ok, result = self._try_execute(spec, (candidate,))
        if not ok:
            return messages
        if not _history_shaped(messages, result):
            self._note_shape(
                TransformShapeError(
                    "messages",
                    f"expected {type(messages).__name__}, got {type(result).__name__}",
                )
            )
            return messages
        if isinstance(result, tuple):
            return list(result)
        return result

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _try_execute(
        self, spec: TransformSpec, args: tuple[Any, ...]
    ) -> tuple[bool, Any]:
        expected = len(spec.hook.parameters)
        if len(args) != expected:
            raise TypeError(
                f"{spec.hook.function_name} takes {expected} argument(s), "
                f"got {len(args)}"
            )
        if spec.is_empty:
            return False, None

        try:
            return True, self._run(spec, args)
        except TransformExecutionError as e:
            error = e
        except Exception as e:
            error = TransformExecutionError(
                spec.hook, spec.mode, f"{type(e).__name__}: {e}"
            )
            error.__cause__ = e

        logger.error(
            f"Memory gateway transform failed, passing data through: {error}"
        )
        return False, None

    def _run(self, spec: TransformSpec, args: tuple[Any, ...]) -> Any:
        hook, mode = spec.hook, spec.mode
        filename = f"<{hook.function_name}>"
        logger.debug(f"Running {hook.function_name} as {mode.value}")

        if mode is TransformMode.NAMED_FUNCTION:
            code = compile(textwrap.dedent(spec.source), filename, "exec")
            entry = hook.function_name
        else:
            code = compile(_wrap_body(hook, spec.source), filename, "exec")
            entry = _WRAPPER_NAME

        namespace = self._namespace()
        with self._time_budget(spec, filename):
            exec(code, namespace)
            func = namespace.get(entry)
            if not callable(func):
                raise TransformExecutionError(hook, mode, f"{entry} is not defined")
            return func(*args)

    def _namespace(self) -> dict[str, Any]:
        table = {
            name: getattr(builtins, name)
            for name in SAFE_BUILTIN_NAMES
            if hasattr(builtins, name)
        }
        table["__import__"] = self._guarded_import
        return {
            "__builtins__": table,
            "__name__": "memory_gateway_transform",
            "re": re,
            "json": json,
        }

    def _guarded_import(
        self,
        name: str,
        globals: Any = None,
        locals: Any = None,
        fromlist: Any = (),
        level: int = 0,
    ) -> Any:
        if level != 0 or name.partition(".")[0] not in self.allowed_modules:
            raise ImportError(f"import of '{name}' is not allowed in transforms")
        return builtins.__import__(name, globals, locals, fromlist, level)

    @contextmanager
    def _time_budget(self, spec: TransformSpec, filename: str) -> Iterator[None]:
        """Bound the wall-clock time spent in frames compiled from ``spec``.

        The check runs on every traced line, so long-running C calls (a
        catastrophic regex, for example) are only interrupted once they
        return to transform code.
        """
        deadline = time.monotonic() + self.timeout_seconds

        def trace_line(frame, event, arg):
            if time.monotonic() > deadline:
                raise _BudgetExceeded()
            return trace_line

        def trace_call(frame, event, arg):
            if frame.f_code.co_filename != filename:
                return None
            return trace_line(frame, event, arg)

        previous = sys.gettrace()
        sys.settrace(trace_call)
        try:
            yield
        except _BudgetExceeded:
            raise TransformTimeoutError(
                spec.hook, spec.mode, self.timeout_seconds
            ) from None
        finally:
            sys.settrace(previous)

    # ------------------------------------------------------------------
    # Shape helpers
    # ------------------------------------------------------------------

    def _pick(self, lookup, field: str, original: str) -> str:
        value = lookup(field)
        if value is _MISSING:
            return original
        if not isinstance(value, str):
            self._note_shape(
                TransformShapeError(field, f"expected str, got {type(value).__name__}")
            )
            return original
        return value

    @staticmethod
    def _note_shape(error: TransformShapeError) -> None:
        logger.debug(f"{error}; keeping original value")
