"""
playground/execution/in_process.py

Runs compiled submissions inside the host interpreter.

There is no isolation boundary here: the program shares the host's address
space and privileges, and a program that never returns keeps its thread
forever. Imports are limited to the reference set, `sys` is replaced by a
narrow stand-in, and output is captured per request. The import guard only
narrows what a program can name; reference modules still hold references to
host internals, so the isolated runner is the containment boundary. The
isolated runner reuses this class inside its worker process.
"""

from __future__ import annotations

import builtins
import contextlib
import logging
import sys
import threading
import types
from typing import Any, Callable

from playground.domain.execution import (
    MISSING_ENTRY_POINT_MESSAGE,
    CompiledModule,
    ExecutionOutcome,
    OutcomeKind,
)
from playground.execution.base import ExecutionRunner
from playground.execution.capture import captured_streams
from playground.toolchain.compiler import SUBMISSION_FILENAME, load_code
from playground.toolchain.reference_set import REFERENCE_MODULES, top_level_name

logger = logging.getLogger(__name__)

MODULE_NAME = "submission"


def describe_exception(exc: BaseException) -> str:
    """
    Render an exception as ``Type: message`` without a traceback.
    """

    message = str(exc)
    name = type(exc).__name__
    return f"{name}: {message}" if message else name


def _exit_failure(exc: SystemExit) -> str | None:
    """
    Return an error message for a failing exit status, None for a clean exit.
    """

    if exc.code is None or exc.code == 0:
        return None
    if isinstance(exc.code, int):
        return f"SystemExit: exit status {exc.code}"
    return f"SystemExit: {exc.code}"


_SYS_SHARED_ATTRIBUTES = (
    "byteorder",
    "float_info",
    "get_int_max_str_digits",
    "getrecursionlimit",
    "getsizeof",
    "hash_info",
    "intern",
    "maxsize",
    "maxunicode",
    "platform",
    "version",
    "version_info",
    "__stdin__",
    "__stdout__",
    "__stderr__",
)


class SubmissionSys(types.ModuleType):
    """
    Stand-in for `sys` inside a submission.

    The standard streams read and write through to the real `sys` so
    capture keeps working; `modules`, `path` and other host handles are absent.
    """

    def __init__(self) -> None:
        super().__init__("sys")
        self.argv = [SUBMISSION_FILENAME]
        self.exit = sys.exit
        for name in _SYS_SHARED_ATTRIBUTES:
            if hasattr(sys, name):
                setattr(self, name, getattr(sys, name))

    @property
    def stdin(self) -> Any:
        return sys.stdin

    @stdin.setter
    def stdin(self, stream: Any) -> None:
        sys.stdin = stream

    @property
    def stdout(self) -> Any:
        return sys.stdout

    @stdout.setter
    def stdout(self, stream: Any) -> None:
        sys.stdout = stream

    @property
    def stderr(self) -> Any:
        return sys.stderr

    @stderr.setter
    def stderr(self, stream: Any) -> None:
        sys.stderr = stream


def build_guarded_import(references: frozenset[str]) -> Callable[..., Any]:
    real_import = builtins.__import__
    sys_module = SubmissionSys()

    def guarded_import(name: str, globals: Any = None, locals: Any = None, fromlist: Any = (), level: int = 0) -> Any:
        if level or top_level_name(name) not in references:
            raise ImportError(f"module '{name}' is not available")
        if name == "sys":
            return sys_module
        return real_import(name, globals, locals, fromlist, level)

    return guarded_import


class InProcessRunner(ExecutionRunner):
    """
    Invokes entry points on the calling thread with captured streams.
    """

    mode = "in_process"

    def __init__(
        self,
        *,
        max_output_chars: int,
        serialize: bool = True,
        references: frozenset[str] = REFERENCE_MODULES,
    ) -> None:
        self._max_output_chars = max(1, max_output_chars)
        self._lock = threading.Lock() if serialize else None
        self._references = references

    def run(self, module: CompiledModule, *, stdin_text: str | None = None) -> ExecutionOutcome:
        if module.entry_point is None:
            return ExecutionOutcome.failed(OutcomeKind.MISSING_ENTRY_POINT, MISSING_ENTRY_POINT_MESSAGE)
        return self.invoke(module.image, module.entry_point, stdin_text=stdin_text)

    def invoke(self, image: bytes, entry_point: str, *, stdin_text: str | None = None) -> ExecutionOutcome:
        """
        Load ``image`` as a fresh module and call ``entry_point`` with no arguments.
        """

        code = load_code(image)
        failure: str | None = None
        missing_entry_point = False

        with self._serialized():
            with captured_streams(stdin_text, max_chars=self._max_output_chars) as buffers:
                module = self._new_module()
                sys.modules[MODULE_NAME] = module
                try:
                    exec(code, module.__dict__)
                    entry = module.__dict__.get(entry_point)
                    if callable(entry):
                        entry()
                    else:
                        missing_entry_point = True
                except SystemExit as exc:
                    failure = _exit_failure(exc)
                except BaseException as exc:
                    failure = describe_exception(exc)
                finally:
                    if sys.modules.get(MODULE_NAME) is module:
                        del sys.modules[MODULE_NAME]

        if missing_entry_point:
            return ExecutionOutcome.failed(OutcomeKind.MISSING_ENTRY_POINT, MISSING_ENTRY_POINT_MESSAGE)

        output = buffers.stdout.text()
        captured_error = buffers.stderr.text()
        if failure is not None:
            logger.info("Submitted program failed error=%s", failure)
            return ExecutionOutcome.failed(
                OutcomeKind.RUNTIME_ERROR,
                captured_error + failure,
                output=output,
            )
        return ExecutionOutcome.succeeded(output=output, error=captured_error)

    def _serialized(self) -> contextlib.AbstractContextManager[Any]:
        return self._lock if self._lock is not None else contextlib.nullcontext()

    def _new_module(self) -> types.ModuleType:
        module = types.ModuleType(MODULE_NAME)
        namespace = dict(vars(builtins))
        namespace["__import__"] = build_guarded_import(self._references)
        module.__dict__["__builtins__"] = namespace
        module.__dict__["__file__"] = SUBMISSION_FILENAME
        return module
