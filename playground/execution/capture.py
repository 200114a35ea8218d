"""
playground/execution/capture.py

Request-scoped redirection of the standard streams.

``sys.stdout``, ``sys.stderr`` and ``sys.stdin`` are replaced once by
routing proxies. Each proxy forwards to the stream bound in the current
context, or to the stream it replaced when nothing is bound, so executions
running on different threads never write into each other's buffers.

Threads started by a submitted program begin with an empty context, so
their writes go to the host streams instead of the submission's buffers.
"""

from __future__ import annotations

import io
import logging
import sys
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Iterator, TextIO

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n... output truncated"

_stdout_target: ContextVar[TextIO | None] = ContextVar("playground_stdout", default=None)
_stderr_target: ContextVar[TextIO | None] = ContextVar("playground_stderr", default=None)
_stdin_target: ContextVar[TextIO | None] = ContextVar("playground_stdin", default=None)

_install_lock = threading.Lock()


class RoutedStream:
    """
    Text stream proxy that writes to the context-bound target.
    """

    def __init__(self, target: ContextVar[TextIO | None], fallback: TextIO) -> None:
        self._target = target
        self._fallback = fallback

    def current(self) -> TextIO:
        bound = self._target.get()
        return bound if bound is not None else self._fallback

    def write(self, text: str) -> int:
        return self.current().write(text)

    def writelines(self, lines: Any) -> None:
        self.current().writelines(lines)

    def flush(self) -> None:
        self.current().flush()

    def readline(self, size: int = -1) -> str:
        return self.current().readline(size)

    def read(self, size: int = -1) -> str:
        return self.current().read(size)

    def __iter__(self) -> Iterator[str]:
        return iter(self.current())

    def __getattr__(self, name: str) -> Any:
        return getattr(self.current(), name)


class BoundedBuffer(io.StringIO):
    """
    StringIO that keeps at most ``limit`` characters and drops the rest.
    """

    def __init__(self, limit: int) -> None:
        super().__init__()
        self._limit = max(0, limit)
        self._stored = 0
        self.truncated = False

    def write(self, text: str) -> int:
        size = len(text)
        remaining = self._limit - self._stored
        if size > remaining:
            self.truncated = True
            text = text[: max(0, remaining)]
        if text:
            super().write(text)
            self._stored += len(text)
        return size

    def text(self) -> str:
        value = self.getvalue()
        return value + TRUNCATION_MARKER if self.truncated else value


@dataclass(frozen=True)
class CaptureBuffers:
    stdout: BoundedBuffer
    stderr: BoundedBuffer
    stdin: io.StringIO


def install_stream_routing() -> tuple[RoutedStream, RoutedStream, RoutedStream]:
    """
    Replace the process standard streams with routing proxies (idempotent).
    """

    with _install_lock:
        if not isinstance(sys.stdout, RoutedStream):
            sys.stdout = RoutedStream(_stdout_target, sys.stdout)
        if not isinstance(sys.stderr, RoutedStream):
            sys.stderr = RoutedStream(_stderr_target, sys.stderr)
        if not isinstance(sys.stdin, RoutedStream):
            sys.stdin = RoutedStream(_stdin_target, sys.stdin)
        return sys.stdout, sys.stderr, sys.stdin


def _restore_routing(routers: tuple[RoutedStream, RoutedStream, RoutedStream]) -> None:
    stdout, stderr, stdin = routers
    with _install_lock:
        if sys.stdout is not stdout or sys.stderr is not stderr or sys.stdin is not stdin:
            logger.warning("Submitted program replaced a standard stream; restoring routing")
        sys.stdout = stdout
        sys.stderr = stderr
        sys.stdin = stdin


@contextmanager
def captured_streams(
    stdin_text: str | None = None,
    *,
    max_chars: int = 65536,
) -> Iterator[CaptureBuffers]:
    """
    Bind fresh capture buffers to the standard streams for the current context.

    The previous bindings are restored on every exit path, including
    exceptions raised by the body.
    """

    routers = install_stream_routing()
    buffers = CaptureBuffers(
        stdout=BoundedBuffer(max_chars),
        stderr=BoundedBuffer(max_chars),
        stdin=io.StringIO(stdin_text or ""),
    )
    stdout_token = _stdout_target.set(buffers.stdout)
    stderr_token = _stderr_target.set(buffers.stderr)
    stdin_token = _stdin_target.set(buffers.stdin)
    try:
        yield buffers
    finally:
        _stdin_target.reset(stdin_token)
        _stderr_target.reset(stderr_token)
        _stdout_target.reset(stdout_token)
        _restore_routing(routers)
