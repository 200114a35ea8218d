"""
Entry point of the isolated execution worker process.

Reads one WorkerRequest from stdin, runs it with InProcessRunner and writes
the outcome as JSON to a private duplicate of the original stdout. File
descriptor 1 is pointed at /dev/null first so a submitted program cannot
corrupt the result channel.
"""

from __future__ import annotations

import os
import sys
from typing import TextIO

from playground.execution.in_process import InProcessRunner
from playground.execution.protocol import WorkerRequest, decode_request, encode_outcome

_RESOURCE_LIMITS_SUPPORTED = sys.platform != "win32"


def _detach_result_channel() -> TextIO:
    channel = os.fdopen(os.dup(1), "w", encoding="utf-8")
    devnull = os.open(os.devnull, os.O_WRONLY)
    os.dup2(devnull, 1)
    os.close(devnull)
    return channel


def _apply_limits(request: WorkerRequest) -> None:
    if not _RESOURCE_LIMITS_SUPPORTED:
        return

    import resource

    memory_bytes = request.max_memory_mb * 1024 * 1024
    limits = (
        (resource.RLIMIT_CPU, request.cpu_seconds),
        (resource.RLIMIT_AS, memory_bytes),
        (resource.RLIMIT_FSIZE, 0),
    )
    for limit, value in limits:
        try:
            resource.setrlimit(limit, (value, value))
        except (OSError, ValueError) as exc:
            sys.stderr.write(f"could not apply resource limit {limit}: {exc}\n")


def main() -> int:
    request = decode_request(sys.stdin.read())
    channel = _detach_result_channel()
    _apply_limits(request)

    runner = InProcessRunner(max_output_chars=request.max_output_chars, serialize=False)
    outcome = runner.invoke(request.image, request.entry_point, stdin_text=request.input)

    channel.write(encode_outcome(outcome))
    channel.flush()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
