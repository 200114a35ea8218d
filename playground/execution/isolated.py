"""
playground/execution/isolated.py

Runs each compiled submission in its own Python subprocess.

The worker owns its standard streams, gets an empty scratch directory and a
minimal environment, applies CPU/memory/file-size rlimits to itself on POSIX
and is killed when the wall-clock deadline passes. The result travels back
as one JSON document on the worker's stdout.
"""

from __future__ import annotations

import logging
import math
import os
import signal
import subprocess
import sys
import tempfile
from pathlib import Path

from playground.domain.execution import (
    MISSING_ENTRY_POINT_MESSAGE,
    CompiledModule,
    ExecutionOutcome,
    OutcomeKind,
)
from playground.execution.base import ExecutionRunner
from playground.execution.protocol import WorkerRequest, decode_outcome, encode_request
from playground.toolchain.errors import ToolchainError

logger = logging.getLogger(__name__)

WORKER_MODULE = "playground.execution.worker"
_PROJECT_ROOT = Path(__file__).resolve().parents[2]
_STDERR_TAIL_CHARS = 2000


def _signal_name(returncode: int) -> str:
    try:
        return signal.Signals(-returncode).name
    except ValueError:
        return str(-returncode)


class IsolatedRunner(ExecutionRunner):
    """
    Executes entry points in deadline-bound worker processes.
    """

    mode = "isolated"

    def __init__(
        self,
        *,
        timeout_seconds: float,
        max_memory_mb: int,
        max_output_chars: int,
        python_executable: str | None = None,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._max_memory_mb = max_memory_mb
        self._max_output_chars = max_output_chars
        self._python_executable = python_executable or sys.executable

    def run(self, module: CompiledModule, *, stdin_text: str | None = None) -> ExecutionOutcome:
        if module.entry_point is None:
            return ExecutionOutcome.failed(OutcomeKind.MISSING_ENTRY_POINT, MISSING_ENTRY_POINT_MESSAGE)

        request = WorkerRequest(
            image=module.image,
            entry_point=module.entry_point,
            input=stdin_text,
            max_output_chars=self._max_output_chars,
            cpu_seconds=math.ceil(self._timeout_seconds) + 1,
            max_memory_mb=self._max_memory_mb,
        )

        with tempfile.TemporaryDirectory(prefix="playground-") as workdir:
            try:
                completed = subprocess.run(
                    [self._python_executable, "-B", "-m", WORKER_MODULE],
                    input=encode_request(request),
                    capture_output=True,
                    text=True,
                    encoding="utf-8",
                    errors="replace",
                    timeout=self._timeout_seconds,
                    cwd=workdir,
                    env=self._worker_env(),
                    check=False,
                )
            except subprocess.TimeoutExpired:
                logger.warning("Isolated execution timed out timeout_seconds=%s", self._timeout_seconds)
                return ExecutionOutcome.failed(
                    OutcomeKind.TIMED_OUT,
                    f"execution timed out after {self._timeout_seconds:g}s",
                )
            except OSError as exc:
                raise ToolchainError(f"could not start execution worker: {exc}") from exc

        if completed.returncode < 0:
            name = _signal_name(completed.returncode)
            logger.warning("Isolated execution terminated signal=%s", name)
            return ExecutionOutcome.failed(
                OutcomeKind.RUNTIME_ERROR,
                f"execution terminated by signal {name}",
            )

        if completed.returncode != 0 or not completed.stdout.strip():
            tail = completed.stderr[-_STDERR_TAIL_CHARS:].strip()
            logger.error(
                "Execution worker failed returncode=%s stderr=%s",
                completed.returncode,
                tail,
            )
            raise ToolchainError(
                f"execution worker exited with status {completed.returncode}"
                + (f": {tail.splitlines()[-1]}" if tail else "")
            )

        return decode_outcome(completed.stdout)

    def _worker_env(self) -> dict[str, str]:
        pythonpath = [str(_PROJECT_ROOT)]
        existing = os.environ.get("PYTHONPATH")
        if existing:
            pythonpath.append(existing)
        env = {
            "PATH": os.environ.get("PATH", ""),
            "PYTHONPATH": os.pathsep.join(pythonpath),
            "PYTHONIOENCODING": "utf-8",
            "PYTHONDONTWRITEBYTECODE": "1",
        }
        if "SYSTEMROOT" in os.environ:
            env["SYSTEMROOT"] = os.environ["SYSTEMROOT"]
        return env
