"""
playground/services/compilation_service.py

Compile, execute, capture and deliver one submission.
"""

from __future__ import annotations

import asyncio
import logging
import time
from functools import lru_cache

from playground.config import EXECUTION_MODE_IN_PROCESS, CompilerSettings, get_compiler_settings
from playground.domain.execution import (
    MISSING_ENTRY_POINT_MESSAGE,
    ExecutionOutcome,
    OutcomeKind,
    SourceSubmission,
)
from playground.execution.base import ExecutionRunner
from playground.execution.in_process import InProcessRunner
from playground.execution.isolated import IsolatedRunner
from playground.logging_utils import log_event
from playground.services.outcome_publisher import OutcomeSink
from playground.toolchain.compiler import Compiler
from playground.toolchain.errors import ToolchainError

logger = logging.getLogger(__name__)


class CompilationService:
    """
    Stateless pipeline producing exactly one outcome per submission.

    Compiled modules live only for the duration of one ``run`` call.
    """

    def __init__(self, *, compiler: Compiler, runner: ExecutionRunner) -> None:
        self._compiler = compiler
        self._runner = runner

    @property
    def mode(self) -> str:
        return self._runner.mode

    def run(self, submission: SourceSubmission) -> ExecutionOutcome:
        """
        Compile and execute ``submission``, converting every failure into an outcome.
        """

        started = time.monotonic()
        try:
            outcome = self._compile_and_run(submission)
        except ToolchainError as exc:
            logger.error(
                "Toolchain failure submission_id=%s error=%s",
                submission.submission_id,
                exc,
            )
            outcome = ExecutionOutcome.failed(OutcomeKind.INFRASTRUCTURE_ERROR, str(exc))
        except Exception as exc:
            logger.exception(
                "Unhandled pipeline failure submission_id=%s error=%s",
                submission.submission_id,
                exc,
            )
            outcome = ExecutionOutcome.failed(OutcomeKind.INFRASTRUCTURE_ERROR, str(exc) or type(exc).__name__)

        outcome = outcome.for_submission(submission.submission_id)
        log_event(
            logger,
            logging.INFO,
            "submission_completed",
            submission_id=submission.submission_id,
            connection_id=submission.connection_id,
            kind=outcome.kind.value,
            mode=self._runner.mode,
            duration_ms=round((time.monotonic() - started) * 1000, 1),
        )
        return outcome

    async def execute(self, submission: SourceSubmission, publisher: OutcomeSink) -> ExecutionOutcome:
        """
        Run ``submission`` off the event loop and push its outcome.
        """

        outcome = await asyncio.to_thread(self.run, submission)
        await publisher.publish(submission.connection_id, outcome)
        return outcome

    def _compile_and_run(self, submission: SourceSubmission) -> ExecutionOutcome:
        module = self._compiler.compile(submission.source)
        if not module.success:
            return ExecutionOutcome.failed(OutcomeKind.COMPILE_ERROR, module.diagnostics_text())
        if module.entry_point is None:
            return ExecutionOutcome.failed(OutcomeKind.MISSING_ENTRY_POINT, MISSING_ENTRY_POINT_MESSAGE)
        return self._runner.run(module, stdin_text=submission.input)


def build_runner(settings: CompilerSettings) -> ExecutionRunner:
    """
    Build the runner selected by ``settings.execution_mode``.
    """

    if settings.execution_mode == EXECUTION_MODE_IN_PROCESS:
        return InProcessRunner(
            max_output_chars=settings.max_output_chars,
            serialize=settings.serialize_in_process,
        )
    return IsolatedRunner(
        timeout_seconds=settings.timeout_seconds,
        max_memory_mb=settings.max_memory_mb,
        max_output_chars=settings.max_output_chars,
    )


@lru_cache(maxsize=1)
def get_compilation_service() -> CompilationService:
    """
    Build and cache the compilation service.
    """

    settings = get_compiler_settings()
    return CompilationService(compiler=Compiler(), runner=build_runner(settings))
