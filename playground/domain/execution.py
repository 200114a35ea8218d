"""
playground/domain/execution.py

Domain models for one compile-and-run request.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum

MISSING_ENTRY_POINT_MESSAGE = "no suitable entry point"


class OutcomeKind(str, Enum):
    """
    Discriminates how a submission ended.
    """

    SUCCESS = "success"
    COMPILE_ERROR = "compile_error"
    MISSING_ENTRY_POINT = "missing_entry_point"
    RUNTIME_ERROR = "runtime_error"
    TIMED_OUT = "timed_out"
    INFRASTRUCTURE_ERROR = "infrastructure_error"
    INVALID_REQUEST = "invalid_request"


def _new_submission_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class SourceSubmission:
    """
    One inbound request to compile and run source text.
    """

    source: str
    connection_id: str
    input: str | None = None
    submission_id: str = field(default_factory=_new_submission_id)


@dataclass(frozen=True)
class Diagnostic:
    """
    One compiler-reported problem with its source position.
    """

    code: str
    message: str
    line: int | None = None
    column: int | None = None
    severity: str = "error"

    def __str__(self) -> str:
        location = ""
        if self.line is not None:
            location = f"({self.line},{self.column or 1})"
        return f"submission.py{location}: {self.severity} {self.code}: {self.message}"


@dataclass(frozen=True)
class CompiledModule:
    """
    In-memory binary module emitted for one submission.

    ``image`` is empty when emission failed; ``diagnostics`` then explains why.
    """

    image: bytes
    diagnostics: tuple[Diagnostic, ...] = ()
    entry_point: str | None = None

    @property
    def success(self) -> bool:
        return bool(self.image) and not any(d.severity == "error" for d in self.diagnostics)

    def diagnostics_text(self) -> str:
        return "\n".join(str(diagnostic) for diagnostic in self.diagnostics)


@dataclass(frozen=True)
class ExecutionOutcome:
    """
    The single structured result of one submission.
    """

    success: bool
    output: str | None
    error: str | None
    kind: OutcomeKind
    submission_id: str | None = None

    @classmethod
    def succeeded(cls, *, output: str, error: str, submission_id: str | None = None) -> "ExecutionOutcome":
        return cls(
            success=True,
            output=output,
            error=error,
            kind=OutcomeKind.SUCCESS,
            submission_id=submission_id,
        )

    @classmethod
    def failed(
        cls,
        kind: OutcomeKind,
        error: str,
        *,
        output: str | None = None,
        submission_id: str | None = None,
    ) -> "ExecutionOutcome":
        return cls(
            success=False,
            output=output,
            error=error,
            kind=kind,
            submission_id=submission_id,
        )

    def for_submission(self, submission_id: str) -> "ExecutionOutcome":
        """
        Return a copy addressed to ``submission_id``.
        """

        return ExecutionOutcome(
            success=self.success,
            output=self.output,
            error=self.error,
            kind=self.kind,
            submission_id=submission_id,
        )
