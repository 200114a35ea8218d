"""
playground/domain package marker.
"""

from playground.domain.execution import (
    MISSING_ENTRY_POINT_MESSAGE,
    CompiledModule,
    Diagnostic,
    ExecutionOutcome,
    OutcomeKind,
    SourceSubmission,
)

__all__ = [
    "MISSING_ENTRY_POINT_MESSAGE",
    "CompiledModule",
    "Diagnostic",
    "ExecutionOutcome",
    "OutcomeKind",
    "SourceSubmission",
]
