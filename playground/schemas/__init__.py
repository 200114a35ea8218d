"""
playground/schemas package marker.
"""

from playground.schemas.health import HealthResponse
from playground.schemas.messages import (
    ExecutionOutcomeMessage,
    ExecutionOutcomePayload,
    InputMessage,
    SubmitMessage,
    parse_inbound_message,
    summarize_validation_error,
)

__all__ = [
    "ExecutionOutcomeMessage",
    "ExecutionOutcomePayload",
    "HealthResponse",
    "InputMessage",
    "SubmitMessage",
    "parse_inbound_message",
    "summarize_validation_error",
]
