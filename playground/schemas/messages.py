"""
playground/schemas/messages.py

Wire schemas for the compiler hub WebSocket protocol.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from playground.domain.execution import ExecutionOutcome, OutcomeKind


class SubmitMessage(BaseModel):
    """
    Inbound request to compile and run ``source``.
    """

    model_config = ConfigDict(extra="forbid")

    type: Literal["submit"]
    source: str
    input: str | None = None


class InputMessage(BaseModel):
    """
    Inbound supplementary input for the connection's submissions.
    """

    model_config = ConfigDict(extra="forbid")

    type: Literal["input"]
    data: str


InboundMessage = Annotated[Union[SubmitMessage, InputMessage], Field(discriminator="type")]

_inbound_adapter: TypeAdapter[SubmitMessage | InputMessage] = TypeAdapter(InboundMessage)


def parse_inbound_message(raw: str) -> SubmitMessage | InputMessage:
    """
    Validate one raw WebSocket text frame.

    Raises pydantic.ValidationError for malformed JSON or unknown shapes.
    """

    return _inbound_adapter.validate_json(raw)


def summarize_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        parts.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "invalid message: " + "; ".join(parts)


class ExecutionOutcomePayload(BaseModel):
    """
    Outcome body pushed to clients.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    submission_id: str | None = Field(default=None, alias="submissionId")
    success: bool
    output: str | None
    error: str | None
    kind: OutcomeKind


class ExecutionOutcomeMessage(BaseModel):
    """
    Outbound ``executionOutcome`` push message.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["executionOutcome"] = "executionOutcome"
    payload: ExecutionOutcomePayload

    @classmethod
    def from_outcome(cls, outcome: ExecutionOutcome) -> "ExecutionOutcomeMessage":
        return cls(
            payload=ExecutionOutcomePayload(
                submission_id=outcome.submission_id,
                success=outcome.success,
                output=outcome.output,
                error=outcome.error,
                kind=outcome.kind,
            )
        )

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
