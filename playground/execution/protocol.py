"""
JSON messages exchanged with the isolated execution worker.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any

from playground.domain.execution import ExecutionOutcome, OutcomeKind
from playground.toolchain.errors import WorkerProtocolError


@dataclass(frozen=True)
class WorkerRequest:
    image: bytes
    entry_point: str
    input: str | None
    max_output_chars: int
    cpu_seconds: int
    max_memory_mb: int


def encode_request(request: WorkerRequest) -> str:
    return json.dumps(
        {
            "image": base64.b64encode(request.image).decode("ascii"),
            "entry_point": request.entry_point,
            "input": request.input,
            "max_output_chars": request.max_output_chars,
            "cpu_seconds": request.cpu_seconds,
            "max_memory_mb": request.max_memory_mb,
        }
    )


def decode_request(raw: str) -> WorkerRequest:
    try:
        payload: dict[str, Any] = json.loads(raw)
        return WorkerRequest(
            image=base64.b64decode(payload["image"], validate=True),
            entry_point=str(payload["entry_point"]),
            input=payload.get("input"),
            max_output_chars=int(payload["max_output_chars"]),
            cpu_seconds=int(payload["cpu_seconds"]),
            max_memory_mb=int(payload["max_memory_mb"]),
        )
    except (ValueError, KeyError, TypeError, binascii.Error) as exc:
        raise WorkerProtocolError(f"malformed worker request: {exc}") from exc


def encode_outcome(outcome: ExecutionOutcome) -> str:
    return json.dumps(
        {
            "success": outcome.success,
            "output": outcome.output,
            "error": outcome.error,
            "kind": outcome.kind.value,
        }
    )


def decode_outcome(raw: str) -> ExecutionOutcome:
    try:
        payload: dict[str, Any] = json.loads(raw)
        return ExecutionOutcome(
            success=bool(payload["success"]),
            output=payload.get("output"),
            error=payload.get("error"),
            kind=OutcomeKind(payload["kind"]),
        )
    except (ValueError, KeyError, TypeError) as exc:
        raise WorkerProtocolError(f"malformed worker result: {exc}") from exc
