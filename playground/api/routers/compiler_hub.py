"""
playground/api/routers/compiler_hub.py

WebSocket endpoint that carries submissions in and outcomes out.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from playground.schemas.messages import (
    InputMessage,
    SubmitMessage,
    parse_inbound_message,
    summarize_validation_error,
)
from playground.services.session_gateway import SessionGateway, get_session_gateway

logger = logging.getLogger(__name__)

HUB_PATH = "/compiler"

router = APIRouter(tags=["compiler-hub"])


async def dispatch_message(gateway: SessionGateway, connection_id: str, raw: str) -> None:
    """
    Route one inbound text frame to the gateway.
    """

    try:
        message = parse_inbound_message(raw)
    except ValidationError as exc:
        await gateway.reject(connection_id, summarize_validation_error(exc))
        return

    if isinstance(message, SubmitMessage):
        gateway.submit_for_execution(message.source, connection_id, input_text=message.input)
    elif isinstance(message, InputMessage):
        gateway.forward_input(message.data, connection_id)


@router.websocket(HUB_PATH)
async def compiler_hub(
    websocket: WebSocket,
    gateway: SessionGateway = Depends(get_session_gateway),
) -> None:
    """
    Keep one client connection open until it disconnects.
    """

    await websocket.accept()
    connection_id = gateway.on_connect(websocket)
    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
            raw = frame.get("text")
            if raw is None:
                raw = (frame.get("bytes") or b"").decode("utf-8", errors="replace")
            await dispatch_message(gateway, connection_id, raw)
    except WebSocketDisconnect:
        pass
    finally:
        gateway.on_disconnect(connection_id)
