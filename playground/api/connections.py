"""
playground/api/connections.py

Registry of live WebSocket connections used as the push channel.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """
    Tracks open connections by opaque id and delivers push messages.

    Sends to one connection are serialized by a per-connection lock; sends to
    distinct connections proceed concurrently.
    """

    def __init__(self) -> None:
        self._connections: dict[str, WebSocket] = {}
        self._send_locks: dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    def register(self, websocket: WebSocket) -> str:
        connection_id = uuid.uuid4().hex
        self._connections[connection_id] = websocket
        self._send_locks[connection_id] = asyncio.Lock()
        return connection_id

    def unregister(self, connection_id: str) -> None:
        self._connections.pop(connection_id, None)
        self._send_locks.pop(connection_id, None)

    async def send(self, connection_id: str, message: dict[str, Any]) -> bool:
        """
        Deliver ``message`` to one connection; return False if it is gone.
        """

        websocket = self._connections.get(connection_id)
        lock = self._send_locks.get(connection_id)
        if websocket is None or lock is None:
            return False

        async with lock:
            try:
                await websocket.send_json(message)
            except (WebSocketDisconnect, RuntimeError, OSError) as exc:
                logger.warning(
                    "Push delivery failed connection_id=%s error=%s",
                    connection_id,
                    exc,
                )
                return False
        return True

    async def broadcast(self, message: dict[str, Any]) -> int:
        """
        Deliver ``message`` to every open connection; return the delivered count.
        """

        connection_ids = list(self._connections)
        results = await asyncio.gather(*(self.send(connection_id, message) for connection_id in connection_ids))
        return sum(1 for delivered in results if delivered)
