"""
playground/services/session_gateway.py

Per-connection dispatch between the WebSocket transport and the
compilation service.
"""

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache

from fastapi import WebSocket

from playground.api.connections import ConnectionRegistry
from playground.config import get_gateway_settings
from playground.domain.execution import ExecutionOutcome, OutcomeKind, SourceSubmission
from playground.logging_utils import log_event
from playground.services.compilation_service import CompilationService, get_compilation_service
from playground.services.outcome_publisher import OutcomePublisher

logger = logging.getLogger(__name__)


class SessionGateway:
    """
    Accepts submissions and forwarded input for live connections.

    The gateway keeps no per-connection state of its own; connection
    bookkeeping belongs to the registry.
    """

    def __init__(
        self,
        *,
        service: CompilationService,
        publisher: OutcomePublisher,
        registry: ConnectionRegistry,
    ) -> None:
        self._service = service
        self._publisher = publisher
        self._registry = registry
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    @property
    def service(self) -> CompilationService:
        return self._service

    @property
    def publisher(self) -> OutcomePublisher:
        return self._publisher

    def on_connect(self, websocket: WebSocket) -> str:
        connection_id = self._registry.register(websocket)
        logger.info("Connection opened connection_id=%s open=%d", connection_id, len(self._registry))
        return connection_id

    def on_disconnect(self, connection_id: str) -> None:
        self._registry.unregister(connection_id)
        logger.info("Connection closed connection_id=%s open=%d", connection_id, len(self._registry))

    def submit_for_execution(
        self,
        source: str,
        connection_id: str,
        input_text: str | None = None,
    ) -> asyncio.Task[None]:
        """
        Schedule one submission and return immediately.
        """

        submission = SourceSubmission(source=source, connection_id=connection_id, input=input_text)
        log_event(
            logger,
            logging.INFO,
            "submission_received",
            submission_id=submission.submission_id,
            connection_id=connection_id,
            source_chars=len(source),
        )
        task = asyncio.create_task(self._run_submission(submission))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    def forward_input(self, text: str, connection_id: str) -> None:
        """
        Accept supplementary input for a connection.

        Input is not fed to submissions that are already running; programs
        read the ``input`` sent along with their submission instead.
        """

        log_event(
            logger,
            logging.INFO,
            "input_forwarded",
            connection_id=connection_id,
            input_chars=len(text),
        )

    async def reject(self, connection_id: str, reason: str) -> None:
        """
        Push an ``invalid_request`` outcome for a malformed inbound message.
        """

        logger.warning("Rejected inbound message connection_id=%s reason=%s", connection_id, reason)
        await self._publisher.publish(
            connection_id,
            ExecutionOutcome.failed(OutcomeKind.INVALID_REQUEST, reason),
        )

    async def shutdown(self) -> None:
        """
        Cancel submissions still waiting on their execution.
        """

        pending = list(self._pending)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.info("Cancelled pending submissions count=%d", len(pending))

    async def _run_submission(self, submission: SourceSubmission) -> None:
        try:
            await self._service.execute(submission, self._publisher)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception(
                "Submission pipeline escaped submission_id=%s error=%s",
                submission.submission_id,
                exc,
            )
            await self._publisher.publish(
                submission.connection_id,
                ExecutionOutcome.failed(
                    OutcomeKind.INFRASTRUCTURE_ERROR,
                    str(exc) or type(exc).__name__,
                    submission_id=submission.submission_id,
                ),
            )


@lru_cache(maxsize=1)
def get_session_gateway() -> SessionGateway:
    """
    Build and cache the session gateway with its push channel.
    """

    registry = ConnectionRegistry()
    publisher = OutcomePublisher(
        registry=registry,
        delivery=get_gateway_settings().outcome_delivery,
    )
    return SessionGateway(
        service=get_compilation_service(),
        publisher=publisher,
        registry=registry,
    )
