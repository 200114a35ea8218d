"""
playground/services/outcome_publisher.py

Pushes execution outcomes according to the configured delivery policy.
"""

from __future__ import annotations

import logging
from typing import Protocol

from playground.api.connections import ConnectionRegistry
from playground.config import ALLOWED_DELIVERY_POLICIES, DELIVERY_BROADCAST, DELIVERY_CALLER
from playground.domain.execution import ExecutionOutcome
from playground.schemas.messages import ExecutionOutcomeMessage

logger = logging.getLogger(__name__)


class OutcomeSink(Protocol):
    async def publish(self, connection_id: str, outcome: ExecutionOutcome) -> int:
        ...


class OutcomePublisher:
    """
    Delivers outcomes to the originating connection or to every connection.

    ``caller`` keeps tenants isolated from each other; ``broadcast`` shows
    every outcome to every open connection.
    """

    def __init__(self, *, registry: ConnectionRegistry, delivery: str = DELIVERY_CALLER) -> None:
        if delivery not in ALLOWED_DELIVERY_POLICIES:
            raise ValueError(
                f"Unsupported outcome delivery '{delivery}'. "
                f"Allowed values: {sorted(ALLOWED_DELIVERY_POLICIES)}."
            )
        self._registry = registry
        self._delivery = delivery

    @property
    def delivery(self) -> str:
        return self._delivery

    async def publish(self, connection_id: str, outcome: ExecutionOutcome) -> int:
        """
        Push ``outcome`` and return how many connections received it.
        """

        message = ExecutionOutcomeMessage.from_outcome(outcome).to_wire()
        if self._delivery == DELIVERY_BROADCAST:
            delivered = await self._registry.broadcast(message)
        else:
            delivered = 1 if await self._registry.send(connection_id, message) else 0

        if delivered == 0:
            logger.warning(
                "Outcome not delivered submission_id=%s connection_id=%s delivery=%s",
                outcome.submission_id,
                connection_id,
                self._delivery,
            )
        return delivered
