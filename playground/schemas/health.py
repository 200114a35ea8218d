"""
Response schema for the service health endpoint.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    execution_mode: str
    outcome_delivery: str
    open_connections: int = Field(..., ge=0)
