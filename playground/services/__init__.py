"""
playground/services package marker.
"""

from playground.services.compilation_service import (
    CompilationService,
    build_runner,
    get_compilation_service,
)
from playground.services.outcome_publisher import OutcomePublisher
from playground.services.session_gateway import SessionGateway, get_session_gateway

__all__ = [
    "CompilationService",
    "OutcomePublisher",
    "SessionGateway",
    "build_runner",
    "get_compilation_service",
    "get_session_gateway",
]
