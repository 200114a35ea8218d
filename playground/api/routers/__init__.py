"""
playground/api/routers package marker.
"""

from playground.api.routers.compiler_hub import router as compiler_hub_router

__all__ = [
    "compiler_hub_router",
]
