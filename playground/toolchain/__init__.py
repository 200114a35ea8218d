"""
playground/toolchain package marker.
"""

from playground.toolchain.compiler import ENTRY_POINT_NAME, Compiler, load_code
from playground.toolchain.errors import EmitError, ToolchainError, WorkerProtocolError
from playground.toolchain.reference_set import REFERENCE_MODULES, is_resolvable

__all__ = [
    "ENTRY_POINT_NAME",
    "REFERENCE_MODULES",
    "Compiler",
    "EmitError",
    "ToolchainError",
    "WorkerProtocolError",
    "is_resolvable",
    "load_code",
]
