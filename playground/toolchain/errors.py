"""
Toolchain and runner exceptions.
"""

from __future__ import annotations


class ToolchainError(RuntimeError):
    """Base exception for compile and execute infrastructure failures."""


class EmitError(ToolchainError):
    """Raised when a parsed unit cannot be written to a binary module."""


class WorkerProtocolError(ToolchainError):
    """Raised when an isolated worker returns an unreadable result."""
