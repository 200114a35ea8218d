"""
playground/execution package marker.
"""

from playground.execution.base import ExecutionRunner
from playground.execution.capture import captured_streams
from playground.execution.in_process import InProcessRunner
from playground.execution.isolated import IsolatedRunner

__all__ = [
    "ExecutionRunner",
    "InProcessRunner",
    "IsolatedRunner",
    "captured_streams",
]
