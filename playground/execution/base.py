"""
playground/execution/base.py

Runner interface shared by the in-process and isolated execution modes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from playground.domain.execution import CompiledModule, ExecutionOutcome


class ExecutionRunner(ABC):
    """
    Loads a compiled module, invokes its entry point and reports the outcome.
    """

    mode: str

    @abstractmethod
    def run(self, module: CompiledModule, *, stdin_text: str | None = None) -> ExecutionOutcome:
        """
        Execute ``module`` and return exactly one outcome.

        Implementations convert program failures into outcomes and let
        infrastructure failures raise ToolchainError.
        """
