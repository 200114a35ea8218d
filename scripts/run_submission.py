"""
Compile and run one source file from CLI.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
from pathlib import Path

from playground.config import ALLOWED_EXECUTION_MODES, get_compiler_settings
from playground.domain.execution import SourceSubmission
from playground.schemas.messages import ExecutionOutcomeMessage
from playground.services.compilation_service import CompilationService, build_runner
from playground.toolchain.compiler import Compiler


def main() -> int:
    parser = argparse.ArgumentParser(description="Compile and run one submission file.")
    parser.add_argument("path", type=Path, help="Source file to compile and run.")
    parser.add_argument(
        "--input",
        dest="input_text",
        default=None,
        help="Optional text fed to the program's standard input.",
    )
    parser.add_argument(
        "--mode",
        dest="mode",
        choices=sorted(ALLOWED_EXECUTION_MODES),
        default=None,
        help="Execution mode; defaults to COMPILER_EXECUTION_MODE.",
    )
    args = parser.parse_args()

    settings = get_compiler_settings()
    if args.mode is not None:
        settings = dataclasses.replace(settings, execution_mode=args.mode)

    service = CompilationService(compiler=Compiler(), runner=build_runner(settings))
    outcome = service.run(
        SourceSubmission(
            source=args.path.read_text(encoding="utf-8"),
            connection_id="cli",
            input=args.input_text,
        )
    )

    payload = ExecutionOutcomeMessage.from_outcome(outcome).payload
    print(json.dumps(payload.model_dump(mode="json", by_alias=True), indent=2))
    return 0 if outcome.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
