"""
tests/test_isolated_runner.py

Subprocess-backed execution. These tests start real worker processes with
the current interpreter.
"""

from __future__ import annotations

import pytest

from playground.domain.execution import MISSING_ENTRY_POINT_MESSAGE, CompiledModule, OutcomeKind
from playground.execution.isolated import IsolatedRunner
from playground.execution.protocol import WorkerRequest, decode_request, encode_request
from playground.toolchain.compiler import Compiler
from playground.toolchain.errors import ToolchainError, WorkerProtocolError


def _runner(timeout_seconds: float = 10.0, **kwargs: object) -> IsolatedRunner:
    return IsolatedRunner(
        timeout_seconds=timeout_seconds,
        max_memory_mb=512,
        max_output_chars=4096,
        **kwargs,
    )


def _compile(source: str) -> CompiledModule:
    module = Compiler().compile(source)
    assert module.success, module.diagnostics_text()
    return module


# ---------------------------------------------------------------------------
# Worker execution
# ---------------------------------------------------------------------------


class TestIsolatedRunner:
    def test_hello_world(self) -> None:
        outcome = _runner().run(_compile('def main():\n    print("Hello")\n'))
        assert outcome.success is True
        assert outcome.output == "Hello\n"
        assert outcome.error == ""
        assert outcome.kind is OutcomeKind.SUCCESS

    def test_runtime_error(self) -> None:
        outcome = _runner().run(_compile('def main():\n    raise ValueError("boom")\n'))
        assert outcome.success is False
        assert outcome.error == "ValueError: boom"
        assert outcome.kind is OutcomeKind.RUNTIME_ERROR

    def test_base_exception_is_runtime_error(self) -> None:
        source = "class Boom(BaseException):\n    pass\ndef main():\n    raise Boom('boom')\n"
        outcome = _runner().run(_compile(source))
        assert outcome.success is False
        assert outcome.kind is OutcomeKind.RUNTIME_ERROR
        assert outcome.error == "Boom: boom"

    def test_input_reaches_program(self) -> None:
        module = _compile("def main():\n    print(int(input()) * 2)\n")
        assert _runner().run(module, stdin_text="21\n").output == "42\n"

    def test_infinite_loop_times_out(self) -> None:
        outcome = _runner(timeout_seconds=1.0).run(_compile("def main():\n    while True:\n        pass\n"))
        assert outcome.success is False
        assert outcome.kind is OutcomeKind.TIMED_OUT
        assert outcome.error == "execution timed out after 1s"

    def test_raw_stdout_writes_do_not_corrupt_result(self) -> None:
        source = 'import sys\ndef main():\n    sys.__stdout__.write("garbage")\n    sys.__stdout__.flush()\n    print("ok")\n'
        outcome = _runner().run(_compile(source))
        assert outcome.success is True
        assert outcome.output == "ok\n"

    def test_missing_entry_point_skips_worker(self) -> None:
        runner = _runner(python_executable="/nonexistent/python")
        outcome = runner.run(CompiledModule(image=b"", entry_point=None))
        assert outcome.kind is OutcomeKind.MISSING_ENTRY_POINT
        assert outcome.error == MISSING_ENTRY_POINT_MESSAGE

    def test_unavailable_interpreter_raises(self) -> None:
        runner = _runner(python_executable="/nonexistent/python")
        with pytest.raises(ToolchainError):
            runner.run(_compile("def main():\n    pass\n"))


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class TestWorkerProtocol:
    def test_request_survives_encoding(self) -> None:
        request = WorkerRequest(
            image=b"\x00\x01binary",
            entry_point="main",
            input=None,
            max_output_chars=10,
            cpu_seconds=2,
            max_memory_mb=64,
        )
        assert decode_request(encode_request(request)) == request

    @pytest.mark.parametrize("raw", ["not json", "{}", '{"image": "%%%"}'])
    def test_malformed_request_raises(self, raw: str) -> None:
        with pytest.raises(WorkerProtocolError):
            decode_request(raw)
