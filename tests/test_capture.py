"""
tests/test_capture.py

Request-scoped stream capture.
"""

from __future__ import annotations

import io
import sys
import threading

import pytest

from playground.execution.capture import (
    TRUNCATION_MARKER,
    BoundedBuffer,
    RoutedStream,
    captured_streams,
)


def _bound_target() -> object:
    assert isinstance(sys.stdout, RoutedStream)
    return sys.stdout.current()


class TestCapturedStreams:
    def test_print_is_captured(self) -> None:
        with captured_streams() as buffers:
            print("inside")
            print("warning", file=sys.stderr)
        assert buffers.stdout.text() == "inside\n"
        assert buffers.stderr.text() == "warning\n"

    def test_streams_restored_after_scope(self, capsys: pytest.CaptureFixture[str]) -> None:
        with captured_streams() as buffers:
            print("captured")
        print("host")
        assert buffers.stdout.text() == "captured\n"
        assert capsys.readouterr().out == "host\n"

    def test_streams_restored_after_exception(self) -> None:
        with pytest.raises(ValueError):
            with captured_streams() as buffers:
                print("before failure")
                raise ValueError("boom")
        assert buffers.stdout.text() == "before failure\n"
        assert not isinstance(_bound_target(), BoundedBuffer)

    def test_replaced_stdout_is_restored(self) -> None:
        with captured_streams():
            router = sys.stdout
            sys.stdout = io.StringIO()
        assert sys.stdout is router

    def test_stdin_is_fed_from_text(self) -> None:
        with captured_streams("first\nsecond\n"):
            assert input() == "first"
            assert sys.stdin.readline() == "second\n"

    def test_missing_stdin_reads_eof(self) -> None:
        with captured_streams():
            with pytest.raises(EOFError):
                input()

    def test_concurrent_scopes_do_not_share_buffers(self) -> None:
        barrier = threading.Barrier(2)
        results: dict[str, str] = {}

        def worker(label: str) -> None:
            with captured_streams() as buffers:
                print(label)
                barrier.wait(timeout=5)
                for _ in range(49):
                    print(label)
            results[label] = buffers.stdout.text()

        threads = [threading.Thread(target=worker, args=(label,)) for label in ("A", "B")]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert results["A"] == "A\n" * 50
        assert results["B"] == "B\n" * 50


    def test_new_threads_write_to_host_streams(self, capsys: pytest.CaptureFixture[str]) -> None:
        if getattr(sys.flags, "thread_inherit_context", 0):
            pytest.skip("threads inherit the caller's context on this interpreter")

        with captured_streams() as buffers:
            thread = threading.Thread(target=print, args=("from thread",))
            thread.start()
            thread.join(timeout=5)

        assert buffers.stdout.text() == ""
        assert capsys.readouterr().out == "from thread\n"


class TestBoundedBuffer:
    def test_keeps_text_under_limit(self) -> None:
        buffer = BoundedBuffer(10)
        assert buffer.write("hello") == 5
        assert buffer.text() == "hello"
        assert not buffer.truncated

    def test_truncates_over_limit(self) -> None:
        buffer = BoundedBuffer(4)
        assert buffer.write("abcdef") == 6
        buffer.write("more")
        assert buffer.getvalue() == "abcd"
        assert buffer.truncated
        assert buffer.text() == "abcd" + TRUNCATION_MARKER
