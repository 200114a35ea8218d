"""
tests/test_compiler_hub.py

End-to-end tests for the WebSocket compiler hub.

The session gateway dependency is overridden with an in-process runner so
no worker subprocesses are started.
"""

from __future__ import annotations

import time
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from playground.api.connections import ConnectionRegistry
from playground.config import DELIVERY_BROADCAST, DELIVERY_CALLER
from playground.execution.in_process import InProcessRunner
from playground.main import create_app
from playground.services.compilation_service import CompilationService
from playground.services.outcome_publisher import OutcomePublisher
from playground.services.session_gateway import SessionGateway, get_session_gateway
from playground.toolchain.compiler import Compiler

HUB = "/compiler"
HELLO = 'def main():\n    print("Hello")\n'


def _gateway(delivery: str = DELIVERY_CALLER, service: object | None = None) -> SessionGateway:
    registry = ConnectionRegistry()
    return SessionGateway(
        service=service or CompilationService(compiler=Compiler(), runner=InProcessRunner(max_output_chars=4096)),
        publisher=OutcomePublisher(registry=registry, delivery=delivery),
        registry=registry,
    )


def _client(gateway: SessionGateway) -> TestClient:
    application = create_app()
    application.dependency_overrides[get_session_gateway] = lambda: gateway
    return TestClient(application)


def _wait_for_connections(gateway: SessionGateway, count: int) -> None:
    deadline = time.monotonic() + 5
    while len(gateway.registry) != count and time.monotonic() < deadline:
        time.sleep(0.01)
    assert len(gateway.registry) == count


@pytest.fixture()
def gateway() -> SessionGateway:
    return _gateway()


@pytest.fixture()
def client(gateway: SessionGateway) -> Iterator[TestClient]:
    with _client(gateway) as test_client:
        yield test_client


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------


class TestSubmissions:
    def test_hello_outcome_is_pushed(self, client: TestClient) -> None:
        with client.websocket_connect(HUB) as ws:
            ws.send_json({"type": "submit", "source": HELLO})
            message = ws.receive_json()

        assert message["type"] == "executionOutcome"
        payload = message["payload"]
        assert payload["success"] is True
        assert payload["output"] == "Hello\n"
        assert payload["error"] == ""
        assert payload["kind"] == "success"
        assert payload["submissionId"]

    def test_compile_error_outcome(self, client: TestClient) -> None:
        with client.websocket_connect(HUB) as ws:
            ws.send_json({"type": "submit", "source": 'def main()\n    print("Hello")\n'})
            payload = ws.receive_json()["payload"]

        assert payload["success"] is False
        assert payload["output"] is None
        assert payload["kind"] == "compile_error"
        assert "Traceback" not in payload["error"]

    def test_runtime_error_outcome(self, client: TestClient) -> None:
        with client.websocket_connect(HUB) as ws:
            ws.send_json({"type": "submit", "source": 'def main():\n    raise ValueError("boom")\n'})
            payload = ws.receive_json()["payload"]

        assert payload["kind"] == "runtime_error"
        assert "boom" in payload["error"]

    def test_submission_input_feeds_stdin(self, client: TestClient) -> None:
        with client.websocket_connect(HUB) as ws:
            ws.send_json(
                {
                    "type": "submit",
                    "source": "def main():\n    print(input().upper())\n",
                    "input": "shout\n",
                }
            )
            payload = ws.receive_json()["payload"]

        assert payload["output"] == "SHOUT\n"

    def test_two_submissions_on_one_connection(self, client: TestClient) -> None:
        with client.websocket_connect(HUB) as ws:
            ws.send_json({"type": "submit", "source": "def main():\n    print(1)\n"})
            ws.send_json({"type": "submit", "source": "def main():\n    print(2)\n"})
            outputs = {ws.receive_json()["payload"]["output"] for _ in range(2)}

        assert outputs == {"1\n", "2\n"}

    def test_input_message_is_accepted(self, client: TestClient) -> None:
        with client.websocket_connect(HUB) as ws:
            ws.send_json({"type": "input", "data": "ignored"})
            ws.send_json({"type": "submit", "source": HELLO})
            payload = ws.receive_json()["payload"]

        assert payload["kind"] == "success"

    def test_binary_frames_are_decoded(self, client: TestClient) -> None:
        with client.websocket_connect(HUB) as ws:
            ws.send_bytes(b'{"type": "submit", "source": "def main():\\n    print(7)\\n"}')
            payload = ws.receive_json()["payload"]

        assert payload["output"] == "7\n"


# ---------------------------------------------------------------------------
# Invalid requests
# ---------------------------------------------------------------------------


class TestInvalidRequests:
    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            '{"type": "unknown"}',
            '{"type": "submit"}',
            '{"type": "submit", "source": "x", "extra": 1}',
        ],
    )
    def test_invalid_message_is_rejected(self, client: TestClient, raw: str) -> None:
        with client.websocket_connect(HUB) as ws:
            ws.send_text(raw)
            payload = ws.receive_json()["payload"]

        assert payload["success"] is False
        assert payload["kind"] == "invalid_request"
        assert payload["error"].startswith("invalid message")

    def test_connection_survives_invalid_message(self, client: TestClient) -> None:
        with client.websocket_connect(HUB) as ws:
            ws.send_text("not json")
            assert ws.receive_json()["payload"]["kind"] == "invalid_request"
            ws.send_json({"type": "submit", "source": HELLO})
            assert ws.receive_json()["payload"]["output"] == "Hello\n"


# ---------------------------------------------------------------------------
# Delivery and failures
# ---------------------------------------------------------------------------


class _ExplodingService:
    mode = "exploding"

    async def execute(self, submission: object, publisher: object) -> None:
        raise RuntimeError("pipeline exploded")


class TestDelivery:
    def test_broadcast_reaches_every_connection(self) -> None:
        gateway = _gateway(delivery=DELIVERY_BROADCAST)
        with _client(gateway) as client:
            with client.websocket_connect(HUB) as first, client.websocket_connect(HUB) as second:
                _wait_for_connections(gateway, 2)
                first.send_json({"type": "submit", "source": HELLO})
                assert first.receive_json()["payload"]["output"] == "Hello\n"
                assert second.receive_json()["payload"]["output"] == "Hello\n"

    def test_caller_delivery_isolates_connections(self, client: TestClient, gateway: SessionGateway) -> None:
        with client.websocket_connect(HUB) as first, client.websocket_connect(HUB) as second:
            _wait_for_connections(gateway, 2)
            first.send_json({"type": "submit", "source": "def main():\n    print('first')\n"})
            second.send_json({"type": "submit", "source": "def main():\n    print('second')\n"})
            assert first.receive_json()["payload"]["output"] == "first\n"
            assert second.receive_json()["payload"]["output"] == "second\n"

    def test_escaped_failure_becomes_infrastructure_error(self) -> None:
        gateway = _gateway(service=_ExplodingService())
        with _client(gateway) as client:
            with client.websocket_connect(HUB) as ws:
                ws.send_json({"type": "submit", "source": HELLO})
                payload = ws.receive_json()["payload"]

        assert payload["success"] is False
        assert payload["kind"] == "infrastructure_error"
        assert payload["error"] == "pipeline exploded"
        assert payload["submissionId"]

    def test_disconnect_unregisters_connection(self, client: TestClient, gateway: SessionGateway) -> None:
        with client.websocket_connect(HUB):
            _wait_for_connections(gateway, 1)
        _wait_for_connections(gateway, 0)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class TestHealth:
    def test_health_reports_settings(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {
            "status": "ok",
            "execution_mode": "in_process",
            "outcome_delivery": "caller",
            "open_connections": 0,
        }
