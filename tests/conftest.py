"""Pytest configuration and fixtures for Tuteliq SDK tests."""

import asyncio
import json
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
import respx
from websockets.exceptions import ConnectionClosedError

from tuteliq import Tuteliq

API_URL = "https://api.tuteliq.ai"
TEST_API_KEY = "test-api-key-123"

_CLOSE = object()
_DROP = object()


@pytest.fixture
def mock_api():
    """Create a mock API responder."""
    with respx.mock(assert_all_called=False) as respx_mock:
        yield respx_mock


@pytest_asyncio.fixture
async def tuteliq_client(mock_api):
    """Create a Tuteliq client with mocked API and near-zero retry delays."""
    client = Tuteliq(api_key=TEST_API_KEY, retry_delay_ms=1)
    yield client
    await client.aclose()


@pytest.fixture
def bullying_response() -> Dict[str, Any]:
    """A bullying detection response body."""
    return {
        "is_bullying": True,
        "bullying_type": ["exclusion", "insult"],
        "confidence": 0.92,
        "severity": "high",
        "rationale": "Direct insult with social exclusion.",
        "recommended_action": "flag_for_moderator",
        "risk_score": 0.82,
    }


@pytest.fixture
def unsafe_response() -> Dict[str, Any]:
    """An unsafe content detection response body."""
    return {
        "unsafe": False,
        "categories": [],
        "severity": "low",
        "confidence": 0.88,
        "risk_score": 0.1,
        "rationale": "No unsafe content.",
        "recommended_action": "none",
    }


class FakeConnection:
    """In-memory stand-in for a websockets client connection."""

    def __init__(self) -> None:
        self.sent: List[Any] = []
        self.closed = False
        self.close_code: Optional[int] = None
        self.close_reason = ""
        self.fail_sends = False
        self._inbound: "asyncio.Queue[Any]" = asyncio.Queue()

    # Server side

    def push(self, event: Dict[str, Any]) -> None:
        """Deliver a JSON event to the client."""
        self._inbound.put_nowait(json.dumps(event))

    def push_raw(self, message: Any) -> None:
        """Deliver a frame as-is."""
        self._inbound.put_nowait(message)

    def drop(self) -> None:
        """Simulate an abrupt connection loss."""
        self._inbound.put_nowait(_DROP)

    def sent_json(self) -> List[Dict[str, Any]]:
        """Text frames sent by the client, decoded."""
        return [json.loads(m) for m in self.sent if isinstance(m, str)]

    def sent_audio(self) -> List[bytes]:
        return [m for m in self.sent if isinstance(m, bytes)]

    # Client side

    async def send(self, message: Any) -> None:
        if self.closed or self.fail_sends:
            raise ConnectionClosedError(None, None)
        self.sent.append(message)

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            if self.close_code is None:
                self.close_code = 1000
            self._inbound.put_nowait(_CLOSE)

    def __aiter__(self) -> "FakeConnection":
        return self

    async def __anext__(self) -> Any:
        item = await self._inbound.get()
        if item is _CLOSE:
            raise StopAsyncIteration
        if item is _DROP:
            self.close_code = 1006
            raise ConnectionClosedError(None, None)
        return item


@pytest.fixture
def fake_ws():
    """An in-memory WebSocket connection."""
    return FakeConnection()


@pytest.fixture
def ws_connect(fake_ws):
    """Connection factory returning ``fake_ws`` and recording the URL used."""
    urls: List[str] = []

    async def connect(url: str) -> FakeConnection:
        urls.append(url)
        return fake_ws

    connect.urls = urls
    return connect
