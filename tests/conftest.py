"""
Pytest Configuration and Fixtures

Shared fixtures for unit and integration tests. ``FakeSession`` stands in for
a Socket.IO connection: anything the client emits is handed to a scripted
server function that can broadcast events back.
"""

import inspect
from typing import Any, Callable

import pytest

from cytube.core.models import ConnectionSettings, Endpoint
from cytube.exceptions import TransportError
from cytube.realtime.transport import Session


# ══════════════════════════════════════════════════════════════
# Fake Session
# ══════════════════════════════════════════════════════════════


ServerScript = Callable[["FakeSession", str, Any], Any]


class FakeSession(Session):
    """In-memory session driven by a scripted server."""

    def __init__(self, server: ServerScript | None = None, open_error: Exception | None = None):
        super().__init__()
        self.server = server
        self.open_error = open_error
        self.opened_url: str | None = None
        self.emitted: list[tuple[str, Any]] = []
        self.close_calls = 0

    async def open(self, url: str) -> None:
        if self.open_error is not None:
            raise self.open_error
        self.opened_url = url
        await self.dispatch("connect")

    async def emit(self, event: str, data: Any = None) -> None:
        if self._closed:
            raise TransportError(f"Cannot emit {event!r} on a closed session")
        self.emitted.append((event, data))
        if self.server is not None:
            result = self.server(self, event, data)
            if inspect.isawaitable(result):
                await result

    async def close(self) -> None:
        self.close_calls += 1
        if self._closed:
            return
        await self.dispatch("disconnect")
        self._closed = True
        self._listeners.clear()

    def emitted_events(self) -> list[str]:
        return [event for event, _ in self.emitted]


def reply(responses: dict[str, list[tuple[str, Any]]]) -> ServerScript:
    """Server script broadcasting fixed events in answer to each client event."""

    async def server(session: FakeSession, event: str, data: Any) -> None:
        for name, payload in responses.get(event, []):
            if payload is None:
                await session.dispatch(name)
            else:
                await session.dispatch(name, payload)

    return server


# ══════════════════════════════════════════════════════════════
# Settings Fixtures
# ══════════════════════════════════════════════════════════════


ENDPOINT_URL = "http://localhost:3000"


@pytest.fixture
def endpoint() -> Endpoint:
    return Endpoint(url=ENDPOINT_URL, secure=False)


@pytest.fixture
def test_options() -> dict[str, Any]:
    """Connection settings pointing at a local server."""
    return {
        "channel": "test",
        "endpoint": ENDPOINT_URL,
        "reconnection": False,
    }


@pytest.fixture
def connection_settings(test_options) -> ConnectionSettings:
    return ConnectionSettings(**test_options)


# ══════════════════════════════════════════════════════════════
# Session Fixtures
# ══════════════════════════════════════════════════════════════


@pytest.fixture
def make_session() -> type[FakeSession]:
    """Build a FakeSession: ``make_session(server=None, open_error=None)``."""
    return FakeSession


@pytest.fixture(name="reply")
def reply_fixture() -> Callable[[dict[str, list[tuple[str, Any]]]], ServerScript]:
    """Build a server script from ``{client_event: [(event, payload), ...]}``."""
    return reply


@pytest.fixture
def open_channel_session() -> FakeSession:
    """Session whose server grants permissions on join."""
    return FakeSession(reply({"joinChannel": [("setPermissions", {"rank": 0})]}))


@pytest.fixture
def session_factory():
    """Wraps a prepared session as a connect() session factory."""

    def factory(session: FakeSession):
        return lambda settings: session

    return factory
