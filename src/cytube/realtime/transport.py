"""
Socket Session

The narrow capability surface the client needs from a publish/subscribe
transport (subscribe, subscribe-once, unsubscribe, emit, close), and an
implementation backed by python-socketio's AsyncClient.
"""

import inspect
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable

import socketio
import structlog
from socketio.exceptions import ConnectionError as SocketConnectError
from socketio.exceptions import SocketIOError

from cytube.config import get_settings
from cytube.exceptions import TransportError

logger = structlog.get_logger()

Listener = Callable[..., Any]


@dataclass(eq=False)
class _Registration:
    fn: Listener
    once: bool = False


class Session(ABC):
    """
    One publish/subscribe session to a socket server.

    Listeners may be plain functions or coroutine functions; they receive the
    event's positional arguments. Once closed, a session dispatches nothing.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[_Registration]] = defaultdict(list)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    # ──────────────────────────────────────────────────────────
    # Subscriptions
    # ──────────────────────────────────────────────────────────

    def on(self, event: str, fn: Listener) -> None:
        """Call ``fn`` on every occurrence of ``event``."""
        self._subscribe(event, _Registration(fn))

    def once(self, event: str, fn: Listener) -> None:
        """Call ``fn`` on the next occurrence of ``event`` only."""
        self._subscribe(event, _Registration(fn, once=True))

    def off(self, event: str, fn: Listener | None = None) -> None:
        """Remove ``fn`` from ``event``, or every listener when ``fn`` is None."""
        if fn is None:
            self._listeners.pop(event, None)
            return
        remaining = [r for r in self._listeners.get(event, []) if r.fn != fn]
        if remaining:
            self._listeners[event] = remaining
        else:
            self._listeners.pop(event, None)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def _subscribe(self, event: str, registration: _Registration) -> None:
        self._listeners[event].append(registration)

    async def dispatch(self, event: str, *args: Any) -> None:
        """Deliver an incoming event to its listeners in registration order."""
        if self._closed:
            logger.debug("Dropping event on closed session", socket_event=event)
            return

        for registration in list(self._listeners.get(event, [])):
            # An earlier listener may have removed this one
            if registration not in self._listeners.get(event, []):
                continue
            if registration.once:
                self._discard(event, registration)
            try:
                result = registration.fn(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Event listener failed", socket_event=event)

    def _discard(self, event: str, registration: _Registration) -> None:
        listeners = self._listeners.get(event)
        if listeners and registration in listeners:
            listeners.remove(registration)
            if not listeners:
                del self._listeners[event]

    # ──────────────────────────────────────────────────────────
    # Transport
    # ──────────────────────────────────────────────────────────

    @abstractmethod
    async def open(self, url: str) -> None:
        """Connect to the socket server at ``url``.

        Raises:
            TransportError: If the connection cannot be established.
        """

    @abstractmethod
    async def emit(self, event: str, data: Any = None) -> None:
        """Send an event to the server.

        Raises:
            TransportError: If the session is closed.
        """

    @abstractmethod
    async def close(self) -> None:
        """Disconnect. Idempotent."""


class SocketIOSession(Session):
    """
    Session over a python-socketio AsyncClient.

    python-socketio keeps a single handler per event, so one dispatcher is
    bound for each event name the first time anything subscribes to it.
    ``disconnect`` is bound up front: without reconnection, a disconnect
    started by the server or the transport closes the session.
    """

    def __init__(
        self,
        reconnection: bool = True,
        transports: list[str] | None = None,
        client: socketio.AsyncClient | None = None,
    ):
        super().__init__()
        self.reconnection = reconnection
        self.transports = transports or get_settings().socketio_transports
        self.client = client or socketio.AsyncClient(reconnection=reconnection)
        self.url: str | None = None
        self._closing = False
        self._bound: set[str] = {"disconnect"}
        self.client.on("disconnect", self._on_disconnect)

    async def _on_disconnect(self, *args: Any) -> None:
        await self.dispatch("disconnect", *args)
        if self.reconnection or self._closing or self._closed:
            return
        logger.warning("Socket disconnected", url=self.url, reason=args[0] if args else None)
        self._mark_closed()

    def _mark_closed(self) -> None:
        self._closed = True
        self._listeners.clear()

    def _subscribe(self, event: str, registration: _Registration) -> None:
        super()._subscribe(event, registration)
        if event not in self._bound:
            self._bound.add(event)

            async def handler(*args: Any) -> None:
                await self.dispatch(event, *args)

            self.client.on(event, handler)

    async def open(self, url: str) -> None:
        self.url = url
        try:
            await self.client.connect(url, transports=self.transports)
        except SocketConnectError as e:
            logger.error("Socket connection failed", url=url, error=str(e))
            await self.close()
            raise TransportError(f"Could not connect to {url}: {e}") from e
        logger.info("Socket connected", url=url, sid=self.client.sid)

    async def emit(self, event: str, data: Any = None) -> None:
        if self._closed:
            raise TransportError(f"Cannot emit {event!r} on a closed session")
        try:
            await self.client.emit(event, data)
        except SocketIOError as e:
            raise TransportError(f"Failed to emit {event!r}: {e}") from e

    async def close(self) -> None:
        if self._closed or self._closing:
            return
        self._closing = True
        await self.client.disconnect()
        self._mark_closed()
        logger.info("Socket closed", url=self.url)


__all__ = [
    "Listener",
    "Session",
    "SocketIOSession",
]
