"""
CyTube Connection

The public entry point: resolve a channel's socket server, open a session,
join the channel, and hand back a connection bound to that channel.
"""

from typing import Any, Awaitable, Callable, Mapping

import structlog

from cytube.config import get_settings
from cytube.core.models import ChannelEvent, ConnectionSettings, Endpoint
from cytube.integrations.socketconfig import EndpointResolver
from .handshake import ChannelHandshake
from .requests import Callback, await_event, with_callback
from .transport import Listener, Session, SocketIOSession

logger = structlog.get_logger()

SessionFactory = Callable[[ConnectionSettings], Session]


class CytubeConnection:
    """
    A joined channel on a live socket session.

    The channel, endpoint and timeout are fixed for the connection's
    lifetime; only the open/closed state changes.

    Usage:
        async with await connect("mychannel") as conn:
            media = await conn.get_current_media()
    """

    def __init__(
        self,
        session: Session,
        endpoint: Endpoint,
        channel: str,
        timeout_ms: int | None = None,
    ):
        self._session = session
        self._endpoint = endpoint
        self._channel = channel
        self._timeout_ms = (
            get_settings().default_timeout_ms if timeout_ms is None else timeout_ms
        )

    def __repr__(self) -> str:
        return (
            f"CytubeConnection(channel={self._channel!r}, "
            f"endpoint={self._endpoint.url!r}, closed={self.closed})"
        )

    @property
    def channel(self) -> str:
        return self._channel

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    @property
    def timeout_ms(self) -> int:
        """Accessor timeout in milliseconds; 0 means wait indefinitely."""
        return self._timeout_ms

    @property
    def session(self) -> Session:
        return self._session

    @property
    def closed(self) -> bool:
        return self._session.closed

    # ──────────────────────────────────────────────────────────
    # Event Pass-through
    # ──────────────────────────────────────────────────────────

    def on(self, event: str, fn: Listener) -> None:
        """Attach a listener for every occurrence of an event."""
        self._session.on(event, fn)

    def once(self, event: str, fn: Listener) -> None:
        """Listen for a single occurrence of an event."""
        self._session.once(event, fn)

    def off(self, event: str, fn: Listener | None = None) -> None:
        """Remove a listener, or all listeners for the event."""
        self._session.off(event, fn)

    async def close(self) -> None:
        """Disconnect from the socket server."""
        await self._session.close()

    async def __aenter__(self) -> "CytubeConnection":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ──────────────────────────────────────────────────────────
    # Bounded Accessors
    # ──────────────────────────────────────────────────────────

    def _request(self, event: ChannelEvent, callback: Callback | None) -> Any:
        awaitable = await_event(self._session, event.value, self._timeout_ms)
        if callback is None:
            return awaitable
        return with_callback(awaitable, callback)

    def get_current_media(self, callback: Callback | None = None) -> Any:
        """Wait for the next ``changeMedia`` broadcast.

        Returns an awaitable of the media data, or with ``callback`` schedules
        the request and reports ``callback(error, media)``.
        """
        return self._request(ChannelEvent.CHANGE_MEDIA, callback)

    def get_playlist(self, callback: Callback | None = None) -> Any:
        """Wait for the next ``playlist`` broadcast."""
        return self._request(ChannelEvent.PLAYLIST, callback)

    def get_userlist(self, callback: Callback | None = None) -> Any:
        """Wait for the next ``userlist`` broadcast."""
        return self._request(ChannelEvent.USERLIST, callback)


def _socketio_session(settings: ConnectionSettings) -> Session:
    return SocketIOSession(reconnection=settings.reconnection)


async def _connect(
    settings: str | Mapping[str, Any] | ConnectionSettings | None,
    resolver: EndpointResolver | None,
    session_factory: SessionFactory | None,
) -> CytubeConnection:
    conn_settings = ConnectionSettings.coerce(settings)

    if resolver is None:
        async with EndpointResolver() as owned:
            endpoint = await owned.resolve(conn_settings)
    else:
        endpoint = await resolver.resolve(conn_settings)

    session = (session_factory or _socketio_session)(conn_settings)
    handshake = ChannelHandshake(session, conn_settings)
    try:
        await handshake.run(endpoint)
    except BaseException:
        await session.close()
        raise

    return CytubeConnection(
        session=session,
        endpoint=endpoint,
        channel=conn_settings.channel,
        timeout_ms=conn_settings.timeout_ms,
    )


def connect(
    settings: str | Mapping[str, Any] | ConnectionSettings | None = None,
    callback: Callback | None = None,
    *,
    resolver: EndpointResolver | None = None,
    session_factory: SessionFactory | None = None,
) -> Awaitable[CytubeConnection]:
    """
    Connect to a CyTube socket server and join a channel.

    Args:
        settings: A channel name, a mapping of connection settings, or
            a ConnectionSettings instance
        callback: Optional ``callback(error, connection)``. When given, the
            connection attempt is scheduled on the running loop and the task
            is returned.
        resolver: Endpoint resolver to use instead of a fresh one
        session_factory: Builds the session for the connection

    Returns:
        An awaitable of CytubeConnection, or the scheduled task in callback mode

    Raises:
        ValidationError: If no channel is given.
        ResolutionError: If the socket server cannot be resolved.
        AuthError: If the channel password is missing or incorrect.
        TransportError: If the socket cannot be opened.
    """
    awaitable = _connect(settings, resolver, session_factory)
    if callback is None:
        return awaitable
    return with_callback(awaitable, callback)


__all__ = [
    "CytubeConnection",
    "SessionFactory",
    "connect",
]
