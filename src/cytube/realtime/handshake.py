"""
Channel Handshake

Drives a session from opened to joined:

    opening -> joining -> [awaiting_password] -> ready
    (any state before ready)                  -> failed

CyTube has no join acknowledgement and no explicit password rejection.
``setPermissions`` is the first thing a joined client receives, so it stands
in for the acknowledgement. A wrong password only produces another
``needPassword``, and the server may also repeat that prompt before it has
seen our answer, so a rejection is inferred once more prompts arrive than
``max_password_attempts`` allows.
"""

import asyncio
from typing import Any

import structlog

from cytube.core.models import (
    ChannelEvent,
    ConnectionSettings,
    Endpoint,
    HandshakeState,
)
from cytube.exceptions import AuthError, CytubeError, TransportError
from .transport import Session

logger = structlog.get_logger()


class ChannelHandshake:
    """
    Joins one channel over one session.

    A handshake instance serves exactly one connection attempt. ``run``
    settles exactly once, either returning (ready) or raising (failed).

    The password attempt counter is never shared. It starts from zero again
    only when a reconnect follows a successful join, so a correct password is
    not mistaken for a rejected one after the socket reconnects.
    """

    def __init__(self, session: Session, settings: ConnectionSettings):
        self.session = session
        self.settings = settings
        self.state = HandshakeState.OPENING
        self.password_attempts = 0
        self._result: asyncio.Future[None] | None = None

    @property
    def channel(self) -> str:
        return self.settings.channel

    @property
    def settled(self) -> bool:
        return self._result is not None and self._result.done()

    def attach(self) -> None:
        """Register protocol listeners. Must happen before the session opens."""
        self.session.on(ChannelEvent.CONNECT.value, self._on_connect)
        self.session.on(ChannelEvent.NEED_PASSWORD.value, self._on_need_password)
        self.session.on(ChannelEvent.SET_PERMISSIONS.value, self._on_permissions)
        self.session.on(ChannelEvent.DISCONNECT.value, self._on_disconnect)

    async def run(self, endpoint: Endpoint) -> None:
        """
        Open the session at ``endpoint`` and wait until the channel is joined.

        Raises:
            AuthError: If a password is required and missing or rejected.
            TransportError: If the session cannot be opened, or drops before
                the channel is joined without reconnection enabled.
        """
        self._result = asyncio.get_running_loop().create_future()
        self.attach()

        logger.debug("Opening socket", channel=self.channel, url=endpoint.url)
        try:
            await self.session.open(endpoint.url)
        except TransportError as e:
            self._settle(error=e)
        except Exception as e:
            error = TransportError(f"Could not open session at {endpoint.url}: {e}")
            error.__cause__ = e
            self._settle(error=error)
        except BaseException:
            self._abandon()
            raise

        await self._result

    # ──────────────────────────────────────────────────────────
    # Event Handlers
    # ──────────────────────────────────────────────────────────

    async def _on_connect(self, *args: Any) -> None:
        # Fires again after every reconnect; rejoining is harmless
        if self.state is HandshakeState.OPENING:
            self._set_state(HandshakeState.JOINING)
        elif self.state is HandshakeState.READY:
            self.password_attempts = 0
        logger.info("Joining channel", channel=self.channel)
        try:
            await self.session.emit(
                ChannelEvent.JOIN_CHANNEL.value, {"name": self.channel}
            )
        except TransportError as e:
            await self._fail(e)

    async def _on_need_password(self, *args: Any) -> None:
        password = self.settings.password
        if not password:
            await self._fail(
                AuthError(
                    f"Channel {self.channel!r}: password required but not provided. "
                    "Connection closed."
                )
            )
            return

        if self.password_attempts >= self.settings.max_password_attempts:
            await self._fail(
                AuthError(
                    f"Channel {self.channel!r}: incorrect password. Connection closed."
                )
            )
            return

        # Counted before the emit so no other handler can observe a stale value
        self.password_attempts += 1
        if not self.settled:
            self._set_state(HandshakeState.AWAITING_PASSWORD)
        logger.info(
            "Submitting channel password",
            channel=self.channel,
            attempt=self.password_attempts,
        )
        try:
            await self.session.emit(ChannelEvent.CHANNEL_PASSWORD.value, password)
        except TransportError as e:
            await self._fail(e)

    def _on_permissions(self, *args: Any) -> None:
        if self.settled:
            return
        self._set_state(HandshakeState.READY)
        self._settle()
        logger.info("Joined channel", channel=self.channel)

    async def _on_disconnect(self, *args: Any) -> None:
        # With reconnection the transport comes back and rejoins on connect
        if self.settled or self.settings.reconnection:
            return
        reason = args[0] if args else "socket closed"
        await self._fail(
            TransportError(
                f"Channel {self.channel!r}: disconnected before joining ({reason})"
            )
        )

    # ──────────────────────────────────────────────────────────
    # Settlement
    # ──────────────────────────────────────────────────────────

    async def _fail(self, error: CytubeError) -> None:
        self._set_state(HandshakeState.FAILED)
        if not self._settle(error=error):
            logger.warning(
                "Channel handshake failed after join",
                channel=self.channel,
                error=str(error),
            )
        else:
            logger.error("Channel handshake failed", channel=self.channel, error=str(error))
        await self.session.close()

    def _settle(self, error: BaseException | None = None) -> bool:
        """Resolve or reject the pending attempt. Returns False if already settled."""
        if self._result is None or self._result.done():
            return False
        if error is not None:
            self._set_state(HandshakeState.FAILED)
            self._result.set_exception(error)
        else:
            self._result.set_result(None)
        return True

    def _abandon(self) -> None:
        """Drop the pending attempt without leaving an unretrieved error behind."""
        if self._result is None:
            return
        if not self._result.done():
            self._result.cancel()
        elif not self._result.cancelled():
            self._result.exception()

    def _set_state(self, state: HandshakeState) -> None:
        if state is not self.state:
            logger.debug(
                "Handshake state changed",
                channel=self.channel,
                previous=self.state.value,
                state=state.value,
            )
            self.state = state


__all__ = ["ChannelHandshake"]
