"""
Request/Response over Broadcast

CyTube answers nothing directly; state arrives as broadcasts. These helpers
turn the next occurrence of a broadcast into an awaitable value with a
bounded wait, and adapt any awaitable to a ``callback(error, value)`` style.
"""

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

import structlog

from cytube.exceptions import RequestTimeoutError, TransportError
from .transport import Session

logger = structlog.get_logger()

T = TypeVar("T")

Callback = Callable[[BaseException | None, Any], Any]


def _payload(args: tuple[Any, ...]) -> Any:
    if not args:
        return None
    if len(args) == 1:
        return args[0]
    return args


async def await_event(session: Session, event: str, timeout_ms: int) -> Any:
    """
    Wait for the next ``event`` on ``session`` and return its payload.

    Args:
        session: The live session to listen on
        event: Broadcast event name
        timeout_ms: Maximum wait in milliseconds; 0 waits indefinitely

    Returns:
        The broadcast's payload, unmodified

    Raises:
        RequestTimeoutError: If the event does not arrive in time. The
            session is left open.
        TransportError: If the session is already closed.
    """
    if session.closed:
        raise TransportError(f"Cannot wait for {event!r} on a closed session")

    loop = asyncio.get_running_loop()
    future: asyncio.Future[Any] = loop.create_future()

    def resolve(*args: Any) -> None:
        if not future.done():
            future.set_result(_payload(args))

    session.once(event, resolve)
    try:
        if not timeout_ms:
            return await future
        return await asyncio.wait_for(future, timeout_ms / 1000)
    except asyncio.TimeoutError:
        logger.warning("Request timed out", socket_event=event, timeout_ms=timeout_ms)
        raise RequestTimeoutError(
            f"No {event!r} received within {timeout_ms}ms"
        ) from None
    finally:
        # No-op when the listener already fired
        session.off(event, resolve)


def with_callback(
    awaitable: Awaitable[T], callback: Callback
) -> "asyncio.Task[T]":
    """
    Schedule ``awaitable`` on the running loop and report its outcome.

    ``callback`` is invoked once as ``callback(None, value)`` on success or
    ``callback(error, None)`` on failure. Must be called from within a
    running event loop.
    """
    task = asyncio.ensure_future(awaitable, loop=asyncio.get_running_loop())

    def _done(t: "asyncio.Task[T]") -> None:
        if t.cancelled():
            callback(asyncio.CancelledError(), None)
            return
        error = t.exception()
        if error is not None:
            callback(error, None)
        else:
            callback(None, t.result())

    task.add_done_callback(_done)
    return task


__all__ = [
    "Callback",
    "await_event",
    "with_callback",
]
