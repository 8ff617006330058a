"""
Unit Tests for Broadcast Requests

Tests the bounded wait on a single broadcast and the callback adapter.
"""

import asyncio

import pytest

from cytube.exceptions import RequestTimeoutError, TransportError
from cytube.realtime.requests import await_event, with_callback


class TestAwaitEvent:
    """Test await_event."""

    @pytest.mark.asyncio
    async def test_resolves_with_payload(self, make_session):
        """Test the exact broadcast payload is returned."""
        session = make_session()
        payload = {"title": "Song", "seconds": 200}

        task = asyncio.create_task(await_event(session, "changeMedia", 1000))
        await asyncio.sleep(0)
        await session.dispatch("changeMedia", payload)

        assert await task is payload
        assert session.listener_count("changeMedia") == 0

    @pytest.mark.asyncio
    async def test_no_arguments(self, make_session):
        """Test an event without payload resolves to None."""
        session = make_session()

        task = asyncio.create_task(await_event(session, "needPassword", 1000))
        await asyncio.sleep(0)
        await session.dispatch("needPassword")

        assert await task is None

    @pytest.mark.asyncio
    async def test_multiple_arguments(self, make_session):
        """Test several positional arguments resolve to a tuple."""
        session = make_session()

        task = asyncio.create_task(await_event(session, "mediaUpdate", 1000))
        await asyncio.sleep(0)
        await session.dispatch("mediaUpdate", 12.5, False)

        assert await task == (12.5, False)

    @pytest.mark.asyncio
    async def test_timeout(self, make_session):
        """Test a missing broadcast times out and removes its listener."""
        session = make_session()

        with pytest.raises(RequestTimeoutError):
            await asyncio.wait_for(await_event(session, "changeMedia", 1), timeout=1.0)

        assert session.listener_count("changeMedia") == 0
        assert session.closed is False

    @pytest.mark.asyncio
    async def test_timeout_is_builtin_timeout(self, make_session):
        """Test RequestTimeoutError can be caught as TimeoutError."""
        session = make_session()

        with pytest.raises(TimeoutError):
            await await_event(session, "playlist", 1)

    @pytest.mark.asyncio
    async def test_late_event_after_timeout(self, make_session):
        """Test a broadcast after the timeout is not delivered anywhere."""
        session = make_session()

        with pytest.raises(RequestTimeoutError):
            await await_event(session, "userlist", 1)

        await session.dispatch("userlist", ["alice"])
        assert session.listener_count("userlist") == 0

    @pytest.mark.asyncio
    async def test_zero_timeout_waits(self, make_session):
        """Test timeout 0 disables the timer."""
        session = make_session()

        task = asyncio.create_task(await_event(session, "playlist", 0))
        await asyncio.sleep(0.02)
        assert not task.done()

        await session.dispatch("playlist", [])
        assert await task == []

    @pytest.mark.asyncio
    async def test_concurrent_requests_independent(self, make_session):
        """Test two pending requests on one event both resolve."""
        session = make_session()

        first = asyncio.create_task(await_event(session, "userlist", 1000))
        second = asyncio.create_task(await_event(session, "userlist", 1000))
        await asyncio.sleep(0)
        assert session.listener_count("userlist") == 2

        await session.dispatch("userlist", ["alice", "bob"])

        assert await first == ["alice", "bob"]
        assert await second == ["alice", "bob"]

    @pytest.mark.asyncio
    async def test_cancel_removes_listener(self, make_session):
        """Test cancelling the waiting task removes the listener."""
        session = make_session()

        task = asyncio.create_task(await_event(session, "playlist", 0))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert session.listener_count("playlist") == 0

    @pytest.mark.asyncio
    async def test_closed_session_rejected(self, make_session):
        """Test waiting on a closed session fails instead of waiting forever."""
        session = make_session()
        await session.close()

        with pytest.raises(TransportError, match="closed"):
            await asyncio.wait_for(await_event(session, "changeMedia", 0), timeout=1.0)

        assert session.listener_count("changeMedia") == 0


class TestWithCallback:
    """Test the callback adapter."""

    @pytest.mark.asyncio
    async def test_success(self):
        """Test callback(None, value) on success."""
        outcome = asyncio.get_running_loop().create_future()

        async def work():
            return "value"

        task = with_callback(work(), lambda err, value: outcome.set_result((err, value)))

        assert await outcome == (None, "value")
        assert await task == "value"

    @pytest.mark.asyncio
    async def test_failure(self):
        """Test callback(error, None) on failure."""
        outcome = asyncio.get_running_loop().create_future()

        async def work():
            raise RequestTimeoutError("too slow")

        task = with_callback(work(), lambda err, value: outcome.set_result((err, value)))

        err, value = await outcome
        assert isinstance(err, RequestTimeoutError)
        assert value is None
        with pytest.raises(RequestTimeoutError):
            await task

    @pytest.mark.asyncio
    async def test_cancelled(self):
        """Test cancellation is reported as an error."""
        outcome = asyncio.get_running_loop().create_future()

        task = with_callback(
            asyncio.sleep(10), lambda err, value: outcome.set_result((err, value))
        )
        await asyncio.sleep(0)
        task.cancel()

        err, value = await outcome
        assert isinstance(err, asyncio.CancelledError)
        assert value is None

    def test_requires_running_loop(self):
        """Test scheduling outside an event loop fails loudly."""

        async def work():
            return None

        coro = work()
        with pytest.raises(RuntimeError):
            with_callback(coro, lambda err, value: None)
        coro.close()
