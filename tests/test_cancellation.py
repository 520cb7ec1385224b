"""Tests for cancellation.py — CancelToken and run_cancellable."""
import asyncio

import pytest

from weather_agent.cancellation import CancelToken, run_cancellable
from weather_agent.errors import OperationCancelled


class TestCancelToken:
    def test_initial_state(self):
        token = CancelToken()
        assert token.cancelled is False
        token.raise_if_cancelled()

    def test_cancel(self):
        token = CancelToken()
        token.cancel("user")
        assert token.cancelled is True
        assert token.reason == "user"
        with pytest.raises(OperationCancelled):
            token.raise_if_cancelled()

    def test_first_reason_kept(self):
        token = CancelToken()
        token.cancel("first")
        token.cancel("second")
        assert token.reason == "first"


class TestRunCancellable:
    @pytest.mark.asyncio
    async def test_no_token(self):
        async def work():
            return 42
        assert await run_cancellable(work(), None) == 42

    @pytest.mark.asyncio
    async def test_completes_normally(self):
        async def work():
            return "done"
        assert await run_cancellable(work(), CancelToken()) == "done"

    @pytest.mark.asyncio
    async def test_exception_propagates(self):
        async def work():
            raise ValueError("bad")
        with pytest.raises(ValueError, match="bad"):
            await run_cancellable(work(), CancelToken())

    @pytest.mark.asyncio
    async def test_already_cancelled_never_starts(self):
        started = []

        async def work():
            started.append(1)

        token = CancelToken()
        token.cancel()
        with pytest.raises(OperationCancelled):
            await run_cancellable(work(), token)
        assert started == []

    @pytest.mark.asyncio
    async def test_cancel_aborts_in_flight_work(self):
        aborted = asyncio.Event()

        async def work():
            try:
                await asyncio.sleep(30)
            except asyncio.CancelledError:
                aborted.set()
                raise

        token = CancelToken()
        asyncio.get_running_loop().call_later(0.05, token.cancel)
        with pytest.raises(OperationCancelled):
            await asyncio.wait_for(run_cancellable(work(), token), timeout=2)
        assert aborted.is_set()
