"""Cooperative cancellation shared by the completion call and the tool call."""
import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from .errors import OperationCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancelToken:
    """One-shot cancellation flag that async code can wait on."""

    def __init__(self):
        self._event = asyncio.Event()
        self.reason = ""

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = ""):
        if not self._event.is_set():
            self.reason = reason
            self._event.set()
            logger.info(f"Cancel requested{': ' + reason if reason else ''}")

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise OperationCancelled(self.reason or "cancelled")

    async def wait(self):
        await self._event.wait()


async def run_cancellable(aw: Awaitable[T], token: Optional[CancelToken]) -> T:
    """Await `aw`, aborting it as soon as `token` fires.

    Raises OperationCancelled when the token wins the race. The in-flight
    task is cancelled and awaited so the underlying request is torn down.
    """
    if token is None:
        return await aw

    if token.cancelled:
        if asyncio.iscoroutine(aw):
            aw.close()
        raise OperationCancelled(token.reason or "cancelled")

    task = asyncio.ensure_future(aw)
    waiter = asyncio.ensure_future(token.wait())
    try:
        done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        waiter.cancel()

    if task in done:
        return task.result()

    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    except Exception as e:
        logger.debug(f"Cancelled task raised {type(e).__name__}: {e}")
    raise OperationCancelled(token.reason or "cancelled")
