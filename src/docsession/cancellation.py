"""Cancellation tokens scoped to one interaction state.

Each state owns a CancellationTokenSource. The session cancels the
outgoing state's source when it installs a successor, and any work still
running under the old token abandons before producing side effects.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from docsession.errors import OperationCancelledError
from docsession.logging import get_logger

log = get_logger("cancellation")

T = TypeVar("T")


class CancellationToken:
    """Read side of a cancellation source."""

    def __init__(self) -> None:
        self._cancelled = False
        self._event: asyncio.Event | None = None
        self._callbacks: list[Callable[[], Any]] = []

    @property
    def is_cancellation_requested(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise OperationCancelledError()

    def on_cancelled(self, callback: Callable[[], Any]) -> None:
        """Register a callback; runs immediately if already cancelled."""
        if self._cancelled:
            callback()
        else:
            self._callbacks.append(callback)

    async def wait(self) -> None:
        """Block until cancellation is requested."""
        if self._cancelled:
            return
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await `awaitable`, abandoning it if the token fires first.

        Raises:
            OperationCancelledError: The token was cancelled before or while
                the awaitable ran.
        """
        if self._cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise OperationCancelledError()

        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self.wait())
        try:
            done, _ = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            waiter.cancel()

        if work in done:
            return work.result()

        work.cancel()
        try:
            await work
        except (asyncio.CancelledError, Exception):
            log.debug("Abandoned work raised during cancellation", exc_info=True)
        raise OperationCancelledError()

    async def sleep(self, seconds: float) -> None:
        """Sleep that ends early with OperationCancelledError on cancel."""
        await self.run(asyncio.sleep(seconds))

    def _fire(self) -> None:
        self._cancelled = True
        if self._event is not None:
            self._event.set()
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                log.warning("Cancellation callback error: %s", e)


class CancellationTokenSource:
    """Write side: owns a token and decides when it fires."""

    def __init__(self) -> None:
        self._token = CancellationToken()
        self._cancel_count = 0

    @property
    def token(self) -> CancellationToken:
        return self._token

    @property
    def cancel_count(self) -> int:
        """Number of times cancellation actually fired (0 or 1)."""
        return self._cancel_count

    def cancel(self) -> None:
        """Request cancellation. Repeated calls are no-ops."""
        if self._token.is_cancellation_requested:
            return
        self._cancel_count += 1
        self._token._fire()
