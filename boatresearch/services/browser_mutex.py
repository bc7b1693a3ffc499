from __future__ import annotations

import asyncio
from collections import deque


class BrowserMutex:
    """FIFO async lock guarding the single headless-browser session.

    Browser launches are heavy and a persistent profile directory cannot be
    opened by two sessions at once, so every browser-using call goes through
    one process-wide instance of this lock.
    """

    def __init__(self) -> None:
        self._locked = False
        self._waiters: deque[asyncio.Future[None]] = deque()

    @property
    def locked(self) -> bool:
        return self._locked

    @property
    def waiting(self) -> int:
        return sum(1 for fut in self._waiters if not fut.done())

    async def acquire(self) -> None:
        if not self._locked:
            self._locked = True
            return

        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        try:
            await fut
        except asyncio.CancelledError:
            # Ownership may have been handed over right before cancellation.
            if fut.done() and not fut.cancelled():
                self.release()
            raise

    def release(self) -> None:
        if not self._locked:
            raise RuntimeError("BrowserMutex released while not held")
        while self._waiters:
            fut = self._waiters.popleft()
            if not fut.done():
                # Lock stays held; ownership passes straight to the next waiter.
                fut.set_result(None)
                return
        self._locked = False

    async def __aenter__(self) -> BrowserMutex:
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.release()
