from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

T = TypeVar("T")


class SessionQueue:
    """Serializes tasks that share a session id; other tasks run concurrently.

    Each session id maps to the tail task of its chain. A new task waits for
    the current tail to settle (success or failure) before it starts, and
    the registry entry is dropped once the tail settles without having been
    replaced, so idle sessions hold nothing.
    """

    def __init__(self) -> None:
        self._tails: dict[str, asyncio.Task[Any]] = {}

    def __len__(self) -> int:
        return len(self._tails)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._tails

    def enqueue(self, session_id: str | None, task: Callable[[], Awaitable[T]]) -> asyncio.Task[T]:
        """Schedule ``task`` and return the task object; must be called on the event loop."""
        if not session_id:
            return asyncio.ensure_future(task())

        prior = self._tails.get(session_id)
        current: asyncio.Task[T] = asyncio.ensure_future(self._after(prior, task))
        self._tails[session_id] = current
        current.add_done_callback(lambda done: self._release(session_id, done))
        return current

    async def run(self, session_id: str | None, task: Callable[[], Awaitable[T]]) -> T:
        """Enqueue ``task`` and wait for it.

        Cancelling the caller cancels the task, but the session stays held
        until the task has finished its own cleanup.
        """
        queued = self.enqueue(session_id, task)
        try:
            return await asyncio.shield(queued)
        except asyncio.CancelledError:
            queued.cancel()
            raise

    @staticmethod
    async def _after(prior: asyncio.Task[Any] | None, task: Callable[[], Awaitable[T]]) -> T:
        if prior is not None and not prior.done():
            # asyncio.wait never raises the predecessor's exception.
            await asyncio.wait({prior})
        return await task()

    def _release(self, session_id: str, done: asyncio.Task[Any]) -> None:
        if self._tails.get(session_id) is done:
            del self._tails[session_id]
