"""Debounced, latest-only lookups.

Each call to :meth:`LatestOnlySearch.search` takes the next sequence number and
cancels any pending call. After the debounce delay the fetch runs; its result is
published only if no newer search was issued in the meantime. Stale responses are
discarded, never merged.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

Q = TypeVar("Q")
R = TypeVar("R")


class SearchSuperseded(Exception):
    """The search was overtaken by a newer one before its result could be used."""

    def __init__(self, sequence: int, latest: int) -> None:
        super().__init__(f"Search #{sequence} superseded by #{latest}")
        self.sequence = sequence
        self.latest = latest


class LatestOnlySearch(Generic[Q, R]):
    """Wraps an async fetch so only the most recent query's result is kept.

    Args:
        fetch: Coroutine function taking the query and returning the result.
        debounce_seconds: Quiet period before the fetch is actually sent.
    """

    def __init__(
        self,
        fetch: Callable[[Q], Awaitable[R]],
        debounce_seconds: float = 0.3,
    ) -> None:
        self._fetch = fetch
        self.debounce_seconds = debounce_seconds
        self._sequence = 0
        self._pending: asyncio.Task[R] | None = None
        self.latest_query: Q | None = None
        self.latest_result: R | None = None

    @property
    def sequence(self) -> int:
        return self._sequence

    async def _run(self, query: Q, sequence: int) -> R:
        if self.debounce_seconds > 0:
            await asyncio.sleep(self.debounce_seconds)
        try:
            result = await self._fetch(query)
        except Exception:
            if sequence != self._sequence:
                raise SearchSuperseded(sequence, self._sequence) from None
            raise
        if sequence != self._sequence:
            logger.debug("Discarding stale search #%d (latest #%d)", sequence, self._sequence)
            raise SearchSuperseded(sequence, self._sequence)
        self.latest_result = result
        return result

    async def search(self, query: Q) -> R:
        """Issue a search; returns its result or raises :class:`SearchSuperseded`.

        Raises:
            SearchSuperseded: If a newer search started before this one finished.
        """
        self._sequence += 1
        sequence = self._sequence
        self.latest_query = query
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()

        task = asyncio.ensure_future(self._run(query, sequence))
        self._pending = task
        try:
            return await task
        except asyncio.CancelledError:
            if sequence != self._sequence:
                raise SearchSuperseded(sequence, self._sequence) from None
            raise

    async def search_latest(self, query: Q) -> R | None:
        """Like :meth:`search`, but returns ``None`` for a superseded search."""
        try:
            return await self.search(query)
        except SearchSuperseded:
            return None

    def cancel(self) -> None:
        """Drop any pending search; its caller sees :class:`SearchSuperseded`."""
        self._sequence += 1
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
