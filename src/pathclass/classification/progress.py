"""Progress transports for classification runs."""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol


class ProgressChannel(Protocol):
    """Receiver of progress events; publishing must never fail a run."""

    async def publish(self, event: Dict[str, Any]) -> None: ...


class BufferedProgressChannel:
    """Collect events in memory for a single consolidated response."""

    def __init__(self) -> None:
        self.events: List[Dict[str, Any]] = []

    async def publish(self, event: Dict[str, Any]) -> None:
        self.events.append(event)


class StreamingProgressChannel:
    """Hand events to a concurrent consumer as they are produced.

    The producer publishes and finally calls :meth:`close`; the consumer iterates with
    ``async for`` until the channel is closed. Events published after the consumer went
    away simply accumulate in the queue and are discarded with the channel.
    """

    _CLOSED = object()

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False

    async def publish(self, event: Dict[str, Any]) -> None:
        if not self._closed:
            self._queue.put_nowait(event)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(self._CLOSED)

    async def next_event(self) -> Optional[Dict[str, Any]]:
        """Return the next event, or None once the channel is closed."""
        item = await self._queue.get()
        if item is self._CLOSED:
            return None
        return item

    def __aiter__(self) -> AsyncIterator[Dict[str, Any]]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Dict[str, Any]]:
        while True:
            event = await self.next_event()
            if event is None:
                return
            yield event


__all__ = ["ProgressChannel", "BufferedProgressChannel", "StreamingProgressChannel"]
