"""
Scan event channel.

The capture collaborator pushes decoded barcodes here; the pipeline
consumes them in order. Replaces a delegate callback with an explicit
queue so scans never reach the pipeline from a foreign thread directly.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from pydantic import BaseModel, ConfigDict

from productscan.domain.shared.value_objects import Symbology


class ScanEvent(BaseModel):
    """One decoded barcode from the camera or manual entry."""

    model_config = ConfigDict(frozen=True)

    raw: str
    symbology: Optional[Symbology] = None


class ScanChannel:
    """
    Async queue of ScanEvents, closable.

    Example:
        >>> channel = ScanChannel()
        >>> channel.publish("3017620422003")
        >>> channel.close()
    """

    _CLOSED = object()

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, raw: str, symbology: Optional[Symbology] = None) -> None:
        """Enqueue a scan without waiting.

        Raises:
            RuntimeError: If the channel was closed
            asyncio.QueueFull: If a bounded channel is full
        """
        if self._closed:
            raise RuntimeError("Scan channel is closed")
        self._queue.put_nowait(ScanEvent(raw=raw, symbology=symbology))

    def publish_threadsafe(
        self,
        loop: asyncio.AbstractEventLoop,
        raw: str,
        symbology: Optional[Symbology] = None,
    ) -> None:
        """Enqueue from a capture thread that does not own the loop."""
        loop.call_soon_threadsafe(self.publish, raw, symbology)

    def close(self) -> None:
        """Stop the consumer once queued events are drained."""
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(self._CLOSED)

    async def next_event(self) -> Optional[ScanEvent]:
        """Next event, or None once the channel is closed and drained."""
        item = await self._queue.get()
        if item is self._CLOSED:
            return None
        return item

    def __aiter__(self) -> "ScanChannel":
        return self

    async def __anext__(self) -> ScanEvent:
        event = await self.next_event()
        if event is None:
            raise StopAsyncIteration
        return event
