"""
Tracking sinks

Destinations for tracking events. The engine only depends on the narrow
TrackingSink protocol; the adapters here cover console output, in-memory
collection, JSON lines files, and batched delivery to an async sender.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import IO, Protocol, runtime_checkable

import structlog

from experimentcore.tracking.events import TrackingEvent

logger = structlog.get_logger()


@runtime_checkable
class TrackingSink(Protocol):
    """Consumer of tracking events."""

    def track(self, event: TrackingEvent) -> None | Awaitable[None]:
        """Consume one event"""
        ...


class ConsoleSink:
    """Render events through structlog."""

    def __init__(self, verbose: bool = False) -> None:
        self.verbose = verbose

    def track(self, event: TrackingEvent) -> None:
        if self.verbose:
            logger.info(
                "tracking_event",
                event_type=event.type.value,
                timestamp=event.timestamp.isoformat(),
                data=event.data,
            )
        else:
            logger.info(
                "tracking_event",
                event_type=event.type.value,
                timestamp=event.timestamp.isoformat(),
                key=event.key(),
            )


class MemorySink:
    """Keep events in memory, mostly for tests and batch post-processing."""

    def __init__(self) -> None:
        self.events: list[TrackingEvent] = []

    def track(self, event: TrackingEvent) -> None:
        self.events.append(event)

    def get_events(self) -> list[TrackingEvent]:
        """Get a copy of collected events"""
        return list(self.events)

    def clear(self) -> None:
        """Drop collected events"""
        self.events.clear()


class FileSink:
    """
    Append events to a JSON lines file.

    The file is opened lazily on the first event and kept open until
    close() is called.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._handle: IO[str] | None = None

    def _ensure_handle(self) -> IO[str]:
        if self._handle is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._handle = self.path.open("a", encoding="utf-8")
        return self._handle

    def track(self, event: TrackingEvent) -> None:
        record = {
            "type": event.type.value,
            "timestamp": event.timestamp.isoformat(),
            "data": event.data,
        }
        handle = self._ensure_handle()
        handle.write(json.dumps(record, default=str) + "\n")

    async def flush(self) -> None:
        if self._handle is not None:
            self._handle.flush()

    async def close(self) -> None:
        """Flush and close the underlying file"""
        if self._handle is not None:
            self._handle.close()
            self._handle = None


BatchSender = Callable[[list[TrackingEvent]], Awaitable[None]]


class BatchSink:
    """
    Group events and hand them to an async sender.

    A batch is sent when it reaches batch_size or, if flush_interval is set,
    when that many seconds pass without a new event. A failed send puts the
    events back at the front of the buffer so the next flush retries them.
    """

    def __init__(
        self,
        send: BatchSender,
        batch_size: int = 100,
        flush_interval: float | None = None,
    ) -> None:
        """
        Initialize batch sink

        Args:
            send: Async callable receiving a list of events
            batch_size: Number of buffered events that triggers a send
            flush_interval: Idle seconds before a partial batch is sent
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        self._send = send
        self.batch_size = batch_size
        self.flush_interval = flush_interval
        self._buffer: list[TrackingEvent] = []
        self._timer: asyncio.TimerHandle | None = None
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def buffered(self) -> int:
        """Number of events waiting to be sent"""
        return len(self._buffer)

    async def track(self, event: TrackingEvent) -> None:
        self._buffer.append(event)

        if len(self._buffer) >= self.batch_size:
            self._cancel_timer()
            await self._send_buffer()
        else:
            self._schedule_flush()

    async def flush(self) -> None:
        self._cancel_timer()
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        await self._send_buffer()

    async def _send_buffer(self) -> None:
        if not self._buffer:
            return

        batch = list(self._buffer)
        self._buffer.clear()

        try:
            await self._send(batch)
        except Exception as e:
            logger.error("tracking_batch_send_failed", batch_size=len(batch), error=str(e))
            self._buffer[:0] = batch

    def _schedule_flush(self) -> None:
        if self.flush_interval is None:
            return

        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.flush_interval, self._on_timer)

    def _on_timer(self) -> None:
        self._timer = None
        task = asyncio.get_running_loop().create_task(self._send_buffer())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
