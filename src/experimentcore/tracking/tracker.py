"""
Non-blocking event tracker

Puts tracking events on a bounded channel drained by a background consumer
task, so emitting an event never waits on the sink. Sink failures are logged
and never reach the caller.
"""

from __future__ import annotations

import asyncio
import inspect
from contextlib import suppress
from typing import Any

import structlog

from experimentcore.config import Settings, get_settings
from experimentcore.tracking.events import TrackingEvent, TrackingEventType
from experimentcore.tracking.sinks import ConsoleSink, FileSink, MemorySink, TrackingSink

logger = structlog.get_logger()


class Tracker:
    """
    Fire-and-forget tracking channel bound to one sink.

    Inside a running event loop, events are queued and delivered by a
    consumer task started on first use. When the queue is full the event is
    dropped and counted. Outside an event loop, events are delivered inline.
    """

    def __init__(
        self,
        sink: TrackingSink | None = None,
        *,
        enabled: bool = True,
        metadata: dict[str, Any] | None = None,
        max_queue_size: int = 1000,
    ) -> None:
        """
        Initialize tracker

        Args:
            sink: Event destination (console by default)
            enabled: Drop all events when False
            metadata: Extra data merged into every event
            max_queue_size: Bound of the delivery channel
        """
        if max_queue_size < 1:
            raise ValueError("max_queue_size must be at least 1")

        self.sink: TrackingSink = sink if sink is not None else ConsoleSink()
        self.enabled = enabled
        self.metadata = dict(metadata or {})
        self.max_queue_size = max_queue_size
        self.dropped_count = 0

        self._queue: asyncio.Queue[TrackingEvent] | None = None
        self._consumer: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @classmethod
    def from_settings(
        cls, settings: Settings | None = None, sink: TrackingSink | None = None
    ) -> Tracker:
        """Build a tracker from settings, using the configured sink unless one is given"""
        settings = settings or get_settings()
        return cls(
            sink if sink is not None else _sink_from_settings(settings),
            enabled=settings.tracking_enabled and settings.tracking_sink != "none",
            metadata=settings.tracking_metadata,
            max_queue_size=settings.tracking_queue_size,
        )

    def emit(self, event_type: TrackingEventType, **data: Any) -> None:
        """Build and track an event from keyword data"""
        self.track(TrackingEvent(type=event_type, data=data))

    def track(self, event: TrackingEvent) -> None:
        """
        Track an event without blocking

        Args:
            event: Event to deliver
        """
        if not self.enabled:
            return

        event = event.with_metadata(self.metadata)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._deliver_inline(event)
            return

        queue = self._ensure_consumer(loop)
        try:
            queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped_count += 1
            logger.warning(
                "tracking_queue_full",
                event_type=event.type.value,
                dropped_count=self.dropped_count,
            )

    async def flush(self) -> None:
        """Wait for queued events to be delivered, then flush the sink"""
        if self._queue is not None and self._loop is asyncio.get_running_loop():
            await self._queue.join()

        flush = getattr(self.sink, "flush", None)
        if flush is None:
            return

        try:
            result = flush()
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error("tracking_sink_flush_failed", error=str(e))

    async def close(self) -> None:
        """Flush pending events and stop the consumer task"""
        await self.flush()

        if self._consumer is not None:
            self._consumer.cancel()
            with suppress(asyncio.CancelledError):
                await self._consumer

        self._consumer = None
        self._queue = None
        self._loop = None

    async def __aenter__(self) -> Tracker:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _ensure_consumer(self, loop: asyncio.AbstractEventLoop) -> asyncio.Queue[TrackingEvent]:
        # A tracker reused on a new loop gets a fresh channel
        if (
            self._loop is not loop
            or self._queue is None
            or self._consumer is None
            or self._consumer.done()
        ):
            self._loop = loop
            self._queue = asyncio.Queue(maxsize=self.max_queue_size)
            self._consumer = loop.create_task(self._consume(self._queue))
        return self._queue

    async def _consume(self, queue: asyncio.Queue[TrackingEvent]) -> None:
        while True:
            event = await queue.get()
            try:
                await self._deliver(event)
            finally:
                queue.task_done()

    async def _deliver(self, event: TrackingEvent) -> None:
        try:
            result = self.sink.track(event)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(
                "tracking_sink_failed",
                event_type=event.type.value,
                error=str(e),
            )

    def _deliver_inline(self, event: TrackingEvent) -> None:
        try:
            result = self.sink.track(event)
            if inspect.iscoroutine(result):
                asyncio.run(result)
        except Exception as e:
            logger.error(
                "tracking_sink_failed",
                event_type=event.type.value,
                error=str(e),
            )


def _sink_from_settings(settings: Settings) -> TrackingSink:
    if settings.tracking_sink == "memory":
        return MemorySink()
    if settings.tracking_sink == "file":
        return FileSink(settings.tracking_file_path)
    return ConsoleSink(verbose=settings.tracking_console_verbose)


def create_tracker(settings: Settings | None = None) -> Tracker:
    """
    Create a tracker from settings

    Args:
        settings: Settings to use (cached environment settings by default)

    Returns:
        Tracker bound to the configured sink
    """
    return Tracker.from_settings(settings)
