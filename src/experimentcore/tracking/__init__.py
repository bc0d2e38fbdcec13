"""
Experiment Tracking

Structured tracking events, pluggable sinks, and a non-blocking tracker
that delivers events to a sink in the background.
"""

from experimentcore.tracking.events import TrackingEvent, TrackingEventType
from experimentcore.tracking.sinks import (
    BatchSink,
    ConsoleSink,
    FileSink,
    MemorySink,
    TrackingSink,
)
from experimentcore.tracking.tracker import Tracker, create_tracker

__all__ = [
    "TrackingEvent",
    "TrackingEventType",
    "TrackingSink",
    "ConsoleSink",
    "MemorySink",
    "FileSink",
    "BatchSink",
    "Tracker",
    "create_tracker",
]
