"""
Tracking event model

Structured telemetry emitted by experiment runs and decision strategies.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TrackingEventType(str, Enum):
    """Types of tracking events"""

    EXPERIMENT_START = "experiment.start"
    EXPERIMENT_COMPLETE = "experiment.complete"
    VARIANT_START = "variant.start"
    VARIANT_COMPLETE = "variant.complete"
    VARIANT_ERROR = "variant.error"
    METRIC_COMPUTED = "metric.computed"
    DECISION_MADE = "decision.made"


class TrackingEvent(BaseModel):
    """Fire-and-forget telemetry event"""

    model_config = ConfigDict(frozen=True)

    type: TrackingEventType = Field(..., description="Event type")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Event timestamp",
    )
    data: dict[str, Any] = Field(default_factory=dict, description="Event data")

    def with_metadata(self, metadata: dict[str, Any]) -> TrackingEvent:
        """Return a copy with metadata merged over the event data"""
        if not metadata:
            return self
        return self.model_copy(update={"data": {**self.data, **metadata}})

    def key(self) -> str:
        """Short identifier for condensed log output"""
        if "experiment_id" in self.data:
            return f"exp={self.data['experiment_id']}"
        if "variant_id" in self.data:
            return f"variant={self.data['variant_id']}"
        if "run_id" in self.data:
            return f"run={self.data['run_id']}"
        return ""
