"""
Single variant execution

Runs the procedure under test for one variant, times it, computes the
metric, and turns any fault into a failed VariantResult instead of raising.
"""

from __future__ import annotations

import inspect
import time
import traceback
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import structlog

from experimentcore.experiments.models import (
    ExperimentConfig,
    RunContext,
    RunOptions,
    Variant,
    VariantResult,
)
from experimentcore.tracking import Tracker, TrackingEventType

logger = structlog.get_logger()


class VariantRunner:
    """Execute one variant: pending -> running -> completed | failed"""

    def __init__(self, tracker: Tracker) -> None:
        """
        Initialize variant runner

        Args:
            tracker: Destination for variant lifecycle events
        """
        self.tracker = tracker

    async def run(
        self,
        config: ExperimentConfig[Any, Any],
        variant: Variant[Any],
        context_data: Any = None,
        options: RunOptions | None = None,
    ) -> VariantResult[Any]:
        """
        Run a variant once

        Args:
            config: Experiment definition
            variant: Variant to run
            context_data: Shared data exposed as RunContext.data
            options: Supplies lifecycle callbacks

        Returns:
            Finalized variant result; failures are returned, not raised
        """
        options = options or RunOptions()
        run_id = str(uuid4())
        started_at = datetime.now(UTC)
        start = time.perf_counter()

        context = RunContext(
            experiment_id=config.id,
            variant_id=variant.id,
            run_id=run_id,
            started_at=started_at,
            data=context_data,
        )

        self.tracker.emit(
            TrackingEventType.VARIANT_START,
            experiment_id=config.id,
            variant_id=variant.id,
            variant_name=variant.display_name,
            run_id=run_id,
        )
        _invoke_callback(options.on_variant_start, variant.id, variant.display_name)

        try:
            result = config.execute(variant.config, context)
            if inspect.isawaitable(result):
                result = await result
            duration_ms = _elapsed_ms(start)
            completed_at = datetime.now(UTC)

            metric_value: float | None = None
            if config.metric is not None:
                metric_value = config.metric(result)
                if inspect.isawaitable(metric_value):
                    metric_value = await metric_value
                if metric_value is not None:
                    metric_value = float(metric_value)

                self.tracker.emit(
                    TrackingEventType.METRIC_COMPUTED,
                    experiment_id=config.id,
                    variant_id=variant.id,
                    run_id=run_id,
                    metric_value=metric_value,
                )
        except Exception as e:
            return self._fail(config, variant, run_id, started_at, start, e, options)

        variant_result = VariantResult(
            experiment_id=config.id,
            variant_id=variant.id,
            variant_name=variant.display_name,
            run_id=run_id,
            result=result,
            metric_value=metric_value,
            duration_ms=duration_ms,
            started_at=started_at,
            completed_at=completed_at,
            success=True,
        )

        self.tracker.emit(
            TrackingEventType.VARIANT_COMPLETE,
            experiment_id=config.id,
            variant_id=variant.id,
            variant_name=variant.display_name,
            run_id=run_id,
            duration_ms=duration_ms,
            metric_value=metric_value,
            success=True,
        )
        logger.debug(
            "variant_completed",
            experiment_id=config.id,
            variant_id=variant.id,
            duration_ms=duration_ms,
            metric_value=metric_value,
        )
        _invoke_callback(options.on_variant_complete, variant_result)

        return variant_result

    def _fail(
        self,
        config: ExperimentConfig[Any, Any],
        variant: Variant[Any],
        run_id: str,
        started_at: datetime,
        start: float,
        error: Exception,
        options: RunOptions,
    ) -> VariantResult[Any]:
        duration_ms = _elapsed_ms(start)
        completed_at = datetime.now(UTC)
        message = str(error) or type(error).__name__

        self.tracker.emit(
            TrackingEventType.VARIANT_ERROR,
            experiment_id=config.id,
            variant_id=variant.id,
            variant_name=variant.display_name,
            run_id=run_id,
            duration_ms=duration_ms,
            error=message,
            error_type=type(error).__name__,
            stack="".join(traceback.format_exception(error)),
            success=False,
        )
        logger.warning(
            "variant_failed",
            experiment_id=config.id,
            variant_id=variant.id,
            error=message,
        )
        _invoke_callback(options.on_variant_error, variant.id, error)

        return VariantResult(
            experiment_id=config.id,
            variant_id=variant.id,
            variant_name=variant.display_name,
            run_id=run_id,
            result=None,
            duration_ms=duration_ms,
            started_at=started_at,
            completed_at=completed_at,
            success=False,
            error=error,
            error_message=message,
        )


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


def _invoke_callback(callback: Any, *args: Any) -> None:
    if callback is None:
        return
    try:
        callback(*args)
    except Exception as e:
        logger.error(
            "variant_callback_failed",
            callback=getattr(callback, "__name__", repr(callback)),
            error=str(e),
        )
