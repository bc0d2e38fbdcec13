"""
Experiment orchestration

Drives a full experiment: runs every variant sequentially, all at once, or
in concurrent chunks, then aggregates the results and picks the variant
with the highest metric.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

import structlog

from experimentcore.exceptions import ConfigurationError
from experimentcore.experiments.models import (
    BestVariant,
    ExperimentConfig,
    ExperimentSummary,
    RunOptions,
    Variant,
    VariantResult,
)
from experimentcore.experiments.runner import VariantRunner
from experimentcore.tracking import Tracker, TrackingEvent, TrackingEventType

logger = structlog.get_logger()


class ExperimentOrchestrator:
    """
    Runs experiments against a tracker bound at construction.

    Variant failures never abort run(); they are reported in the summary.
    With stop_on_error, execution stops after the first failing variant
    (sequential) or the first chunk containing a failure (bounded parallel).
    Once a variant has started it always runs to completion.
    """

    def __init__(
        self,
        tracker: Tracker | None = None,
        runner: VariantRunner | None = None,
    ) -> None:
        """
        Initialize orchestrator

        Args:
            tracker: Destination for experiment events (settings-based by default)
            runner: Variant runner (one sharing the tracker by default)
        """
        self.tracker = tracker if tracker is not None else Tracker.from_settings()
        self.runner = runner or VariantRunner(self.tracker)

    async def run(
        self,
        config: ExperimentConfig[Any, Any],
        options: RunOptions | None = None,
    ) -> ExperimentSummary[Any]:
        """
        Run every variant of an experiment

        Args:
            config: Experiment definition
            options: Execution policy (settings defaults when omitted)

        Returns:
            Experiment summary with per-variant results and the best variant

        Raises:
            ConfigurationError: If the experiment has no variants
        """
        if not config.variants:
            raise ConfigurationError(f"Experiment has no variants: {config.id}")

        options = options or RunOptions.from_settings()
        started_at = datetime.now(UTC)
        start = time.perf_counter()

        self.tracker.track(
            TrackingEvent(
                type=TrackingEventType.EXPERIMENT_START,
                data={
                    "experiment_id": config.id,
                    "experiment_name": config.name,
                    "variant_count": len(config.variants),
                    "parallel": options.parallel,
                    "max_concurrency": options.max_concurrency,
                    **config.metadata,
                },
            )
        )
        logger.info(
            "experiment_started",
            experiment_id=config.id,
            variant_count=len(config.variants),
            parallel=options.parallel,
            max_concurrency=options.max_concurrency,
        )

        if not options.parallel:
            results = await self._run_sequential(config, options)
        elif options.max_concurrency and options.max_concurrency > 0:
            results = await self._run_chunked(config, options, options.max_concurrency)
        else:
            results = await self._run_batch(config, config.variants, options)

        completed_at = datetime.now(UTC)
        total_duration_ms = (time.perf_counter() - start) * 1000
        best_variant = select_best_variant(results)

        summary = ExperimentSummary(
            experiment_id=config.id,
            experiment_name=config.name,
            results=results,
            best_variant=best_variant,
            total_duration_ms=total_duration_ms,
            success_count=sum(1 for r in results if r.success),
            failure_count=sum(1 for r in results if not r.success),
            started_at=started_at,
            completed_at=completed_at,
        )

        self.tracker.track(
            TrackingEvent(
                type=TrackingEventType.EXPERIMENT_COMPLETE,
                data={
                    "experiment_id": config.id,
                    "experiment_name": config.name,
                    "success_count": summary.success_count,
                    "failure_count": summary.failure_count,
                    "total_duration_ms": total_duration_ms,
                    "best_variant": best_variant.variant_id if best_variant else None,
                    **config.metadata,
                },
            )
        )
        logger.info(
            "experiment_completed",
            experiment_id=config.id,
            success_count=summary.success_count,
            failure_count=summary.failure_count,
            best_variant=best_variant.variant_id if best_variant else None,
            total_duration_ms=round(total_duration_ms, 2),
        )

        return summary

    async def _run_sequential(
        self,
        config: ExperimentConfig[Any, Any],
        options: RunOptions,
    ) -> list[VariantResult[Any]]:
        results: list[VariantResult[Any]] = []

        for variant in config.variants:
            result = await self.runner.run(config, variant, options.context, options)
            results.append(result)

            if options.stop_on_error and not result.success:
                logger.info(
                    "experiment_stopped_on_error",
                    experiment_id=config.id,
                    variant_id=variant.id,
                    skipped=len(config.variants) - len(results),
                )
                break

        return results

    async def _run_chunked(
        self,
        config: ExperimentConfig[Any, Any],
        options: RunOptions,
        chunk_size: int,
    ) -> list[VariantResult[Any]]:
        results: list[VariantResult[Any]] = []

        for chunk in chunk_variants(config.variants, chunk_size):
            chunk_results = await self._run_batch(config, chunk, options)
            results.extend(chunk_results)

            if options.stop_on_error and any(not r.success for r in chunk_results):
                logger.info(
                    "experiment_stopped_on_error",
                    experiment_id=config.id,
                    failed=[r.variant_id for r in chunk_results if not r.success],
                    skipped=len(config.variants) - len(results),
                )
                break

        return results

    async def _run_batch(
        self,
        config: ExperimentConfig[Any, Any],
        variants: Sequence[Variant[Any]],
        options: RunOptions,
    ) -> list[VariantResult[Any]]:
        # Launched in list order; gather keeps input positions
        return list(
            await asyncio.gather(
                *(self.runner.run(config, v, options.context, options) for v in variants)
            )
        )


def chunk_variants(variants: Sequence[Variant[Any]], size: int) -> list[list[Variant[Any]]]:
    """Split variants into consecutive chunks of at most size"""
    if size < 1:
        raise ValueError(f"Chunk size must be at least 1, got {size}")
    return [list(variants[i : i + size]) for i in range(0, len(variants), size)]


def select_best_variant(results: Sequence[VariantResult[Any]]) -> BestVariant | None:
    """
    Pick the successful result with the highest metric

    Results without a metric value are ignored. The first maximum wins.
    """
    best: VariantResult[Any] | None = None

    for result in results:
        if not result.success or result.metric_value is None:
            continue
        if best is None or result.metric_value > best.metric_value:  # type: ignore[operator]
            best = result

    if best is None or best.metric_value is None:
        return None

    return BestVariant(
        variant_id=best.variant_id,
        variant_name=best.variant_name,
        metric_value=best.metric_value,
    )


async def run_experiment(
    config: ExperimentConfig[Any, Any],
    options: RunOptions | None = None,
    *,
    tracker: Tracker | None = None,
) -> ExperimentSummary[Any]:
    """
    Run an experiment with a one-off orchestrator

    Args:
        config: Experiment definition
        options: Execution policy
        tracker: Destination for experiment events (settings-based by default)

    Returns:
        Experiment summary
    """
    return await ExperimentOrchestrator(tracker=tracker).run(config, options)
