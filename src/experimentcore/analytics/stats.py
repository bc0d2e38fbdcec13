"""
Event-derived variant statistics

Aggregates tracked variant outcomes into per-variant statistics and turns
them into inputs for the bandit strategies. Point estimates only.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Literal

from pydantic import BaseModel, Field

from experimentcore.decisions.models import ArmStatistics, BetaPrior
from experimentcore.experiments.models import VariantResult
from experimentcore.tracking.events import TrackingEvent, TrackingEventType

RankingMetric = Literal["avg_metric", "success_rate", "avg_duration"]

_OUTCOME_EVENTS = (TrackingEventType.VARIANT_COMPLETE, TrackingEventType.VARIANT_ERROR)


class VariantOutcome(BaseModel):
    """One finished variant run"""

    experiment_id: str
    variant_id: str
    variant_name: str = ""
    success: bool
    duration_ms: float = 0.0
    metric_value: float | None = None


class VariantStats(BaseModel):
    """Aggregated performance of one variant"""

    variant_id: str
    variant_name: str
    run_count: int
    success_count: int
    success_rate: float
    avg_duration_ms: float
    avg_metric: float | None = None
    min_metric: float | None = None
    max_metric: float | None = None
    metric_count: int = Field(default=0, description="Runs that produced a metric")

    @property
    def failure_count(self) -> int:
        return self.run_count - self.success_count


def outcomes_from_events(
    events: Iterable[TrackingEvent],
    experiment_id: str | None = None,
) -> list[VariantOutcome]:
    """
    Extract finished runs from variant.complete and variant.error events

    Args:
        events: Tracked events, in any order
        experiment_id: Keep only this experiment's runs

    Returns:
        One outcome per finished run
    """
    outcomes: list[VariantOutcome] = []

    for event in events:
        if event.type not in _OUTCOME_EVENTS:
            continue

        data = event.data
        if experiment_id is not None and data.get("experiment_id") != experiment_id:
            continue

        outcomes.append(
            VariantOutcome(
                experiment_id=str(data.get("experiment_id", "")),
                variant_id=str(data.get("variant_id", "")),
                variant_name=str(data.get("variant_name", "")),
                success=event.type == TrackingEventType.VARIANT_COMPLETE
                and data.get("success", True) is not False,
                duration_ms=float(data.get("duration_ms") or 0.0),
                metric_value=data.get("metric_value"),
            )
        )

    return outcomes


def outcomes_from_results(results: Iterable[VariantResult[Any]]) -> list[VariantOutcome]:
    """Convert variant results into outcomes"""
    return [
        VariantOutcome(
            experiment_id=r.experiment_id,
            variant_id=r.variant_id,
            variant_name=r.variant_name,
            success=r.success,
            duration_ms=r.duration_ms,
            metric_value=r.metric_value,
        )
        for r in results
    ]


def variant_stats(outcomes: Iterable[VariantOutcome]) -> list[VariantStats]:
    """
    Aggregate outcomes per variant

    Metric aggregates only consider successful runs with a metric value.

    Args:
        outcomes: Finished runs

    Returns:
        Statistics per variant, highest average metric first; variants
        without any metric come last
    """
    grouped: dict[str, list[VariantOutcome]] = {}
    for outcome in outcomes:
        grouped.setdefault(outcome.variant_id, []).append(outcome)

    stats: list[VariantStats] = []
    for variant_id, runs in grouped.items():
        metrics = [
            r.metric_value for r in runs if r.success and r.metric_value is not None
        ]
        success_count = sum(1 for r in runs if r.success)

        stats.append(
            VariantStats(
                variant_id=variant_id,
                variant_name=next((r.variant_name for r in runs if r.variant_name), ""),
                run_count=len(runs),
                success_count=success_count,
                success_rate=success_count / len(runs),
                avg_duration_ms=sum(r.duration_ms for r in runs) / len(runs),
                avg_metric=sum(metrics) / len(metrics) if metrics else None,
                min_metric=min(metrics) if metrics else None,
                max_metric=max(metrics) if metrics else None,
                metric_count=len(metrics),
            )
        )

    stats.sort(key=lambda s: (s.avg_metric is None, -(s.avg_metric or 0.0)))
    return stats


def best_variant_from_stats(
    stats: Iterable[VariantStats],
    metric: RankingMetric = "avg_metric",
    minimum_runs: int = 1,
) -> VariantStats | None:
    """
    Pick the best variant by a ranking metric

    avg_duration prefers the fastest variant; the other metrics prefer the
    highest value.

    Args:
        stats: Per-variant statistics
        metric: Ranking metric
        minimum_runs: Ignore variants with fewer runs

    Returns:
        Best variant statistics, or None when no variant qualifies
    """
    candidates = [s for s in stats if s.run_count >= minimum_runs]

    if metric == "avg_metric":
        candidates = [s for s in candidates if s.avg_metric is not None]
        return max(candidates, key=lambda s: s.avg_metric, default=None)  # type: ignore[arg-type, return-value]
    if metric == "success_rate":
        return max(candidates, key=lambda s: s.success_rate, default=None)
    if metric == "avg_duration":
        return min(candidates, key=lambda s: s.avg_duration_ms, default=None)

    raise ValueError(f"Unknown ranking metric: {metric}")


def beta_priors(
    stats: Iterable[VariantStats],
    prior_alpha: float = 1.0,
    prior_beta: float = 1.0,
) -> dict[str, BetaPrior]:
    """
    Beta posteriors for Thompson sampling from success and failure counts

    Args:
        stats: Per-variant statistics
        prior_alpha: Pseudo-count added to successes
        prior_beta: Pseudo-count added to failures

    Returns:
        Prior per variant id
    """
    return {
        s.variant_id: BetaPrior(
            alpha=prior_alpha + s.success_count,
            beta=prior_beta + s.failure_count,
        )
        for s in stats
    }


def arm_statistics(stats: Iterable[VariantStats]) -> dict[str, ArmStatistics]:
    """Mean metric and sample count per variant for UCB"""
    return {
        s.variant_id: ArmStatistics(mean=s.avg_metric or 0.0, count=s.metric_count)
        for s in stats
    }


def total_count(arms: Mapping[str, ArmStatistics]) -> int:
    """Total pulls across arms, at least 1 so it can feed UCB directly"""
    return max(sum(a.count for a in arms.values()), 1)
