"""
Experiment Analytics

Per-variant statistics derived from tracked events or variant results,
and converters into bandit strategy inputs.
"""

from experimentcore.analytics.stats import (
    VariantOutcome,
    VariantStats,
    arm_statistics,
    best_variant_from_stats,
    beta_priors,
    outcomes_from_events,
    outcomes_from_results,
    total_count,
    variant_stats,
)

__all__ = [
    "VariantOutcome",
    "VariantStats",
    "outcomes_from_events",
    "outcomes_from_results",
    "variant_stats",
    "best_variant_from_stats",
    "beta_priors",
    "arm_statistics",
    "total_count",
]
