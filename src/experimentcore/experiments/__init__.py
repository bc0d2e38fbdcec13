"""
Experiment Framework

Parameter space generation, variant execution, and experiment orchestration
with sequential, parallel, and chunked execution policies.
"""

from experimentcore.experiments.models import (
    BestVariant,
    ExperimentConfig,
    ExperimentSummary,
    RunContext,
    RunOptions,
    Variant,
    VariantResult,
)
from experimentcore.experiments.orchestrator import (
    ExperimentOrchestrator,
    chunk_variants,
    run_experiment,
    select_best_variant,
)
from experimentcore.experiments.parameters import (
    LabeledCombination,
    ParameterSpace,
    count,
    expand,
    expand_with_labels,
    filter_combinations,
    sample,
    variants_from_grid,
)
from experimentcore.experiments.runner import VariantRunner

__all__ = [
    "Variant",
    "RunContext",
    "ExperimentConfig",
    "RunOptions",
    "VariantResult",
    "BestVariant",
    "ExperimentSummary",
    "VariantRunner",
    "ExperimentOrchestrator",
    "run_experiment",
    "chunk_variants",
    "select_best_variant",
    "ParameterSpace",
    "LabeledCombination",
    "expand",
    "count",
    "filter_combinations",
    "sample",
    "expand_with_labels",
    "variants_from_grid",
]
