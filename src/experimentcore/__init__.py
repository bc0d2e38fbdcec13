"""
Experiment Core

Runs named variants of a parameterized procedure, measures a metric per
run, reports the best variant, and chooses the next option to try with
bandit strategies.
"""

from experimentcore.decisions import (
    ArmStatistics,
    BetaPrior,
    Decision,
    DecisionEngine,
    ScoredOption,
    WeightedOption,
)
from experimentcore.exceptions import (
    ConfigurationError,
    DecisionError,
    ExperimentCoreError,
    ParameterSpaceError,
)
from experimentcore.experiments import (
    BestVariant,
    ExperimentConfig,
    ExperimentOrchestrator,
    ExperimentSummary,
    ParameterSpace,
    RunContext,
    RunOptions,
    Variant,
    VariantResult,
    VariantRunner,
    run_experiment,
    variants_from_grid,
)
from experimentcore.tracking import (
    BatchSink,
    ConsoleSink,
    FileSink,
    MemorySink,
    Tracker,
    TrackingEvent,
    TrackingEventType,
    TrackingSink,
    create_tracker,
)

__version__ = "0.1.0"

__all__ = [
    "ExperimentOrchestrator",
    "VariantRunner",
    "run_experiment",
    "ExperimentConfig",
    "RunOptions",
    "RunContext",
    "Variant",
    "VariantResult",
    "BestVariant",
    "ExperimentSummary",
    "ParameterSpace",
    "variants_from_grid",
    "DecisionEngine",
    "Decision",
    "ScoredOption",
    "WeightedOption",
    "BetaPrior",
    "ArmStatistics",
    "Tracker",
    "TrackingEvent",
    "TrackingEventType",
    "TrackingSink",
    "ConsoleSink",
    "MemorySink",
    "FileSink",
    "BatchSink",
    "create_tracker",
    "ExperimentCoreError",
    "ConfigurationError",
    "ParameterSpaceError",
    "DecisionError",
]
