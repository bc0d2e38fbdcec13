"""
Experiment data models

Variants, experiment configuration, run options, and the immutable results
produced by a run.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from experimentcore.config import Settings, get_settings

ConfigT = TypeVar("ConfigT")
ResultT = TypeVar("ResultT")


class Variant(BaseModel, Generic[ConfigT]):
    """One concrete parameter configuration under test"""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str = Field(..., min_length=1, description="Variant identifier, unique per experiment")
    name: str = Field(default="", description="Human readable name")
    config: ConfigT

    @property
    def display_name(self) -> str:
        """Name, falling back to the identifier"""
        return self.name or self.id


class RunContext(BaseModel):
    """Context handed to the procedure under test for one variant run"""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    experiment_id: str
    variant_id: str
    run_id: str
    started_at: datetime
    data: Any = None


class ExperimentConfig(BaseModel, Generic[ConfigT, ResultT]):
    """
    Experiment definition

    execute receives a variant config and its RunContext and may be sync or
    async. metric turns a result into the scalar used to rank variants.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str = Field(..., min_length=1)
    name: str = ""
    description: str | None = None
    variants: list[Variant[ConfigT]] = Field(..., min_length=1)
    execute: Callable[[ConfigT, RunContext], ResultT | Awaitable[ResultT]]
    metric: Callable[[ResultT], float | Awaitable[float]] | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("variants")
    @classmethod
    def _unique_variant_ids(cls, variants: list[Variant[ConfigT]]) -> list[Variant[ConfigT]]:
        seen: set[str] = set()
        for variant in variants:
            if variant.id in seen:
                raise ValueError(f"Duplicate variant id: {variant.id}")
            seen.add(variant.id)
        return variants


class RunOptions(BaseModel):
    """Execution policy and lifecycle callbacks for an experiment run"""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    parallel: bool = Field(default=True, description="Launch variants concurrently")
    max_concurrency: int | None = Field(
        default=None,
        description="Chunk size for parallel runs; unset or <= 0 means unbounded",
    )
    stop_on_error: bool = Field(
        default=False,
        description="Stop after the first failing variant (or chunk)",
    )
    context: Any = Field(default=None, description="Shared data passed to every RunContext")
    on_variant_start: Callable[[str, str], Any] | None = None
    on_variant_complete: Callable[[VariantResult], Any] | None = None
    on_variant_error: Callable[[str, Exception], Any] | None = None

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **overrides: Any) -> RunOptions:
        """Build options from configured defaults"""
        settings = settings or get_settings()
        values: dict[str, Any] = {
            "parallel": settings.default_parallel,
            "max_concurrency": settings.default_max_concurrency,
            "stop_on_error": settings.default_stop_on_error,
        }
        values.update(overrides)
        return cls(**values)


class VariantResult(BaseModel, Generic[ResultT]):
    """Outcome of one variant run, finalized exactly once"""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    experiment_id: str
    variant_id: str
    variant_name: str
    run_id: str
    result: ResultT | None = None
    metric_value: float | None = None
    duration_ms: float
    started_at: datetime
    completed_at: datetime
    success: bool
    error: Exception | None = Field(default=None, exclude=True)
    error_message: str | None = None


class BestVariant(BaseModel):
    """Winning variant of an experiment"""

    model_config = ConfigDict(frozen=True)

    variant_id: str
    variant_name: str
    metric_value: float


class ExperimentSummary(BaseModel, Generic[ResultT]):
    """Aggregated outcome of an experiment run"""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    experiment_id: str
    experiment_name: str
    results: list[VariantResult[ResultT]]
    best_variant: BestVariant | None = None
    total_duration_ms: float
    success_count: int
    failure_count: int
    started_at: datetime
    completed_at: datetime

    def get_result(self, variant_id: str) -> VariantResult[ResultT] | None:
        """Get the result for a variant, if it ran"""
        for result in self.results:
            if result.variant_id == variant_id:
                return result
        return None


RunOptions.model_rebuild()
