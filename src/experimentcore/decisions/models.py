"""
Decision data models

Inputs and outputs of the decision strategies. Bandit statistics are owned
by the caller; the strategies only read them.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

OptionT = TypeVar("OptionT")


class ScoredOption(BaseModel, Generic[OptionT]):
    """Option paired with its score"""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    option: OptionT
    score: float


class Decision(BaseModel, Generic[OptionT]):
    """Result of a score-based decision"""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    selected: OptionT
    score: float
    all_options: list[ScoredOption[OptionT]] | None = Field(
        default=None,
        description="All options sorted by descending score, when requested",
    )


class WeightedOption(BaseModel, Generic[OptionT]):
    """Option with a relative selection weight"""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    value: OptionT
    weight: float


class BetaPrior(BaseModel):
    """Beta posterior parameters for Thompson sampling"""

    model_config = ConfigDict(frozen=True)

    alpha: float = Field(..., gt=0.0, description="Successes plus prior")
    beta: float = Field(..., gt=0.0, description="Failures plus prior")


class ArmStatistics(BaseModel):
    """Running mean and sample count for UCB"""

    model_config = ConfigDict(frozen=True)

    mean: float
    count: int = Field(..., ge=0)


def as_beta_prior(value: BetaPrior | dict[str, Any]) -> BetaPrior:
    """Accept either a model or a plain {alpha, beta} mapping"""
    if isinstance(value, BetaPrior):
        return value
    return BetaPrior.model_validate(value)


def as_arm_statistics(value: ArmStatistics | dict[str, Any]) -> ArmStatistics:
    """Accept either a model or a plain {mean, count} mapping"""
    if isinstance(value, ArmStatistics):
        return value
    return ArmStatistics.model_validate(value)
