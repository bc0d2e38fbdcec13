"""
Decision strategies

Picks one option from a candidate set, either from precomputed scores or
from caller-owned bandit statistics. Implements plain argmax, weighted
random choice, epsilon-greedy, Thompson sampling, and UCB1. Every selection
emits a decision.made tracking event.
"""

from __future__ import annotations

import asyncio
import inspect
import math
import random
from collections.abc import Awaitable, Callable, Hashable, Mapping, Sequence
from typing import Any, TypeVar

import structlog

from experimentcore.decisions.models import (
    ArmStatistics,
    BetaPrior,
    Decision,
    ScoredOption,
    WeightedOption,
    as_arm_statistics,
    as_beta_prior,
)
from experimentcore.decisions.sampling import sample_beta
from experimentcore.exceptions import DecisionError
from experimentcore.tracking import Tracker, TrackingEventType

logger = structlog.get_logger()

OptionT = TypeVar("OptionT")
KeyT = TypeVar("KeyT", bound=Hashable)

ScoreFunction = Callable[[OptionT], float | Awaitable[float]]


class DecisionEngine:
    """
    Decision strategies bound to a tracker and a random source.

    The engine keeps no state between calls. Statistics for the bandit
    strategies are read from the caller's mappings and never written back.
    """

    def __init__(
        self,
        tracker: Tracker | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """
        Initialize decision engine

        Args:
            tracker: Destination for decision.made events (settings-based by default)
            rng: Random source, seed it for reproducible decisions
        """
        self.tracker = tracker if tracker is not None else Tracker.from_settings()
        self.rng = rng or random.Random()

    async def decide(
        self,
        options: Sequence[OptionT],
        score: ScoreFunction[OptionT],
        *,
        context: Any = None,
        return_all: bool = False,
    ) -> Decision[OptionT]:
        """
        Score every option and select the highest

        Scores are computed concurrently. Ties keep input order.

        Args:
            options: Candidate options
            score: Sync or async scoring function
            context: Free-form description carried into the tracking event
            return_all: Include every option sorted by score

        Returns:
            Decision with the selected option and its score

        Raises:
            DecisionError: If options is empty
        """
        ranked = await self._rank(options, score)
        best = ranked[0]

        self.tracker.emit(
            TrackingEventType.DECISION_MADE,
            strategy="argmax",
            context=context,
            option_count=len(options),
            selected=best.option,
            selected_score=best.score,
            all_scores=[s.score for s in ranked],
        )

        return Decision(
            selected=best.option,
            score=best.score,
            all_options=ranked if return_all else None,
        )

    def decide_weighted(
        self,
        options: Sequence[WeightedOption[OptionT] | Mapping[str, Any]],
    ) -> OptionT:
        """
        Select an option with probability proportional to its weight

        Args:
            options: Weighted options ({value, weight} models or mappings)

        Returns:
            Selected option value

        Raises:
            DecisionError: If options is empty or total weight is not positive
        """
        if not options:
            raise DecisionError("Cannot decide with empty options")

        weighted = [
            o if isinstance(o, WeightedOption) else WeightedOption.model_validate(o)
            for o in options
        ]
        total_weight = sum(o.weight for o in weighted)
        if total_weight <= 0:
            raise DecisionError("Total weight must be positive")

        threshold = self.rng.random() * total_weight
        selected = weighted[-1]

        cumulative = 0.0
        for option in weighted:
            cumulative += option.weight
            if threshold < cumulative:
                selected = option
                break
        # Rounding can exhaust the loop; the last option is the fallback

        self.tracker.emit(
            TrackingEventType.DECISION_MADE,
            strategy="weighted",
            option_count=len(weighted),
            selected=selected.value,
            weight=selected.weight,
            total_weight=total_weight,
        )

        return selected.value

    async def decide_epsilon_greedy(
        self,
        options: Sequence[OptionT],
        score: ScoreFunction[OptionT],
        epsilon: float,
        *,
        context: Any = None,
    ) -> Decision[OptionT]:
        """
        Explore at random with probability epsilon, otherwise exploit

        Exploration scores only the randomly chosen option.

        Args:
            options: Candidate options
            score: Sync or async scoring function
            epsilon: Exploration probability in [0, 1]
            context: Free-form description carried into the tracking event

        Returns:
            Decision with the selected option and its score

        Raises:
            DecisionError: If epsilon is out of range or options is empty
        """
        if not 0.0 <= epsilon <= 1.0:
            raise DecisionError("Epsilon must be between 0 and 1")
        if not options:
            raise DecisionError("Cannot decide with empty options")

        if self.rng.random() < epsilon:
            strategy = "epsilon-greedy-explore"
            selected = options[self.rng.randrange(len(options))]
            decision = Decision(selected=selected, score=await _score_option(score, selected))
        else:
            strategy = "epsilon-greedy-exploit"
            best = (await self._rank(options, score))[0]
            decision = Decision(selected=best.option, score=best.score)

        self.tracker.emit(
            TrackingEventType.DECISION_MADE,
            strategy=strategy,
            context=context,
            epsilon=epsilon,
            selected=decision.selected,
            selected_score=decision.score,
        )

        return decision

    def decide_thompson_sampling(
        self,
        options: Sequence[KeyT],
        priors: Mapping[KeyT, BetaPrior | Mapping[str, Any]],
    ) -> KeyT:
        """
        Select the option with the largest draw from its Beta posterior

        Args:
            options: Candidate option identifiers
            priors: Caller-owned {alpha, beta} per option

        Returns:
            Selected option

        Raises:
            DecisionError: If options is empty or an option has no valid prior
        """
        if not options:
            raise DecisionError("Cannot decide with empty options")

        beta_priors = {option: _lookup(priors, option, as_beta_prior, "prior") for option in options}

        best_option = options[0]
        best_sample = -math.inf
        for option in options:
            prior = beta_priors[option]
            draw = sample_beta(prior.alpha, prior.beta, self.rng)
            if draw > best_sample:
                best_option, best_sample = option, draw

        self.tracker.emit(
            TrackingEventType.DECISION_MADE,
            strategy="thompson-sampling",
            selected=best_option,
            sample=best_sample,
            prior=beta_priors[best_option].model_dump(),
        )

        return best_option

    def decide_ucb(
        self,
        options: Sequence[KeyT],
        stats: Mapping[KeyT, ArmStatistics | Mapping[str, Any]],
        *,
        exploration_factor: float,
        total_count: int,
    ) -> KeyT:
        """
        Select the option with the highest upper confidence bound

        UCB = mean + exploration_factor * sqrt(ln(total_count) / max(count, 1)).
        total_count is supplied by the caller because it may cover arms that
        are not in options.

        Args:
            options: Candidate option identifiers
            stats: Caller-owned {mean, count} per option
            exploration_factor: Weight of the exploration bonus
            total_count: Total number of pulls across all arms

        Returns:
            Selected option

        Raises:
            DecisionError: If options is empty, stats are missing, or total_count < 1
        """
        if not options:
            raise DecisionError("Cannot decide with empty options")
        if total_count < 1:
            raise DecisionError(f"total_count must be at least 1, got {total_count}")

        log_total = math.log(total_count)
        best_option = options[0]
        best_ucb = -math.inf
        best_stats: ArmStatistics | None = None

        for option in options:
            arm = _lookup(stats, option, as_arm_statistics, "statistics")
            ucb = arm.mean + exploration_factor * math.sqrt(log_total / max(arm.count, 1))
            if ucb > best_ucb:
                best_option, best_ucb, best_stats = option, ucb, arm

        assert best_stats is not None
        self.tracker.emit(
            TrackingEventType.DECISION_MADE,
            strategy="ucb",
            selected=best_option,
            ucb=best_ucb,
            mean=best_stats.mean,
            count=best_stats.count,
            exploration_factor=exploration_factor,
            total_count=total_count,
        )

        return best_option

    async def _rank(
        self,
        options: Sequence[OptionT],
        score: ScoreFunction[OptionT],
    ) -> list[ScoredOption[OptionT]]:
        if not options:
            raise DecisionError("Cannot decide with empty options")

        scores = await asyncio.gather(*(_score_option(score, option) for option in options))
        scored = [ScoredOption(option=o, score=s) for o, s in zip(options, scores)]
        scored.sort(key=lambda s: s.score, reverse=True)

        logger.debug("options_ranked", option_count=len(scored), best_score=scored[0].score)
        return scored


async def _score_option(score: ScoreFunction[OptionT], option: OptionT) -> float:
    value = score(option)
    if inspect.isawaitable(value):
        value = await value
    return float(value)


def _lookup(mapping: Mapping[Any, Any], option: Any, convert: Callable[[Any], Any], label: str) -> Any:
    if option not in mapping:
        raise DecisionError(f"Missing {label} for option: {option!r}")
    try:
        return convert(mapping[option])
    except ValueError as e:
        raise DecisionError(f"Invalid {label} for option {option!r}: {e}") from e
