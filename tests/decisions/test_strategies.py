"""Tests for decision strategies"""

from __future__ import annotations

import asyncio
import math
import random
from collections import Counter

import pytest

from experimentcore.decisions.models import ArmStatistics, BetaPrior, WeightedOption
from experimentcore.decisions.strategies import DecisionEngine
from experimentcore.exceptions import DecisionError
from experimentcore.tracking import MemorySink, Tracker, TrackingEventType

PRICES = {"apple": 1.5, "banana": 0.5, "orange": 2.0}


@pytest.fixture
def engine(tracker: Tracker, rng: random.Random) -> DecisionEngine:
    """Decision engine with seeded randomness"""
    return DecisionEngine(tracker=tracker, rng=rng)


@pytest.fixture
def sync_engine(memory_sink: MemorySink) -> DecisionEngine:
    """Decision engine used outside an event loop"""
    return DecisionEngine(tracker=Tracker(memory_sink), rng=random.Random(99))


class TestDecide:
    """Test score-based decision"""

    @pytest.mark.asyncio
    async def test_selects_highest_score(self, engine: DecisionEngine) -> None:
        """Test argmax over sync scores"""
        decision = await engine.decide(list(PRICES), lambda fruit: 1 / PRICES[fruit])

        assert decision.selected == "banana"
        assert decision.score == 2.0
        assert decision.all_options is None

    @pytest.mark.asyncio
    async def test_async_scores_and_return_all(self, engine: DecisionEngine) -> None:
        """Test async scoring with the full sorted list"""

        async def score(approach: str) -> float:
            await asyncio.sleep(0)
            return {"fast": 0.7, "accurate": 0.85, "balanced": 0.9}[approach]

        decision = await engine.decide(["fast", "accurate", "balanced"], score, return_all=True)

        assert decision.selected == "balanced"
        assert [(s.option, s.score) for s in decision.all_options] == [
            ("balanced", 0.9),
            ("accurate", 0.85),
            ("fast", 0.7),
        ]

    @pytest.mark.asyncio
    async def test_empty_options(self, engine: DecisionEngine) -> None:
        """Test empty candidate list fails"""
        with pytest.raises(DecisionError, match="empty options"):
            await engine.decide([], lambda o: 0.0)

    @pytest.mark.asyncio
    async def test_tracks_decision(
        self, engine: DecisionEngine, tracker: Tracker, memory_sink: MemorySink
    ) -> None:
        """Test decision.made carries the choice for audit"""
        await engine.decide(list(PRICES), lambda f: -PRICES[f], context="cheapest fruit")
        await tracker.flush()

        event = memory_sink.events[-1]
        assert event.type == TrackingEventType.DECISION_MADE
        assert event.data["context"] == "cheapest fruit"
        assert event.data["selected"] == "banana"
        assert event.data["option_count"] == 3
        assert event.data["all_scores"] == [-0.5, -1.5, -2.0]


class TestDecideWeighted:
    """Test weighted random selection"""

    def test_distribution_follows_weights(self, sync_engine: DecisionEngine) -> None:
        """Test heaviest option is picked most often"""
        options = [
            WeightedOption(value="A", weight=0.7),
            WeightedOption(value="B", weight=0.2),
            WeightedOption(value="C", weight=0.1),
        ]

        counts = Counter(sync_engine.decide_weighted(options) for _ in range(2000))

        assert counts["A"] > counts["B"]
        assert counts["A"] > counts["C"]

    def test_accepts_mappings(self, sync_engine: DecisionEngine) -> None:
        """Test plain {value, weight} mappings are accepted"""
        assert sync_engine.decide_weighted([{"value": "only", "weight": 3}]) == "only"

    def test_zero_weight_never_selected(self, sync_engine: DecisionEngine) -> None:
        """Test zero-weight options are skipped"""
        options = [{"value": "never", "weight": 0.0}, {"value": "always", "weight": 1.0}]

        assert {sync_engine.decide_weighted(options) for _ in range(200)} == {"always"}

    def test_empty_options(self, sync_engine: DecisionEngine) -> None:
        """Test empty candidate list fails"""
        with pytest.raises(DecisionError):
            sync_engine.decide_weighted([])

    def test_non_positive_total_weight(self, sync_engine: DecisionEngine) -> None:
        """Test all-zero weights fail"""
        with pytest.raises(DecisionError, match="Total weight must be positive"):
            sync_engine.decide_weighted([{"value": "a", "weight": 0}, {"value": "b", "weight": 0}])

    def test_tracks_outside_event_loop(
        self, sync_engine: DecisionEngine, memory_sink: MemorySink
    ) -> None:
        """Test events are delivered inline without a running loop"""
        sync_engine.decide_weighted([{"value": "a", "weight": 1}])

        assert memory_sink.events[-1].data["strategy"] == "weighted"
        assert memory_sink.events[-1].data["selected"] == "a"


class TestDecideEpsilonGreedy:
    """Test epsilon-greedy selection"""

    @pytest.mark.asyncio
    async def test_zero_epsilon_exploits(self, engine: DecisionEngine) -> None:
        """Test epsilon 0 always returns the best option"""
        for _ in range(20):
            decision = await engine.decide_epsilon_greedy(
                list(PRICES), lambda f: PRICES[f], epsilon=0.0
            )
            assert decision.selected == "orange"

    @pytest.mark.asyncio
    async def test_full_epsilon_explores(self, engine: DecisionEngine) -> None:
        """Test epsilon 1 scores only the chosen option"""
        scored: list[str] = []

        def score(fruit: str) -> float:
            scored.append(fruit)
            return PRICES[fruit]

        selections = set()
        for _ in range(60):
            scored.clear()
            decision = await engine.decide_epsilon_greedy(list(PRICES), score, epsilon=1.0)
            assert scored == [decision.selected]
            assert decision.score == PRICES[decision.selected]
            selections.add(decision.selected)

        assert selections == set(PRICES)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("epsilon", [-0.1, 1.5])
    async def test_epsilon_out_of_range(self, engine: DecisionEngine, epsilon: float) -> None:
        """Test epsilon outside [0, 1] fails"""
        with pytest.raises(DecisionError, match="Epsilon"):
            await engine.decide_epsilon_greedy(list(PRICES), lambda f: 0.0, epsilon=epsilon)

    @pytest.mark.asyncio
    async def test_empty_options(self, engine: DecisionEngine) -> None:
        """Test empty candidate list fails on both paths"""
        with pytest.raises(DecisionError):
            await engine.decide_epsilon_greedy([], lambda f: 0.0, epsilon=1.0)

    @pytest.mark.asyncio
    async def test_single_event_per_decision(
        self, engine: DecisionEngine, tracker: Tracker, memory_sink: MemorySink
    ) -> None:
        """Test exploitation emits one decision event tagged with its strategy"""
        await engine.decide_epsilon_greedy(list(PRICES), lambda f: PRICES[f], epsilon=0.0)
        await tracker.flush()

        assert len(memory_sink.events) == 1
        assert memory_sink.events[0].data["strategy"] == "epsilon-greedy-exploit"
        assert memory_sink.events[0].data["epsilon"] == 0.0


class TestDecideThompsonSampling:
    """Test Thompson sampling"""

    def test_strong_prior_dominates(self, sync_engine: DecisionEngine) -> None:
        """Test the clearly better arm wins the vast majority of draws"""
        priors = {
            "a": BetaPrior(alpha=50, beta=5),
            "b": BetaPrior(alpha=5, beta=50),
        }

        counts = Counter(
            sync_engine.decide_thompson_sampling(["a", "b"], priors) for _ in range(1000)
        )

        assert counts["a"] > 900

    def test_accepts_mapping_priors(self, sync_engine: DecisionEngine) -> None:
        """Test plain {alpha, beta} mappings and fractional shapes"""
        priors = {"x": {"alpha": 0.5, "beta": 0.5}, "y": {"alpha": 2, "beta": 2}}

        assert sync_engine.decide_thompson_sampling(["x", "y"], priors) in {"x", "y"}

    def test_only_listed_options_considered(self, sync_engine: DecisionEngine) -> None:
        """Test options outside the candidate list are ignored"""
        priors = {"a": {"alpha": 1, "beta": 100}, "b": {"alpha": 100, "beta": 1}}

        assert sync_engine.decide_thompson_sampling(["a"], priors) == "a"

    def test_missing_prior(self, sync_engine: DecisionEngine) -> None:
        """Test an option without a prior fails"""
        with pytest.raises(DecisionError, match="Missing prior"):
            sync_engine.decide_thompson_sampling(["a", "b"], {"a": {"alpha": 1, "beta": 1}})

    def test_invalid_prior(self, sync_engine: DecisionEngine) -> None:
        """Test non-positive shape parameters fail"""
        with pytest.raises(DecisionError, match="Invalid prior"):
            sync_engine.decide_thompson_sampling(["a"], {"a": {"alpha": 0, "beta": 1}})

    def test_empty_options(self, sync_engine: DecisionEngine) -> None:
        """Test empty candidate list fails"""
        with pytest.raises(DecisionError):
            sync_engine.decide_thompson_sampling([], {})

    def test_tracks_sample_and_prior(
        self, sync_engine: DecisionEngine, memory_sink: MemorySink
    ) -> None:
        """Test decision event records the winning draw"""
        selected = sync_engine.decide_thompson_sampling(
            ["a"], {"a": BetaPrior(alpha=3, beta=4)}
        )

        data = memory_sink.events[-1].data
        assert data["strategy"] == "thompson-sampling"
        assert data["selected"] == selected
        assert 0.0 <= data["sample"] <= 1.0
        assert data["prior"] == {"alpha": 3.0, "beta": 4.0}


class TestDecideUCB:
    """Test upper confidence bound selection"""

    @pytest.mark.parametrize("exploration_factor", [0.1, 1.0, 2.0])
    @pytest.mark.parametrize("total_count", [3, 101, 10_000])
    def test_exploration_bonus_favours_undersampled(
        self, sync_engine: DecisionEngine, exploration_factor: float, total_count: int
    ) -> None:
        """Test equal means resolve to the less sampled arm"""
        stats = {
            "a": ArmStatistics(mean=0.5, count=100),
            "b": ArmStatistics(mean=0.5, count=1),
        }

        selected = sync_engine.decide_ucb(
            ["a", "b"], stats, exploration_factor=exploration_factor, total_count=total_count
        )

        assert selected == "b"

    def test_exploitation_without_exploration(self, sync_engine: DecisionEngine) -> None:
        """Test zero exploration factor picks the best mean"""
        stats = {
            "a": {"mean": 0.85, "count": 100},
            "b": {"mean": 0.82, "count": 50},
            "c": {"mean": 0.78, "count": 10},
        }

        assert (
            sync_engine.decide_ucb(["a", "b", "c"], stats, exploration_factor=0.0, total_count=160)
            == "a"
        )

    def test_zero_count_treated_as_one(
        self, sync_engine: DecisionEngine, memory_sink: MemorySink
    ) -> None:
        """Test unpulled arms get the single-sample bonus"""
        stats = {"new": {"mean": 0.0, "count": 0}}

        sync_engine.decide_ucb(["new"], stats, exploration_factor=2.0, total_count=10)

        data = memory_sink.events[-1].data
        assert data["strategy"] == "ucb"
        assert data["ucb"] == pytest.approx(2.0 * math.sqrt(math.log(10)))
        assert data["count"] == 0

    def test_missing_stats(self, sync_engine: DecisionEngine) -> None:
        """Test an option without statistics fails"""
        with pytest.raises(DecisionError, match="Missing statistics"):
            sync_engine.decide_ucb(["a"], {}, exploration_factor=1.0, total_count=10)

    def test_invalid_total_count(self, sync_engine: DecisionEngine) -> None:
        """Test total count below one fails"""
        with pytest.raises(DecisionError, match="total_count"):
            sync_engine.decide_ucb(
                ["a"], {"a": {"mean": 1, "count": 1}}, exploration_factor=1.0, total_count=0
            )

    def test_empty_options(self, sync_engine: DecisionEngine) -> None:
        """Test empty candidate list fails"""
        with pytest.raises(DecisionError):
            sync_engine.decide_ucb([], {}, exploration_factor=1.0, total_count=10)
