"""
Decision Strategies

Score-based and bandit strategies for choosing the next option to run:
argmax, weighted random, epsilon-greedy, Thompson sampling, and UCB1.
"""

from experimentcore.decisions.models import (
    ArmStatistics,
    BetaPrior,
    Decision,
    ScoredOption,
    WeightedOption,
)
from experimentcore.decisions.sampling import sample_beta, sample_gamma
from experimentcore.decisions.strategies import DecisionEngine

__all__ = [
    "DecisionEngine",
    "Decision",
    "ScoredOption",
    "WeightedOption",
    "BetaPrior",
    "ArmStatistics",
    "sample_gamma",
    "sample_beta",
]
