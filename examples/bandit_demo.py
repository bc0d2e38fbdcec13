"""Demo script showing adaptive variant selection.

Simulates prompt variants with hidden success rates and compares how often
Thompson sampling and UCB1 pick each one while outcomes accumulate.
"""

import random
from collections import Counter

from experimentcore.analytics import VariantOutcome, beta_priors, variant_stats
from experimentcore.decisions import ArmStatistics, BetaPrior, DecisionEngine
from experimentcore.tracking import MemorySink, Tracker

SUCCESS_RATES = {"concise": 0.35, "detailed": 0.55, "step-by-step": 0.7}


def simulate(strategy: str, rounds: int = 500) -> Counter:
    rng = random.Random(42)
    engine = DecisionEngine(tracker=Tracker(MemorySink()), rng=rng)
    outcomes: list[VariantOutcome] = []
    picks: Counter = Counter()

    for round_number in range(1, rounds + 1):
        stats = {s.variant_id: s for s in variant_stats(outcomes)}

        if strategy == "thompson":
            priors = beta_priors(stats.values())
            for variant in SUCCESS_RATES:
                priors.setdefault(variant, BetaPrior(alpha=1.0, beta=1.0))
            choice = engine.decide_thompson_sampling(list(SUCCESS_RATES), priors)
        else:
            arms = {
                variant: ArmStatistics(
                    mean=stats[variant].success_rate if variant in stats else 0.0,
                    count=stats[variant].run_count if variant in stats else 0,
                )
                for variant in SUCCESS_RATES
            }
            choice = engine.decide_ucb(
                list(SUCCESS_RATES), arms, exploration_factor=1.0, total_count=round_number
            )

        outcomes.append(
            VariantOutcome(
                experiment_id="demo",
                variant_id=choice,
                success=rng.random() < SUCCESS_RATES[choice],
            )
        )
        picks[choice] += 1

    return picks


def main():
    for strategy in ("thompson", "ucb"):
        picks = simulate(strategy)
        print("\n" + "=" * 60)
        print(f"{strategy.upper()} SELECTION COUNTS")
        print("=" * 60)
        for variant, rate in SUCCESS_RATES.items():
            print(f"  {variant:<15} true rate={rate:.2f} picked={picks[variant]}")


if __name__ == "__main__":
    main()
