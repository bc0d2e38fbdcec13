"""Demo script showing a parameter sweep experiment.

This script expands a parameter grid into variants, runs them in bounded
parallel chunks, and prints the per-variant results and the best variant.
"""

import asyncio
import random

from experimentcore.experiments import (
    ExperimentConfig,
    ParameterSpace,
    RunContext,
    RunOptions,
    run_experiment,
)
from experimentcore.tracking import MemorySink, Tracker


async def fake_completion(params: dict, ctx: RunContext) -> dict:
    """Pretend to call a model with the given sampling parameters."""
    await asyncio.sleep(random.uniform(0.01, 0.05))
    quality = 0.9 - abs(params["temperature"] - 0.7) - params["max_tokens"] / 10_000
    return {"quality": round(quality, 3), "run_id": ctx.run_id}


async def main():
    space = ParameterSpace(
        {
            "temperature": [0.3, 0.7, 1.0],
            "max_tokens": [256, 1024],
        }
    )
    print(f"Parameter space: {space!r} ({space.count()} combinations)")

    config = ExperimentConfig(
        id="sampling-sweep",
        name="Sampling parameter sweep",
        variants=space.variants(),
        execute=fake_completion,
        metric=lambda result: result["quality"],
        metadata={"owner": "demo"},
    )

    sink = MemorySink()
    async with Tracker(sink) as tracker:
        summary = await run_experiment(
            config,
            RunOptions(parallel=True, max_concurrency=2),
            tracker=tracker,
        )
        await tracker.flush()

    print("\n" + "=" * 60)
    print(f"{summary.experiment_name}: {summary.success_count} ok, {summary.failure_count} failed")
    print("=" * 60)
    for result in summary.results:
        print(f"  {result.variant_name:<30} metric={result.metric_value} ({result.duration_ms:.1f} ms)")

    if summary.best_variant:
        print(f"\nBest: {summary.best_variant.variant_name} ({summary.best_variant.metric_value})")
    print(f"Tracked events: {len(sink.events)}")


if __name__ == "__main__":
    asyncio.run(main())
