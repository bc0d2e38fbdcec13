"""
Random variate generation for Thompson sampling.

Beta draws are built from two Gamma draws; Gamma uses the Marsaglia-Tsang
squeeze method.
"""

from __future__ import annotations

import math
import random

_default_rng = random.Random()


def sample_gamma(shape: float, scale: float = 1.0, rng: random.Random | None = None) -> float:
    """
    Draw from Gamma(shape, scale) using Marsaglia and Tsang's method.

    Shapes below 1 are boosted with Gamma(a) = Gamma(a + 1) * U^(1/a).
    The rejection loop runs until a candidate is accepted.

    Args:
        shape: Shape parameter, must be positive
        scale: Scale parameter
        rng: Random source (module-level generator by default)

    Returns:
        Gamma variate
    """
    if shape <= 0:
        raise ValueError(f"Gamma shape must be positive, got {shape}")

    rng = rng or _default_rng

    if shape < 1:
        u = rng.random()
        return sample_gamma(shape + 1, scale, rng) * u ** (1 / shape)

    d = shape - 1 / 3
    c = 1 / math.sqrt(9 * d)

    while True:
        x = rng.gauss(0.0, 1.0)
        v = 1 + c * x
        while v <= 0:
            x = rng.gauss(0.0, 1.0)
            v = 1 + c * x

        v = v * v * v
        u = rng.random()

        # Squeeze test first, full log test only when it fails
        if u < 1 - 0.0331 * x**4:
            return d * v * scale
        if u > 0 and math.log(u) < 0.5 * x * x + d * (1 - v + math.log(v)):
            return d * v * scale


def sample_beta(alpha: float, beta: float, rng: random.Random | None = None) -> float:
    """Draw from Beta(alpha, beta) as X / (X + Y) with X, Y Gamma distributed"""
    x = sample_gamma(alpha, 1.0, rng)
    y = sample_gamma(beta, 1.0, rng)
    total = x + y
    if total == 0:
        # Both draws underflowed; only possible for tiny shapes
        return alpha / (alpha + beta)
    return x / total
