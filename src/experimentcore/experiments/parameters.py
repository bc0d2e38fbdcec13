"""
Parameter space exploration

Cartesian products of named parameter candidate lists, with filtering,
sampling, labelled enumeration, and cardinality counting.

Ordering follows nested iteration over the parameter insertion order: the
last parameter varies fastest. An empty parameter mapping expands to an
empty list, not to a single empty combination.
"""

from __future__ import annotations

import itertools
import math
import random
from collections.abc import Callable, Mapping, Sequence
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict

from experimentcore.exceptions import ParameterSpaceError
from experimentcore.experiments.models import Variant

logger = structlog.get_logger()

Combination = dict[str, Any]
Parameters = Mapping[str, Sequence[Any]]


class LabeledCombination(BaseModel):
    """Combination plus the index of each chosen value in its candidate list"""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    values: dict[str, Any]
    labels: dict[str, int]


def expand(params: Parameters) -> list[Combination]:
    """
    Generate every combination of parameter values

    Args:
        params: Parameter name to ordered candidate values

    Returns:
        One dict per combination, last parameter varying fastest
    """
    if not params:
        return []

    keys = list(params)
    return [dict(zip(keys, combo)) for combo in itertools.product(*(params[k] for k in keys))]


def count(params: Parameters) -> int:
    """Number of combinations, computed without enumerating them"""
    if not params:
        return 0
    return math.prod(len(values) for values in params.values())


def filter_combinations(
    params: Parameters,
    predicate: Callable[[Combination], bool],
) -> list[Combination]:
    """Expand and keep the combinations accepted by predicate"""
    return [combo for combo in expand(params) if predicate(combo)]


def sample(
    params: Parameters,
    n: int,
    *,
    unique: bool = True,
    rng: random.Random | None = None,
) -> list[Combination]:
    """
    Randomly sample combinations

    The full product is materialized first, so this does not scale to
    astronomically large spaces. When n covers the whole space the full
    expansion is returned in order.

    Args:
        params: Parameter name to candidate values
        n: Number of combinations wanted
        unique: Sample without replacement (Fisher-Yates); otherwise draw
            independently with replacement
        rng: Random source

    Returns:
        Sampled combinations
    """
    if n < 0:
        raise ParameterSpaceError(f"Sample size must be non-negative, got {n}")

    combinations = expand(params)
    if n >= len(combinations):
        return combinations

    rng = rng or random.Random()

    if not unique:
        return [combinations[rng.randrange(len(combinations))] for _ in range(n)]

    shuffled = list(combinations)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]

    return shuffled[:n]


def expand_with_labels(params: Parameters) -> list[LabeledCombination]:
    """
    Expand with the zero-based candidate index of every chosen value

    Labels are positional, so duplicate candidate values keep distinct labels.
    """
    if not params:
        return []

    keys = list(params)
    indexed = (list(enumerate(params[k])) for k in keys)
    labeled: list[LabeledCombination] = []

    for combo in itertools.product(*indexed):
        labeled.append(
            LabeledCombination(
                values={k: value for k, (_, value) in zip(keys, combo)},
                labels={k: index for k, (index, _) in zip(keys, combo)},
            )
        )

    return labeled


def variants_from_grid(params: Parameters) -> list[Variant[Combination]]:
    """
    Build experiment variants from a parameter grid

    Variant ids are ``variant-<index>`` and names list ``key=value`` pairs.
    """
    return [
        Variant(
            id=f"variant-{index}",
            name=", ".join(f"{key}={value}" for key, value in combo.items()),
            config=combo,
        )
        for index, combo in enumerate(expand(params))
    ]


class ParameterSpace:
    """
    Immutable named parameter space

    Every parameter must have at least one candidate value.
    """

    def __init__(self, params: Parameters) -> None:
        """
        Initialize parameter space

        Args:
            params: Parameter name to ordered candidate values

        Raises:
            ParameterSpaceError: If a parameter has no candidates
        """
        for name, values in params.items():
            if isinstance(values, (str, bytes)):
                raise ParameterSpaceError(
                    f"Candidates for parameter '{name}' must be a sequence of values, not a string"
                )
            if len(values) == 0:
                raise ParameterSpaceError(f"Parameter '{name}' has no candidate values")

        self._params: dict[str, tuple[Any, ...]] = {k: tuple(v) for k, v in params.items()}

        logger.debug(
            "parameter_space_created",
            parameters=list(self._params),
            cardinality=self.count(),
        )

    @property
    def parameters(self) -> dict[str, tuple[Any, ...]]:
        """Copy of the parameter mapping"""
        return dict(self._params)

    def __len__(self) -> int:
        return self.count()

    def __repr__(self) -> str:
        return f"ParameterSpace({self._params!r})"

    def count(self) -> int:
        return count(self._params)

    def expand(self) -> list[Combination]:
        return expand(self._params)

    def filter(self, predicate: Callable[[Combination], bool]) -> list[Combination]:
        return filter_combinations(self._params, predicate)

    def sample(
        self,
        n: int,
        *,
        unique: bool = True,
        rng: random.Random | None = None,
    ) -> list[Combination]:
        return sample(self._params, n, unique=unique, rng=rng)

    def expand_with_labels(self) -> list[LabeledCombination]:
        return expand_with_labels(self._params)

    def variants(self) -> list[Variant[Combination]]:
        """Variants for every combination, see variants_from_grid"""
        return variants_from_grid(self._params)
