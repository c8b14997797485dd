"""Random draws used by the classifier and the report generator.

Everything non-deterministic in the analysis goes through a
``numpy.random.Generator`` handed in by the caller, so a fixed seed pins
body parts, findings and the result id.
"""
from typing import Optional, Sequence, Tuple, TypeVar

import numpy as np

T = TypeVar("T")


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    return np.random.default_rng(seed)


def weighted_choice(rng: np.random.Generator, options: Sequence[Tuple[T, float]]) -> T:
    """Pick from ``(value, probability)`` pairs with a single uniform draw.

    Probabilities are compared cumulatively in the given order; the last
    option absorbs any remainder.
    """
    if not options:
        raise ValueError("weighted_choice needs at least one option")
    r = float(rng.random())
    cumulative = 0.0
    for value, weight in options[:-1]:
        cumulative += weight
        if r < cumulative:
            return value
    return options[-1][0]


def uniform_choice(rng: np.random.Generator, options: Sequence[T]) -> T:
    if not options:
        raise ValueError("uniform_choice needs at least one option")
    return options[int(rng.integers(len(options)))]
