"""Deterministic Random Number Generator (RNG) system for battles.

Every random outcome in a battle derives from a single integer seed stored on
the game state, which ensures:
- Reproducibility: the same seed always produces the same value
- Replay: the same action sequence from the same seed yields the same battle
- Audit trail: luck checks return the roll alongside the verdict

The generator is a classic linear congruential step (glibc constants) mapped
onto ``[0, 1)``. Callers own the seed and decide when it advances.

Examples:
    >>> round(lcg_random(16), 4)
    0.2218
    >>> roll_between(16, 6, 9)
    {'value': 7, 'min': 6, 'max': 9, 'seed': 16}
    >>> check_luck(17, 0.25)["success"]
    False
"""

import math
from typing import Any

LCG_MODULUS = 2**31
LCG_MULTIPLIER = 1103515245
LCG_INCREMENT = 12345


def lcg_random(seed: int) -> float:
    """Map a seed onto ``[0, 1)`` using one LCG step.

    Args:
        seed: Integer seed

    Returns:
        Float in ``[0, 1)``

    Examples:
        >>> 0.0 <= lcg_random(42) < 1.0
        True
    """
    return ((LCG_MULTIPLIER * seed + LCG_INCREMENT) % LCG_MODULUS) / LCG_MODULUS


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with halves rounded towards +infinity.

    Python's built-in ``round`` uses banker's rounding, which would make
    damage rolls depend on parity.

    Examples:
        >>> round_half_up(2.5), round_half_up(-2.5), round_half_up(3.49)
        (3, -2, 3)
    """
    return math.floor(value + 0.5)


def roll_between(seed: int, min_val: float, max_val: float) -> dict[str, Any]:
    """Sample a value in ``[min_val, max_val]`` without advancing the seed.

    Args:
        seed: Current seed (read only)
        min_val: Lower bound
        max_val: Upper bound

    Returns:
        Dictionary containing:
            - value: The rounded sample
            - min: Lower bound
            - max: Upper bound
            - seed: The seed used

    Raises:
        ValueError: If ``min_val`` is greater than ``max_val``
    """
    if min_val > max_val:
        raise ValueError(f"min_val ({min_val}) must be <= max_val ({max_val})")

    value = round_half_up(min_val + lcg_random(seed) * (max_val - min_val))
    return {"value": value, "min": min_val, "max": max_val, "seed": seed}


def check_luck(seed: int, probability: float) -> dict[str, Any]:
    """Check if a probabilistic event succeeds for an already-advanced seed.

    Args:
        seed: Seed to evaluate (the caller advances it beforehand)
        probability: Chance of success in ``[0.0, 1.0]``

    Returns:
        Dictionary containing:
            - success: Whether the check succeeded
            - roll: The uniform sample
            - probability: The requested probability
            - seed: The seed used

    Raises:
        ValueError: If probability is negative
    """
    if probability < 0.0:
        raise ValueError(f"probability must be non-negative, got {probability}")

    roll = lcg_random(seed)
    return {
        "success": roll > 1 - probability,
        "roll": roll,
        "probability": probability,
        "seed": seed,
    }
