"""Utility functions for the battle engine."""

from hexbattle.utils.rng import (
    check_luck,
    lcg_random,
    roll_between,
    round_half_up,
)

__all__ = [
    "check_luck",
    "lcg_random",
    "roll_between",
    "round_half_up",
]
