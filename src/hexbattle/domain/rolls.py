"""Seed bookkeeping for a running battle.

The game carries one running seed.  Luck checks advance it before sampling,
range rolls only read it, and the engine bumps it for every accepted action
and emitted result.  Nothing advances during the tactics phase.
"""

from __future__ import annotations

from hexbattle.domain.enums import Phase
from hexbattle.domain.models import Game
from hexbattle.domain.rules_config import DEFAULT_RULES, RulesConfig
from hexbattle.utils.rng import check_luck, roll_between


def increase_seed(game: Game, value: int) -> None:
    if game.phase is Phase.TACTIC:
        return
    game.seed += value


def get_lucky(game: Game, probability: float) -> bool:
    """Advance the seed and test ``probability`` against it."""

    if game.phase is Phase.TACTIC:
        return False
    game.seed += 1
    return bool(check_luck(game.seed, probability)["success"])


def level_to_probability(level: float, rules: RulesConfig = DEFAULT_RULES) -> float:
    return level * rules.magic.luck_per_level


def force_calculate(game: Game, min_val: float, max_val: float) -> int:
    """Sample a damage roll from the current seed without advancing it."""

    return int(roll_between(game.seed, min_val, max_val)["value"])
