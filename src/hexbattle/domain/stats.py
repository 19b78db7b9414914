"""Derived stack stats.

Every value here is recomputed from the unit tables and the stack's current
effects on each read; no "current speed" or similar is ever stored.  Clones
answer with the attributes of the stack they copy.
"""

from __future__ import annotations

import math

from hexbattle.domain.enums import AttackType, EffectType, SideName, Spell, UnitKind, UnitType
from hexbattle.domain.models import Game, Hero, Side, Stack, StackID
from hexbattle.domain.rules_config import DEFAULT_RULES, RulesConfig
from hexbattle.domain.spells_data import ELEMENT_SCHOOL, SPELL_SCHOOL
from hexbattle.domain.units_data import HATES, UNIT_PROFILES, UnitProfile


def profile_of(stack: Stack) -> UnitProfile:
    return UNIT_PROFILES[stack.real().type]


def unit_kind(stack: Stack) -> UnitKind:
    return profile_of(stack).kind


def is_machine(stack: Stack) -> bool:
    return unit_kind(stack) is UnitKind.MACHINE


def width_of(stack: Stack) -> int:
    return profile_of(stack).width


def can_fly(stack: Stack) -> bool:
    return profile_of(stack).can_fly


def speed_of(stack: Stack, rules: RulesConfig = DEFAULT_RULES) -> int:
    """Table speed adjusted by slow/hast, clamped to the configured bounds."""

    speed = float(profile_of(stack).speed)
    slow = stack.effect(EffectType.SLOW)
    hast = stack.effect(EffectType.HAST)
    if slow is not None:
        speed = max(rules.stats.min_speed, speed - (slow.value or 0))
    elif hast is not None:
        speed = max(rules.stats.min_speed, speed + (hast.value or 0))
    return int(min(rules.stats.max_speed, max(rules.stats.min_speed, speed)))


def is_frozen(game: Game, stack: Stack) -> bool:
    """True while a freeze effect is held by a causer that still exists."""

    freeze = stack.effect(EffectType.FREEZE)
    if freeze is None:
        return False
    return freeze.causer_id is None or game.stack(freeze.causer_id) is not None


def movement_of(game: Game, stack: Stack | None, rules: RulesConfig = DEFAULT_RULES) -> int:
    if stack is None or is_machine(stack) or is_frozen(game, stack):
        return 0
    return speed_of(stack, rules)


def health_of(stack: Stack) -> float:
    """Health of one unit; halved by aging."""

    health = float(profile_of(stack).health)
    if stack.has_effect(EffectType.AGING):
        return health / 2
    return health


def total_stack_health(stack: Stack) -> float:
    real = stack.real()
    if real.count <= 0:
        return 0.0
    return health_of(real) * (real.count - 1) + real.last_health


def defence_of(game: Game, stack: Stack, rules: RulesConfig = DEFAULT_RULES) -> int:
    base = profile_of(stack).defence
    if stack.id in game.defenced_in_current_round or stack.id in game.defenced_in_previous_round:
        return math.ceil(base * rules.stats.defend_bonus)
    return base


def can_fire(stack: Stack | None) -> bool:
    """Whether the stack is able to shoot at all (ignores adjacency)."""

    if stack is None or stack.has_effect(EffectType.FORGETFULNESS):
        return False
    real = stack.real()
    if real.arrows_left is not None and real.arrows_left <= 0:
        return False
    return profile_of(stack).can_fire


def can_fire_twice(stack: Stack) -> bool:
    if stack.has_effect(EffectType.FORGETFULNESS):
        return False
    return profile_of(stack).fires_twice


def default_attack_type(stack: Stack) -> AttackType:
    return AttackType.FIRE if can_fire(stack) else AttackType.HAND


def hates(attacker: Stack, defender: Stack) -> bool:
    return HATES.get(attacker.real().type) is defender.real().type


def effective_side(game: Game, stack: Stack) -> SideName:
    """Side the stack fights for; hypnotized stacks switch over."""

    owner = game.owner(stack).name
    if not stack.is_clone and stack.has_effect(EffectType.HYPNOTIZE):
        return owner.opponent
    return owner


def enemy_of(game: Game, stack: Stack) -> Side:
    return game.side(effective_side(game, stack).opponent)


def is_enemy(game: Game, stack: Stack, other: Stack) -> bool:
    return effective_side(game, other) is not effective_side(game, stack)


def can_take_spell(stack: Stack, spell: Spell) -> bool:
    """Elementals shrug off their own school; anti-magic blocks everything."""

    school = ELEMENT_SCHOOL.get(stack.real().type)
    if school is not None and SPELL_SCHOOL[spell] is school:
        return False
    return not stack.has_effect(EffectType.ANTI_MAGIC)


def army_has_fighters(army: list[Stack]) -> bool:
    return any(not stack.is_clone and not is_machine(stack) for stack in army)


def hero_of(game: Game, stack: Stack) -> Hero:
    return game.side(effective_side(game, stack)).hero


def hostile_ids(game: Game, stack: Stack) -> set[StackID]:
    """Ids of the stacks ``stack`` may attack; berserk stacks attack anyone."""

    if stack.has_effect(EffectType.BERSERK):
        return {other.id for other in game.all_stacks() if other.id != stack.id}
    side = effective_side(game, stack)
    return {other.id for other in game.all_stacks() if effective_side(game, other) is not side}


def make_stack(stack_id: StackID, unit_type: UnitType, count: int) -> Stack:
    """A fresh stack at full health."""

    return Stack(
        id=stack_id,
        type=unit_type,
        count=count,
        last_health=float(UNIT_PROFILES[unit_type].health),
        initial_count=count,
    )
