"""Melee and ranged damage resolution.

Every resolver records its results on a :class:`ResultLog`; the log removes
dead stacks from the board as soon as their death is recorded, so later steps
(retaliation, breath, second shots) only ever see living stacks.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from hexbattle.domain.actions import (
    CloneAttacked,
    Fired,
    Flame,
    Healed,
    ReceiveDamage,
    ReceiverDead,
    ResultLog,
    Stopped,
)
from hexbattle.domain.enums import AttackType, EffectType, UnitKind, UnitType
from hexbattle.domain.errors import InvariantViolation
from hexbattle.domain.grid import position_of, stack_at
from hexbattle.domain.models import Effect, Game, Stack
from hexbattle.domain.rolls import force_calculate, get_lucky, level_to_probability
from hexbattle.domain.rules_config import DEFAULT_RULES, RulesConfig
from hexbattle.domain.stats import (
    defence_of,
    health_of,
    hates,
    hero_of,
    profile_of,
    total_stack_health,
    unit_kind,
)
from hexbattle.domain.units_data import (
    BINDING_ATTACKERS,
    BREATH_ATTACKERS,
    DRAINING_ATTACKERS,
    NO_DAMAGE,
    NO_RETALIATION,
)
from hexbattle.utils.hex_math import project_through
from hexbattle.utils.rng import round_half_up

logger = logging.getLogger(__name__)


def from_range(value: float, low: float, high: float) -> float:
    """Clamp ``value`` into ``[low, high]``; an empty range is a modelling bug."""

    if low >= high:
        raise InvariantViolation(f"degenerate range [{low}, {high}]")
    return min(high, max(low, value))


def attack_of(
    game: Game,
    attacker: Stack,
    defender: Stack,
    attack_type: AttackType,
    rules: RulesConfig = DEFAULT_RULES,
) -> float:
    """Per-unit damage of ``attacker`` against ``defender`` before the differential."""

    profile = profile_of(attacker)
    bounds = profile.hand if attack_type is AttackType.HAND else profile.fire
    if bounds == NO_DAMAGE:
        return 0.0

    combat = rules.combat
    low, high = bounds.min, bounds.max
    has_hate = hates(attacker, defender)

    def hate_attack(forced_low: float, forced_high: float) -> float:
        if has_hate:
            return round_half_up(forced_high * combat.hate_multiplier)
        return forced_low

    damage: float = force_calculate(game, low, high)
    lucky = False
    accuracy = 1.0
    for effect in attacker.real().effects:
        if attack_type is AttackType.FIRE and effect.type is EffectType.ACCURACY:
            accuracy = effect.value if effect.value is not None else 1.0
            continue
        if effect.type is EffectType.BLESS:
            damage = hate_attack(high, high)
        elif effect.type is EffectType.RAGE:
            damage = hate_attack(high * combat.rage_multiplier, high * combat.rage_multiplier)
        elif effect.type is EffectType.WEAKNESS:
            damage = hate_attack(low, low)
        elif effect.type is EffectType.LUCKY:
            lucky = get_lucky(game, level_to_probability(effect.level or 0, rules))

    if attack_type is AttackType.FIRE:
        for effect in defender.real().effects:
            if effect.type is EffectType.AIR_SHIELD:
                reduction = combat.air_shield_minor if effect.value == 1 else combat.air_shield_major
                damage *= 1 - reduction

    if lucky or (
        unit_kind(attacker) is not UnitKind.UNDEAD
        and get_lucky(game, level_to_probability(hero_of(game, attacker).lucky, rules))
    ):
        damage *= combat.luck_multiplier
    if has_hate:
        damage *= combat.hate_multiplier
    return damage * accuracy


def apply_damage(game: Game, damage: float, receiver: Stack) -> Any:
    """Take ``damage`` off a stack and describe what happened.

    The front unit absorbs first.  Past that, the remaining total health is
    redistributed over whole units with the front unit holding the remainder.
    Clones are destroyed by any hit.
    """
    position = position_of(game.grid, receiver.id)
    if receiver.is_clone:
        return CloneAttacked(stack_id=receiver.id, position=position)
    if receiver.last_health > damage:
        receiver.last_health -= damage
        return ReceiveDamage(receiver_id=receiver.id, damage=damage)

    unit_health = health_of(receiver)
    total_health = total_stack_health(receiver)
    remaining = total_health - damage
    if remaining <= 0:
        receiver.count = 0
        receiver.last_health = 0
        return ReceiverDead(receiver_id=receiver.id, damage=total_health, position=position)

    receiver.count = math.ceil(remaining / unit_health)
    receiver.last_health = remaining - (receiver.count - 1) * unit_health
    return ReceiveDamage(receiver_id=receiver.id, damage=damage)


def heal(stack: Stack, value: float) -> float:
    """Restore health up to ``initial_count`` full units; return the amount healed."""

    if stack.is_clone:
        return 0.0
    value = round_half_up(value)
    total_health = total_stack_health(stack)
    unit_health = health_of(stack)
    max_health = unit_health * stack.initial_count
    if total_health >= max_health:
        return 0.0
    restored = min(max_health, total_health + value)
    stack.count = math.ceil(restored / unit_health)
    stack.last_health = restored - (stack.count - 1) * unit_health
    return restored - total_health


def _alive(game: Game, stack: Stack) -> bool:
    return game.stack(stack.id) is not None and stack.real().count > 0


def single_attack(
    game: Game,
    log: ResultLog,
    attacker: Stack,
    defender: Stack,
    attack_type: AttackType,
    rules: RulesConfig = DEFAULT_RULES,
) -> Any | None:
    """Resolve one strike and return its damage result (None if nothing to hit)."""

    if defender.real().count <= 0:
        return None
    combat = rules.combat
    differential = (
        from_range(
            hero_of(game, defender).defence
            + defence_of(game, defender, rules)
            - hero_of(game, attacker).attack,
            -combat.differential_limit,
            combat.differential_limit,
        )
        / combat.differential_divisor
    )
    base = attack_of(game, attacker, defender, attack_type, rules) * attacker.real().count
    damage = round_half_up(base + base * differential)
    result = log.emit(apply_damage(game, damage, defender))

    if (
        isinstance(result, ReceiveDamage)
        and attacker.type in BINDING_ATTACKERS
        and not defender.has_effect(EffectType.FREEZE)
    ):
        defender.add_effect(Effect(type=EffectType.FREEZE, causer_id=attacker.id))
        log.emit(Stopped(receiver_id=defender.id, causer_id=attacker.id))
    return result


def direct_attack(
    game: Game,
    log: ResultLog,
    attacker: Stack,
    defender: Stack,
    attack_type: AttackType,
    rules: RulesConfig = DEFAULT_RULES,
) -> Any | None:
    """A strike that, for breathing units, also scorches the stack behind the target."""

    if attacker.type not in BREATH_ATTACKERS:
        return single_attack(game, log, attacker, defender, attack_type, rules)

    source = position_of(game.grid, attacker.id)
    target = position_of(game.grid, defender.id)
    line_end = None
    if source is not None and target is not None:
        line_end = project_through(
            source,
            target,
            widths=rules.combat.breath_reach,
            rows=game.grid.rows,
            columns=game.grid.columns,
        )
    if line_end is None or source is None:
        return single_attack(game, log, attacker, defender, attack_type, rules)

    behind = stack_at(game, line_end)
    log.emit(Flame(source=source, target=line_end))
    result = single_attack(game, log, attacker, defender, attack_type, rules)
    if behind is not None and behind.id not in (attacker.id, defender.id) and _alive(game, behind):
        single_attack(game, log, attacker, behind, attack_type, rules)
    return result


def retaliations_allowed(stack: Stack, rules: RulesConfig = DEFAULT_RULES) -> int:
    if stack.real().type is UnitType.GRIFFIN:
        return rules.combat.griffin_retaliations
    return rules.combat.default_retaliations


def can_hit_back(game: Game, stack: Stack, rules: RulesConfig = DEFAULT_RULES) -> bool:
    if stack.real().type in NO_RETALIATION:
        return False
    return game.defended_attack.count(stack.id) < retaliations_allowed(stack, rules)


def close_attack(
    game: Game,
    log: ResultLog,
    attacker: Stack,
    defender: Stack,
    rules: RulesConfig = DEFAULT_RULES,
) -> None:
    """Melee attack with life drain and the defender's retaliation."""

    first = direct_attack(game, log, attacker, defender, AttackType.HAND, rules)

    if (
        attacker.type in DRAINING_ATTACKERS
        and unit_kind(defender) is UnitKind.ALIVE
        and isinstance(first, (ReceiveDamage, ReceiverDead))
    ):
        healed = heal(attacker, first.damage * rules.combat.vampire_drain)
        log.emit(Healed(stack_id=attacker.id, value=healed))

    if _alive(game, attacker) and _alive(game, defender) and can_hit_back(game, defender, rules):
        game.defended_attack.append(defender.id)
        logger.debug("stack %s retaliates against %s", int(defender.id), int(attacker.id))
        direct_attack(game, log, defender, attacker, AttackType.HAND, rules)


def shoot(
    game: Game,
    log: ResultLog,
    attacker: Stack,
    target: Stack,
    rules: RulesConfig = DEFAULT_RULES,
) -> Any | None:
    """One ranged shot; spends an arrow when the shooter counts them."""

    log.emit(
        Fired(
            attacker_id=attacker.id,
            target_id=target.id,
            target=position_of(game.grid, target.id),
        )
    )
    real = attacker.real()
    if real.arrows_left is not None:
        real.arrows_left -= 1
    return single_attack(game, log, attacker, target, AttackType.FIRE, rules)
