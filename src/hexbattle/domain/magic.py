"""Spell resolution: buffs and debuffs, magic damage with interception, summons,
clones and spell terrain.

Damage spells roll the receiving side's ``mirror`` and ``resistance`` skills
before anything is applied.  A mirror bounces the spell elsewhere and the bounced
results are nested in a ``Reflect`` result; a resistance turns the hit into a
visual-only marker.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace

from hexbattle.domain.actions import (
    Cloned,
    Reflect,
    Resistance,
    ResultLog,
    SpellCast,
    SpellEffect,
    Summoned,
    TerrainPlaced,
)
from hexbattle.domain.combat import apply_damage
from hexbattle.domain.enums import EffectType, MagicSchool, SideName, SkillType, Spell, UnitKind, UnitType
from hexbattle.domain.grid import (
    closest_stack,
    fits,
    hex_at,
    neighbors_in_bounds,
    place_stack,
    place_terrain,
    position_of,
    positions_in_radius,
    stack_at,
    stacks_on_grid,
)
from hexbattle.domain.models import Effect, Game, Side, Skill, Stack, StackID
from hexbattle.domain.rolls import get_lucky, level_to_probability
from hexbattle.domain.rules_config import DEFAULT_RULES, RulesConfig
from hexbattle.domain.spells_data import (
    EXCLUSIVE_EFFECTS,
    MASS_ENEMY_SPELLS,
    MASS_FRIEND_SPELLS,
    SPELL_DAMAGE,
    SPELL_SCHOOL,
    SUMMONS,
    VALUED_EFFECTS,
)
from hexbattle.domain.stats import can_take_spell, effective_side, make_stack, unit_kind, width_of
from hexbattle.utils.hex_math import Position

logger = logging.getLogger(__name__)

SCHOOL_SKILLS: dict[MagicSchool, SkillType] = {
    MagicSchool.EARTH: SkillType.EARTH,
    MagicSchool.AIR: SkillType.AIR,
    MagicSchool.FIRE: SkillType.FIRE,
    MagicSchool.WATER: SkillType.WATER,
}


# --- Power ----------------------------------------------------------------------


def spell_duration(power: int) -> int:
    return power + 1


def spell_level(caster: Side, spell: Spell) -> int:
    """Caster's skill level for the spell's school; ``arrow`` uses the best school."""

    if spell is Spell.ARROW:
        return max((caster.skill_level(skill) for skill in SCHOOL_SKILLS.values()), default=0)
    return caster.skill_level(SCHOOL_SKILLS[SPELL_SCHOOL[spell]])


def spell_attack_of(caster: Side, spell: Spell) -> int:
    base = SPELL_DAMAGE[spell] * (1 + spell_level(caster, spell) / 3)
    return math.ceil(base + base * caster.hero.spell / 10)


def effect_magnitude(caster: Side, spell: Spell) -> int:
    power = caster.hero.spell
    school_skill = SCHOOL_SKILLS[SPELL_SCHOOL[spell]]
    if not caster.has_skill(school_skill):
        return power
    return math.ceil(power + power * caster.skill_level(school_skill) / 3)


# --- Effects --------------------------------------------------------------------


def apply_magic_effect(
    game: Game,
    log: ResultLog,
    caster: Side,
    spell: Spell,
    targets: list[Stack],
    rules: RulesConfig = DEFAULT_RULES,
) -> None:
    """Attach the effect of ``spell`` to every target (clones forward to their copy)."""

    if spell is Spell.CLONE:
        for target in targets:
            clone_stack(game, log, caster, target)
        return

    duration = spell_duration(caster.hero.spell)
    effect_type = EffectType(spell.value)
    for target in targets:
        real = target.real()
        if spell is Spell.BERSERK:
            real.effects.append(Effect(type=effect_type))
        elif spell in (Spell.FORGETFULNESS, Spell.HYPNOTIZE):
            real.effects.append(Effect(type=effect_type, duration=duration))
        elif spell is Spell.ANTI_MAGIC:
            real.effects.clear()
            real.effects.append(
                Effect(type=effect_type, duration=duration, level=spell_level(caster, spell))
            )
        elif spell in VALUED_EFFECTS:
            opposite = EXCLUSIVE_EFFECTS.get(effect_type)
            if opposite is not None:
                target.remove_effect(opposite)
            real.effects.append(
                Effect(
                    type=effect_type,
                    duration=duration,
                    value=rules.magic.effect_flat_bonus + effect_magnitude(caster, spell),
                )
            )
        else:
            raise ValueError(f"{spell} is not an effect spell")

    log.emit(SpellEffect(effect=effect_type, target_ids=[target.id for target in targets]))


def _value_copy(stack: Stack) -> Stack:
    return replace(
        stack,
        effects=[replace(effect) for effect in stack.effects],
        copied=_value_copy(stack.copied) if stack.copied is not None else None,
    )


def clone_stack(game: Game, log: ResultLog, caster: Side, target: Stack) -> Stack:
    """Add a shadow copy of ``target`` to the caster's army.

    The clone takes the first enterable cell at or right of the target in the
    same row; it stays off the grid when the row is full.
    """
    copy = _value_copy(target.real())
    clone = Stack(
        id=game.new_stack_id(),
        type=UnitType.CLONE,
        count=copy.count,
        last_health=copy.last_health,
        initial_count=copy.initial_count,
        copied=copy,
    )
    caster.army.append(clone)

    placed: Position | None = None
    origin = position_of(game.grid, target.id)
    if origin is not None:
        for column in range(origin.column, game.grid.columns):
            candidate = Position(origin.row, column)
            if fits(game.grid, candidate, width_of(clone)):
                placed = candidate
                break
    if placed is not None:
        place_stack(game.grid, clone, placed)
    log.emit(Cloned(stack_id=clone.id, target_id=target.id, position=placed))
    return clone


def summon(game: Game, log: ResultLog, caster: Side, spell: Spell) -> Stack | None:
    """Bring elementals in on the caster's edge column.

    Rows are tried top to bottom; when the edge column is full the next column
    inwards is tried.
    """
    unit_type, count = SUMMONS[spell]
    stack = make_stack(game.new_stack_id(), unit_type, count)
    columns = range(game.grid.columns)
    if caster.name is SideName.FOE:
        columns = range(game.grid.columns - 1, -1, -1)
    for column in columns:
        for row in range(game.grid.rows):
            candidate = Position(row, column)
            if stack_at(game, candidate) is None and fits(game.grid, candidate, width_of(stack)):
                caster.army.append(stack)
                place_stack(game.grid, stack, candidate)
                log.emit(
                    Summoned(stack_id=stack.id, unit_type=unit_type, count=count, position=candidate)
                )
                return stack
    logger.debug("no room to summon %s for %s", unit_type, caster.name)
    return None


def place_spell_terrain(game: Game, log: ResultLog, caster: Side, spell: Spell, position: Position) -> None:
    place_terrain(
        game.grid,
        position,
        fire_wall=spell is Spell.FIRE_WALL,
        caster=caster.name,
        rounds=spell_duration(caster.hero.spell),
    )
    log.emit(TerrainPlaced(spell=spell, position=position, caster=caster.name))


# --- Magic damage ---------------------------------------------------------------


def magic_apply(game: Game, skills: list[Skill], rules: RulesConfig = DEFAULT_RULES) -> SkillType | None:
    """Roll interception skills in order; the first success wins, None means plain damage."""

    for skill in skills:
        if skill.type not in (SkillType.MIRROR, SkillType.RESISTANCE):
            continue
        if get_lucky(game, level_to_probability(skill.level, rules)):
            return skill.type
    return None


def _last_on_grid(game: Game, side: Side, spell: Spell) -> Stack | None:
    for stack in reversed(side.army):
        if position_of(game.grid, stack.id) is not None and can_take_spell(stack, spell):
            return stack
    return None


def magic_attack(
    game: Game,
    log: ResultLog,
    *,
    attacker: SideName,
    receiver: SideName,
    target: Stack,
    spell: Spell,
    damage: int | None = None,
    rules: RulesConfig = DEFAULT_RULES,
    depth: int = 0,
) -> None:
    """Hit ``target`` with a damage spell cast by ``attacker``.

    Lightning chains on to the closest stacks; every other spell hits once and
    a mirror sends it back at the caster's army with the sides swapped.
    """
    if damage is None:
        damage = spell_attack_of(game.side(attacker), spell)
    if spell is Spell.LIGHTNING:
        _lightning(game, log, target, damage, rules)
        return

    interception = magic_apply(game, game.side(receiver).skills, rules)
    if interception is None:
        log.emit(apply_damage(game, damage, target))
        return
    if interception is SkillType.MIRROR and depth < rules.magic.max_reflections:
        bounced = _last_on_grid(game, game.side(attacker), spell)
        if bounced is not None:
            nested = log.child()
            magic_attack(
                game,
                nested,
                attacker=receiver,
                receiver=attacker,
                target=bounced,
                spell=spell,
                damage=damage,
                rules=rules,
                depth=depth + 1,
            )
            log.emit(Reflect(source_id=target.id, effects=nested.results))
            return
    log.emit(Resistance(stack_id=target.id))


def _lightning_strike(
    game: Game,
    log: ResultLog,
    target: Stack,
    damage: int,
    excludes: list[StackID],
    rules: RulesConfig,
    depth: int = 0,
) -> None:
    skills = game.side(effective_side(game, target)).skills
    interception = magic_apply(game, skills, rules)
    if interception is None:
        log.emit(apply_damage(game, damage, target))
        return
    if interception is SkillType.MIRROR and depth < rules.magic.max_reflections:
        origin = position_of(game.grid, target.id)
        bounced = closest_stack(game, origin, excludes=excludes) if origin is not None else None
        if bounced is not None:
            excludes.append(bounced.id)
            nested = log.child()
            _lightning_strike(game, nested, bounced, damage, excludes, rules, depth + 1)
            log.emit(Reflect(source_id=target.id, effects=nested.results))
            return
    log.emit(Resistance(stack_id=target.id))


def _lightning(game: Game, log: ResultLog, target: Stack, damage: int, rules: RulesConfig) -> None:
    # immune stacks never take a hop or a bounce
    excludes = [
        stack.id for _, stack in stacks_on_grid(game) if not can_take_spell(stack, Spell.LIGHTNING)
    ]
    current: Stack | None = target
    for _ in range(rules.magic.lightning_targets):
        if current is None:
            break
        excludes.append(current.id)
        origin = position_of(game.grid, current.id)
        _lightning_strike(game, log, current, damage, excludes, rules)
        if origin is None:
            break
        current = closest_stack(game, origin, excludes=excludes)
        damage = math.ceil(damage / 2)


def _attack_all(
    game: Game,
    log: ResultLog,
    caster: Side,
    spell: Spell,
    targets: list[Stack],
    rules: RulesConfig,
) -> None:
    hit: set[StackID] = set()
    for target in targets:
        if target.id in hit or game.stack(target.id) is None:
            continue
        hit.add(target.id)
        if not can_take_spell(target, spell):
            continue
        magic_attack(
            game,
            log,
            attacker=caster.name,
            receiver=effective_side(game, target),
            target=target,
            spell=spell,
            rules=rules,
        )


def _stacks_at(game: Game, positions: list[Position]) -> list[Stack]:
    found: list[Stack] = []
    for position in positions:
        stack = stack_at(game, position)
        if stack is not None:
            found.append(stack)
    return found


# --- Casting --------------------------------------------------------------------


def needs_target(caster: Side, spell: Spell, rules: RulesConfig = DEFAULT_RULES) -> bool:
    """Whether casting goes through the target-picking phase."""

    if spell in SUMMONS or spell is Spell.DEATH_RIPPLE:
        return False
    if spell_level(caster, spell) != rules.magic.expert_level:
        return True
    return spell not in MASS_ENEMY_SPELLS and spell not in MASS_FRIEND_SPELLS


def cast_immediately(
    game: Game,
    log: ResultLog,
    caster: Side,
    spell: Spell,
    rules: RulesConfig = DEFAULT_RULES,
) -> bool:
    """Resolve a spell that needs no target.

    Returns:
        False when the spell needs a target hex and nothing was done
    """
    if needs_target(caster, spell, rules):
        return False
    if spell in SUMMONS:
        log.emit(SpellCast(side=caster.name, spell=spell))
        summon(game, log, caster, spell)
        return True

    if spell is Spell.DEATH_RIPPLE:
        log.emit(SpellCast(side=caster.name, spell=spell))
        targets = [stack for stack in game.all_stacks() if unit_kind(stack) is not UnitKind.UNDEAD]
        _attack_all(game, log, caster, spell, targets, rules)
        return True

    wanted = caster.name.opponent if spell in MASS_ENEMY_SPELLS else caster.name

    targets = [
        stack
        for stack in game.all_stacks()
        if effective_side(game, stack) is wanted and can_take_spell(stack, spell)
    ]
    log.emit(SpellCast(side=caster.name, spell=spell))
    apply_magic_effect(game, log, caster, spell, targets, rules)
    return True


def cast_at(
    game: Game,
    log: ResultLog,
    caster: Side,
    spell: Spell,
    position: Position,
    rules: RulesConfig = DEFAULT_RULES,
) -> None:
    """Resolve a targeted spell on an already validated position."""

    log.emit(SpellCast(side=caster.name, spell=spell, position=position))
    if spell is Spell.METEOR_SHOWER:
        area = positions_in_radius(game.grid, position, rules.magic.meteor_radius)
        _attack_all(game, log, caster, spell, _stacks_at(game, area), rules)
        return
    if spell is Spell.FROST_RING:
        ring = neighbors_in_bounds(game.grid, position)
        _attack_all(game, log, caster, spell, _stacks_at(game, ring), rules)
        return
    if spell in (Spell.FIRE_WALL, Spell.FORCE_FIELD):
        place_spell_terrain(game, log, caster, spell, position)
        return

    target = stack_at(game, position)
    if target is None:
        return
    if spell in (Spell.LIGHTNING, Spell.ARROW):
        magic_attack(
            game,
            log,
            attacker=caster.name,
            receiver=effective_side(game, target),
            target=target,
            spell=spell,
            rules=rules,
        )
        return
    apply_magic_effect(game, log, caster, spell, [target], rules)


def fire_wall_hit(game: Game, log: ResultLog, stack: Stack, position: Position, rules: RulesConfig = DEFAULT_RULES) -> None:
    """Burn a stack on a fire wall with the power of the wall's caster."""

    cell = hex_at(game.grid, position)
    if not cell.fire_wall or cell.caster is None or not can_take_spell(stack, Spell.FIRE_WALL):
        return
    magic_attack(
        game,
        log,
        attacker=cell.caster,
        receiver=effective_side(game, stack),
        target=stack,
        spell=Spell.FIRE_WALL,
        rules=rules,
    )