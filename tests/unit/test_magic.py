"""Tests for spell resolution."""

from __future__ import annotations

from builders import game, side, stack
from hexbattle.domain.actions import (
    Cloned,
    ReceiveDamage,
    Reflect,
    Resistance,
    ResultLog,
    SpellCast,
    SpellEffect,
    Summoned,
    TerrainPlaced,
)
from hexbattle.domain.enums import EffectType, SideName, SkillType, Spell, UnitType
from hexbattle.domain.grid import hex_at, position_of
from hexbattle.domain.magic import (
    apply_magic_effect,
    cast_at,
    cast_immediately,
    clone_stack,
    needs_target,
    spell_attack_of,
    spell_duration,
    summon,
)
from hexbattle.domain.models import Effect, StackID
from hexbattle.utils.hex_math import Position


def _damage(results) -> list[tuple[int, float]]:
    return [(int(r.receiver_id), r.damage) for r in results if isinstance(r, ReceiveDamage)]


def test_spell_power_scales_with_school_and_hero():
    caster = side(SideName.ALLY, spell=4, skills={SkillType.AIR: 3})
    assert spell_attack_of(caster, Spell.LIGHTNING) == 140
    assert spell_attack_of(side(SideName.ALLY), Spell.METEOR_SHOWER) == 60
    assert spell_duration(4) == 5


def test_arrow_uses_the_best_school():
    caster = side(SideName.ALLY, skills={SkillType.FIRE: 1, SkillType.WATER: 3})
    assert spell_attack_of(caster, Spell.ARROW) == 60


def test_targeting_step_depends_on_expertise():
    expert = side(SideName.ALLY, skills={SkillType.EARTH: 3, SkillType.AIR: 3})
    novice = side(SideName.ALLY, skills={SkillType.EARTH: 2})

    assert not needs_target(expert, Spell.SLOW)
    assert needs_target(novice, Spell.SLOW)
    assert needs_target(expert, Spell.LIGHTNING)
    assert not needs_target(novice, Spell.SUMMON_EARTH_ELEMENT)
    assert not needs_target(novice, Spell.DEATH_RIPPLE)


def test_lightning_chains_to_the_closest_stacks_of_either_side():
    board = game(
        side(
            SideName.ALLY,
            stack(1, UnitType.ANGEL, 5),
            spell=4,
            skills={SkillType.AIR: 3},
        ),
        side(
            SideName.FOE,
            stack(2, UnitType.ANGEL, 5),
            stack(3, UnitType.ANGEL, 5),
            stack(4, UnitType.ANGEL, 5),
        ),
        {1: (0, 0), 2: (5, 10), 3: (5, 11), 4: (5, 12)},
    )
    log = ResultLog(board)

    cast_at(board, log, board.ally, Spell.LIGHTNING, Position(5, 10))

    assert isinstance(log.results[0], SpellCast)
    assert _damage(log.results) == [(2, 140), (3, 70), (4, 35), (1, 18)]


def test_lightning_never_hops_onto_immune_stacks():
    board = game(
        side(
            SideName.ALLY,
            stack(1, UnitType.ANGEL, 5),
            spell=4,
            skills={SkillType.AIR: 3},
        ),
        side(
            SideName.FOE,
            stack(2, UnitType.ANGEL, 5),
            stack(3, UnitType.AIR_ELEMENT, 5),
            stack(4, UnitType.ANGEL, 5),
        ),
        {1: (0, 0), 2: (5, 10), 3: (5, 11), 4: (5, 12)},
    )
    board.stack(4).add_effect(Effect(EffectType.ANTI_MAGIC, duration=3))
    untouched = {3: board.stack(3).last_health, 4: board.stack(4).last_health}
    log = ResultLog(board)

    cast_at(board, log, board.ally, Spell.LIGHTNING, Position(5, 10))

    assert _damage(log.results) == [(2, 140), (1, 70)]
    assert {3: board.stack(3).last_health, 4: board.stack(4).last_health} == untouched


def test_mirror_skips_immune_stacks_of_the_caster():
    board = game(
        side(SideName.ALLY, stack(1, UnitType.ANGEL), stack(3, UnitType.EARTH_ELEMENT)),
        side(SideName.FOE, stack(2, UnitType.ANGEL), skills={SkillType.MIRROR: 4}),
        {1: (0, 0), 3: (2, 0), 2: (0, 14)},
    )
    log = ResultLog(board)

    cast_at(board, log, board.ally, Spell.ARROW, Position(0, 14))

    reflect = log.results[1]
    assert isinstance(reflect, Reflect)
    assert reflect.effects == [ReceiveDamage(receiver_id=StackID(1), damage=30)]


def test_expert_slow_hits_the_whole_enemy_army():
    board = game(
        side(SideName.ALLY, stack(1, UnitType.ANGEL), spell=4, skills={SkillType.EARTH: 3}),
        side(SideName.FOE, stack(2, UnitType.DENDROID), stack(3, UnitType.AIR_ELEMENT)),
        {1: (0, 0), 2: (0, 14), 3: (2, 14)},
    )
    log = ResultLog(board)

    assert cast_immediately(board, log, board.ally, Spell.SLOW)

    slow = board.stack(2).effect(EffectType.SLOW)
    assert slow is not None
    assert slow.duration == 5
    assert slow.value == 3 + 8
    assert board.stack(3).has_effect(EffectType.SLOW)
    assert not board.stack(1).has_effect(EffectType.SLOW)
    assert log.results[-1] == SpellEffect(
        effect=EffectType.SLOW, target_ids=[StackID(2), StackID(3)]
    )


def test_slow_and_hast_replace_each_other():
    board = game(
        side(SideName.ALLY, stack(1, UnitType.ANGEL)),
        side(SideName.FOE, stack(2, UnitType.DENDROID)),
        {1: (0, 0), 2: (0, 14)},
    )
    angel = board.stack(1)
    angel.add_effect(Effect(EffectType.SLOW, duration=3, value=5))

    apply_magic_effect(board, ResultLog(board), board.ally, Spell.HAST, [angel])

    assert angel.has_effect(EffectType.HAST)
    assert not angel.has_effect(EffectType.SLOW)


def test_anti_magic_strips_existing_effects():
    board = game(
        side(SideName.ALLY, stack(1, UnitType.ANGEL), skills={SkillType.EARTH: 2}),
        side(SideName.FOE, stack(2, UnitType.DENDROID)),
        {1: (0, 0), 2: (0, 14)},
    )
    angel = board.stack(1)
    angel.add_effect(Effect(EffectType.BLESS, duration=3, value=5))

    apply_magic_effect(board, ResultLog(board), board.ally, Spell.ANTI_MAGIC, [angel])

    assert [effect.type for effect in angel.effects] == [EffectType.ANTI_MAGIC]
    assert angel.effects[0].level == 2


def test_berserk_has_no_duration():
    board = game(
        side(SideName.ALLY, stack(1, UnitType.ANGEL)),
        side(SideName.FOE, stack(2, UnitType.DENDROID)),
        {1: (0, 0), 2: (0, 14)},
    )
    apply_magic_effect(board, ResultLog(board), board.ally, Spell.BERSERK, [board.stack(2)])
    assert board.stack(2).effect(EffectType.BERSERK).duration is None


def test_summons_take_the_first_free_edge_cell():
    board = game(
        side(SideName.ALLY, stack(1, UnitType.ANGEL)),
        side(SideName.FOE, stack(2, UnitType.DENDROID)),
        {1: (0, 0), 2: (0, 14)},
    )
    log = ResultLog(board)

    ally_summon = summon(board, log, board.ally, Spell.SUMMON_AIR_ELEMENT)
    foe_summon = summon(board, log, board.foe, Spell.SUMMON_EARTH_ELEMENT)

    assert ally_summon is not None and foe_summon is not None
    assert position_of(board.grid, ally_summon.id) == Position(1, 0)
    assert position_of(board.grid, foe_summon.id) == Position(1, 14)
    assert ally_summon.count == 10 and foe_summon.count == 12
    assert [int(ally_summon.id), int(foe_summon.id)] == [3, 4]
    assert log.results[0] == Summoned(
        stack_id=StackID(3), unit_type=UnitType.AIR_ELEMENT, count=10, position=Position(1, 0)
    )


def test_summons_move_inwards_when_the_edge_is_full():
    board = game(
        side(SideName.ALLY, *(stack(index, UnitType.PIKEMAN) for index in range(1, 12))),
        side(SideName.FOE, stack(20, UnitType.DENDROID)),
        {**{index: (index - 1, 0) for index in range(1, 12)}, 20: (0, 14)},
    )

    summoned = summon(board, ResultLog(board), board.ally, Spell.SUMMON_WATER_ELEMENT)

    assert summoned is not None
    assert position_of(board.grid, summoned.id) == Position(0, 1)


def test_clone_takes_the_next_free_cell_in_the_row():
    board = game(
        side(SideName.ALLY, stack(1, UnitType.ANGEL, 4)),
        side(SideName.FOE, stack(2, UnitType.DENDROID)),
        {1: (3, 4), 2: (0, 14)},
    )
    angel = board.stack(1)
    log = ResultLog(board)

    clone = clone_stack(board, log, board.ally, angel)

    assert clone.type is UnitType.CLONE
    assert clone.copied is not None and clone.copied.type is UnitType.ANGEL
    assert position_of(board.grid, clone.id) == Position(3, 5)
    assert log.results == [Cloned(stack_id=clone.id, target_id=angel.id, position=Position(3, 5))]

    clone.add_effect(Effect(EffectType.BLESS, duration=2, value=4))
    assert not angel.has_effect(EffectType.BLESS)


def test_death_ripple_spares_the_undead():
    board = game(
        side(SideName.ALLY, stack(1, UnitType.ANGEL)),
        side(SideName.FOE, stack(2, UnitType.ZOMBIE, 3), stack(3, UnitType.PIKEMAN, 2)),
        {1: (0, 0), 2: (0, 14), 3: (2, 14)},
    )
    log = ResultLog(board)

    assert cast_immediately(board, log, board.ally, Spell.DEATH_RIPPLE)

    assert _damage(log.results) == [(1, 10), (3, 10)]
    assert board.stack(2).last_health == 10


def test_meteor_shower_skips_earth_elementals():
    board = game(
        side(SideName.ALLY, stack(1, UnitType.ANGEL)),
        side(SideName.FOE, stack(2, UnitType.PIKEMAN, 10), stack(3, UnitType.EARTH_ELEMENT)),
        {1: (0, 0), 2: (5, 5), 3: (5, 6)},
    )
    log = ResultLog(board)

    cast_at(board, log, board.ally, Spell.METEOR_SHOWER, Position(5, 5))

    assert _damage(log.results) == [(2, 60)]
    pikemen = board.stack(2)
    assert pikemen.count == 5 and pikemen.last_health == 6


def test_mirror_bounces_onto_the_casters_army():
    board = game(
        side(SideName.ALLY, stack(1, UnitType.ANGEL), stack(3, UnitType.DENDROID)),
        side(SideName.FOE, stack(2, UnitType.ANGEL), skills={SkillType.MIRROR: 4}),
        {1: (0, 0), 3: (2, 0), 2: (0, 14)},
    )
    log = ResultLog(board)

    cast_at(board, log, board.ally, Spell.ARROW, Position(0, 14))

    reflect = log.results[1]
    assert isinstance(reflect, Reflect)
    assert reflect.source_id == 2
    assert reflect.effects == [ReceiveDamage(receiver_id=StackID(3), damage=30)]
    assert board.stack(2).last_health == 180


def test_resistance_turns_the_hit_into_a_marker():
    board = game(
        side(SideName.ALLY, stack(1, UnitType.ANGEL)),
        side(SideName.FOE, stack(2, UnitType.ANGEL), skills={SkillType.RESISTANCE: 4}),
        {1: (0, 0), 2: (0, 14)},
    )
    log = ResultLog(board)

    cast_at(board, log, board.ally, Spell.ARROW, Position(0, 14))

    assert log.results[1:] == [Resistance(stack_id=StackID(2))]
    assert board.stack(2).last_health == 180


def test_fire_wall_is_placed_with_the_caster_lifetime():
    board = game(
        side(SideName.ALLY, stack(1, UnitType.ANGEL), spell=2),
        side(SideName.FOE, stack(2, UnitType.ANGEL)),
        {1: (0, 0), 2: (0, 14)},
    )
    log = ResultLog(board)

    cast_at(board, log, board.ally, Spell.FIRE_WALL, Position(5, 7))

    cell = hex_at(board.grid, Position(5, 7))
    assert cell.fire_wall
    assert cell.caster is SideName.ALLY
    assert cell.rounds_left == 3
    assert log.results[-1] == TerrainPlaced(
        spell=Spell.FIRE_WALL, position=Position(5, 7), caster=SideName.ALLY
    )
