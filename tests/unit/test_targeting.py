"""Tests for legal target cells."""

from __future__ import annotations

from builders import game, side, stack
from hexbattle.domain.enums import AttackType, Phase, SideName, Spell, UnitType
from hexbattle.domain.grid import move_stack
from hexbattle.domain.models import StackID
from hexbattle.domain.targeting import (
    can_fire_now,
    fire_targets,
    legal_targets,
    spell_targets,
    tactic_columns,
    teleport_targets,
)
from hexbattle.utils.hex_math import Position


def test_shooters_lose_their_shot_when_engaged():
    board = game(
        side(SideName.ALLY, stack(1, UnitType.ARCHER)),
        side(SideName.FOE, stack(2, UnitType.DRAGON), stack(3, UnitType.PIKEMAN)),
        {1: (0, 0), 2: (6, 8), 3: (9, 9)},
        selected=1,
    )
    archer = board.stack(1)

    assert can_fire_now(board, archer)
    # wide stacks expose both of their cells
    assert fire_targets(board, archer) == [Position(6, 8), Position(6, 7), Position(9, 9)]
    assert legal_targets(board) == fire_targets(board, archer)

    move_stack(board.grid, board.stack(3), Position(0, 1))
    assert not can_fire_now(board, archer)
    assert fire_targets(board, archer) == []


def test_hand_attack_lists_movement_targets():
    board = game(
        side(SideName.ALLY, stack(1, UnitType.ZOMBIE)),
        side(SideName.FOE, stack(2, UnitType.PIKEMAN)),
        {1: (0, 0), 2: (0, 2)},
        selected=1,
    )
    board.attack_type = AttackType.HAND

    targets = legal_targets(board)

    assert Position(0, 1) in targets
    assert Position(0, 2) in targets
    assert Position(0, 3) not in targets


def test_spell_targets_follow_the_spell_kind():
    board = game(
        side(SideName.ALLY, stack(1, UnitType.ANGEL)),
        side(SideName.FOE, stack(2, UnitType.AIR_ELEMENT), stack(3, UnitType.PIKEMAN)),
        {1: (0, 0), 2: (0, 14), 3: (2, 14)},
    )

    assert spell_targets(board, SideName.ALLY, Spell.LIGHTNING) == [Position(2, 14)]
    assert spell_targets(board, SideName.ALLY, Spell.BLESS) == [Position(0, 0)]
    fire_wall_cells = spell_targets(board, SideName.ALLY, Spell.FIRE_WALL)
    assert Position(0, 0) not in fire_wall_cells
    assert len(fire_wall_cells) == 11 * 15 - 3
    assert len(spell_targets(board, SideName.ALLY, Spell.METEOR_SHOWER)) == 11 * 15


def test_tactic_area_grows_with_the_level_difference():
    board = game(
        side(SideName.ALLY, stack(1, UnitType.ANGEL)),
        side(SideName.FOE, stack(2, UnitType.PIKEMAN)),
        {1: (0, 0), 2: (0, 14)},
        selected=1,
        phase=Phase.TACTIC,
    )
    board.tactic_side = SideName.ALLY
    board.tactic_level = 1
    assert tactic_columns(board) == range(0, 3)

    board.tactic_side = SideName.FOE
    assert tactic_columns(board) == range(12, 15)


def test_teleport_targets_are_empty_cells_that_fit():
    board = game(
        side(SideName.ALLY, stack(1, UnitType.DRAGON)),
        side(SideName.FOE, stack(2, UnitType.PIKEMAN)),
        {1: (0, 1), 2: (3, 0)},
        phase=Phase.STACK_TELEPORTING,
    )
    board.teleport_from = StackID(1)

    targets = teleport_targets(board)

    assert Position(3, 1) not in targets
    assert Position(3, 2) in targets
    assert all(position.column >= 1 for position in targets)
    assert legal_targets(board) == targets
