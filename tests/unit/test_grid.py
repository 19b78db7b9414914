"""Unit tests for the sparse battlefield grid."""

from __future__ import annotations

import pytest

from builders import game, side, stack
from hexbattle.domain.enums import SideName, TerrainState, UnitType
from hexbattle.domain.errors import InvariantViolation
from hexbattle.domain.grid import (
    adjacent_stacks,
    advance_terrain,
    closest_stack,
    fits,
    hex_at,
    move_stack,
    place_stack,
    place_terrain,
    position_of,
    positions_in_radius,
    remove_stack,
    stack_at,
    stacks_on_grid,
)
from hexbattle.domain.models import BattleGrid
from hexbattle.utils.hex_math import Position


def _board():
    dragon = stack(1, UnitType.DRAGON, 2)
    archer = stack(2, UnitType.ARCHER, 10)
    pikeman = stack(3, UnitType.PIKEMAN, 20)
    return game(
        side(SideName.ALLY, dragon),
        side(SideName.FOE, archer, pikeman),
        {1: (3, 5), 2: (3, 6), 3: (0, 0)},
    )


def test_wide_stack_covers_two_cells():
    board = _board()
    dragon = board.stack(1)

    assert stack_at(board, Position(3, 5)) is dragon
    assert stack_at(board, Position(3, 4)) is dragon
    assert position_of(board.grid, dragon.id) == Position(3, 5)


def test_empty_cells_are_not_stored():
    board = _board()
    assert len(board.grid.cells) == 4
    assert hex_at(board.grid, Position(7, 7)).is_empty


def test_wide_stack_cannot_hang_off_the_edge():
    grid = BattleGrid(rows=11, columns=15)
    assert not fits(grid, Position(3, 0), 2)
    with pytest.raises(InvariantViolation):
        place_stack(grid, stack(9, UnitType.DRAGON), Position(3, 0))


def test_move_and_remove_keep_the_grid_sparse():
    board = _board()
    dragon = board.stack(1)

    move_stack(board.grid, dragon, Position(8, 8))
    assert stack_at(board, Position(3, 4)) is None
    assert stack_at(board, Position(8, 7)) is dragon

    assert remove_stack(board.grid, dragon.id) == Position(8, 8)
    assert position_of(board.grid, dragon.id) is None
    assert len(board.grid.cells) == 2


def test_stacks_on_grid_yields_each_stack_once():
    board = _board()
    listed = [(position, member.id) for position, member in stacks_on_grid(board)]
    assert listed == [(Position(0, 0), 3), (Position(3, 5), 1), (Position(3, 6), 2)]


def test_adjacent_stacks_are_distinct():
    board = _board()
    found = adjacent_stacks(board, Position(3, 6))
    assert [member.id for member in found] == [1]


def test_closest_stack_prefers_row_major_order_on_ties():
    board = _board()
    closest = closest_stack(board, Position(3, 5), excludes=[1])
    assert closest is not None and closest.id == 2
    assert closest_stack(board, Position(3, 5), excludes=[1, 2, 3]) is None


def test_radius_includes_centre_and_clips_at_edges():
    grid = BattleGrid(rows=11, columns=15)
    assert len(positions_in_radius(grid, Position(5, 5), 1)) == 7
    assert positions_in_radius(grid, Position(0, 0), 1) == [
        Position(0, 0),
        Position(0, 1),
        Position(1, 1),
        Position(1, 0),
    ]
    assert len(positions_in_radius(grid, Position(5, 5), 2)) == 19


def test_terrain_lifecycle():
    grid = BattleGrid(rows=11, columns=15)
    place_terrain(grid, Position(4, 4), fire_wall=True, caster=SideName.ALLY, rounds=2)
    cell = hex_at(grid, Position(4, 4))
    assert cell.fire_wall and cell.terrain_state is TerrainState.APPEARING

    assert advance_terrain(grid) == []
    assert hex_at(grid, Position(4, 4)).terrain_state is TerrainState.ACTIVE

    assert advance_terrain(grid) == []
    assert hex_at(grid, Position(4, 4)).terrain_state is TerrainState.DISAPPEARING

    expired = advance_terrain(grid)
    assert [(c.row, c.column, c.fire_wall) for c in expired] == [(4, 4, True)]
    assert grid.cells == []


def test_force_field_blocks_placement():
    grid = BattleGrid(rows=11, columns=15)
    place_terrain(grid, Position(2, 2), fire_wall=False, caster=SideName.FOE, rounds=1)
    assert not fits(grid, Position(2, 2), 1)
    assert not hex_at(grid, Position(2, 2)).is_empty
