"""Battlefield cell model.

The grid is sparse: only cells holding a stack, an obstacle or spell terrain
are stored, and :func:`hex_at` synthesizes an empty cell for everything else.
A wide stack anchored at column ``c`` is written into ``c`` and ``c - 1`` and
is addressable by either.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from collections.abc import Iterable

from hexbattle.domain.enums import ObstacleKind, SideName, TerrainState
from hexbattle.domain.errors import InvariantViolation
from hexbattle.domain.models import BattleGrid, Game, HexCell, Stack, StackID
from hexbattle.domain.stats import width_of
from hexbattle.utils.hex_math import Position, chebyshev_distance, hex_neighbors

logger = logging.getLogger(__name__)


def in_bounds(grid: BattleGrid, position: Position) -> bool:
    return 0 <= position.row < grid.rows and 0 <= position.column < grid.columns


def cell_at(grid: BattleGrid, position: Position) -> HexCell | None:
    """Return the stored cell at ``position`` or None when nothing is recorded."""

    for cell in grid.cells:
        if cell.row == position.row and cell.column == position.column:
            return cell
    return None


def hex_at(grid: BattleGrid, position: Position) -> HexCell:
    cell = cell_at(grid, position)
    if cell is None:
        return HexCell(row=position.row, column=position.column)
    return cell


def can_step_on(cell: HexCell) -> bool:
    """Empty cells and fire walls without a stack can be entered."""

    return cell.stack_id is None and cell.obstacle is None


def is_free(grid: BattleGrid, position: Position, *, ignore: StackID | None = None) -> bool:
    if not in_bounds(grid, position):
        return False
    cell = hex_at(grid, position)
    if ignore is not None and cell.stack_id == ignore:
        return cell.obstacle is None
    return can_step_on(cell)


def footprint(position: Position, width: int) -> list[Position]:
    """Cells covered by a stack anchored at ``position``."""

    return [Position(position.row, position.column - offset) for offset in range(width)]


def fits(grid: BattleGrid, position: Position, width: int, *, ignore: StackID | None = None) -> bool:
    return all(is_free(grid, cell, ignore=ignore) for cell in footprint(position, width))


def _index(grid: BattleGrid) -> dict[tuple[int, int], HexCell]:
    return {(cell.row, cell.column): cell for cell in grid.cells}


def position_of(grid: BattleGrid, stack_id: StackID) -> Position | None:
    """Anchor cell of a stack (its rightmost column), or None when off-grid."""

    anchor: Position | None = None
    for cell in grid.cells:
        if cell.stack_id == stack_id and (anchor is None or cell.column > anchor.column):
            anchor = Position(cell.row, cell.column)
    return anchor


def stack_at(game: Game, position: Position) -> Stack | None:
    if not in_bounds(game.grid, position):
        return None
    cell = cell_at(game.grid, position)
    if cell is None or cell.stack_id is None:
        return None
    return game.stack(cell.stack_id)


def stacks_on_grid(game: Game) -> Iterable[tuple[Position, Stack]]:
    """Yield each stack once with its anchor, in row-major order."""

    seen: set[StackID] = set()
    for (row, column), cell in sorted(_index(game.grid).items()):
        if cell.stack_id is None or cell.stack_id in seen:
            continue
        stack = game.stack(cell.stack_id)
        if stack is None:
            continue
        seen.add(cell.stack_id)
        anchor = position_of(game.grid, cell.stack_id)
        yield (anchor or Position(row, column)), stack


def _writable_cell(grid: BattleGrid, position: Position) -> HexCell:
    cell = cell_at(grid, position)
    if cell is None:
        cell = HexCell(row=position.row, column=position.column)
        grid.cells.append(cell)
    return cell


def _prune(grid: BattleGrid) -> None:
    grid.cells = [cell for cell in grid.cells if not cell.is_empty]


def place_stack(grid: BattleGrid, stack: Stack, position: Position) -> None:
    """Write a stack into every cell of its footprint."""

    cells = footprint(position, width_of(stack))
    if not all(is_free(grid, cell, ignore=stack.id) for cell in cells):
        raise InvariantViolation(
            f"cannot place stack {int(stack.id)} at {position.row},{position.column}"
        )
    for cell in cells:
        _writable_cell(grid, cell).stack_id = stack.id


def remove_stack(grid: BattleGrid, stack_id: StackID) -> Position | None:
    """Clear a stack from the grid and return where its anchor was."""

    anchor = position_of(grid, stack_id)
    for cell in grid.cells:
        if cell.stack_id == stack_id:
            cell.stack_id = None
    _prune(grid)
    return anchor


def move_stack(grid: BattleGrid, stack: Stack, position: Position) -> None:
    remove_stack(grid, stack.id)
    place_stack(grid, stack, position)


def place_terrain(
    grid: BattleGrid,
    position: Position,
    *,
    fire_wall: bool,
    caster: SideName,
    rounds: int,
) -> None:
    """Lay a fire wall or a force field on an empty cell."""

    cell = _writable_cell(grid, position)
    if fire_wall:
        cell.fire_wall = True
    else:
        cell.obstacle = ObstacleKind.FORCE_FIELD
    cell.terrain_state = TerrainState.APPEARING
    cell.rounds_left = rounds
    cell.caster = caster


def advance_terrain(grid: BattleGrid) -> list[HexCell]:
    """Step spell terrain through its lifecycle once; return the expired cells."""

    expired: list[HexCell] = []
    for cell in grid.cells:
        if not cell.has_terrain or cell.rounds_left is None:
            continue
        cell.rounds_left -= 1
        if cell.terrain_state is TerrainState.DISAPPEARING or cell.rounds_left < 0:
            expired.append(
                HexCell(
                    row=cell.row,
                    column=cell.column,
                    obstacle=cell.obstacle,
                    fire_wall=cell.fire_wall,
                    caster=cell.caster,
                )
            )
            cell.fire_wall = False
            cell.obstacle = None
            cell.terrain_state = None
            cell.rounds_left = None
            cell.caster = None
        elif cell.rounds_left == 0:
            cell.terrain_state = TerrainState.DISAPPEARING
        else:
            cell.terrain_state = TerrainState.ACTIVE
    _prune(grid)
    if expired:
        logger.debug("terrain expired at %s", [(c.row, c.column) for c in expired])
    return expired


def neighbors_in_bounds(grid: BattleGrid, position: Position) -> list[Position]:
    return [n for n in hex_neighbors(position) if in_bounds(grid, n)]


def positions_in_radius(grid: BattleGrid, position: Position, radius: int) -> list[Position]:
    """All in-bounds cells within ``radius`` steps, centre included, in BFS order."""

    visited = {position}
    result = [position]
    queue: deque[tuple[Position, int]] = deque([(position, 0)])
    while queue:
        current, distance = queue.popleft()
        if distance >= radius:
            continue
        for neighbor in neighbors_in_bounds(grid, current):
            if neighbor in visited:
                continue
            visited.add(neighbor)
            result.append(neighbor)
            queue.append((neighbor, distance + 1))
    return result


def adjacent_stacks(game: Game, position: Position, *, excludes: Iterable[StackID] = ()) -> list[Stack]:
    """Distinct stacks on the six neighbours of ``position``."""

    excluded = set(excludes)
    found: list[Stack] = []
    for neighbor in neighbors_in_bounds(game.grid, position):
        stack = stack_at(game, neighbor)
        if stack is None or stack.id in excluded or any(s.id == stack.id for s in found):
            continue
        found.append(stack)
    return found


def closest_stack(
    game: Game,
    origin: Position,
    *,
    excludes: Iterable[StackID] = (),
    radius: float = math.inf,
) -> Stack | None:
    """Closest stack by Chebyshev distance; the first one in row-major order wins ties."""

    excluded = set(excludes)
    best: Stack | None = None
    best_distance = math.inf
    for (row, column), cell in sorted(_index(game.grid).items()):
        if cell.stack_id is None or cell.stack_id in excluded:
            continue
        distance = chebyshev_distance(Position(row, column), origin)
        if distance < best_distance and distance <= radius:
            stack = game.stack(cell.stack_id)
            if stack is None:
                continue
            best_distance = distance
            best = stack
    return best
