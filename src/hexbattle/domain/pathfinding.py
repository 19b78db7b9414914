"""Movement range and path search over the battle grid.

Two searches live here:
- a breadth-first expansion from a stack's cell used for movement, melee
  attack and "move then attack" ranges (:func:`reachable`), and
- an A* search between two cells used to animate moves and to let automatic
  stacks chase a target over several activations (:func:`path_between`).
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from heapq import heappop, heappush

from hexbattle.domain.enums import ReachMode
from hexbattle.domain.grid import (
    adjacent_stacks,
    fits,
    hex_at,
    in_bounds,
    is_free,
    neighbors_in_bounds,
    position_of,
    stack_at,
)
from hexbattle.domain.models import Game, Stack
from hexbattle.domain.stats import hostile_ids, width_of
from hexbattle.utils.hex_math import Position, manhattan_distance


@dataclass(frozen=True, slots=True)
class ReachableHex:
    """A cell a stack can act on; ``attackable`` marks enemy-occupied cells."""

    position: Position
    attackable: bool = False


def reachable(
    game: Game,
    stack: Stack,
    radius: int,
    mode: ReachMode = ReachMode.STEP_ON,
    *,
    origin: Position | None = None,
) -> list[ReachableHex]:
    """Breadth-first range query from the stack's cell.

    Args:
        game: Battle session
        stack: The acting stack (its width and side matter)
        radius: Number of steps allowed
        mode: ``STEP_ON`` lists enterable cells only, ``ATTACK_ON`` lists enemy
            cells reachable through enterable cells, ``MOVE_TO_ATTACK`` lists
            both plus enemies adjacent to the cells at exactly ``radius`` steps
        origin: Start cell; defaults to the stack's anchor

    Returns:
        Cells in discovery order; empty when the stack is off-grid
    """
    grid = game.grid
    start = origin or position_of(grid, stack.id)
    if start is None:
        return []

    enemy_ids = hostile_ids(game, stack)
    width = width_of(stack)

    if radius == 0 and mode is not ReachMode.STEP_ON:
        return [
            ReachableHex(position_of(grid, target.id) or start, attackable=True)
            for target in adjacent_stacks(game, start)
            if target.id in enemy_ids
        ]

    def steppable(position: Position) -> bool:
        if width > 1:
            return fits(grid, position, width, ignore=stack.id)
        return is_free(grid, position, ignore=stack.id)

    def enemy_at(position: Position) -> bool:
        occupant = stack_at(game, position)
        return occupant is not None and occupant.id in enemy_ids

    visited = {start}
    found: list[ReachableHex] = []
    queue: deque[tuple[Position, int]] = deque([(start, 0)])

    while queue:
        current, distance = queue.popleft()
        if distance >= radius:
            continue
        for neighbor in neighbors_in_bounds(grid, current):
            if neighbor in visited:
                continue
            can_step = steppable(neighbor)
            occupied = hex_at(grid, neighbor).stack_id is not None
            if not can_step and (mode is ReachMode.STEP_ON or not occupied):
                continue
            visited.add(neighbor)
            next_distance = distance + 1
            enemy_here = not can_step and enemy_at(neighbor)

            if mode is ReachMode.STEP_ON or mode is ReachMode.MOVE_TO_ATTACK:
                if can_step or enemy_here:
                    found.append(ReachableHex(neighbor, attackable=enemy_here))
            elif enemy_here:
                found.append(ReachableHex(neighbor, attackable=True))

            if mode is not ReachMode.STEP_ON and can_step and next_distance == radius:
                for beyond in neighbors_in_bounds(grid, neighbor):
                    if beyond in visited or not enemy_at(beyond):
                        continue
                    visited.add(beyond)
                    found.append(ReachableHex(beyond, attackable=True))

            if next_distance < radius and can_step:
                queue.append((neighbor, next_distance))

    return found


def path_between(game: Game, start: Position, end: Position, *, stack: Stack | None = None) -> list[Position]:
    """A* search over enterable cells from ``start`` to ``end``.

    The end cell is always accepted as a final step so a path can lead onto
    an enemy.  Cells of ``stack`` itself count as free.

    Returns:
        Cells from ``start`` to ``end`` inclusive, or an empty list when no
        path exists
    """
    grid = game.grid
    if not in_bounds(grid, start) or not in_bounds(grid, end):
        return []
    ignore = stack.id if stack is not None else None

    # Priority queue: (f_score, discovery order, position)
    order: dict[Position, int] = {start: 0}
    open_heap: list[tuple[int, int, Position]] = [(manhattan_distance(start, end), 0, start)]
    g_score: dict[Position, int] = {start: 0}
    came_from: dict[Position, Position] = {}
    closed: set[Position] = set()

    while open_heap:
        _, _, current = heappop(open_heap)
        if current in closed:
            continue
        if current == end:
            path = [current]
            while current in came_from:
                current = came_from[current]
                path.append(current)
            path.reverse()
            return path
        closed.add(current)

        for neighbor in neighbors_in_bounds(grid, current):
            if neighbor != end and not is_free(grid, neighbor, ignore=ignore):
                continue
            tentative = g_score[current] + 1
            if tentative >= g_score.get(neighbor, tentative + 1):
                continue
            came_from[neighbor] = current
            g_score[neighbor] = tentative
            closed.discard(neighbor)
            order.setdefault(neighbor, len(order))
            heappush(
                open_heap,
                (tentative + manhattan_distance(neighbor, end), order[neighbor], neighbor),
            )

    return []
