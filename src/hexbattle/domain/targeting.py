"""Legal target cells for the active phase.

The engine validates every positional action against these sets, and hosts use
them to highlight what the player may click.
"""

from __future__ import annotations

from hexbattle.domain.enums import AttackType, Phase, ReachMode, SideName, Spell, UnitType
from hexbattle.domain.grid import (
    adjacent_stacks,
    fits,
    footprint,
    hex_at,
    position_of,
    stacks_on_grid,
)
from hexbattle.domain.models import Game, Stack
from hexbattle.domain.pathfinding import ReachableHex, reachable
from hexbattle.domain.rules_config import DEFAULT_RULES, RulesConfig
from hexbattle.domain.spells_data import (
    ANY_HEX_SPELLS,
    EMPTY_HEX_SPELLS,
    ENEMY_TARGET_SPELLS,
    FRIEND_TARGET_SPELLS,
)
from hexbattle.domain.stats import (
    can_fire,
    can_take_spell,
    effective_side,
    hostile_ids,
    movement_of,
    width_of,
)
from hexbattle.utils.hex_math import Position


def all_positions(game: Game) -> list[Position]:
    return [
        Position(row, column)
        for row in range(game.grid.rows)
        for column in range(game.grid.columns)
    ]


def occupied_cells(game: Game, stack: Stack) -> list[Position]:
    anchor = position_of(game.grid, stack.id)
    if anchor is None:
        return []
    return footprint(anchor, width_of(stack))


def has_enemy_around(game: Game, stack: Stack) -> bool:
    hostile = hostile_ids(game, stack)
    for cell in occupied_cells(game, stack):
        if any(other.id in hostile for other in adjacent_stacks(game, cell, excludes=[stack.id])):
            return True
    return False


def can_fire_now(game: Game, stack: Stack | None) -> bool:
    """The stack can shoot and no enemy stands next to it."""

    if stack is None or not can_fire(stack):
        return False
    return not has_enemy_around(game, stack)


def movement_targets(game: Game, stack: Stack, rules: RulesConfig = DEFAULT_RULES) -> list[ReachableHex]:
    return reachable(game, stack, movement_of(game, stack, rules), ReachMode.MOVE_TO_ATTACK)


def step_targets(game: Game, stack: Stack, rules: RulesConfig = DEFAULT_RULES) -> list[Position]:
    return [hex_.position for hex_ in reachable(game, stack, movement_of(game, stack, rules))]


def fire_targets(game: Game, stack: Stack) -> list[Position]:
    if not can_fire_now(game, stack):
        return []
    hostile = hostile_ids(game, stack)
    return [
        cell
        for _, other in stacks_on_grid(game)
        if other.id in hostile
        for cell in occupied_cells(game, other)
    ]


def spell_targets(game: Game, caster: SideName, spell: Spell) -> list[Position]:
    """Cells a spell of ``caster`` may be aimed at.

    Stack targets list every cell a stack covers; stacks immune to the spell
    are left out.
    """
    if spell in EMPTY_HEX_SPELLS:
        return [position for position in all_positions(game) if hex_at(game.grid, position).is_empty]

    if spell in ANY_HEX_SPELLS:
        found: list[Position] = []
        for position in all_positions(game):
            cell = hex_at(game.grid, position)
            occupant = game.stack(cell.stack_id)
            if occupant is not None and not can_take_spell(occupant, spell):
                continue
            found.append(position)
        return found

    if spell in ENEMY_TARGET_SPELLS:
        wanted = caster.opponent
    elif spell in FRIEND_TARGET_SPELLS:
        wanted = caster
    else:
        return []

    found = []
    for _, stack in stacks_on_grid(game):
        if effective_side(game, stack) is not wanted or not can_take_spell(stack, spell):
            continue
        if spell is Spell.HYPNOTIZE and stack.type is UnitType.CLONE:
            continue
        found.extend(occupied_cells(game, stack))
    return found


def teleport_targets(game: Game) -> list[Position]:
    stack = game.stack(game.teleport_from)
    if stack is None:
        return []
    return [
        position
        for position in all_positions(game)
        if hex_at(game.grid, position).is_empty and fits(game.grid, position, width_of(stack), ignore=stack.id)
    ]


def tactic_columns(game: Game, rules: RulesConfig = DEFAULT_RULES) -> range:
    """Columns the side with the better tactic skill may rearrange into."""

    extra = game.tactic_level
    if game.tactic_side is SideName.FOE:
        return range(max(0, rules.grid.last_column - 1 - extra), game.grid.columns)
    return range(0, min(game.grid.columns, 2 + extra))


def tactic_targets(game: Game, stack: Stack, rules: RulesConfig = DEFAULT_RULES) -> list[Position]:
    columns = tactic_columns(game, rules)
    return [
        position
        for position in all_positions(game)
        if position.column in columns
        and all(cell.column in columns for cell in footprint(position, width_of(stack)))
        and fits(game.grid, position, width_of(stack), ignore=stack.id)
    ]


def legal_targets(game: Game, rules: RulesConfig = DEFAULT_RULES) -> list[Position]:
    """Cells the host may act on in the current phase."""

    stack = game.selected()
    if game.phase is Phase.ENDED:
        return []
    if game.phase is Phase.STACK_TELEPORTING:
        return teleport_targets(game)
    if stack is None:
        return []
    if game.phase is Phase.TACTIC:
        return tactic_targets(game, stack, rules)
    if game.phase is Phase.GAME_SPELLING:
        if game.spell is None:
            return []
        return spell_targets(game, effective_side(game, stack), game.spell)
    if game.attack_type is AttackType.FIRE and can_fire_now(game, stack):
        return fire_targets(game, stack)
    return [hex_.position for hex_ in movement_targets(game, stack, rules)]
