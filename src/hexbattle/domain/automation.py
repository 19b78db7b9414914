"""Turns that play themselves.

War machines, berserk stacks and every stack of a computer-controlled side do
not wait for the host.  Their turn is planned here as an ordinary action and
then applied by the engine through the same handlers as host input.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal

from hexbattle.domain.actions import ClickAt, Defend, EndTurn, FireAt, MoveTo
from hexbattle.domain.enums import Controller, EffectType, Phase, UnitType
from hexbattle.domain.grid import closest_stack, position_of, stacks_on_grid
from hexbattle.domain.models import Game, Stack
from hexbattle.domain.pathfinding import path_between
from hexbattle.domain.rules_config import DEFAULT_RULES, RulesConfig
from hexbattle.domain.stats import (
    effective_side,
    health_of,
    hostile_ids,
    is_machine,
    movement_of,
    total_stack_health,
)
from hexbattle.domain.targeting import can_fire_now
from hexbattle.utils.hex_math import Position

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TendWounded:
    """Aid tent turn: heal the friendly stack at ``position``."""

    position: Position
    type: Literal["tend_wounded"] = "tend_wounded"


@dataclass(slots=True)
class TurnPlan:
    """What an automatic stack does this activation.

    ``attacking`` is set when the action lands an attack.  ``chase_streak`` is
    the new count of consecutive non-attacking chase activations (None clears it).
    """

    action: Any
    attacking: bool = False
    chase_streak: int | None = None


def is_automatic(game: Game, stack: Stack | None) -> bool:
    if stack is None or game.phase is not Phase.BATTLE:
        return False
    if is_machine(stack) or stack.has_effect(EffectType.BERSERK):
        return True
    return game.side(effective_side(game, stack)).controller is Controller.COMPUTER


def most_wounded_friend(game: Game, stack: Stack) -> Stack | None:
    """Friendly on-grid stack missing the most health; the first in army order wins ties."""

    side = effective_side(game, stack)
    best: Stack | None = None
    best_missing = 0.0
    for member in game.side(side).army:
        if member.is_clone or is_machine(member) or position_of(game.grid, member.id) is None:
            continue
        missing = health_of(member) * member.initial_count - total_stack_health(member)
        if missing > best_missing:
            best, best_missing = member, missing
    return best


def _first_enemy_on_grid(game: Game, stack: Stack) -> Position | None:
    hostile = hostile_ids(game, stack)
    side = game.side(effective_side(game, stack).opponent)
    for member in side.army:
        if member.id in hostile:
            position = position_of(game.grid, member.id)
            if position is not None:
                return position
    for position, other in stacks_on_grid(game):
        if other.id in hostile:
            return position
    return None


def chase(game: Game, stack: Stack, target: Stack, rules: RulesConfig = DEFAULT_RULES) -> TurnPlan:
    """Close in on ``target``: shoot, attack when in reach, or advance along the path."""

    target_position = position_of(game.grid, target.id)
    current = position_of(game.grid, stack.id)
    if target_position is None or current is None:
        return TurnPlan(Defend())

    if can_fire_now(game, stack):
        return TurnPlan(FireAt(target=target_position), attacking=True)

    full_path = path_between(game, current, target_position, stack=stack)
    if not full_path:
        return TurnPlan(Defend())

    movement = movement_of(game, stack, rules)
    moving_path = full_path[1:-1]
    if len(moving_path) <= movement:
        next_position = moving_path[-1] if moving_path else current
        return TurnPlan(
            ClickAt(target=target_position, next_position=next_position),
            attacking=True,
        )

    streak = game.chase_streaks.get(stack.id, 0)
    limit = rules.chase.max_chasing_activations
    if limit is not None and streak >= limit:
        logger.debug("stack %s gives up chasing after %d activations", int(stack.id), streak)
        return TurnPlan(Defend(), chase_streak=streak)
    if movement == 0:
        return TurnPlan(Defend(), chase_streak=streak + 1)
    return TurnPlan(MoveTo(position=full_path[movement]), chase_streak=streak + 1)


def plan_turn(game: Game, rules: RulesConfig = DEFAULT_RULES) -> TurnPlan:
    """Plan the selected stack's automatic turn."""

    stack = game.selected()
    if stack is None:
        return TurnPlan(EndTurn())

    if stack.has_effect(EffectType.BERSERK):
        origin = position_of(game.grid, stack.id)
        target = closest_stack(game, origin, excludes=[stack.id]) if origin is not None else None
        if target is None:
            return TurnPlan(Defend())
        return chase(game, stack, target, rules)

    if stack.real().type is UnitType.BALLISTA:
        position = _first_enemy_on_grid(game, stack)
        if position is None or not can_fire_now(game, stack):
            return TurnPlan(EndTurn())
        return TurnPlan(FireAt(target=position), attacking=True)

    if stack.real().type is UnitType.AID_TENT:
        wounded = most_wounded_friend(game, stack)
        position = position_of(game.grid, wounded.id) if wounded is not None else None
        if position is None:
            return TurnPlan(EndTurn())
        return TurnPlan(TendWounded(position=position))

    if is_machine(stack):
        return TurnPlan(EndTurn())

    origin = position_of(game.grid, stack.id)
    if origin is None:
        return TurnPlan(Defend())
    friends = [other.id for other in game.all_stacks() if other.id not in hostile_ids(game, stack)]
    target = closest_stack(game, origin, excludes=friends)
    if target is None:
        return TurnPlan(Defend())
    return chase(game, stack, target, rules)
