"""Builders for fresh battle sessions.

Hosts create a battle here: stacks at full health, the two default sides, war
machines for heroes with the machine skill, the initial placement and the
choice between the tactics phase and round one.
"""

from __future__ import annotations

from collections.abc import Callable
from itertools import count

from hexbattle.domain.enums import AttackType, Controller, Phase, SideName, SkillType, Spell, UnitType
from hexbattle.domain.grid import place_stack, position_of
from hexbattle.domain.initiative import next_in_queue
from hexbattle.domain.models import BattleGrid, Game, Hero, Side, Skill, Stack, StackID
from hexbattle.domain.rules_config import DEFAULT_RULES, RulesConfig
from hexbattle.domain.stats import default_attack_type, is_machine, make_stack, width_of
from hexbattle.utils.hex_math import Position

IdSource = Callable[[], StackID]


def id_source(start: int = 1) -> IdSource:
    """Return a callable handing out consecutive stack ids."""

    counter = count(start)
    return lambda: StackID(next(counter))


def stack_of(
    next_id: IdSource,
    unit_type: UnitType,
    count: int = 1,
    rules: RulesConfig = DEFAULT_RULES,
) -> Stack:
    """A full-health stack; ballistas come loaded with their arrows."""

    stack = make_stack(next_id(), unit_type, count)
    if unit_type is UnitType.BALLISTA:
        stack.arrows_left = rules.machines.ballista_arrows
    return stack


def equip_machines(side: Side, next_id: IdSource, rules: RulesConfig = DEFAULT_RULES) -> None:
    """Give a side with the machine skill its ballista and aid tent."""

    if not side.has_skill(SkillType.MACHINE):
        return
    side.army.append(stack_of(next_id, UnitType.BALLISTA, rules=rules))
    side.army.append(stack_of(next_id, UnitType.AID_TENT, rules=rules))


def make_ally(next_id: IdSource, rules: RulesConfig = DEFAULT_RULES) -> Side:
    side = Side(
        name=SideName.ALLY,
        controller=Controller.PLAYER,
        hero=Hero(name="Rudolf", attack=3, defence=3, lucky=0.0, spell=4, morale=0.0),
        skills=[
            Skill(SkillType.TACTIC, 0),
            Skill(SkillType.EARTH, 3),
            Skill(SkillType.MACHINE, 1),
            Skill(SkillType.AIR, 3),
        ],
        army=[stack_of(next_id, UnitType.DENDROID, 15, rules)],
        spells=[Spell.METEOR_SHOWER, Spell.BERSERK, Spell.LIGHTNING, Spell.DEATH_RIPPLE],
    )
    equip_machines(side, next_id, rules)
    return side


def make_foe(next_id: IdSource, rules: RulesConfig = DEFAULT_RULES) -> Side:
    side = Side(
        name=SideName.FOE,
        controller=Controller.COMPUTER,
        hero=Hero(name="Henry", attack=3, defence=3, lucky=0.25, spell=1, morale=0.0),
        army=[
            stack_of(next_id, UnitType.ARCHER, 11, rules),
            stack_of(next_id, UnitType.DENDROID, 15, rules),
        ],
        spells=[Spell.ARROW, Spell.SLOW],
    )
    equip_machines(side, next_id, rules)
    return side


def place_armies(game: Game, rules: RulesConfig = DEFAULT_RULES) -> None:
    """Line each army up on its edge column, one stack on every other row.

    War machines stay off the grid.  Wide stacks are anchored so that their
    whole footprint is on the battlefield.
    """
    for side in game.sides():
        row = 0
        for stack in side.army:
            if is_machine(stack):
                continue
            if row > rules.grid.last_row:
                raise ValueError(f"{side.name} army does not fit on the battlefield")
            if side.name is SideName.ALLY:
                column = width_of(stack) - 1
            else:
                column = rules.grid.last_column
            place_stack(game.grid, stack, Position(row, column))
            row += 2


def _tactic_level(side: Side) -> int:
    return side.skill_level(SkillType.TACTIC)


def start_battle(game: Game, rules: RulesConfig = DEFAULT_RULES) -> None:
    """Enter the tactics phase when tactic skills differ, else select the first stack."""

    ally_level = _tactic_level(game.ally)
    foe_level = _tactic_level(game.foe)
    if ally_level != foe_level:
        tactic_side = game.ally if ally_level > foe_level else game.foe
        game.phase = Phase.TACTIC
        game.tactic_side = tactic_side.name
        game.tactic_level = abs(ally_level - foe_level)
        placed = [stack for stack in tactic_side.army if position_of(game.grid, stack.id) is not None]
        game.selected_id = placed[0].id if placed else None
        game.attack_type = AttackType.HAND
        return

    game.phase = Phase.BATTLE
    first = next_in_queue(game, rules)
    game.selected_id = first.id
    game.attack_type = default_attack_type(first)


def create_battle(
    *,
    ally: Side | None = None,
    foe: Side | None = None,
    seed: int | None = None,
    rules: RulesConfig = DEFAULT_RULES,
) -> Game:
    """Build a ready-to-play battle.

    Without explicit sides the default scenario is used.  Custom sides must
    carry unique stack ids; new ids (clones, summons) continue after the
    highest one in use.
    """
    next_id = id_source()
    ally = ally if ally is not None else make_ally(next_id, rules)
    foe = foe if foe is not None else make_foe(next_id, rules)

    game = Game(
        ally=ally,
        foe=foe,
        grid=BattleGrid(rows=rules.grid.rows, columns=rules.grid.columns),
        seed=rules.default_seed if seed is None else seed,
    )
    used = [int(stack.id) for stack in game.all_stacks()]
    if len(used) != len(set(used)):
        raise ValueError("stack ids must be unique across both armies")
    game.next_stack_id = max(used, default=0) + 1

    place_armies(game, rules)
    start_battle(game, rules)
    return game
