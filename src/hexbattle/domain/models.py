"""Dataclasses describing every entity of a battle session.

The battle is one explicit ``Game`` aggregate owned by the host.  Nothing in
the rules layer keeps module-level state: every operation receives the game it
works on.  All types are plain data (no cycles) so a snapshot can be dumped
with a pydantic ``TypeAdapter`` and validated back.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import NewType

from .enums import (
    AttackType,
    Controller,
    EffectType,
    ObstacleKind,
    Phase,
    SideName,
    SkillType,
    Spell,
    TerrainState,
    UnitType,
)
from .errors import InvariantViolation

# --- Strongly typed identifiers -------------------------------------------------

StackID = NewType("StackID", int)


# --- Units ----------------------------------------------------------------------


@dataclass(slots=True)
class Effect:
    """Modifier attached to a stack.

    ``duration`` is ``None`` for effects that persist until removed (freeze,
    berserk).  ``causer_id`` points at the stack that froze the bearer; it is
    resolved lazily and ignored once that stack is gone.
    """

    type: EffectType
    duration: int | None = None
    value: float | None = None
    level: int | None = None
    causer_id: StackID | None = None


@dataclass(slots=True)
class Stack:
    """A group of identical units acting as one entity."""

    id: StackID
    type: UnitType
    count: int
    last_health: float
    initial_count: int
    effects: list[Effect] = field(default_factory=list)
    arrows_left: int | None = None
    # Clones carry a private deep copy of the stack they imitate
    copied: Stack | None = None

    @property
    def is_clone(self) -> bool:
        return self.type is UnitType.CLONE

    def real(self) -> Stack:
        """Return the stack whose attributes drive derived stats."""

        if self.copied is not None:
            return self.copied
        return self

    def effect(self, effect_type: EffectType) -> Effect | None:
        for effect in self.real().effects:
            if effect.type is effect_type:
                return effect
        return None

    def has_effect(self, effect_type: EffectType) -> bool:
        return self.effect(effect_type) is not None

    def add_effect(self, effect: Effect) -> None:
        self.real().effects.append(effect)

    def remove_effect(self, effect_type: EffectType) -> None:
        real = self.real()
        real.effects = [effect for effect in real.effects if effect.type is not effect_type]


# --- Sides ----------------------------------------------------------------------


@dataclass(slots=True)
class Hero:
    """Commander of a side; its scalars feed damage, luck and spell power."""

    name: str
    attack: int
    defence: int
    lucky: float = 0.0
    spell: int = 0
    morale: float = 0.0


@dataclass(slots=True)
class Skill:
    type: SkillType
    level: int


@dataclass(slots=True)
class Side:
    """One army and the hero leading it."""

    name: SideName
    controller: Controller
    hero: Hero
    skills: list[Skill] = field(default_factory=list)
    army: list[Stack] = field(default_factory=list)
    spells: list[Spell] = field(default_factory=list)

    def skill_level(self, skill_type: SkillType) -> int:
        for skill in self.skills:
            if skill.type is skill_type:
                return skill.level
        return 0

    def has_skill(self, skill_type: SkillType) -> bool:
        return any(skill.type is skill_type for skill in self.skills)


# --- Grid -----------------------------------------------------------------------


@dataclass(slots=True)
class HexCell:
    """A recorded (non-empty) battlefield cell.

    A wide stack is written into both cells it covers.  Spell terrain keeps
    its lifecycle state, the rounds it has left and the side that cast it.
    """

    row: int
    column: int
    stack_id: StackID | None = None
    obstacle: ObstacleKind | None = None
    fire_wall: bool = False
    terrain_state: TerrainState | None = None
    rounds_left: int | None = None
    caster: SideName | None = None

    @property
    def is_empty(self) -> bool:
        return self.stack_id is None and self.obstacle is None and not self.fire_wall

    @property
    def has_terrain(self) -> bool:
        return self.fire_wall or self.obstacle is ObstacleKind.FORCE_FIELD


@dataclass(slots=True)
class BattleGrid:
    """Sparse battlefield: only cells that hold something are stored."""

    rows: int
    columns: int
    cells: list[HexCell] = field(default_factory=list)


@dataclass(slots=True)
class DeadStack:
    """A stack removed by death, kept for the casualty report."""

    side: SideName
    stack: Stack


# --- Session --------------------------------------------------------------------


@dataclass(slots=True)
class Game:
    """The whole mutable battle session.

    Round bookkeeping lists hold stack ids; ``defended_attack`` is a multiset
    (one entry per retaliation spent this round).
    """

    ally: Side
    foe: Side
    grid: BattleGrid
    phase: Phase = Phase.BATTLE
    seed: int = 16
    round: int = 1
    selected_id: StackID | None = None
    previous_side: SideName | None = None
    moved: list[StackID] = field(default_factory=list)
    waited: list[StackID] = field(default_factory=list)
    morale: list[StackID] = field(default_factory=list)
    defended_attack: list[StackID] = field(default_factory=list)
    defenced_in_current_round: list[StackID] = field(default_factory=list)
    defenced_in_previous_round: list[StackID] = field(default_factory=list)
    heroes_casted_spell: list[SideName] = field(default_factory=list)
    attack_type: AttackType | None = None
    spell: Spell | None = None
    tactic_side: SideName | None = None
    tactic_level: int = 0
    teleport_from: StackID | None = None
    winner: SideName | None = None
    dead: list[DeadStack] = field(default_factory=list)
    chase_streaks: dict[StackID, int] = field(default_factory=dict)
    next_stack_id: int = 1

    def side(self, name: SideName) -> Side:
        return self.ally if name is SideName.ALLY else self.foe

    def sides(self) -> tuple[Side, Side]:
        return self.ally, self.foe

    def all_stacks(self) -> Iterator[Stack]:
        yield from self.ally.army
        yield from self.foe.army

    def stack(self, stack_id: StackID | None) -> Stack | None:
        if stack_id is None:
            return None
        for candidate in self.all_stacks():
            if candidate.id == stack_id:
                return candidate
        return None

    def owner(self, stack: Stack) -> Side:
        for side in self.sides():
            if any(member.id == stack.id for member in side.army):
                return side
        raise InvariantViolation(f"stack {int(stack.id)} belongs to no side")

    def selected(self) -> Stack | None:
        return self.stack(self.selected_id)

    def new_stack_id(self) -> StackID:
        stack_id = StackID(self.next_stack_id)
        self.next_stack_id += 1
        return stack_id
