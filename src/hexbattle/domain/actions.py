"""Action and result variants exchanged with the host.

Actions are the closed set of inputs a host may submit; they carry only
positions and primitive values so that an action log can be replayed in
another process.  Results are what the engine hands back for playback, in
order.  Both are tagged by a ``type`` literal and validated through pydantic
discriminated unions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Annotated, Any, Literal

from pydantic import Field, TypeAdapter

from hexbattle.domain import grid as battle_grid
from hexbattle.domain.enums import AttackType, EffectType, SideName, Spell, UnitType
from hexbattle.domain.models import DeadStack, Game, Stack, StackID
from hexbattle.domain.rolls import increase_seed
from hexbattle.utils.hex_math import Position

logger = logging.getLogger(__name__)


# --- Actions --------------------------------------------------------------------


@dataclass(slots=True)
class Select:
    position: Position
    type: Literal["select"] = "select"


@dataclass(slots=True)
class ClickAt:
    """Move to or attack the target cell; ``next_position`` is where a melee attacker stands."""

    target: Position
    next_position: Position | None = None
    type: Literal["click_at"] = "click_at"


@dataclass(slots=True)
class MoveTo:
    position: Position
    type: Literal["move_to"] = "move_to"


@dataclass(slots=True)
class FireAt:
    target: Position
    type: Literal["fire_at"] = "fire_at"


@dataclass(slots=True)
class SelectAttackType:
    attack_type: AttackType
    type: Literal["select_attack_type"] = "select_attack_type"


@dataclass(slots=True)
class CastSpell:
    spell: Spell
    type: Literal["cast_spell"] = "cast_spell"


@dataclass(slots=True)
class CastSpellAt:
    position: Position
    type: Literal["cast_spell_at"] = "cast_spell_at"


@dataclass(slots=True)
class TeleportTo:
    target: Position
    type: Literal["teleport_to"] = "teleport_to"


@dataclass(slots=True)
class Defend:
    type: Literal["defend"] = "defend"


@dataclass(slots=True)
class Wait:
    type: Literal["wait"] = "wait"


@dataclass(slots=True)
class EndTurn:
    type: Literal["end_turn"] = "end_turn"


@dataclass(slots=True)
class EndTactic:
    type: Literal["end_tactic"] = "end_tactic"


Action = Annotated[
    Select
    | ClickAt
    | MoveTo
    | FireAt
    | SelectAttackType
    | CastSpell
    | CastSpellAt
    | TeleportTo
    | Defend
    | Wait
    | EndTurn
    | EndTactic,
    Field(discriminator="type"),
]

ACTION_ADAPTER: TypeAdapter[Action] = TypeAdapter(Action)
ACTION_LIST_ADAPTER: TypeAdapter[list[Action]] = TypeAdapter(list[Action])


# --- Results --------------------------------------------------------------------


@dataclass(slots=True)
class Moved:
    stack_id: StackID
    path: list[Position]
    type: Literal["moved"] = "moved"


@dataclass(slots=True)
class Fired:
    attacker_id: StackID
    target_id: StackID
    target: Position | None = None
    type: Literal["fired"] = "fired"


@dataclass(slots=True)
class Teleported:
    stack_id: StackID
    source: Position
    target: Position
    type: Literal["teleported"] = "teleported"


@dataclass(slots=True)
class ReceiveDamage:
    receiver_id: StackID
    damage: float
    type: Literal["receive_damage"] = "receive_damage"


@dataclass(slots=True)
class ReceiverDead:
    receiver_id: StackID
    damage: float
    position: Position | None = None
    type: Literal["receiver_dead"] = "receiver_dead"


@dataclass(slots=True)
class CloneAttacked:
    stack_id: StackID
    position: Position | None = None
    type: Literal["clone_attacked"] = "clone_attacked"


@dataclass(slots=True)
class Healed:
    stack_id: StackID
    value: float
    type: Literal["healed"] = "healed"


@dataclass(slots=True)
class Cloned:
    stack_id: StackID
    target_id: StackID
    position: Position | None = None
    type: Literal["cloned"] = "cloned"


@dataclass(slots=True)
class Summoned:
    stack_id: StackID
    unit_type: UnitType
    count: int
    position: Position
    type: Literal["summoned"] = "summoned"


@dataclass(slots=True)
class SpellEffect:
    """A buff or debuff landed on the listed stacks."""

    effect: EffectType
    target_ids: list[StackID]
    type: Literal["spell_effect"] = "spell_effect"


@dataclass(slots=True)
class SpellCast:
    side: SideName
    spell: Spell
    position: Position | None = None
    type: Literal["spell_cast"] = "spell_cast"


@dataclass(slots=True)
class Resistance:
    stack_id: StackID
    type: Literal["resistance"] = "resistance"


@dataclass(slots=True)
class Reflect:
    """A spell bounced off ``source_id``; ``effects`` are the nested results."""

    source_id: StackID
    effects: list[Any] = field(default_factory=list)
    type: Literal["reflect"] = "reflect"


@dataclass(slots=True)
class Stopped:
    receiver_id: StackID
    causer_id: StackID
    type: Literal["stopped"] = "stopped"


@dataclass(slots=True)
class Morale:
    stack_id: StackID
    type: Literal["morale"] = "morale"


@dataclass(slots=True)
class Flame:
    source: Position
    target: Position
    type: Literal["flame"] = "flame"


@dataclass(slots=True)
class TerrainPlaced:
    spell: Spell
    position: Position
    caster: SideName
    type: Literal["terrain_placed"] = "terrain_placed"


@dataclass(slots=True)
class TerrainExpired:
    spell: Spell
    position: Position
    type: Literal["terrain_expired"] = "terrain_expired"


@dataclass(slots=True)
class Defended:
    stack_id: StackID
    type: Literal["defended"] = "defended"


@dataclass(slots=True)
class Waited:
    stack_id: StackID
    type: Literal["waited"] = "waited"


@dataclass(slots=True)
class TurnStarted:
    stack_id: StackID
    side: SideName
    round: int
    type: Literal["turn_started"] = "turn_started"


@dataclass(slots=True)
class RoundStarted:
    round: int
    type: Literal["round_started"] = "round_started"


@dataclass(slots=True)
class BattleEnded:
    winner: SideName
    casualties: dict[SideName, dict[UnitType, int]]
    type: Literal["battle_ended"] = "battle_ended"


Result = Annotated[
    Moved
    | Fired
    | Teleported
    | ReceiveDamage
    | ReceiverDead
    | CloneAttacked
    | Healed
    | Cloned
    | Summoned
    | SpellEffect
    | SpellCast
    | Resistance
    | Reflect
    | Stopped
    | Morale
    | Flame
    | TerrainPlaced
    | TerrainExpired
    | Defended
    | Waited
    | TurnStarted
    | RoundStarted
    | BattleEnded,
    Field(discriminator="type"),
]

RESULT_LIST_ADAPTER: TypeAdapter[list[Result]] = TypeAdapter(list[Result])


# --- Result log -----------------------------------------------------------------


class ResultLog:
    """Collects results in playback order and applies their board consequences.

    Dead stacks and destroyed clones leave their army and the grid the moment
    the result is recorded, so follow-up resolution never sees them.  Every
    recorded result advances the seed by one.
    """

    def __init__(self, game: Game) -> None:
        self.game = game
        self.results: list[Any] = []

    def emit(self, result: Any) -> Any:
        if isinstance(result, ReceiverDead):
            self._bury(result.receiver_id)
        elif isinstance(result, CloneAttacked):
            self._discard(result.stack_id)
        increase_seed(self.game, 1)
        self.results.append(result)
        return result

    def extend(self, results: list[Any]) -> None:
        for result in results:
            self.emit(result)

    def child(self) -> ResultLog:
        """A log for nested results (reflections) sharing the same game."""

        return ResultLog(self.game)

    def _remove_from_army(self, stack: Stack) -> SideName:
        side = self.game.owner(stack)
        side.army = [member for member in side.army if member.id != stack.id]
        return side.name

    def _release_frozen_by(self, causer_id: StackID) -> None:
        for stack in self.game.all_stacks():
            freeze = stack.effect(EffectType.FREEZE)
            if freeze is not None and freeze.causer_id == causer_id:
                stack.remove_effect(EffectType.FREEZE)

    def _bury(self, stack_id: StackID) -> None:
        stack = self.game.stack(stack_id)
        if stack is None:
            return
        side = self._remove_from_army(stack)
        battle_grid.remove_stack(self.game.grid, stack_id)
        self.game.dead.append(DeadStack(side=side, stack=stack))
        self._release_frozen_by(stack_id)
        logger.debug("stack %s (%s) died", int(stack_id), stack.type)

    def _discard(self, stack_id: StackID) -> None:
        stack = self.game.stack(stack_id)
        if stack is None:
            return
        self._remove_from_army(stack)
        battle_grid.remove_stack(self.game.grid, stack_id)
        self._release_frozen_by(stack_id)
