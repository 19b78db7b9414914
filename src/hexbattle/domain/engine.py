"""Battle session engine.

:class:`BattleEngine` owns one :class:`Game` and applies host actions to it one
at a time.  Every applied action yields a :class:`Step` with the results the
host should play back.  While a step is being played the engine is suspended:
new actions are queued and only applied once the host calls
:meth:`BattleEngine.complete`.  Automatic turns (war machines, berserk stacks,
computer-controlled sides) run as their own steps on completion, so a headless
host simply calls :meth:`BattleEngine.run` or :meth:`BattleEngine.settle`.

Action handlers are registered per action type.  A handler validates first and
raises :class:`IllegalAction` before touching any state; an ignored action
leaves the game and its seed unchanged.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from pydantic import TypeAdapter

from hexbattle.domain.actions import (
    BattleEnded,
    CastSpell,
    CastSpellAt,
    ClickAt,
    Defend,
    Defended,
    EndTactic,
    EndTurn,
    FireAt,
    Healed,
    Morale,
    Moved,
    MoveTo,
    ResultLog,
    RoundStarted,
    Select,
    SelectAttackType,
    SpellCast,
    Teleported,
    TeleportTo,
    TerrainExpired,
    TurnStarted,
    Wait,
    Waited,
)
from hexbattle.domain.automation import TendWounded, is_automatic, plan_turn
from hexbattle.domain.combat import close_attack, heal, shoot
from hexbattle.domain.enums import (
    AttackType,
    EffectType,
    Phase,
    PresentationHint,
    SideName,
    Spell,
    UnitType,
)
from hexbattle.domain.errors import IllegalAction, InvariantViolation
from hexbattle.domain.grid import (
    adjacent_stacks,
    advance_terrain,
    fits,
    footprint,
    move_stack,
    neighbors_in_bounds,
    position_of,
    stack_at,
)
from hexbattle.domain.initiative import game_queue, next_in_queue
from hexbattle.domain.magic import cast_at, cast_immediately, fire_wall_hit, needs_target
from hexbattle.domain.models import Game, Stack, StackID
from hexbattle.domain.pathfinding import path_between
from hexbattle.domain.rolls import get_lucky, increase_seed, level_to_probability
from hexbattle.domain.rules_config import DEFAULT_RULES, RulesConfig
from hexbattle.domain.stats import (
    army_has_fighters,
    can_fire,
    can_fire_twice,
    can_fly,
    default_attack_type,
    effective_side,
    hostile_ids,
    is_machine,
    width_of,
)
from hexbattle.domain.targeting import (
    can_fire_now,
    fire_targets,
    legal_targets,
    movement_targets,
    occupied_cells,
    spell_targets,
    step_targets,
    tactic_targets,
    teleport_targets,
)
from hexbattle.utils.hex_math import Position, are_adjacent, chebyshev_distance

logger = logging.getLogger(__name__)

GAME_ADAPTER: TypeAdapter[Game] = TypeAdapter(Game)

Casualties = dict[SideName, dict[UnitType, int]]


@dataclass(slots=True)
class Step:
    """Outcome of one applied action or automatic turn."""

    results: list[Any] = field(default_factory=list)
    hint: PresentationHint = PresentationHint.NONE
    accepted: bool = True


def casualties(game: Game) -> Casualties:
    """Units lost per side and unit type, counting live and dead stacks but no clones."""

    report: Casualties = {}
    for side in game.sides():
        lost: dict[UnitType, int] = {}
        stacks = [*side.army, *(dead.stack for dead in game.dead if dead.side is side.name)]
        for stack in stacks:
            if stack.is_clone or stack.count >= stack.initial_count:
                continue
            lost[stack.type] = lost.get(stack.type, 0) + stack.initial_count - stack.count
        report[side.name] = lost
    return report


class BattleEngine:
    """Applies actions to a battle session and sequences presentation steps."""

    def __init__(self, game: Game, rules: RulesConfig = DEFAULT_RULES) -> None:
        self.game = game
        self.rules = rules
        self._pending: deque[Any] = deque()
        self._suspended = False

    @classmethod
    def from_snapshot(cls, data: dict[str, Any], rules: RulesConfig = DEFAULT_RULES) -> BattleEngine:
        return cls(GAME_ADAPTER.validate_python(data), rules)

    # --- Queries -----------------------------------------------------------------

    @property
    def phase(self) -> Phase:
        return self.game.phase

    @property
    def selected(self) -> Stack | None:
        return self.game.selected()

    @property
    def awaiting_completion(self) -> bool:
        """True while a played step, an automatic turn or queued input is outstanding."""

        return self._suspended or bool(self._pending) or is_automatic(self.game, self.game.selected())

    def legal_targets(self) -> list[Position]:
        return legal_targets(self.game, self.rules)

    def queue(self) -> list[Stack]:
        return game_queue(self.game, self.rules)

    def casualties(self) -> Casualties | None:
        """Casualty report, available once the battle has ended."""

        if self.game.phase is not Phase.ENDED:
            return None
        return casualties(self.game)

    def snapshot(self) -> dict[str, Any]:
        return GAME_ADAPTER.dump_python(self.game, mode="json")

    # --- Sequencing --------------------------------------------------------------

    def submit(self, action: Any) -> Step | None:
        """Apply ``action`` now, or queue it and return None while suspended."""

        if self.awaiting_completion:
            self._pending.append(action)
            return None
        return self._deliver(self._apply(action))

    def complete(self) -> Step | None:
        """Signal that the last step finished playing and resume."""

        self._suspended = False
        if is_automatic(self.game, self.game.selected()):
            return self._deliver(self._auto_turn())
        if self._pending:
            return self._deliver(self._apply(self._pending.popleft()))
        return None

    def settle(self, max_steps: int = 10_000) -> list[Any]:
        """Resume until nothing is outstanding; return every result produced."""

        results: list[Any] = []
        for _ in range(max_steps):
            if not self.awaiting_completion:
                return results
            step = self.complete()
            if step is not None:
                results.extend(step.results)
        logger.warning("battle did not settle within %d steps", max_steps)
        return results

    def run(self, action: Any) -> list[Any]:
        """Apply ``action`` headlessly, including every automatic turn it triggers."""

        results = self.settle()
        step = self.submit(action)
        if step is not None:
            results.extend(step.results)
        results.extend(self.settle())
        return results

    def _deliver(self, step: Step) -> Step:
        if step.accepted and step.results:
            self._suspended = True
        return step

    def _apply(self, action: Any) -> Step:
        game = self.game
        handler = _ACTION_HANDLERS.get(getattr(action, "type", ""))
        if handler is None or game.phase is Phase.ENDED:
            logger.debug("ignored %r in phase %s", action, game.phase)
            return Step(accepted=False)

        log = ResultLog(game)
        try:
            handler(self, action, log)
        except IllegalAction as exc:
            logger.debug("ignored %s: %s", action.type, exc)
            return Step(accepted=False)

        if not self._check_ended(log):
            if game.phase in (Phase.BATTLE, Phase.GAME_SPELLING) and game.selected() is None:
                game.phase = Phase.BATTLE
                game.spell = None
                self._advance(log)
        logger.debug("applied %s: %d result(s), seed %d", action.type, len(log.results), game.seed)
        hint = PresentationHint.PLAY if log.results else PresentationHint.NONE
        return Step(results=log.results, hint=hint)

    def _auto_turn(self) -> Step:
        game = self.game
        stack = game.selected()
        plan = plan_turn(game, self.rules)
        step = self._apply(plan.action)
        if not step.accepted:
            logger.debug("automatic %s rejected; ending the turn", plan.action.type)
            step = self._apply(EndTurn())
            if not step.accepted:
                raise InvariantViolation("automatic turn could not make progress")
            return step
        if stack is not None:
            if plan.chase_streak is None:
                game.chase_streaks.pop(stack.id, None)
            else:
                game.chase_streaks[stack.id] = plan.chase_streak
            if plan.attacking and stack.has_effect(EffectType.BERSERK):
                stack.remove_effect(EffectType.BERSERK)
        return step

    # --- Turn flow ---------------------------------------------------------------

    def _accept(self) -> None:
        increase_seed(self.game, 1)

    def _acting_side(self, stack_id: StackID) -> SideName | None:
        stack = self.game.stack(stack_id)
        if stack is not None:
            return effective_side(self.game, stack)
        for dead in reversed(self.game.dead):
            if dead.stack.id == stack_id:
                return dead.side
        return None

    def _check_ended(self, log: ResultLog) -> bool:
        game = self.game
        if game.phase is Phase.ENDED:
            return True
        for side in game.sides():
            if army_has_fighters(side.army):
                continue
            game.phase = Phase.ENDED
            game.winner = side.name.opponent
            game.spell = None
            game.teleport_from = None
            log.emit(BattleEnded(winner=game.winner, casualties=casualties(game)))
            logger.info("battle ended in round %d, %s wins", game.round, game.winner)
            return True
        return False

    def _finish_turn(self, log: ResultLog) -> None:
        """End the acting stack's action: roll morale for a bonus action or pass the turn."""

        game = self.game
        if self._check_ended(log):
            return
        stack = game.selected()
        if stack is not None and stack.id not in game.morale:
            hero = game.side(effective_side(game, stack)).hero
            if get_lucky(game, level_to_probability(hero.morale, self.rules)):
                game.morale.append(stack.id)
                game.attack_type = default_attack_type(stack)
                log.emit(Morale(stack_id=stack.id))
                return
        self._advance(log)

    def _advance(self, log: ResultLog, *, waited: bool = False) -> None:
        game = self.game
        current_id = game.selected_id
        if current_id is not None:
            side = self._acting_side(current_id)
            if side is not None:
                game.previous_side = side
            if not waited and current_id not in game.moved:
                game.moved.append(current_id)
        game.morale.clear()
        if self._check_ended(log):
            return

        head = next_in_queue(game, self.rules)
        if head.id in game.moved:
            self._next_round(log)
            head = next_in_queue(game, self.rules)
        self._start_turn(head, log)

    def _start_turn(self, stack: Stack, log: ResultLog) -> None:
        game = self.game
        game.selected_id = stack.id
        game.attack_type = default_attack_type(stack)
        side = effective_side(game, stack)
        log.emit(TurnStarted(stack_id=stack.id, side=side, round=game.round))
        logger.debug("round %d: stack %s (%s) of %s to act", game.round, int(stack.id), stack.type, side)

        position = position_of(game.grid, stack.id)
        if position is None or is_machine(stack):
            return
        fire_wall_hit(game, log, stack, position, self.rules)
        if game.stack(stack.id) is None:
            self._advance(log)

    def _next_round(self, log: ResultLog) -> None:
        game = self.game
        for stack in game.all_stacks():
            real = stack.real()
            kept = []
            for effect in real.effects:
                if effect.type is EffectType.FREEZE:
                    if effect.causer_id is None or game.stack(effect.causer_id) is not None:
                        kept.append(effect)
                    continue
                if effect.duration is None:
                    kept.append(effect)
                    continue
                effect.duration -= 1
                if effect.duration > 0:
                    kept.append(effect)
            real.effects = kept

        game.moved.clear()
        game.waited.clear()
        game.defended_attack.clear()
        game.morale.clear()
        game.heroes_casted_spell.clear()
        game.defenced_in_previous_round = game.defenced_in_current_round
        game.defenced_in_current_round = []

        for cell in advance_terrain(game.grid):
            spell = Spell.FIRE_WALL if cell.fire_wall else Spell.FORCE_FIELD
            log.emit(TerrainExpired(spell=spell, position=Position(cell.row, cell.column)))

        game.round += 1
        log.emit(RoundStarted(round=game.round))
        logger.debug("round %d started", game.round)

    # --- Movement and attacks ----------------------------------------------------

    def _release_frozen_around(self, stack: Stack, origin: Position) -> None:
        for cell in footprint(origin, width_of(stack)):
            for neighbor in adjacent_stacks(self.game, cell, excludes=[stack.id]):
                freeze = neighbor.effect(EffectType.FREEZE)
                if freeze is not None and freeze.causer_id == stack.id:
                    neighbor.remove_effect(EffectType.FREEZE)

    def _move(self, stack: Stack, destination: Position, log: ResultLog) -> None:
        game = self.game
        increase_seed(game, destination.row)
        increase_seed(game, destination.column)
        origin = position_of(game.grid, stack.id)
        if origin is None or origin == destination:
            return

        self._release_frozen_around(stack, origin)
        path = path_between(game, origin, destination, stack=stack) or [origin, destination]
        move_stack(game.grid, stack, destination)
        log.emit(Moved(stack_id=stack.id, path=path))

        burning = [destination] if can_fly(stack) else path[1:]
        for cell in burning:
            if game.stack(stack.id) is None:
                break
            fire_wall_hit(game, log, stack, cell, self.rules)

    def _attack_at(self, stack: Stack, target: Stack, standing: Position, log: ResultLog) -> None:
        game = self.game
        self._move(stack, standing, log)
        if game.stack(stack.id) is not None and game.stack(target.id) is not None:
            close_attack(game, log, stack, target, self.rules)
        self._finish_turn(log)

    def _melee_position(
        self,
        stack: Stack,
        target: Stack,
        target_position: Position,
        requested: Position | None,
    ) -> Position:
        """Where ``stack`` stands to hit ``target``; derived when not requested.

        A wide attacker given a cell right of the target in the same row is
        anchored one column further right so its trailing cell touches the
        target.
        """
        game = self.game
        current = position_of(game.grid, stack.id)
        if current is None:
            raise IllegalAction("attacker is not on the grid")
        width = width_of(stack)
        standing = set(step_targets(game, stack, self.rules)) | {current}
        target_cells = occupied_cells(game, target)

        def valid(anchor: Position) -> bool:
            if anchor not in standing:
                return False
            if anchor != current and not fits(game.grid, anchor, width, ignore=stack.id):
                return False
            return any(
                are_adjacent(cell, other) for cell in footprint(anchor, width) for other in target_cells
            )

        def resolve(candidate: Position) -> Position | None:
            if valid(candidate):
                return candidate
            if width > 1 and candidate.row == target_position.row and candidate.column > target_position.column:
                shifted = Position(candidate.row, candidate.column + 1)
                if valid(shifted):
                    return shifted
            return None

        if requested is not None:
            chosen = resolve(requested)
            if chosen is None:
                raise IllegalAction("cannot attack from the requested cell")
            return chosen

        candidates = sorted(
            neighbors_in_bounds(game.grid, target_position),
            key=lambda cell: (chebyshev_distance(cell, current), cell.row, cell.column),
        )
        candidates.insert(0, current)
        for candidate in candidates:
            chosen = resolve(candidate)
            if chosen is not None:
                return chosen
        raise IllegalAction("no cell to attack from")


Handler = Callable[[BattleEngine, Any, ResultLog], None]


# ---------------------------------------------------------------------------
# Registered action handlers


def _require_phase(game: Game, *phases: Phase) -> None:
    if game.phase not in phases:
        raise IllegalAction(f"not available in phase {game.phase}")


def _require_selected(game: Game) -> Stack:
    stack = game.selected()
    if stack is None:
        raise IllegalAction("no stack is selected")
    return stack


def _leave_spelling(game: Game) -> None:
    game.phase = Phase.BATTLE
    game.spell = None


def _tactic_move(engine: BattleEngine, stack: Stack, target: Position, log: ResultLog) -> None:
    game = engine.game
    if game.owner(stack).name is not game.tactic_side:
        raise IllegalAction("only the tactic side may reposition")
    if target not in tactic_targets(game, stack, engine.rules):
        raise IllegalAction("cell is outside the tactic area")
    engine._accept()
    origin = position_of(game.grid, stack.id)
    move_stack(game.grid, stack, target)
    log.emit(Moved(stack_id=stack.id, path=[origin, target] if origin is not None else [target]))


def _handle_select(engine: BattleEngine, action: Select, log: ResultLog) -> None:
    game = engine.game
    _require_phase(game, Phase.TACTIC)
    stack = stack_at(game, action.position)
    if stack is None or game.owner(stack).name is not game.tactic_side:
        raise IllegalAction("no stack of the tactic side there")
    engine._accept()
    game.selected_id = stack.id


def _handle_click_at(engine: BattleEngine, action: ClickAt, log: ResultLog) -> None:
    game = engine.game
    stack = _require_selected(game)
    if game.phase is Phase.TACTIC:
        _tactic_move(engine, stack, action.target, log)
        return
    _require_phase(game, Phase.BATTLE)

    reachable_cells = {hex_.position for hex_ in movement_targets(game, stack, engine.rules)}
    if action.target not in reachable_cells:
        raise IllegalAction("target is out of reach")
    target = stack_at(game, action.target)
    if target is not None:
        if target.id not in hostile_ids(game, stack):
            raise IllegalAction("cannot attack a friendly stack")
        standing = engine._melee_position(stack, target, action.target, action.next_position)
        engine._accept()
        engine._attack_at(stack, target, standing, log)
        return

    engine._accept()
    engine._move(stack, action.target, log)
    engine._finish_turn(log)


def _handle_move_to(engine: BattleEngine, action: MoveTo, log: ResultLog) -> None:
    game = engine.game
    stack = _require_selected(game)
    if game.phase is Phase.TACTIC:
        _tactic_move(engine, stack, action.position, log)
        return
    _require_phase(game, Phase.BATTLE)
    if action.position not in step_targets(game, stack, engine.rules):
        raise IllegalAction("cell is not reachable")
    engine._accept()
    engine._move(stack, action.position, log)
    engine._finish_turn(log)


def _handle_fire_at(engine: BattleEngine, action: FireAt, log: ResultLog) -> None:
    game = engine.game
    _require_phase(game, Phase.BATTLE)
    stack = _require_selected(game)
    if game.attack_type is not AttackType.FIRE or action.target not in fire_targets(game, stack):
        raise IllegalAction("not a valid shot")
    target = stack_at(game, action.target)
    if target is None:
        raise IllegalAction("nothing to shoot at")
    engine._accept()

    shoot(game, log, stack, target, engine.rules)
    if (
        can_fire_twice(stack)
        and game.stack(stack.id) is not None
        and game.stack(target.id) is not None
        and can_fire(stack)
    ):
        shoot(game, log, stack, target, engine.rules)
    engine._finish_turn(log)


def _handle_select_attack_type(engine: BattleEngine, action: SelectAttackType, log: ResultLog) -> None:
    game = engine.game
    _require_phase(game, Phase.BATTLE)
    stack = _require_selected(game)
    if action.attack_type is AttackType.FIRE and not can_fire_now(game, stack):
        raise IllegalAction("stack cannot shoot now")
    engine._accept()
    game.attack_type = action.attack_type


def _handle_cast_spell(engine: BattleEngine, action: CastSpell, log: ResultLog) -> None:
    game = engine.game
    _require_phase(game, Phase.BATTLE, Phase.GAME_SPELLING)
    stack = _require_selected(game)
    caster = game.side(effective_side(game, stack))
    if action.spell not in caster.spells:
        raise IllegalAction(f"{caster.hero.name} does not know {action.spell}")
    if caster.name in game.heroes_casted_spell:
        raise IllegalAction(f"{caster.hero.name} already cast a spell this round")
    targeted = needs_target(caster, action.spell, engine.rules)
    if targeted and not spell_targets(game, caster.name, action.spell):
        raise IllegalAction(f"no target for {action.spell}")
    engine._accept()

    if targeted:
        game.phase = Phase.GAME_SPELLING
        game.spell = action.spell
        return
    _leave_spelling(game)
    game.heroes_casted_spell.append(caster.name)
    cast_immediately(game, log, caster, action.spell, engine.rules)


def _handle_cast_spell_at(engine: BattleEngine, action: CastSpellAt, log: ResultLog) -> None:
    game = engine.game
    _require_phase(game, Phase.GAME_SPELLING)
    stack = _require_selected(game)
    spell = game.spell
    caster = game.side(effective_side(game, stack))
    if spell is None or action.position not in spell_targets(game, caster.name, spell):
        raise IllegalAction("not a valid spell target")
    engine._accept()

    game.heroes_casted_spell.append(caster.name)
    if spell is Spell.TELEPORT:
        teleported = stack_at(game, action.position)
        game.phase = Phase.STACK_TELEPORTING
        game.spell = None
        game.teleport_from = teleported.id if teleported is not None else None
        log.emit(SpellCast(side=caster.name, spell=spell, position=action.position))
        return
    _leave_spelling(game)
    cast_at(game, log, caster, spell, action.position, engine.rules)


def _handle_teleport_to(engine: BattleEngine, action: TeleportTo, log: ResultLog) -> None:
    game = engine.game
    _require_phase(game, Phase.STACK_TELEPORTING)
    stack = game.stack(game.teleport_from)
    if stack is None or action.target not in teleport_targets(game):
        raise IllegalAction("not a valid teleport destination")
    source = position_of(game.grid, stack.id)
    if source is None:
        raise IllegalAction("teleported stack is not on the grid")
    engine._accept()

    move_stack(game.grid, stack, action.target)
    log.emit(Teleported(stack_id=stack.id, source=source, target=action.target))
    game.phase = Phase.BATTLE
    game.teleport_from = None


def _handle_defend(engine: BattleEngine, action: Defend, log: ResultLog) -> None:
    game = engine.game
    _require_phase(game, Phase.BATTLE, Phase.GAME_SPELLING)
    stack = _require_selected(game)
    engine._accept()
    _leave_spelling(game)
    if stack.id not in game.defenced_in_current_round:
        game.defenced_in_current_round.append(stack.id)
    log.emit(Defended(stack_id=stack.id))
    engine._advance(log)


def _handle_wait(engine: BattleEngine, action: Wait, log: ResultLog) -> None:
    game = engine.game
    _require_phase(game, Phase.BATTLE, Phase.GAME_SPELLING)
    stack = _require_selected(game)
    if stack.id in game.waited:
        raise IllegalAction("a stack may wait once per round")
    engine._accept()
    _leave_spelling(game)
    game.waited.append(stack.id)
    log.emit(Waited(stack_id=stack.id))
    engine._advance(log, waited=True)


def _handle_end_turn(engine: BattleEngine, action: EndTurn, log: ResultLog) -> None:
    game = engine.game
    _require_phase(game, Phase.BATTLE, Phase.GAME_SPELLING)
    _require_selected(game)
    engine._accept()
    _leave_spelling(game)
    engine._advance(log)


def _handle_end_tactic(engine: BattleEngine, action: EndTactic, log: ResultLog) -> None:
    game = engine.game
    _require_phase(game, Phase.TACTIC)
    engine._accept()
    game.phase = Phase.BATTLE
    game.tactic_side = None
    game.tactic_level = 0
    game.selected_id = None
    engine._start_turn(next_in_queue(game, engine.rules), log)


def _handle_tend_wounded(engine: BattleEngine, action: TendWounded, log: ResultLog) -> None:
    game = engine.game
    _require_phase(game, Phase.BATTLE)
    stack = _require_selected(game)
    if stack.real().type is not UnitType.AID_TENT:
        raise IllegalAction("only an aid tent tends the wounded")
    target = stack_at(game, action.position)
    if target is None or target.is_clone or target.id in hostile_ids(game, stack):
        raise IllegalAction("no friendly stack to heal there")
    engine._accept()
    healed = heal(target, engine.rules.machines.aid_tent_heal)
    log.emit(Healed(stack_id=target.id, value=healed))
    engine._finish_turn(log)


_ACTION_HANDLERS: dict[str, Handler] = {
    "select": _handle_select,
    "click_at": _handle_click_at,
    "move_to": _handle_move_to,
    "fire_at": _handle_fire_at,
    "select_attack_type": _handle_select_attack_type,
    "cast_spell": _handle_cast_spell,
    "cast_spell_at": _handle_cast_spell_at,
    "teleport_to": _handle_teleport_to,
    "defend": _handle_defend,
    "wait": _handle_wait,
    "end_turn": _handle_end_turn,
    "end_tactic": _handle_end_tactic,
    "tend_wounded": _handle_tend_wounded,
}
