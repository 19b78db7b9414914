"""Tests for the battle engine: validation, sequencing and turn flow."""

from __future__ import annotations

from builders import game, side, stack
from hexbattle.domain.actions import (
    BattleEnded,
    CastSpell,
    CastSpellAt,
    ClickAt,
    Defend,
    Defended,
    EndTactic,
    FireAt,
    Healed,
    Morale,
    Moved,
    MoveTo,
    ReceiveDamage,
    ReceiverDead,
    RoundStarted,
    Select,
    SpellCast,
    Teleported,
    TeleportTo,
    TurnStarted,
    Wait,
    Waited,
)
from hexbattle.domain.engine import BattleEngine, casualties
from hexbattle.domain.enums import EffectType, Phase, SideName, Spell, UnitType
from hexbattle.domain.grid import place_terrain, position_of
from hexbattle.domain.models import Effect, StackID
from hexbattle.factory import create_battle
from hexbattle.utils.hex_math import Position


def _duel(**ally_hero) -> BattleEngine:
    board = game(
        side(SideName.ALLY, stack(1, UnitType.ANGEL, 5), **ally_hero),
        side(SideName.FOE, stack(2, UnitType.DENDROID, 15)),
        {1: (0, 0), 2: (5, 10)},
        selected=1,
    )
    return BattleEngine(board)


def test_default_battle_settles_on_the_first_player_stack():
    engine = BattleEngine(create_battle())

    results = engine.settle()

    assert not engine.awaiting_completion
    assert engine.phase is Phase.BATTLE
    assert engine.selected is not None and int(engine.selected.id) == 1
    # the ballista opened fire and the foe dendroid advanced
    assert any(isinstance(result, ReceiveDamage) for result in results)
    assert position_of(engine.game.grid, StackID(5)) != Position(2, 14)


def test_illegal_actions_leave_the_game_untouched():
    engine = BattleEngine(create_battle())
    engine.settle()
    before = engine.snapshot()

    for action in (
        FireAt(target=Position(0, 14)),
        Select(position=Position(0, 0)),
        ClickAt(target=Position(0, 14)),
        CastSpell(spell=Spell.ARROW),
        CastSpellAt(position=Position(0, 14)),
        EndTactic(),
    ):
        step = engine.submit(action)
        assert step is not None and not step.accepted

    assert engine.snapshot() == before


def test_snapshot_round_trips():
    engine = BattleEngine(create_battle())
    engine.settle()

    restored = BattleEngine.from_snapshot(engine.snapshot())

    assert restored.snapshot() == engine.snapshot()
    assert [int(s.id) for s in restored.queue()] == [int(s.id) for s in engine.queue()]


def test_input_is_queued_while_a_step_plays():
    engine = _duel()

    first = engine.submit(Defend())
    assert first is not None and first.accepted
    assert engine.awaiting_completion
    assert engine.submit(Defend()) is None

    second = engine.complete()
    assert second is not None
    assert second.results[0] == Defended(stack_id=StackID(2))
    assert engine.complete() is None


def test_killing_the_last_fighter_ends_the_battle():
    board = game(
        side(SideName.ALLY, stack(1, UnitType.DENDROID, 15)),
        side(SideName.FOE, stack(2, UnitType.ARCHER), stack(3, UnitType.BALLISTA)),
        {1: (5, 5), 2: (5, 6)},
        selected=1,
    )
    board.stack(2).last_health = 1
    engine = BattleEngine(board)
    assert engine.casualties() is None

    results = engine.run(ClickAt(target=Position(5, 6)))

    assert isinstance(results[0], ReceiverDead)
    assert isinstance(results[-1], BattleEnded)
    assert engine.phase is Phase.ENDED
    assert engine.game.winner is SideName.ALLY
    assert engine.casualties() == {SideName.ALLY: {}, SideName.FOE: {UnitType.ARCHER: 1}}
    assert engine.legal_targets() == []
    assert engine.run(Defend()) == []


def test_round_rollover_decays_effects():
    engine = _duel()
    angel = engine.game.stack(StackID(1))
    angel.add_effect(Effect(EffectType.SLOW, duration=1, value=1))
    angel.add_effect(Effect(EffectType.BLESS, duration=3, value=2))

    first = engine.run(Defend())
    assert first == [
        Defended(stack_id=StackID(1)),
        TurnStarted(stack_id=StackID(2), side=SideName.FOE, round=1),
    ]

    second = engine.run(Defend())

    assert second == [
        Defended(stack_id=StackID(2)),
        RoundStarted(round=2),
        TurnStarted(stack_id=StackID(1), side=SideName.ALLY, round=2),
    ]
    assert not angel.has_effect(EffectType.SLOW)
    assert angel.effect(EffectType.BLESS).duration == 2
    assert engine.game.round == 2
    assert engine.game.defenced_in_previous_round == [StackID(1), StackID(2)]
    assert engine.game.moved == []


def test_waiting_defers_the_turn_once_per_round():
    engine = _duel()

    assert engine.run(Wait()) == [
        Waited(stack_id=StackID(1)),
        TurnStarted(stack_id=StackID(2), side=SideName.FOE, round=1),
    ]
    engine.run(Defend())
    assert int(engine.selected.id) == 1
    assert engine.game.round == 1

    seed = engine.game.seed
    assert engine.run(Wait()) == []
    assert engine.game.seed == seed


def test_accepted_actions_advance_the_seed():
    engine = _duel()
    engine.run(Defend())
    # one for the action and one per emitted result
    assert engine.game.seed == 16 + 1 + 2


def test_high_morale_grants_one_extra_action():
    engine = _duel(morale=4.0)

    first = engine.run(MoveTo(position=Position(0, 1)))
    assert [type(result) for result in first] == [Moved, Morale]
    assert int(engine.selected.id) == 1

    second = engine.run(MoveTo(position=Position(0, 2)))
    assert [type(result) for result in second] == [Moved, TurnStarted]
    assert int(engine.selected.id) == 2


def test_targeted_spell_goes_through_the_spelling_phase():
    engine = _duel(spells=[Spell.ARROW])

    assert engine.run(CastSpell(spell=Spell.ARROW)) == []
    assert engine.phase is Phase.GAME_SPELLING
    assert engine.legal_targets() == [Position(5, 10)]

    results = engine.run(CastSpellAt(position=Position(5, 10)))

    assert results == [
        SpellCast(side=SideName.ALLY, spell=Spell.ARROW, position=Position(5, 10)),
        ReceiveDamage(receiver_id=StackID(2), damage=30),
    ]
    assert engine.phase is Phase.BATTLE
    assert int(engine.selected.id) == 1
    assert engine.game.heroes_casted_spell == [SideName.ALLY]
    # one spell per hero per round
    step = engine.submit(CastSpell(spell=Spell.ARROW))
    assert step is not None and not step.accepted


def test_defending_cancels_a_pending_spell():
    engine = _duel(spells=[Spell.ARROW])
    engine.run(CastSpell(spell=Spell.ARROW))

    results = engine.run(Defend())

    assert results[0] == Defended(stack_id=StackID(1))
    assert engine.game.spell is None
    assert engine.game.heroes_casted_spell == []


def test_tactic_phase_rearranges_without_touching_the_seed():
    board = game(
        side(SideName.ALLY, stack(1, UnitType.ANGEL)),
        side(SideName.FOE, stack(2, UnitType.DENDROID)),
        {1: (0, 0), 2: (0, 14)},
        selected=1,
        phase=Phase.TACTIC,
    )
    board.tactic_side = SideName.ALLY
    engine = BattleEngine(board)

    assert engine.run(Select(position=Position(0, 14))) == []
    assert engine.run(MoveTo(position=Position(3, 5))) == []
    moved = engine.run(MoveTo(position=Position(3, 1)))
    assert moved == [Moved(stack_id=StackID(1), path=[Position(0, 0), Position(3, 1)])]
    assert engine.game.seed == 16

    started = engine.run(EndTactic())

    assert started == [TurnStarted(stack_id=StackID(1), side=SideName.ALLY, round=1)]
    assert engine.phase is Phase.BATTLE
    assert engine.game.tactic_side is None


def test_aid_tent_heals_the_most_wounded_friend():
    board = game(
        side(SideName.ALLY, stack(1, UnitType.ANGEL, 5), stack(3, UnitType.AID_TENT)),
        side(SideName.FOE, stack(2, UnitType.DENDROID)),
        {1: (0, 0), 2: (0, 14)},
        selected=3,
    )
    board.stack(1).last_health = 100
    engine = BattleEngine(board)

    results = engine.settle()

    assert results[0] == Healed(stack_id=StackID(1), value=30)
    assert board.stack(1).last_health == 130
    assert int(engine.selected.id) == 1


def test_casualties_skip_clones_and_count_the_dead():
    board = game(
        side(SideName.ALLY, stack(1, UnitType.ANGEL, 5)),
        side(SideName.FOE, stack(2, UnitType.DENDROID, 15)),
        {1: (0, 0), 2: (0, 14)},
    )
    board.stack(1).count = 2
    report = casualties(board)
    assert report == {SideName.ALLY: {UnitType.ANGEL: 3}, SideName.FOE: {}}


def test_walking_through_a_fire_wall_burns():
    board = game(
        side(SideName.ALLY, stack(1, UnitType.PIKEMAN, 10)),
        side(SideName.FOE, stack(2, UnitType.DENDROID)),
        {1: (5, 5), 2: (0, 14)},
        selected=1,
    )
    place_terrain(board.grid, Position(5, 6), fire_wall=True, caster=SideName.FOE, rounds=3)
    engine = BattleEngine(board)

    results = engine.run(MoveTo(position=Position(5, 7)))

    assert results[0] == Moved(
        stack_id=StackID(1), path=[Position(5, 5), Position(5, 6), Position(5, 7)]
    )
    assert results[1] == ReceiveDamage(receiver_id=StackID(1), damage=20)
    assert board.stack(1).count == 9 and board.stack(1).last_health == 2


def test_starting_a_turn_on_a_fire_wall_burns():
    engine = _duel()
    place_terrain(engine.game.grid, Position(5, 10), fire_wall=True, caster=SideName.ALLY, rounds=3)

    results = engine.run(Defend())

    assert results == [
        Defended(stack_id=StackID(1)),
        TurnStarted(stack_id=StackID(2), side=SideName.FOE, round=1),
        ReceiveDamage(receiver_id=StackID(2), damage=20),
    ]


def test_teleport_picks_a_stack_then_a_destination():
    engine = _duel(spells=[Spell.TELEPORT])

    assert engine.run(CastSpell(spell=Spell.TELEPORT)) == []
    assert engine.phase is Phase.GAME_SPELLING

    picked = engine.run(CastSpellAt(position=Position(0, 0)))
    assert picked == [SpellCast(side=SideName.ALLY, spell=Spell.TELEPORT, position=Position(0, 0))]
    assert engine.phase is Phase.STACK_TELEPORTING
    assert Position(3, 3) in engine.legal_targets()
    assert Position(5, 10) not in engine.legal_targets()

    step = engine.submit(TeleportTo(target=Position(5, 10)))
    assert step is not None and not step.accepted

    moved = engine.run(TeleportTo(target=Position(3, 3)))

    assert moved == [Teleported(stack_id=StackID(1), source=Position(0, 0), target=Position(3, 3))]
    assert engine.phase is Phase.BATTLE
    assert position_of(engine.game.grid, StackID(1)) == Position(3, 3)
    assert int(engine.selected.id) == 1
    assert engine.game.heroes_casted_spell == [SideName.ALLY]
