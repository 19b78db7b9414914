"""Turn order within a round.

Stacks fall into three buckets: not yet acted, waited, and moved.  A stack
that appears in ``moved`` is always in the moved bucket, even if it waited
first.  Buckets are emitted in that order; inside each, machines go first and
the remaining stacks follow by descending speed.  A speed group that mixes
both sides alternates between them, opening with the side that did not act
last.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from dataclasses import dataclass

from hexbattle.domain.enums import Phase, SideName
from hexbattle.domain.errors import InvariantViolation
from hexbattle.domain.models import Game, Stack, StackID
from hexbattle.domain.rules_config import DEFAULT_RULES, RulesConfig
from hexbattle.domain.stats import effective_side, is_machine, speed_of


@dataclass(slots=True)
class QueueEntry:
    """A stack with the speed and side it is ordered by."""

    stack: Stack
    speed: int
    side: SideName


def _order_bucket(
    entries: Sequence[QueueEntry],
    result: list[QueueEntry],
    previous_side: SideName | None,
) -> None:
    machines = [entry for entry in entries if is_machine(entry.stack)]
    result.extend(machines)

    groups: dict[int, list[QueueEntry]] = {}
    for entry in entries:
        if is_machine(entry.stack):
            continue
        groups.setdefault(entry.speed, []).append(entry)

    for speed in sorted(groups, reverse=True):
        group = groups[speed]
        allies = [entry for entry in group if entry.side is SideName.ALLY]
        foes = [entry for entry in group if entry.side is SideName.FOE]
        if not allies or not foes:
            result.extend(group)
            continue

        last_side = result[-1].side if result else previous_side
        turn = SideName.FOE if last_side is SideName.ALLY else SideName.ALLY
        while allies or foes:
            pool = allies if turn is SideName.ALLY else foes
            if pool:
                result.append(pool.pop(0))
            turn = turn.opponent


def order_queue(
    entries: Sequence[QueueEntry],
    *,
    waited: Collection[StackID] = (),
    moved: Collection[StackID] = (),
    previous_side: SideName | None = None,
) -> list[Stack]:
    """Order stacks for the rest of the round.

    Args:
        entries: Candidate stacks in army order (ally army first)
        waited: Ids of stacks that deferred their turn
        moved: Ids of stacks that already acted
        previous_side: Side of the last actor; alternation opens with its
            opponent, and with the ally side when None

    Returns:
        Every candidate exactly once, in acting order
    """
    fresh: list[QueueEntry] = []
    deferred: list[QueueEntry] = []
    done: list[QueueEntry] = []
    for entry in entries:
        if entry.stack.id in moved:
            done.append(entry)
        elif entry.stack.id in waited:
            deferred.append(entry)
        else:
            fresh.append(entry)

    result: list[QueueEntry] = []
    _order_bucket(fresh, result, previous_side)
    _order_bucket(deferred, result, previous_side)
    _order_bucket(done, result, previous_side)
    return [entry.stack for entry in result]


def queue_entries(game: Game, rules: RulesConfig = DEFAULT_RULES) -> list[QueueEntry]:
    if game.phase is Phase.ENDED:
        return []
    if game.phase is Phase.TACTIC and game.tactic_side is not None:
        sides = [game.side(game.tactic_side)]
    else:
        sides = list(game.sides())
    return [
        QueueEntry(stack=stack, speed=speed_of(stack, rules), side=effective_side(game, stack))
        for side in sides
        for stack in side.army
    ]


def game_queue(
    game: Game,
    rules: RulesConfig = DEFAULT_RULES,
    *,
    extra_moved: Collection[StackID] = (),
) -> list[Stack]:
    """Current initiative order of the session."""

    return order_queue(
        queue_entries(game, rules),
        waited=game.waited,
        moved=[*game.moved, *extra_moved],
        previous_side=game.previous_side,
    )


def next_in_queue(
    game: Game,
    rules: RulesConfig = DEFAULT_RULES,
    *,
    extra_moved: Collection[StackID] = (),
) -> Stack:
    queue = game_queue(game, rules, extra_moved=extra_moved)
    if not queue:
        raise InvariantViolation("initiative queue is empty while the battle is running")
    return queue[0]
