"""Runtime primitives backing the hexbattle HTTP API."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from hexbattle import savegame
from hexbattle.config import Settings, get_settings
from hexbattle.domain.actions import RESULT_LIST_ADAPTER
from hexbattle.domain.engine import BattleEngine, Casualties
from hexbattle.domain.grid import position_of
from hexbattle.domain.models import Game, Side, Stack
from hexbattle.domain.rules_config import DEFAULT_RULES, RulesConfig
from hexbattle.domain.stats import effective_side
from hexbattle.factory import create_battle
from hexbattle.repository import BattleID, BattleRecord, JsonBattleRepository
from hexbattle.utils.hex_math import Position

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ActionOutcome:
    """What one submitted host action did to a battle."""

    record: BattleRecord
    accepted: bool
    results: list[Any] = field(default_factory=list)


def _position_dict(position: Position | None) -> dict[str, int] | None:
    if position is None:
        return None
    return {"row": position.row, "column": position.column}


class BattleService:
    """Utilities for loading, creating and advancing battle records."""

    def __init__(self, repository: JsonBattleRepository, *, rules: RulesConfig = DEFAULT_RULES) -> None:
        self._repository = repository
        self._rules = rules

    @property
    def rules(self) -> RulesConfig:
        return self._rules

    def list_battles(self) -> list[BattleRecord]:
        """Return every persisted battle ordered by identifier."""

        records: list[BattleRecord] = []
        for battle_id in self._repository.list_battles():
            with suppress(FileNotFoundError):
                records.append(self._repository.load(battle_id))
        return records

    def get_battle(self, battle_id: BattleID) -> BattleRecord:
        """Load a single battle or raise ``FileNotFoundError``."""

        return self._repository.load(battle_id)

    def create_battle(self, name: str = "battle", *, seed: int | None = None) -> BattleRecord:
        """Create the default scenario, play any opening automatic turns and persist it."""

        game = create_battle(seed=seed, rules=self._rules)
        record = BattleRecord(
            id=self._repository.next_id(),
            initial=savegame.copy_game(game),
            game=game,
            name=name,
        )
        BattleEngine(game, self._rules).settle()
        self._repository.save(record)
        logger.info("created battle %s with seed %d", int(record.id), record.initial.seed)
        return record

    def apply_action(self, battle_id: BattleID, action: Any) -> ActionOutcome:
        """Apply one host action headlessly and record it when accepted."""

        record = self.get_battle(battle_id)
        engine = BattleEngine(record.game, self._rules)
        results = engine.settle()
        step = engine.submit(action)
        accepted = step is not None and step.accepted
        if step is not None:
            results.extend(step.results)
        results.extend(engine.settle())
        if accepted:
            record.actions.append(action)
        self._repository.save(record)
        return ActionOutcome(record=record, accepted=accepted, results=results)

    def queue(self, record: BattleRecord) -> list[dict[str, object]]:
        engine = BattleEngine(record.game, self._rules)
        return [self.to_stack_dict(record.game, stack) for stack in engine.queue()]

    def legal_targets(self, record: BattleRecord) -> list[dict[str, int]]:
        engine = BattleEngine(record.game, self._rules)
        return [_position_dict(position) for position in engine.legal_targets()]

    def casualties(self, record: BattleRecord) -> Casualties | None:
        return BattleEngine(record.game, self._rules).casualties()

    def import_from_manifest(
        self,
        manifest: savegame.SaveManifest,
        *,
        assign_new_id: bool = True,
    ) -> BattleRecord:
        """Persist a battle described by a savegame manifest."""

        if assign_new_id:
            next_id = self._repository.next_id()
            record = savegame.import_battle_from_manifest(
                manifest, assign_new_id=True, next_id=int(next_id), rules=self._rules
            )
        else:
            record = savegame.import_battle_from_manifest(manifest, rules=self._rules)
        self._repository.save(record)
        return record

    def import_from_file(self, manifest_path: Path | str, *, assign_new_id: bool = True) -> BattleRecord:
        """Load a `.hexbattle` archive and persist the contained battle."""

        manifest = savegame.load_manifest(manifest_path)
        return self.import_from_manifest(manifest, assign_new_id=assign_new_id)

    def export_battle(
        self,
        battle_id: BattleID,
        *,
        metadata: savegame.SaveMetadata | None = None,
    ) -> savegame.SaveManifest:
        """Produce a save manifest for the requested battle."""

        record = self.get_battle(battle_id)
        return savegame.export_battle(record, metadata=metadata)

    @staticmethod
    def to_summary_dict(record: BattleRecord) -> dict[str, object]:
        """Return a JSON-friendly overview of a battle."""

        game = record.game
        return {
            "id": int(record.id),
            "name": record.name,
            "created_at": record.created_at,
            "phase": str(game.phase),
            "round": game.round,
            "seed": game.seed,
            "selected_id": int(game.selected_id) if game.selected_id is not None else None,
            "winner": str(game.winner) if game.winner is not None else None,
            "action_count": len(record.actions),
        }

    @staticmethod
    def to_stack_dict(game: Game, stack: Stack) -> dict[str, object]:
        return {
            "id": int(stack.id),
            "type": str(stack.type),
            "copied_type": str(stack.copied.type) if stack.copied is not None else None,
            "count": stack.real().count,
            "last_health": stack.real().last_health,
            "initial_count": stack.initial_count,
            "side": str(effective_side(game, stack)),
            "position": _position_dict(position_of(game.grid, stack.id)),
            "arrows_left": stack.real().arrows_left,
            "effects": [
                {"type": str(effect.type), "duration": effect.duration, "value": effect.value}
                for effect in stack.real().effects
            ],
        }

    @staticmethod
    def to_side_dict(game: Game, side: Side) -> dict[str, object]:
        return {
            "hero": side.hero.name,
            "controller": str(side.controller),
            "spells": [str(spell) for spell in side.spells],
            "skills": {str(skill.type): skill.level for skill in side.skills},
            "army": [BattleService.to_stack_dict(game, stack) for stack in side.army],
        }

    @staticmethod
    def to_detail_dict(record: BattleRecord) -> dict[str, object]:
        """Return a richer JSON-compatible representation for clients."""

        game = record.game
        summary = BattleService.to_summary_dict(record)
        summary.update(
            {
                "sides": {str(side.name): BattleService.to_side_dict(game, side) for side in game.sides()},
                "spell": str(game.spell) if game.spell is not None else None,
                "attack_type": str(game.attack_type) if game.attack_type is not None else None,
                "terrain": [
                    {
                        "row": cell.row,
                        "column": cell.column,
                        "kind": "fireWall" if cell.fire_wall else str(cell.obstacle),
                        "state": str(cell.terrain_state) if cell.terrain_state is not None else None,
                        "rounds_left": cell.rounds_left,
                    }
                    for cell in game.grid.cells
                    if cell.has_terrain
                ],
            }
        )
        return summary

    @staticmethod
    def results_payload(results: list[Any]) -> list[dict[str, Any]]:
        return RESULT_LIST_ADAPTER.dump_python(results, mode="json")


class BattleManager:
    """Serializes actions per battle and runs them off the event loop.

    A battle's lock lives only while actions for it are running or waiting.
    """

    def __init__(self, service: BattleService) -> None:
        self._service = service
        self._locks: dict[BattleID, asyncio.Lock] = {}
        self._pending: dict[BattleID, int] = {}

    @property
    def active_battles(self) -> frozenset[BattleID]:
        """Battles with an action running or queued."""
        return frozenset(self._locks)

    def _lock_for(self, battle_id: BattleID) -> asyncio.Lock:
        lock = self._locks.get(battle_id)
        if lock is None:
            lock = self._locks[battle_id] = asyncio.Lock()
        return lock

    async def submit(self, battle_id: BattleID, action: Any) -> ActionOutcome | None:
        """Apply ``action`` to a battle; None when the battle does not exist."""

        lock = self._lock_for(battle_id)
        self._pending[battle_id] = self._pending.get(battle_id, 0) + 1
        try:
            async with lock:
                return await asyncio.to_thread(self._submit_sync, battle_id, action)
        finally:
            self._pending[battle_id] -= 1
            if not self._pending[battle_id]:
                del self._pending[battle_id]
                self._locks.pop(battle_id, None)

    def _submit_sync(self, battle_id: BattleID, action: Any) -> ActionOutcome | None:
        try:
            return self._service.apply_action(battle_id, action)
        except FileNotFoundError:
            logger.warning("battle %s missing from repository; action dropped", int(battle_id))
            return None

    async def stop(self) -> None:
        """Wait for in-flight actions to finish."""

        for lock in list(self._locks.values()):
            async with lock:
                pass


class ApiState:
    """Aggregated services shared by the FastAPI layer."""

    def __init__(self, *, settings: Settings | None = None, rules: RulesConfig | None = None) -> None:
        self.settings = settings or get_settings()
        self.repository = JsonBattleRepository(self.settings.data_dir)
        self.rules = rules or self.settings.rules()
        self.battles = BattleService(self.repository, rules=self.rules)
        self.actions = BattleManager(self.battles)

    async def shutdown(self) -> None:
        await self.actions.stop()


def build_state() -> ApiState:
    """Factory used by the API to initialize state."""

    return ApiState()
