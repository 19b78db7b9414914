"""JSON-based repository for battle records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import NewType

from pydantic import TypeAdapter

from hexbattle.domain.actions import Action
from hexbattle.domain.models import Game

BattleID = NewType("BattleID", int)


@dataclass(slots=True)
class BattleRecord:
    """A battle as the host keeps it.

    ``initial`` is the game as created, ``game`` the current state and
    ``actions`` every accepted host action in order.  Replaying the actions
    against ``initial`` reproduces ``game``.
    """

    id: BattleID
    initial: Game
    game: Game
    actions: list[Action] = field(default_factory=list)
    name: str = "battle"
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


RECORD_ADAPTER: TypeAdapter[BattleRecord] = TypeAdapter(BattleRecord)


class JsonBattleRepository:
    """Persist battle records as JSON snapshots on disk."""

    def __init__(self, base_path: Path) -> None:
        self.base_path = base_path
        self.base_path.mkdir(parents=True, exist_ok=True)
        self._adapter = RECORD_ADAPTER

    def _path_for(self, battle_id: BattleID) -> Path:
        return self.base_path / f"battle_{int(battle_id)}.json"

    def save(self, record: BattleRecord) -> Path:
        """Serialize a record to disk and return the snapshot path."""

        path = self._path_for(record.id)
        payload = self._adapter.dump_json(record, indent=2)
        path.write_bytes(payload)
        return path

    def load(self, battle_id: BattleID) -> BattleRecord:
        """Load a previously saved record; raises ``FileNotFoundError`` when absent."""

        path = self._path_for(battle_id)
        data = path.read_bytes()
        return self._adapter.validate_json(data)

    def list_battles(self) -> list[BattleID]:
        """Return all battle ids currently persisted in the repository."""

        ids: list[BattleID] = []
        prefix = "battle_"
        suffix = ".json"
        for path in self.base_path.glob("battle_*.json"):
            stem = path.name
            if stem.startswith(prefix) and stem.endswith(suffix):
                raw = stem[len(prefix) : -len(suffix)]
                try:
                    ids.append(BattleID(int(raw)))
                except ValueError:  # pragma: no cover - ignored malformed file
                    continue
        return sorted(ids, key=int)

    def next_id(self) -> BattleID:
        existing = self.list_battles()
        if not existing:
            return BattleID(1)
        return BattleID(int(existing[-1]) + 1)

    def delete(self, battle_id: BattleID) -> None:
        """Remove a record if it exists."""

        path = self._path_for(battle_id)
        if path.exists():
            path.unlink()
