"""Import, export and replay helpers for hexbattle save files."""

from __future__ import annotations

import io
import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4
from zipfile import ZIP_DEFLATED, ZipFile

from pydantic import BaseModel, Field, model_validator

from hexbattle.domain.engine import GAME_ADAPTER, BattleEngine
from hexbattle.domain.models import Game
from hexbattle.domain.rules_config import DEFAULT_RULES, RulesConfig
from hexbattle.repository import RECORD_ADAPTER, BattleID, BattleRecord

logger = logging.getLogger(__name__)


class ReplayMismatch(RuntimeError):
    """Raised when replaying an action log does not reproduce the recorded game."""


class SaveMetadata(BaseModel):
    """High-level information about the packaged battle."""

    id: UUID = Field(default_factory=uuid4)
    name: str
    description: str | None = None
    author: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    game_version: str = "0.1.0"


class SaveManifest(BaseModel):
    """Top-level manifest stored in a `.hexbattle` archive."""

    format_version: int = 1
    metadata: SaveMetadata
    record: BattleRecord

    @model_validator(mode="before")
    @classmethod
    def _convert_record(cls, values: dict[str, Any]) -> dict[str, Any]:
        raw = values.get("record")
        if raw is not None and not isinstance(raw, BattleRecord):
            values["record"] = RECORD_ADAPTER.validate_python(raw)
        return values

    def model_dump(self, *args: Any, **kwargs: Any) -> dict[str, Any]:
        data = super().model_dump(*args, **kwargs)
        data["record"] = RECORD_ADAPTER.dump_python(self.record, mode="json")
        return data


MANIFEST_PATH = "hexbattle/manifest.json"


def _manifest_payload(manifest: SaveManifest) -> bytes:
    return json.dumps(
        manifest.model_dump(mode="json"),
        indent=2,
        sort_keys=True,
    ).encode("utf-8")


def load_manifest(path: Path | str) -> SaveManifest:
    """Load a savegame manifest from a `.hexbattle` archive."""

    zip_path = Path(path)
    with ZipFile(zip_path, "r") as archive:
        try:
            with archive.open(MANIFEST_PATH) as manifest_file:
                payload = json.load(manifest_file)
        except KeyError as exc:  # pragma: no cover - invalid archive
            raise FileNotFoundError("manifest.json not found in archive") from exc
    return SaveManifest.model_validate(payload)


def save_manifest(manifest: SaveManifest, path: Path | str) -> Path:
    """Write a manifest to a `.hexbattle` archive."""

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with ZipFile(target, "w", ZIP_DEFLATED) as archive:
        archive.writestr(MANIFEST_PATH, _manifest_payload(manifest))
    return target


def manifest_archive(manifest: SaveManifest) -> bytes:
    """Return the `.hexbattle` archive for a manifest as bytes."""

    buffer = io.BytesIO()
    with ZipFile(buffer, "w", ZIP_DEFLATED) as archive:
        archive.writestr(MANIFEST_PATH, _manifest_payload(manifest))
    return buffer.getvalue()


def export_battle(record: BattleRecord, *, metadata: SaveMetadata | None = None) -> SaveManifest:
    """Produce a manifest from an in-memory battle record."""

    return SaveManifest(metadata=metadata or SaveMetadata(name=record.name), record=record)


def import_battle_from_manifest(
    manifest: SaveManifest,
    *,
    assign_new_id: bool = False,
    next_id: int | None = None,
    rules: RulesConfig = DEFAULT_RULES,
) -> BattleRecord:
    """Return the record carried by a manifest after checking that it replays.

    Parameters
    ----------
    manifest:
        The loaded manifest describing the battle.
    assign_new_id:
        When `True`, the record adopts `next_id`, or the id following the
        stored one when `next_id` is not given.
    next_id:
        Optional explicit battle identifier to use when `assign_new_id` is
        `True`.
    """

    record = manifest.record
    verify_replay(record, rules=rules)
    if assign_new_id:
        record.id = BattleID(next_id if next_id is not None else int(record.id) + 1)
    return record


def copy_game(game: Game) -> Game:
    return GAME_ADAPTER.validate_python(GAME_ADAPTER.dump_python(game))


def replay(record: BattleRecord, *, rules: RulesConfig = DEFAULT_RULES) -> Game:
    """Re-apply the action log to the initial snapshot and return the resulting game."""

    engine = BattleEngine(copy_game(record.initial), rules)
    engine.settle()
    for action in record.actions:
        engine.run(action)
    return engine.game


def verify_replay(record: BattleRecord, *, rules: RulesConfig = DEFAULT_RULES) -> Game:
    """Replay ``record`` and raise :class:`ReplayMismatch` unless it lands on ``record.game``."""

    replayed = replay(record, rules=rules)
    expected = GAME_ADAPTER.dump_python(record.game, mode="json")
    if GAME_ADAPTER.dump_python(replayed, mode="json") != expected:
        logger.warning("battle %s does not replay to its recorded state", int(record.id))
        raise ReplayMismatch(f"battle {int(record.id)} does not replay to its recorded state")
    return replayed
