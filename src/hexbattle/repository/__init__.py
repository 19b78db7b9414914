"""Persistence adapters for battle records."""

from hexbattle.repository.json_store import (
    RECORD_ADAPTER,
    BattleID,
    BattleRecord,
    JsonBattleRepository,
)

__all__ = [
    "RECORD_ADAPTER",
    "BattleID",
    "BattleRecord",
    "JsonBattleRepository",
]
