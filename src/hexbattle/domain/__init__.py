"""Rules layer of the hex battle.

This package holds the whole combat core and runs purely in memory.  It exposes:

* Dataclasses describing the battle session (see :mod:`models`).
* Enumerations, unit and spell tables, and rule configuration objects.
* Pure rule functions for the grid, derived stats, initiative, combat and magic.
* The :class:`~hexbattle.domain.engine.BattleEngine` that applies host actions.

A host owns one ``Game`` per battle and persists it through a thin repository
adapter; nothing in here keeps module-level state.
"""

from . import (
    actions,
    automation,
    combat,
    engine,
    enums,
    errors,
    grid,
    initiative,
    magic,
    models,
    pathfinding,
    rolls,
    rules_config,
    spells_data,
    stats,
    targeting,
    units_data,
)

__all__ = [
    "actions",
    "automation",
    "combat",
    "engine",
    "enums",
    "errors",
    "grid",
    "initiative",
    "magic",
    "models",
    "pathfinding",
    "rolls",
    "rules_config",
    "spells_data",
    "stats",
    "targeting",
    "units_data",
]
