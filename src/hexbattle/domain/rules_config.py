"""Declarative rule configuration for the battle domain."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class GridRules:
    """Battlefield dimensions."""

    rows: int = 11
    columns: int = 15

    @property
    def last_row(self) -> int:
        return self.rows - 1

    @property
    def last_column(self) -> int:
        return self.columns - 1


@dataclass(frozen=True, slots=True)
class StatRules:
    """Bounds and bonuses for derived stack stats."""

    min_speed: int = 1
    max_speed: int = 14
    defend_bonus: float = 1.1


@dataclass(frozen=True, slots=True)
class CombatRules:
    """Damage formula constants."""

    hate_multiplier: float = 1.2
    rage_multiplier: float = 1.25
    luck_multiplier: float = 2.0
    differential_limit: int = 9
    differential_divisor: int = 10
    vampire_drain: float = 0.2
    griffin_retaliations: int = 2
    default_retaliations: int = 1
    breath_reach: float = 2.0  # hex widths from the attacker
    air_shield_minor: float = 0.25  # reduction at magnitude 1
    air_shield_major: float = 0.5


@dataclass(frozen=True, slots=True)
class MagicRules:
    """Spell magnitudes, chains and terrain lifetime."""

    effect_flat_bonus: int = 3
    luck_per_level: float = 0.25
    expert_level: int = 3
    lightning_targets: int = 5
    meteor_radius: int = 1
    max_reflections: int = 8


@dataclass(frozen=True, slots=True)
class MachineRules:
    """War machine constants."""

    aid_tent_heal: int = 30
    ballista_arrows: int = 20


@dataclass(frozen=True, slots=True)
class ChaseRules:
    """Policy for automatic chasing.

    ``max_chasing_activations`` caps how many consecutive activations a stack
    may spend closing distance without landing an attack before it gives up
    and defends. ``None`` chases forever.
    """

    max_chasing_activations: int | None = None


@dataclass(frozen=True, slots=True)
class RulesConfig:
    """Top-level configuration container for all subsystems."""

    grid: GridRules = GridRules()
    stats: StatRules = StatRules()
    combat: CombatRules = CombatRules()
    magic: MagicRules = MagicRules()
    machines: MachineRules = MachineRules()
    chase: ChaseRules = ChaseRules()
    default_seed: int = 16


DEFAULT_RULES = RulesConfig()
