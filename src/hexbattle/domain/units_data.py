"""Static unit roster for the battle domain.

Every real unit type has one immutable profile. Clones have no profile of
their own; they forward every lookup to the stack they copy.
"""

from __future__ import annotations

from dataclasses import dataclass

from hexbattle.domain.enums import UnitKind, UnitType


@dataclass(frozen=True, slots=True)
class DamageRange:
    """Per-unit damage bounds for one attack type."""

    min: int
    max: int


NO_DAMAGE = DamageRange(0, 0)


@dataclass(frozen=True, slots=True)
class UnitProfile:
    """Base attributes of a unit type before effects are applied."""

    speed: int
    health: int
    defence: int
    hand: DamageRange
    fire: DamageRange = NO_DAMAGE
    kind: UnitKind = UnitKind.ALIVE
    width: int = 1
    can_fly: bool = False
    fires_twice: bool = False

    @property
    def can_fire(self) -> bool:
        return self.fire != NO_DAMAGE


UNIT_PROFILES: dict[UnitType, UnitProfile] = {
    UnitType.BALLISTA: UnitProfile(
        speed=0, health=120, defence=8, hand=NO_DAMAGE, fire=DamageRange(20, 30), kind=UnitKind.MACHINE
    ),
    UnitType.AID_TENT: UnitProfile(
        speed=0, health=200, defence=3, hand=NO_DAMAGE, kind=UnitKind.MACHINE
    ),
    UnitType.GARGOYLE: UnitProfile(
        speed=7, health=25, defence=4, hand=DamageRange(10, 20), kind=UnitKind.STONE
    ),
    UnitType.GRIFFIN: UnitProfile(
        speed=10, health=35, defence=5, hand=DamageRange(10, 40), can_fly=True
    ),
    UnitType.VAMPIRE: UnitProfile(
        speed=8, health=50, defence=5, hand=DamageRange(15, 30), kind=UnitKind.UNDEAD
    ),
    UnitType.PIKEMAN: UnitProfile(speed=6, health=11, defence=4, hand=DamageRange(4, 6)),
    UnitType.ARCHER: UnitProfile(
        speed=5, health=12, defence=4, hand=DamageRange(2, 5), fire=DamageRange(6, 9)
    ),
    UnitType.ENHANCED_ARCHER: UnitProfile(
        speed=7,
        health=8,
        defence=6,
        hand=DamageRange(4, 7),
        fire=DamageRange(12, 16),
        fires_twice=True,
    ),
    UnitType.AIR_ELEMENT: UnitProfile(
        speed=8, health=70, defence=7, hand=DamageRange(10, 35), kind=UnitKind.NATURE
    ),
    UnitType.FIRE_ELEMENT: UnitProfile(
        speed=7, health=75, defence=6, hand=DamageRange(15, 35), kind=UnitKind.NATURE
    ),
    UnitType.WATER_ELEMENT: UnitProfile(
        speed=7, health=80, defence=5, hand=DamageRange(20, 25), kind=UnitKind.NATURE
    ),
    UnitType.EARTH_ELEMENT: UnitProfile(
        speed=5, health=100, defence=8, hand=DamageRange(35, 45), kind=UnitKind.NATURE
    ),
    UnitType.DENDROID: UnitProfile(speed=10, health=40, defence=7, hand=DamageRange(5, 10)),
    UnitType.ZOMBIE: UnitProfile(
        speed=2, health=10, defence=3, hand=DamageRange(3, 6), kind=UnitKind.UNDEAD
    ),
    UnitType.DRAGON: UnitProfile(
        speed=11, health=200, defence=8, hand=DamageRange(30, 60), width=2, can_fly=True
    ),
    UnitType.DEVIL: UnitProfile(speed=10, health=190, defence=7, hand=DamageRange(40, 50)),
    UnitType.ANGEL: UnitProfile(
        speed=12, health=180, defence=10, hand=DamageRange(50, 50), can_fly=True
    ),
}

# Attacker type -> the defender type it deals bonus damage to
HATES: dict[UnitType, UnitType] = {
    UnitType.ANGEL: UnitType.DEVIL,
    UnitType.DEVIL: UnitType.ANGEL,
}

# Defenders that never strike back
NO_RETALIATION: frozenset[UnitType] = frozenset({UnitType.VAMPIRE, UnitType.DEVIL})

# Units that breathe through their target
BREATH_ATTACKERS: frozenset[UnitType] = frozenset({UnitType.DRAGON})

# Units whose melee attacks immobilize the target
BINDING_ATTACKERS: frozenset[UnitType] = frozenset({UnitType.DENDROID})

# Units that drain life from living targets
DRAINING_ATTACKERS: frozenset[UnitType] = frozenset({UnitType.VAMPIRE})
