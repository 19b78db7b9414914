"""Enumerations for the battle domain."""

from __future__ import annotations

from enum import StrEnum


class SideName(StrEnum):
    """The two opposing sides of a battle."""

    ALLY = "ally"
    FOE = "foe"

    @property
    def opponent(self) -> SideName:
        return SideName.FOE if self is SideName.ALLY else SideName.ALLY


class Controller(StrEnum):
    """Who issues orders for a side."""

    PLAYER = "player"
    COMPUTER = "computer"


class UnitType(StrEnum):
    """Unit roster. ``CLONE`` wraps a copy of a real stack."""

    BALLISTA = "ballista"
    AID_TENT = "aidTent"
    GARGOYLE = "gargoyle"
    GRIFFIN = "griffin"
    VAMPIRE = "vampire"
    PIKEMAN = "pikeman"
    ARCHER = "archer"
    ENHANCED_ARCHER = "enhancedArcher"
    AIR_ELEMENT = "airElement"
    FIRE_ELEMENT = "fireElement"
    WATER_ELEMENT = "waterElement"
    EARTH_ELEMENT = "earthElement"
    DENDROID = "dendroid"
    ZOMBIE = "zombie"
    DRAGON = "dragon"
    DEVIL = "devil"
    ANGEL = "angel"
    CLONE = "clone"


class UnitKind(StrEnum):
    """Broad creature categories that gate luck, drain and healing."""

    MACHINE = "machine"
    UNDEAD = "undead"
    STONE = "stone"
    NATURE = "nature"
    ALIVE = "alive"


class AttackType(StrEnum):
    """Melee ("hand") or ranged ("fire") attack."""

    HAND = "hand"
    FIRE = "fire"


class EffectType(StrEnum):
    """Modifiers that can be attached to a stack."""

    BERSERK = "berserk"
    FREEZE = "freeze"
    AGING = "aging"
    HYPNOTIZE = "hypnotize"
    RAGE = "rage"
    WEAKNESS = "weakness"
    FORGETFULNESS = "forgetfulness"
    LUCKY = "lucky"
    ANTI_MAGIC = "antiMagic"
    ACCURACY = "accuracy"
    SLOW = "slow"
    HAST = "hast"
    BLESS = "bless"
    AIR_SHIELD = "airShield"


class MagicSchool(StrEnum):
    """The four elemental magic schools."""

    EARTH = "earth"
    AIR = "air"
    FIRE = "fire"
    WATER = "water"


class SkillType(StrEnum):
    """Hero skills: school levels plus special skills."""

    EARTH = "earth"
    AIR = "air"
    FIRE = "fire"
    WATER = "water"
    TACTIC = "tactic"
    MACHINE = "machine"
    MIRROR = "mirror"
    RESISTANCE = "resistance"


class Spell(StrEnum):
    """Every spell a hero may know."""

    METEOR_SHOWER = "meteorShower"
    FORGETFULNESS = "forgetfulness"
    ANTI_MAGIC = "antiMagic"
    TELEPORT = "teleport"
    BERSERK = "berserk"
    SUMMON_AIR_ELEMENT = "summonAirElement"
    SUMMON_FIRE_ELEMENT = "summonFireElement"
    SUMMON_EARTH_ELEMENT = "summonEarthElement"
    SUMMON_WATER_ELEMENT = "summonWaterElement"
    HYPNOTIZE = "hypnotize"
    FORCE_FIELD = "forceField"
    FIRE_WALL = "fireWall"
    AIR_SHIELD = "airShield"
    FROST_RING = "frostRing"
    CLONE = "clone"
    ARROW = "arrow"
    LIGHTNING = "lightning"
    SLOW = "slow"
    HAST = "hast"
    BLESS = "bless"
    RAGE = "rage"
    DEATH_RIPPLE = "deathRipple"


class Phase(StrEnum):
    """States of the battle phase machine."""

    BATTLE = "battle"
    GAME_SPELLING = "gameSpelling"
    TACTIC = "tactic"
    STACK_TELEPORTING = "stackTeleporting"
    ENDED = "ended"


class ReachMode(StrEnum):
    """Reachability search modes."""

    STEP_ON = "stepOn"
    ATTACK_ON = "attackOn"
    MOVE_TO_ATTACK = "moveToAttack"


class ObstacleKind(StrEnum):
    """Obstacle flavours; force fields are spell-created and expire."""

    DEFAULT = "default"
    FORCE_FIELD = "forceField"


class TerrainState(StrEnum):
    """Lifecycle of spell-created terrain (fire walls and force fields)."""

    APPEARING = "appearing"
    ACTIVE = "active"
    DISAPPEARING = "disappearing"


class PresentationHint(StrEnum):
    """Tells the host whether a step needs to be played back."""

    NONE = "none"
    PLAY = "play"
