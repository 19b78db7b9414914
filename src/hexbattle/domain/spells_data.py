"""Static spell tables: schools, base damage, targeting and summons."""

from __future__ import annotations

from hexbattle.domain.enums import EffectType, MagicSchool, Spell, UnitType

SPELL_SCHOOL: dict[Spell, MagicSchool] = {
    Spell.METEOR_SHOWER: MagicSchool.EARTH,
    Spell.FORGETFULNESS: MagicSchool.WATER,
    Spell.ANTI_MAGIC: MagicSchool.EARTH,
    Spell.TELEPORT: MagicSchool.WATER,
    Spell.BERSERK: MagicSchool.FIRE,
    Spell.SUMMON_AIR_ELEMENT: MagicSchool.AIR,
    Spell.SUMMON_FIRE_ELEMENT: MagicSchool.AIR,
    Spell.SUMMON_EARTH_ELEMENT: MagicSchool.EARTH,
    Spell.SUMMON_WATER_ELEMENT: MagicSchool.WATER,
    Spell.HYPNOTIZE: MagicSchool.EARTH,
    Spell.FORCE_FIELD: MagicSchool.EARTH,
    Spell.FIRE_WALL: MagicSchool.FIRE,
    Spell.AIR_SHIELD: MagicSchool.AIR,
    Spell.FROST_RING: MagicSchool.WATER,
    Spell.CLONE: MagicSchool.WATER,
    Spell.ARROW: MagicSchool.EARTH,
    Spell.LIGHTNING: MagicSchool.AIR,
    Spell.SLOW: MagicSchool.EARTH,
    Spell.HAST: MagicSchool.AIR,
    Spell.BLESS: MagicSchool.WATER,
    Spell.RAGE: MagicSchool.FIRE,
    Spell.DEATH_RIPPLE: MagicSchool.EARTH,
}

# Base damage of spells that deal damage
SPELL_DAMAGE: dict[Spell, int] = {
    Spell.FROST_RING: 12,
    Spell.ARROW: 30,
    Spell.LIGHTNING: 50,
    Spell.FIRE_WALL: 20,
    Spell.DEATH_RIPPLE: 10,
    Spell.METEOR_SHOWER: 60,
}

# Spell -> (summoned unit, count)
SUMMONS: dict[Spell, tuple[UnitType, int]] = {
    Spell.SUMMON_AIR_ELEMENT: (UnitType.AIR_ELEMENT, 10),
    Spell.SUMMON_FIRE_ELEMENT: (UnitType.FIRE_ELEMENT, 10),
    Spell.SUMMON_EARTH_ELEMENT: (UnitType.EARTH_ELEMENT, 12),
    Spell.SUMMON_WATER_ELEMENT: (UnitType.WATER_ELEMENT, 11),
}

# Each elemental is immune to its own school
ELEMENT_SCHOOL: dict[UnitType, MagicSchool] = {
    UnitType.AIR_ELEMENT: MagicSchool.AIR,
    UnitType.FIRE_ELEMENT: MagicSchool.FIRE,
    UnitType.EARTH_ELEMENT: MagicSchool.EARTH,
    UnitType.WATER_ELEMENT: MagicSchool.WATER,
}

# Buffs/debuffs whose magnitude is stored on the effect
VALUED_EFFECTS: dict[Spell, EffectType] = {
    Spell.SLOW: EffectType.SLOW,
    Spell.HAST: EffectType.HAST,
    Spell.BLESS: EffectType.BLESS,
    Spell.RAGE: EffectType.RAGE,
    Spell.AIR_SHIELD: EffectType.AIR_SHIELD,
}

# slow and hast cancel each other
EXCLUSIVE_EFFECTS: dict[EffectType, EffectType] = {
    EffectType.SLOW: EffectType.HAST,
    EffectType.HAST: EffectType.SLOW,
}

ENEMY_TARGET_SPELLS: frozenset[Spell] = frozenset(
    {
        Spell.LIGHTNING,
        Spell.ARROW,
        Spell.BERSERK,
        Spell.FORGETFULNESS,
        Spell.SLOW,
        Spell.HYPNOTIZE,
    }
)

FRIEND_TARGET_SPELLS: frozenset[Spell] = frozenset(
    {
        Spell.HAST,
        Spell.BLESS,
        Spell.RAGE,
        Spell.CLONE,
        Spell.ANTI_MAGIC,
        Spell.AIR_SHIELD,
        Spell.TELEPORT,
    }
)

EMPTY_HEX_SPELLS: frozenset[Spell] = frozenset({Spell.FIRE_WALL, Spell.FORCE_FIELD})

ANY_HEX_SPELLS: frozenset[Spell] = frozenset({Spell.METEOR_SHOWER, Spell.FROST_RING})

# Expert casts of these hit a whole army without a targeting step
MASS_ENEMY_SPELLS: frozenset[Spell] = frozenset({Spell.SLOW, Spell.FORGETFULNESS})
MASS_FRIEND_SPELLS: frozenset[Spell] = frozenset(
    {Spell.HAST, Spell.BLESS, Spell.RAGE, Spell.AIR_SHIELD}
)
