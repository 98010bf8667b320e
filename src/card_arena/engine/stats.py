"""Stat engine - pure formulas mapping raw stats to combat statistics.

All arithmetic is integer floor division and the order of operations is
fixed: combat math must reproduce bit-for-bit from the same inputs so that
battles can be audited and replayed.

Pipeline:
1. Each raw stat goes through a three-tier diminishing-returns curve
   scaled by the class multiplier (compute_effective_stat)
2. Damage, health, defense and dodge are computed from effective stats,
   class weights, equipment bonuses and the veteran flag
"""

from collections.abc import Mapping
from dataclasses import dataclass

from ..db.models.enums import CharacterClass
from ..errors import ValidationError
from .classes import CLASS_PROFILES, ClassProfile, EquipmentDamageStat
from .limits import MAX_STAT_VALUE
from .types import CharacterStats, EquipmentBonus

# Diminishing-returns tiers
LOW_TIER_MAX = 30  # No diminishing at or below this value
MID_TIER_MAX = 100  # 100% at 31 down to 95% at 100
# Mid tier factor: (6900 - 5 * (value - 31)) / 6900 -> 1.00 at 31, 0.95 at 100
MID_TIER_SCALE = 6900
MID_TIER_STEP = 5
# High tier factor: (14630 - 25 * (value - 101)) / 15400 -> 0.95 at 101, 0.70 at 255
HIGH_TIER_BASE = 14630
HIGH_TIER_SCALE = 15400
HIGH_TIER_STEP = 25

# Damage
DAMAGE_PER_POINT = 3
BALANCED_LESSER_PCT = 10
INTELLIGENCE_DAMAGE_DIVISOR = 2
AGILITY_DAMAGE_DIVISOR = 3
VETERAN_DAMAGE_PCT = 110

# Critical hits (rate in basis points, multiplier in percent)
BASE_CRIT_RATE = 500
CRIT_RATE_PER_INTELLIGENCE = 25
MAX_CRIT_RATE = 4000
CRIT_ROLL_RANGE = 10000
BASE_CRIT_MULTIPLIER = 150
MAX_CRIT_MULTIPLIER = 350

# Health
BASE_HEALTH = 100
HEALTH_PER_VITALITY = 20
HEALTH_PER_STRENGTH = 2
VETERAN_HEALTH_PCT = 105

# Defense
DEFENSE_PER_POINT = 4
VETERAN_DEFENSE_PCT = 105

# Dodge (percent)
DODGE_AGILITY_DIVISOR = 5
MAX_BASE_DODGE = 40
ARMOR_AGILITY_DIVISOR = 5
MAX_DODGE_CHANCE = 75

ClassTable = Mapping[CharacterClass, ClassProfile]


@dataclass(frozen=True)
class EffectiveStats:
    """Raw stats after the class multiplier and diminishing returns."""

    strength: int
    defense: int
    agility: int
    vitality: int
    intelligence: int
    magic_power: int


@dataclass(frozen=True)
class CombatProfile:
    """All derived combat values for one character."""

    effective: EffectiveStats
    damage: int
    health: int
    defense: int
    dodge_chance: int
    crit_rate: int
    crit_multiplier: int


def compute_effective_stat(value: int, multiplier: int) -> int:
    """Apply the class multiplier and the diminishing-returns curve.

    Args:
        value: Raw stat value in [0, 255]
        multiplier: Class percentage weight for this stat

    Returns:
        Effective stat value
    """
    if not 0 <= value <= MAX_STAT_VALUE:
        raise ValidationError(f"Stat value must be between 0 and {MAX_STAT_VALUE}, got {value}")

    if value <= LOW_TIER_MAX:
        return value * multiplier // 100

    if value <= MID_TIER_MAX:
        factor = MID_TIER_SCALE - MID_TIER_STEP * (value - (LOW_TIER_MAX + 1))
        return value * multiplier * factor // (100 * MID_TIER_SCALE)

    factor = HIGH_TIER_BASE - HIGH_TIER_STEP * (value - (MID_TIER_MAX + 1))
    return value * multiplier * factor // (100 * HIGH_TIER_SCALE)


def compute_effective_stats(character: CharacterStats, profiles: ClassTable = CLASS_PROFILES) -> EffectiveStats:
    """Compute all six effective stats for a character."""
    m = profiles[character.character_class].multipliers
    return EffectiveStats(
        strength=compute_effective_stat(character.strength, m.strength),
        defense=compute_effective_stat(character.defense, m.defense),
        agility=compute_effective_stat(character.agility, m.agility),
        vitality=compute_effective_stat(character.vitality, m.vitality),
        intelligence=compute_effective_stat(character.intelligence, m.intelligence),
        magic_power=compute_effective_stat(character.magic_power, m.magic_power),
    )


def _equipment(character: CharacterStats) -> list[EquipmentBonus]:
    return [item for item in (character.weapon, character.armor) if item is not None]


def _item_damage_bonus(item: EquipmentBonus, stat: EquipmentDamageStat) -> int:
    match stat:
        case EquipmentDamageStat.ATTACK:
            return item.attack_bonus
        case EquipmentDamageStat.MAGIC:
            return item.magic_bonus
        case EquipmentDamageStat.BEST:
            return max(item.attack_bonus, item.magic_bonus)


def _crit_multiplier(eff: EffectiveStats, profile: ClassProfile) -> int:
    return min(BASE_CRIT_MULTIPLIER + eff.agility * profile.crit_scale // 100, MAX_CRIT_MULTIPLIER)


def _damage(character: CharacterStats, eff: EffectiveStats, profile: ClassProfile, critical: bool) -> int:
    physical = eff.strength * DAMAGE_PER_POINT
    magical = eff.magic_power * DAMAGE_PER_POINT

    if profile.balanced:
        damage = max(physical, magical) + min(physical, magical) * BALANCED_LESSER_PCT // 100
    else:
        damage = (physical * profile.physical_weight + magical * profile.magical_weight) // 100

    damage += eff.intelligence // INTELLIGENCE_DAMAGE_DIVISOR
    damage += eff.agility // AGILITY_DAMAGE_DIVISOR

    for item in _equipment(character):
        damage += _item_damage_bonus(item, profile.equipment_damage_stat)

    if character.is_veteran:
        damage = damage * VETERAN_DAMAGE_PCT // 100

    if critical:
        damage = damage * _crit_multiplier(eff, profile) // 100

    return damage


def _health(character: CharacterStats, eff: EffectiveStats, profile: ClassProfile) -> int:
    health = (
        BASE_HEALTH
        + eff.vitality * HEALTH_PER_VITALITY
        + eff.strength * HEALTH_PER_STRENGTH
        + (eff.magic_power + eff.intelligence) // 2
    )
    health = health * (100 + profile.health_bonus_pct) // 100

    for item in _equipment(character):
        health += item.health_bonus

    if character.is_veteran:
        health = health * VETERAN_HEALTH_PCT // 100

    return health


def _defense(character: CharacterStats, eff: EffectiveStats, profile: ClassProfile) -> int:
    defense = eff.defense * DEFENSE_PER_POINT + (
        eff.agility * profile.defense_agility_weight
        + eff.intelligence * profile.defense_intelligence_weight
        + eff.magic_power * profile.defense_magic_weight
    ) // 100

    for item in _equipment(character):
        defense += item.defense_bonus

    defense = defense * (100 + profile.defense_bonus_pct) // 100

    if character.is_veteran:
        defense = defense * VETERAN_DEFENSE_PCT // 100

    return defense


def _dodge(character: CharacterStats, eff: EffectiveStats, profile: ClassProfile) -> int:
    dodge = min(eff.agility // DODGE_AGILITY_DIVISOR, MAX_BASE_DODGE)
    dodge = dodge * (100 + profile.dodge_bonus_pct) // 100

    if character.armor is not None:
        dodge += character.armor.agility_bonus // ARMOR_AGILITY_DIVISOR

    return min(dodge, MAX_DODGE_CHANCE)


def compute_damage(
    character: CharacterStats,
    critical: bool = False,
    profiles: ClassTable = CLASS_PROFILES,
) -> int:
    """Compute attack damage, optionally as a critical hit.

    Args:
        character: Character to compute for
        critical: Apply the class-scaled crit multiplier
        profiles: Class table to read weights from

    Returns:
        Damage value
    """
    profile = profiles[character.character_class]
    return _damage(character, compute_effective_stats(character, profiles), profile, critical)


def compute_crit_rate(character: CharacterStats, profiles: ClassTable = CLASS_PROFILES) -> int:
    """Crit rate in basis points: 5% base, +0.25% per effective intelligence, capped at 40%."""
    eff = compute_effective_stats(character, profiles)
    return min(BASE_CRIT_RATE + eff.intelligence * CRIT_RATE_PER_INTELLIGENCE, MAX_CRIT_RATE)


def compute_crit_multiplier(character: CharacterStats, profiles: ClassTable = CLASS_PROFILES) -> int:
    """Crit multiplier in percent: 150% base, scaled by agility per class, capped at 350%."""
    return _crit_multiplier(compute_effective_stats(character, profiles), profiles[character.character_class])


def roll_critical(character: CharacterStats, roll: int, profiles: ClassTable = CLASS_PROFILES) -> bool:
    """Decide a critical hit from a random roll."""
    return roll % CRIT_ROLL_RANGE < compute_crit_rate(character, profiles)


def compute_health(character: CharacterStats, profiles: ClassTable = CLASS_PROFILES) -> int:
    """Compute max health."""
    profile = profiles[character.character_class]
    return _health(character, compute_effective_stats(character, profiles), profile)


def compute_defense(character: CharacterStats, profiles: ClassTable = CLASS_PROFILES) -> int:
    """Compute defense power."""
    profile = profiles[character.character_class]
    return _defense(character, compute_effective_stats(character, profiles), profile)


def compute_dodge_chance(character: CharacterStats, profiles: ClassTable = CLASS_PROFILES) -> int:
    """Compute dodge chance in percent."""
    profile = profiles[character.character_class]
    return _dodge(character, compute_effective_stats(character, profiles), profile)


def compute_combat_profile(character: CharacterStats, profiles: ClassTable = CLASS_PROFILES) -> CombatProfile:
    """Compute every derived combat value in one pass."""
    profile = profiles[character.character_class]
    eff = compute_effective_stats(character, profiles)
    return CombatProfile(
        effective=eff,
        damage=_damage(character, eff, profile, critical=False),
        health=_health(character, eff, profile),
        defense=_defense(character, eff, profile),
        dodge_chance=_dodge(character, eff, profile),
        crit_rate=min(BASE_CRIT_RATE + eff.intelligence * CRIT_RATE_PER_INTELLIGENCE, MAX_CRIT_RATE),
        crit_multiplier=_crit_multiplier(eff, profile),
    )
