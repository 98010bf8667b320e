"""Class profiles - per-class multipliers and formula weights.

Classes are data, not subclasses: every formula in stats.py looks up the
character's ClassProfile and reads the numbers it needs.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

from ..db.models.enums import CharacterClass


class EquipmentDamageStat(str, Enum):
    """Which item bonus feeds a class's damage."""

    ATTACK = "attack"
    MAGIC = "magic"
    BEST = "best"  # Whichever of attack/magic is higher, per item


@dataclass(frozen=True)
class StatMultipliers:
    """Percentage weight applied to each raw stat."""

    strength: int
    defense: int
    agility: int
    vitality: int
    intelligence: int
    magic_power: int


@dataclass(frozen=True)
class ClassProfile:
    """Everything class-specific the stat formulas need."""

    multipliers: StatMultipliers
    physical_weight: int  # Percent of physical damage kept
    magical_weight: int  # Percent of magical damage kept
    balanced: bool = False  # max(phys, mag) + 10% of the lesser instead of weights
    health_bonus_pct: int = 0
    defense_bonus_pct: int = 0
    dodge_bonus_pct: int = 0  # Relative bonus on base dodge
    crit_scale: int = 50  # Percent of effective agility added to crit multiplier
    defense_agility_weight: int = 50
    defense_intelligence_weight: int = 25
    defense_magic_weight: int = 25
    equipment_damage_stat: EquipmentDamageStat = EquipmentDamageStat.ATTACK


CLASS_PROFILES: MappingProxyType[CharacterClass, ClassProfile] = MappingProxyType(
    {
        CharacterClass.BRUTE: ClassProfile(
            multipliers=StatMultipliers(130, 90, 80, 110, 60, 50),
            physical_weight=100,
            magical_weight=0,
            crit_scale=60,
        ),
        CharacterClass.KNIGHT: ClassProfile(
            multipliers=StatMultipliers(110, 120, 70, 110, 80, 60),
            physical_weight=90,
            magical_weight=10,
            health_bonus_pct=15,
            crit_scale=40,
        ),
        CharacterClass.GUARDIAN: ClassProfile(
            multipliers=StatMultipliers(80, 140, 60, 120, 80, 70),
            physical_weight=80,
            magical_weight=20,
            defense_bonus_pct=20,
            crit_scale=30,
        ),
        CharacterClass.MAGE: ClassProfile(
            multipliers=StatMultipliers(50, 70, 80, 80, 120, 140),
            physical_weight=20,
            magical_weight=80,
            defense_agility_weight=25,
            defense_magic_weight=50,
            equipment_damage_stat=EquipmentDamageStat.MAGIC,
        ),
        CharacterClass.ROGUE: ClassProfile(
            multipliers=StatMultipliers(90, 70, 140, 80, 100, 60),
            physical_weight=85,
            magical_weight=15,
            dodge_bonus_pct=30,
            crit_scale=100,
            defense_agility_weight=75,
            defense_magic_weight=0,
        ),
        CharacterClass.KING: ClassProfile(
            multipliers=StatMultipliers(100, 100, 90, 110, 110, 90),
            physical_weight=60,
            magical_weight=40,
            health_bonus_pct=20,
            equipment_damage_stat=EquipmentDamageStat.BEST,
        ),
        CharacterClass.GOD: ClassProfile(
            multipliers=StatMultipliers(105, 105, 105, 105, 105, 105),
            physical_weight=50,
            magical_weight=50,
            balanced=True,
            health_bonus_pct=10,
            crit_scale=70,
            equipment_damage_stat=EquipmentDamageStat.BEST,
        ),
    }
)


def get_class_profile(character_class: CharacterClass) -> ClassProfile:
    """Look up the profile for a class."""
    return CLASS_PROFILES[CharacterClass(character_class)]
