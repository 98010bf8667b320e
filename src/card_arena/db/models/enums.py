"""Enums for game models."""

from enum import Enum


class CharacterClass(str, Enum):
    """Character classes - each has a fixed multiplier profile."""

    BRUTE = "brute"  # Raw strength
    KNIGHT = "knight"  # Strength and defense, sturdy
    GUARDIAN = "guardian"  # Defensive wall
    MAGE = "mage"  # Magic-weighted caster
    ROGUE = "rogue"  # Agility, dodge and crits
    KING = "king"  # Well-rounded with extra health
    GOD = "god"  # Balanced god-tier class


class ItemSlot(str, Enum):
    """Equipment slots - each character has one of each."""

    WEAPON = "weapon"
    ARMOR = "armor"


class StatName(str, Enum):
    """The six raw character stats."""

    STRENGTH = "strength"
    DEFENSE = "defense"
    AGILITY = "agility"
    VITALITY = "vitality"
    INTELLIGENCE = "intelligence"
    MAGIC_POWER = "magic_power"
