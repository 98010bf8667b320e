"""Database models."""

from .base import Base, TimestampMixin
from .characters import MAX_STAT_VALUE, Character
from .enums import CharacterClass, ItemSlot, StatName
from .items import Item

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Enums
    "CharacterClass",
    "ItemSlot",
    "StatName",
    # Items
    "Item",
    # Characters
    "Character",
    "MAX_STAT_VALUE",
]
