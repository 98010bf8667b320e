"""Equipment models."""

from sqlalchemy import Enum as SQLEnum
from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, enum_values
from .enums import ItemSlot


class Item(Base, TimestampMixin):
    """A weapon or armor piece contributing flat combat bonuses.

    Which bonus feeds damage depends on the wearer's class (see ClassProfile).
    """

    __tablename__ = "items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    slot: Mapped[ItemSlot] = mapped_column(
        SQLEnum(ItemSlot, name="item_slot", values_callable=enum_values), nullable=False
    )

    # Flat bonuses
    attack_bonus: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    magic_bonus: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    defense_bonus: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    health_bonus: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    agility_bonus: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Item(id={self.id}, name={self.name}, slot={self.slot})>"
