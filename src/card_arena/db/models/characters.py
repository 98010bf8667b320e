"""Character models."""

from sqlalchemy import BigInteger, Boolean, CheckConstraint, ForeignKey, Integer, String
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ...engine.limits import MAX_STAT_VALUE
from .base import Base, TimestampMixin, enum_values
from .enums import CharacterClass


class Character(Base, TimestampMixin):
    """A battle character owned by a player.

    Raw stats live here; derived combat values are never stored and are
    recomputed by the stat engine whenever they are needed.
    """

    __tablename__ = "characters"
    __table_args__ = (
        CheckConstraint("stat_points >= 0", name="ck_character_stat_points_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    character_class: Mapped[CharacterClass] = mapped_column(
        SQLEnum(CharacterClass, name="character_class", values_callable=enum_values), nullable=False
    )

    # Raw stats, each in [0, MAX_STAT_VALUE]
    strength: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    defense: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    agility: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    vitality: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    intelligence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    magic_power: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Progression
    wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    losses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_veteran: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    experience: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    stat_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Equipped items (nullable = nothing equipped)
    weapon_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("items.id", ondelete="SET NULL"), nullable=True
    )
    armor_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("items.id", ondelete="SET NULL"), nullable=True
    )

    # Relationships
    weapon: Mapped["Item | None"] = relationship("Item", foreign_keys=[weapon_id], lazy="joined")
    armor: Mapped["Item | None"] = relationship("Item", foreign_keys=[armor_id], lazy="joined")

    def __repr__(self) -> str:
        return f"<Character(id={self.id}, name={self.name}, class={self.character_class})>"


# Forward references for type hints
from .items import Item  # noqa: E402, F401
