"""Add character and item tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19

Adds Item (weapon/armor with flat bonuses) and Character (raw stats,
progression and equipped items). Battles themselves are kept in memory.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Create enums
    item_slot_enum = sa.Enum("weapon", "armor", name="item_slot")
    item_slot_enum.create(op.get_bind(), checkfirst=True)

    character_class_enum = sa.Enum(
        "brute",
        "knight",
        "guardian",
        "mage",
        "rogue",
        "king",
        "god",
        name="character_class",
    )
    character_class_enum.create(op.get_bind(), checkfirst=True)

    # ============================================
    # Create items table
    # ============================================
    op.create_table(
        "items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("slot", item_slot_enum, nullable=False),
        # Flat bonuses
        sa.Column("attack_bonus", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("magic_bonus", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("defense_bonus", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("health_bonus", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("agility_bonus", sa.Integer(), nullable=False, server_default="0"),
        # Timestamps
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    # ============================================
    # Create characters table
    # ============================================
    op.create_table(
        "characters",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("owner_id", sa.BigInteger(), nullable=False, index=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("character_class", character_class_enum, nullable=False),
        # Raw stats
        sa.Column("strength", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("defense", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("agility", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("vitality", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("intelligence", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("magic_power", sa.Integer(), nullable=False, server_default="0"),
        # Progression
        sa.Column("wins", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("losses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_veteran", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("experience", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("stat_points", sa.Integer(), nullable=False, server_default="0"),
        # Equipped items (nullable = no item equipped)
        sa.Column(
            "weapon_id",
            sa.Integer(),
            sa.ForeignKey("items.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "armor_id",
            sa.Integer(),
            sa.ForeignKey("items.id", ondelete="SET NULL"),
            nullable=True,
        ),
        # Timestamps
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("stat_points >= 0", name="ck_character_stat_points_non_negative"),
    )


def downgrade() -> None:
    op.drop_table("characters")
    op.drop_table("items")
    sa.Enum(name="character_class").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="item_slot").drop(op.get_bind(), checkfirst=True)
