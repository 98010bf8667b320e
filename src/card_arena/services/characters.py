"""Character service - SQLAlchemy-backed character registry.

Implements the CharacterRegistry protocol used by the battle engine, plus
the character and equipment management the bot needs.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db.models.characters import Character
from ..db.models.enums import CharacterClass, ItemSlot, StatName
from ..db.models.items import Item
from ..engine import stats
from ..engine.limits import MAX_STAT_VALUE
from ..engine.types import CharacterStats, EquipmentBonus
from ..errors import AuthorizationError, ResourceNotFoundError, ValidationError

logger = logging.getLogger(__name__)

# Progression
EXPERIENCE_PER_LEVEL = 200
STAT_POINTS_PER_LEVEL = 3
VETERAN_WINS = 10
DEFAULT_STARTING_STAT_POINTS = 30


def level_for_experience(experience: int) -> int:
    """Level reached with the given total experience (starts at 1)."""
    return 1 + experience // EXPERIENCE_PER_LEVEL


def to_equipment_bonus(item: Item | None) -> EquipmentBonus | None:
    if item is None:
        return None
    return EquipmentBonus(
        attack_bonus=item.attack_bonus,
        magic_bonus=item.magic_bonus,
        defense_bonus=item.defense_bonus,
        health_bonus=item.health_bonus,
        agility_bonus=item.agility_bonus,
    )


def to_character_stats(character: Character) -> CharacterStats:
    """Convert a Character row into the engine's read-only view."""
    return CharacterStats(
        character_id=character.id,
        owner_id=character.owner_id,
        name=character.name,
        character_class=character.character_class,
        strength=character.strength,
        defense=character.defense,
        agility=character.agility,
        vitality=character.vitality,
        intelligence=character.intelligence,
        magic_power=character.magic_power,
        wins=character.wins,
        losses=character.losses,
        is_veteran=character.is_veteran,
        experience=character.experience,
        stat_points=character.stat_points,
        weapon=to_equipment_bonus(character.weapon),
        armor=to_equipment_bonus(character.armor),
    )


class CharacterService:
    """Service for character operations.

    Each call opens its own session from the factory, so one instance can
    be shared by the engine and every bot handler.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        starting_stat_points: int = DEFAULT_STARTING_STAT_POINTS,
    ) -> None:
        self.session_factory = session_factory
        self.starting_stat_points = starting_stat_points

    # ------------------------------------------------------------------
    # CharacterRegistry
    # ------------------------------------------------------------------

    async def get_character(self, character_id: int) -> CharacterStats:
        async with self.session_factory() as session:
            character = await self._get(session, character_id)
            return to_character_stats(character)

    async def get_owner(self, character_id: int) -> int:
        async with self.session_factory() as session:
            result = await session.execute(select(Character.owner_id).where(Character.id == character_id))
            owner_id = result.scalar_one_or_none()
        if owner_id is None:
            raise ResourceNotFoundError(f"Character {character_id} not found")
        return owner_id

    async def compute_damage(self, character_id: int, critical: bool = False) -> int:
        return stats.compute_damage(await self.get_character(character_id), critical=critical)

    async def compute_health(self, character_id: int) -> int:
        return stats.compute_health(await self.get_character(character_id))

    async def compute_defense(self, character_id: int) -> int:
        return stats.compute_defense(await self.get_character(character_id))

    async def compute_dodge_chance(self, character_id: int) -> int:
        return stats.compute_dodge_chance(await self.get_character(character_id))

    async def record_battle_result(self, character_id: int, is_winner: bool, experience_gained: int) -> None:
        """Apply a battle result to a character.

        Args:
            character_id: Character that fought
            is_winner: Whether it won
            experience_gained: Experience to add (stat points are granted per level reached)
        """
        async with self.session_factory() as session:
            character = await self._get(session, character_id)

            if is_winner:
                character.wins += 1
            else:
                character.losses += 1

            old_level = level_for_experience(character.experience)
            character.experience += experience_gained
            levels_gained = level_for_experience(character.experience) - old_level
            if levels_gained > 0:
                character.stat_points += levels_gained * STAT_POINTS_PER_LEVEL
                logger.info(f"Character {character_id} gained {levels_gained} level(s)")

            if not character.is_veteran and character.wins >= VETERAN_WINS:
                character.is_veteran = True
                logger.info(f"Character {character_id} became a veteran")

            await session.commit()

    # ------------------------------------------------------------------
    # Character management
    # ------------------------------------------------------------------

    async def create_character(self, owner_id: int, name: str, character_class: CharacterClass | str) -> CharacterStats:
        """Create a character with zero stats and the starting point pool.

        Args:
            owner_id: Telegram user ID of the owner
            name: Display name
            character_class: One of the CharacterClass values

        Returns:
            The new character's stats
        """
        name = name.strip()
        if not name or len(name) > 100:
            raise ValidationError("Character name must be 1-100 characters")
        try:
            character_class = CharacterClass(character_class)
        except ValueError:
            options = ", ".join(c.value for c in CharacterClass)
            raise ValidationError(f"Unknown class '{character_class}'. Choose one of: {options}") from None

        async with self.session_factory() as session:
            character = Character(
                owner_id=owner_id,
                name=name,
                character_class=character_class,
                stat_points=self.starting_stat_points,
            )
            session.add(character)
            await session.commit()
            await session.refresh(character, ["weapon", "armor"])
            logger.info(f"Player {owner_id} created {character_class.value} '{name}' (id={character.id})")
            return to_character_stats(character)

    async def list_characters(self, owner_id: int) -> list[CharacterStats]:
        """Get all characters owned by a player, oldest first."""
        async with self.session_factory() as session:
            stmt = select(Character).where(Character.owner_id == owner_id).order_by(Character.id)
            result = await session.execute(stmt)
            return [to_character_stats(c) for c in result.unique().scalars().all()]

    async def allocate_stat_points(
        self,
        owner_id: int,
        character_id: int,
        allocation: dict[StatName | str, int],
    ) -> CharacterStats:
        """Spend unallocated stat points on raw stats.

        Either the whole allocation is applied or nothing is.

        Args:
            owner_id: Caller (must own the character)
            character_id: Character to improve
            allocation: Stat name -> points to add

        Returns:
            Updated character stats
        """
        parsed: dict[StatName, int] = {}
        for name, points in allocation.items():
            try:
                stat = StatName(name)
            except ValueError:
                raise ValidationError(f"Unknown stat '{name}'") from None
            if points <= 0:
                raise ValidationError("Allocated points must be positive")
            parsed[stat] = parsed.get(stat, 0) + points
        if not parsed:
            raise ValidationError("Nothing to allocate")

        async with self.session_factory() as session:
            character = await self._get_owned(session, owner_id, character_id)

            total = sum(parsed.values())
            if total > character.stat_points:
                raise ValidationError(f"Not enough stat points: need {total}, have {character.stat_points}")

            for stat, points in parsed.items():
                new_value = getattr(character, stat.value) + points
                if new_value > MAX_STAT_VALUE:
                    raise ValidationError(f"{stat.value} cannot exceed {MAX_STAT_VALUE}")

            for stat, points in parsed.items():
                setattr(character, stat.value, getattr(character, stat.value) + points)
            character.stat_points -= total

            await session.commit()
            logger.info(f"Character {character_id} allocated {total} stat points")
            return to_character_stats(character)

    # ------------------------------------------------------------------
    # Equipment
    # ------------------------------------------------------------------

    async def create_item(
        self,
        name: str,
        slot: ItemSlot | str,
        description: str = "",
        attack_bonus: int = 0,
        magic_bonus: int = 0,
        defense_bonus: int = 0,
        health_bonus: int = 0,
        agility_bonus: int = 0,
    ) -> Item:
        """Create an equipment item."""
        try:
            slot = ItemSlot(slot)
        except ValueError:
            raise ValidationError(f"Unknown item slot '{slot}'") from None
        bonuses = (attack_bonus, magic_bonus, defense_bonus, health_bonus, agility_bonus)
        if any(b < 0 for b in bonuses):
            raise ValidationError("Item bonuses cannot be negative")

        async with self.session_factory() as session:
            item = Item(
                name=name,
                description=description,
                slot=slot,
                attack_bonus=attack_bonus,
                magic_bonus=magic_bonus,
                defense_bonus=defense_bonus,
                health_bonus=health_bonus,
                agility_bonus=agility_bonus,
            )
            session.add(item)
            await session.commit()
            return item

    async def equip_item(self, owner_id: int, character_id: int, item_id: int) -> CharacterStats:
        """Put an item in the slot it belongs to, replacing whatever was there."""
        async with self.session_factory() as session:
            character = await self._get_owned(session, owner_id, character_id)
            item = await session.get(Item, item_id)
            if item is None:
                raise ResourceNotFoundError(f"Item {item_id} not found")

            match item.slot:
                case ItemSlot.WEAPON:
                    character.weapon = item
                case ItemSlot.ARMOR:
                    character.armor = item

            await session.commit()
            logger.info(f"Character {character_id} equipped {item.slot.value} {item_id}")
            return to_character_stats(character)

    async def _get(self, session: AsyncSession, character_id: int) -> Character:
        character = await session.get(Character, character_id)
        if character is None:
            raise ResourceNotFoundError(f"Character {character_id} not found")
        return character

    async def _get_owned(self, session: AsyncSession, owner_id: int, character_id: int) -> Character:
        character = await self._get(session, character_id)
        if character.owner_id != owner_id:
            raise AuthorizationError(f"Character {character_id} does not belong to you")
        return character
