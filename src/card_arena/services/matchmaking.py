"""Matchmaking queue - pairs waiting players into battles.

Pairing policy: whenever the queue holds two or more entries, the two
MOST RECENTLY inserted entries are paired (LIFO pair-of-two, not FIFO).
This mirrors the original game's behavior and is kept on purpose even
though it can starve early entries when matching is deferred.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from ..engine.battle import BattleEngine
from ..engine.events import ArenaEvent, EventType
from ..engine.types import Battle, BattleOrigin
from ..errors import AuthorizationError, ResourceNotFoundError, StateError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueueEntry:
    """A player waiting for an opponent."""

    player_id: int
    character_id: int
    joined_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class MatchmakingQueue:
    """Shared pool of players awaiting an opponent.

    All operations are serialized with one lock so entries are never
    double-paired or lost.
    """

    def __init__(self, engine: BattleEngine, auto_match: bool = True) -> None:
        self.engine = engine
        self.auto_match = auto_match
        self._entries: list[QueueEntry] = []  # Insertion order, newest last
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, player_id: object) -> bool:
        return any(e.player_id == player_id for e in self._entries)

    def entries(self) -> list[QueueEntry]:
        return list(self._entries)

    def position(self, player_id: int) -> int | None:
        """1-based position in insertion order, or None if not queued."""
        for index, entry in enumerate(self._entries, start=1):
            if entry.player_id == player_id:
                return index
        return None

    async def enqueue(self, player_id: int, character_id: int) -> Battle | None:
        """Join the queue with a character.

        Re-joining replaces the player's previous entry (and moves it to
        the back). With auto_match on, a battle is created as soon as two
        entries are waiting.

        Args:
            player_id: Player joining
            character_id: Character they will fight with

        Returns:
            The created battle if this join produced a match, else None
        """
        async with self._lock:
            if player_id in self.engine.active_battles:
                raise StateError("You are already in an active battle")

            owner_id = await self.engine.registry.get_owner(character_id)
            if owner_id != player_id:
                raise AuthorizationError(f"Character {character_id} does not belong to you")

            previous = list(self._entries)
            self._entries = [e for e in self._entries if e.player_id != player_id]
            entry = QueueEntry(player_id=player_id, character_id=character_id, joined_at=self.engine.clock())
            self._entries.append(entry)
            logger.info(f"Player {player_id} joined the queue with character {character_id}")

            battles: list[Battle] = []
            if self.auto_match:
                try:
                    battles = await self._match_locked()
                except Exception:
                    # All-or-nothing: the join is undone if pairing fails
                    self._entries = previous
                    raise

        await self.engine.events.publish(
            ArenaEvent(
                EventType.QUEUE_JOINED,
                player_ids=(player_id,),
                data={"character_id": character_id},
                timestamp=self.engine.clock(),
            )
        )
        return next((b for b in battles if b.is_participant(player_id)), None)

    async def dequeue(self, player_id: int) -> bool:
        """Leave the queue.

        Returns:
            True if an entry was removed, False if the player wasn't queued
        """
        async with self._lock:
            if player_id in self.engine.active_battles:
                raise StateError("You are already in a battle and cannot leave the queue")

            before = len(self._entries)
            self._entries = [e for e in self._entries if e.player_id != player_id]
            removed = len(self._entries) < before

        if removed:
            logger.info(f"Player {player_id} left the queue")
            await self.engine.events.publish(
                ArenaEvent(EventType.QUEUE_LEFT, player_ids=(player_id,), timestamp=self.engine.clock())
            )
        return removed

    async def match(self) -> list[Battle]:
        """Pair entries until fewer than two remain.

        Returns:
            Battles created by this call
        """
        async with self._lock:
            return await self._match_locked()

    async def _match_locked(self) -> list[Battle]:
        battles: list[Battle] = []
        while True:
            # Drop entries whose player entered a battle some other way (e.g. a challenge)
            self._entries = [e for e in self._entries if e.player_id not in self.engine.active_battles]
            if len(self._entries) < 2:
                return battles

            stale = [e for e in self._entries[-2:] if not await self._still_owned(e)]
            if stale:
                self._entries = [e for e in self._entries if e not in stale]
                continue

            first, second = self._entries[-2], self._entries[-1]
            battle = await self.engine.create_battle(
                first.player_id,
                first.character_id,
                second.player_id,
                second.character_id,
                origin=BattleOrigin.QUEUE,
            )
            self._entries = self._entries[:-2]
            logger.info(f"Matched players {first.player_id} and {second.player_id} into battle {battle.battle_id}")
            battles.append(battle)

    async def _still_owned(self, entry: QueueEntry) -> bool:
        """Re-check that a queued character still exists and belongs to its player."""
        try:
            owner_id = await self.engine.registry.get_owner(entry.character_id)
        except ResourceNotFoundError:
            owner_id = None
        if owner_id != entry.player_id:
            logger.warning(
                f"Dropping queue entry of player {entry.player_id}: character {entry.character_id} is no longer theirs"
            )
            return False
        return True
