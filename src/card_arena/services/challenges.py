"""Challenge directory - direct player-to-player battle invitations."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from ..engine.battle import BattleEngine
from ..engine.events import ArenaEvent, EventType
from ..engine.types import Battle, BattleOrigin
from ..errors import AuthorizationError, StateError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChallengeEntry:
    """An outstanding challenge from one player to another."""

    challenger_id: int
    challenged_id: int
    character_id: int
    issued_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class ChallengeDirectory:
    """Pending challenges, indexed by challenger and by challenged player.

    At most one entry exists per (challenger, challenged) pair. Both
    indexes are always updated together under the directory lock.
    """

    def __init__(self, engine: BattleEngine) -> None:
        self.engine = engine
        self._outgoing: dict[int, dict[int, ChallengeEntry]] = {}  # challenger -> challenged -> entry
        self._incoming: dict[int, dict[int, ChallengeEntry]] = {}  # challenged -> challenger -> entry
        self._lock = asyncio.Lock()

    async def issue_challenge(self, challenger_id: int, challenged_id: int, character_id: int) -> ChallengeEntry:
        """Challenge another player, proposing one of the challenger's characters.

        Issuing again to the same player replaces the earlier proposal.

        Args:
            challenger_id: Player issuing the challenge
            challenged_id: Player being challenged
            character_id: Challenger's character

        Returns:
            The stored ChallengeEntry
        """
        if challenger_id == challenged_id:
            raise ValidationError("You cannot challenge yourself")

        async with self._lock:
            self._require_idle(challenger_id, challenged_id)
            await self._require_owner(challenger_id, character_id)

            entry = ChallengeEntry(
                challenger_id=challenger_id,
                challenged_id=challenged_id,
                character_id=character_id,
                issued_at=self.engine.clock(),
            )
            self._store(entry)

        logger.info(f"Player {challenger_id} challenged player {challenged_id} with character {character_id}")
        await self.engine.events.publish(
            ArenaEvent(
                EventType.CHALLENGE_ISSUED,
                player_ids=(challenger_id, challenged_id),
                data={"challenger_id": challenger_id, "character_id": character_id},
                timestamp=entry.issued_at,
            )
        )
        return entry

    async def accept_challenge(self, accepter_id: int, challenger_id: int, character_id: int) -> Battle:
        """Accept a pending challenge and start the battle.

        The challenger becomes player 1 and the accepter player 2.

        Args:
            accepter_id: Challenged player accepting
            challenger_id: Player who issued the challenge
            character_id: Accepter's character

        Returns:
            The created battle
        """
        async with self._lock:
            entry = self._require_pending(challenger_id, accepter_id)
            self._require_idle(challenger_id, accepter_id)
            await self._require_owner(accepter_id, character_id)
            # The challenger may have lost the character since issuing
            await self._require_owner(challenger_id, entry.character_id)

            battle = await self.engine.create_battle(
                challenger_id,
                entry.character_id,
                accepter_id,
                character_id,
                origin=BattleOrigin.CHALLENGE,
            )
            self._discard(entry)

        logger.info(f"Player {accepter_id} accepted challenge from {challenger_id}: battle {battle.battle_id}")
        await self.engine.events.publish(
            ArenaEvent(
                EventType.CHALLENGE_ACCEPTED,
                battle_id=battle.battle_id,
                player_ids=(challenger_id, accepter_id),
                data={"challenger_id": challenger_id, "accepter_id": accepter_id},
                timestamp=self.engine.clock(),
            )
        )
        return battle

    async def reject_challenge(self, rejecter_id: int, challenger_id: int) -> ChallengeEntry:
        """Decline a pending challenge without starting a battle."""
        async with self._lock:
            entry = self._require_pending(challenger_id, rejecter_id)
            self._discard(entry)

        logger.info(f"Player {rejecter_id} rejected challenge from {challenger_id}")
        await self.engine.events.publish(
            ArenaEvent(
                EventType.CHALLENGE_REJECTED,
                player_ids=(challenger_id, rejecter_id),
                data={"challenger_id": challenger_id, "rejecter_id": rejecter_id},
                timestamp=self.engine.clock(),
            )
        )
        return entry

    async def withdraw_challenge(self, challenger_id: int, challenged_id: int) -> ChallengeEntry:
        """Take back a challenge the caller issued."""
        async with self._lock:
            entry = self._require_pending(challenger_id, challenged_id)
            self._discard(entry)

        logger.info(f"Player {challenger_id} withdrew challenge to {challenged_id}")
        return entry

    def get_pending(self, challenger_id: int, challenged_id: int) -> ChallengeEntry | None:
        return self._outgoing.get(challenger_id, {}).get(challenged_id)

    def incoming(self, player_id: int) -> list[ChallengeEntry]:
        """Challenges waiting for this player's answer, oldest first."""
        return sorted(self._incoming.get(player_id, {}).values(), key=lambda e: e.issued_at)

    def outgoing(self, player_id: int) -> list[ChallengeEntry]:
        """Challenges this player issued that are still pending, oldest first."""
        return sorted(self._outgoing.get(player_id, {}).values(), key=lambda e: e.issued_at)

    def _require_idle(self, *player_ids: int) -> None:
        for pid in player_ids:
            if pid in self.engine.active_battles:
                raise StateError(f"Player {pid} is already in an active battle")

    async def _require_owner(self, player_id: int, character_id: int) -> None:
        owner_id = await self.engine.registry.get_owner(character_id)
        if owner_id != player_id:
            raise AuthorizationError(f"Character {character_id} does not belong to player {player_id}")

    def _require_pending(self, challenger_id: int, challenged_id: int) -> ChallengeEntry:
        entry = self.get_pending(challenger_id, challenged_id)
        if entry is None:
            raise StateError(f"No pending challenge from player {challenger_id}")
        return entry

    def _store(self, entry: ChallengeEntry) -> None:
        self._outgoing.setdefault(entry.challenger_id, {})[entry.challenged_id] = entry
        self._incoming.setdefault(entry.challenged_id, {})[entry.challenger_id] = entry

    def _discard(self, entry: ChallengeEntry) -> None:
        outgoing = self._outgoing.get(entry.challenger_id, {})
        outgoing.pop(entry.challenged_id, None)
        if not outgoing:
            self._outgoing.pop(entry.challenger_id, None)

        incoming = self._incoming.get(entry.challenged_id, {})
        incoming.pop(entry.challenger_id, None)
        if not incoming:
            self._incoming.pop(entry.challenged_id, None)
