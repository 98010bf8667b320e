"""Collaborator interfaces and the shared active-battle index."""

from typing import Protocol

from ..errors import StateError
from .types import CharacterStats


class CharacterRegistry(Protocol):
    """Owner of character records, as seen by the battle engine.

    The engine reads stats once per battle (then freezes them) and reports
    results back through record_battle_result.
    """

    async def get_character(self, character_id: int) -> CharacterStats:
        """Read stats, class and equipment. Raises ResourceNotFoundError."""
        ...

    async def get_owner(self, character_id: int) -> int:
        """Return the player who controls a character. Raises ResourceNotFoundError."""
        ...

    async def compute_damage(self, character_id: int, critical: bool = False) -> int: ...

    async def compute_health(self, character_id: int) -> int: ...

    async def compute_defense(self, character_id: int) -> int: ...

    async def compute_dodge_chance(self, character_id: int) -> int: ...

    async def record_battle_result(self, character_id: int, is_winner: bool, experience_gained: int) -> None:
        """Increment win/loss, grant experience, flip veteran at 10 wins."""
        ...


class ActiveBattleIndex:
    """Maps each player to the single battle they are currently in.

    claim() and release() never await, so on the event loop each call is
    atomic: a player can never be claimed by two battles at once.
    """

    def __init__(self) -> None:
        self._by_player: dict[int, int] = {}

    def __contains__(self, player_id: object) -> bool:
        return player_id in self._by_player

    def get(self, player_id: int) -> int | None:
        return self._by_player.get(player_id)

    def claim(self, battle_id: int, *player_ids: int) -> None:
        """Assign all players to a battle, or none of them."""
        busy = [pid for pid in player_ids if pid in self._by_player]
        if busy:
            raise StateError(f"Player {busy[0]} is already in an active battle")
        for pid in player_ids:
            self._by_player[pid] = battle_id

    def release(self, battle_id: int, *player_ids: int) -> None:
        """Clear pointers that still point at this battle."""
        for pid in player_ids:
            if self._by_player.get(pid) == battle_id:
                del self._by_player[pid]

    def battle_ids(self) -> set[int]:
        return set(self._by_player.values())
