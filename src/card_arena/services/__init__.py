"""Services layer - matchmaking, challenges, characters and the arena root."""

from .arena import Arena
from .challenges import ChallengeDirectory, ChallengeEntry
from .characters import CharacterService
from .matchmaking import MatchmakingQueue, QueueEntry

__all__ = [
    "Arena",
    "ChallengeDirectory",
    "ChallengeEntry",
    "CharacterService",
    "MatchmakingQueue",
    "QueueEntry",
]
