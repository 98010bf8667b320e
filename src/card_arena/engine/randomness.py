"""Randomness sources for combat rolls.

WARNING: none of these sources is cryptographically unpredictable.
EntropyRandomSource mixes wall-clock time with a per-call nonce, the same
weak pattern as seeding from recent block data. Anyone who can observe or
influence timing can bias outcomes. That is acceptable only while both
players trust the arena operator; do not reuse it where fairness must hold
against an adversary.
"""

import hashlib
import itertools
import random
import time
from typing import Protocol


class RandomSource(Protocol):
    """Produces non-negative integer seeds; callers reduce them with modulo."""

    def next_seed(self) -> int: ...


class EntropyRandomSource:
    """Seeds derived from wall-clock nanoseconds and a monotonic nonce."""

    def __init__(self) -> None:
        self._nonce = itertools.count()

    def next_seed(self) -> int:
        payload = f"{time.time_ns()}:{next(self._nonce)}".encode()
        return int.from_bytes(hashlib.sha256(payload).digest()[:8], "big")


class SeededRandomSource:
    """Deterministic source for tests and replays."""

    def __init__(self, seed: int | str) -> None:
        self._rng = random.Random(seed)

    def next_seed(self) -> int:
        return self._rng.getrandbits(64)
