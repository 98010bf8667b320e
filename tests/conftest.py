"""Shared fixtures: fake registry, scripted randomness, fixed clock, SQLite database."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from card_arena.db.models import Base, CharacterClass
from card_arena.engine.battle import BattleEngine
from card_arena.engine.events import ArenaEvent, EventBus
from card_arena.engine.types import CharacterStats
from card_arena.errors import ResourceNotFoundError

OPERATOR_ID = 999

# Player IDs used across tests
ALICE = 1
BOB = 2
CAROL = 3
DAVE = 4


class FakeRegistry:
    """In-memory CharacterRegistry."""

    def __init__(self) -> None:
        self.characters: dict[int, CharacterStats] = {}
        self.results: list[tuple[int, bool, int]] = []
        self.fail_on_record = False
        self.fail_on_calls: set[int] = set()  # 1-based record_battle_result calls that raise
        self.calls = 0

    def add(self, character: CharacterStats) -> CharacterStats:
        self.characters[character.character_id] = character
        return character

    async def get_character(self, character_id: int) -> CharacterStats:
        if character_id not in self.characters:
            raise ResourceNotFoundError(f"Character {character_id} not found")
        return self.characters[character_id]

    async def get_owner(self, character_id: int) -> int:
        return (await self.get_character(character_id)).owner_id

    async def compute_damage(self, character_id: int, critical: bool = False) -> int:
        from card_arena.engine.stats import compute_damage

        return compute_damage(await self.get_character(character_id), critical=critical)

    async def compute_health(self, character_id: int) -> int:
        from card_arena.engine.stats import compute_health

        return compute_health(await self.get_character(character_id))

    async def compute_defense(self, character_id: int) -> int:
        from card_arena.engine.stats import compute_defense

        return compute_defense(await self.get_character(character_id))

    async def compute_dodge_chance(self, character_id: int) -> int:
        from card_arena.engine.stats import compute_dodge_chance

        return compute_dodge_chance(await self.get_character(character_id))

    async def record_battle_result(self, character_id: int, is_winner: bool, experience_gained: int) -> None:
        self.calls += 1
        if self.fail_on_record or self.calls in self.fail_on_calls:
            raise RuntimeError("registry unavailable")
        self.results.append((character_id, is_winner, experience_gained))


class ScriptedRandomSource:
    """Returns queued seeds in order, then a fixed default."""

    def __init__(self, seeds: list[int] | None = None, default: int = 0) -> None:
        self.seeds = list(seeds or [])
        self.default = default

    def push(self, *seeds: int) -> None:
        self.seeds.extend(seeds)

    def next_seed(self) -> int:
        if self.seeds:
            return self.seeds.pop(0)
        return self.default


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class EventRecorder:
    """Collects published events."""

    def __init__(self) -> None:
        self.events: list[ArenaEvent] = []

    def __call__(self, event: ArenaEvent) -> None:
        self.events.append(event)

    def types(self) -> list[str]:
        return [e.event_type.value for e in self.events]


def make_character(character_id: int, owner_id: int, character_class=CharacterClass.BRUTE, **stats) -> CharacterStats:
    """Build a character with zeroed stats unless overridden."""
    return CharacterStats(
        character_id=character_id,
        owner_id=owner_id,
        name=f"Character {character_id}",
        character_class=character_class,
        **stats,
    )


@pytest.fixture
def registry() -> FakeRegistry:
    """Registry with one brute per test player (character id = 10 * player id)."""
    registry = FakeRegistry()
    for player_id in (ALICE, BOB, CAROL, DAVE):
        registry.add(make_character(player_id * 10, player_id, strength=50, defense=20, vitality=60))
    return registry


@pytest.fixture
def rng() -> ScriptedRandomSource:
    # 99 never crits (chance <= 30%) and never dodges (chance <= 75%)
    return ScriptedRandomSource(default=99)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def battle_engine(registry, rng, clock, recorder) -> BattleEngine:
    events = EventBus()
    events.subscribe(recorder)
    return BattleEngine(registry, operator_id=OPERATOR_ID, rng=rng, events=events, clock=clock)


@pytest.fixture
async def async_engine():
    """Create async SQLite in-memory engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    # Enable foreign keys for SQLite
    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
