"""Arena - wires the registry, engine, queue, challenges and timeout watcher."""

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import Settings
from ..engine.action_log import ActionLog
from ..engine.battle import BattleEngine
from ..engine.events import EventBus
from ..engine.randomness import RandomSource
from ..engine.registry import CharacterRegistry
from ..engine.scheduler import TimeoutWatcher
from .challenges import ChallengeDirectory
from .characters import CharacterService
from .matchmaking import MatchmakingQueue

logger = logging.getLogger(__name__)


class Arena:
    """Composition root shared by the bot handlers."""

    def __init__(
        self,
        registry: CharacterRegistry,
        engine: BattleEngine,
        queue: MatchmakingQueue,
        challenges: ChallengeDirectory,
        watcher: TimeoutWatcher | None = None,
    ) -> None:
        self.registry = registry
        self.engine = engine
        self.queue = queue
        self.challenges = challenges
        self.watcher = watcher

    @property
    def events(self) -> EventBus:
        return self.engine.events

    @property
    def action_log(self) -> ActionLog:
        return self.engine.action_log

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        rng: RandomSource | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> "Arena":
        """Build an arena backed by the SQLAlchemy character registry.

        Args:
            settings: Application settings
            session_factory: Session factory for the character tables
            rng: Random source override (tests)
            clock: Clock override (tests)

        Returns:
            Arena ready to start
        """
        registry = CharacterService(session_factory, starting_stat_points=settings.starting_stat_points)
        engine = BattleEngine(
            registry,
            operator_id=settings.admin_user_id,
            rng=rng,
            clock=clock,
            battle_timeout=settings.battle_timeout,
            turn_timeout=settings.turn_timeout,
            finished_retention=settings.finished_battle_retention,
        )
        watcher = None
        if settings.timeout_poll_seconds > 0:
            watcher = TimeoutWatcher(engine, settings.timeout_poll_seconds)

        return cls(
            registry=registry,
            engine=engine,
            queue=MatchmakingQueue(engine, auto_match=settings.auto_match),
            challenges=ChallengeDirectory(engine),
            watcher=watcher,
        )

    def start(self) -> None:
        """Start background work. Needs a running event loop."""
        if self.watcher:
            self.watcher.start()

    async def stop(self) -> None:
        if self.watcher:
            await self.watcher.stop()
        logger.info("Arena stopped")
