"""Event bus for observable arena notifications (UI, log shipping)."""

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Types of arena events."""

    # Battle lifecycle
    BATTLE_STARTED = "battle_started"
    BATTLE_COMPLETED = "battle_completed"
    BATTLE_CANCELED = "battle_canceled"

    # Turn lifecycle
    TURN_STARTED = "turn_started"
    TURN_ENDED = "turn_ended"
    ATTACK_PERFORMED = "attack_performed"

    # Challenges
    CHALLENGE_ISSUED = "challenge_issued"
    CHALLENGE_ACCEPTED = "challenge_accepted"
    CHALLENGE_REJECTED = "challenge_rejected"

    # Matchmaking
    QUEUE_JOINED = "queue_joined"
    QUEUE_LEFT = "queue_left"


@dataclass(frozen=True)
class ArenaEvent:
    """A single published event."""

    event_type: EventType
    battle_id: int | None = None
    player_ids: tuple[int, ...] = ()
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


Listener = Callable[[ArenaEvent], Awaitable[None] | None]


class EventBus:
    """Fan-out of events to subscribed listeners.

    Listeners may be plain functions or coroutines. A failing listener is
    logged and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    async def publish(self, event: ArenaEvent) -> None:
        """Deliver one event to every listener."""
        logger.debug("Event %s battle=%s players=%s", event.event_type.value, event.battle_id, event.player_ids)
        for listener in list(self._listeners):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Event listener failed on {event.event_type.value}")

    async def publish_all(self, events: list[ArenaEvent]) -> None:
        for event in events:
            await self.publish(event)
