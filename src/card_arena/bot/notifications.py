"""Battle notifier - forwards arena events to players as private messages."""

import logging

from aiogram import Bot
from aiogram.exceptions import TelegramBadRequest, TelegramForbiddenError

from ..engine.events import ArenaEvent, EventBus, EventType

logger = logging.getLogger("card_arena.bot")


class BattleNotifier:
    """Subscribes to the event bus and messages the affected players.

    Players who never opened a private chat with the bot cannot be
    messaged; such failures are logged and skipped.
    """

    def __init__(self, bot: Bot, events: EventBus) -> None:
        self.bot = bot
        self.events = events

    def attach(self) -> None:
        self.events.subscribe(self.on_event)

    def detach(self) -> None:
        self.events.unsubscribe(self.on_event)

    async def on_event(self, event: ArenaEvent) -> None:
        for player_id, text in self.render(event):
            await self._send(player_id, text)

    def render(self, event: ArenaEvent) -> list[tuple[int, str]]:
        """Build (player_id, text) pairs for an event. Empty if nobody is notified."""
        data = event.data
        match event.event_type:
            case EventType.BATTLE_STARTED:
                text = f"⚔️ Battle #{event.battle_id} has started! Use /battle to see the state."
                return [(pid, text) for pid in event.player_ids]

            case EventType.TURN_STARTED:
                return [
                    (
                        data["player_id"],
                        f"▶️ Your turn in battle #{event.battle_id} (round {data['round']}): "
                        f"{data['attack_points']} attack points.\n"
                        "/attack normal|special1|special2, /endturn or /forfeit",
                    )
                ]

            case EventType.ATTACK_PERFORMED:
                if data["dodged"]:
                    text = f"💨 You dodged a {data['kind']} attack!"
                else:
                    crit = " 💥 Critical!" if data["critical"] else ""
                    text = (
                        f"🩸 You took {data['damage']} damage ({data['kind']}).{crit} "
                        f"Health: {data['defender_health']}"
                    )
                return [(data["defender_id"], text)]

            case EventType.BATTLE_COMPLETED:
                experience = data.get("experience", {})
                messages = [
                    (
                        data["winner_id"],
                        f"🏆 You won battle #{event.battle_id} ({data['reason']})! "
                        f"+{experience.get(data['winner_id'], 0)} XP",
                    ),
                    (
                        data["loser_id"],
                        f"💀 You lost battle #{event.battle_id} ({data['reason']}). "
                        f"+{experience.get(data['loser_id'], 0)} XP",
                    ),
                ]
                return messages

            case EventType.BATTLE_CANCELED:
                text = f"🚫 Battle #{event.battle_id} was canceled ({data['reason']})."
                return [(pid, text) for pid in event.player_ids]

            case EventType.CHALLENGE_ISSUED:
                challenger_id = data["challenger_id"]
                return [
                    (
                        pid,
                        f"📜 Player {challenger_id} challenged you! "
                        f"/accept {challenger_id} &lt;character_id&gt; or /reject {challenger_id}",
                    )
                    for pid in event.player_ids
                    if pid != challenger_id
                ]

            case EventType.CHALLENGE_REJECTED:
                return [(data["challenger_id"], f"❌ Player {data['rejecter_id']} rejected your challenge.")]

            case _:
                return []

    async def _send(self, player_id: int, text: str) -> None:
        try:
            await self.bot.send_message(chat_id=player_id, text=text)
        except (TelegramForbiddenError, TelegramBadRequest) as e:
            logger.debug(f"Could not notify player {player_id}: {e}")
