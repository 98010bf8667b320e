"""Tests for bot helpers: argument parsing, formatting, error handling and notifications."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from aiogram.exceptions import TelegramForbiddenError
from aiogram.types import Message
from conftest import ALICE, BOB, make_character

from card_arena.bot.notifications import BattleNotifier
from card_arena.bot.utils import (
    command_args,
    format_attack_outcome,
    format_battle_log,
    format_battle_state,
    format_character,
    health_bar,
    parse_allocation,
    parse_int,
    safe_handler,
)
from card_arena.db.models import CharacterClass
from card_arena.engine.events import ArenaEvent, EventBus, EventType
from card_arena.engine.types import CharacterStats
from card_arena.errors import StateError, ValidationError


def make_message(user_id: int = ALICE) -> MagicMock:
    message = MagicMock(spec=Message)
    message.from_user = MagicMock(id=user_id, username="tester")
    message.chat = MagicMock(id=user_id)
    message.reply = AsyncMock()
    return message


class TestArgumentParsing:
    """Tests for command argument helpers."""

    def test_command_args(self):
        assert command_args("/accept 5 12") == ["5", "12"]
        assert command_args("/queue") == []
        assert command_args(None) == []

    def test_parse_int(self):
        assert parse_int("42", "Character ID") == 42
        with pytest.raises(ValidationError, match="Character ID must be a number"):
            parse_int("abc", "Character ID")

    def test_parse_allocation(self):
        assert parse_allocation(["Strength=5", "vitality=3", "strength=2"]) == {"strength": 7, "vitality": 3}

    def test_parse_allocation_rejects_garbage(self):
        with pytest.raises(ValidationError):
            parse_allocation(["strength"])
        with pytest.raises(ValidationError):
            parse_allocation(["=5"])
        with pytest.raises(ValidationError):
            parse_allocation(["strength=lots"])


class TestFormatting:
    """Tests for display formatting."""

    def test_health_bar(self):
        assert health_bar(50, 100) == "█████░░░░░"
        assert health_bar(100, 100) == "██████████"
        assert health_bar(0, 100) == "░░░░░░░░░░"
        # Any health left shows at least one block
        assert health_bar(1, 1000) == "█░░░░░░░░░"
        assert health_bar(5, 0) == "░░░░░░░░░░"

    def test_format_character_escapes_name(self):
        character = make_character(10, ALICE, strength=50, defense=20, vitality=60)
        text = format_character(character)

        assert "<b>#10 Character 10</b> (brute)" in text
        assert "1508 HP" in text

        king = CharacterStats(
            character_id=11, owner_id=ALICE, name="<Grog>", character_class=CharacterClass.KING, stat_points=4
        )
        sheet = format_character(king)
        assert "&lt;Grog&gt;" in sheet
        assert "Unspent stat points: 4" in sheet

    async def test_format_battle_state(self, battle_engine):
        battle = await battle_engine.create_battle(ALICE, 10, BOB, 20)

        text = format_battle_state(battle_engine.get_battle_state(battle.battle_id))

        assert f"Battle #{battle.battle_id} - Round 1" in text
        assert f"▶️ Player {ALICE}:" in text
        assert f"⏸ Player {BOB}:" in text
        assert "1508/1508" in text
        assert "Winner" not in text

    async def test_format_attack_and_log(self, battle_engine):
        battle = await battle_engine.create_battle(ALICE, 10, BOB, 20)
        outcome = await battle_engine.perform_attack(battle.battle_id, ALICE, "normal")

        text = format_attack_outcome(outcome)
        assert "normal attack hits for 394." in text
        assert "Opponent health: 1114" in text

        log_text = format_battle_log(battle_engine.action_log, battle.battle_id)
        assert "P1 normal attack for 394" in log_text


class TestSafeHandler:
    """Tests for the handler error wrapper."""

    async def test_arena_error_is_shown_to_user(self):
        @safe_handler
        async def handler(message):
            raise StateError("You are <busy>")

        message = make_message()
        assert await handler(message) is None
        message.reply.assert_awaited_once_with("You are &lt;busy&gt;")

    async def test_unexpected_error_gets_generic_reply(self, caplog):
        @safe_handler
        async def handler(message):
            raise RuntimeError("database exploded")

        message = make_message()
        await handler(message)

        message.reply.assert_awaited_once_with("Something went wrong. Please try again later.")
        assert "Handler error in handler" in caplog.text

    async def test_success_passes_through(self):
        @safe_handler
        async def handler(message):
            return "ok"

        assert await handler(make_message()) == "ok"


class TestBattleNotifier:
    """Tests for event rendering and delivery."""

    def setup_method(self):
        self.bot = MagicMock()
        self.bot.send_message = AsyncMock()
        self.notifier = BattleNotifier(self.bot, EventBus())

    async def test_battle_flow_messages(self, battle_engine, recorder):
        battle = await battle_engine.create_battle(ALICE, 10, BOB, 20)
        await battle_engine.perform_attack(battle.battle_id, ALICE, "normal")

        started, turn, attack, next_turn = (self.notifier.render(e) for e in recorder.events)

        assert [pid for pid, _ in started] == [ALICE, BOB]
        assert turn[0][0] == ALICE
        assert "13 attack points" in turn[0][1]
        assert attack == [(BOB, "🩸 You took 394 damage (normal). Health: 1114")]
        assert next_turn[0][0] == BOB

    def test_battle_completed(self):
        event = ArenaEvent(
            EventType.BATTLE_COMPLETED,
            battle_id=7,
            player_ids=(ALICE, BOB),
            data={"winner_id": BOB, "loser_id": ALICE, "reason": "forfeit", "experience": {BOB: 100, ALICE: 100}},
        )

        messages = self.notifier.render(event)

        assert messages[0] == (BOB, "🏆 You won battle #7 (forfeit)! +100 XP")
        assert messages[1] == (ALICE, "💀 You lost battle #7 (forfeit). +100 XP")

    def test_challenge_issued_goes_to_challenged_only(self):
        event = ArenaEvent(
            EventType.CHALLENGE_ISSUED,
            player_ids=(ALICE, BOB),
            data={"challenger_id": ALICE, "character_id": 10},
        )

        messages = self.notifier.render(event)

        assert [pid for pid, _ in messages] == [BOB]
        assert f"/accept {ALICE}" in messages[0][1]

    def test_unrendered_events(self):
        assert self.notifier.render(ArenaEvent(EventType.QUEUE_JOINED, player_ids=(ALICE,))) == []

    async def test_attach_delivers_messages(self):
        self.notifier.attach()

        await self.notifier.events.publish(
            ArenaEvent(EventType.BATTLE_CANCELED, battle_id=3, player_ids=(ALICE, BOB), data={"reason": "admin"})
        )

        assert self.bot.send_message.await_count == 2
        self.bot.send_message.assert_any_await(chat_id=BOB, text="🚫 Battle #3 was canceled (admin).")

    async def test_blocked_player_is_skipped(self):
        self.bot.send_message.side_effect = [
            TelegramForbiddenError(method=MagicMock(), message="Forbidden: bot was blocked by the user"),
            None,
        ]

        await self.notifier.on_event(
            ArenaEvent(EventType.BATTLE_CANCELED, battle_id=3, player_ids=(ALICE, BOB), data={"reason": "admin"})
        )

        assert self.bot.send_message.await_count == 2
