"""Bot utilities - error handling, logging, argument parsing and formatting."""

import functools
import html
import logging
from typing import Any, Callable

from aiogram import types
from aiogram.exceptions import TelegramBadRequest
from aiogram.types import CallbackQuery, Message

from ..engine.action_log import ActionLog
from ..engine.stats import compute_combat_profile
from ..engine.types import AttackOutcome, CharacterStats, TurnOutcome
from ..errors import ArenaError, ValidationError

logger = logging.getLogger("card_arena.bot")


async def _reply(update: Message | CallbackQuery | None, text: str) -> None:
    if isinstance(update, Message):
        await update.reply(text)
    elif isinstance(update, CallbackQuery):
        await update.answer(text, show_alert=True)


def safe_handler(func: Callable) -> Callable:
    """Decorator to wrap handlers with error handling.

    ArenaError messages are shown to the user as-is. Anything else is
    logged with context and answered with a generic message.
    """

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        # Find the message or callback in args
        update: Message | CallbackQuery | None = None
        for arg in args:
            if isinstance(arg, (Message, CallbackQuery)):
                update = arg
                break

        try:
            return await func(*args, **kwargs)
        except ArenaError as e:
            logger.debug(f"Rejected in {func.__name__}: {type(e).__name__}: {e}")
            await _reply(update, html.escape(str(e)))
            return None
        except TelegramBadRequest as e:
            # Old buttons produce "query is too old"; nothing to answer
            if "query is too old" in str(e).lower():
                logger.debug(f"Ignoring old callback query in {func.__name__}")
                return None
            logger.exception(f"Telegram rejected a request in {func.__name__}")
            return None
        except Exception as e:
            user_id = None
            chat_id = None
            if isinstance(update, Message):
                user_id = update.from_user.id if update.from_user else None
                chat_id = update.chat.id
            elif isinstance(update, CallbackQuery):
                user_id = update.from_user.id
                chat_id = update.message.chat.id if update.message else None

            logger.exception(
                f"Handler error in {func.__name__}: {e}",
                extra={
                    "user_id": user_id,
                    "chat_id": chat_id,
                    "handler": func.__name__,
                },
            )

            try:
                await _reply(update, "Something went wrong. Please try again later.")
            except Exception:
                logger.exception("Failed to send error message to user")

            return None

    return wrapper


def log_command(command: str) -> Callable:
    """Decorator to log command usage.

    Args:
        command: The command name (e.g., "/queue", "/attack")
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            for arg in args:
                if isinstance(arg, Message):
                    user_id = arg.from_user.id if arg.from_user else None
                    username = arg.from_user.username if arg.from_user else None
                    logger.info(f"Command {command} from user {user_id} (@{username}) in chat {arg.chat.id}")
                    break

            return await func(*args, **kwargs)

        return wrapper

    return decorator


def validate_message_user(message: Message) -> bool:
    """Check if message has a sender."""
    return message.from_user is not None and message.from_user.id is not None


def validate_reply_message(message: Message) -> bool:
    """Check if message is a reply to a message with a known sender."""
    return (
        message.reply_to_message is not None
        and message.reply_to_message.from_user is not None
        and message.reply_to_message.from_user.id is not None
    )


def get_display_name(user: types.User | None) -> str:
    """Get display name for a Telegram user."""
    if user is None:
        return "Unknown"
    if user.full_name:
        return user.full_name
    if user.username:
        return f"@{user.username}"
    return f"User {user.id}"


def command_args(text: str | None) -> list[str]:
    """Split a command message into its arguments (the command itself dropped)."""
    if not text:
        return []
    return text.split()[1:]


def parse_int(value: str, what: str) -> int:
    """Parse an integer argument, raising ValidationError with a readable message."""
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{what} must be a number, got '{value}'") from None


def parse_allocation(args: list[str]) -> dict[str, int]:
    """Parse 'stat=points' pairs, e.g. ['strength=5', 'vitality=3'].

    Returns:
        Stat name -> points (repeated stats are summed)
    """
    allocation: dict[str, int] = {}
    for arg in args:
        name, sep, points = arg.partition("=")
        if not sep or not name:
            raise ValidationError(f"Expected stat=points, got '{arg}'")
        key = name.lower()
        allocation[key] = allocation.get(key, 0) + parse_int(points, name)
    return allocation


def health_bar(current: int, maximum: int, width: int = 10) -> str:
    """Render health as a fixed-width bar."""
    if maximum <= 0:
        return "░" * width
    filled = min(width, current * width // maximum)
    if current > 0 and filled == 0:
        filled = 1
    return "█" * filled + "░" * (width - filled)


def format_character(character: CharacterStats) -> str:
    """Format a character sheet for display."""
    profile = compute_combat_profile(character)
    veteran = " ⭐" if character.is_veteran else ""
    lines = [
        f"<b>#{character.character_id} {html.escape(character.name)}</b>{veteran} ({character.character_class.value})",
        f"STR {character.strength} | DEF {character.defense} | AGI {character.agility}",
        f"VIT {character.vitality} | INT {character.intelligence} | MAG {character.magic_power}",
        f"❤️ {profile.health} HP | ⚔️ {profile.damage} | 🛡️ {profile.defense}",
        f"💨 {profile.dodge_chance}% dodge | 💥 {profile.crit_rate / 100:g}% crit",
        f"Record: {character.wins}W / {character.losses}L | XP {character.experience}",
    ]
    if character.stat_points:
        lines.append(f"Unspent stat points: {character.stat_points}")
    return "\n".join(lines)


def format_battle_state(state: dict) -> str:
    """Format BattleEngine.get_battle_state output for display."""
    lines = [f"<b>⚔️ Battle #{state['battle_id']} - Round {state['round']}</b>"]

    for p in state["participants"]:
        marker = "▶️" if p["player_id"] == state["current_turn_player_id"] else "⏸"
        ended = " (ended turn)" if p["turn_ended"] else ""
        lines.append(
            f"{marker} Player {p['player_id']}: {health_bar(p['current_health'], p['max_health'])} "
            f"{p['current_health']}/{p['max_health']} | 🔷 {p['attack_points']} pts{ended}"
        )

    if state["winner_id"] is not None:
        lines.append(f"\n🏆 Winner: player {state['winner_id']} ({state['end_reason']})")
    elif state["end_reason"]:
        lines.append(f"\nBattle ended: {state['end_reason']}")
    return "\n".join(lines)


def format_attack_outcome(outcome: AttackOutcome) -> str:
    """Format an attack result for display."""
    if outcome.dodged:
        text = f"💨 {outcome.kind.value} attack was dodged!"
    else:
        crit = " 💥 Critical!" if outcome.critical else ""
        text = f"⚔️ {outcome.kind.value} attack hits for {outcome.damage_dealt}.{crit}"
    text += f"\nOpponent health: {outcome.defender_health} | Your points left: {outcome.points_left}"
    if outcome.battle_over:
        text += "\n\n🏆 <b>Victory!</b>"
    return text


def format_turn_outcome(outcome: TurnOutcome) -> str:
    if outcome.new_round:
        return f"⏭️ Turn ended. Round {outcome.round_number} begins!"
    return "⏭️ Turn ended. Waiting for your opponent."


def format_battle_log(action_log: ActionLog, battle_id: int, limit: int = 10) -> str:
    """Format the most recent actions of a battle."""
    lines = action_log.format_readable(battle_id).splitlines()
    if len(lines) > limit:
        lines = lines[-limit:]
    return "\n".join(html.escape(line) for line in lines)
