"""Admin handlers - battle cancellation and timeout configuration.

Only the arena operator (ADMIN_USER_ID) may use these; the engine enforces it.
"""

from datetime import timedelta

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import Message

from ...services.arena import Arena
from ..utils import command_args, log_command, parse_int, safe_handler, validate_message_user

router = Router(name="admin")


@router.message(Command("cancelbattle"))
@safe_handler
@log_command("/cancelbattle")
async def cmd_cancel_battle(message: Message, arena: Arena) -> None:
    """Handle /cancelbattle <battle_id> [reason]."""
    if not validate_message_user(message):
        await message.answer("Could not identify user.")
        return

    args = command_args(message.text)
    if not args:
        await message.answer("<b>Usage:</b> /cancelbattle &lt;battle_id&gt; [reason]")
        return

    battle = await arena.engine.emergency_cancel(
        message.from_user.id,
        parse_int(args[0], "Battle ID"),
        reason=" ".join(args[1:]),
    )
    await message.answer(f"Battle #{battle.battle_id} canceled.")


@router.message(Command("battletimeout"))
@safe_handler
@log_command("/battletimeout")
async def cmd_battle_timeout(message: Message, arena: Arena) -> None:
    """Handle /battletimeout <seconds>."""
    if not validate_message_user(message):
        await message.answer("Could not identify user.")
        return

    args = command_args(message.text)
    if len(args) != 1:
        await message.answer(f"<b>Usage:</b> /battletimeout &lt;seconds&gt; (now {arena.engine.battle_timeout})")
        return

    timeout = timedelta(seconds=parse_int(args[0], "Seconds"))
    arena.engine.set_battle_timeout(message.from_user.id, timeout)
    await message.answer(f"Battle timeout set to {timeout}.")


@router.message(Command("turntimeout"))
@safe_handler
@log_command("/turntimeout")
async def cmd_turn_timeout(message: Message, arena: Arena) -> None:
    """Handle /turntimeout <seconds>."""
    if not validate_message_user(message):
        await message.answer("Could not identify user.")
        return

    args = command_args(message.text)
    if len(args) != 1:
        await message.answer(f"<b>Usage:</b> /turntimeout &lt;seconds&gt; (now {arena.engine.turn_timeout})")
        return

    timeout = timedelta(seconds=parse_int(args[0], "Seconds"))
    arena.engine.set_turn_timeout(message.from_user.id, timeout)
    await message.answer(f"Turn timeout set to {timeout}.")
