"""Arena handlers - matchmaking, challenges and battle actions."""

import html

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import Message

from ...engine.types import AttackKind
from ...errors import StateError
from ...services.arena import Arena
from ..utils import (
    command_args,
    format_attack_outcome,
    format_battle_log,
    format_battle_state,
    format_turn_outcome,
    get_display_name,
    log_command,
    parse_int,
    safe_handler,
    validate_message_user,
    validate_reply_message,
)

router = Router(name="arena")

ATTACK_KINDS = "|".join(k.value for k in AttackKind)


def _require_battle_id(arena: Arena, player_id: int) -> int:
    battle_id = arena.engine.active_battle_id(player_id)
    if battle_id is None:
        raise StateError("You are not in a battle")
    return battle_id


# ----------------------------------------------------------------------
# Matchmaking
# ----------------------------------------------------------------------


@router.message(Command("queue"))
@safe_handler
@log_command("/queue")
async def cmd_queue(message: Message, arena: Arena) -> None:
    """Handle /queue <character_id> - join matchmaking."""
    if not validate_message_user(message):
        await message.answer("Could not identify user.")
        return

    args = command_args(message.text)
    if len(args) != 1:
        await message.answer("<b>Usage:</b> /queue &lt;character_id&gt;")
        return

    player_id = message.from_user.id
    battle = await arena.queue.enqueue(player_id, parse_int(args[0], "Character ID"))
    if battle:
        await message.answer(f"⚔️ Opponent found! Battle #{battle.battle_id} begins.")
        return

    position = arena.queue.position(player_id)
    if position is None:
        # Matched with someone later in the same call, or removed meanwhile
        await message.answer("You are no longer in the queue.")
        return
    await message.answer(f"⏳ Waiting for an opponent (position {position} of {len(arena.queue)}).")


@router.message(Command("leave"))
@safe_handler
@log_command("/leave")
async def cmd_leave(message: Message, arena: Arena) -> None:
    """Handle /leave - leave matchmaking."""
    if not validate_message_user(message):
        await message.answer("Could not identify user.")
        return

    if await arena.queue.dequeue(message.from_user.id):
        await message.answer("You left the queue.")
    else:
        await message.answer("You are not in the queue.")


# ----------------------------------------------------------------------
# Challenges
# ----------------------------------------------------------------------


@router.message(Command("challenge"))
@safe_handler
@log_command("/challenge")
async def cmd_challenge(message: Message, arena: Arena) -> None:
    """Handle /challenge <character_id> sent as a reply to the opponent's message."""
    if not validate_message_user(message):
        await message.answer("Could not identify user.")
        return

    if not validate_reply_message(message):
        await message.answer("Reply to a user's message with /challenge &lt;character_id&gt; to challenge them!")
        return

    challenged = message.reply_to_message.from_user
    if challenged.is_bot:
        await message.answer("You can't challenge a bot!")
        return

    args = command_args(message.text)
    if len(args) != 1:
        await message.answer("<b>Usage:</b> reply with /challenge &lt;character_id&gt;")
        return

    entry = await arena.challenges.issue_challenge(
        challenger_id=message.from_user.id,
        challenged_id=challenged.id,
        character_id=parse_int(args[0], "Character ID"),
    )
    await message.answer(
        f"⚔️ <b>{html.escape(get_display_name(message.from_user))}</b> challenges "
        f"<b>{html.escape(get_display_name(challenged))}</b>!\n\n"
        f"Answer with /accept {entry.challenger_id} &lt;character_id&gt; or /reject {entry.challenger_id}"
    )


@router.message(Command("challenges"))
@safe_handler
@log_command("/challenges")
async def cmd_challenges(message: Message, arena: Arena) -> None:
    """Handle /challenges - list pending challenges in both directions."""
    if not validate_message_user(message):
        await message.answer("Could not identify user.")
        return

    player_id = message.from_user.id
    incoming = arena.challenges.incoming(player_id)
    outgoing = arena.challenges.outgoing(player_id)
    if not incoming and not outgoing:
        await message.answer("No pending challenges.")
        return

    lines = []
    if incoming:
        lines.append("<b>Incoming:</b>")
        lines.extend(f"• from player {e.challenger_id} (character #{e.character_id})" for e in incoming)
    if outgoing:
        lines.append("<b>Outgoing:</b>")
        lines.extend(f"• to player {e.challenged_id} (character #{e.character_id})" for e in outgoing)
    await message.answer("\n".join(lines))


@router.message(Command("accept"))
@safe_handler
@log_command("/accept")
async def cmd_accept(message: Message, arena: Arena) -> None:
    """Handle /accept <challenger_id> <character_id>."""
    if not validate_message_user(message):
        await message.answer("Could not identify user.")
        return

    args = command_args(message.text)
    if len(args) != 2:
        await message.answer("<b>Usage:</b> /accept &lt;challenger_id&gt; &lt;character_id&gt;")
        return

    battle = await arena.challenges.accept_challenge(
        accepter_id=message.from_user.id,
        challenger_id=parse_int(args[0], "Challenger ID"),
        character_id=parse_int(args[1], "Character ID"),
    )
    await message.answer(f"⚔️ Challenge accepted! Battle #{battle.battle_id} begins.")


@router.message(Command("reject"))
@safe_handler
@log_command("/reject")
async def cmd_reject(message: Message, arena: Arena) -> None:
    """Handle /reject <challenger_id>."""
    if not validate_message_user(message):
        await message.answer("Could not identify user.")
        return

    args = command_args(message.text)
    if len(args) != 1:
        await message.answer("<b>Usage:</b> /reject &lt;challenger_id&gt;")
        return

    await arena.challenges.reject_challenge(message.from_user.id, parse_int(args[0], "Challenger ID"))
    await message.answer("Challenge rejected.")


# ----------------------------------------------------------------------
# Battle actions
# ----------------------------------------------------------------------


@router.message(Command("attack"))
@safe_handler
@log_command("/attack")
async def cmd_attack(message: Message, arena: Arena) -> None:
    """Handle /attack [normal|special1|special2]."""
    if not validate_message_user(message):
        await message.answer("Could not identify user.")
        return

    args = command_args(message.text)
    kind = args[0].lower() if args else AttackKind.NORMAL.value
    player_id = message.from_user.id

    outcome = await arena.engine.perform_attack(_require_battle_id(arena, player_id), player_id, kind)
    await message.answer(format_attack_outcome(outcome))


@router.message(Command("endturn"))
@safe_handler
@log_command("/endturn")
async def cmd_end_turn(message: Message, arena: Arena) -> None:
    """Handle /endturn."""
    if not validate_message_user(message):
        await message.answer("Could not identify user.")
        return

    player_id = message.from_user.id
    outcome = await arena.engine.end_turn(_require_battle_id(arena, player_id), player_id)
    await message.answer(format_turn_outcome(outcome))


@router.message(Command("forfeit"))
@safe_handler
@log_command("/forfeit")
async def cmd_forfeit(message: Message, arena: Arena) -> None:
    """Handle /forfeit - give up the current battle."""
    if not validate_message_user(message):
        await message.answer("Could not identify user.")
        return

    player_id = message.from_user.id
    battle = await arena.engine.forfeit(_require_battle_id(arena, player_id), player_id)
    await message.answer(f"🏳️ You forfeited battle #{battle.battle_id}.")


@router.message(Command("battle"))
@safe_handler
@log_command("/battle")
async def cmd_battle(message: Message, arena: Arena) -> None:
    """Handle /battle - show the current battle and its recent actions."""
    if not validate_message_user(message):
        await message.answer("Could not identify user.")
        return

    player_id = message.from_user.id
    battle_id = _require_battle_id(arena, player_id)

    text = format_battle_state(arena.engine.get_battle_state(battle_id))
    log = format_battle_log(arena.action_log, battle_id)
    await message.answer(f"{text}\n\n<pre>{log}</pre>\n\nAttacks: /attack {ATTACK_KINDS}")
