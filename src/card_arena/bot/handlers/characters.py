"""Character handlers - /start, /help, /newcharacter, /characters, /allocate."""

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import Message

from ...db.models.enums import CharacterClass, StatName
from ...services.arena import Arena
from ..utils import (
    command_args,
    format_character,
    log_command,
    parse_allocation,
    parse_int,
    safe_handler,
    validate_message_user,
)

router = Router(name="characters")

CLASS_NAMES = ", ".join(c.value for c in CharacterClass)
STAT_NAMES = ", ".join(s.value for s in StatName)

HELP_TEXT = (
    "<b>⚔️ Card Arena</b>\n\n"
    "<b>Characters</b>\n"
    "/newcharacter &lt;class&gt; &lt;name&gt; - create a character\n"
    "/characters - list your characters\n"
    "/allocate &lt;id&gt; stat=points ... - spend stat points\n\n"
    "<b>Battles</b>\n"
    "/queue &lt;id&gt; - join matchmaking\n"
    "/leave - leave matchmaking\n"
    "/challenge &lt;id&gt; - reply to someone to challenge them\n"
    "/challenges - pending challenges\n"
    "/accept &lt;player&gt; &lt;id&gt; / /reject &lt;player&gt;\n"
    "/attack normal|special1|special2, /endturn, /forfeit, /battle\n\n"
    f"Classes: {CLASS_NAMES}\n"
    f"Stats: {STAT_NAMES}"
)


@router.message(Command("start", "help"))
@safe_handler
@log_command("/help")
async def cmd_help(message: Message) -> None:
    """Handle /start and /help - show available commands."""
    await message.answer(HELP_TEXT)


@router.message(Command("newcharacter"))
@safe_handler
@log_command("/newcharacter")
async def cmd_new_character(message: Message, arena: Arena) -> None:
    """Handle /newcharacter <class> <name>."""
    if not validate_message_user(message):
        await message.answer("Could not identify user.")
        return

    args = command_args(message.text)
    if len(args) < 2:
        await message.answer(f"<b>Usage:</b> /newcharacter &lt;class&gt; &lt;name&gt;\nClasses: {CLASS_NAMES}")
        return

    character = await arena.registry.create_character(
        owner_id=message.from_user.id,
        name=" ".join(args[1:]),
        character_class=args[0].lower(),
    )
    await message.answer(f"Character created!\n\n{format_character(character)}")


@router.message(Command("characters"))
@safe_handler
@log_command("/characters")
async def cmd_characters(message: Message, arena: Arena) -> None:
    """Handle /characters - list the caller's characters."""
    if not validate_message_user(message):
        await message.answer("Could not identify user.")
        return

    characters = await arena.registry.list_characters(message.from_user.id)
    if not characters:
        await message.answer("You have no characters yet. Create one with /newcharacter.")
        return

    await message.answer("\n\n".join(format_character(c) for c in characters))


@router.message(Command("allocate"))
@safe_handler
@log_command("/allocate")
async def cmd_allocate(message: Message, arena: Arena) -> None:
    """Handle /allocate <character_id> stat=points ..."""
    if not validate_message_user(message):
        await message.answer("Could not identify user.")
        return

    args = command_args(message.text)
    if len(args) < 2:
        await message.answer(
            "<b>Usage:</b> /allocate &lt;character_id&gt; stat=points ...\n"
            "<b>Example:</b> /allocate 3 strength=5 vitality=2"
        )
        return

    character = await arena.registry.allocate_stat_points(
        owner_id=message.from_user.id,
        character_id=parse_int(args[0], "Character ID"),
        allocation=parse_allocation(args[1:]),
    )
    await message.answer(format_character(character))
