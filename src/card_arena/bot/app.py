"""Bot application setup and dispatcher."""

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from card_arena.config import Settings, get_settings
from card_arena.services.arena import Arena


def create_bot(settings: Settings | None = None) -> Bot:
    """Create and configure the Telegram bot instance."""
    settings = settings or get_settings()
    return Bot(
        token=settings.bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )


def create_dispatcher(arena: Arena) -> Dispatcher:
    """Create the dispatcher with routers.

    The arena is passed as workflow data, so handlers receive it by
    declaring an ``arena`` parameter.
    """
    from card_arena.bot.handlers import admin_router, arena_router, characters_router

    dp = Dispatcher(arena=arena)
    dp.include_router(characters_router)
    dp.include_router(arena_router)
    dp.include_router(admin_router)
    return dp
