"""Entry point for running the Card Arena bot."""

import asyncio
import logging
import sys

from card_arena.bot.app import create_bot, create_dispatcher
from card_arena.bot.notifications import BattleNotifier
from card_arena.config import get_settings
from card_arena.db.engine import create_engine, create_session_factory
from card_arena.services.arena import Arena


async def main() -> None:
    """Start the bot."""
    settings = get_settings()

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    engine = create_engine(settings)
    arena = Arena.from_settings(settings, create_session_factory(engine))

    bot = create_bot(settings)
    dp = create_dispatcher(arena)
    BattleNotifier(bot, arena.events).attach()

    logging.info("Starting Card Arena bot...")

    arena.start()
    try:
        await dp.start_polling(bot)
    finally:
        await arena.stop()
        await bot.session.close()
        await engine.dispose()


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    run()
