import asyncio
import logging

from aiogram.utils.backoff import BackoffConfig
from dotenv import load_dotenv

from usage_watch.config import load_config
from usage_watch.bot import setup_bot


async def main():
    load_dotenv()
    cfg = load_config()

    logging.basicConfig(
        level=cfg.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    bot = None
    dp = None
    app = None

    try:
        bot, dp, app = setup_bot(cfg)
        await app.restore()

        await dp.start_polling(
            bot,
            polling_timeout=30,
            allowed_updates=dp.resolve_used_update_types(),
            backoff_config=BackoffConfig(
                min_delay=5.0,
                max_delay=60.0,
                factor=2.0,
                jitter=0.1,
            ),
        )

    finally:
        if app is not None:
            await app.shutdown()
        if bot is not None:
            await bot.session.close()


if __name__ == "__main__":
    asyncio.run(main())
