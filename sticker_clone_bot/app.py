from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from .config import Settings
from .ledger.factory import build_redis
from .ledger.store import Ledger
from .services.codec import StickerCodec
from .services.localization import Localization
from .services.telegram_api import TelegramBotAPI
from .telegram.client import StickerCloneBot

logger = logging.getLogger("sticker_clone_bot")


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


def build_bot(settings: Settings) -> StickerCloneBot:
    localization = Localization()
    ledger = Ledger(
        build_redis(settings.redis_url),
        prefix=settings.redis_prefix,
        default_language=settings.default_language,
        language_validator=localization,
    )
    api = TelegramBotAPI(
        token=settings.telegram_token,
        timeout_seconds=settings.telegram_timeout_seconds,
        base_url=settings.telegram_api_base_url,
    )
    codec = StickerCodec(
        max_dimension=settings.sticker_max_dimension,
        max_input_bytes=settings.max_download_bytes,
    )
    return StickerCloneBot(
        settings=settings,
        api=api,
        ledger=ledger,
        localization=localization,
        codec=codec,
    )


async def _run_bot(settings: Settings) -> None:
    bot = build_bot(settings)
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # add_signal_handler is unavailable on Windows event loops.
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, bot.stop, sig.name)
    try:
        await bot.run()
    finally:
        await bot.close()


def main() -> None:
    configure_logging()
    settings = Settings.from_env()
    settings.validate()
    try:
        asyncio.run(_run_bot(settings))
    except KeyboardInterrupt:
        logger.info("Shutdown requested, exiting.")
