from __future__ import annotations

import asyncio
import contextlib
import logging
import random
from typing import Any, Dict

from ..allocation.allocator import CollectionAllocator
from ..config import Settings
from ..errors import BotBlockedError, StickerBotError, TransientExternalError
from ..ledger.profile import Identity
from ..ledger.store import Ledger
from ..pipeline.ingestion import IngestionPipeline
from ..services.codec import StickerCodec
from ..services.collections import RemoteCollections
from ..services.localization import Localization
from ..services.telegram_api import TelegramBotAPI
from .common import UpdateContext, chat_id_of, parse_command, sender_of
from .mixins.commands_mixin import CommandsMixin
from .mixins.content_mixin import ContentMixin
from .mixins.membership_mixin import MembershipMixin

logger = logging.getLogger("sticker_clone_bot")

ALLOWED_UPDATES = ["message", "callback_query", "my_chat_member"]


class StickerCloneBot(
    CommandsMixin,
    ContentMixin,
    MembershipMixin,
):
    def __init__(
        self,
        settings: Settings,
        api: TelegramBotAPI,
        ledger: Ledger,
        localization: Localization,
        codec: StickerCodec,
    ) -> None:
        self.settings = settings
        self.api = api
        self.ledger = ledger
        self.localization = localization
        self.codec = codec
        self.collections = RemoteCollections(api)

        self.username: str | None = None
        self.allocator: CollectionAllocator | None = None
        self.pipeline: IngestionPipeline | None = None

        self._semaphore = asyncio.Semaphore(settings.max_concurrent_updates)
        self._tasks: set[asyncio.Task[None]] = set()
        self._stop_event = asyncio.Event()
        self._offset: int | None = None

    async def setup(self) -> None:
        await self.api.start()
        logger.info("Connecting to Redis...")
        await self.ledger.ping()
        logger.info("Loading localization data from %s...", self.settings.localization_path)
        self.localization.load(self.settings.localization_path)

        me = await self.api.get_me()
        self.username = str(me.get("username") or "")
        self.allocator = CollectionAllocator(self.collections.get_container, self.username)
        self.pipeline = IngestionPipeline(
            self.allocator,
            self.collections,
            self.ledger,
            self.codec,
            self.api.download_file,
            max_download_bytes=self.settings.max_download_bytes,
            capacity_race_retries=self.settings.capacity_race_retries,
        )
        logger.info("Connected as @%s (%s)", self.username, me.get("id"))

    def stop(self, reason: str | None = None) -> None:
        if not self._stop_event.is_set():
            logger.info("Stopping bot: %s", reason or "no reason given")
            self._stop_event.set()

    def is_stopping(self) -> bool:
        return self._stop_event.is_set()

    async def run(self) -> None:
        await self.setup()
        logger.info("Ready")
        backoff = 0.0
        while not self._stop_event.is_set():
            try:
                updates = await self.api.get_updates(
                    self._offset,
                    self.settings.telegram_poll_timeout_seconds,
                    ALLOWED_UPDATES,
                )
            except TransientExternalError as exc:
                backoff = min(30.0, backoff * 2 or 1.0)
                logger.warning("Polling failed (%s); retrying in %.1fs", exc, backoff)
                await self._sleep_unless_stopped(backoff + random.random() * 0.5)
                continue
            backoff = 0.0
            for update in updates:
                self._offset = int(update["update_id"]) + 1
                task = asyncio.create_task(self._handle_update(update), name=f"update-{update['update_id']}")
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)

    async def _sleep_unless_stopped(self, delay: float) -> None:
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)

    async def close(self) -> None:
        self.stop("close")
        if self._tasks:
            _, pending = await asyncio.wait(set(self._tasks), timeout=10.0)
            for task in pending:
                task.cancel()
        await self._run_shutdown_step("telegram_api.close", self.api.close(), timeout=6.0)
        await self._run_shutdown_step("redis.aclose", self.ledger.redis.aclose(), timeout=6.0)

    async def _run_shutdown_step(self, label: str, coro: object, *, timeout: float) -> None:
        try:
            await asyncio.wait_for(coro, timeout=timeout)  # type: ignore[arg-type]
        except asyncio.TimeoutError:
            logger.warning("Shutdown step timed out: %s", label)
        except Exception as exc:
            logger.warning("Shutdown step failed: %s (%s)", label, exc)

    async def _handle_update(self, update: Dict[str, Any]) -> None:
        async with self._semaphore:
            try:
                await self._dispatch(update)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Unhandled error while processing update %s", update.get("update_id"))

    async def _build_context(self, update: Dict[str, Any]) -> UpdateContext:
        sender = sender_of(update)
        identity = Identity.from_telegram(sender) if sender else None
        profile = await self.ledger.load_or_create_profile(identity) if identity else None
        return UpdateContext(
            update=update,
            chat_id=chat_id_of(update),
            identity=identity,
            profile=profile,
            localization=self.localization,
            default_language=self.settings.default_language,
        )

    async def _dispatch(self, update: Dict[str, Any]) -> None:
        ctx = await self._build_context(update)

        if "my_chat_member" in update:
            await self._on_my_chat_member(ctx, update["my_chat_member"])
            return
        if "callback_query" in update:
            await self._on_callback_query(ctx, update["callback_query"])
            return

        message = update.get("message")
        if not isinstance(message, dict):
            return
        text = message.get("text")
        if isinstance(text, str):
            parsed = parse_command(text, self.username)
            if parsed is not None:
                await self._on_command(ctx, *parsed)
            return
        if "sticker" in message:
            await self._on_sticker(ctx, message)
        elif "photo" in message:
            await self._on_photo(ctx, message)

    async def _send_typing(self, ctx: UpdateContext) -> None:
        if ctx.chat_id is None:
            return
        try:
            await self.api.send_chat_action(ctx.chat_id, "typing")
        except StickerBotError as exc:
            logger.debug("Chat action failed for chat=%s: %s", ctx.chat_id, exc)

    async def _reply(
        self,
        ctx: UpdateContext,
        text: str,
        *,
        html_mode: bool = False,
        reply_markup: Dict[str, Any] | None = None,
    ) -> None:
        if ctx.chat_id is None:
            return
        try:
            await self.api.send_message(
                ctx.chat_id,
                text,
                parse_mode="HTML" if html_mode else None,
                reply_markup=reply_markup,
            )
        except BotBlockedError:
            if ctx.identity is not None:
                await self.ledger.set_blocked(ctx.identity.id, True)
            logger.info("Reply to chat=%s dropped: bot is blocked", ctx.chat_id)
