from __future__ import annotations

import logging
from typing import Any, Dict

from ...errors import IngestionError, ValidationError
from ...pipeline.content import PhotoContent, StickerContent
from ...pipeline.ingestion import Content
from ..common import UpdateContext, format_pack_link

logger = logging.getLogger("sticker_clone_bot")


class ContentMixin:
    async def _on_sticker(self, ctx: UpdateContext, message: Dict[str, Any]) -> None:
        content = StickerContent.from_telegram(message["sticker"])
        await self._ingest_and_reply(ctx, content, failure_id="stickers_add_failure")

    async def _on_photo(self, ctx: UpdateContext, message: Dict[str, Any]) -> None:
        content = PhotoContent.from_telegram(message["photo"])
        await self._ingest_and_reply(ctx, content, failure_id="sticker_image_failure")

    async def _ingest_and_reply(self, ctx: UpdateContext, content: Content, *, failure_id: str) -> None:
        if ctx.identity is None:
            return
        await self._send_typing(ctx)

        try:
            result = await self.pipeline.ingest(ctx.identity, content)
        except IngestionError as exc:
            if isinstance(exc.cause, ValidationError):
                logger.info("Rejected content: %s", exc)
                response = ctx.localize("sticker_input_rejected")
            else:
                logger.warning("%s (retryable=%s)", exc, exc.retryable)
                response = ctx.localize(failure_id)
            await self._reply(ctx, response, html_mode=True)
            return

        if not result.counted:
            logger.warning(
                "Usage not recorded for owner=%s (%s into %s); run reconcile to repair totals",
                ctx.identity.id,
                result.content_type,
                result.shard_name,
            )
        template_id = "stickers_add_success_new" if result.created else "stickers_add_success"
        link = format_pack_link(result.shard_name, result.shard_title)
        await self._reply(ctx, ctx.localize(template_id, pack_link=link), html_mode=True)
