from __future__ import annotations

import logging
from typing import Any, Dict

from ...errors import StickerBotError, ValidationError
from ..common import UpdateContext

logger = logging.getLogger("sticker_clone_bot")

LANGUAGE_CALLBACK_PREFIX = "set_language:"


class MembershipMixin:
    async def _on_my_chat_member(self, ctx: UpdateContext, payload: Dict[str, Any]) -> None:
        # Only a private chat's status says whether replies can reach this user.
        if ctx.identity is None or (payload.get("chat") or {}).get("type") != "private":
            return
        status = str((payload.get("new_chat_member") or {}).get("status") or "")
        await self.ledger.set_blocked(ctx.identity.id, status == "kicked")

    async def _on_callback_query(self, ctx: UpdateContext, query: Dict[str, Any]) -> None:
        data = str(query.get("data") or "")
        if (
            ctx.identity is None
            or len(data.encode("utf-8")) > 64
            or not data.startswith(LANGUAGE_CALLBACK_PREFIX)
        ):
            await self.api.answer_callback_query(str(query["id"]))
            return

        language_code = data[len(LANGUAGE_CALLBACK_PREFIX):]
        try:
            await self.ledger.set_language(ctx.identity.id, language_code)
        except ValidationError as exc:
            logger.info("Ignoring language selection from owner=%s: %s", ctx.identity.id, exc)
            await self.api.answer_callback_query(str(query["id"]))
            return

        if ctx.profile is not None:
            ctx.profile.language = language_code
        await self.api.answer_callback_query(str(query["id"]), ctx.localize("language_selected"))

        message = query.get("message")
        if isinstance(message, dict):
            try:
                await self.api.delete_message(int(message["chat"]["id"]), int(message["message_id"]))
            except StickerBotError as exc:
                logger.warning("Failed to delete language menu: %s", exc)
        await self._reply(ctx, ctx.localize("basic_help"))
