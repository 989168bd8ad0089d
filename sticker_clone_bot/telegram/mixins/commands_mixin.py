from __future__ import annotations

import html
import json
import logging

from ..common import UpdateContext, format_pack_link

logger = logging.getLogger("sticker_clone_bot")

PUBLIC_COMMANDS = ("start", "help", "language", "packs", "ping")
DEBUG_COMMANDS = ("chatid", "profile", "stop")


class CommandsMixin:
    async def _on_command(self, ctx: UpdateContext, command: str, args: str) -> None:
        if command in PUBLIC_COMMANDS:
            await self.ledger.increment_command_counter(command)
        elif not (self.settings.debug and command in DEBUG_COMMANDS):
            return
        handler = getattr(self, f"_command_{command}")
        await handler(ctx, args)

    async def _send_languages_menu(self, ctx: UpdateContext) -> None:
        await self._reply(ctx, ctx.localize("language_select"), reply_markup=self.localization.languages_keyboard())

    async def _command_start(self, ctx: UpdateContext, args: str) -> None:
        await self._send_languages_menu(ctx)

    async def _command_help(self, ctx: UpdateContext, args: str) -> None:
        await self._reply(ctx, ctx.localize("basic_help"))

    async def _command_language(self, ctx: UpdateContext, args: str) -> None:
        await self._send_languages_menu(ctx)

    async def _command_packs(self, ctx: UpdateContext, args: str) -> None:
        if ctx.identity is None:
            return
        await self._send_typing(ctx)
        volumes = await self.allocator.list_volumes(ctx.identity.id)
        if not volumes:
            await self._reply(ctx, ctx.localize("stickers_list_empty"))
            return
        links = [format_pack_link(volume.name, volume.title) for volume in volumes]
        await self._reply(
            ctx,
            ctx.localize("stickers_list_success", count=len(links), packs_links="\n".join(links)),
            html_mode=True,
        )

    async def _command_ping(self, ctx: UpdateContext, args: str) -> None:
        await self._reply(ctx, "Pong \U0001f3d3")

    async def _command_chatid(self, ctx: UpdateContext, args: str) -> None:
        await self._reply(ctx, f"Chat id: <pre>{ctx.chat_id}</pre>", html_mode=True)

    async def _command_profile(self, ctx: UpdateContext, args: str) -> None:
        if ctx.identity is None:
            return
        fields = await self.ledger.redis.hgetall(self.ledger.keys.user(ctx.identity.id))
        dump = json.dumps(fields, indent="\t", ensure_ascii=False, sort_keys=True)
        await self._reply(ctx, f"<pre>{html.escape(dump)}</pre>", html_mode=True)

    async def _command_stop(self, ctx: UpdateContext, args: str) -> None:
        await self._reply(ctx, "It was nice to serve you sir \U0001f60a")
        requester = ctx.identity.id if ctx.identity else "unknown"
        self.stop(f"Requested by {requester}")
