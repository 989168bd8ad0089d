from __future__ import annotations

import html
from dataclasses import dataclass
from typing import Any, Dict

from ..ledger.profile import Identity, UserProfile
from ..services.localization import Localization


def format_pack_link(name: str, title: str) -> str:
    return f'<a href="https://t.me/addstickers/{html.escape(name, quote=True)}">{html.escape(title)}</a>'


def parse_command(text: str, bot_username: str | None) -> tuple[str, str] | None:
    if not text.startswith("/"):
        return None
    head, _, args = text[1:].partition(" ")
    command, _, mention = head.partition("@")
    if mention and bot_username and mention.lower() != bot_username.lower():
        return None
    command = command.strip().lower()
    if not command:
        return None
    return command, args.strip()


def sender_of(update: Dict[str, Any]) -> Dict[str, Any] | None:
    for kind in ("message", "callback_query", "my_chat_member"):
        payload = update.get(kind)
        if isinstance(payload, dict) and isinstance(payload.get("from"), dict):
            return payload["from"]
    return None


def chat_id_of(update: Dict[str, Any]) -> int | None:
    message = update.get("message")
    if isinstance(message, dict):
        return int(message["chat"]["id"])
    query = update.get("callback_query")
    if isinstance(query, dict):
        if isinstance(query.get("message"), dict):
            return int(query["message"]["chat"]["id"])
        return int(query["from"]["id"])
    member = update.get("my_chat_member")
    if isinstance(member, dict):
        return int(member["chat"]["id"])
    return None


@dataclass(slots=True)
class UpdateContext:
    update: Dict[str, Any]
    chat_id: int | None
    identity: Identity | None
    profile: UserProfile | None
    localization: Localization
    default_language: str

    @property
    def language(self) -> str:
        if self.profile is not None:
            return self.profile.language
        return self.default_language

    def localize(self, template_id: str, **variables: Any) -> str:
        return self.localization.render(self.language, template_id, variables)
