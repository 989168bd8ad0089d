from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class LedgerKeys:
    prefix: str = ""

    def user(self, owner_id: int) -> str:
        return f"{self.prefix}user:{int(owner_id)}"

    @property
    def users(self) -> str:
        return f"{self.prefix}users"

    @property
    def stickers_usage(self) -> str:
        return f"{self.prefix}stickers_usage"

    @property
    def commands_usage(self) -> str:
        return f"{self.prefix}commands_usage"
