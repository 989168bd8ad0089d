from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict


STATIC_CAPACITY = 120
ANIMATED_CAPACITY = 50


def capacity_for(is_animated: bool) -> int:
    return ANIMATED_CAPACITY if is_animated else STATIC_CAPACITY


def collection_name(owner_id: int, bot_username: str, volume_index: int) -> str:
    if volume_index < 1:
        raise ValueError("volume_index starts at 1")
    return f"Collection_{volume_index}_{owner_id}_by_{bot_username}"


def collection_title(first_name: str | None, volume_index: int) -> str:
    owner = (first_name or "").strip() or "My"
    return f"{owner}'s collection vol. {volume_index}"


@dataclass(slots=True, frozen=True)
class VolumeMetadata:
    name: str
    title: str
    is_animated: bool
    item_count: int

    @property
    def capacity(self) -> int:
        return capacity_for(self.is_animated)

    @property
    def is_full(self) -> bool:
        return self.item_count >= self.capacity

    def accepts(self, is_animated: bool) -> bool:
        return self.is_animated == is_animated and not self.is_full

    @classmethod
    def from_sticker_set(cls, payload: Dict[str, Any]) -> "VolumeMetadata":
        stickers = payload.get("stickers") or []
        # Newer Bot API revisions dropped the set-level flag; fall back to the first sticker.
        flag = payload.get("is_animated")
        if flag is None:
            flag = bool(stickers and stickers[0].get("is_animated"))
        return cls(
            name=str(payload.get("name") or ""),
            title=str(payload.get("title") or payload.get("name") or ""),
            is_animated=bool(flag),
            item_count=len(stickers),
        )
