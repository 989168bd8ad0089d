from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from ..allocation.volumes import VolumeMetadata
from ..errors import ContainerNotFoundError
from .telegram_api import TelegramBotAPI, UploadFile

DEFAULT_EMOJI = "\U0001f5bc"


@dataclass(slots=True, frozen=True)
class StickerItem:
    """One item ready to be placed: either an existing file id or fresh PNG bytes."""

    is_animated: bool
    emoji: str = DEFAULT_EMOJI
    file_id: str | None = None
    png: bytes | None = None

    def __post_init__(self) -> None:
        if (self.file_id is None) == (self.png is None):
            raise ValueError("exactly one of file_id or png must be set")
        if self.png is not None and self.is_animated:
            raise ValueError("uploaded PNG items are always static")

    def input_sticker(self, attach_name: str = "sticker_file") -> tuple[Dict[str, Any], Dict[str, UploadFile]]:
        files: Dict[str, UploadFile] = {}
        if self.png is not None:
            source = f"attach://{attach_name}"
            files[attach_name] = UploadFile(filename="sticker.png", content=self.png)
        else:
            source = str(self.file_id)
        sticker = {
            "sticker": source,
            "format": "animated" if self.is_animated else "static",
            "emoji_list": [self.emoji or DEFAULT_EMOJI],
        }
        return sticker, files


class RemoteCollections:
    """Sticker sets on Telegram seen as named, append-only containers."""

    def __init__(self, api: TelegramBotAPI) -> None:
        self.api = api

    async def get_container(self, name: str) -> VolumeMetadata | None:
        try:
            payload = await self.api.get_sticker_set(name)
        except ContainerNotFoundError:
            return None
        return VolumeMetadata.from_sticker_set(payload)

    async def append_item(self, owner_id: int, name: str, item: StickerItem) -> None:
        sticker, files = item.input_sticker()
        await self.api.add_sticker_to_set(owner_id, name, sticker, files or None)

    async def create_container(self, owner_id: int, name: str, title: str, item: StickerItem) -> None:
        sticker, files = item.input_sticker()
        await self.api.create_new_sticker_set(owner_id, name, title, [sticker], files or None)
