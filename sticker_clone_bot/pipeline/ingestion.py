from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Union

from ..allocation.allocator import CollectionAllocator, Placement
from ..allocation.volumes import collection_title
from ..errors import CapacityRaceError, IngestionError, StickerBotError, ValidationError
from ..ledger.profile import Identity
from ..ledger.store import Ledger
from ..services.codec import StickerCodec
from ..services.collections import RemoteCollections, StickerItem
from .content import PhotoContent, StickerContent, find_most_suitable_photo

logger = logging.getLogger("sticker_clone_bot")

Downloader = Callable[[str, int], Awaitable[bytes]]
Content = Union[StickerContent, PhotoContent]


@dataclass(slots=True, frozen=True)
class IngestionResult:
    placement: str
    shard_name: str
    shard_title: str
    volume_index: int
    content_type: str
    counted: bool = True

    @property
    def created(self) -> bool:
        return self.placement == "new_shard"


class IngestionPipeline:
    def __init__(
        self,
        allocator: CollectionAllocator,
        collections: RemoteCollections,
        ledger: Ledger,
        codec: StickerCodec,
        download: Downloader,
        *,
        max_download_bytes: int = 512 * 1024,
        capacity_race_retries: int = 1,
    ) -> None:
        self.allocator = allocator
        self.collections = collections
        self.ledger = ledger
        self.codec = codec
        self.download = download
        self.max_download_bytes = int(max_download_bytes)
        self.capacity_race_retries = max(0, int(capacity_race_retries))

    def _check_declared_size(self, file_size: int | None) -> None:
        if file_size is not None and int(file_size) > self.max_download_bytes:
            raise ValidationError(f"file is {file_size} bytes, limit is {self.max_download_bytes}")

    async def _fetch_and_convert(self, file_id: str, file_size: int | None) -> bytes:
        self._check_declared_size(file_size)
        data = await self.download(file_id, self.max_download_bytes)
        return await asyncio.to_thread(self.codec.convert_to_target_format, data)

    async def classify(self, content: Content) -> tuple[StickerItem, str]:
        if isinstance(content, StickerContent):
            if content.is_video:
                raise ValidationError("video stickers are not supported")
            if content.emoji:
                item = StickerItem(is_animated=content.is_animated, emoji=content.emoji, file_id=content.file_id)
                return item, "animated" if content.is_animated else "static"
            if content.is_animated:
                raise ValidationError("animated sticker without an emoji cannot be cloned")
            # Legacy emoji-less WebP stickers have to be re-encoded before upload.
            png = await self._fetch_and_convert(content.file_id, content.file_size)
            return StickerItem(is_animated=False, png=png), "static"

        if isinstance(content, PhotoContent):
            if not content.sizes:
                raise ValidationError("photo message carries no sizes")
            photo = find_most_suitable_photo(content.sizes)
            png = await self._fetch_and_convert(photo.file_id, photo.file_size)
            return StickerItem(is_animated=False, png=png), "image"

        raise ValidationError(f"unsupported content: {type(content).__name__}")

    async def _place(self, identity: Identity, item: StickerItem) -> tuple[Placement, str]:
        owner_id = identity.id
        attempts = self.capacity_race_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                placement = await self.allocator.place_item(owner_id, item.is_animated)
            except StickerBotError as exc:
                raise IngestionError("allocate", owner_id, exc) from exc

            if placement.metadata is not None:
                title = placement.metadata.title
            else:
                title = collection_title(identity.first_name, placement.volume_index)
            step = "create" if placement.created else "append"
            try:
                if placement.created:
                    await self.collections.create_container(owner_id, placement.shard_name, title, item)
                else:
                    await self.collections.append_item(owner_id, placement.shard_name, item)
            except CapacityRaceError as exc:
                if attempt < attempts:
                    logger.info(
                        "Lost race for %s (owner=%s step=%s); probing again",
                        placement.shard_name,
                        owner_id,
                        step,
                    )
                    continue
                raise IngestionError(step, owner_id, exc, shard_name=placement.shard_name) from exc
            except StickerBotError as exc:
                raise IngestionError(step, owner_id, exc, shard_name=placement.shard_name) from exc
            return placement, title
        raise AssertionError("unreachable")

    async def _record(self, owner_id: int, content_type: str, shard_name: str) -> bool:
        try:
            await self.ledger.increment_content_counter(owner_id, content_type)
        except asyncio.CancelledError:
            logger.warning(
                "Cancelled after placing into %s; %s counter for owner=%s not recorded",
                shard_name,
                content_type,
                owner_id,
            )
            raise
        except Exception:
            logger.warning(
                "Placed into %s but failed to record %s counter for owner=%s",
                shard_name,
                content_type,
                owner_id,
                exc_info=True,
            )
            return False
        return True

    async def ingest(self, identity: Identity, content: Content) -> IngestionResult:
        try:
            item, content_type = await self.classify(content)
        except StickerBotError as exc:
            raise IngestionError("classify", identity.id, exc) from exc

        placement, title = await self._place(identity, item)
        counted = await self._record(identity.id, content_type, placement.shard_name)
        logger.info(
            "Placed %s item for owner=%s into %s (volume %s, new=%s)",
            content_type,
            identity.id,
            placement.shard_name,
            placement.volume_index,
            placement.created,
        )
        return IngestionResult(
            placement="new_shard" if placement.created else "existing_shard",
            shard_name=placement.shard_name,
            shard_title=title,
            volume_index=placement.volume_index,
            content_type=content_type,
            counted=counted,
        )
