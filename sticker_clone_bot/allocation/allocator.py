from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List

from .volumes import VolumeMetadata, collection_name

logger = logging.getLogger("sticker_clone_bot")

VolumeLookup = Callable[[str], Awaitable[VolumeMetadata | None]]


class VolumeAction(enum.Enum):
    SELECT = "select"
    SKIP = "skip"
    CREATE = "create"


def decide(metadata: VolumeMetadata | None, is_animated: bool) -> VolumeAction:
    """Map what was observed at one volume index to the next allocation step."""
    if metadata is None:
        return VolumeAction.CREATE
    if metadata.accepts(is_animated):
        return VolumeAction.SELECT
    return VolumeAction.SKIP


@dataclass(slots=True, frozen=True)
class Placement:
    shard_name: str
    volume_index: int
    created: bool
    metadata: VolumeMetadata | None = None


class CollectionAllocator:
    """Finds the first volume in an owner's sequence that can take one more item.

    The allocator only decides; appending or creating the volume is left to the
    caller, so a failed mutation can be followed by a fresh ``place_item`` call.
    """

    def __init__(self, lookup: VolumeLookup, bot_username: str) -> None:
        if not bot_username:
            raise ValueError("bot_username cannot be empty")
        self._lookup = lookup
        self.bot_username = bot_username

    def volume_name(self, owner_id: int, volume_index: int) -> str:
        return collection_name(owner_id, self.bot_username, volume_index)

    async def place_item(self, owner_id: int, is_animated: bool) -> Placement:
        volume_index = 1
        while True:
            name = self.volume_name(owner_id, volume_index)
            metadata = await self._lookup(name)
            action = decide(metadata, is_animated)
            if action is VolumeAction.SELECT:
                return Placement(name, volume_index, False, metadata)
            if action is VolumeAction.CREATE:
                return Placement(name, volume_index, True, None)
            logger.debug(
                "Skipping volume %s for owner=%s (animated=%s count=%s)",
                name,
                owner_id,
                metadata.is_animated if metadata else None,
                metadata.item_count if metadata else None,
            )
            volume_index += 1

    async def list_volumes(self, owner_id: int) -> List[VolumeMetadata]:
        volumes: List[VolumeMetadata] = []
        volume_index = 1
        while True:
            metadata = await self._lookup(self.volume_name(owner_id, volume_index))
            if metadata is None:
                return volumes
            volumes.append(metadata)
            volume_index += 1
