from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from fakes import FakeContainerService  # noqa: E402
from sticker_clone_bot.allocation import (  # noqa: E402
    ANIMATED_CAPACITY,
    STATIC_CAPACITY,
    CollectionAllocator,
    VolumeAction,
    VolumeMetadata,
    collection_name,
    collection_title,
    decide,
)
from sticker_clone_bot.services.collections import StickerItem  # noqa: E402


BOT = "CloneTestBot"


def _place_and_apply(allocator: CollectionAllocator, service: FakeContainerService, owner_id: int, is_animated: bool):  # type: ignore[no-untyped-def]
    async def _run():  # type: ignore[no-untyped-def]
        placement = await allocator.place_item(owner_id, is_animated)
        item = StickerItem(is_animated=is_animated, emoji="\U0001f600", file_id="file")
        if placement.created:
            await service.create_container(owner_id, placement.shard_name, "title", item)
        else:
            await service.append_item(owner_id, placement.shard_name, item)
        return placement

    return asyncio.run(_run())


def test_collection_name_format() -> None:
    assert collection_name(42, BOT, 1) == "Collection_1_42_by_CloneTestBot"
    assert collection_name(42, BOT, 12) == "Collection_12_42_by_CloneTestBot"
    with pytest.raises(ValueError):
        collection_name(42, BOT, 0)


def test_collection_title_falls_back_when_name_missing() -> None:
    assert collection_title("Ann", 2) == "Ann's collection vol. 2"
    assert collection_title(None, 1) == "My collection vol. 1"


def test_decide_covers_every_lookup_outcome() -> None:
    static_room = VolumeMetadata("a", "a", False, 10)
    static_full = VolumeMetadata("b", "b", False, STATIC_CAPACITY)
    animated_room = VolumeMetadata("c", "c", True, ANIMATED_CAPACITY - 1)

    assert decide(None, False) is VolumeAction.CREATE
    assert decide(static_room, False) is VolumeAction.SELECT
    assert decide(static_full, False) is VolumeAction.SKIP
    assert decide(static_room, True) is VolumeAction.SKIP
    assert decide(animated_room, True) is VolumeAction.SELECT


def test_volume_metadata_from_sticker_set_falls_back_to_first_sticker() -> None:
    explicit = VolumeMetadata.from_sticker_set(
        {"name": "x", "title": "X", "is_animated": True, "stickers": [{}, {}]}
    )
    assert explicit.is_animated is True
    assert explicit.item_count == 2
    assert explicit.capacity == ANIMATED_CAPACITY

    inferred = VolumeMetadata.from_sticker_set({"name": "y", "title": "Y", "stickers": [{"is_animated": True}]})
    assert inferred.is_animated is True

    empty = VolumeMetadata.from_sticker_set({"name": "z", "title": "Z", "stickers": []})
    assert empty.is_animated is False
    assert empty.item_count == 0


def test_allocator_rejects_empty_bot_username() -> None:
    with pytest.raises(ValueError):
        CollectionAllocator(FakeContainerService().get_container, "")


def test_first_item_creates_volume_one() -> None:
    service = FakeContainerService()
    allocator = CollectionAllocator(service.get_container, BOT)

    placement = _place_and_apply(allocator, service, 7, False)

    assert placement.created is True
    assert placement.volume_index == 1
    assert placement.shard_name == "Collection_1_7_by_CloneTestBot"
    assert service.sets[placement.shard_name]["count"] == 1


def test_full_static_volume_rolls_over_to_next_index() -> None:
    service = FakeContainerService()
    service.seed(collection_name(7, BOT, 1), is_animated=False, count=STATIC_CAPACITY)
    allocator = CollectionAllocator(service.get_container, BOT)

    placement = _place_and_apply(allocator, service, 7, False)

    assert placement.created is True
    assert placement.volume_index == 2
    assert service.sets[collection_name(7, BOT, 1)]["count"] == STATIC_CAPACITY
    assert service.sets[collection_name(7, BOT, 2)]["count"] == 1


def test_type_mismatch_is_skipped_without_touching_volume() -> None:
    service = FakeContainerService()
    service.seed(collection_name(7, BOT, 1), is_animated=True, count=3)
    allocator = CollectionAllocator(service.get_container, BOT)

    static = _place_and_apply(allocator, service, 7, False)
    animated = _place_and_apply(allocator, service, 7, True)

    assert static.volume_index == 2 and static.created is True
    assert animated.volume_index == 1 and animated.created is False
    assert service.sets[collection_name(7, BOT, 1)]["count"] == 4
    assert service.sets[collection_name(7, BOT, 2)]["is_animated"] is False


@pytest.mark.parametrize("is_animated, capacity", [(False, STATIC_CAPACITY), (True, ANIMATED_CAPACITY)])
def test_sequential_placement_fills_exactly_one_volume(is_animated: bool, capacity: int) -> None:
    service = FakeContainerService()
    allocator = CollectionAllocator(service.get_container, BOT)

    placements = [_place_and_apply(allocator, service, 9, is_animated) for _ in range(capacity)]

    assert {p.volume_index for p in placements} == {1}
    assert sum(1 for p in placements if p.created) == 1
    assert service.sets[collection_name(9, BOT, 1)]["count"] == capacity

    overflow = _place_and_apply(allocator, service, 9, is_animated)
    assert overflow.created is True
    assert overflow.volume_index == 2


def test_lookup_order_is_ascending_from_volume_one() -> None:
    service = FakeContainerService()
    service.seed(collection_name(5, BOT, 1), is_animated=False, count=STATIC_CAPACITY)
    service.seed(collection_name(5, BOT, 2), is_animated=True, count=1)
    allocator = CollectionAllocator(service.get_container, BOT)

    placement = asyncio.run(allocator.place_item(5, False))

    assert placement.volume_index == 3
    assert service.lookups == [collection_name(5, BOT, i) for i in (1, 2, 3)]


def test_owners_never_share_volumes() -> None:
    service = FakeContainerService()
    allocator = CollectionAllocator(service.get_container, BOT)

    first = _place_and_apply(allocator, service, 1, False)
    second = _place_and_apply(allocator, service, 2, False)

    assert first.shard_name != second.shard_name
    assert first.volume_index == second.volume_index == 1


def test_list_volumes_stops_at_first_missing_index() -> None:
    service = FakeContainerService()
    service.seed(collection_name(3, BOT, 1), is_animated=False, count=STATIC_CAPACITY)
    service.seed(collection_name(3, BOT, 2), is_animated=True, count=4)
    service.seed(collection_name(3, BOT, 4), is_animated=False, count=1)
    allocator = CollectionAllocator(service.get_container, BOT)

    volumes = asyncio.run(allocator.list_volumes(3))

    assert [volume.name for volume in volumes] == [collection_name(3, BOT, 1), collection_name(3, BOT, 2)]
