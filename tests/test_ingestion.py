from __future__ import annotations

import asyncio
import io
import logging
import sys
from pathlib import Path
from typing import Dict, List

import pytest
from PIL import Image


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from fakes import FakeContainerService, FakeRedis, StaticLanguages, make_png  # noqa: E402
from sticker_clone_bot.allocation import STATIC_CAPACITY, CollectionAllocator, collection_name  # noqa: E402
from sticker_clone_bot.errors import (  # noqa: E402
    IngestionError,
    TransientExternalError,
    ValidationError,
)
from sticker_clone_bot.ledger import Identity, Ledger  # noqa: E402
from sticker_clone_bot.pipeline import (  # noqa: E402
    IngestionPipeline,
    PhotoContent,
    PhotoSize,
    StickerContent,
    find_most_suitable_photo,
)
from sticker_clone_bot.services.codec import StickerCodec  # noqa: E402


BOT = "CloneTestBot"


class _Downloads:
    def __init__(self, files: Dict[str, bytes] | None = None) -> None:
        self.files = dict(files or {})
        self.calls: List[str] = []

    async def __call__(self, file_id: str, max_bytes: int) -> bytes:
        self.calls.append(file_id)
        return self.files[file_id]


def _build(*, retries: int = 1, files: Dict[str, bytes] | None = None):  # type: ignore[no-untyped-def]
    redis = FakeRedis()
    service = FakeContainerService()
    ledger = Ledger(redis, language_validator=StaticLanguages("en"))
    downloads = _Downloads(files)
    pipeline = IngestionPipeline(
        CollectionAllocator(service.get_container, BOT),
        service,
        ledger,
        StickerCodec(),
        downloads,
        max_download_bytes=512 * 1024,
        capacity_race_retries=retries,
    )
    return pipeline, service, ledger, redis, downloads


def _sticker(**overrides) -> StickerContent:  # type: ignore[no-untyped-def]
    fields = {"file_id": "sticker-1", "is_animated": False, "emoji": "\U0001f600"}
    fields.update(overrides)
    return StickerContent(**fields)


def test_first_static_sticker_creates_owner_volume_and_counts() -> None:
    pipeline, service, ledger, redis, _ = _build()
    identity = Identity(42, first_name="Ann")

    async def _run():  # type: ignore[no-untyped-def]
        await ledger.load_or_create_profile(identity)
        return await pipeline.ingest(identity, _sticker())

    result = asyncio.run(_run())

    assert result.placement == "new_shard"
    assert result.created is True
    assert result.shard_name == "Collection_1_42_by_CloneTestBot"
    assert result.shard_title == "Ann's collection vol. 1"
    assert result.content_type == "static"
    assert result.counted is True
    assert service.sets[result.shard_name] == {"title": "Ann's collection vol. 1", "is_animated": False, "count": 1}
    assert redis.hashes["user:42"]["static_stickers"] == "1"
    assert redis.hashes["stickers_usage"]["static"] == "1"
    assert redis.sets["users"] == {"42"}


def test_second_sticker_appends_to_existing_volume_and_keeps_title() -> None:
    pipeline, service, _, redis, _ = _build()
    identity = Identity(42, first_name="Ann")

    async def _run():  # type: ignore[no-untyped-def]
        await pipeline.ingest(identity, _sticker())
        return await pipeline.ingest(Identity(42, first_name="Renamed"), _sticker(file_id="sticker-2"))

    result = asyncio.run(_run())

    assert result.placement == "existing_shard"
    assert result.shard_title == "Ann's collection vol. 1"
    assert service.sets[result.shard_name]["count"] == 2
    assert redis.hashes["user:42"]["static_stickers"] == "2"


def test_animated_sticker_skips_static_volume() -> None:
    pipeline, service, _, redis, _ = _build()
    service.seed(collection_name(42, BOT, 1), is_animated=False, count=5)

    result = asyncio.run(pipeline.ingest(Identity(42), _sticker(is_animated=True)))

    assert result.volume_index == 2
    assert result.content_type == "animated"
    assert service.sets[collection_name(42, BOT, 1)]["count"] == 5
    assert redis.hashes["user:42"]["animated_stickers"] == "1"


def test_append_failure_leaves_counters_untouched() -> None:
    pipeline, service, _, redis, _ = _build()
    service.seed(collection_name(42, BOT, 1), is_animated=False, count=3)
    service.fail_next.append(TransientExternalError("platform unavailable"))

    with pytest.raises(IngestionError) as excinfo:
        asyncio.run(pipeline.ingest(Identity(42), _sticker()))

    assert excinfo.value.step == "append"
    assert excinfo.value.shard_name == collection_name(42, BOT, 1)
    assert excinfo.value.retryable is True
    assert service.sets[collection_name(42, BOT, 1)]["count"] == 3
    assert "stickers_usage" not in redis.hashes
    assert "user:42" not in redis.hashes


def test_create_failure_reports_create_step() -> None:
    pipeline, service, _, redis, _ = _build()
    service.fail_next.append(TransientExternalError("timeout"))

    with pytest.raises(IngestionError) as excinfo:
        asyncio.run(pipeline.ingest(Identity(42), _sticker()))

    assert excinfo.value.step == "create"
    assert service.sets == {}
    assert redis.hashes == {}


def test_capacity_race_retries_into_next_volume() -> None:
    pipeline, service, _, redis, _ = _build(retries=1)
    first = collection_name(42, BOT, 1)
    service.seed(first, is_animated=False, count=STATIC_CAPACITY - 1)
    service.race_on_append.add(first)

    result = asyncio.run(pipeline.ingest(Identity(42), _sticker()))

    assert result.volume_index == 2
    assert result.created is True
    assert service.sets[first]["count"] == STATIC_CAPACITY
    assert redis.hashes["user:42"]["static_stickers"] == "1"


def test_capacity_race_without_retries_surfaces_retryable_error() -> None:
    pipeline, service, _, redis, _ = _build(retries=0)
    first = collection_name(42, BOT, 1)
    service.seed(first, is_animated=False, count=STATIC_CAPACITY - 1)
    service.race_on_append.add(first)

    with pytest.raises(IngestionError) as excinfo:
        asyncio.run(pipeline.ingest(Identity(42), _sticker()))

    assert excinfo.value.retryable is True
    assert collection_name(42, BOT, 2) not in service.sets
    assert redis.hashes == {}


def test_video_sticker_is_rejected_before_any_lookup() -> None:
    pipeline, service, _, redis, downloads = _build()

    with pytest.raises(IngestionError) as excinfo:
        asyncio.run(pipeline.ingest(Identity(42), _sticker(is_video=True)))

    assert excinfo.value.step == "classify"
    assert isinstance(excinfo.value.cause, ValidationError)
    assert excinfo.value.retryable is False
    assert service.lookups == []
    assert downloads.calls == []
    assert redis.writes == []


def test_animated_sticker_without_emoji_is_rejected() -> None:
    pipeline, service, _, _, _ = _build()

    with pytest.raises(IngestionError) as excinfo:
        asyncio.run(pipeline.ingest(Identity(42), _sticker(is_animated=True, emoji=None)))

    assert isinstance(excinfo.value.cause, ValidationError)
    assert service.lookups == []


def test_oversized_photo_is_rejected_before_download() -> None:
    pipeline, service, _, _, downloads = _build()
    photo = PhotoContent(sizes=(PhotoSize("big", 1280, 960, file_size=5 * 1024 * 1024),))

    with pytest.raises(IngestionError) as excinfo:
        asyncio.run(pipeline.ingest(Identity(42), photo))

    assert isinstance(excinfo.value.cause, ValidationError)
    assert downloads.calls == []
    assert service.lookups == []


def test_photo_is_converted_and_counted_as_image() -> None:
    files = {"medium": make_png(800, 400)}
    pipeline, service, _, redis, downloads = _build(files=files)
    photo = PhotoContent(
        sizes=(
            PhotoSize("thumb", 90, 45),
            PhotoSize("medium", 800, 400),
            PhotoSize("large", 1280, 640),
        )
    )

    result = asyncio.run(pipeline.ingest(Identity(42), photo))

    assert downloads.calls == ["medium"]
    assert result.content_type == "image"
    assert service.sets[result.shard_name]["is_animated"] is False
    assert redis.hashes["user:42"]["image_stickers"] == "1"
    assert redis.hashes["stickers_usage"]["image"] == "1"


def test_classify_produces_sticker_sized_png_for_photos() -> None:
    pipeline, _, _, _, _ = _build(files={"p": make_png(300, 150)})

    item, content_type = asyncio.run(pipeline.classify(PhotoContent(sizes=(PhotoSize("p", 300, 150),))))

    assert content_type == "image"
    assert item.png is not None and item.file_id is None
    with Image.open(io.BytesIO(item.png)) as image:
        assert image.format == "PNG"
        assert image.size == (512, 256)


def test_emoji_less_static_sticker_is_reencoded() -> None:
    pipeline, _, _, _, downloads = _build(files={"legacy": make_png(512, 512)})

    item, content_type = asyncio.run(pipeline.classify(_sticker(file_id="legacy", emoji=None)))

    assert downloads.calls == ["legacy"]
    assert content_type == "static"
    assert item.png is not None


def test_ledger_failure_after_placement_marks_result_uncounted() -> None:
    pipeline, service, _, redis, _ = _build()
    redis.fail_hincrby_keys.add("user:42")

    result = asyncio.run(pipeline.ingest(Identity(42), _sticker()))

    assert result.counted is False
    assert service.sets[result.shard_name]["count"] == 1
    assert "stickers_usage" not in redis.hashes


def test_find_most_suitable_photo() -> None:
    small = PhotoSize("s", 90, 90)
    medium = PhotoSize("m", 320, 640)
    large = PhotoSize("l", 1280, 1280)

    assert find_most_suitable_photo([large, small, medium]) == medium
    assert find_most_suitable_photo([small, PhotoSize("t", 200, 100)]) == PhotoSize("t", 200, 100)
    with pytest.raises(ValueError):
        find_most_suitable_photo([])


def test_cancellation_during_counting_is_logged_and_propagates(caplog: pytest.LogCaptureFixture) -> None:
    pipeline, service, _, redis, _ = _build()
    redis.fail_hincrby_keys.add("user:42")
    redis.hincrby_error = asyncio.CancelledError

    with caplog.at_level(logging.WARNING, logger="sticker_clone_bot"):
        with pytest.raises(asyncio.CancelledError):
            asyncio.run(pipeline.ingest(Identity(42), _sticker()))

    assert service.sets[collection_name(42, BOT, 1)]["count"] == 1
    assert "user:42" not in redis.hashes
    assert "stickers_usage" not in redis.hashes
    assert "static counter for owner=42 not recorded" in caplog.text
