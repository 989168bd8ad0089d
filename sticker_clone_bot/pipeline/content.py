from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence, Tuple


MIN_PHOTO_SIDE = 512


@dataclass(slots=True, frozen=True)
class PhotoSize:
    file_id: str
    width: int
    height: int
    file_size: int | None = None

    @property
    def longest_side(self) -> int:
        return max(self.width, self.height)

    @classmethod
    def from_telegram(cls, payload: Mapping[str, Any]) -> "PhotoSize":
        return cls(
            file_id=str(payload["file_id"]),
            width=int(payload.get("width") or 0),
            height=int(payload.get("height") or 0),
            file_size=payload.get("file_size"),
        )


@dataclass(slots=True, frozen=True)
class StickerContent:
    file_id: str
    is_animated: bool = False
    is_video: bool = False
    emoji: str | None = None
    file_size: int | None = None

    @classmethod
    def from_telegram(cls, payload: Mapping[str, Any]) -> "StickerContent":
        return cls(
            file_id=str(payload["file_id"]),
            is_animated=bool(payload.get("is_animated")),
            is_video=bool(payload.get("is_video")),
            emoji=payload.get("emoji") or None,
            file_size=payload.get("file_size"),
        )


@dataclass(slots=True, frozen=True)
class PhotoContent:
    sizes: Tuple[PhotoSize, ...]

    @classmethod
    def from_telegram(cls, payload: Iterable[Mapping[str, Any]]) -> "PhotoContent":
        return cls(sizes=tuple(PhotoSize.from_telegram(item) for item in payload))


def find_most_suitable_photo(sizes: Sequence[PhotoSize], min_side: int = MIN_PHOTO_SIDE) -> PhotoSize:
    """Smallest size that still covers ``min_side``, or the largest one when none does."""
    if not sizes:
        raise ValueError("no photo sizes to choose from")
    ordered = sorted(sizes, key=lambda size: size.longest_side)
    for size in ordered:
        if size.longest_side >= min_side:
            return size
    return ordered[-1]
