from __future__ import annotations

import io

from PIL import Image, UnidentifiedImageError

from ..errors import ValidationError


class StickerCodec:
    """Resizes arbitrary images into the PNG shape Telegram accepts for static stickers."""

    def __init__(self, max_dimension: int = 512, max_input_bytes: int = 512 * 1024) -> None:
        self.max_dimension = int(max_dimension)
        self.max_input_bytes = int(max_input_bytes)

    def convert_to_target_format(self, data: bytes, max_dimension: int | None = None) -> bytes:
        if not data:
            raise ValidationError("empty image payload")
        if len(data) > self.max_input_bytes:
            raise ValidationError(f"image is {len(data)} bytes, limit is {self.max_input_bytes}")
        box = int(max_dimension or self.max_dimension)

        try:
            with Image.open(io.BytesIO(data)) as source:
                source.load()
                image = source.convert("RGBA")
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
            raise ValidationError(f"unreadable image: {exc}") from exc

        width, height = image.size
        if width <= 0 or height <= 0:
            raise ValidationError("image has no pixels")
        # One side must end up exactly at the box size, so small images are upscaled too.
        ratio = box / float(max(width, height))
        target = (max(1, round(width * ratio)), max(1, round(height * ratio)))
        if target != image.size:
            image = image.resize(target, Image.Resampling.LANCZOS)

        output = io.BytesIO()
        image.save(output, format="PNG", optimize=True, compress_level=9)
        return output.getvalue()
