from .content import PhotoContent, PhotoSize, StickerContent, find_most_suitable_photo
from .ingestion import IngestionPipeline, IngestionResult

__all__ = [
    "IngestionPipeline",
    "IngestionResult",
    "PhotoContent",
    "PhotoSize",
    "StickerContent",
    "find_most_suitable_photo",
]
