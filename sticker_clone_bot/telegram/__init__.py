from .client import ALLOWED_UPDATES, StickerCloneBot

__all__ = ["ALLOWED_UPDATES", "StickerCloneBot"]
