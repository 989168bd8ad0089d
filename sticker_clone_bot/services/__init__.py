from .codec import StickerCodec
from .collections import RemoteCollections, StickerItem
from .localization import Localization
from .telegram_api import TelegramAPIError, TelegramBotAPI, UploadFile

__all__ = [
    "Localization",
    "RemoteCollections",
    "StickerCodec",
    "StickerItem",
    "TelegramAPIError",
    "TelegramBotAPI",
    "UploadFile",
]
