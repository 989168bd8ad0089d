"""Telegram bot that clones stickers and photos into per-user collection sticker sets."""

__version__ = "1.0.0"
