from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


load_dotenv()


def _env_lookup(name: str, aliases: tuple[str, ...] = ()) -> str | None:
    for key in (name, *aliases):
        # Be tolerant to UTF-8 BOM accidentally saved in .env key names.
        for candidate in (key, f"\ufeff{key}"):
            raw = os.getenv(candidate)
            if raw is not None:
                return raw
    return None


def _env_bool(name: str, default: bool, aliases: tuple[str, ...] = ()) -> bool:
    raw = _env_lookup(name, aliases)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int, aliases: tuple[str, ...] = ()) -> int:
    raw = _env_lookup(name, aliases)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _clean_token(value: str) -> str:
    cleaned = value.strip()
    if (cleaned.startswith('"') and cleaned.endswith('"')) or (
        cleaned.startswith("'") and cleaned.endswith("'")
    ):
        cleaned = cleaned[1:-1].strip()
    return cleaned


def _env_str(name: str, default: str, aliases: tuple[str, ...] = ()) -> str:
    raw = _env_lookup(name, aliases)
    if raw is None:
        return default
    value = raw.strip()
    return value if value else default


@dataclass(slots=True)
class Settings:
    telegram_token: str
    telegram_api_base_url: str
    telegram_timeout_seconds: int
    telegram_poll_timeout_seconds: int

    redis_url: str
    redis_prefix: str

    default_language: str
    localization_path: Path

    max_download_bytes: int
    sticker_max_dimension: int
    capacity_race_retries: int
    max_concurrent_updates: int

    debug: bool
    stats_viewer_host: str
    stats_viewer_port: int

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            telegram_token=_clean_token(_env_lookup("TELEGRAM_BOT_TOKEN", aliases=("BOT_TOKEN",)) or ""),
            telegram_api_base_url=_env_str("TELEGRAM_API_BASE_URL", "https://api.telegram.org"),
            telegram_timeout_seconds=_env_int("TELEGRAM_TIMEOUT_SECONDS", 30),
            telegram_poll_timeout_seconds=_env_int("TELEGRAM_POLL_TIMEOUT_SECONDS", 25),
            redis_url=_env_str("REDIS_URL", "redis://127.0.0.1:6379/0"),
            redis_prefix=(_env_lookup("REDIS_PREFIX") or "").strip(),
            default_language=_env_str("DEFAULT_LANGUAGE", "en"),
            localization_path=Path(_env_str("LOCALIZATION_PATH", "./localization.csv")).expanduser(),
            max_download_bytes=_env_int("MAX_DOWNLOAD_BYTES", 512 * 1024),
            sticker_max_dimension=_env_int("STICKER_MAX_DIMENSION", 512),
            capacity_race_retries=_env_int("CAPACITY_RACE_RETRIES", 1),
            max_concurrent_updates=_env_int("MAX_CONCURRENT_UPDATES", 16),
            debug=_env_bool("DEBUG", False),
            stats_viewer_host=_env_str("STATS_VIEWER_HOST", "127.0.0.1"),
            stats_viewer_port=_env_int("STATS_VIEWER_PORT", 4000),
        )

    def validate(self) -> None:
        if not self.telegram_token:
            raise ValueError("TELEGRAM_BOT_TOKEN is required")
        if self.telegram_token == "put_your_telegram_bot_token_here":
            raise ValueError("TELEGRAM_BOT_TOKEN is still placeholder")
        if not self.telegram_api_base_url.startswith(("http://", "https://")):
            raise ValueError("TELEGRAM_API_BASE_URL must be an http(s) URL")
        if self.telegram_timeout_seconds < 5:
            raise ValueError("TELEGRAM_TIMEOUT_SECONDS must be >= 5")
        if self.telegram_poll_timeout_seconds < 0 or self.telegram_poll_timeout_seconds > 50:
            raise ValueError("TELEGRAM_POLL_TIMEOUT_SECONDS must be in [0, 50]")

        if not self.redis_url.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("REDIS_URL must use redis://, rediss:// or unix://")

        if not self.default_language:
            raise ValueError("DEFAULT_LANGUAGE cannot be empty")

        if self.max_download_bytes < 16 * 1024:
            raise ValueError("MAX_DOWNLOAD_BYTES must be >= 16384")
        if self.sticker_max_dimension < 64:
            raise ValueError("STICKER_MAX_DIMENSION must be >= 64")
        if self.capacity_race_retries < 0 or self.capacity_race_retries > 5:
            raise ValueError("CAPACITY_RACE_RETRIES must be in [0, 5]")
        if self.max_concurrent_updates < 1:
            raise ValueError("MAX_CONCURRENT_UPDATES must be >= 1")

        if self.stats_viewer_port < 1 or self.stats_viewer_port > 65535:
            raise ValueError("STATS_VIEWER_PORT must be in [1, 65535]")
