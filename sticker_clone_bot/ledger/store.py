from __future__ import annotations

from typing import Any, Protocol

from .storage.keys import LedgerKeys
from .storage.profiles import LedgerProfilesMixin
from .storage.usage import LedgerUsageMixin


class LanguageValidator(Protocol):
    def is_supported_language(self, code: str) -> bool: ...


class Ledger(LedgerProfilesMixin, LedgerUsageMixin):
    """User profiles and usage counters kept in Redis hashes and sets."""

    def __init__(
        self,
        redis: Any,
        *,
        prefix: str = "",
        default_language: str = "en",
        language_validator: LanguageValidator | None = None,
    ) -> None:
        self.redis = redis
        self.keys = LedgerKeys(prefix)
        self.default_language = default_language
        self.language_validator = language_validator

    async def ping(self) -> None:
        await self.redis.ping()
