from __future__ import annotations

import logging

from ...errors import ValidationError
from ..profile import Identity, UserProfile

logger = logging.getLogger("sticker_clone_bot")


class LedgerProfilesMixin:
    async def load_or_create_profile(self, identity: Identity) -> UserProfile:
        key = self.keys.user(identity.id)
        stored = await self.redis.hgetall(key)

        to_set: dict[str, str] = {}
        to_clear: list[str] = []
        for name, value in identity.profile_fields().items():
            if value is None:
                if name in stored:
                    to_clear.append(name)
            elif stored.get(name) != value:
                to_set[name] = value

        # Registration rides in the same batch so a stored profile is always counted.
        async with self.redis.pipeline(transaction=True) as pipe:
            if to_set:
                pipe.hset(key, mapping=to_set)
            if to_clear:
                pipe.hdel(key, *to_clear)
            pipe.sadd(self.keys.users, identity.id)
            await pipe.execute()

        if not stored:
            logger.info("Registered new user profile owner=%s", identity.id)

        merged = dict(stored)
        merged.update(to_set)
        for name in to_clear:
            merged.pop(name, None)
        return UserProfile.from_hash(identity.id, merged, self.default_language)

    async def set_language(self, owner_id: int, language_code: str) -> None:
        code = (language_code or "").strip()
        validator = self.language_validator
        if validator is None or not validator.is_supported_language(code):
            raise ValidationError(f"unsupported language code: {code!r}")
        await self.redis.hset(self.keys.user(owner_id), "language", code)

    async def set_blocked(self, owner_id: int, blocked: bool) -> bool:
        """Record the latest delivery signal; returns whether the flag changed.

        The flag write itself decides the transition (HSETNX / HDEL report whether
        anything changed), so concurrent callers bump ``blocked_times`` once.
        """
        key = self.keys.user(owner_id)
        if blocked:
            changed = bool(await self.redis.hsetnx(key, "blocked", "true"))
            if changed:
                await self.redis.hincrby(key, "blocked_times", 1)
        else:
            changed = bool(await self.redis.hdel(key, "blocked"))
        if changed:
            logger.info("User owner=%s blocked=%s", owner_id, blocked)
        return changed
