from __future__ import annotations

from typing import List

from ...errors import ValidationError
from ..profile import CONTENT_TYPES, UsageSnapshot, UserProfile, counter_field


class LedgerUsageMixin:
    async def increment_content_counter(self, owner_id: int, content_type: str) -> int:
        if content_type not in CONTENT_TYPES:
            raise ValidationError(f"unknown content type: {content_type!r}")
        # Two independent writes; a failure in between under-counts the aggregate.
        user_total = await self.redis.hincrby(self.keys.user(owner_id), counter_field(content_type), 1)
        await self.redis.hincrby(self.keys.stickers_usage, content_type, 1)
        return int(user_total)

    async def increment_command_counter(self, command: str) -> int:
        return int(await self.redis.hincrby(self.keys.commands_usage, command, 1))

    async def usage_snapshot(self) -> UsageSnapshot:
        total_users = await self.redis.scard(self.keys.users)
        stickers = await self.redis.hgetall(self.keys.stickers_usage)
        commands = await self.redis.hgetall(self.keys.commands_usage)
        return UsageSnapshot(
            total_users=int(total_users),
            per_content_type={kind: int(stickers.get(kind) or 0) for kind in CONTENT_TYPES},
            per_command={name: int(value) for name, value in sorted(commands.items())},
        )

    async def user_snapshot(self, owner_id: int) -> UserProfile | None:
        # An id-only identity registers in ``users`` without writing any hash field.
        if not await self.redis.sismember(self.keys.users, str(int(owner_id))):
            return None
        fields = await self.redis.hgetall(self.keys.user(owner_id))
        return UserProfile.from_hash(owner_id, fields, self.default_language)

    async def list_user_ids(self) -> List[int]:
        members = await self.redis.smembers(self.keys.users)
        ids: List[int] = []
        for member in members:
            try:
                ids.append(int(member))
            except (TypeError, ValueError):
                continue
        return sorted(ids)
