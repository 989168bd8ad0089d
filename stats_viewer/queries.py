from __future__ import annotations

import logging
from typing import Any

from sticker_clone_bot.ledger.store import Ledger

logger = logging.getLogger(__name__)


def _normalize_limit_offset(limit: int, offset: int, *, default_limit: int, max_limit: int) -> tuple[int, int]:
    try:
        safe_limit = int(limit)
    except (TypeError, ValueError):
        safe_limit = default_limit
    try:
        safe_offset = int(offset)
    except (TypeError, ValueError):
        safe_offset = 0
    if safe_limit <= 0:
        safe_limit = default_limit
    safe_limit = min(safe_limit, max_limit)
    safe_offset = max(0, safe_offset)
    return safe_limit, safe_offset


async def get_statistics(ledger: Ledger) -> dict[str, Any]:
    snapshot = await ledger.usage_snapshot()
    return snapshot.to_dict()


async def get_user_ids(ledger: Ledger, limit: int = 100, offset: int = 0) -> dict[str, Any]:
    limit, offset = _normalize_limit_offset(limit, offset, default_limit=100, max_limit=1000)
    ids = await ledger.list_user_ids()
    return {
        "total": len(ids),
        "limit": limit,
        "offset": offset,
        "ids": ids[offset : offset + limit],
    }


async def get_user_details(ledger: Ledger, user_id: int) -> dict[str, Any] | None:
    profile = await ledger.user_snapshot(user_id)
    if profile is None:
        return None
    return profile.to_dict()
