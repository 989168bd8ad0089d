"""Usage-total reconciliation.

Per-user counters and the global ``stickers_usage`` hash are bumped by two
separate writes, so the aggregate can fall behind after a partial failure.
This job recomputes the aggregate from the per-user hashes and, only when
asked to, writes the recomputed totals back. Nothing in the bot calls it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict

from .profile import CONTENT_TYPES, counter_field
from .store import Ledger

logger = logging.getLogger("sticker_clone_bot")


@dataclass(slots=True)
class ReconcileReport:
    users_scanned: int = 0
    per_user_totals: Dict[str, int] = field(default_factory=dict)
    aggregate_totals: Dict[str, int] = field(default_factory=dict)
    applied: bool = False

    @property
    def drift(self) -> Dict[str, int]:
        return {
            kind: self.per_user_totals.get(kind, 0) - self.aggregate_totals.get(kind, 0)
            for kind in CONTENT_TYPES
        }

    @property
    def consistent(self) -> bool:
        return not any(self.drift.values())


async def reconcile_usage_totals(ledger: Ledger, *, apply: bool = False) -> ReconcileReport:
    report = ReconcileReport(per_user_totals={kind: 0 for kind in CONTENT_TYPES})
    for owner_id in await ledger.list_user_ids():
        fields = await ledger.redis.hgetall(ledger.keys.user(owner_id))
        report.users_scanned += 1
        for kind in CONTENT_TYPES:
            try:
                report.per_user_totals[kind] += int(fields.get(counter_field(kind)) or 0)
            except ValueError:
                logger.warning("Ignoring malformed %s counter for owner=%s", kind, owner_id)

    snapshot = await ledger.usage_snapshot()
    report.aggregate_totals = dict(snapshot.per_content_type)

    if report.consistent:
        return report

    logger.warning("Usage aggregate drift detected: %s", report.drift)
    if apply:
        await ledger.redis.hset(
            ledger.keys.stickers_usage,
            mapping={kind: str(total) for kind, total in report.per_user_totals.items()},
        )
        report.applied = True
    return report
