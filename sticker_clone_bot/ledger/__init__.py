from .profile import CONTENT_TYPES, Identity, UsageSnapshot, UserProfile
from .reconcile import ReconcileReport, reconcile_usage_totals
from .store import Ledger

__all__ = [
    "CONTENT_TYPES",
    "Identity",
    "Ledger",
    "ReconcileReport",
    "UsageSnapshot",
    "UserProfile",
    "reconcile_usage_totals",
]
