from .keys import LedgerKeys
from .profiles import LedgerProfilesMixin
from .usage import LedgerUsageMixin

__all__ = ["LedgerKeys", "LedgerProfilesMixin", "LedgerUsageMixin"]
