from .commands_mixin import CommandsMixin
from .content_mixin import ContentMixin
from .membership_mixin import MembershipMixin

__all__ = [
    "CommandsMixin",
    "ContentMixin",
    "MembershipMixin",
]
