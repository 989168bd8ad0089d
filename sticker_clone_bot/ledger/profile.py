from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping


CONTENT_TYPES = ("static", "animated", "image")


def counter_field(content_type: str) -> str:
    return f"{content_type}_stickers"


def _as_int(value: object, default: int = 0) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


@dataclass(slots=True, frozen=True)
class Identity:
    id: int
    first_name: str | None = None
    last_name: str | None = None
    username: str | None = None
    language_code: str | None = None

    @classmethod
    def from_telegram(cls, user: Mapping[str, Any]) -> "Identity":
        def _opt(name: str) -> str | None:
            value = user.get(name)
            return str(value) if value is not None else None

        return cls(
            id=int(user["id"]),
            first_name=_opt("first_name"),
            last_name=_opt("last_name"),
            username=_opt("username"),
            language_code=_opt("language_code"),
        )

    def profile_fields(self) -> Dict[str, str | None]:
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "user_name": self.username,
            "language_code": self.language_code,
        }


@dataclass(slots=True)
class UserProfile:
    id: int
    language: str
    first_name: str | None = None
    last_name: str | None = None
    username: str | None = None
    language_code: str | None = None
    blocked: bool = False
    blocked_times: int = 0
    counters: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_hash(cls, owner_id: int, fields: Mapping[str, str], default_language: str) -> "UserProfile":
        return cls(
            id=int(owner_id),
            language=fields.get("language") or default_language,
            first_name=fields.get("first_name"),
            last_name=fields.get("last_name"),
            username=fields.get("user_name"),
            language_code=fields.get("language_code"),
            blocked=fields.get("blocked") == "true",
            blocked_times=_as_int(fields.get("blocked_times")),
            counters={kind: _as_int(fields.get(counter_field(kind))) for kind in CONTENT_TYPES},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "username": self.username,
            "language_code": self.language_code,
            "language": self.language,
            "blocked": self.blocked,
            "blocked_times": self.blocked_times,
            "stickers": dict(self.counters),
        }


@dataclass(slots=True, frozen=True)
class UsageSnapshot:
    total_users: int
    per_content_type: Dict[str, int]
    per_command: Dict[str, int]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "usersCount": self.total_users,
            "stickers": dict(self.per_content_type),
            "commands": dict(self.per_command),
        }
