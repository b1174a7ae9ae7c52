from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal


SessionEvent = Literal["INITIAL_SESSION", "SIGNED_IN", "SIGNED_OUT", "TOKEN_REFRESHED", "USER_UPDATED"]


@dataclass(frozen=True)
class SessionUser:
    id: str
    email: str | None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str | None:
        value = self.metadata.get("name")
        return value if isinstance(value, str) else None


@dataclass(frozen=True)
class Session:
    user: SessionUser
    access_token: str
    refresh_token: str | None
    expires_at: datetime | None


@dataclass(frozen=True)
class SignUpResult:
    user: SessionUser | None
    session: Session | None
