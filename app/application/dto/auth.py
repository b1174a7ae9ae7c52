from __future__ import annotations

from dataclasses import dataclass

from app.domain.entities.session import Session, SessionUser


@dataclass(frozen=True)
class AuthResult:
    error: str | None = None
    message: str | None = None
    session: Session | None = None


@dataclass(frozen=True)
class AuthSnapshot:
    user: SessionUser | None
    loading: bool
