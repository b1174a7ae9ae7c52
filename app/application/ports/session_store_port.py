from __future__ import annotations

from typing import Callable, Protocol

from app.domain.entities.session import Session, SessionEvent, SessionUser, SignUpResult


SessionChangeCallback = Callable[[SessionEvent, Session | None], None]
Unsubscribe = Callable[[], None]


class SessionStorePort(Protocol):
    def get_session(self) -> Session | None:
        ...

    def on_session_change(self, callback: SessionChangeCallback) -> Unsubscribe:
        ...

    def sign_in_with_password(self, *, email: str, password: str) -> Session:
        ...

    def sign_up(
        self,
        *,
        email: str,
        password: str,
        data: dict,
        redirect_to: str | None,
    ) -> SignUpResult:
        ...

    def set_session(self, *, access_token: str, refresh_token: str | None = None) -> Session:
        ...

    def sign_out(self) -> None:
        ...

    def refresh_session(self) -> Session:
        ...

    def get_current_user(self) -> SessionUser | None:
        ...
