from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Any

import httpx

from app.application.ports.session_store_port import SessionChangeCallback, SessionStorePort, Unsubscribe
from app.domain.entities.session import Session, SessionEvent, SessionUser, SignUpResult
from app.domain.exceptions import AuthProviderError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SupabaseAuthClientSettings:
    supabase_url: str
    anon_key: str
    timeout_seconds: float


class SupabaseAuthClient(SessionStorePort):
    """Session store backed by the Supabase Auth (GoTrue) REST API.

    Holds the current session in memory and notifies listeners synchronously,
    on the calling thread, whenever it changes.
    """

    def __init__(
        self,
        settings: SupabaseAuthClientSettings,
        *,
        transport: httpx.BaseTransport | None = None,
    ):
        self._settings = settings
        self._transport = transport
        self._session: Session | None = None
        self._listeners: list[SessionChangeCallback] = []

    def get_session(self) -> Session | None:
        return self._session

    def on_session_change(self, callback: SessionChangeCallback) -> Unsubscribe:
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def sign_in_with_password(self, *, email: str, password: str) -> Session:
        payload = self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        session = _parse_session(payload)
        if session is None:
            raise AuthProviderError("Sign-in response did not include a session.")
        self._set_session("SIGNED_IN", session)
        return session

    def sign_up(
        self,
        *,
        email: str,
        password: str,
        data: dict,
        redirect_to: str | None,
    ) -> SignUpResult:
        params = {"redirect_to": redirect_to} if redirect_to else None
        payload = self._request(
            "POST",
            "/auth/v1/signup",
            params=params,
            json={"email": email, "password": password, "data": data},
        )
        session = _parse_session(payload)
        if session is not None:
            self._set_session("SIGNED_IN", session)
            return SignUpResult(user=session.user, session=session)
        # Email confirmation pending: the response body is the bare user.
        return SignUpResult(user=_parse_user(payload), session=None)

    def set_session(self, *, access_token: str, refresh_token: str | None = None) -> Session:
        """Adopt a caller-held session after checking the access token with the provider."""
        user = _parse_user(self._request("GET", "/auth/v1/user", access_token=access_token))
        if user is None:
            raise AuthProviderError("Access token did not resolve to a user.")
        session = Session(user=user, access_token=access_token, refresh_token=refresh_token, expires_at=None)
        self._set_session("SIGNED_IN", session)
        return session

    def sign_out(self) -> None:
        session = self._session
        if session is not None:
            try:
                self._request("POST", "/auth/v1/logout", access_token=session.access_token)
            except AuthProviderError as exc:
                logger.warning("supabase_auth_client: remote_logout_failed error=%s", exc)
        self._set_session("SIGNED_OUT", None)

    def refresh_session(self) -> Session:
        current = self._session
        if current is None or not current.refresh_token:
            raise AuthProviderError("No session to refresh.")
        payload = self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": current.refresh_token},
        )
        session = _parse_session(payload)
        if session is None:
            raise AuthProviderError("Refresh response did not include a session.")
        self._set_session("TOKEN_REFRESHED", session)
        return session

    def get_current_user(self) -> SessionUser | None:
        session = self._session
        if session is None:
            return None
        payload = self._request("GET", "/auth/v1/user", access_token=session.access_token)
        return _parse_user(payload)

    def _set_session(self, event: SessionEvent, session: Session | None) -> None:
        self._session = session
        logger.info(
            "supabase_auth_client: session_change event=%s user_id=%s",
            event,
            session.user.id if session is not None else None,
        )
        for callback in list(self._listeners):
            callback(event, session)

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict | None = None,
        json: dict | None = None,
        access_token: str | None = None,
    ) -> dict:
        if not self._settings.supabase_url or not self._settings.anon_key:
            raise AuthProviderError("Supabase is not configured.")
        headers = {
            "apikey": self._settings.anon_key,
            "Authorization": f"Bearer {access_token or self._settings.anon_key}",
        }
        try:
            with httpx.Client(
                base_url=self._settings.supabase_url,
                timeout=self._settings.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = client.request(method, path, params=params, json=json, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("supabase_auth_client: request_failed path=%s error=%s", path, exc)
            raise AuthProviderError("Unable to reach the authentication service.") from exc

        if response.status_code >= 400:
            raise AuthProviderError(_error_message(response))
        if response.status_code == 204 or not response.content:
            return {}
        return response.json()


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"Authentication request failed ({response.status_code})."
    for key in ("msg", "error_description", "message", "error"):
        value = body.get(key) if isinstance(body, dict) else None
        if isinstance(value, str) and value:
            return value
    return f"Authentication request failed ({response.status_code})."


def _parse_user(payload: dict[str, Any] | None) -> SessionUser | None:
    if not payload or not payload.get("id"):
        return None
    metadata = payload.get("user_metadata") or {}
    return SessionUser(id=str(payload["id"]), email=payload.get("email"), metadata=dict(metadata))


def _parse_session(payload: dict[str, Any]) -> Session | None:
    access_token = payload.get("access_token")
    user = _parse_user(payload.get("user"))
    if not access_token or user is None:
        return None
    expires_at = payload.get("expires_at")
    return Session(
        user=user,
        access_token=str(access_token),
        refresh_token=payload.get("refresh_token"),
        expires_at=datetime.fromtimestamp(int(expires_at), tz=timezone.utc) if expires_at else None,
    )
