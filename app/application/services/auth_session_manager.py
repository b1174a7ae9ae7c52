from __future__ import annotations

import logging
from typing import Callable

from app.application.dto.auth import AuthResult, AuthSnapshot
from app.application.ports.profile_store_port import ProfileStorePort
from app.application.ports.session_store_port import SessionStorePort, Unsubscribe
from app.application.use_cases.auth_common import utcnow
from app.domain.entities.profile import NotificationPreferences
from app.domain.entities.session import Session, SessionEvent
from app.domain.exceptions import AuthProviderError, NotAuthenticatedError, ProfileStoreError


logger = logging.getLogger(__name__)

CONFIRM_EMAIL_MESSAGE = "Please check your email to confirm your account"
SnapshotListener = Callable[[AuthSnapshot], None]


class AuthSessionManager:
    """Mirror of one client's session with the identity provider.

    A manager belongs to a single client and is never shared between callers;
    the HTTP layer builds one per request from the caller's bearer token.

    Consumers read ``snapshot`` (immutable, replaced as a whole) or register a
    listener with ``subscribe``. The provider stays the source of truth: sign-in
    and sign-out never write the snapshot directly, the session-change
    notification does. Notifications and explicit calls are not serialized; the
    last write wins.
    """

    def __init__(
        self,
        *,
        session_store: SessionStorePort,
        profile_store: ProfileStorePort | None,
        email_redirect_url: str | None,
    ):
        self._session_store = session_store
        self._profile_store = profile_store
        self._email_redirect_url = email_redirect_url
        self._snapshot = AuthSnapshot(user=None, loading=True)
        self._listeners: list[SnapshotListener] = []
        self._unsubscribe: Unsubscribe | None = None

    @property
    def snapshot(self) -> AuthSnapshot:
        return self._snapshot

    def subscribe(self, listener: SnapshotListener) -> Unsubscribe:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def initialize(self) -> None:
        if self._unsubscribe is not None:
            return
        try:
            session = self._session_store.get_session()
        except AuthProviderError as exc:
            logger.warning("auth_session: get_session_failed error=%s", exc)
            session = None
        self._publish(session, loading=False)
        self._unsubscribe = self._session_store.on_session_change(self._on_session_change)
        logger.info("auth_session: initialized user_id=%s", _user_id(session))

    def teardown(self) -> None:
        if self._unsubscribe is None:
            return
        self._unsubscribe()
        self._unsubscribe = None
        logger.info("auth_session: teardown")

    def current_user_id(self) -> str:
        user = self._snapshot.user
        if user is None:
            raise NotAuthenticatedError("Not authenticated")
        return user.id

    def sign_in(self, *, email: str, password: str) -> AuthResult:
        try:
            session = self._session_store.sign_in_with_password(email=email, password=password)
        except AuthProviderError as exc:
            logger.info("auth_session: sign_in_failed error=%s", exc)
            return AuthResult(error=str(exc))
        return AuthResult(error=None, session=session)

    def restore_session(self, *, access_token: str, refresh_token: str | None = None) -> AuthResult:
        try:
            self._session_store.set_session(access_token=access_token, refresh_token=refresh_token)
        except AuthProviderError as exc:
            logger.info("auth_session: restore_failed error=%s", exc)
            return AuthResult(error=str(exc))
        return AuthResult(error=None)

    def sign_up(self, *, email: str, password: str, name: str) -> AuthResult:
        logger.info("auth_session: sign_up_started")
        try:
            result = self._session_store.sign_up(
                email=email,
                password=password,
                data={"name": name},
                redirect_to=self._email_redirect_url,
            )
        except AuthProviderError as exc:
            logger.error("auth_session: sign_up_failed error=%s", exc)
            return AuthResult(error=str(exc))

        if result.user is None:
            logger.error("auth_session: sign_up_failed error=no_user_returned")
            return AuthResult(error="Signup failed - no user returned")

        user_id = result.user.id
        logger.info("auth_session: auth_user_created user_id=%s", user_id)
        self._create_profile(user_id=user_id, email=email, name=name)

        if result.session is None:
            logger.info("auth_session: email_confirmation_required user_id=%s", user_id)
            return AuthResult(error=None, message=CONFIRM_EMAIL_MESSAGE)
        return AuthResult(error=None, session=result.session)

    def sign_out(self) -> None:
        self._session_store.sign_out()

    def _create_profile(self, *, user_id: str, email: str, name: str) -> None:
        if self._profile_store is None:
            logger.error("auth_session: profile_upsert_skipped user_id=%s reason=no_profile_store", user_id)
            return
        try:
            self._profile_store.upsert(
                user_id=user_id,
                values={
                    "name": name,
                    "email": email,
                    "notification_preferences": NotificationPreferences(),
                },
                now=utcnow(),
            )
        except ProfileStoreError as exc:
            # Auth already succeeded; the profile can be created later.
            logger.error("auth_session: profile_upsert_failed user_id=%s error=%s", user_id, exc)
            return
        logger.info("auth_session: profile_created user_id=%s", user_id)

    def _on_session_change(self, event: SessionEvent, session: Session | None) -> None:
        logger.debug("auth_session: session_change event=%s user_id=%s", event, _user_id(session))
        self._publish(session, loading=False)

    def _publish(self, session: Session | None, *, loading: bool) -> None:
        snapshot = AuthSnapshot(user=session.user if session is not None else None, loading=loading)
        self._snapshot = snapshot
        for listener in list(self._listeners):
            listener(snapshot)


def _user_id(session: Session | None) -> str | None:
    return session.user.id if session is not None else None
