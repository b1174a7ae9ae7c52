from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest
from fastapi.testclient import TestClient

from app.api import deps
from app.api.deps import get_auth_session_manager, get_get_profile_use_case, get_update_profile_use_case
from app.application.dto.auth import AuthResult, AuthSnapshot
from app.domain.entities.profile import NotificationPreferences, Profile
from app.domain.entities.session import Session, SessionUser
from app.domain.exceptions import NotAuthenticatedError, ProfileNotFoundError
from app.infrastructure.clients.supabase_auth_client import SupabaseAuthClient, SupabaseAuthClientSettings
from app.main import app


class FakeAuthSessionManager:
    def __init__(self, *, user: SessionUser | None = None):
        self.snapshot = AuthSnapshot(user=user, loading=False)
        self.sign_up_result = AuthResult(error=None)
        self.signed_out = False

    def current_user_id(self) -> str:
        if self.snapshot.user is None:
            raise NotAuthenticatedError("Not authenticated")
        return self.snapshot.user.id

    def sign_in(self, *, email: str, password: str) -> AuthResult:
        if password != "secret123":
            return AuthResult(error="Invalid login credentials")
        session = Session(
            user=SessionUser(id="u1", email=email),
            access_token="access-u1",
            refresh_token="refresh-u1",
            expires_at=None,
        )
        return AuthResult(error=None, session=session)

    def sign_up(self, *, email: str, password: str, name: str) -> AuthResult:
        return self.sign_up_result

    def sign_out(self) -> None:
        self.signed_out = True


def _profile(user_id: str) -> Profile:
    now = datetime(2026, 1, 5, tzinfo=timezone.utc)
    return Profile(
        id=user_id,
        name="Alice",
        email="alice@example.com",
        plan="pro",
        status="active",
        stripe_customer_id="cus_1",
        subscription_id="sub_1",
        subscription_status="active",
        notification_preferences=NotificationPreferences(),
        created_at=now,
        updated_at=now,
    )


class FakeGetProfileUseCase:
    def execute(self, *, user_id: str) -> Profile:
        if user_id != "u1":
            raise ProfileNotFoundError("Profile not found.")
        return _profile(user_id)


class FakeUpdateProfileUseCase:
    def __init__(self):
        self.commands = []

    def execute(self, command) -> Profile:
        self.commands.append(command)
        return _profile(command.user_id)


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


def _use_manager(manager: FakeAuthSessionManager) -> FakeAuthSessionManager:
    app.dependency_overrides[get_auth_session_manager] = lambda: manager
    return manager


def test_session_route_returns_snapshot(client):
    _use_manager(FakeAuthSessionManager(user=SessionUser(id="u1", email="alice@example.com", metadata={"name": "Alice"})))

    response = client.get("/auth/session")

    assert response.status_code == 200
    assert response.json() == {
        "user": {"id": "u1", "email": "alice@example.com", "metadata": {"name": "Alice"}},
        "loading": False,
    }


def test_sign_in_failure_is_401(client):
    _use_manager(FakeAuthSessionManager())

    response = client.post("/auth/sign-in", json={"email": "alice@example.com", "password": "bad"})

    assert response.status_code == 401
    assert response.json()["error"] == "Invalid login credentials"


def test_sign_in_success(client):
    _use_manager(FakeAuthSessionManager())

    response = client.post("/auth/sign-in", json={"email": "alice@example.com", "password": "secret123"})

    assert response.status_code == 200
    assert response.json()["error"] is None
    assert response.json()["session"] == {"access_token": "access-u1", "refresh_token": "refresh-u1", "expires_at": None}


def test_sign_up_confirmation_message_is_returned(client):
    manager = _use_manager(FakeAuthSessionManager())
    manager.sign_up_result = AuthResult(error=None, message="Please check your email to confirm your account")

    response = client.post(
        "/auth/sign-up",
        json={"email": "alice@example.com", "password": "secret123", "name": "Alice"},
    )

    assert response.status_code == 200
    assert response.json() == {
        "error": None,
        "message": "Please check your email to confirm your account",
        "session": None,
    }


def test_sign_out(client):
    manager = _use_manager(FakeAuthSessionManager())

    response = client.post("/auth/sign-out")

    assert response.json() == {"ok": True}
    assert manager.signed_out is True


def test_profile_requires_signed_in_user(client):
    _use_manager(FakeAuthSessionManager())
    app.dependency_overrides[get_get_profile_use_case] = lambda: FakeGetProfileUseCase()

    response = client.get("/profile")

    assert response.status_code == 401


def test_get_profile_for_current_user(client):
    _use_manager(FakeAuthSessionManager(user=SessionUser(id="u1", email="alice@example.com")))
    app.dependency_overrides[get_get_profile_use_case] = lambda: FakeGetProfileUseCase()

    response = client.get("/profile")

    assert response.status_code == 200
    payload = response.json()
    assert payload["plan"] == "pro"
    assert payload["notification_preferences"] == {"email": True, "push": False, "marketing": True}


def test_get_profile_missing_is_404(client):
    _use_manager(FakeAuthSessionManager(user=SessionUser(id="u2", email=None)))
    app.dependency_overrides[get_get_profile_use_case] = lambda: FakeGetProfileUseCase()

    assert client.get("/profile").status_code == 404


def test_update_profile_passes_preferences(client):
    _use_manager(FakeAuthSessionManager(user=SessionUser(id="u1", email="alice@example.com")))
    use_case = FakeUpdateProfileUseCase()
    app.dependency_overrides[get_update_profile_use_case] = lambda: use_case

    response = client.put(
        "/profile",
        json={"name": "Alice B", "notification_preferences": {"email": False, "push": True, "marketing": False}},
    )

    assert response.status_code == 200
    command = use_case.commands[0]
    assert command.user_id == "u1"
    assert command.name == "Alice B"
    assert command.email is None
    assert command.notification_preferences == NotificationPreferences(email=False, push=True, marketing=False)


class FakeProfileNotFoundUpdate:
    def execute(self, command) -> Profile:
        raise ProfileNotFoundError("Profile not found.")


def test_update_profile_without_row_is_404(client):
    _use_manager(FakeAuthSessionManager(user=SessionUser(id="u1", email="alice@example.com")))
    app.dependency_overrides[get_update_profile_use_case] = lambda: FakeProfileNotFoundUpdate()

    response = client.put("/profile", json={"name": "Alice"})

    assert response.status_code == 404
    assert response.json()["detail"] == "Profile not found."


def _supabase_handler(request: httpx.Request) -> httpx.Response:
    user = {"id": "u1", "email": "alice@example.com", "user_metadata": {"name": "Alice"}}
    if request.url.path == "/auth/v1/token":
        return httpx.Response(
            200,
            json={"access_token": "alice-token", "refresh_token": "alice-refresh", "user": user},
        )
    if request.url.path == "/auth/v1/user":
        if request.headers["Authorization"] == "Bearer alice-token":
            return httpx.Response(200, json=user)
        return httpx.Response(401, json={"msg": "invalid JWT"})
    return httpx.Response(404, json={"msg": "not found"})


def test_signed_in_session_is_not_shared_with_other_callers(client, monkeypatch):
    monkeypatch.setenv("POSTGRES_DSN", "")
    monkeypatch.setattr(
        deps,
        "_build_session_store",
        lambda: SupabaseAuthClient(
            SupabaseAuthClientSettings(
                supabase_url="https://project.supabase.co",
                anon_key="anon-key",
                timeout_seconds=5,
            ),
            transport=httpx.MockTransport(_supabase_handler),
        ),
    )
    update_use_case = FakeUpdateProfileUseCase()
    app.dependency_overrides[get_get_profile_use_case] = lambda: FakeGetProfileUseCase()
    app.dependency_overrides[get_update_profile_use_case] = lambda: update_use_case

    alice = TestClient(app)
    sign_in = alice.post("/auth/sign-in", json={"email": "alice@example.com", "password": "secret123"})
    assert sign_in.status_code == 200
    token = sign_in.json()["session"]["access_token"]
    assert token == "alice-token"

    stranger = TestClient(app)
    assert stranger.get("/profile").status_code == 401
    assert stranger.put("/profile", json={"email": "mallory@example.com"}).status_code == 401
    assert stranger.get("/auth/session").json() == {"user": None, "loading": False}
    assert stranger.get("/profile", headers={"Authorization": "Bearer forged"}).status_code == 401
    assert stranger.get("/profile", headers={"Authorization": "Token alice-token"}).status_code == 401
    assert update_use_case.commands == []

    own = alice.get("/profile", headers={"Authorization": f"Bearer {token}"})
    assert own.status_code == 200
    assert own.json()["id"] == "u1"
    session = alice.get("/auth/session", headers={"Authorization": f"Bearer {token}"}).json()
    assert session["user"]["id"] == "u1"
