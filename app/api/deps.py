from __future__ import annotations

from functools import lru_cache
from typing import Iterator

from fastapi import Depends, Header, HTTPException

from app.application.ports.session_store_port import SessionStorePort
from app.application.services.auth_session_manager import AuthSessionManager
from app.application.use_cases.create_checkout_session import CreateCheckoutSessionUseCase
from app.application.use_cases.get_profile import GetProfileUseCase
from app.application.use_cases.list_plans import ListPlansUseCase
from app.application.use_cases.process_stripe_webhook import ProcessStripeWebhookUseCase
from app.application.use_cases.update_profile import UpdateProfileUseCase
from app.domain.entities.plan import PlanCatalog, build_plan_catalog
from app.domain.exceptions import NotAuthenticatedError
from app.infrastructure.clients.stripe_client import StripeClient
from app.infrastructure.clients.supabase_auth_client import (
    SupabaseAuthClient,
    SupabaseAuthClientSettings,
)
from app.infrastructure.db.engine import get_engine
from app.infrastructure.db.repositories.profiles_repository import SqlProfilesRepository
from app.shared.config import get_settings


STRIPE_NOT_CONFIGURED = "Stripe is not configured. Add STRIPE_SECRET_KEY to the environment."


def _get_db_engine():
    settings = get_settings()
    if not settings.postgres_dsn:
        raise HTTPException(status_code=500, detail="POSTGRES_DSN is required.")
    return get_engine(settings.postgres_dsn)


def _get_profiles_repository() -> SqlProfilesRepository:
    return SqlProfilesRepository(_get_db_engine())


def _get_plan_catalog() -> PlanCatalog:
    settings = get_settings()
    return build_plan_catalog(
        pro_price_id=settings.stripe_pro_price_id,
        enterprise_price_id=settings.stripe_enterprise_price_id,
    )


@lru_cache(maxsize=1)
def _get_stripe_client() -> StripeClient | None:
    settings = get_settings()
    if not settings.stripe_configured:
        return None
    return StripeClient(
        secret_key=settings.stripe_secret_key,
        webhook_secret=settings.stripe_webhook_secret,
    )


def _build_session_store() -> SessionStorePort:
    settings = get_settings()
    return SupabaseAuthClient(
        SupabaseAuthClientSettings(
            supabase_url=settings.supabase_url,
            anon_key=settings.supabase_anon_key,
            timeout_seconds=settings.supabase_request_timeout_seconds,
        )
    )


def _build_auth_session_manager() -> AuthSessionManager:
    settings = get_settings()
    profile_store = SqlProfilesRepository(get_engine(settings.postgres_dsn)) if settings.postgres_dsn else None
    return AuthSessionManager(
        session_store=_build_session_store(),
        profile_store=profile_store,
        email_redirect_url=settings.auth_email_redirect_url,
    )


def _bearer_token(authorization: str | None) -> str | None:
    if authorization is None:
        return None
    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid authorization header.")
    token = authorization.replace("Bearer ", "", 1).strip()
    if not token:
        raise HTTPException(status_code=401, detail="Missing access token.")
    return token


def get_auth_session_manager(
    authorization: str | None = Header(default=None),
) -> Iterator[AuthSessionManager]:
    """Request-scoped manager holding only the caller's own session.

    An invalid or expired token leaves the manager signed out, so routes that
    need a user answer 401.
    """
    token = _bearer_token(authorization)
    manager = _build_auth_session_manager()
    manager.initialize()
    if token is not None:
        manager.restore_session(access_token=token)
    try:
        yield manager
    finally:
        manager.teardown()


def get_current_user_id(
    manager: AuthSessionManager = Depends(get_auth_session_manager),
) -> str:
    try:
        return manager.current_user_id()
    except NotAuthenticatedError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc


def get_create_checkout_session_use_case() -> CreateCheckoutSessionUseCase:
    settings = get_settings()
    stripe_client = _get_stripe_client()
    if stripe_client is None:
        raise HTTPException(status_code=503, detail=STRIPE_NOT_CONFIGURED)
    return CreateCheckoutSessionUseCase(
        profile_store=_get_profiles_repository(),
        stripe_port=stripe_client,
        plan_catalog=_get_plan_catalog(),
        app_url=settings.app_url,
    )


def get_process_stripe_webhook_use_case() -> ProcessStripeWebhookUseCase:
    stripe_client = _get_stripe_client()
    if stripe_client is None:
        raise HTTPException(status_code=503, detail=STRIPE_NOT_CONFIGURED)
    return ProcessStripeWebhookUseCase(
        profile_store=_get_profiles_repository(),
        stripe_port=stripe_client,
        plan_catalog=_get_plan_catalog(),
    )


def get_list_plans_use_case() -> ListPlansUseCase:
    return ListPlansUseCase(plan_catalog=_get_plan_catalog())


def get_get_profile_use_case() -> GetProfileUseCase:
    return GetProfileUseCase(profile_store=_get_profiles_repository())


def get_update_profile_use_case() -> UpdateProfileUseCase:
    return UpdateProfileUseCase(profile_store=_get_profiles_repository())
