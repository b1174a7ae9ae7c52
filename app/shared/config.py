from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


@dataclass(frozen=True)
class Settings:
    postgres_dsn: str
    supabase_url: str
    supabase_anon_key: str
    supabase_request_timeout_seconds: float
    stripe_secret_key: str
    stripe_webhook_secret: str
    stripe_pro_price_id: str
    stripe_enterprise_price_id: str
    app_url: str
    auth_email_redirect_url: str
    log_level: str

    @property
    def stripe_configured(self) -> bool:
        return bool(self.stripe_secret_key)


def get_settings() -> Settings:
    app_url = (_env("APP_URL", "http://localhost:3000") or "").rstrip("/")
    return Settings(
        postgres_dsn=_env("POSTGRES_DSN", ""),
        supabase_url=(_env("SUPABASE_URL", "") or "").rstrip("/"),
        supabase_anon_key=_env("SUPABASE_ANON_KEY", ""),
        supabase_request_timeout_seconds=float(_env("SUPABASE_REQUEST_TIMEOUT_SECONDS", "10")),
        stripe_secret_key=_env("STRIPE_SECRET_KEY", ""),
        stripe_webhook_secret=_env("STRIPE_WEBHOOK_SECRET", ""),
        stripe_pro_price_id=_env("STRIPE_PRO_PRICE_ID", "price_pro_placeholder"),
        stripe_enterprise_price_id=_env("STRIPE_ENTERPRISE_PRICE_ID", "price_enterprise_placeholder"),
        app_url=app_url,
        auth_email_redirect_url=_env("AUTH_EMAIL_REDIRECT_URL", f"{app_url}/settings"),
        log_level=_env("LOG_LEVEL", "INFO"),
    )
