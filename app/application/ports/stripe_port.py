from __future__ import annotations

from typing import Protocol

from app.application.dto.billing import StripeCheckoutSessionResult, StripeWebhookEvent


class StripePort(Protocol):
    def create_customer(self, *, user_id: str, email: str, name: str | None) -> str:
        ...

    def create_checkout_session(
        self,
        *,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
    ) -> StripeCheckoutSessionResult:
        ...

    def verify_webhook(self, *, signature: str, payload: bytes) -> StripeWebhookEvent:
        ...
