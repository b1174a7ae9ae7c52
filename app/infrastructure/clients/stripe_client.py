from __future__ import annotations

import stripe

from app.application.dto.billing import (
    StripeCheckoutCompletedEventData,
    StripeCheckoutSessionResult,
    StripeSubscriptionEventData,
    StripeWebhookEvent,
)
from app.application.ports.stripe_port import StripePort
from app.domain.exceptions import BillingError


class StripeClient(StripePort):
    def __init__(self, *, secret_key: str, webhook_secret: str):
        stripe.api_key = secret_key
        self._webhook_secret = webhook_secret

    def create_customer(self, *, user_id: str, email: str, name: str | None) -> str:
        payload: dict = {"email": email, "metadata": {"user_id": user_id}}
        if name:
            payload["name"] = name
        try:
            customer = stripe.Customer.create(**payload)
        except Exception as exc:  # pragma: no cover - external API
            raise BillingError("Failed to create Stripe customer.") from exc

        customer_id = getattr(customer, "id", None)
        if not customer_id:
            raise BillingError("Stripe customer id is missing.")
        return str(customer_id)

    def create_checkout_session(
        self,
        *,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
    ) -> StripeCheckoutSessionResult:
        try:
            session = stripe.checkout.Session.create(
                customer=customer_id,
                mode="subscription",
                payment_method_types=["card"],
                line_items=[{"price": price_id, "quantity": 1}],
                success_url=success_url,
                cancel_url=cancel_url,
                client_reference_id=metadata.get("user_id"),
                metadata=metadata,
            )
        except Exception as exc:  # pragma: no cover - external API
            raise BillingError("Failed to create Stripe checkout session.") from exc

        session_id = getattr(session, "id", None)
        session_url = getattr(session, "url", None)
        if not session_id or not session_url:
            raise BillingError("Stripe checkout session response is incomplete.")

        return StripeCheckoutSessionResult(id=str(session_id), url=str(session_url))

    def verify_webhook(self, *, signature: str, payload: bytes) -> StripeWebhookEvent:
        if not self._webhook_secret:
            raise BillingError("STRIPE_WEBHOOK_SECRET is not configured.")
        try:
            event = stripe.Webhook.construct_event(payload=payload, sig_header=signature, secret=self._webhook_secret)
        except Exception as exc:  # pragma: no cover - external API
            raise BillingError("Invalid Stripe webhook signature.") from exc

        return parse_webhook_event(event)


def parse_webhook_event(event) -> StripeWebhookEvent:
    event_type = str(event.get("type", ""))
    data_object = event.get("data", {}).get("object", {})

    if event_type.startswith("customer.subscription."):
        return StripeWebhookEvent(
            event_type=event_type,
            subscription=StripeSubscriptionEventData(
                subscription_id=str(data_object.get("id")),
                customer_id=data_object.get("customer"),
                status=str(data_object.get("status")),
            ),
            checkout_completed=None,
        )

    if event_type == "checkout.session.completed":
        metadata = data_object.get("metadata") or {}
        return StripeWebhookEvent(
            event_type=event_type,
            subscription=None,
            checkout_completed=StripeCheckoutCompletedEventData(
                user_id=metadata.get("user_id") or data_object.get("client_reference_id"),
                plan=metadata.get("plan"),
                customer_id=data_object.get("customer"),
                subscription_id=data_object.get("subscription"),
            ),
        )

    return StripeWebhookEvent(
        event_type=event_type,
        subscription=None,
        checkout_completed=None,
    )
