from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal


CheckoutStage = Literal[
    "validating",
    "ensuring_user",
    "ensuring_customer",
    "creating_session",
    "done",
    "failed",
]


@dataclass(frozen=True)
class CreateCheckoutSessionInput:
    # Raw request values, validated by CreateCheckoutSessionUseCase.
    plan: Any
    user_id: Any
    email: Any = None


@dataclass(frozen=True)
class CreateCheckoutSessionOutput:
    checkout_session_id: str
    checkout_url: str
    stripe_customer_id: str
    stage: CheckoutStage = "done"


@dataclass(frozen=True)
class StripeWebhookInput:
    signature: str
    payload: bytes


@dataclass(frozen=True)
class StripeWebhookOutput:
    event_type: str
    handled: bool


@dataclass(frozen=True)
class StripeCheckoutSessionResult:
    id: str
    url: str


@dataclass(frozen=True)
class StripeSubscriptionEventData:
    subscription_id: str
    customer_id: str | None
    status: str


@dataclass(frozen=True)
class StripeCheckoutCompletedEventData:
    user_id: str | None
    plan: str | None
    customer_id: str | None
    subscription_id: str | None


@dataclass(frozen=True)
class StripeWebhookEvent:
    event_type: str
    subscription: StripeSubscriptionEventData | None
    checkout_completed: StripeCheckoutCompletedEventData | None


@dataclass(frozen=True)
class PlanOutput:
    plan: str
    name: str
    amount_cents: int
    price_id: str
