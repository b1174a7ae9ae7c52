from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CheckoutRequest(BaseModel):
    # Loosely typed: CreateCheckoutSessionUseCase owns field validation (400).
    model_config = ConfigDict(populate_by_name=True)

    plan: Any = None
    user_id: Any = Field(default=None, alias="userId")
    email: Any = None


class CheckoutResponse(BaseModel):
    url: str


class PlanResponse(BaseModel):
    plan: str
    name: str
    amount: int
    price_id: str


class StripeWebhookResponse(BaseModel):
    event_type: str
    handled: bool
