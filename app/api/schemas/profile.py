from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class NotificationPreferencesSchema(BaseModel):
    email: bool
    push: bool
    marketing: bool


class ProfileResponse(BaseModel):
    id: str
    name: str | None
    email: str
    plan: str
    status: str
    stripe_customer_id: str | None
    subscription_id: str | None
    subscription_status: str | None
    notification_preferences: NotificationPreferencesSchema
    created_at: datetime
    updated_at: datetime


class UpdateProfileRequest(BaseModel):
    name: str | None = Field(default=None, max_length=120)
    email: str | None = Field(default=None, max_length=255)
    notification_preferences: NotificationPreferencesSchema | None = None
