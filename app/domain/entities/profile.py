from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal


PlanCode = Literal["free", "pro", "enterprise"]
ProfileStatus = Literal["active", "inactive", "suspended"]


@dataclass(frozen=True)
class NotificationPreferences:
    email: bool = True
    push: bool = False
    marketing: bool = True

    def as_dict(self) -> dict[str, bool]:
        return {"email": self.email, "push": self.push, "marketing": self.marketing}


@dataclass(frozen=True)
class Profile:
    id: str
    name: str | None
    email: str
    plan: PlanCode
    status: ProfileStatus
    stripe_customer_id: str | None
    subscription_id: str | None
    subscription_status: str | None
    notification_preferences: NotificationPreferences
    created_at: datetime
    updated_at: datetime


def placeholder_email(user_id: str) -> str:
    return f"user_{user_id[:8]}@checkout.temp"
