from __future__ import annotations

from dataclasses import dataclass

from app.domain.entities.profile import NotificationPreferences


@dataclass(frozen=True)
class UpdateProfileInput:
    user_id: str
    name: str | None = None
    email: str | None = None
    notification_preferences: NotificationPreferences | None = None
