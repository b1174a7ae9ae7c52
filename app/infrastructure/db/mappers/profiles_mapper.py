from __future__ import annotations

import json
from typing import Any, Mapping

from app.domain.entities.profile import NotificationPreferences, Profile


def _as_str(value: Any) -> str:
    return str(value)


def map_notification_preferences(value: Any) -> NotificationPreferences:
    if value is None:
        return NotificationPreferences()
    if isinstance(value, str):
        value = json.loads(value)
    defaults = NotificationPreferences()
    return NotificationPreferences(
        email=bool(value.get("email", defaults.email)),
        push=bool(value.get("push", defaults.push)),
        marketing=bool(value.get("marketing", defaults.marketing)),
    )


def map_row_to_profile(row: Mapping[str, Any]) -> Profile:
    return Profile(
        id=_as_str(row["id"]),
        name=row.get("name"),
        email=row["email"],
        plan=(row.get("plan") or "free").lower(),
        status=(row.get("status") or "active").lower(),
        stripe_customer_id=row.get("stripe_customer_id"),
        subscription_id=row.get("subscription_id"),
        subscription_status=row.get("subscription_status"),
        notification_preferences=map_notification_preferences(row.get("notification_preferences")),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
