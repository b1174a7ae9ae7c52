from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from app.domain.entities.profile import Profile


class ProfileStorePort(Protocol):
    def get_by_id(self, *, user_id: str) -> Profile | None:
        ...

    def get_by_stripe_customer_id(self, *, stripe_customer_id: str) -> Profile | None:
        ...

    def create(self, *, user_id: str, email: str, plan: str, now: datetime) -> Profile:
        ...

    def upsert(self, *, user_id: str, values: dict[str, Any], now: datetime) -> Profile:
        ...

    def update_by_id(self, *, user_id: str, values: dict[str, Any], now: datetime) -> int:
        ...

    def set_stripe_customer_id_if_missing(
        self,
        *,
        user_id: str,
        stripe_customer_id: str,
        now: datetime,
    ) -> bool:
        ...
