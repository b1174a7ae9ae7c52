from __future__ import annotations

from datetime import datetime
import json
import logging
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.application.ports.profile_store_port import ProfileStorePort
from app.domain.entities.profile import NotificationPreferences
from app.domain.exceptions import ProfileStoreError
from app.infrastructure.db.mappers.profiles_mapper import map_row_to_profile


logger = logging.getLogger(__name__)

PROFILE_COLUMNS = """
    id, name, email, plan, status, stripe_customer_id, subscription_id,
    subscription_status, notification_preferences, created_at, updated_at
"""

WRITABLE_COLUMNS = frozenset(
    {
        "name",
        "email",
        "plan",
        "status",
        "stripe_customer_id",
        "subscription_id",
        "subscription_status",
        "notification_preferences",
    }
)


def _bind_values(values: dict[str, Any]) -> tuple[list[str], dict[str, Any]]:
    unknown = set(values) - WRITABLE_COLUMNS
    if unknown:
        raise ValueError(f"Unknown profile columns: {', '.join(sorted(unknown))}")
    columns = sorted(values)
    params: dict[str, Any] = {}
    for column in columns:
        value = values[column]
        if column == "notification_preferences" and isinstance(value, NotificationPreferences):
            value = json.dumps(value.as_dict())
        params[column] = value
    return columns, params


def _placeholder(column: str) -> str:
    if column == "notification_preferences":
        return "CAST(:notification_preferences AS jsonb)"
    return f":{column}"


class SqlProfilesRepository(ProfileStorePort):
    def __init__(self, engine):
        self._engine = engine

    def get_by_id(self, *, user_id: str):
        sql = f"""
            SELECT {PROFILE_COLUMNS}
            FROM public.profiles
            WHERE id = :user_id
            LIMIT 1
        """
        try:
            with self._engine.connect() as conn:
                row = conn.execute(text(sql), {"user_id": user_id}).mappings().first()
        except SQLAlchemyError as exc:
            raise ProfileStoreError("Failed to load profile.") from exc
        if row is None:
            return None
        return map_row_to_profile(row)

    def get_by_stripe_customer_id(self, *, stripe_customer_id: str):
        sql = f"""
            SELECT {PROFILE_COLUMNS}
            FROM public.profiles
            WHERE stripe_customer_id = :stripe_customer_id
            LIMIT 1
        """
        try:
            with self._engine.connect() as conn:
                row = conn.execute(
                    text(sql),
                    {"stripe_customer_id": stripe_customer_id},
                ).mappings().first()
        except SQLAlchemyError as exc:
            raise ProfileStoreError("Failed to load profile.") from exc
        if row is None:
            return None
        return map_row_to_profile(row)

    def create(self, *, user_id: str, email: str, plan: str, now: datetime):
        sql = f"""
            INSERT INTO public.profiles (
                id, email, plan, status, notification_preferences, created_at, updated_at
            ) VALUES (
                :id, :email, :plan, 'active', CAST(:notification_preferences AS jsonb),
                :created_at, :updated_at
            )
            RETURNING {PROFILE_COLUMNS}
        """
        params = {
            "id": user_id,
            "email": email,
            "plan": plan,
            "notification_preferences": json.dumps(NotificationPreferences().as_dict()),
            "created_at": now,
            "updated_at": now,
        }
        try:
            with self._engine.begin() as conn:
                row = conn.execute(text(sql), params).mappings().one()
        except SQLAlchemyError as exc:
            raise ProfileStoreError("Failed to create profile.") from exc
        logger.info("profiles_repo: created user_id=%s plan=%s", user_id, plan)
        return map_row_to_profile(row)

    def upsert(self, *, user_id: str, values: dict[str, Any], now: datetime):
        columns, params = _bind_values(values)
        insert_columns = ["id", *columns, "created_at", "updated_at"]
        insert_values = [":id", *(_placeholder(c) for c in columns), ":created_at", ":updated_at"]
        assignments = [f"{column} = EXCLUDED.{column}" for column in columns]
        assignments.append("updated_at = EXCLUDED.updated_at")
        sql = f"""
            INSERT INTO public.profiles ({", ".join(insert_columns)})
            VALUES ({", ".join(insert_values)})
            ON CONFLICT (id) DO UPDATE
            SET {", ".join(assignments)}
            RETURNING {PROFILE_COLUMNS}
        """
        params.update({"id": user_id, "created_at": now, "updated_at": now})
        try:
            with self._engine.begin() as conn:
                row = conn.execute(text(sql), params).mappings().one()
        except SQLAlchemyError as exc:
            raise ProfileStoreError("Failed to save profile.") from exc
        return map_row_to_profile(row)

    def update_by_id(self, *, user_id: str, values: dict[str, Any], now: datetime) -> int:
        columns, params = _bind_values(values)
        assignments = [f"{column} = {_placeholder(column)}" for column in columns]
        assignments.append("updated_at = :updated_at")
        sql = f"""
            UPDATE public.profiles
            SET {", ".join(assignments)}
            WHERE id = :user_id
        """
        params.update({"user_id": user_id, "updated_at": now})
        try:
            with self._engine.begin() as conn:
                result = conn.execute(text(sql), params)
        except SQLAlchemyError as exc:
            raise ProfileStoreError("Failed to update profile.") from exc
        return result.rowcount

    def set_stripe_customer_id_if_missing(
        self,
        *,
        user_id: str,
        stripe_customer_id: str,
        now: datetime,
    ) -> bool:
        sql = """
            UPDATE public.profiles
            SET stripe_customer_id = :stripe_customer_id,
                updated_at = :updated_at
            WHERE id = :user_id
              AND stripe_customer_id IS NULL
        """
        try:
            with self._engine.begin() as conn:
                result = conn.execute(
                    text(sql),
                    {
                        "user_id": user_id,
                        "stripe_customer_id": stripe_customer_id,
                        "updated_at": now,
                    },
                )
        except SQLAlchemyError as exc:
            raise ProfileStoreError("Failed to update profile stripe_customer_id.") from exc
        return result.rowcount == 1
