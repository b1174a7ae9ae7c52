from __future__ import annotations

import logging
from typing import Any

from app.application.dto.profile import UpdateProfileInput
from app.application.ports.profile_store_port import ProfileStorePort
from app.domain.entities.profile import Profile
from app.domain.exceptions import ProfileNotFoundError, ProfileValidationError

from .auth_common import utcnow


logger = logging.getLogger(__name__)


class UpdateProfileUseCase:
    def __init__(self, *, profile_store: ProfileStorePort):
        self._profile_store = profile_store

    def execute(self, command: UpdateProfileInput) -> Profile:
        values: dict[str, Any] = {}
        if command.name is not None:
            name = command.name.strip()
            if not name:
                raise ProfileValidationError("name must not be blank.")
            values["name"] = name
        if command.email is not None:
            # Stored with the caller's casing.
            email = command.email.strip()
            if not email:
                raise ProfileValidationError("email must not be blank.")
            values["email"] = email
        if command.notification_preferences is not None:
            values["notification_preferences"] = command.notification_preferences

        if self._profile_store.get_by_id(user_id=command.user_id) is None:
            raise ProfileNotFoundError("Profile not found.")

        profile = self._profile_store.upsert(user_id=command.user_id, values=values, now=utcnow())
        logger.info(
            "update_profile: upserted user_id=%s fields=%s",
            command.user_id,
            ",".join(sorted(values)) or "-",
        )
        return profile
