from __future__ import annotations

from app.application.ports.profile_store_port import ProfileStorePort
from app.domain.entities.profile import Profile
from app.domain.exceptions import ProfileNotFoundError


class GetProfileUseCase:
    def __init__(self, *, profile_store: ProfileStorePort):
        self._profile_store = profile_store

    def execute(self, *, user_id: str) -> Profile:
        profile = self._profile_store.get_by_id(user_id=user_id)
        if profile is None:
            raise ProfileNotFoundError("Profile not found.")
        return profile
