from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import get_current_user_id, get_get_profile_use_case, get_update_profile_use_case
from app.api.schemas.profile import NotificationPreferencesSchema, ProfileResponse, UpdateProfileRequest
from app.application.dto.profile import UpdateProfileInput
from app.application.use_cases.get_profile import GetProfileUseCase
from app.application.use_cases.update_profile import UpdateProfileUseCase
from app.domain.entities.profile import NotificationPreferences, Profile
from app.domain.exceptions import ProfileNotFoundError, ProfileStoreError, ProfileValidationError


router = APIRouter()


def _to_response(profile: Profile) -> ProfileResponse:
    prefs = profile.notification_preferences
    return ProfileResponse(
        id=profile.id,
        name=profile.name,
        email=profile.email,
        plan=profile.plan,
        status=profile.status,
        stripe_customer_id=profile.stripe_customer_id,
        subscription_id=profile.subscription_id,
        subscription_status=profile.subscription_status,
        notification_preferences=NotificationPreferencesSchema(
            email=prefs.email,
            push=prefs.push,
            marketing=prefs.marketing,
        ),
        created_at=profile.created_at,
        updated_at=profile.updated_at,
    )


@router.get("/profile", response_model=ProfileResponse)
def get_profile(
    user_id: str = Depends(get_current_user_id),
    use_case: GetProfileUseCase = Depends(get_get_profile_use_case),
):
    try:
        profile = use_case.execute(user_id=user_id)
    except ProfileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ProfileStoreError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return _to_response(profile)


@router.put("/profile", response_model=ProfileResponse)
def update_profile(
    req: UpdateProfileRequest,
    user_id: str = Depends(get_current_user_id),
    use_case: UpdateProfileUseCase = Depends(get_update_profile_use_case),
):
    prefs = None
    if req.notification_preferences is not None:
        prefs = NotificationPreferences(
            email=req.notification_preferences.email,
            push=req.notification_preferences.push,
            marketing=req.notification_preferences.marketing,
        )
    try:
        profile = use_case.execute(
            UpdateProfileInput(
                user_id=user_id,
                name=req.name,
                email=req.email,
                notification_preferences=prefs,
            )
        )
    except ProfileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ProfileValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ProfileStoreError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return _to_response(profile)
