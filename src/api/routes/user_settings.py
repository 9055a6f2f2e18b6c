"""Profile, notification and preference settings for the signed-in user."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, status

from api.routes.auth import get_current_user
from core.dependencies import UserManagerDep
from core.exceptions import ValidationError
from schemas.user import (
    NotificationSettings,
    Preferences,
    UpdatePreferencesRequest,
    UpdateProfileRequest,
    User,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/user", tags=["User Settings"])


@router.put("/profile", summary="Update profile")
def update_profile(
    req: UpdateProfileRequest,
    user_manager: UserManagerDep,
    current_user: User = Depends(get_current_user),
) -> dict:
    """Update name and email, and optionally change the password.

    A new password is only accepted together with the correct current one.
    """
    try:
        user = user_manager.update_profile(
            current_user.user_id,
            name=req.name,
            email=req.email,
            current_password=req.current_password,
            new_password=req.new_password,
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        )
    return {"message": "Profile updated successfully", "user": user.public_dict()}


@router.get("/notifications", response_model=NotificationSettings, summary="Notification settings")
def get_notification_settings(
    current_user: User = Depends(get_current_user),
) -> NotificationSettings:
    return current_user.notification_settings


@router.put("/notifications", response_model=NotificationSettings, summary="Update notification settings")
def update_notification_settings(
    user_manager: UserManagerDep,
    updates: Dict[str, Any] = Body(...),
    current_user: User = Depends(get_current_user),
) -> NotificationSettings:
    try:
        user = user_manager.update_notification_settings(current_user.user_id, updates)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        )
    return user.notification_settings


@router.get("/preferences", response_model=Preferences, summary="Preferences")
def get_preferences(current_user: User = Depends(get_current_user)) -> Preferences:
    return current_user.preferences


@router.put("/preferences", response_model=Preferences, summary="Update preferences")
def update_preferences(
    req: UpdatePreferencesRequest,
    user_manager: UserManagerDep,
    current_user: User = Depends(get_current_user),
) -> Preferences:
    try:
        user = user_manager.update_preferences(
            current_user.user_id, language=req.language, theme=req.theme
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        )
    return user.preferences
