"""User schema definitions.

This module defines the User domain model plus the request and response
payloads used by the auth, user-settings and admin routes.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytz
from pydantic import BaseModel, Field, field_validator


class NotificationSettings(BaseModel):
    """Per-user email notification switches."""

    email_notifications: bool = Field(default=True)
    assignment_reminders: bool = Field(default=True)
    grade_notifications: bool = Field(default=True)
    system_updates: bool = Field(default=False)


class Preferences(BaseModel):
    """UI language and theme preferences."""

    language: str = Field(default="en", description="One of en, so, es, fr.")
    theme: str = Field(default="system", description="One of light, dark, system.")


class User(BaseModel):
    user_id: str = Field(
        description="The unique identifier for the user.",
        default_factory=lambda: str(uuid.uuid4()),
    )
    name: str = Field(description="Display name.")
    email: str = Field(description="Login email, unique and lower-case.")
    password_hash: str = Field(description="bcrypt hash of the password.")
    role: str = Field(description="'student', 'teacher' or 'admin'.")
    class_id: Optional[str] = Field(
        default=None,
        description="The class a student is enrolled in.",
    )
    notification_settings: NotificationSettings = Field(default_factory=NotificationSettings)
    preferences: Preferences = Field(default_factory=Preferences)
    created_at: str = Field(
        default_factory=lambda: datetime.now(pytz.utc).isoformat()
    )
    updated_at: str = Field(
        default_factory=lambda: datetime.now(pytz.utc).isoformat()
    )

    def public_dict(self) -> Dict[str, Any]:
        """Return the user as a dict without the password hash."""
        data = self.model_dump()
        data.pop("password_hash", None)
        return data


class UserSummary(BaseModel):
    user_id: str
    name: str
    email: str


class RegisterRequest(BaseModel):
    """Request schema for registration."""

    name: str
    email: str
    password: str
    role: str
    class_id: Optional[str] = Field(
        default=None,
        description="Required for students.",
    )
    admin_token: Optional[str] = Field(
        default=None,
        description="Required for admin registration; must match ADMIN_TOKEN.",
    )

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class LoginResponse(BaseModel):
    user: Dict[str, Any]
    token: str


class CurrentUserResponse(BaseModel):
    user: Dict[str, Any]


class UpdateProfileRequest(BaseModel):
    name: str
    email: str
    current_password: Optional[str] = None
    new_password: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class UpdatePreferencesRequest(BaseModel):
    language: Optional[str] = None
    theme: Optional[str] = None


class UpdateRoleRequest(BaseModel):
    role: str


class UserListResponse(BaseModel):
    users: List[Dict[str, Any]]

