"""User management utilities.

This module provides user management functionality including user storage,
password hashing, profile and settings updates, and admin account management.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

import bcrypt
import pytz
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import ROLES, SUPPORTED_LANGUAGES, SUPPORTED_THEMES
from core.exceptions import UserNotFoundError, ValidationError
from models.class_model import ClassModel
from models.submission import SubmissionModel
from models.user import UserModel
from schemas.user import NotificationSettings, Preferences, User
from utils.converters import model_to_user, user_to_model

logger = logging.getLogger(__name__)

# Bcrypt rounds for password hashing (higher = more secure but slower)
BCRYPT_ROUNDS = 12

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


class UserAlreadyExistsError(Exception):
    """Exception raised when trying to create a user whose email is taken."""

    pass


class UserOwnsClassesError(Exception):
    """Exception raised when deleting a teacher who still owns classes."""

    pass


def _password_bytes(password: str) -> bytes:
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > BCRYPT_MAX_BYTES:
        logger.warning(
            "Password exceeds %d bytes (%d bytes), truncating",
            BCRYPT_MAX_BYTES,
            len(password_bytes),
        )
        password_bytes = password_bytes[:BCRYPT_MAX_BYTES]
    return password_bytes


class UserManager:
    """Manages user data persistence and operations using SQLAlchemy."""

    def __init__(self, db: Session):
        """Initialize UserManager.

        Args:
            db: SQLAlchemy Session.
        """
        self.db = db

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain text password.

        Returns:
            Hashed password (bcrypt hash string).
        """
        salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
        return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against a bcrypt hash.

        Args:
            plain_password: Plain text password to verify.
            hashed_password: Bcrypt hash string to verify against.

        Returns:
            True if password matches, False otherwise.
        """
        try:
            return bcrypt.checkpw(
                _password_bytes(plain_password), hashed_password.encode("utf-8")
            )
        except ValueError as e:
            # Malformed hash
            logger.error("Password verification error: %s", e)
            return False

    def create_user(
        self,
        name: str,
        email: str,
        password: str,
        role: str,
        class_id: Optional[str] = None,
    ) -> User:
        """Create a new user.

        Args:
            name: Display name.
            email: Login email (already normalized).
            password: Plain text password.
            role: User role ('admin', 'teacher', or 'student').
            class_id: Class to enroll a student in.

        Returns:
            Created User object.

        Raises:
            UserAlreadyExistsError: If the email is already registered.
        """
        if self._get_model_by_email(email):
            raise UserAlreadyExistsError(f"User with email '{email}' already exists")

        user = User(
            name=name,
            email=email,
            password_hash=self.hash_password(password),
            role=role,
            class_id=class_id if role == "student" else None,
        )

        # Two concurrent registrations can both pass the check above;
        # the unique index on email settles it.
        try:
            model = user_to_model(user)
            self.db.add(model)
            self.db.commit()
            self.db.refresh(model)
        except IntegrityError as e:
            self.db.rollback()
            raise UserAlreadyExistsError(f"User with email '{email}' already exists") from e

        logger.info("Created user: %s (%s)", email, role)
        return user

    def authenticate(self, email: str, password: str) -> Optional[User]:
        """Return the user when the credentials match, None otherwise."""
        model = self._get_model_by_email(email)
        if model is None or not self.verify_password(password, model.password_hash):
            return None
        return model_to_user(model)

    def get_user_by_email(self, email: str) -> Optional[User]:
        model = self._get_model_by_email(email)
        if model:
            return model_to_user(model)
        return None

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        """Get a user by user ID.

        Args:
            user_id: User ID to look up.

        Returns:
            User object if found, None otherwise.
        """
        model = self.db.query(UserModel).filter(UserModel.user_id == user_id).first()
        if model:
            return model_to_user(model)
        return None

    def list_users(self) -> List[User]:
        """List all users, newest first."""
        models = self.db.query(UserModel).order_by(UserModel.created_at.desc()).all()
        return [model_to_user(m) for m in models]

    def list_unassigned_students(self) -> List[User]:
        models = (
            self.db.query(UserModel)
            .filter(UserModel.role == "student", UserModel.class_id.is_(None))
            .order_by(UserModel.name)
            .all()
        )
        return [model_to_user(m) for m in models]

    def update_profile(
        self,
        user_id: str,
        name: str,
        email: str,
        current_password: Optional[str] = None,
        new_password: Optional[str] = None,
    ) -> User:
        """Update name, email and optionally the password.

        Raises:
            UserNotFoundError: If the user does not exist.
            ValidationError: On blank fields, a taken email, or a wrong
                current password.
        """
        model = self._get_model(user_id)
        name = name.strip()
        if not name or not email:
            raise ValidationError("Name and email are required")

        if email != model.email:
            existing = self._get_model_by_email(email)
            if existing and existing.user_id != user_id:
                raise ValidationError("Email already in use")

        if new_password:
            if not current_password:
                raise ValidationError("Current password is required to set a new password")
            if not self.verify_password(current_password, model.password_hash):
                raise ValidationError("Current password is incorrect")
            model.password_hash = self.hash_password(new_password)

        model.name = name
        model.email = email
        self._touch_and_commit(model)
        logger.info("Updated profile for user: %s", user_id)
        return model_to_user(model)

    def update_notification_settings(self, user_id: str, updates: Dict[str, object]) -> User:
        """Merge boolean notification switches into the stored settings.

        Raises:
            ValidationError: On an unknown key or a non-boolean value.
        """
        model = self._get_model(user_id)
        known = set(NotificationSettings.model_fields)
        unknown = sorted(set(updates) - known)
        if unknown:
            raise ValidationError(f"Invalid notification settings: {', '.join(unknown)}")
        for key, value in updates.items():
            if not isinstance(value, bool):
                raise ValidationError(f"Notification setting '{key}' must be a boolean")

        current = NotificationSettings(**(model.notification_settings or {})).model_dump()
        current.update(updates)
        model.notification_settings = current
        self._touch_and_commit(model)
        return model_to_user(model)

    def update_preferences(
        self, user_id: str, language: Optional[str] = None, theme: Optional[str] = None
    ) -> User:
        model = self._get_model(user_id)
        if language is not None and language not in SUPPORTED_LANGUAGES:
            raise ValidationError(
                f"Invalid language. Must be one of: {', '.join(SUPPORTED_LANGUAGES)}"
            )
        if theme is not None and theme not in SUPPORTED_THEMES:
            raise ValidationError(
                f"Invalid theme. Must be one of: {', '.join(SUPPORTED_THEMES)}"
            )

        current = Preferences(**(model.preferences or {})).model_dump()
        if language is not None:
            current["language"] = language
        if theme is not None:
            current["theme"] = theme
        model.preferences = current
        self._touch_and_commit(model)
        return model_to_user(model)

    def update_role(self, user_id: str, role: str) -> User:
        """Change a user's role; leaving the student role drops the enrollment."""
        if role not in ROLES:
            raise ValidationError(f"Invalid role. Must be one of: {', '.join(ROLES)}")
        model = self._get_model(user_id)
        model.role = role
        if role != "student":
            model.class_id = None
        self._touch_and_commit(model)
        logger.info("Changed role of user %s to %s", user_id, role)
        return model_to_user(model)

    def delete_user(self, user_id: str) -> List[str]:
        """Delete a user together with their submissions.

        Returns:
            Stored filenames of the deleted submissions, for the caller to
            remove from disk.

        Raises:
            UserNotFoundError: If the user does not exist.
            UserOwnsClassesError: If the user still owns classes.
        """
        model = self._get_model(user_id)
        owned = self.db.query(ClassModel).filter(ClassModel.teacher_id == user_id).count()
        if owned:
            raise UserOwnsClassesError(
                f"User owns {owned} class(es); reassign or delete them first"
            )

        submissions = (
            self.db.query(SubmissionModel)
            .filter(SubmissionModel.student_id == user_id)
            .all()
        )
        files = [s.file_url for s in submissions if s.file_url]
        for submission in submissions:
            self.db.delete(submission)
        self.db.delete(model)
        self.db.commit()
        logger.info("Deleted user %s and %d submission(s)", user_id, len(submissions))
        return files

    def count_by_role(self) -> Dict[str, int]:
        rows = (
            self.db.query(UserModel.role, func.count(UserModel.user_id))
            .group_by(UserModel.role)
            .all()
        )
        return {role: count for role, count in rows}

    def _get_model(self, user_id: str) -> UserModel:
        model = self.db.query(UserModel).filter(UserModel.user_id == user_id).first()
        if not model:
            raise UserNotFoundError(user_id)
        return model

    def _get_model_by_email(self, email: str) -> Optional[UserModel]:
        return self.db.query(UserModel).filter(UserModel.email == email).first()

    def _touch_and_commit(self, model: UserModel) -> None:
        model.updated_at = datetime.now(pytz.utc).isoformat()
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ValidationError("Email already in use") from e
        self.db.refresh(model)
