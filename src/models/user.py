"""User database model.

This module defines the User database model using SQLAlchemy.
"""

from sqlalchemy import JSON, Column, String
from .base import Base


class UserModel(Base):
    """User database model."""

    __tablename__ = "users"

    user_id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False)  # 'admin', 'teacher', or 'student'
    class_id = Column(String, index=True, nullable=True)  # students only
    notification_settings = Column(JSON, nullable=True)
    preferences = Column(JSON, nullable=True)
    created_at = Column(String, nullable=False)  # ISO format string
    updated_at = Column(String, nullable=False)
