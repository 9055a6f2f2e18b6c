"""Dependency injection module for FastAPI.

This module provides dependency injection functions for FastAPI routes,
following Google Python Style Guide and FastAPI best practices.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from core.database import get_db
from utils import analytics_manager
from utils import assignment_manager
from utils import class_manager
from utils import email_service
from utils import file_storage
from utils import submission_manager
from utils import user_manager

# Singletons; neither holds request state
_file_storage_instance: file_storage.FileStorage = None
_email_service_instance: email_service.EmailService = None


def get_user_manager(db: Session = Depends(get_db)) -> user_manager.UserManager:
    """Get UserManager instance with request-scoped DB session.

    Args:
        db: Database session.

    Returns:
        UserManager instance.
    """
    return user_manager.UserManager(db)


def get_class_manager(db: Session = Depends(get_db)) -> class_manager.ClassManager:
    """Get ClassManager instance with request-scoped DB session."""
    return class_manager.ClassManager(db)


def get_assignment_manager(
    db: Session = Depends(get_db),
) -> assignment_manager.AssignmentManager:
    """Get AssignmentManager instance with request-scoped DB session."""
    return assignment_manager.AssignmentManager(db)


def get_submission_manager(
    db: Session = Depends(get_db),
) -> submission_manager.SubmissionManager:
    """Get SubmissionManager instance with request-scoped DB session."""
    return submission_manager.SubmissionManager(db)


def get_analytics_manager(
    db: Session = Depends(get_db),
) -> analytics_manager.AnalyticsManager:
    return analytics_manager.AnalyticsManager(db)


def get_file_storage() -> file_storage.FileStorage:
    """Get FileStorage singleton instance.

    Returns:
        FileStorage rooted at UPLOAD_DIR.
    """
    global _file_storage_instance
    if _file_storage_instance is None:
        _file_storage_instance = file_storage.FileStorage()
    return _file_storage_instance


def get_email_service() -> email_service.EmailService:
    """Get EmailService singleton instance configured from SMTP settings."""
    global _email_service_instance
    if _email_service_instance is None:
        _email_service_instance = email_service.EmailService()
    return _email_service_instance


# Type aliases for dependency injection
DbSessionDep = Annotated[Session, Depends(get_db)]
UserManagerDep = Annotated[
    user_manager.UserManager, Depends(get_user_manager)
]
ClassManagerDep = Annotated[
    class_manager.ClassManager, Depends(get_class_manager)
]
AssignmentManagerDep = Annotated[
    assignment_manager.AssignmentManager, Depends(get_assignment_manager)
]
SubmissionManagerDep = Annotated[
    submission_manager.SubmissionManager, Depends(get_submission_manager)
]
AnalyticsManagerDep = Annotated[
    analytics_manager.AnalyticsManager, Depends(get_analytics_manager)
]
FileStorageDep = Annotated[
    file_storage.FileStorage, Depends(get_file_storage)
]
EmailServiceDep = Annotated[
    email_service.EmailService, Depends(get_email_service)
]
