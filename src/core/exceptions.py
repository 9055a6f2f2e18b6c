"""Custom exception classes for the Coursework Manager.

This module defines application-specific exceptions following Google Python
Style Guide.
"""


class CourseworkError(Exception):
    """Base exception for all Coursework Manager errors."""

    pass


class UserNotFoundError(CourseworkError):
    """Raised when a requested user cannot be found."""

    def __init__(self, user_id: str):
        """Initialize the exception.

        Args:
            user_id: The ID of the user that was not found.
        """
        self.user_id = user_id
        super().__init__(f"User '{user_id}' not found")


class ClassNotFoundError(CourseworkError):
    """Raised when a requested class cannot be found."""

    def __init__(self, class_id: str):
        """Initialize the exception.

        Args:
            class_id: The ID of the class that was not found.
        """
        self.class_id = class_id
        super().__init__(f"Class '{class_id}' not found")


class AssignmentNotFoundError(CourseworkError):
    """Raised when a requested assignment cannot be found."""

    def __init__(self, assignment_id: str):
        self.assignment_id = assignment_id
        super().__init__(f"Assignment '{assignment_id}' not found")


class SubmissionNotFoundError(CourseworkError):
    """Raised when a requested submission cannot be found."""

    def __init__(self, submission_id: str):
        self.submission_id = submission_id
        super().__init__(f"Submission '{submission_id}' not found")


class StoredFileNotFoundError(CourseworkError):
    """Raised when a file is missing from the uploads directory."""

    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(f"File '{filename}' not found")


class ValidationError(CourseworkError):
    """Raised when data validation fails."""

    pass
