"""Database models.

Importing this package registers every table with ``Base.metadata``.
"""

from .base import Base
from .user import UserModel
from .class_model import ClassModel
from .assignment import AssignmentModel
from .submission import SubmissionModel

__all__ = [
    "Base",
    "UserModel",
    "ClassModel",
    "AssignmentModel",
    "SubmissionModel",
]
