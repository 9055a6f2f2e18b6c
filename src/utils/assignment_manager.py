"""Assignment management utilities."""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

import pytz
from sqlalchemy.orm import Session

from config import DUE_SOON_DAYS
from core.exceptions import AssignmentNotFoundError, ClassNotFoundError, ValidationError
from models.assignment import AssignmentModel
from models.class_model import ClassModel
from utils.time_utils import days_until, parse_iso, to_utc_iso

logger = logging.getLogger(__name__)

SUBMISSION_FORMATS = ("file", "text", "both")


class AssignmentManager:
    """Manages assignments and their lifecycle."""

    def __init__(self, db: Session):
        self.db = db

    def create_assignment(
        self,
        title: str,
        description: str,
        deadline: datetime,
        max_marks: int,
        class_id: str,
        created_by: str,
        course: Optional[str] = None,
        instructions: Optional[str] = None,
        submission_format: str = "file",
        allow_late_submission: bool = False,
        is_published: bool = True,
    ) -> AssignmentModel:
        """Create an assignment for a class.

        Raises:
            ValidationError: If a required field is blank, max_marks is below
                one, or the submission format is unknown.
            ClassNotFoundError: If the class does not exist.
        """
        title = (title or "").strip()
        description = (description or "").strip()
        if not title or not description:
            raise ValidationError("Title and description are required")
        self._validate_marks_and_format(max_marks, submission_format)
        self._require_class(class_id)

        now = datetime.now(pytz.utc).isoformat()
        model = AssignmentModel(
            assignment_id=secrets.token_hex(8),
            title=title,
            description=description,
            instructions=instructions,
            course=course,
            deadline=to_utc_iso(deadline),
            max_marks=max_marks,
            class_id=class_id,
            created_by=created_by,
            submission_format=submission_format,
            allow_late_submission=allow_late_submission,
            is_published=is_published,
            created_at=now,
            updated_at=now,
        )
        self.db.add(model)
        self.db.commit()
        self.db.refresh(model)
        logger.info("Created assignment: %s in class %s", model.assignment_id, class_id)
        return model

    def get_assignment(self, assignment_id: str) -> AssignmentModel:
        model = (
            self.db.query(AssignmentModel)
            .filter(AssignmentModel.assignment_id == assignment_id)
            .first()
        )
        if not model:
            raise AssignmentNotFoundError(assignment_id)
        return model

    def get_assignments(self, assignment_ids: List[str]) -> List[AssignmentModel]:
        """Fetch several assignments, failing on the first unknown id."""
        models = (
            self.db.query(AssignmentModel)
            .filter(AssignmentModel.assignment_id.in_(assignment_ids))
            .all()
        )
        found = {m.assignment_id: m for m in models}
        for assignment_id in assignment_ids:
            if assignment_id not in found:
                raise AssignmentNotFoundError(assignment_id)
        return [found[assignment_id] for assignment_id in dict.fromkeys(assignment_ids)]

    def list_created_by(self, teacher_id: str) -> List[AssignmentModel]:
        return (
            self.db.query(AssignmentModel)
            .filter(AssignmentModel.created_by == teacher_id)
            .order_by(AssignmentModel.created_at.desc())
            .all()
        )

    def list_for_class(self, class_id: str, published_only: bool = True) -> List[AssignmentModel]:
        query = self.db.query(AssignmentModel).filter(AssignmentModel.class_id == class_id)
        if published_only:
            query = query.filter(AssignmentModel.is_published.is_(True))
        return query.order_by(AssignmentModel.deadline).all()

    def list_all(self) -> List[AssignmentModel]:
        return self.db.query(AssignmentModel).order_by(AssignmentModel.deadline).all()

    def list_due_soon(
        self,
        now: datetime,
        class_id: Optional[str] = None,
        created_by: Optional[str] = None,
        days: int = DUE_SOON_DAYS,
    ) -> List[Tuple[AssignmentModel, int]]:
        """Assignments whose deadline falls within ``[now, now + days]``.

        Returns:
            ``(assignment, days_until_due)`` pairs ordered by deadline.
        """
        window_end = now + timedelta(days=days)
        query = self.db.query(AssignmentModel)
        if class_id is not None:
            query = query.filter(
                AssignmentModel.class_id == class_id,
                AssignmentModel.is_published.is_(True),
            )
        if created_by is not None:
            query = query.filter(AssignmentModel.created_by == created_by)

        due = []
        for model in query.all():
            deadline = parse_iso(model.deadline)
            if now <= deadline <= window_end:
                due.append((deadline, model))
        due.sort(key=lambda pair: pair[0])
        return [(model, days_until(deadline, now)) for deadline, model in due]

    def update_assignment(self, assignment_id: str, updates: Dict[str, Any]) -> AssignmentModel:
        """Apply a partial update.

        Args:
            assignment_id: Assignment to update.
            updates: Field values to change; keys absent keep their value.
        """
        model = self.get_assignment(assignment_id)
        for key in ("title", "description"):
            if key in updates:
                value = (updates[key] or "").strip()
                if not value:
                    raise ValidationError(f"{key.capitalize()} cannot be empty")
                updates[key] = value
        self._validate_marks_and_format(
            updates.get("max_marks", model.max_marks),
            updates.get("submission_format", model.submission_format),
        )
        if updates.get("max_marks") is not None:
            awarded = [s.marks for s in model.submissions if s.marks is not None]
            if awarded and updates["max_marks"] < max(awarded):
                raise ValidationError(
                    f"Max marks cannot be lower than an awarded mark of {max(awarded):g}"
                )
        if "deadline" in updates:
            if updates["deadline"] is None:
                raise ValidationError("Deadline cannot be empty")
            updates["deadline"] = to_utc_iso(updates["deadline"])

        for key, value in updates.items():
            setattr(model, key, value)
        model.updated_at = datetime.now(pytz.utc).isoformat()
        self.db.commit()
        self.db.refresh(model)
        logger.info("Updated assignment: %s", assignment_id)
        return model

    def delete_assignment(self, assignment_id: str) -> List[str]:
        """Delete an assignment and its submissions.

        Returns:
            Stored filenames of the deleted submissions.
        """
        return self.delete_assignments([self.get_assignment(assignment_id)])

    def delete_assignments(self, assignments: List[AssignmentModel]) -> List[str]:
        files = [
            submission.file_url
            for assignment in assignments
            for submission in assignment.submissions
            if submission.file_url
        ]
        for assignment in assignments:
            self.db.delete(assignment)
        self.db.commit()
        logger.info("Deleted %d assignment(s)", len(assignments))
        return files

    def count_assignments(self) -> int:
        return self.db.query(AssignmentModel).count()

    def _require_class(self, class_id: str) -> ClassModel:
        class_model = self.db.query(ClassModel).filter(ClassModel.class_id == class_id).first()
        if not class_model:
            raise ClassNotFoundError(class_id)
        return class_model

    @staticmethod
    def _validate_marks_and_format(max_marks: Optional[int], submission_format: Optional[str]) -> None:
        if max_marks is None or max_marks < 1:
            raise ValidationError("max_marks must be at least 1")
        if submission_format not in SUBMISSION_FORMATS:
            raise ValidationError(
                f"Invalid submission format. Must be one of: {', '.join(SUBMISSION_FORMATS)}"
            )
