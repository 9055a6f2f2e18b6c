"""Submission management utilities.

Covers the submit rules (one submission per student and assignment,
deadline and late policy, submission format), grading, and persisted
plagiarism checks.
"""

import logging
import math
import secrets
from datetime import datetime
from typing import List, Optional, Tuple

import pytz
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.exceptions import SubmissionNotFoundError, ValidationError
from models.assignment import AssignmentModel
from models.submission import SubmissionModel
from utils import plagiarism
from utils.file_storage import FileStorage
from utils.time_utils import parse_iso

logger = logging.getLogger(__name__)


class DuplicateSubmissionError(Exception):
    """Exception raised when a student submits the same assignment twice."""

    pass


class SubmissionManager:
    """Manages submissions, grades and plagiarism checks."""

    def __init__(self, db: Session):
        self.db = db

    def check_can_submit(
        self,
        assignment: AssignmentModel,
        student_id: str,
        has_file: bool,
        has_text: bool,
        now: datetime,
    ) -> str:
        """Validate a submission attempt before any file is stored.

        Returns:
            The status the submission will get: 'submitted' or 'late'.

        Raises:
            DuplicateSubmissionError: If the student already submitted.
            ValidationError: If the deadline passed and late work is not
                allowed, or the content does not match the format.
        """
        if self.get_student_submission(assignment.assignment_id, student_id):
            raise DuplicateSubmissionError("You have already submitted this assignment")

        status = "submitted"
        if now > parse_iso(assignment.deadline):
            if not assignment.allow_late_submission:
                raise ValidationError("Submission deadline has passed")
            status = "late"

        submission_format = assignment.submission_format or "file"
        if submission_format == "file" and not has_file:
            raise ValidationError("A file is required for this assignment")
        if submission_format == "text" and not has_text:
            raise ValidationError("Text content is required for this assignment")
        if submission_format == "both" and not (has_file or has_text):
            raise ValidationError("A file or text content is required")
        return status

    def create_submission(
        self,
        assignment: AssignmentModel,
        student_id: str,
        status: str,
        submitted_at: datetime,
        file_url: Optional[str] = None,
        file_name: Optional[str] = None,
        text_content: Optional[str] = None,
    ) -> SubmissionModel:
        """Persist a submission that passed ``check_can_submit``.

        Raises:
            DuplicateSubmissionError: If a concurrent request stored one first.
        """
        now = datetime.now(pytz.utc).isoformat()
        model = SubmissionModel(
            submission_id=secrets.token_hex(8),
            assignment_id=assignment.assignment_id,
            student_id=student_id,
            file_url=file_url,
            file_name=file_name,
            text_content=text_content,
            status=status,
            submitted_at=submitted_at.isoformat(),
            created_at=now,
            updated_at=now,
        )
        try:
            self.db.add(model)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateSubmissionError("You have already submitted this assignment") from e
        self.db.refresh(model)
        logger.info(
            "Student %s submitted assignment %s (%s)",
            student_id,
            assignment.assignment_id,
            status,
        )
        return model

    def get_submission(self, submission_id: str) -> SubmissionModel:
        model = (
            self.db.query(SubmissionModel)
            .filter(SubmissionModel.submission_id == submission_id)
            .first()
        )
        if not model:
            raise SubmissionNotFoundError(submission_id)
        return model

    def get_student_submission(
        self, assignment_id: str, student_id: str
    ) -> Optional[SubmissionModel]:
        return (
            self.db.query(SubmissionModel)
            .filter(
                SubmissionModel.assignment_id == assignment_id,
                SubmissionModel.student_id == student_id,
            )
            .first()
        )

    def find_by_stored_file(self, filename: str) -> Optional[SubmissionModel]:
        return (
            self.db.query(SubmissionModel)
            .filter(SubmissionModel.file_url == filename)
            .first()
        )

    def list_for_assignment(self, assignment_id: str) -> List[SubmissionModel]:
        return (
            self.db.query(SubmissionModel)
            .filter(SubmissionModel.assignment_id == assignment_id)
            .order_by(SubmissionModel.submitted_at.desc())
            .all()
        )

    def list_graded_for_student(
        self,
        student_id: str,
        class_id: Optional[str] = None,
        assignment_id: Optional[str] = None,
    ) -> List[SubmissionModel]:
        """Graded submissions of one student, most recently graded first."""
        query = self.db.query(SubmissionModel).filter(
            SubmissionModel.student_id == student_id,
            SubmissionModel.status == "graded",
        )
        if assignment_id:
            query = query.filter(SubmissionModel.assignment_id == assignment_id)
        if class_id:
            query = query.join(SubmissionModel.assignment).filter(
                AssignmentModel.class_id == class_id
            )
        return query.order_by(SubmissionModel.graded_at.desc()).all()

    def grade_submission(
        self,
        submission_id: str,
        marks: Optional[float],
        feedback: Optional[str],
        grader_id: str,
    ) -> SubmissionModel:
        """Record marks and feedback.

        Raises:
            SubmissionNotFoundError: If the submission does not exist.
            ValidationError: If marks are missing or outside
                ``[0, max_marks]``.
        """
        model = self.get_submission(submission_id)
        if marks is None:
            raise ValidationError("Marks are required")
        if not math.isfinite(marks):
            raise ValidationError("Marks must be a number")
        max_marks = model.assignment.max_marks
        if marks < 0 or marks > max_marks:
            raise ValidationError(f"Marks must be between 0 and {max_marks}")

        now = datetime.now(pytz.utc).isoformat()
        model.marks = marks
        model.feedback = feedback
        model.status = "graded"
        model.graded_at = now
        model.graded_by = grader_id
        model.updated_at = now
        self.db.commit()
        self.db.refresh(model)
        logger.info("Graded submission %s: %s/%s", submission_id, marks, max_marks)
        return model

    def run_plagiarism_check(
        self, submission: SubmissionModel, storage: FileStorage, checked_by: str
    ) -> Tuple[plagiarism.PlagiarismResult, str]:
        """Compare a submission with the others for its assignment and save the result.

        Returns:
            The check result and its text report.
        """
        others = (
            self.db.query(SubmissionModel)
            .filter(
                SubmissionModel.assignment_id == submission.assignment_id,
                SubmissionModel.submission_id != submission.submission_id,
            )
            .all()
        )
        comparisons = [
            plagiarism.ComparisonText(
                submission_id=other.submission_id,
                student_name=other.student.name if other.student else None,
                text=self._submission_text(other, storage),
            )
            for other in others
        ]
        result = plagiarism.check_plagiarism(
            self._submission_text(submission, storage), comparisons
        )
        report = plagiarism.generate_report(result)

        submission.plagiarism_check = {
            "similarity": result.similarity,
            "matches": [m.model_dump() for m in result.matches],
            "report": report,
            "checked_at": datetime.now(pytz.utc).isoformat(),
            "checked_by": checked_by,
        }
        self.db.commit()
        logger.info(
            "Plagiarism check on %s: similarity %.2f against %d submission(s)",
            submission.submission_id,
            result.similarity,
            len(comparisons),
        )
        return result, report

    def count_submissions(self) -> int:
        return self.db.query(SubmissionModel).count()

    @staticmethod
    def _submission_text(submission: SubmissionModel, storage: FileStorage) -> str:
        parts = [submission.text_content or ""]
        if submission.file_url:
            parts.append(storage.extract_text(submission.file_url))
        return "\n".join(p for p in parts if p)
