"""Class management utilities."""

import logging
import secrets
from datetime import datetime
from typing import List, Optional

import pytz
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.exceptions import ClassNotFoundError, UserNotFoundError, ValidationError
from models.class_model import ClassModel
from models.user import UserModel
from schemas.class_schema import BulkStudentResult

logger = logging.getLogger(__name__)


class ClassCodeExistsError(Exception):
    """Exception raised when a class code is already taken."""

    pass


class StudentAlreadyAssignedError(Exception):
    """Exception raised when a student is already enrolled in a class."""

    pass


def normalize_code(code: str) -> str:
    return code.strip().upper()


class ClassManager:
    """Manages classes and their student rosters."""

    def __init__(self, db: Session):
        self.db = db

    def create_class(
        self,
        name: str,
        code: str,
        teacher_id: str,
        description: Optional[str] = None,
    ) -> ClassModel:
        """Create a new class owned by ``teacher_id``.

        Raises:
            ValidationError: If name or code is blank.
            ClassCodeExistsError: If the code is already in use.
        """
        name, code = self._validate_name_and_code(name, code)
        if self._code_taken(code):
            raise ClassCodeExistsError("Class code already exists")

        now = datetime.now(pytz.utc).isoformat()
        class_model = ClassModel(
            class_id=secrets.token_hex(8),
            name=name,
            code=code,
            description=(description or "").strip() or None,
            teacher_id=teacher_id,
            created_at=now,
            updated_at=now,
        )
        self.db.add(class_model)
        self._commit_code_change()
        self.db.refresh(class_model)
        logger.info("Created class: %s (%s)", class_model.class_id, code)
        return class_model

    def get_class(self, class_id: str) -> ClassModel:
        model = (
            self.db.query(ClassModel)
            .filter(ClassModel.class_id == class_id)
            .first()
        )
        if not model:
            raise ClassNotFoundError(class_id)
        return model

    def list_all_classes(self) -> List[ClassModel]:
        return self.db.query(ClassModel).order_by(ClassModel.created_at.desc()).all()

    def list_classes_for_teacher(self, teacher_id: str) -> List[ClassModel]:
        return (
            self.db.query(ClassModel)
            .filter(ClassModel.teacher_id == teacher_id)
            .order_by(ClassModel.created_at.desc())
            .all()
        )

    def list_public_classes(self) -> List[ClassModel]:
        return self.db.query(ClassModel).order_by(ClassModel.name).all()

    def update_class(
        self,
        class_id: str,
        name: str,
        code: str,
        description: Optional[str] = None,
    ) -> ClassModel:
        class_model = self.get_class(class_id)
        name, code = self._validate_name_and_code(name, code)
        if code != class_model.code and self._code_taken(code):
            raise ClassCodeExistsError("Class code already exists")

        class_model.name = name
        class_model.code = code
        class_model.description = (description or "").strip() or None
        class_model.updated_at = datetime.now(pytz.utc).isoformat()
        self._commit_code_change()
        self.db.refresh(class_model)
        logger.info("Updated class: %s", class_id)
        return class_model

    def delete_class(self, class_id: str) -> List[str]:
        """Delete a class, its assignments and their submissions.

        Enrolled students are left unassigned.

        Returns:
            Stored filenames of the deleted submissions.

        Raises:
            ClassNotFoundError: If class not found.
        """
        class_model = self.get_class(class_id)
        files = [
            submission.file_url
            for assignment in class_model.assignments
            for submission in assignment.submissions
            if submission.file_url
        ]
        self.db.query(UserModel).filter(UserModel.class_id == class_id).update(
            {UserModel.class_id: None}, synchronize_session=False
        )
        # Assignments and submissions go with the ORM cascade
        self.db.delete(class_model)
        self.db.commit()
        logger.info("Deleted class: %s", class_id)
        return files

    def add_student(self, class_id: str, student_id: str) -> UserModel:
        """Enroll an unassigned student.

        Raises:
            ClassNotFoundError: If the class does not exist.
            UserNotFoundError: If no student has that id.
            StudentAlreadyAssignedError: If the student is in a class already.
        """
        self.get_class(class_id)
        student = self._get_student(student_id)
        if student.class_id:
            raise StudentAlreadyAssignedError("Student is already assigned to a class")
        student.class_id = class_id
        student.updated_at = datetime.now(pytz.utc).isoformat()
        self.db.commit()
        logger.info("Added student %s to class %s", student_id, class_id)
        return student

    def remove_student(self, class_id: str, student_id: str) -> None:
        self.get_class(class_id)
        student = self._get_student(student_id)
        if student.class_id != class_id:
            raise ValidationError("Student is not enrolled in this class")
        student.class_id = None
        student.updated_at = datetime.now(pytz.utc).isoformat()
        self.db.commit()
        logger.info("Removed student %s from class %s", student_id, class_id)

    def bulk_move_or_remove(
        self,
        action: str,
        student_ids: List[str],
        target_class_id: Optional[str] = None,
        acting_teacher_id: Optional[str] = None,
    ) -> List[BulkStudentResult]:
        """Move students into a class or unassign them, one result per id.

        Args:
            action: 'move' or 'remove'.
            student_ids: Students to act on.
            target_class_id: Destination class for 'move'.
            acting_teacher_id: When set, only unassigned students and
                students in classes this teacher owns may be touched.

        Raises:
            ValidationError: On an unknown action or a move without target.
            ClassNotFoundError: If the target class does not exist.
        """
        if action not in ("move", "remove"):
            raise ValidationError("Invalid action. Must be 'move' or 'remove'")
        if action == "move":
            if not target_class_id:
                raise ValidationError("target_class_id is required for move")
            self.get_class(target_class_id)

        owned_ids = None
        if acting_teacher_id:
            owned_ids = {
                c.class_id for c in self.list_classes_for_teacher(acting_teacher_id)
            }

        now = datetime.now(pytz.utc).isoformat()
        results = []
        for student_id in student_ids:
            student = (
                self.db.query(UserModel)
                .filter(UserModel.user_id == student_id, UserModel.role == "student")
                .first()
            )
            if student is None:
                results.append(
                    BulkStudentResult(student_id=student_id, status="error", error="Student not found")
                )
                continue
            if owned_ids is not None and student.class_id and student.class_id not in owned_ids:
                results.append(
                    BulkStudentResult(
                        student_id=student_id,
                        status="error",
                        error="Student belongs to a class you do not own",
                    )
                )
                continue
            student.class_id = target_class_id if action == "move" else None
            student.updated_at = now
            results.append(BulkStudentResult(student_id=student_id, status="success"))

        self.db.commit()
        logger.info(
            "Bulk %s on %d student(s): %d succeeded",
            action,
            len(student_ids),
            sum(1 for r in results if r.status == "success"),
        )
        return results

    def count_classes(self) -> int:
        return self.db.query(ClassModel).count()

    def _get_student(self, student_id: str) -> UserModel:
        student = (
            self.db.query(UserModel)
            .filter(UserModel.user_id == student_id, UserModel.role == "student")
            .first()
        )
        if not student:
            raise UserNotFoundError(student_id)
        return student

    def _validate_name_and_code(self, name: str, code: str):
        name = (name or "").strip()
        code = normalize_code(code or "")
        if not name or not code:
            raise ValidationError("Class name and code are required")
        return name, code

    def _code_taken(self, code: str) -> bool:
        return self.db.query(ClassModel).filter(ClassModel.code == code).first() is not None

    def _commit_code_change(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ClassCodeExistsError("Class code already exists") from e
