"""Conversions between SQLAlchemy models and pydantic schemas."""

from typing import Optional

from models.assignment import AssignmentModel
from models.class_model import ClassModel
from models.submission import SubmissionModel
from models.user import UserModel
from schemas.assignment import AssignmentInfo
from schemas.class_schema import ClassInfo, PublicClassInfo
from schemas.submission import StudentGrade, SubmissionInfo
from schemas.user import NotificationSettings, Preferences, User, UserSummary


def user_to_model(user: User) -> UserModel:
    return UserModel(
        user_id=user.user_id,
        name=user.name,
        email=user.email,
        password_hash=user.password_hash,
        role=user.role,
        class_id=user.class_id,
        notification_settings=user.notification_settings.model_dump(),
        preferences=user.preferences.model_dump(),
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def model_to_user(model: UserModel) -> User:
    return User(
        user_id=model.user_id,
        name=model.name,
        email=model.email,
        password_hash=model.password_hash,
        role=model.role,
        class_id=model.class_id,
        notification_settings=NotificationSettings(**(model.notification_settings or {})),
        preferences=Preferences(**(model.preferences or {})),
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def model_to_summary(model: Optional[UserModel]) -> Optional[UserSummary]:
    if model is None:
        return None
    return UserSummary(user_id=model.user_id, name=model.name, email=model.email)


def class_to_info(model: ClassModel) -> ClassInfo:
    students = [model_to_summary(s) for s in model.students]
    return ClassInfo(
        class_id=model.class_id,
        name=model.name,
        code=model.code,
        description=model.description,
        teacher=model_to_summary(model.teacher),
        students=students,
        student_count=len(students),
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def class_to_public_info(model: ClassModel) -> PublicClassInfo:
    return PublicClassInfo(
        class_id=model.class_id,
        name=model.name,
        code=model.code,
        description=model.description,
        teacher_name=model.teacher.name if model.teacher else None,
    )


def assignment_to_info(
    model: AssignmentModel, days_until_due: Optional[int] = None
) -> AssignmentInfo:
    return AssignmentInfo(
        assignment_id=model.assignment_id,
        title=model.title,
        description=model.description,
        instructions=model.instructions,
        course=model.course,
        deadline=model.deadline,
        max_marks=model.max_marks,
        class_id=model.class_id,
        class_name=model.class_.name if model.class_ else None,
        class_code=model.class_.code if model.class_ else None,
        created_by=model.created_by,
        creator_name=model.creator.name if model.creator else None,
        submission_format=model.submission_format,
        allow_late_submission=bool(model.allow_late_submission),
        is_published=bool(model.is_published),
        created_at=model.created_at,
        updated_at=model.updated_at,
        days_until_due=days_until_due,
    )


def submission_to_info(model: SubmissionModel) -> SubmissionInfo:
    assignment = model.assignment
    student = model.student
    grader = model.grader
    return SubmissionInfo(
        submission_id=model.submission_id,
        assignment_id=model.assignment_id,
        assignment_title=assignment.title if assignment else None,
        max_marks=assignment.max_marks if assignment else None,
        student_id=model.student_id,
        student_name=student.name if student else None,
        student_email=student.email if student else None,
        file_url=model.file_url,
        file_name=model.file_name,
        text_content=model.text_content,
        status=model.status,
        marks=model.marks,
        feedback=model.feedback,
        submitted_at=model.submitted_at,
        graded_at=model.graded_at,
        graded_by=model.graded_by,
        grader_name=grader.name if grader else None,
        plagiarism_check=model.plagiarism_check,
    )


def submission_to_student_grade(model: SubmissionModel, include_grade: bool = True) -> StudentGrade:
    """Build the student-facing grade view; grade fields only when requested."""
    assignment = model.assignment
    class_ = assignment.class_ if assignment else None
    grade = StudentGrade(
        submission_id=model.submission_id,
        assignment_id=model.assignment_id,
        assignment_title=assignment.title if assignment else "Unknown Assignment",
        assignment_description=assignment.description if assignment else "",
        assignment_max_marks=assignment.max_marks if assignment else 0,
        course=(assignment.course or "") if assignment else "",
        class_name=class_.name if class_ else "",
        deadline=assignment.deadline if assignment else None,
        file_name=model.file_name,
        status=model.status,
        submitted_at=model.submitted_at,
    )
    if include_grade:
        grade.marks = model.marks
        grade.feedback = model.feedback or ""
        grade.graded_at = model.graded_at
        grade.graded_by_name = model.grader.name if model.grader else "Unknown Teacher"
        grade.graded_by_email = model.grader.email if model.grader else ""
    return grade
