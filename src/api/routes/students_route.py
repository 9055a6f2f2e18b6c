"""Student-facing grade views and the unassigned-student listing."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.routes.auth import get_current_user, require_role
from core.dependencies import SubmissionManagerDep, UserManagerDep
from schemas.submission import StudentGradeDetailResponse, StudentGradeListResponse
from schemas.user import User, UserListResponse
from utils.converters import submission_to_student_grade

router = APIRouter(prefix="/api/students", tags=["Students"])


@router.get("/unassigned", response_model=UserListResponse, summary="Students without a class")
def list_unassigned_students(
    user_manager: UserManagerDep,
    current_user: User = Depends(get_current_user),
) -> UserListResponse:
    require_role(current_user, "admin", "teacher")
    students = user_manager.list_unassigned_students()
    return UserListResponse(users=[s.public_dict() for s in students])


@router.get("/grades", response_model=StudentGradeListResponse, summary="My grades")
def list_my_grades(
    submission_manager: SubmissionManagerDep,
    class_id: Optional[str] = Query(default=None),
    assignment_id: Optional[str] = Query(default=None),
    current_user: User = Depends(get_current_user),
) -> StudentGradeListResponse:
    """Graded submissions of the signed-in student, most recently graded first."""
    require_role(current_user, "student")
    submissions = submission_manager.list_graded_for_student(
        current_user.user_id, class_id=class_id, assignment_id=assignment_id
    )
    grades = [submission_to_student_grade(s) for s in submissions]
    return StudentGradeListResponse(grades=grades, total=len(grades))


@router.get(
    "/grades/{assignment_id}",
    response_model=StudentGradeDetailResponse,
    summary="My grade for one assignment",
)
def get_my_grade(
    assignment_id: str,
    submission_manager: SubmissionManagerDep,
    current_user: User = Depends(get_current_user),
) -> StudentGradeDetailResponse:
    require_role(current_user, "student")
    submission = submission_manager.get_student_submission(assignment_id, current_user.user_id)
    if submission is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No submission found for this assignment",
        )
    is_graded = submission.status == "graded"
    return StudentGradeDetailResponse(
        grade=submission_to_student_grade(submission, include_grade=is_graded),
        is_graded=is_graded,
    )
