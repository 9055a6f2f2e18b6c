"""Submission viewing, grading and plagiarism routes."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from api.routes.auth import get_current_user, require_role
from core.dependencies import EmailServiceDep, FileStorageDep, SubmissionManagerDep
from core.exceptions import SubmissionNotFoundError, ValidationError
from models.submission import SubmissionModel
from schemas.submission import GradeRequest, PlagiarismResponse, SubmissionResponse
from schemas.user import User
from utils.converters import submission_to_info
from utils.email_service import assignment_email_context
from utils.plagiarism import risk_level
from utils.reminders import wants_grade_notifications
from utils.submission_manager import SubmissionManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/submissions", tags=["Submission"])


def _get_submission_or_404(manager: SubmissionManager, submission_id: str) -> SubmissionModel:
    try:
        return manager.get_submission(submission_id)
    except SubmissionNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Submission not found",
        )


def _check_grader(submission: SubmissionModel, user: User) -> None:
    """Only admins and the teacher who created the assignment may grade or check."""
    require_role(user, "admin", "teacher")
    if user.role == "teacher" and submission.assignment.created_by != user.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only manage submissions for your own assignments",
        )


@router.get("/{submission_id}", response_model=SubmissionResponse, summary="Get submission")
def get_submission(
    submission_id: str,
    submission_manager: SubmissionManagerDep,
    current_user: User = Depends(get_current_user),
) -> SubmissionResponse:
    submission = _get_submission_or_404(submission_manager, submission_id)
    if current_user.role == "student":
        if submission.student_id != current_user.user_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only view your own submissions",
            )
    else:
        _check_grader(submission, current_user)
    return SubmissionResponse(submission=submission_to_info(submission))


@router.put("/{submission_id}/grade", response_model=SubmissionResponse, summary="Grade submission")
def grade_submission(
    submission_id: str,
    req: GradeRequest,
    background_tasks: BackgroundTasks,
    submission_manager: SubmissionManagerDep,
    email_service: EmailServiceDep,
    current_user: User = Depends(get_current_user),
) -> SubmissionResponse:
    """Record marks and feedback, then email the student if they opted in.

    The email is sent after the response so a slow SMTP server never
    delays grading.
    """
    submission = _get_submission_or_404(submission_manager, submission_id)
    _check_grader(submission, current_user)
    try:
        submission = submission_manager.grade_submission(
            submission_id, marks=req.marks, feedback=req.feedback, grader_id=current_user.user_id
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        )

    student = submission.student
    if student is not None and wants_grade_notifications(student):
        background_tasks.add_task(
            email_service.send_grade_notification,
            student.email,
            student.name,
            assignment_email_context(submission.assignment),
            submission.marks,
            submission.feedback,
        )

    return SubmissionResponse(
        message="Submission graded successfully",
        submission=submission_to_info(submission),
    )


@router.post(
    "/{submission_id}/plagiarism",
    response_model=PlagiarismResponse,
    summary="Check submission for plagiarism",
)
def check_plagiarism(
    submission_id: str,
    submission_manager: SubmissionManagerDep,
    storage: FileStorageDep,
    current_user: User = Depends(get_current_user),
) -> PlagiarismResponse:
    submission = _get_submission_or_404(submission_manager, submission_id)
    _check_grader(submission, current_user)
    result, report = submission_manager.run_plagiarism_check(
        submission, storage, checked_by=current_user.user_id
    )
    return PlagiarismResponse(
        similarity=result.similarity,
        matches=result.matches,
        report=report,
        risk_level=risk_level(result.similarity),
    )
