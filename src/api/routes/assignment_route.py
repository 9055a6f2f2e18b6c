"""Assignment routes, including submitting work and bulk operations."""

import logging
from typing import Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Response,
    UploadFile,
    status,
)

from api.routes.auth import get_current_user, require_role
from core.dependencies import (
    AssignmentManagerDep,
    ClassManagerDep,
    DbSessionDep,
    EmailServiceDep,
    FileStorageDep,
    SubmissionManagerDep,
)
from core.exceptions import AssignmentNotFoundError, ClassNotFoundError, ValidationError
from models.assignment import AssignmentModel
from schemas.assignment import (
    AssignmentInfo,
    AssignmentListResponse,
    BulkAssignmentOperationRequest,
    CreateAssignmentRequest,
    UpdateAssignmentRequest,
)
from schemas.submission import AssignmentSubmissionsResponse, SubmissionResponse
from schemas.user import User
from utils.archive import ArchiveEntry, build_zip, sanitize_name, submission_entry_name
from utils.assignment_manager import AssignmentManager
from utils.converters import assignment_to_info, submission_to_info
from utils.file_storage import FileTooLargeError, InvalidFileError, UnsupportedFileTypeError
from utils.reminders import send_due_reminders
from utils.submission_manager import DuplicateSubmissionError
from utils.time_utils import now_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/assignments", tags=["Assignment"])

BULK_ACTIONS = ("download", "email", "delete")


def _get_assignment_or_404(manager: AssignmentManager, assignment_id: str) -> AssignmentModel:
    try:
        return manager.get_assignment(assignment_id)
    except AssignmentNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Assignment not found",
        )


def _check_manages(assignment: AssignmentModel, user: User) -> None:
    """Admins manage every assignment; teachers only the ones they created."""
    require_role(user, "admin", "teacher")
    if user.role == "teacher" and assignment.created_by != user.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only manage assignments you created",
        )


def _check_student_access(assignment: AssignmentModel, user: User) -> None:
    if assignment.class_id != user.class_id or not assignment.is_published:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This assignment is not available to you",
        )


def _zip_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("", response_model=AssignmentListResponse, summary="List assignments")
def list_assignments(
    assignment_manager: AssignmentManagerDep,
    current_user: User = Depends(get_current_user),
) -> AssignmentListResponse:
    if current_user.role == "teacher":
        models = assignment_manager.list_created_by(current_user.user_id)
    elif current_user.role == "admin":
        models = assignment_manager.list_all()
    elif current_user.class_id:
        models = assignment_manager.list_for_class(current_user.class_id)
    else:
        models = []
    return AssignmentListResponse(assignments=[assignment_to_info(m) for m in models])


@router.post(
    "",
    response_model=AssignmentInfo,
    status_code=status.HTTP_201_CREATED,
    summary="Create assignment",
)
def create_assignment(
    req: CreateAssignmentRequest,
    assignment_manager: AssignmentManagerDep,
    class_manager: ClassManagerDep,
    current_user: User = Depends(get_current_user),
) -> AssignmentInfo:
    require_role(current_user, "admin", "teacher")
    try:
        class_model = class_manager.get_class(req.class_id)
    except ClassNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Class not found",
        )
    if current_user.role == "teacher" and class_model.teacher_id != current_user.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only create assignments for your own classes",
        )

    try:
        model = assignment_manager.create_assignment(
            created_by=current_user.user_id,
            **req.model_dump(),
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        )
    return assignment_to_info(model)


@router.get("/due-soon", response_model=AssignmentListResponse, summary="Assignments due soon")
def list_due_soon(
    assignment_manager: AssignmentManagerDep,
    current_user: User = Depends(get_current_user),
) -> AssignmentListResponse:
    now = now_utc()
    if current_user.role == "student":
        if not current_user.class_id:
            return AssignmentListResponse(assignments=[])
        due = assignment_manager.list_due_soon(now, class_id=current_user.class_id)
    elif current_user.role == "teacher":
        due = assignment_manager.list_due_soon(now, created_by=current_user.user_id)
    else:
        due = assignment_manager.list_due_soon(now)
    return AssignmentListResponse(
        assignments=[assignment_to_info(m, days_until_due=days) for m, days in due]
    )


@router.post("/bulk-operations", summary="Bulk download, remind or delete")
def bulk_assignment_operation(
    req: BulkAssignmentOperationRequest,
    db: DbSessionDep,
    assignment_manager: AssignmentManagerDep,
    storage: FileStorageDep,
    email_service: EmailServiceDep,
    current_user: User = Depends(get_current_user),
):
    """Run one action over several assignments.

    - download: zip of all submission files, one folder per assignment
    - email: due-date reminders to students who have not submitted
    - delete: remove the assignments with their submissions
    """
    require_role(current_user, "admin", "teacher")
    if req.action not in BULK_ACTIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid action. Must be one of: {', '.join(BULK_ACTIONS)}",
        )
    if not req.assignment_ids:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="assignment_ids cannot be empty",
        )
    try:
        assignments = assignment_manager.get_assignments(req.assignment_ids)
    except AssignmentNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        )
    if current_user.role == "teacher" and any(
        a.created_by != current_user.user_id for a in assignments
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Some assignments do not belong to you",
        )

    if req.action == "download":
        entries = [
            ArchiveEntry(
                stored_filename=s.file_url,
                archive_name=submission_entry_name(
                    s.student.name if s.student else s.student_id, s.file_name, folder=a.title
                ),
            )
            for a in assignments
            for s in a.submissions
            if s.file_url
        ]
        if not entries:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No submissions found",
            )
        return _zip_response(build_zip(storage, entries), "bulk-submissions.zip")

    if req.action == "email":
        stats = send_due_reminders(db, email_service, assignments, now_utc())
        return {
            "message": "Bulk email operation completed",
            "emails_sent": stats.sent,
            "emails_failed": stats.failed,
        }

    files = assignment_manager.delete_assignments(assignments)
    storage.delete_many(files)
    return {
        "message": f"Successfully deleted {len(assignments)} assignment(s) and their submissions"
    }


@router.get("/{assignment_id}", response_model=AssignmentInfo, summary="Get assignment")
def get_assignment(
    assignment_id: str,
    assignment_manager: AssignmentManagerDep,
    current_user: User = Depends(get_current_user),
) -> AssignmentInfo:
    assignment = _get_assignment_or_404(assignment_manager, assignment_id)
    if current_user.role == "student":
        _check_student_access(assignment, current_user)
    return assignment_to_info(assignment)


@router.put("/{assignment_id}", response_model=AssignmentInfo, summary="Update assignment")
def update_assignment(
    assignment_id: str,
    req: UpdateAssignmentRequest,
    assignment_manager: AssignmentManagerDep,
    current_user: User = Depends(get_current_user),
) -> AssignmentInfo:
    assignment = _get_assignment_or_404(assignment_manager, assignment_id)
    _check_manages(assignment, current_user)
    # Explicit nulls only clear the optional text fields
    updates = {
        key: value
        for key, value in req.model_dump(exclude_unset=True).items()
        if value is not None or key in ("course", "instructions")
    }
    try:
        model = assignment_manager.update_assignment(assignment_id, updates)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        )
    return assignment_to_info(model)


@router.delete("/{assignment_id}", summary="Delete assignment")
def delete_assignment(
    assignment_id: str,
    assignment_manager: AssignmentManagerDep,
    storage: FileStorageDep,
    current_user: User = Depends(get_current_user),
) -> dict:
    assignment = _get_assignment_or_404(assignment_manager, assignment_id)
    _check_manages(assignment, current_user)
    files = assignment_manager.delete_assignment(assignment_id)
    storage.delete_many(files)
    return {"message": "Assignment deleted successfully"}


@router.get(
    "/{assignment_id}/submissions",
    response_model=AssignmentSubmissionsResponse,
    summary="Submissions for an assignment",
)
def list_assignment_submissions(
    assignment_id: str,
    assignment_manager: AssignmentManagerDep,
    submission_manager: SubmissionManagerDep,
    current_user: User = Depends(get_current_user),
) -> AssignmentSubmissionsResponse:
    """Teachers and admins get every submission; students only their own."""
    assignment = _get_assignment_or_404(assignment_manager, assignment_id)
    if current_user.role == "student":
        _check_student_access(assignment, current_user)
        own = submission_manager.get_student_submission(assignment_id, current_user.user_id)
        return AssignmentSubmissionsResponse(
            submissions=[],
            user_submission=submission_to_info(own) if own else None,
        )

    _check_manages(assignment, current_user)
    submissions = submission_manager.list_for_assignment(assignment_id)
    return AssignmentSubmissionsResponse(
        submissions=[submission_to_info(s) for s in submissions]
    )


@router.post(
    "/{assignment_id}/submit",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit work",
)
async def submit_assignment(
    assignment_id: str,
    assignment_manager: AssignmentManagerDep,
    submission_manager: SubmissionManagerDep,
    storage: FileStorageDep,
    file: Optional[UploadFile] = File(default=None),
    text_content: Optional[str] = Form(default=None),
    current_user: User = Depends(get_current_user),
) -> SubmissionResponse:
    """Submit a file and/or text for an assignment.

    One submission per student. Work after the deadline is rejected
    unless the assignment allows late submissions, in which case it is
    marked late.
    """
    require_role(current_user, "student")
    assignment = _get_assignment_or_404(assignment_manager, assignment_id)
    _check_student_access(assignment, current_user)

    has_file = file is not None and bool(file.filename)
    text = (text_content or "").strip() or None
    submitted_at = now_utc()

    try:
        submission_status = submission_manager.check_can_submit(
            assignment,
            current_user.user_id,
            has_file=has_file,
            has_text=text is not None,
            now=submitted_at,
        )
    except (DuplicateSubmissionError, ValidationError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        )

    stored = None
    if has_file:
        content = await file.read()
        try:
            stored = storage.save(content, file.filename)
        except InvalidFileError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
        except FileTooLargeError as exc:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(exc)
            )
        except UnsupportedFileTypeError as exc:
            raise HTTPException(
                status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail=str(exc)
            )

    try:
        submission = submission_manager.create_submission(
            assignment,
            current_user.user_id,
            status=submission_status,
            submitted_at=submitted_at,
            file_url=stored.filename if stored else None,
            file_name=stored.original_name if stored else None,
            text_content=text,
        )
    except DuplicateSubmissionError as exc:
        if stored:
            storage.delete_many([stored.filename])
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        )

    message = (
        "Assignment submitted successfully"
        if submission_status == "submitted"
        else "Assignment submitted late"
    )
    return SubmissionResponse(message=message, submission=submission_to_info(submission))


@router.get("/{assignment_id}/bulk-download", summary="Download all submission files")
def bulk_download(
    assignment_id: str,
    assignment_manager: AssignmentManagerDep,
    submission_manager: SubmissionManagerDep,
    storage: FileStorageDep,
    current_user: User = Depends(get_current_user),
) -> Response:
    assignment = _get_assignment_or_404(assignment_manager, assignment_id)
    _check_manages(assignment, current_user)

    entries = [
        ArchiveEntry(
            stored_filename=s.file_url,
            archive_name=submission_entry_name(
                s.student.name if s.student else s.student_id, s.file_name
            ),
        )
        for s in submission_manager.list_for_assignment(assignment_id)
        if s.file_url
    ]
    if not entries:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No submissions found",
        )
    return _zip_response(
        build_zip(storage, entries), f"{sanitize_name(assignment.title)}_submissions.zip"
    )
