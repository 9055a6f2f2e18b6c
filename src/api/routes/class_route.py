"""Class management routes."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status

from api.routes.auth import get_current_user, require_role
from core.dependencies import ClassManagerDep, FileStorageDep, UserManagerDep
from core.exceptions import ClassNotFoundError, UserNotFoundError, ValidationError
from models.class_model import ClassModel
from schemas.class_schema import (
    BulkStudentOperationRequest,
    BulkStudentOperationResponse,
    ClassInfo,
    ClassListResponse,
    CreateClassRequest,
    PublicClassInfo,
    StudentRequest,
    UpdateClassRequest,
)
from schemas.user import User
from utils.class_manager import ClassCodeExistsError, ClassManager, StudentAlreadyAssignedError
from utils.converters import class_to_info, class_to_public_info
from utils.grade_exporter import XLSX_CONTENT_TYPE, build_grades_workbook, export_filename
from utils.time_utils import now_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/classes", tags=["Class"])


def _get_class_or_404(class_manager: ClassManager, class_id: str) -> ClassModel:
    try:
        return class_manager.get_class(class_id)
    except ClassNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Class not found",
        )


def _get_managed_class(class_manager: ClassManager, class_id: str, user: User) -> ClassModel:
    """Load a class the user may modify: admins any, teachers their own."""
    require_role(user, "admin", "teacher")
    class_model = _get_class_or_404(class_manager, class_id)
    if user.role == "teacher" and class_model.teacher_id != user.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only manage your own classes",
        )
    return class_model


@router.get("/public", response_model=List[PublicClassInfo], summary="Classes open for registration")
def list_public_classes(class_manager: ClassManagerDep) -> List[PublicClassInfo]:
    return [class_to_public_info(c) for c in class_manager.list_public_classes()]


@router.get("", response_model=ClassListResponse, summary="List classes")
def list_classes(
    class_manager: ClassManagerDep,
    current_user: User = Depends(get_current_user),
) -> ClassListResponse:
    if current_user.role == "admin":
        models = class_manager.list_all_classes()
    elif current_user.role == "teacher":
        models = class_manager.list_classes_for_teacher(current_user.user_id)
    elif current_user.class_id:
        try:
            models = [class_manager.get_class(current_user.class_id)]
        except ClassNotFoundError:
            models = []
    else:
        models = []
    return ClassListResponse(classes=[class_to_info(m) for m in models])


@router.post(
    "",
    response_model=ClassInfo,
    status_code=status.HTTP_201_CREATED,
    summary="Create class",
)
def create_class(
    req: CreateClassRequest,
    class_manager: ClassManagerDep,
    user_manager: UserManagerDep,
    current_user: User = Depends(get_current_user),
) -> ClassInfo:
    require_role(current_user, "admin", "teacher")

    teacher_id = current_user.user_id
    if current_user.role == "admin" and req.teacher_id:
        teacher = user_manager.get_user_by_id(req.teacher_id)
        if teacher is None or teacher.role != "teacher":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="teacher_id must refer to a teacher",
            )
        teacher_id = teacher.user_id

    try:
        class_model = class_manager.create_class(
            name=req.name,
            code=req.code,
            teacher_id=teacher_id,
            description=req.description,
        )
    except (ValidationError, ClassCodeExistsError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        )
    return class_to_info(class_model)


@router.post(
    "/bulk-operations",
    response_model=BulkStudentOperationResponse,
    summary="Move or remove students in bulk",
)
def bulk_student_operation(
    req: BulkStudentOperationRequest,
    class_manager: ClassManagerDep,
    current_user: User = Depends(get_current_user),
) -> BulkStudentOperationResponse:
    """Move students into a class or unassign them.

    Each student gets its own result; one failure does not stop the rest.
    Teachers may only move students into classes they own.
    """
    require_role(current_user, "admin", "teacher")
    if req.action == "move" and req.target_class_id:
        target = _get_class_or_404(class_manager, req.target_class_id)
        if current_user.role == "teacher" and target.teacher_id != current_user.user_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only move students into your own classes",
            )

    try:
        results = class_manager.bulk_move_or_remove(
            req.action,
            req.student_ids,
            target_class_id=req.target_class_id,
            acting_teacher_id=current_user.user_id if current_user.role == "teacher" else None,
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        )

    success_count = sum(1 for r in results if r.status == "success")
    error_count = len(results) - success_count
    return BulkStudentOperationResponse(
        message=f"Bulk operation completed: {success_count} successful, {error_count} failed",
        results=results,
        success_count=success_count,
        error_count=error_count,
    )


@router.get("/{class_id}", response_model=ClassInfo, summary="Get class")
def get_class(
    class_id: str,
    class_manager: ClassManagerDep,
    current_user: User = Depends(get_current_user),
) -> ClassInfo:
    class_model = _get_class_or_404(class_manager, class_id)
    if current_user.role == "student" and current_user.class_id != class_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not enrolled in this class",
        )
    if current_user.role == "teacher" and class_model.teacher_id != current_user.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only view your own classes",
        )
    return class_to_info(class_model)


@router.put("/{class_id}", response_model=ClassInfo, summary="Update class")
def update_class(
    class_id: str,
    req: UpdateClassRequest,
    class_manager: ClassManagerDep,
    current_user: User = Depends(get_current_user),
) -> ClassInfo:
    _get_managed_class(class_manager, class_id, current_user)
    try:
        class_model = class_manager.update_class(
            class_id, name=req.name, code=req.code, description=req.description
        )
    except (ValidationError, ClassCodeExistsError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        )
    return class_to_info(class_model)


@router.delete("/{class_id}", summary="Delete class")
def delete_class(
    class_id: str,
    class_manager: ClassManagerDep,
    storage: FileStorageDep,
    current_user: User = Depends(get_current_user),
) -> dict:
    """Delete a class with its assignments and submissions; students become unassigned."""
    _get_managed_class(class_manager, class_id, current_user)
    files = class_manager.delete_class(class_id)
    storage.delete_many(files)
    return {"message": "Class deleted successfully"}


@router.post("/{class_id}/students", summary="Add student to class")
def add_student(
    class_id: str,
    req: StudentRequest,
    class_manager: ClassManagerDep,
    current_user: User = Depends(get_current_user),
) -> dict:
    _get_managed_class(class_manager, class_id, current_user)
    try:
        class_manager.add_student(class_id, req.student_id)
    except UserNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Student not found",
        )
    except StudentAlreadyAssignedError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        )
    return {"message": "Student added to class successfully"}


@router.delete("/{class_id}/students", summary="Remove student from class")
def remove_student(
    class_id: str,
    req: StudentRequest,
    class_manager: ClassManagerDep,
    current_user: User = Depends(get_current_user),
) -> dict:
    _get_managed_class(class_manager, class_id, current_user)
    try:
        class_manager.remove_student(class_id, req.student_id)
    except UserNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Student not found",
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        )
    return {"message": "Student removed from class successfully"}


@router.get("/{class_id}/export-grades", summary="Export class grades as xlsx")
def export_grades(
    class_id: str,
    class_manager: ClassManagerDep,
    current_user: User = Depends(get_current_user),
) -> Response:
    class_model = _get_managed_class(class_manager, class_id, current_user)
    content = build_grades_workbook(class_model)
    filename = export_filename(class_model, now_utc())
    return Response(
        content=content,
        media_type=XLSX_CONTENT_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
