"""Admin-only account management routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from api.routes.auth import get_current_user, require_role
from core.dependencies import (
    AssignmentManagerDep,
    ClassManagerDep,
    FileStorageDep,
    SubmissionManagerDep,
    UserManagerDep,
)
from core.exceptions import UserNotFoundError, ValidationError
from schemas.analytics import AdminStats, AdminStatsResponse
from schemas.user import UpdateRoleRequest, User, UserListResponse
from utils.user_manager import UserOwnsClassesError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])


def _require_admin(current_user: User = Depends(get_current_user)) -> User:
    require_role(current_user, "admin")
    return current_user


@router.get("/users", response_model=UserListResponse, summary="List users")
def list_users(
    user_manager: UserManagerDep,
    current_user: User = Depends(_require_admin),
) -> UserListResponse:
    return UserListResponse(users=[u.public_dict() for u in user_manager.list_users()])


@router.delete("/users/{user_id}", summary="Delete user")
def delete_user(
    user_id: str,
    user_manager: UserManagerDep,
    storage: FileStorageDep,
    current_user: User = Depends(_require_admin),
) -> dict:
    """Delete a user and their submissions.

    Teachers who still own classes must have them removed first.
    """
    if user_id == current_user.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account",
        )
    try:
        files = user_manager.delete_user(user_id)
    except UserNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    except UserOwnsClassesError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        )
    storage.delete_many(files)
    logger.info("Admin %s deleted user %s", current_user.user_id, user_id)
    return {"message": "User deleted successfully"}


@router.put("/users/{user_id}/role", summary="Change user role")
def update_user_role(
    user_id: str,
    req: UpdateRoleRequest,
    user_manager: UserManagerDep,
    current_user: User = Depends(_require_admin),
) -> dict:
    if user_id == current_user.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot change your own role",
        )
    try:
        user = user_manager.update_role(user_id, req.role)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        )
    except UserNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return {"message": "User role updated successfully", "user": user.public_dict()}


@router.get("/stats", response_model=AdminStatsResponse, summary="System statistics")
def get_stats(
    user_manager: UserManagerDep,
    class_manager: ClassManagerDep,
    assignment_manager: AssignmentManagerDep,
    submission_manager: SubmissionManagerDep,
    current_user: User = Depends(_require_admin),
) -> AdminStatsResponse:
    by_role = user_manager.count_by_role()
    return AdminStatsResponse(
        stats=AdminStats(
            total_users=sum(by_role.values()),
            total_teachers=by_role.get("teacher", 0),
            total_students=by_role.get("student", 0),
            total_admins=by_role.get("admin", 0),
            total_classes=class_manager.count_classes(),
            total_assignments=assignment_manager.count_assignments(),
            total_submissions=submission_manager.count_submissions(),
        )
    )
