"""Generic file upload, download and delete routes."""

import logging

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status

from api.routes.auth import get_current_user
from core.dependencies import FileStorageDep, SubmissionManagerDep
from core.exceptions import StoredFileNotFoundError
from schemas.user import User
from utils.file_storage import (
    FileTooLargeError,
    InvalidFileError,
    UnsupportedFileTypeError,
    content_type_for,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/files", tags=["Files"])


@router.post("/upload", status_code=status.HTTP_201_CREATED, summary="Upload a file")
async def upload_file(
    storage: FileStorageDep,
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
) -> dict:
    content = await file.read()
    try:
        stored = storage.save(content, file.filename)
    except InvalidFileError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except FileTooLargeError as exc:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(exc))
    except UnsupportedFileTypeError as exc:
        raise HTTPException(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail=str(exc))

    logger.info("User %s uploaded %s", current_user.user_id, stored.filename)
    return {
        "message": "File uploaded successfully",
        "filename": stored.filename,
        "original_name": stored.original_name,
        "size": stored.size,
        "content_type": stored.content_type,
        "url": f"/api/files/{stored.filename}",
    }


@router.get("/{filename}", summary="Download a file")
def download_file(
    filename: str,
    storage: FileStorageDep,
    submission_manager: SubmissionManagerDep,
    current_user: User = Depends(get_current_user),
) -> Response:
    """Teachers and admins may fetch any file; students only their own submission's."""
    if current_user.role == "student":
        submission = submission_manager.find_by_stored_file(filename)
        if submission is None or submission.student_id != current_user.user_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only download your own files",
            )
    try:
        content = storage.read(filename)
    except InvalidFileError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except StoredFileNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return Response(
        content=content,
        media_type=content_type_for(filename),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.delete("/{filename}", summary="Delete a file")
def delete_file(
    filename: str,
    storage: FileStorageDep,
    submission_manager: SubmissionManagerDep,
    current_user: User = Depends(get_current_user),
) -> dict:
    """Teachers and admins may delete any file; students only their own submission's."""
    if current_user.role == "student":
        submission = submission_manager.find_by_stored_file(filename)
        if submission is None or submission.student_id != current_user.user_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only delete your own files",
            )
    try:
        storage.delete(filename)
    except InvalidFileError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except StoredFileNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return {"message": "File deleted successfully"}
