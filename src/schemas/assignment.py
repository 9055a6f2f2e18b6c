"""Assignment schema definitions."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

SubmissionFormat = Literal["file", "text", "both"]


class CreateAssignmentRequest(BaseModel):
    title: str
    description: str
    deadline: datetime = Field(description="ISO-8601; naive values are taken as UTC.")
    max_marks: int
    class_id: str
    course: Optional[str] = None
    instructions: Optional[str] = None
    submission_format: SubmissionFormat = "file"
    allow_late_submission: bool = False
    is_published: bool = True


class UpdateAssignmentRequest(BaseModel):
    """Partial update; omitted fields keep their current value."""

    title: Optional[str] = None
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    max_marks: Optional[int] = None
    course: Optional[str] = None
    instructions: Optional[str] = None
    submission_format: Optional[SubmissionFormat] = None
    allow_late_submission: Optional[bool] = None
    is_published: Optional[bool] = None


class AssignmentInfo(BaseModel):
    assignment_id: str
    title: str
    description: str
    instructions: Optional[str] = None
    course: Optional[str] = None
    deadline: str
    max_marks: int
    class_id: str
    class_name: Optional[str] = None
    class_code: Optional[str] = None
    created_by: str
    creator_name: Optional[str] = None
    submission_format: str
    allow_late_submission: bool
    is_published: bool
    created_at: str
    updated_at: str
    days_until_due: Optional[int] = None


class AssignmentListResponse(BaseModel):
    assignments: List[AssignmentInfo]


class BulkAssignmentOperationRequest(BaseModel):
    action: str = Field(description="'download', 'email' or 'delete'.")
    assignment_ids: List[str]
