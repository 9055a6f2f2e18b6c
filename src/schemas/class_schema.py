"""Class schema definitions."""

from typing import List, Optional

from pydantic import BaseModel, Field

from schemas.user import UserSummary


class CreateClassRequest(BaseModel):
    name: str
    code: str
    description: Optional[str] = None
    teacher_id: Optional[str] = Field(
        default=None,
        description="Admins only: the teacher who owns the class. Defaults to the caller.",
    )


class UpdateClassRequest(BaseModel):
    name: str
    code: str
    description: Optional[str] = None


class ClassInfo(BaseModel):
    class_id: str
    name: str
    code: str
    description: Optional[str] = None
    teacher: Optional[UserSummary] = None
    students: List[UserSummary] = Field(default_factory=list)
    student_count: int = 0
    created_at: str
    updated_at: str


class PublicClassInfo(BaseModel):
    """Class listing shown on the registration form."""

    class_id: str
    name: str
    code: str
    description: Optional[str] = None
    teacher_name: Optional[str] = None


class ClassListResponse(BaseModel):
    classes: List[ClassInfo]


class StudentRequest(BaseModel):
    student_id: str


class BulkStudentOperationRequest(BaseModel):
    action: str = Field(description="'move' or 'remove'.")
    student_ids: List[str]
    target_class_id: Optional[str] = Field(
        default=None,
        description="Required when action is 'move'.",
    )


class BulkStudentResult(BaseModel):
    student_id: str
    status: str  # success | error
    error: Optional[str] = None


class BulkStudentOperationResponse(BaseModel):
    message: str
    results: List[BulkStudentResult]
    success_count: int
    error_count: int
