"""Submission, grading and plagiarism schema definitions."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class SubmissionInfo(BaseModel):
    submission_id: str
    assignment_id: str
    assignment_title: Optional[str] = None
    max_marks: Optional[int] = None
    student_id: str
    student_name: Optional[str] = None
    student_email: Optional[str] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    text_content: Optional[str] = None
    status: str
    marks: Optional[float] = None
    feedback: Optional[str] = None
    submitted_at: str
    graded_at: Optional[str] = None
    graded_by: Optional[str] = None
    grader_name: Optional[str] = None
    plagiarism_check: Optional[Dict[str, Any]] = None


class SubmissionResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    submission: SubmissionInfo


class AssignmentSubmissionsResponse(BaseModel):
    success: bool = True
    submissions: List[SubmissionInfo] = Field(default_factory=list)
    user_submission: Optional[SubmissionInfo] = None


class GradeRequest(BaseModel):
    marks: Optional[float] = None
    feedback: Optional[str] = None


class PlagiarismMatch(BaseModel):
    matched_with: str = Field(description="submission_id of the other submission.")
    student_name: Optional[str] = None
    similarity: float
    shared_terms: List[str] = Field(default_factory=list)


class PlagiarismResponse(BaseModel):
    similarity: float
    matches: List[PlagiarismMatch]
    report: str
    risk_level: str


class StudentGrade(BaseModel):
    """A graded submission as shown to the student."""

    submission_id: str
    assignment_id: str
    assignment_title: str
    assignment_description: str = ""
    assignment_max_marks: int = 0
    course: str = ""
    class_name: str = ""
    deadline: Optional[str] = None
    file_name: Optional[str] = None
    status: str
    submitted_at: str
    marks: Optional[float] = None
    feedback: Optional[str] = None
    graded_at: Optional[str] = None
    graded_by_name: Optional[str] = None
    graded_by_email: Optional[str] = None


class StudentGradeListResponse(BaseModel):
    success: bool = True
    grades: List[StudentGrade]
    total: int


class StudentGradeDetailResponse(BaseModel):
    success: bool = True
    grade: StudentGrade
    is_graded: bool
