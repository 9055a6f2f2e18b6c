"""Analytics and admin statistics schema definitions."""

from typing import List, Optional

from pydantic import BaseModel, Field


class GradeBucket(BaseModel):
    grade: str = Field(description="Letter band label, e.g. 'A (90-100%)'.")
    count: int


class MonthlyAverage(BaseModel):
    month: str = Field(description="'Mon YYYY' label.")
    average: float


class TopPerformer(BaseModel):
    student_id: str
    name: str
    average: float


class AssignmentStat(BaseModel):
    assignment_id: str
    title: str
    submissions: int = Field(description="Number of graded submissions.")
    average: float = Field(description="Average grade as a percentage of max marks.")


class AnalyticsOverview(BaseModel):
    range: str
    total_students: int
    total_assignments: int
    average_grade: float
    submission_rate: float
    grade_distribution: List[GradeBucket]
    performance_trend: List[MonthlyAverage]
    top_performers: List[TopPerformer]
    assignment_stats: List[AssignmentStat]


class ClassDistributionItem(BaseModel):
    class_id: str
    class_name: str
    student_count: int
    teacher_name: Optional[str] = None


class RecentRegistration(BaseModel):
    user_id: str
    name: str
    email: str
    registered_at: str
    class_name: Optional[str] = None


class StudentAnalytics(BaseModel):
    total_students: int
    total_classes: int
    unassigned_students: int
    class_distribution: List[ClassDistributionItem]
    recent_registrations: List[RecentRegistration]


class AdminStats(BaseModel):
    total_users: int
    total_teachers: int
    total_students: int
    total_admins: int
    total_classes: int
    total_assignments: int
    total_submissions: int


class AdminStatsResponse(BaseModel):
    stats: AdminStats
