"""Analytics dashboards for teachers and admins."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.routes.auth import get_current_user, require_role
from core.dependencies import AnalyticsManagerDep
from schemas.analytics import AnalyticsOverview, StudentAnalytics
from schemas.user import User
from utils.time_utils import now_utc

router = APIRouter(prefix="/api/analytics", tags=["Analytics"])


@router.get("", response_model=AnalyticsOverview, summary="Grade and submission analytics")
def get_analytics(
    analytics_manager: AnalyticsManagerDep,
    range_name: Optional[str] = Query(default=None, alias="range"),
    current_user: User = Depends(get_current_user),
) -> AnalyticsOverview:
    """Teachers see their own assignments; admins see everything."""
    require_role(current_user, "admin", "teacher")
    teacher_id = current_user.user_id if current_user.role == "teacher" else None
    return analytics_manager.overview(now_utc(), range_name=range_name, teacher_id=teacher_id)


@router.get("/students", response_model=StudentAnalytics, summary="Enrollment analytics")
def get_student_analytics(
    analytics_manager: AnalyticsManagerDep,
    current_user: User = Depends(get_current_user),
) -> StudentAnalytics:
    require_role(current_user, "admin", "teacher")
    return analytics_manager.student_overview(now_utc())
