"""Aggregate statistics over grades, submissions and enrollment."""

import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from models.assignment import AssignmentModel
from models.class_model import ClassModel
from models.submission import SubmissionModel
from models.user import UserModel
from schemas.analytics import (
    AnalyticsOverview,
    AssignmentStat,
    ClassDistributionItem,
    GradeBucket,
    MonthlyAverage,
    RecentRegistration,
    StudentAnalytics,
    TopPerformer,
)
from utils.time_utils import parse_iso, shift_months

logger = logging.getLogger(__name__)

# Range name -> months looked back
RANGES = {
    "1month": 1,
    "3months": 3,
    "6months": 6,
    "1year": 12,
}
DEFAULT_RANGE = "6months"

# (label, lower bound in percent); checked top-down
GRADE_BANDS = [
    ("A (90-100%)", 90),
    ("B (80-89%)", 80),
    ("C (70-79%)", 70),
    ("D (60-69%)", 60),
    ("F (0-59%)", 0),
]

TREND_MONTHS = 6
TOP_PERFORMERS = 5
MAX_ASSIGNMENT_STATS = 10
RECENT_REGISTRATION_DAYS = 30
MAX_RECENT_REGISTRATIONS = 10


def normalize_range(range_name: Optional[str]) -> str:
    return range_name if range_name in RANGES else DEFAULT_RANGE


def grade_band(percentage: float) -> str:
    for label, lower in GRADE_BANDS:
        if percentage >= lower:
            return label
    return GRADE_BANDS[-1][0]


def _round1(value: float) -> float:
    return round(value, 1)


def _percent(submission: SubmissionModel) -> float:
    return (submission.marks / submission.assignment.max_marks) * 100


class AnalyticsManager:
    """Computes the analytics dashboards for teachers and admins."""

    def __init__(self, db: Session):
        self.db = db

    def overview(
        self, now: datetime, range_name: Optional[str] = None, teacher_id: Optional[str] = None
    ) -> AnalyticsOverview:
        """Grade and submission statistics for assignments created in the range.

        Args:
            now: Reference time (UTC).
            range_name: '1month', '3months', '6months' or '1year'; anything
                else falls back to '6months'.
            teacher_id: When set, only that teacher's assignments and the
                students in their classes are counted.
        """
        range_name = normalize_range(range_name)
        start = shift_months(now, -RANGES[range_name])

        assignment_query = self.db.query(AssignmentModel)
        student_query = self.db.query(UserModel).filter(UserModel.role == "student")
        if teacher_id is not None:
            assignment_query = assignment_query.filter(AssignmentModel.created_by == teacher_id)
            owned = [
                class_id
                for (class_id,) in self.db.query(ClassModel.class_id).filter(
                    ClassModel.teacher_id == teacher_id
                )
            ]
            student_query = student_query.filter(UserModel.class_id.in_(owned))

        assignments = [
            a for a in assignment_query.all() if parse_iso(a.created_at) >= start
        ]
        total_students = student_query.count()

        roster_sizes = self._roster_sizes()
        submissions = [s for a in assignments for s in a.submissions]
        graded = [s for s in submissions if s.marks is not None]

        total_marks = sum(s.marks for s in graded)
        total_max = sum(s.assignment.max_marks for s in graded)
        average_grade = (total_marks / total_max) * 100 if total_max else 0.0

        expected = sum(roster_sizes.get(a.class_id, 0) for a in assignments)
        submission_rate = (len(submissions) / expected) * 100 if expected else 0.0

        band_counts: Dict[str, int] = {label: 0 for label, _ in GRADE_BANDS}
        for submission in graded:
            band_counts[grade_band(_percent(submission))] += 1

        return AnalyticsOverview(
            range=range_name,
            total_students=total_students,
            total_assignments=len(assignments),
            average_grade=_round1(average_grade),
            submission_rate=_round1(submission_rate),
            grade_distribution=[
                GradeBucket(grade=label, count=band_counts[label]) for label, _ in GRADE_BANDS
            ],
            performance_trend=self._performance_trend(graded, now),
            top_performers=self._top_performers(graded),
            assignment_stats=self._assignment_stats(assignments),
        )

    def student_overview(self, now: datetime) -> StudentAnalytics:
        students = self.db.query(UserModel).filter(UserModel.role == "student").all()
        classes = self.db.query(ClassModel).order_by(ClassModel.name).all()
        class_names = {c.class_id: c.name for c in classes}
        roster_sizes = self._roster_sizes()

        cutoff = now - timedelta(days=RECENT_REGISTRATION_DAYS)
        recent = sorted(
            (s for s in students if parse_iso(s.created_at) >= cutoff),
            key=lambda s: s.created_at,
            reverse=True,
        )[:MAX_RECENT_REGISTRATIONS]

        return StudentAnalytics(
            total_students=len(students),
            total_classes=len(classes),
            unassigned_students=sum(1 for s in students if not s.class_id),
            class_distribution=[
                ClassDistributionItem(
                    class_id=c.class_id,
                    class_name=c.name,
                    student_count=roster_sizes.get(c.class_id, 0),
                    teacher_name=c.teacher.name if c.teacher else None,
                )
                for c in classes
            ],
            recent_registrations=[
                RecentRegistration(
                    user_id=s.user_id,
                    name=s.name,
                    email=s.email,
                    registered_at=s.created_at,
                    class_name=class_names.get(s.class_id),
                )
                for s in recent
            ],
        )

    def _roster_sizes(self) -> Dict[str, int]:
        sizes: Dict[str, int] = defaultdict(int)
        for (class_id,) in self.db.query(UserModel.class_id).filter(
            UserModel.role == "student", UserModel.class_id.isnot(None)
        ):
            sizes[class_id] += 1
        return sizes

    def _performance_trend(
        self, graded: List[SubmissionModel], now: datetime
    ) -> List[MonthlyAverage]:
        """Monthly averages by submission month, oldest month first."""
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        trend = []
        for offset in range(TREND_MONTHS - 1, -1, -1):
            start = shift_months(month_start, -offset)
            end = shift_months(start, 1)
            in_month = [s for s in graded if start <= parse_iso(s.submitted_at) < end]
            total = sum(s.marks for s in in_month)
            max_total = sum(s.assignment.max_marks for s in in_month)
            average = (total / max_total) * 100 if max_total else 0.0
            trend.append(MonthlyAverage(month=start.strftime("%b %Y"), average=_round1(average)))
        return trend

    def _top_performers(self, graded: List[SubmissionModel]) -> List[TopPerformer]:
        totals: Dict[str, List[float]] = defaultdict(lambda: [0.0, 0.0])
        names: Dict[str, str] = {}
        for submission in graded:
            if submission.student is None:
                continue
            totals[submission.student_id][0] += submission.marks
            totals[submission.student_id][1] += submission.assignment.max_marks
            names[submission.student_id] = submission.student.name

        performers = [
            TopPerformer(
                student_id=student_id,
                name=names[student_id],
                average=_round1((total / max_total) * 100),
            )
            for student_id, (total, max_total) in totals.items()
            if max_total > 0
        ]
        performers.sort(key=lambda p: p.average, reverse=True)
        return performers[:TOP_PERFORMERS]

    def _assignment_stats(self, assignments: List[AssignmentModel]) -> List[AssignmentStat]:
        stats = []
        for assignment in sorted(assignments, key=lambda a: a.created_at, reverse=True)[
            :MAX_ASSIGNMENT_STATS
        ]:
            graded = [s for s in assignment.submissions if s.marks is not None]
            average = (
                (sum(s.marks for s in graded) / len(graded)) / assignment.max_marks * 100
                if graded
                else 0.0
            )
            stats.append(
                AssignmentStat(
                    assignment_id=assignment.assignment_id,
                    title=assignment.title,
                    submissions=len(graded),
                    average=_round1(average),
                )
            )
        return stats
