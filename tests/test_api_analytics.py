"""
Test: analytics dashboards and grade band edges.
"""
import pytest

from conftest import auth_headers
from utils.analytics_manager import grade_band, normalize_range
from utils.submission_manager import SubmissionManager
from utils.time_utils import now_utc


def _graded(db, assignment, student, marks):
    manager = SubmissionManager(db)
    submission = manager.create_submission(
        assignment, student.user_id, status="submitted", submitted_at=now_utc(), text_content="x"
    )
    return manager.grade_submission(submission.submission_id, marks, None, assignment.created_by)


@pytest.mark.parametrize(
    "percentage,band",
    [
        (100, "A (90-100%)"),
        (90, "A (90-100%)"),
        (89.5, "B (80-89%)"),
        (70, "C (70-79%)"),
        (60, "D (60-69%)"),
        (59.9, "F (0-59%)"),
        (0, "F (0-59%)"),
    ],
)
def test_grade_band(percentage, band):
    assert grade_band(percentage) == band


def test_normalize_range():
    assert normalize_range("1year") == "1year"
    assert normalize_range("decade") == "6months"
    assert normalize_range(None) == "6months"


class TestOverview:
    def test_teacher_overview(self, client, db, teacher, student, make_user, classroom, assignment):
        make_user("student", name="Bob Student", class_id=classroom.class_id)
        _graded(db, assignment, student, 95)

        resp = client.get("/api/analytics", headers=auth_headers(teacher))
        assert resp.status_code == 200
        body = resp.json()
        assert body["range"] == "6months"
        assert body["total_students"] == 2
        assert body["total_assignments"] == 1
        assert body["average_grade"] == 95.0
        assert body["submission_rate"] == 50.0

        distribution = {b["grade"]: b["count"] for b in body["grade_distribution"]}
        assert distribution["A (90-100%)"] == 1
        assert sum(distribution.values()) == 1

        trend = body["performance_trend"]
        assert len(trend) == 6
        assert trend[-1] == {"month": now_utc().strftime("%b %Y"), "average": 95.0}
        assert all(point["average"] == 0.0 for point in trend[:-1])

        assert body["top_performers"] == [
            {"student_id": student.user_id, "name": "Alice Student", "average": 95.0}
        ]
        assert body["assignment_stats"][0]["submissions"] == 1
        assert body["assignment_stats"][0]["average"] == 95.0

    def test_other_teacher_scoped(self, client, db, other_teacher, student, assignment):
        _graded(db, assignment, student, 80)
        body = client.get("/api/analytics", headers=auth_headers(other_teacher)).json()
        assert body["total_assignments"] == 0
        assert body["total_students"] == 0
        assert body["average_grade"] == 0.0

    def test_admin_sees_everything(self, client, db, admin, student, assignment):
        _graded(db, assignment, student, 80)
        body = client.get("/api/analytics?range=1month", headers=auth_headers(admin)).json()
        assert body["range"] == "1month"
        assert body["total_assignments"] == 1
        assert body["average_grade"] == 80.0

    def test_unknown_range_falls_back(self, client, teacher):
        body = client.get("/api/analytics?range=forever", headers=auth_headers(teacher)).json()
        assert body["range"] == "6months"

    def test_student_forbidden(self, client, student):
        assert client.get("/api/analytics", headers=auth_headers(student)).status_code == 403


class TestStudentAnalytics:
    def test_enrollment(self, client, admin, student, make_user, classroom):
        make_user("student", name="Loner")
        resp = client.get("/api/analytics/students", headers=auth_headers(admin))
        assert resp.status_code == 200
        body = resp.json()
        assert body["total_students"] == 2
        assert body["total_classes"] == 1
        assert body["unassigned_students"] == 1
        assert body["class_distribution"] == [
            {
                "class_id": classroom.class_id,
                "class_name": "Algorithms",
                "student_count": 1,
                "teacher_name": "Grace Teacher",
            }
        ]
        names = {r["name"] for r in body["recent_registrations"]}
        assert names == {"Alice Student", "Loner"}
