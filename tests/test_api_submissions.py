"""
Test: submitting work, grading, plagiarism checks and student grade views.
"""
from datetime import timedelta

import pytest

from app import app
from conftest import auth_headers
from core.dependencies import get_file_storage
from utils.file_storage import FileStorage
from utils.time_utils import now_utc


def _submit(client, user, assignment_id, text=None, file=None):
    data = {"text_content": text} if text is not None else {}
    files = {"file": file} if file is not None else None
    return client.post(
        f"/api/assignments/{assignment_id}/submit",
        data=data,
        files=files,
        headers=auth_headers(user),
    )


@pytest.fixture
def submission_id(client, student, assignment):
    resp = _submit(client, student, assignment.assignment_id, text="merge sort splits the list")
    assert resp.status_code == 201
    return resp.json()["submission"]["submission_id"]


class TestSubmit:
    def test_text_submission(self, client, student, assignment):
        resp = _submit(client, student, assignment.assignment_id, text="my answer")
        assert resp.status_code == 201
        submission = resp.json()["submission"]
        assert submission["status"] == "submitted"
        assert submission["text_content"] == "my answer"
        assert submission["student_id"] == student.user_id

    def test_file_submission(self, client, storage, student, assignment):
        resp = _submit(
            client, student, assignment.assignment_id, file=("main.py", b"print(1)", "text/x-python")
        )
        assert resp.status_code == 201
        submission = resp.json()["submission"]
        assert submission["file_name"] == "main.py"
        assert storage.read(submission["file_url"]) == b"print(1)"

    def test_second_submission_rejected(self, client, student, assignment):
        assert _submit(client, student, assignment.assignment_id, text="one").status_code == 201
        resp = _submit(client, student, assignment.assignment_id, text="two")
        assert resp.status_code == 400
        assert "already submitted" in resp.json()["detail"]

    def test_duplicate_does_not_store_file(self, client, storage, student, assignment):
        _submit(client, student, assignment.assignment_id, text="one")
        _submit(client, student, assignment.assignment_id, file=("x.txt", b"x", "text/plain"))
        assert list(storage.upload_dir.iterdir()) == []

    def test_late_allowed(self, client, student, make_assignment):
        late = make_assignment(
            deadline=now_utc() - timedelta(hours=1), allow_late_submission=True
        )
        resp = _submit(client, student, late.assignment_id, text="sorry")
        assert resp.status_code == 201
        assert resp.json()["submission"]["status"] == "late"

    def test_late_rejected(self, client, student, make_assignment):
        closed = make_assignment(deadline=now_utc() - timedelta(hours=1))
        resp = _submit(client, student, closed.assignment_id, text="too late")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Submission deadline has passed"

    def test_file_required(self, client, student, make_assignment):
        file_only = make_assignment(submission_format="file")
        resp = _submit(client, student, file_only.assignment_id, text="no file")
        assert resp.status_code == 400

    def test_text_required(self, client, student, make_assignment):
        text_only = make_assignment(submission_format="text")
        resp = _submit(
            client, student, text_only.assignment_id, file=("a.txt", b"a", "text/plain")
        )
        assert resp.status_code == 400

    def test_nothing_submitted(self, client, student, assignment):
        resp = _submit(client, student, assignment.assignment_id, text="   ")
        assert resp.status_code == 400

    def test_unsupported_file_type(self, client, student, assignment):
        resp = _submit(
            client, student, assignment.assignment_id, file=("tool.exe", b"MZ", "application/octet-stream")
        )
        assert resp.status_code == 415

    def test_file_too_large(self, client, tmp_path, student, assignment):
        app.dependency_overrides[get_file_storage] = lambda: FileStorage(
            upload_dir=tmp_path / "tiny", max_size=3
        )
        resp = _submit(
            client, student, assignment.assignment_id, file=("big.txt", b"too big", "text/plain")
        )
        assert resp.status_code == 413

    def test_teacher_cannot_submit(self, client, teacher, assignment):
        resp = _submit(client, teacher, assignment.assignment_id, text="hi")
        assert resp.status_code == 403

    def test_other_class_cannot_submit(self, client, make_user, assignment):
        loner = make_user("student")
        resp = _submit(client, loner, assignment.assignment_id, text="hi")
        assert resp.status_code == 403


class TestViewSubmissions:
    def test_teacher_sees_all(self, client, teacher, assignment, submission_id):
        resp = client.get(
            f"/api/assignments/{assignment.assignment_id}/submissions",
            headers=auth_headers(teacher),
        )
        assert [s["submission_id"] for s in resp.json()["submissions"]] == [submission_id]

    def test_student_sees_only_own(
        self, client, student, make_user, classroom, assignment, submission_id
    ):
        classmate = make_user("student", class_id=classroom.class_id)
        resp = client.get(
            f"/api/assignments/{assignment.assignment_id}/submissions",
            headers=auth_headers(classmate),
        )
        body = resp.json()
        assert body["submissions"] == []
        assert body["user_submission"] is None

        own = client.get(
            f"/api/assignments/{assignment.assignment_id}/submissions",
            headers=auth_headers(student),
        ).json()
        assert own["user_submission"]["submission_id"] == submission_id

    def test_other_teacher_forbidden(self, client, other_teacher, assignment, submission_id):
        resp = client.get(
            f"/api/assignments/{assignment.assignment_id}/submissions",
            headers=auth_headers(other_teacher),
        )
        assert resp.status_code == 403

    def test_get_one(self, client, student, teacher, submission_id):
        assert client.get(
            f"/api/submissions/{submission_id}", headers=auth_headers(student)
        ).status_code == 200
        assert client.get(
            f"/api/submissions/{submission_id}", headers=auth_headers(teacher)
        ).status_code == 200

    def test_classmate_cannot_read(self, client, make_user, classroom, submission_id):
        classmate = make_user("student", class_id=classroom.class_id)
        resp = client.get(f"/api/submissions/{submission_id}", headers=auth_headers(classmate))
        assert resp.status_code == 403

    def test_not_found(self, client, teacher):
        assert client.get("/api/submissions/nope", headers=auth_headers(teacher)).status_code == 404


class TestGrading:
    def test_grade_and_notify(self, client, teacher, student, submission_id, email_service):
        resp = client.put(
            f"/api/submissions/{submission_id}/grade",
            json={"marks": 85, "feedback": "Solid work"},
            headers=auth_headers(teacher),
        )
        assert resp.status_code == 200
        submission = resp.json()["submission"]
        assert submission["status"] == "graded"
        assert submission["marks"] == 85
        assert submission["graded_by"] == teacher.user_id
        assert submission["graded_at"]

        assert len(email_service.sent) == 1
        to, email = email_service.sent[0]
        assert to == student.email
        assert "85" in email.text_body
        assert "Solid work" in email.text_body

    def test_no_email_when_opted_out(self, client, teacher, student, submission_id, email_service):
        client.put(
            "/api/user/notifications",
            json={"grade_notifications": False},
            headers=auth_headers(student),
        )
        client.put(
            f"/api/submissions/{submission_id}/grade",
            json={"marks": 50},
            headers=auth_headers(teacher),
        )
        assert email_service.sent == []

    @pytest.mark.parametrize("marks", [-1, 100.5])
    def test_marks_out_of_range(self, client, teacher, submission_id, marks):
        resp = client.put(
            f"/api/submissions/{submission_id}/grade",
            json={"marks": marks},
            headers=auth_headers(teacher),
        )
        assert resp.status_code == 400

    @pytest.mark.parametrize("marks", ["NaN", "Infinity"])
    def test_non_finite_marks_rejected(self, client, teacher, email_service, submission_id, marks):
        resp = client.put(
            f"/api/submissions/{submission_id}/grade",
            content=f'{{"marks": {marks}}}',
            headers={**auth_headers(teacher), "Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        assert email_service.sent == []

        submission = client.get(
            f"/api/submissions/{submission_id}", headers=auth_headers(teacher)
        ).json()["submission"]
        assert submission["status"] == "submitted"
        assert submission["marks"] is None

    def test_boundary_marks_accepted(self, client, teacher, submission_id):
        for marks in (0, 100):
            resp = client.put(
                f"/api/submissions/{submission_id}/grade",
                json={"marks": marks},
                headers=auth_headers(teacher),
            )
            assert resp.status_code == 200

    def test_marks_required(self, client, teacher, submission_id):
        resp = client.put(
            f"/api/submissions/{submission_id}/grade",
            json={"feedback": "no marks"},
            headers=auth_headers(teacher),
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Marks are required"

    def test_other_teacher_cannot_grade(self, client, other_teacher, submission_id):
        resp = client.put(
            f"/api/submissions/{submission_id}/grade",
            json={"marks": 10},
            headers=auth_headers(other_teacher),
        )
        assert resp.status_code == 403

    def test_student_cannot_grade(self, client, student, submission_id):
        resp = client.put(
            f"/api/submissions/{submission_id}/grade",
            json={"marks": 100},
            headers=auth_headers(student),
        )
        assert resp.status_code == 403

    def test_admin_can_grade(self, client, admin, submission_id):
        resp = client.put(
            f"/api/submissions/{submission_id}/grade",
            json={"marks": 70},
            headers=auth_headers(admin),
        )
        assert resp.status_code == 200


class TestPlagiarism:
    def test_identical_submissions(self, client, teacher, make_user, classroom, assignment, submission_id):
        copier = make_user("student", name="Copy Cat", class_id=classroom.class_id)
        _submit(client, copier, assignment.assignment_id, text="Merge sort splits the list!")

        resp = client.post(
            f"/api/submissions/{submission_id}/plagiarism", headers=auth_headers(teacher)
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["similarity"] == 1.0
        assert body["risk_level"] == "HIGH"
        assert body["matches"][0]["student_name"] == "Copy Cat"
        assert "Plagiarism Check Report" in body["report"]

        stored = client.get(
            f"/api/submissions/{submission_id}", headers=auth_headers(teacher)
        ).json()["submission"]["plagiarism_check"]
        assert stored["similarity"] == 1.0
        assert stored["checked_by"] == teacher.user_id

    def test_file_text_is_compared(self, client, teacher, student, make_user, classroom, assignment):
        _submit(client, student, assignment.assignment_id, file=("a.txt", b"alpha beta", "text/plain"))
        other = make_user("student", class_id=classroom.class_id)
        other_id = _submit(
            client, other, assignment.assignment_id, text="gamma delta"
        ).json()["submission"]["submission_id"]

        body = client.post(
            f"/api/submissions/{other_id}/plagiarism", headers=auth_headers(teacher)
        ).json()
        assert body["similarity"] == 0.0
        assert body["matches"] == []
        assert body["risk_level"] == "CLEAR"

    def test_student_forbidden(self, client, student, submission_id):
        resp = client.post(
            f"/api/submissions/{submission_id}/plagiarism", headers=auth_headers(student)
        )
        assert resp.status_code == 403


class TestStudentGrades:
    def test_grade_list_and_detail(self, client, teacher, student, assignment, submission_id):
        detail = client.get(
            f"/api/students/grades/{assignment.assignment_id}", headers=auth_headers(student)
        ).json()
        assert detail["is_graded"] is False
        assert detail["grade"]["marks"] is None
        assert client.get("/api/students/grades", headers=auth_headers(student)).json()["total"] == 0

        client.put(
            f"/api/submissions/{submission_id}/grade",
            json={"marks": 90, "feedback": "Great"},
            headers=auth_headers(teacher),
        )

        grades = client.get("/api/students/grades", headers=auth_headers(student)).json()
        assert grades["total"] == 1
        grade = grades["grades"][0]
        assert grade["marks"] == 90
        assert grade["graded_by_name"] == "Grace Teacher"
        assert grade["class_name"] == "Algorithms"

        detail = client.get(
            f"/api/students/grades/{assignment.assignment_id}", headers=auth_headers(student)
        ).json()
        assert detail["is_graded"] is True
        assert detail["grade"]["feedback"] == "Great"

    def test_no_submission(self, client, student, assignment):
        resp = client.get(
            f"/api/students/grades/{assignment.assignment_id}", headers=auth_headers(student)
        )
        assert resp.status_code == 404

    def test_teacher_forbidden(self, client, teacher):
        assert client.get("/api/students/grades", headers=auth_headers(teacher)).status_code == 403
