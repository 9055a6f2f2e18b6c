"""
Test: class management, rosters, bulk moves and grade export.
"""
import io

from openpyxl import load_workbook

from conftest import auth_headers


def _delete_with_body(client, url, body, headers):
    return client.request("DELETE", url, json=body, headers=headers)


class TestCreateClass:
    def test_teacher_creates_own_class(self, client, teacher):
        resp = client.post(
            "/api/classes",
            json={"name": "Databases", "code": "db-200"},
            headers=auth_headers(teacher),
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["code"] == "DB-200"
        assert body["teacher"]["user_id"] == teacher.user_id

    def test_code_is_unique_ignoring_case(self, client, teacher, classroom):
        resp = client.post(
            "/api/classes",
            json={"name": "Again", "code": classroom.code.lower()},
            headers=auth_headers(teacher),
        )
        assert resp.status_code == 400

    def test_blank_name(self, client, teacher):
        resp = client.post(
            "/api/classes", json={"name": " ", "code": "X1"}, headers=auth_headers(teacher)
        )
        assert resp.status_code == 400

    def test_student_forbidden(self, client, student):
        resp = client.post(
            "/api/classes", json={"name": "Mine", "code": "M1"}, headers=auth_headers(student)
        )
        assert resp.status_code == 403

    def test_admin_assigns_teacher(self, client, admin, teacher):
        resp = client.post(
            "/api/classes",
            json={"name": "Networks", "code": "NET", "teacher_id": teacher.user_id},
            headers=auth_headers(admin),
        )
        assert resp.status_code == 201
        assert resp.json()["teacher"]["user_id"] == teacher.user_id

    def test_admin_rejects_non_teacher_owner(self, client, admin, student):
        resp = client.post(
            "/api/classes",
            json={"name": "Networks", "code": "NET", "teacher_id": student.user_id},
            headers=auth_headers(admin),
        )
        assert resp.status_code == 400


class TestListAndGet:
    def test_public_list_needs_no_auth(self, client, classroom):
        resp = client.get("/api/classes/public")
        assert resp.status_code == 200
        assert resp.json()[0]["teacher_name"] == "Grace Teacher"

    def test_teacher_sees_only_own(self, client, classroom, other_teacher):
        resp = client.get("/api/classes", headers=auth_headers(other_teacher))
        assert resp.json()["classes"] == []

    def test_student_sees_own_class(self, client, student, classroom):
        resp = client.get("/api/classes", headers=auth_headers(student))
        assert [c["class_id"] for c in resp.json()["classes"]] == [classroom.class_id]

    def test_roster_in_detail(self, client, teacher, student, classroom):
        resp = client.get(f"/api/classes/{classroom.class_id}", headers=auth_headers(teacher))
        body = resp.json()
        assert body["student_count"] == 1
        assert body["students"][0]["user_id"] == student.user_id

    def test_other_teacher_forbidden(self, client, other_teacher, classroom):
        resp = client.get(f"/api/classes/{classroom.class_id}", headers=auth_headers(other_teacher))
        assert resp.status_code == 403

    def test_not_found(self, client, teacher):
        assert client.get("/api/classes/missing", headers=auth_headers(teacher)).status_code == 404


class TestUpdateAndDelete:
    def test_update(self, client, teacher, classroom):
        resp = client.put(
            f"/api/classes/{classroom.class_id}",
            json={"name": "Algorithms II", "code": "cs102", "description": "Harder"},
            headers=auth_headers(teacher),
        )
        assert resp.status_code == 200
        assert resp.json()["code"] == "CS102"

    def test_update_other_teacher(self, client, other_teacher, classroom):
        resp = client.put(
            f"/api/classes/{classroom.class_id}",
            json={"name": "Hijack", "code": "HJ"},
            headers=auth_headers(other_teacher),
        )
        assert resp.status_code == 403

    def test_delete_unassigns_students_and_removes_files(
        self, client, db, teacher, student, classroom, assignment, storage
    ):
        from utils.submission_manager import SubmissionManager
        from utils.time_utils import now_utc

        class_id = classroom.class_id
        assignment_id = assignment.assignment_id
        stored = storage.save(b"answer", "answer.txt")

        SubmissionManager(db).create_submission(
            assignment,
            student.user_id,
            status="submitted",
            submitted_at=now_utc(),
            file_url=stored.filename,
            file_name="answer.txt",
        )

        resp = client.delete(f"/api/classes/{class_id}", headers=auth_headers(teacher))
        assert resp.status_code == 200
        assert not storage.exists(stored.filename)

        me = client.get("/api/auth/me", headers=auth_headers(student)).json()["user"]
        assert me["class_id"] is None
        resp = client.get(
            f"/api/assignments/{assignment_id}", headers=auth_headers(teacher)
        )
        assert resp.status_code == 404


class TestRoster:
    def test_add_and_remove(self, client, teacher, classroom, make_user):
        newcomer = make_user("student")
        url = f"/api/classes/{classroom.class_id}/students"
        headers = auth_headers(teacher)

        resp = client.post(url, json={"student_id": newcomer.user_id}, headers=headers)
        assert resp.status_code == 200
        resp = _delete_with_body(client, url, {"student_id": newcomer.user_id}, headers)
        assert resp.status_code == 200

    def test_add_already_assigned(self, client, teacher, student, classroom):
        resp = client.post(
            f"/api/classes/{classroom.class_id}/students",
            json={"student_id": student.user_id},
            headers=auth_headers(teacher),
        )
        assert resp.status_code == 400

    def test_add_unknown_student(self, client, teacher, classroom):
        resp = client.post(
            f"/api/classes/{classroom.class_id}/students",
            json={"student_id": "ghost"},
            headers=auth_headers(teacher),
        )
        assert resp.status_code == 404

    def test_remove_student_not_enrolled(self, client, teacher, classroom, make_user):
        outsider = make_user("student")
        resp = _delete_with_body(
            client,
            f"/api/classes/{classroom.class_id}/students",
            {"student_id": outsider.user_id},
            auth_headers(teacher),
        )
        assert resp.status_code == 400

    def test_unassigned_listing(self, client, teacher, student, make_user):
        loner = make_user("student")
        resp = client.get("/api/students/unassigned", headers=auth_headers(teacher))
        assert [u["user_id"] for u in resp.json()["users"]] == [loner.user_id]
        assert client.get(
            "/api/students/unassigned", headers=auth_headers(student)
        ).status_code == 403


class TestBulkOperations:
    def test_move_and_remove(self, client, db, teacher, student, classroom, make_user):
        from utils.class_manager import ClassManager

        second = ClassManager(db).create_class(
            name="Second", code="SEC", teacher_id=teacher.user_id
        )
        loner = make_user("student")
        headers = auth_headers(teacher)

        resp = client.post(
            "/api/classes/bulk-operations",
            json={
                "action": "move",
                "student_ids": [student.user_id, loner.user_id, "ghost"],
                "target_class_id": second.class_id,
            },
            headers=headers,
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["success_count"] == 2
        assert body["error_count"] == 1

        resp = client.post(
            "/api/classes/bulk-operations",
            json={"action": "remove", "student_ids": [loner.user_id]},
            headers=headers,
        )
        assert resp.json()["success_count"] == 1

    def test_move_requires_target(self, client, teacher, student):
        resp = client.post(
            "/api/classes/bulk-operations",
            json={"action": "move", "student_ids": [student.user_id]},
            headers=auth_headers(teacher),
        )
        assert resp.status_code == 400

    def test_invalid_action(self, client, teacher, student):
        resp = client.post(
            "/api/classes/bulk-operations",
            json={"action": "clone", "student_ids": [student.user_id]},
            headers=auth_headers(teacher),
        )
        assert resp.status_code == 400

    def test_teacher_cannot_move_into_foreign_class(
        self, client, other_teacher, student, classroom
    ):
        resp = client.post(
            "/api/classes/bulk-operations",
            json={
                "action": "move",
                "student_ids": [student.user_id],
                "target_class_id": classroom.class_id,
            },
            headers=auth_headers(other_teacher),
        )
        assert resp.status_code == 403

    def test_teacher_cannot_take_foreign_students(
        self, client, db, other_teacher, student
    ):
        from utils.class_manager import ClassManager

        own = ClassManager(db).create_class(
            name="Other", code="OTH", teacher_id=other_teacher.user_id
        )
        resp = client.post(
            "/api/classes/bulk-operations",
            json={
                "action": "move",
                "student_ids": [student.user_id],
                "target_class_id": own.class_id,
            },
            headers=auth_headers(other_teacher),
        )
        assert resp.json()["results"][0]["status"] == "error"


def test_export_grades(client, teacher, student, classroom, assignment):
    resp = client.get(
        f"/api/classes/{classroom.class_id}/export-grades", headers=auth_headers(teacher)
    )
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert "Algorithms_CS101_Grades_" in resp.headers["content-disposition"]
    wb = load_workbook(io.BytesIO(resp.content))
    assert wb["Grades"]["A2"].value == "Alice Student"


def test_export_grades_other_teacher(client, other_teacher, classroom):
    resp = client.get(
        f"/api/classes/{classroom.class_id}/export-grades", headers=auth_headers(other_teacher)
    )
    assert resp.status_code == 403
