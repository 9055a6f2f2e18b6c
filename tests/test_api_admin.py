"""
Test: admin user management and system statistics.
"""
from conftest import auth_headers


class TestUsers:
    def test_list_hides_password(self, client, admin, teacher):
        resp = client.get("/api/admin/users", headers=auth_headers(admin))
        assert resp.status_code == 200
        users = resp.json()["users"]
        assert {u["user_id"] for u in users} == {admin.user_id, teacher.user_id}
        assert all("password_hash" not in u for u in users)

    def test_non_admin_forbidden(self, client, teacher):
        assert client.get("/api/admin/users", headers=auth_headers(teacher)).status_code == 403


class TestDeleteUser:
    def test_delete_student_with_submission_file(
        self, client, db, storage, admin, student, assignment
    ):
        from utils.submission_manager import SubmissionManager
        from utils.time_utils import now_utc

        stored = storage.save(b"work", "work.txt")
        SubmissionManager(db).create_submission(
            assignment,
            student.user_id,
            status="submitted",
            submitted_at=now_utc(),
            file_url=stored.filename,
            file_name="work.txt",
        )

        resp = client.delete(f"/api/admin/users/{student.user_id}", headers=auth_headers(admin))
        assert resp.status_code == 200
        assert not storage.exists(stored.filename)

    def test_cannot_delete_self(self, client, admin):
        resp = client.delete(f"/api/admin/users/{admin.user_id}", headers=auth_headers(admin))
        assert resp.status_code == 400

    def test_teacher_owning_classes(self, client, admin, teacher, classroom):
        resp = client.delete(f"/api/admin/users/{teacher.user_id}", headers=auth_headers(admin))
        assert resp.status_code == 409

    def test_unknown_user(self, client, admin):
        assert client.delete("/api/admin/users/ghost", headers=auth_headers(admin)).status_code == 404


class TestChangeRole:
    def test_student_to_teacher_drops_class(self, client, admin, student):
        resp = client.put(
            f"/api/admin/users/{student.user_id}/role",
            json={"role": "teacher"},
            headers=auth_headers(admin),
        )
        assert resp.status_code == 200
        user = resp.json()["user"]
        assert user["role"] == "teacher"
        assert user["class_id"] is None

    def test_invalid_role(self, client, admin, student):
        resp = client.put(
            f"/api/admin/users/{student.user_id}/role",
            json={"role": "dean"},
            headers=auth_headers(admin),
        )
        assert resp.status_code == 400

    def test_cannot_change_own_role(self, client, admin):
        resp = client.put(
            f"/api/admin/users/{admin.user_id}/role",
            json={"role": "student"},
            headers=auth_headers(admin),
        )
        assert resp.status_code == 400

    def test_unknown_user(self, client, admin):
        resp = client.put(
            "/api/admin/users/ghost/role", json={"role": "student"}, headers=auth_headers(admin)
        )
        assert resp.status_code == 404


def test_stats(client, admin, teacher, student, assignment):
    resp = client.get("/api/admin/stats", headers=auth_headers(admin))
    assert resp.status_code == 200
    assert resp.json()["stats"] == {
        "total_users": 3,
        "total_teachers": 1,
        "total_students": 1,
        "total_admins": 1,
        "total_classes": 1,
        "total_assignments": 1,
        "total_submissions": 0,
    }
