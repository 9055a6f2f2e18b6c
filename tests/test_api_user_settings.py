"""
Test: profile, notification and preference settings.
"""
from conftest import PASSWORD, auth_headers


class TestProfile:
    def test_update_name_and_email(self, client, teacher):
        resp = client.put(
            "/api/user/profile",
            json={"name": "Grace H", "email": "Grace@Example.com"},
            headers=auth_headers(teacher),
        )
        assert resp.status_code == 200
        user = resp.json()["user"]
        assert user["name"] == "Grace H"
        assert user["email"] == "grace@example.com"

    def test_email_taken(self, client, teacher, other_teacher):
        resp = client.put(
            "/api/user/profile",
            json={"name": "Grace", "email": other_teacher.email},
            headers=auth_headers(teacher),
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Email already in use"

    def test_change_password(self, client, teacher):
        resp = client.put(
            "/api/user/profile",
            json={
                "name": teacher.name,
                "email": teacher.email,
                "current_password": PASSWORD,
                "new_password": "brand-new-pass",
            },
            headers=auth_headers(teacher),
        )
        assert resp.status_code == 200
        login = client.post(
            "/api/auth/login", json={"email": teacher.email, "password": "brand-new-pass"}
        )
        assert login.status_code == 200

    def test_change_password_wrong_current(self, client, teacher):
        resp = client.put(
            "/api/user/profile",
            json={
                "name": teacher.name,
                "email": teacher.email,
                "current_password": "wrong",
                "new_password": "brand-new-pass",
            },
            headers=auth_headers(teacher),
        )
        assert resp.status_code == 400

    def test_change_password_without_current(self, client, teacher):
        resp = client.put(
            "/api/user/profile",
            json={"name": teacher.name, "email": teacher.email, "new_password": "x"},
            headers=auth_headers(teacher),
        )
        assert resp.status_code == 400

    def test_blank_name(self, client, teacher):
        resp = client.put(
            "/api/user/profile",
            json={"name": " ", "email": teacher.email},
            headers=auth_headers(teacher),
        )
        assert resp.status_code == 400


class TestNotifications:
    def test_defaults(self, client, student):
        resp = client.get("/api/user/notifications", headers=auth_headers(student))
        assert resp.json() == {
            "email_notifications": True,
            "assignment_reminders": True,
            "grade_notifications": True,
            "system_updates": False,
        }

    def test_partial_update_merges(self, client, student):
        headers = auth_headers(student)
        resp = client.put(
            "/api/user/notifications", json={"grade_notifications": False}, headers=headers
        )
        assert resp.status_code == 200
        settings = client.get("/api/user/notifications", headers=headers).json()
        assert settings["grade_notifications"] is False
        assert settings["assignment_reminders"] is True

    def test_unknown_key(self, client, student):
        resp = client.put(
            "/api/user/notifications", json={"sms": True}, headers=auth_headers(student)
        )
        assert resp.status_code == 400

    def test_non_boolean(self, client, student):
        resp = client.put(
            "/api/user/notifications",
            json={"email_notifications": "yes"},
            headers=auth_headers(student),
        )
        assert resp.status_code == 400


class TestPreferences:
    def test_defaults(self, client, student):
        resp = client.get("/api/user/preferences", headers=auth_headers(student))
        assert resp.json() == {"language": "en", "theme": "system"}

    def test_update(self, client, student):
        headers = auth_headers(student)
        resp = client.put("/api/user/preferences", json={"theme": "dark"}, headers=headers)
        assert resp.json() == {"language": "en", "theme": "dark"}

    def test_invalid_language(self, client, student):
        resp = client.put(
            "/api/user/preferences", json={"language": "xx"}, headers=auth_headers(student)
        )
        assert resp.status_code == 400
