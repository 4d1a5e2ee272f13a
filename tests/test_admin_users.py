import pytest

from models.user import Role

from conftest import AUTH, PASSWORD, bearer, cookie_value, login, refresh_with

ADMIN = "/api/v1/admin"

NEW_USER = {
    "email": "new@x.com",
    "password": "initial-pass",
    "firstName": "New",
    "lastName": "Person",
    "role": "educator",
}


@pytest.fixture
def admin_token(app, make_user):
    make_user(email="admin@x.com", role=Role.ADMIN)
    return login(app.test_client(), email="admin@x.com").get_json()["accessToken"]


@pytest.fixture
def super_admin_token(app, make_user):
    make_user(email="root@x.com", role=Role.SUPER_ADMIN)
    return login(app.test_client(), email="root@x.com").get_json()["accessToken"]


class TestCreateUser:
    def test_admin_creates_educator(self, client, admin_token):
        response = client.post(f"{ADMIN}/users", json=NEW_USER, headers=bearer(admin_token))

        assert response.status_code == 201
        user = response.get_json()["user"]
        assert user["role"] == "educator"
        assert user["mustChangePassword"] is True
        assert "Set-Cookie" not in response.headers

    def test_admin_cannot_create_admin(self, client, admin_token):
        response = client.post(f"{ADMIN}/users", json={**NEW_USER, "role": "admin"}, headers=bearer(admin_token))
        assert response.status_code == 403
        assert response.get_json()["code"] == "FORBIDDEN"

    def test_super_admin_creates_admin(self, client, super_admin_token):
        response = client.post(
            f"{ADMIN}/users", json={**NEW_USER, "role": "admin"}, headers=bearer(super_admin_token)
        )
        assert response.status_code == 201
        assert response.get_json()["user"]["role"] == "admin"

    def test_student_forbidden(self, app, client, make_user):
        make_user()
        token = login(app.test_client()).get_json()["accessToken"]
        response = client.post(f"{ADMIN}/users", json=NEW_USER, headers=bearer(token))
        assert response.status_code == 403

    def test_duplicate_email(self, client, admin_token):
        client.post(f"{ADMIN}/users", json=NEW_USER, headers=bearer(admin_token))
        response = client.post(f"{ADMIN}/users", json=NEW_USER, headers=bearer(admin_token))
        assert response.status_code == 409

    def test_invalid_role(self, client, admin_token):
        response = client.post(f"{ADMIN}/users", json={**NEW_USER, "role": "root"}, headers=bearer(admin_token))
        assert response.status_code == 400

    def test_must_change_password_survives_login_until_changed(self, app, client, admin_token):
        client.post(f"{ADMIN}/users", json=NEW_USER, headers=bearer(admin_token))

        user_client = app.test_client()
        body = login(user_client, email="new@x.com", password="initial-pass").get_json()
        assert body["user"]["mustChangePassword"] is True

        changed = user_client.post(
            f"{AUTH}/change-password",
            json={"oldPassword": "initial-pass", "newPassword": "chosen-by-me"},
            headers=bearer(body["accessToken"]),
        )
        assert changed.get_json()["user"]["mustChangePassword"] is False
        again = login(app.test_client(), email="new@x.com", password="chosen-by-me").get_json()
        assert again["user"]["mustChangePassword"] is False


class TestListUsers:
    def test_lists_active_users(self, client, admin_token, make_user):
        make_user(email="one@x.com")
        make_user(email="two@x.com")

        response = client.get(f"{ADMIN}/users?limit=2", headers=bearer(admin_token))

        assert response.status_code == 200
        body = response.get_json()
        assert body["meta"] == {"page": 1, "limit": 2, "total": 3}
        assert len(body["users"]) == 2
        assert all("passwordHash" not in u and "password_hash" not in u for u in body["users"])

    def test_bad_pagination(self, client, admin_token):
        response = client.get(f"{ADMIN}/users?page=abc", headers=bearer(admin_token))
        assert response.status_code == 400


class TestDeleteUser:
    def test_soft_delete_ends_sessions_and_login(self, app, client, admin_token, make_user):
        user_id = make_user()
        refresh_token = cookie_value(login(app.test_client()), "refresh_token")

        response = client.delete(f"{ADMIN}/users/{user_id}", headers=bearer(admin_token))

        assert response.status_code == 200
        assert login(app.test_client()).status_code == 401
        assert refresh_with(app, refresh_token).status_code == 401

    def test_unknown_user(self, client, admin_token):
        response = client.delete(f"{ADMIN}/users/missing", headers=bearer(admin_token))
        assert response.status_code == 404

    def test_admin_cannot_delete_super_admin(self, client, admin_token, make_user):
        target = make_user(email="boss@x.com", role=Role.SUPER_ADMIN)
        response = client.delete(f"{ADMIN}/users/{target}", headers=bearer(admin_token))
        assert response.status_code == 403

    def test_email_reusable_after_delete(self, app, client, admin_token, make_user):
        user_id = make_user(email="again@x.com")
        client.delete(f"{ADMIN}/users/{user_id}", headers=bearer(admin_token))
        response = app.test_client().post(
            f"{AUTH}/signup",
            json={"email": "again@x.com", "password": PASSWORD, "firstName": "A", "lastName": "B"},
        )
        assert response.status_code == 201
