"""
Integration tests for user authentication and account endpoints.

Tests:
- Signup, login and logout (body token and jwt cookie)
- Token invalidation after a password change
- Forgot / reset password flow and mail failures
- Own-profile updates and deactivation
- Account administration and role restrictions
"""

from datetime import timedelta
from pathlib import Path

from jose import jwt

from jobboard.core.config import settings
from jobboard.core.security import utcnow
from jobboard.core.storage import key_from_path
from jobboard.models.user import DEFAULT_PHOTO, User, UserRole
from conftest import PASSWORD, auth_headers_for

USERS = "/api/v1/users"


def signup_payload(**overrides):
    payload = {
        "name": "Mona Adel",
        "email": "Mona@Example.com",
        "phone": "+201001234567",
        "password": PASSWORD,
        "passwordConfirm": PASSWORD,
    }
    payload.update(overrides)
    return payload


def login(client, email, password=PASSWORD):
    return client.post(f"{USERS}/login", json={"email": email, "password": password})


class TestSignupAndLogin:
    """Test account creation and token issuance"""

    def test_signup_creates_regular_user(self, client, outbox):
        response = client.post(f"{USERS}/signup", json=signup_payload(role="admin"))

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "success"
        assert body["token"]
        user = body["data"]["user"]
        assert user["email"] == "mona@example.com"
        assert user["role"] == "user"
        assert user["slug"] == "mona-adel"
        assert user["photo"] == DEFAULT_PHOTO
        assert "passwordHash" not in user
        assert "jwt" in response.cookies

        assert outbox[0][0] == "send_welcome_email_task"
        assert outbox[0][1]["to_email"] == "mona@example.com"

    def test_signup_password_mismatch(self, client):
        response = client.post(f"{USERS}/signup", json=signup_payload(passwordConfirm="Different123"))

        assert response.status_code == 400
        assert response.json()["errors"]["passwordConfirm"] == ["Password and Confirm Password do not match."]

    def test_signup_duplicate_email(self, client, user):
        response = client.post(f"{USERS}/signup", json=signup_payload(email=user.email))

        assert response.status_code == 400
        assert user.email in response.json()["errors"]["email"][0]

    def test_login_and_cookie_session(self, client, user):
        response = login(client, user.email)

        assert response.status_code == 200
        assert response.json()["data"]["user"]["id"] == user.id

        me = client.get(f"{USERS}/me")
        assert me.status_code == 200
        assert me.json()["data"]["data"]["email"] == user.email

    def test_login_wrong_password(self, client, user):
        response = login(client, user.email, "WrongPass999")

        assert response.status_code == 401
        assert response.json()["errors"]["error"] == ["Incorrect email or password"]

    def test_logout_clears_cookie_session(self, client, user):
        login(client, user.email)

        response = client.post(f"{USERS}/logout")

        assert response.status_code == 200
        assert response.cookies["jwt"] == "loggedout"
        assert client.get(f"{USERS}/me").status_code == 401

    def test_me_requires_token(self, client):
        response = client.get(f"{USERS}/me")

        assert response.status_code == 401
        assert response.json()["errors"]["error"] == ["You are not logged in! Please log in to get access."]

    def test_invalid_token(self, client):
        response = client.get(f"{USERS}/me", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401
        assert response.json()["errors"]["error"] == ["Invalid Token, please login again!"]


class TestPasswordChanges:
    """Test password updates and reset tokens"""

    def test_update_password_rejects_wrong_current(self, client, user_headers):
        response = client.patch(
            f"{USERS}/updateMyPassword",
            json={"passwordCurrent": "Nope12345", "password": "NewSecret123", "passwordConfirm": "NewSecret123"},
            headers=user_headers,
        )

        assert response.status_code == 401
        assert response.json()["errors"]["error"] == ["Your current password is wrong."]

    def test_token_issued_before_change_is_rejected(self, client, user, user_headers):
        issued = utcnow() - timedelta(hours=1)
        old_token = jwt.encode(
            {"sub": str(user.id), "iat": int(issued.timestamp()), "exp": utcnow() + timedelta(hours=1)},
            settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
        )

        response = client.patch(
            f"{USERS}/updateMyPassword",
            json={"passwordCurrent": PASSWORD, "password": "NewSecret123", "passwordConfirm": "NewSecret123"},
            headers=user_headers,
        )
        assert response.status_code == 200
        new_token = response.json()["token"]

        stale = client.get(f"{USERS}/me", headers={"Authorization": f"Bearer {old_token}"})
        assert stale.status_code == 401
        assert stale.json()["errors"]["error"] == ["User recently changed password! Please log in again."]

        fresh = client.get(f"{USERS}/me", headers={"Authorization": f"Bearer {new_token}"})
        assert fresh.status_code == 200

    def test_forgot_and_reset_password(self, client, db_session, user, outbox):
        response = client.post(f"{USERS}/forgotPassword", json={"email": user.email})

        assert response.status_code == 200
        assert response.json()["message"] == "Token sent to email!"
        kind, kwargs = outbox[-1]
        assert kind == "password_reset"
        token = kwargs["reset_url"].rsplit("/", 1)[1]

        db_session.refresh(user)
        assert user.password_reset_token != token

        response = client.patch(
            f"{USERS}/resetPassword/{token}",
            json={"password": "ResetSecret123", "passwordConfirm": "ResetSecret123"},
        )
        assert response.status_code == 200
        assert response.json()["token"]
        assert login(client, user.email, "ResetSecret123").status_code == 200

        # Single use
        again = client.patch(
            f"{USERS}/resetPassword/{token}",
            json={"password": "Another12345", "passwordConfirm": "Another12345"},
        )
        assert again.status_code == 400
        assert again.json()["errors"]["error"] == ["Token is invalid or has expired"]

    def test_expired_reset_token(self, client, db_session, user, outbox):
        client.post(f"{USERS}/forgotPassword", json={"email": user.email})
        token = outbox[-1][1]["reset_url"].rsplit("/", 1)[1]

        db_session.refresh(user)
        user.password_reset_expires = utcnow() - timedelta(minutes=1)
        db_session.commit()

        response = client.patch(
            f"{USERS}/resetPassword/{token}",
            json={"password": "ResetSecret123", "passwordConfirm": "ResetSecret123"},
        )
        assert response.status_code == 400

    def test_forgot_password_unknown_email(self, client):
        response = client.post(f"{USERS}/forgotPassword", json={"email": "nobody@example.com"})

        assert response.status_code == 404
        assert response.json()["errors"]["error"] == ["There is no user with that email address."]

    def test_mail_failure_clears_token(self, client, db_session, user, outbox):
        outbox.fail = True

        response = client.post(f"{USERS}/forgotPassword", json={"email": user.email})

        assert response.status_code == 500
        assert response.json()["errors"]["error"] == [
            "There was an error sending the email. Try again later!"
        ]
        db_session.refresh(user)
        assert user.password_reset_token is None
        assert user.password_reset_expires is None


class TestOwnProfile:
    """Test /updateMe and /deleteMe"""

    def test_update_me_rejects_password(self, client, user_headers):
        response = client.patch(
            f"{USERS}/updateMe",
            json={"password": "NewSecret123", "passwordConfirm": "NewSecret123"},
            headers=user_headers,
        )

        assert response.status_code == 400
        assert response.json()["errors"]["error"] == [
            "This route is not for password updates. Please use /updateMyPassword."
        ]

    def test_update_me_rejects_password_before_storing_photo(
        self, client, db_session, user, user_headers, image_storage, image_bytes
    ):
        response = client.patch(
            f"{USERS}/updateMe",
            data={"password": "NewSecret123"},
            files=[("photo", ("me.png", image_bytes(), "image/png"))],
            headers=user_headers,
        )

        assert response.status_code == 400
        assert list(Path(image_storage.base_dir).rglob("*.jpeg")) == []
        db_session.refresh(user)
        assert user.photo == DEFAULT_PHOTO


    def test_update_me_ignores_protected_fields(self, client, user, user_headers):
        response = client.patch(
            f"{USERS}/updateMe",
            json={"name": "Renamed Person", "role": "admin", "active": False},
            headers=user_headers,
        )

        assert response.status_code == 200
        record = response.json()["data"]["data"]
        assert record["name"] == "Renamed Person"
        assert record["slug"] == "renamed-person"
        assert record["role"] == "user"
        assert record["active"] is True

    def test_update_me_with_photo(self, client, user, user_headers, image_storage, image_bytes):
        response = client.patch(
            f"{USERS}/updateMe",
            data={"country": "Egypt"},
            files=[("photo", ("me.png", image_bytes(), "image/png"))],
            headers=user_headers,
        )

        assert response.status_code == 200
        record = response.json()["data"]["data"]
        assert record["country"] == "Egypt"
        assert record["photo"].startswith(f"/images/users/users-photo-{user.id}-")
        first_photo = record["photo"]
        assert image_storage.file_exists(key_from_path(first_photo))

        response = client.patch(
            f"{USERS}/updateMe",
            files=[("photo", ("me2.png", image_bytes(), "image/png"))],
            headers=user_headers,
        )
        second_photo = response.json()["data"]["data"]["photo"]
        assert second_photo != first_photo
        assert not image_storage.file_exists(key_from_path(first_photo))
        assert image_storage.file_exists(key_from_path(second_photo))

    def test_delete_me_deactivates(self, client, db_session, user, user_headers):
        response = client.delete(f"{USERS}/deleteMe", headers=user_headers)

        assert response.status_code == 204
        db_session.refresh(user)
        assert user.active is False

        assert client.get(f"{USERS}/me", headers=user_headers).status_code == 401
        assert login(client, user.email).status_code == 401


class TestAdministration:
    """Test staff-only account management"""

    def test_regular_user_cannot_list(self, client, user_headers):
        assert client.get(f"{USERS}/", headers=user_headers).status_code == 403

    def test_user_list_only_contains_users(self, client, user, admin, dev, admin_headers):
        body = client.get(f"{USERS}/", headers=admin_headers).json()

        assert body["total"] == 1
        assert body["data"][0]["id"] == user.id

    def test_admin_lists(self, client, user, admin, dev, admin_headers):
        admins = client.get(f"{USERS}/admins", headers=admin_headers).json()
        assert [item["id"] for item in admins["data"]] == [admin.id]

        all_admins = client.get(f"{USERS}/all/admins", headers=admin_headers).json()
        assert all_admins["results"] == 1

    def test_all_users_excludes_dev(self, client, user, admin, dev, admin_headers):
        body = client.get(f"{USERS}/all", headers=admin_headers).json()

        ids = {item["id"] for item in body["data"]}
        assert ids == {user.id, admin.id}

    def test_create_route_points_to_signup(self, client, admin_headers):
        response = client.post(f"{USERS}/", json={}, headers=admin_headers)

        assert response.status_code == 500
        assert response.json()["errors"]["error"] == ["This route is not defined! Please use /signup instead"]

    def test_create_admin(self, client, admin_headers):
        response = client.post(
            f"{USERS}/admin",
            json=signup_payload(name="Second Admin", email="second.admin@example.com"),
            headers=admin_headers,
        )

        assert response.status_code == 201
        assert response.json()["data"]["data"]["role"] == "admin"

    def test_admin_updates_and_deletes_user(self, client, db_session, user, admin_headers):
        response = client.patch(f"{USERS}/{user.id}", json={"active": False}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["data"]["data"]["active"] is False

        response = client.delete(f"{USERS}/{user.id}", headers=admin_headers)
        assert response.status_code == 200
        assert db_session.get(User, user.id) is None

    def test_delete_all_keeps_dev_accounts(self, client, db_session, user, admin, dev, admin_headers, dev_headers):
        assert client.delete(f"{USERS}/delete-all", headers=admin_headers).status_code == 403

        response = client.delete(f"{USERS}/delete-all", headers=dev_headers)

        assert response.status_code == 200
        db_session.expire_all()
        assert [u.role for u in db_session.query(User).all()] == [UserRole.DEV]

    def test_delete_all_removes_user_photos(
        self, client, db_session, user, user_headers, dev, dev_headers, image_storage, image_bytes
    ):
        response = client.patch(
            f"{USERS}/updateMe",
            files=[("photo", ("me.png", image_bytes(), "image/png"))],
            headers=user_headers,
        )
        photo = response.json()["data"]["data"]["photo"]
        assert image_storage.file_exists(key_from_path(photo))

        response = client.delete(f"{USERS}/delete-all", headers=dev_headers)

        assert response.status_code == 200
        assert not image_storage.file_exists(key_from_path(photo))


    def test_deleted_user_token_rejected(self, client, db_session, make_user):
        doomed = make_user()
        headers = auth_headers_for(doomed)
        db_session.delete(doomed)
        db_session.commit()

        response = client.get(f"{USERS}/me", headers=headers)

        assert response.status_code == 401
        assert response.json()["errors"]["error"] == [
            "The user belonging to this token does no longer exist."
        ]
