from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from app.api.auth.auth import optional_auth, validate_resource_ownership
from app.api.deps import get_db
from app.models.user_model import User, UserRole
from app.models.token_model import PasswordResetToken
from main import app


def test_register_returns_token_and_user_without_password(client):
    response = client.post("/api/auth/register", json={
        "first_name": "Jane",
        "last_name": "Doe",
        "email": "Jane.Doe@example.com",
        "password": "secret123",
    })
    assert response.status_code == 201
    body = response.json()
    assert body["token"]
    assert body["user"]["email"] == "jane.doe@example.com"
    assert body["user"]["role"] == "member"
    assert "password" not in body["user"]


def test_register_duplicate_email_conflicts(client, make_user):
    make_user(email="taken@example.com")
    response = client.post("/api/auth/register", json={
        "first_name": "Other",
        "last_name": "User",
        "email": "taken@example.com",
        "password": "secret123",
    })
    assert response.status_code == 409


def test_register_rejects_short_password(client):
    response = client.post("/api/auth/register", json={
        "first_name": "Jane",
        "last_name": "Doe",
        "email": "short@example.com",
        "password": "123",
    })
    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"


def test_login_success_and_invalid_credentials(client, make_user):
    make_user(email="login@example.com", password="secret123")

    ok = client.post("/api/auth/login", json={"email": "login@example.com", "password": "secret123"})
    assert ok.status_code == 200
    assert ok.json()["user"]["email"] == "login@example.com"

    wrong = client.post("/api/auth/login", json={"email": "login@example.com", "password": "nope-nope"})
    assert wrong.status_code == 400
    assert wrong.json()["detail"] == "Invalid credentials"

    unknown = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "secret123"})
    assert unknown.status_code == 400
    assert unknown.json()["detail"] == "Invalid credentials"


def test_me_requires_token_and_strips_password(client, make_user, headers):
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"}).status_code == 401

    user = make_user()
    response = client.get("/api/auth/me", headers=headers(user))
    assert response.status_code == 200
    assert response.json()["user"]["id"] == user.id
    assert "password" not in response.json()["user"]


def test_inactive_user_token_is_rejected(client, make_user, headers):
    user = make_user(is_active=False)
    assert client.get("/api/auth/me", headers=headers(user)).status_code == 401


def test_update_profile_rejects_email_of_another_user(client, make_user, headers):
    make_user(email="first@example.com")
    user = make_user(email="second@example.com")

    taken = client.put("/api/auth/profile", headers=headers(user), json={
        "first_name": "Sec", "last_name": "Ond", "email": "first@example.com",
    })
    assert taken.status_code == 400

    ok = client.put("/api/auth/profile", headers=headers(user), json={
        "first_name": "Sec", "last_name": "Ond", "email": "second@example.com",
    })
    assert ok.status_code == 200
    assert ok.json()["user"]["first_name"] == "Sec"


def test_admin_users_listing_is_admin_only(client, make_user, headers):
    admin = make_user(role=UserRole.admin)
    manager = make_user(role=UserRole.manager)

    forbidden = client.get("/api/auth/admin/users", headers=headers(manager))
    assert forbidden.status_code == 403
    detail = forbidden.json()["detail"]
    assert detail["code"] == "INSUFFICIENT_PERMISSIONS"
    assert detail["required_roles"] == ["admin"]
    assert detail["user_role"] == "manager"

    allowed = client.get("/api/auth/admin/users", headers=headers(admin))
    assert allowed.status_code == 200
    assert len(allowed.json()["users"]) == 2


def test_forgot_password_answers_the_same_for_unknown_email(client, make_user, sent_emails):
    make_user(email="known@example.com")

    known = client.post("/api/auth/forgot-password", json={"email": "known@example.com"})
    unknown = client.post("/api/auth/forgot-password", json={"email": "unknown@example.com"})

    assert known.status_code == unknown.status_code == 200
    assert known.json()["message"] == unknown.json()["message"]
    assert len(sent_emails) == 1
    assert sent_emails[0]["email"] == "known@example.com"


def test_forgot_password_succeeds_when_email_delivery_fails(client, make_user, monkeypatch, db):
    from app.services import email_service

    def broken(*args, **kwargs):
        raise OSError("smtp down")

    monkeypatch.setattr(email_service, "send_password_reset_email", broken)
    user = make_user(email="unlucky@example.com")

    response = client.post("/api/auth/forgot-password", json={"email": "unlucky@example.com"})
    assert response.status_code == 200
    assert db.query(PasswordResetToken).filter(PasswordResetToken.user_id == user.id).count() == 1


def test_reset_token_is_stored_hashed_and_replaces_previous(client, make_user, sent_emails, db):
    user = make_user(email="reset@example.com")
    client.post("/api/auth/forgot-password", json={"email": "reset@example.com"})
    client.post("/api/auth/forgot-password", json={"email": "reset@example.com"})

    tokens = db.query(PasswordResetToken).filter(PasswordResetToken.user_id == user.id).all()
    assert len(tokens) == 1
    assert tokens[0].token != sent_emails[-1]["token"]
    assert len(tokens[0].token) == 64


def test_reset_password_flow_is_single_use(client, make_user, sent_emails, db):
    user = make_user(email="flow@example.com", password="oldpass1")
    client.post("/api/auth/forgot-password", json={"email": "flow@example.com"})
    token = sent_emails[-1]["token"]

    verify = client.get(f"/api/auth/reset-password/{token}/verify")
    assert verify.status_code == 200
    assert verify.json()["valid"] is True
    assert verify.json()["email"] == "flow@example.com"

    mismatch = client.post(f"/api/auth/reset-password/{token}", json={
        "password": "newpass1", "confirmPassword": "different",
    })
    assert mismatch.status_code == 400

    first = client.post(f"/api/auth/reset-password/{token}", json={
        "password": "newpass1", "confirmPassword": "newpass1",
    })
    assert first.status_code == 200
    assert first.json()["email"] == "flow@example.com"

    db.expire_all()
    hash_after_first = db.get(User, user.id).password

    second = client.post(f"/api/auth/reset-password/{token}", json={
        "password": "another1", "confirmPassword": "another1",
    })
    assert second.status_code == 400
    assert second.json()["detail"] == "Invalid or expired reset token"

    db.expire_all()
    assert db.get(User, user.id).password == hash_after_first

    login = client.post("/api/auth/login", json={"email": "flow@example.com", "password": "newpass1"})
    assert login.status_code == 200

    invalid = client.get(f"/api/auth/reset-password/{token}/verify")
    assert invalid.status_code == 400
    assert invalid.json()["detail"]["valid"] is False


def _dependency_app():
    side_app = FastAPI()
    side_app.dependency_overrides[get_db] = app.dependency_overrides[get_db]

    @side_app.get("/whoami")
    def whoami(user=Depends(optional_auth)):
        return {"id": user.id if user else None}

    @side_app.get("/users/{user_id}/private")
    def private(user=Depends(validate_resource_ownership)):
        return {"id": user.id}

    return TestClient(side_app)


def test_optional_auth_tolerates_missing_or_bad_token(make_user, headers):
    side_app = _dependency_app()
    user = make_user()
    assert side_app.get("/whoami").json() == {"id": None}
    assert side_app.get("/whoami", headers={"Authorization": "Bearer nope"}).json() == {"id": None}
    assert side_app.get("/whoami", headers=headers(user)).json() == {"id": user.id}


def test_resource_ownership(make_user, headers):
    side_app = _dependency_app()
    user = make_user()
    other = make_user()
    admin = make_user(role=UserRole.admin)

    assert side_app.get(f"/users/{user.id}/private", headers=headers(user)).status_code == 200
    assert side_app.get(f"/users/{user.id}/private", headers=headers(admin)).status_code == 200
    denied = side_app.get(f"/users/{user.id}/private", headers=headers(other))
    assert denied.status_code == 403
    assert denied.json()["detail"]["code"] == "RESOURCE_ACCESS_DENIED"
