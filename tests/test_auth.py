# tests/test_auth.py

from datetime import timedelta

import pytest

import auth
from config import settings
from errors import AuthError, ConfigError, ConflictError, ValidationError

ADA = {"name": "Ada", "email": "ada@example.com", "password": "s3cret!"}


def test_register_then_login_issues_accepted_token(client):
    r = client.post("/api/auth/register", json=ADA)
    assert r.status_code == 200
    body = r.json()
    assert body["user"]["email"] == ADA["email"]
    assert body["user"]["name"] == "Ada"
    assert "password" not in body["user"]

    r = client.post("/api/auth/login", json={"email": ADA["email"], "password": ADA["password"]})
    assert r.status_code == 200
    token = r.json()["token"]

    data = auth.authenticate(token)
    assert data.email == ADA["email"]
    assert data.user_id == body["user"]["id"]


def test_password_is_stored_hashed(db):
    auth.register(db, **ADA)
    import models
    user = db.query(models.User).filter(models.User.email == ADA["email"]).one()
    assert user.hashed_password != ADA["password"]
    assert auth.verify_password(ADA["password"], user.hashed_password)


@pytest.mark.parametrize("missing", ["name", "email", "password"])
def test_register_requires_every_field(client, missing):
    payload = dict(ADA)
    payload.pop(missing)
    r = client.post("/api/auth/register", json=payload)
    assert r.status_code == 400
    assert r.json() == {"error": "All fields are required"}


def test_register_rejects_blank_name(db):
    with pytest.raises(ValidationError):
        auth.register(db, "   ", "ada@example.com", "pw")


def test_register_duplicate_email_conflicts(client):
    assert client.post("/api/auth/register", json=ADA).status_code == 200
    r = client.post("/api/auth/register", json=dict(ADA, name="Other"))
    assert r.status_code == 400
    assert r.json() == {"error": "Email already in use"}


def test_register_duplicate_raises_conflict_error(db):
    auth.register(db, **ADA)
    with pytest.raises(ConflictError):
        auth.register(db, **ADA)


def test_login_failures_are_indistinguishable(client):
    client.post("/api/auth/register", json=ADA)
    wrong_pw = client.post("/api/auth/login", json={"email": ADA["email"], "password": "nope"})
    unknown = client.post("/api/auth/login", json={"email": "who@example.com", "password": "nope"})

    assert wrong_pw.status_code == unknown.status_code == 400
    assert wrong_pw.json() == unknown.json() == {"error": "Invalid email or password"}


def test_expired_token_is_rejected():
    token = auth.create_access_token({"id": 1, "email": "a@b.c"}, expires_delta=timedelta(seconds=-5))
    with pytest.raises(AuthError):
        auth.authenticate(token)


def test_token_signed_with_other_secret_is_rejected(monkeypatch):
    token = auth.create_access_token({"id": 1, "email": "a@b.c"})
    monkeypatch.setattr(settings, "jwt_secret", "another-secret")
    with pytest.raises(AuthError):
        auth.authenticate(token)


@pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
def test_missing_or_malformed_token_is_rejected(token):
    with pytest.raises(AuthError) as exc:
        auth.authenticate(token)
    assert exc.value.status_code == 401


def test_token_without_identity_claims_is_rejected():
    token = auth.create_access_token({"sub": "x"})
    with pytest.raises(AuthError):
        auth.authenticate(token)


def test_missing_secret_is_config_error(monkeypatch):
    monkeypatch.setattr(settings, "jwt_secret", "")
    with pytest.raises(ConfigError):
        auth.create_access_token({"id": 1, "email": "a@b.c"})


def test_protected_route_without_token(client):
    r = client.post("/api/chat", json={"message": "hi"})
    assert r.status_code == 401
    assert r.json() == {"error": "No token, authorization denied"}


def test_protected_route_with_bad_token(client):
    r = client.post("/api/chat", json={"message": "hi"}, headers={"Authorization": "Bearer junk"})
    assert r.status_code == 401
    assert r.json() == {"error": "Token is not valid"}


def test_mixed_case_email_registers_and_logs_in(client):
    creds = {"name": "Ada", "email": "Ada@Example.COM", "password": "s3cret!"}
    r = client.post("/api/auth/register", json=creds)
    assert r.status_code == 200
    assert r.json()["user"]["email"] == "ada@example.com"

    r = client.post("/api/auth/login", json={"email": creds["email"], "password": creds["password"]})
    assert r.status_code == 200
    assert auth.authenticate(r.json()["token"]).email == "ada@example.com"

    r = client.post("/api/auth/login", json={"email": " ada@example.com ", "password": creds["password"]})
    assert r.status_code == 200


def test_email_case_variants_are_one_account(client):
    assert client.post("/api/auth/register", json=dict(ADA, email="Ada@Example.COM")).status_code == 200
    r = client.post("/api/auth/register", json=dict(ADA, email="ada@example.com"))
    assert r.status_code == 400
    assert r.json() == {"error": "Email already in use"}
