"""
Memeflix Backend — Authentication Tests
========================================

What we test:
    ✅ Password hashing round trip and malformed hashes
    ✅ Token claims, expiry and tampering
    ✅ Register → 201, duplicate username/email → 409, bad input → 400
    ✅ Login success → token; wrong password / unknown user → 401
    ✅ /api/auth/me: no token 401, invalid or expired token 403
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from memeflix.config import settings
from memeflix.exceptions import ForbiddenError
from memeflix.models import User
from memeflix.services.auth_service import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


def make_token(**overrides) -> str:
    now = datetime.now(timezone.utc)
    payload = {"sub": "1", "username": "alice", "iat": now, "exp": now + timedelta(hours=1)}
    payload.update(overrides)
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


class TestPasswordHashing:

    def test_hash_and_verify(self):
        password_hash = hash_password("secret1")
        assert password_hash != "secret1"
        assert password_hash.startswith("$2")
        assert verify_password("secret1", password_hash) is True
        assert verify_password("secret2", password_hash) is False

    def test_hashes_are_salted(self):
        assert hash_password("secret1") != hash_password("secret1")

    def test_malformed_hash_never_matches(self):
        assert verify_password("secret1", "not-a-hash") is False


class TestTokens:

    def test_token_round_trip(self):
        user = User(id=42, username="alice", email="alice@example.com", password_hash="x")
        token, expires_in = create_access_token(user)

        payload = decode_access_token(token)
        assert payload["sub"] == "42"
        assert payload["username"] == "alice"
        assert expires_in == settings.jwt_expiration_minutes * 60

    def test_expired_token(self):
        token = make_token(exp=datetime.now(timezone.utc) - timedelta(seconds=5))
        with pytest.raises(ForbiddenError, match="expired"):
            decode_access_token(token)

    def test_wrong_signature(self):
        token = jwt.encode({"sub": "1", "exp": 9999999999}, "another-secret", algorithm="HS256")
        with pytest.raises(ForbiddenError):
            decode_access_token(token)

    def test_missing_subject(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"exp": now + timedelta(hours=1)}, settings.jwt_secret_key, algorithm=settings.jwt_algorithm
        )
        with pytest.raises(ForbiddenError):
            decode_access_token(token)

    def test_non_numeric_subject(self):
        with pytest.raises(ForbiddenError):
            decode_access_token(make_token(sub="alice"))


class TestAuthEndpoints:

    @pytest.mark.asyncio
    async def test_register(self, test_client):
        response = await test_client.post(
            "/api/auth/register",
            json={"username": "alice", "email": "alice@example.com", "password": "secret1"},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["user"]["username"] == "alice"
        assert "password" not in str(body)

    @pytest.mark.asyncio
    async def test_register_duplicate_username(self, test_client):
        payload = {"username": "alice", "email": "alice@example.com", "password": "secret1"}
        await test_client.post("/api/auth/register", json=payload)

        response = await test_client.post(
            "/api/auth/register", json={**payload, "email": "other@example.com"}
        )
        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, test_client):
        payload = {"username": "alice", "email": "alice@example.com", "password": "secret1"}
        await test_client.post("/api/auth/register", json=payload)

        response = await test_client.post("/api/auth/register", json={**payload, "username": "bob"})
        assert response.status_code == 409

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {"username": "al", "email": "al@example.com", "password": "secret1"},
        {"username": "alice", "email": "not-an-email", "password": "secret1"},
        {"username": "alice", "email": "alice@example.com", "password": "12345"},
        {"username": "alice", "email": "alice@example.com"},
    ])
    async def test_register_invalid_input(self, test_client, payload):
        response = await test_client.post("/api/auth/register", json=payload)
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_register_password_over_72_bytes(self, test_client):
        # 40 characters, 80 bytes in UTF-8
        response = await test_client.post(
            "/api/auth/register",
            json={"username": "alice", "email": "alice@example.com", "password": "é" * 40},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_register_multibyte_password_at_limit(self, test_client):
        password = "é" * 36
        registered = await test_client.post(
            "/api/auth/register",
            json={"username": "alice", "email": "alice@example.com", "password": password},
        )
        assert registered.status_code == 201

        response = await test_client.post(
            "/api/auth/login", json={"username": "alice", "password": password}
        )
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_login_returns_token(self, test_client):
        await test_client.post(
            "/api/auth/register",
            json={"username": "alice", "email": "alice@example.com", "password": "secret1"},
        )
        response = await test_client.post(
            "/api/auth/login", json={"username": "alice", "password": "secret1"}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["user"]["username"] == "alice"
        assert decode_access_token(body["access_token"])["username"] == "alice"

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, test_client):
        await test_client.post(
            "/api/auth/register",
            json={"username": "alice", "email": "alice@example.com", "password": "secret1"},
        )
        response = await test_client.post(
            "/api/auth/login", json={"username": "alice", "password": "wrong-one"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_login_unknown_user_same_message(self, test_client):
        await test_client.post(
            "/api/auth/register",
            json={"username": "alice", "email": "alice@example.com", "password": "secret1"},
        )
        wrong_password = await test_client.post(
            "/api/auth/login", json={"username": "alice", "password": "wrong-one"}
        )
        unknown_user = await test_client.post(
            "/api/auth/login", json={"username": "nobody", "password": "secret1"}
        )
        assert unknown_user.status_code == 401
        assert unknown_user.json()["message"] == wrong_password.json()["message"]

    @pytest.mark.asyncio
    async def test_me_with_token(self, test_client, auth_headers):
        headers = auth_headers
        response = await test_client.get("/api/auth/me", headers=headers)
        assert response.status_code == 200
        assert response.json()["username"] == "alice"

    @pytest.mark.asyncio
    async def test_me_without_token(self, test_client):
        response = await test_client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["error"] == "unauthenticated"

    @pytest.mark.asyncio
    async def test_me_with_garbage_token(self, test_client):
        response = await test_client.get(
            "/api/auth/me", headers={"Authorization": "Bearer not.a.token"}
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_me_with_expired_token(self, test_client, auth_headers):
        token = make_token(exp=datetime.now(timezone.utc) - timedelta(minutes=1))
        response = await test_client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_me_for_deleted_user(self, test_client):
        token = make_token(sub="12345")
        response = await test_client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 403
