# tests/test_auth.py
import pytest
from httpx import AsyncClient, ASGITransport

from jigz.services.auth import hash_password, verify_password


def test_password_hash_roundtrip():
    hashed = hash_password("secret123")
    assert hashed.startswith("pbkdf2_sha256$")
    assert verify_password("secret123", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("secret123", "garbage")


@pytest.mark.asyncio
async def test_signup_and_login(api):
    transport = ASGITransport(app=api)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        # Signup
        r = await ac.post(
            "/auth/signup",
            json={"username": "smoke", "email": "smoke@test.com", "name": "Smoke Test", "password": "secret123"},
        )
        assert r.status_code == 201
        data = r.json()
        assert "access_token" in data

        # New accounts start with the monthly allowance
        coins = await ac.get("/api/user/coins", headers={"Authorization": f"Bearer {data['access_token']}"})
        assert coins.json()["coins"] == 20

        # Login
        r2 = await ac.post("/auth/login", json={"email": "smoke@test.com", "password": "secret123"})
        assert r2.status_code == 200
        assert "access_token" in r2.json()

        bad = await ac.post("/auth/login", json={"email": "smoke@test.com", "password": "nope"})
        assert bad.status_code == 401

        dup = await ac.post(
            "/auth/signup",
            json={"username": "smoke", "email": "smoke@test.com", "name": "Again", "password": "secret123"},
        )
        assert dup.status_code == 400


@pytest.mark.asyncio
async def test_garbage_token_rejected(api):
    transport = ASGITransport(app=api)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        r = await ac.get("/api/user/coins", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
