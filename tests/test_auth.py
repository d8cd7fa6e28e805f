"""认证与会话校验测试

测试内容：
1. 注册 / 登录下发 HttpOnly Cookie，响应不含密码哈希
2. Cookie 优先、Bearer 头兜底
3. 无 Token / 无效 Token / 过期 Token / 用户已删除 → 401
4. 注销后同一会话失效
"""

from datetime import datetime, timedelta, timezone

import jwt
from httpx import AsyncClient
from sqlalchemy import delete

from tasknest.cache.redis_client import RedisKeys
from tasknest.config import get_settings
from tasknest.db.engine import async_session
from tasknest.db.models import User

settings = get_settings()


def _expired_token(sub: str) -> str:
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    return jwt.encode(
        {"sub": sub, "jti": "expired-jti", "iat": past - timedelta(hours=1), "exp": past},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


class TestSignupAndLogin:
    async def test_signup_sets_cookie_and_returns_profile(self, client: AsyncClient):
        resp = await client.post(
            "/api/auth/signup",
            json={"name": "Alice", "email": "Alice@Example.com", "password": "secret123"},
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["name"] == "Alice"
        assert data["email"] == "alice@example.com"
        assert "id" in data
        assert "hashed_pwd" not in data
        assert "password" not in data

        set_cookie = resp.headers["set-cookie"].lower()
        assert f"{settings.COOKIE_NAME}=" in set_cookie
        assert "httponly" in set_cookie
        assert "samesite=" in set_cookie

    async def test_duplicate_email_rejected(self, client: AsyncClient):
        body = {"name": "Alice", "email": "dup@example.com", "password": "secret123"}
        assert (await client.post("/api/auth/signup", json=body)).status_code == 201

        resp = await client.post("/api/auth/signup", json={**body, "email": "DUP@example.com"})
        assert resp.status_code == 400
        assert resp.json()["message"] == "User already exists"

    async def test_signup_missing_fields_returns_400(self, client: AsyncClient):
        resp = await client.post("/api/auth/signup", json={"email": "x@example.com"})
        assert resp.status_code == 400
        assert "message" in resp.json()

    async def test_login_wrong_password_returns_401(self, make_user, make_client):
        _, user = await make_user()
        other = await make_client()
        resp = await other.post("/api/auth/login", json={"email": user["email"], "password": "wrong-pass"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid email or password"

    async def test_login_then_me_without_resupplying_credentials(self, make_user, make_client):
        _, user = await make_user()
        device = await make_client()

        resp = await device.post("/api/auth/login", json={"email": user["email"], "password": "secret123"})
        assert resp.status_code == 200
        assert resp.json()["id"] == user["id"]

        me = await device.get("/api/auth/me")
        assert me.status_code == 200
        assert me.json() == {"id": user["id"], "name": user["name"], "email": user["email"]}


class TestSessionVerifier:
    async def test_no_token_returns_401(self, client: AsyncClient):
        resp = await client.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.json()["message"] == "Not authorized, no token"

    async def test_invalid_token_returns_401(self, client: AsyncClient):
        resp = await client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Not authorized, invalid token"

    async def test_expired_token_returns_401(self, make_user, make_client):
        _, user = await make_user()
        other = await make_client()
        resp = await other.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {_expired_token(user['id'])}"}
        )
        assert resp.status_code == 401
        assert resp.json()["message"] == "Not authorized, invalid token"

    async def test_bearer_header_fallback(self, make_user, make_client):
        ac, user = await make_user()
        token = ac.cookies.get(settings.COOKIE_NAME)
        assert token

        legacy = await make_client()
        resp = await legacy.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json()["id"] == user["id"]

    async def test_cookie_takes_precedence_over_header(self, make_user):
        ac, user = await make_user()
        resp = await ac.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
        assert resp.status_code == 200
        assert resp.json()["id"] == user["id"]

    async def test_deleted_user_token_returns_401(self, make_user):
        ac, user = await make_user()
        async with async_session() as session:
            await session.execute(delete(User).where(User.email == user["email"]))
            await session.commit()

        resp = await ac.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.json()["message"] == "User not found"


class TestLogout:
    async def test_logout_invalidates_session(self, make_user):
        ac, _ = await make_user()
        assert (await ac.get("/api/auth/me")).status_code == 200

        resp = await ac.post("/api/auth/logout")
        assert resp.status_code == 200
        assert ac.cookies.get(settings.COOKIE_NAME) is None

        assert (await ac.get("/api/auth/me")).status_code == 401

    async def test_logout_revokes_token_for_bearer_clients(self, make_user, make_client, fake_redis):
        ac, _ = await make_user()
        token = ac.cookies.get(settings.COOKIE_NAME)

        assert (await ac.post("/api/auth/logout")).status_code == 200

        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        key = RedisKeys.token_blacklist(claims["jti"])
        assert key in fake_redis.store
        assert fake_redis.ttls[key] > 0

        legacy = await make_client()
        resp = await legacy.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Not authorized, token revoked"

    async def test_logout_requires_authentication(self, client: AsyncClient):
        resp = await client.post("/api/auth/logout")
        assert resp.status_code == 401
