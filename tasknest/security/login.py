"""
认证接口：注册 / 登录 / 注销 / 当前用户

Token 通过 HttpOnly Cookie 下发，同时在响应体中返回供旧版 Bearer 客户端使用。
"""

import uuid
from datetime import datetime, timezone

import bcrypt
import redis.asyncio as aioredis
import structlog
from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tasknest.cache.redis_client import RedisKeys, get_redis
from tasknest.config import get_settings
from tasknest.db.engine import get_db
from tasknest.db.models.user import User
from tasknest.errors import Unauthenticated, ValidationError
from tasknest.observability.metrics import AUTH_TOTAL
from tasknest.security.auth import CurrentUser, create_access_token, get_current_user

router = APIRouter(prefix="/api/auth", tags=["auth"])
log = structlog.get_logger()
settings = get_settings()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """校验密码"""
    return bcrypt.checkpw(plain_password.encode(), hashed_password.encode())


def hash_password(password: str) -> str:
    """生成密码哈希"""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


# ── 请求/响应模型 ──

class SignupRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=64)
    email: EmailStr
    password: str = Field(min_length=6, max_length=72)  # bcrypt 只取前 72 字节

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class LoginRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class UserProfile(BaseModel):
    id: uuid.UUID
    name: str
    email: str


class AuthResponse(UserProfile):
    token: str


# ── Cookie 工具 ──

def _cookie_options() -> dict:
    return {
        "httponly": True,
        "secure": settings.is_production or settings.COOKIE_SAMESITE == "none",
        "samesite": settings.COOKIE_SAMESITE,
        "path": "/",
    }


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        settings.COOKIE_NAME,
        token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        **_cookie_options(),
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(settings.COOKIE_NAME, **_cookie_options())


def _auth_response(user: User, token: str) -> AuthResponse:
    return AuthResponse(id=user.id, name=user.name, email=user.email, token=token)


# ── 接口 ──

@router.post("/signup", response_model=AuthResponse, status_code=201)
async def signup(body: SignupRequest, response: Response, db: AsyncSession = Depends(get_db)):
    """用户注册：邮箱唯一，注册成功即登录"""
    result = await db.execute(select(User).where(User.email == body.email))
    if result.scalar_one_or_none() is not None:
        AUTH_TOTAL.labels(event="signup", outcome="duplicate").inc()
        raise ValidationError("User already exists")

    user = User(name=body.name, email=body.email, hashed_pwd=hash_password(body.password))
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # 并发注册同一邮箱，唯一约束兜底
        await db.rollback()
        AUTH_TOTAL.labels(event="signup", outcome="duplicate").inc()
        raise ValidationError("User already exists")

    token = create_access_token(sub=str(user.id))
    set_session_cookie(response, token)

    AUTH_TOTAL.labels(event="signup", outcome="ok").inc()
    log.info("用户注册成功", user_id=str(user.id))
    return _auth_response(user, token)


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, response: Response, db: AsyncSession = Depends(get_db)):
    """用户登录：校验密码，签发 JWT 并写入 Cookie"""
    result = await db.execute(select(User).where(User.email == body.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(body.password, user.hashed_pwd):
        AUTH_TOTAL.labels(event="login", outcome="rejected").inc()
        raise Unauthenticated("Invalid email or password")

    token = create_access_token(sub=str(user.id))
    set_session_cookie(response, token)

    AUTH_TOTAL.labels(event="login", outcome="ok").inc()
    log.info("用户登录成功", user_id=str(user.id))
    return _auth_response(user, token)


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    user: CurrentUser = Depends(get_current_user),
    redis_conn: aioredis.Redis = Depends(get_redis),
):
    """注销：清除 Cookie，并将当前 Token 加入黑名单"""
    claims = getattr(request.state, "token_claims", {})
    jti = claims.get("jti")
    exp = claims.get("exp")
    if jti and exp:
        # 黑名单 TTL = token 剩余有效时间
        ttl = max(int(exp - datetime.now(timezone.utc).timestamp()), 1)
        await redis_conn.setex(RedisKeys.token_blacklist(jti), ttl, "1")

    clear_session_cookie(response)

    AUTH_TOTAL.labels(event="logout", outcome="ok").inc()
    log.info("用户注销", user_id=str(user.id))
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=UserProfile)
async def me(user: CurrentUser = Depends(get_current_user)):
    """当前登录用户信息"""
    return UserProfile(id=user.id, name=user.name, email=user.email)
