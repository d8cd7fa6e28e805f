"""
JWT 鉴权模块：Token 签发 / 提取 / 校验 / 黑名单检查

Token 优先从 HttpOnly Cookie 读取，兼容旧客户端的 Authorization: Bearer 头。
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
import redis.asyncio as aioredis
import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from tasknest.cache.redis_client import RedisKeys, get_redis
from tasknest.config import get_settings
from tasknest.db.engine import get_db
from tasknest.db.models.user import User
from tasknest.errors import Unauthenticated
from tasknest.observability.context import bind_user

settings = get_settings()
log = structlog.get_logger()
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    """鉴权后的用户上下文（不含密码哈希），贯穿整个请求生命周期"""

    id: uuid.UUID
    name: str
    email: str

    @classmethod
    def from_model(cls, user: User) -> "CurrentUser":
        return cls(id=user.id, name=user.name, email=user.email)


def create_access_token(*, sub: str) -> str:
    """签发 access_token"""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": sub,
        "jti": str(uuid.uuid4()),
        "iat": now,
        "exp": now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def extract_token(request: Request, credentials: HTTPAuthorizationCredentials | None) -> str | None:
    """Cookie 优先，Bearer 头兜底"""
    token = request.cookies.get(settings.COOKIE_NAME)
    if token:
        return token
    if credentials is not None:
        return credentials.credentials
    return None


def decode_token(token: str) -> dict:
    """校验签名与过期时间，失败统一抛 Unauthenticated"""
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.InvalidTokenError as e:
        # ExpiredSignatureError 也是 InvalidTokenError 的子类
        log.info("Token 校验失败", reason=type(e).__name__)
        raise Unauthenticated("Not authorized, invalid token")


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> CurrentUser:
    """FastAPI 依赖注入：校验 JWT 并返回用户上下文"""
    # 1. 提取 Token
    token = extract_token(request, credentials)
    if not token:
        raise Unauthenticated("Not authorized, no token")

    # 2. 解码 JWT
    payload = decode_token(token)
    try:
        user_id = uuid.UUID(str(payload["sub"]))
    except ValueError:
        raise Unauthenticated("Not authorized, invalid token")

    # 3. 检查黑名单（已注销的 Token）
    jti = payload.get("jti")
    if jti and await redis.exists(RedisKeys.token_blacklist(jti)):
        raise Unauthenticated("Not authorized, token revoked")

    # 4. 解析用户（用户已被删除时视为过期会话）
    user = await db.get(User, user_id)
    if user is None:
        raise Unauthenticated("User not found")

    # 注销接口需要 jti / exp
    request.state.token_claims = payload
    bind_user(str(user.id))
    return CurrentUser.from_model(user)
