"""
健康检查接口：探活 + 依赖服务状态
"""

import redis.asyncio as aioredis
import structlog
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from tasknest.cache.redis_client import get_redis
from tasknest.db.engine import get_db

router = APIRouter(tags=["health"])
log = structlog.get_logger()


@router.get("/")
async def root():
    """存活探针"""
    return {"message": "Task Manager API is running"}


@router.get("/health")
async def health_check(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
):
    """健康检查：校验数据库 + Redis 连接"""
    status = {"status": "ok", "database": "ok", "redis": "ok"}

    # 检查数据库
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        status["database"] = f"error: {e}"
        status["status"] = "degraded"
        log.error("数据库健康检查失败", error=str(e))

    # 检查 Redis
    try:
        await redis.ping()
    except Exception as e:
        status["redis"] = f"error: {e}"
        status["status"] = "degraded"
        log.error("Redis 健康检查失败", error=str(e))

    return status
