"""
FastAPI 应用主入口
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app
from sqlalchemy import text

from tasknest.cache.redis_client import redis_client
from tasknest.config import get_settings
from tasknest.db.engine import create_all, engine
from tasknest.errors import register_exception_handlers
from tasknest.observability.logging_config import setup_logging
from tasknest.observability.metrics_middleware import MetricsMiddleware
from tasknest.observability.request_logger import RequestLoggerMiddleware

settings = get_settings()

# 初始化日志（在 import 时就生效）
setup_logging(env=settings.ENV, level=settings.LOG_LEVEL, db_echo=settings.DB_ECHO)
log = structlog.get_logger()


@asynccontextmanager
async def lifespan(application: FastAPI):
    """应用生命周期：启动时预检依赖服务，关闭时清理资源"""
    log.info("应用启动", env=settings.ENV, app=settings.APP_NAME)

    # ── Warm-up：Fail Fast，依赖不可用时拒绝启动 ──
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    log.info("数据库连接正常")

    if settings.DB_AUTO_CREATE:
        await create_all()
        log.info("数据表已就绪")

    await redis_client.ping()
    log.info("Redis 连接正常")

    yield

    # 关闭数据库连接池
    await engine.dispose()
    # 关闭 Redis 连接池
    await redis_client.aclose()
    log.info("应用关闭，资源已释放")


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    application = FastAPI(
        title=settings.APP_NAME,
        version="0.1.0",
        lifespan=lifespan,
    )

    # ── 中间件（执行顺序：从下往上注册，从上往下执行） ──
    application.add_middleware(RequestLoggerMiddleware)
    application.add_middleware(MetricsMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=True,  # 跨域携带会话 Cookie
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(application)

    # ── Prometheus 指标端点 ──
    application.mount("/metrics", make_asgi_app())

    # ── 路由注册 ──
    from tasknest.api.health import router as health_router
    from tasknest.api.tasks import router as tasks_router
    from tasknest.security.login import router as auth_router

    application.include_router(health_router)
    application.include_router(auth_router)
    application.include_router(tasks_router)

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("tasknest.main:app", host="0.0.0.0", port=settings.APP_PORT, reload=True)
