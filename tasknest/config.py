"""
全局配置模块：通过 pydantic-settings 读取 .env 环境变量
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """应用全局配置，从 .env 文件加载"""

    model_config = SettingsConfigDict(
        env_file=Path(__file__).parent / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── 数据库 ──
    DATABASE_URL: str = "sqlite+aiosqlite:///./tasknest.db"
    DB_ECHO: bool = False  # 打印 SQL 日志，调试时可在 .env 设为 true
    DB_AUTO_CREATE: bool = True  # 启动时自动建表；生产环境走 Alembic 迁移时设为 false

    # ── 连接池（SQLite 忽略） ──
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # ── Redis（Token 黑名单） ──
    REDIS_URL: str = "redis://127.0.0.1:6379/0"
    REDIS_MAX_CONNECTIONS: int = 10

    # ── JWT ──
    JWT_SECRET: str = "dev-secret-change-me-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 43200  # 30 天

    # ── 会话 Cookie ──
    COOKIE_NAME: str = "token"
    COOKIE_SAMESITE: Literal["lax", "strict", "none"] = "strict"

    # ── 跨域 ──
    FRONTEND_URL: str = "http://localhost:3000"

    # ── 应用 ──
    ENV: str = "development"  # development | production
    APP_NAME: str = "tasknest"
    APP_PORT: int = 5000
    LOG_LEVEL: str = "INFO"  # DEBUG | INFO | WARNING | ERROR

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    @model_validator(mode="after")
    def _check_production_secret(self) -> "Settings":
        """生产环境强制要求配置安全的 JWT_SECRET"""
        if self.ENV == "production" and (
            self.JWT_SECRET.startswith("dev-") or len(self.JWT_SECRET) < 32
        ):
            raise ValueError(
                "生产环境 JWT_SECRET 不能使用默认值，"
                "且长度必须 >= 32 位。请在 .env 中配置安全的密钥。"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """单例获取配置（带缓存）"""
    return Settings()
