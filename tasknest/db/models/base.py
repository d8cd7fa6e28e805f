"""
SQLAlchemy 声明基类：所有模型继承此 Base
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    """应用侧时间戳（微秒精度，保证同一秒内创建的记录可排序）"""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """统一换算为 UTC；不带时区的值按 UTC 解释"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """带时区的时间列

    SQLite 不保存时区偏移，写入前先换算成 UTC，读出时再补上 UTC，
    两种后端读回的都是 aware datetime。
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return as_utc(value) if value is not None else None

    def process_result_value(self, value, dialect):
        return as_utc(value) if value is not None else None


class Base(DeclarativeBase):
    """声明基类"""

    __abstract__ = True
