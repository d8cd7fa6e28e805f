"""
用户模型
"""

import uuid
from datetime import datetime

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from uuid6 import uuid7

from tasknest.db.models.base import Base, UTCDateTime, utcnow


class User(Base):
    """用户表：注册时创建，本服务不做修改"""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid7)
    name: Mapped[str] = mapped_column(String(64), nullable=False, comment="显示名")
    email: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, comment="邮箱（小写存储）")
    hashed_pwd: Mapped[str] = mapped_column(String(256), nullable=False, comment="密码哈希")
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, comment="创建时间"
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, onupdate=utcnow, comment="更新时间"
    )

    tasks: Mapped[list["Task"]] = relationship(back_populates="owner", passive_deletes=True)  # noqa: F821
