"""
任务模型：每条任务归属唯一用户，owner 创建后不可变更
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Enum, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from uuid6 import uuid7

from tasknest.db.models.base import Base, UTCDateTime, utcnow


class TaskStatus(str, enum.Enum):
    INCOMPLETE = "incomplete"
    COMPLETED = "completed"


class TaskPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def _enum_column(enum_cls: type[enum.Enum], name: str) -> Enum:
    """以 value 落库的非原生枚举，写入未知值时直接报错"""
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        validate_strings=True,
        values_callable=lambda members: [m.value for m in members],
        length=16,
    )


class Task(Base):
    """任务表"""

    __tablename__ = "tasks"
    __table_args__ = (Index("ix_tasks_user_status", "user_id", "status"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid7)
    title: Mapped[str] = mapped_column(String(100), nullable=False, comment="标题")
    description: Mapped[str | None] = mapped_column(String(500), comment="描述")
    status: Mapped[TaskStatus] = mapped_column(
        _enum_column(TaskStatus, "task_status"),
        nullable=False,
        default=TaskStatus.INCOMPLETE,
        comment="状态: incomplete/completed",
    )
    priority: Mapped[TaskPriority] = mapped_column(
        _enum_column(TaskPriority, "task_priority"),
        nullable=False,
        default=TaskPriority.MEDIUM,
        comment="优先级: low/medium/high",
    )
    deadline: Mapped[datetime | None] = mapped_column(UTCDateTime, comment="截止时间")
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="所属用户ID",
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, nullable=False, comment="创建时间"
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False, comment="更新时间"
    )

    owner: Mapped["User"] = relationship(back_populates="tasks")  # noqa: F821
