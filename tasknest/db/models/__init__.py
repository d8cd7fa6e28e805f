"""
模型统一导出：Alembic 自动发现需要导入所有模型
"""

from tasknest.db.models.base import Base
from tasknest.db.models.task import Task, TaskPriority, TaskStatus
from tasknest.db.models.user import User

__all__ = ["Base", "User", "Task", "TaskStatus", "TaskPriority"]
