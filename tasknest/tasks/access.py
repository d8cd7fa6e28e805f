"""
任务访问控制：系统唯一的授权策略

读 / 改 / 删一律先按 id 查存在性（不存在 → NotFound），
再比较 owner 与当前身份（不一致 → Forbidden）。创建时 owner 强制为当前身份。
"""

import uuid

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from tasknest.db.models.base import utcnow
from tasknest.db.models.task import Task, TaskPriority
from tasknest.errors import Forbidden, NotFound, ValidationError
from tasknest.observability.metrics import TASK_OPERATION_TOTAL
from tasknest.security.auth import CurrentUser
from tasknest.tasks.schemas import TaskCreate, TaskUpdate

log = structlog.get_logger()

# 各操作的越权提示语
_FORBIDDEN_MESSAGES = {
    "read": "Not authorized to view this task",
    "update": "Not authorized to update this task",
    "delete": "Not authorized to delete this task",
}


def _parse_task_id(task_id: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(task_id)
    except (ValueError, AttributeError, TypeError):
        return None


class TaskAccessController:
    """按请求实例化，持有本次请求的数据库会话与当前用户"""

    def __init__(self, db: AsyncSession, user: CurrentUser):
        self.db = db
        self.user = user

    async def get_owned(self, task_id: str, operation: str = "read") -> Task:
        """存在性检查 → 所有权检查，顺序固定"""
        parsed = _parse_task_id(task_id)
        task = await self.db.get(Task, parsed) if parsed is not None else None
        if task is None:
            TASK_OPERATION_TOTAL.labels(operation=operation, outcome="not_found").inc()
            raise NotFound("Task not found")

        if task.user_id != self.user.id:
            TASK_OPERATION_TOTAL.labels(operation=operation, outcome="forbidden").inc()
            log.warning("越权访问任务", task_id=task_id, operation=operation, owner_id=str(task.user_id))
            raise Forbidden(_FORBIDDEN_MESSAGES[operation])

        return task

    async def read(self, task_id: str) -> Task:
        task = await self.get_owned(task_id, "read")
        TASK_OPERATION_TOTAL.labels(operation="read", outcome="ok").inc()
        return task

    async def create(self, body: TaskCreate) -> Task:
        if not body.title:
            raise ValidationError("Please provide a task title")

        task = Task(
            title=body.title,
            description=body.description,
            priority=body.priority or TaskPriority.MEDIUM,
            deadline=body.deadline,
            user_id=self.user.id,
        )
        self.db.add(task)
        await self.db.commit()

        TASK_OPERATION_TOTAL.labels(operation="create", outcome="ok").inc()
        log.info("任务已创建", task_id=str(task.id))
        return task

    async def update(self, task_id: str, body: TaskUpdate) -> Task:
        task = await self.get_owned(task_id, "update")

        changes = body.changes()
        for field, value in changes.items():
            setattr(task, field, value)
        # 空更新也刷新修改时间，与"每次写入都刷新"保持一致
        task.updated_at = utcnow()
        await self.db.commit()

        TASK_OPERATION_TOTAL.labels(operation="update", outcome="ok").inc()
        log.info("任务已更新", task_id=task_id, fields=sorted(changes))
        return task

    async def delete(self, task_id: str) -> uuid.UUID:
        task = await self.get_owned(task_id, "delete")
        deleted_id = task.id

        await self.db.delete(task)
        await self.db.commit()

        TASK_OPERATION_TOTAL.labels(operation="delete", outcome="ok").inc()
        log.info("任务已删除", task_id=task_id)
        return deleted_id
