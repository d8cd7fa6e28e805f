"""
任务列表查询构造

始终限定为调用者自己的任务；status / priority 为可选的精确匹配条件。
按创建时间倒序，创建时间相同时按插入顺序（UUIDv7 主键单调递增）。
"""

import uuid

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from tasknest.db.models.task import Task, TaskPriority, TaskStatus


def build_task_query(
    user_id: uuid.UUID,
    status: TaskStatus | None = None,
    priority: TaskPriority | None = None,
) -> Select[tuple[Task]]:
    """构造任务列表查询；未提供的条件不做限制"""
    stmt = select(Task).where(Task.user_id == user_id)
    if status is not None:
        stmt = stmt.where(Task.status == status)
    if priority is not None:
        stmt = stmt.where(Task.priority == priority)
    return stmt.order_by(Task.created_at.desc(), Task.id.asc())


async def list_tasks(
    db: AsyncSession,
    user_id: uuid.UUID,
    status: TaskStatus | None = None,
    priority: TaskPriority | None = None,
) -> list[Task]:
    """返回全部匹配任务（不分页）"""
    result = await db.execute(build_task_query(user_id, status, priority))
    return list(result.scalars().all())
