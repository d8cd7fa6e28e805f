"""
/api/tasks 任务接口：全部需要登录

- GET    /api/tasks           列表（可按 status / priority 筛选，创建时间倒序）
- POST   /api/tasks           创建
- GET    /api/tasks/{id}      详情
- PUT    /api/tasks/{id}      部分更新
- DELETE /api/tasks/{id}      删除
"""

import enum

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tasknest.db.engine import get_db
from tasknest.db.models.task import TaskPriority, TaskStatus
from tasknest.errors import ValidationError
from tasknest.security.auth import CurrentUser, get_current_user
from tasknest.tasks.access import TaskAccessController
from tasknest.tasks.query import list_tasks
from tasknest.tasks.schemas import TaskCreate, TaskDeleted, TaskOut, TaskUpdate

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


def _parse_filter(name: str, raw: str | None, enum_cls: type[enum.Enum]):
    """空字符串等同于不筛选；其余取值必须是合法枚举值"""
    if raw is None or not raw.strip():
        return None
    try:
        return enum_cls(raw.strip())
    except ValueError:
        choices = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{name} must be one of: {choices}")


def get_access_controller(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> TaskAccessController:
    """FastAPI 依赖注入：先鉴权，再构造访问控制器"""
    return TaskAccessController(db, user)


@router.get("", response_model=list[TaskOut])
async def get_tasks(
    status: str | None = Query(default=None, description="按状态筛选，空值不筛选"),
    priority: str | None = Query(default=None, description="按优先级筛选，空值不筛选"),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return await list_tasks(
        db,
        user.id,
        status=_parse_filter("status", status, TaskStatus),
        priority=_parse_filter("priority", priority, TaskPriority),
    )


@router.post("", response_model=TaskOut, status_code=201)
async def create_task(
    body: TaskCreate,
    controller: TaskAccessController = Depends(get_access_controller),
):
    return await controller.create(body)


@router.get("/{task_id}", response_model=TaskOut)
async def get_task(
    task_id: str,
    controller: TaskAccessController = Depends(get_access_controller),
):
    return await controller.read(task_id)


@router.put("/{task_id}", response_model=TaskOut)
async def update_task(
    task_id: str,
    body: TaskUpdate,
    controller: TaskAccessController = Depends(get_access_controller),
):
    return await controller.update(task_id, body)


@router.delete("/{task_id}", response_model=TaskDeleted)
async def delete_task(
    task_id: str,
    controller: TaskAccessController = Depends(get_access_controller),
):
    deleted_id = await controller.delete(task_id)
    return TaskDeleted(message="Task deleted successfully", id=deleted_id)
