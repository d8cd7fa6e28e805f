"""
客户端任务看板：服务端任务列表的本地镜像

状态只有三块：完整任务列表、筛选条件、最近一次错误。
可见列表由 filter_tasks() 根据状态整体重算，不做增量维护。
所有写操作都在服务端确认后才修改本地列表；失败时本地不变，错误信息原样保存在 error。

同一任务的并发编辑按请求序号处理：只接受该任务最近一次发出的请求的响应，
更早发出但更晚返回的响应直接丢弃。
"""

import itertools
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Literal

import structlog

from tasknest.client.api_client import ApiError, TaskApiClient
from tasknest.tasks.schemas import TaskOut

log = structlog.get_logger()

StatusFilter = Literal["all", "completed", "incomplete"]
PriorityFilter = Literal["all", "low", "medium", "high"]

_STATUS_CHOICES = ("all", "completed", "incomplete")
_PRIORITY_CHOICES = ("all", "low", "medium", "high")


@dataclass(frozen=True)
class TaskFilters:
    status: StatusFilter = "all"
    priority: PriorityFilter = "all"
    search: str = ""


def filter_tasks(tasks: list[TaskOut], filters: TaskFilters) -> list[TaskOut]:
    """按 状态 → 优先级 → 关键字 顺序过滤，关键字对标题和描述做不区分大小写的子串匹配"""
    result = list(tasks)

    if filters.status != "all":
        result = [t for t in result if t.status == filters.status]

    if filters.priority != "all":
        result = [t for t in result if t.priority == filters.priority]

    if filters.search:
        needle = filters.search.lower()
        result = [
            t
            for t in result
            if needle in t.title.lower() or (t.description and needle in t.description.lower())
        ]

    return result


def is_overdue(task: TaskOut, now: datetime | None = None) -> bool:
    """未完成且截止时间已过"""
    if task.deadline is None or task.status != "incomplete":
        return False
    now = now or datetime.now(timezone.utc)
    deadline = task.deadline
    if deadline.tzinfo is None:
        deadline = deadline.replace(tzinfo=timezone.utc)
    return deadline < now


class TaskBoard:
    def __init__(self, api: TaskApiClient) -> None:
        self.api = api
        self.tasks: list[TaskOut] = []
        self.filters = TaskFilters()
        self.error: str | None = None
        self.loading = False
        self._seq = itertools.count(1)
        self._latest: dict[str, int] = {}  # task_id -> 最近一次发出的请求序号

    # ── 派生视图 ──

    @property
    def visible(self) -> list[TaskOut]:
        return filter_tasks(self.tasks, self.filters)

    def stats(self) -> dict[str, int]:
        completed = sum(1 for t in self.tasks if t.status == "completed")
        return {
            "total": len(self.tasks),
            "completed": completed,
            "incomplete": len(self.tasks) - completed,
        }

    def find(self, task_id: str) -> TaskOut | None:
        return next((t for t in self.tasks if str(t.id) == task_id), None)

    def set_filters(
        self,
        *,
        status: str | None = None,
        priority: str | None = None,
        search: str | None = None,
    ) -> TaskFilters:
        changes = {}
        if status is not None:
            if status not in _STATUS_CHOICES:
                raise ValueError(f"status filter must be one of {_STATUS_CHOICES}")
            changes["status"] = status
        if priority is not None:
            if priority not in _PRIORITY_CHOICES:
                raise ValueError(f"priority filter must be one of {_PRIORITY_CHOICES}")
            changes["priority"] = priority
        if search is not None:
            changes["search"] = search
        self.filters = replace(self.filters, **changes)
        return self.filters

    # ── 请求序号 ──

    def _issue(self, task_id: str) -> int:
        seq = next(self._seq)
        self._latest[task_id] = seq
        return seq

    def _is_stale(self, task_id: str, seq: int) -> bool:
        stale = self._latest.get(task_id) != seq
        if stale:
            log.info("丢弃过期响应", task_id=task_id, seq=seq, latest=self._latest.get(task_id))
        return stale

    # ── 服务端同步 ──

    async def refresh(self) -> bool:
        """进入看板时拉取一次完整列表"""
        self.loading = True
        try:
            self.tasks = await self.api.list_tasks()
            self.error = None
            return True
        except ApiError as e:
            self.error = e.message or "Failed to fetch tasks"
            return False
        finally:
            self.loading = False

    async def create(self, data: dict) -> TaskOut | None:
        try:
            task = await self.api.create_task(data)
        except ApiError as e:
            self.error = e.message or "Failed to create task"
            return None
        self.tasks = [task, *self.tasks]
        self.error = None
        return task

    async def update(self, task_id: str, data: dict) -> TaskOut | None:
        seq = self._issue(task_id)
        try:
            task = await self.api.update_task(task_id, data)
        except ApiError as e:
            if not self._is_stale(task_id, seq):
                self.error = e.message or "Failed to update task"
            return None
        if self._is_stale(task_id, seq):
            return None
        self.tasks = [task if str(t.id) == task_id else t for t in self.tasks]
        self.error = None
        return task

    async def toggle_status(self, task_id: str) -> TaskOut | None:
        current = self.find(task_id)
        if current is None:
            self.error = "Task not found"
            return None
        new_status = "incomplete" if current.status == "completed" else "completed"
        return await self.update(task_id, {"status": new_status})

    async def delete(self, task_id: str) -> bool:
        seq = self._issue(task_id)  # 使尚未返回的更新响应失效
        try:
            await self.api.delete_task(task_id)
        except ApiError as e:
            if not self._is_stale(task_id, seq):
                self.error = e.message or "Failed to delete task"
            return False
        self.tasks = [t for t in self.tasks if str(t.id) != task_id]
        self.error = None
        return True
