"""
TaskNest 客户端：HTTP 封装 + 会话状态 + 任务看板镜像
"""

from tasknest.client.api_client import ApiError, TaskApiClient
from tasknest.client.board import TaskBoard, TaskFilters, filter_tasks, is_overdue
from tasknest.client.session import AuthSession

__all__ = [
    "ApiError",
    "TaskApiClient",
    "AuthSession",
    "TaskBoard",
    "TaskFilters",
    "filter_tasks",
    "is_overdue",
]
