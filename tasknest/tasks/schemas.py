"""
任务接口数据模型

TaskUpdate 为显式可选字段结构：只有请求中出现的字段才会被应用，
空字符串 description 与"未提供"可以区分。
"""

import uuid
from datetime import datetime
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, ValidationInfo, field_validator

from tasknest.db.models.base import as_utc
from tasknest.db.models.task import TaskPriority, TaskStatus


def _blank_deadline_to_none(v: Any) -> Any:
    """表单里清空日期会传空字符串，视为无截止时间"""
    if isinstance(v, str) and not v.strip():
        return None
    return v


def _deadline_to_utc(v: datetime | None) -> datetime | None:
    return as_utc(v) if v is not None else None


# 入库前统一为 UTC，创建响应与后续读取返回同一表示
Deadline = Annotated[datetime | None, BeforeValidator(_blank_deadline_to_none), AfterValidator(_deadline_to_utc)]


class TaskCreate(BaseModel):
    """创建任务；owner 由服务端强制设置，请求体中的同名字段会被忽略"""

    model_config = ConfigDict(str_strip_whitespace=True)

    # title 的必填校验放在 TaskAccessController.create，以返回统一的提示语
    title: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    priority: TaskPriority | None = None
    deadline: Deadline = None


class TaskUpdate(BaseModel):
    """部分更新：未出现的字段保持原值"""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    deadline: Deadline = None

    @field_validator("title", "status", "priority")
    @classmethod
    def reject_explicit_null(cls, v: Any, info: ValidationInfo) -> Any:
        """这几个字段不可清空；显式传 null 直接拒绝"""
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    def changes(self) -> dict[str, Any]:
        """仅返回请求中实际出现的字段"""
        return {name: getattr(self, name) for name in self.model_fields_set}


class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    description: str | None
    status: TaskStatus
    priority: TaskPriority
    deadline: datetime | None
    user_id: uuid.UUID
    created_at: datetime
    updated_at: datetime


class TaskDeleted(BaseModel):
    message: str
    id: uuid.UUID
