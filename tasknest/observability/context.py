"""
链路追踪上下文：通过 contextvars 在协程间自动传播 trace_id / user_id
"""

import contextvars

import structlog

# ── 全局上下文变量 ──
trace_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("trace_id", default="")
user_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("user_id", default="anonymous")


def bind_user(user_id: str) -> None:
    """鉴权通过后绑定 user_id，后续日志自动携带"""
    user_id_var.set(user_id)
    structlog.contextvars.bind_contextvars(user_id=user_id)
