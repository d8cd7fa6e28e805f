"""
请求日志中间件：每个请求一条访问日志，并在响应头回写 trace_id 与耗时

访问日志按路由模板聚合（/api/tasks/{task_id}），带上鉴权后的用户 id；
4xx 记 warning，5xx 记 error。
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from tasknest.observability.context import trace_id_var, user_id_var

log = structlog.get_logger()

# 探针与指标抓取不记访问日志
_QUIET_PATHS = ("/health", "/metrics")


def _log_level(status_code: int) -> str:
    if status_code >= 500:
        return "error"
    if status_code >= 400:
        return "warning"
    return "info"


def _request_user(request: Request) -> str:
    # get_current_user 成功后把 claims 写在 request.state 上，与中间件共享同一 scope
    claims = getattr(request.state, "token_claims", None) or {}
    return claims.get("sub", "anonymous")


class RequestLoggerMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        trace_id = request.headers.get("X-Trace-ID") or uuid.uuid4().hex
        trace_id_var.set(trace_id)
        user_id_var.set("anonymous")
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(trace_id=trace_id)

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = int((time.perf_counter() - start) * 1000)

        path = request.url.path
        if not path.startswith(_QUIET_PATHS):
            route = request.scope.get("route")
            getattr(log, _log_level(response.status_code))(
                "request",
                method=request.method,
                route=getattr(route, "path", path),
                status_code=response.status_code,
                duration_ms=duration_ms,
                user_id=_request_user(request),
                client_ip=request.client.host if request.client else "unknown",
            )

        response.headers["X-Trace-ID"] = trace_id
        response.headers["X-Duration-Ms"] = str(duration_ms)
        return response
