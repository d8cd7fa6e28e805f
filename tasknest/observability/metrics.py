"""
Prometheus 指标定义

所有指标统一在此文件定义，中间件和业务代码按需引用。
"""

from prometheus_client import Counter, Histogram

# ── 请求级指标 ──

REQUEST_TOTAL = Counter(
    "tasknest_request_total",
    "HTTP 请求总数",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "tasknest_request_duration_ms",
    "HTTP 请求耗时（毫秒）",
    ["method", "endpoint"],
    buckets=[5, 10, 25, 50, 100, 200, 500, 1000, 2000],
)

# ── 业务指标 ──

TASK_OPERATION_TOTAL = Counter(
    "tasknest_task_operation_total",
    "任务操作总数",
    ["operation", "outcome"],  # operation: create/read/update/delete; outcome: ok/not_found/forbidden
)

AUTH_TOTAL = Counter(
    "tasknest_auth_total",
    "认证事件总数",
    ["event", "outcome"],  # event: signup/login/logout
)

# ── 错误指标 ──

ERROR_TOTAL = Counter(
    "tasknest_error_total",
    "错误总数",
    ["error_type"],
)
