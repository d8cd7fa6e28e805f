"""
异常体系 + FastAPI 异常处理器

业务异常统一继承 TaskNestError，由 register_exception_handlers 注册的处理器
转换为 {message, error?, stack?} 结构的 JSON 响应。
"""

import traceback

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from tasknest.config import get_settings
from tasknest.observability.metrics import ERROR_TOTAL

log = structlog.get_logger()
settings = get_settings()


class TaskNestError(Exception):
    """业务异常基类"""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(TaskNestError):
    """输入缺失或格式错误"""

    status_code = 400


class Unauthenticated(TaskNestError):
    """缺少 / 无效 / 过期的 Token，或 Token 对应的用户已不存在"""

    status_code = 401


class Forbidden(TaskNestError):
    """身份有效但不是资源所有者

    对外与未认证一样返回 401。
    """

    status_code = 401


class NotFound(TaskNestError):
    """记录不存在"""

    status_code = 404


def _first_validation_message(exc: RequestValidationError) -> str:
    """取第一条校验错误，拼成 "field: msg" 形式"""
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    err = errors[0]
    loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
    msg = err.get("msg", "Invalid value")
    return f"{'.'.join(loc)}: {msg}" if loc else msg


async def handle_app_error(request: Request, exc: TaskNestError) -> JSONResponse:
    log.info(
        "业务异常",
        error_type=type(exc).__name__,
        status_code=exc.status_code,
        message=exc.message,
    )
    ERROR_TOTAL.labels(error_type=type(exc).__name__).inc()
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _first_validation_message(exc)
    log.info("请求参数校验失败", message=message)
    ERROR_TOTAL.labels(error_type="ValidationError").inc()
    return JSONResponse(status_code=400, content={"message": message})


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    log.error("未处理异常", error=str(exc), exc_info=True)
    ERROR_TOTAL.labels(error_type="unexpected").inc()
    content = {"message": "Server error", "error": str(exc)}
    if not settings.is_production:
        content["stack"] = "".join(traceback.format_exception(exc))
    return JSONResponse(status_code=500, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """注册全局异常处理器"""
    app.add_exception_handler(TaskNestError, handle_app_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(Exception, handle_unexpected)
