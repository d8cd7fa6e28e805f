"""
结构化日志配置：structlog，开发环境彩色文本，生产环境 JSON
"""

import logging
import sys

import structlog


def setup_logging(env: str = "development", level: str = "INFO", db_echo: bool = False) -> None:
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        raise ValueError(f"未知日志级别: {level}")

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if env == "production":
        processors += [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s", stream=sys.stdout, level=log_level)
    # uvicorn 自带的 access 日志与 RequestLoggerMiddleware 重复
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    # DB_ECHO 交给 create_async_engine(echo=...)，这里只压住默认的 INFO 输出
    if not db_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
