"""structlog 配置模块

dev 模式：ConsoleRenderer 可读输出
json 模式：结构化 JSON 输出
Logfire APM：LOGFIRE_SEND_TO_LOGFIRE 控制，初始化失败时保持纯本地日志。
"""

import logging
import os

import structlog
from fastapi import FastAPI


def setup_logging() -> None:
    """初始化 structlog，并通过 ProcessorFormatter 接管标准库 logging

    环境变量：
    - OPSDESK_LOG_FORMAT: "json" | "dev"（默认）
    - OPSDESK_LOG_LEVEL: 日志级别，默认 INFO
    """
    log_format = os.environ.get("OPSDESK_LOG_FORMAT", "dev")
    log_level = os.environ.get("OPSDESK_LOG_LEVEL", "INFO")

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(
            ensure_ascii=False
        )
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def setup_logfire(app: FastAPI) -> None:
    """Logfire 可选初始化（LOGFIRE_SEND_TO_LOGFIRE=true 时启用，需要 LOGFIRE_TOKEN）"""
    if os.environ.get("LOGFIRE_SEND_TO_LOGFIRE", "false").lower() != "true":
        return
    try:
        import logfire

        logfire.configure(service_name="opsdesk-gateway")
        logfire.instrument_fastapi(app)
    except Exception as e:
        structlog.get_logger().warning(
            "logfire_init_failed",
            error=str(e),
            message="Logfire 初始化失败，使用本地日志",
        )
