"""LoggingMiddleware -- 请求级日志

request_id 优先沿用上游 X-Request-ID，否则生成 ULID；
管理员身份原样记录，解析与校验在 deps.get_admin_id。
"""

import logging
import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from ulid import ULID

log = structlog.get_logger()


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(ULID())
        context = {"request_id": request_id, "method": request.method, "path": request.url.path}
        admin = request.headers.get("X-Admin-Id")
        if admin:
            context["admin"] = admin

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(**context)

        started = time.monotonic()
        await log.ainfo("request_started")
        response = await call_next(request)
        elapsed_ms = int((time.monotonic() - started) * 1000)

        # 只读轮询（列表 / 健康检查）成功时降为 debug
        quiet = request.method == "GET" and response.status_code < 400
        level = logging.DEBUG if quiet else logging.INFO
        await log.alog(
            level, "request_completed", status_code=response.status_code, duration_ms=elapsed_ms
        )
        response.headers["X-Request-ID"] = request_id
        return response
