"""TraceMiddleware -- 为任务路由绑定 task_type / task_key

路径形如 /api/tasks/{type}/{key}[/resolve]，提取后贯穿本次请求的全部日志。
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

_PREFIX = "/api/tasks/"


class TraceMiddleware(BaseHTTPMiddleware):
    """任务级追踪中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path.startswith(_PREFIX):
            parts = path[len(_PREFIX) :].split("/")
            if len(parts) >= 2 and parts[0] and parts[1]:
                structlog.contextvars.bind_contextvars(
                    task_type=parts[0],
                    task_key=parts[1],
                )
        return await call_next(request)
