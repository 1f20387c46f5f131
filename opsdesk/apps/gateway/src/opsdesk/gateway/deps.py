"""依赖注入模块 -- 通过 FastAPI Depends 注入引擎组件

组件通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from fastapi import Header, Request

from .services.aggregator import TaskAggregator
from .services.dispatcher import ResolutionDispatcher


def get_aggregator(request: Request) -> TaskAggregator:
    return request.app.state.aggregator


def get_dispatcher(request: Request) -> ResolutionDispatcher:
    return request.app.state.dispatcher


def get_admin_id(x_admin_id: str | None = Header(default=None)) -> int:
    """管理员身份由上游认证层通过 X-Admin-Id 传入，缺省或非法时为 0"""
    if x_admin_id is None:
        return 0
    try:
        return max(int(x_admin_id), 0)
    except ValueError:
        return 0
