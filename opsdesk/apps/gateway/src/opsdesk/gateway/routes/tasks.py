"""任务路由

GET  /api/tasks: 待处理任务列表，支持 type 筛选；stats=true 返回统计
GET  /api/tasks/{type}/{key}: 任务详情（实时推导）
POST /api/tasks/{type}/{key}/resolve: 处理任务

错误响应统一为 {"error": {"code", "message", "details"?}}。
"""

import asyncio
from typing import Any

import structlog
from fastapi import APIRouter, Depends, Query, Request
from opsdesk.core.exceptions import (
    PersistenceError,
    SideEffectError,
    TaskConflictError,
    TaskEngineError,
    TaskNotFoundError,
    TaskValidationError,
)
from opsdesk.core.models import InvalidTaskIdError, TaskFilter, TaskId, TaskType
from starlette.responses import JSONResponse

from ..deps import get_admin_id, get_aggregator, get_dispatcher
from ..services.adapters import ResolutionContext
from ..services.aggregator import TaskAggregator
from ..services.dispatcher import ResolutionDispatcher

log = structlog.get_logger()

router = APIRouter()

_STATUS_CODES: dict[type[TaskEngineError], int] = {
    TaskValidationError: 400,
    TaskNotFoundError: 404,
    TaskConflictError: 404,
    SideEffectError: 500,
    PersistenceError: 500,
}


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: list[dict[str, Any]] | None = None,
) -> JSONResponse:
    error: dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error})


def engine_error_response(e: TaskEngineError) -> JSONResponse:
    """引擎异常 -> HTTP 错误响应"""
    status_code = _STATUS_CODES.get(type(e), 500)
    details = e.details if isinstance(e, TaskValidationError) else None
    return error_response(status_code, e.code, e.message, details)


def invalid_id_response(e: InvalidTaskIdError) -> JSONResponse:
    return error_response(400, "INVALID_TASK_ID", str(e))


async def watch_disconnect(
    request: Request, cancel_event: asyncio.Event, interval_s: float = 0.1
) -> None:
    """客户端断开时置位 cancel_event，使聚合停止等待"""
    while not cancel_event.is_set():
        if await request.is_disconnected():
            log.info("task_listing_client_disconnected", path=request.url.path)
            cancel_event.set()
            return
        await asyncio.sleep(interval_s)


@router.get("/api/tasks")
async def list_tasks(
    request: Request,
    types: list[str] | None = Query(default=None, alias="type", description="按任务类型筛选"),
    stats: bool = Query(default=False, description="返回统计而不是任务列表"),
    aggregator: TaskAggregator = Depends(get_aggregator),
):
    """待处理任务列表：按类型分组，组内按时间倒序"""
    task_filter = None
    if types:
        try:
            task_filter = TaskFilter(types={TaskType(t) for t in types})
        except ValueError:
            unknown = [t for t in types if t not in set(TaskType)]
            return error_response(
                400,
                TaskValidationError.code,
                f"Unknown task type: {', '.join(unknown)}",
                [{"field": "type", "reason": "unknown", "values": unknown}],
            )

    cancel_event = asyncio.Event()
    watcher = asyncio.create_task(watch_disconnect(request, cancel_event))
    try:
        listing = await aggregator.list_all_pending(task_filter, cancel_event)
    finally:
        watcher.cancel()
    if stats:
        return aggregator.statistics_of(listing).model_dump(mode="json")

    return {
        "tasks": [task.model_dump(mode="json") for task in listing.tasks],
        "errors": [error.model_dump(mode="json") for error in listing.errors],
        "partial": listing.is_partial,
        "counts": {t.value: n for t, n in listing.counts_by_type().items()},
        "generated_at": listing.generated_at.isoformat(),
    }


@router.get("/api/tasks/{task_type}/{key}")
async def get_task_detail(
    task_type: str,
    key: str,
    dispatcher: ResolutionDispatcher = Depends(get_dispatcher),
):
    """任务详情；业务条件已不存在时返回 404"""
    try:
        task_id = TaskId.parse(task_type, key)
    except InvalidTaskIdError as e:
        return invalid_id_response(e)

    try:
        task = await dispatcher.get_detail(task_id)
    except TaskEngineError as e:
        return engine_error_response(e)
    return {"task": task.model_dump(mode="json")}


@router.post("/api/tasks/{task_type}/{key}/resolve")
async def resolve_task(
    task_type: str,
    key: str,
    request: Request,
    admin_id: int = Depends(get_admin_id),
    dispatcher: ResolutionDispatcher = Depends(get_dispatcher),
):
    """处理任务

    - 200: 成功（partial=true 表示已持久化但通知失败）
    - 400: 请求不合法 / 任务标识非法
    - 404: 任务不存在或已被处理
    - 500: 照片上传失败 / 持久化失败
    """
    try:
        task_id = TaskId.parse(task_type, key)
    except InvalidTaskIdError as e:
        return invalid_id_response(e)

    try:
        raw = await request.json()
    except ValueError:
        return error_response(400, TaskValidationError.code, "Request body must be valid JSON")
    if not isinstance(raw, dict):
        return error_response(400, TaskValidationError.code, "Request body must be a JSON object")

    context = ResolutionContext(admin_id=admin_id)
    try:
        result = await dispatcher.resolve(task_id, raw, context)
    except TaskEngineError as e:
        return engine_error_response(e)
    except Exception:
        log.exception("task_resolve_unexpected_error", task_id=str(task_id))
        return error_response(500, "INTERNAL_ERROR", "Unexpected error while resolving task")

    return result.model_dump(mode="json")
