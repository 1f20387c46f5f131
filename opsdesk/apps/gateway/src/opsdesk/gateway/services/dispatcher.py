"""ResolutionDispatcher -- 将 Resolve 请求路由到所属 adapter

流程：
1. 按 TaskId 类型选择 adapter
2. 反序列化请求并执行无状态校验（不访问任何端口）
3. 重新推导任务详情；已不存在视为已被处理
4. 交由 adapter 流水线：上传 -> 持久化 -> 通知

每次调用内维护 PENDING -> RESOLVING -> RESOLVED/FAILED 状态机并记录日志，
状态不落盘。
"""

from collections.abc import Mapping
from typing import Any

import structlog
from opsdesk.core.exceptions import (
    TaskConflictError,
    TaskEngineError,
    TaskNotFoundError,
)
from opsdesk.core.models import (
    ResolutionResult,
    ResolutionState,
    Task,
    TaskId,
    TaskType,
    validate_transition,
)

from .adapters import ResolutionContext, TaskAdapter
from .aggregator import TaskAggregator

log = structlog.get_logger()


class _Attempt:
    """单次 Resolve 调用的内存状态机"""

    def __init__(self, task_id: TaskId, context: ResolutionContext) -> None:
        self.task_id = task_id
        self.context = context
        self.state = ResolutionState.PENDING

    def transition(self, to_state: ResolutionState, **extra: Any) -> None:
        if not validate_transition(self.state, to_state):
            raise RuntimeError(f"Invalid resolution transition {self.state} -> {to_state}")
        log.info(
            "task_resolution_transition",
            task_id=str(self.task_id),
            task_type=self.task_id.type.value,
            attempt_id=self.context.attempt_id,
            admin_id=self.context.admin_id,
            from_state=self.state.value,
            to_state=to_state.value,
            **extra,
        )
        self.state = to_state


class ResolutionDispatcher:
    """任务处理分发器"""

    def __init__(
        self,
        adapters: dict[TaskType, TaskAdapter],
        aggregator: TaskAggregator | None = None,
    ) -> None:
        self._adapters = adapters
        self._aggregator = aggregator

    def adapter_for(self, task_type: TaskType) -> TaskAdapter:
        return self._adapters[task_type]

    async def get_detail(self, task_id: TaskId) -> Task:
        """查询单个任务详情

        Raises:
            TaskNotFoundError: 任务背后的业务条件不存在
        """
        return await self.adapter_for(task_id.type).get_detail(task_id)

    async def resolve(
        self,
        task_id: TaskId,
        raw_request: Mapping[str, Any],
        context: ResolutionContext | None = None,
    ) -> ResolutionResult:
        """处理任务

        Raises:
            TaskValidationError: 请求不合法（未访问任何端口）
            TaskConflictError: 任务已被处理
            SideEffectError: 照片上传失败，未持久化
            PersistenceError: 持久化失败，任务保持待处理
        """
        context = context or ResolutionContext()
        attempt = _Attempt(task_id, context)
        adapter = self.adapter_for(task_id.type)

        try:
            request = adapter.parse_request(raw_request)
            adapter.check_request(request)

            try:
                task = await adapter.get_detail(task_id)
            except TaskNotFoundError as e:
                raise TaskConflictError(str(task_id), "no longer pending") from e

            attempt.transition(ResolutionState.RESOLVING, adapter=adapter.name)
            result = await adapter.resolve(task, request, context)
        except TaskEngineError as e:
            attempt.transition(
                ResolutionState.FAILED,
                error_code=e.code,
                error=e.message,
                recoverable=e.recoverable,
            )
            if attempt_reached_persistence(e):
                self._invalidate()
            raise
        except Exception as e:
            attempt.transition(
                ResolutionState.FAILED,
                error_code="INTERNAL_ERROR",
                error=f"{type(e).__name__}: {e}",
            )
            raise

        attempt.transition(
            ResolutionState.RESOLVED,
            resolved=result.resolved,
            partial=result.partial,
        )
        self._invalidate()
        return result

    def _invalidate(self) -> None:
        if self._aggregator is not None:
            self._aggregator.invalidate()


def attempt_reached_persistence(error: TaskEngineError) -> bool:
    """冲突意味着其他调用已改变状态，缓存同样需要失效"""
    return isinstance(error, TaskConflictError)
