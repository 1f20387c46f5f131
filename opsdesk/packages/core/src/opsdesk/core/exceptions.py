"""任务引擎异常体系

区分"调用方可修正的输入问题"与"系统问题，可重试"：
recoverable=True 表示同一请求稍后重试可能成功。
"""

from typing import Any


class TaskEngineError(Exception):
    """任务引擎基础异常"""

    code: str = "TASK_ENGINE_ERROR"

    def __init__(self, message: str, recoverable: bool = False) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重试恢复
        """
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


class TaskValidationError(TaskEngineError):
    """请求不完整或不合法 -- 由调用方修正，不自动重试"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message, recoverable=False)
        self.details = details or []


class TaskNotFoundError(TaskEngineError):
    """任务背后的业务条件不存在"""

    code = "TASK_NOT_FOUND"

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} does not exist", recoverable=False)
        self.task_id = task_id


class TaskConflictError(TaskEngineError):
    """任务已被处理（或在并发竞争中落败）"""

    code = "TASK_ALREADY_RESOLVED"

    def __init__(self, task_id: str, reason: str = "") -> None:
        message = f"Task {task_id} has already been resolved"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, recoverable=False)
        self.task_id = task_id


class SideEffectError(TaskEngineError):
    """持久化之前的副作用失败（照片上传），任务保持待处理"""

    code = "SIDE_EFFECT_FAILURE"

    def __init__(self, kind: str, message: str) -> None:
        super().__init__(f"{kind} failed: {message}", recoverable=True)
        self.kind = kind


class PersistenceError(TaskEngineError):
    """业务变更未能提交，任务保持待处理"""

    code = "PERSISTENCE_FAILURE"

    def __init__(self, message: str) -> None:
        super().__init__(message, recoverable=True)
