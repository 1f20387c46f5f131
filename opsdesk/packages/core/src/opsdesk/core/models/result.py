"""Resolution Result 模型

持久化成功后的副作用失败（如回复邮件发送失败）以 side_effect_failures
形式附在成功结果中，而不是抛出异常。
"""

from typing import Any, Literal

from pydantic import BaseModel, Field, computed_field

from .enums import TaskType


class SideEffectFailureDetail(BaseModel):
    """持久化之后发生的副作用失败"""

    kind: Literal["notification", "upload"]
    target: str = Field(default="", description="收件人或对象标识")
    message: str


class ResolutionResult(BaseModel):
    """一次成功（或部分成功）的任务处理结果"""

    success: bool = True
    task_id: str
    task_type: TaskType
    message: str
    resolved: bool = Field(
        default=True,
        description="背后的业务条件是否已消除（False 表示仅记录，任务仍会出现在列表中）",
    )
    updated_entity: dict[str, Any] | None = None
    uploaded_photo_urls: list[str] = Field(default_factory=list)
    side_effect_failures: list[SideEffectFailureDetail] = Field(default_factory=list)

    @computed_field
    @property
    def partial(self) -> bool:
        """持久化已提交但后续副作用失败"""
        return bool(self.side_effect_failures)
