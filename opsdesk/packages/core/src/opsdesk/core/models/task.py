"""Task Domain Model

Task 是由业务表实时推导出的工作项，不落盘。
TaskId 在 adapter 创建任务时构造一次，其余组件视其为不透明值；
唯一的字符串解析入口是 TaskId.parse()，只在 HTTP 边界使用。
"""

import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_serializer, model_validator

from .enums import PriorityHint, TaskType
from .payloads import TaskPayload

_KEY_PATTERN = re.compile(
    r"^(?:(?P<scope>[a-z]+)-)?(?P<entity>[1-9][0-9]*)(?:\.(?P<sub>[1-9][0-9]*))?$"
)


class InvalidTaskIdError(ValueError):
    """任务标识格式非法"""


class TaskId(BaseModel, frozen=True):
    """类型化任务标识：(类型, 业务主键, 可选子键, 可选作用域)

    字符串形式: "{type}/{key}"，key 语法为 "[scope-]entity_id[.sub_key]"。
    """

    type: TaskType
    entity_id: int = Field(gt=0, description="业务表主键")
    sub_key: int | None = Field(default=None, gt=0, description="子行主键（如请求单元行）")
    scope: str | None = Field(
        default=None,
        pattern=r"^[a-z]+$",
        description="同类型下区分来源表的作用域（如 ps = packing supply）",
    )

    @property
    def key(self) -> str:
        key = str(self.entity_id)
        if self.scope:
            key = f"{self.scope}-{key}"
        if self.sub_key is not None:
            key = f"{key}.{self.sub_key}"
        return key

    def __str__(self) -> str:
        return f"{self.type.value}/{self.key}"

    @classmethod
    def parse(cls, type_slug: str, key: str) -> "TaskId":
        """从 URL 的类型段和 key 段解析 TaskId

        Raises:
            InvalidTaskIdError: 类型未知或 key 不符合语法
        """
        try:
            task_type = TaskType(type_slug)
        except ValueError as e:
            raise InvalidTaskIdError(f"Unknown task type: {type_slug}") from e

        match = _KEY_PATTERN.match(key)
        if match is None:
            raise InvalidTaskIdError(f"Malformed task key: {key}")

        sub = match.group("sub")
        return cls(
            type=task_type,
            entity_id=int(match.group("entity")),
            sub_key=int(sub) if sub else None,
            scope=match.group("scope"),
        )

    @classmethod
    def from_string(cls, value: str) -> "TaskId":
        """解析 "{type}/{key}" 形式的完整标识"""
        type_slug, sep, key = value.partition("/")
        if not sep:
            raise InvalidTaskIdError(f"Malformed task id: {value}")
        return cls.parse(type_slug, key)


class Task(BaseModel):
    """统一任务模型 -- payload 为按 type 区分的 tagged union"""

    id: TaskId = Field(description="类型化任务标识")
    type: TaskType = Field(description="任务类型")
    title: str = Field(description="标题")
    description: str = Field(description="描述")
    action: str = Field(description="处理动作标签")
    payload: TaskPayload = Field(description="类型专属数据")
    created_at: datetime = Field(description="相关事件时间，用于类型内排序")
    priority_hint: PriorityHint = Field(
        default=PriorityHint.NORMAL, description="展示用紧急程度"
    )

    @model_validator(mode="after")
    def _type_matches(self) -> "Task":
        if self.payload.type != self.type or self.id.type != self.type:
            raise ValueError(
                f"Task type {self.type} does not match payload/id type"
            )
        return self

    @field_serializer("id")
    def _serialize_id(self, task_id: TaskId) -> str:
        return str(task_id)


class TaskFilter(BaseModel):
    """列表过滤条件"""

    types: set[TaskType] | None = Field(default=None, description="仅包含这些类型")

    def includes(self, task_type: TaskType) -> bool:
        return self.types is None or task_type in self.types


class PartialAggregationFailure(BaseModel):
    """单个 adapter 在列表聚合中的失败记录（与部分结果一起返回）"""

    type: TaskType
    kind: Literal["error", "timeout", "cancelled"]
    message: str


class TaskListing(BaseModel):
    """聚合后的任务列表"""

    tasks: list[Task] = Field(default_factory=list)
    errors: list[PartialAggregationFailure] = Field(default_factory=list)
    generated_at: datetime

    @property
    def is_partial(self) -> bool:
        return bool(self.errors)

    def counts_by_type(self) -> dict[TaskType, int]:
        counts = {t: 0 for t in TaskType}
        for task in self.tasks:
            counts[task.type] += 1
        return counts


class TaskStatistics(BaseModel):
    """由同一次列表结果计算出的统计"""

    total: int
    by_type: dict[TaskType, int]
    critical: int = Field(description="未分配司机任务数")
    urgent: int = Field(description="差评任务数")
    errors: list[PartialAggregationFailure] = Field(default_factory=list)
    generated_at: datetime
