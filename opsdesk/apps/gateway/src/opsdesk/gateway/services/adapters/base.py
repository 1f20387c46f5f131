"""TaskAdapter 基类 -- 任务来源 adapter 的统一接口与处理流水线

每种任务类型一个子类，负责：
- 查询本类型的业务表，按资格谓词推导出 Task（列表与详情共用同一查询）
- 处理本类型的 Resolve：校验 -> 上传照片 -> 事务内持久化 -> 发送通知

流水线骨架在基类中固定，子类只实现各步骤的钩子。
持久化提交之后的通知失败降级为部分成功，不抛出、不回滚。
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from datetime import UTC, datetime, timedelta
from typing import Any, ClassVar, Generic, TypeVar

import aiosqlite
import pydantic
import structlog
from opsdesk.core.exceptions import (
    PersistenceError,
    SideEffectError,
    TaskNotFoundError,
    TaskValidationError,
)
from opsdesk.core.models import (
    AppointmentSummary,
    ContactInfo,
    DriverInfo,
    PhotoInput,
    ResolutionResult,
    SideEffectFailureDetail,
    Task,
    TaskFilter,
    TaskId,
    TaskType,
)
from opsdesk.core.models.records import AppointmentRow, DriverTaskRow
from opsdesk.core.store import StoreGroup
from opsdesk.core.validation import check_unit_number_duplicates
from opsdesk.ports import (
    EmailMessage,
    Notifier,
    ObjectStorage,
    PhotoMetadata,
    StorageUploadError,
)
from pydantic import BaseModel, Field
from ulid import ULID

log = structlog.get_logger()

RequestT = TypeVar("RequestT", bound=BaseModel)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


def start_of_day(moment: datetime) -> datetime:
    """UTC 当天零点"""
    return moment.astimezone(UTC).replace(hour=0, minute=0, second=0, microsecond=0)


def window(start: datetime, days: int) -> tuple[datetime, datetime]:
    """[start, start + days) 时间窗口"""
    return start, start + timedelta(days=days)


class AdapterDeps:
    """adapter 共享依赖：持久化、照片存储、邮件通知、时钟"""

    def __init__(
        self,
        stores: StoreGroup,
        storage: ObjectStorage,
        notifier: Notifier,
        clock: Clock = utc_now,
        sender_email: str | None = None,
    ) -> None:
        self.stores = stores
        self.storage = storage
        self.notifier = notifier
        self.clock = clock
        self.sender_email = sender_email


class ResolutionContext(BaseModel):
    """一次 Resolve 调用的上下文"""

    admin_id: int = Field(default=0, description="执行操作的管理员")
    attempt_id: str = Field(default_factory=lambda: str(ULID()), description="本次尝试标识")


class ApplyOutcome(BaseModel):
    """持久化步骤的结果"""

    message: str
    resolved: bool = True
    updated_entity: dict[str, Any] | None = None


class TaskAdapter(ABC, Generic[RequestT]):
    """任务来源 adapter 基类"""

    task_type: ClassVar[TaskType]
    request_model: ClassVar[type[BaseModel]]
    photo_category: ClassVar[str] = "photo"

    def __init__(self, deps: AdapterDeps) -> None:
        self._deps = deps
        self._stores = deps.stores

    @property
    def name(self) -> str:
        return type(self).__name__

    def _now(self) -> datetime:
        return self._deps.clock()

    # ---- 列表 / 详情 ----

    async def list_pending(self, task_filter: TaskFilter | None = None) -> list[Task]:
        """列出本类型当前所有待处理任务"""
        if task_filter is not None and not task_filter.includes(self.task_type):
            return []
        return await self._query()

    async def get_detail(self, task_id: TaskId) -> Task:
        """重新推导单个任务

        Raises:
            TaskNotFoundError: 背后的业务条件已不成立
        """
        if task_id.type != self.task_type:
            raise TaskNotFoundError(str(task_id))
        for task in await self._query(task_id):
            if task.id == task_id:
                return task
        raise TaskNotFoundError(str(task_id))

    @abstractmethod
    async def _query(self, task_id: TaskId | None = None) -> list[Task]:
        """资格查询：task_id 为 None 时返回全部，否则只查该任务的主键"""

    # ---- 处理流水线钩子 ----

    def precheck_raw(self, raw: Mapping[str, Any]) -> None:
        """形状校验之前、作用于原始请求体的规则"""

    def parse_request(self, raw: Mapping[str, Any]) -> RequestT:
        """反序列化为本类型的请求模型

        Raises:
            TaskValidationError: 形状不匹配
        """
        self.precheck_raw(raw)
        try:
            return self.request_model.model_validate(raw)  # type: ignore[return-value]
        except pydantic.ValidationError as e:
            details = [
                {
                    "field": ".".join(str(part) for part in err["loc"]),
                    "reason": err["type"],
                    "message": err["msg"],
                }
                for err in e.errors()
            ]
            fields = ", ".join(d["field"] or "body" for d in details)
            raise TaskValidationError(
                f"Invalid {self.task_type.value} request: {fields}", details=details
            ) from e

    def check_request(self, request: RequestT) -> None:
        """无状态业务规则（不访问任何端口）"""

    def check_against_task(self, task: Task, request: RequestT) -> None:
        """依赖任务详情的业务规则"""

    def photos_of(self, request: RequestT) -> list[PhotoInput]:
        """需要在持久化之前上传的照片"""
        return []

    @abstractmethod
    async def apply(
        self,
        task: Task,
        request: RequestT,
        photo_urls: list[str],
        context: ResolutionContext,
    ) -> ApplyOutcome:
        """在写事务内执行业务变更

        条件更新未命中时抛出 TaskConflictError，事务随之回滚。
        """

    def notifications(
        self, task: Task, request: RequestT, outcome: ApplyOutcome
    ) -> list[EmailMessage]:
        """持久化提交之后要发送的邮件"""
        return []

    # ---- 流水线 ----

    async def resolve(
        self,
        task: Task,
        request: RequestT,
        context: ResolutionContext,
    ) -> ResolutionResult:
        """校验 -> 上传照片 -> 持久化 -> 通知

        Raises:
            TaskValidationError: 请求不满足本类型规则
            SideEffectError: 照片上传失败（未持久化）
            TaskConflictError: 条件更新未命中（已被处理）
            PersistenceError: 事务提交失败
        """
        self.check_request(request)
        self.check_against_task(task, request)

        photo_urls = await self._upload_photos(task, request)

        try:
            async with self._stores.transaction():
                outcome = await self.apply(task, request, photo_urls, context)
        except aiosqlite.Error as e:
            log.error(
                "task_persist_failed",
                task_id=str(task.id),
                attempt_id=context.attempt_id,
                error=str(e),
            )
            raise PersistenceError(f"Could not persist {task.id}: {e}") from e

        failures = await self._send_notifications(task, request, outcome, context)

        return ResolutionResult(
            task_id=str(task.id),
            task_type=self.task_type,
            message=outcome.message,
            resolved=outcome.resolved,
            updated_entity=outcome.updated_entity,
            uploaded_photo_urls=photo_urls,
            side_effect_failures=failures,
        )

    async def _upload_photos(self, task: Task, request: RequestT) -> list[str]:
        urls: list[str] = []
        for photo in self.photos_of(request):
            if photo.url:
                urls.append(photo.url)
                continue
            metadata = PhotoMetadata(
                category=self.photo_category,
                entity_id=task.id.key,
                filename=photo.filename,
                mime=photo.mime,
            )
            try:
                urls.append(await self._deps.storage.upload(photo.content_bytes(), metadata))
            except StorageUploadError as e:
                log.warning("photo_upload_failed", task_id=str(task.id), error=str(e))
                raise SideEffectError("upload", str(e)) from e
        return urls

    async def _send_notifications(
        self,
        task: Task,
        request: RequestT,
        outcome: ApplyOutcome,
        context: ResolutionContext,
    ) -> list[SideEffectFailureDetail]:
        failures: list[SideEffectFailureDetail] = []
        for message in self.notifications(task, request, outcome):
            if message.sender is None and self._deps.sender_email:
                message = message.model_copy(update={"sender": self._deps.sender_email})
            try:
                receipt = await self._deps.notifier.send_email(message)
            except Exception as e:
                # 持久化已提交：通知失败只记录，不回滚
                log.warning(
                    "task_notification_failed",
                    task_id=str(task.id),
                    attempt_id=context.attempt_id,
                    to=message.to,
                    error=str(e),
                )
                failures.append(
                    SideEffectFailureDetail(kind="notification", target=message.to, message=str(e))
                )
                continue
            if not receipt.sent:
                log.warning(
                    "task_notification_rejected",
                    task_id=str(task.id),
                    attempt_id=context.attempt_id,
                    to=message.to,
                    error=receipt.error,
                )
                failures.append(
                    SideEffectFailureDetail(
                        kind="notification",
                        target=message.to,
                        message=receipt.error or "email was not accepted",
                    )
                )
        return failures

    async def _audit(
        self,
        context: ResolutionContext,
        action: str,
        target_type: str,
        target_id: str | int,
    ) -> None:
        """写入审计日志（在当前事务内）"""
        await self._stores.admin_log_store.append(
            admin_id=context.admin_id,
            action=action,
            target_type=target_type,
            target_id=target_id,
            now=self._now(),
        )


def appointment_summary(row: AppointmentRow) -> AppointmentSummary:
    """预约行 -> 展示摘要"""
    return AppointmentSummary(
        appointment_id=row.id,
        job_code=row.job_code,
        appointment_type=row.appointment_type,
        date=row.date,
        time=row.time,
        address=row.address,
        customer=ContactInfo(
            name=row.customer_name,
            email=row.customer_email,
            phone=row.customer_phone,
        ),
    )


def driver_info(task: DriverTaskRow) -> DriverInfo | None:
    """配送任务 -> 司机信息（未接单返回 None）"""
    if task.driver_id is None:
        return None
    return DriverInfo(
        driver_id=task.driver_id,
        name=task.driver_name or "",
        phone=task.driver_phone,
        unit_number=task.unit_number,
    )


def format_day(moment: datetime) -> str:
    """展示用日期，如 Mon, Oct 19"""
    return moment.strftime("%a, %b %d")


def check_raw_unit_numbers(raw: Mapping[str, Any]) -> None:
    """在形状校验之前报告重复单元号，不受照片 / 司机字段错误影响"""
    numbers = raw.get("unitNumbers", raw.get("unit_numbers"))
    if isinstance(numbers, list) and all(isinstance(n, str) for n in numbers):
        check_unit_number_duplicates(numbers)
