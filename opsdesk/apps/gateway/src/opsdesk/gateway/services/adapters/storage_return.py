"""StorageUnitReturn adapter -- 单元回库后等待管理员入库核查的预约

预约类型决定必须回答的占用问题，以及核查后单元与使用记录的去向：

| 类型 | 回答 | 单元 | 使用记录 |
|---|---|---|---|
| 入库 | 空 | Pending Cleaning | 结束 |
| 入库 | 非空 | Occupied | 位置待录入 |
| 取物 | 仍存放 | Occupied | 位置待录入 |
| 取物 | 不再存放 | Pending Cleaning | 结束 |
| 退租 | 全部取出 | Pending Cleaning | 结束 |
| 退租 | 仍有物品 | Occupied | 位置待录入 |
"""

from opsdesk.core.config import (
    AWAITING_CHECK_IN_STATUS,
    COMPLETED_STATUS,
    PENDING_LOCATION,
)
from opsdesk.core.exceptions import TaskConflictError, TaskValidationError
from opsdesk.core.models import (
    ACCESS_APPOINTMENT_TYPES,
    END_STORAGE_APPOINTMENT_TYPES,
    PICKUP_APPOINTMENT_TYPES,
    AppointmentType,
    ContactInfo,
    OccupancyQuestion,
    PhotoInput,
    StorageReturnRequest,
    StorageUnitReturnPayload,
    StorageUnitStatus,
    Task,
    TaskId,
    TaskType,
)
from opsdesk.core.models.records import UsageRow
from opsdesk.core.validation import check_photos

from .base import (
    AdapterDeps,
    ApplyOutcome,
    ResolutionContext,
    TaskAdapter,
    appointment_summary,
)

RETURN_APPOINTMENT_TYPES: tuple[str, ...] = PICKUP_APPOINTMENT_TYPES + ACCESS_APPOINTMENT_TYPES

# (保留单元时的日志后缀, 清空单元时的日志后缀)
_LOG_DETAILS: dict[OccupancyQuestion, tuple[str, str]] = {
    OccupancyQuestion.IS_UNIT_EMPTY: ("COMPLETED_OCCUPIED", "COMPLETED_EMPTY"),
    OccupancyQuestion.IS_STILL_STORING_ITEMS: (
        "COMPLETED_STILL_STORING",
        "COMPLETED_EMPTIED_UNEXPECTEDLY",
    ),
    OccupancyQuestion.IS_ALL_ITEMS_REMOVED: ("INCOMPLETE_ITEMS_REMAIN", "COMPLETED_ALL_REMOVED"),
}


def occupancy_question_for(appointment_type: str) -> OccupancyQuestion:
    """预约类型 -> 必答的占用问题"""
    if appointment_type in PICKUP_APPOINTMENT_TYPES:
        return OccupancyQuestion.IS_UNIT_EMPTY
    if appointment_type in END_STORAGE_APPOINTMENT_TYPES:
        return OccupancyQuestion.IS_ALL_ITEMS_REMOVED
    return OccupancyQuestion.IS_STILL_STORING_ITEMS


def keeps_items(question: OccupancyQuestion, answer: bool) -> bool:
    """回答是否意味着单元内仍存放物品"""
    if question == OccupancyQuestion.IS_STILL_STORING_ITEMS:
        return answer
    return not answer


def log_type_label(appointment_type: str) -> str:
    if appointment_type == AppointmentType.END_STORAGE_PLAN:
        appointment_type = AppointmentType.END_STORAGE_TERM
    return appointment_type.upper().replace(" ", "_")


class StorageUnitReturnAdapter(TaskAdapter[StorageReturnRequest]):
    task_type = TaskType.STORAGE_UNIT_RETURN
    request_model = StorageReturnRequest
    photo_category = "damage"

    def __init__(self, deps: AdapterDeps, warehouse_name: str) -> None:
        super().__init__(deps)
        self._warehouse_name = warehouse_name

    async def _query(self, task_id: TaskId | None = None) -> list[Task]:
        store = self._stores.appointment_store
        appointments = await store.list_by_status(
            AWAITING_CHECK_IN_STATUS,
            RETURN_APPOINTMENT_TYPES,
            appointment_id=task_id.entity_id if task_id else None,
        )
        if not appointments:
            return []

        requested = await self._stores.storage_unit_store.list_requested_units(
            [a.id for a in appointments if a.appointment_type in ACCESS_APPOINTMENT_TYPES]
        )
        tasks: list[Task] = []
        for appointment in appointments:
            if appointment.appointment_type in PICKUP_APPOINTMENT_TYPES:
                usages = await self._stores.storage_unit_store.list_usages_started_by(
                    appointment.id
                )
                numbers = [u.storage_unit_number for u in usages]
            else:
                numbers = [r.storage_unit_number for r in requested.get(appointment.id, [])]

            partner = None
            if appointment.moving_partner_id is not None:
                row = await store.get_moving_partner(appointment.moving_partner_id)
                if row is not None:
                    partner = ContactInfo(name=row.name, email=row.email, phone=row.phone_number)

            tasks.append(
                Task(
                    id=TaskId(type=self.task_type, entity_id=appointment.id),
                    type=self.task_type,
                    title="Storage Unit Return",
                    description=(
                        f"Process storage unit return and damage assessment for "
                        f"{appointment.job_code} ({appointment.appointment_type})"
                    ),
                    action="Process Return",
                    payload=StorageUnitReturnPayload(
                        appointment=appointment_summary(appointment),
                        occupancy_question=occupancy_question_for(appointment.appointment_type),
                        storage_unit_numbers=numbers,
                        moving_partner=partner,
                    ),
                    created_at=appointment.date,
                )
            )
        return tasks

    def check_request(self, request: StorageReturnRequest) -> None:
        if not request.has_damage:
            return
        if not request.damage_description:
            raise TaskValidationError(
                "Damage description is required when damage is reported",
                details=[{"field": "damage_description", "reason": "required"}],
            )
        check_photos(request.damage_photos, "damage_photos")

    def check_against_task(self, task: Task, request: StorageReturnRequest) -> None:
        payload: StorageUnitReturnPayload = task.payload  # type: ignore[assignment]
        question = payload.occupancy_question
        if getattr(request, question.value) is None:
            raise TaskValidationError(
                f"Missing required field: {question.value}",
                details=[{"field": question.value, "reason": "required"}],
            )

    def photos_of(self, request: StorageReturnRequest) -> list[PhotoInput]:
        return request.damage_photos if request.has_damage else []

    async def apply(
        self,
        task: Task,
        request: StorageReturnRequest,
        photo_urls: list[str],
        context: ResolutionContext,
    ) -> ApplyOutcome:
        payload: StorageUnitReturnPayload = task.payload  # type: ignore[assignment]
        appointment = payload.appointment
        question = payload.occupancy_question
        unit_store = self._stores.storage_unit_store
        now = self._now()

        completed = await self._stores.appointment_store.transition_status(
            appointment.appointment_id, AWAITING_CHECK_IN_STATUS, COMPLETED_STATUS
        )
        if not completed:
            raise TaskConflictError(str(task.id), "appointment already checked in")

        usages = await self._usages_for(appointment.appointment_id, question)
        usage_ids = [u.id for u in usages]
        unit_ids = sorted({u.storage_unit_id for u in usages})

        keep = keeps_items(question, bool(getattr(request, question.value)))
        if keep:
            await unit_store.set_units_status(unit_ids, StorageUnitStatus.OCCUPIED, now)
            await unit_store.mark_usages_pending_location(
                usage_ids, PENDING_LOCATION, self._warehouse_name, now
            )
            unit_status = StorageUnitStatus.OCCUPIED
        else:
            await unit_store.set_units_status(unit_ids, StorageUnitStatus.PENDING_CLEANING, now)
            await unit_store.end_usages(usage_ids, appointment.appointment_id, now)
            unit_status = StorageUnitStatus.PENDING_CLEANING

        damage_report_ids: list[int] = []
        if request.has_damage:
            for unit_id in unit_ids:
                damage_report_ids.append(
                    await unit_store.add_damage_report(
                        unit_id,
                        appointment.appointment_id,
                        context.admin_id,
                        request.damage_description or "",
                        photo_urls,
                        now,
                    )
                )

        kept_detail, cleared_detail = _LOG_DETAILS[question]
        action = f"{log_type_label(appointment.appointment_type)}_{kept_detail if keep else cleared_detail}"
        if request.has_damage:
            action += "_WITH_DAMAGE"
        await self._audit(context, action, "APPOINTMENT", appointment.appointment_id)

        return ApplyOutcome(
            message="Storage unit return processed",
            updated_entity={
                "appointment_id": appointment.appointment_id,
                "status": COMPLETED_STATUS,
                "unit_status": unit_status.value,
                "storage_unit_ids": unit_ids,
                "usage_ids": usage_ids,
                "damage_report_ids": damage_report_ids,
            },
        )

    async def _usages_for(self, appointment_id: int, question: OccupancyQuestion) -> list[UsageRow]:
        unit_store = self._stores.storage_unit_store
        if question == OccupancyQuestion.IS_UNIT_EMPTY:
            return await unit_store.list_usages_started_by(appointment_id)
        requested = await unit_store.list_requested_units([appointment_id])
        return await unit_store.list_active_usages_for_units(
            [r.storage_unit_id for r in requested.get(appointment_id, [])]
        )
