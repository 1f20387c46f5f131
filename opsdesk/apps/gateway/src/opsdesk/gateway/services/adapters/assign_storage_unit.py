"""AssignStorageUnit adapter -- 近两天内的入库类预约，尚未分配任何储物单元

每个预约一个任务，需分配的单元数为 number_of_units（缺省 1）。
"""

from collections.abc import Mapping
from typing import Any

from opsdesk.core.config import UPCOMING_WINDOW_DAYS
from opsdesk.core.exceptions import TaskConflictError, TaskValidationError
from opsdesk.core.models import (
    PICKUP_APPOINTMENT_TYPES,
    AssignStorageUnitPayload,
    DriverInfo,
    PhotoInput,
    StorageUnitStatus,
    Task,
    TaskId,
    TaskType,
    UnitAssignmentRequest,
)
from opsdesk.core.validation import (
    check_photos,
    check_unit_count,
    check_unit_numbers,
    normalize_unit_number,
)

from .base import (
    ApplyOutcome,
    ResolutionContext,
    TaskAdapter,
    appointment_summary,
    check_raw_unit_numbers,
    driver_info,
    format_day,
    window,
)


class AssignStorageUnitAdapter(TaskAdapter[UnitAssignmentRequest]):
    task_type = TaskType.ASSIGN_STORAGE_UNIT
    request_model = UnitAssignmentRequest
    photo_category = "trailer"

    async def _query(self, task_id: TaskId | None = None) -> list[Task]:
        store = self._stores.appointment_store
        start, end = window(self._now(), UPCOMING_WINDOW_DAYS)
        appointments = await store.list_awaiting_unit_assignment(
            PICKUP_APPOINTMENT_TYPES,
            start,
            end,
            appointment_id=task_id.entity_id if task_id else None,
        )
        if not appointments:
            return []

        driver_tasks = await store.list_driver_tasks([a.id for a in appointments])
        tasks: list[Task] = []
        for appointment in appointments:
            required = appointment.number_of_units or 1
            drivers: dict[int, DriverInfo] = {}
            for dt in driver_tasks.get(appointment.id, []):
                info = driver_info(dt)
                if info is not None:
                    drivers.setdefault(dt.unit_number, info)
            tasks.append(
                Task(
                    id=TaskId(type=self.task_type, entity_id=appointment.id),
                    type=self.task_type,
                    title="Assign Storage Unit",
                    description=(
                        f"Assign {required} storage unit(s) to job {appointment.job_code} "
                        f"on {format_day(appointment.date)}. Verify job code and driver."
                    ),
                    action="Assign",
                    payload=AssignStorageUnitPayload(
                        appointment=appointment_summary(appointment),
                        required_units=required,
                        drivers=[drivers[k] for k in sorted(drivers)],
                    ),
                    created_at=appointment.date,
                )
            )
        return tasks

    def precheck_raw(self, raw: Mapping[str, Any]) -> None:
        check_raw_unit_numbers(raw)

    def check_request(self, request: UnitAssignmentRequest) -> None:
        check_unit_numbers(request.unit_numbers)
        check_photos(request.trailer_photos, "trailer_photos")

    def check_against_task(self, task: Task, request: UnitAssignmentRequest) -> None:
        payload: AssignStorageUnitPayload = task.payload  # type: ignore[assignment]
        check_unit_count(request.unit_numbers, payload.required_units)

    def photos_of(self, request: UnitAssignmentRequest) -> list[PhotoInput]:
        return request.trailer_photos

    async def apply(
        self,
        task: Task,
        request: UnitAssignmentRequest,
        photo_urls: list[str],
        context: ResolutionContext,
    ) -> ApplyOutcome:
        payload: AssignStorageUnitPayload = task.payload  # type: ignore[assignment]
        appointment_id = payload.appointment.appointment_id
        unit_store = self._stores.storage_unit_store
        now = self._now()

        if await unit_store.has_started_usage(appointment_id):
            raise TaskConflictError(str(task.id), "storage units already assigned")
        appointment = await self._stores.appointment_store.get_appointment(appointment_id)
        if appointment is None:
            raise TaskConflictError(str(task.id), "appointment no longer exists")

        units = {
            normalize_unit_number(u.storage_unit_number): u
            for u in await unit_store.get_units_by_number(request.unit_numbers)
        }
        unavailable: list[str] = []
        for number in request.unit_numbers:
            unit = units.get(number)
            if unit is None or not await unit_store.transition_unit_status(
                unit.id, StorageUnitStatus.EMPTY, StorageUnitStatus.ASSIGNED, now
            ):
                unavailable.append(number)
        if unavailable:
            # 抛出后事务回滚，已流转的单元恢复原状态
            raise TaskValidationError(
                f"Storage units not available: {', '.join(unavailable)}",
                details=[{"field": "unit_numbers", "reason": "unavailable", "values": unavailable}],
            )

        usage_ids: list[int] = []
        for index, number in enumerate(request.unit_numbers, start=1):
            unit = units[number]
            usage_ids.append(
                await unit_store.create_usage(
                    unit.id, appointment.user_id, appointment_id, photo_urls, now
                )
            )
            await self._stores.appointment_store.bind_driver_tasks(
                appointment_id, index, unit.id, request.driver_matches
            )

        await self._audit(context, "ASSIGN_STORAGE_UNIT", "APPOINTMENT", appointment_id)
        return ApplyOutcome(
            message=f"Assigned {len(usage_ids)} storage unit(s) to {payload.appointment.job_code}",
            updated_entity={
                "appointment_id": appointment_id,
                "storage_unit_numbers": list(request.unit_numbers),
                "usage_ids": usage_ids,
                "driver_verified": request.driver_matches,
            },
        )
