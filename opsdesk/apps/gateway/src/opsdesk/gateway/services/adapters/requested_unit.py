"""RequestedUnitAssignment adapter -- 取件类预约中客户指定的单元，待管理员核验司机并装车"""

from collections.abc import Mapping
from typing import Any

from opsdesk.core.exceptions import TaskConflictError, TaskValidationError
from opsdesk.core.models import (
    ACCESS_APPOINTMENT_TYPES,
    PhotoInput,
    RequestedUnitAssignmentPayload,
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
)


class RequestedUnitAssignmentAdapter(TaskAdapter[UnitAssignmentRequest]):
    task_type = TaskType.REQUESTED_UNIT_ASSIGNMENT
    request_model = UnitAssignmentRequest
    photo_category = "trailer"

    async def _query(self, task_id: TaskId | None = None) -> list[Task]:
        unit_store = self._stores.storage_unit_store
        pending = await unit_store.list_unassigned_requested_units(
            requested_unit_id=task_id.sub_key if task_id else None
        )
        if not pending:
            return []

        appointment_ids = sorted({row.appointment_id for row in pending})
        appointments = {
            appt.id: appt
            for appt in await self._stores.appointment_store.list_active_by_types(
                ACCESS_APPOINTMENT_TYPES, appointment_ids
            )
        }
        requested = await unit_store.list_requested_units(list(appointments))
        driver_tasks = await self._stores.appointment_store.list_driver_tasks(list(appointments))

        tasks: list[Task] = []
        for row in pending:
            appointment = appointments.get(row.appointment_id)
            if appointment is None:
                continue
            siblings = requested.get(row.appointment_id, [])
            unit_index = next(
                (i for i, sibling in enumerate(siblings, start=1) if sibling.id == row.id),
                1,
            )
            driver = next(
                (
                    info
                    for dt in driver_tasks.get(row.appointment_id, [])
                    if dt.unit_number == unit_index and (info := driver_info(dt)) is not None
                ),
                None,
            )
            tasks.append(
                Task(
                    id=TaskId(
                        type=self.task_type,
                        entity_id=row.appointment_id,
                        sub_key=row.id,
                    ),
                    type=self.task_type,
                    title="Assign Requested Unit",
                    description=(
                        f"Customer requested unit {row.storage_unit_number} for "
                        f"{appointment.job_code} ({unit_index} of {len(siblings) or 1})"
                    ),
                    action="Assign Unit",
                    payload=RequestedUnitAssignmentPayload(
                        appointment=appointment_summary(appointment),
                        requested_unit_id=row.id,
                        storage_unit_id=row.storage_unit_id,
                        storage_unit_number=row.storage_unit_number,
                        unit_index=unit_index,
                        total_units=len(siblings) or 1,
                        driver=driver,
                    ),
                    created_at=row.created_at,
                )
            )
        return tasks

    def precheck_raw(self, raw: Mapping[str, Any]) -> None:
        check_raw_unit_numbers(raw)

    def check_request(self, request: UnitAssignmentRequest) -> None:
        check_unit_numbers(request.unit_numbers)
        check_photos(request.trailer_photos, "trailer_photos")

    def check_against_task(self, task: Task, request: UnitAssignmentRequest) -> None:
        payload: RequestedUnitAssignmentPayload = task.payload  # type: ignore[assignment]
        check_unit_count(request.unit_numbers, payload.required_units)
        submitted = request.unit_numbers[0]
        if submitted != normalize_unit_number(payload.storage_unit_number):
            raise TaskValidationError(
                f"Unit {submitted} does not match requested unit {payload.storage_unit_number}",
                details=[
                    {
                        "field": "unit_numbers",
                        "reason": "unit_mismatch",
                        "expected": payload.storage_unit_number,
                        "actual": submitted,
                    }
                ],
            )

    def photos_of(self, request: UnitAssignmentRequest) -> list[PhotoInput]:
        return request.trailer_photos

    async def apply(
        self,
        task: Task,
        request: UnitAssignmentRequest,
        photo_urls: list[str],
        context: ResolutionContext,
    ) -> ApplyOutcome:
        payload: RequestedUnitAssignmentPayload = task.payload  # type: ignore[assignment]
        assigned = await self._stores.storage_unit_store.mark_requested_unit_assigned(
            payload.requested_unit_id, photo_urls, self._now()
        )
        if not assigned:
            raise TaskConflictError(str(task.id), "requested unit already assigned")

        bound = await self._stores.appointment_store.bind_driver_tasks(
            payload.appointment.appointment_id,
            payload.unit_index,
            payload.storage_unit_id,
            request.driver_matches,
        )
        await self._audit(
            context, "ASSIGN_REQUESTED_UNIT", "APPOINTMENT", payload.appointment.appointment_id
        )
        return ApplyOutcome(
            message=f"Unit {payload.storage_unit_number} assigned",
            updated_entity={
                "appointment_id": payload.appointment.appointment_id,
                "storage_unit_number": payload.storage_unit_number,
                "unit_index": payload.unit_index,
                "driver_verified": request.driver_matches,
                "driver_tasks_updated": bound,
            },
        )
