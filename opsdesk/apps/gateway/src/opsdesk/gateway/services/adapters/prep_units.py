"""PrepUnitsForDelivery adapter -- 近两天内的取物/退租预约，请求单元尚未叉运到待发区

勾选集合必须与服务端推导出的待备货单元完全一致。
"""

from opsdesk.core.config import UPCOMING_WINDOW_DAYS
from opsdesk.core.exceptions import TaskConflictError, TaskValidationError
from opsdesk.core.models import (
    ACCESS_APPOINTMENT_TYPES,
    PrepUnitsForDeliveryPayload,
    PrepUnitsRequest,
    RequestedUnitLine,
    Task,
    TaskId,
    TaskType,
)
from opsdesk.core.validation import check_unit_numbers, diff_checked

from .base import (
    ApplyOutcome,
    ResolutionContext,
    TaskAdapter,
    appointment_summary,
    format_day,
    window,
)


class PrepUnitsForDeliveryAdapter(TaskAdapter[PrepUnitsRequest]):
    task_type = TaskType.PREP_UNITS_FOR_DELIVERY
    request_model = PrepUnitsRequest

    async def _query(self, task_id: TaskId | None = None) -> list[Task]:
        start, end = window(self._now(), UPCOMING_WINDOW_DAYS)
        appointments = await self._stores.appointment_store.list_awaiting_unit_prep(
            ACCESS_APPOINTMENT_TYPES,
            start,
            end,
            appointment_id=task_id.entity_id if task_id else None,
        )
        if not appointments:
            return []

        requested = await self._stores.storage_unit_store.list_requested_units(
            [a.id for a in appointments]
        )
        tasks: list[Task] = []
        for appointment in appointments:
            rows = requested.get(appointment.id, [])
            pending = [r.storage_unit_number for r in rows if not r.units_ready]
            tasks.append(
                Task(
                    id=TaskId(type=self.task_type, entity_id=appointment.id),
                    type=self.task_type,
                    title="Prep Units for Delivery",
                    description=(
                        "Verify unit numbers and forklift them into staging area "
                        f"for {appointment.job_code} on {format_day(appointment.date)}: "
                        f"{', '.join(pending)}"
                    ),
                    action="Mark Complete",
                    payload=PrepUnitsForDeliveryPayload(
                        appointment=appointment_summary(appointment),
                        units=[
                            RequestedUnitLine(
                                storage_unit_number=r.storage_unit_number,
                                units_ready=r.units_ready,
                            )
                            for r in rows
                        ],
                        pending_unit_numbers=pending,
                    ),
                    created_at=appointment.date,
                )
            )
        return tasks

    def check_request(self, request: PrepUnitsRequest) -> None:
        check_unit_numbers(request.checked_unit_numbers, field="checked_unit_numbers")
        if not request.units_in_staging_area:
            raise TaskValidationError(
                "Please confirm all units are in the staging area",
                details=[{"field": "units_in_staging_area", "reason": "not_confirmed"}],
            )

    def check_against_task(self, task: Task, request: PrepUnitsRequest) -> None:
        payload: PrepUnitsForDeliveryPayload = task.payload  # type: ignore[assignment]
        missing, unknown = diff_checked(payload.pending_unit_numbers, request.checked_unit_numbers)
        if missing or unknown:
            details = []
            if missing:
                details.append(
                    {"field": "checked_unit_numbers", "reason": "unchecked", "values": missing}
                )
            if unknown:
                details.append(
                    {"field": "checked_unit_numbers", "reason": "unknown", "values": unknown}
                )
            raise TaskValidationError(
                "Checked units must match the units awaiting prep", details=details
            )

    async def apply(
        self,
        task: Task,
        request: PrepUnitsRequest,
        photo_urls: list[str],
        context: ResolutionContext,
    ) -> ApplyOutcome:
        payload: PrepUnitsForDeliveryPayload = task.payload  # type: ignore[assignment]
        appointment_id = payload.appointment.appointment_id
        unit_store = self._stores.storage_unit_store

        requested = await unit_store.list_requested_units([appointment_id])
        expected = set(payload.pending_unit_numbers)
        pending_ids = [
            r.storage_unit_id
            for r in requested.get(appointment_id, [])
            if not r.units_ready and r.storage_unit_number in expected
        ]
        marked = await unit_store.mark_requested_units_ready(appointment_id, pending_ids)
        if marked != len(expected):
            raise TaskConflictError(str(task.id), "units were already prepped")

        await self._audit(context, "PREP_UNITS_FOR_DELIVERY", "APPOINTMENT", appointment_id)
        return ApplyOutcome(
            message=f"{marked} unit(s) ready for delivery",
            updated_entity={
                "appointment_id": appointment_id,
                "ready_unit_numbers": sorted(expected),
            },
        )
