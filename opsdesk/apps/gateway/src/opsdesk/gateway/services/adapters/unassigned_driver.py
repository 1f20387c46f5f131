"""UnassignedDriver adapter -- 近两天内尚无司机接单、且未联系搬家合作方的预约

管理员致电合作方后记录联系结果；未能联系上时给合作方发送提醒邮件。
"""

from opsdesk.core.config import UPCOMING_WINDOW_DAYS
from opsdesk.core.exceptions import TaskConflictError, TaskValidationError
from opsdesk.core.models import (
    ContactInfo,
    PartnerContactRequest,
    PriorityHint,
    Task,
    TaskId,
    TaskType,
    UnassignedDriverPayload,
)
from opsdesk.ports import EmailMessage

from .base import (
    ApplyOutcome,
    ResolutionContext,
    TaskAdapter,
    appointment_summary,
    format_day,
    start_of_day,
    window,
)


class UnassignedDriverAdapter(TaskAdapter[PartnerContactRequest]):
    task_type = TaskType.UNASSIGNED_DRIVER
    request_model = PartnerContactRequest

    async def _query(self, task_id: TaskId | None = None) -> list[Task]:
        store = self._stores.appointment_store
        start, end = window(start_of_day(self._now()), UPCOMING_WINDOW_DAYS)
        appointments = await store.list_missing_driver(
            start, end, appointment_id=task_id.entity_id if task_id else None
        )
        if not appointments:
            return []

        driver_tasks = await store.list_driver_tasks([a.id for a in appointments])
        partners = {}
        for partner_id in {a.moving_partner_id for a in appointments if a.moving_partner_id}:
            partners[partner_id] = await store.get_moving_partner(partner_id)

        tasks: list[Task] = []
        for appointment in appointments:
            partner = partners.get(appointment.moving_partner_id)
            tasks.append(
                Task(
                    id=TaskId(type=self.task_type, entity_id=appointment.id),
                    type=self.task_type,
                    title="Unassigned Driver",
                    description=(
                        "Call moving partner and remind them to assign driver to job "
                        f"{appointment.job_code} on {format_day(appointment.date)}"
                    ),
                    action="Remind Mover",
                    payload=UnassignedDriverPayload(
                        appointment=appointment_summary(appointment),
                        moving_partner=ContactInfo(
                            name=partner.name if partner else "",
                            email=partner.email if partner else None,
                            phone=partner.phone_number if partner else None,
                        ),
                        driver_task_refs=[
                            t.short_id for t in driver_tasks.get(appointment.id, []) if t.short_id
                        ],
                    ),
                    created_at=appointment.date,
                    priority_hint=PriorityHint.CRITICAL,
                )
            )
        return tasks

    def check_request(self, request: PartnerContactRequest) -> None:
        if not request.called_partner and request.got_hold_of_partner:
            raise TaskValidationError(
                "Cannot have reached the moving partner without calling them",
                details=[{"field": "got_hold_of_partner", "reason": "inconsistent"}],
            )
        if request.called_partner and request.got_hold_of_partner is None:
            raise TaskValidationError(
                "Please indicate whether the moving partner was reached",
                details=[{"field": "got_hold_of_partner", "reason": "required"}],
            )

    async def apply(
        self,
        task: Task,
        request: PartnerContactRequest,
        photo_urls: list[str],
        context: ResolutionContext,
    ) -> ApplyOutcome:
        payload: UnassignedDriverPayload = task.payload  # type: ignore[assignment]
        appointment_id = payload.appointment.appointment_id
        got_hold = request.got_hold_of_partner if request.called_partner else None
        updated = await self._stores.appointment_store.record_partner_contact(
            appointment_id, request.called_partner, got_hold
        )
        if not updated:
            raise TaskConflictError(str(task.id), "partner already contacted or driver assigned")

        action = (
            "Called moving partner" if request.called_partner else "Marked as not called moving partner"
        )
        await self._audit(context, action, "APPOINTMENT", appointment_id)
        return ApplyOutcome(
            message=action,
            resolved=request.called_partner,
            updated_entity={
                "appointment_id": appointment_id,
                "called_moving_partner": request.called_partner,
                "got_hold_of_moving_partner": got_hold,
            },
        )

    def notifications(
        self,
        task: Task,
        request: PartnerContactRequest,
        outcome: ApplyOutcome,
    ) -> list[EmailMessage]:
        payload: UnassignedDriverPayload = task.payload  # type: ignore[assignment]
        if not request.called_partner or request.got_hold_of_partner:
            return []
        if not payload.moving_partner.email:
            return []
        appointment = payload.appointment
        return [
            EmailMessage(
                to=payload.moving_partner.email,
                subject=f"Driver needed for job {appointment.job_code}",
                body=(
                    f"Hi {payload.moving_partner.name or 'there'},\n\n"
                    f"We tried to reach you by phone about job {appointment.job_code} "
                    f"on {format_day(appointment.date)} {appointment.time}. "
                    "No driver has been assigned yet. Please assign a driver as soon as possible.\n\n"
                    "Thank you"
                ),
            )
        ]
