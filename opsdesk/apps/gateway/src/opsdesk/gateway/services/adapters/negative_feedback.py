"""NegativeFeedback adapter -- 未回复的差评（预约评价 + 耗材订单评价）"""

from opsdesk.core.config import NEGATIVE_FEEDBACK_MAX_RATING
from opsdesk.core.exceptions import TaskConflictError, TaskValidationError
from opsdesk.core.models import (
    ContactInfo,
    FeedbackResponseRequest,
    FeedbackSource,
    NegativeFeedbackPayload,
    PriorityHint,
    Task,
    TaskId,
    TaskType,
)
from opsdesk.core.models.records import FeedbackRow
from opsdesk.ports import EmailMessage

from .base import ApplyOutcome, ResolutionContext, TaskAdapter

# 耗材订单评价在 TaskId 中的作用域
PACKING_SUPPLY_SCOPE = "ps"

_TITLES = {
    FeedbackSource.APPOINTMENT: "Negative Feedback",
    FeedbackSource.PACKING_SUPPLY: "Negative Packing Supply Feedback",
}


class NegativeFeedbackAdapter(TaskAdapter[FeedbackResponseRequest]):
    task_type = TaskType.NEGATIVE_FEEDBACK
    request_model = FeedbackResponseRequest

    async def _query(self, task_id: TaskId | None = None) -> list[Task]:
        store = self._stores.feedback_store
        tasks: list[Task] = []

        # 详情查询时按作用域只查对应来源表
        if task_id is None or task_id.scope is None:
            rows = await store.list_unresponded_appointment_feedback(
                NEGATIVE_FEEDBACK_MAX_RATING,
                feedback_id=task_id.entity_id if task_id else None,
            )
            tasks.extend(self._to_task(row, FeedbackSource.APPOINTMENT) for row in rows)

        if task_id is None or task_id.scope == PACKING_SUPPLY_SCOPE:
            rows = await store.list_unresponded_packing_supply_feedback(
                NEGATIVE_FEEDBACK_MAX_RATING,
                feedback_id=task_id.entity_id if task_id else None,
            )
            tasks.extend(self._to_task(row, FeedbackSource.PACKING_SUPPLY) for row in rows)

        return tasks

    def _to_task(self, row: FeedbackRow, source: FeedbackSource) -> Task:
        scope = PACKING_SUPPLY_SCOPE if source == FeedbackSource.PACKING_SUPPLY else None
        label = "Order #" if scope else "Job Code"
        return Task(
            id=TaskId(type=self.task_type, entity_id=row.id, scope=scope),
            type=self.task_type,
            title=_TITLES[source],
            description=f"Respond to customer via email ({label}: {row.reference}, rating {row.rating})",
            action="Respond",
            payload=NegativeFeedbackPayload(
                source=source,
                feedback_id=row.id,
                rating=row.rating,
                comment=row.comment,
                reference=row.reference,
                customer=ContactInfo(name=row.customer_name, email=row.customer_email),
            ),
            created_at=row.created_at,
            priority_hint=PriorityHint.URGENT,
        )

    def check_request(self, request: FeedbackResponseRequest) -> None:
        missing = [
            name
            for name, value in (
                ("email_subject", request.email_subject),
                ("email_body", request.email_body),
            )
            if not value
        ]
        if missing:
            raise TaskValidationError(
                "Email subject and body are required",
                details=[{"field": name, "reason": "blank"} for name in missing],
            )

    def check_against_task(self, task: Task, request: FeedbackResponseRequest) -> None:
        payload: NegativeFeedbackPayload = task.payload  # type: ignore[assignment]
        if not payload.customer.email:
            raise TaskValidationError(
                "Customer has no email address on file",
                details=[{"field": "customer.email", "reason": "missing"}],
            )

    async def apply(
        self,
        task: Task,
        request: FeedbackResponseRequest,
        photo_urls: list[str],
        context: ResolutionContext,
    ) -> ApplyOutcome:
        payload: NegativeFeedbackPayload = task.payload  # type: ignore[assignment]
        updated = await self._stores.feedback_store.mark_responded(
            payload.source, payload.feedback_id, request.email_body
        )
        if not updated:
            raise TaskConflictError(str(task.id), "feedback already responded")

        await self._audit(context, "RESPOND_TO_FEEDBACK", "FEEDBACK", task.id.key)
        return ApplyOutcome(
            message="Response recorded",
            updated_entity={
                "feedback_id": payload.feedback_id,
                "source": payload.source.value,
                "responded": True,
            },
        )

    def notifications(
        self,
        task: Task,
        request: FeedbackResponseRequest,
        outcome: ApplyOutcome,
    ) -> list[EmailMessage]:
        payload: NegativeFeedbackPayload = task.payload  # type: ignore[assignment]
        return [
            EmailMessage(
                to=payload.customer.email or "",
                subject=request.email_subject,
                body=request.email_body,
            )
        ]
