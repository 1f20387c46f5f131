"""PrepPackingSupplyOrder adapter -- 尚未备货的耗材订单"""

from opsdesk.core.exceptions import TaskConflictError, TaskValidationError
from opsdesk.core.models import (
    ContactInfo,
    OrderLine,
    PrepOrderRequest,
    PrepPackingSupplyOrderPayload,
    Task,
    TaskId,
    TaskType,
)
from opsdesk.core.validation import diff_checked, find_duplicates

from .base import ApplyOutcome, ResolutionContext, TaskAdapter, format_day


class PrepPackingSupplyOrderAdapter(TaskAdapter[PrepOrderRequest]):
    task_type = TaskType.PREP_PACKING_SUPPLY_ORDER
    request_model = PrepOrderRequest

    async def _query(self, task_id: TaskId | None = None) -> list[Task]:
        store = self._stores.packing_supply_store
        orders = await store.list_unprepped_orders(order_id=task_id.entity_id if task_id else None)
        if not orders:
            return []

        lines = await store.list_order_lines([o.id for o in orders])
        tasks: list[Task] = []
        for order in orders:
            reference = order.short_id or str(order.id)
            tasks.append(
                Task(
                    id=TaskId(type=self.task_type, entity_id=order.id),
                    type=self.task_type,
                    title="Prep Packing Supply Order",
                    description=(
                        f"Organize packing supply order #{reference} for {order.contact_name} "
                        f"and prep it for pickup by {format_day(order.delivery_date)}"
                    ),
                    action="Prep Order",
                    payload=PrepPackingSupplyOrderPayload(
                        order_id=order.id,
                        reference=reference,
                        customer=ContactInfo(
                            name=order.contact_name,
                            email=order.contact_email,
                            phone=order.contact_phone,
                        ),
                        delivery_address=order.delivery_address,
                        delivery_date=order.delivery_date,
                        driver_name=order.driver_name,
                        items=[
                            OrderLine(
                                detail_id=line.id,
                                product_title=line.product_title,
                                quantity=line.quantity,
                            )
                            for line in lines.get(order.id, [])
                        ],
                    ),
                    created_at=order.order_date,
                )
            )
        return tasks

    def check_request(self, request: PrepOrderRequest) -> None:
        if not request.is_prepped:
            raise TaskValidationError(
                "Please confirm the order is prepped",
                details=[{"field": "is_prepped", "reason": "not_confirmed"}],
            )
        duplicates = find_duplicates(str(i) for i in request.checked_item_ids)
        if duplicates:
            raise TaskValidationError(
                f"Duplicate item ids: {', '.join(duplicates)}",
                details=[{"field": "checked_item_ids", "reason": "duplicate", "values": duplicates}],
            )

    def check_against_task(self, task: Task, request: PrepOrderRequest) -> None:
        payload: PrepPackingSupplyOrderPayload = task.payload  # type: ignore[assignment]
        missing, unknown = diff_checked(
            (item.detail_id for item in payload.items), request.checked_item_ids
        )
        if missing or unknown:
            details = []
            if missing:
                details.append({"field": "checked_item_ids", "reason": "unchecked", "values": missing})
            if unknown:
                details.append({"field": "checked_item_ids", "reason": "unknown", "values": unknown})
            raise TaskValidationError("Checked items must match the order lines", details=details)

    async def apply(
        self,
        task: Task,
        request: PrepOrderRequest,
        photo_urls: list[str],
        context: ResolutionContext,
    ) -> ApplyOutcome:
        payload: PrepPackingSupplyOrderPayload = task.payload  # type: ignore[assignment]
        prepped = await self._stores.packing_supply_store.mark_prepped(
            payload.order_id, context.admin_id, self._now()
        )
        if not prepped:
            raise TaskConflictError(str(task.id), "order already prepped or canceled")

        await self._audit(context, "PREP_PACKING_SUPPLY_ORDER", "PACKING_SUPPLY_ORDER", payload.order_id)
        return ApplyOutcome(
            message=f"Order #{payload.reference} prepped",
            updated_entity={
                "order_id": payload.order_id,
                "is_prepped": True,
                "prepped_by": context.admin_id,
            },
        )
