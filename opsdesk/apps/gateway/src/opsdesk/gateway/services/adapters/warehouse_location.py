"""WarehouseLocationUpdate adapter -- 回库后仓库位置仍为占位值的使用记录"""

from opsdesk.core.config import PENDING_LOCATION
from opsdesk.core.exceptions import TaskConflictError
from opsdesk.core.models import (
    ContactInfo,
    LocationUpdateRequest,
    Task,
    TaskId,
    TaskType,
    WarehouseLocationUpdatePayload,
)
from opsdesk.core.validation import check_warehouse_location

from .base import AdapterDeps, ApplyOutcome, ResolutionContext, TaskAdapter


class WarehouseLocationUpdateAdapter(TaskAdapter[LocationUpdateRequest]):
    task_type = TaskType.WAREHOUSE_LOCATION_UPDATE
    request_model = LocationUpdateRequest

    def __init__(self, deps: AdapterDeps, warehouse_name: str) -> None:
        super().__init__(deps)
        self._warehouse_name = warehouse_name

    async def _query(self, task_id: TaskId | None = None) -> list[Task]:
        usages = await self._stores.storage_unit_store.list_active_usages_with_location(
            PENDING_LOCATION, usage_id=task_id.entity_id if task_id else None
        )
        return [
            Task(
                id=TaskId(type=self.task_type, entity_id=usage.id),
                type=self.task_type,
                title="Update Location",
                description=f"Update warehouse location for unit {usage.storage_unit_number}",
                action="Update",
                payload=WarehouseLocationUpdatePayload(
                    usage_id=usage.id,
                    storage_unit_id=usage.storage_unit_id,
                    storage_unit_number=usage.storage_unit_number,
                    customer=ContactInfo(name=usage.customer_name, email=usage.customer_email),
                    warehouse_name=usage.warehouse_name,
                ),
                created_at=usage.updated_at,
            )
            for usage in usages
        ]

    def check_request(self, request: LocationUpdateRequest) -> None:
        check_warehouse_location(request.warehouse_location)

    async def apply(
        self,
        task: Task,
        request: LocationUpdateRequest,
        photo_urls: list[str],
        context: ResolutionContext,
    ) -> ApplyOutcome:
        payload: WarehouseLocationUpdatePayload = task.payload  # type: ignore[assignment]
        location = check_warehouse_location(request.warehouse_location)
        updated = await self._stores.storage_unit_store.set_usage_location(
            payload.usage_id,
            expected_location=PENDING_LOCATION,
            location=location,
            warehouse_name=self._warehouse_name,
            now=self._now(),
        )
        if not updated:
            raise TaskConflictError(str(task.id), "location already updated")

        await self._audit(context, "UPDATE_LOCATION", "STORAGE_UNIT_USAGE", payload.usage_id)
        return ApplyOutcome(
            message=f"Unit {payload.storage_unit_number} located at {location}",
            updated_entity={
                "usage_id": payload.usage_id,
                "storage_unit_number": payload.storage_unit_number,
                "warehouse_location": location,
                "warehouse_name": self._warehouse_name,
            },
        )
