"""PendingCleaning adapter -- 待清洁的储物单元"""

from opsdesk.core.exceptions import TaskConflictError, TaskValidationError
from opsdesk.core.models import (
    CleaningRequest,
    PendingCleaningPayload,
    PhotoInput,
    StorageUnitStatus,
    Task,
    TaskId,
    TaskType,
)
from opsdesk.core.validation import check_photos

from .base import ApplyOutcome, ResolutionContext, TaskAdapter


class PendingCleaningAdapter(TaskAdapter[CleaningRequest]):
    task_type = TaskType.PENDING_CLEANING
    request_model = CleaningRequest
    photo_category = "cleaning"

    async def _query(self, task_id: TaskId | None = None) -> list[Task]:
        units = await self._stores.storage_unit_store.list_units_by_status(
            StorageUnitStatus.PENDING_CLEANING,
            unit_id=task_id.entity_id if task_id else None,
        )
        return [
            Task(
                id=TaskId(type=self.task_type, entity_id=unit.id),
                type=self.task_type,
                title="Pending Cleaning",
                description=f"Clean storage unit {unit.storage_unit_number} and mark as complete",
                action="Mark as Clean",
                payload=PendingCleaningPayload(
                    storage_unit_id=unit.id,
                    storage_unit_number=unit.storage_unit_number,
                    last_cleaned_at=unit.last_cleaned_at,
                ),
                created_at=unit.last_updated,
            )
            for unit in units
        ]

    def check_request(self, request: CleaningRequest) -> None:
        if not request.confirmed_clean:
            raise TaskValidationError(
                "Please confirm the unit has been cleaned",
                details=[{"field": "confirmed_clean", "reason": "not_confirmed"}],
            )
        check_photos(request.photos, "photos")

    def photos_of(self, request: CleaningRequest) -> list[PhotoInput]:
        return request.photos

    async def apply(
        self,
        task: Task,
        request: CleaningRequest,
        photo_urls: list[str],
        context: ResolutionContext,
    ) -> ApplyOutcome:
        payload: PendingCleaningPayload = task.payload  # type: ignore[assignment]
        unit_store = self._stores.storage_unit_store
        now = self._now()
        cleaned = await unit_store.mark_unit_cleaned(
            payload.storage_unit_id,
            expected=StorageUnitStatus.PENDING_CLEANING,
            new_status=StorageUnitStatus.EMPTY,
            photo_urls=photo_urls,
            now=now,
        )
        if not cleaned:
            raise TaskConflictError(str(task.id), "unit is no longer pending cleaning")

        record_id = await unit_store.add_cleaning_record(
            payload.storage_unit_id, context.admin_id, photo_urls, now
        )
        await self._audit(context, "MARK_UNIT_CLEAN", "STORAGE_UNIT", payload.storage_unit_id)
        return ApplyOutcome(
            message=f"Unit {payload.storage_unit_number} marked clean",
            updated_entity={
                "storage_unit_id": payload.storage_unit_id,
                "storage_unit_number": payload.storage_unit_number,
                "status": StorageUnitStatus.EMPTY.value,
                "cleaning_record_id": record_id,
            },
        )
