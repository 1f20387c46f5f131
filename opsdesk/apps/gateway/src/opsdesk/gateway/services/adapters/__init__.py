"""任务来源 adapter 注册

每种 TaskType 恰好一个 adapter；聚合器与分发器只通过此注册表访问它们。
"""

from opsdesk.core.config import DEFAULT_WAREHOUSE_NAME
from opsdesk.core.models import TaskType

from .assign_storage_unit import AssignStorageUnitAdapter
from .base import (
    AdapterDeps,
    ApplyOutcome,
    Clock,
    ResolutionContext,
    TaskAdapter,
    utc_now,
)
from .negative_feedback import NegativeFeedbackAdapter
from .pending_cleaning import PendingCleaningAdapter
from .prep_packing_supply import PrepPackingSupplyOrderAdapter
from .prep_units import PrepUnitsForDeliveryAdapter
from .requested_unit import RequestedUnitAssignmentAdapter
from .storage_return import StorageUnitReturnAdapter
from .unassigned_driver import UnassignedDriverAdapter
from .warehouse_location import WarehouseLocationUpdateAdapter


def build_adapters(
    deps: AdapterDeps,
    warehouse_name: str = DEFAULT_WAREHOUSE_NAME,
) -> dict[TaskType, TaskAdapter]:
    """按 TaskType 顺序构造全部 adapter"""
    adapters: list[TaskAdapter] = [
        NegativeFeedbackAdapter(deps),
        RequestedUnitAssignmentAdapter(deps),
        WarehouseLocationUpdateAdapter(deps, warehouse_name),
        UnassignedDriverAdapter(deps),
        AssignStorageUnitAdapter(deps),
        PendingCleaningAdapter(deps),
        StorageUnitReturnAdapter(deps, warehouse_name),
        PrepUnitsForDeliveryAdapter(deps),
        PrepPackingSupplyOrderAdapter(deps),
    ]
    registry = {adapter.task_type: adapter for adapter in adapters}
    missing = set(TaskType) - set(registry)
    if missing:
        raise RuntimeError(f"No adapter registered for {sorted(missing)}")
    return registry


__all__ = [
    "AdapterDeps",
    "ApplyOutcome",
    "Clock",
    "ResolutionContext",
    "TaskAdapter",
    "build_adapters",
    "utc_now",
    "NegativeFeedbackAdapter",
    "RequestedUnitAssignmentAdapter",
    "WarehouseLocationUpdateAdapter",
    "UnassignedDriverAdapter",
    "AssignStorageUnitAdapter",
    "PendingCleaningAdapter",
    "StorageUnitReturnAdapter",
    "PrepUnitsForDeliveryAdapter",
    "PrepPackingSupplyOrderAdapter",
]
