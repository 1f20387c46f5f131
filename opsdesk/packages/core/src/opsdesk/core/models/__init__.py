"""Opsdesk Core 数据模型

导出任务模型、payload union、请求/结果模型与枚举。
"""

from .enums import (
    ACCESS_APPOINTMENT_TYPES,
    END_STORAGE_APPOINTMENT_TYPES,
    PICKUP_APPOINTMENT_TYPES,
    TASK_TYPE_ORDER,
    VALID_TRANSITIONS,
    AppointmentType,
    FeedbackSource,
    OccupancyQuestion,
    PriorityHint,
    ResolutionState,
    StorageUnitStatus,
    TaskType,
    validate_transition,
)
from .payloads import (
    AppointmentSummary,
    AssignStorageUnitPayload,
    ContactInfo,
    DriverInfo,
    NegativeFeedbackPayload,
    OrderLine,
    PendingCleaningPayload,
    PrepPackingSupplyOrderPayload,
    PrepUnitsForDeliveryPayload,
    RequestedUnitAssignmentPayload,
    RequestedUnitLine,
    StorageUnitReturnPayload,
    TaskPayload,
    UnassignedDriverPayload,
    WarehouseLocationUpdatePayload,
)
from .requests import (
    CleaningRequest,
    FeedbackResponseRequest,
    LocationUpdateRequest,
    PartnerContactRequest,
    PhotoInput,
    PrepOrderRequest,
    PrepUnitsRequest,
    StorageReturnRequest,
    UnitAssignmentRequest,
)
from .result import ResolutionResult, SideEffectFailureDetail
from .task import (
    InvalidTaskIdError,
    PartialAggregationFailure,
    Task,
    TaskFilter,
    TaskId,
    TaskListing,
    TaskStatistics,
)

__all__ = [
    # 枚举
    "TaskType",
    "TASK_TYPE_ORDER",
    "PriorityHint",
    "ResolutionState",
    "VALID_TRANSITIONS",
    "validate_transition",
    "AppointmentType",
    "PICKUP_APPOINTMENT_TYPES",
    "ACCESS_APPOINTMENT_TYPES",
    "END_STORAGE_APPOINTMENT_TYPES",
    "StorageUnitStatus",
    "FeedbackSource",
    "OccupancyQuestion",
    # 任务
    "Task",
    "TaskId",
    "InvalidTaskIdError",
    "TaskFilter",
    "TaskListing",
    "TaskStatistics",
    "PartialAggregationFailure",
    # Payload
    "TaskPayload",
    "ContactInfo",
    "DriverInfo",
    "AppointmentSummary",
    "NegativeFeedbackPayload",
    "RequestedUnitAssignmentPayload",
    "WarehouseLocationUpdatePayload",
    "UnassignedDriverPayload",
    "AssignStorageUnitPayload",
    "PendingCleaningPayload",
    "StorageUnitReturnPayload",
    "RequestedUnitLine",
    "PrepUnitsForDeliveryPayload",
    "OrderLine",
    "PrepPackingSupplyOrderPayload",
    # 请求 / 结果
    "PhotoInput",
    "FeedbackResponseRequest",
    "UnitAssignmentRequest",
    "LocationUpdateRequest",
    "PartnerContactRequest",
    "CleaningRequest",
    "StorageReturnRequest",
    "PrepUnitsRequest",
    "PrepOrderRequest",
    "ResolutionResult",
    "SideEffectFailureDetail",
]
