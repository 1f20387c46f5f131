"""枚举定义

包含 TaskType 封闭枚举（同时决定列表分组顺序）、ResolutionState 状态机、
VALID_TRANSITIONS 合法流转映射，以及各业务表使用的状态常量枚举。
"""

from enum import StrEnum


class TaskType(StrEnum):
    """任务类型 -- 封闭集合，定义顺序即列表分组顺序

    值同时用作 TaskId 字符串形式与 URL 中的类型段。
    """

    NEGATIVE_FEEDBACK = "negative-feedback"
    REQUESTED_UNIT_ASSIGNMENT = "requested-unit-assignment"
    WAREHOUSE_LOCATION_UPDATE = "warehouse-location-update"
    UNASSIGNED_DRIVER = "unassigned-driver"
    ASSIGN_STORAGE_UNIT = "assign-storage-unit"
    PENDING_CLEANING = "pending-cleaning"
    STORAGE_UNIT_RETURN = "storage-unit-return"
    PREP_UNITS_FOR_DELIVERY = "prep-units-for-delivery"
    PREP_PACKING_SUPPLY_ORDER = "prep-packing-supply-order"


TASK_TYPE_ORDER: dict[TaskType, int] = {t: i for i, t in enumerate(TaskType)}


class PriorityHint(StrEnum):
    """展示用紧急程度（不参与排序）"""

    CRITICAL = "critical"
    URGENT = "urgent"
    NORMAL = "normal"


class ResolutionState(StrEnum):
    """单次 Resolve 调用内的任务状态

    RESOLVING 只存在于一次调用期间，从不落盘。
    """

    PENDING = "PENDING"
    RESOLVING = "RESOLVING"
    RESOLVED = "RESOLVED"
    FAILED = "FAILED"


VALID_TRANSITIONS: dict[ResolutionState, set[ResolutionState]] = {
    ResolutionState.PENDING: {ResolutionState.RESOLVING, ResolutionState.FAILED},
    ResolutionState.RESOLVING: {ResolutionState.RESOLVED, ResolutionState.FAILED},
    # 终态不可再流转
    ResolutionState.RESOLVED: set(),
    ResolutionState.FAILED: set(),
}


class AppointmentType(StrEnum):
    """预约类型"""

    INITIAL_PICKUP = "Initial Pickup"
    ADDITIONAL_STORAGE = "Additional Storage"
    STORAGE_UNIT_ACCESS = "Storage Unit Access"
    END_STORAGE_TERM = "End Storage Term"
    # 历史数据中的同义写法
    END_STORAGE_PLAN = "End Storage Plan"


PICKUP_APPOINTMENT_TYPES: tuple[str, ...] = (
    AppointmentType.INITIAL_PICKUP,
    AppointmentType.ADDITIONAL_STORAGE,
)
ACCESS_APPOINTMENT_TYPES: tuple[str, ...] = (
    AppointmentType.STORAGE_UNIT_ACCESS,
    AppointmentType.END_STORAGE_TERM,
    AppointmentType.END_STORAGE_PLAN,
)
END_STORAGE_APPOINTMENT_TYPES: tuple[str, ...] = (
    AppointmentType.END_STORAGE_TERM,
    AppointmentType.END_STORAGE_PLAN,
)


class StorageUnitStatus(StrEnum):
    """储物单元状态"""

    EMPTY = "Empty"
    ASSIGNED = "Assigned"
    OCCUPIED = "Occupied"
    PENDING_CLEANING = "Pending Cleaning"


class FeedbackSource(StrEnum):
    """差评来源"""

    APPOINTMENT = "appointment"
    PACKING_SUPPLY = "packing-supply"


class OccupancyQuestion(StrEnum):
    """入库核查时必须回答的占用问题（由预约类型决定）"""

    IS_UNIT_EMPTY = "is_unit_empty"
    IS_STILL_STORING_ITEMS = "is_still_storing_items"
    IS_ALL_ITEMS_REMOVED = "is_all_items_removed"


def validate_transition(from_state: ResolutionState, to_state: ResolutionState) -> bool:
    """验证状态流转是否合法

    Args:
        from_state: 当前状态
        to_state: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_TRANSITIONS.get(from_state, set())
    return to_state in allowed
