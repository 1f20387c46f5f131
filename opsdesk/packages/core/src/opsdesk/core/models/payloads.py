"""Task payload 类型定义

每种任务类型一个 payload 模型，通过 type 字段组成 discriminated union。
"""

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, Field

from .enums import FeedbackSource, OccupancyQuestion, TaskType


class ContactInfo(BaseModel):
    """联系人信息（客户 / 搬家合作方）"""

    name: str = Field(default="", description="名称")
    email: str | None = Field(default=None, description="邮箱")
    phone: str | None = Field(default=None, description="电话")


class DriverInfo(BaseModel):
    """司机信息"""

    driver_id: int
    name: str
    phone: str | None = None
    unit_number: int | None = Field(default=None, description="负责的单元序号")


class AppointmentSummary(BaseModel):
    """预约摘要 -- 多种任务共用"""

    appointment_id: int
    job_code: str
    appointment_type: str
    date: datetime
    time: str = ""
    address: str = ""
    customer: ContactInfo = Field(default_factory=ContactInfo)


class NegativeFeedbackPayload(BaseModel):
    """差评任务 payload"""

    type: Literal[TaskType.NEGATIVE_FEEDBACK] = TaskType.NEGATIVE_FEEDBACK
    source: FeedbackSource
    feedback_id: int
    rating: int
    comment: str = ""
    reference: str = Field(description="工单号或订单号")
    customer: ContactInfo


class RequestedUnitAssignmentPayload(BaseModel):
    """请求单元分配任务 payload"""

    type: Literal[TaskType.REQUESTED_UNIT_ASSIGNMENT] = TaskType.REQUESTED_UNIT_ASSIGNMENT
    appointment: AppointmentSummary
    requested_unit_id: int
    storage_unit_id: int
    storage_unit_number: str
    unit_index: int = Field(description="在本预约内的单元序号（从 1 开始）")
    total_units: int
    required_units: int = 1
    driver: DriverInfo | None = None


class WarehouseLocationUpdatePayload(BaseModel):
    """仓库位置录入任务 payload"""

    type: Literal[TaskType.WAREHOUSE_LOCATION_UPDATE] = TaskType.WAREHOUSE_LOCATION_UPDATE
    usage_id: int
    storage_unit_id: int
    storage_unit_number: str
    customer: ContactInfo
    warehouse_name: str | None = None


class UnassignedDriverPayload(BaseModel):
    """未分配司机任务 payload"""

    type: Literal[TaskType.UNASSIGNED_DRIVER] = TaskType.UNASSIGNED_DRIVER
    appointment: AppointmentSummary
    moving_partner: ContactInfo
    driver_task_refs: list[str] = Field(default_factory=list, description="配送任务短号")


class AssignStorageUnitPayload(BaseModel):
    """储物单元分配任务 payload"""

    type: Literal[TaskType.ASSIGN_STORAGE_UNIT] = TaskType.ASSIGN_STORAGE_UNIT
    appointment: AppointmentSummary
    required_units: int = Field(ge=1)
    drivers: list[DriverInfo] = Field(default_factory=list)


class PendingCleaningPayload(BaseModel):
    """待清洁任务 payload"""

    type: Literal[TaskType.PENDING_CLEANING] = TaskType.PENDING_CLEANING
    storage_unit_id: int
    storage_unit_number: str
    last_cleaned_at: datetime | None = None


class StorageUnitReturnPayload(BaseModel):
    """入库核查任务 payload"""

    type: Literal[TaskType.STORAGE_UNIT_RETURN] = TaskType.STORAGE_UNIT_RETURN
    appointment: AppointmentSummary
    occupancy_question: OccupancyQuestion
    storage_unit_numbers: list[str] = Field(default_factory=list)
    moving_partner: ContactInfo | None = None


class RequestedUnitLine(BaseModel):
    """预约请求的单元及其备货状态"""

    storage_unit_number: str
    units_ready: bool


class PrepUnitsForDeliveryPayload(BaseModel):
    """单元出库备货任务 payload"""

    type: Literal[TaskType.PREP_UNITS_FOR_DELIVERY] = TaskType.PREP_UNITS_FOR_DELIVERY
    appointment: AppointmentSummary
    units: list[RequestedUnitLine]
    pending_unit_numbers: list[str] = Field(description="尚未备货、需逐一勾选的单元号")


class OrderLine(BaseModel):
    """耗材订单行"""

    detail_id: int
    product_title: str
    quantity: int


class PrepPackingSupplyOrderPayload(BaseModel):
    """耗材订单备货任务 payload"""

    type: Literal[TaskType.PREP_PACKING_SUPPLY_ORDER] = TaskType.PREP_PACKING_SUPPLY_ORDER
    order_id: int
    reference: str
    customer: ContactInfo
    delivery_address: str
    delivery_date: datetime
    driver_name: str | None = None
    items: list[OrderLine]


TaskPayload = Annotated[
    NegativeFeedbackPayload
    | RequestedUnitAssignmentPayload
    | WarehouseLocationUpdatePayload
    | UnassignedDriverPayload
    | AssignStorageUnitPayload
    | PendingCleaningPayload
    | StorageUnitReturnPayload
    | PrepUnitsForDeliveryPayload
    | PrepPackingSupplyOrderPayload,
    Field(discriminator="type"),
]
