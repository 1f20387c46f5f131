"""持久化层返回的行记录模型

Store 查询结果（通常为多表 join）映射为这些只读记录，
adapter 再将其塑形为 Task payload。
"""

from datetime import datetime

from pydantic import BaseModel, Field


class AppointmentRow(BaseModel):
    """预约 + 客户信息"""

    id: int
    job_code: str
    user_id: int
    moving_partner_id: int | None = None
    appointment_type: str
    address: str = ""
    date: datetime
    time: str = ""
    number_of_units: int | None = None
    status: str
    called_moving_partner: bool = False
    got_hold_of_moving_partner: bool | None = None
    created_at: datetime
    customer_name: str = ""
    customer_email: str | None = None
    customer_phone: str | None = None


class MovingPartnerRow(BaseModel):
    id: int
    name: str
    email: str | None = None
    phone_number: str | None = None


class DriverTaskRow(BaseModel):
    """配送任务 + 司机"""

    id: int
    appointment_id: int
    short_id: str = ""
    unit_number: int
    driver_id: int | None = None
    driver_name: str | None = None
    driver_phone: str | None = None
    storage_unit_id: int | None = None
    driver_verified: bool | None = None


class StorageUnitRow(BaseModel):
    id: int
    storage_unit_number: str
    status: str
    last_updated: datetime
    last_cleaned_at: datetime | None = None


class UsageRow(BaseModel):
    """储物单元使用记录 + 单元号 + 客户"""

    id: int
    storage_unit_id: int
    storage_unit_number: str
    user_id: int
    start_appointment_id: int | None = None
    warehouse_location: str | None = None
    warehouse_name: str | None = None
    updated_at: datetime
    customer_name: str = ""
    customer_email: str | None = None


class RequestedUnitRow(BaseModel):
    """预约请求取出的单元"""

    id: int
    appointment_id: int
    storage_unit_id: int
    storage_unit_number: str
    units_ready: bool
    assigned_at: datetime | None = None
    created_at: datetime


class FeedbackRow(BaseModel):
    """差评（预约或耗材订单） + 客户"""

    id: int
    rating: int
    comment: str = ""
    created_at: datetime
    reference: str
    customer_name: str = ""
    customer_email: str | None = None


class OrderRow(BaseModel):
    """耗材订单 + 司机"""

    id: int
    short_id: str | None = None
    contact_name: str
    contact_email: str | None = None
    contact_phone: str | None = None
    delivery_address: str
    delivery_date: datetime
    order_date: datetime
    status: str
    driver_name: str | None = None


class OrderLineRow(BaseModel):
    id: int
    order_id: int
    product_title: str
    quantity: int


class AdminLogRow(BaseModel):
    id: int
    admin_id: int
    action: str
    target_type: str
    target_id: str
    created_at: datetime = Field(description="记录时间")
