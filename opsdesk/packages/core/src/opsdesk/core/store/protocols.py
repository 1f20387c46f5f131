"""持久化端口 Protocol 定义

按业务表族划分的读写接口，使用 Python Protocol 实现结构化子类型。
所有条件更新返回 bool：True 表示前置条件仍成立且已写入。
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from ..models.enums import FeedbackSource
from ..models.records import (
    AdminLogRow,
    AppointmentRow,
    DriverTaskRow,
    FeedbackRow,
    MovingPartnerRow,
    OrderLineRow,
    OrderRow,
    RequestedUnitRow,
    StorageUnitRow,
    UsageRow,
)


class AppointmentStore(Protocol):
    """预约 / 配送任务存储接口"""

    async def get_appointment(self, appointment_id: int) -> AppointmentRow | None: ...

    async def list_missing_driver(
        self,
        window_start: datetime,
        window_end: datetime,
        appointment_id: int | None = None,
    ) -> list[AppointmentRow]: ...

    async def list_awaiting_unit_assignment(
        self,
        appointment_types: Sequence[str],
        window_start: datetime,
        window_end: datetime,
        appointment_id: int | None = None,
    ) -> list[AppointmentRow]: ...

    async def list_by_status(
        self,
        status: str,
        appointment_types: Sequence[str],
        appointment_id: int | None = None,
    ) -> list[AppointmentRow]: ...

    async def list_awaiting_unit_prep(
        self,
        appointment_types: Sequence[str],
        window_start: datetime,
        window_end: datetime,
        appointment_id: int | None = None,
    ) -> list[AppointmentRow]: ...

    async def list_active_by_types(
        self,
        appointment_types: Sequence[str],
        appointment_ids: Sequence[int] | None = None,
    ) -> list[AppointmentRow]: ...

    async def get_moving_partner(self, partner_id: int) -> MovingPartnerRow | None: ...

    async def list_driver_tasks(
        self, appointment_ids: Sequence[int]
    ) -> dict[int, list[DriverTaskRow]]: ...

    async def record_partner_contact(
        self, appointment_id: int, called: bool, got_hold: bool | None
    ) -> bool: ...

    async def transition_status(
        self, appointment_id: int, expected: str, new_status: str
    ) -> bool: ...

    async def bind_driver_tasks(
        self,
        appointment_id: int,
        unit_number: int,
        storage_unit_id: int,
        driver_verified: bool,
    ) -> int: ...


class StorageUnitStore(Protocol):
    """储物单元 / 使用记录 / 请求单元存储接口"""

    async def list_units_by_status(
        self, status: str, unit_id: int | None = None
    ) -> list[StorageUnitRow]: ...

    async def get_units_by_number(self, numbers: Sequence[str]) -> list[StorageUnitRow]: ...

    async def transition_unit_status(
        self, unit_id: int, expected: str, new_status: str, now: datetime
    ) -> bool: ...

    async def set_units_status(
        self, unit_ids: Sequence[int], status: str, now: datetime
    ) -> int: ...

    async def mark_unit_cleaned(
        self,
        unit_id: int,
        expected: str,
        new_status: str,
        photo_urls: Sequence[str],
        now: datetime,
    ) -> bool: ...

    async def add_cleaning_record(
        self, unit_id: int, admin_id: int, photo_urls: Sequence[str], now: datetime
    ) -> int: ...

    async def add_damage_report(
        self,
        unit_id: int,
        appointment_id: int,
        admin_id: int,
        description: str,
        photo_urls: Sequence[str],
        now: datetime,
    ) -> int: ...

    async def has_started_usage(self, appointment_id: int) -> bool: ...

    async def create_usage(
        self,
        unit_id: int,
        user_id: int,
        start_appointment_id: int,
        photo_urls: Sequence[str],
        now: datetime,
    ) -> int: ...

    async def list_active_usages_with_location(
        self, location: str, usage_id: int | None = None
    ) -> list[UsageRow]: ...

    async def list_usages_started_by(self, appointment_id: int) -> list[UsageRow]: ...

    async def list_active_usages_for_units(self, unit_ids: Sequence[int]) -> list[UsageRow]: ...

    async def set_usage_location(
        self,
        usage_id: int,
        expected_location: str,
        location: str,
        warehouse_name: str,
        now: datetime,
    ) -> bool: ...

    async def mark_usages_pending_location(
        self,
        usage_ids: Sequence[int],
        pending_location: str,
        warehouse_name: str,
        now: datetime,
    ) -> int: ...

    async def end_usages(
        self, usage_ids: Sequence[int], end_appointment_id: int, now: datetime
    ) -> int: ...

    async def list_requested_units(
        self, appointment_ids: Sequence[int]
    ) -> dict[int, list[RequestedUnitRow]]: ...

    async def list_unassigned_requested_units(
        self, requested_unit_id: int | None = None
    ) -> list[RequestedUnitRow]: ...

    async def mark_requested_unit_assigned(
        self, requested_unit_id: int, photo_urls: Sequence[str], now: datetime
    ) -> bool: ...

    async def mark_requested_units_ready(
        self, appointment_id: int, storage_unit_ids: Sequence[int]
    ) -> int: ...


class FeedbackStore(Protocol):
    """评价存储接口"""

    async def list_unresponded_appointment_feedback(
        self, max_rating: int, feedback_id: int | None = None
    ) -> list[FeedbackRow]: ...

    async def list_unresponded_packing_supply_feedback(
        self, max_rating: int, feedback_id: int | None = None
    ) -> list[FeedbackRow]: ...

    async def mark_responded(
        self, source: FeedbackSource, feedback_id: int, response: str
    ) -> bool: ...


class PackingSupplyStore(Protocol):
    """耗材订单存储接口"""

    async def list_unprepped_orders(self, order_id: int | None = None) -> list[OrderRow]: ...

    async def list_order_lines(
        self, order_ids: Sequence[int]
    ) -> dict[int, list[OrderLineRow]]: ...

    async def mark_prepped(self, order_id: int, admin_id: int, now: datetime) -> bool: ...


class AdminLogStore(Protocol):
    """审计日志存储接口 -- append-only"""

    async def append(
        self,
        admin_id: int,
        action: str,
        target_type: str,
        target_id: str | int,
        now: datetime,
    ) -> None: ...

    async def list_recent(self, limit: int = 50) -> list[AdminLogRow]: ...
