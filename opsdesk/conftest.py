"""全局 pytest 配置 -- 临时 SQLite 数据库、StoreGroup 与业务数据构造器"""

import json
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import aiosqlite
import pytest
import pytest_asyncio

# 所有测试使用的固定"当前时间"
FIXED_NOW = datetime(2026, 10, 19, 15, 0, tzinfo=UTC)


def iso(value: datetime) -> str:
    return value.astimezone(UTC).isoformat(timespec="seconds")


class Seeder:
    """向业务表插入测试数据，每次插入后立即提交"""

    def __init__(self, conn: aiosqlite.Connection, now: datetime = FIXED_NOW) -> None:
        self.conn = conn
        self.now = now
        self._job_seq = 0

    async def _insert(self, table: str, values: dict[str, Any]) -> int:
        columns = ", ".join(values)
        marks = ", ".join("?" for _ in values)
        cursor = await self.conn.execute(
            f"INSERT INTO {table} ({columns}) VALUES ({marks})", list(values.values())
        )
        await self.conn.commit()
        return cursor.lastrowid

    async def user(
        self,
        first_name: str = "Ada",
        last_name: str = "Lovelace",
        email: str | None = "ada@example.com",
        phone_number: str | None = "+15550001111",
    ) -> int:
        return await self._insert(
            "users",
            {
                "first_name": first_name,
                "last_name": last_name,
                "email": email,
                "phone_number": phone_number,
            },
        )

    async def moving_partner(
        self,
        name: str = "Swift Movers",
        email: str | None = "dispatch@swift.example",
        phone_number: str | None = "+15550002222",
    ) -> int:
        return await self._insert(
            "moving_partners", {"name": name, "email": email, "phone_number": phone_number}
        )

    async def driver(self, first_name: str = "Dan", last_name: str = "Driver") -> int:
        return await self._insert(
            "drivers",
            {"first_name": first_name, "last_name": last_name, "phone_number": "+15550003333"},
        )

    async def appointment(
        self,
        user_id: int,
        appointment_type: str = "Initial Pickup",
        date: datetime | None = None,
        status: str = "Scheduled",
        moving_partner_id: int | None = None,
        number_of_units: int | None = None,
        job_code: str | None = None,
        called_moving_partner: bool = False,
    ) -> int:
        self._job_seq += 1
        return await self._insert(
            "appointments",
            {
                "job_code": job_code or f"JOB-{self._job_seq:04d}",
                "user_id": user_id,
                "moving_partner_id": moving_partner_id,
                "appointment_type": appointment_type,
                "address": "1 Market St",
                "date": iso(date or self.now + timedelta(days=1)),
                "time": "9:00 AM",
                "number_of_units": number_of_units,
                "status": status,
                "called_moving_partner": int(called_moving_partner),
                "created_at": iso(self.now - timedelta(days=3)),
            },
        )

    async def driver_task(
        self,
        appointment_id: int,
        unit_number: int = 1,
        driver_id: int | None = None,
        short_id: str = "",
        step_number: int = 1,
    ) -> int:
        return await self._insert(
            "driver_tasks",
            {
                "appointment_id": appointment_id,
                "short_id": short_id,
                "step_number": step_number,
                "unit_number": unit_number,
                "driver_id": driver_id,
            },
        )

    async def storage_unit(
        self,
        number: str,
        status: str = "Empty",
        last_updated: datetime | None = None,
    ) -> int:
        return await self._insert(
            "storage_units",
            {
                "storage_unit_number": number,
                "status": status,
                "last_updated": iso(last_updated or self.now - timedelta(hours=2)),
            },
        )

    async def usage(
        self,
        storage_unit_id: int,
        user_id: int,
        start_appointment_id: int | None = None,
        warehouse_location: str | None = None,
        ended: bool = False,
    ) -> int:
        return await self._insert(
            "storage_unit_usages",
            {
                "storage_unit_id": storage_unit_id,
                "user_id": user_id,
                "start_appointment_id": start_appointment_id,
                "warehouse_location": warehouse_location,
                "usage_start_date": iso(self.now - timedelta(days=30)),
                "usage_end_date": iso(self.now - timedelta(days=1)) if ended else None,
                "updated_at": iso(self.now - timedelta(hours=1)),
            },
        )

    async def requested_unit(
        self,
        appointment_id: int,
        storage_unit_id: int,
        units_ready: bool = False,
        assigned: bool = False,
    ) -> int:
        return await self._insert(
            "requested_access_storage_units",
            {
                "appointment_id": appointment_id,
                "storage_unit_id": storage_unit_id,
                "units_ready": int(units_ready),
                "assigned_at": iso(self.now) if assigned else None,
                "created_at": iso(self.now - timedelta(days=2)),
            },
        )

    async def feedback(
        self,
        appointment_id: int,
        rating: int = 2,
        comment: str = "Movers were late",
        responded: bool = False,
    ) -> int:
        return await self._insert(
            "feedback",
            {
                "appointment_id": appointment_id,
                "rating": rating,
                "comment": comment,
                "responded": int(responded),
                "created_at": iso(self.now - timedelta(hours=5)),
            },
        )

    async def packing_supply_order(
        self,
        contact_name: str = "Grace Hopper",
        contact_email: str | None = "grace@example.com",
        status: str = "Pending",
        short_id: str | None = None,
        assigned_driver_id: int | None = None,
        is_prepped: bool = False,
        order_date: datetime | None = None,
    ) -> int:
        return await self._insert(
            "packing_supply_orders",
            {
                "contact_name": contact_name,
                "contact_email": contact_email,
                "delivery_address": "2 Mission St",
                "delivery_date": iso(self.now + timedelta(days=1)),
                "order_date": iso(order_date or self.now - timedelta(hours=3)),
                "status": status,
                "short_id": short_id,
                "assigned_driver_id": assigned_driver_id,
                "is_prepped": int(is_prepped),
            },
        )

    async def product(self, title: str = "Medium Box") -> int:
        return await self._insert("products", {"title": title})

    async def order_line(self, order_id: int, product_id: int, quantity: int = 1) -> int:
        return await self._insert(
            "packing_supply_order_details",
            {"order_id": order_id, "product_id": product_id, "quantity": quantity},
        )

    async def packing_supply_feedback(
        self, order_id: int, rating: int = 1, responded: bool = False
    ) -> int:
        return await self._insert(
            "packing_supply_feedback",
            {
                "order_id": order_id,
                "rating": rating,
                "comment": "Box was torn",
                "responded": int(responded),
                "created_at": iso(self.now - timedelta(hours=4)),
            },
        )

    # ---- 断言辅助 ----

    async def fetch_one(self, sql: str, params: tuple = ()) -> aiosqlite.Row | None:
        cursor = await self.conn.execute(sql, params)
        return await cursor.fetchone()

    async def count(self, table: str, where: str = "1 = 1", params: tuple = ()) -> int:
        row = await self.fetch_one(f"SELECT COUNT(*) FROM {table} WHERE {where}", params)
        return row[0]

    async def json_column(self, table: str, column: str, row_id: int) -> list:
        row = await self.fetch_one(f"SELECT {column} FROM {table} WHERE id = ?", (row_id,))
        return json.loads(row[0])


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest_asyncio.fixture
async def tmp_db_path(tmp_path: Path) -> Path:
    """提供临时 SQLite 数据库路径"""
    return tmp_path / "sqlite" / "test.db"


@pytest_asyncio.fixture
async def store_group(tmp_db_path: Path) -> AsyncGenerator:
    """提供已初始化 schema 的 StoreGroup"""
    from opsdesk.core.store import create_store_group

    group = await create_store_group(str(tmp_db_path))
    yield group
    await group.conn.close()


@pytest_asyncio.fixture
async def db_conn(store_group) -> aiosqlite.Connection:
    return store_group.conn


@pytest_asyncio.fixture
async def seeder(store_group) -> Seeder:
    return Seeder(store_group.conn)
