"""StorageUnitStore SQLite 实现

储物单元、单元使用记录、预约请求单元、清洁记录与损坏报告。
"""

from collections.abc import Sequence
from datetime import datetime

import aiosqlite

from ..models.records import RequestedUnitRow, StorageUnitRow, UsageRow
from .transaction import placeholders, to_db_json, to_db_time

_USAGE_COLUMNS = """
    s.id, s.storage_unit_id, su.storage_unit_number, s.user_id,
    s.start_appointment_id, s.warehouse_location, s.warehouse_name, s.updated_at,
    TRIM(u.first_name || ' ' || u.last_name) AS customer_name, u.email AS customer_email
"""

_REQUESTED_COLUMNS = """
    r.id, r.appointment_id, r.storage_unit_id, su.storage_unit_number,
    r.units_ready, r.assigned_at, r.created_at
"""


class SqliteStorageUnitStore:
    """StorageUnitStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    # ---- 储物单元 ----

    async def list_units_by_status(
        self, status: str, unit_id: int | None = None
    ) -> list[StorageUnitRow]:
        """指定状态的储物单元，按最近更新倒序"""
        sql = (
            "SELECT id, storage_unit_number, status, last_updated, last_cleaned_at "
            "FROM storage_units WHERE status = ?"
        )
        params: list = [status]
        if unit_id is not None:
            sql += " AND id = ?"
            params.append(unit_id)
        cursor = await self._conn.execute(sql + " ORDER BY last_updated DESC, id", params)
        return [self._row_to_unit(row) for row in await cursor.fetchall()]

    async def get_units_by_number(self, numbers: Sequence[str]) -> list[StorageUnitRow]:
        """按单元号批量查询，忽略大小写（不存在的单元号不返回）"""
        if not numbers:
            return []
        cursor = await self._conn.execute(
            "SELECT id, storage_unit_number, status, last_updated, last_cleaned_at "
            f"FROM storage_units WHERE UPPER(storage_unit_number) IN ({placeholders(len(numbers))})",
            [number.upper() for number in numbers],
        )
        return [self._row_to_unit(row) for row in await cursor.fetchall()]

    async def transition_unit_status(
        self,
        unit_id: int,
        expected: str,
        new_status: str,
        now: datetime,
    ) -> bool:
        """条件状态流转：仅当当前状态为 expected 时更新"""
        cursor = await self._conn.execute(
            """
            UPDATE storage_units SET status = ?, last_updated = ?
            WHERE id = ? AND status = ?
            """,
            (new_status, to_db_time(now), unit_id, expected),
        )
        return cursor.rowcount == 1

    async def set_units_status(
        self, unit_ids: Sequence[int], status: str, now: datetime
    ) -> int:
        """批量设置单元状态"""
        if not unit_ids:
            return 0
        cursor = await self._conn.execute(
            f"""
            UPDATE storage_units SET status = ?, last_updated = ?
            WHERE id IN ({placeholders(len(unit_ids))})
            """,
            [status, to_db_time(now), *unit_ids],
        )
        return cursor.rowcount

    async def mark_unit_cleaned(
        self,
        unit_id: int,
        expected: str,
        new_status: str,
        photo_urls: Sequence[str],
        now: datetime,
    ) -> bool:
        """条件更新：待清洁 -> 可用，并记录清洁照片与时间"""
        cursor = await self._conn.execute(
            """
            UPDATE storage_units
            SET status = ?, cleaning_photos = ?, last_cleaned_at = ?, last_updated = ?
            WHERE id = ? AND status = ?
            """,
            (
                new_status,
                to_db_json(photo_urls),
                to_db_time(now),
                to_db_time(now),
                unit_id,
                expected,
            ),
        )
        return cursor.rowcount == 1

    async def add_cleaning_record(
        self,
        unit_id: int,
        admin_id: int,
        photo_urls: Sequence[str],
        now: datetime,
    ) -> int:
        cursor = await self._conn.execute(
            """
            INSERT INTO storage_unit_cleanings (storage_unit_id, admin_id, cleaned_at, photos)
            VALUES (?, ?, ?, ?)
            """,
            (unit_id, admin_id, to_db_time(now), to_db_json(photo_urls)),
        )
        return cursor.lastrowid

    async def add_damage_report(
        self,
        unit_id: int,
        appointment_id: int,
        admin_id: int,
        description: str,
        photo_urls: Sequence[str],
        now: datetime,
    ) -> int:
        cursor = await self._conn.execute(
            """
            INSERT INTO storage_unit_damage_reports
                (storage_unit_id, appointment_id, admin_id, report_date,
                 damage_description, damage_photos, status)
            VALUES (?, ?, ?, ?, ?, ?, 'Pending')
            """,
            (
                unit_id,
                appointment_id,
                admin_id,
                to_db_time(now),
                description,
                to_db_json(photo_urls),
            ),
        )
        return cursor.lastrowid

    # ---- 使用记录 ----

    async def has_started_usage(self, appointment_id: int) -> bool:
        """预约是否已开始任何单元使用记录"""
        cursor = await self._conn.execute(
            "SELECT 1 FROM storage_unit_usages WHERE start_appointment_id = ? LIMIT 1",
            (appointment_id,),
        )
        return await cursor.fetchone() is not None

    async def create_usage(
        self,
        unit_id: int,
        user_id: int,
        start_appointment_id: int,
        photo_urls: Sequence[str],
        now: datetime,
    ) -> int:
        cursor = await self._conn.execute(
            """
            INSERT INTO storage_unit_usages
                (storage_unit_id, user_id, start_appointment_id,
                 usage_start_date, unit_pickup_photos, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                unit_id,
                user_id,
                start_appointment_id,
                to_db_time(now),
                to_db_json(photo_urls),
                to_db_time(now),
            ),
        )
        return cursor.lastrowid

    async def list_active_usages_with_location(
        self, location: str, usage_id: int | None = None
    ) -> list[UsageRow]:
        """仍在使用中、仓库位置等于 location 的使用记录"""
        sql = f"""
            SELECT {_USAGE_COLUMNS}
            FROM storage_unit_usages s
            JOIN storage_units su ON su.id = s.storage_unit_id
            JOIN users u ON u.id = s.user_id
            WHERE s.warehouse_location = ? AND s.usage_end_date IS NULL
        """
        params: list = [location]
        if usage_id is not None:
            sql += " AND s.id = ?"
            params.append(usage_id)
        cursor = await self._conn.execute(sql + " ORDER BY s.updated_at DESC, s.id", params)
        return [self._row_to_usage(row) for row in await cursor.fetchall()]

    async def list_usages_started_by(self, appointment_id: int) -> list[UsageRow]:
        """由指定预约开始的使用记录"""
        cursor = await self._conn.execute(
            f"""
            SELECT {_USAGE_COLUMNS}
            FROM storage_unit_usages s
            JOIN storage_units su ON su.id = s.storage_unit_id
            JOIN users u ON u.id = s.user_id
            WHERE s.start_appointment_id = ?
            ORDER BY s.id
            """,
            (appointment_id,),
        )
        return [self._row_to_usage(row) for row in await cursor.fetchall()]

    async def list_active_usages_for_units(self, unit_ids: Sequence[int]) -> list[UsageRow]:
        """指定单元当前仍在使用中的记录"""
        if not unit_ids:
            return []
        cursor = await self._conn.execute(
            f"""
            SELECT {_USAGE_COLUMNS}
            FROM storage_unit_usages s
            JOIN storage_units su ON su.id = s.storage_unit_id
            JOIN users u ON u.id = s.user_id
            WHERE s.storage_unit_id IN ({placeholders(len(unit_ids))})
              AND s.usage_end_date IS NULL
            ORDER BY s.id
            """,
            list(unit_ids),
        )
        return [self._row_to_usage(row) for row in await cursor.fetchall()]

    async def set_usage_location(
        self,
        usage_id: int,
        expected_location: str,
        location: str,
        warehouse_name: str,
        now: datetime,
    ) -> bool:
        """条件更新：仅当位置仍为 expected_location 时写入新位置"""
        cursor = await self._conn.execute(
            """
            UPDATE storage_unit_usages
            SET warehouse_location = ?, warehouse_name = ?, updated_at = ?
            WHERE id = ? AND warehouse_location = ? AND usage_end_date IS NULL
            """,
            (location, warehouse_name, to_db_time(now), usage_id, expected_location),
        )
        return cursor.rowcount == 1

    async def mark_usages_pending_location(
        self,
        usage_ids: Sequence[int],
        pending_location: str,
        warehouse_name: str,
        now: datetime,
    ) -> int:
        """单元回库但仍存放物品：位置置为待录入"""
        if not usage_ids:
            return 0
        cursor = await self._conn.execute(
            f"""
            UPDATE storage_unit_usages
            SET warehouse_location = ?, warehouse_name = ?, updated_at = ?
            WHERE id IN ({placeholders(len(usage_ids))}) AND usage_end_date IS NULL
            """,
            [pending_location, warehouse_name, to_db_time(now), *usage_ids],
        )
        return cursor.rowcount

    async def end_usages(
        self,
        usage_ids: Sequence[int],
        end_appointment_id: int,
        now: datetime,
    ) -> int:
        """结束使用记录"""
        if not usage_ids:
            return 0
        cursor = await self._conn.execute(
            f"""
            UPDATE storage_unit_usages
            SET usage_end_date = ?, end_appointment_id = ?, updated_at = ?
            WHERE id IN ({placeholders(len(usage_ids))}) AND usage_end_date IS NULL
            """,
            [to_db_time(now), end_appointment_id, to_db_time(now), *usage_ids],
        )
        return cursor.rowcount

    # ---- 预约请求单元 ----

    async def list_requested_units(
        self, appointment_ids: Sequence[int]
    ) -> dict[int, list[RequestedUnitRow]]:
        """按预约分组返回请求单元（按主键顺序，决定单元序号）"""
        if not appointment_ids:
            return {}
        cursor = await self._conn.execute(
            f"""
            SELECT {_REQUESTED_COLUMNS}
            FROM requested_access_storage_units r
            JOIN storage_units su ON su.id = r.storage_unit_id
            WHERE r.appointment_id IN ({placeholders(len(appointment_ids))})
            ORDER BY r.appointment_id, r.id
            """,
            list(appointment_ids),
        )
        grouped: dict[int, list[RequestedUnitRow]] = {}
        for row in await cursor.fetchall():
            unit = self._row_to_requested(row)
            grouped.setdefault(unit.appointment_id, []).append(unit)
        return grouped

    async def list_unassigned_requested_units(
        self, requested_unit_id: int | None = None
    ) -> list[RequestedUnitRow]:
        """尚未完成司机/单元核验分配的请求单元"""
        sql = f"""
            SELECT {_REQUESTED_COLUMNS}
            FROM requested_access_storage_units r
            JOIN storage_units su ON su.id = r.storage_unit_id
            WHERE r.assigned_at IS NULL
        """
        params: list = []
        if requested_unit_id is not None:
            sql += " AND r.id = ?"
            params.append(requested_unit_id)
        cursor = await self._conn.execute(sql + " ORDER BY r.created_at DESC, r.id", params)
        return [self._row_to_requested(row) for row in await cursor.fetchall()]

    async def mark_requested_unit_assigned(
        self,
        requested_unit_id: int,
        photo_urls: Sequence[str],
        now: datetime,
    ) -> bool:
        """条件更新：仅当尚未分配时记录分配时间与拖车照片"""
        cursor = await self._conn.execute(
            """
            UPDATE requested_access_storage_units
            SET assigned_at = ?, requested_unit_pickup_photos = ?
            WHERE id = ? AND assigned_at IS NULL
            """,
            (to_db_time(now), to_db_json(photo_urls), requested_unit_id),
        )
        return cursor.rowcount == 1

    async def mark_requested_units_ready(
        self, appointment_id: int, storage_unit_ids: Sequence[int]
    ) -> int:
        """条件更新：将尚未备货的请求单元标记为已备货

        Returns:
            实际从未备货变为已备货的行数
        """
        if not storage_unit_ids:
            return 0
        cursor = await self._conn.execute(
            f"""
            UPDATE requested_access_storage_units
            SET units_ready = 1
            WHERE appointment_id = ?
              AND storage_unit_id IN ({placeholders(len(storage_unit_ids))})
              AND units_ready = 0
            """,
            [appointment_id, *storage_unit_ids],
        )
        return cursor.rowcount


    @staticmethod
    def _row_to_unit(row: aiosqlite.Row) -> StorageUnitRow:
        return StorageUnitRow(
            id=row["id"],
            storage_unit_number=row["storage_unit_number"],
            status=row["status"],
            last_updated=datetime.fromisoformat(row["last_updated"]),
            last_cleaned_at=(
                datetime.fromisoformat(row["last_cleaned_at"])
                if row["last_cleaned_at"]
                else None
            ),
        )

    @staticmethod
    def _row_to_usage(row: aiosqlite.Row) -> UsageRow:
        return UsageRow(
            id=row["id"],
            storage_unit_id=row["storage_unit_id"],
            storage_unit_number=row["storage_unit_number"],
            user_id=row["user_id"],
            start_appointment_id=row["start_appointment_id"],
            warehouse_location=row["warehouse_location"],
            warehouse_name=row["warehouse_name"],
            updated_at=datetime.fromisoformat(row["updated_at"]),
            customer_name=row["customer_name"] or "",
            customer_email=row["customer_email"],
        )

    @staticmethod
    def _row_to_requested(row: aiosqlite.Row) -> RequestedUnitRow:
        return RequestedUnitRow(
            id=row["id"],
            appointment_id=row["appointment_id"],
            storage_unit_id=row["storage_unit_id"],
            storage_unit_number=row["storage_unit_number"],
            units_ready=bool(row["units_ready"]),
            assigned_at=(
                datetime.fromisoformat(row["assigned_at"]) if row["assigned_at"] else None
            ),
            created_at=datetime.fromisoformat(row["created_at"]),
        )
